# hod_approval/api/endpoints/requests.py

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from hod_approval.api.deps import get_clock, get_current_user, get_db_session
from hod_approval.core.clock import Clock
from hod_approval.core.config import settings
from hod_approval.core.rbac import AllowRoles, require_decider, require_requester
from hod_approval.models.enums import AuditAction, RequestStatus
from hod_approval.models.user import User, UserRole
from hod_approval.schemas.request import (
    ApprovePayload,
    CancelPayload,
    CommentCreate,
    CommentRead,
    MoreInfoPayload,
    RejectPayload,
    RequestCreate,
    RequestDetail,
    RequestRead,
    RequestUpdate,
    TransitionResponse,
)
from hod_approval.services import qr_service, request_service
from hod_approval.services.notification_service import (
    schedule_audit,
    schedule_new_request_effects,
    schedule_transition_effects,
)

router = APIRouter(prefix="/api/requests", tags=["Departure Requests"])

# request_more_info lists ADMIN so the evaluator reports ROLE_NOT_PERMITTED itself
require_more_info_roles = AllowRoles(UserRole.HOD, UserRole.DEAN, UserRole.ADMIN, UserRole.FACULTY)


async def _transition_response(session, request, message: str) -> TransitionResponse:
    return TransitionResponse(
        message=message,
        request=await request_service.build_request_read(session, request),
    )


# ===================================================================
# SUBMIT
# ===================================================================
@router.post("", response_model=RequestRead, status_code=status.HTTP_201_CREATED)
async def create_request(
    data: RequestCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_requester),
    session: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
):
    request = await request_service.create_request(session, current_user, data.model_dump(), clock.now())

    approver = await request_service.find_routed_approver(session, current_user)
    schedule_new_request_effects(background_tasks, request, current_user, approver)

    return await request_service.build_request_read(session, request)


# ===================================================================
# LIST (scoped by role / delegation)
# ===================================================================
@router.get("", response_model=List[RequestRead])
async def list_requests(
    status_filter: Optional[RequestStatus] = Query(None, alias="status"),
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
):
    requests = await request_service.list_requests(session, current_user, clock.now(), status_filter)
    return await request_service.build_request_reads(session, requests)


# ===================================================================
# DETAIL
# ===================================================================
@router.get("/{request_id}", response_model=RequestDetail)
async def get_request(
    request_id: str,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
):
    request, owner = await request_service.get_visible_request(session, request_id, current_user, clock.now())

    read = await request_service.build_request_read(session, request)
    detail = RequestDetail(**read.model_dump())

    # Approvers see the requester's recent history next to the request
    if current_user.id != owner.id:
        history = await request_service.get_requester_history(session, request)
        detail.requester_history = await request_service.build_request_reads(session, history)

    detail.comments = await request_service.list_comments(session, request, current_user)
    return detail


# ===================================================================
# OWNER: EDIT / CANCEL
# ===================================================================
@router.patch("/{request_id}/edit", response_model=TransitionResponse)
async def edit_request(
    request_id: str,
    data: RequestUpdate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
):
    request, owner, result = await request_service.edit(
        session, request_id, current_user, clock.now(), data.model_dump(exclude_unset=True)
    )
    schedule_transition_effects(background_tasks, request, owner, current_user, result)
    return await _transition_response(session, request, "Request updated successfully")


@router.post("/{request_id}/cancel", response_model=TransitionResponse)
async def cancel_request(
    request_id: str,
    data: CancelPayload,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
):
    request, owner, result = await request_service.cancel(
        session, request_id, current_user, clock.now(), data.cancellation_reason
    )
    schedule_transition_effects(background_tasks, request, owner, current_user, result)
    return await _transition_response(session, request, "Request cancelled successfully")


# ===================================================================
# DECISIONS (HOD / DEAN / delegated faculty)
# ===================================================================
@router.api_route("/{request_id}/approve", methods=["POST", "PATCH"], response_model=TransitionResponse)
async def approve_request(
    request_id: str,
    background_tasks: BackgroundTasks,
    data: Optional[ApprovePayload] = None,
    current_user: User = Depends(require_decider),
    session: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
):
    data = data or ApprovePayload()
    request, owner, result = await request_service.approve(
        session,
        request_id,
        current_user,
        clock.now(),
        qr_service.encode,
        hod_comments=data.hod_comments,
        prefix=settings.EXIT_PASS_PREFIX,
    )
    schedule_transition_effects(background_tasks, request, owner, current_user, result)
    return await _transition_response(session, request, "Request approved successfully")


@router.api_route("/{request_id}/reject", methods=["POST", "PATCH"], response_model=TransitionResponse)
async def reject_request(
    request_id: str,
    data: RejectPayload,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_decider),
    session: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
):
    request, owner, result = await request_service.reject(
        session,
        request_id,
        current_user,
        clock.now(),
        data.rejection_reason,
        hod_comments=data.hod_comments,
    )
    schedule_transition_effects(background_tasks, request, owner, current_user, result)
    return await _transition_response(session, request, "Request rejected")


@router.api_route(
    "/{request_id}/request-more-info", methods=["POST", "PATCH"], response_model=TransitionResponse
)
async def request_more_info(
    request_id: str,
    data: MoreInfoPayload,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_more_info_roles),
    session: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
):
    request, owner, result = await request_service.request_more_info(
        session, request_id, current_user, clock.now(), data.hod_comments
    )
    schedule_transition_effects(background_tasks, request, owner, current_user, result)
    return await _transition_response(session, request, "More information requested")


# ===================================================================
# COMMENTS
# ===================================================================
@router.post("/{request_id}/comments", response_model=CommentRead, status_code=status.HTTP_201_CREATED)
async def add_comment(
    request_id: str,
    data: CommentCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
):
    comment, request = await request_service.add_comment(
        session, request_id, current_user, data.content, data.is_internal, clock.now()
    )
    schedule_audit(
        background_tasks,
        AuditAction.COMMENT_ADDED,
        current_user,
        target_id=request.id,
        details={"comment_id": str(comment.id), "is_internal": comment.is_internal},
    )

    read = CommentRead.model_validate(comment)
    read.author_name = current_user.full_name
    return read
