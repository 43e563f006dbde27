# hod_approval/services/request_service.py
"""
Persistence side of the request lifecycle.

Transitions run against a detached copy of the row: the domain function mutates
it, then `save_transition` writes every column back with

    UPDATE departure_requests SET ... , version = :v + 1
    WHERE id = :id AND version = :v

so the loser of two racing writes updates zero rows and gets a ConflictError.
"""

from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from loguru import logger
from sqlmodel import select
from sqlalchemy import and_, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from hod_approval.core.constants import REQUESTER_HISTORY_LIMIT
from hod_approval.core.errors import ConflictError, NotFoundError, ValidationError
from hod_approval.domain import delegation, lifecycle
from hod_approval.domain.authorization import Action, ensure_can_perform
from hod_approval.models.comment import RequestComment
from hod_approval.models.departure_request import EarlyDepartureRequest
from hod_approval.models.enums import RequestStatus, UserRole
from hod_approval.models.user import User
from hod_approval.schemas.request import CommentRead, RequestRead, UserSummary
from hod_approval.services.auth_service import _as_uuid, get_active_dean, get_active_hod, get_user_by_id

# Columns a transition may write; identity and ownership never change
_FROZEN_COLUMNS = {"id", "faculty_id", "submitted_at", "version"}
WRITABLE_COLUMNS = tuple(
    c.key for c in EarlyDepartureRequest.__table__.columns if c.key not in _FROZEN_COLUMNS
)

Step = Callable[[EarlyDepartureRequest, User], lifecycle.TransitionResult]


# ============================================================================
# FETCH
# ============================================================================
async def get_request_or_404(session: AsyncSession, request_id) -> EarlyDepartureRequest:
    request_uuid = _as_uuid(request_id)
    request = None
    if request_uuid is not None:
        result = await session.execute(
            select(EarlyDepartureRequest).where(EarlyDepartureRequest.id == request_uuid)
        )
        request = result.scalar_one_or_none()
    if not request:
        raise NotFoundError("Request not found", "REQUEST_NOT_FOUND")
    return request


async def get_owner(session: AsyncSession, request: EarlyDepartureRequest) -> User:
    owner = await get_user_by_id(session, request.faculty_id)
    if not owner:
        raise NotFoundError("Request owner not found", "USER_NOT_FOUND")
    return owner


async def _users_by_id(session: AsyncSession, ids: Iterable) -> Dict[Any, User]:
    ids = {i for i in ids if i is not None}
    if not ids:
        return {}
    result = await session.execute(select(User).where(User.id.in_(ids)))
    return {u.id: u for u in result.scalars().all()}


async def _has_request_on(session: AsyncSession, owner_id, departure_date, exclude_id=None) -> bool:
    query = select(EarlyDepartureRequest.id).where(
        EarlyDepartureRequest.faculty_id == owner_id,
        EarlyDepartureRequest.departure_date == departure_date,
    )
    if exclude_id is not None:
        query = query.where(EarlyDepartureRequest.id != exclude_id)
    result = await session.execute(query)
    return result.first() is not None


# ============================================================================
# SERIALIZATION
# ============================================================================
def to_request_read(request: EarlyDepartureRequest, users: Mapping[Any, User]) -> RequestRead:
    read = RequestRead.model_validate(request)
    faculty = users.get(request.faculty_id)
    approver = users.get(request.approved_by)
    if faculty is not None:
        read.faculty = UserSummary.model_validate(faculty)
    if approver is not None:
        read.approver = UserSummary.model_validate(approver)
    return read


async def build_request_read(session: AsyncSession, request: EarlyDepartureRequest) -> RequestRead:
    users = await _users_by_id(session, [request.faculty_id, request.approved_by])
    return to_request_read(request, users)


async def build_request_reads(
    session: AsyncSession, requests: List[EarlyDepartureRequest]
) -> List[RequestRead]:
    ids = [r.faculty_id for r in requests] + [r.approved_by for r in requests]
    users = await _users_by_id(session, ids)
    return [to_request_read(r, users) for r in requests]


# ============================================================================
# CREATE
# ============================================================================
async def create_request(
    session: AsyncSession,
    owner: User,
    data: Mapping[str, Any],
    now: datetime,
) -> EarlyDepartureRequest:
    request = lifecycle.submit(owner, data, now)

    # one request per owner per calendar day, whatever its status
    if await _has_request_on(session, owner.id, request.departure_date):
        raise ConflictError(
            f"You already have a request for {request.departure_date.isoformat()}",
            "DUPLICATE_DATE",
        )

    session.add(request)
    await session.commit()
    await session.refresh(request)

    logger.info(f"Request {request.id} submitted by {owner.email} for {request.departure_date}")
    return request


async def find_routed_approver(session: AsyncSession, owner: User) -> Optional[User]:
    """HOD requests route to the Dean; everything else to the department HOD."""
    if owner.role == UserRole.HOD:
        return await get_active_dean(session)
    return await get_active_hod(session, owner.department)


# ============================================================================
# LIST / DETAIL
# ============================================================================
async def list_requests(
    session: AsyncSession,
    viewer: User,
    now: datetime,
    status: Optional[RequestStatus] = None,
) -> List[EarlyDepartureRequest]:
    """
    Requests visible to `viewer`, newest first. Mirrors the VIEW rules of the
    authorization evaluator: other people's HOD-owned requests reach the Dean
    and admins only.
    """
    query = (
        select(EarlyDepartureRequest)
        .join(User, User.id == EarlyDepartureRequest.faculty_id)
        .order_by(EarlyDepartureRequest.submitted_at.desc())
    )

    own = EarlyDepartureRequest.faculty_id == viewer.id
    department_faculty = and_(User.department == viewer.department, User.role == UserRole.FACULTY)

    if viewer.role == UserRole.ADMIN:
        pass
    elif viewer.role == UserRole.DEAN:
        query = query.where(User.role == UserRole.HOD)
    elif viewer.role == UserRole.HOD:
        query = query.where(or_(own, department_faculty))
    elif delegation.is_active(viewer, now):
        query = query.where(or_(own, department_faculty))
    else:
        query = query.where(own)

    if status:
        query = query.where(EarlyDepartureRequest.status == status)

    result = await session.execute(query)
    return result.scalars().all()


async def get_visible_request(
    session: AsyncSession, request_id, viewer: User, now: datetime
) -> Tuple[EarlyDepartureRequest, User]:
    request = await get_request_or_404(session, request_id)
    owner = await get_owner(session, request)
    ensure_can_perform(viewer, Action.VIEW, request, owner, now)
    return request, owner


async def get_requester_history(
    session: AsyncSession, request: EarlyDepartureRequest
) -> List[EarlyDepartureRequest]:
    result = await session.execute(
        select(EarlyDepartureRequest)
        .where(
            EarlyDepartureRequest.faculty_id == request.faculty_id,
            EarlyDepartureRequest.id != request.id,
        )
        .order_by(EarlyDepartureRequest.submitted_at.desc())
        .limit(REQUESTER_HISTORY_LIMIT)
    )
    return result.scalars().all()


async def list_hod_requests(
    session: AsyncSession, status: Optional[RequestStatus] = None
) -> List[EarlyDepartureRequest]:
    query = (
        select(EarlyDepartureRequest)
        .join(User, User.id == EarlyDepartureRequest.faculty_id)
        .where(User.role == UserRole.HOD)
        .order_by(EarlyDepartureRequest.submitted_at.desc())
    )
    if status:
        query = query.where(EarlyDepartureRequest.status == status)
    result = await session.execute(query)
    return result.scalars().all()


async def list_hods(session: AsyncSession) -> List[User]:
    result = await session.execute(
        select(User).where(User.role == UserRole.HOD).order_by(User.department)
    )
    return result.scalars().all()


# ============================================================================
# TRANSITIONS
# ============================================================================
async def save_transition(
    session: AsyncSession,
    request: EarlyDepartureRequest,
    read_version: int,
) -> None:
    values = {name: getattr(request, name) for name in WRITABLE_COLUMNS}
    values["version"] = read_version + 1

    stmt = (
        update(EarlyDepartureRequest)
        .where(
            EarlyDepartureRequest.id == request.id,
            EarlyDepartureRequest.version == read_version,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )

    try:
        result = await session.execute(stmt)
        if result.rowcount == 0:
            await session.rollback()
            logger.warning(f"Request {request.id}: stale write at version {read_version}")
            raise ConflictError("Request was modified concurrently", "CONCURRENT_MODIFICATION")
        await session.commit()
    except IntegrityError:
        await session.rollback()
        logger.warning(f"Request {request.id}: exit pass number collision")
        raise ConflictError("Exit pass number collision, please retry", "DUPLICATE_EXIT_PASS")

    request.version = read_version + 1


async def run_transition(
    session: AsyncSession,
    request_id,
    step: Step,
) -> Tuple[EarlyDepartureRequest, User, lifecycle.TransitionResult]:
    request = await get_request_or_404(session, request_id)
    owner = await get_owner(session, request)
    read_version = request.version

    # mutations stay off the unit of work; only save_transition writes
    session.expunge(request)

    result = step(request, owner)
    await save_transition(session, request, read_version)

    logger.info(
        f"Request {request.id}: {result.from_status.value} -> {result.to_status.value} "
        f"({result.action.value})"
    )
    return request, owner, result


async def approve(session, request_id, actor: User, now: datetime, encode, hod_comments=None, prefix="EP"):
    return await run_transition(
        session,
        request_id,
        lambda request, owner: lifecycle.approve(
            request, actor, owner, now, encode, hod_comments, exit_pass_prefix=prefix
        ),
    )


async def reject(session, request_id, actor: User, now: datetime, rejection_reason, hod_comments=None):
    return await run_transition(
        session,
        request_id,
        lambda request, owner: lifecycle.reject(
            request, actor, owner, now, rejection_reason, hod_comments
        ),
    )


async def request_more_info(session, request_id, actor: User, now: datetime, hod_comments):
    return await run_transition(
        session,
        request_id,
        lambda request, owner: lifecycle.request_more_info(request, actor, owner, now, hod_comments),
    )


async def cancel(session, request_id, actor: User, now: datetime, cancellation_reason):
    return await run_transition(
        session,
        request_id,
        lambda request, owner: lifecycle.cancel(request, actor, owner, now, cancellation_reason),
    )


async def edit(session, request_id, actor: User, now: datetime, changes: Mapping[str, Any]):
    request = await get_request_or_404(session, request_id)
    new_date = changes.get("departure_date")
    if (
        new_date is not None
        and new_date != request.departure_date
        and request.faculty_id == actor.id
        and await _has_request_on(session, request.faculty_id, new_date, exclude_id=request.id)
    ):
        raise ConflictError(
            f"You already have a request for {new_date.isoformat()}",
            "DUPLICATE_DATE",
        )

    return await run_transition(
        session,
        request_id,
        lambda request, owner: lifecycle.edit(request, actor, owner, now, changes),
    )


# ============================================================================
# COMMENTS
# ============================================================================
async def list_comments(
    session: AsyncSession, request: EarlyDepartureRequest, viewer: User
) -> List[CommentRead]:
    query = (
        select(RequestComment)
        .where(RequestComment.request_id == request.id)
        .order_by(RequestComment.created_at)
    )
    # internal notes are between approvers
    if viewer.id == request.faculty_id:
        query = query.where(RequestComment.is_internal == False)  # noqa: E712

    result = await session.execute(query)
    comments = result.scalars().all()
    authors = await _users_by_id(session, [c.user_id for c in comments])

    reads = []
    for comment in comments:
        read = CommentRead.model_validate(comment)
        author = authors.get(comment.user_id)
        read.author_name = author.full_name if author else None
        reads.append(read)
    return reads


async def add_comment(
    session: AsyncSession,
    request_id,
    author: User,
    content: str,
    is_internal: bool,
    now: datetime,
) -> Tuple[RequestComment, EarlyDepartureRequest]:
    request, _owner = await get_visible_request(session, request_id, author, now)

    text = (content or "").strip()
    if not text:
        raise ValidationError("Comment cannot be empty", "MISSING_FIELD")

    comment = RequestComment(
        request_id=request.id,
        user_id=author.id,
        content=text,
        is_internal=bool(is_internal) and author.id != request.faculty_id,
        created_at=now,
    )
    session.add(comment)
    await session.commit()
    await session.refresh(comment)
    return comment, request
