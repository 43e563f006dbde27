# hod_approval/api/endpoints/delegation.py

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from hod_approval.api.deps import get_clock, get_db_session
from hod_approval.core.clock import Clock
from hod_approval.core.rbac import require_hod
from hod_approval.models.enums import AuditAction
from hod_approval.models.user import User
from hod_approval.schemas.delegation import (
    DelegateRequest,
    DelegationRead,
    DelegationResponse,
    ExtendRequest,
)
from hod_approval.schemas.request import UserSummary
from hod_approval.services import delegation_service
from hod_approval.services.notification_service import schedule_audit

router = APIRouter(prefix="/api/hod", tags=["Delegation (HOD)"])


# -------------------------------------------------------------------
# Faculty that can receive a grant right now
# -------------------------------------------------------------------
@router.get("/department-faculty", response_model=List[UserSummary])
async def department_faculty(
    current_user: User = Depends(require_hod),
    session: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
):
    return await delegation_service.list_eligible_faculty(session, current_user, clock.now())


# -------------------------------------------------------------------
# Grants handed out by this HOD (active and lapsed)
# -------------------------------------------------------------------
@router.get("/delegations", response_model=List[DelegationRead])
async def my_delegations(
    current_user: User = Depends(require_hod),
    session: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
):
    now = clock.now()
    faculty = await delegation_service.list_my_delegations(session, current_user)
    return [delegation_service.to_delegation_read(f, now) for f in faculty]


# -------------------------------------------------------------------
# GRANT
# -------------------------------------------------------------------
@router.post("/delegate", response_model=DelegationResponse)
async def delegate(
    data: DelegateRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_hod),
    session: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
):
    now = clock.now()
    faculty, details = await delegation_service.grant(
        session, current_user, data.faculty_id, data.start_date, data.end_date, data.permissions, now
    )
    schedule_audit(background_tasks, AuditAction.DELEGATION_GRANTED, current_user, faculty.id, details)

    return DelegationResponse(
        message=f"Approval rights delegated to {faculty.full_name}",
        delegation=delegation_service.to_delegation_read(faculty, now),
    )


# -------------------------------------------------------------------
# REVOKE
# -------------------------------------------------------------------
@router.delete("/delegations/{faculty_id}", response_model=DelegationResponse)
async def revoke(
    faculty_id: str,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_hod),
    session: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
):
    faculty, details = await delegation_service.revoke(session, current_user, faculty_id, clock.now())
    schedule_audit(background_tasks, AuditAction.DELEGATION_REVOKED, current_user, faculty.id, details)

    return DelegationResponse(message=f"Delegated rights revoked from {faculty.full_name}")


# -------------------------------------------------------------------
# EXTEND
# -------------------------------------------------------------------
@router.patch("/extend/{faculty_id}", response_model=DelegationResponse)
async def extend(
    faculty_id: str,
    data: ExtendRequest,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_hod),
    session: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
):
    now = clock.now()
    faculty, details = await delegation_service.extend(session, current_user, faculty_id, data.new_end_date, now)
    schedule_audit(background_tasks, AuditAction.DELEGATION_EXTENDED, current_user, faculty.id, details)

    return DelegationResponse(
        message=f"Delegation extended for {faculty.full_name}",
        delegation=delegation_service.to_delegation_read(faculty, now),
    )
