# hod_approval/services/delegation_service.py

from datetime import datetime
from typing import Any, Dict, Iterable, List, Tuple

from loguru import logger
from sqlmodel import select
from sqlalchemy.ext.asyncio import AsyncSession

from hod_approval.core.errors import NotFoundError
from hod_approval.domain import delegation
from hod_approval.models.user import User, UserRole
from hod_approval.schemas.delegation import DelegationRead
from hod_approval.schemas.request import UserSummary
from hod_approval.services.auth_service import get_user_by_id


def to_delegation_read(faculty: User, now: datetime) -> DelegationRead:
    return DelegationRead(
        faculty=UserSummary.model_validate(faculty),
        delegation_start_date=faculty.delegation_start_date,
        delegation_end_date=faculty.delegation_end_date,
        delegation_permissions=list(faculty.delegation_permissions or []),
        is_active=delegation.is_active(faculty, now),
    )


async def _get_faculty(session: AsyncSession, faculty_id) -> User:
    faculty = await get_user_by_id(session, faculty_id)
    if not faculty:
        raise NotFoundError("Faculty not found", "FACULTY_NOT_FOUND")
    return faculty


# ============================================================================
# QUERIES
# ============================================================================
async def list_eligible_faculty(session: AsyncSession, hod: User, now: datetime) -> List[User]:
    """Active faculty of the HOD's department without a grant in force at `now`."""
    result = await session.execute(
        select(User)
        .where(
            User.role == UserRole.FACULTY,
            User.department == hod.department,
            User.is_active == True,  # noqa: E712
        )
        .order_by(User.first_name, User.last_name)
    )
    return [f for f in result.scalars().all() if delegation.is_eligible(f, now)]


async def list_my_delegations(session: AsyncSession, hod: User) -> List[User]:
    """Every grant record this HOD handed out, lapsed ones included."""
    result = await session.execute(
        select(User)
        .where(
            User.delegated_by == hod.id,
            User.delegation_end_date.is_not(None),
        )
        .order_by(User.delegation_end_date.desc())
    )
    return result.scalars().all()


# ============================================================================
# COMMANDS
# ============================================================================
async def grant(
    session: AsyncSession,
    hod: User,
    faculty_id,
    start: datetime,
    end: datetime,
    permissions: Iterable,
    now: datetime,
) -> Tuple[User, Dict[str, Any]]:
    faculty = await _get_faculty(session, faculty_id)

    granted = delegation.grant_delegation(hod, faculty, start, end, permissions, now)
    faculty.updated_at = now
    session.add(faculty)
    await session.commit()
    await session.refresh(faculty)

    logger.info(
        f"Delegation granted: {hod.email} -> {faculty.email} "
        f"[{granted.start.isoformat()} .. {granted.end.isoformat()}] {sorted(granted.permissions)}"
    )
    details = {
        "faculty_name": faculty.full_name,
        "start_date": granted.start.isoformat(),
        "end_date": granted.end.isoformat(),
        "permissions": list(faculty.delegation_permissions),
    }
    return faculty, details


async def revoke(
    session: AsyncSession, hod: User, faculty_id, now: datetime
) -> Tuple[User, Dict[str, Any]]:
    faculty = await _get_faculty(session, faculty_id)

    previous = delegation.revoke_delegation(hod, faculty)
    faculty.updated_at = now
    session.add(faculty)
    await session.commit()
    await session.refresh(faculty)

    logger.info(f"Delegation revoked: {hod.email} -> {faculty.email}")
    details = {"faculty_name": faculty.full_name}
    if previous is not None:
        details["previous_end_date"] = previous.end.isoformat()
        details["permissions"] = sorted(previous.permissions)
    return faculty, details


async def extend(
    session: AsyncSession,
    hod: User,
    faculty_id,
    new_end: datetime,
    now: datetime,
) -> Tuple[User, Dict[str, Any]]:
    faculty = await _get_faculty(session, faculty_id)

    previous_end = delegation.extend_delegation(hod, faculty, new_end)
    faculty.updated_at = now
    session.add(faculty)
    await session.commit()
    await session.refresh(faculty)

    logger.info(f"Delegation extended: {hod.email} -> {faculty.email} until {new_end.isoformat()}")
    details = {
        "faculty_name": faculty.full_name,
        "previous_end_date": previous_end.isoformat(),
        "new_end_date": faculty.delegation_end_date.isoformat(),
    }
    return faculty, details
