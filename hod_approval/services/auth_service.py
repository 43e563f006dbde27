# hod_approval/services/auth_service.py

from datetime import datetime, timedelta
from typing import Any, Optional
import uuid

from loguru import logger
from sqlmodel import select
from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from hod_approval.core.config import settings
from hod_approval.core.constants import CREATABLE_ROLES
from hod_approval.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from hod_approval.core.security import (
    hash_password,
    verify_password,
    create_access_token,
)
from hod_approval.domain import delegation
from hod_approval.models.comment import RequestComment
from hod_approval.models.departure_request import EarlyDepartureRequest
from hod_approval.models.user import User, UserRole
from hod_approval.schemas.auth import TokenWithUser
from hod_approval.schemas.user import UserRead


def _as_uuid(value: Any) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


# ============================================================================
# FETCH USER BY EMAIL
# ============================================================================
async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


# ============================================================================
# FETCH USER BY ID
# ============================================================================
async def get_user_by_id(session: AsyncSession, user_id) -> User | None:
    user_uuid = _as_uuid(user_id)
    if user_uuid is None:
        return None
    result = await session.execute(select(User).where(User.id == user_uuid))
    return result.scalar_one_or_none()


async def get_user_or_404(session: AsyncSession, user_id) -> User:
    user = await get_user_by_id(session, user_id)
    if not user:
        raise NotFoundError("User not found", "USER_NOT_FOUND")
    return user


# ============================================================================
# ROLE UNIQUENESS (one active HOD per department, one active DEAN)
# ============================================================================
async def get_active_hod(session: AsyncSession, department: str) -> User | None:
    result = await session.execute(
        select(User).where(
            User.role == UserRole.HOD,
            User.department == department,
            User.is_active == True,  # noqa: E712
        )
    )
    return result.scalars().first()


async def get_active_dean(session: AsyncSession) -> User | None:
    result = await session.execute(
        select(User).where(User.role == UserRole.DEAN, User.is_active == True)  # noqa: E712
    )
    return result.scalars().first()


async def ensure_role_slot_free(session: AsyncSession, role: UserRole, department: str, exclude_id=None):
    if role == UserRole.HOD:
        existing = await get_active_hod(session, department)
        if existing and existing.id != exclude_id:
            raise ConflictError(
                f"{department} already has an HOD assigned ({existing.full_name}). "
                "Each department can have only one HOD.",
                "HOD_EXISTS",
            )
    elif role == UserRole.DEAN:
        existing = await get_active_dean(session)
        if existing and existing.id != exclude_id:
            raise ConflictError(
                f"An active Dean already exists ({existing.full_name})",
                "DEAN_EXISTS",
            )


# ============================================================================
# CREATE USER
# ============================================================================
async def create_user(
    session: AsyncSession,
    first_name: str,
    last_name: str,
    email: str,
    password: str,
    role: UserRole,
    department: str,
    employee_id: str,
    phone_number: str | None = None,
) -> User:
    email = email.strip().lower()

    if await get_user_by_email(session, email):
        raise ConflictError("Email already exists", "EMAIL_TAKEN")

    dup = await session.execute(select(User).where(User.employee_id == employee_id))
    if dup.scalar_one_or_none():
        raise ConflictError("Employee ID already exists", "EMPLOYEE_ID_TAKEN")

    await ensure_role_slot_free(session, role, department)

    user = User(
        id=uuid.uuid4(),
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        email=email,
        password_hash=hash_password(password),
        role=role,
        department=department.strip(),
        employee_id=employee_id.strip(),
        phone_number=phone_number,
    )

    session.add(user)

    try:
        await session.commit()
        await session.refresh(user)
    except IntegrityError:
        await session.rollback()
        raise ConflictError("User with this email or employee ID already exists", "USER_EXISTS")

    logger.info(f"{role.value} account created: {email} ({user.department})")
    return user


# ============================================================================
# AUTHENTICATE
# ============================================================================
async def authenticate_user(session: AsyncSession, email: str, password: str) -> User | None:
    user = await get_user_by_email(session, email)
    if not user:
        return None

    if not verify_password(password, user.password_hash):
        return None

    return user


# ============================================================================
# CREATE LOGIN RESPONSE
# ============================================================================
def build_user_read(user: User, now: datetime) -> UserRead:
    user_read = UserRead.model_validate(user)
    user_read.delegation_active = delegation.is_active(user, now)
    return user_read


def create_login_response(user: User, now: datetime) -> TokenWithUser:
    expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    # role / department claims are informational; the account store stays authoritative
    token = create_access_token(
        subject=str(user.id),
        expires_delta=expires,
        data={
            "email": user.email,
            "role": user.role.value,
            "department": user.department,
        },
    )

    return TokenWithUser(
        access_token=token,
        expires_in=int(expires.total_seconds()),
        user=build_user_read(user, now),
    )


# ============================================================================
# LIST USERS
# ============================================================================
async def list_users(session: AsyncSession, role: UserRole | None = None) -> list[User]:
    query = select(User).order_by(User.created_at.desc())
    if role:
        query = query.where(User.role == role)
    result = await session.execute(query)
    return result.scalars().all()


# ============================================================================
# TOGGLE ACTIVE FLAG
# ============================================================================
async def toggle_user_status(session: AsyncSession, user_id, now: datetime) -> User:
    user = await get_user_or_404(session, user_id)

    if user.role == UserRole.ADMIN:
        raise AuthorizationError("Cannot change the status of admin accounts", "ADMIN_PROTECTED")

    # re-activation must not produce a second active HOD / DEAN
    if not user.is_active:
        await ensure_role_slot_free(session, user.role, user.department, exclude_id=user.id)

    user.is_active = not user.is_active
    user.updated_at = now
    session.add(user)
    await session.commit()
    await session.refresh(user)

    logger.info(f"User {user.email} {'activated' if user.is_active else 'deactivated'}")
    return user


# ============================================================================
# UPDATE ROLE / DEPARTMENT / ACTIVE FLAG
# ============================================================================
async def update_user(
    session: AsyncSession,
    user_id,
    now: datetime,
    is_active: bool | None = None,
    role: UserRole | None = None,
    department: str | None = None,
) -> User:
    user = await get_user_or_404(session, user_id)

    if user.role == UserRole.ADMIN:
        raise AuthorizationError("Cannot modify admin accounts", "ADMIN_PROTECTED")

    if role is not None and role not in CREATABLE_ROLES:
        allowed = [r.value for r in CREATABLE_ROLES]
        raise ValidationError(f"Invalid role '{role.value}'. Allowed roles: {allowed}", "INVALID_ROLE")

    new_role = role or user.role
    new_department = department.strip() if department and department.strip() else user.department
    new_active = user.is_active if is_active is None else is_active

    moved = new_role != user.role or new_department != user.department

    if new_active and (moved or not user.is_active):
        await ensure_role_slot_free(session, new_role, new_department, exclude_id=user.id)

    # a grant only makes sense for FACULTY inside the granting HOD's department
    if user.role == UserRole.FACULTY and moved and user.delegated_by is not None:
        delegation.clear_delegation(user)
        logger.info(f"Delegation cleared for {user.email}: account moved")

    if user.role == UserRole.HOD and moved:
        granted = await session.execute(select(User).where(User.delegated_by == user.id))
        for faculty in granted.scalars().all():
            delegation.revoke_delegation(user, faculty)
            faculty.updated_at = now
            session.add(faculty)
            logger.info(f"Delegation revoked from {faculty.email}: granting HOD {user.email} moved")

    user.role = new_role
    user.department = new_department
    user.is_active = new_active
    user.updated_at = now
    session.add(user)
    await session.commit()
    await session.refresh(user)

    logger.info(f"User {user.email} updated: {user.role.value}, {user.department}, active={user.is_active}")
    return user


# ============================================================================
# DELETE USER
# ============================================================================
async def delete_user_by_id(session: AsyncSession, user_id) -> User:
    user = await get_user_or_404(session, user_id)

    if user.role == UserRole.ADMIN:
        raise AuthorizationError("Cannot delete admin accounts", "ADMIN_PROTECTED")

    referenced = await session.execute(
        select(func.count()).select_from(EarlyDepartureRequest).where(
            or_(
                EarlyDepartureRequest.faculty_id == user.id,
                EarlyDepartureRequest.approved_by == user.id,
            )
        )
    )
    commented = await session.execute(
        select(func.count()).select_from(RequestComment).where(RequestComment.user_id == user.id)
    )
    if referenced.scalar_one() or commented.scalar_one():
        raise ConflictError(
            "User has departure request history; deactivate the account instead",
            "USER_HAS_HISTORY",
        )

    # grants this HOD handed out go with the account
    granted = await session.execute(select(User).where(User.delegated_by == user.id))
    for faculty in granted.scalars().all():
        delegation.revoke_delegation(user, faculty)
        session.add(faculty)
    await session.flush()

    await session.delete(user)
    await session.commit()

    logger.info(f"{user.role.value} account deleted: {user.email}")
    return user
