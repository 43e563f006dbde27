# hod_approval/api/endpoints/users.py

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from hod_approval.api.deps import get_clock, get_db_session
from hod_approval.core.clock import Clock
from hod_approval.core.constants import CREATABLE_ROLES
from hod_approval.core.errors import ValidationError
from hod_approval.core.rbac import require_admin
from hod_approval.models.user import User, UserRole
from hod_approval.schemas.user import UserCreate, UserRead, UserStatusResponse, UserUpdate
from hod_approval.services.auth_service import (
    build_user_read,
    create_user,
    delete_user_by_id,
    get_user_or_404,
    list_users,
    toggle_user_status,
    update_user,
)

router = APIRouter(prefix="/api/admin/users", tags=["Users (Admin)"])


# -------------------------------------------------------------------
# Create FACULTY / HOD / DEAN (Admin only)
# -------------------------------------------------------------------
@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def create_new_user(
    data: UserCreate,
    session: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
    _: User = Depends(require_admin),
):
    if data.role not in CREATABLE_ROLES:
        allowed = [r.value for r in CREATABLE_ROLES]
        raise ValidationError(f"Invalid role '{data.role.value}'. Allowed roles: {allowed}", "INVALID_ROLE")

    user = await create_user(
        session,
        first_name=data.first_name,
        last_name=data.last_name,
        email=data.email,
        password=data.password,
        role=data.role,
        department=data.department,
        employee_id=data.employee_id,
        phone_number=data.phone_number,
    )
    return build_user_read(user, clock.now())


# -------------------------------------------------------------------
# List users (Admin only)
# -------------------------------------------------------------------
@router.get("", response_model=List[UserRead])
async def get_users(
    role: Optional[UserRole] = Query(None),
    session: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
    _: User = Depends(require_admin),
):
    now = clock.now()
    return [build_user_read(u, now) for u in await list_users(session, role)]


# -------------------------------------------------------------------
# Single user (Admin only)
# -------------------------------------------------------------------
@router.get("/{user_id}", response_model=UserRead)
async def get_user(
    user_id: str,
    session: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
    _: User = Depends(require_admin),
):
    user = await get_user_or_404(session, user_id)
    return build_user_read(user, clock.now())


# -------------------------------------------------------------------
# Change role / department / active flag (Admin only)
# -------------------------------------------------------------------
@router.patch("/{user_id}", response_model=UserStatusResponse)
async def update_user_details(
    user_id: str,
    data: UserUpdate,
    session: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
    _: User = Depends(require_admin),
):
    now = clock.now()
    user = await update_user(
        session,
        user_id,
        now,
        is_active=data.is_active,
        role=data.role,
        department=data.department,
    )
    return UserStatusResponse(message="User updated successfully", user=build_user_read(user, now))


# -------------------------------------------------------------------
# Activate / deactivate (Admin only)
# -------------------------------------------------------------------
@router.patch("/{user_id}/toggle-status", response_model=UserStatusResponse)
async def toggle_status(
    user_id: str,
    session: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
    _: User = Depends(require_admin),
):
    now = clock.now()
    user = await toggle_user_status(session, user_id, now)
    return UserStatusResponse(
        message=f"User {'activated' if user.is_active else 'deactivated'}",
        user=build_user_read(user, now),
    )


# -------------------------------------------------------------------
# Delete a user (Admin only; admin accounts are protected)
# -------------------------------------------------------------------
@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(require_admin),
):
    user = await delete_user_by_id(session, user_id)
    return {"message": f"{user.role.value} deleted successfully"}
