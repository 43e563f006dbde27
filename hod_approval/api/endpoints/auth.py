# hod_approval/api/endpoints/auth.py

from fastapi import APIRouter, Depends, HTTPException, status
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from hod_approval.api.deps import get_clock, get_current_user, get_db_session
from hod_approval.core.clock import Clock
from hod_approval.core.errors import AuthorizationError
from hod_approval.models.user import User
from hod_approval.schemas.auth import LoginRequest, TokenWithUser
from hod_approval.schemas.user import UserRead
from hod_approval.services.auth_service import (
    authenticate_user,
    build_user_read,
    create_login_response,
)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


# -------------------------------------------------------------------
# LOGIN (every role)
# -------------------------------------------------------------------
@router.post("/login", response_model=TokenWithUser)
async def login(
    payload: LoginRequest,
    session: AsyncSession = Depends(get_db_session),
    clock: Clock = Depends(get_clock),
):
    user = await authenticate_user(session, payload.email, payload.password)

    if not user:
        logger.warning(f"Failed login for {payload.email}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    if not user.is_active:
        raise AuthorizationError("Account is inactive", "ACCOUNT_INACTIVE")

    return create_login_response(user, clock.now())


# -------------------------------------------------------------------
# CURRENT PROFILE
# -------------------------------------------------------------------
@router.get("/me", response_model=UserRead)
async def me(
    current_user: User = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
):
    return build_user_read(current_user, clock.now())
