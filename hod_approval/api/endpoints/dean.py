# hod_approval/api/endpoints/dean.py

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from hod_approval.api.deps import get_db_session
from hod_approval.core.rbac import require_dean
from hod_approval.models.enums import RequestStatus
from hod_approval.models.user import User
from hod_approval.schemas.request import RequestRead, UserSummary
from hod_approval.services import request_service

router = APIRouter(prefix="/api/dean", tags=["Dean"])


@router.get("/hod-requests", response_model=List[RequestRead])
async def hod_requests(
    status_filter: Optional[RequestStatus] = Query(None, alias="status"),
    _: User = Depends(require_dean),
    session: AsyncSession = Depends(get_db_session),
):
    requests = await request_service.list_hod_requests(session, status_filter)
    return await request_service.build_request_reads(session, requests)


@router.get("/hods", response_model=List[UserSummary])
async def hods(
    _: User = Depends(require_dean),
    session: AsyncSession = Depends(get_db_session),
):
    return await request_service.list_hods(session)
