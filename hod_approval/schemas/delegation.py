from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel

from hod_approval.models.enums import DelegationPermission
from hod_approval.schemas.request import UserSummary


class DelegateRequest(BaseModel):
    faculty_id: UUID
    start_date: datetime
    end_date: datetime
    permissions: List[DelegationPermission]

    class Config:
        json_schema_extra = {
            "examples": [
                {
                    "faculty_id": "5f0c3c52-8a57-4f5b-9a43-4e3c7f1b2d10",
                    "start_date": "2026-11-01T00:00:00Z",
                    "end_date": "2026-11-08T00:00:00Z",
                    "permissions": ["approve_requests", "reject_requests"]
                }
            ]
        }


class ExtendRequest(BaseModel):
    new_end_date: datetime


class DelegationRead(BaseModel):
    faculty: UserSummary
    delegation_start_date: Optional[datetime] = None
    delegation_end_date: Optional[datetime] = None
    delegation_permissions: List[str] = []
    is_active: bool


class DelegationResponse(BaseModel):
    message: str
    delegation: Optional[DelegationRead] = None
