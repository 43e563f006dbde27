from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from hod_approval.models.enums import (
    ActingCapacity,
    LeaveType,
    RequestStatus,
    UrgencyLevel,
    UserRole,
)


# -------------------------------------------------------------------
# PARTIES
# -------------------------------------------------------------------
class UserSummary(BaseModel):
    id: UUID
    full_name: str
    email: str
    employee_id: str
    department: str
    role: UserRole

    class Config:
        from_attributes = True


# -------------------------------------------------------------------
# CREATE / EDIT
# -------------------------------------------------------------------
class RequestCreate(BaseModel):
    leave_type: LeaveType = LeaveType.PARTIAL
    departure_date: date
    departure_time: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}$")
    expected_return_time: Optional[str] = None
    reason: str
    destination: Optional[str] = None
    urgency_level: UrgencyLevel = UrgencyLevel.MEDIUM
    current_workload: Optional[str] = None
    coverage_arrangement: Optional[str] = None

    # file metadata only: {filename, original_name, path, mimetype, size, uploaded_at}
    attachments: List[Dict[str, Any]] = []

    class Config:
        json_schema_extra = {
            "examples": [
                {
                    "leave_type": "PARTIAL",
                    "departure_date": "2026-11-03",
                    "departure_time": "14:30",
                    "reason": "Medical appointment at the city hospital",
                    "urgency_level": "HIGH"
                }
            ]
        }


class RequestUpdate(BaseModel):
    leave_type: Optional[LeaveType] = None
    departure_date: Optional[date] = None
    departure_time: Optional[str] = Field(None, pattern=r"^\d{2}:\d{2}$")
    expected_return_time: Optional[str] = None
    reason: Optional[str] = None
    destination: Optional[str] = None
    urgency_level: Optional[UrgencyLevel] = None
    current_workload: Optional[str] = None
    coverage_arrangement: Optional[str] = None
    attachments: Optional[List[Dict[str, Any]]] = None


# -------------------------------------------------------------------
# TRANSITION PAYLOADS
# -------------------------------------------------------------------
class ApprovePayload(BaseModel):
    hod_comments: Optional[str] = None


class RejectPayload(BaseModel):
    rejection_reason: Optional[str] = None
    hod_comments: Optional[str] = None


class MoreInfoPayload(BaseModel):
    hod_comments: Optional[str] = None


class CancelPayload(BaseModel):
    cancellation_reason: Optional[str] = None


# -------------------------------------------------------------------
# READ
# -------------------------------------------------------------------
class RequestRead(BaseModel):
    id: UUID
    faculty_id: UUID
    leave_type: LeaveType
    departure_date: date
    departure_time: Optional[str] = None
    expected_return_time: Optional[str] = None
    reason: str
    destination: Optional[str] = None
    urgency_level: UrgencyLevel
    current_workload: Optional[str] = None
    coverage_arrangement: Optional[str] = None
    attachments: List[Dict[str, Any]] = []

    status: RequestStatus
    approved_by: Optional[UUID] = None
    approved_by_role: Optional[ActingCapacity] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    hod_comments: Optional[str] = None
    cancelled_by_self: bool = False
    exit_pass_number: Optional[str] = None
    qr_code: Optional[str] = None

    version: int
    submitted_at: datetime
    updated_at: datetime

    faculty: Optional[UserSummary] = None
    approver: Optional[UserSummary] = None

    class Config:
        from_attributes = True


class CommentCreate(BaseModel):
    content: str = Field(min_length=1)
    is_internal: bool = False


class CommentRead(BaseModel):
    id: UUID
    request_id: UUID
    user_id: UUID
    author_name: Optional[str] = None
    content: str
    is_internal: bool
    created_at: datetime

    class Config:
        from_attributes = True


class RequestDetail(RequestRead):
    # owner's most recent other requests, shown to approvers only
    requester_history: List[RequestRead] = []
    comments: List[CommentRead] = []


class TransitionResponse(BaseModel):
    message: str
    request: RequestRead
