# hod_approval/models/departure_request.py

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, JSON, String, Text, Uuid
from sqlalchemy import Enum as SAEnum
from datetime import date, datetime
import uuid
from typing import Any, Dict, List, Optional

from hod_approval.models.enums import ActingCapacity, LeaveType, RequestStatus, UrgencyLevel
from hod_approval.models.user import utcnow


class EarlyDepartureRequest(SQLModel, table=True):
    __tablename__ = "departure_requests"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        sa_column=Column(Uuid, primary_key=True)
    )

    # Owner; FACULTY or HOD account
    faculty_id: uuid.UUID = Field(
        sa_column=Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    )

    leave_type: LeaveType = Field(
        default=LeaveType.PARTIAL,
        sa_column=Column(SAEnum(LeaveType, name="leave_type"), nullable=False)
    )
    departure_date: date = Field(sa_column=Column(Date, nullable=False, index=True))
    departure_time: Optional[str] = Field(default=None)  # "HH:MM", PARTIAL only
    expected_return_time: Optional[str] = Field(default=None)

    reason: str = Field(sa_column=Column(Text, nullable=False))
    destination: Optional[str] = Field(default=None)
    urgency_level: UrgencyLevel = Field(
        default=UrgencyLevel.MEDIUM,
        sa_column=Column(SAEnum(UrgencyLevel, name="urgency_level"), nullable=False)
    )
    current_workload: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    coverage_arrangement: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))

    # File metadata only: {filename, original_name, path, mimetype, size, uploaded_at}
    attachments: List[Dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False, default=list)
    )

    status: RequestStatus = Field(
        default=RequestStatus.PENDING,
        sa_column=Column(SAEnum(RequestStatus, name="request_status"), nullable=False, index=True)
    )

    # Decider (approver or rejecter) and the capacity they acted in
    approved_by: Optional[uuid.UUID] = Field(
        default=None,
        sa_column=Column(Uuid, ForeignKey("users.id"), nullable=True)
    )
    approved_by_role: Optional[ActingCapacity] = Field(
        default=None,
        sa_column=Column(SAEnum(ActingCapacity, name="acting_capacity"), nullable=True)
    )
    approved_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    rejected_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    rejection_reason: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    hod_comments: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))

    # REJECTED reached through the owner's cancel, not an approver's reject
    cancelled_by_self: bool = Field(
        default=False,
        sa_column=Column(Boolean, nullable=False, default=False)
    )

    exit_pass_number: Optional[str] = Field(
        default=None,
        sa_column=Column(String, nullable=True, unique=True)
    )
    qr_code: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))

    # Optimistic concurrency counter, bumped by every write
    version: int = Field(
        default=1,
        sa_column=Column(Integer, nullable=False, default=1)
    )

    submitted_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
