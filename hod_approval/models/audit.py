#hod_approval/models/audit.py

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime, JSON, Uuid
from typing import Optional, Dict, Any
from uuid import UUID, uuid4
from datetime import datetime

from hod_approval.models.user import utcnow

class AuditLog(SQLModel, table=True):
    __tablename__ = "audit_logs"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    # Request id for lifecycle actions, faculty id for delegation actions
    target_id: Optional[UUID] = Field(default=None, sa_column=Column(Uuid, nullable=True, index=True))
    actor_id: Optional[UUID] = Field(default=None, sa_column=Column(Uuid, nullable=True, index=True))
    actor_role: Optional[str] = None

    # Snapshot, survives account deletion
    actor_name: Optional[str] = None

    action: str = Field(index=True)

    # e.g. {"exit_pass_number": "...", "approved_by_role": "HOD"}
    details: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))

    timestamp: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
