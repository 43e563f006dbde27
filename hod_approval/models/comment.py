# hod_approval/models/comment.py

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import Boolean, DateTime, ForeignKey, Text, Uuid
from datetime import datetime
import uuid

from hod_approval.models.user import utcnow


class RequestComment(SQLModel, table=True):
    __tablename__ = "request_comments"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        sa_column=Column(Uuid, primary_key=True)
    )

    request_id: uuid.UUID = Field(
        sa_column=Column(Uuid, ForeignKey("departure_requests.id"), nullable=False, index=True)
    )
    user_id: uuid.UUID = Field(
        sa_column=Column(Uuid, ForeignKey("users.id"), nullable=False)
    )

    content: str = Field(sa_column=Column(Text, nullable=False))

    # Internal comments are hidden from the requester
    is_internal: bool = Field(
        default=False,
        sa_column=Column(Boolean, nullable=False, default=False)
    )

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
