# hod_approval/models/user.py

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import Boolean, DateTime, ForeignKey, JSON, String, Uuid
from sqlalchemy import Enum as SAEnum
from datetime import datetime, timezone
import uuid
from typing import List, Optional

from hod_approval.models.enums import UserRole


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        sa_column=Column(Uuid, primary_key=True)
    )

    email: str = Field(sa_column=Column(String, nullable=False, unique=True, index=True))
    password_hash: str = Field(nullable=False)
    first_name: str = Field(nullable=False)
    last_name: str = Field(nullable=False)
    employee_id: str = Field(sa_column=Column(String, nullable=False, unique=True))

    # Departments are free-text names ("CS", "Mechanical"...), matched exactly
    department: str = Field(sa_column=Column(String, nullable=False, index=True))

    role: UserRole = Field(
        default=UserRole.FACULTY,
        sa_column=Column(SAEnum(UserRole, name="user_role"), nullable=False)
    )

    phone_number: Optional[str] = Field(default=None)

    is_active: bool = Field(
        default=True,
        sa_column=Column(Boolean, nullable=False, default=True)
    )

    # --- Delegation (FACULTY accounts only; all set or all cleared) ---
    delegated_by: Optional[uuid.UUID] = Field(
        default=None,
        sa_column=Column(Uuid, ForeignKey("users.id"), nullable=True, index=True)
    )
    delegation_start_date: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    delegation_end_date: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True, index=True)
    )
    delegation_permissions: List[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False, default=list)
    )

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
