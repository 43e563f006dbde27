from datetime import datetime
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, EmailStr, Field
from hod_approval.models.user import UserRole


# ---------------------------------------------------------
# BASE
# ---------------------------------------------------------
class UserBase(BaseModel):
    first_name: str
    last_name: str
    email: EmailStr
    employee_id: str
    department: str
    phone_number: Optional[str] = None


# ---------------------------------------------------------
# CREATE USER (Admin creates FACULTY / HOD / DEAN)
# ---------------------------------------------------------
class UserCreate(UserBase):
    password: str = Field(min_length=6)
    role: UserRole

    class Config:
        json_schema_extra = {
            "examples": [
                {
                    "first_name": "Asha",
                    "last_name": "Rao",
                    "email": "asha.rao@college.edu",
                    "employee_id": "CS-014",
                    "department": "Computer Science",
                    "password": "password123",
                    "role": "FACULTY"
                }
            ]
        }


# ---------------------------------------------------------
# READ USER (response)
# ---------------------------------------------------------
class UserRead(UserBase):
    id: UUID
    full_name: str
    role: UserRole
    is_active: bool
    delegated_by: Optional[UUID] = None
    delegation_start_date: Optional[datetime] = None
    delegation_end_date: Optional[datetime] = None
    delegation_permissions: List[str] = []
    created_at: datetime

    # computed against the clock at response time, never stored
    delegation_active: bool = False

    class Config:
        from_attributes = True


# ---------------------------------------------------------
# UPDATE USER (Admin)
# ---------------------------------------------------------
class UserUpdate(BaseModel):
    is_active: Optional[bool] = None
    role: Optional[UserRole] = None
    department: Optional[str] = None


class UserStatusResponse(BaseModel):
    message: str
    user: UserRead
