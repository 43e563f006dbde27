# hod_approval/domain/exit_pass.py

import json
import secrets
import string
from datetime import date, datetime
from typing import Any, Dict, Optional

from hod_approval.core.constants import (
    DISPLAY_DATE_FORMAT,
    DISPLAY_DATETIME_FORMAT,
    FULL_DAY_LABEL,
    NOT_AVAILABLE,
)
from hod_approval.models.departure_request import EarlyDepartureRequest
from hod_approval.models.enums import ActingCapacity, LeaveType
from hod_approval.models.user import User

_BASE36 = string.digits + string.ascii_uppercase

CAPACITY_LABELS = {
    ActingCapacity.HOD: "HOD",
    ActingCapacity.DEAN: "DEAN",
    ActingCapacity.DELEGATED_FACULTY: "Delegated Faculty",
}


def to_base36(number: int) -> str:
    if number < 0:
        raise ValueError("number must be non-negative")
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_exit_pass_number(now: datetime, prefix: str = "EP") -> str:
    """
    EP-<base36 epoch millis>-<6 hex chars>.
    The store keeps a UNIQUE constraint on the column as the final backstop.
    """
    millis = int(now.timestamp() * 1000)
    suffix = secrets.token_hex(3).upper()
    return f"{prefix}-{to_base36(millis)}-{suffix}"


# -------------------------------------------------------------------
# Display helpers (shared by the QR payload and the email bodies)
# -------------------------------------------------------------------
def format_display_date(value: Optional[date]) -> str:
    if value is None:
        return NOT_AVAILABLE
    return value.strftime(DISPLAY_DATE_FORMAT)


def format_display_datetime(value: Optional[datetime]) -> str:
    if value is None:
        return NOT_AVAILABLE
    return value.strftime(DISPLAY_DATETIME_FORMAT)


def time_display(request: EarlyDepartureRequest) -> str:
    if request.leave_type == LeaveType.FULL_DAY:
        return FULL_DAY_LABEL
    return request.departure_time or NOT_AVAILABLE


def build_qr_payload(
    request: EarlyDepartureRequest,
    owner: User,
    approver: User,
    capacity: ActingCapacity,
    exit_pass_number: str,
    approved_at: datetime,
) -> Dict[str, Any]:
    return {
        "exitPassNumber": exit_pass_number,
        "facultyName": owner.full_name,
        "employeeId": owner.employee_id,
        "department": owner.department,
        "role": _value(owner.role),
        "leaveType": _value(request.leave_type),
        "departureDate": format_display_date(request.departure_date),
        "departureTime": time_display(request),
        "expectedReturn": request.expected_return_time or NOT_AVAILABLE,
        "reason": request.reason,
        "destination": request.destination or NOT_AVAILABLE,
        "urgency": _value(request.urgency_level),
        "approvedBy": approver.full_name,
        "approvedByRole": CAPACITY_LABELS[ActingCapacity(capacity)],
        "approvedAt": format_display_datetime(approved_at),
    }


def serialize_payload(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def _value(item) -> str:
    return getattr(item, "value", item)
