# hod_approval/domain/lifecycle.py
"""
Request lifecycle state machine.

Each transition function checks its input, asks the authorization evaluator,
looks the (status, action) pair up in TRANSITIONS and then mutates the request
in place. It returns a TransitionResult describing the side effects the caller
must run once the new state is committed (audit entry, notification).

    PENDING ──approve──▶ APPROVED
    PENDING ──reject───▶ REJECTED
    PENDING ──cancel───▶ REJECTED (cancelled_by_self)
    PENDING ──request_more_info──▶ MORE_INFO_NEEDED ──approve/reject──▶ ...
    PENDING ──edit─────▶ PENDING
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional

from hod_approval.core.constants import (
    CANCELLATION_PREFIX,
    MIN_CANCELLATION_REASON_LENGTH,
    MIN_REASON_LENGTH,
    REQUESTER_ROLES,
)
from hod_approval.core.errors import AuthorizationError, ConflictError, ValidationError
from hod_approval.domain.authorization import Action, ensure_can_perform
from hod_approval.domain.exit_pass import (
    build_qr_payload,
    generate_exit_pass_number,
    serialize_payload,
)
from hod_approval.models.departure_request import EarlyDepartureRequest
from hod_approval.models.enums import (
    ActingCapacity,
    AuditAction,
    LeaveType,
    RequestStatus,
    UrgencyLevel,
    UserRole,
)
from hod_approval.models.user import User

TRANSITIONS: Dict[tuple, RequestStatus] = {
    (RequestStatus.PENDING, Action.APPROVE): RequestStatus.APPROVED,
    (RequestStatus.MORE_INFO_NEEDED, Action.APPROVE): RequestStatus.APPROVED,
    (RequestStatus.PENDING, Action.REJECT): RequestStatus.REJECTED,
    (RequestStatus.MORE_INFO_NEEDED, Action.REJECT): RequestStatus.REJECTED,
    (RequestStatus.PENDING, Action.REQUEST_MORE_INFO): RequestStatus.MORE_INFO_NEEDED,
    (RequestStatus.PENDING, Action.CANCEL): RequestStatus.REJECTED,
    (RequestStatus.PENDING, Action.EDIT): RequestStatus.PENDING,
}

EDITABLE_FIELDS = (
    "leave_type",
    "departure_date",
    "departure_time",
    "expected_return_time",
    "reason",
    "destination",
    "urgency_level",
    "current_workload",
    "coverage_arrangement",
    "attachments",
)

CAPACITY_BY_ROLE = {
    UserRole.HOD: ActingCapacity.HOD,
    UserRole.DEAN: ActingCapacity.DEAN,
    UserRole.FACULTY: ActingCapacity.DELEGATED_FACULTY,
}


class Notification(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass
class TransitionResult:
    action: Action
    from_status: RequestStatus
    to_status: RequestStatus
    audit_action: AuditAction
    audit_details: Dict[str, Any] = field(default_factory=dict)
    notify: Optional[Notification] = None


def next_status(current: RequestStatus, action: Action) -> RequestStatus:
    current = RequestStatus(current)
    try:
        return TRANSITIONS[(current, Action(action))]
    except KeyError:
        raise ConflictError(
            f"Invalid transition: cannot {Action(action).value.replace('_', ' ')} "
            f"a {current.value.lower()} request",
            "INVALID_TRANSITION",
        )


def acting_capacity(actor: User) -> ActingCapacity:
    """Computed once, when the decision is taken, and stored on the request."""
    try:
        return CAPACITY_BY_ROLE[UserRole(actor.role)]
    except KeyError:
        raise AuthorizationError(
            f"Role {UserRole(actor.role).value} cannot decide on requests",
            "ROLE_NOT_PERMITTED",
        )


def _require_text(value: Optional[str], message: str, reason: str, min_length: int = 1) -> str:
    text = (value or "").strip()
    if len(text) < min_length:
        raise ValidationError(message, reason)
    return text


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


# ============================================================================
# SUBMIT
# ============================================================================
def submit(owner: User, data: Mapping[str, Any], now: datetime) -> EarlyDepartureRequest:
    if owner.role not in REQUESTER_ROLES:
        raise AuthorizationError(
            "Only faculty and HODs can submit departure requests",
            "ROLE_NOT_PERMITTED",
        )

    leave_type = LeaveType(data.get("leave_type") or LeaveType.PARTIAL)
    departure_date = data.get("departure_date")
    if departure_date is None:
        raise ValidationError("Departure date is required", "MISSING_FIELD")

    departure_time = data.get("departure_time")
    if leave_type == LeaveType.PARTIAL and not departure_time:
        raise ValidationError("Departure time required for partial day leave", "MISSING_FIELD")

    reason = _require_text(
        data.get("reason"),
        f"Reason must be at least {MIN_REASON_LENGTH} characters",
        "MISSING_FIELD",
        MIN_REASON_LENGTH,
    )

    return EarlyDepartureRequest(
        faculty_id=owner.id,
        leave_type=leave_type,
        departure_date=departure_date,
        departure_time=departure_time if leave_type == LeaveType.PARTIAL else None,
        expected_return_time=data.get("expected_return_time"),
        reason=reason,
        destination=data.get("destination"),
        urgency_level=UrgencyLevel(data.get("urgency_level") or UrgencyLevel.MEDIUM),
        current_workload=data.get("current_workload"),
        coverage_arrangement=data.get("coverage_arrangement"),
        attachments=list(data.get("attachments") or []),
        status=RequestStatus.PENDING,
        submitted_at=now,
        updated_at=now,
    )


# ============================================================================
# DECISIONS
# ============================================================================
def approve(
    request: EarlyDepartureRequest,
    actor: User,
    owner: User,
    now: datetime,
    encode: Callable[[str], str],
    hod_comments: Optional[str] = None,
    exit_pass_prefix: str = "EP",
) -> TransitionResult:
    ensure_can_perform(actor, Action.APPROVE, request, owner, now)
    from_status = RequestStatus(request.status)
    to_status = next_status(from_status, Action.APPROVE)

    capacity = acting_capacity(actor)
    exit_pass_number = generate_exit_pass_number(now, exit_pass_prefix)
    payload = build_qr_payload(request, owner, actor, capacity, exit_pass_number, now)
    qr_code = encode(serialize_payload(payload))

    request.status = to_status
    request.approved_by = actor.id
    request.approved_by_role = capacity
    request.approved_at = now
    if hod_comments:
        request.hod_comments = hod_comments.strip()
    request.exit_pass_number = exit_pass_number
    request.qr_code = qr_code
    request.updated_at = now

    return TransitionResult(
        action=Action.APPROVE,
        from_status=from_status,
        to_status=to_status,
        audit_action=AuditAction.APPROVED,
        audit_details={
            "exit_pass_number": exit_pass_number,
            "approved_by_role": capacity.value,
        },
        notify=Notification.APPROVED,
    )


def reject(
    request: EarlyDepartureRequest,
    actor: User,
    owner: User,
    now: datetime,
    rejection_reason: Optional[str],
    hod_comments: Optional[str] = None,
) -> TransitionResult:
    reason = _require_text(rejection_reason, "Rejection reason required", "MISSING_REJECTION_REASON")

    ensure_can_perform(actor, Action.REJECT, request, owner, now)
    from_status = RequestStatus(request.status)
    to_status = next_status(from_status, Action.REJECT)
    capacity = acting_capacity(actor)

    # approved_by / approved_by_role record whoever decided, including a rejection
    request.status = to_status
    request.approved_by = actor.id
    request.approved_by_role = capacity
    request.rejected_at = now
    request.rejection_reason = reason
    if hod_comments:
        request.hod_comments = hod_comments.strip()
    request.updated_at = now

    return TransitionResult(
        action=Action.REJECT,
        from_status=from_status,
        to_status=to_status,
        audit_action=AuditAction.REJECTED,
        audit_details={
            "rejection_reason": reason,
            "rejected_by_role": capacity.value,
        },
        notify=Notification.REJECTED,
    )


def request_more_info(
    request: EarlyDepartureRequest,
    actor: User,
    owner: User,
    now: datetime,
    hod_comments: Optional[str],
) -> TransitionResult:
    comments = _require_text(hod_comments, "Comments required", "MISSING_COMMENTS")

    ensure_can_perform(actor, Action.REQUEST_MORE_INFO, request, owner, now)
    from_status = RequestStatus(request.status)
    to_status = next_status(from_status, Action.REQUEST_MORE_INFO)

    request.status = to_status
    request.hod_comments = comments
    request.updated_at = now

    return TransitionResult(
        action=Action.REQUEST_MORE_INFO,
        from_status=from_status,
        to_status=to_status,
        audit_action=AuditAction.REQUESTED_MORE_INFO,
        audit_details={"hod_comments": comments},
    )


# ============================================================================
# OWNER ACTIONS
# ============================================================================
def cancel(
    request: EarlyDepartureRequest,
    actor: User,
    owner: User,
    now: datetime,
    cancellation_reason: Optional[str],
) -> TransitionResult:
    reason = _require_text(
        cancellation_reason,
        f"Cancellation reason required (minimum {MIN_CANCELLATION_REASON_LENGTH} characters)",
        "MISSING_CANCELLATION_REASON",
        MIN_CANCELLATION_REASON_LENGTH,
    )

    ensure_can_perform(actor, Action.CANCEL, request, owner, now)
    from_status = RequestStatus(request.status)
    to_status = next_status(from_status, Action.CANCEL)

    request.status = to_status
    request.rejection_reason = f"{CANCELLATION_PREFIX}{reason}"
    request.rejected_at = now
    request.cancelled_by_self = True
    request.updated_at = now

    return TransitionResult(
        action=Action.CANCEL,
        from_status=from_status,
        to_status=to_status,
        audit_action=AuditAction.CANCELLED,
        audit_details={
            "cancellation_reason": reason,
            "cancelled_at": now.isoformat(),
        },
    )


def edit(
    request: EarlyDepartureRequest,
    actor: User,
    owner: User,
    now: datetime,
    changes: Mapping[str, Any],
) -> TransitionResult:
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Fields cannot be edited: {sorted(unknown)}", "INVALID_FIELD")

    ensure_can_perform(actor, Action.EDIT, request, owner, now)
    from_status = RequestStatus(request.status)
    to_status = next_status(from_status, Action.EDIT)

    updates = dict(changes)
    if "leave_type" in updates:
        updates["leave_type"] = LeaveType(updates["leave_type"])
    if "urgency_level" in updates:
        if updates["urgency_level"] is None:
            raise ValidationError("Urgency level cannot be empty", "INVALID_FIELD")
        updates["urgency_level"] = UrgencyLevel(updates["urgency_level"])
    if "departure_date" in updates and updates["departure_date"] is None:
        raise ValidationError("Departure date cannot be empty", "INVALID_FIELD")
    if "reason" in updates:
        updates["reason"] = _require_text(
            updates["reason"],
            f"Reason must be at least {MIN_REASON_LENGTH} characters",
            "INVALID_FIELD",
            MIN_REASON_LENGTH,
        )
    if "attachments" in updates:
        updates["attachments"] = list(updates["attachments"] or [])

    leave_type = updates.get("leave_type", LeaveType(request.leave_type))
    if leave_type == LeaveType.FULL_DAY:
        updates["departure_time"] = None
    elif not (updates.get("departure_time") or request.departure_time):
        raise ValidationError("Departure time required for partial day leave", "MISSING_FIELD")
    elif "departure_time" in updates and not updates["departure_time"]:
        # keep the current time rather than blanking a PARTIAL request
        del updates["departure_time"]

    diff: Dict[str, Dict[str, Any]] = {}
    for name in EDITABLE_FIELDS:
        if name not in updates:
            continue
        old = getattr(request, name)
        new = updates[name]
        if old == new:
            continue
        diff[name] = {"from": _jsonable(old), "to": _jsonable(new)}
        setattr(request, name, new)

    request.updated_at = now

    return TransitionResult(
        action=Action.EDIT,
        from_status=from_status,
        to_status=to_status,
        audit_action=AuditAction.EDITED,
        audit_details={"changes": diff, "edited_at": now.isoformat()},
    )
