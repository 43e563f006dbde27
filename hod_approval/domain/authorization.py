# hod_approval/domain/authorization.py
"""
Authorization evaluator.

`can_perform(actor, action, request, owner, now)` walks RULES top to bottom.
The first rule that applies to the context and denies it decides; when no rule
denies, the action is allowed. Adding a role or a restriction means adding a row.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Tuple

from hod_approval.core.errors import AuthorizationError, ConflictError
from hod_approval.domain import delegation
from hod_approval.models.departure_request import EarlyDepartureRequest
from hod_approval.models.enums import DelegationPermission, RequestStatus, UserRole
from hod_approval.models.user import User


class Action(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    REQUEST_MORE_INFO = "request_more_info"
    EDIT = "edit"
    CANCEL = "cancel"
    VIEW = "view"


class DenialReason(str, Enum):
    NOT_OWNER = "NOT_OWNER"
    WRONG_DEPARTMENT = "WRONG_DEPARTMENT"
    NO_DELEGATION = "NO_DELEGATION"
    MISSING_PERMISSION = "MISSING_PERMISSION"
    SELF_APPROVAL = "SELF_APPROVAL"
    ALREADY_PROCESSED = "ALREADY_PROCESSED"
    PEER_ROLE_BLOCKED = "PEER_ROLE_BLOCKED"
    ROLE_NOT_PERMITTED = "ROLE_NOT_PERMITTED"
    NOT_HOD_REQUEST = "NOT_HOD_REQUEST"


DECISIONS = frozenset({Action.APPROVE, Action.REJECT, Action.REQUEST_MORE_INFO})
OWNER_ACTIONS = frozenset({Action.EDIT, Action.CANCEL})

# Permission a delegate needs for each decision
REQUIRED_PERMISSION = {
    Action.APPROVE: DelegationPermission.APPROVE_REQUESTS.value,
    Action.REJECT: DelegationPermission.REJECT_REQUESTS.value,
    Action.REQUEST_MORE_INFO: DelegationPermission.REQUEST_MORE_INFO.value,
}

# Statuses from which each decision may be taken
DECIDABLE_FROM = {
    Action.APPROVE: frozenset({RequestStatus.PENDING, RequestStatus.MORE_INFO_NEEDED}),
    Action.REJECT: frozenset({RequestStatus.PENDING, RequestStatus.MORE_INFO_NEEDED}),
    Action.REQUEST_MORE_INFO: frozenset({RequestStatus.PENDING}),
}


@dataclass(frozen=True)
class Context:
    actor: User
    action: Action
    request: EarlyDepartureRequest
    owner: User
    now: datetime

    @property
    def is_owner(self) -> bool:
        return self.request.faculty_id == self.actor.id

    @property
    def same_department(self) -> bool:
        return self.actor.department == self.owner.department

    @property
    def delegation_active(self) -> bool:
        return delegation.is_active(self.actor, self.now)

    def actor_is(self, role: UserRole) -> bool:
        return self.actor.role == role

    def owner_is(self, role: UserRole) -> bool:
        return self.owner.role == role


@dataclass(frozen=True)
class Rule:
    name: str
    applies: Callable[[Context], bool]
    denies: Callable[[Context], bool]
    reason: DenialReason
    message: str


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[DenialReason] = None
    message: str = ""
    rule: Optional[str] = None

    def raise_if_denied(self) -> None:
        if self.allowed:
            return
        if self.reason == DenialReason.ALREADY_PROCESSED:
            raise ConflictError(self.message, self.reason.value)
        raise AuthorizationError(self.message, self.reason.value)


def _decision(c: Context) -> bool:
    return c.action in DECISIONS


def _owner_action(c: Context) -> bool:
    return c.action in OWNER_ACTIONS


def _viewing_other(c: Context) -> bool:
    return c.action == Action.VIEW and not c.is_owner


RULES: Tuple[Rule, ...] = (
    # --- ownership ---
    Rule(
        "self_decision",
        applies=_decision,
        denies=lambda c: c.is_owner,
        reason=DenialReason.SELF_APPROVAL,
        message="Cannot decide on your own request",
    ),
    Rule(
        "owner_only",
        applies=_owner_action,
        denies=lambda c: not c.is_owner,
        reason=DenialReason.NOT_OWNER,
        message="You can only edit or cancel your own requests",
    ),
    Rule(
        "owner_pending_only",
        applies=_owner_action,
        denies=lambda c: c.request.status != RequestStatus.PENDING,
        reason=DenialReason.ALREADY_PROCESSED,
        message="Only pending requests can be edited or cancelled",
    ),
    # --- status gate ---
    Rule(
        "decidable_status",
        applies=_decision,
        denies=lambda c: c.request.status not in DECIDABLE_FROM[c.action],
        reason=DenialReason.ALREADY_PROCESSED,
        message="Request already processed",
    ),
    # --- view ---
    Rule(
        "view_faculty_needs_delegation",
        applies=lambda c: _viewing_other(c) and c.actor_is(UserRole.FACULTY),
        denies=lambda c: not c.delegation_active,
        reason=DenialReason.NOT_OWNER,
        message="Access denied",
    ),
    Rule(
        "view_faculty_department",
        applies=lambda c: _viewing_other(c) and c.actor_is(UserRole.FACULTY),
        denies=lambda c: not c.same_department,
        reason=DenialReason.WRONG_DEPARTMENT,
        message="Access denied",
    ),
    Rule(
        "view_delegate_not_hod_request",
        applies=lambda c: _viewing_other(c) and c.actor_is(UserRole.FACULTY),
        denies=lambda c: c.owner_is(UserRole.HOD),
        reason=DenialReason.PEER_ROLE_BLOCKED,
        message="HOD requests are visible to the Dean only",
    ),
    Rule(
        "view_hod_department",
        applies=lambda c: _viewing_other(c) and c.actor_is(UserRole.HOD),
        denies=lambda c: not c.same_department,
        reason=DenialReason.WRONG_DEPARTMENT,
        message="Access denied",
    ),
    Rule(
        "view_dean_hod_requests",
        applies=lambda c: _viewing_other(c) and c.actor_is(UserRole.DEAN),
        denies=lambda c: not c.owner_is(UserRole.HOD),
        reason=DenialReason.NOT_HOD_REQUEST,
        message="Access denied",
    ),
    # --- decisions by role ---
    Rule(
        "admin_no_decisions",
        applies=lambda c: _decision(c) and c.actor_is(UserRole.ADMIN),
        denies=lambda c: True,
        reason=DenialReason.ROLE_NOT_PERMITTED,
        message="Admins cannot decide on departure requests",
    ),
    Rule(
        "hod_not_peer",
        applies=lambda c: _decision(c) and c.actor_is(UserRole.HOD),
        denies=lambda c: c.owner_is(UserRole.HOD),
        reason=DenialReason.PEER_ROLE_BLOCKED,
        message="HOD cannot approve requests from other HODs",
    ),
    Rule(
        "hod_department",
        applies=lambda c: _decision(c) and c.actor_is(UserRole.HOD),
        denies=lambda c: not c.same_department,
        reason=DenialReason.WRONG_DEPARTMENT,
        message="Can only act on requests from your department",
    ),
    Rule(
        "dean_hod_requests_only",
        applies=lambda c: _decision(c) and c.actor_is(UserRole.DEAN),
        denies=lambda c: not c.owner_is(UserRole.HOD),
        reason=DenialReason.NOT_HOD_REQUEST,
        message="Dean can only act on HOD requests",
    ),
    Rule(
        "delegate_active",
        applies=lambda c: _decision(c) and c.actor_is(UserRole.FACULTY),
        denies=lambda c: not c.delegation_active,
        reason=DenialReason.NO_DELEGATION,
        message="No delegation rights",
    ),
    Rule(
        "delegate_permission",
        applies=lambda c: _decision(c) and c.actor_is(UserRole.FACULTY),
        denies=lambda c: not delegation.has_permission(c.actor, REQUIRED_PERMISSION[c.action], c.now),
        reason=DenialReason.MISSING_PERMISSION,
        message="Missing delegated permission for this action",
    ),
    Rule(
        "delegate_department",
        applies=lambda c: _decision(c) and c.actor_is(UserRole.FACULTY),
        denies=lambda c: not c.same_department,
        reason=DenialReason.WRONG_DEPARTMENT,
        message="Can only act on requests from your department",
    ),
    Rule(
        "delegate_not_peer",
        applies=lambda c: _decision(c) and c.actor_is(UserRole.FACULTY),
        denies=lambda c: c.owner_is(UserRole.HOD),
        reason=DenialReason.PEER_ROLE_BLOCKED,
        message="HOD requests are decided by the Dean",
    ),
)


def can_perform(
    actor: User,
    action: Action,
    request: EarlyDepartureRequest,
    owner: User,
    now: datetime,
) -> Decision:
    ctx = Context(actor=actor, action=Action(action), request=request, owner=owner, now=now)
    for rule in RULES:
        if rule.applies(ctx) and rule.denies(ctx):
            return Decision(False, rule.reason, rule.message, rule.name)
    return Decision(True)


def ensure_can_perform(
    actor: User,
    action: Action,
    request: EarlyDepartureRequest,
    owner: User,
    now: datetime,
) -> None:
    can_perform(actor, action, request, owner, now).raise_if_denied()
