# hod_approval/domain/delegation.py
"""
Delegation engine.

An HOD may hand a subset of their approval authority to one faculty member of
their own department for a bounded window. The grant lives on the faculty
account (delegated_by / delegation_start_date / delegation_end_date /
delegation_permissions) and is read back as a `DelegationGrant` value object.

Whether a grant is in force is always derived from (grant, now). Nothing is
written when a window closes: a lapsed grant simply stops being active.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import FrozenSet, Iterable, List, Optional
from uuid import UUID

from hod_approval.core.clock import ensure_aware
from hod_approval.core.constants import ALL_DELEGATION_PERMISSIONS
from hod_approval.core.errors import AuthorizationError, ConflictError, ValidationError
from hod_approval.models.enums import DelegationPermission, UserRole
from hod_approval.models.user import User


@dataclass(frozen=True)
class DelegationGrant:
    granted_by: UUID
    start: datetime
    end: datetime
    permissions: FrozenSet[str]

    @classmethod
    def from_user(cls, user: User) -> Optional["DelegationGrant"]:
        """Return the grant recorded on `user`, lapsed or not, or None."""
        if (
            user.delegated_by is None
            or user.delegation_start_date is None
            or user.delegation_end_date is None
        ):
            return None
        return cls(
            granted_by=user.delegated_by,
            start=ensure_aware(user.delegation_start_date),
            end=ensure_aware(user.delegation_end_date),
            permissions=frozenset(user.delegation_permissions or ()),
        )

    def is_active(self, now: datetime) -> bool:
        return self.start <= ensure_aware(now) <= self.end and bool(self.permissions)

    def allows(self, permission: str, now: datetime) -> bool:
        return self.is_active(now) and _permission_value(permission) in self.permissions


def _permission_value(permission) -> str:
    if isinstance(permission, DelegationPermission):
        return permission.value
    return str(permission)


def normalize_permissions(permissions: Iterable) -> List[str]:
    """
    Validate and de-duplicate a permission set. Output follows enum order so
    the stored list is stable regardless of how the caller ordered it.
    """
    values = {_permission_value(p) for p in (permissions or ())}
    if not values:
        raise ValidationError("At least one permission is required", "MISSING_PERMISSIONS")

    unknown = values - ALL_DELEGATION_PERMISSIONS
    if unknown:
        raise ValidationError(
            f"Unknown delegation permission(s): {sorted(unknown)}. "
            f"Allowed: {sorted(ALL_DELEGATION_PERMISSIONS)}",
            "UNKNOWN_PERMISSION",
        )
    return [p.value for p in DelegationPermission if p.value in values]


# ============================================================================
# QUERIES
# ============================================================================
def is_active(user: User, now: datetime) -> bool:
    """True iff `user` carries delegated authority at `now`. Never cached."""
    grant = DelegationGrant.from_user(user)
    return grant is not None and grant.is_active(now)


def has_permission(user: User, permission, now: datetime) -> bool:
    grant = DelegationGrant.from_user(user)
    return grant is not None and grant.allows(permission, now)


def is_eligible(faculty: User, now: datetime) -> bool:
    """Faculty that may receive a new grant: never delegated, revoked, or lapsed."""
    return faculty.role == UserRole.FACULTY and not is_active(faculty, now)


# ============================================================================
# COMMANDS (mutate the faculty account in place)
# ============================================================================
def grant_delegation(
    hod: User,
    faculty: User,
    start: datetime,
    end: datetime,
    permissions: Iterable,
    now: datetime,
) -> DelegationGrant:
    if hod.role != UserRole.HOD:
        raise ValidationError("Only HODs can delegate rights", "NOT_HOD")

    if faculty.role != UserRole.FACULTY:
        raise ValidationError("Can only delegate to users with FACULTY role", "NOT_FACULTY")

    if faculty.department != hod.department:
        raise ValidationError("Can only delegate to faculty in your department", "WRONG_DEPARTMENT")

    start = ensure_aware(start)
    end = ensure_aware(end)
    if end <= start:
        raise ValidationError("End date must be after start date", "INVALID_WINDOW")

    normalized = normalize_permissions(permissions)

    # A lapsed grant does not block a new one
    if is_active(faculty, now):
        raise ConflictError(
            f"{faculty.full_name} already has active delegated rights",
            "ALREADY_DELEGATED",
        )

    faculty.delegated_by = hod.id
    faculty.delegation_start_date = start
    faculty.delegation_end_date = end
    faculty.delegation_permissions = normalized

    return DelegationGrant(hod.id, start, end, frozenset(normalized))


def revoke_delegation(hod: User, faculty: User) -> Optional[DelegationGrant]:
    """Clear the grant. Works on lapsed grants too. Returns what was removed."""
    if faculty.delegated_by is None or faculty.delegated_by != hod.id:
        raise AuthorizationError("Can only revoke delegation you granted", "NOT_GRANTOR")

    return clear_delegation(faculty)


def clear_delegation(faculty: User) -> Optional[DelegationGrant]:
    """Drop whatever grant `faculty` carries, without a grantor check."""
    previous = DelegationGrant.from_user(faculty)

    faculty.delegated_by = None
    faculty.delegation_start_date = None
    faculty.delegation_end_date = None
    faculty.delegation_permissions = []

    return previous


def extend_delegation(hod: User, faculty: User, new_end: datetime) -> datetime:
    """
    Move the end of the grant forward and return the previous end.
    A grant record that has already lapsed can still be extended.
    """
    if faculty.delegated_by is None or faculty.delegated_by != hod.id:
        raise AuthorizationError("Can only extend delegation you granted", "NOT_GRANTOR")

    if faculty.delegation_end_date is None:
        raise ValidationError("No active delegation to extend", "NO_DELEGATION")

    current_end = ensure_aware(faculty.delegation_end_date)
    new_end = ensure_aware(new_end)
    if new_end <= current_end:
        raise ValidationError("New end date must be after current end date", "INVALID_WINDOW")

    faculty.delegation_end_date = new_end
    return current_end
