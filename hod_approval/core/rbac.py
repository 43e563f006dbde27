# hod_approval/core/rbac.py

from fastapi import Depends
from hod_approval.api.deps import get_current_user
from hod_approval.core.errors import AuthorizationError
from hod_approval.models.user import User, UserRole

def AllowRoles(*allowed_roles):
    """
    Coarse route guard by account role.
    Accepts UserRole values or raw strings, case-insensitive. No role bypasses
    it: an ADMIN only reaches routes that list ADMIN. Per-request rules
    (ownership, department, delegation) are decided later by the authorization
    evaluator.
    """

    def normalize(role) -> str:
        if isinstance(role, UserRole):
            return role.value.lower().strip()
        return str(role).lower().strip()

    normalized_allowed = {normalize(r) for r in allowed_roles}

    async def role_checker(current_user: User = Depends(get_current_user)):
        if normalize(current_user.role) not in normalized_allowed:
            readable_role = (
                current_user.role.value if isinstance(current_user.role, UserRole)
                else str(current_user.role)
            )
            raise AuthorizationError(
                f"Access denied for role '{readable_role}'",
                "ROLE_NOT_PERMITTED",
            )

        return current_user

    return role_checker


require_admin = AllowRoles(UserRole.ADMIN)
require_hod = AllowRoles(UserRole.HOD)
require_dean = AllowRoles(UserRole.DEAN)
require_requester = AllowRoles(UserRole.FACULTY, UserRole.HOD)
require_decider = AllowRoles(UserRole.HOD, UserRole.DEAN, UserRole.FACULTY)
