# hod_approval/core/constants.py

from hod_approval.models.enums import DelegationPermission, UserRole

# ==========================================================
# DELEGATION
# ==========================================================
ALL_DELEGATION_PERMISSIONS = frozenset(p.value for p in DelegationPermission)

# Roles that may submit departure requests (HOD requests route to the Dean)
REQUESTER_ROLES = (UserRole.FACULTY, UserRole.HOD)

# Roles an admin may create through the account endpoints
CREATABLE_ROLES = (UserRole.FACULTY, UserRole.HOD, UserRole.DEAN)

# ==========================================================
# REQUEST LIFECYCLE
# ==========================================================
CANCELLATION_PREFIX = "Cancelled by faculty: "
MIN_CANCELLATION_REASON_LENGTH = 5
MIN_REASON_LENGTH = 10

FULL_DAY_LABEL = "Full Day"
NOT_AVAILABLE = "N/A"

# Display formats (en-IN style, as shown on the exit pass and in emails)
DISPLAY_DATE_FORMAT = "%d/%m/%Y"
DISPLAY_DATETIME_FORMAT = "%d/%m/%Y, %I:%M:%S %p"

# Number of past requests shown next to a request on the approver's detail view
REQUESTER_HISTORY_LIMIT = 10
