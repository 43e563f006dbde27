from enum import Enum

class UserRole(str, Enum):
    FACULTY = "FACULTY"
    HOD = "HOD"
    DEAN = "DEAN"
    ADMIN = "ADMIN"

class LeaveType(str, Enum):
    PARTIAL = "PARTIAL"
    FULL_DAY = "FULL_DAY"

class UrgencyLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

class RequestStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    MORE_INFO_NEEDED = "MORE_INFO_NEEDED"

# Capacity the decider acted in. Stored on the request at transition time,
# distinct from the decider's account role (a delegate is FACULTY by account).
class ActingCapacity(str, Enum):
    HOD = "HOD"
    DEAN = "DEAN"
    DELEGATED_FACULTY = "DELEGATED_FACULTY"

class DelegationPermission(str, Enum):
    APPROVE_REQUESTS = "approve_requests"
    REJECT_REQUESTS = "reject_requests"
    REQUEST_MORE_INFO = "request_more_info"

class AuditAction(str, Enum):
    CREATED = "created"
    EDITED = "edited"
    CANCELLED = "cancelled"
    APPROVED = "approved"
    REJECTED = "rejected"
    REQUESTED_MORE_INFO = "requested_more_info"
    DELEGATION_GRANTED = "delegation_granted"
    DELEGATION_REVOKED = "delegation_revoked"
    DELEGATION_EXTENDED = "delegation_extended"
    COMMENT_ADDED = "comment_added"
