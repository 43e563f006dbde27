# hod_approval/core/errors.py

from typing import Optional


class DomainError(Exception):
    """
    Base class for every rule violation raised by the core.
    `reason` is a stable machine-readable code, `message` is user-displayable.
    """

    status_code = 400
    default_reason = "ERROR"

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.reason = reason or self.default_reason

    def __str__(self) -> str:
        return self.message


class ValidationError(DomainError):
    """Malformed or missing input (missing rejection reason, bad date ordering...)."""

    status_code = 400
    default_reason = "INVALID_INPUT"


class AuthorizationError(DomainError):
    """The actor lacks the rights for the requested action."""

    status_code = 403
    default_reason = "FORBIDDEN"


class ConflictError(DomainError):
    """Valid actor, but the target is in a state that forbids the action."""

    status_code = 409
    default_reason = "CONFLICT"


class NotFoundError(DomainError):
    status_code = 404
    default_reason = "NOT_FOUND"
