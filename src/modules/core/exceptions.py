"""Domain error hierarchy shared by every module.

Each error carries a stable machine-readable ``code`` and the HTTP
status the API layer answers with.  Modules subclass the category
bases below; the DRF exception handler (``modules.core.exception_handler``)
renders any ``DomainError`` into the ``{success, message, code}`` envelope.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base class for business-rule violations."""

    code = "DOMAIN_ERROR"
    status_code = 400
    default_message = "Request could not be processed."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message or self.default_message
        if code is not None:
            self.code = code
        self.extra = extra or {}
        super().__init__(self.message)


class ValidationFailed(DomainError):
    code = "VALIDATION_ERROR"
    status_code = 400
    default_message = "Invalid request."


class NotFound(DomainError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found."


class Forbidden(DomainError):
    code = "FORBIDDEN"
    status_code = 403
    default_message = "You are not allowed to perform this action."


class Conflict(DomainError):
    code = "CONFLICT"
    status_code = 409
    default_message = "Request conflicts with the current state."


class InvariantViolation(DomainError):
    """Internal inconsistency (race or corrupted data), never a user error."""

    code = "INTERNAL_ERROR"
    status_code = 500
    default_message = "Internal server error."
