"""Typed domain errors.

Every failure the CFP services report to a caller is one of these. The HTTP
layer renders them as ``{"error": code, "message": ..., "details": ...}``
with the matching status code, so callers can show specific guidance instead
of a generic failure.
"""

from typing import Any


class CfpError(Exception):
    """Base class for all typed CFP errors."""

    code: str = "internal"
    status_code: int = 500
    default_message: str = "Internal error"

    def __init__(self, message: str | None = None, details: dict[str, Any] | None = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message, "details": self.details}


class NotFound(CfpError):
    """Entity absent or not visible to the caller."""

    code = "not_found"
    status_code = 404
    default_message = "Not found"


class Forbidden(CfpError):
    code = "forbidden"
    status_code = 403
    default_message = "Forbidden"


class NotAuthorized(CfpError):
    """Caller is known but not (yet) allowed to act, e.g. an unactivated reviewer."""

    code = "not_authorized"
    status_code = 403
    default_message = "Not authorized"


class InvalidTransition(CfpError):
    code = "invalid_transition"
    status_code = 409
    default_message = "Invalid status transition"


class ProfileIncomplete(CfpError):
    code = "profile_incomplete"
    status_code = 422
    default_message = "Speaker profile is incomplete"


class QuotaExceeded(CfpError):
    code = "quota_exceeded"
    status_code = 422
    default_message = "Submission quota exceeded"


class AlreadyAccepted(CfpError):
    code = "already_accepted"
    status_code = 409
    default_message = "Reviewer invitation already accepted"


class ValidationFailed(CfpError):
    """Malformed input. ``details["fields"]`` maps field name to message."""

    code = "validation_failed"
    status_code = 422
    default_message = "Validation failed"

    def __init__(self, message: str | None = None, fields: dict[str, str] | None = None):
        super().__init__(message, {"fields": fields or {}})


class Conflict(CfpError):
    code = "conflict"
    status_code = 409
    default_message = "Conflict"


class Internal(CfpError):
    code = "internal"
    status_code = 500
    default_message = "Internal error"
