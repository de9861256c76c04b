"""
Platform-wide exception hierarchy.

Services raise these; blueprints register handlers against them once (see
``ideabox.utils.errors.register_error_handlers``) and get consistent HTTP
status codes everywhere.

Usage:
    from ideabox.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Idea", resource_id=idea_id)
    raise ValidationError("employee_id is required", details={"employee_id": "required"})
"""


class NotFoundError(Exception):
    """Raised when a requested record does not exist.

    Args:
        resource: Human-readable entity name (e.g. "Idea", "Admin").
        resource_id: The identifier that was looked up.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is malformed or violates a workflow rule.

    Covers malformed identifiers, missing required fields, unknown status
    stages or admin roles. Reported synchronously, never retried.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an insert would duplicate a unique value. Maps to HTTP 409."""

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(f"{resource} with {field}={value!r} already exists")


class StoreError(Exception):
    """Raised when the underlying database write fails.

    The session has already been rolled back when this is raised. The
    original driver message is kept for diagnostics; callers may retry the
    whole request.
    """


class OtpError(Exception):
    """Base class for one-time passcode verification failures."""


class InvalidOtpError(OtpError):
    """No active code, or the supplied code does not match."""

    def __init__(self, message: str = "Invalid OTP") -> None:
        super().__init__(message)


class ExpiredError(OtpError):
    """The code matched but its validity window has passed."""

    def __init__(self, message: str = "OTP expired") -> None:
        super().__init__(message)


class NotificationError(Exception):
    """Email transport failure.

    Only ever raised and caught inside the notification path; it is logged
    and recorded on the EmailLog row, never surfaced to an HTTP caller.
    """
