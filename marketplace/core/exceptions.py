"""
Platform-wide exception hierarchy.

Services raise these typed errors and never build HTTP responses
themselves. A single handler registered in ``create_app`` translates any
``AppError`` into the standard error envelope, so every endpoint reports
the same status codes for the same failure.

Usage:
    from marketplace.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Specialist", resource_id=specialist_id)
    raise ValidationError("title is required", details={"title": "required"})
"""


class AppError(Exception):
    """Base class for every error that maps onto an HTTP response.

    Args:
        message: Human-readable explanation, returned to the client.
        code: Machine-readable error code (see ``marketplace.utils.errors.E``).
        status_code: HTTP status used by the error handler.
        details: Optional field-level breakdown.
    """

    status_code = 500
    code = "ERR_INTERNAL"

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        code: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ValidationError(AppError):
    """Input was well-formed but violated a business rule. Maps to HTTP 400."""

    status_code = 400
    code = "ERR_VALIDATION"


class InvalidOrExpiredTokenError(ValidationError):
    """A password-reset token is unknown, already used, or past its expiry."""

    code = "ERR_INVALID_OR_EXPIRED_TOKEN"

    def __init__(self, message: str = "Invalid or expired reset token") -> None:
        super().__init__(message)


class AuthenticationError(AppError):
    """Missing or unusable credentials. Maps to HTTP 401."""

    status_code = 401
    code = "ERR_UNAUTHENTICATED"


class ExpiredTokenError(AuthenticationError):
    code = "ERR_TOKEN_EXPIRED"

    def __init__(self, message: str = "Token has expired") -> None:
        super().__init__(message)


class InvalidTokenError(AuthenticationError):
    code = "ERR_TOKEN_INVALID"

    def __init__(self, message: str = "Invalid token") -> None:
        super().__init__(message)


class AuthorizationError(AppError):
    """Authenticated, but not allowed to perform the action. Maps to HTTP 403."""

    status_code = 403
    code = "ERR_FORBIDDEN"

    def __init__(self, message: str = "Permission denied", details: dict | None = None) -> None:
        super().__init__(message, details=details)


class NotFoundError(AppError):
    """Raised when a requested resource does not exist or is soft-deleted.

    Args:
        resource: Human-readable entity name (e.g. "Specialist").
        resource_id: The key that was looked up. Logged, not echoed in details.
    """

    status_code = 404
    code = "ERR_NOT_FOUND"

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ConflictError(AppError):
    """Raised when an operation would duplicate a unique value. Maps to HTTP 409.

    Args:
        resource: Model name.
        field: The unique field that would be duplicated.
        value: The conflicting value.
    """

    status_code = 409
    code = "ERR_CONFLICT_DUPLICATE"

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        if value is None:
            msg = f"{resource} with this {field} already exists"
        else:
            msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg, details={"field": field})


class UploadError(AppError):
    """Object storage rejected or failed an upload.

    Defaults to 502 (storage unavailable); rejected files use 400.
    """

    status_code = 502
    code = "ERR_UPLOAD"
