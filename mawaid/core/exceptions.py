"""Application exceptions, rendered by ``mawaid.middleware.error_handler``."""

from typing import Any


class AppException(Exception):
    """Base application exception.

    Subclasses set ``status_code`` and ``default_message``; ``details`` is
    serialized into the error body when present.
    """

    status_code: int = 500
    default_message: str = "Internal error"

    def __init__(self, message: str | None = None, details: Any | None = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class BadRequestException(AppException):
    status_code = 400
    default_message = "Bad request"


class ForbiddenException(AppException):
    status_code = 403
    default_message = "Forbidden"


class NotFoundException(AppException):
    status_code = 404
    default_message = "Resource not found"


class ConflictException(AppException):
    status_code = 409
    default_message = "Conflict"


class MinistryConflictException(ConflictException):
    """The interval overlaps a confirmed ministry meeting and cannot be booked."""

    default_message = "The requested time overlaps a confirmed ministry meeting"

    def __init__(self, conflicts: list[dict[str, Any]]):
        super().__init__(details={"outcome": "block", "conflicts": conflicts})


class ConflictWarningException(ConflictException):
    """The interval overlaps other appointments and needs acknowledgment."""

    default_message = "The requested time overlaps other appointments; acknowledge to proceed"

    def __init__(self, conflicts: list[dict[str, Any]]):
        super().__init__(details={"outcome": "warning", "conflicts": conflicts})


class ValidationException(AppException):
    status_code = 422
    default_message = "Validation error"


class InvalidIntervalException(ValidationException):
    default_message = "start_time must be before end_time"


class InvalidPushSubscriptionException(BadRequestException):
    """Stored or submitted push subscription JSON is malformed."""

    default_message = "Invalid push token"


class PushDeliveryException(AppException):
    """Push delivery failed for a reason other than an expired subscription."""

    default_message = "Push delivery failed"


class ServiceUnavailableException(AppException):
    """A store call failed and the outcome could not be determined."""

    status_code = 503
    default_message = "Service temporarily unavailable, please retry"
