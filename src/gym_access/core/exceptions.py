from __future__ import annotations

from typing import Optional

from .enums import ErrorCode


class ConfigError(Exception):
    """Raised at startup when required configuration is missing or invalid."""


class DomainError(Exception):
    """Base exception for business rule violations.

    Every subclass maps to one HTTP status and a stable error code so the
    HTTP boundary can render it without knowing the concrete type.
    """

    status_code = 400
    error_code = ErrorCode.VALIDATION_ERROR
    default_message = "Request could not be processed"

    def __init__(self, message: Optional[str] = None, *, error_code: Optional[ErrorCode] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        if error_code is not None:
            self.error_code = error_code


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    default_message = "Invalid request data"


class Unauthorized(DomainError):
    status_code = 401
    error_code = ErrorCode.UNAUTHORIZED
    default_message = "Unauthorized"


class Forbidden(DomainError):
    status_code = 403
    error_code = ErrorCode.FORBIDDEN
    default_message = "Insufficient permissions"


class NotFound(DomainError):
    status_code = 404
    error_code = ErrorCode.NOT_FOUND
    default_message = "Resource not found"


class AlreadyCheckedIn(DomainError):
    status_code = 409
    error_code = ErrorCode.ALREADY_CHECKED_IN
    default_message = "User is already checked in today"


class NotCheckedIn(DomainError):
    status_code = 409
    error_code = ErrorCode.NOT_CHECKED_IN
    default_message = "No active check-in found"


class InvalidQR(DomainError):
    error_code = ErrorCode.INVALID_QR
    default_message = "Invalid QR code"


class ExpiredQR(DomainError):
    error_code = ErrorCode.EXPIRED_QR
    default_message = "QR code has expired"


class ReplayedQR(DomainError):
    status_code = 409
    error_code = ErrorCode.REPLAYED_QR
    default_message = "QR code has already been used"
