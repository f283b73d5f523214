from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for authorization."""

    MANAGER = "manager"
    STAFF = "staff"
    MEMBER = "member"


STAFF_ROLES = frozenset({Role.MANAGER, Role.STAFF})


class AttendanceMethod(str, Enum):
    """How an attendance record was created."""

    QR = "qr"
    MANUAL = "manual"
    FORCED = "forced"


class AttendanceState(str, Enum):
    """Per user-day attendance state."""

    NOT_CHECKED_IN = "NOT_CHECKED_IN"
    CHECKED_IN = "CHECKED_IN"
    CHECKED_OUT = "CHECKED_OUT"


class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"
    QR = "qr"


class ErrorCode(str, Enum):
    """Stable error codes returned in the error envelope."""

    VALIDATION_ERROR = "ValidationError"
    UNAUTHORIZED = "Unauthorized"
    ACCESS_TOKEN_EXPIRED = "AccessTokenExpired"
    INVALID_ACCESS_TOKEN = "InvalidAccessToken"
    INVALID_REFRESH_TOKEN = "InvalidRefreshToken"
    FORBIDDEN = "Forbidden"
    NOT_FOUND = "NotFound"
    METHOD_NOT_ALLOWED = "MethodNotAllowed"
    ALREADY_CHECKED_IN = "AlreadyCheckedIn"
    NOT_CHECKED_IN = "NotCheckedIn"
    INVALID_QR = "InvalidQR"
    EXPIRED_QR = "ExpiredQR"
    REPLAYED_QR = "ReplayedQR"
    INTERNAL_ERROR = "InternalError"
