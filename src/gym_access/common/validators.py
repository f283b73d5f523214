from __future__ import annotations

from typing import Any, Optional

from ..core.enums import Role
from ..core.exceptions import ValidationError

MAX_NOTES_LENGTH = 500


def require_non_empty(value: Any, field_name: str) -> str:
    if value is None or not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def parse_user_id(value: Any, field_name: str = "userId") -> int:
    # bool is an int subclass and int() truncates floats
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(f"{field_name} must be an integer")
    try:
        user_id = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer") from None
    if user_id <= 0:
        raise ValidationError(f"{field_name} must be positive")
    return user_id


def parse_role(value: Any, field_name: str = "userRole") -> Role:
    try:
        return Role(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(r.value for r in Role)
        raise ValidationError(f"{field_name} must be one of: {allowed}") from None


def optional_role(value: Any, field_name: str = "userRole") -> Optional[Role]:
    if value is None or value == "":
        return None
    return parse_role(value, field_name)


def optional_notes(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("notes must be a string")
    value = value.strip()
    if len(value) > MAX_NOTES_LENGTH:
        raise ValidationError(f"notes cannot exceed {MAX_NOTES_LENGTH} characters")
    return value or None
