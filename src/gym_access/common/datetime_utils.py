from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional

from ..core.exceptions import ValidationError


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now().replace(microsecond=0)


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, time(23, 59, 59))


def parse_iso_datetime(value: Optional[str], field_name: str) -> Optional[datetime]:
    """Parse an ISO-8601 date or datetime string; timezone info is dropped to local time."""
    if value is None or not str(value).strip():
        return None
    raw = str(value).strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError as exc:
        raise ValidationError(f"{field_name} must be an ISO-8601 date or datetime") from exc
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def parse_iso_date(value: Optional[str], field_name: str) -> Optional[date]:
    parsed = parse_iso_datetime(value, field_name)
    return parsed.date() if parsed else None
