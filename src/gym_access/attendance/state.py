from __future__ import annotations

from datetime import date
from typing import Iterable, Optional

from ..core.enums import AttendanceState
from ..core.exceptions import AlreadyCheckedIn, NotCheckedIn
from .model import AttendanceRecord, AttendanceStatus


def derive_state(
    user_id: int,
    today: date,
    open_record: Optional[AttendanceRecord],
    today_records: Iterable[AttendanceRecord],
) -> AttendanceStatus:
    """State of ``user_id`` for the calendar day ``today``.

    An open record always means CHECKED_IN, even if it was opened on an
    earlier day and not yet auto-checked-out. Otherwise any record dated
    today means CHECKED_OUT.
    """
    if open_record is not None:
        return AttendanceStatus(user_id=user_id, state=AttendanceState.CHECKED_IN, attendance=open_record)

    latest = next(iter(sorted(today_records, key=lambda r: r.check_in_time, reverse=True)), None)
    if latest is not None and latest.work_date == today:
        return AttendanceStatus(user_id=user_id, state=AttendanceState.CHECKED_OUT, attendance=latest)
    return AttendanceStatus(user_id=user_id, state=AttendanceState.NOT_CHECKED_IN)


def ensure_can_check_in(status: AttendanceStatus) -> None:
    """NOT_CHECKED_IN --check_in--> CHECKED_IN; everything else is rejected."""
    if status.state == AttendanceState.CHECKED_IN:
        raise AlreadyCheckedIn("User is already checked in")
    if status.state == AttendanceState.CHECKED_OUT:
        raise AlreadyCheckedIn("User has already checked in and out today")


def ensure_can_check_out(status: AttendanceStatus) -> AttendanceRecord:
    """CHECKED_IN --check_out--> CHECKED_OUT; returns the open record."""
    if status.state != AttendanceState.CHECKED_IN or status.attendance is None:
        raise NotCheckedIn("No active check-in found")
    return status.attendance
