from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import Role
from .model import AttendanceRecord, NewAttendance


class OpenAttendanceExists(Exception):
    """Raised by ``create_attendance`` when the user already has an open record."""


class AttendanceRepository(Protocol):
    """Persistence port for attendance records.

    Implementations must make ``create_attendance`` and ``close_attendance``
    atomic with respect to the one-open-record-per-user invariant: a plain
    read-then-write is not acceptable.
    """

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def find_open_by_user(self, user_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def create_attendance(self, record: NewAttendance) -> AttendanceRecord:
        """Insert a record; raise OpenAttendanceExists if it is open and one already is."""

        raise NotImplementedError

    def close_attendance(
        self,
        attendance_id: int,
        check_out_time: datetime,
        *,
        notes: Optional[str] = None,
        auto_checkout: bool = False,
    ) -> Optional[AttendanceRecord]:
        """Set check_out_time if the record is still open; None if it was not."""

        raise NotImplementedError

    def query_by_date_range(
        self,
        start_date: date,
        end_date: date,
        *,
        user_id: Optional[int] = None,
        user_role: Optional[Role] = None,
    ) -> Sequence[AttendanceRecord]:
        """Records with start_date <= work_date <= end_date, newest first."""

        raise NotImplementedError

    def list_for_user(self, user_id: int, *, limit: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_open(self, *, user_role: Optional[Role] = None) -> Sequence[AttendanceRecord]:
        raise NotImplementedError
