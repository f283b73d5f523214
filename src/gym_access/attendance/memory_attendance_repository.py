from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date, datetime
from typing import Dict, Optional, Sequence

from ..core.enums import Role
from .model import AttendanceRecord, NewAttendance
from .repository import AttendanceRepository, OpenAttendanceExists


def _newest_first(records):
    return sorted(records, key=lambda r: (r.work_date, r.check_in_time, r.attendance_id), reverse=True)


class InMemoryAttendanceRepository(AttendanceRepository):
    """Process-local store; the lock makes check-and-insert / check-and-close atomic."""

    def __init__(self):
        self._lock = threading.Lock()
        self._records: Dict[int, AttendanceRecord] = {}
        self._next_id = 1

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        return self._records.get(int(attendance_id))

    def find_open_by_user(self, user_id: int) -> Optional[AttendanceRecord]:
        with self._lock:
            return self._find_open(int(user_id))

    def _find_open(self, user_id: int) -> Optional[AttendanceRecord]:
        return next((r for r in self._records.values() if r.user_id == user_id and r.is_open), None)

    def create_attendance(self, record: NewAttendance) -> AttendanceRecord:
        with self._lock:
            if record.check_out_time is None and self._find_open(record.user_id):
                raise OpenAttendanceExists(record.user_id)
            created = AttendanceRecord(
                attendance_id=self._next_id,
                user_id=record.user_id,
                user_role=record.user_role,
                work_date=record.work_date,
                check_in_time=record.check_in_time,
                check_out_time=record.check_out_time,
                method=record.method,
                notes=record.notes,
                entered_by=record.entered_by,
            )
            self._records[created.attendance_id] = created
            self._next_id += 1
            return created

    def close_attendance(
        self,
        attendance_id: int,
        check_out_time: datetime,
        *,
        notes: Optional[str] = None,
        auto_checkout: bool = False,
    ) -> Optional[AttendanceRecord]:
        with self._lock:
            current = self._records.get(int(attendance_id))
            if current is None or not current.is_open:
                return None
            closed = replace(
                current,
                check_out_time=check_out_time,
                notes=notes if notes is not None else current.notes,
                auto_checkout=auto_checkout,
            )
            self._records[closed.attendance_id] = closed
            return closed

    def query_by_date_range(
        self,
        start_date: date,
        end_date: date,
        *,
        user_id: Optional[int] = None,
        user_role: Optional[Role] = None,
    ) -> Sequence[AttendanceRecord]:
        with self._lock:
            items = [
                r
                for r in self._records.values()
                if start_date <= r.work_date <= end_date
                and (user_id is None or r.user_id == user_id)
                and (user_role is None or r.user_role == user_role)
            ]
        return _newest_first(items)

    def list_for_user(self, user_id: int, *, limit: int) -> Sequence[AttendanceRecord]:
        with self._lock:
            items = [r for r in self._records.values() if r.user_id == int(user_id)]
        return _newest_first(items)[:limit]

    def list_open(self, *, user_role: Optional[Role] = None) -> Sequence[AttendanceRecord]:
        with self._lock:
            items = [
                r for r in self._records.values() if r.is_open and (user_role is None or r.user_role == user_role)
            ]
        return sorted(items, key=lambda r: r.check_in_time, reverse=True)
