from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from ..core.enums import AttendanceMethod, AttendanceState, Role


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one check-in, optionally closed by a check-out."""

    attendance_id: int
    user_id: int
    user_role: Role
    work_date: date
    check_in_time: datetime
    check_out_time: Optional[datetime]
    method: AttendanceMethod
    notes: Optional[str] = None
    entered_by: Optional[int] = None
    auto_checkout: bool = False

    @property
    def is_open(self) -> bool:
        return self.check_out_time is None

    @property
    def duration_minutes(self) -> Optional[int]:
        if self.check_out_time is None:
            return None
        return round((self.check_out_time - self.check_in_time).total_seconds() / 60)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attendanceId": self.attendance_id,
            "userId": self.user_id,
            "userRole": self.user_role.value,
            "date": self.work_date.isoformat(),
            "checkInTime": self.check_in_time.isoformat(),
            "checkOutTime": self.check_out_time.isoformat() if self.check_out_time else None,
            "durationMinutes": self.duration_minutes,
            "method": self.method.value,
            "status": "checked-in" if self.is_open else ("auto-checkout" if self.auto_checkout else "checked-out"),
            "notes": self.notes,
            "enteredBy": self.entered_by,
            "autoCheckout": self.auto_checkout,
        }


@dataclass(frozen=True)
class NewAttendance:
    """Values for a record about to be created (no id yet)."""

    user_id: int
    user_role: Role
    work_date: date
    check_in_time: datetime
    method: AttendanceMethod
    check_out_time: Optional[datetime] = None
    notes: Optional[str] = None
    entered_by: Optional[int] = None


@dataclass(frozen=True)
class AttendanceStatus:
    """Read-model answering "where is this user today?"."""

    user_id: int
    state: AttendanceState
    attendance: Optional[AttendanceRecord] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "state": self.state.value,
            "isCheckedIn": self.state == AttendanceState.CHECKED_IN,
            "attendance": self.attendance.to_dict() if self.attendance else None,
        }


@dataclass(frozen=True)
class DailyStatsRow:
    date: date
    user_role: Role
    total_attendance: int
    unique_users: int
    total_duration: int
    avg_duration: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "userRole": self.user_role.value,
            "totalAttendance": self.total_attendance,
            "uniqueUsersCount": self.unique_users,
            "totalDuration": self.total_duration,
            "avgDuration": self.avg_duration,
        }


@dataclass(frozen=True)
class AttendanceStats:
    start_date: date
    end_date: date
    daily: List[DailyStatsRow] = field(default_factory=list)
    by_method: Dict[str, int] = field(default_factory=dict)
    by_state: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
            "daily": [r.to_dict() for r in self.daily],
            "byMethod": dict(self.by_method),
            "byState": dict(self.by_state),
        }
