from __future__ import annotations

import logging
from collections import Counter, defaultdict
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..auth.tokens import TokenExpiredError, TokenPayload, TokenService, VerifyError
from ..common.datetime_utils import end_of_day, now_local
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import STAFF_ROLES, AttendanceMethod, AttendanceState, Role
from ..core.exceptions import (
    AlreadyCheckedIn,
    ExpiredQR,
    Forbidden,
    InvalidQR,
    NotCheckedIn,
    NotFound,
    ReplayedQR,
    ValidationError,
)
from ..users.model import User
from ..users.repository import UserRepository
from .model import AttendanceRecord, AttendanceStats, AttendanceStatus, DailyStatsRow, NewAttendance
from .replay_guard import ReplayGuard
from .repository import AttendanceRepository, OpenAttendanceExists
from .state import derive_state, ensure_can_check_in, ensure_can_check_out

logger = logging.getLogger(__name__)


def _append_note(existing: Optional[str], note: Optional[str]) -> Optional[str]:
    if not note:
        return existing
    return f"{existing}. {note}" if existing else note


class AttendanceService:
    """Check-in / check-out use cases and attendance queries."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        users: UserRepository,
        replay_guard: ReplayGuard,
        qr_tokens: TokenService,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._users = users
        self._replay_guard = replay_guard
        self._qr_tokens = qr_tokens
        self._clock = clock

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def check_in(self, token: str, *, notes: Optional[str] = None) -> AttendanceRecord:
        """Consume a QR token and open an attendance record for its user.

        The token id is claimed in the replay-guard before any state is read
        and released again if the check-in fails, so only a successful
        check-in uses the token up.
        """
        now = self._clock()
        payload = self._verify_qr(token)

        if not self._replay_guard.claim(payload.jti, payload.expires_at, now=now):
            logger.warning("replayed QR token jti=%s user=%s", payload.jti, payload.user_id)
            raise ReplayedQR()

        try:
            user = self._require_user(payload.user_id)
            if not user.has_active_membership(now):
                raise Forbidden("No active membership found. Access denied.")
            record = self._open_session(user, now=now, method=AttendanceMethod.QR, notes=notes)
        except Exception:
            self._replay_guard.release(payload.jti)
            raise

        logger.info("check-in user=%s attendance=%s method=qr", user.user_id, record.attendance_id)
        return record

    def force_check_in(
        self,
        user_id: int,
        actor_role: Role,
        *,
        actor_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> AttendanceRecord:
        """Staff/manager override that opens a record without a QR token.

        Bypasses the membership check. An open record from today is closed
        now and a new ``forced`` record is opened (auto-close-and-reopen); one
        left over from an earlier day is auto-checked-out at the end of that
        day first. A user who already checked out today may also be forced
        back in.
        """
        if actor_role not in STAFF_ROLES:
            raise Forbidden("Only staff or managers can force check-in")

        user = self._require_user(user_id)
        now = self._clock()

        existing = self._close_stale(user.user_id, now.date())
        if existing is not None:
            closing_note = f"Closed by forced check-in ({actor_role.value})"
            self._attendance.close_attendance(
                existing.attendance_id, now, notes=_append_note(existing.notes, closing_note)
            )
            logger.info("forced check-in closed open attendance=%s user=%s", existing.attendance_id, user.user_id)

        forced_note = _append_note(f"Force check-in by {actor_role.value}", notes)
        try:
            record = self._attendance.create_attendance(
                NewAttendance(
                    user_id=user.user_id,
                    user_role=user.role,
                    work_date=now.date(),
                    check_in_time=now,
                    method=AttendanceMethod.FORCED,
                    notes=forced_note,
                    entered_by=actor_id,
                )
            )
        except OpenAttendanceExists:
            raise AlreadyCheckedIn("Another check-in for this user was recorded at the same time") from None

        logger.info("check-in user=%s attendance=%s method=forced by=%s", user.user_id, record.attendance_id, actor_id)
        return record

    def check_out(self, user_id: int, *, notes: Optional[str] = None) -> AttendanceRecord:
        """Close the user's open record.

        A record opened on an earlier day is closed at the end of that day
        and flagged ``auto_checkout`` rather than spanning several days.
        """
        now = self._clock()
        open_record = self._attendance.find_open_by_user(int(user_id))
        record = ensure_can_check_out(derive_state(int(user_id), now.date(), open_record, ()))

        checkout_note = f"Checkout: {notes}" if notes else None
        if record.work_date < now.date():
            closed = self._auto_close(record, extra_note=checkout_note)
        else:
            closed = self._attendance.close_attendance(
                record.attendance_id, now, notes=_append_note(record.notes, checkout_note)
            )
        if closed is None:
            # Closed by a concurrent request between the read and the update.
            raise NotCheckedIn("No active check-in found")

        logger.info("check-out user=%s attendance=%s minutes=%s", user_id, closed.attendance_id, closed.duration_minutes)
        return closed

    def create_manual_entry(
        self,
        user_id: int,
        *,
        check_in_time: datetime,
        check_out_time: Optional[datetime] = None,
        notes: Optional[str] = None,
        entered_by: Optional[int] = None,
    ) -> AttendanceRecord:
        """Record attendance on behalf of a user (e.g. a forgotten scan)."""
        now = self._clock()
        if check_in_time > now:
            raise ValidationError("checkInTime cannot be in the future")
        if check_out_time is not None and check_out_time <= check_in_time:
            raise ValidationError("Check-out time must be after check-in time")

        user = self._require_user(user_id)
        try:
            record = self._attendance.create_attendance(
                NewAttendance(
                    user_id=user.user_id,
                    user_role=user.role,
                    work_date=check_in_time.date(),
                    check_in_time=check_in_time,
                    check_out_time=check_out_time,
                    method=AttendanceMethod.MANUAL,
                    notes=notes,
                    entered_by=entered_by,
                )
            )
        except OpenAttendanceExists:
            raise AlreadyCheckedIn("User already has an open attendance record") from None

        logger.info("manual entry user=%s attendance=%s by=%s", user.user_id, record.attendance_id, entered_by)
        return record

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get_status(self, user_id: int) -> AttendanceStatus:
        today = self._clock().date()
        open_record = self._attendance.find_open_by_user(int(user_id))
        today_records = self._attendance.query_by_date_range(today, today, user_id=int(user_id))
        return derive_state(int(user_id), today, open_record, today_records)

    def get_user_attendance(
        self,
        user_id: int,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> Sequence[AttendanceRecord]:
        if (start_date is None) != (end_date is None):
            raise ValidationError("startDate and endDate must be given together")
        if start_date is not None and end_date is not None:
            self._check_range(start_date, end_date)
            return self._attendance.query_by_date_range(start_date, end_date, user_id=int(user_id))
        return self._attendance.list_for_user(int(user_id), limit=limit)

    def get_today_attendance(self, user_role: Optional[Role] = None) -> Sequence[AttendanceRecord]:
        today = self._clock().date()
        return self._attendance.query_by_date_range(today, today, user_role=user_role)

    def get_currently_checked_in(self, user_role: Optional[Role] = None) -> Sequence[AttendanceRecord]:
        return self._attendance.list_open(user_role=user_role)

    def get_attendance_stats(
        self, start_date: date, end_date: date, user_role: Optional[Role] = None
    ) -> AttendanceStats:
        self._check_range(start_date, end_date)
        records = self._attendance.query_by_date_range(start_date, end_date, user_role=user_role)

        groups: Dict[Tuple[date, Role], List[AttendanceRecord]] = defaultdict(list)
        for r in records:
            groups[(r.work_date, r.user_role)].append(r)

        daily = []
        for (day, role), items in groups.items():
            durations = [r.duration_minutes for r in items if r.duration_minutes is not None]
            daily.append(
                DailyStatsRow(
                    date=day,
                    user_role=role,
                    total_attendance=len(items),
                    unique_users=len({r.user_id for r in items}),
                    total_duration=sum(durations),
                    avg_duration=round(sum(durations) / len(durations), 2) if durations else None,
                )
            )
        # date descending, role ascending
        daily.sort(key=lambda row: row.user_role.value)
        daily.sort(key=lambda row: row.date, reverse=True)

        methods = Counter(r.method.value for r in records)
        states = Counter(
            (AttendanceState.CHECKED_IN if r.is_open else AttendanceState.CHECKED_OUT).value for r in records
        )
        return AttendanceStats(
            start_date=start_date,
            end_date=end_date,
            daily=daily,
            by_method={m.value: methods.get(m.value, 0) for m in AttendanceMethod},
            by_state={
                AttendanceState.CHECKED_IN.value: states.get(AttendanceState.CHECKED_IN.value, 0),
                AttendanceState.CHECKED_OUT.value: states.get(AttendanceState.CHECKED_OUT.value, 0),
            },
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _verify_qr(self, token: str) -> TokenPayload:
        if not token:
            raise InvalidQR("QR token is required")
        try:
            return self._qr_tokens.verify(token)
        except TokenExpiredError as exc:
            logger.warning("expired QR token for user=%s", exc.payload.user_id)
            raise ExpiredQR() from None
        except VerifyError:
            raise InvalidQR() from None

    def _require_user(self, user_id: int) -> User:
        user = self._users.get_by_id(int(user_id))
        if user is None or not user.is_active:
            raise NotFound("User not found")
        return user

    def _open_session(self, user: User, *, now: datetime, method: AttendanceMethod, notes: Optional[str]) -> AttendanceRecord:
        today = now.date()
        open_record = self._close_stale(user.user_id, today)
        today_records = self._attendance.query_by_date_range(today, today, user_id=user.user_id)
        ensure_can_check_in(derive_state(user.user_id, today, open_record, today_records))

        try:
            return self._attendance.create_attendance(
                NewAttendance(
                    user_id=user.user_id,
                    user_role=user.role,
                    work_date=today,
                    check_in_time=now,
                    method=method,
                    notes=notes,
                )
            )
        except OpenAttendanceExists:
            raise AlreadyCheckedIn("User is already checked in") from None

    def _close_stale(self, user_id: int, today: date) -> Optional[AttendanceRecord]:
        """Auto-checkout an open record left over from an earlier day.

        Returns the open record only if it belongs to ``today``.
        """
        open_record = self._attendance.find_open_by_user(user_id)
        if open_record is None or open_record.work_date >= today:
            return open_record
        self._auto_close(open_record)
        return None

    def _auto_close(self, record: AttendanceRecord, *, extra_note: Optional[str] = None) -> Optional[AttendanceRecord]:
        notes = _append_note(_append_note(record.notes, "Auto checkout at end of day"), extra_note)
        closed = self._attendance.close_attendance(
            record.attendance_id, end_of_day(record.work_date), notes=notes, auto_checkout=True
        )
        if closed is not None:
            logger.info("auto checkout user=%s attendance=%s", record.user_id, closed.attendance_id)
        return closed

    @staticmethod
    def _check_range(start_date: date, end_date: date) -> None:
        if end_date < start_date:
            raise ValidationError("endDate must not be before startDate")
