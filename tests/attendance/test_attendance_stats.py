from __future__ import annotations

from datetime import timedelta

import pytest

from gym_access.core.enums import AttendanceState, Role
from gym_access.core.exceptions import ValidationError

from conftest import T0

YESTERDAY = T0 - timedelta(days=1)


@pytest.fixture
def history(container, accounts):
    svc = container.attendance_service

    def manual(user, minutes):
        svc.create_manual_entry(
            user.user_id,
            check_in_time=YESTERDAY,
            check_out_time=YESTERDAY + timedelta(minutes=minutes),
            entered_by=accounts.manager.user_id,
        )

    manual(accounts.member, 60)
    manual(accounts.other_member, 30)
    manual(accounts.staff, 120)
    token = container.qr_issuer.generate_check_in_qr(accounts.member.user_id, Role.MEMBER).token
    svc.check_in(token)
    return svc


def test_daily_rows_are_grouped_by_date_and_role(history):
    stats = history.get_attendance_stats(YESTERDAY.date(), T0.date())
    rows = [(r.date, r.user_role, r.total_attendance, r.unique_users, r.total_duration, r.avg_duration) for r in stats.daily]

    assert rows == [
        (T0.date(), Role.MEMBER, 1, 1, 0, None),
        (YESTERDAY.date(), Role.MEMBER, 2, 2, 90, 45.0),
        (YESTERDAY.date(), Role.STAFF, 1, 1, 120, 120.0),
    ]


def test_totals_by_method_and_state(history):
    stats = history.get_attendance_stats(YESTERDAY.date(), T0.date())

    assert stats.by_method == {"qr": 1, "manual": 3, "forced": 0}
    assert stats.by_state == {AttendanceState.CHECKED_IN.value: 1, AttendanceState.CHECKED_OUT.value: 3}


def test_role_filter_limits_the_records(history):
    stats = history.get_attendance_stats(YESTERDAY.date(), T0.date(), Role.STAFF)

    assert [r.user_role for r in stats.daily] == [Role.STAFF]
    assert sum(stats.by_method.values()) == 1


def test_stats_dict_uses_camel_case(history):
    body = history.get_attendance_stats(T0.date(), T0.date()).to_dict()

    assert body["startDate"] == T0.date().isoformat()
    assert body["daily"][0]["uniqueUsersCount"] == 1
    assert set(body) == {"startDate", "endDate", "daily", "byMethod", "byState"}


def test_end_before_start_is_rejected(container):
    with pytest.raises(ValidationError):
        container.attendance_service.get_attendance_stats(T0.date(), YESTERDAY.date())
