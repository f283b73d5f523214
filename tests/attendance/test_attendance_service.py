from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from gym_access.core.enums import AttendanceMethod, AttendanceState, Role, TokenKind
from gym_access.core.exceptions import (
    AlreadyCheckedIn,
    ExpiredQR,
    Forbidden,
    InvalidQR,
    NotCheckedIn,
    NotFound,
    ReplayedQR,
    ValidationError,
)
from gym_access.auth.tokens import TokenService

from conftest import T0


def _qr(container, user):
    return container.qr_issuer.generate_check_in_qr(user.user_id, user.role).token


def _open_records(container, user_id):
    records = container.attendance_repo.list_for_user(user_id, limit=1000)
    return [r for r in records if r.is_open]


def test_qr_scenario_check_in_replay_check_out(container, accounts, clock):
    svc = container.attendance_service
    alex = accounts.member

    token = _qr(container, alex)  # T0, 5 minute TTL

    clock.advance(minutes=1)
    record = svc.check_in(token)
    assert record.method == AttendanceMethod.QR
    assert record.check_in_time == T0 + timedelta(minutes=1)
    assert svc.get_status(alex.user_id).state == AttendanceState.CHECKED_IN

    clock.advance(minutes=1)
    with pytest.raises(ReplayedQR):
        svc.check_in(token)

    clock.advance(minutes=1)
    closed = svc.check_out(alex.user_id)
    assert closed.check_out_time == T0 + timedelta(minutes=3)
    assert closed.duration_minutes == 2
    assert svc.get_status(alex.user_id).state == AttendanceState.CHECKED_OUT

    with pytest.raises(NotCheckedIn):
        svc.check_out(alex.user_id)


def test_expired_qr_is_expired_not_invalid(container, accounts, clock):
    token = _qr(container, accounts.member)
    clock.advance(seconds=container.settings.qr_token_ttl_seconds)

    with pytest.raises(ExpiredQR):
        container.attendance_service.check_in(token)


def test_tampered_or_foreign_qr_is_invalid(container, accounts):
    foreign = TokenService("someone-else", kind=TokenKind.QR, clock=lambda: T0)
    token = foreign.issue_for(user_id=accounts.member.user_id, role=Role.MEMBER, ttl=300)

    with pytest.raises(InvalidQR):
        container.attendance_service.check_in(token)


def test_access_token_cannot_be_used_as_qr(container, accounts):
    token = container.access_tokens.issue_for(user_id=accounts.member.user_id, role=Role.MEMBER, ttl=300)

    with pytest.raises(InvalidQR):
        container.attendance_service.check_in(token)


def test_second_qr_while_checked_in_is_rejected(container, accounts, clock):
    svc = container.attendance_service
    svc.check_in(_qr(container, accounts.member))

    clock.advance(minutes=10)
    with pytest.raises(AlreadyCheckedIn):
        svc.check_in(_qr(container, accounts.member))
    assert len(_open_records(container, accounts.member.user_id)) == 1


def test_failed_check_in_does_not_consume_token(container, accounts):
    svc = container.attendance_service
    alex = accounts.member
    svc.check_in(_qr(container, alex))

    token = _qr(container, alex)
    with pytest.raises(AlreadyCheckedIn):
        svc.check_in(token)
    # Not ReplayedQR: the first attempt never consumed the token.
    with pytest.raises(AlreadyCheckedIn):
        svc.check_in(token)


def test_rejected_token_is_still_usable_within_ttl(container, accounts, clock):
    svc = container.attendance_service
    alex = accounts.member
    clock.now = datetime(2026, 3, 2, 23, 58, 0)
    svc.force_check_in(alex.user_id, Role.STAFF, actor_id=accounts.staff.user_id)

    token = _qr(container, alex)
    with pytest.raises(AlreadyCheckedIn):
        svc.check_in(token)

    clock.advance(minutes=1)
    svc.check_out(alex.user_id)

    # Past midnight the day resets; the same token is still inside its TTL.
    clock.advance(minutes=2)
    record = svc.check_in(token)
    assert record.work_date == datetime(2026, 3, 3).date()
    with pytest.raises(ReplayedQR):
        svc.check_in(token)


def test_check_in_after_check_out_same_day_is_rejected(container, accounts, clock):
    svc = container.attendance_service
    alex = accounts.member
    svc.check_in(_qr(container, alex))
    clock.advance(hours=1)
    svc.check_out(alex.user_id)

    clock.advance(hours=1)
    with pytest.raises(AlreadyCheckedIn):
        svc.check_in(_qr(container, alex))


def test_new_day_resets_state(container, accounts, clock):
    svc = container.attendance_service
    alex = accounts.member
    svc.check_in(_qr(container, alex))
    clock.advance(hours=1)
    svc.check_out(alex.user_id)

    clock.advance(days=1)
    assert svc.get_status(alex.user_id).state == AttendanceState.NOT_CHECKED_IN
    record = svc.check_in(_qr(container, alex))
    assert record.work_date == (T0 + timedelta(days=1, hours=1)).date()


def test_open_record_from_previous_day_is_auto_checked_out(container, accounts, clock):
    svc = container.attendance_service
    alex = accounts.member
    stale = svc.check_in(_qr(container, alex))

    clock.advance(days=1)
    fresh = svc.check_in(_qr(container, alex))

    closed = container.attendance_repo.get_by_id(stale.attendance_id)
    assert closed.auto_checkout is True
    assert closed.check_out_time == datetime(2026, 3, 2, 23, 59, 59)
    assert fresh.is_open
    assert len(_open_records(container, alex.user_id)) == 1


def test_check_in_for_unknown_user_is_not_found(container):
    token = container.qr_tokens.issue_for(user_id=999, role=Role.MEMBER, ttl=300)
    with pytest.raises(NotFound):
        container.attendance_service.check_in(token)


def test_check_out_without_open_record_mutates_nothing(container, accounts, clock):
    svc = container.attendance_service
    alex = accounts.member
    svc.check_in(_qr(container, alex))
    clock.advance(minutes=30)
    svc.check_out(alex.user_id)
    before = list(container.attendance_repo.list_for_user(alex.user_id, limit=10))

    clock.advance(minutes=30)
    with pytest.raises(NotCheckedIn):
        svc.check_out(alex.user_id)

    assert list(container.attendance_repo.list_for_user(alex.user_id, limit=10)) == before


def test_manager_force_check_in_creates_forced_record(container, accounts):
    svc = container.attendance_service
    billie = accounts.other_member

    record = svc.force_check_in(billie.user_id, Role.MANAGER, actor_id=accounts.manager.user_id)

    assert record.method == AttendanceMethod.FORCED
    assert record.entered_by == accounts.manager.user_id
    assert record.is_open
    assert svc.get_status(billie.user_id).state == AttendanceState.CHECKED_IN


def test_member_cannot_force_check_in(container, accounts):
    with pytest.raises(Forbidden):
        container.attendance_service.force_check_in(accounts.other_member.user_id, Role.MEMBER)


def test_force_check_in_closes_and_reopens_existing_session(container, accounts, clock):
    svc = container.attendance_service
    alex = accounts.member
    first = svc.check_in(_qr(container, alex))

    clock.advance(minutes=45)
    forced = svc.force_check_in(alex.user_id, Role.STAFF, actor_id=accounts.staff.user_id)

    previous = container.attendance_repo.get_by_id(first.attendance_id)
    assert previous.check_out_time == clock.now
    assert "Closed by forced check-in" in previous.notes
    assert forced.is_open and forced.method == AttendanceMethod.FORCED
    assert [r.attendance_id for r in _open_records(container, alex.user_id)] == [forced.attendance_id]


def test_force_check_in_for_unknown_user_is_not_found(container, accounts):
    with pytest.raises(NotFound):
        container.attendance_service.force_check_in(12345, Role.MANAGER)


def test_manual_entry_records_closed_session(container, accounts):
    svc = container.attendance_service
    record = svc.create_manual_entry(
        accounts.member.user_id,
        check_in_time=T0 - timedelta(days=1, hours=2),
        check_out_time=T0 - timedelta(days=1, hours=1),
        notes="Forgot to scan",
        entered_by=accounts.staff.user_id,
    )

    assert record.method == AttendanceMethod.MANUAL
    assert record.duration_minutes == 60
    assert record.entered_by == accounts.staff.user_id
    assert svc.get_status(accounts.member.user_id).state == AttendanceState.NOT_CHECKED_IN


def test_manual_entry_checkout_must_follow_checkin(container, accounts):
    with pytest.raises(ValidationError):
        container.attendance_service.create_manual_entry(
            accounts.member.user_id,
            check_in_time=T0 - timedelta(hours=1),
            check_out_time=T0 - timedelta(hours=2),
        )


def test_open_manual_entry_respects_single_open_record(container, accounts):
    svc = container.attendance_service
    svc.check_in(_qr(container, accounts.member))

    with pytest.raises(AlreadyCheckedIn):
        svc.create_manual_entry(accounts.member.user_id, check_in_time=T0 - timedelta(hours=1))


def test_currently_checked_in_and_today(container, accounts, clock):
    svc = container.attendance_service
    svc.check_in(_qr(container, accounts.member))
    svc.force_check_in(accounts.staff.user_id, Role.MANAGER, actor_id=accounts.manager.user_id)
    svc.check_in(_qr(container, accounts.other_member))
    clock.advance(minutes=5)
    svc.check_out(accounts.other_member.user_id)

    open_ids = {r.user_id for r in svc.get_currently_checked_in()}
    assert open_ids == {accounts.member.user_id, accounts.staff.user_id}
    assert {r.user_id for r in svc.get_currently_checked_in(Role.STAFF)} == {accounts.staff.user_id}
    assert len(svc.get_today_attendance()) == 3
    assert len(svc.get_today_attendance(Role.MEMBER)) == 2


def test_user_history_requires_both_dates(container, accounts):
    with pytest.raises(ValidationError):
        container.attendance_service.get_user_attendance(accounts.member.user_id, start_date=T0.date())


def test_member_without_membership_is_refused_at_the_scanner(container, accounts):
    svc = container.attendance_service
    alex = accounts.member
    container.users_repo.set_membership(alex.user_id, expires_at=None)
    token = _qr(container, alex)

    with pytest.raises(Forbidden):
        svc.check_in(token)
    assert svc.get_status(alex.user_id).state == AttendanceState.NOT_CHECKED_IN

    # Staff override for exactly this case.
    forced = svc.force_check_in(alex.user_id, Role.STAFF, actor_id=accounts.staff.user_id)
    assert forced.method == AttendanceMethod.FORCED


def test_lapsed_membership_is_refused_but_token_is_not_consumed(container, accounts):
    svc = container.attendance_service
    alex = accounts.member
    container.users_repo.set_membership(alex.user_id, expires_at=T0)
    token = _qr(container, alex)

    with pytest.raises(Forbidden):
        svc.check_in(token)

    container.users_repo.set_membership(alex.user_id, expires_at=T0 + timedelta(days=30))
    assert svc.check_in(token).method == AttendanceMethod.QR


def test_staff_need_no_membership_to_scan_in(container, accounts):
    staff = accounts.staff
    assert staff.membership_expires_at is None

    record = container.attendance_service.check_in(_qr(container, staff))
    assert record.user_role == Role.STAFF


def test_force_check_in_auto_closes_record_from_earlier_day(container, accounts, clock):
    svc = container.attendance_service
    billie = accounts.other_member
    stale = svc.force_check_in(billie.user_id, Role.MANAGER, actor_id=accounts.manager.user_id)

    clock.advance(days=3)
    fresh = svc.force_check_in(billie.user_id, Role.MANAGER, actor_id=accounts.manager.user_id)

    closed = container.attendance_repo.get_by_id(stale.attendance_id)
    assert closed.check_out_time == datetime(2026, 3, 2, 23, 59, 59)
    assert closed.auto_checkout is True
    assert fresh.work_date == datetime(2026, 3, 5).date()
    assert [r.attendance_id for r in _open_records(container, billie.user_id)] == [fresh.attendance_id]


def test_check_out_of_record_from_earlier_day_closes_at_end_of_that_day(container, accounts, clock):
    svc = container.attendance_service
    alex = accounts.member
    svc.check_in(_qr(container, alex))

    clock.advance(days=2)
    closed = svc.check_out(alex.user_id, notes="Left without scanning")

    assert closed.check_out_time == datetime(2026, 3, 2, 23, 59, 59)
    assert closed.auto_checkout is True
    assert "Checkout: Left without scanning" in closed.notes
    assert closed.duration_minutes == 900
    assert svc.get_status(alex.user_id).state == AttendanceState.NOT_CHECKED_IN
