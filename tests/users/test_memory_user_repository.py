from __future__ import annotations

import pytest

from gym_access.core.enums import Role
from gym_access.core.exceptions import NotFound, Unauthorized, ValidationError
from gym_access.users.memory_user_repository import InMemoryUserRepository

from conftest import MEMBERSHIP_END, T0


def test_emails_are_unique_and_case_insensitive():
    repo = InMemoryUserRepository()
    user_id = repo.create_user(name="Alex", email="Alex@Example.com", password_hash="x", role=Role.MEMBER)

    assert repo.get_by_email("alex@example.com").user_id == user_id
    with pytest.raises(ValidationError):
        repo.create_user(name="Alex 2", email="alex@example.com ", password_hash="y", role=Role.MEMBER)


def test_membership_is_active_until_it_expires(accounts):
    alex = accounts.member

    assert alex.membership_expires_at == MEMBERSHIP_END
    assert alex.has_active_membership(T0)
    assert not alex.has_active_membership(MEMBERSHIP_END)


def test_deactivated_user_cannot_log_in(container, accounts):
    container.user_service.set_active(accounts.member.user_id, False)

    with pytest.raises(Unauthorized):
        container.auth_service.login("alex@example.com", "secret123")


def test_deactivated_user_cannot_check_in(container, accounts):
    token = container.qr_tokens.issue_for(user_id=accounts.member.user_id, role=Role.MEMBER, ttl=300)
    container.user_service.set_active(accounts.member.user_id, False)

    with pytest.raises(NotFound):
        container.attendance_service.check_in(token)
    assert container.attendance_service.get_status(accounts.member.user_id).attendance is None


def test_user_service_rejects_unknown_user(container):
    with pytest.raises(NotFound):
        container.user_service.set_membership(42, None)
    with pytest.raises(NotFound):
        container.user_service.set_active(42, False)
