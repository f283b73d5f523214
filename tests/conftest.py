from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta

import pytest
from werkzeug.security import generate_password_hash

from gym_access.config.settings import Settings
from gym_access.container import Container, build_container
from gym_access.core.enums import Role
from gym_access.main import create_app
from gym_access.users.model import User

T0 = datetime(2026, 3, 2, 9, 0, 0)
MEMBERSHIP_END = T0 + timedelta(days=30)


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@dataclass
class Accounts:
    manager: User
    staff: User
    member: User
    other_member: User


def make_accounts(container: Container) -> Accounts:
    repo = container.users_repo

    def add(name: str, email: str, role: Role) -> User:
        user_id = repo.create_user(name=name, email=email, password_hash=generate_password_hash("secret123"), role=role)
        if role == Role.MEMBER:
            repo.set_membership(user_id, expires_at=MEMBERSHIP_END)
        return repo.get_by_id(user_id)

    return Accounts(
        manager=add("Maria Manager", "manager@example.com", Role.MANAGER),
        staff=add("Sam Staff", "staff@example.com", Role.STAFF),
        member=add("Alex Member", "alex@example.com", Role.MEMBER),
        other_member=add("Billie Member", "billie@example.com", Role.MEMBER),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(T0)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        jwt_secret="test-jwt-secret",
        jwt_refresh_secret="test-jwt-refresh-secret",
        environment="testing",
        storage_backend="memory",
        log_level="WARNING",
    )


@pytest.fixture
def container(settings, clock) -> Container:
    return build_container(settings, clock=clock)


@pytest.fixture
def accounts(container) -> Accounts:
    return make_accounts(container)


@pytest.fixture
def app(settings, clock):
    return create_app(settings, clock=clock)


@pytest.fixture
def app_container(app) -> Container:
    return app.extensions["gym_access"]


@pytest.fixture
def app_accounts(app_container) -> Accounts:
    return make_accounts(app_container)


@pytest.fixture
def client(app):
    return app.test_client()


def bearer(container: Container, user: User, *, session_id: str = "test-session") -> dict:
    token = container.access_tokens.issue_for(
        user_id=user.user_id, role=user.role, session_id=session_id, ttl=container.settings.access_token_ttl_seconds
    )
    return {"Authorization": f"Bearer {token}"}


def race(*calls):
    """Run ``calls`` in threads released together; returns each result or raised exception."""
    barrier = threading.Barrier(len(calls))
    results: list = [None] * len(calls)

    def run(index, call):
        barrier.wait()
        try:
            results[index] = call()
        except Exception as exc:
            results[index] = exc

    threads = [threading.Thread(target=run, args=(i, call)) for i, call in enumerate(calls)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)
    return results
