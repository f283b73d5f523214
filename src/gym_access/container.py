from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from .attendance.memory_attendance_repository import InMemoryAttendanceRepository
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.qr import QRIssuer
from .attendance.replay_guard import InMemoryReplayGuard, MySQLReplayGuard, ReplayGuard
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .auth.service import AuthService
from .auth.tokens import TokenService
from .common.datetime_utils import now_local
from .config.settings import Settings
from .core.constants import DEMO_MEMBERSHIP_DAYS
from .core.enums import Role, TokenKind
from .database.bootstrap import DEMO_USERS
from .database.connection import DatabaseConnection, DBConfig
from .users.memory_user_repository import InMemoryUserRepository
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import UserService


@dataclass(frozen=True)
class Container:
    settings: Settings
    conn: Optional[DatabaseConnection]

    users_repo: UserRepository
    attendance_repo: AttendanceRepository
    replay_guard: ReplayGuard

    access_tokens: TokenService
    refresh_tokens: TokenService
    qr_tokens: TokenService

    auth_service: AuthService
    user_service: UserService
    qr_issuer: QRIssuer
    attendance_service: AttendanceService


def build_container(settings: Settings, *, clock: Callable[[], datetime] = now_local) -> Container:
    conn: Optional[DatabaseConnection] = None
    if settings.storage_backend == "mysql":
        conn = DatabaseConnection(DBConfig.from_mapping(settings.db_config))
        users_repo: UserRepository = MySQLUserRepository(conn)
        attendance_repo: AttendanceRepository = MySQLAttendanceRepository(conn)
        replay_guard: ReplayGuard = MySQLReplayGuard(conn)
    else:
        users_repo = InMemoryUserRepository()
        attendance_repo = InMemoryAttendanceRepository()
        replay_guard = InMemoryReplayGuard()

    access_tokens = TokenService(settings.jwt_secret, kind=TokenKind.ACCESS, clock=clock)
    refresh_tokens = TokenService(settings.jwt_refresh_secret, kind=TokenKind.REFRESH, clock=clock)
    # QR tokens share the access secret; the "typ" claim keeps the kinds apart.
    qr_tokens = TokenService(settings.jwt_secret, kind=TokenKind.QR, clock=clock)

    auth_service = AuthService(users_repo, access_tokens, refresh_tokens, settings)
    user_service = UserService(users_repo)
    qr_issuer = QRIssuer(qr_tokens, ttl_seconds=settings.qr_token_ttl_seconds)
    attendance_service = AttendanceService(attendance_repo, users_repo, replay_guard, qr_tokens, clock=clock)

    return Container(
        settings=settings,
        conn=conn,
        users_repo=users_repo,
        attendance_repo=attendance_repo,
        replay_guard=replay_guard,
        access_tokens=access_tokens,
        refresh_tokens=refresh_tokens,
        qr_tokens=qr_tokens,
        auth_service=auth_service,
        user_service=user_service,
        qr_issuer=qr_issuer,
        attendance_service=attendance_service,
    )


def seed_memory_users(container: Container, *, clock: Callable[[], datetime] = now_local) -> None:
    """Demo accounts for the ``memory`` backend (MySQL uses ``ensure_demo_users``)."""
    for name, email, password, role in DEMO_USERS:
        if container.users_repo.get_by_email(email) is not None:
            continue
        user_id = container.auth_service.register(name=name, email=email, password=password, role=Role(role))
        if Role(role) == Role.MEMBER:
            container.user_service.set_membership(user_id, clock() + timedelta(days=DEMO_MEMBERSHIP_DAYS))
