from __future__ import annotations

import uuid
from dataclasses import dataclass

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.validators import require_non_empty
from ..config.settings import Settings
from ..core.enums import ErrorCode, Role
from ..core.exceptions import Unauthorized, ValidationError
from ..users.model import User
from ..users.repository import UserRepository
from .tokens import TokenService, VerifyError


@dataclass(frozen=True)
class LoginResult:
    user: User
    session_id: str
    access_token: str
    refresh_token: str


class AuthService:
    """Use case: authenticate a user and mint session tokens.

    Sessions are stateless: the session id only travels inside the tokens.
    """

    def __init__(self, users: UserRepository, access_tokens: TokenService, refresh_tokens: TokenService, settings: Settings):
        self._users = users
        self._access = access_tokens
        self._refresh = refresh_tokens
        self._settings = settings

    def login(self, email: str, password: str) -> LoginResult:
        email = require_non_empty(email, "email").lower()
        password = require_non_empty(password, "password")

        user = self._users.get_by_email(email)
        if not user or not user.is_active:
            raise Unauthorized("Invalid email or password")

        try:
            ok = check_password_hash(user.password_hash, password)
        except ValueError:
            # e.g. placeholder hashes like 'CHANGE_ME'
            ok = False
        if not ok:
            raise Unauthorized("Invalid email or password")

        session_id = uuid.uuid4().hex
        return LoginResult(
            user=user,
            session_id=session_id,
            access_token=self._issue_access(user.user_id, user.role, session_id),
            refresh_token=self._refresh.issue_for(
                user_id=user.user_id,
                role=user.role,
                session_id=session_id,
                ttl=self._settings.refresh_token_ttl_seconds,
            ),
        )

    def refresh(self, refresh_token: str | None) -> str:
        """Exchange a refresh token for a new access token in the same session."""
        if not refresh_token:
            raise Unauthorized("Missing refresh token")
        try:
            payload = self._refresh.verify(refresh_token)
        except VerifyError as exc:
            message = "Refresh token expired" if exc.reason == "expired" else "Invalid refresh token"
            raise Unauthorized(message, error_code=ErrorCode.INVALID_REFRESH_TOKEN) from None

        user = self._users.get_by_id(payload.user_id)
        if not user or not user.is_active:
            raise Unauthorized("Invalid refresh token", error_code=ErrorCode.INVALID_REFRESH_TOKEN)
        return self._issue_access(user.user_id, user.role, payload.session_id)

    def register(self, *, name: str, email: str, password: str, role: Role = Role.MEMBER) -> int:
        name = require_non_empty(name, "name")
        email = require_non_empty(email, "email").lower()
        if "@" not in email:
            raise ValidationError("email is invalid")
        if len(password or "") < 6:
            raise ValidationError("password must be at least 6 characters")
        if self._users.get_by_email(email):
            raise ValidationError("Email is already registered")
        return self._users.create_user(name=name, email=email, password_hash=generate_password_hash(password), role=role)

    def _issue_access(self, user_id: int, role: Role, session_id: str | None) -> str:
        return self._access.issue_for(
            user_id=user_id, role=role, session_id=session_id, ttl=self._settings.access_token_ttl_seconds
        )
