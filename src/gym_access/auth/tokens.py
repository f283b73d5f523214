from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Mapping, Optional

import jwt

from ..common.datetime_utils import now_local
from ..core.constants import JWT_ALGORITHM
from ..core.enums import Role, TokenKind
from ..core.exceptions import ConfigError


class VerifyError(Exception):
    """Token verification failure.

    ``reason`` is ``"expired"`` (signature valid, clock past ``exp``) or
    ``"invalid"`` (bad signature, malformed token, wrong token kind).
    """

    reason = "invalid"


class TokenExpiredError(VerifyError):
    reason = "expired"

    def __init__(self, payload: "TokenPayload"):
        super().__init__("token expired")
        self.payload = payload


class TokenInvalidError(VerifyError):
    reason = "invalid"


@dataclass(frozen=True)
class TokenPayload:
    user_id: int
    role: Role
    kind: TokenKind
    jti: str
    iat: int
    exp: int
    session_id: Optional[str] = None

    @property
    def expires_at(self) -> datetime:
        return datetime.fromtimestamp(self.exp)


class TokenService:
    """Issues and verifies HS256-signed JWTs of a single kind.

    One instance per secret/kind pair (access, refresh, qr). Expiry is checked
    against the injected clock after the signature has been verified, so an
    "expired" result always means the token itself was genuine.
    """

    def __init__(self, secret: str, *, kind: TokenKind, clock: Callable[[], datetime] = now_local):
        if not secret:
            raise ConfigError(f"Signing secret for {kind.value} tokens is not set")
        self._secret = secret
        self._kind = kind
        self._clock = clock

    def issue(self, payload: Mapping[str, Any], ttl: int) -> str:
        iat = int(self._clock().timestamp())
        claims = dict(payload)
        claims.update(
            {
                "typ": self._kind.value,
                "jti": uuid.uuid4().hex,
                "iat": iat,
                "exp": iat + int(ttl),
            }
        )
        return jwt.encode(claims, self._secret, algorithm=JWT_ALGORITHM)

    def issue_for(self, *, user_id: int, role: Role, ttl: int, session_id: Optional[str] = None) -> str:
        payload: dict[str, Any] = {"userId": int(user_id), "role": role.value}
        if session_id:
            payload["sessionId"] = session_id
        return self.issue(payload, ttl)

    def verify(self, token: str) -> TokenPayload:
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[JWT_ALGORITHM],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "require": ["exp", "iat", "jti"],
                },
            )
        except jwt.InvalidTokenError as exc:
            raise TokenInvalidError(str(exc)) from exc

        payload = self._to_payload(claims)
        if int(self._clock().timestamp()) >= payload.exp:
            raise TokenExpiredError(payload)
        return payload

    def _to_payload(self, claims: Mapping[str, Any]) -> TokenPayload:
        if claims.get("typ") != self._kind.value:
            raise TokenInvalidError(f"expected a {self._kind.value} token")
        try:
            return TokenPayload(
                user_id=int(claims["userId"]),
                role=Role(claims["role"]),
                kind=self._kind,
                jti=str(claims["jti"]),
                iat=int(claims["iat"]),
                exp=int(claims["exp"]),
                session_id=claims.get("sessionId"),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise TokenInvalidError("malformed token payload") from exc
