from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import wraps
from typing import Callable, FrozenSet, Optional

from flask import g, request

from ..core.enums import STAFF_ROLES, ErrorCode, Role
from ..core.exceptions import Forbidden, Unauthorized
from .cookies import extract_access_token
from .tokens import TokenExpiredError, TokenService, VerifyError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    """Identity attached to ``flask.g.auth`` once the gate lets a request through."""

    user_id: int
    role: Role
    session_id: Optional[str] = None

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    def can_act_for(self, user_id: int) -> bool:
        return self.is_staff or self.user_id == int(user_id)


def roles(*names: Role | str) -> FrozenSet[Role]:
    """Immutable role set, built once per route registration."""
    return frozenset(Role(n) for n in names)


def authorize(access_tokens: TokenService, token: Optional[str], allowed_roles: Optional[FrozenSet[Role]] = None) -> AuthContext:
    """Run the gate's two decision points against a raw token."""
    if not token:
        raise Unauthorized("Unauthorized")

    try:
        payload = access_tokens.verify(token)
    except TokenExpiredError:
        raise Unauthorized("Token expired", error_code=ErrorCode.ACCESS_TOKEN_EXPIRED) from None
    except VerifyError:
        raise Unauthorized("Invalid token", error_code=ErrorCode.INVALID_ACCESS_TOKEN) from None

    if allowed_roles and payload.role not in allowed_roles:
        raise Forbidden("Insufficient permissions")

    return AuthContext(user_id=payload.user_id, role=payload.role, session_id=payload.session_id)


def authenticate(access_tokens: TokenService, allowed_roles: Optional[FrozenSet[Role]] = None) -> Callable:
    """Decorator factory guarding a Flask view.

    No persistence I/O: identity and role travel inside the token.
    """
    allowed = frozenset(allowed_roles) if allowed_roles else None

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            g.auth = authorize(access_tokens, extract_access_token(request), allowed)
            logger.debug("auth ok user=%s role=%s path=%s", g.auth.user_id, g.auth.role.value, request.path)
            return view(*args, **kwargs)

        return wrapper

    return decorator


def current_auth() -> AuthContext:
    auth = getattr(g, "auth", None)
    if auth is None:
        raise Unauthorized("Unauthorized")
    return auth


def require_self_or_staff(user_id: int) -> AuthContext:
    """Members may only act on their own records; staff and managers on anyone's."""
    auth = current_auth()
    if not auth.can_act_for(user_id):
        raise Forbidden("Members can only access their own attendance")
    return auth
