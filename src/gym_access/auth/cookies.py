from __future__ import annotations

from typing import Optional

from flask import Request, Response

from ..config.settings import Settings
from ..core.constants import ACCESS_TOKEN_COOKIE, REFRESH_PATH, REFRESH_TOKEN_COOKIE


def _defaults(settings: Settings) -> dict:
    return {"httponly": True, "samesite": "Strict", "secure": settings.secure_cookies}


def set_access_cookie(response: Response, token: str, settings: Settings) -> Response:
    # Max-Age, not Expires: the clock is naive local time and Werkzeug treats naive datetimes as UTC.
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        token,
        max_age=settings.access_token_ttl_seconds,
        **_defaults(settings),
    )
    return response


def set_auth_cookies(
    response: Response,
    *,
    access_token: str,
    refresh_token: str,
    settings: Settings,
) -> Response:
    set_access_cookie(response, access_token, settings)
    response.set_cookie(
        REFRESH_TOKEN_COOKIE,
        refresh_token,
        max_age=settings.refresh_token_ttl_seconds,
        path=REFRESH_PATH,
        **_defaults(settings),
    )
    return response


def clear_auth_cookies(response: Response) -> Response:
    response.delete_cookie(ACCESS_TOKEN_COOKIE)
    response.delete_cookie(REFRESH_TOKEN_COOKIE, path=REFRESH_PATH)
    return response


def extract_access_token(request: Request) -> Optional[str]:
    """Access token from the cookie, falling back to an ``Authorization: Bearer`` header."""
    token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if token:
        return token

    header = request.headers.get("Authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return None


def extract_refresh_token(request: Request) -> Optional[str]:
    return request.cookies.get(REFRESH_TOKEN_COOKIE) or None
