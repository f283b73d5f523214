from __future__ import annotations

import logging

from flask import Flask, request

from ..common.http import json_body, ok
from ..container import Container
from ..core.constants import REFRESH_PATH
from .cookies import clear_auth_cookies, extract_refresh_token, set_access_cookie, set_auth_cookies
from .gate import authenticate, current_auth

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    settings = container.settings
    auth_service = container.auth_service
    login_required = authenticate(container.access_tokens)

    @app.route("/auth/register", methods=["POST"], endpoint="auth_register")
    def register_member():
        data = json_body()
        user_id = auth_service.register(
            name=data.get("name", ""),
            email=data.get("email", ""),
            password=data.get("password", ""),
        )
        return ok({"userId": user_id}, "Account created successfully", 201)

    @app.route("/auth/login", methods=["POST"], endpoint="auth_login")
    def login():
        data = json_body()
        result = auth_service.login(data.get("email", ""), data.get("password", ""))
        logger.info("login user=%s role=%s session=%s", result.user.user_id, result.user.role.value, result.session_id)

        response, status = ok(result.user.to_public(), "Login successful")
        set_auth_cookies(
            response,
            access_token=result.access_token,
            refresh_token=result.refresh_token,
            settings=settings,
        )
        return response, status

    @app.route(REFRESH_PATH, methods=["GET"], endpoint="auth_refresh")
    def refresh():
        access_token = auth_service.refresh(extract_refresh_token(request))
        response, status = ok(None, "Access token refreshed")
        set_access_cookie(response, access_token, settings)
        return response, status

    @app.route("/auth/logout", methods=["GET"], endpoint="auth_logout")
    def logout():
        response, status = ok(None, "Logout successful")
        clear_auth_cookies(response)
        return response, status

    @app.route("/auth/me", methods=["GET"], endpoint="auth_me")
    @login_required
    def me():
        auth = current_auth()
        return ok({"userId": auth.user_id, "sessionId": auth.session_id, "role": auth.role.value})
