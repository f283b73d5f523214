from __future__ import annotations

from flask import Flask

from ..auth.gate import authenticate, require_self_or_staff, roles
from ..common.datetime_utils import parse_iso_datetime
from ..common.http import json_body, ok
from ..common.validators import parse_user_id
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    service = container.user_service
    login_required = authenticate(container.access_tokens)
    staff_required = authenticate(container.access_tokens, roles(Role.MANAGER, Role.STAFF))
    manager_required = authenticate(container.access_tokens, roles(Role.MANAGER))

    @app.route("/users/<user_id>", methods=["GET"], endpoint="users_get")
    @login_required
    def get_user(user_id: str):
        uid = parse_user_id(user_id)
        require_self_or_staff(uid)
        return ok(service.get_user(uid).to_public(), "User retrieved successfully")

    @app.route("/users/<user_id>/membership", methods=["PUT"], endpoint="users_membership")
    @staff_required
    def set_membership(user_id: str):
        data = json_body()
        if "expiresAt" not in data:
            raise ValidationError("expiresAt is required (null clears the membership)")
        expires_at = parse_iso_datetime(data.get("expiresAt"), "expiresAt")
        user = service.set_membership(parse_user_id(user_id), expires_at)
        return ok(user.to_public(), "Membership updated successfully")

    @app.route("/users/<user_id>/status", methods=["PUT"], endpoint="users_status")
    @manager_required
    def set_status(user_id: str):
        is_active = json_body().get("isActive")
        if not isinstance(is_active, bool):
            raise ValidationError("isActive must be true or false")
        user = service.set_active(parse_user_id(user_id), is_active)
        return ok(user.to_public(), "Account status updated successfully")
