from __future__ import annotations

from flask import Flask, Response, request

from ..auth.gate import authenticate, current_auth, require_self_or_staff, roles
from ..common.datetime_utils import parse_iso_date, parse_iso_datetime
from ..common.http import json_body, ok
from ..common.validators import optional_notes, optional_role, parse_user_id, require_non_empty
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import ValidationError
from .qr import render_png


def _records(items) -> list[dict]:
    return [r.to_dict() for r in items]


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service
    login_required = authenticate(container.access_tokens)
    staff_required = authenticate(container.access_tokens, roles(Role.MANAGER, Role.STAFF))

    @app.route("/attendance/generate-qr", methods=["POST"], endpoint="attendance_generate_qr")
    @login_required
    def generate_qr():
        """QR for the caller; identity comes from the access token, never the body."""
        auth = current_auth()
        issued = container.qr_issuer.generate_check_in_qr(auth.user_id, auth.role)
        return ok(issued.to_dict(), "QR code generated successfully")

    @app.route("/attendance/qr.png", methods=["GET"], endpoint="attendance_qr_png")
    @login_required
    def qr_png():
        token = require_non_empty(request.args.get("token"), "token")
        return Response(render_png(token), mimetype="image/png")

    @app.route("/attendance/check-in", methods=["POST"], endpoint="attendance_check_in")
    @staff_required
    def check_in():
        data = json_body()
        token = require_non_empty(data.get("qrToken"), "qrToken")
        record = service.check_in(token, notes=optional_notes(data.get("notes")))
        return ok(record.to_dict(), "Checked in successfully", 201)

    @app.route("/attendance/force-check-in", methods=["POST"], endpoint="attendance_force_check_in")
    @staff_required
    def force_check_in():
        auth = current_auth()
        data = json_body()
        record = service.force_check_in(
            parse_user_id(data.get("userId")),
            auth.role,
            actor_id=auth.user_id,
            notes=optional_notes(data.get("notes")),
        )
        return ok(record.to_dict(), "Member force checked in successfully", 201)

    @app.route("/attendance/check-out/<user_id>", methods=["PUT"], endpoint="attendance_check_out")
    @login_required
    def check_out(user_id: str):
        uid = parse_user_id(user_id)
        require_self_or_staff(uid)
        record = service.check_out(uid, notes=optional_notes(json_body().get("notes")))
        return ok(record.to_dict(), "Checked out successfully")

    @app.route("/attendance/manual-entry", methods=["POST"], endpoint="attendance_manual_entry")
    @staff_required
    def manual_entry():
        auth = current_auth()
        data = json_body()
        check_in_time = parse_iso_datetime(data.get("checkInTime"), "checkInTime")
        if check_in_time is None:
            raise ValidationError("checkInTime is required")
        record = service.create_manual_entry(
            parse_user_id(data.get("userId")),
            check_in_time=check_in_time,
            check_out_time=parse_iso_datetime(data.get("checkOutTime"), "checkOutTime"),
            notes=optional_notes(data.get("notes")),
            entered_by=auth.user_id,
        )
        return ok(record.to_dict(), "Manual attendance entry created successfully", 201)

    @app.route("/attendance/user/<user_id>", methods=["GET"], endpoint="attendance_user")
    @login_required
    def user_attendance(user_id: str):
        uid = parse_user_id(user_id)
        require_self_or_staff(uid)
        items = service.get_user_attendance(
            uid,
            start_date=parse_iso_date(request.args.get("startDate"), "startDate"),
            end_date=parse_iso_date(request.args.get("endDate"), "endDate"),
        )
        return ok(_records(items), "User attendance retrieved successfully")

    @app.route("/attendance/today", methods=["GET"], endpoint="attendance_today")
    @staff_required
    def today():
        items = service.get_today_attendance(optional_role(request.args.get("userRole")))
        return ok(_records(items), "Today's attendance retrieved successfully")

    @app.route("/attendance/currently-checked-in", methods=["GET"], endpoint="attendance_currently_checked_in")
    @staff_required
    def currently_checked_in():
        items = service.get_currently_checked_in(optional_role(request.args.get("userRole")))
        return ok(_records(items), "Currently checked in users retrieved successfully")

    @app.route("/attendance/stats", methods=["GET"], endpoint="attendance_stats")
    @staff_required
    def stats():
        start = parse_iso_date(request.args.get("startDate"), "startDate")
        end = parse_iso_date(request.args.get("endDate"), "endDate")
        if start is None or end is None:
            raise ValidationError("startDate and endDate are required")
        result = service.get_attendance_stats(start, end, optional_role(request.args.get("userRole")))
        return ok(result.to_dict(), "Attendance statistics retrieved successfully")

    @app.route("/attendance/status/<user_id>", methods=["GET"], endpoint="attendance_status")
    @login_required
    def status(user_id: str):
        uid = parse_user_id(user_id)
        require_self_or_staff(uid)
        return ok(service.get_status(uid).to_dict(), "User status retrieved successfully")
