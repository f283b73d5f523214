from __future__ import annotations

import logging
from typing import Any, Optional

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from ..core.enums import ErrorCode
from ..core.exceptions import DomainError

logger = logging.getLogger(__name__)


def ok(data: Any = None, message: Optional[str] = None, status: int = 200):
    body: dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    return jsonify(body), status


def fail(error_code: ErrorCode | str, message: str, status: int):
    code = error_code.value if isinstance(error_code, ErrorCode) else str(error_code)
    return jsonify({"success": False, "errorCode": code, "message": message}), status


def json_body() -> dict:
    """Request JSON object, or an empty dict when the body is missing."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        if e.status_code in (401, 403):
            logger.warning("%s %s rejected: %s (%s)", request.method, request.path, e.message, e.error_code.value)
        return fail(e.error_code, e.message, e.status_code)

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        code = {
            404: ErrorCode.NOT_FOUND,
            405: ErrorCode.METHOD_NOT_ALLOWED,
        }.get(e.code or 500, ErrorCode.VALIDATION_ERROR if (e.code or 500) < 500 else ErrorCode.INTERNAL_ERROR)
        return fail(code, e.description or e.name, e.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        message = f"Server Error: {e}" if app.config.get("DEBUG") else "Server Error"
        return fail(ErrorCode.INTERNAL_ERROR, message, 500)
