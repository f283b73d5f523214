from __future__ import annotations

import importlib
import logging
import os
import sys
from datetime import datetime
from typing import Callable, Optional

from dotenv import load_dotenv
from flask import Flask

from .attendance.controller import register as register_attendance
from .auth.controller import register as register_auth
from .common.datetime_utils import now_local
from .common.http import ok, register_error_handlers
from .common.logging_utils import configure_logging
from .config import get_settings_module
from .config.settings import Settings, load_settings
from .container import build_container, seed_memory_users
from .core.exceptions import ConfigError
from .database.bootstrap import apply_schema, ensure_demo_users
from .users.controller import register as register_users

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, *, clock: Callable[[], datetime] = now_local) -> Flask:
    """Application factory.

    Without ``settings`` the module selected by ``APP_ENV`` is loaded; a
    missing required value raises ConfigError before any route exists.
    """
    if settings is None:
        load_dotenv(override=False)
        settings_module = get_settings_module()
        settings = load_settings(importlib.import_module(settings_module))
        configure_logging(settings.log_level)
        logger.info("settings=%s db=%s", settings_module, settings.describe_db())
    else:
        configure_logging(settings.log_level)

    app = Flask(__name__)
    app.config["DEBUG"] = settings.debug
    app.config["TESTING"] = settings.environment == "testing"
    app.json.sort_keys = False

    container = build_container(settings, clock=clock)
    if container.conn is not None:
        if settings.auto_init_db:
            apply_schema(container.conn)
        if settings.auto_seed_db:
            ensure_demo_users(container.conn)
    elif settings.auto_seed_db:
        seed_memory_users(container, clock=clock)

    app.extensions["gym_access"] = container
    register_error_handlers(app)
    register_auth(app, container)
    register_users(app, container)
    register_attendance(app, container)

    @app.route("/health", methods=["GET"], endpoint="health")
    def health():
        return ok({"status": "ok", "environment": settings.environment})

    return app


def run() -> None:
    """Console entry point; refuses to serve a misconfigured app."""
    try:
        app = create_app()
    except ConfigError as e:
        configure_logging()
        logger.critical("configuration error: %s", e)
        sys.exit(1)

    port = int(os.getenv("PORT", "5000"))
    app.run(host=os.getenv("HOST", "127.0.0.1"), port=port, debug=app.config["DEBUG"])


if __name__ == "__main__":
    run()
