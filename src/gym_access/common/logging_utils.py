from __future__ import annotations

import logging

LOG_FORMAT = "[gym-access] %(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the package logger.

    Safe to call more than once (tests build many apps).
    """
    logger = logging.getLogger("gym_access")
    logger.setLevel(level.upper())
    if not any(getattr(h, "_gym_access", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._gym_access = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
