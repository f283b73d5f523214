from __future__ import annotations

import threading
from datetime import datetime
from typing import Dict, Protocol

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, is_duplicate_key


class ReplayGuard(Protocol):
    """Set of consumed one-time token ids.

    ``claim`` is an atomic check-and-set: it returns True exactly once per
    ``jti`` until the entry expires.
    """

    def claim(self, jti: str, expires_at: datetime, *, now: datetime) -> bool:
        raise NotImplementedError

    def release(self, jti: str) -> None:
        raise NotImplementedError


class InMemoryReplayGuard(ReplayGuard):
    """Single-process guard; expired ids are purged on every claim."""

    def __init__(self):
        self._lock = threading.Lock()
        self._consumed: Dict[str, datetime] = {}

    def claim(self, jti: str, expires_at: datetime, *, now: datetime) -> bool:
        with self._lock:
            self._purge(now)
            if jti in self._consumed:
                return False
            self._consumed[jti] = expires_at
            return True

    def release(self, jti: str) -> None:
        with self._lock:
            self._consumed.pop(jti, None)

    def _purge(self, now: datetime) -> None:
        for key in [k for k, exp in self._consumed.items() if exp <= now]:
            del self._consumed[key]

    def __len__(self) -> int:
        return len(self._consumed)


class MySQLReplayGuard(ReplayGuard):
    """Guard shared by every worker; the primary key on ``jti`` does the check-and-set."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def claim(self, jti: str, expires_at: datetime, *, now: datetime) -> bool:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute("DELETE FROM consumed_qr_tokens WHERE expires_at <= %s", (now,))
                cur.execute(
                    "INSERT INTO consumed_qr_tokens(jti, consumed_at, expires_at) VALUES(%s,%s,%s)",
                    (jti, now, expires_at),
                )
        except Exception as exc:
            if is_duplicate_key(exc):
                return False
            raise
        return True

    def release(self, jti: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM consumed_qr_tokens WHERE jti=%s", (jti,))
