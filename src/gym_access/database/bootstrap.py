from __future__ import annotations

import logging
import re
from datetime import timedelta
from pathlib import Path
from typing import Iterable

from werkzeug.security import generate_password_hash

from ..common.datetime_utils import now_local
from ..core.constants import DEMO_MEMBERSHIP_DAYS
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"

DEMO_USERS = (
    ("Gym Manager", "manager@gym.local", "manager123", "manager"),
    ("Front Desk", "staff@gym.local", "staff123", "staff"),
    ("Demo Member", "member@gym.local", "member123", "member"),
)


def _strip_create_db_and_use(sql: str) -> str:
    # Keep schema.sql compatible regardless of DB name.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def _strip_comments(sql: str) -> str:
    return "\n".join(line for line in sql.splitlines() if not line.lstrip().startswith("--"))


def _iter_sql_statements(sql: str) -> Iterable[str]:
    # schema.sql has no ';' inside literals, a plain split is enough.
    for stmt in sql.split(";"):
        stmt = stmt.strip()
        if stmt:
            yield stmt


def ensure_database_exists(conn_factory: DatabaseConnection) -> None:
    database = conn_factory.config.database
    conn = conn_factory.connect(with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(conn_factory: DatabaseConnection, *, schema_path: str | Path = SCHEMA_PATH) -> None:
    ensure_database_exists(conn_factory)
    sql = _strip_comments(_strip_create_db_and_use(Path(schema_path).read_text(encoding="utf-8")))

    conn = conn_factory.connect()
    try:
        cur = conn.cursor()
        for stmt in _iter_sql_statements(sql):
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()
    logger.info("schema ready (tables=%d)", len(list_tables(conn_factory)))


def ensure_demo_users(conn_factory: DatabaseConnection) -> None:
    """Create or reset one account per role for local testing."""
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=True)
        for name, email, password, role in DEMO_USERS:
            password_hash = generate_password_hash(password)
            membership = now_local() + timedelta(days=DEMO_MEMBERSHIP_DAYS) if role == "member" else None
            cur.execute("SELECT user_id FROM users WHERE email=%s", (email,))
            if cur.fetchone():
                cur.execute(
                    "UPDATE users SET name=%s, password_hash=%s, role=%s, is_active=1, membership_expires_at=%s "
                    "WHERE email=%s",
                    (name, password_hash, role, membership, email),
                )
            else:
                cur.execute(
                    "INSERT INTO users (name, email, password_hash, role, membership_expires_at) "
                    "VALUES (%s, %s, %s, %s, %s)",
                    (name, email, password_hash, role, membership),
                )
        conn.commit()
    finally:
        conn.close()
    logger.info("demo users ready (%s)", ", ".join(u[1] for u in DEMO_USERS))


def list_tables(conn_factory: DatabaseConnection) -> list[str]:
    conn = conn_factory.connect()
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
