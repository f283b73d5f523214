from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence

from ..core.enums import AttendanceMethod, Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from .model import AttendanceRecord, NewAttendance
from .repository import AttendanceRepository, OpenAttendanceExists

_COLUMNS = """
    attendance_id, user_id, user_role, work_date, check_in_time, check_out_time,
    method, notes, entered_by, auto_checkout
"""


def _to_record(r: Dict[str, Any]) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        user_id=int(r["user_id"]),
        user_role=Role(r["user_role"]),
        work_date=r["work_date"],
        check_in_time=r["check_in_time"],
        check_out_time=r.get("check_out_time"),
        method=AttendanceMethod(r["method"]),
        notes=r.get("notes"),
        entered_by=int(r["entered_by"]) if r.get("entered_by") is not None else None,
        auto_checkout=bool(r.get("auto_checkout", 0)),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    """MySQL adapter.

    The ``uq_attendance_open_user`` unique key over the generated
    ``open_user_id`` column turns a second open insert for the same user into
    a duplicate-key error, and closing is a compare-and-set on
    ``check_out_time IS NULL``.
    """

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_records WHERE attendance_id=%s", (attendance_id,))
            r = fetchone(cur)
            return _to_record(r) if r else None

    def find_open_by_user(self, user_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_records WHERE open_user_id=%s", (user_id,))
            r = fetchone(cur)
            return _to_record(r) if r else None

    def create_attendance(self, record: NewAttendance) -> AttendanceRecord:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_records(
                        user_id, user_role, work_date, check_in_time, check_out_time,
                        method, notes, entered_by
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        record.user_id,
                        record.user_role.value,
                        record.work_date,
                        record.check_in_time,
                        record.check_out_time,
                        record.method.value,
                        record.notes,
                        record.entered_by,
                    ),
                )
                attendance_id = int(cur.lastrowid)
        except Exception as exc:
            if is_duplicate_key(exc):
                raise OpenAttendanceExists(record.user_id) from exc
            raise

        return AttendanceRecord(
            attendance_id=attendance_id,
            user_id=record.user_id,
            user_role=record.user_role,
            work_date=record.work_date,
            check_in_time=record.check_in_time,
            check_out_time=record.check_out_time,
            method=record.method,
            notes=record.notes,
            entered_by=record.entered_by,
        )

    def close_attendance(
        self,
        attendance_id: int,
        check_out_time: datetime,
        *,
        notes: Optional[str] = None,
        auto_checkout: bool = False,
    ) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET check_out_time=%s, notes=COALESCE(%s, notes), auto_checkout=%s
                WHERE attendance_id=%s AND check_out_time IS NULL
                """,
                (check_out_time, notes, int(auto_checkout), attendance_id),
            )
            if cur.rowcount != 1:
                return None
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_records WHERE attendance_id=%s", (attendance_id,))
            r = fetchone(cur)
            return _to_record(r) if r else None

    def query_by_date_range(
        self,
        start_date: date,
        end_date: date,
        *,
        user_id: Optional[int] = None,
        user_role: Optional[Role] = None,
    ) -> Sequence[AttendanceRecord]:
        where = ["work_date BETWEEN %s AND %s"]
        params: List[Any] = [start_date, end_date]
        if user_id is not None:
            where.append("user_id=%s")
            params.append(user_id)
        if user_role is not None:
            where.append("user_role=%s")
            params.append(user_role.value)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE {' AND '.join(where)}
                ORDER BY work_date DESC, check_in_time DESC, attendance_id DESC
                """,
                tuple(params),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_for_user(self, user_id: int, *, limit: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE user_id=%s
                ORDER BY work_date DESC, check_in_time DESC, attendance_id DESC
                LIMIT %s
                """,
                (user_id, int(limit)),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_open(self, *, user_role: Optional[Role] = None) -> Sequence[AttendanceRecord]:
        sql = f"SELECT {_COLUMNS} FROM attendance_records WHERE open_user_id IS NOT NULL"
        params: tuple = ()
        if user_role is not None:
            sql += " AND user_role=%s"
            params = (user_role.value,)
        sql += " ORDER BY check_in_time DESC"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, params)
            return [_to_record(r) for r in fetchall(cur)]
