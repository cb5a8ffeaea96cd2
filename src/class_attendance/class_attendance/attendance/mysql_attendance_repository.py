from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import AttendanceFilter, AttendanceRecord
from .repository import AttendanceRepository

_COLUMNS = """
    record_id, class_id, subject_id, teacher_id, student_id, attendance_date, session, status,
    marked_by, marked_at, last_modified_by, last_modified_at, school_id
"""


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        record_id=int(r["record_id"]),
        class_id=int(r["class_id"]),
        subject_id=int(r["subject_id"]),
        teacher_id=int(r["teacher_id"]),
        student_id=int(r["student_id"]),
        attendance_date=r["attendance_date"],
        session=r["session"],
        status=AttendanceStatus(r["status"]),
        marked_by=int(r["marked_by"]),
        marked_at=r["marked_at"],
        school_id=int(r["school_id"]),
        last_modified_by=r.get("last_modified_by"),
        last_modified_at=r.get("last_modified_at"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, record_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_records WHERE record_id=%s", (record_id,))
            r = fetchone(cur)
            return _to_record(r) if r else None

    def find_slot(
        self, *, student_id: int, subject_id: int, attendance_date: date, session: str
    ) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE student_id=%s AND subject_id=%s AND attendance_date=%s AND session=%s
                """,
                (student_id, subject_id, attendance_date, session),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def upsert(
        self,
        *,
        class_id: int,
        subject_id: int,
        teacher_id: int,
        student_id: int,
        attendance_date: date,
        session: str,
        status: AttendanceStatus,
        marked_by: int,
        school_id: int,
        now: datetime,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            # LAST_INSERT_ID(expr) makes lastrowid point at the existing row on the update path.
            cur.execute(
                """
                INSERT INTO attendance_records(
                    class_id, subject_id, teacher_id, student_id, attendance_date, session, status,
                    marked_by, marked_at, school_id
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    record_id=LAST_INSERT_ID(record_id),
                    status=VALUES(status),
                    last_modified_by=VALUES(marked_by),
                    last_modified_at=VALUES(marked_at)
                """,
                (
                    class_id,
                    subject_id,
                    teacher_id,
                    student_id,
                    attendance_date,
                    session,
                    status.value,
                    marked_by,
                    now,
                    school_id,
                ),
            )
            return int(cur.lastrowid)

    def update_status(self, *, record_id: int, status: AttendanceStatus, modified_by: int, now: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET status=%s, last_modified_by=%s, last_modified_at=%s
                WHERE record_id=%s
                """,
                (status.value, modified_by, now, record_id),
            )
            return cur.rowcount > 0

    def update_class(self, *, record_id: int, class_id: int, modified_by: int, now: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET class_id=%s, last_modified_by=%s, last_modified_at=%s
                WHERE record_id=%s
                """,
                (class_id, modified_by, now, record_id),
            )
            return cur.rowcount > 0

    def delete(self, *, record_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM attendance_records WHERE record_id=%s", (record_id,))
            return cur.rowcount > 0

    def search(
        self,
        *,
        filters: AttendanceFilter,
        offset: int,
        limit: int,
        newest_first: bool = True,
    ) -> tuple[Sequence[AttendanceRecord], int]:
        where: list[str] = []
        params: list = []
        for column, value in (
            ("class_id", filters.class_id),
            ("subject_id", filters.subject_id),
            ("teacher_id", filters.teacher_id),
            ("student_id", filters.student_id),
            ("school_id", filters.school_id),
            ("session", filters.session),
        ):
            if value is not None:
                where.append(f"{column}=%s")
                params.append(value)
        if filters.status is not None:
            where.append("status=%s")
            params.append(filters.status.value)
        if filters.start_date:
            where.append("attendance_date >= %s")
            params.append(filters.start_date)
        if filters.end_date:
            where.append("attendance_date <= %s")
            params.append(filters.end_date)

        where_sql = f"WHERE {' AND '.join(where)}" if where else ""
        order = "DESC" if newest_first else "ASC"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM attendance_records {where_sql}", tuple(params))
            total = int((fetchone(cur) or {}).get("total", 0))
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                {where_sql}
                ORDER BY attendance_date {order}, record_id {order}
                LIMIT %s OFFSET %s
                """,
                (*params, int(limit), int(offset)),
            )
            return [_to_record(r) for r in fetchall(cur)], total

    def list_for_session(
        self, *, class_id: int, subject_id: int, attendance_date: date, session: str
    ) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE class_id=%s AND subject_id=%s AND attendance_date=%s AND session=%s
                ORDER BY student_id
                """,
                (class_id, subject_id, attendance_date, session),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_for_student(
        self,
        *,
        student_id: int,
        subject_id: Optional[int] = None,
        class_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Sequence[AttendanceRecord]:
        where = ["student_id=%s"]
        params: list = [student_id]
        if subject_id is not None:
            where.append("subject_id=%s")
            params.append(subject_id)
        if class_id is not None:
            where.append("class_id=%s")
            params.append(class_id)
        if start_date:
            where.append("attendance_date >= %s")
            params.append(start_date)
        if end_date:
            where.append("attendance_date <= %s")
            params.append(end_date)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE {" AND ".join(where)}
                ORDER BY attendance_date, session
                """,
                tuple(params),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def count_by_status(self, *, student_id: int, subject_id: int, class_id: int) -> dict[AttendanceStatus, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT status, COUNT(*) AS count
                FROM attendance_records
                WHERE student_id=%s AND subject_id=%s AND class_id=%s
                GROUP BY status
                """,
                (student_id, subject_id, class_id),
            )
            counts = {s: 0 for s in AttendanceStatus}
            for r in fetchall(cur):
                counts[AttendanceStatus(r["status"])] = int(r["count"])
            return counts

    def distinct_enrollments(self, *, school_id: int) -> Sequence[tuple[int, int, int]]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT DISTINCT student_id, subject_id, class_id
                FROM attendance_records
                WHERE school_id=%s
                ORDER BY class_id, subject_id, student_id
                """,
                (school_id,),
            )
            return [(int(r["student_id"]), int(r["subject_id"]), int(r["class_id"])) for r in fetchall(cur)]
