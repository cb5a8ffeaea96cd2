from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import AttendanceSummary
from .repository import SummaryRepository

_COLUMNS = """
    student_id, subject_id, class_id, school_id, present_count, absent_count, late_count,
    excused_count, last_updated
"""


def _to_summary(r: dict) -> AttendanceSummary:
    return AttendanceSummary(
        student_id=int(r["student_id"]),
        subject_id=int(r["subject_id"]),
        class_id=int(r["class_id"]),
        school_id=int(r["school_id"]),
        present_count=int(r["present_count"]),
        absent_count=int(r["absent_count"]),
        late_count=int(r["late_count"]),
        excused_count=int(r["excused_count"]),
        last_updated=r["last_updated"],
    )


class MySQLSummaryRepository(SummaryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, *, student_id: int, subject_id: int, class_id: int) -> Optional[AttendanceSummary]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_summaries
                WHERE student_id=%s AND subject_id=%s AND class_id=%s
                """,
                (student_id, subject_id, class_id),
            )
            r = fetchone(cur)
            return _to_summary(r) if r else None

    def upsert(self, summary: AttendanceSummary) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_summaries(
                    student_id, subject_id, class_id, school_id, total_sessions, present_count,
                    absent_count, late_count, excused_count, attendance_percentage, last_updated
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    total_sessions=VALUES(total_sessions),
                    present_count=VALUES(present_count),
                    absent_count=VALUES(absent_count),
                    late_count=VALUES(late_count),
                    excused_count=VALUES(excused_count),
                    attendance_percentage=VALUES(attendance_percentage),
                    last_updated=VALUES(last_updated)
                """,
                (
                    summary.student_id,
                    summary.subject_id,
                    summary.class_id,
                    summary.school_id,
                    summary.total_sessions,
                    summary.present_count,
                    summary.absent_count,
                    summary.late_count,
                    summary.excused_count,
                    summary.attendance_percentage,
                    summary.last_updated,
                ),
            )

    def list_for_student(
        self, *, student_id: int, subject_id: Optional[int] = None, class_id: Optional[int] = None
    ) -> Sequence[AttendanceSummary]:
        where = ["student_id=%s"]
        params: list = [student_id]
        if subject_id is not None:
            where.append("subject_id=%s")
            params.append(subject_id)
        if class_id is not None:
            where.append("class_id=%s")
            params.append(class_id)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_summaries
                WHERE {" AND ".join(where)}
                ORDER BY subject_id
                """,
                tuple(params),
            )
            return [_to_summary(r) for r in fetchall(cur)]

    def list_for_class(self, *, class_id: int, subject_id: Optional[int] = None) -> Sequence[AttendanceSummary]:
        with db_cursor(self._conn_factory) as (_, cur):
            if subject_id is None:
                cur.execute(f"SELECT {_COLUMNS} FROM attendance_summaries WHERE class_id=%s", (class_id,))
            else:
                cur.execute(
                    f"SELECT {_COLUMNS} FROM attendance_summaries WHERE class_id=%s AND subject_id=%s",
                    (class_id, subject_id),
                )
            return [_to_summary(r) for r in fetchall(cur)]

    def list_for_school(self, *, school_id: int) -> Sequence[AttendanceSummary]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_summaries WHERE school_id=%s", (school_id,))
            return [_to_summary(r) for r in fetchall(cur)]

    def delete_for_class(self, *, student_id: int, class_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM attendance_summaries WHERE student_id=%s AND class_id=%s",
                (student_id, class_id),
            )
            return int(cur.rowcount)
