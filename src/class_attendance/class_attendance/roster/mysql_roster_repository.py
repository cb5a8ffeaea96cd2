from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import Enrollment, SClass, Student, Subject, Teacher, TeacherAssignment
from .repository import RosterRepository

_STUDENT_COLUMNS = "student_id, name, roll_num, university_id, class_id, school_id"


class MySQLRosterRepository(RosterRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_class(self, class_id: int) -> Optional[SClass]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT class_id, class_name, school_id FROM sclasses WHERE class_id=%s", (class_id,))
            row = fetchone(cur)
            if not row:
                return None
            return SClass(class_id=int(row["class_id"]), class_name=row["class_name"], school_id=int(row["school_id"]))

    def get_subject(self, subject_id: int) -> Optional[Subject]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT subject_id, sub_name, sub_code, sessions, class_id, school_id, teacher_id
                FROM subjects
                WHERE subject_id=%s
                """,
                (subject_id,),
            )
            row = fetchone(cur)
            if not row:
                return None
            return Subject(
                subject_id=int(row["subject_id"]),
                sub_name=row["sub_name"],
                sub_code=row["sub_code"],
                sessions=int(row["sessions"] or 0),
                class_id=int(row["class_id"]),
                school_id=int(row["school_id"]),
                teacher_id=row.get("teacher_id"),
            )

    def get_teacher(self, teacher_id: int) -> Optional[Teacher]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT teacher_id, name, email, school_id, teach_class_id, teach_subject_id
                FROM teachers
                WHERE teacher_id=%s
                """,
                (teacher_id,),
            )
            row = fetchone(cur)
            if not row:
                return None
            cur.execute(
                """
                SELECT subject_id, class_id, assigned_at
                FROM teacher_assignments
                WHERE teacher_id=%s
                ORDER BY assigned_at
                """,
                (teacher_id,),
            )
            assignments = tuple(
                TeacherAssignment(subject_id=int(a["subject_id"]), class_id=int(a["class_id"]), assigned_at=a["assigned_at"])
                for a in fetchall(cur)
            )
            return Teacher(
                teacher_id=int(row["teacher_id"]),
                name=row["name"],
                email=row["email"],
                school_id=int(row["school_id"]),
                teach_class_id=row.get("teach_class_id"),
                teach_subject_id=row.get("teach_subject_id"),
                assignments=assignments,
            )

    def get_student(self, student_id: int) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_STUDENT_COLUMNS} FROM students WHERE student_id=%s", (student_id,))
            row = fetchone(cur)
            if not row:
                return None
            enrollments = self._load_enrollments(cur, [int(row["student_id"])])
            return self._to_student(row, enrollments)

    def list_students_in_class(self, class_id: int) -> Sequence[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_STUDENT_COLUMNS} FROM students WHERE class_id=%s ORDER BY roll_num",
                (class_id,),
            )
            rows = fetchall(cur)
            enrollments = self._load_enrollments(cur, [int(r["student_id"]) for r in rows])
            return [self._to_student(r, enrollments) for r in rows]

    def find_students_by_university_pattern(self, *, school_id: int, regex: Optional[str]) -> Sequence[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            if regex is None:
                cur.execute(
                    f"SELECT {_STUDENT_COLUMNS} FROM students WHERE school_id=%s ORDER BY university_id, roll_num",
                    (school_id,),
                )
            else:
                cur.execute(
                    f"""
                    SELECT {_STUDENT_COLUMNS}
                    FROM students
                    WHERE school_id=%s AND REGEXP_LIKE(university_id, %s, 'i')
                    ORDER BY university_id, roll_num
                    """,
                    (school_id, regex),
                )
            rows = fetchall(cur)
            enrollments = self._load_enrollments(cur, [int(r["student_id"]) for r in rows])
            return [self._to_student(r, enrollments) for r in rows]

    def update_student_class(self, *, student_id: int, class_id: int, subject_ids: Optional[Sequence[int]] = None) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE students SET class_id=%s WHERE student_id=%s", (class_id, student_id))
            updated = cur.rowcount > 0
            if subject_ids is not None:
                now = datetime.now()
                cur.execute("DELETE FROM student_enrollments WHERE student_id=%s", (student_id,))
                for subject_id in subject_ids:
                    cur.execute(
                        "INSERT INTO student_enrollments(student_id, subject_id, enrolled_at) VALUES(%s,%s,%s)",
                        (student_id, subject_id, now),
                    )
            return updated

    def update_teacher_assignments(
        self,
        *,
        teacher_id: int,
        assignments: Sequence[TeacherAssignment],
        teach_class_id: Optional[int],
        teach_subject_id: Optional[int],
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE teachers SET teach_class_id=%s, teach_subject_id=%s WHERE teacher_id=%s",
                (teach_class_id, teach_subject_id, teacher_id),
            )
            cur.execute("DELETE FROM teacher_assignments WHERE teacher_id=%s", (teacher_id,))
            for a in assignments:
                cur.execute(
                    """
                    INSERT INTO teacher_assignments(teacher_id, subject_id, class_id, assigned_at)
                    VALUES(%s,%s,%s,%s)
                    """,
                    (teacher_id, a.subject_id, a.class_id, a.assigned_at or datetime.now()),
                )
            return True

    @staticmethod
    def _load_enrollments(cur, student_ids: list[int]) -> dict[int, list[Enrollment]]:
        out: dict[int, list[Enrollment]] = {}
        if not student_ids:
            return out
        cur.execute(
            f"""
            SELECT student_id, subject_id, enrolled_at
            FROM student_enrollments
            WHERE student_id IN ({in_clause(student_ids)})
            """,
            tuple(student_ids),
        )
        for r in fetchall(cur):
            out.setdefault(int(r["student_id"]), []).append(
                Enrollment(subject_id=int(r["subject_id"]), enrolled_at=r["enrolled_at"])
            )
        return out

    @staticmethod
    def _to_student(row: dict, enrollments: dict[int, list[Enrollment]]) -> Student:
        student_id = int(row["student_id"])
        return Student(
            student_id=student_id,
            name=row["name"],
            roll_num=int(row["roll_num"]),
            class_id=int(row["class_id"]),
            school_id=int(row["school_id"]),
            university_id=row.get("university_id"),
            enrolled_subjects=tuple(enrollments.get(student_id, [])),
        )
