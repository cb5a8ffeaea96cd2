from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceFilter, AttendanceRecord


class AttendanceRepository(Protocol):
    def get_by_id(self, record_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def find_slot(
        self, *, student_id: int, subject_id: int, attendance_date: date, session: str
    ) -> Optional[AttendanceRecord]:
        raise NotImplementedError

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
        """Insert the slot, or overwrite its status if the slot already exists.

        Returns record_id.
        """

        raise NotImplementedError

    def update_status(self, *, record_id: int, status: AttendanceStatus, modified_by: int, now: datetime) -> bool:
        raise NotImplementedError

    def update_class(self, *, record_id: int, class_id: int, modified_by: int, now: datetime) -> bool:
        raise NotImplementedError

    def delete(self, *, record_id: int) -> bool:
        raise NotImplementedError

    def search(
        self,
        *,
        filters: AttendanceFilter,
        offset: int,
        limit: int,
        newest_first: bool = True,
    ) -> tuple[Sequence[AttendanceRecord], int]:
        """Page of matching records plus the total match count."""

        raise NotImplementedError

    def list_for_session(
        self, *, class_id: int, subject_id: int, attendance_date: date, session: str
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_for_student(
        self,
        *,
        student_id: int,
        subject_id: Optional[int] = None,
        class_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def count_by_status(self, *, student_id: int, subject_id: int, class_id: int) -> dict[AttendanceStatus, int]:
        raise NotImplementedError

    def distinct_enrollments(self, *, school_id: int) -> Sequence[tuple[int, int, int]]:
        """Every (student_id, subject_id, class_id) that has at least one record."""

        raise NotImplementedError
