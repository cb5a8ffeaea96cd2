from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import AttendanceSummary


class SummaryRepository(Protocol):
    def get(self, *, student_id: int, subject_id: int, class_id: int) -> Optional[AttendanceSummary]:
        raise NotImplementedError

    def upsert(self, summary: AttendanceSummary) -> None:
        raise NotImplementedError

    def list_for_student(
        self, *, student_id: int, subject_id: Optional[int] = None, class_id: Optional[int] = None
    ) -> Sequence[AttendanceSummary]:
        raise NotImplementedError

    def list_for_class(self, *, class_id: int, subject_id: Optional[int] = None) -> Sequence[AttendanceSummary]:
        raise NotImplementedError

    def list_for_school(self, *, school_id: int) -> Sequence[AttendanceSummary]:
        raise NotImplementedError

    def delete_for_class(self, *, student_id: int, class_id: int) -> int:
        """Drop a student's summaries in one class. Returns rows deleted."""

        raise NotImplementedError
