from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import SClass, Student, Subject, Teacher, TeacherAssignment


class RosterRepository(Protocol):
    """Lookups for the entities attendance is marked against.

    Class/subject/teacher/student creation lives outside this service; here
    they are resolved by id and, for bulk management, re-pointed.
    """

    def get_class(self, class_id: int) -> Optional[SClass]:
        raise NotImplementedError

    def get_subject(self, subject_id: int) -> Optional[Subject]:
        raise NotImplementedError

    def get_teacher(self, teacher_id: int) -> Optional[Teacher]:
        raise NotImplementedError

    def get_student(self, student_id: int) -> Optional[Student]:
        raise NotImplementedError

    def list_students_in_class(self, class_id: int) -> Sequence[Student]:
        """Students of a class ordered by roll number."""

        raise NotImplementedError

    def find_students_by_university_pattern(self, *, school_id: int, regex: Optional[str]) -> Sequence[Student]:
        """Students of a school whose university id matches ``regex`` (case-insensitive).

        ``regex=None`` returns every student of the school.
        """

        raise NotImplementedError

    def update_student_class(self, *, student_id: int, class_id: int, subject_ids: Optional[Sequence[int]] = None) -> bool:
        """Move a student; when ``subject_ids`` is given the enrollment list is replaced."""

        raise NotImplementedError

    def update_teacher_assignments(
        self,
        *,
        teacher_id: int,
        assignments: Sequence[TeacherAssignment],
        teach_class_id: Optional[int],
        teach_subject_id: Optional[int],
    ) -> bool:
        raise NotImplementedError
