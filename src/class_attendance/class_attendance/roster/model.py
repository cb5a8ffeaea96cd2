from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class SClass:
    class_id: int
    class_name: str
    school_id: int


@dataclass(frozen=True)
class Subject:
    subject_id: int
    sub_name: str
    sub_code: str
    sessions: int
    class_id: int
    school_id: int
    teacher_id: Optional[int] = None


@dataclass(frozen=True)
class TeacherAssignment:
    subject_id: int
    class_id: int
    assigned_at: Optional[datetime] = None


@dataclass(frozen=True)
class Teacher:
    teacher_id: int
    name: str
    email: str
    school_id: int
    teach_class_id: Optional[int]
    teach_subject_id: Optional[int] = None
    assignments: tuple[TeacherAssignment, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Enrollment:
    subject_id: int
    enrolled_at: Optional[datetime] = None


@dataclass(frozen=True)
class Student:
    """A student belongs to exactly one class at a time."""

    student_id: int
    name: str
    roll_num: int
    class_id: int
    school_id: int
    university_id: Optional[str] = None
    enrolled_subjects: tuple[Enrollment, ...] = field(default_factory=tuple)
