from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from ..core.enums import AttendanceStatus
from .calculator import attendance_percentage


@dataclass(frozen=True)
class AttendanceSummary:
    """Denormalized per (student, subject, class) rollup of attendance records."""

    student_id: int
    subject_id: int
    class_id: int
    school_id: int
    present_count: int
    absent_count: int
    late_count: int
    excused_count: int
    last_updated: datetime

    @property
    def total_sessions(self) -> int:
        return self.present_count + self.absent_count + self.late_count + self.excused_count

    @property
    def attendance_percentage(self) -> float:
        return attendance_percentage(self.present_count, self.total_sessions)

    @property
    def counts(self) -> dict[AttendanceStatus, int]:
        return {
            AttendanceStatus.PRESENT: self.present_count,
            AttendanceStatus.ABSENT: self.absent_count,
            AttendanceStatus.LATE: self.late_count,
            AttendanceStatus.EXCUSED: self.excused_count,
        }

    @classmethod
    def from_counts(
        cls,
        *,
        student_id: int,
        subject_id: int,
        class_id: int,
        school_id: int,
        counts: Mapping[AttendanceStatus, int],
        now: datetime,
    ) -> "AttendanceSummary":
        return cls(
            student_id=student_id,
            subject_id=subject_id,
            class_id=class_id,
            school_id=school_id,
            present_count=int(counts.get(AttendanceStatus.PRESENT, 0)),
            absent_count=int(counts.get(AttendanceStatus.ABSENT, 0)),
            late_count=int(counts.get(AttendanceStatus.LATE, 0)),
            excused_count=int(counts.get(AttendanceStatus.EXCUSED, 0)),
            last_updated=now,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "studentId": self.student_id,
            "subjectId": self.subject_id,
            "classId": self.class_id,
            "schoolId": self.school_id,
            "totalSessions": self.total_sessions,
            "presentCount": self.present_count,
            "absentCount": self.absent_count,
            "lateCount": self.late_count,
            "excusedCount": self.excused_count,
            "attendancePercentage": self.attendance_percentage,
            "lastUpdated": self.last_updated.isoformat(),
        }
