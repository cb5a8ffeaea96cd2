from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """One student's status for one (subject, date, session) slot."""

    record_id: int
    class_id: int
    subject_id: int
    teacher_id: int
    student_id: int
    attendance_date: date
    session: str
    status: AttendanceStatus
    marked_by: int
    marked_at: datetime
    school_id: int
    last_modified_by: Optional[int] = None
    last_modified_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "_id": self.record_id,
            "classId": self.class_id,
            "subjectId": self.subject_id,
            "teacherId": self.teacher_id,
            "studentId": self.student_id,
            "date": self.attendance_date.isoformat(),
            "session": self.session,
            "status": self.status.value,
            "markedBy": self.marked_by,
            "markedAt": self.marked_at.isoformat(),
            "lastModifiedBy": self.last_modified_by,
            "lastModifiedAt": self.last_modified_at.isoformat() if self.last_modified_at else None,
            "schoolId": self.school_id,
        }


@dataclass(frozen=True)
class MarkAttendanceRequest:
    """Raw "mark attendance" payload.

    Fields are unchecked; ``ValidationService.validate_attendance_marking_request``
    checks and converts them.
    """

    class_id: Any
    subject_id: Any
    teacher_id: Any
    date: Any
    session: Any
    student_attendance: Any

    @classmethod
    def from_payload(cls, payload: dict, *, teacher_id: Any) -> "MarkAttendanceRequest":
        return cls(
            class_id=payload.get("classId"),
            subject_id=payload.get("subjectId"),
            teacher_id=payload.get("teacherId") or teacher_id,
            date=payload.get("date"),
            session=payload.get("session"),
            student_attendance=payload.get("studentAttendance"),
        )


@dataclass(frozen=True)
class AttendanceFilter:
    class_id: Optional[int] = None
    subject_id: Optional[int] = None
    teacher_id: Optional[int] = None
    student_id: Optional[int] = None
    school_id: Optional[int] = None
    status: Optional[AttendanceStatus] = None
    session: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


@dataclass
class BulkResult:
    """Per-item outcome of an operation that continues past individual failures."""

    successful: list[dict] = field(default_factory=list)
    failed: list[dict] = field(default_factory=list)
    total_processed: int = 0
    message: Optional[str] = None

    @property
    def success_count(self) -> int:
        return len(self.successful)

    @property
    def failure_count(self) -> int:
        return len(self.failed)

    def to_dict(self) -> dict[str, Any]:
        out = {
            "successful": self.successful,
            "failed": self.failed,
            "totalProcessed": self.total_processed,
            "successCount": self.success_count,
            "failureCount": self.failure_count,
        }
        if self.message:
            out["message"] = self.message
        return out
