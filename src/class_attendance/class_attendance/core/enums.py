from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Caller role supplied by the authentication layer."""

    ADMIN = "Admin"
    TEACHER = "Teacher"
    STUDENT = "Student"


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    EXCUSED = "excused"


class SessionType(str, Enum):
    LECTURE = "lecture"
    LAB = "lab"
    TUTORIAL = "tutorial"


class SessionResolutionKind(str, Enum):
    """Outcome of resolving a session label for a class/subject pair."""

    CONFIGURED = "configured"
    DEFAULT = "default"
    INVALID = "invalid"


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    BULK_ASSIGN = "bulk_assign"
    STUDENT_TRANSFER = "student_transfer"
    TEACHER_REASSIGNMENT = "teacher_reassignment"
    MIGRATE_ATTENDANCE = "migrate_attendance"


class Operation(str, Enum):
    MARK = "mark"
    UPDATE = "update"
    VIEW = "view"
    DELETE = "delete"
    BULK_MANAGE = "bulk_manage"


class PercentageMethod(str, Enum):
    STRICT = "strict"
    STANDARD = "standard"
    LENIENT = "lenient"
