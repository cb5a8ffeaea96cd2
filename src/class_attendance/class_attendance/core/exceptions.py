from __future__ import annotations

from typing import Any, Optional


class DomainError(Exception):
    """Base exception for business rule violations.

    Every subclass is an expected, client-correctable failure. ``status_code``
    is what the API layer answers with; ``context`` carries the identifiers
    involved so the response and the logs can name them.
    """

    status_code = 400

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = dict(context or {})

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": False,
            "error": type(self).__name__,
            "message": self.message,
            "details": self.context,
        }


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class InvalidSessionError(ValidationError):
    def __init__(self, session: str, valid_sessions: list[str]):
        super().__init__(
            f'Invalid session "{session}". Valid sessions are: {", ".join(valid_sessions)}',
            {"providedSession": session, "validSessions": list(valid_sessions)},
        )


class StudentNotEnrolledError(ValidationError):
    def __init__(self, student_id: int, class_id: int):
        super().__init__(
            "Student is not enrolled in the specified class",
            {"studentId": student_id, "classId": class_id},
        )


class AuthenticationError(DomainError):
    """Raised when no caller identity is available."""

    status_code = 401


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    status_code = 403


class AttendanceAuthorizationError(AuthorizationError):
    def __init__(self, teacher_id: int, class_id: int, subject_id: int):
        super().__init__(
            "Teacher not authorized to mark attendance for this class/subject",
            {"teacherId": teacher_id, "classId": class_id, "subjectId": subject_id},
        )


class NotFoundError(DomainError):
    status_code = 404

    def __init__(self, entity: str, context: Optional[dict[str, Any]] = None):
        super().__init__(f"{entity} not found", context)
        self.entity = entity
