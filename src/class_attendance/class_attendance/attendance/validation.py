from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Optional

from ..common.datetime_utils import coerce_date, midnight, now_local
from ..common.validators import require_id
from ..core.constants import (
    DEFAULT_MAX_EDIT_WINDOW_HOURS,
    DEFAULT_MAX_FUTURE_DAYS,
    DEFAULT_MAX_PAST_DAYS,
    MAX_REASON_LENGTH,
)
from ..core.enums import AttendanceStatus, Operation, Role
from ..core.exceptions import (
    AttendanceAuthorizationError,
    AuthorizationError,
    InvalidSessionError,
    NotFoundError,
    StudentNotEnrolledError,
    ValidationError,
)
from ..roster.model import SClass, Student, Subject
from ..roster.repository import RosterRepository
from ..sessions.model import SessionResolution
from ..sessions.resolver import SessionNameResolver
from .model import MarkAttendanceRequest

logger = logging.getLogger(__name__)

VALID_STATUSES = tuple(s.value for s in AttendanceStatus)

ALLOWED_OPERATIONS: dict[Role, frozenset[Operation]] = {
    Role.TEACHER: frozenset({Operation.MARK, Operation.UPDATE, Operation.VIEW}),
    Role.ADMIN: frozenset(Operation),
    Role.STUDENT: frozenset({Operation.VIEW}),
}


@dataclass(frozen=True)
class StudentMark:
    student_id: int
    status: AttendanceStatus


@dataclass(frozen=True)
class ValidatedMarkRequest:
    """A mark-attendance request that passed every check, with typed fields."""

    sclass: SClass
    subject: Subject
    teacher_id: int
    attendance_date: date
    session: SessionResolution
    marks: tuple[StudentMark, ...]


class ValidationService:
    """Business-rule checks for attendance operations.

    Every check either returns (often the resolved entity) or raises a
    ``DomainError`` subclass; none of them writes anything.
    """

    def __init__(
        self,
        roster: RosterRepository,
        sessions: SessionNameResolver,
        *,
        max_past_days: int = DEFAULT_MAX_PAST_DAYS,
        max_future_days: int = DEFAULT_MAX_FUTURE_DAYS,
        allow_weekends: bool = True,
        max_edit_window_hours: int = DEFAULT_MAX_EDIT_WINDOW_HOURS,
    ):
        self._roster = roster
        self._sessions = sessions
        self._max_past_days = int(max_past_days)
        self._max_future_days = int(max_future_days)
        self._allow_weekends = bool(allow_weekends)
        self._max_edit_window_hours = int(max_edit_window_hours)

    def validate_teacher_assignment(
        self, user_id: int, class_id: int, subject_id: int, role: Role = Role.TEACHER
    ) -> bool:
        if role == Role.ADMIN:
            logger.info(
                "Admin user %s - skipping teacher assignment validation (class=%s subject=%s)",
                user_id,
                class_id,
                subject_id,
            )
            return True

        teacher = self._roster.get_teacher(user_id)
        if not teacher:
            raise NotFoundError("Teacher", {"teacherId": user_id})

        # Extra (subject, class) pairs from a multi-assignment also authorize.
        if any(a.class_id == class_id and a.subject_id == subject_id for a in teacher.assignments):
            return True

        if teacher.teach_class_id != class_id:
            raise AttendanceAuthorizationError(user_id, class_id, subject_id)
        if teacher.teach_subject_id is not None and teacher.teach_subject_id != subject_id:
            raise AttendanceAuthorizationError(user_id, class_id, subject_id)

        return True

    def validate_student_enrollment(self, student_id: int, class_id: int) -> Student:
        student = self._roster.get_student(student_id)
        if not student:
            raise NotFoundError("Student", {"studentId": student_id})
        if student.class_id != class_id:
            raise StudentNotEnrolledError(student_id, class_id)
        return student

    def validate_session_configuration(self, class_id: int, subject_id: int, session: str) -> SessionResolution:
        resolution = self._sessions.resolve(class_id=class_id, subject_id=subject_id, session=session)
        if not resolution.is_valid:
            raise InvalidSessionError(session, list(resolution.valid_names))
        return resolution

    def validate_date_range(
        self,
        attendance_date: Any,
        *,
        today: Optional[date] = None,
        max_future_days: Optional[int] = None,
        max_past_days: Optional[int] = None,
        allow_weekends: Optional[bool] = None,
    ) -> bool:
        target = coerce_date(attendance_date, "attendance date")
        today = today or now_local().date()
        max_future_days = self._max_future_days if max_future_days is None else int(max_future_days)
        max_past_days = self._max_past_days if max_past_days is None else int(max_past_days)
        allow_weekends = self._allow_weekends if allow_weekends is None else bool(allow_weekends)

        if target > today + timedelta(days=max_future_days):
            raise ValidationError(
                f"Attendance date cannot be more than {max_future_days} days in the future",
                {"date": target.isoformat(), "maxFutureDays": max_future_days},
            )
        if target < today - timedelta(days=max_past_days):
            raise ValidationError(
                f"Attendance date cannot be more than {max_past_days} days in the past",
                {"date": target.isoformat(), "maxPastDays": max_past_days},
            )
        if not allow_weekends and target.weekday() >= 5:
            raise ValidationError("Attendance cannot be marked for weekends", {"date": target.isoformat()})

        return True

    @staticmethod
    def validate_attendance_status(status: Any) -> AttendanceStatus:
        if status not in VALID_STATUSES:
            raise ValidationError(
                f'Invalid attendance status "{status}". Valid statuses are: {", ".join(VALID_STATUSES)}',
                {"status": status, "validStatuses": list(VALID_STATUSES)},
            )
        return AttendanceStatus(status)

    @staticmethod
    def validate_reason(reason: Any) -> Optional[str]:
        """Audit reasons are optional free text stored in a VARCHAR(500) column."""
        if reason is None:
            return None
        if not isinstance(reason, str):
            raise ValidationError("Reason must be a string", {"reason": reason})
        reason = reason.strip()
        if len(reason) > MAX_REASON_LENGTH:
            raise ValidationError(
                f"Reason cannot be longer than {MAX_REASON_LENGTH} characters",
                {"length": len(reason), "maxLength": MAX_REASON_LENGTH},
            )
        return reason or None

    def validate_class_exists(self, class_id: int) -> SClass:
        sclass = self._roster.get_class(class_id)
        if not sclass:
            raise NotFoundError("Class", {"classId": class_id})
        return sclass

    def validate_subject_exists(self, subject_id: int) -> Subject:
        subject = self._roster.get_subject(subject_id)
        if not subject:
            raise NotFoundError("Subject", {"subjectId": subject_id})
        return subject

    def validate_bulk_attendance_data(self, student_attendance: Any) -> tuple[StudentMark, ...]:
        if not isinstance(student_attendance, list):
            raise ValidationError("Student attendance data must be an array")
        if not student_attendance:
            raise ValidationError("Student attendance data cannot be empty")

        marks = []
        for i, record in enumerate(student_attendance):
            record = record if isinstance(record, dict) else {}
            if not record.get("studentId"):
                raise ValidationError(f"Student ID is required for record at index {i}", {"index": i})
            if not record.get("status"):
                raise ValidationError(f"Attendance status is required for record at index {i}", {"index": i})
            try:
                status = self.validate_attendance_status(record["status"])
            except ValidationError as e:
                raise ValidationError(f"{e.message} (record at index {i})", {**e.context, "index": i})
            try:
                student_id = require_id(record["studentId"], "studentId")
            except ValidationError as e:
                raise ValidationError(f"{e.message} (record at index {i})", {**e.context, "index": i})
            marks.append(StudentMark(student_id=student_id, status=status))

        return tuple(marks)

    def validate_attendance_marking_time(
        self,
        attendance_date: Any,
        *,
        now: Optional[datetime] = None,
        max_edit_window_hours: Optional[int] = None,
        allow_same_day_only: bool = False,
    ) -> bool:
        target = coerce_date(attendance_date, "attendance date")
        now = now or now_local()
        window = self._max_edit_window_hours if max_edit_window_hours is None else int(max_edit_window_hours)

        if allow_same_day_only:
            if target != now.date():
                raise ValidationError("Attendance can only be marked for today", {"date": target.isoformat()})
            return True

        hours = abs((now - midnight(target)).total_seconds()) / 3600
        if hours > window:
            raise ValidationError(
                f"Attendance can only be marked within {window} hours of the session date",
                {"date": target.isoformat(), "maxEditWindowHours": window},
            )
        return True

    def validate_user_permissions(
        self, user_id: int, role: Role, operation: Operation, context: Optional[dict] = None
    ) -> bool:
        allowed = ALLOWED_OPERATIONS.get(role)
        if allowed is None:
            raise AuthorizationError("Invalid user role", {"role": str(role)})
        if operation not in allowed:
            raise AuthorizationError(
                f'User role "{role.value}" is not authorized to perform "{operation.value}" operation',
                {"userId": user_id, "role": role.value, "operation": operation.value},
            )

        context = context or {}
        if role == Role.TEACHER and operation in (Operation.MARK, Operation.UPDATE):
            class_id, subject_id = context.get("class_id"), context.get("subject_id")
            if class_id and subject_id:
                self.validate_teacher_assignment(user_id, class_id, subject_id, role)

        return True

    def validate_attendance_marking_request(
        self,
        request: MarkAttendanceRequest,
        user_id: int,
        role: Role,
        *,
        now: Optional[datetime] = None,
    ) -> ValidatedMarkRequest:
        """Run every check for a mark request in order; the first failure propagates."""
        now = now or now_local()

        missing = [
            name
            for name, value in (
                ("classId", request.class_id),
                ("subjectId", request.subject_id),
                ("teacherId", request.teacher_id),
                ("date", request.date),
                ("session", request.session),
                ("studentAttendance", request.student_attendance),
            )
            if value is None or value == ""
        ]
        if missing:
            raise ValidationError("Missing required fields in attendance data", {"missingFields": missing})

        class_id = require_id(request.class_id, "classId")
        subject_id = require_id(request.subject_id, "subjectId")
        teacher_id = require_id(request.teacher_id, "teacherId")
        session = str(request.session).strip()

        self.validate_user_permissions(
            user_id, role, Operation.MARK, {"class_id": class_id, "subject_id": subject_id}
        )

        sclass = self.validate_class_exists(class_id)
        subject = self.validate_subject_exists(subject_id)

        self.validate_teacher_assignment(teacher_id, class_id, subject_id, role)

        resolution = self.validate_session_configuration(class_id, subject_id, session)

        attendance_date = coerce_date(request.date, "attendance date")
        self.validate_date_range(attendance_date, today=now.date())

        marks = self.validate_bulk_attendance_data(request.student_attendance)

        self.validate_attendance_marking_time(attendance_date, now=now)

        return ValidatedMarkRequest(
            sclass=sclass,
            subject=subject,
            teacher_id=teacher_id,
            attendance_date=attendance_date,
            session=resolution,
            marks=marks,
        )
