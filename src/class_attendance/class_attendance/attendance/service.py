from __future__ import annotations

import logging
import math
from datetime import date, datetime
from typing import Any, Optional

from ..audit.model import AuditInfo
from ..audit.repository import AuditLogRepository
from ..common.datetime_utils import coerce_date, now_local
from ..core.constants import DEFAULT_HISTORY_LIMIT, DEFAULT_PAGE_SIZE
from ..core.enums import AttendanceStatus, AuditAction, Operation, Role
from ..core.exceptions import DomainError, NotFoundError
from ..roster.repository import RosterRepository
from ..summaries.service import SummaryService
from .model import AttendanceFilter, BulkResult, MarkAttendanceRequest
from .repository import AttendanceRepository
from .validation import ValidationService

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 200


def performer_model(role: Role) -> str:
    """Audit rows store who acted as ``teacher`` or ``admin``."""
    return "admin" if role == Role.ADMIN else "teacher"


class AttendanceService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        roster: RosterRepository,
        audit: AuditLogRepository,
        validation: ValidationService,
        summaries: SummaryService,
    ):
        self._attendance = attendance
        self._roster = roster
        self._audit = audit
        self._validation = validation
        self._summaries = summaries

    def get_class_students_for_attendance(
        self, class_id: int, subject_id: Optional[int], user_id: int, role: Role
    ) -> list[dict]:
        self._validation.validate_user_permissions(user_id, role, Operation.VIEW)
        self._validation.validate_class_exists(class_id)
        if subject_id is not None:
            self._validation.validate_subject_exists(subject_id)
            self._validation.validate_teacher_assignment(user_id, class_id, subject_id, role)

        students = self._roster.list_students_in_class(class_id)
        if not students:
            raise NotFoundError("Students", {"classId": class_id})

        return [
            {"_id": s.student_id, "name": s.name, "rollNum": s.roll_num, "universityId": s.university_id}
            for s in sorted(students, key=lambda s: s.roll_num)
        ]

    def mark_attendance(
        self,
        request: MarkAttendanceRequest,
        user_id: int,
        role: Role,
        audit_info: Optional[AuditInfo] = None,
        *,
        now: Optional[datetime] = None,
    ) -> BulkResult:
        """Mark one session for many students.

        The request as a whole is validated first and any failure there aborts
        the call. After that each student is processed on its own: a failure
        is recorded in ``result.failed`` and the loop moves on.
        """
        now = now or now_local()
        plan = self._validation.validate_attendance_marking_request(request, user_id, role, now=now)

        class_id = plan.sclass.class_id
        subject_id = plan.subject.subject_id
        school_id = plan.sclass.school_id
        session = plan.session.session_name

        result = BulkResult()
        for mark in plan.marks:
            result.total_processed += 1
            try:
                self._validation.validate_student_enrollment(mark.student_id, class_id)

                existing = self._attendance.find_slot(
                    student_id=mark.student_id,
                    subject_id=subject_id,
                    attendance_date=plan.attendance_date,
                    session=session,
                )
                record_id = self._attendance.upsert(
                    class_id=class_id,
                    subject_id=subject_id,
                    teacher_id=plan.teacher_id,
                    student_id=mark.student_id,
                    attendance_date=plan.attendance_date,
                    session=session,
                    status=mark.status,
                    marked_by=user_id,
                    school_id=school_id,
                    now=now,
                )

                if existing:
                    self._audit.append(
                        record_id=record_id,
                        action=AuditAction.UPDATE,
                        old_values={"status": existing.status.value},
                        new_values={"status": mark.status.value},
                        performed_by=user_id,
                        performed_by_model=performer_model(role),
                        school_id=school_id,
                        reason="Attendance re-marked",
                        audit_info=audit_info,
                    )
                else:
                    self._audit.append(
                        record_id=record_id,
                        action=AuditAction.CREATE,
                        old_values=None,
                        new_values={
                            "studentId": mark.student_id,
                            "status": mark.status.value,
                            "date": plan.attendance_date.isoformat(),
                            "session": session,
                        },
                        performed_by=user_id,
                        performed_by_model=performer_model(role),
                        school_id=school_id,
                        audit_info=audit_info,
                    )

                self._refresh_summary(mark.student_id, subject_id, class_id, school_id)

                result.successful.append(
                    {
                        "studentId": mark.student_id,
                        "recordId": record_id,
                        "status": mark.status.value,
                        "action": "updated" if existing else "created",
                    }
                )
            except DomainError as e:
                logger.warning("Attendance not marked for student=%s: %s", mark.student_id, e.message)
                result.failed.append({"studentId": mark.student_id, "error": e.message})
            except Exception as e:
                logger.exception("Unexpected error marking attendance for student=%s", mark.student_id)
                result.failed.append({"studentId": mark.student_id, "error": str(e)})

        if plan.session.is_default:
            result.message = f'Session "{session}" accepted from the default session list'

        logger.info(
            "Marked attendance class=%s subject=%s date=%s session=%s ok=%d failed=%d",
            class_id,
            subject_id,
            plan.attendance_date,
            session,
            result.success_count,
            result.failure_count,
        )
        return result

    def _refresh_summary(self, student_id: int, subject_id: int, class_id: int, school_id: int) -> None:
        # The record stays written on failure; recalculate_all_summaries repairs the rollup.
        try:
            self._summaries.update_student_summary(student_id, subject_id, class_id, school_id=school_id)
        except Exception:
            logger.exception(
                "Summary refresh failed for student=%s subject=%s class=%s", student_id, subject_id, class_id
            )

    def _get_record(self, record_id: int):
        record = self._attendance.get_by_id(record_id)
        if not record:
            raise NotFoundError("Attendance record", {"recordId": record_id})
        return record

    def update_attendance(
        self,
        record_id: int,
        status: Any,
        reason: Optional[str],
        user_id: int,
        role: Role,
        audit_info: Optional[AuditInfo] = None,
        *,
        now: Optional[datetime] = None,
    ) -> dict:
        now = now or now_local()
        self._validation.validate_user_permissions(user_id, role, Operation.UPDATE)
        new_status = self._validation.validate_attendance_status(status)
        reason = self._validation.validate_reason(reason)

        record = self._get_record(record_id)
        if role == Role.TEACHER:
            self._validation.validate_teacher_assignment(user_id, record.class_id, record.subject_id, role)

        self._attendance.update_status(record_id=record_id, status=new_status, modified_by=user_id, now=now)
        self._audit.append(
            record_id=record_id,
            action=AuditAction.UPDATE,
            old_values={"status": record.status.value},
            new_values={"status": new_status.value},
            performed_by=user_id,
            performed_by_model=performer_model(role),
            school_id=record.school_id,
            reason=reason,
            audit_info=audit_info,
        )

        if new_status != record.status:
            self._refresh_summary(record.student_id, record.subject_id, record.class_id, record.school_id)

        return self._get_record(record_id).to_dict()

    def delete_attendance(
        self,
        record_id: int,
        user_id: int,
        role: Role,
        reason: Optional[str] = None,
        audit_info: Optional[AuditInfo] = None,
    ) -> dict:
        self._validation.validate_user_permissions(user_id, role, Operation.DELETE)
        reason = self._validation.validate_reason(reason)
        record = self._get_record(record_id)

        # The delete row carries the full old record, so it is written before the delete.
        self._audit.append(
            record_id=record_id,
            action=AuditAction.DELETE,
            old_values=record.to_dict(),
            new_values=None,
            performed_by=user_id,
            performed_by_model=performer_model(role),
            school_id=record.school_id,
            reason=reason,
            audit_info=audit_info,
        )
        self._attendance.delete(record_id=record_id)
        self._refresh_summary(record.student_id, record.subject_id, record.class_id, record.school_id)

        logger.info("Attendance record %s deleted by admin %s", record_id, user_id)
        return {"deletedRecordId": record_id}

    def get_attendance_by_filters(
        self, filters: AttendanceFilter, *, page: int = 1, limit: int = DEFAULT_PAGE_SIZE
    ) -> dict:
        page = max(1, int(page))
        limit = min(max(1, int(limit)), MAX_PAGE_SIZE)

        records, total = self._attendance.search(filters=filters, offset=(page - 1) * limit, limit=limit)
        total_pages = math.ceil(total / limit) if total else 0
        return {
            "records": [r.to_dict() for r in records],
            "pagination": {
                "currentPage": page,
                "totalPages": total_pages,
                "totalRecords": total,
                "hasNextPage": page < total_pages,
                "hasPrevPage": page > 1,
            },
        }

    def get_session_summary(self, class_id: int, subject_id: int, attendance_date: Any, session: str) -> dict:
        day: date = coerce_date(attendance_date, "date")
        records = self._attendance.list_for_session(
            class_id=class_id, subject_id=subject_id, attendance_date=day, session=session
        )

        counts = {s: 0 for s in AttendanceStatus}
        details = []
        for r in records:
            counts[r.status] += 1
            student = self._roster.get_student(r.student_id)
            details.append(
                {
                    "recordId": r.record_id,
                    "studentId": r.student_id,
                    "studentName": student.name if student else None,
                    "rollNum": student.roll_num if student else None,
                    "status": r.status.value,
                    "markedAt": r.marked_at.isoformat(),
                }
            )

        return {
            "classId": class_id,
            "subjectId": subject_id,
            "date": day.isoformat(),
            "session": session,
            "totalStudents": len(records),
            "presentCount": counts[AttendanceStatus.PRESENT],
            "absentCount": counts[AttendanceStatus.ABSENT],
            "lateCount": counts[AttendanceStatus.LATE],
            "excusedCount": counts[AttendanceStatus.EXCUSED],
            "details": details,
        }

    def get_record_history(self, record_id: int, *, limit: int = DEFAULT_HISTORY_LIMIT) -> list[dict]:
        return [e.to_dict() for e in self._audit.list_for_record(record_id=record_id, limit=limit)]
