from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional, Sequence

from ..attendance.model import BulkResult
from ..attendance.repository import AttendanceRepository
from ..audit.model import AuditInfo
from ..audit.repository import AuditLogRepository
from ..common.validators import require_id, require_id_list, require_non_empty, wildcard_to_regex
from ..core.enums import AuditAction
from ..core.exceptions import DomainError, NotFoundError, ValidationError
from ..roster.model import SClass, TeacherAssignment
from ..roster.repository import RosterRepository
from ..summaries.repository import SummaryRepository
from ..summaries.service import SummaryService

logger = logging.getLogger(__name__)

BULK_ACTIONS = (AuditAction.BULK_ASSIGN, AuditAction.STUDENT_TRANSFER, AuditAction.TEACHER_REASSIGNMENT)


class BulkManagementService:
    """Admin operations that re-point many students or a teacher at once.

    Every operation writes an audit row per affected entity. Roster rows carry
    no attendance record id, so those audit rows have ``record_id=None``.
    """

    def __init__(
        self,
        roster: RosterRepository,
        attendance: AttendanceRepository,
        summaries: SummaryRepository,
        summary_service: SummaryService,
        audit: AuditLogRepository,
    ):
        self._roster = roster
        self._attendance = attendance
        self._summaries = summaries
        self._summary_service = summary_service
        self._audit = audit

    def _require_class(self, class_id: int) -> SClass:
        sclass = self._roster.get_class(class_id)
        if not sclass:
            raise NotFoundError("Class", {"classId": class_id})
        return sclass

    def _require_subjects(self, subject_ids: Sequence[int]) -> None:
        for subject_id in subject_ids:
            if not self._roster.get_subject(subject_id):
                raise NotFoundError("Subject", {"subjectId": subject_id})

    def assign_students_by_pattern(
        self,
        pattern: Any,
        target_class_id: int,
        *,
        performed_by: int,
        subject_ids: Optional[Sequence[int]] = None,
        school_id: Optional[int] = None,
        audit_info: Optional[AuditInfo] = None,
    ) -> BulkResult:
        pattern = require_non_empty(pattern, "University ID pattern")
        target = self._require_class(target_class_id)
        school_id = school_id if school_id is not None else target.school_id
        if subject_ids is not None:
            self._require_subjects(subject_ids)

        students = self._roster.find_students_by_university_pattern(
            school_id=school_id, regex=wildcard_to_regex(pattern)
        )

        result = BulkResult()
        if not students:
            result.message = "No students found matching the pattern"
            return result

        for student in students:
            result.total_processed += 1
            if student.class_id == target_class_id:
                result.failed.append(
                    {
                        "studentId": student.student_id,
                        "universityId": student.university_id,
                        "error": "Student is already in the target class",
                    }
                )
                continue
            try:
                self._roster.update_student_class(
                    student_id=student.student_id,
                    class_id=target_class_id,
                    subject_ids=list(subject_ids) if subject_ids is not None else None,
                )
                for subject_id in subject_ids or ():
                    self._summary_service.initialize_student_summary(
                        student.student_id, subject_id, target_class_id, school_id=school_id
                    )

                self._audit.append(
                    record_id=None,
                    action=AuditAction.BULK_ASSIGN,
                    old_values={"classId": student.class_id},
                    new_values={"classId": target_class_id, "subjectIds": list(subject_ids or [])},
                    performed_by=performed_by,
                    performed_by_model="admin",
                    school_id=school_id,
                    reason=f"Bulk assignment by pattern {pattern}",
                    audit_info=audit_info,
                    metadata={"studentId": student.student_id, "pattern": pattern},
                )
                result.successful.append(
                    {
                        "studentId": student.student_id,
                        "name": student.name,
                        "universityId": student.university_id,
                        "previousClassId": student.class_id,
                        "newClassId": target_class_id,
                    }
                )
            except DomainError as e:
                result.failed.append(
                    {"studentId": student.student_id, "universityId": student.university_id, "error": e.message}
                )
            except Exception as e:
                logger.exception("Bulk assignment failed for student=%s", student.student_id)
                result.failed.append(
                    {"studentId": student.student_id, "universityId": student.university_id, "error": str(e)}
                )

        logger.info(
            "Bulk assign pattern=%r target_class=%s ok=%d failed=%d",
            pattern,
            target_class_id,
            result.success_count,
            result.failure_count,
        )
        return result

    def transfer_students(
        self,
        student_ids: Any,
        from_class_id: int,
        to_class_id: int,
        *,
        performed_by: int,
        subject_ids: Optional[Sequence[int]] = None,
        migrate_attendance: bool = False,
        audit_info: Optional[AuditInfo] = None,
    ) -> BulkResult:
        student_ids = require_id_list(student_ids, "studentIds")
        if not student_ids:
            raise ValidationError("Student IDs must be a non-empty array")
        if from_class_id == to_class_id:
            raise ValidationError("Source and target classes must be different", {"classId": from_class_id})

        source = self._require_class(from_class_id)
        self._require_class(to_class_id)
        if subject_ids is not None:
            self._require_subjects(subject_ids)

        students = {sid: self._roster.get_student(sid) for sid in student_ids}
        outside = [sid for sid, s in students.items() if not s or s.class_id != from_class_id]
        if outside:
            raise ValidationError(
                "Some students were not found in the source class",
                {"studentIds": outside, "fromClassId": from_class_id},
            )

        result = BulkResult()
        for student_id in student_ids:
            result.total_processed += 1
            try:
                self._roster.update_student_class(
                    student_id=student_id,
                    class_id=to_class_id,
                    subject_ids=list(subject_ids) if subject_ids is not None else None,
                )

                migrated = 0
                if migrate_attendance:
                    migrated = self._migrate_records(
                        student_id, from_class_id, to_class_id, source.school_id, performed_by, audit_info
                    )

                self._audit.append(
                    record_id=None,
                    action=AuditAction.STUDENT_TRANSFER,
                    old_values={"classId": from_class_id},
                    new_values={"classId": to_class_id, "subjectIds": list(subject_ids or [])},
                    performed_by=performed_by,
                    performed_by_model="admin",
                    school_id=source.school_id,
                    reason="Student transfer",
                    audit_info=audit_info,
                    metadata={"studentId": student_id, "migrateAttendance": bool(migrate_attendance),
                              "migratedRecords": migrated},
                )
                result.successful.append(
                    {
                        "studentId": student_id,
                        "name": students[student_id].name,
                        "fromClassId": from_class_id,
                        "toClassId": to_class_id,
                        "migratedRecords": migrated,
                    }
                )
            except DomainError as e:
                result.failed.append({"studentId": student_id, "error": e.message})
            except Exception as e:
                logger.exception("Transfer failed for student=%s", student_id)
                result.failed.append({"studentId": student_id, "error": str(e)})

        logger.info(
            "Transferred students from class=%s to class=%s ok=%d failed=%d migrate=%s",
            from_class_id,
            to_class_id,
            result.success_count,
            result.failure_count,
            migrate_attendance,
        )
        return result

    def _migrate_records(
        self,
        student_id: int,
        from_class_id: int,
        to_class_id: int,
        school_id: int,
        performed_by: int,
        audit_info: Optional[AuditInfo],
    ) -> int:
        now = datetime.now()
        records = self._attendance.list_for_student(student_id=student_id, class_id=from_class_id)
        for r in records:
            self._attendance.update_class(record_id=r.record_id, class_id=to_class_id, modified_by=performed_by, now=now)
            self._audit.append(
                record_id=r.record_id,
                action=AuditAction.MIGRATE_ATTENDANCE,
                old_values={"classId": from_class_id},
                new_values={"classId": to_class_id},
                performed_by=performed_by,
                performed_by_model="admin",
                school_id=school_id,
                reason="Attendance migrated with student transfer",
                audit_info=audit_info,
            )
        # The target class may already hold summaries for this student, so recount there.
        subject_ids = {r.subject_id for r in records}
        subject_ids.update(
            s.subject_id for s in self._summaries.list_for_student(student_id=student_id, class_id=from_class_id)
        )
        self._summaries.delete_for_class(student_id=student_id, class_id=from_class_id)
        for subject_id in sorted(subject_ids):
            self._summary_service.update_student_summary(student_id, subject_id, to_class_id, school_id=school_id)
        return len(records)

    def reassign_teacher(
        self,
        teacher_id: int,
        new_assignments: Any,
        *,
        performed_by: int,
        audit_info: Optional[AuditInfo] = None,
    ) -> dict:
        teacher = self._roster.get_teacher(teacher_id)
        if not teacher:
            raise NotFoundError("Teacher", {"teacherId": teacher_id})
        if not isinstance(new_assignments, list) or not new_assignments:
            raise ValidationError("New assignments must be a non-empty array")

        now = datetime.now()
        assignments = []
        for i, item in enumerate(new_assignments):
            if not isinstance(item, dict):
                raise ValidationError(f"Assignment at index {i} must be an object", {"index": i})
            subject_id = require_id(item.get("subjectId"), "subjectId")
            class_id = require_id(item.get("classId"), "classId")
            if not self._roster.get_subject(subject_id):
                raise NotFoundError("Subject", {"subjectId": subject_id, "index": i})
            self._require_class(class_id)
            assignments.append(TeacherAssignment(subject_id=subject_id, class_id=class_id, assigned_at=now))

        if len(assignments) == 1:
            teach_class_id, teach_subject_id = assignments[0].class_id, assignments[0].subject_id
        else:
            teach_class_id, teach_subject_id = teacher.teach_class_id, teacher.teach_subject_id

        self._roster.update_teacher_assignments(
            teacher_id=teacher_id,
            assignments=assignments,
            teach_class_id=teach_class_id,
            teach_subject_id=teach_subject_id,
        )

        previous = {
            "teachClassId": teacher.teach_class_id,
            "teachSubjectId": teacher.teach_subject_id,
            "assignments": [{"subjectId": a.subject_id, "classId": a.class_id} for a in teacher.assignments],
        }
        current = {
            "teachClassId": teach_class_id,
            "teachSubjectId": teach_subject_id,
            "assignments": [{"subjectId": a.subject_id, "classId": a.class_id} for a in assignments],
        }
        self._audit.append(
            record_id=None,
            action=AuditAction.TEACHER_REASSIGNMENT,
            old_values=previous,
            new_values=current,
            performed_by=performed_by,
            performed_by_model="admin",
            school_id=teacher.school_id,
            reason="Teacher reassignment",
            audit_info=audit_info,
            metadata={"teacherId": teacher_id},
        )
        logger.info("Teacher %s reassigned to %d assignment(s)", teacher_id, len(assignments))

        return {"teacherId": teacher_id, "previousAssignments": previous, "newAssignments": current}

    def get_bulk_operation_stats(
        self, school_id: int, *, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> dict:
        rows = self._audit.count_by_action(school_id=school_id, actions=BULK_ACTIONS, start=start, end=end)
        counts = {a: 0 for a in BULK_ACTIONS}
        last: Optional[datetime] = None
        for r in rows:
            counts[r["action"]] = int(r["count"])
            if r["last_performed"] and (last is None or r["last_performed"] > last):
                last = r["last_performed"]

        return {
            "schoolId": school_id,
            "bulkAssignments": counts[AuditAction.BULK_ASSIGN],
            "studentTransfers": counts[AuditAction.STUDENT_TRANSFER],
            "teacherReassignments": counts[AuditAction.TEACHER_REASSIGNMENT],
            "totalOperations": sum(counts.values()),
            "lastActivity": last.isoformat() if last else None,
        }
