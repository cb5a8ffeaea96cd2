from __future__ import annotations

from datetime import date, datetime

import pytest

from src.class_attendance.class_attendance.common.validators import wildcard_to_regex
from src.class_attendance.class_attendance.core.enums import AttendanceStatus, AuditAction
from src.class_attendance.class_attendance.core.exceptions import NotFoundError, ValidationError
from src.class_attendance.class_attendance.roster.model import Student
from tests.in_memory import (
    ADMIN_ID,
    CLASS_ID,
    OTHER_CLASS_ID,
    OTHER_SUBJECT_ID,
    STUDENT_A,
    STUDENT_B,
    STUDENT_C,
    SUBJECT_ID,
    TEACHER_ID,
    World,
)


def test_wildcard_pattern_is_anchored():
    assert wildcard_to_regex("CS2023-*") == r"^CS2023\-.*$"
    assert wildcard_to_regex("a.b") == r"^a\.b$"


def test_assign_by_pattern_moves_matching_students():
    w = World()
    result = w.container.bulk_service.assign_students_by_pattern(
        "ee2023-*", CLASS_ID, performed_by=ADMIN_ID, subject_ids=[SUBJECT_ID]
    )

    assert result.success_count == 1
    assert result.successful[0]["previousClassId"] == OTHER_CLASS_ID
    moved = w.roster.get_student(STUDENT_C)
    assert moved.class_id == CLASS_ID
    assert [e.subject_id for e in moved.enrolled_subjects] == [SUBJECT_ID]
    assert w.summaries.get(student_id=STUDENT_C, subject_id=SUBJECT_ID, class_id=CLASS_ID).total_sessions == 0

    [entry] = w.audit.entries
    assert entry.action == AuditAction.BULK_ASSIGN
    assert entry.record_id is None
    assert entry.metadata["pattern"] == "ee2023-*"


def test_assign_reports_students_already_in_target():
    w = World()
    result = w.container.bulk_service.assign_students_by_pattern("CS2023-*", CLASS_ID, performed_by=ADMIN_ID)
    assert result.success_count == 0
    assert result.failure_count == 2
    assert all(f["error"] == "Student is already in the target class" for f in result.failed)
    assert w.audit.entries == []


def test_assign_without_matches_has_message():
    w = World()
    result = w.container.bulk_service.assign_students_by_pattern("XX*", CLASS_ID, performed_by=ADMIN_ID)
    assert result.total_processed == 0
    assert result.message == "No students found matching the pattern"


def test_assign_pattern_does_not_match_partially():
    w = World()
    result = w.container.bulk_service.assign_students_by_pattern("2023-001", OTHER_CLASS_ID, performed_by=ADMIN_ID)
    assert result.total_processed == 0


def test_assign_validates_target_and_subjects():
    w = World()
    with pytest.raises(NotFoundError):
        w.container.bulk_service.assign_students_by_pattern("CS*", 999, performed_by=ADMIN_ID)
    with pytest.raises(NotFoundError):
        w.container.bulk_service.assign_students_by_pattern("CS*", OTHER_CLASS_ID, performed_by=ADMIN_ID, subject_ids=[999])
    with pytest.raises(ValidationError):
        w.container.bulk_service.assign_students_by_pattern("  ", OTHER_CLASS_ID, performed_by=ADMIN_ID)


def test_transfer_requires_every_student_in_source():
    w = World()
    with pytest.raises(ValidationError) as exc:
        w.container.bulk_service.transfer_students([STUDENT_A, STUDENT_C], CLASS_ID, OTHER_CLASS_ID, performed_by=ADMIN_ID)
    assert exc.value.context["studentIds"] == [STUDENT_C]
    assert w.roster.get_student(STUDENT_A).class_id == CLASS_ID

    with pytest.raises(ValidationError):
        w.container.bulk_service.transfer_students([], CLASS_ID, OTHER_CLASS_ID, performed_by=ADMIN_ID)
    with pytest.raises(ValidationError):
        w.container.bulk_service.transfer_students([STUDENT_A], CLASS_ID, CLASS_ID, performed_by=ADMIN_ID)


def test_transfer_with_attendance_migration():
    w = World()
    w.attendance.upsert(
        class_id=CLASS_ID,
        subject_id=SUBJECT_ID,
        teacher_id=TEACHER_ID,
        student_id=STUDENT_A,
        attendance_date=date(2023, 10, 2),
        session="Lecture 1",
        status=AttendanceStatus.PRESENT,
        marked_by=TEACHER_ID,
        school_id=1,
        now=datetime(2023, 10, 2, 9, 0),
    )
    w.container.summary_service.update_student_summary(STUDENT_A, SUBJECT_ID, CLASS_ID)

    result = w.container.bulk_service.transfer_students(
        [STUDENT_A, STUDENT_B], CLASS_ID, OTHER_CLASS_ID, performed_by=ADMIN_ID, migrate_attendance=True
    )

    assert result.success_count == 2
    assert result.successful[0]["migratedRecords"] == 1
    assert all(r.class_id == OTHER_CLASS_ID for r in w.attendance.records.values())
    assert w.summaries.get(student_id=STUDENT_A, subject_id=SUBJECT_ID, class_id=OTHER_CLASS_ID).present_count == 1
    assert w.summaries.get(student_id=STUDENT_A, subject_id=SUBJECT_ID, class_id=CLASS_ID) is None

    actions = [e.action for e in w.audit.entries]
    assert actions.count(AuditAction.MIGRATE_ATTENDANCE) == 1
    assert actions.count(AuditAction.STUDENT_TRANSFER) == 2


def test_migration_recounts_summary_already_in_target_class():
    w = World()
    days = [(OTHER_CLASS_ID, date(2023, 9, 4), AttendanceStatus.ABSENT),
            (OTHER_CLASS_ID, date(2023, 9, 5), AttendanceStatus.ABSENT),
            (CLASS_ID, date(2023, 10, 2), AttendanceStatus.PRESENT)]
    for class_id, day, status in days:
        w.attendance.upsert(
            class_id=class_id,
            subject_id=SUBJECT_ID,
            teacher_id=TEACHER_ID,
            student_id=STUDENT_A,
            attendance_date=day,
            session="Lecture 1",
            status=status,
            marked_by=TEACHER_ID,
            school_id=1,
            now=datetime(2023, 10, 2, 9, 0),
        )
    summary_service = w.container.summary_service
    summary_service.update_student_summary(STUDENT_A, SUBJECT_ID, OTHER_CLASS_ID)
    summary_service.update_student_summary(STUDENT_A, SUBJECT_ID, CLASS_ID)

    result = w.container.bulk_service.transfer_students(
        [STUDENT_A], CLASS_ID, OTHER_CLASS_ID, performed_by=ADMIN_ID, migrate_attendance=True
    )

    assert result.success_count == 1
    summary = w.summaries.get(student_id=STUDENT_A, subject_id=SUBJECT_ID, class_id=OTHER_CLASS_ID)
    assert (summary.present_count, summary.absent_count) == (1, 2)
    assert summary.total_sessions == 3
    assert summary.attendance_percentage == 33.3
    assert w.summaries.list_for_student(student_id=STUDENT_A, class_id=CLASS_ID) == []


def test_transfer_without_migration_leaves_records():
    w = World()
    w.container.bulk_service.transfer_students([STUDENT_B], CLASS_ID, OTHER_CLASS_ID, performed_by=ADMIN_ID)
    assert w.roster.get_student(STUDENT_B).class_id == OTHER_CLASS_ID
    assert [e.action for e in w.audit.entries] == [AuditAction.STUDENT_TRANSFER]


def test_single_reassignment_sets_primary_class_and_subject():
    w = World()
    result = w.container.bulk_service.reassign_teacher(
        TEACHER_ID, [{"subjectId": OTHER_SUBJECT_ID, "classId": OTHER_CLASS_ID}], performed_by=ADMIN_ID
    )
    teacher = w.roster.get_teacher(TEACHER_ID)
    assert (teacher.teach_class_id, teacher.teach_subject_id) == (OTHER_CLASS_ID, OTHER_SUBJECT_ID)
    assert result["previousAssignments"]["teachClassId"] == CLASS_ID
    assert w.audit.entries[-1].action == AuditAction.TEACHER_REASSIGNMENT

    validation = w.container.validation_service
    assert validation.validate_teacher_assignment(TEACHER_ID, OTHER_CLASS_ID, OTHER_SUBJECT_ID) is True


def test_multiple_assignments_keep_primary_and_authorize_each_pair():
    w = World()
    w.container.bulk_service.reassign_teacher(
        TEACHER_ID,
        [
            {"subjectId": SUBJECT_ID, "classId": CLASS_ID},
            {"subjectId": OTHER_SUBJECT_ID, "classId": OTHER_CLASS_ID},
        ],
        performed_by=ADMIN_ID,
    )
    teacher = w.roster.get_teacher(TEACHER_ID)
    assert teacher.teach_class_id == CLASS_ID
    assert len(teacher.assignments) == 2
    assert w.container.validation_service.validate_teacher_assignment(TEACHER_ID, OTHER_CLASS_ID, OTHER_SUBJECT_ID)


def test_reassignment_validates_input():
    w = World()
    service = w.container.bulk_service
    with pytest.raises(NotFoundError):
        service.reassign_teacher(4040, [{"subjectId": SUBJECT_ID, "classId": CLASS_ID}], performed_by=ADMIN_ID)
    with pytest.raises(ValidationError):
        service.reassign_teacher(TEACHER_ID, [], performed_by=ADMIN_ID)
    with pytest.raises(NotFoundError):
        service.reassign_teacher(TEACHER_ID, [{"subjectId": 999, "classId": CLASS_ID}], performed_by=ADMIN_ID)
    assert w.audit.entries == []


def test_bulk_operation_stats():
    w = World()
    w.roster.students[2001] = Student(
        student_id=2001, name="Dung", roll_num=3, class_id=OTHER_CLASS_ID, school_id=1, university_id="EE2023-002"
    )
    service = w.container.bulk_service
    service.assign_students_by_pattern("EE2023-*", CLASS_ID, performed_by=ADMIN_ID)
    service.transfer_students([STUDENT_A], CLASS_ID, OTHER_CLASS_ID, performed_by=ADMIN_ID)

    stats = service.get_bulk_operation_stats(1)
    assert stats["bulkAssignments"] == 2
    assert stats["studentTransfers"] == 1
    assert stats["teacherReassignments"] == 0
    assert stats["totalOperations"] == 3
    assert stats["lastActivity"] == "2023-10-15T12:00:00"

    assert service.get_bulk_operation_stats(2)["lastActivity"] is None
