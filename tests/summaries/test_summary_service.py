from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from src.class_attendance.class_attendance.core.enums import AttendanceStatus, PercentageMethod
from src.class_attendance.class_attendance.summaries.calculator import (
    alert_level,
    attendance_percentage,
    calculate_attendance_percentage,
)
from tests.in_memory import CLASS_ID, STUDENT_A, STUDENT_B, SUBJECT_ID, TEACHER_ID, World

NOW = datetime(2023, 10, 20, 9, 0)


def _record(w: World, student_id: int, day: date, status: str, *, session: str = "Lecture 1"):
    w.attendance.upsert(
        class_id=CLASS_ID,
        subject_id=SUBJECT_ID,
        teacher_id=TEACHER_ID,
        student_id=student_id,
        attendance_date=day,
        session=session,
        status=AttendanceStatus(status),
        marked_by=TEACHER_ID,
        school_id=1,
        now=NOW,
    )


def _history(w: World, student_id: int, statuses: list[str], *, start: date = date(2023, 10, 2)):
    for i, status in enumerate(statuses):
        _record(w, student_id, start + timedelta(days=i), status)
    w.container.summary_service.update_student_summary(student_id, SUBJECT_ID, CLASS_ID)


def test_percentage_rounding_and_empty_total():
    assert attendance_percentage(6, 10) == 60.0
    assert attendance_percentage(0, 0) == 0.0
    assert attendance_percentage(2, 3) == 66.7
    assert attendance_percentage(1, 8) == 12.5


def test_summary_reports_sixty_percent():
    w = World()
    _history(w, STUDENT_A, ["present"] * 6 + ["absent"] * 4)
    summary = w.summaries.get(student_id=STUDENT_A, subject_id=SUBJECT_ID, class_id=CLASS_ID)
    assert summary.total_sessions == 10
    assert summary.attendance_percentage == 60.0


def test_initialized_summary_is_zero():
    w = World()
    summary = w.container.summary_service.initialize_student_summary(STUDENT_A, SUBJECT_ID, CLASS_ID)
    assert summary.total_sessions == 0
    assert summary.attendance_percentage == 0
    assert summary.school_id == 1

    # A second call keeps the existing row.
    again = w.container.summary_service.initialize_student_summary(STUDENT_A, SUBJECT_ID, CLASS_ID)
    assert again is summary


def test_alternative_percentage_methods():
    counts = {
        AttendanceStatus.PRESENT: 2,
        AttendanceStatus.LATE: 2,
        AttendanceStatus.EXCUSED: 1,
        AttendanceStatus.ABSENT: 5,
    }
    assert calculate_attendance_percentage(counts, PercentageMethod.STRICT) == 20.0
    assert calculate_attendance_percentage(counts, PercentageMethod.STANDARD) == 40.0
    assert calculate_attendance_percentage(counts, PercentageMethod.LENIENT) == 50.0
    assert calculate_attendance_percentage({}, PercentageMethod.LENIENT) == 0.0


@pytest.mark.parametrize(
    "pct, level",
    [(40.0, "critical"), (44.9, "critical"), (45.0, "warning"), (59.9, "warning"), (60.0, "attention"), (74.9, "attention")],
)
def test_alert_levels(pct, level):
    assert alert_level(pct, 75) == level


def test_student_summary_includes_names_and_methods():
    w = World()
    _history(w, STUDENT_A, ["present", "late", "absent", "present"])
    [item] = w.container.summary_service.get_student_summary(STUDENT_A)
    assert item["subjectName"] == "Mathematics"
    assert item["className"] == "10A"
    assert item["attendancePercentage"] == 50.0
    assert item["calculatedPercentages"] == {"strict": 50.0, "standard": 62.5, "lenient": 75.0}


def test_class_summary_statistics():
    w = World()
    _history(w, STUDENT_A, ["present"] * 8 + ["absent"] * 2)
    _history(w, STUDENT_B, ["present"] * 4 + ["absent"] * 6)

    result = w.container.summary_service.get_class_summary(CLASS_ID, SUBJECT_ID)
    assert result["totalStudents"] == 2
    assert [s["studentId"] for s in result["studentSummaries"]] == [STUDENT_A, STUDENT_B]
    assert result["studentSummaries"][0]["studentName"] == "An"
    assert result["classStatistics"] == {
        "averageAttendance": 60.0,
        "highestAttendance": 80.0,
        "lowestAttendance": 40.0,
        "studentsAboveThreshold": 1,
        "studentsBelowThreshold": 1,
        "threshold": 75.0,
    }


def test_class_average_rounds_half_up():
    w = World()
    # 1/8 = 12.5 and 5/5 = 100.0 average to 56.25.
    _history(w, STUDENT_A, ["present"] + ["absent"] * 7)
    _history(w, STUDENT_B, ["present"] * 5)

    stats = w.container.summary_service.get_class_summary(CLASS_ID, SUBJECT_ID)["classStatistics"]
    assert stats["averageAttendance"] == 56.3


def test_low_attendance_alerts():
    w = World()
    _history(w, STUDENT_A, ["present"] * 6 + ["absent"] * 4)
    _history(w, STUDENT_B, ["present"] * 4 + ["absent"] * 6)

    alerts = w.container.summary_service.get_low_attendance_alerts(CLASS_ID)
    assert [(a["student"]["_id"], a["alertLevel"]) for a in alerts] == [(STUDENT_B, "critical"), (STUDENT_A, "attention")]
    assert alerts[0]["subject"]["subCode"] == "MATH101"


def test_alerts_skip_students_with_few_sessions():
    w = World()
    _history(w, STUDENT_A, ["absent"] * 4)
    assert w.container.summary_service.get_low_attendance_alerts(CLASS_ID) == []
    assert len(w.container.summary_service.get_low_attendance_alerts(CLASS_ID, min_sessions=4)) == 1


def test_weekly_trends():
    w = World()
    _record(w, STUDENT_A, date(2023, 10, 9), "present")
    _record(w, STUDENT_A, date(2023, 10, 10), "absent")
    _record(w, STUDENT_A, date(2023, 10, 16), "late")

    trends = w.container.summary_service.get_attendance_trends(STUDENT_A, SUBJECT_ID)
    weeks = trends["weeklyTrends"]
    assert [(x["year"], x["week"]) for x in weeks] == [(2023, 41), (2023, 42)]
    assert weeks[0]["attendancePercentage"] == 50.0
    assert weeks[1]["lateCount"] == 1

    ranged = w.container.summary_service.get_attendance_trends(
        STUDENT_A, SUBJECT_ID, start_date=date(2023, 10, 16), end_date=date(2023, 10, 22)
    )
    assert len(ranged["weeklyTrends"]) == 1
    assert ranged["dateRange"] == {"startDate": "2023-10-16", "endDate": "2023-10-22"}


def test_school_analytics():
    w = World()
    _history(w, STUDENT_A, ["present"] * 3 + ["absent"])
    _history(w, STUDENT_B, ["absent"] * 4)

    analytics = w.container.summary_service.get_school_analytics(1)
    overall = analytics["overallStats"]
    assert overall["totalStudents"] == 2
    assert overall["totalSessions"] == 8
    assert overall["overallAttendanceRate"] == 37.5
    assert overall["averageAttendance"] == 37.5
    assert analytics["classBreakdown"][0]["className"] == "10A"
    assert analytics["subjectBreakdown"][0]["subjectCode"] == "MATH101"


def test_recalculate_repairs_drift():
    w = World()
    _record(w, STUDENT_A, date(2023, 10, 2), "present")
    _record(w, STUDENT_B, date(2023, 10, 2), "absent")
    assert w.summaries.rows == {}

    result = w.container.summary_service.recalculate_all_summaries(1)
    assert result == {"processed": 2, "updated": 2, "errors": 0, "errorDetails": []}
    assert w.summaries.get(student_id=STUDENT_A, subject_id=SUBJECT_ID, class_id=CLASS_ID).present_count == 1
