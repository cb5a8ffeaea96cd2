from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import date, datetime
from typing import Iterable, Optional

from ..attendance.repository import AttendanceRepository
from ..core.constants import DEFAULT_ALERT_MIN_SESSIONS, DEFAULT_LOW_ATTENDANCE_THRESHOLD
from ..core.enums import AttendanceStatus, PercentageMethod
from ..core.exceptions import NotFoundError
from ..roster.repository import RosterRepository
from .calculator import _round, alert_level, attendance_percentage, calculate_attendance_percentage
from .model import AttendanceSummary
from .repository import SummaryRepository

logger = logging.getLogger(__name__)


def _round1(value: float) -> float:
    return _round(value, "0.1")


def _aggregate(summaries: Iterable[AttendanceSummary]) -> dict:
    """Fold summary rows into totals plus average/highest/lowest percentage."""
    summaries = list(summaries)
    percentages = [s.attendance_percentage for s in summaries]
    total_sessions = sum(s.total_sessions for s in summaries)
    total_present = sum(s.present_count for s in summaries)
    return {
        "totalStudents": len({s.student_id for s in summaries}),
        "totalSessions": total_sessions,
        "totalPresent": total_present,
        "totalAbsent": sum(s.absent_count for s in summaries),
        "totalLate": sum(s.late_count for s in summaries),
        "totalExcused": sum(s.excused_count for s in summaries),
        "averageAttendance": _round1(sum(percentages) / len(percentages)) if percentages else 0.0,
        "highestAttendance": max(percentages) if percentages else 0.0,
        "lowestAttendance": min(percentages) if percentages else 0.0,
        "overallAttendanceRate": attendance_percentage(total_present, total_sessions),
    }


class SummaryService:
    """Maintain and read the per (student, subject, class) attendance rollups.

    Rollups are recounted from the attendance records right after every record
    write; ``recalculate_all_summaries`` repairs any drift.
    """

    def __init__(
        self,
        summaries: SummaryRepository,
        attendance: AttendanceRepository,
        roster: RosterRepository,
        *,
        low_attendance_threshold: float = DEFAULT_LOW_ATTENDANCE_THRESHOLD,
    ):
        self._summaries = summaries
        self._attendance = attendance
        self._roster = roster
        self._threshold = float(low_attendance_threshold)

    def _school_of_student(self, student_id: int) -> int:
        student = self._roster.get_student(student_id)
        if not student:
            raise NotFoundError("Student", {"studentId": student_id})
        return student.school_id

    def initialize_student_summary(
        self, student_id: int, subject_id: int, class_id: int, *, school_id: Optional[int] = None
    ) -> AttendanceSummary:
        existing = self._summaries.get(student_id=student_id, subject_id=subject_id, class_id=class_id)
        if existing:
            return existing

        summary = AttendanceSummary.from_counts(
            student_id=student_id,
            subject_id=subject_id,
            class_id=class_id,
            school_id=school_id if school_id is not None else self._school_of_student(student_id),
            counts={},
            now=datetime.now(),
        )
        self._summaries.upsert(summary)
        return summary

    def update_student_summary(
        self, student_id: int, subject_id: int, class_id: int, *, school_id: Optional[int] = None
    ) -> AttendanceSummary:
        counts = self._attendance.count_by_status(student_id=student_id, subject_id=subject_id, class_id=class_id)
        if school_id is None:
            existing = self._summaries.get(student_id=student_id, subject_id=subject_id, class_id=class_id)
            school_id = existing.school_id if existing else self._school_of_student(student_id)

        summary = AttendanceSummary.from_counts(
            student_id=student_id,
            subject_id=subject_id,
            class_id=class_id,
            school_id=school_id,
            counts=counts,
            now=datetime.now(),
        )
        self._summaries.upsert(summary)
        return summary

    def _describe(self, summary: AttendanceSummary) -> dict:
        subject = self._roster.get_subject(summary.subject_id)
        sclass = self._roster.get_class(summary.class_id)
        out = summary.to_dict()
        out["subjectName"] = subject.sub_name if subject else "Unknown Subject"
        out["subjectCode"] = subject.sub_code if subject else None
        out["className"] = sclass.class_name if sclass else "Unknown Class"
        return out

    def get_student_summary(
        self, student_id: int, *, subject_id: Optional[int] = None, class_id: Optional[int] = None
    ) -> list[dict]:
        summaries = self._summaries.list_for_student(student_id=student_id, subject_id=subject_id, class_id=class_id)
        out = []
        for s in summaries:
            item = self._describe(s)
            item["calculatedPercentages"] = {
                m.value: calculate_attendance_percentage(s.counts, m) for m in PercentageMethod
            }
            out.append(item)
        out.sort(key=lambda x: x["subjectName"])
        return out

    def get_class_summary(self, class_id: int, subject_id: int, *, descending: bool = True) -> dict:
        summaries = sorted(
            self._summaries.list_for_class(class_id=class_id, subject_id=subject_id),
            key=lambda s: s.attendance_percentage,
            reverse=descending,
        )
        student_rows = []
        for s in summaries:
            row = s.to_dict()
            student = self._roster.get_student(s.student_id)
            row["studentName"] = student.name if student else None
            row["rollNum"] = student.roll_num if student else None
            student_rows.append(row)

        return {
            "classId": class_id,
            "subjectId": subject_id,
            "studentSummaries": student_rows,
            "classStatistics": self._class_statistics(summaries),
            "totalStudents": len(summaries),
        }

    def _class_statistics(self, summaries: list[AttendanceSummary]) -> dict:
        percentages = [s.attendance_percentage for s in summaries]
        if not percentages:
            return {
                "averageAttendance": 0.0,
                "highestAttendance": 0.0,
                "lowestAttendance": 0.0,
                "studentsAboveThreshold": 0,
                "studentsBelowThreshold": 0,
                "threshold": self._threshold,
            }
        return {
            "averageAttendance": _round1(sum(percentages) / len(percentages)),
            "highestAttendance": max(percentages),
            "lowestAttendance": min(percentages),
            "studentsAboveThreshold": sum(1 for p in percentages if p >= self._threshold),
            "studentsBelowThreshold": sum(1 for p in percentages if p < self._threshold),
            "threshold": self._threshold,
        }

    def get_attendance_trends(
        self,
        student_id: int,
        subject_id: int,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> dict:
        records = self._attendance.list_for_student(
            student_id=student_id, subject_id=subject_id, start_date=start_date, end_date=end_date
        )

        weeks: "OrderedDict[tuple[int, int], dict[AttendanceStatus, int]]" = OrderedDict()
        for r in sorted(records, key=lambda r: r.attendance_date):
            iso = r.attendance_date.isocalendar()
            bucket = weeks.setdefault((iso[0], iso[1]), {s: 0 for s in AttendanceStatus})
            bucket[r.status] += 1

        weekly = []
        for (year, week), counts in weeks.items():
            total = sum(counts.values())
            weekly.append(
                {
                    "year": year,
                    "week": week,
                    "totalSessions": total,
                    "presentCount": counts[AttendanceStatus.PRESENT],
                    "absentCount": counts[AttendanceStatus.ABSENT],
                    "lateCount": counts[AttendanceStatus.LATE],
                    "excusedCount": counts[AttendanceStatus.EXCUSED],
                    "attendancePercentage": attendance_percentage(counts[AttendanceStatus.PRESENT], total),
                }
            )

        return {
            "studentId": student_id,
            "subjectId": subject_id,
            "weeklyTrends": weekly,
            "dateRange": {
                "startDate": start_date.isoformat() if start_date else None,
                "endDate": end_date.isoformat() if end_date else None,
            },
        }

    def get_school_analytics(self, school_id: int) -> dict:
        summaries = list(self._summaries.list_for_school(school_id=school_id))

        by_class: dict[int, list[AttendanceSummary]] = {}
        by_subject: dict[int, list[AttendanceSummary]] = {}
        for s in summaries:
            by_class.setdefault(s.class_id, []).append(s)
            by_subject.setdefault(s.subject_id, []).append(s)

        class_breakdown = []
        for class_id, rows in sorted(by_class.items()):
            sclass = self._roster.get_class(class_id)
            item = _aggregate(rows)
            item.update({"classId": class_id, "className": sclass.class_name if sclass else None})
            class_breakdown.append(item)

        subject_breakdown = []
        for subject_id, rows in sorted(by_subject.items()):
            subject = self._roster.get_subject(subject_id)
            item = _aggregate(rows)
            item.update(
                {
                    "subjectId": subject_id,
                    "subjectName": subject.sub_name if subject else None,
                    "subjectCode": subject.sub_code if subject else None,
                }
            )
            subject_breakdown.append(item)

        return {
            "schoolId": school_id,
            "overallStats": _aggregate(summaries),
            "classBreakdown": class_breakdown,
            "subjectBreakdown": subject_breakdown,
        }

    def get_low_attendance_alerts(
        self,
        class_id: int,
        *,
        subject_id: Optional[int] = None,
        threshold: Optional[float] = None,
        min_sessions: int = DEFAULT_ALERT_MIN_SESSIONS,
    ) -> list[dict]:
        threshold = self._threshold if threshold is None else float(threshold)
        low = [
            s
            for s in self._summaries.list_for_class(class_id=class_id, subject_id=subject_id)
            if s.total_sessions >= min_sessions and s.attendance_percentage < threshold
        ]
        low.sort(key=lambda s: s.attendance_percentage)

        alerts = []
        for s in low:
            student = self._roster.get_student(s.student_id)
            subject = self._roster.get_subject(s.subject_id)
            alerts.append(
                {
                    "student": {"_id": s.student_id, "name": student.name if student else None,
                                "rollNum": student.roll_num if student else None},
                    "subject": {"_id": s.subject_id, "subName": subject.sub_name if subject else None,
                                "subCode": subject.sub_code if subject else None},
                    "attendancePercentage": s.attendance_percentage,
                    "totalSessions": s.total_sessions,
                    "presentCount": s.present_count,
                    "absentCount": s.absent_count,
                    "alertLevel": alert_level(s.attendance_percentage, threshold),
                }
            )
        return alerts

    def recalculate_all_summaries(self, school_id: int) -> dict:
        result = {"processed": 0, "updated": 0, "errors": 0, "errorDetails": []}
        for student_id, subject_id, class_id in self._attendance.distinct_enrollments(school_id=school_id):
            result["processed"] += 1
            try:
                self.update_student_summary(student_id, subject_id, class_id, school_id=school_id)
                result["updated"] += 1
            except Exception as e:
                logger.exception(
                    "Summary recalculation failed for student=%s subject=%s class=%s", student_id, subject_id, class_id
                )
                result["errors"] += 1
                result["errorDetails"].append(
                    {"studentId": student_id, "subjectId": subject_id, "classId": class_id, "error": str(e)}
                )
        logger.info("Recalculated summaries for school=%s: %s", school_id, {k: result[k] for k in ("processed", "updated", "errors")})
        return result
