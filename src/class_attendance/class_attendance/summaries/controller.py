from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import optional_date
from ..common.http import API_PREFIX, ensure_self_or_staff, ok, roles_required
from ..common.validators import optional_id
from ..core.constants import DEFAULT_ALERT_MIN_SESSIONS
from ..core.enums import Role
from ..core.exceptions import ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.summary_service

    @app.route(f"{API_PREFIX}/summary/student/<int:student_id>", methods=["GET"], endpoint="summary_student")
    @roles_required()
    def student_summary(student_id: int):
        ensure_self_or_staff(student_id)
        summaries = service.get_student_summary(
            student_id,
            subject_id=optional_id(request.args.get("subjectId"), "subjectId"),
            class_id=optional_id(request.args.get("classId"), "classId"),
        )
        return ok(summaries)

    @app.route(
        f"{API_PREFIX}/summary/class/<int:class_id>/subject/<int:subject_id>",
        methods=["GET"],
        endpoint="summary_class",
    )
    @roles_required(Role.TEACHER, Role.ADMIN)
    def class_summary(class_id: int, subject_id: int):
        descending = request.args.get("sortOrder", "desc").lower() != "asc"
        return ok(service.get_class_summary(class_id, subject_id, descending=descending))

    @app.route(
        f"{API_PREFIX}/analytics/trends/<int:student_id>/<int:subject_id>",
        methods=["GET"],
        endpoint="analytics_trends",
    )
    @roles_required()
    def trends(student_id: int, subject_id: int):
        ensure_self_or_staff(student_id)
        return ok(
            service.get_attendance_trends(
                student_id,
                subject_id,
                start_date=optional_date(request.args.get("startDate"), "startDate"),
                end_date=optional_date(request.args.get("endDate"), "endDate"),
            )
        )

    @app.route(f"{API_PREFIX}/analytics/school/<int:school_id>", methods=["GET"], endpoint="analytics_school")
    @roles_required(Role.ADMIN)
    def school_analytics(school_id: int):
        return ok(service.get_school_analytics(school_id))

    @app.route(f"{API_PREFIX}/analytics/alerts/<int:class_id>", methods=["GET"], endpoint="analytics_alerts")
    @roles_required(Role.TEACHER, Role.ADMIN)
    def alerts(class_id: int):
        threshold = _float_arg("threshold")
        min_sessions = _float_arg("minSessions")
        result = service.get_low_attendance_alerts(
            class_id,
            subject_id=optional_id(request.args.get("subjectId"), "subjectId"),
            threshold=threshold,
            min_sessions=int(min_sessions) if min_sessions is not None else DEFAULT_ALERT_MIN_SESSIONS,
        )
        return ok(result)

    @app.route(f"{API_PREFIX}/summary/recalculate/<int:school_id>", methods=["POST"], endpoint="summary_recalculate")
    @roles_required(Role.ADMIN)
    def recalculate(school_id: int):
        result = service.recalculate_all_summaries(school_id)
        return ok(result, message=f"Recalculated {result['updated']} summaries")


def _float_arg(name: str):
    raw = request.args.get(name)
    if raw in (None, ""):
        return None
    try:
        return float(raw)
    except ValueError:
        raise ValidationError(f"Invalid {name} {raw!r}", {name: raw})
