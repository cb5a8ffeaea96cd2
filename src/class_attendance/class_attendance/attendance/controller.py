from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import optional_date
from ..common.http import (
    API_PREFIX,
    audit_info_from_request,
    current_user,
    json_body,
    ok,
    roles_required,
)
from ..common.validators import optional_id, require_id
from ..core.constants import DEFAULT_PAGE_SIZE
from ..core.enums import Operation, Role
from ..core.exceptions import ValidationError
from ..container import Container
from .model import AttendanceFilter, MarkAttendanceRequest


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service
    validation = container.validation_service

    @app.route(f"{API_PREFIX}/class/<int:class_id>/students", methods=["GET"], endpoint="attendance_class_students")
    @roles_required(Role.TEACHER, Role.ADMIN)
    def class_students(class_id: int):
        user_id, role = current_user()
        subject_id = optional_id(request.args.get("subjectId"), "subjectId")
        students = service.get_class_students_for_attendance(class_id, subject_id, user_id, role)
        return ok(students)

    def _mark():
        user_id, role = current_user()
        payload = json_body()
        result = service.mark_attendance(
            MarkAttendanceRequest.from_payload(payload, teacher_id=user_id),
            user_id,
            role,
            audit_info_from_request(),
        )
        return ok(result.to_dict(), message=result.message or "Attendance marked")

    @app.route(f"{API_PREFIX}/mark", methods=["POST"], endpoint="attendance_mark")
    @roles_required(Role.TEACHER, Role.ADMIN)
    def mark():
        return _mark()

    @app.route(f"{API_PREFIX}/bulk/mark", methods=["POST"], endpoint="attendance_bulk_mark")
    @roles_required(Role.TEACHER, Role.ADMIN)
    def bulk_mark():
        return _mark()

    @app.route(f"{API_PREFIX}/<int:record_id>", methods=["PUT"], endpoint="attendance_update")
    @roles_required(Role.TEACHER, Role.ADMIN)
    def update(record_id: int):
        user_id, role = current_user()
        payload = json_body()
        record = service.update_attendance(
            record_id,
            payload.get("status"),
            payload.get("reason"),
            user_id,
            role,
            audit_info_from_request(),
        )
        return ok(record, message="Attendance updated")

    @app.route(f"{API_PREFIX}/<int:record_id>", methods=["DELETE"], endpoint="attendance_delete")
    @roles_required(Role.ADMIN)
    def delete(record_id: int):
        user_id, role = current_user()
        payload = json_body()
        result = service.delete_attendance(record_id, user_id, role, payload.get("reason"), audit_info_from_request())
        return ok(result, message="Attendance record deleted")

    @app.route(f"{API_PREFIX}/<int:record_id>/history", methods=["GET"], endpoint="attendance_history")
    @roles_required(Role.TEACHER, Role.ADMIN)
    def history(record_id: int):
        return ok(service.get_record_history(record_id))

    @app.route(f"{API_PREFIX}/records", methods=["GET"], endpoint="attendance_records")
    @roles_required()
    def records():
        user_id, role = current_user()
        validation.validate_user_permissions(user_id, role, Operation.VIEW)

        args = request.args
        status = args.get("status")
        student_id = optional_id(args.get("studentId"), "studentId")
        if role == Role.STUDENT:
            student_id = user_id

        filters = AttendanceFilter(
            class_id=optional_id(args.get("classId"), "classId"),
            subject_id=optional_id(args.get("subjectId"), "subjectId"),
            teacher_id=optional_id(args.get("teacherId"), "teacherId"),
            student_id=student_id,
            school_id=optional_id(args.get("schoolId"), "schoolId"),
            status=validation.validate_attendance_status(status) if status else None,
            session=args.get("session") or None,
            start_date=optional_date(args.get("startDate"), "startDate"),
            end_date=optional_date(args.get("endDate"), "endDate"),
        )
        page = _int_arg("page", 1)
        limit = _int_arg("limit", DEFAULT_PAGE_SIZE)
        return ok(service.get_attendance_by_filters(filters, page=page, limit=limit))

    @app.route(
        f"{API_PREFIX}/session-summary/<int:class_id>/<int:subject_id>",
        methods=["GET"],
        endpoint="attendance_session_summary",
    )
    @roles_required(Role.TEACHER, Role.ADMIN)
    def session_summary(class_id: int, subject_id: int):
        day, session_name = request.args.get("date"), request.args.get("session")
        if not day or not session_name:
            raise ValidationError("date and session query parameters are required")
        return ok(service.get_session_summary(class_id, subject_id, day, session_name))

    @app.route(f"{API_PREFIX}/session-options", methods=["GET"], endpoint="attendance_session_options")
    @roles_required(Role.TEACHER, Role.ADMIN)
    def session_options():
        class_id = require_id(request.args.get("classId"), "classId")
        subject_id = require_id(request.args.get("subjectId"), "subjectId")
        return ok(container.session_resolver.valid_session_names(class_id=class_id, subject_id=subject_id))


def _int_arg(name: str, default: int) -> int:
    raw = request.args.get(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"Invalid {name} {raw!r}", {name: raw})
