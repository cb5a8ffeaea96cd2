from __future__ import annotations

from datetime import datetime, time

from flask import Flask, request

from ..common.datetime_utils import midnight, optional_date
from ..common.http import API_PREFIX, audit_info_from_request, current_user, json_body, ok, roles_required
from ..common.validators import optional_id, require_id, require_id_list
from ..core.enums import Role
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.bulk_service

    @app.route(f"{API_PREFIX}/bulk/assign-students", methods=["POST"], endpoint="bulk_assign_students")
    @roles_required(Role.ADMIN)
    def assign_students():
        user_id, _ = current_user()
        payload = json_body()
        subject_ids = payload.get("subjectIds")
        result = service.assign_students_by_pattern(
            payload.get("pattern"),
            require_id(payload.get("targetClassId"), "targetClassId"),
            performed_by=user_id,
            subject_ids=require_id_list(subject_ids, "subjectIds") if subject_ids is not None else None,
            school_id=optional_id(payload.get("schoolId"), "schoolId"),
            audit_info=audit_info_from_request(),
        )
        return ok(result.to_dict(), message=result.message or f"Assigned {result.success_count} students")

    @app.route(f"{API_PREFIX}/bulk/transfer", methods=["PUT"], endpoint="bulk_transfer")
    @roles_required(Role.ADMIN)
    def transfer():
        user_id, _ = current_user()
        payload = json_body()
        subject_ids = payload.get("subjectIds")
        result = service.transfer_students(
            payload.get("studentIds"),
            require_id(payload.get("fromClassId"), "fromClassId"),
            require_id(payload.get("toClassId"), "toClassId"),
            performed_by=user_id,
            subject_ids=require_id_list(subject_ids, "subjectIds") if subject_ids is not None else None,
            migrate_attendance=bool(payload.get("migrateAttendance", False)),
            audit_info=audit_info_from_request(),
        )
        return ok(result.to_dict(), message=f"Transferred {result.success_count} students")

    @app.route(f"{API_PREFIX}/bulk/reassign-teacher", methods=["PUT"], endpoint="bulk_reassign_teacher")
    @roles_required(Role.ADMIN)
    def reassign_teacher():
        user_id, _ = current_user()
        payload = json_body()
        result = service.reassign_teacher(
            require_id(payload.get("teacherId"), "teacherId"),
            payload.get("newAssignments"),
            performed_by=user_id,
            audit_info=audit_info_from_request(),
        )
        return ok(result, message="Teacher reassigned")

    @app.route(f"{API_PREFIX}/bulk/stats/<int:school_id>", methods=["GET"], endpoint="bulk_stats")
    @roles_required(Role.ADMIN)
    def stats(school_id: int):
        start = optional_date(request.args.get("startDate"), "startDate")
        end = optional_date(request.args.get("endDate"), "endDate")
        return ok(
            service.get_bulk_operation_stats(
                school_id,
                start=midnight(start) if start else None,
                end=datetime.combine(end, time.max) if end else None,
            )
        )
