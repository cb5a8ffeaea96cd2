from __future__ import annotations

from functools import wraps
from typing import Any, Optional

from flask import jsonify, request, session

from ..audit.model import AuditInfo
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError, ValidationError

API_PREFIX = "/api/attendance"


def ok(data: Any = None, *, message: Optional[str] = None, status: int = 200):
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return jsonify(body), status


def current_user() -> tuple[int, Role]:
    """Caller identity as stored in the Flask session by the login layer."""
    if "user_id" not in session:
        raise AuthenticationError("Authentication required")
    try:
        role = Role(session.get("role"))
    except ValueError:
        raise AuthorizationError("Invalid user role", {"role": session.get("role")})
    return int(session["user_id"]), role


def roles_required(*roles: Role):
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            user_id, role = current_user()
            if roles and role not in roles:
                raise AuthorizationError(
                    "You do not have permission to access this resource",
                    {"role": role.value, "allowedRoles": [r.value for r in roles]},
                )
            return view(*args, **kwargs)

        return wrapper

    return decorator


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def audit_info_from_request() -> AuditInfo:
    return AuditInfo(ip_address=request.remote_addr, user_agent=request.headers.get("User-Agent"))


def ensure_self_or_staff(student_id: int) -> None:
    """Students may only read their own data."""
    user_id, role = current_user()
    if role == Role.STUDENT and user_id != student_id:
        raise AuthorizationError("Students can only view their own attendance", {"studentId": student_id})
