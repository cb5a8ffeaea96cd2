from __future__ import annotations

from datetime import datetime

import pytest

from src.class_attendance.class_attendance.attendance import service as attendance_service_module
from src.class_attendance.class_attendance.main import create_app
from tests.in_memory import (
    ADMIN_ID,
    CLASS_ID,
    STUDENT_A,
    STUDENT_B,
    SUBJECT_ID,
    TEACHER_ID,
    World,
)

NOW = datetime(2023, 10, 15, 10, 0)
BASE = "/api/attendance"
SESSION_QUERY = {"date": "2023-10-15", "session": "Lecture 1"}


@pytest.fixture
def world(monkeypatch):
    monkeypatch.setattr(attendance_service_module, "now_local", lambda: NOW)
    return World()


@pytest.fixture
def client(world):
    app = create_app("config.testing", container=world.container)
    return app.test_client()


def login(client, user_id: int, role: str) -> None:
    with client.session_transaction() as sess:
        sess["user_id"] = user_id
        sess["role"] = role


def mark_payload(**overrides):
    payload = {
        "classId": CLASS_ID,
        "subjectId": SUBJECT_ID,
        "date": "2023-10-15",
        "session": "Lecture 1",
        "studentAttendance": [
            {"studentId": STUDENT_A, "status": "present"},
            {"studentId": STUDENT_B, "status": "absent"},
        ],
    }
    payload.update(overrides)
    return payload


def test_requires_login(client):
    resp = client.post(f"{BASE}/mark", json=mark_payload())
    assert resp.status_code == 401
    assert resp.get_json()["success"] is False
    assert resp.get_json()["error"] == "AuthenticationError"


def test_student_cannot_mark(client):
    login(client, STUDENT_A, "Student")
    resp = client.post(f"{BASE}/mark", json=mark_payload())
    assert resp.status_code == 403


def test_unknown_role_is_forbidden(client):
    login(client, 77, "Janitor")
    assert client.get(f"{BASE}/records").status_code == 403


def test_mark_update_and_session_summary_flow(client, world):
    login(client, TEACHER_ID, "Teacher")

    resp = client.post(f"{BASE}/mark", json=mark_payload(), headers={"User-Agent": "pytest-agent"})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["success"] is True
    assert body["data"]["successCount"] == 2

    summary = client.get(f"{BASE}/session-summary/{CLASS_ID}/{SUBJECT_ID}", query_string=SESSION_QUERY).get_json()
    assert (summary["data"]["totalStudents"], summary["data"]["presentCount"], summary["data"]["absentCount"]) == (2, 1, 1)

    absent_id = next(r["recordId"] for r in body["data"]["successful"] if r["studentId"] == STUDENT_B)
    resp = client.put(f"{BASE}/{absent_id}", json={"status": "late", "reason": "Bus delay"})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["status"] == "late"

    summary = client.get(f"{BASE}/session-summary/{CLASS_ID}/{SUBJECT_ID}", query_string=SESSION_QUERY).get_json()
    assert (summary["data"]["presentCount"], summary["data"]["lateCount"], summary["data"]["absentCount"]) == (1, 1, 0)

    history = client.get(f"{BASE}/{absent_id}/history").get_json()["data"]
    assert [h["action"] for h in history] == ["update", "create"]
    assert world.audit.entries[0].user_agent == "pytest-agent"


def test_invalid_session_is_a_400_with_details(client):
    login(client, TEACHER_ID, "Teacher")
    resp = client.post(f"{BASE}/mark", json=mark_payload(session="Seminar"))
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["error"] == "InvalidSessionError"
    assert body["details"]["providedSession"] == "Seminar"


def test_unassigned_teacher_gets_403(client, world):
    login(client, TEACHER_ID, "Teacher")
    resp = client.post(f"{BASE}/mark", json=mark_payload(classId=11))
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "AttendanceAuthorizationError"


def test_delete_is_admin_only(client, world):
    login(client, TEACHER_ID, "Teacher")
    record_id = client.post(f"{BASE}/mark", json=mark_payload()).get_json()["data"]["successful"][0]["recordId"]

    assert client.delete(f"{BASE}/{record_id}").status_code == 403

    login(client, ADMIN_ID, "Admin")
    resp = client.delete(f"{BASE}/{record_id}", json={"reason": "Wrong session"})
    assert resp.status_code == 200
    assert world.attendance.get_by_id(record_id) is None
    assert client.delete(f"{BASE}/{record_id}").status_code == 404


def test_students_only_see_their_own_records(client):
    login(client, TEACHER_ID, "Teacher")
    client.post(f"{BASE}/mark", json=mark_payload())

    login(client, STUDENT_A, "Student")
    data = client.get(f"{BASE}/records?studentId={STUDENT_B}").get_json()["data"]
    assert {r["studentId"] for r in data["records"]} == {STUDENT_A}

    assert client.get(f"{BASE}/summary/student/{STUDENT_B}").status_code == 403
    own = client.get(f"{BASE}/summary/student/{STUDENT_A}").get_json()["data"]
    assert own[0]["attendancePercentage"] == 100.0


def test_records_reject_bad_status_filter(client):
    login(client, ADMIN_ID, "Admin")
    assert client.get(f"{BASE}/records?status=sick").status_code == 400


def test_class_students_and_session_options(client):
    login(client, TEACHER_ID, "Teacher")
    students = client.get(f"{BASE}/class/{CLASS_ID}/students?subjectId={SUBJECT_ID}").get_json()["data"]
    assert [s["_id"] for s in students] == [STUDENT_A, STUDENT_B]

    options = client.get(f"{BASE}/session-options?classId={CLASS_ID}&subjectId={SUBJECT_ID}").get_json()["data"]
    assert options["isDefault"] is True
    assert "Tutorial" in options["sessions"]

    assert client.get(f"{BASE}/session-options?classId={CLASS_ID}").status_code == 400


def test_bulk_routes_are_admin_only(client):
    login(client, TEACHER_ID, "Teacher")
    assert client.get(f"{BASE}/bulk/stats/1").status_code == 403

    login(client, ADMIN_ID, "Admin")
    resp = client.put(
        f"{BASE}/bulk/transfer",
        json={"studentIds": [STUDENT_B], "fromClassId": CLASS_ID, "toClassId": 11},
    )
    assert resp.status_code == 200
    assert resp.get_json()["data"]["successCount"] == 1

    stats = client.get(f"{BASE}/bulk/stats/1").get_json()["data"]
    assert stats["studentTransfers"] == 1


def test_analytics_routes(client):
    login(client, TEACHER_ID, "Teacher")
    client.post(f"{BASE}/mark", json=mark_payload())

    class_summary = client.get(f"{BASE}/summary/class/{CLASS_ID}/subject/{SUBJECT_ID}").get_json()["data"]
    assert class_summary["totalStudents"] == 2

    alerts = client.get(f"{BASE}/analytics/alerts/{CLASS_ID}?threshold=80&minSessions=1").get_json()["data"]
    assert [a["student"]["_id"] for a in alerts] == [STUDENT_B]

    assert client.get(f"{BASE}/analytics/alerts/{CLASS_ID}?threshold=abc").status_code == 400
    assert client.get(f"{BASE}/analytics/school/1").status_code == 403

    login(client, ADMIN_ID, "Admin")
    school = client.get(f"{BASE}/analytics/school/1").get_json()["data"]
    assert school["overallStats"]["totalSessions"] == 2


def test_unknown_route_is_json_404(client):
    login(client, ADMIN_ID, "Admin")
    resp = client.get(f"{BASE}/nope/nothing")
    assert resp.status_code == 404
    assert resp.get_json()["success"] is False
