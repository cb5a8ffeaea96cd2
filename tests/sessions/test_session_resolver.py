from __future__ import annotations

from dataclasses import replace
from datetime import date

from src.class_attendance.class_attendance.core.enums import SessionResolutionKind, SessionType
from src.class_attendance.class_attendance.sessions.model import SessionConfiguration
from src.class_attendance.class_attendance.sessions.resolver import SessionNameResolver
from tests.in_memory import InMemorySessionConfigurations

LECTURES = SessionConfiguration(
    config_id=1,
    subject_id=100,
    class_id=10,
    school_id=1,
    session_type=SessionType.LECTURE,
    sessions_per_week=2,
    start_date=date(2023, 9, 1),
    end_date=date(2024, 1, 31),
)


def _resolver(*configs):
    repo = InMemorySessionConfigurations()
    repo.configs.extend(configs)
    return SessionNameResolver(repo)


def test_defaults_apply_without_configuration():
    resolution = _resolver().resolve(class_id=10, subject_id=100, session="Lab")
    assert resolution.kind == SessionResolutionKind.DEFAULT
    assert resolution.is_valid
    assert resolution.configuration is None


def test_unknown_label_without_configuration_is_invalid():
    resolution = _resolver().resolve(class_id=10, subject_id=100, session="Workshop")
    assert resolution.kind == SessionResolutionKind.INVALID
    assert resolution.valid_names == ("Lecture 1", "Lecture 2", "Lecture 3", "Lecture 4", "Lab", "Tutorial")


def test_configured_label_returns_its_configuration():
    lab = replace(LECTURES, config_id=2, session_type=SessionType.LAB, sessions_per_week=1)
    resolution = _resolver(LECTURES, lab).resolve(class_id=10, subject_id=100, session="Lab")
    assert resolution.kind == SessionResolutionKind.CONFIGURED
    assert resolution.configuration == lab


def test_configuration_hides_defaults():
    resolution = _resolver(LECTURES).resolve(class_id=10, subject_id=100, session="Lecture 4")
    assert resolution.kind == SessionResolutionKind.INVALID
    assert resolution.valid_names == ("Lecture 1", "Lecture 2")


def test_inactive_or_other_pair_configurations_are_ignored():
    inactive = replace(LECTURES, is_active=False)
    other = replace(LECTURES, config_id=3, class_id=11)
    resolution = _resolver(inactive, other).resolve(class_id=10, subject_id=100, session="Lecture 4")
    assert resolution.kind == SessionResolutionKind.DEFAULT


def test_valid_session_names():
    assert _resolver(LECTURES).valid_session_names(class_id=10, subject_id=100) == {
        "sessions": ["Lecture 1", "Lecture 2"],
        "isDefault": False,
    }
    assert _resolver().valid_session_names(class_id=10, subject_id=100)["isDefault"] is True
