from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from ..core.enums import SessionResolutionKind, SessionType


@dataclass(frozen=True)
class SessionConfiguration:
    """Declared sessions of one type for a subject taught in a class."""

    config_id: int
    subject_id: int
    class_id: int
    school_id: int
    session_type: SessionType
    sessions_per_week: int
    start_date: date
    end_date: date
    session_duration: int = 60
    total_sessions: int = 45
    scheduled_days: tuple[str, ...] = field(default_factory=tuple)
    is_active: bool = True

    @property
    def session_names(self) -> list[str]:
        # Lectures are numbered per week; labs and tutorials carry a single label.
        if self.session_type == SessionType.LECTURE:
            return [f"Lecture {i}" for i in range(1, int(self.sessions_per_week) + 1)]
        return [self.session_type.value.capitalize()]


@dataclass(frozen=True)
class SessionResolution:
    kind: SessionResolutionKind
    session_name: str
    valid_names: tuple[str, ...]
    configuration: Optional[SessionConfiguration] = None

    @property
    def is_valid(self) -> bool:
        return self.kind != SessionResolutionKind.INVALID

    @property
    def is_default(self) -> bool:
        return self.kind == SessionResolutionKind.DEFAULT
