from __future__ import annotations

from typing import Sequence

from ..core.enums import SessionType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import SessionConfiguration
from .repository import SessionConfigurationRepository


class MySQLSessionConfigurationRepository(SessionConfigurationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_active(self, *, subject_id: int, class_id: int) -> Sequence[SessionConfiguration]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT config_id, subject_id, class_id, school_id, session_type, sessions_per_week,
                       session_duration, total_sessions, start_date, end_date, scheduled_days, is_active
                FROM session_configurations
                WHERE subject_id=%s AND class_id=%s AND is_active=1
                ORDER BY FIELD(session_type, 'lecture', 'lab', 'tutorial')
                """,
                (subject_id, class_id),
            )
            return [
                SessionConfiguration(
                    config_id=int(r["config_id"]),
                    subject_id=int(r["subject_id"]),
                    class_id=int(r["class_id"]),
                    school_id=int(r["school_id"]),
                    session_type=SessionType(r["session_type"]),
                    sessions_per_week=int(r["sessions_per_week"]),
                    session_duration=int(r["session_duration"]),
                    total_sessions=int(r["total_sessions"]),
                    start_date=r["start_date"],
                    end_date=r["end_date"],
                    scheduled_days=tuple(d for d in (r.get("scheduled_days") or "").split(",") if d),
                    is_active=bool(r["is_active"]),
                )
                for r in fetchall(cur)
            ]
