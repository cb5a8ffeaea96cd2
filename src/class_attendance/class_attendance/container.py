from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .attendance.validation import ValidationService
from .audit.mysql_audit_repository import MySQLAuditLogRepository
from .audit.repository import AuditLogRepository
from .bulk.service import BulkManagementService
from .core.constants import (
    DEFAULT_LOW_ATTENDANCE_THRESHOLD,
    DEFAULT_MAX_EDIT_WINDOW_HOURS,
    DEFAULT_MAX_FUTURE_DAYS,
    DEFAULT_MAX_PAST_DAYS,
)
from .database.connection import DBConfig, DatabaseConnection
from .roster.mysql_roster_repository import MySQLRosterRepository
from .roster.repository import RosterRepository
from .sessions.mysql_session_repository import MySQLSessionConfigurationRepository
from .sessions.repository import SessionConfigurationRepository
from .sessions.resolver import SessionNameResolver
from .summaries.mysql_summary_repository import MySQLSummaryRepository
from .summaries.repository import SummaryRepository
from .summaries.service import SummaryService


@dataclass(frozen=True)
class AttendanceSettings:
    max_past_days: int = DEFAULT_MAX_PAST_DAYS
    max_future_days: int = DEFAULT_MAX_FUTURE_DAYS
    allow_weekends: bool = True
    max_edit_window_hours: int = DEFAULT_MAX_EDIT_WINDOW_HOURS
    low_attendance_threshold: float = DEFAULT_LOW_ATTENDANCE_THRESHOLD

    @classmethod
    def from_module(cls, settings) -> "AttendanceSettings":
        return cls(
            max_past_days=int(getattr(settings, "MAX_PAST_DAYS", DEFAULT_MAX_PAST_DAYS)),
            max_future_days=int(getattr(settings, "MAX_FUTURE_DAYS", DEFAULT_MAX_FUTURE_DAYS)),
            allow_weekends=bool(getattr(settings, "ALLOW_WEEKENDS", True)),
            max_edit_window_hours=int(getattr(settings, "MAX_EDIT_WINDOW_HOURS", DEFAULT_MAX_EDIT_WINDOW_HOURS)),
            low_attendance_threshold=float(
                getattr(settings, "LOW_ATTENDANCE_THRESHOLD", DEFAULT_LOW_ATTENDANCE_THRESHOLD)
            ),
        )


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    roster_repo: RosterRepository
    sessions_repo: SessionConfigurationRepository
    attendance_repo: AttendanceRepository
    summaries_repo: SummaryRepository
    audit_repo: AuditLogRepository

    session_resolver: SessionNameResolver
    validation_service: ValidationService
    summary_service: SummaryService
    attendance_service: AttendanceService
    bulk_service: BulkManagementService


def build_services(
    *,
    roster_repo: RosterRepository,
    sessions_repo: SessionConfigurationRepository,
    attendance_repo: AttendanceRepository,
    summaries_repo: SummaryRepository,
    audit_repo: AuditLogRepository,
    settings: Optional[AttendanceSettings] = None,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Wire services over any repository implementations (MySQL or in-memory)."""
    settings = settings or AttendanceSettings()

    session_resolver = SessionNameResolver(sessions_repo)
    validation_service = ValidationService(
        roster_repo,
        session_resolver,
        max_past_days=settings.max_past_days,
        max_future_days=settings.max_future_days,
        allow_weekends=settings.allow_weekends,
        max_edit_window_hours=settings.max_edit_window_hours,
    )
    summary_service = SummaryService(
        summaries_repo,
        attendance_repo,
        roster_repo,
        low_attendance_threshold=settings.low_attendance_threshold,
    )
    attendance_service = AttendanceService(
        attendance_repo,
        roster_repo,
        audit_repo,
        validation_service,
        summary_service,
    )
    bulk_service = BulkManagementService(
        roster_repo,
        attendance_repo,
        summaries_repo,
        summary_service,
        audit_repo,
    )

    return Container(
        conn=conn,
        roster_repo=roster_repo,
        sessions_repo=sessions_repo,
        attendance_repo=attendance_repo,
        summaries_repo=summaries_repo,
        audit_repo=audit_repo,
        session_resolver=session_resolver,
        validation_service=validation_service,
        summary_service=summary_service,
        attendance_service=attendance_service,
        bulk_service=bulk_service,
    )


def build_container(*, db_config: dict, settings: Optional[AttendanceSettings] = None) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    return build_services(
        roster_repo=MySQLRosterRepository(conn),
        sessions_repo=MySQLSessionConfigurationRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        summaries_repo=MySQLSummaryRepository(conn),
        audit_repo=MySQLAuditLogRepository(conn),
        settings=settings,
        conn=conn,
    )
