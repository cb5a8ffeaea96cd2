from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

from ..core.enums import AuditAction
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, from_json, in_clause, to_json
from .model import AuditInfo, AuditLogEntry
from .repository import AuditLogRepository


class MySQLAuditLogRepository(AuditLogRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def append(
        self,
        *,
        record_id: Optional[int],
        action: AuditAction,
        old_values: Optional[dict[str, Any]],
        new_values: Optional[dict[str, Any]],
        performed_by: int,
        performed_by_model: str,
        school_id: int,
        reason: Optional[str] = None,
        audit_info: Optional[AuditInfo] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> int:
        info = audit_info or AuditInfo()
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_audit_logs(
                    record_id, action, old_values, new_values, performed_by, performed_by_model,
                    performed_at, reason, school_id, ip_address, user_agent, metadata
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    record_id,
                    action.value,
                    to_json(old_values),
                    to_json(new_values),
                    performed_by,
                    performed_by_model,
                    datetime.now(),
                    reason,
                    school_id,
                    info.ip_address,
                    (info.user_agent or "")[:255] or None,
                    to_json(metadata),
                ),
            )
            return int(cur.lastrowid)

    def list_for_record(self, *, record_id: int, limit: int) -> Sequence[AuditLogEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT audit_id, record_id, action, old_values, new_values, performed_by, performed_by_model,
                       performed_at, reason, school_id, ip_address, user_agent, metadata
                FROM attendance_audit_logs
                WHERE record_id=%s
                ORDER BY performed_at DESC, audit_id DESC
                LIMIT %s
                """,
                (record_id, int(limit)),
            )
            return [
                AuditLogEntry(
                    audit_id=int(r["audit_id"]),
                    record_id=r.get("record_id"),
                    action=AuditAction(r["action"]),
                    old_values=from_json(r.get("old_values")),
                    new_values=from_json(r.get("new_values")),
                    performed_by=int(r["performed_by"]),
                    performed_by_model=r["performed_by_model"],
                    performed_at=r["performed_at"],
                    school_id=int(r["school_id"]),
                    reason=r.get("reason"),
                    ip_address=r.get("ip_address"),
                    user_agent=r.get("user_agent"),
                    metadata=from_json(r.get("metadata")),
                )
                for r in fetchall(cur)
            ]

    def count_by_action(
        self,
        *,
        school_id: int,
        actions: Sequence[AuditAction],
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Sequence[dict]:
        where = ["school_id=%s", f"action IN ({in_clause(actions)})"]
        params: list = [school_id, *[a.value for a in actions]]
        if start:
            where.append("performed_at >= %s")
            params.append(start)
        if end:
            where.append("performed_at <= %s")
            params.append(end)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT action, COUNT(*) AS count, MAX(performed_at) AS last_performed
                FROM attendance_audit_logs
                WHERE {" AND ".join(where)}
                GROUP BY action
                """,
                tuple(params),
            )
            return [
                {"action": AuditAction(r["action"]), "count": int(r["count"]), "last_performed": r["last_performed"]}
                for r in fetchall(cur)
            ]
