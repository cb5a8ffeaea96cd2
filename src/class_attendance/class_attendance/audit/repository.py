from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Protocol, Sequence

from ..core.enums import AuditAction
from .model import AuditInfo, AuditLogEntry


class AuditLogRepository(Protocol):
    """Append-only: rows are never updated or deleted."""

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
        raise NotImplementedError

    def list_for_record(self, *, record_id: int, limit: int) -> Sequence[AuditLogEntry]:
        """Newest first."""

        raise NotImplementedError

    def count_by_action(
        self,
        *,
        school_id: int,
        actions: Sequence[AuditAction],
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Sequence[dict]:
        """Rows of ``{"action", "count", "last_performed"}``."""

        raise NotImplementedError
