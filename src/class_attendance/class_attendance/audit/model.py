from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from ..core.enums import AuditAction


@dataclass(frozen=True)
class AuditInfo:
    """Request context copied onto every audit row."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


@dataclass(frozen=True)
class AuditLogEntry:
    audit_id: int
    record_id: Optional[int]
    action: AuditAction
    old_values: Optional[dict[str, Any]]
    new_values: Optional[dict[str, Any]]
    performed_by: int
    performed_by_model: str
    performed_at: datetime
    school_id: int
    reason: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "_id": self.audit_id,
            "recordId": self.record_id,
            "action": self.action.value,
            "oldValues": self.old_values,
            "newValues": self.new_values,
            "performedBy": self.performed_by,
            "performedByModel": self.performed_by_model,
            "performedAt": self.performed_at.isoformat(),
            "reason": self.reason,
            "schoolId": self.school_id,
            "metadata": self.metadata,
        }
