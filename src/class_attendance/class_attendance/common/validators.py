from __future__ import annotations

import re
from typing import Any, Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_id(value: Any, field_name: str) -> int:
    """Identifiers arrive as JSON numbers or numeric strings."""
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field_name} {value!r}", {field_name: value})
    if parsed <= 0:
        raise ValidationError(f"Invalid {field_name} {value!r}", {field_name: value})
    return parsed


def optional_id(value: Any, field_name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    return require_id(value, field_name)


def require_id_list(values: Any, field_name: str) -> list[int]:
    if values is None:
        return []
    if not isinstance(values, list):
        raise ValidationError(f"{field_name} must be an array")
    return [require_id(v, field_name) for v in values]


def wildcard_to_regex(pattern: str) -> str:
    """Turn a ``*`` wildcard pattern into an anchored regular expression."""
    escaped = re.escape(pattern).replace(r"\*", ".*")
    return f"^{escaped}$"
