from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping

from ..core.enums import AttendanceStatus, PercentageMethod


def _round(value: float, places: str) -> float:
    return float(Decimal(repr(value)).quantize(Decimal(places), rounding=ROUND_HALF_UP))


def attendance_percentage(present_count: int, total_sessions: int) -> float:
    """Share of sessions attended as ``present``, one decimal place; 0 when nothing was held."""
    if total_sessions <= 0:
        return 0.0
    return _round(present_count * 100 / total_sessions, "0.1")


def calculate_attendance_percentage(
    counts: Mapping[AttendanceStatus, int],
    method: PercentageMethod = PercentageMethod.STRICT,
) -> float:
    """Alternative weightings shown next to the stored percentage.

    strict: present only. standard: present + excused + half of late.
    lenient: present + late + excused. Two decimal places.
    """
    present = counts.get(AttendanceStatus.PRESENT, 0)
    late = counts.get(AttendanceStatus.LATE, 0)
    excused = counts.get(AttendanceStatus.EXCUSED, 0)
    total = sum(counts.get(s, 0) for s in AttendanceStatus)
    if total == 0:
        return 0.0

    if method == PercentageMethod.LENIENT:
        attended = present + late + excused
    elif method == PercentageMethod.STANDARD:
        attended = present + excused + late * 0.5
    else:
        attended = present

    return _round(attended * 100 / total, "0.01")


def alert_level(percentage: float, threshold: float) -> str:
    if percentage < threshold * 0.6:
        return "critical"
    if percentage < threshold * 0.8:
        return "warning"
    return "attention"
