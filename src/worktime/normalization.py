"""Utilities to normalize user-entered times and numbers."""

from __future__ import annotations

import re
from datetime import date, datetime, time
from typing import Optional

_TIME_OF_DAY_PATTERN = re.compile(r"^\s*(\d{1,2})[:.](\d{2})(?::\d{2})?\s*$")
_LEADING_INT_PATTERN = re.compile(r"^\s*([+-]?\d+)")


def parse_time_of_day(value: Optional[str]) -> Optional[time]:
    """Parse ``HH:MM`` (``HH.MM`` and ``HH:MM:SS`` are accepted as well)."""
    if not value:
        return None
    match = _TIME_OF_DAY_PATTERN.match(value)
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return time(hour=hours, minute=minutes)


def resolve_time_of_day(value: Optional[str], on_date: date) -> Optional[datetime]:
    """Anchor a time-of-day string to a concrete date."""
    parsed = parse_time_of_day(value)
    if parsed is None:
        return None
    return datetime.combine(on_date, parsed)


def parse_leading_int(value: object) -> Optional[int]:
    """Read the leading integer of ``value``; ``"15min"`` gives 15."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if value is None:
        return None
    match = _LEADING_INT_PATTERN.match(str(value))
    return int(match.group(1)) if match else None


def format_time_of_day(value: Optional[datetime]) -> str:
    if value is None:
        return "-"
    return value.strftime("%H:%M")
