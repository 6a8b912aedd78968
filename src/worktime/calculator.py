"""Worked-time and end-time arithmetic."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from .breaks import BreakLedger
from .models import CompleteBreak, Status


def elapsed_minutes(start: datetime, now: datetime) -> int:
    return max(0, int((now - start).total_seconds() // 60))


def break_minutes_within(
    breaks: BreakLedger, start_time: datetime, now: datetime, status: Status
) -> int:
    """Break time to deduct from the span ``[start_time, now]``.

    Complete breaks count only for the part inside the span, the pause in
    progress counts up to ``now``, and breaks without a concrete interval are
    deducted in full.
    """
    open_pause = breaks.open_pause() if status is Status.PAUSED else None
    total = 0
    for item in breaks:
        if isinstance(item, CompleteBreak):
            total += item.overlap_minutes(start_time, now)
        elif item is open_pause and item.start is not None:
            total += elapsed_minutes(max(item.start, start_time), now)
        else:
            total += item.duration or 0
    return total


def compute_worked_minutes(
    start_time: Optional[datetime],
    breaks: BreakLedger,
    status: Status,
    now: datetime,
    last_worked: int = 0,
) -> int:
    """Minutes worked since ``start_time``; frozen at ``last_worked`` once stopped."""
    if status is Status.STOPPED:
        return max(0, last_worked) if start_time is not None else 0
    if start_time is None:
        return 0
    worked = elapsed_minutes(start_time, now) - break_minutes_within(
        breaks, start_time, now, status
    )
    return max(0, worked)


def compute_end_time(
    start_time: Optional[datetime], breaks: BreakLedger, planned_work: int
) -> Optional[datetime]:
    """Projected time at which ``planned_work`` is met given the breaks taken.

    This is a fixed target: it is not shortened by overtime already worked.
    """
    if start_time is None:
        return None
    return start_time + timedelta(minutes=planned_work + breaks.total_minutes())


def minutes_of_day(value: datetime, reference: Optional[datetime] = None) -> int:
    """Minutes since midnight of ``reference`` (defaults to ``value``'s own day)."""
    anchor = (reference or value).replace(hour=0, minute=0, second=0, microsecond=0)
    return int((value - anchor).total_seconds() // 60)
