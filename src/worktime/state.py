"""Session state aggregate and the read-only views derived from it."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from .breaks import BreakLedger
from .config import DEFAULT_PLAN_KEY
from .models import Break, Status


@dataclass(frozen=True, slots=True)
class SessionState:
    """The single mutable aggregate, replaced wholesale on every change."""

    plan: str = DEFAULT_PLAN_KEY
    status: Status = Status.STOPPED
    start_time: Optional[datetime] = None
    manual_start: str = "00:00"
    planned_work: int = 0
    worked_minutes: int = 0
    breaks: BreakLedger = field(default_factory=BreakLedger)
    warnings: tuple[str, ...] = ()
    start_requested: bool = False


def break_to_dict(item: Break) -> dict[str, Any]:
    return {
        "start": item.start.isoformat() if item.start else None,
        "end": item.end.isoformat() if item.end else None,
        "duration": item.duration,
        "complete": item.is_complete,
    }


@dataclass(frozen=True, slots=True)
class PopupFeed:
    """Minimal projection for the secondary live display."""

    worked_minutes: int
    planned_work: int
    end_time: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "workedMinutes": self.worked_minutes,
            "plannedWork": self.planned_work,
            "endTime": self.end_time,
        }


@dataclass(frozen=True, slots=True)
class Snapshot:
    """What the presentation layer gets to see after each tick."""

    plan: str
    status: Status
    worked_minutes: int
    planned_work: int
    breaks: BreakLedger
    end_time: str
    warnings: tuple[str, ...]
    total_break_minutes: int
    mode: str

    @property
    def overtime_minutes(self) -> int:
        return max(0, self.worked_minutes - self.planned_work)

    @property
    def remaining_minutes(self) -> int:
        return max(0, self.planned_work - self.worked_minutes)

    def popup_feed(self) -> PopupFeed:
        return PopupFeed(
            worked_minutes=self.worked_minutes,
            planned_work=self.planned_work,
            end_time=self.end_time,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "plan": self.plan,
            "status": self.status.value,
            "workedMinutes": self.worked_minutes,
            "plannedWork": self.planned_work,
            "breaks": [break_to_dict(item) for item in self.breaks],
            "endTime": self.end_time,
            "warnings": list(self.warnings),
            "totalBreakMinutes": self.total_break_minutes,
            "overtimeMinutes": self.overtime_minutes,
            "remainingMinutes": self.remaining_minutes,
            "mode": self.mode,
        }
