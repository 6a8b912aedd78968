"""Automatic stop once a running session reaches a working-time limit."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from .calculator import minutes_of_day
from .config import Plan
from .validation import STATUTORY_MAX_WORK_MINUTES, hours_minutes


class AutoStopReason(str, Enum):
    MAX_HOURS = "maxHours"
    MAX_PRESENCE = "maxPresence"


REASON_LABELS = {
    AutoStopReason.MAX_HOURS: "Maximale Arbeitszeit erreicht",
    AutoStopReason.MAX_PRESENCE: "Maximale Anwesenheitszeit erreicht",
}


@dataclass(frozen=True, slots=True)
class AutoStopEvent:
    """Record of one automatic stop, kept for compliance review."""

    reason: AutoStopReason
    message: str
    timestamp: datetime
    worked_minutes: int
    plan_name: str
    acknowledged: bool = False
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def label(self) -> str:
        return REASON_LABELS[self.reason]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "reason": self.reason.value,
            "label": self.label,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "workedMinutes": self.worked_minutes,
            "planName": self.plan_name,
            "acknowledged": self.acknowledged,
        }


def check_limits(
    worked_minutes: int, now: datetime, plan: Optional[Plan]
) -> Optional[tuple[AutoStopReason, str]]:
    """Return the first limit reached, statutory before plan limits.

    The statutory break rules are not a stop reason here: missing breaks are
    inserted automatically and reported by the validator instead.
    """
    if worked_minutes >= STATUTORY_MAX_WORK_MINUTES:
        return (
            AutoStopReason.MAX_HOURS,
            "Maximale Arbeitszeit von 10 Stunden nach ArbZG erreicht",
        )
    if plan is None:
        return None
    if worked_minutes >= plan.max_duration:
        return (
            AutoStopReason.MAX_HOURS,
            f'Maximale Arbeitszeit ({hours_minutes(plan.max_duration)}) '
            f'im Plan "{plan.name}" erreicht',
        )
    if minutes_of_day(now) >= plan.latest_end:
        return (
            AutoStopReason.MAX_PRESENCE,
            f'Maximale Anwesenheit bis {hours_minutes(plan.latest_end)} '
            f'im Plan "{plan.name}" erreicht',
        )
    return None
