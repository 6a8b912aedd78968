"""Domain models for tracked work sessions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union


class Status(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    PAUSED = "paused"


def interval_minutes(start: datetime, end: datetime) -> int:
    """Whole minutes between two timestamps, rounded and floored at zero."""
    return max(0, round((end - start).total_seconds() / 60))


@dataclass(frozen=True, slots=True)
class PlannedBreak:
    """A break known only by its length."""

    duration: int = 0

    @property
    def start(self) -> Optional[datetime]:
        return None

    @property
    def end(self) -> Optional[datetime]:
        return None

    @property
    def is_complete(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class PartialBreak:
    """A break with exactly one known endpoint.

    A partial break carrying ``start`` at the end of the ledger while the
    session is paused is the pause currently in progress.
    """

    start: Optional[datetime] = None
    end: Optional[datetime] = None
    duration: int = 0

    def __post_init__(self) -> None:
        if (self.start is None) == (self.end is None):
            raise ValueError("PartialBreak needs exactly one of start/end")

    @property
    def is_complete(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class CompleteBreak:
    """A break with both endpoints; its duration always follows the interval."""

    start: datetime
    end: datetime
    duration: int = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "duration", interval_minutes(self.start, self.end))

    @property
    def is_complete(self) -> bool:
        return True

    def overlap_minutes(self, lower: datetime, upper: datetime) -> int:
        """Minutes of this break that fall inside ``[lower, upper]``."""
        if self.start >= lower and self.end <= upper:
            return self.duration
        begin = max(self.start, lower)
        finish = min(self.end, upper)
        if finish <= begin:
            return 0
        return int((finish - begin).total_seconds() // 60)


Break = Union[PlannedBreak, PartialBreak, CompleteBreak]


def make_break(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    duration: int = 0,
) -> Break:
    """Build the break variant matching the endpoints that are present."""
    if start is not None and end is not None:
        return CompleteBreak(start=start, end=end)
    if start is not None or end is not None:
        return PartialBreak(start=start, end=end, duration=max(0, duration))
    return PlannedBreak(duration=max(0, duration))
