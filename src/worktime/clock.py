"""Clock sources used by the tracking engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Supplies the current local wall-clock time."""

    def now(self) -> datetime:
        ...


@dataclass(slots=True)
class SystemClock:
    """Clock backed by the system time (naive, local)."""

    def now(self) -> datetime:
        return datetime.now().replace(microsecond=0)


@dataclass(slots=True)
class FixedClock:
    """Clock that only moves when told to. Useful for tests and replays."""

    current: datetime

    def now(self) -> datetime:
        return self.current

    def set(self, value: datetime) -> None:
        self.current = value

    def advance(self, *, minutes: float = 0, seconds: float = 0) -> datetime:
        self.current = self.current + timedelta(minutes=minutes, seconds=seconds)
        return self.current
