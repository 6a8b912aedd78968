"""Break ledger: ordered, immutable collection of break intervals."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable, Iterator, Optional, Sequence

from .config import BreakTemplate
from .models import Break, CompleteBreak, PartialBreak, PlannedBreak, Status, make_break
from .normalization import parse_leading_int, resolve_time_of_day

logger = logging.getLogger(__name__)

# (worked minutes threshold, minimum total break) ordered from strictest.
STATUTORY_BREAKS: tuple[tuple[int, int], ...] = ((540, 45), (360, 30))


def required_break_minutes(worked_minutes: float) -> int:
    """Minimum total break required by law after ``worked_minutes`` of work."""
    for threshold, minimum in STATUTORY_BREAKS:
        if worked_minutes > threshold:
            return minimum
    return 0


class BreakLedger:
    """Copy-on-write sequence of breaks.

    Every mutator returns a new ledger; the receiver is never changed, so a
    snapshot handed to a reader cannot be altered behind its back.
    """

    __slots__ = ("_items",)

    def __init__(self, items: Iterable[Break] = ()) -> None:
        self._items: tuple[Break, ...] = tuple(items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Break]:
        return iter(self._items)

    def __getitem__(self, index: int) -> Break:
        return self._items[index]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, BreakLedger):
            return self._items == other._items
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._items)

    def __repr__(self) -> str:
        return f"BreakLedger({list(self._items)!r})"

    @property
    def items(self) -> tuple[Break, ...]:
        return self._items

    @classmethod
    def from_template(
        cls, templates: Sequence[BreakTemplate], anchor: date
    ) -> "BreakLedger":
        """Build a ledger from the configured default breaks, dated ``anchor``."""
        return cls(
            make_break(
                start=resolve_time_of_day(template.start, anchor),
                end=resolve_time_of_day(template.end, anchor),
                duration=template.duration,
            )
            for template in templates
        )

    def _valid(self, index: int) -> bool:
        if 0 <= index < len(self._items):
            return True
        logger.debug("Ignoring edit of unknown break #%s", index)
        return False

    def replace(self, index: int, item: Break) -> "BreakLedger":
        if not self._valid(index):
            return self
        items = list(self._items)
        items[index] = item
        return BreakLedger(items)

    def append(self, item: Break) -> "BreakLedger":
        return BreakLedger(self._items + (item,))

    def append_empty(self, *, keep_pause_last: bool = False) -> "BreakLedger":
        """Add an empty break.

        With ``keep_pause_last`` the new slot goes in front of an open pause,
        which must stay the trailing entry until it is closed.
        """
        item = PlannedBreak(duration=0)
        if not keep_pause_last or self.open_pause() is None:
            return self.append(item)
        return BreakLedger(self._items[:-1] + (item, self._items[-1]))

    def delete(self, index: int) -> "BreakLedger":
        if not self._valid(index):
            return self
        return BreakLedger(self._items[:index] + self._items[index + 1 :])

    def update_start(
        self, index: int, value: str, session_start: Optional[datetime]
    ) -> "BreakLedger":
        return self._update_endpoint(index, value, session_start, field="start")

    def update_end(
        self, index: int, value: str, session_start: Optional[datetime]
    ) -> "BreakLedger":
        return self._update_endpoint(index, value, session_start, field="end")

    def _update_endpoint(
        self,
        index: int,
        value: str,
        session_start: Optional[datetime],
        *,
        field: str,
    ) -> "BreakLedger":
        if session_start is None or not self._valid(index):
            return self
        resolved = resolve_time_of_day(value, session_start.date())
        if resolved is None:
            logger.debug("Ignoring unparseable break %s %r", field, value)
            return self
        current = self._items[index]
        start = resolved if field == "start" else current.start
        end = resolved if field == "end" else current.end
        return self.replace(index, make_break(start=start, end=end, duration=current.duration))

    def update_duration(self, index: int, value: object) -> "BreakLedger":
        """Set a duration directly; complete breaks keep their interval's length."""
        if not self._valid(index):
            return self
        current = self._items[index]
        if isinstance(current, CompleteBreak):
            logger.debug("Break #%s has both endpoints; duration follows them.", index)
            return self
        duration = max(0, parse_leading_int(value) or 0)
        return self.replace(
            index, make_break(start=current.start, end=current.end, duration=duration)
        )

    def total_minutes(self) -> int:
        return sum(item.duration or 0 for item in self._items)

    def has_incomplete(self) -> bool:
        return any(not item.is_complete for item in self._items)

    def open_pause(self) -> Optional[PartialBreak]:
        """The trailing break that has a start but no end, if any."""
        if not self._items:
            return None
        last = self._items[-1]
        if isinstance(last, PartialBreak) and last.start is not None:
            return last
        return None

    def with_open_pause(self, now: datetime) -> "BreakLedger":
        return self.append(PartialBreak(start=now, duration=0))

    def close_open_pause(self, now: datetime) -> "BreakLedger":
        pause = self.open_pause()
        if pause is None:
            return self
        return self.replace(len(self._items) - 1, make_break(start=pause.start, end=now))

    def _active_index(self, now: datetime) -> Optional[int]:
        for index, item in enumerate(self._items):
            if isinstance(item, CompleteBreak) and item.start <= now < item.end:
                return index
        return None

    def active_at(self, now: datetime) -> Optional[CompleteBreak]:
        """The complete break whose interval contains ``now``."""
        index = self._active_index(now)
        return None if index is None else self._items[index]

    def end_active(self, now: datetime) -> "BreakLedger":
        """Cut the break in progress short so that it ends at ``now``."""
        index = self._active_index(now)
        if index is None:
            return self
        current = self._items[index]
        return self.replace(index, make_break(start=current.start, end=now))

    def ensure_statutory(self, worked_minutes: float, status: Status) -> "BreakLedger":
        """Append the legally required break when it is missing.

        Nothing is added while any break still lacks an endpoint, so the user
        can fill in the exact times of a slot that was inserted earlier.
        """
        if status not in (Status.RUNNING, Status.STOPPED):
            return self
        required = required_break_minutes(worked_minutes)
        if not required or self.total_minutes() >= required:
            return self
        if self.has_incomplete():
            return self
        logger.info(
            "Adding statutory %d minute break after %d worked minutes.",
            required,
            worked_minutes,
        )
        return self.append(PlannedBreak(duration=required))
