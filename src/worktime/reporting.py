"""Formatting helpers and console output for the CLI."""

from __future__ import annotations

from typing import Callable

from .config import UserSettings
from .models import Break
from .normalization import format_time_of_day
from .state import Snapshot


def format_minutes(minutes: float, display_format: str = "minutes") -> str:
    """Render minutes per the user's preference: ``45m`` or ``00:45``."""
    whole = int(minutes)
    if display_format == "hours":
        if whole <= 0:
            return "00:00"
        hours, mins = divmod(whole, 60)
        return f"{hours:02d}:{mins:02d}"
    return f"{whole}m"


def describe_break(item: Break) -> str:
    start = format_time_of_day(item.start) if item.start else "--:--"
    end = format_time_of_day(item.end) if item.end else "--:--"
    return f"{start} - {end}  {item.duration:>3} min"


class SnapshotPrinter:
    """Render the engine snapshot as human-readable console text."""

    def __init__(self, settings: UserSettings, echo: Callable[[str], None] = print) -> None:
        self.settings = settings
        self.echo = echo

    def _fmt(self, minutes: float) -> str:
        return format_minutes(minutes, self.settings.display_format)

    def print_snapshot(self, snapshot: Snapshot) -> None:
        plan = self.settings.plan(snapshot.plan)
        plan_name = plan.name if plan else snapshot.plan
        echo = self.echo

        echo(f"Status:     {snapshot.status.value} ({snapshot.mode})")
        echo(f"Plan:       {plan_name}")
        echo(f"Worked:     {self._fmt(snapshot.worked_minutes)} of {self._fmt(snapshot.planned_work)}")
        if snapshot.overtime_minutes:
            echo(f"Overtime:   {self._fmt(snapshot.overtime_minutes)}")
        else:
            echo(f"Remaining:  {self._fmt(snapshot.remaining_minutes)}")
        echo(f"Breaks:     {self._fmt(snapshot.total_break_minutes)}")
        echo(f"Expected end: {snapshot.end_time}")

        if len(snapshot.breaks):
            echo("")
            for index, item in enumerate(snapshot.breaks):
                echo(f"  [{index}] {describe_break(item)}")

        if snapshot.warnings:
            echo("")
            echo("Warnings:")
            for warning in snapshot.warnings:
                echo(f"  ! {warning}")
