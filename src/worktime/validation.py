"""Compliance checks for a tracked session (German working-time rules)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .calculator import minutes_of_day
from .config import DAY_NAMES, Plan
from .models import Status
from .normalization import format_time_of_day, resolve_time_of_day

STATUTORY_MAX_WORK_MINUTES = 10 * 60

WEEKEND_WARNING = "Samstag und Sonntag sind arbeitsfrei!"
FUTURE_START_WARNING = "Arbeitsbeginn darf nicht in der Zukunft liegen!"
BREAK_30_WARNING = "ArbZG: Mind. 30 Min Pause nach 6h Arbeit erforderlich!"
BREAK_45_WARNING = "ArbZG: Mind. 45 Min Pause nach 9h Arbeit erforderlich!"
MAX_WORK_WARNING = "ArbZG: Maximale Arbeitszeit von 10h überschritten!"


@dataclass(frozen=True, slots=True)
class ValidationContext:
    """Everything the validator looks at; it reads nothing else."""

    now: datetime
    status: Status
    start_time: Optional[datetime]
    manual_start: str
    start_requested: bool
    worked_minutes: int
    total_break_minutes: int
    end_time: Optional[datetime]
    plan: Optional[Plan]
    quota: int
    planned_work: int


def hours_minutes(minutes: int) -> str:
    return f"{minutes // 60}:{minutes % 60:02d}"


def non_working_day_warning(day: datetime) -> str:
    weekday = day.weekday()
    if weekday >= 5:
        return WEEKEND_WARNING
    return f"{DAY_NAMES[weekday]} ist ein arbeitsfreier Tag!"


def _check_working_day(ctx: ValidationContext) -> Optional[str]:
    attempted = ctx.start_requested or ctx.status is not Status.STOPPED
    if attempted and ctx.quota == 0:
        return non_working_day_warning(ctx.now)
    return None


def _check_future_start(ctx: ValidationContext) -> Optional[str]:
    if not ctx.start_requested:
        return None
    requested = resolve_time_of_day(ctx.manual_start, ctx.now.date())
    if requested is not None and requested > ctx.now:
        return FUTURE_START_WARNING
    return None


def _check_plan_duration(ctx: ValidationContext) -> Optional[str]:
    plan = ctx.plan
    if plan is not None and ctx.worked_minutes > plan.max_duration:
        return (
            f"Maximale Arbeitszeit ({plan.name}: {hours_minutes(plan.max_duration)}) "
            "überschritten!"
        )
    return None


def _check_break_30(ctx: ValidationContext) -> Optional[str]:
    if ctx.worked_minutes > 6 * 60 and ctx.total_break_minutes < 30:
        return BREAK_30_WARNING
    return None


def _check_break_45(ctx: ValidationContext) -> Optional[str]:
    if ctx.worked_minutes > 9 * 60 and ctx.total_break_minutes < 45:
        return BREAK_45_WARNING
    return None


def _check_plan_window(ctx: ValidationContext) -> Optional[str]:
    plan = ctx.plan
    if plan is None or ctx.end_time is None:
        return None
    end = minutes_of_day(ctx.end_time, ctx.start_time)
    if end < plan.earliest_start:
        return (
            f"Vorauss. Arbeitsende ({format_time_of_day(ctx.end_time)}) liegt vor "
            f"{plan.name} Startzeit ({hours_minutes(plan.earliest_start)})!"
        )
    if end > plan.latest_end:
        return (
            f"Vorauss. Arbeitsende ({format_time_of_day(ctx.end_time)}) darf "
            f"{plan.name} Endzeit ({hours_minutes(plan.latest_end)}) nicht überschreiten!"
        )
    return None


def _check_statutory_maximum(ctx: ValidationContext) -> Optional[str]:
    if ctx.worked_minutes > STATUTORY_MAX_WORK_MINUTES:
        return MAX_WORK_WARNING
    return None


def _check_minimum_reached(ctx: ValidationContext) -> Optional[str]:
    if ctx.status is Status.STOPPED and 0 < ctx.worked_minutes < ctx.quota:
        return (
            f"Mindestarbeitszeit ({hours_minutes(ctx.quota)}) für "
            f"{DAY_NAMES[ctx.now.weekday()]} nicht erreicht!"
        )
    return None


def _check_planned_work(ctx: ValidationContext) -> Optional[str]:
    if ctx.planned_work < ctx.quota:
        return (
            f"Geplante Arbeitszeit ({hours_minutes(ctx.planned_work)}) unter "
            f"Mindestarbeitszeit ({hours_minutes(ctx.quota)})!"
        )
    return None


_START_CHECKS = (_check_working_day, _check_future_start)
_CHECKS = _START_CHECKS + (
    _check_plan_duration,
    _check_break_30,
    _check_break_45,
    _check_plan_window,
    _check_statutory_maximum,
    _check_minimum_reached,
    _check_planned_work,
)


def _run(checks, ctx: ValidationContext) -> list[str]:
    warnings: list[str] = []
    for check in checks:
        warning = check(ctx)
        if warning is not None:
            warnings.append(warning)
    return warnings


def validate(ctx: ValidationContext) -> list[str]:
    """Return every applicable warning, in check order. Empty means compliant."""
    return _run(_CHECKS, ctx)


def blocking_start_warnings(ctx: ValidationContext) -> list[str]:
    """Warnings that prevent ``start()`` from taking effect."""
    return _run(_START_CHECKS, ctx)
