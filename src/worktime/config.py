"""Configuration models and helpers for the work-time tracker."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

# Indexed by ``date.weekday()`` (Monday = 0).
WEEKDAY_KEYS: tuple[str, ...] = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)
DAY_NAMES: tuple[str, ...] = (
    "Montag",
    "Dienstag",
    "Mittwoch",
    "Donnerstag",
    "Freitag",
    "Samstag",
    "Sonntag",
)

DISPLAY_FORMATS = ("minutes", "hours")
DEFAULT_PLAN_KEY = "VOR_ORT"
DEFAULT_QUOTA_MINUTES = 480


@dataclass(frozen=True, slots=True)
class Plan:
    """Attendance plan. All bounds are minutes (of day, or a duration)."""

    name: str
    earliest_start: int
    latest_end: int
    max_duration: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Plan":
        return cls(
            name=str(data["name"]),
            earliest_start=int(data["start"]),
            latest_end=int(data["end"]),
            max_duration=int(data["max"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "start": self.earliest_start,
            "end": self.latest_end,
            "max": self.max_duration,
        }


@dataclass(frozen=True, slots=True)
class BreakTemplate:
    """One entry of the default break template (times as ``HH:MM``)."""

    start: Optional[str]
    end: Optional[str]
    duration: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BreakTemplate":
        return cls(
            start=data.get("start") or None,
            end=data.get("end") or None,
            duration=max(0, int(data.get("duration") or 0)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"start": self.start, "end": self.end, "duration": self.duration}


def _default_quotas() -> dict[str, int]:
    return {
        "monday": 480,
        "tuesday": 480,
        "wednesday": 480,
        "thursday": 480,
        "friday": 480,
        "saturday": 0,
        "sunday": 0,
    }


def _default_breaks() -> tuple[BreakTemplate, ...]:
    return (
        BreakTemplate(start="09:00", end="09:15", duration=15),
        BreakTemplate(start="12:00", end="12:30", duration=30),
    )


def _default_plans() -> dict[str, Plan]:
    return {
        "VOR_ORT": Plan(name="Vor Ort", earliest_start=360, latest_end=1050, max_duration=600),
        "HOMEOFFICE": Plan(
            name="Homeoffice", earliest_start=360, latest_end=1200, max_duration=600
        ),
    }


@dataclass(slots=True)
class UserSettings:
    """User preferences consumed read-only by the engine."""

    daily_work_minutes: dict[str, int] = field(default_factory=_default_quotas)
    default_breaks: tuple[BreakTemplate, ...] = field(default_factory=_default_breaks)
    plans: dict[str, Plan] = field(default_factory=_default_plans)
    display_format: str = "minutes"

    def quota_for(self, day: date) -> int:
        """Return the configured working minutes for the weekday of ``day``."""
        return self.daily_work_minutes.get(WEEKDAY_KEYS[day.weekday()], 0)

    def plan(self, key: str) -> Optional[Plan]:
        return self.plans.get(key)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "UserSettings":
        """Merge a persisted (camelCase) settings record over the defaults.

        Entries that cannot be interpreted are logged and replaced by their
        default so a damaged record never prevents the tracker from starting.
        """
        settings = cls()
        if not data:
            return settings

        fmt = data.get("timeFormat")
        if fmt in DISPLAY_FORMATS:
            settings.display_format = fmt

        quotas = data.get("dailyWorkHours")
        if isinstance(quotas, Mapping):
            for key in WEEKDAY_KEYS:
                if key not in quotas:
                    continue
                try:
                    settings.daily_work_minutes[key] = max(0, int(quotas[key]))
                except (TypeError, ValueError):
                    logger.warning("Ignoring invalid quota for %s: %r", key, quotas[key])

        breaks = data.get("defaultBreaks")
        if isinstance(breaks, list):
            try:
                settings.default_breaks = tuple(BreakTemplate.from_dict(b) for b in breaks)
            except (AttributeError, TypeError, ValueError):
                logger.warning("Ignoring invalid default break template.")

        plans = data.get("plans")
        if isinstance(plans, Mapping):
            for key, raw in plans.items():
                try:
                    settings.plans[str(key)] = Plan.from_dict(raw)
                except (KeyError, TypeError, ValueError):
                    logger.warning("Ignoring invalid plan definition %r.", key)

        return settings

    def to_dict(self) -> dict[str, Any]:
        return {
            "timeFormat": self.display_format,
            "dailyWorkHours": dict(self.daily_work_minutes),
            "defaultBreaks": [b.to_dict() for b in self.default_breaks],
            "plans": {key: plan.to_dict() for key, plan in self.plans.items()},
        }


MAX_OVERRIDE_REASON_LENGTH = 200


@dataclass(frozen=True, slots=True)
class OverrideSetting:
    """Opt-out from the automatic stop at the working-time limits.

    It only takes effect once the user has acknowledged that working past
    the limits may violate the ArbZG.
    """

    enabled: bool = False
    acknowledged: bool = False
    reason: str = ""
    updated_at: Optional[datetime] = None

    @property
    def active(self) -> bool:
        return self.enabled and self.acknowledged

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "OverrideSetting":
        if not data:
            return cls()
        updated_at = None
        raw = data.get("timestamp")
        if isinstance(raw, str):
            try:
                updated_at = datetime.fromisoformat(raw)
            except ValueError:
                logger.warning("Ignoring invalid override timestamp %r.", raw)
        return cls(
            enabled=bool(data.get("enabled")),
            acknowledged=bool(data.get("acknowledged")),
            reason=str(data.get("reason") or "")[:MAX_OVERRIDE_REASON_LENGTH],
            updated_at=updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "acknowledged": self.acknowledged,
            "reason": self.reason,
            "timestamp": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(slots=True)
class RunnerSettings:
    """Runtime configuration for the background tick loop."""

    tick_interval: timedelta = timedelta(seconds=1)
    popup_interval: timedelta = timedelta(milliseconds=500)

    @classmethod
    def from_intervals(
        cls,
        tick_seconds: float,
        popup_seconds: float | None = None,
    ) -> "RunnerSettings":
        popup = popup_seconds if popup_seconds is not None else min(tick_seconds / 2, 0.5)
        return cls(
            tick_interval=timedelta(seconds=tick_seconds),
            popup_interval=timedelta(seconds=popup),
        )
