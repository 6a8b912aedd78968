"""Time tracking engine: status state machine plus derived-value recomputation."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Optional

from .autostop import AutoStopEvent, check_limits
from .breaks import BreakLedger
from .calculator import compute_end_time, compute_worked_minutes
from .clock import Clock
from .config import DEFAULT_QUOTA_MINUTES, OverrideSetting, UserSettings
from .models import Status
from .normalization import (
    format_time_of_day,
    parse_leading_int,
    parse_time_of_day,
    resolve_time_of_day,
)
from .state import PopupFeed, SessionState, Snapshot
from .validation import ValidationContext, blocking_start_warnings, validate

logger = logging.getLogger(__name__)

SettingsProvider = Callable[[], UserSettings]
OverrideProvider = Callable[[], OverrideSetting]


class TrackingEngine:
    """Owns one session and applies user intents to it.

    The engine never sleeps, schedules or persists anything. A scheduler
    calls :meth:`tick` (nominally once per second) and stores the result.
    Each operation swaps in a complete new :class:`SessionState`, so readers
    only ever observe consistent snapshots.
    """

    def __init__(
        self,
        settings_provider: SettingsProvider,
        clock: Clock,
        state: Optional[SessionState] = None,
        *,
        override_provider: Optional[OverrideProvider] = None,
        on_auto_stop: Optional[Callable[[AutoStopEvent], None]] = None,
    ) -> None:
        self._settings_provider = settings_provider
        self._override_provider = override_provider or OverrideSetting
        self._on_auto_stop = on_auto_stop
        self._clock = clock
        self._state = state if state is not None else self.default_state()

    @classmethod
    def restore(
        cls,
        settings_provider: SettingsProvider,
        clock: Clock,
        state: Optional[SessionState],
        **kwargs: Any,
    ) -> "TrackingEngine":
        """Resume a persisted session unless it was started on another day."""
        if state is not None and state.start_time is not None:
            if state.start_time.date() != clock.now().date():
                logger.info("Discarding session from %s.", state.start_time.date())
                state = None
        return cls(settings_provider, clock, state, **kwargs)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def settings(self) -> UserSettings:
        return self._settings_provider()

    def default_state(self, now: Optional[datetime] = None) -> SessionState:
        now = now or self._clock.now()
        settings = self.settings
        return SessionState(
            manual_start=format_time_of_day(now),
            planned_work=settings.quota_for(now) or DEFAULT_QUOTA_MINUTES,
            breaks=BreakLedger.from_template(settings.default_breaks, now.date()),
        )

    # -- recomputation -------------------------------------------------

    def _context(
        self, state: SessionState, now: datetime, settings: UserSettings
    ) -> ValidationContext:
        return ValidationContext(
            now=now,
            status=state.status,
            start_time=state.start_time,
            manual_start=state.manual_start,
            start_requested=state.start_requested,
            worked_minutes=state.worked_minutes,
            total_break_minutes=state.breaks.total_minutes(),
            end_time=compute_end_time(state.start_time, state.breaks, state.planned_work),
            plan=settings.plan(state.plan),
            quota=settings.quota_for(now),
            planned_work=state.planned_work,
        )

    def _recompute(
        self, state: SessionState, now: datetime, enforce_limits: bool = True
    ) -> SessionState:
        settings = self.settings
        worked = compute_worked_minutes(
            state.start_time, state.breaks, state.status, now, state.worked_minutes
        )
        breaks = state.breaks.ensure_statutory(worked, state.status)
        state = replace(state, worked_minutes=worked, breaks=breaks)
        if enforce_limits:
            state = self._enforce_limits(state, now, settings)
        warnings = validate(self._context(state, now, settings))
        return replace(state, warnings=tuple(warnings))

    def _enforce_limits(
        self, state: SessionState, now: datetime, settings: UserSettings
    ) -> SessionState:
        """Stop a running session that reached a working-time limit."""
        if state.status is not Status.RUNNING:
            return state
        plan = settings.plan(state.plan)
        reached = check_limits(state.worked_minutes, now, plan)
        if reached is None:
            return state
        reason, message = reached
        if self._override_provider().active:
            logger.debug("Limit reached but override is active: %s", message)
            return state

        logger.warning("Stopping session automatically: %s", message)
        event = AutoStopEvent(
            reason=reason,
            message=message,
            timestamp=now,
            worked_minutes=state.worked_minutes,
            plan_name=plan.name if plan else state.plan,
        )
        if self._on_auto_stop is not None:
            self._on_auto_stop(event)
        return replace(state, status=Status.STOPPED, start_requested=False)

    def _apply(self, state: SessionState, now: Optional[datetime] = None) -> None:
        self._state = self._recompute(state, now or self._clock.now())

    def tick(self, now: Optional[datetime] = None) -> Snapshot:
        now = now or self._clock.now()
        self._state = self._recompute(self._state, now)
        return self.snapshot(now)

    # -- status transitions ---------------------------------------------

    def start(self) -> bool:
        state = self._state
        if state.status is not Status.STOPPED:
            logger.debug("Ignoring start() while %s.", state.status.value)
            return False

        now = self._clock.now()
        settings = self.settings
        attempt = replace(state, start_requested=True)
        blocking = blocking_start_warnings(self._context(attempt, now, settings))
        if blocking:
            logger.info("Start rejected: %s", "; ".join(blocking))
            self._state = replace(attempt, warnings=tuple(blocking))
            return False

        start_time = resolve_time_of_day(state.manual_start, now.date())
        if start_time is None:
            start_time = now.replace(second=0, microsecond=0)
        self._apply(
            replace(
                state,
                status=Status.RUNNING,
                start_time=start_time,
                worked_minutes=0,
                planned_work=state.planned_work or settings.quota_for(now),
                start_requested=False,
            ),
            now,
        )
        logger.info("Session started at %s.", format_time_of_day(start_time))
        return True

    def pause(self) -> None:
        state = self._state
        if state.status is not Status.RUNNING:
            logger.debug("Ignoring pause() while %s.", state.status.value)
            return
        now = self._clock.now()
        state = self._recompute(state, now)
        if state.status is not Status.RUNNING:
            self._state = state
            return
        self._apply(
            replace(state, status=Status.PAUSED, breaks=state.breaks.with_open_pause(now)),
            now,
        )
        logger.info("Session paused.")

    def resume(self) -> None:
        state = self._state
        if state.status is not Status.PAUSED:
            logger.debug("Ignoring resume() while %s.", state.status.value)
            return
        now = self._clock.now()
        self._apply(
            replace(state, status=Status.RUNNING, breaks=state.breaks.close_open_pause(now)),
            now,
        )
        logger.info("Session resumed.")

    def stop(self) -> None:
        state = self._state
        now = self._clock.now()
        if state.status is not Status.STOPPED:
            # Account for time up to now before the worked minutes freeze.
            breaks = state.breaks
            if state.status is Status.PAUSED:
                breaks = breaks.close_open_pause(now)
            state = replace(state, status=Status.RUNNING, breaks=breaks)
            state = self._recompute(state, now, enforce_limits=False)
        self._apply(replace(state, status=Status.STOPPED, start_requested=False), now)
        logger.info("Session stopped after %d worked minutes.", self._state.worked_minutes)

    # -- session settings -----------------------------------------------

    def set_plan(self, key: str) -> None:
        if self.settings.plan(key) is None:
            logger.debug("Ignoring unknown plan %r.", key)
            return
        self._apply(replace(self._state, plan=key))

    def set_manual_start(self, value: str) -> None:
        parsed = parse_time_of_day(value)
        if parsed is None:
            logger.debug("Ignoring unparseable start time %r.", value)
            return
        self._apply(replace(self._state, manual_start=parsed.strftime("%H:%M")))

    def set_planned_work(self, minutes: object) -> None:
        """Set the planned minutes; 0 or nothing falls back to today's quota."""
        now = self._clock.now()
        value = max(0, parse_leading_int(minutes) or 0) or self.settings.quota_for(now)
        self._apply(replace(self._state, planned_work=value), now)

    # -- break ledger intents -------------------------------------------

    def _edit_breaks(self, breaks: BreakLedger) -> None:
        if breaks is self._state.breaks:
            return
        self._apply(replace(self._state, breaks=breaks))

    def add_break(self) -> None:
        paused = self._state.status is Status.PAUSED
        self._edit_breaks(self._state.breaks.append_empty(keep_pause_last=paused))

    def end_active_break(self) -> None:
        """End the scheduled break in progress now; the session keeps running."""
        state = self._state
        if state.status is not Status.RUNNING:
            logger.debug("Ignoring end_active_break() while %s.", state.status.value)
            return
        now = self._clock.now()
        breaks = state.breaks.end_active(now)
        if breaks is state.breaks:
            logger.debug("No break in progress at %s.", format_time_of_day(now))
            return
        self._apply(replace(state, breaks=breaks), now)
        logger.info("Break ended early at %s.", format_time_of_day(now))

    def delete_break(self, index: int) -> None:
        self._edit_breaks(self._state.breaks.delete(index))

    def update_break_start(self, index: int, value: str) -> None:
        state = self._state
        self._edit_breaks(state.breaks.update_start(index, value, state.start_time))

    def update_break_end(self, index: int, value: str) -> None:
        state = self._state
        self._edit_breaks(state.breaks.update_end(index, value, state.start_time))

    def update_break_duration(self, index: int, value: object) -> None:
        self._edit_breaks(self._state.breaks.update_duration(index, value))

    def reset_to_default_breaks(self) -> None:
        state = self._state
        anchor = state.start_time or self._clock.now()
        self._apply(
            replace(
                state,
                breaks=BreakLedger.from_template(self.settings.default_breaks, anchor.date()),
            )
        )

    def clear_all(self) -> None:
        """Throw away the session and start over from defaults."""
        self._state = self.default_state()
        logger.info("Session state reset to defaults.")

    # -- views ------------------------------------------------------------

    def snapshot(self, now: Optional[datetime] = None) -> Snapshot:
        now = now or self._clock.now()
        state = self._state
        end_time = compute_end_time(state.start_time, state.breaks, state.planned_work)
        on_break = state.status is Status.PAUSED or (
            state.status is Status.RUNNING and state.breaks.active_at(now) is not None
        )
        return Snapshot(
            plan=state.plan,
            status=state.status,
            worked_minutes=state.worked_minutes,
            planned_work=state.planned_work,
            breaks=state.breaks,
            end_time=format_time_of_day(end_time),
            warnings=state.warnings,
            total_break_minutes=state.breaks.total_minutes(),
            mode="break" if on_break else "work",
        )

    def popup_feed(self, now: Optional[datetime] = None) -> PopupFeed:
        return self.snapshot(now).popup_feed()
