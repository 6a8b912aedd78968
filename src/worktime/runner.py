"""Drive a tracking engine: periodic ticks, intent dispatch and persistence."""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Optional

from .autostop import AutoStopEvent
from .clock import Clock, SystemClock
from .config import OverrideSetting, RunnerSettings, UserSettings
from .engine import TrackingEngine
from .state import PopupFeed, Snapshot
from .storage import SessionStore

logger = logging.getLogger(__name__)

INTENTS = frozenset(
    {
        "start",
        "pause",
        "resume",
        "stop",
        "set_plan",
        "set_manual_start",
        "set_planned_work",
        "add_break",
        "delete_break",
        "update_break_start",
        "update_break_end",
        "update_break_duration",
        "reset_to_default_breaks",
        "end_active_break",
    }
)


class EngineRunner:
    """Own an engine and its store, ticking it from a background thread.

    All access to the engine is serialized through one lock; every tick and
    every intent is followed by a save of the fresh state.
    """

    def __init__(
        self,
        store: SessionStore,
        settings: Optional[RunnerSettings] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.store = store
        self.settings = settings or RunnerSettings()
        self._clock = clock or SystemClock()
        self._user_settings = store.load_settings()
        self._override = store.load_override()
        self._lock = threading.RLock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None
        self.engine = TrackingEngine.restore(
            self._current_settings,
            self._clock,
            store.load(),
            override_provider=self._current_override,
            on_auto_stop=self._record_auto_stop,
        )

    @classmethod
    def from_path(cls, db_path: Optional[Path] = None, **kwargs: Any) -> "EngineRunner":
        return cls(SessionStore(db_path), **kwargs)

    def _current_settings(self) -> UserSettings:
        return self._user_settings

    def _current_override(self) -> OverrideSetting:
        return self._override

    def _record_auto_stop(self, event: AutoStopEvent) -> None:
        self.store.record_auto_stop(event)

    def start(self) -> None:
        with self._lock:
            if self._thread and self._thread.is_alive():
                return
            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._run_loop, args=(stop_event,), daemon=True
            )
            self._thread = thread
            self._stop_event = stop_event
            thread.start()
            logger.info("Tick thread started.")

    def stop(self) -> None:
        thread: Optional[threading.Thread] = None
        with self._lock:
            if not self._thread or not self._thread.is_alive() or not self._stop_event:
                return
            self._stop_event.set()
            thread = self._thread
            self._thread = None
            self._stop_event = None
        if thread:
            thread.join(timeout=10)
            logger.info("Tick thread stopped.")

    def is_running(self) -> bool:
        with self._lock:
            return bool(self._thread and self._thread.is_alive())

    def _run_loop(self, stop_event: threading.Event) -> None:
        interval = self.settings.tick_interval.total_seconds()
        while not stop_event.is_set():
            try:
                self.tick()
            except Exception:  # pragma: no cover - keep the loop alive
                logger.exception("Tick failed.")
            stop_event.wait(interval)

    def tick(self) -> Snapshot:
        with self._lock:
            snapshot = self.engine.tick()
            self.store.save(self.engine.state)
            return snapshot

    def dispatch(self, intent: str, *args: Any) -> Snapshot:
        """Apply a user intent by name, then recompute and persist."""
        if intent not in INTENTS:
            raise ValueError(f"Unknown intent: {intent}")
        with self._lock:
            action: Callable[..., Any] = getattr(self.engine, intent)
            action(*args)
            return self.tick()

    def snapshot(self) -> Snapshot:
        with self._lock:
            return self.engine.snapshot()

    def popup_feed(self) -> PopupFeed:
        with self._lock:
            return self.engine.popup_feed()

    @property
    def user_settings(self) -> UserSettings:
        return self._user_settings

    def update_settings(self, settings: UserSettings) -> Snapshot:
        with self._lock:
            self._user_settings = settings
            self.store.save_settings(settings)
            return self.tick()

    @property
    def override(self) -> OverrideSetting:
        return self._override

    def update_override(self, setting: OverrideSetting) -> Snapshot:
        with self._lock:
            setting = replace(setting, updated_at=self._clock.now())
            self._override = setting
            self.store.save_override(setting)
            if setting.active:
                logger.warning("Automatic stop disabled: %s", setting.reason or "no reason given")
            return self.tick()

    def auto_stop_events(self) -> list[AutoStopEvent]:
        with self._lock:
            return self.store.auto_stop_events()

    def acknowledge_auto_stop(self, event_id: str) -> bool:
        with self._lock:
            return self.store.acknowledge_auto_stop(event_id)

    def clear_all(self) -> Snapshot:
        """Wipe persisted data and reset the engine in one step."""
        with self._lock:
            self.store.clear_all()
            self._user_settings = UserSettings()
            self._override = OverrideSetting()
            self.engine.clear_all()
            return self.tick()
