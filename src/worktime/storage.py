"""Persistence of the session snapshot and user settings."""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from platformdirs import user_data_path
from pydantic import BaseModel, ConfigDict, Field

from .autostop import AutoStopEvent, AutoStopReason
from .breaks import BreakLedger
from .config import OverrideSetting, UserSettings
from .db import database_connection, delete_all, get_value, list_keys, put_value
from .models import Break, Status, make_break
from .state import SessionState

logger = logging.getLogger(__name__)

SESSION_KEY = "timeTrackingState"
SETTINGS_KEY = "userSettings"
OVERRIDE_KEY = "overrideSetting"
AUTO_STOP_EVENTS_KEY = "autoStopEvents"
MAX_AUTO_STOP_EVENTS = 100

_STORAGE_ERRORS = (sqlite3.Error, OSError)

APP_NAME = "WorkTime"


def default_db_path() -> Path:
    """The tracker database inside the per-user data directory."""
    return user_data_path(APP_NAME, appauthor=False, roaming=True) / "worktime.sqlite3"


class BreakRecord(BaseModel):
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    duration: int = 0

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def from_break(cls, item: Break) -> "BreakRecord":
        return cls(start=item.start, end=item.end, duration=item.duration)

    def to_break(self) -> Break:
        return make_break(start=self.start, end=self.end, duration=self.duration)


class SessionRecord(BaseModel):
    """Persisted shape of :class:`SessionState` (camelCase on disk)."""

    plan: str
    status: Status = Status.STOPPED
    start_time: Optional[datetime] = Field(default=None, alias="startTime")
    manual_start: str = Field(default="00:00", alias="manualStart")
    planned_work: int = Field(default=0, ge=0, alias="plannedWork")
    worked_minutes: int = Field(default=0, ge=0, alias="workedMinutes")
    breaks: list[BreakRecord] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    start_requested: bool = Field(default=False, alias="startRequested")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @classmethod
    def from_state(cls, state: SessionState) -> "SessionRecord":
        return cls(
            plan=state.plan,
            status=state.status,
            start_time=state.start_time,
            manual_start=state.manual_start,
            planned_work=state.planned_work,
            worked_minutes=state.worked_minutes,
            breaks=[BreakRecord.from_break(item) for item in state.breaks],
            warnings=list(state.warnings),
            start_requested=state.start_requested,
        )

    def to_state(self) -> SessionState:
        return SessionState(
            plan=self.plan,
            status=self.status,
            start_time=self.start_time,
            manual_start=self.manual_start,
            planned_work=self.planned_work,
            worked_minutes=self.worked_minutes,
            breaks=BreakLedger(record.to_break() for record in self.breaks),
            warnings=tuple(self.warnings),
            start_requested=self.start_requested,
        )


class AutoStopRecord(BaseModel):
    id: str
    reason: AutoStopReason
    message: str = ""
    timestamp: datetime
    worked_minutes: int = Field(default=0, ge=0, alias="workTime")
    plan_name: str = Field(default="", alias="planName")
    acknowledged: bool = Field(default=False, alias="userAcknowledged")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @classmethod
    def from_event(cls, event: AutoStopEvent) -> "AutoStopRecord":
        return cls(
            id=event.id,
            reason=event.reason,
            message=event.message,
            timestamp=event.timestamp,
            worked_minutes=event.worked_minutes,
            plan_name=event.plan_name,
            acknowledged=event.acknowledged,
        )

    def to_event(self) -> AutoStopEvent:
        return AutoStopEvent(
            id=self.id,
            reason=self.reason,
            message=self.message,
            timestamp=self.timestamp,
            worked_minutes=self.worked_minutes,
            plan_name=self.plan_name,
            acknowledged=self.acknowledged,
        )


class SessionStore:
    """Durable key-value storage for the tracker.

    Storage trouble never reaches the caller: reads fall back to ``None`` or
    defaults and failed writes are logged and dropped, leaving the in-memory
    engine authoritative.
    """

    def __init__(self, db_path: Optional[Path] = None) -> None:
        self.db_path = Path(db_path or default_db_path())

    def _read(self, key: str) -> Optional[str]:
        try:
            with database_connection(self.db_path) as conn:
                return get_value(conn, key)
        except _STORAGE_ERRORS:
            logger.exception("Failed to read %s from %s", key, self.db_path)
            return None

    def _write(self, key: str, value: str) -> bool:
        try:
            with database_connection(self.db_path) as conn:
                put_value(conn, key, value)
        except _STORAGE_ERRORS:
            logger.exception("Failed to write %s to %s", key, self.db_path)
            return False
        return True

    def save(self, state: SessionState) -> bool:
        record = SessionRecord.from_state(state)
        return self._write(SESSION_KEY, record.model_dump_json(by_alias=True))

    def load(self) -> Optional[SessionState]:
        raw = self._read(SESSION_KEY)
        if raw is None:
            return None
        try:
            return SessionRecord.model_validate_json(raw).to_state()
        except ValueError:
            logger.warning("Stored session is unreadable; starting from defaults.")
            return None

    def save_settings(self, settings: UserSettings) -> bool:
        return self._write(SETTINGS_KEY, json.dumps(settings.to_dict()))

    def load_settings(self) -> UserSettings:
        raw = self._read(SETTINGS_KEY)
        if raw is None:
            return UserSettings()
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Stored settings are unreadable; using defaults.")
            return UserSettings()
        return UserSettings.from_dict(data if isinstance(data, dict) else None)

    def save_override(self, setting: OverrideSetting) -> bool:
        return self._write(OVERRIDE_KEY, json.dumps(setting.to_dict()))

    def load_override(self) -> OverrideSetting:
        data = self.get_flag(OVERRIDE_KEY)
        return OverrideSetting.from_dict(data if isinstance(data, dict) else None)

    def _load_records(self) -> list[AutoStopRecord]:
        raw = self.get_flag(AUTO_STOP_EVENTS_KEY, [])
        records = []
        for item in raw if isinstance(raw, list) else []:
            try:
                records.append(AutoStopRecord.model_validate(item))
            except ValueError:
                logger.warning("Skipping unreadable auto-stop event.")
        return records

    def _store_records(self, records: list[AutoStopRecord]) -> bool:
        payload = [r.model_dump(mode="json", by_alias=True) for r in records]
        return self._write(AUTO_STOP_EVENTS_KEY, json.dumps(payload))

    def record_auto_stop(self, event: AutoStopEvent) -> bool:
        """Append an event, keeping only the most recent ones."""
        records = self._load_records()
        records.append(AutoStopRecord.from_event(event))
        return self._store_records(records[-MAX_AUTO_STOP_EVENTS:])

    def auto_stop_events(self) -> list[AutoStopEvent]:
        """Stored events, newest first."""
        events = [record.to_event() for record in self._load_records()]
        return sorted(events, key=lambda event: event.timestamp, reverse=True)

    def acknowledge_auto_stop(self, event_id: str) -> bool:
        records = self._load_records()
        for record in records:
            if record.id == event_id:
                record.acknowledged = True
                return self._store_records(records)
        return False

    def set_flag(self, key: str, value: Any) -> bool:
        """Side storage for small presentation flags (e.g. ``popupOpen``)."""
        return self._write(key, json.dumps(value))

    def get_flag(self, key: str, default: Any = None) -> Any:
        raw = self._read(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError:
            return default

    def keys(self) -> list[str]:
        try:
            with database_connection(self.db_path) as conn:
                return list_keys(conn)
        except _STORAGE_ERRORS:
            logger.exception("Failed to list keys in %s", self.db_path)
            return []

    def clear_all(self) -> bool:
        """Delete the session, the settings and every residual flag."""
        try:
            with database_connection(self.db_path) as conn:
                removed = delete_all(conn)
        except _STORAGE_ERRORS:
            logger.exception("Failed to clear %s", self.db_path)
            return False
        logger.info("Cleared %d stored entries.", removed)
        return True
