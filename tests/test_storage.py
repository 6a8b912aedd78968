from datetime import datetime

from worktime.autostop import AutoStopEvent, AutoStopReason
from worktime.breaks import BreakLedger
from worktime.config import OverrideSetting, Plan, UserSettings
from worktime.db import database_connection, put_value
from worktime.models import CompleteBreak, PartialBreak, PlannedBreak, Status
from worktime.state import SessionState
from worktime.storage import SESSION_KEY, SETTINGS_KEY, SessionStore


def sample_state():
    return SessionState(
        plan="HOMEOFFICE",
        status=Status.PAUSED,
        start_time=datetime(2026, 10, 19, 8, 0),
        manual_start="08:00",
        planned_work=420,
        worked_minutes=135,
        breaks=BreakLedger(
            [
                PlannedBreak(30),
                PartialBreak(end=datetime(2026, 10, 19, 9, 30), duration=5),
                CompleteBreak(datetime(2026, 10, 19, 12, 0), datetime(2026, 10, 19, 12, 20)),
                PartialBreak(start=datetime(2026, 10, 19, 13, 0)),
            ]
        ),
        warnings=("ArbZG: Mind. 30 Min Pause nach 6h Arbeit erforderlich!",),
        start_requested=False,
    )


def test_load_without_data(db_path):
    assert SessionStore(db_path).load() is None


def test_round_trip(db_path):
    store = SessionStore(db_path)
    state = sample_state()
    assert store.save(state) is True
    assert store.load() == state


def test_save_overwrites(db_path):
    store = SessionStore(db_path)
    store.save(sample_state())
    store.save(SessionState())
    assert store.load() == SessionState()


def test_record_uses_iso_timestamps(db_path):
    store = SessionStore(db_path)
    store.save(sample_state())
    with database_connection(db_path) as conn:
        raw = conn.execute("SELECT value FROM kv_store WHERE key = ?", (SESSION_KEY,)).fetchone()
    assert '"startTime":"2026-10-19T08:00:00"' in raw["value"]
    assert '"start":null' in raw["value"]


def test_unreadable_session_is_dropped(db_path):
    with database_connection(db_path) as conn:
        put_value(conn, SESSION_KEY, "{not json")
    assert SessionStore(db_path).load() is None

    with database_connection(db_path) as conn:
        put_value(conn, SESSION_KEY, '{"plan": "VOR_ORT", "status": "dancing"}')
    assert SessionStore(db_path).load() is None


def test_storage_failures_are_swallowed(tmp_path):
    # A directory cannot be opened as a database file.
    store = SessionStore(tmp_path)
    assert store.save(sample_state()) is False
    assert store.load() is None
    assert store.load_settings() == UserSettings()
    assert store.clear_all() is False


def test_settings_round_trip(db_path):
    store = SessionStore(db_path)
    assert store.load_settings() == UserSettings()
    settings = UserSettings(display_format="hours")
    settings.daily_work_minutes["friday"] = 240
    settings.plans["LATE"] = Plan(name="Spät", earliest_start=600, latest_end=1320, max_duration=480)
    store.save_settings(settings)
    assert store.load_settings() == settings


def test_unreadable_settings_fall_back_to_defaults(db_path):
    with database_connection(db_path) as conn:
        put_value(conn, SETTINGS_KEY, "[]")
    assert SessionStore(db_path).load_settings() == UserSettings()


def test_clear_all_removes_everything(db_path):
    store = SessionStore(db_path)
    store.save(sample_state())
    store.save_settings(UserSettings(display_format="hours"))
    store.set_flag("popupOpen", True)
    assert store.get_flag("popupOpen") is True
    assert store.clear_all() is True
    assert store.keys() == []
    assert store.load() is None
    assert store.get_flag("popupOpen", False) is False


def test_override_round_trip(db_path):
    store = SessionStore(db_path)
    assert store.load_override() == OverrideSetting()
    setting = OverrideSetting(
        enabled=True,
        acknowledged=True,
        reason="Release night",
        updated_at=datetime(2026, 10, 19, 17, 0),
    )
    store.save_override(setting)
    assert store.load_override() == setting
    assert store.load_override().active


def test_auto_stop_events(db_path):
    store = SessionStore(db_path)
    first = AutoStopEvent(
        reason=AutoStopReason.MAX_PRESENCE,
        message="Maximale Anwesenheit",
        timestamp=datetime(2026, 10, 19, 17, 30),
        worked_minutes=500,
        plan_name="Vor Ort",
    )
    second = AutoStopEvent(
        reason=AutoStopReason.MAX_HOURS,
        message="Maximale Arbeitszeit",
        timestamp=datetime(2026, 10, 20, 18, 0),
        worked_minutes=600,
        plan_name="Homeoffice",
    )
    store.record_auto_stop(first)
    store.record_auto_stop(second)
    assert store.auto_stop_events() == [second, first]

    assert store.acknowledge_auto_stop(first.id) is True
    assert store.acknowledge_auto_stop("missing") is False
    assert [e.acknowledged for e in store.auto_stop_events()] == [False, True]
