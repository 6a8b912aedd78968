from datetime import datetime

import pytest

from worktime.clock import FixedClock
from worktime.config import UserSettings
from worktime.engine import TrackingEngine

# 2026-10-19 is a Monday, 2026-10-24 a Saturday.
MONDAY_0800 = datetime(2026, 10, 19, 8, 0)
SATURDAY_1000 = datetime(2026, 10, 24, 10, 0)


@pytest.fixture
def clock():
    return FixedClock(MONDAY_0800)


@pytest.fixture
def settings():
    """Default settings without a break template, so arithmetic stays obvious."""
    return UserSettings(default_breaks=())


@pytest.fixture
def engine(settings, clock):
    return TrackingEngine(lambda: settings, clock)


@pytest.fixture
def started(engine):
    engine.set_manual_start("08:00")
    assert engine.start()
    return engine


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "worktime.sqlite3"
