import asyncio
import json
import threading

import pytest
from fastapi.testclient import TestClient

from worktime.clock import FixedClock
from worktime.runner import EngineRunner
from worktime.storage import SessionStore
from worktime.webapp import create_app, popup_events

from conftest import MONDAY_0800


@pytest.fixture
def clock():
    return FixedClock(MONDAY_0800)


@pytest.fixture
def client(db_path, clock):
    app = create_app(db_path=db_path, clock=clock)
    return TestClient(app)


def test_snapshot_shape(client):
    body = client.get("/api/snapshot").json()
    assert body["status"] == "stopped"
    assert body["plan"] == "VOR_ORT"
    assert body["endTime"] == "-"
    assert [b["duration"] for b in body["breaks"]] == [15, 30]


def test_work_day_flow(client, clock):
    client.put("/api/settings", json={"defaultBreaks": []})
    assert client.post("/api/breaks/reset").json()["breaks"] == []
    client.put("/api/manual-start", json={"time": "08:00"})
    assert client.post("/api/start").json()["status"] == "running"

    clock.advance(minutes=60)
    assert client.post("/api/pause").json()["status"] == "paused"
    clock.advance(minutes=10)
    body = client.post("/api/resume").json()
    assert body["status"] == "running"
    assert body["workedMinutes"] == 60
    assert body["breaks"][-1]["duration"] == 10

    feed = client.get("/api/popup").json()
    assert set(feed) == {"workedMinutes", "plannedWork", "endTime"}

    assert client.post("/api/stop").json()["status"] == "stopped"


def test_break_editing(client):
    client.put("/api/manual-start", json={"time": "08:00"})
    client.post("/api/start")
    body = client.patch("/api/breaks/1", json={"start": "12:00", "end": "12:45"}).json()
    assert body["breaks"][1]["duration"] == 45

    body = client.post("/api/breaks").json()
    assert len(body["breaks"]) == 3
    body = client.patch("/api/breaks/2", json={"duration": "20"}).json()
    assert body["breaks"][2]["duration"] == 20

    assert client.delete("/api/breaks/9").status_code == 404
    assert len(client.delete("/api/breaks/0").json()["breaks"]) == 2
    assert len(client.post("/api/breaks/reset").json()["breaks"]) == 2


def test_plan_validation(client):
    assert client.put("/api/plan", json={"plan": "NOPE"}).status_code == 400
    assert client.put("/api/plan", json={"plan": "HOMEOFFICE"}).json()["plan"] == "HOMEOFFICE"


def test_settings_endpoints(client):
    body = client.put("/api/settings", json={"timeFormat": "hours", "defaultBreaks": []}).json()
    assert body["timeFormat"] == "hours"
    assert client.get("/api/settings").json()["defaultBreaks"] == []


def test_clear_requires_confirmation(client):
    client.put("/api/plan", json={"plan": "HOMEOFFICE"})
    assert client.post("/api/clear", json={}).status_code == 400
    body = client.post("/api/clear", json={"confirm": True}).json()
    assert body["plan"] == "VOR_ORT"


def test_end_active_break(client, clock):
    client.put("/api/settings", json={"defaultBreaks": [{"start": "12:00", "end": "12:30", "duration": 30}]})
    client.post("/api/breaks/reset")
    client.put("/api/manual-start", json={"time": "08:00"})
    client.post("/api/start")
    clock.advance(minutes=250)
    body = client.post("/api/breaks/end-active").json()
    assert body["mode"] == "work"
    assert body["breaks"][0]["duration"] == 10
    assert body["breaks"][0]["end"] == "2026-10-19T12:10:00"


def test_override_and_auto_stop_events(client, clock):
    assert client.get("/api/override").json()["enabled"] is False
    assert client.put("/api/override", json={"enabled": True}).status_code == 400
    too_long = {"enabled": True, "acknowledged": True, "reason": "x" * 201}
    assert client.put("/api/override", json=too_long).status_code == 422

    client.put("/api/settings", json={"defaultBreaks": []})
    client.put("/api/plan", json={"plan": "HOMEOFFICE"})
    client.put("/api/manual-start", json={"time": "08:00"})
    client.post("/api/start")
    clock.advance(minutes=600)
    assert client.post("/api/breaks").json()["status"] == "stopped"

    events = client.get("/api/auto-stop/events").json()
    assert [e["reason"] for e in events] == ["maxHours"]
    event_id = events[0]["id"]
    assert client.post(f"/api/auto-stop/events/{event_id}/acknowledge").status_code == 200
    assert client.get("/api/auto-stop/events").json()[0]["acknowledged"] is True
    assert client.post("/api/auto-stop/events/nope/acknowledge").status_code == 404

    body = client.put(
        "/api/override", json={"enabled": True, "acknowledged": True, "reason": "Go-live"}
    ).json()
    assert body["enabled"] is True
    assert body["timestamp"] == "2026-10-19T18:00:00"


def test_popup_events_read_the_feed_off_the_event_loop(db_path, clock):
    tracker = EngineRunner(SessionStore(db_path), clock=clock)
    threads = []

    class RecordingRunner:
        def popup_feed(self):
            threads.append(threading.current_thread())
            return tracker.popup_feed()

    checks = iter([False, True])

    async def disconnected():
        return next(checks)

    async def collect():
        return [chunk async for chunk in popup_events(RecordingRunner(), 0, disconnected)]

    chunks = asyncio.run(collect())
    assert len(chunks) == 1
    assert json.loads(chunks[0].removeprefix("data: ")) == tracker.popup_feed().to_dict()
    assert threads and threads[0] is not threading.main_thread()
