import json

from typer.testing import CliRunner

from worktime.cli import app
from worktime.storage import SessionStore

runner = CliRunner()


def test_status(db_path):
    result = runner.invoke(app, ["status", "--db", str(db_path)])
    assert result.exit_code == 0
    assert "Status:     stopped" in result.output
    assert "Expected end: -" in result.output


def test_breaks_add_and_duration(db_path):
    runner.invoke(app, ["breaks", "add", "--db", str(db_path)])
    result = runner.invoke(app, ["breaks", "duration", "2", "20", "--db", str(db_path)])
    assert result.exit_code == 0
    breaks = SessionStore(db_path).load().breaks
    assert [b.duration for b in breaks] == [15, 30, 20]


def test_unknown_plan(db_path):
    result = runner.invoke(app, ["plan", "NOPE", "--db", str(db_path)])
    assert result.exit_code == 2


def test_popup_prints_feed(db_path):
    result = runner.invoke(app, ["popup", "--db", str(db_path)])
    assert result.exit_code == 0
    feed = json.loads(result.output.strip().splitlines()[-1])
    assert feed["endTime"] == "-"


def test_clear_needs_confirmation(db_path):
    runner.invoke(app, ["breaks", "add", "--db", str(db_path)])
    aborted = runner.invoke(app, ["clear", "--db", str(db_path)], input="n\n")
    assert aborted.exit_code != 0
    assert len(SessionStore(db_path).load().breaks) == 3

    result = runner.invoke(app, ["clear", "--yes", "--db", str(db_path)])
    assert result.exit_code == 0
    assert len(SessionStore(db_path).load().breaks) == 2


def test_override_needs_acknowledgement(db_path):
    aborted = runner.invoke(app, ["override", "--enable", "--db", str(db_path)], input="n\n")
    assert aborted.exit_code != 0
    assert not SessionStore(db_path).load_override().active

    result = runner.invoke(
        app, ["override", "--enable", "--yes", "--reason", "Inventur", "--db", str(db_path)]
    )
    assert result.exit_code == 0
    setting = SessionStore(db_path).load_override()
    assert setting.active
    assert setting.reason == "Inventur"

    runner.invoke(app, ["override", "--disable", "--db", str(db_path)])
    assert not SessionStore(db_path).load_override().enabled


def test_breaks_end_now_without_active_break(db_path):
    result = runner.invoke(app, ["breaks", "end-now", "--db", str(db_path)])
    assert result.exit_code == 0
    assert [b.duration for b in SessionStore(db_path).load().breaks] == [15, 30]


def test_web_hands_the_app_to_uvicorn(db_path, monkeypatch):
    served = {}

    def fake_run(api, **kwargs):
        served["api"] = api
        served.update(kwargs)

    monkeypatch.setattr("worktime.cli.uvicorn.run", fake_run)
    result = runner.invoke(app, ["web", "--port", "9001", "--tick", "2", "--db", str(db_path)])
    assert result.exit_code == 0
    assert "tick 2s, popup 0.5s" in result.output
    assert served["port"] == 9001
    assert served["api"].state.db_path == db_path
    assert served["api"].state.runner.settings.tick_interval.total_seconds() == 2
