"""Command-line interface for the work-time tracker."""

from __future__ import annotations

import json
import logging
import threading
import time
import webbrowser
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer
import uvicorn

from .config import MAX_OVERRIDE_REASON_LENGTH, OverrideSetting, RunnerSettings
from .models import Status
from .reporting import SnapshotPrinter
from .runner import EngineRunner
from .state import Snapshot
from .storage import default_db_path
from .webapp import create_app

app = typer.Typer(help="Track working time against the daily quota.")
breaks_app = typer.Typer(help="Edit the break ledger.")
app.add_typer(breaks_app, name="breaks")

DB_OPTION = typer.Option(
    None,
    "--db",
    path_type=Path,
    help="Location of the tracker SQLite database.",
)


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _open(db_path: Optional[Path]) -> EngineRunner:
    return EngineRunner.from_path(db_path or default_db_path())


def _show(runner: EngineRunner, snapshot: Snapshot) -> None:
    SnapshotPrinter(runner.user_settings, echo=typer.echo).print_snapshot(snapshot)


def _run(db_path: Optional[Path], intent: str, *args: Any) -> Snapshot:
    runner = _open(db_path)
    snapshot = runner.dispatch(intent, *args)
    _show(runner, snapshot)
    return snapshot


@app.command()
def status(db_path: Optional[Path] = DB_OPTION) -> None:
    """Show the current session."""
    runner = _open(db_path)
    _show(runner, runner.tick())


@app.command()
def start(
    at: Optional[str] = typer.Option(
        None, "--at", help="Start time (HH:MM). Defaults to now."
    ),
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Start a session, optionally backdated to --at."""
    runner = _open(db_path)
    runner.dispatch("set_manual_start", at or datetime.now().strftime("%H:%M"))
    snapshot = runner.dispatch("start")
    _show(runner, snapshot)
    if snapshot.status is Status.STOPPED:
        raise typer.Exit(code=1)


@app.command()
def pause(db_path: Optional[Path] = DB_OPTION) -> None:
    """Begin a break."""
    _run(db_path, "pause")


@app.command()
def resume(db_path: Optional[Path] = DB_OPTION) -> None:
    """End the current break."""
    _run(db_path, "resume")


@app.command()
def stop(db_path: Optional[Path] = DB_OPTION) -> None:
    """Stop the session and keep the final numbers."""
    _run(db_path, "stop")


@app.command()
def plan(
    key: str = typer.Argument(..., help="Plan key, e.g. VOR_ORT or HOMEOFFICE."),
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Select the attendance plan."""
    runner = _open(db_path)
    if runner.user_settings.plan(key) is None:
        known = ", ".join(sorted(runner.user_settings.plans))
        typer.echo(f"Unknown plan {key!r}. Known plans: {known}", err=True)
        raise typer.Exit(code=2)
    _show(runner, runner.dispatch("set_plan", key))


@app.command()
def planned(
    minutes: int = typer.Argument(0, min=0, help="Planned minutes; 0 uses today's quota."),
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Set the planned working minutes for today."""
    _run(db_path, "set_planned_work", minutes)


@breaks_app.command("add")
def breaks_add(db_path: Optional[Path] = DB_OPTION) -> None:
    """Append an empty break."""
    _run(db_path, "add_break")


@breaks_app.command("delete")
def breaks_delete(
    index: int = typer.Argument(..., min=0),
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Delete a break by position."""
    _run(db_path, "delete_break", index)


@breaks_app.command("start")
def breaks_start(
    index: int = typer.Argument(..., min=0),
    value: str = typer.Argument(..., help="HH:MM"),
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Set when a break began."""
    _run(db_path, "update_break_start", index, value)


@breaks_app.command("end")
def breaks_end(
    index: int = typer.Argument(..., min=0),
    value: str = typer.Argument(..., help="HH:MM"),
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Set when a break ended."""
    _run(db_path, "update_break_end", index, value)


@breaks_app.command("duration")
def breaks_duration(
    index: int = typer.Argument(..., min=0),
    value: str = typer.Argument(..., help="Minutes"),
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Set a break's length directly."""
    _run(db_path, "update_break_duration", index, value)


@breaks_app.command("end-now")
def breaks_end_now(db_path: Optional[Path] = DB_OPTION) -> None:
    """End the scheduled break in progress right now."""
    _run(db_path, "end_active_break")


@breaks_app.command("reset")
def breaks_reset(db_path: Optional[Path] = DB_OPTION) -> None:
    """Replace all breaks with the configured defaults."""
    _run(db_path, "reset_to_default_breaks")


@app.command()
def popup(
    follow: bool = typer.Option(
        False, "--follow", "-f", help="Keep printing the feed until interrupted."
    ),
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Print the compact live feed as JSON lines."""
    runner = _open(db_path)
    interval = runner.settings.popup_interval.total_seconds()
    while True:
        runner.tick()
        typer.echo(json.dumps(runner.popup_feed().to_dict()))
        if not follow:
            return
        try:
            time.sleep(interval)
        except KeyboardInterrupt:
            return


@app.command()
def override(
    enable: Optional[bool] = typer.Option(
        None,
        "--enable/--disable",
        help="Keep working past the limits instead of stopping automatically.",
    ),
    reason: str = typer.Option("", "--reason", help="Why the override is needed."),
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Acknowledge the legal implications without asking."
    ),
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Show or change the automatic-stop override."""
    runner = _open(db_path)
    if enable is None:
        typer.echo(json.dumps(runner.override.to_dict()))
        for event in runner.auto_stop_events():
            stamp = event.timestamp.strftime("%Y-%m-%d %H:%M")
            typer.echo(f"{stamp}  {event.label}: {event.message}")
        return
    if len(reason) > MAX_OVERRIDE_REASON_LENGTH:
        typer.echo(f"Reason is limited to {MAX_OVERRIDE_REASON_LENGTH} characters.", err=True)
        raise typer.Exit(code=2)
    if enable and not yes:
        typer.confirm(
            "Working past the limits may violate the ArbZG. Continue?", abort=True
        )
    runner.update_override(
        OverrideSetting(enabled=enable, acknowledged=enable, reason=reason)
    )
    typer.echo(json.dumps(runner.override.to_dict()))


@app.command()
def clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Delete all tracking data and settings. This cannot be undone."""
    if not yes:
        typer.confirm(
            "Delete all tracking data, breaks and settings? This cannot be undone.",
            abort=True,
        )
    runner = _open(db_path)
    _show(runner, runner.clear_all())


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the API."),
    port: int = typer.Option(
        8766, "--port", min=1, max=65535, help="TCP port for the API."
    ),
    db_path: Optional[Path] = DB_OPTION,
    tick_seconds: float = typer.Option(
        1.0,
        "--tick",
        min=0.1,
        help="Recompute interval in seconds.",
    ),
    open_browser: bool = typer.Option(
        False,
        "--open-browser/--no-open-browser",
        help="Open the snapshot endpoint in your default browser.",
    ),
    log_level: str = typer.Option("info", "--log-level", help="uvicorn log level."),
) -> None:
    """Serve the tracker API with the background tick loop."""
    settings = RunnerSettings.from_intervals(tick_seconds=tick_seconds)
    api = create_app(db_path=db_path or default_db_path(), settings=settings)
    url = f"http://{host}:{port}/api/snapshot"
    typer.echo(
        f"Serving {url} (tick {settings.tick_interval.total_seconds():g}s, "
        f"popup {settings.popup_interval.total_seconds():g}s)"
    )
    if open_browser:
        opener = threading.Timer(1.0, webbrowser.open, args=(url,))
        opener.daemon = True
        opener.start()
    uvicorn.run(api, host=host, port=port, log_level=log_level)
