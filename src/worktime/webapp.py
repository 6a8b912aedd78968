"""FastAPI application exposing the tracking engine to a local UI."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional, Union

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from .clock import Clock
from .config import MAX_OVERRIDE_REASON_LENGTH, OverrideSetting, RunnerSettings, UserSettings
from .runner import EngineRunner
from .storage import SessionStore, default_db_path

logger = logging.getLogger(__name__)


async def popup_events(
    runner: EngineRunner,
    interval: float,
    is_disconnected: Callable[[], Awaitable[bool]],
) -> AsyncIterator[str]:
    """Server-sent events carrying the popup feed until the client leaves.

    The feed is read in a worker thread so that waiting for the runner lock
    never blocks the event loop.
    """
    while not await is_disconnected():
        feed = await asyncio.to_thread(runner.popup_feed)
        yield f"data: {json.dumps(feed.to_dict())}\n\n"
        await asyncio.sleep(interval)


class PlanPayload(BaseModel):
    plan: str

    model_config = ConfigDict(extra="forbid")


class PlannedWorkPayload(BaseModel):
    minutes: Optional[Union[int, str]] = None

    model_config = ConfigDict(extra="forbid")


class ManualStartPayload(BaseModel):
    time: str

    model_config = ConfigDict(extra="forbid")


class BreakUpdate(BaseModel):
    start: Optional[str] = None
    end: Optional[str] = None
    duration: Optional[Union[int, str]] = None

    model_config = ConfigDict(extra="forbid")


class OverridePayload(BaseModel):
    enabled: bool
    acknowledged: bool = False
    reason: str = Field(default="", max_length=MAX_OVERRIDE_REASON_LENGTH)

    model_config = ConfigDict(extra="forbid")


class ClearPayload(BaseModel):
    confirm: bool = False

    model_config = ConfigDict(extra="forbid")


def create_app(
    *,
    db_path: Optional[Path] = None,
    settings: Optional[RunnerSettings] = None,
    clock: Optional[Clock] = None,
) -> FastAPI:
    """Instantiate the FastAPI application."""
    resolved_db_path = Path(db_path or default_db_path())
    resolved_settings = settings or RunnerSettings()
    runner = EngineRunner(SessionStore(resolved_db_path), resolved_settings, clock=clock)

    app = FastAPI(title="Work Time Tracker", version="0.3.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.db_path = resolved_db_path
    app.state.runner = runner

    @app.on_event("startup")
    async def _startup() -> None:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
        runner.start()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        runner.stop()

    def _runner(request: Request) -> EngineRunner:
        return request.app.state.runner

    def _dispatch(request: Request, intent: str, *args: Any) -> Dict[str, Any]:
        return _runner(request).dispatch(intent, *args).to_dict()

    def _check_index(request: Request, index: int) -> None:
        if not 0 <= index < len(_runner(request).engine.state.breaks):
            raise HTTPException(status_code=404, detail="Break not found")

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        return {
            "ticking": _runner(request).is_running(),
            "database_path": str(request.app.state.db_path),
            "tick_seconds": resolved_settings.tick_interval.total_seconds(),
        }

    @app.get("/api/snapshot")
    def snapshot(request: Request) -> Dict[str, Any]:
        return _runner(request).snapshot().to_dict()

    @app.get("/api/popup")
    def popup(request: Request) -> Dict[str, Any]:
        return _runner(request).popup_feed().to_dict()

    @app.get("/api/popup/stream")
    async def popup_stream(request: Request) -> StreamingResponse:
        events = popup_events(
            _runner(request),
            resolved_settings.popup_interval.total_seconds(),
            request.is_disconnected,
        )
        return StreamingResponse(events, media_type="text/event-stream")

    @app.post("/api/start")
    def start(request: Request) -> Dict[str, Any]:
        return _dispatch(request, "start")

    @app.post("/api/pause")
    def pause(request: Request) -> Dict[str, Any]:
        return _dispatch(request, "pause")

    @app.post("/api/resume")
    def resume(request: Request) -> Dict[str, Any]:
        return _dispatch(request, "resume")

    @app.post("/api/stop")
    def stop(request: Request) -> Dict[str, Any]:
        return _dispatch(request, "stop")

    @app.put("/api/plan")
    def set_plan(payload: PlanPayload, request: Request) -> Dict[str, Any]:
        if _runner(request).user_settings.plan(payload.plan) is None:
            raise HTTPException(status_code=400, detail=f"Unknown plan: {payload.plan}")
        return _dispatch(request, "set_plan", payload.plan)

    @app.put("/api/planned-work")
    def set_planned_work(payload: PlannedWorkPayload, request: Request) -> Dict[str, Any]:
        return _dispatch(request, "set_planned_work", payload.minutes)

    @app.put("/api/manual-start")
    def set_manual_start(payload: ManualStartPayload, request: Request) -> Dict[str, Any]:
        return _dispatch(request, "set_manual_start", payload.time)

    @app.post("/api/breaks")
    def add_break(request: Request) -> Dict[str, Any]:
        return _dispatch(request, "add_break")

    @app.post("/api/breaks/reset")
    def reset_breaks(request: Request) -> Dict[str, Any]:
        return _dispatch(request, "reset_to_default_breaks")

    @app.post("/api/breaks/end-active")
    def end_active_break(request: Request) -> Dict[str, Any]:
        return _dispatch(request, "end_active_break")

    @app.patch("/api/breaks/{index}")
    def update_break(index: int, payload: BreakUpdate, request: Request) -> Dict[str, Any]:
        _check_index(request, index)
        updates = payload.model_dump(exclude_unset=True)
        tracker = _runner(request)
        if "start" in updates and updates["start"] is not None:
            tracker.dispatch("update_break_start", index, updates["start"])
        if "end" in updates and updates["end"] is not None:
            tracker.dispatch("update_break_end", index, updates["end"])
        if "duration" in updates:
            tracker.dispatch("update_break_duration", index, updates["duration"])
        return tracker.snapshot().to_dict()

    @app.delete("/api/breaks/{index}")
    def delete_break(index: int, request: Request) -> Dict[str, Any]:
        _check_index(request, index)
        return _dispatch(request, "delete_break", index)

    @app.get("/api/settings")
    def get_settings(request: Request) -> Dict[str, Any]:
        return _runner(request).user_settings.to_dict()

    @app.put("/api/settings")
    def put_settings(payload: Dict[str, Any], request: Request) -> Dict[str, Any]:
        user_settings = UserSettings.from_dict(payload)
        _runner(request).update_settings(user_settings)
        return user_settings.to_dict()

    @app.get("/api/override")
    def get_override(request: Request) -> Dict[str, Any]:
        return _runner(request).override.to_dict()

    @app.put("/api/override")
    def put_override(payload: OverridePayload, request: Request) -> Dict[str, Any]:
        if payload.enabled and not payload.acknowledged:
            raise HTTPException(
                status_code=400, detail="Enabling the override must be acknowledged"
            )
        tracker = _runner(request)
        tracker.update_override(OverrideSetting(**payload.model_dump()))
        return tracker.override.to_dict()

    @app.get("/api/auto-stop/events")
    def auto_stop_events(request: Request) -> list[Dict[str, Any]]:
        return [event.to_dict() for event in _runner(request).auto_stop_events()]

    @app.post("/api/auto-stop/events/{event_id}/acknowledge")
    def acknowledge_auto_stop(event_id: str, request: Request) -> Dict[str, Any]:
        if not _runner(request).acknowledge_auto_stop(event_id):
            raise HTTPException(status_code=404, detail="Event not found")
        return {"id": event_id, "acknowledged": True}

    @app.post("/api/clear")
    def clear(payload: ClearPayload, request: Request) -> Dict[str, Any]:
        if not payload.confirm:
            raise HTTPException(status_code=400, detail="Clearing all data must be confirmed")
        logger.warning("Clearing all tracker data on request.")
        return _runner(request).clear_all().to_dict()

    return app
