"""
API Router for Batch Runners.

Exposes endpoints for:
- Starting an action over a batch of entries (POST /runners)
- Polling runner progress (GET /runners, GET /runners/{runner_id})
- Stopping a runner (POST /runners/{runner_id}/stop)
- Streaming runner progress as server-sent events (GET /runners/{runner_id}/events)
"""

import asyncio
import json
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, HTTPException, Request  # type: ignore[import-not-found]
from fastapi.responses import StreamingResponse  # type: ignore[import-not-found]

from ..config import config
from ..errors import (
    ActionNotFoundError,
    EntryGenerationError,
    ExtensionNotFoundError,
    RunnerNotFoundError,
)
from ..models import (
    RunActionRequest,
    RunActionResponse,
    RunnerStatusResponse,
    StopRunnerResponse,
)
from ..services.action_service import describe_runner, start_action
from ..services.runner import Runner
from ..services.runner_registry import runner_registry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/runners", tags=["runners"])


@router.post("", response_model=RunActionResponse, status_code=201)
async def create_runner(request: RunActionRequest):
    try:
        runner_id = await start_action(request)
    except (ExtensionNotFoundError, ActionNotFoundError) as e:
        raise HTTPException(status_code=404, detail=e.to_payload())
    except EntryGenerationError as e:
        raise HTTPException(status_code=400, detail=e.to_payload())
    return RunActionResponse(runner_id=runner_id)


@router.get("", response_model=List[RunnerStatusResponse])
async def list_runners():
    return [describe_runner(runner_id, runner) for runner_id, runner in runner_registry.items()]


@router.get("/{runner_id}", response_model=RunnerStatusResponse)
async def get_runner(runner_id: int):
    return describe_runner(runner_id, _require_runner(runner_id))


@router.post("/{runner_id}/stop", response_model=StopRunnerResponse)
async def stop_runner(runner_id: int):
    runner = _require_runner(runner_id)
    if runner.is_terminal:
        return StopRunnerResponse(
            runner_id=runner_id,
            status=runner.status,
            accepted=False,
            message="Runner already in terminal state",
        )
    runner.stop()
    return StopRunnerResponse(
        runner_id=runner_id,
        status=runner.status,
        accepted=True,
        message="Stop request accepted",
    )


@router.get("/{runner_id}/events")
async def stream_runner_events(runner_id: int, request: Request):
    _require_runner(runner_id)
    poll_interval = max(0.01, float(config.RUNNER.STATUS_POLL_INTERVAL_SEC))

    async def _event_stream():
        while True:
            if await request.is_disconnected():
                return
            runner = runner_registry.get(runner_id)
            if runner is None:
                yield format_sse_frame("error", {"runner_id": runner_id, "error": "Runner evicted"})
                return
            terminal = runner.is_terminal
            status = describe_runner(runner_id, runner)
            yield format_sse_frame("progress", status.model_dump(mode="json"))
            if terminal:
                yield format_sse_frame(*_terminal_event(runner_id, runner))
                return
            await asyncio.sleep(poll_interval)

    return StreamingResponse(
        _event_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


def format_sse_frame(event: str, payload: Dict[str, Any]) -> str:
    encoded = json.dumps(payload, ensure_ascii=False)
    return f"event: {event}\ndata: {encoded}\n\n"


def _terminal_event(runner_id: int, runner: Runner) -> tuple[str, Dict[str, Any]]:
    failures = runner.failures
    if not failures:
        return "success", {"runner_id": runner_id, "status": runner.status.value}
    cancelled = sum(1 for failure in failures if failure.cancelled)
    return "error", {
        "runner_id": runner_id,
        "status": runner.status.value,
        "error": f"{len(failures)} entries failed ({cancelled} cancelled)",
    }


def _require_runner(runner_id: int) -> Runner:
    runner = runner_registry.get(runner_id)
    if runner is None:
        raise HTTPException(status_code=404, detail=RunnerNotFoundError(runner_id).to_payload())
    return runner
