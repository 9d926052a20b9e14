from __future__ import annotations

import asyncio
import logging
from typing import List

from ..models import EntryError, RunActionRequest, RunnerStatusResponse
from .entry_generator import generate_entries
from .extension_registry import extension_registry
from .runner import Runner
from .runner_registry import runner_registry

logger = logging.getLogger(__name__)

MAX_REPORTED_ERRORS = 50


async def start_action(request: RunActionRequest) -> int:
    """
    Resolve the action, build the worklist and launch a registered runner.

    Raises before any runner exists when the extension, the action or the
    worklist cannot be resolved. The input tree is walked off the event loop.
    Does not wait for the batch.
    """
    executor = extension_registry.resolve_executor(
        request.extension_id,
        request.action_id,
        request.extension_version,
    )
    entries = await asyncio.to_thread(generate_entries, request.entries)
    runner = Runner(entries, executor, request.profile, title=request.title)
    runner_id = runner_registry.register(runner)
    runner.start()
    logger.info(
        "Started runner %s: extension=%s action=%s amount=%s",
        runner_id,
        request.extension_id,
        request.action_id,
        runner.amount,
    )
    return runner_id


def describe_runner(runner_id: int, runner: Runner) -> RunnerStatusResponse:
    failures = runner.failures
    errors: List[EntryError] = [
        EntryError(
            input=list(failure.entry.input.main),
            cancelled=failure.cancelled,
            message=str(failure.error),
        )
        for failure in failures[:MAX_REPORTED_ERRORS]
    ]
    return RunnerStatusResponse(
        runner_id=runner_id,
        title=runner.title,
        status=runner.status,
        progress=runner.progress(),
        timing=runner.timing(),
        failed=len(failures),
        errors=errors,
    )
