from __future__ import annotations

import asyncio
import logging
import os
import signal
from pathlib import Path
from typing import Any, Callable, List

from ...config import config

logger = logging.getLogger(__name__)


async def create_subprocess(
    *cmd: str,
    cwd: Path | None = None,
    env: dict[str, str] | None = None,
) -> asyncio.subprocess.Process:
    """Spawn `cmd` as the leader of a new session with stderr piped."""
    kwargs: dict[str, Any] = {
        "stdin": asyncio.subprocess.DEVNULL,
        "stdout": asyncio.subprocess.DEVNULL,
        "stderr": asyncio.subprocess.PIPE,
    }
    if cwd is not None:
        kwargs["cwd"] = str(cwd)
    if env is not None:
        kwargs["env"] = env
    if os.name != "nt":
        kwargs["start_new_session"] = True
    return await asyncio.create_subprocess_exec(*cmd, **kwargs)


async def terminate_process_tree(proc: asyncio.subprocess.Process, prefix: str) -> None:
    """
    Ask the process (and its group on POSIX) to exit, then force it.

    Each step gets `PROCESS.TERMINATE_GRACE_SEC` to take effect before the
    next one is tried.
    """
    if proc.returncode is not None:
        return
    grace = float(config.PROCESS.TERMINATE_GRACE_SEC)
    for step_name, send in _termination_steps(proc):
        try:
            send()
        except ProcessLookupError:
            return
        except OSError:
            logger.warning("[%s] %s failed for pid=%s", prefix, step_name, proc.pid, exc_info=True)
            continue
        if await _exited_within(proc, grace):
            return
        logger.warning("[%s] pid=%s survived %s", prefix, proc.pid, step_name)


def _termination_steps(proc: asyncio.subprocess.Process) -> List[tuple[str, Callable[[], None]]]:
    if os.name == "nt":
        return [("kill", proc.kill)]
    # the child leads its own session, so its pid is the group id
    return [
        ("SIGTERM", lambda: os.killpg(proc.pid, signal.SIGTERM)),
        ("SIGKILL", lambda: os.killpg(proc.pid, signal.SIGKILL)),
    ]


async def _exited_within(proc: asyncio.subprocess.Process, timeout: float) -> bool:
    try:
        await asyncio.wait_for(proc.wait(), timeout=timeout)
    except asyncio.TimeoutError:
        return False
    return True
