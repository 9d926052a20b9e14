from __future__ import annotations

import asyncio
import codecs
import logging
from pathlib import Path
from typing import Callable, Sequence

from ...config import config
from .errors import ActionCancelledError, ActionFailedError, ActionSpawnError
from .process_tree import create_subprocess, terminate_process_tree


class ManagedProcess:
    """
    One subprocess driven by a background task on the running loop.

    The task is scheduled on construction, so the process starts without
    anyone awaiting it. stderr is decoded incrementally and handed to
    `on_stderr`; a bounded tail is kept for failure reports.
    """

    def __init__(
        self,
        argv: Sequence[str],
        *,
        on_stderr: Callable[[str], None] | None = None,
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
        prefix: str = "Action",
    ) -> None:
        if not argv:
            raise ValueError("argv must not be empty")
        self.argv = [str(part) for part in argv]
        self.program = self.argv[0]
        self._on_stderr = on_stderr
        self._cwd = cwd
        self._env = env
        self._prefix = prefix
        self._tail_limit = max(0, int(config.PROCESS.STDERR_TAIL_BYTES))
        self._stderr_tail = ""
        self._proc: asyncio.subprocess.Process | None = None
        self._stop_requested = False
        self._terminate_task: asyncio.Task[None] | None = None
        self._task: asyncio.Task[None] = asyncio.get_running_loop().create_task(self._run())

    @property
    def done(self) -> bool:
        return self._task.done()

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested

    @property
    def stderr_tail(self) -> str:
        return self._stderr_tail

    def stop(self) -> None:
        if self._stop_requested or self._task.done():
            return
        self._stop_requested = True
        proc = self._proc
        if proc is not None and proc.returncode is None:
            logger.info("[%s] stopping %s (pid=%s)", self._prefix, self.program, proc.pid)
            self._terminate_task = self._task.get_loop().create_task(
                terminate_process_tree(proc, self._prefix)
            )

    async def wait(self) -> None:
        await self._task

    async def _run(self) -> None:
        if self._stop_requested:
            raise ActionCancelledError(self.program)
        try:
            self._proc = await create_subprocess(*self.argv, cwd=self._cwd, env=self._env)
        except OSError as exc:
            raise ActionSpawnError(self.program, exc) from exc
        proc = self._proc
        logger.debug("[%s] started %s (pid=%s)", self._prefix, self.argv, proc.pid)

        try:
            if self._stop_requested:
                # stop() arrived while the process was being spawned
                await terminate_process_tree(proc, self._prefix)
            await self._pump_stderr(proc)
            returncode = await proc.wait()
            if self._terminate_task is not None:
                await asyncio.gather(self._terminate_task, return_exceptions=True)
        except asyncio.CancelledError:
            await terminate_process_tree(proc, self._prefix)
            raise

        if self._stop_requested and returncode != 0:
            raise ActionCancelledError(self.program, returncode)
        if returncode != 0:
            logger.warning("[%s] %s exited with code %s", self._prefix, self.program, returncode)
            raise ActionFailedError(self.program, returncode, self._stderr_tail)

    async def _pump_stderr(self, proc: asyncio.subprocess.Process) -> None:
        stream = proc.stderr
        if stream is None:
            return
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            chunk = await stream.read(1024)
            if not chunk:
                text = decoder.decode(b"", final=True)
                if text:
                    self._consume(text)
                return
            text = decoder.decode(chunk)
            if text:
                self._consume(text)

    def _consume(self, text: str) -> None:
        if self._tail_limit:
            self._stderr_tail = (self._stderr_tail + text)[-self._tail_limit:]
        if self._on_stderr is not None:
            self._on_stderr(text)


logger = logging.getLogger(__name__)
