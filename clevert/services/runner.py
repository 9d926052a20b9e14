from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Iterable, List, Mapping, Optional, Set

from ..config import config
from ..errors import RunnerFailedError
from ..models import (
    TERMINAL_RUNNER_STATUSES,
    Entry,
    RunnerProgress,
    RunnerStatus,
    RunnerTiming,
)
from ..runtime.execution.contracts import ExecutionController, Executor
from ..runtime.execution.errors import ActionCancelledError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntryFailure:
    entry: Entry
    error: BaseException

    @property
    def cancelled(self) -> bool:
        return isinstance(self.error, ActionCancelledError)


class Runner:
    """
    Drives one worklist through a fixed pool of workers.

    Behavior:
    - `start()` spawns exactly `parallel` worker tasks; each pops the next
      entry (FIFO, under the state lock), runs it to completion and loops
      until the worklist is empty. Workers never restart.
    - A failing entry is recorded and its worker moves on.
    - `progress()` is a poll: finished entries plus the summed progress of
      live controllers.
    - `stop()` signals the live controllers only; workers between entries
      still pick up the next one.
    - `wait()` returns once every worker exited and raises
      `RunnerFailedError` if any entry failed.

    Lifecycle: pending -> running -> completed | stopped.
    """

    def __init__(
        self,
        entries: Iterable[Entry],
        executor: Executor,
        profile: Optional[Mapping[str, Any]] = None,
        *,
        parallel: Optional[int] = None,
        title: str = "",
    ) -> None:
        self.title = title
        self._executor = executor
        self._profile: Mapping[str, Any] = dict(profile or {})
        self._parallel = max(1, int(config.RUNNER.PARALLEL if parallel is None else parallel))
        self._state_lock = threading.Lock()
        self._worklist: Deque[Entry] = deque(entries)
        self._live: Set[ExecutionController] = set()
        self._finished = 0
        self._failures: List[EntryFailure] = []
        self._status = RunnerStatus.PENDING
        self._stop_requested = False
        self._workers: List[asyncio.Task[None]] = []
        self._completion: Optional[asyncio.Task[None]] = None
        self.amount = len(self._worklist)
        self.began_at: Optional[float] = None
        self.ended_at: Optional[float] = None

    @property
    def parallel(self) -> int:
        return self._parallel

    @property
    def status(self) -> RunnerStatus:
        return self._status

    @property
    def is_terminal(self) -> bool:
        return self._status in TERMINAL_RUNNER_STATUSES

    @property
    def failures(self) -> List[EntryFailure]:
        with self._state_lock:
            return list(self._failures)

    def start(self) -> None:
        if self._status is not RunnerStatus.PENDING:
            return
        loop = asyncio.get_running_loop()
        self.began_at = time.time()
        self._status = RunnerStatus.RUNNING
        self._workers = [loop.create_task(self._worker(index)) for index in range(self._parallel)]
        self._completion = loop.create_task(self._join_workers())
        logger.info(
            "Runner '%s' started: amount=%s parallel=%s",
            self.title,
            self.amount,
            self._parallel,
        )

    def progress(self) -> RunnerProgress:
        with self._state_lock:
            live = list(self._live)
            finished = self._finished
        running = 0.0
        for controller in live:
            running += float(controller.progress())
        return RunnerProgress(finished=finished, running=running, amount=self.amount)

    def timing(self) -> RunnerTiming:
        if self.began_at is None:
            return RunnerTiming()
        if self.ended_at is not None:
            return RunnerTiming(begin=self.began_at, expected_end=self.ended_at)
        progress = self.progress()
        done = progress.finished + progress.running
        if self.amount == 0 or done <= 0:
            return RunnerTiming(begin=self.began_at)
        elapsed = time.time() - self.began_at
        return RunnerTiming(
            begin=self.began_at,
            expected_end=self.began_at + elapsed * self.amount / done,
        )

    def stop(self) -> None:
        with self._state_lock:
            if self.is_terminal:
                return
            self._stop_requested = True
            live = list(self._live)
            self._live.clear()
        if live:
            logger.info("Runner '%s' stopping %s live controllers", self.title, len(live))
        for controller in live:
            controller.stop()

    async def wait(self) -> None:
        if self._completion is None:
            raise RuntimeError("Runner has not been started")
        await asyncio.shield(self._completion)
        failures = self.failures
        if failures:
            raise RunnerFailedError(failures)

    def _next_entry(self) -> Optional[Entry]:
        with self._state_lock:
            if not self._worklist:
                return None
            return self._worklist.popleft()

    async def _worker(self, index: int) -> None:
        while True:
            entry = self._next_entry()
            if entry is None:
                return
            controller: Optional[ExecutionController] = None
            try:
                controller = self._executor(self._profile, entry)
                with self._state_lock:
                    self._live.add(controller)
                await controller.wait()
            except asyncio.CancelledError:
                if controller is not None:
                    controller.stop()
                raise
            except Exception as exc:
                self._record_failure(entry, exc, index)
            finally:
                if controller is not None:
                    with self._state_lock:
                        self._live.discard(controller)
            with self._state_lock:
                self._finished += 1

    def _record_failure(self, entry: Entry, exc: Exception, worker_index: int) -> None:
        failure = EntryFailure(entry=entry, error=exc)
        with self._state_lock:
            self._failures.append(failure)
        if failure.cancelled:
            logger.info("Runner '%s' worker %s: entry %s stopped", self.title, worker_index, entry.input.main)
        else:
            logger.warning(
                "Runner '%s' worker %s: entry %s failed: %s",
                self.title,
                worker_index,
                entry.input.main,
                exc,
            )

    async def _join_workers(self) -> None:
        interrupted = False
        try:
            await asyncio.gather(*self._workers)
        except asyncio.CancelledError:
            interrupted = True
            raise
        finally:
            with self._state_lock:
                self.ended_at = time.time()
                stopped = self._stop_requested or interrupted
                self._status = RunnerStatus.STOPPED if stopped else RunnerStatus.COMPLETED
                self._live.clear()
            logger.info(
                "Runner '%s' %s: finished=%s amount=%s failed=%s",
                self.title,
                self._status.value,
                self._finished,
                self.amount,
                len(self._failures),
            )
