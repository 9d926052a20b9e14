import itertools
import logging
import threading
import time
from typing import Dict, List, Optional, Tuple

from apscheduler.schedulers.asyncio import AsyncIOScheduler  # type: ignore[import-untyped]

from ..config import config
from .runner import Runner


class RunnerRegistry:
    """
    Process-wide table of runners keyed by an integer handle.

    Responsibilities:
    - Hand out fresh, never reused handles.
    - Keep runners pollable after they finish.
    - Periodically evict runners that have been terminal for longer than
      the configured retention.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handles = itertools.count(1)
        self._runners: Dict[int, Runner] = {}
        self.scheduler: Optional[AsyncIOScheduler] = None

    def register(self, runner: Runner) -> int:
        with self._lock:
            handle = next(self._handles)
            self._runners[handle] = runner
        logger.info("Registered runner %s ('%s', amount=%s)", handle, runner.title, runner.amount)
        return handle

    def get(self, handle: int) -> Optional[Runner]:
        with self._lock:
            return self._runners.get(handle)

    def items(self) -> List[Tuple[int, Runner]]:
        with self._lock:
            return sorted(self._runners.items())

    def __len__(self) -> int:
        with self._lock:
            return len(self._runners)

    def evict_terminal(self, retention_seconds: float, now: Optional[float] = None) -> int:
        """Drop runners whose terminal state is older than `retention_seconds`."""
        current = time.time() if now is None else now
        with self._lock:
            expired = [
                handle
                for handle, runner in self._runners.items()
                if runner.is_terminal
                and runner.ended_at is not None
                and current - runner.ended_at >= retention_seconds
            ]
            for handle in expired:
                del self._runners[handle]
        if expired:
            logger.info("Evicted %s terminal runners: %s", len(expired), expired)
        return len(expired)

    async def cleanup_expired_runners(self) -> None:
        retention_minutes = int(config.RUNNER.RETENTION_MINUTES)
        if retention_minutes <= 0:
            return
        self.evict_terminal(retention_minutes * 60)

    def start(self) -> None:
        interval_minutes = int(config.RUNNER.CLEANUP_INTERVAL_MINUTES)
        if interval_minutes <= 0 or int(config.RUNNER.RETENTION_MINUTES) <= 0:
            logger.info("Runner eviction scheduler disabled")
            return
        if self.scheduler is not None:
            return
        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(self.cleanup_expired_runners, "interval", minutes=interval_minutes)
        self.scheduler.start()

    def shutdown(self) -> None:
        if self.scheduler is None:
            return
        self.scheduler.shutdown(wait=False)
        self.scheduler = None


runner_registry = RunnerRegistry()

logger = logging.getLogger(__name__)
