from __future__ import annotations

from typing import Any, Callable, Mapping, Protocol

from ...models import Entry


class ExecutionController(Protocol):
    """
    Live handle for one entry being processed by an action.

    Work starts when the executor returns the controller. `progress()` and
    `stop()` are safe to call at any time, including after completion.
    `wait()` settles exactly once: it returns on success and raises an
    `ActionExecutionError` otherwise. After `stop()` it raises
    `ActionCancelledError` unless the work had already finished cleanly.
    """

    def progress(self) -> float:
        ...

    def stop(self) -> None:
        ...

    async def wait(self) -> None:
        ...


Profile = Mapping[str, Any]

Executor = Callable[[Profile, Entry], ExecutionController]
