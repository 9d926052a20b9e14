from __future__ import annotations

from typing import Any, List, Mapping

from ...models import Entry
from ..execution.managed_process import ManagedProcess
from .common import ensure_output_dirs, profile_args


class CommandController:
    """Drives a program that does not report progress."""

    def __init__(self, argv: List[str]) -> None:
        self._process = ManagedProcess(argv, prefix="command")

    def progress(self) -> float:
        return 0.0

    def stop(self) -> None:
        self._process.stop()

    async def wait(self) -> None:
        await self._process.wait()


class CommandAction:
    """
    Runs `<program> <profile args>` per entry, where the profile's `args`
    template references the entry through `{input}` and `{output}`.
    """

    executor_kind = "command"

    def __init__(self, program: str) -> None:
        self.program = program

    def build_argv(self, profile: Mapping[str, Any], entry: Entry) -> List[str]:
        return [self.program, *profile_args(profile, entry)]

    def execute(self, profile: Mapping[str, Any], entry: Entry) -> CommandController:
        ensure_output_dirs(entry)
        return CommandController(self.build_argv(profile, entry))
