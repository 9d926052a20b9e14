from __future__ import annotations


class ActionExecutionError(Exception):
    """Base error an execution controller's `wait()` raises."""


class ActionSpawnError(ActionExecutionError):
    def __init__(self, program: str, cause: BaseException) -> None:
        super().__init__(f"Failed to start '{program}': {cause}")
        self.program = program
        self.cause = cause


class ActionFailedError(ActionExecutionError):
    def __init__(self, program: str, exit_code: int, stderr_tail: str = "") -> None:
        super().__init__(f"'{program}' exited with code {exit_code}")
        self.program = program
        self.exit_code = exit_code
        self.stderr_tail = stderr_tail


class ActionCancelledError(ActionExecutionError):
    """The controller was stopped before its work completed."""

    def __init__(self, program: str, exit_code: int | None = None) -> None:
        super().__init__(f"'{program}' was stopped")
        self.program = program
        self.exit_code = exit_code
