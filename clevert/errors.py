from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ClevertError(Exception):
    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class EntryGenerationError(ClevertError):
    """The worklist could not be materialized; no runner is created."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(code="ENTRY_GENERATION_FAILED", message=message, details=details or {})


class ExtensionNotFoundError(ClevertError):
    def __init__(self, extension_id: str, version: str | None = None) -> None:
        label = extension_id if version is None else f"{extension_id}_{version}"
        super().__init__(
            code="EXTENSION_NOT_FOUND",
            message=f"Extension '{label}' not found",
            details={"extension_id": extension_id, "extension_version": version},
        )


class ActionNotFoundError(ClevertError):
    def __init__(self, extension_id: str, action_id: str, reason: str = "") -> None:
        message = f"Action '{action_id}' not found in extension '{extension_id}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            code="ACTION_NOT_FOUND",
            message=message,
            details={"extension_id": extension_id, "action_id": action_id},
        )


class RunnerNotFoundError(ClevertError):
    def __init__(self, runner_id: int) -> None:
        super().__init__(
            code="RUNNER_NOT_FOUND",
            message=f"Runner {runner_id} not found",
            details={"runner_id": runner_id},
        )


class RunnerFailedError(ClevertError):
    """At least one entry of a batch did not complete successfully."""

    def __init__(self, failures: list[Any]) -> None:
        cancelled = sum(1 for item in failures if getattr(item, "cancelled", False))
        super().__init__(
            code="RUNNER_ENTRIES_FAILED",
            message=f"{len(failures)} entries failed ({cancelled} cancelled)",
            details={"failed": len(failures), "cancelled": cancelled},
        )
        self.failures = list(failures)
