"""
Data Models for Clevert.

This module defines the core Pydantic models used throughout the application
for validation, serialization, and type hinting. It covers:
- Worklist entries (Entry, EntryPaths)
- Entry generation requests (EntriesCommonFiles, EntriesPlain, EntriesNumberSequence)
- Runner lifecycle and progress (RunnerStatus, RunnerProgress, RunnerTiming)
- Extension manifest definitions (ExtensionManifest)
- API Request/Response schemas (RunActionRequest, RunnerStatusResponse)
"""

from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RunnerStatus(str, Enum):
    """
    Enum representing the lifecycle state of a batch runner.
    """
    PENDING = "pending"       # Constructed, workers not spawned yet
    RUNNING = "running"       # Workers are consuming the worklist
    COMPLETED = "completed"   # Every worker exited without a stop request
    STOPPED = "stopped"       # Every worker exited after a stop request


TERMINAL_RUNNER_STATUSES = {RunnerStatus.COMPLETED, RunnerStatus.STOPPED}


class EntryPaths(BaseModel):
    """One path group of an entry."""
    model_config = ConfigDict(frozen=True)

    main: List[str]


class Entry(BaseModel):
    """
    One unit of work: an input path group and a positionally matched
    output path group.
    """
    model_config = ConfigDict(frozen=True)

    input: EntryPaths
    output: EntryPaths

    @model_validator(mode="after")
    def _check_groups_match(self) -> "Entry":
        if len(self.input.main) != len(self.output.main):
            raise ValueError("input.main and output.main must have the same length")
        return self

    @classmethod
    def single(cls, input_path: str, output_path: str) -> "Entry":
        return cls(input=EntryPaths(main=[input_path]), output=EntryPaths(main=[output_path]))


class EntriesCommonFiles(BaseModel):
    """Every file under `input_dir`, mirrored into `output_dir`."""
    kind: Literal["common-files"] = "common-files"
    input_dir: str
    output_dir: str
    output_extension: Optional[str] = None
    """Replacement extension without the dot; None keeps file names."""


class EntriesPlain(BaseModel):
    """Explicit entries, passed through as given."""
    kind: Literal["plain"] = "plain"
    entries: List[Entry] = Field(default_factory=list)


class EntriesNumberSequence(BaseModel):
    """Declared for completeness; generation rejects it."""
    kind: Literal["number-sequence"] = "number-sequence"
    begin: int
    end: int


EntriesRequest = Union[EntriesCommonFiles, EntriesPlain, EntriesNumberSequence]


class RunnerProgress(BaseModel):
    finished: int
    running: float
    """Sum of live controllers' progress; may exceed the live count."""
    amount: int


class RunnerTiming(BaseModel):
    """Unix seconds."""
    begin: Optional[float] = None
    expected_end: Optional[float] = None


class EntryError(BaseModel):
    input: List[str]
    cancelled: bool = False
    message: str


class ActionManifest(BaseModel):
    """
    Declares one action of an extension.
    """
    id: str
    name: Optional[str] = None
    description: Optional[str] = None

    kind: str = "common-files"
    """Entry generation mode the action expects."""

    executor: str
    """Executor kind that drives the action (e.g. 'ffmpeg', 'command')."""

    program: str
    """Binary path relative to the extension directory, or a command on PATH."""


class ProfileManifest(BaseModel):
    """A preset profile; unknown fields are the action's own settings."""
    model_config = ConfigDict(extra="allow")

    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    action_id: str
    extension_id: Optional[str] = None
    extension_version: Optional[str] = None


class ExtensionManifest(BaseModel):
    """
    Represents an installed extension.
    Loaded from `<EXTENSIONS_DIR>/<id>_<version>/extension.json`.
    """
    id: str
    version: str
    name: Optional[str] = None
    description: Optional[str] = None
    actions: List[ActionManifest] = Field(default_factory=list)
    profiles: List[ProfileManifest] = Field(default_factory=list)

    path: Optional[Path] = None
    """Absolute filesystem path to the extension directory."""

    def find_action(self, action_id: str) -> Optional[ActionManifest]:
        for action in self.actions:
            if action.id == action_id:
                return action
        return None


class ActionSummary(BaseModel):
    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    kind: str


class ExtensionSummary(BaseModel):
    id: str
    version: str
    name: Optional[str] = None
    description: Optional[str] = None
    actions: List[ActionSummary]
    profiles: List[Dict[str, Any]]


class RunActionRequest(BaseModel):
    """
    Request body for starting a batch.
    """
    title: str = ""
    extension_id: str
    extension_version: Optional[str] = None
    action_id: str
    profile: Dict[str, Any] = Field(default_factory=dict)
    entries: EntriesRequest = Field(discriminator="kind")


class RunActionResponse(BaseModel):
    runner_id: int


class RunnerStatusResponse(BaseModel):
    runner_id: int
    title: str
    status: RunnerStatus
    progress: RunnerProgress
    timing: RunnerTiming
    failed: int = 0
    errors: List[EntryError] = Field(default_factory=list)


class StopRunnerResponse(BaseModel):
    runner_id: int
    status: RunnerStatus
    accepted: bool
    message: str
