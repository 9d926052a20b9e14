from .contracts import ExecutionController, Executor, Profile
from .errors import (
    ActionCancelledError,
    ActionExecutionError,
    ActionFailedError,
    ActionSpawnError,
)
from .managed_process import ManagedProcess

__all__ = [
    "ExecutionController",
    "Executor",
    "Profile",
    "ActionCancelledError",
    "ActionExecutionError",
    "ActionFailedError",
    "ActionSpawnError",
    "ManagedProcess",
]
