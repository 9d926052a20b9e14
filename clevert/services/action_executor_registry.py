from __future__ import annotations

from typing import Callable, Dict, Protocol

from ..runtime.actions import CommandAction, FfmpegAction
from ..runtime.execution.contracts import ExecutionController, Profile
from ..models import Entry


class Action(Protocol):
    program: str

    def execute(self, profile: Profile, entry: Entry) -> ExecutionController:
        ...


ActionFactory = Callable[[str], Action]


class ActionExecutorRegistry:
    def __init__(self) -> None:
        self._factories: Dict[str, ActionFactory] = {
            FfmpegAction.executor_kind: FfmpegAction,
            CommandAction.executor_kind: CommandAction,
        }

    def register(self, kind: str, factory: ActionFactory) -> None:
        self._factories[kind] = factory

    def get(self, kind: str) -> ActionFactory | None:
        return self._factories.get(kind)

    def kinds(self) -> list[str]:
        return sorted(self._factories)


action_executor_registry = ActionExecutorRegistry()
