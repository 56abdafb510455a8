"""Control commands for the agent.

The agent understands one command shape for run-state changes:

    {"cmd": "state", "state": "pause" | "fold" | "finish", "group": "<name>"}

``group`` is optional. Leaving it out targets every group; the empty string
targets the default group.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from loguru import logger

from foldbar.connection import ConnectionManager


class FoldingAction(StrEnum):
    PAUSE = "pause"
    FOLD = "fold"
    FINISH = "finish"


def state_command(action: FoldingAction, group: str | None = None) -> dict[str, Any]:
    command: dict[str, Any] = {"cmd": "state", "state": action.value}
    if group is not None:
        command["group"] = group
    return command


class CommandDispatcher:
    """Stateless translation of control intents into wire commands.

    Failures land on ``ConnectionManager.last_error``; nothing is returned
    or raised to the caller.
    """

    def __init__(self, connection: ConnectionManager) -> None:
        self._connection = connection
        self._log = logger.bind(component="commands")

    def pause(self, group: str | None = None) -> None:
        self.dispatch(FoldingAction.PAUSE, group)

    def fold(self, group: str | None = None) -> None:
        self.dispatch(FoldingAction.FOLD, group)

    def finish(self, group: str | None = None) -> None:
        self.dispatch(FoldingAction.FINISH, group)

    def dispatch(self, action: FoldingAction, group: str | None = None) -> None:
        log = self._log if group is None else self._log.bind(group=repr(group))
        log.info(
            "Sending {action} to {target}",
            action=action.value,
            target="all groups" if group is None else f"group {group!r}",
        )
        self._connection.send_command(state_command(action, group))
