"""Latest known snapshot of the agent, shared read-only with observers."""

from __future__ import annotations

from loguru import logger

from foldbar.bus import EventBus
from foldbar.events import StateCleared, StateUpdated
from foldbar.models import ClientState


class StateStore:
    """Holds the current ClientState and the connection-status advisory flag.

    Only FoldingClient writes here. Snapshots are replaced whole, never
    merged, and every write is announced on the bus.
    """

    def __init__(self, bus: EventBus) -> None:
        self._bus = bus
        self._state: ClientState | None = None
        self._show_connection_status = False
        self._log = logger.bind(component="store")

    @property
    def state(self) -> ClientState | None:
        return self._state

    @property
    def show_connection_status(self) -> bool:
        return self._show_connection_status

    def update(self, state: ClientState) -> None:
        self._state = state
        self._log.opt(lazy=True).trace(
            "Snapshot: {status}, {units} unit(s), {groups} group(s)",
            status=lambda: state.status_text,
            units=lambda: len(state.units),
            groups=lambda: len(state.groups),
        )
        self._bus.emit(StateUpdated(state))

    def clear(self) -> None:
        if self._state is None:
            return
        self._state = None
        self._bus.emit(StateCleared())

    def set_show_connection_status(self, show: bool) -> None:
        self._show_connection_status = show
