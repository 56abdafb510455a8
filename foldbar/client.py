"""The one object a UI talks to.

Example:

    from foldbar import FoldingClient, StateUpdated

    async with FoldingClient.create() as client:

        @client.on(StateUpdated)
        def show(event: StateUpdated) -> None:
            print(event.state.status_text, event.state.total_ppd)

        client.connect()
        state = await client.wait_for_state(timeout=5)
        client.pause(group="gpu")
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from loguru import logger

from foldbar.bus import EventBus
from foldbar.commands import CommandDispatcher
from foldbar.config import ClientConfig
from foldbar.connection import ConnectionManager
from foldbar.events import MessageReceived, StateUpdated
from foldbar.models import ClientState
from foldbar.parser import parse_message
from foldbar.store import StateStore
from foldbar.transport import TransportFactory


class FoldingClient:
    """Facade over connection, parser, commands and state store.

    Connection and command failures are never raised from here; read
    ``connection_status`` and ``last_error`` (or subscribe to StatusChanged)
    instead.
    """

    def __init__(
        self,
        config: ClientConfig,
        bus: EventBus,
        connection: ConnectionManager,
        dispatcher: CommandDispatcher,
        store: StateStore,
    ) -> None:
        self._config = config
        self._bus = bus
        self._connection = connection
        self._dispatcher = dispatcher
        self._store = store
        self._log = logger.bind(component="client")
        self._unsubscribe = bus.subscribe(self._on_message, MessageReceived)

    @classmethod
    def create(
        cls,
        config: ClientConfig | None = None,
        *,
        transport_factory: TransportFactory | None = None,
    ) -> FoldingClient:
        """Build a fully wired client with its own bus, store and connection."""
        from injector import Injector

        from foldbar.module import FoldbarModule

        injector = Injector([FoldbarModule(config, transport_factory=transport_factory)])
        return injector.get(FoldingClient)

    # ─── Observable state ────────────────────────────────────────────

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def connected(self) -> bool:
        return self._connection.connected

    @property
    def connection_status(self) -> str:
        return self._connection.connection_status

    @property
    def last_error(self) -> str | None:
        return self._connection.last_error

    @property
    def client_state(self) -> ClientState | None:
        return self._store.state

    @property
    def show_connection_status(self) -> bool:
        return self._store.show_connection_status

    @show_connection_status.setter
    def show_connection_status(self, show: bool) -> None:
        self._store.set_show_connection_status(show)

    def on[F: Callable[..., Any]](self, *event_types: type) -> Callable[[F], F]:
        """Register an observer. Empty event_types = every event."""
        return self._bus.on(*event_types)

    def subscribe(self, handler: Callable[[Any], Any], *event_types: type) -> Callable[[], None]:
        return self._bus.subscribe(handler, *event_types)

    async def wait_for_state(self, timeout: float | None = None) -> ClientState | None:
        """Wait for the next snapshot. Returns None on timeout."""
        future: asyncio.Future[ClientState] = asyncio.get_running_loop().create_future()

        def resolve(event: StateUpdated) -> None:
            if not future.done():
                future.set_result(event.state)

        unsubscribe = self._bus.subscribe(resolve, StateUpdated)
        try:
            return await asyncio.wait_for(future, timeout)
        except TimeoutError:
            return None
        finally:
            unsubscribe()

    # ─── Connection ──────────────────────────────────────────────────

    def connect(self) -> None:
        self._connection.connect()

    def disconnect(self) -> None:
        self._connection.disconnect()
        self._store.clear()

    def refresh(self) -> None:
        self._connection.refresh()

    # ─── Commands ────────────────────────────────────────────────────

    def pause(self, group: str | None = None) -> None:
        self._dispatcher.pause(group)

    def fold(self, group: str | None = None) -> None:
        self._dispatcher.fold(group)

    def finish(self, group: str | None = None) -> None:
        self._dispatcher.finish(group)

    async def flush(self) -> None:
        """Wait until commands issued so far have been written or dropped."""
        await self._connection.flush()

    # ─── Inbound ─────────────────────────────────────────────────────

    def _on_message(self, event: MessageReceived) -> None:
        state = parse_message(event.text, mock=self._config.mock)
        if state is None:
            return
        if event.initial:
            self._log.debug("Initial snapshot from agent {version}", version=state.version)
        self._store.update(state)

    # ─── Lifecycle ───────────────────────────────────────────────────

    async def close(self) -> None:
        await self._connection.close()
        self._store.clear()
        self._unsubscribe()

    async def __aenter__(self) -> FoldingClient:
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()
