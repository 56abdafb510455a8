"""DI module wiring a FoldingClient.

Every Injector built from a FoldbarModule gets its own bus, connection,
store and dispatcher, so several clients can live side by side.

Usage:
    injector = Injector([FoldbarModule(ClientConfig(port=7397))])
    client = injector.get(FoldingClient)
"""

from __future__ import annotations

from injector import Binder, Module, provider, singleton

from foldbar.bus import EventBus
from foldbar.client import FoldingClient
from foldbar.commands import CommandDispatcher
from foldbar.config import ClientConfig
from foldbar.connection import ConnectionManager
from foldbar.store import StateStore
from foldbar.transport import TransportFactory


class FoldbarModule(Module):
    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        transport_factory: TransportFactory | None = None,
    ) -> None:
        self._config = config or ClientConfig()
        self._transport_factory = transport_factory

    def configure(self, binder: Binder) -> None:
        binder.bind(ClientConfig, to=self._config)

    @singleton
    @provider
    def provide_bus(self) -> EventBus:
        return EventBus()

    @singleton
    @provider
    def provide_connection(self, config: ClientConfig, bus: EventBus) -> ConnectionManager:
        return ConnectionManager(config, bus, transport_factory=self._transport_factory)

    @singleton
    @provider
    def provide_store(self, bus: EventBus) -> StateStore:
        return StateStore(bus)

    @singleton
    @provider
    def provide_dispatcher(self, connection: ConnectionManager) -> CommandDispatcher:
        return CommandDispatcher(connection)

    @singleton
    @provider
    def provide_client(
        self,
        config: ClientConfig,
        bus: EventBus,
        connection: ConnectionManager,
        dispatcher: CommandDispatcher,
        store: StateStore,
    ) -> FoldingClient:
        return FoldingClient(config, bus, connection, dispatcher, store)


__all__ = ["FoldbarModule"]
