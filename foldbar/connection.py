"""Connection lifecycle for the agent's WebSocket endpoint.

ConnectionManager owns exactly one logical connection and its transport:

    IDLE -> CONNECTING -> CONNECTED -> (DISCONNECTING) -> IDLE

An error timer may be pending while CONNECTING or CONNECTED. Transport
failures are not shown right away: a single-shot timer is armed and the
error is only surfaced if no message has arrived on a new transport by the
time it fires. Arming always cancels the previous timer first.

There is exactly one outstanding read per transport. Each completed read is
dispatched and then re-armed, unless the stop flag was cleared or the
transport was replaced in the meantime, in which case the reader exits
without acting. A failed read does not restart itself; recovery comes from
the next connect() or refresh().

The agent has no "send me your state" command. refresh() drops the current
transport and reconnects, and the agent answers every new connection with a
full snapshot.

All public methods are synchronous and must be called from the event loop
that owns the manager; socket work runs in tasks spawned on that loop.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Coroutine, Mapping
from enum import Enum, auto
from typing import Any

from loguru import logger

from foldbar.bus import EventBus
from foldbar.config import ClientConfig
from foldbar.events import (
    CommandFailed,
    CommandSent,
    Connected,
    ConnectionErrored,
    Connecting,
    Disconnected,
    MessageReceived,
    Refreshing,
    StatusChanged,
    TransportFailed,
)
from foldbar.exceptions import InvalidEndpointError, NotConnectedError, TransportError
from foldbar.transport import Transport, TransportFactory, aiohttp_transport_factory

STATUS_DISCONNECTED = "Disconnected"
STATUS_CONNECTING = "Connecting..."
STATUS_CONNECTED = "Connected"
STATUS_ERROR = "Connection error"

ERROR_INVALID_URL = "Invalid WebSocket URL"
ERROR_NOT_CONNECTED = "Not connected"
ERROR_ENCODE = "Failed to send command"

_UNSET: Any = object()


class ConnectionPhase(Enum):
    IDLE = auto()
    CONNECTING = auto()
    CONNECTED = auto()
    DISCONNECTING = auto()


class ConnectionManager:
    def __init__(
        self,
        config: ClientConfig,
        bus: EventBus,
        transport_factory: TransportFactory | None = None,
    ) -> None:
        self._config = config
        self._bus = bus
        self._transport_factory = transport_factory or aiohttp_transport_factory(
            config.connect_timeout
        )
        self._log = logger.bind(component="connection")

        self._transport: Transport | None = None
        self._should_receive = False
        self._phase = ConnectionPhase.IDLE
        self._error_timer: asyncio.TimerHandle | None = None

        self._connected = False
        self._status = STATUS_DISCONNECTED
        self._last_error: str | None = None

        self._receivers: set[asyncio.Task[None]] = set()
        self._background: set[asyncio.Task[None]] = set()

    # ─── Observable state ────────────────────────────────────────────

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def connection_status(self) -> str:
        return self._status

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def phase(self) -> ConnectionPhase:
        return self._phase

    @property
    def error_pending(self) -> bool:
        return self._error_timer is not None

    @property
    def has_transport(self) -> bool:
        return self._transport is not None

    def _update(
        self,
        *,
        connected: bool = _UNSET,
        status: str = _UNSET,
        last_error: str | None = _UNSET,
    ) -> None:
        before = (self._connected, self._status, self._last_error)
        if connected is not _UNSET:
            self._connected = connected
        if status is not _UNSET:
            self._status = status
        if last_error is not _UNSET:
            self._last_error = last_error
        if (self._connected, self._status, self._last_error) != before:
            self._bus.emit(StatusChanged(self._connected, self._status, self._last_error))

    # ─── Lifecycle ───────────────────────────────────────────────────

    def connect(self) -> None:
        """Open a transport and start reading. No-op while one is active."""
        if self._transport is not None and self._phase in (
            ConnectionPhase.CONNECTING,
            ConnectionPhase.CONNECTED,
        ):
            return

        try:
            url = self._config.url
        except InvalidEndpointError as e:
            self._log.error("Refusing to connect: {error}", error=e)
            self._update(last_error=ERROR_INVALID_URL)
            return

        self._should_receive = True
        self._phase = ConnectionPhase.CONNECTING
        transport = self._transport_factory()
        self._transport = transport
        self._update(status=STATUS_CONNECTING)
        self._log.bind(url=url).debug("Connecting")
        self._bus.emit(Connecting(url))

        task = asyncio.get_running_loop().create_task(
            self._receive_loop(transport, url), name="foldbar-receive"
        )
        self._receivers.add(task)
        task.add_done_callback(self._on_receiver_done)

    def disconnect(self) -> None:
        """Stop reading, close the transport and reset status. Idempotent."""
        was_active = self._should_receive or self._transport is not None
        self._should_receive = False
        self._cancel_error_timer()

        transport, self._transport = self._transport, None
        if transport is not None:
            self._phase = ConnectionPhase.DISCONNECTING
            self._spawn(self._close_on_disconnect(transport))
        else:
            self._phase = ConnectionPhase.IDLE

        self._update(connected=False, status=STATUS_DISCONNECTED, last_error=None)
        if was_active:
            self._log.info("Disconnected")
            self._bus.emit(Disconnected())

    def refresh(self) -> None:
        """Reconnect so the agent resends a full snapshot.

        Only acts while the manager is meant to be connected, including
        after a transport failure.
        """
        if not self._should_receive:
            return

        self._log.debug("Refreshing connection")
        self._bus.emit(Refreshing())
        transport, self._transport = self._transport, None
        if transport is not None:
            self._spawn(transport.close())
        self._phase = ConnectionPhase.IDLE
        self._update(connected=False)
        self.connect()

    async def flush(self) -> None:
        """Wait for in-flight sends and transport closes."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def close(self, timeout: float = 1.0) -> None:
        """Disconnect and wait for every task the manager started."""
        self.disconnect()
        await self.flush()
        pending = [t for t in self._receivers if not t.done()]
        if not pending:
            return
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        for task in still_running:
            task.cancel()
        await asyncio.gather(*still_running, return_exceptions=True)

    # ─── Commands ────────────────────────────────────────────────────

    def send_command(self, command: Mapping[str, Any]) -> None:
        """Encode a command and write it. Dropped, not queued, if not connected."""
        payload = dict(command)
        try:
            transport = self._require_transport()
            text = json.dumps(payload)
        except NotConnectedError as e:
            self._command_failed(payload, str(e))
            return
        except (TypeError, ValueError) as e:
            self._log.error("Cannot encode command {payload}: {error}", payload=payload, error=e)
            self._command_failed(payload, ERROR_ENCODE)
            return

        self._spawn(self._send(transport, payload, text))

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise NotConnectedError()
        return self._transport

    async def _send(self, transport: Transport, payload: dict[str, Any], text: str) -> None:
        try:
            await transport.send(text)
        except NotConnectedError as e:
            self._command_failed(payload, str(e))
        except TransportError as e:
            self._command_failed(payload, f"Send failed: {e}")
        else:
            self._log.debug("Sent {text}", text=text)
            self._bus.emit(CommandSent(payload))

    def _command_failed(self, payload: dict[str, Any], error: str) -> None:
        self._log.warning("Command {payload} dropped: {error}", payload=payload, error=error)
        self._update(last_error=error)
        self._bus.emit(CommandFailed(payload, error))

    # ─── Receive loop ────────────────────────────────────────────────

    def _is_current(self, transport: Transport) -> bool:
        return self._should_receive and self._transport is transport

    async def _receive_loop(self, transport: Transport, url: str) -> None:
        try:
            await transport.open(url)
        except TransportError as e:
            self._on_failure(transport, e)
            return

        if not self._is_current(transport):
            await transport.close()
            return

        while self._is_current(transport):
            try:
                text = await transport.receive()
            except TransportError as e:
                self._on_failure(transport, e)
                return
            if not self._is_current(transport):
                return
            self._on_message(url, text)

    def _on_message(self, url: str, text: str) -> None:
        self._log.trace("Raw message: {text}", text=text)
        initial = self._phase is not ConnectionPhase.CONNECTED
        if initial:
            self._cancel_error_timer()
            self._phase = ConnectionPhase.CONNECTED
            self._update(connected=True, status=STATUS_CONNECTED, last_error=None)
            self._log.bind(url=url).info("Connected")
            self._bus.emit(Connected(url))
        self._bus.emit(MessageReceived(text=text, initial=initial))

    def _on_failure(self, transport: Transport, error: TransportError) -> None:
        if not self._is_current(transport):
            self._log.debug("Ignoring failure on retired transport: {error}", error=error)
            return

        self._log.debug("Transport failed: {error}", error=error)
        self._transport = None
        self._phase = ConnectionPhase.IDLE
        self._spawn(transport.close())
        self._bus.emit(TransportFailed(str(error)))
        self._arm_error_timer(str(error))

    def _on_receiver_done(self, task: asyncio.Task[None]) -> None:
        self._receivers.discard(task)
        if not task.cancelled() and (exc := task.exception()) is not None:
            self._log.opt(exception=exc).error("Receive loop crashed")

    # ─── Error debounce ──────────────────────────────────────────────

    def _arm_error_timer(self, error: str) -> None:
        self._cancel_error_timer()
        self._error_timer = asyncio.get_running_loop().call_later(
            self._config.error_delay, self._surface_error, error
        )

    def _cancel_error_timer(self) -> None:
        if self._error_timer is not None:
            self._error_timer.cancel()
            self._error_timer = None

    def _surface_error(self, error: str) -> None:
        self._error_timer = None
        if self._phase is ConnectionPhase.CONNECTED:
            return
        self._log.warning("Connection error: {error}", error=error)
        self._update(connected=False, status=STATUS_ERROR, last_error=error)
        self._bus.emit(ConnectionErrored(error))

    # ─── Tasks ───────────────────────────────────────────────────────

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _close_on_disconnect(self, transport: Transport) -> None:
        try:
            await transport.close()
        finally:
            if self._phase is ConnectionPhase.DISCONNECTING:
                self._phase = ConnectionPhase.IDLE
