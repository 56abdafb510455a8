"""WebSocket transport used by the ConnectionManager.

The manager only talks to the Transport protocol, so tests can script a
fake and production uses aiohttp. A transport is single use: it is opened
once, read by exactly one reader and closed once. The manager builds a fresh
one for every connect.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol, runtime_checkable

import aiohttp
from loguru import logger

from foldbar.exceptions import NotConnectedError, SendError, TransportError


@runtime_checkable
class Transport(Protocol):
    @property
    def closed(self) -> bool: ...
    async def open(self, url: str) -> None: ...
    async def receive(self) -> str: ...
    async def send(self, text: str) -> None: ...
    async def close(self) -> None: ...


type TransportFactory = Callable[[], Transport]


class AiohttpTransport:
    """Text-frame WebSocket client on top of aiohttp.

    Args:
        connect_timeout: Seconds allowed for the TCP connect and handshake.
        heartbeat: Seconds between client pings. None disables them.
    """

    def __init__(self, *, connect_timeout: float = 10.0, heartbeat: float | None = None) -> None:
        self._timeout = aiohttp.ClientTimeout(total=connect_timeout)
        self._heartbeat = heartbeat
        self._session: aiohttp.ClientSession | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._log = logger.bind(component="transport")

    @property
    def closed(self) -> bool:
        return self._ws is None or self._ws.closed

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def open(self, url: str) -> None:
        session = await self._ensure_session()
        self._log.debug("Opening {url}", url=url)
        try:
            self._ws = await session.ws_connect(url, heartbeat=self._heartbeat)
        except (aiohttp.ClientError, TimeoutError, OSError) as e:
            raise TransportError(str(e) or type(e).__name__) from e

    async def receive(self) -> str:
        ws = self._ws
        if ws is None:
            raise NotConnectedError()

        while True:
            try:
                msg = await ws.receive()
            except (aiohttp.ClientError, TimeoutError, OSError) as e:
                raise TransportError(str(e) or type(e).__name__) from e

            match msg.type:
                case aiohttp.WSMsgType.TEXT:
                    return msg.data
                case aiohttp.WSMsgType.BINARY:
                    try:
                        return msg.data.decode("utf-8")
                    except UnicodeDecodeError:
                        self._log.debug("Skipping non-UTF-8 binary frame ({n} bytes)", n=len(msg.data))
                case aiohttp.WSMsgType.ERROR:
                    raise TransportError(str(ws.exception() or "WebSocket error"))
                case aiohttp.WSMsgType.CLOSE | aiohttp.WSMsgType.CLOSING | aiohttp.WSMsgType.CLOSED:
                    raise TransportError(f"Connection closed (code {ws.close_code})")
                case _:
                    continue

    async def send(self, text: str) -> None:
        ws = self._ws
        if ws is None:
            raise NotConnectedError()
        try:
            await ws.send_str(text)
        except (aiohttp.ClientError, ConnectionError, RuntimeError, OSError) as e:
            raise SendError(str(e) or type(e).__name__) from e

    async def close(self) -> None:
        ws, self._ws = self._ws, None
        session, self._session = self._session, None
        try:
            if ws is not None and not ws.closed:
                await ws.close()
        except (aiohttp.ClientError, ConnectionError, OSError) as e:
            self._log.debug("Error while closing websocket: {error}", error=e)
        finally:
            if session is not None and not session.closed:
                await session.close()


def aiohttp_transport_factory(connect_timeout: float) -> TransportFactory:
    def factory() -> Transport:
        return AiohttpTransport(connect_timeout=connect_timeout)

    return factory

