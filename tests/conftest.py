from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import Any

import pytest

from foldbar.bus import EventBus
from foldbar.config import ClientConfig
from foldbar.exceptions import NotConnectedError, SendError, TransportError

SAMPLE_PAYLOAD = (
    '{"info":{"version":"8.4.9","cpus":4},"config":{"team":12345},'
    '"groups":{"":{"config":{"paused":false}}},'
    '"units":[{"id":"u1","state":"RUN","wu_progress":0.5,"ppd":1000,"group":""}]}'
)

_CLOSED = object()


class FakeTransport:
    """Scripted transport: frames are queued up front or pushed later."""

    def __init__(
        self,
        frames: tuple[str, ...] = (),
        *,
        fail_open: str | None = None,
        fail_send: str | None = None,
    ) -> None:
        self.url: str | None = None
        self.sent: list[str] = []
        self.close_calls = 0
        self._fail_open = fail_open
        self._fail_send = fail_send
        self._opened = False
        self._closed = False
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        for frame in frames:
            self._queue.put_nowait(frame)

    @property
    def closed(self) -> bool:
        return self._closed or not self._opened

    def push(self, frame: str) -> None:
        self._queue.put_nowait(frame)

    def fail(self, message: str = "connection reset") -> None:
        self._queue.put_nowait(TransportError(message))

    async def open(self, url: str) -> None:
        self.url = url
        if self._fail_open:
            raise TransportError(self._fail_open)
        self._opened = True

    async def receive(self) -> str:
        item = await self._queue.get()
        if item is _CLOSED:
            raise TransportError("Connection closed")
        if isinstance(item, TransportError):
            raise item
        return item

    async def send(self, text: str) -> None:
        if not self._opened or self._closed:
            raise NotConnectedError()
        if self._fail_send:
            raise SendError(self._fail_send)
        self.sent.append(text)

    async def close(self) -> None:
        self.close_calls += 1
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)


class FakeFactory:
    """Hands out prepared transports in order, then blank ones."""

    def __init__(self, *transports: FakeTransport) -> None:
        self._prepared = list(transports)
        self.created: list[FakeTransport] = []

    def __call__(self) -> FakeTransport:
        transport = self._prepared.pop(0) if self._prepared else FakeTransport()
        self.created.append(transport)
        return transport


class Recorder:
    def __init__(self, bus: EventBus) -> None:
        self.events: list[Any] = []
        bus.subscribe(self.events.append)

    def of(self, event_type: type) -> list[Any]:
        return [e for e in self.events if isinstance(e, event_type)]


async def wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)


def snapshot(**fields: Any) -> str:
    return json.dumps({"info": {"version": "8.4.9"}, **fields})


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def recorder(bus: EventBus) -> Recorder:
    return Recorder(bus)


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(error_delay=0.05)
