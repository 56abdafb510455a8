from __future__ import annotations

import json
from dataclasses import replace

import pytest

from foldbar.client import FoldingClient
from foldbar.events import MessageReceived, StateCleared, StateUpdated
from foldbar.mock import mock_client_state
from tests.conftest import SAMPLE_PAYLOAD, FakeFactory, FakeTransport, snapshot, wait_until

pytestmark = [pytest.mark.unit]


def make_client(config, *transports: FakeTransport) -> tuple[FoldingClient, FakeFactory]:
    factory = FakeFactory(*transports)
    return FoldingClient.create(config, transport_factory=factory), factory


@pytest.mark.asyncio
async def test_snapshot_reaches_the_store(config):
    client, _ = make_client(config, FakeTransport((SAMPLE_PAYLOAD,)))

    async with client:
        client.connect()
        state = await client.wait_for_state(timeout=1)

        assert state is not None
        assert client.client_state == state
        assert client.connected
        assert client.connection_status == "Connected"
        assert state.status_text == "Folding"
        assert state.total_ppd == 1000
        assert state.team == 12345


@pytest.mark.asyncio
async def test_each_snapshot_replaces_the_last(config):
    transport = FakeTransport((snapshot(info={"version": "1"}),))
    client, _ = make_client(config, transport)

    async with client:
        client.connect()
        await wait_until(lambda: client.client_state is not None)

        transport.push(snapshot(info={"version": "2"}))
        await wait_until(lambda: client.client_state.version == "2")


@pytest.mark.asyncio
async def test_array_frames_keep_previous_state(config):
    transport = FakeTransport((SAMPLE_PAYLOAD,))
    client, _ = make_client(config, transport)
    seen = []
    client.subscribe(seen.append, StateUpdated)

    async with client:
        client.connect()
        await wait_until(lambda: client.client_state is not None)
        before = client.client_state

        transport.push('[["units", 0, "wu_progress"], 0.9]')
        transport.push("not json")
        transport.push("{}")
        await wait_until(lambda: client.client_state.version == "Unknown")

        assert len(seen) == 2
        assert seen[0].state == before


@pytest.mark.asyncio
async def test_mock_mode_replaces_snapshots(config):
    client, _ = make_client(replace(config, mock=True), FakeTransport((SAMPLE_PAYLOAD,)))

    async with client:
        client.connect()
        state = await client.wait_for_state(timeout=1)

        assert state == mock_client_state()
        assert state.version == "8.4.9 (Mock)"
        assert len(state.groups) == 6


def test_command_without_connection_records_error(config):
    client, factory = make_client(config)

    client.pause()

    assert client.last_error == "Not connected"
    assert client.client_state is None
    assert factory.created == []


@pytest.mark.asyncio
async def test_commands_are_written(config):
    transport = FakeTransport((SAMPLE_PAYLOAD,))
    client, _ = make_client(config, transport)

    async with client:
        client.connect()
        await client.wait_for_state(timeout=1)

        client.pause()
        client.fold(group="gpu")
        client.finish(group="")
        await client.flush()

        assert [json.loads(t) for t in transport.sent] == [
            {"cmd": "state", "state": "pause"},
            {"cmd": "state", "state": "fold", "group": "gpu"},
            {"cmd": "state", "state": "finish", "group": ""},
        ]
        assert client.last_error is None


@pytest.mark.asyncio
async def test_disconnect_clears_state(config):
    client, _ = make_client(config, FakeTransport((SAMPLE_PAYLOAD,)))
    cleared = []
    client.subscribe(cleared.append, StateCleared)

    async with client:
        client.connect()
        await client.wait_for_state(timeout=1)

        client.disconnect()

        assert client.client_state is None
        assert client.connection_status == "Disconnected"
        assert not client.connected
        assert len(cleared) == 1


@pytest.mark.asyncio
async def test_refresh_delivers_new_snapshot(config):
    client, factory = make_client(
        config,
        FakeTransport((snapshot(info={"version": "1"}),)),
        FakeTransport((snapshot(info={"version": "2"}),)),
    )

    async with client:
        client.connect()
        first = await client.wait_for_state(timeout=1)

        client.refresh()
        second = await client.wait_for_state(timeout=1)

        assert first.version == "1"
        assert second.version == "2"
        assert len(factory.created) == 2
        assert client.last_error is None


@pytest.mark.asyncio
async def test_wait_for_state_times_out(config):
    client, _ = make_client(config, FakeTransport())

    async with client:
        client.connect()
        assert await client.wait_for_state(timeout=0.05) is None


@pytest.mark.asyncio
async def test_observer_decorator(config):
    client, _ = make_client(config, FakeTransport((SAMPLE_PAYLOAD,)))
    versions = []

    @client.on(StateUpdated)
    def remember(event: StateUpdated) -> None:
        versions.append(event.state.version)

    async with client:
        client.connect()
        await wait_until(lambda: versions == ["8.4.9"])


def test_show_connection_status_flag(config):
    client, _ = make_client(config)
    assert client.show_connection_status is False
    client.show_connection_status = True
    assert client.show_connection_status is True


def test_clients_are_independent(config):
    first, _ = make_client(config)
    second, _ = make_client(config)

    first.pause()

    assert first is not second
    assert first.last_error == "Not connected"
    assert second.last_error is None


@pytest.mark.asyncio
async def test_close_detaches_from_bus(config):
    client, _ = make_client(config)
    bus = client._bus

    await client.close()
    bus.emit(MessageReceived(text=SAMPLE_PAYLOAD, initial=True))

    assert client.client_state is None
