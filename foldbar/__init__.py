"""foldbar - observe and control a local Folding@home agent.

Example:

    from foldbar import FoldingClient, StateUpdated

    async with FoldingClient.create() as client:
        client.connect()
        state = await client.wait_for_state(timeout=5)
        if state is not None:
            print(state.status_text, state.total_ppd)
        client.pause(group="gpu")
"""

# Domain model
from foldbar.models import ClientState, ComputeGroup, UnitStatus, WorkUnit

# Parsing
from foldbar.parser import parse_client_state, parse_message

# Configuration
from foldbar.config import ClientConfig, load_config, resolve_config
from foldbar.observability import LogConfig, setup_logging, teardown_logging

# Connection, commands and state
from foldbar.bus import EventBus
from foldbar.commands import CommandDispatcher, FoldingAction, state_command
from foldbar.connection import ConnectionManager, ConnectionPhase
from foldbar.store import StateStore
from foldbar.transport import AiohttpTransport, Transport

# Facade
from foldbar.client import FoldingClient

# Events (ADT)
from foldbar.events import (
    CommandFailed,
    CommandSent,
    Connected,
    ConnectionErrored,
    Connecting,
    Disconnected,
    FoldbarEvent,
    MessageReceived,
    Refreshing,
    StateCleared,
    StateUpdated,
    StatusChanged,
    TransportFailed,
)

# Errors
from foldbar.exceptions import (
    ConfigurationError,
    FoldbarError,
    InvalidEndpointError,
    NotConnectedError,
    SendError,
    TransportError,
)

__version__ = "0.1.0"

__all__ = [
    "AiohttpTransport",
    "ClientConfig",
    "ClientState",
    "CommandDispatcher",
    "CommandFailed",
    "CommandSent",
    "ComputeGroup",
    "ConfigurationError",
    "Connected",
    "ConnectionErrored",
    "ConnectionManager",
    "ConnectionPhase",
    "Connecting",
    "Disconnected",
    "EventBus",
    "FoldbarError",
    "FoldbarEvent",
    "FoldingAction",
    "FoldingClient",
    "InvalidEndpointError",
    "LogConfig",
    "MessageReceived",
    "NotConnectedError",
    "Refreshing",
    "SendError",
    "StateCleared",
    "StateStore",
    "StateUpdated",
    "StatusChanged",
    "Transport",
    "TransportError",
    "TransportFailed",
    "UnitStatus",
    "WorkUnit",
    "load_config",
    "parse_client_state",
    "parse_message",
    "resolve_config",
    "setup_logging",
    "state_command",
    "teardown_logging",
]
