"""Algebraic Data Type (ADT) for foldbar events.

The ConnectionManager and StateStore publish these on an EventBus instead of
calling back into the facade:

- Lifecycle: Connecting, Connected, Refreshing, Disconnected
- Inbound: MessageReceived
- Failures: TransportFailed (immediate), ConnectionErrored (after debounce)
- Commands: CommandSent, CommandFailed
- Observation: StatusChanged, StateUpdated, StateCleared

Use pattern matching to handle events in consumers:

    match event:
        case StatusChanged(connected=True, status=status):
            print(f"up: {status}")
        case StateUpdated(state=state):
            print(state.status_text)
        case ConnectionErrored(error=msg):
            print(f"error: {msg}")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from foldbar.models import ClientState

# =============================================================================
# Lifecycle
# =============================================================================


@dataclass(frozen=True, slots=True)
class Connecting:
    """A new transport is being opened."""

    url: str


@dataclass(frozen=True, slots=True)
class Connected:
    """First message arrived on the current transport."""

    url: str


@dataclass(frozen=True, slots=True)
class Refreshing:
    """Intentional reconnect to make the agent resend its full state."""

    pass


@dataclass(frozen=True, slots=True)
class Disconnected:
    """Connection torn down on request."""

    pass


# =============================================================================
# Inbound
# =============================================================================


@dataclass(frozen=True, slots=True)
class MessageReceived:
    """Raw text frame, in arrival order.

    Attributes:
        initial: True for the first frame after (re)connecting.
    """

    text: str
    initial: bool = False


# =============================================================================
# Failures
# =============================================================================


@dataclass(frozen=True, slots=True)
class TransportFailed:
    """Socket failed. Not yet shown to the user; the debounce timer is armed."""

    error: str


@dataclass(frozen=True, slots=True)
class ConnectionErrored:
    """Debounce expired without a reconnect; the error is now surfaced."""

    error: str


# =============================================================================
# Commands
# =============================================================================


@dataclass(frozen=True, slots=True)
class CommandSent:
    payload: dict[str, Any]


@dataclass(frozen=True, slots=True)
class CommandFailed:
    payload: dict[str, Any]
    error: str


# =============================================================================
# Observation
# =============================================================================


@dataclass(frozen=True, slots=True)
class StatusChanged:
    connected: bool
    status: str
    last_error: str | None


@dataclass(frozen=True, slots=True)
class StateUpdated:
    state: ClientState


@dataclass(frozen=True, slots=True)
class StateCleared:
    pass


type FoldbarEvent = (
    Connecting
    | Connected
    | Refreshing
    | Disconnected
    | MessageReceived
    | TransportFailed
    | ConnectionErrored
    | CommandSent
    | CommandFailed
    | StatusChanged
    | StateUpdated
    | StateCleared
)
