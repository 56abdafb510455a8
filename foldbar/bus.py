"""Minimal synchronous event bus for foldbar events."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from loguru import logger

from foldbar.events import FoldbarEvent

Handler = Callable[[Any], Any]


class EventBus:
    """In-loop publish/subscribe channel.

    Handlers run synchronously, in registration order, in the order events
    are emitted. A handler that raises is logged and skipped so one bad
    observer cannot stall the receive loop.
    """

    def __init__(self) -> None:
        self._handlers: list[tuple[tuple[type, ...], Handler]] = []
        self._log = logger.bind(component="bus")

    def on[F: Handler](self, *event_types: type) -> Callable[[F], F]:
        """Register handler. Empty event_types = wildcard."""

        def decorator(fn: F) -> F:
            self._handlers.append((event_types, fn))
            return fn

        return decorator

    def subscribe(self, handler: Handler, *event_types: type) -> Callable[[], None]:
        """Register handler and return a function that unregisters it."""
        entry = (event_types, handler)
        self._handlers.append(entry)

        def unsubscribe() -> None:
            if entry in self._handlers:
                self._handlers.remove(entry)

        return unsubscribe

    def emit(self, event: FoldbarEvent) -> None:
        for types, handler in list(self._handlers):
            if not types or isinstance(event, types):
                try:
                    handler(event)
                except Exception:
                    self._log.exception(
                        "Handler {handler} failed on {event}",
                        handler=getattr(handler, "__qualname__", repr(handler)),
                        event=type(event).__name__,
                    )

    def clear(self) -> None:
        """Remove all handlers."""
        self._handlers.clear()
