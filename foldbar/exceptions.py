"""Custom exception hierarchy for foldbar.

All foldbar-specific exceptions inherit from FoldbarError. Connection and
command failures are caught at the ConnectionManager boundary and recorded
as status, so callers of the facade never see them raised.
"""

from __future__ import annotations


class FoldbarError(Exception):
    """Base exception for all foldbar errors."""


class ConfigurationError(FoldbarError):
    """Raised for invalid configuration or unknown settings."""


class InvalidEndpointError(ConfigurationError):
    """Raised when host, port or path do not form a usable WebSocket URL."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__("Invalid WebSocket URL" + (f": {detail}" if detail else ""))


class TransportError(FoldbarError):
    """Raised when the socket fails to open, read or write."""


class NotConnectedError(TransportError):
    """Raised when a command is sent with no active transport."""

    def __init__(self) -> None:
        super().__init__("Not connected")


class SendError(TransportError):
    """Raised when writing a frame to the transport fails."""
