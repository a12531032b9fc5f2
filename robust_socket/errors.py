"""Error types for robust socket connections."""

from __future__ import annotations


class RobustSocketError(Exception):
    """Base error for robust socket failures."""


class RobustSocketConfigError(RobustSocketError):
    """Invalid configuration, raised before any connection attempt."""


class RobustSocketClosedError(RobustSocketError):
    """Operation attempted on a permanently closed socket."""


class RobustSocketTimeout(RobustSocketError):
    """Timeout while communicating with the remote end."""


class RobustSocketConnectionError(RobustSocketError):
    """Network connection to the remote end failed."""


class RobustSocketHandshakeError(RobustSocketError):
    """WebSocket handshake failed."""
