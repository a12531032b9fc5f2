"""Self-healing WebSocket-style connections."""

__version__ = "0.1.0"

from .backoff import BackoffScheduler
from .buffer import MessageBuffer, byte_length
from .connection import LifecycleState, ReadyState, RobustSocket
from .errors import (
    RobustSocketClosedError,
    RobustSocketConfigError,
    RobustSocketConnectionError,
    RobustSocketError,
    RobustSocketHandshakeError,
    RobustSocketTimeout,
)
from .events import CloseEvent, ErrorEvent, Event, EventTarget, EventType, MessageEvent
from .options import RobustSocketOptions, load_options
from .policy import always_reconnect
from .transport import AiohttpSocket, SocketHandle, WebsocketsSocket

__all__ = [
    "AiohttpSocket",
    "BackoffScheduler",
    "CloseEvent",
    "ErrorEvent",
    "Event",
    "EventTarget",
    "EventType",
    "LifecycleState",
    "MessageBuffer",
    "MessageEvent",
    "ReadyState",
    "RobustSocket",
    "RobustSocketClosedError",
    "RobustSocketConfigError",
    "RobustSocketConnectionError",
    "RobustSocketError",
    "RobustSocketHandshakeError",
    "RobustSocketOptions",
    "RobustSocketTimeout",
    "SocketHandle",
    "WebsocketsSocket",
    "__version__",
    "always_reconnect",
    "byte_length",
    "load_options",
]
