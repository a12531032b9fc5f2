"""Socket handles supervised by a robust socket.

Components:
- base: handle contract and the shared asyncio implementation
- ws: default handle on the websockets library
- aiohttp_ws: handle on an aiohttp client session
"""

from .aiohttp_ws import AiohttpSocket
from .base import SocketHandle, TaskSocket, normalize_protocols
from .ws import WebsocketsSocket

__all__ = [
    "AiohttpSocket",
    "SocketHandle",
    "TaskSocket",
    "WebsocketsSocket",
    "normalize_protocols",
]
