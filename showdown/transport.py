from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Union

import websockets
from websockets.exceptions import ConnectionClosed

from shared.log import get_logger

logger = get_logger(__name__)


# Opens a duplex text-frame connection for a ws:// URL
Connector = Callable[[str], Awaitable[Any]]


def websocket_connector(ping_interval: Optional[float] = 20.0,
                        ping_timeout: Optional[float] = 20.0) -> Connector:
    """Default connector backed by websockets.connect."""
    async def connect(url: str) -> websockets.ClientConnection:
        return await websockets.connect(url, ping_interval=ping_interval, ping_timeout=ping_timeout)
    return connect


class ConnectionLink:
    """Wrapper around one WebSocket connection owned by a Session"""

    def __init__(self, websocket: Any, url: str) -> None:
        self.websocket = websocket
        self.url = url
        self.closed = False
        # Frames must reach the socket in the order the queue released them
        self._send_lock = asyncio.Lock()

    async def send(self, frame: str) -> None:
        """Send one text frame. Errors propagate to the caller."""
        async with self._send_lock:
            await self.websocket.send(frame)

    async def frames(self) -> AsyncIterator[Union[str, bytes]]:
        """Yield inbound frames in arrival order until the connection closes."""
        try:
            async for raw in self.websocket:
                yield raw
        except ConnectionClosed as e:
            logger.info("Connection to %s closed: %s", self.url, e)
        finally:
            self.closed = True

    async def close(self, code: int = 1000, reason: str = "Client disconnect") -> None:
        """Close the WebSocket connection"""
        if self.closed:
            return
        self.closed = True
        try:
            await self.websocket.close(code=code, reason=reason)
        except Exception as e:
            logger.error(f"Error closing connection: {e}")
