"""WebSocket subscriber registry for real-time change notifications."""

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Tracks connected WebSocket subscribers and broadcasts to them.

    The subscriber set is copied under the lock before each broadcast so
    connects and disconnects never disturb a delivery in progress.
    """

    def __init__(self, send_timeout: float = 2.0) -> None:
        self.send_timeout = send_timeout
        self._connections: set[WebSocket] = set()
        self._lock = asyncio.Lock()

    async def connect(self, websocket: "WebSocket") -> None:
        """Accept a new WebSocket connection."""
        await websocket.accept()
        async with self._lock:
            self._connections.add(websocket)
        logger.debug("Subscriber connected (%d total)", len(self._connections))

    async def disconnect(self, websocket: "WebSocket") -> None:
        """Remove a WebSocket connection."""
        async with self._lock:
            self._connections.discard(websocket)
        logger.debug("Subscriber disconnected (%d total)", len(self._connections))

    async def broadcast(self, message: dict[str, Any]) -> int:
        """
        Send a message to every connected subscriber.

        Sends run concurrently and each is bounded by ``send_timeout``.
        Subscribers whose send fails or times out are dropped silently.

        Returns:
            Number of subscribers the message reached
        """
        async with self._lock:
            connections = list(self._connections)

        if not connections:
            return 0

        results = await asyncio.gather(
            *(self._send(websocket, message) for websocket in connections),
            return_exceptions=True,
        )

        dead_connections = [ws for ws, ok in zip(connections, results, strict=True) if ok is not True]
        if dead_connections:
            async with self._lock:
                for ws in dead_connections:
                    self._connections.discard(ws)
            logger.debug("Dropped %d unreachable subscribers", len(dead_connections))

        return len(connections) - len(dead_connections)

    async def _send(self, websocket: "WebSocket", message: dict[str, Any]) -> bool:
        try:
            await asyncio.wait_for(websocket.send_json(message), timeout=self.send_timeout)
            return True
        except Exception:
            return False

    def get_connection_count(self) -> int:
        """Get the number of active connections."""
        return len(self._connections)

    async def close_all(self, reason: str = "Server shutting down") -> None:
        """Close all WebSocket connections gracefully."""
        async with self._lock:
            connections = list(self._connections)
            self._connections.clear()

        for websocket in connections:
            with contextlib.suppress(Exception):
                await websocket.close(code=1001, reason=reason)
        logger.info("Closed %d subscriber connections", len(connections))
