"""
WebSocket Manager - Handles real-time connections and broadcasts.

This module manages WebSocket connections and forwards committed graph
events to all connected designer clients, so the rendering side can patch
its view instead of refetching the whole flow.
"""
from fastapi import WebSocket
from typing import Set
import json
import asyncio
import logging

logger = logging.getLogger(__name__)


class WebSocketManager:
    """
    Manages WebSocket connections and broadcasts.

    All connected clients receive one graph_event message per committed
    change, in commit order.
    """

    def __init__(self):
        self._connections: Set[WebSocket] = set()
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket):
        """Accept and register a new WebSocket connection."""
        await websocket.accept()
        async with self._lock:
            self._connections.add(websocket)
        logger.info("WebSocket connected. Total connections: %d", len(self._connections))

    async def disconnect(self, websocket: WebSocket):
        """Remove a WebSocket connection."""
        async with self._lock:
            self._connections.discard(websocket)
        logger.info("WebSocket disconnected. Total connections: %d", len(self._connections))

    async def broadcast(self, message: dict):
        """
        Broadcast a message to all connected clients.

        Clients whose send fails are dropped.
        """
        if not self._connections:
            return

        # Serialize once for all clients
        message_text = json.dumps(message)

        failed: Set[WebSocket] = set()

        async with self._lock:
            for websocket in self._connections:
                try:
                    await websocket.send_text(message_text)
                except Exception:
                    logger.warning("Dropping WebSocket client after failed send", exc_info=True)
                    failed.add(websocket)

            self._connections -= failed

    async def notify_graph_event(self, event: dict, notification: dict | None = None):
        """Forward one committed graph event (and its toast text, if any)."""
        message = {"type": "graph_event", "event": event}
        if notification is not None:
            message["notification"] = notification
        await self.broadcast(message)

    @property
    def connection_count(self) -> int:
        """Get the number of active connections."""
        return len(self._connections)
