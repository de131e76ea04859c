"""WebSocket fan-out of table state to everyone watching the table."""

from __future__ import annotations

import json
import logging
import time

from fastapi import WebSocket

from holdem.models import PublicState

logger = logging.getLogger(__name__)


class ClientConnection:
    """Wraps a single WebSocket connection with metadata."""

    __slots__ = ("ws", "connected_at")

    def __init__(self, ws: WebSocket) -> None:
        self.ws = ws
        self.connected_at = time.time()

    async def send(self, text: str) -> bool:
        """Send text, returning False on failure."""
        try:
            await self.ws.send_text(text)
            return True
        except Exception:
            return False


class ConnectionManager:
    """Registry of open observer connections.

    Each connection is written independently; one that fails a write is
    dropped on the spot rather than failing the broadcast.
    """

    def __init__(self) -> None:
        self._clients: list[ClientConnection] = []

    async def connect(self, ws: WebSocket) -> ClientConnection:
        await ws.accept()
        conn = ClientConnection(ws)
        self._clients.append(conn)
        logger.info("WS connect: observers=%d", len(self._clients))
        return conn

    def disconnect(self, conn: ClientConnection) -> None:
        try:
            self._clients.remove(conn)
        except ValueError:
            return
        logger.info("WS disconnect: observers=%d", len(self._clients))

    # ------------------------------------------------------------------
    # Messaging
    # ------------------------------------------------------------------

    async def broadcast(self, message: str) -> None:
        """Send ``message`` to every observer, pruning dead connections."""
        dead: list[ClientConnection] = []
        for conn in list(self._clients):
            if not await conn.send(message):
                dead.append(conn)
        for conn in dead:
            logger.debug("Pruning dead observer connected at %.0f", conn.connected_at)
            self.disconnect(conn)

    async def broadcast_state(self, state: PublicState) -> None:
        await self.broadcast(state_message(state))

    async def send_ping(self) -> None:
        await self.broadcast(json.dumps({"type": "ping", "ts": time.time()}))

    @property
    def observer_count(self) -> int:
        return len(self._clients)


def state_message(state: PublicState) -> str:
    """Envelope a public state snapshot for the wire."""
    return json.dumps(
        {"type": "game_state", "data": state.model_dump(mode="json", by_alias=True)}
    )


manager = ConnectionManager()
