"""Heartbeat — background task that pings observers so idle sockets stay open."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from holdem.ws_manager import ConnectionManager

logger = logging.getLogger(__name__)

# Seconds between keep-alive pings
HEARTBEAT_INTERVAL = float(os.getenv("HEARTBEAT_INTERVAL", "15"))


class Heartbeat:
    """Pings every observer on a fixed interval using one asyncio task."""

    def __init__(self, interval: float = HEARTBEAT_INTERVAL) -> None:
        self.interval = interval
        self._task: asyncio.Task | None = None
        self._manager: ConnectionManager | None = None

    def set_manager(self, manager: "ConnectionManager") -> None:
        """Inject the WebSocket connection manager (avoids circular import)."""
        self._manager = manager

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the background ping loop."""
        if not self.running:
            self._task = asyncio.create_task(self._loop())
            logger.info("Heartbeat started (every %.0fs)", self.interval)

    def stop(self) -> None:
        """Stop the background ping loop."""
        if self.running:
            self._task.cancel()
            logger.info("Heartbeat stopped")

    async def tick(self) -> None:
        """Send one round of pings."""
        if self._manager is None or self._manager.observer_count == 0:
            return
        await self._manager.send_ping()

    async def _loop(self) -> None:
        try:
            while True:
                await asyncio.sleep(self.interval)
                try:
                    await self.tick()
                except Exception:
                    logger.exception("Heartbeat error")
        except asyncio.CancelledError:
            pass


# Singleton
heartbeat = Heartbeat()
