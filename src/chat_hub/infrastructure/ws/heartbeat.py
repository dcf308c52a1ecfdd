"""Periodic liveness probing of every open socket."""
from __future__ import annotations

import asyncio
import logging

from chat_hub.infrastructure.ws.manager import ConnectionManager

logger = logging.getLogger(__name__)


class LivenessProbe:
    """Background task that pings connections and evicts the silent ones."""

    def __init__(
        self,
        manager: ConnectionManager,
        *,
        interval: float,
        window: float,
    ) -> None:
        self._manager = manager
        self._interval = interval
        self._window = window
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        self._task = asyncio.create_task(self._run(), name="ws-liveness-probe")
        logger.info("Liveness probe started (interval=%ss window=%ss)", self._interval, self._window)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("Liveness probe stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self._manager.probe(self._window)
            except Exception:
                logger.exception("Liveness probe pass failed")
