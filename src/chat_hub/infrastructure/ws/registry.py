"""Every live connection, keyed by the user that owns it."""
from __future__ import annotations

import asyncio
import logging

from chat_hub.infrastructure.ws.connection import Connection
from chat_hub.infrastructure.ws.protocol import PingOut

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Safe for concurrent register/unregister/list from independent handlers."""

    def __init__(self) -> None:
        self._by_owner: dict[str, set[Connection]] = {}
        self._lock = asyncio.Lock()

    async def register(self, connection: Connection) -> None:
        async with self._lock:
            self._by_owner.setdefault(connection.owner_id, set()).add(connection)
            total = len(self._by_owner[connection.owner_id])
        logger.debug("Registered %s (%d for user %s)", connection.connection_id, total, connection.owner_id)

    async def unregister(self, connection: Connection) -> bool:
        """Remove the connection. Returns False if it was not registered."""
        async with self._lock:
            conns = self._by_owner.get(connection.owner_id)
            if not conns or connection not in conns:
                return False
            conns.discard(connection)
            if not conns:
                del self._by_owner[connection.owner_id]
        logger.debug("Unregistered %s", connection.connection_id)
        return True

    async def list_active_owner_ids(self) -> frozenset[str]:
        async with self._lock:
            return frozenset(self._by_owner)

    async def connections_of(self, owner_id: str) -> frozenset[Connection]:
        async with self._lock:
            return frozenset(self._by_owner.get(owner_id, ()))

    async def all(self) -> list[Connection]:
        async with self._lock:
            return [c for conns in self._by_owner.values() for c in conns]

    async def count(self) -> int:
        async with self._lock:
            return sum(len(conns) for conns in self._by_owner.values())

    async def probe(self, window: float) -> list[Connection]:
        """Ping every connection heard from within ``window`` seconds.

        Connections that stayed silent longer, or whose ping cannot be
        delivered, are unregistered and returned so the caller can release
        their subscriptions and close their sockets.
        """
        evicted: list[Connection] = []
        for conn in await self.all():
            if conn.is_stale(window) or not await conn.send(PingOut()):
                if await self.unregister(conn):
                    evicted.append(conn)
        if evicted:
            logger.info("Probe evicted %d unresponsive connection(s)", len(evicted))
        return evicted
