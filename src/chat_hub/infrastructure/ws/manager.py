"""In-process WebSocket connection manager."""
from __future__ import annotations

import logging
from typing import Iterable
from uuid import UUID

from chat_hub.infrastructure.ws.connection import Connection
from chat_hub.infrastructure.ws.protocol import WsOutbound
from chat_hub.infrastructure.ws.registry import ConnectionRegistry
from chat_hub.infrastructure.ws.subscriptions import RoomSubscriptionTable

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Owns the connection registry and the room subscription table.

    Callers never touch either structure directly.
    """

    def __init__(self) -> None:
        self._registry = ConnectionRegistry()
        self._subscriptions = RoomSubscriptionTable()

    async def connect(self, connection: Connection) -> None:
        await self._registry.register(connection)
        logger.info("WS connected: user=%s conn=%s", connection.owner_id, connection.connection_id)

    async def disconnect(self, connection: Connection) -> None:
        """Tear down registry and room state. Safe to call twice or concurrently."""
        room_id = await self._subscriptions.release(connection)
        if await self._registry.unregister(connection):
            logger.info(
                "WS disconnected: user=%s conn=%s room=%s",
                connection.owner_id, connection.connection_id, room_id,
            )

    async def subscribe(self, connection: Connection, room_id: UUID) -> bool:
        return await self._subscriptions.subscribe(connection, room_id)

    async def members_of(self, room_id: UUID) -> frozenset[Connection]:
        return await self._subscriptions.members_of(room_id)

    async def connections_of(self, user_id: str) -> frozenset[Connection]:
        return await self._registry.connections_of(user_id)

    async def active_user_ids(self) -> frozenset[str]:
        return await self._registry.list_active_owner_ids()

    async def connection_count(self) -> int:
        return await self._registry.count()

    async def room_count(self) -> int:
        """Rooms with at least one connection viewing them."""
        return len(await self._subscriptions.room_ids())

    async def broadcast(
        self,
        connections: Iterable[Connection],
        event: WsOutbound,
        *,
        exclude: Connection | None = None,
    ) -> int:
        """Send ``event`` to each connection. Dead sockets are disconnected.

        Returns the number of successful deliveries.
        """
        delivered = 0
        dead: list[Connection] = []
        for conn in connections:
            if conn is exclude:
                continue
            if await conn.send(event):
                delivered += 1
            elif not conn.is_closed:
                dead.append(conn)
        for conn in dead:
            await self.disconnect(conn)
        return delivered

    async def send_to_room(
        self,
        room_id: UUID,
        event: WsOutbound,
        *,
        exclude: Connection | None = None,
    ) -> int:
        return await self.broadcast(await self.members_of(room_id), event, exclude=exclude)

    async def send_to_user(
        self,
        user_id: str,
        event: WsOutbound,
        *,
        exclude: Connection | None = None,
    ) -> int:
        return await self.broadcast(await self.connections_of(user_id), event, exclude=exclude)

    async def probe(self, window: float) -> list[Connection]:
        """Evict connections silent for longer than ``window`` seconds and close them."""
        evicted = await self._registry.probe(window)
        for conn in evicted:
            await self._subscriptions.release(conn)
            await conn.close(code=1001, reason="Liveness timeout")
        return evicted

    async def close_all(self) -> None:
        for conn in await self._registry.all():
            await self.disconnect(conn)
            await conn.close(code=1001, reason="Server shutting down")
