"""Which connections are looking at which room right now.

This is attention, not membership: a room participant who is offline or
viewing another room is not in here.
"""
from __future__ import annotations

import asyncio
import logging
from uuid import UUID

from chat_hub.infrastructure.ws.connection import Closed, Connection, Subscribed

logger = logging.getLogger(__name__)


class RoomSubscriptionTable:
    def __init__(self) -> None:
        self._members: dict[UUID, set[Connection]] = {}
        self._lock = asyncio.Lock()

    def _leave(self, connection: Connection) -> UUID | None:
        # caller holds the lock
        room_id = connection.room_id
        if room_id is None:
            return None
        members = self._members.get(room_id)
        if members is not None:
            members.discard(connection)
            if not members:
                del self._members[room_id]
        return room_id

    async def subscribe(self, connection: Connection, room_id: UUID) -> bool:
        """Move the connection into ``room_id``, leaving its previous room.

        Returns False, changing nothing, if the connection was already torn down.
        """
        async with self._lock:
            if connection.is_closed:
                return False
            previous = self._leave(connection)
            self._members.setdefault(room_id, set()).add(connection)
            connection.state = Subscribed(room_id)
        logger.debug("%s moved %s -> %s", connection.connection_id, previous, room_id)
        return True

    async def release(self, connection: Connection) -> UUID | None:
        """Leave the current room and mark the connection closed. Idempotent."""
        async with self._lock:
            room_id = self._leave(connection)
            connection.state = Closed()
        return room_id

    async def members_of(self, room_id: UUID) -> frozenset[Connection]:
        async with self._lock:
            return frozenset(self._members.get(room_id, ()))

    async def room_ids(self) -> frozenset[UUID]:
        async with self._lock:
            return frozenset(self._members)
