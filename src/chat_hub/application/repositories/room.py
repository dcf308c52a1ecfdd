from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from chat_hub.domain.entities.message import Message
from chat_hub.domain.entities.room import Room


class RoomReader(Protocol):
    async def get_by_id(self, room_id: UUID) -> Room | None: ...

    async def find_single(self, user_a: str, user_b: str) -> Room | None:
        """Find the SINGLE room between two users, in either order."""
        ...

    async def list_for_user(self, user_id: str) -> list[RoomSummary]:
        """Every room the user participates in, with its latest message and
        the number of messages the user has not read yet."""
        ...


class RoomWriter(Protocol):
    async def create_single_if_not_exists(
        self, user_a: str, user_b: str, ts: datetime,
    ) -> Room:
        """Insert the SINGLE room for the pair, or return the one that won the race."""
        ...

    async def touch_updated_at(self, room_id: UUID, ts: datetime) -> None: ...


class RoomSummary:
    """Read-model returned by ``RoomReader.list_for_user``."""

    __slots__ = ("room", "last_message", "unread_count")

    def __init__(
        self,
        room: Room,
        last_message: Message | None,
        unread_count: int,
    ) -> None:
        self.room = room
        self.last_message = last_message
        self.unread_count = unread_count
