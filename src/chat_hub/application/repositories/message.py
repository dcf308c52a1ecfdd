from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from chat_hub.domain.entities.message import Message


class MessageReader(Protocol):
    async def list_for_room(
        self,
        room_id: UUID,
        *,
        limit: int | None = None,
        before: datetime | None = None,
    ) -> list[Message]:
        """Room history, newest first."""
        ...


class MessageWriter(Protocol):
    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        """Insert message. Return (message, created). A repeated client_msg_id returns the stored one."""
        ...

    async def mark_read(self, room_id: UUID, reader_id: str) -> int:
        """Flag unread messages not sent by ``reader_id`` as read. Return the number updated."""
        ...
