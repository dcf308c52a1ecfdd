from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

EVENT_TYPE = "chat.message_created"


@dataclass(frozen=True, slots=True)
class MessageCreated:
    message_id: UUID
    room_id: UUID
    sender_id: str
    recipient_ids: list[str]
    content: str | None
    file_url: str | None
    created_at: datetime
