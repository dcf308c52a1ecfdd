from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Message:
    id: UUID
    room_id: UUID
    sender_id: str
    content: str | None
    file_url: str | None
    client_msg_id: UUID | None
    created_at: datetime
    is_read: bool = False
