from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class ConversationView:
    """One room as seen by one user. Derived on demand, never stored."""

    room_id: UUID
    kind: str
    name: str | None
    photo: str | None
    last_message: str | None
    last_message_at: datetime | None
    unread_count: int
    is_active: bool
    created_at: datetime
    count_increase_by: int | None = None

    @property
    def sort_key(self) -> datetime:
        return self.last_message_at or self.created_at
