from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from chat_hub.domain.value_objects.enums import RoomKind


def pair_key(user_a: str, user_b: str) -> str:
    """Order-independent key for the SINGLE room between two users."""
    first, second = sorted((user_a, user_b))
    return f"{first}:{second}"


@dataclass(frozen=True, slots=True)
class Room:
    id: UUID
    kind: str
    participant_ids: frozenset[str]
    name: str | None
    photo_url: str | None
    created_at: datetime
    updated_at: datetime

    @property
    def is_single(self) -> bool:
        return self.kind == RoomKind.SINGLE

    def has_participant(self, user_id: str) -> bool:
        return user_id in self.participant_ids

    def others(self, user_id: str) -> frozenset[str]:
        return self.participant_ids - {user_id}
