from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from chat_hub.domain.entities.room import Room


class CreateRoomRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    receiver_id: str = Field(min_length=1)


class RoomResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: UUID
    kind: str
    participant_ids: list[str]
    name: str | None
    photo: str | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, room: Room) -> RoomResponse:
        return cls(
            id=room.id,
            kind=room.kind,
            participant_ids=sorted(room.participant_ids),
            name=room.name,
            photo=room.photo_url,
            created_at=room.created_at,
            updated_at=room.updated_at,
        )
