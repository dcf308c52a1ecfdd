from __future__ import annotations

from chat_hub.domain.entities.room import Room
from chat_hub.infrastructure.db.models.room import RoomModel


def model_to_entity(model: RoomModel) -> Room:
    return Room(
        id=model.id,
        kind=model.kind,
        participant_ids=frozenset(p.user_id for p in model.participants),
        name=model.name,
        photo_url=model.photo_url,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )
