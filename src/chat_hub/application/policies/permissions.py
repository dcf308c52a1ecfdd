from __future__ import annotations

from chat_hub.application.exceptions import ForbiddenError, NotFoundError
from chat_hub.domain.entities.room import Room


def assert_room_access(user_id: str, room: Room | None) -> Room:
    """Raise if the room doesn't exist or the user is not one of its participants."""
    if room is None:
        raise NotFoundError("Room not found")

    if not room.has_participant(user_id):
        raise ForbiddenError("Not a participant of this room")

    return room
