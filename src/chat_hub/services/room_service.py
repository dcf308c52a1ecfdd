from __future__ import annotations

import uuid
from datetime import datetime, timezone

from chat_hub.application.exceptions import NotFoundError, ValidationError
from chat_hub.application.policies.permissions import assert_room_access
from chat_hub.application.uow import UnitOfWork
from chat_hub.domain.entities.room import Room


async def get_room_for_member(
    room_id: uuid.UUID,
    user_id: str,
    uow: UnitOfWork,
) -> Room:
    room = await uow.rooms.get_by_id(room_id)
    return assert_room_access(user_id, room)


async def find_or_create_single_room(
    user_id: str,
    receiver_id: str,
    uow: UnitOfWork,
) -> Room:
    """Return the 1:1 room between the two users, creating it on first contact.

    The lookup runs before the insert, and the insert itself tolerates a
    concurrent creator, so two tabs racing here end up in the same room.
    """
    if receiver_id == user_id:
        raise ValidationError("Cannot create room with yourself")

    receiver = await uow.users.get_by_id(receiver_id)
    if receiver is None or receiver.is_deleted:
        raise NotFoundError("Receiver not found")

    existing = await uow.rooms.find_single(user_id, receiver_id)
    if existing is not None:
        return existing

    room = await uow.rooms_w.create_single_if_not_exists(
        user_id, receiver_id, datetime.now(timezone.utc),
    )
    await uow.commit()
    return room
