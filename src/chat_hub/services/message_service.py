from __future__ import annotations

import uuid
from datetime import datetime, timezone

from chat_hub.application.exceptions import ValidationError
from chat_hub.application.uow import UnitOfWork
from chat_hub.domain.entities.message import Message


async def room_messages(
    room_id: uuid.UUID,
    uow: UnitOfWork,
    *,
    limit: int | None = None,
    before: datetime | None = None,
) -> list[Message]:
    return await uow.messages.list_for_room(room_id, limit=limit, before=before)


async def mark_read(room_id: uuid.UUID, reader_id: str, uow: UnitOfWork) -> int:
    """Mark everything the reader has not sent as read. Repeating it updates nothing."""
    count = await uow.messages_w.mark_read(room_id, reader_id)
    await uow.commit()
    return count


async def append_message(
    room_id: uuid.UUID,
    sender_id: str,
    content: str | None,
    file_url: str | None,
    client_msg_id: uuid.UUID | None,
    uow: UnitOfWork,
) -> tuple[Message, bool]:
    """Create a message, idempotently when ``client_msg_id`` is given.

    Returns (message, created). The sender's own unread backlog in the room is
    marked read in the same transaction.
    """
    if not content and not file_url:
        raise ValidationError("content or fileUrl is required")

    await uow.messages_w.mark_read(room_id, sender_id)

    now = datetime.now(timezone.utc)
    msg = Message(
        id=uuid.uuid4(),
        room_id=room_id,
        sender_id=sender_id,
        content=content or None,
        file_url=file_url or None,
        client_msg_id=client_msg_id,
        created_at=now,
    )
    msg, created = await uow.messages_w.create_if_not_exists(msg)

    if created:
        await uow.rooms_w.touch_updated_at(room_id, msg.created_at)
    await uow.commit()
    return msg, created
