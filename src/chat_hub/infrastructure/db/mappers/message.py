from __future__ import annotations

from chat_hub.domain.entities.message import Message
from chat_hub.infrastructure.db.models.message import MessageModel


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        room_id=model.room_id,
        sender_id=model.sender_id,
        content=model.content,
        file_url=model.file_url,
        client_msg_id=model.client_msg_id,
        created_at=model.created_at,
        is_read=model.is_read,
    )
