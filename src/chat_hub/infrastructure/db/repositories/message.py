from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from chat_hub.domain.entities.message import Message
from chat_hub.infrastructure.db.mappers import message as mapper
from chat_hub.infrastructure.db.models.message import MessageModel


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_for_room(
        self,
        room_id: UUID,
        *,
        limit: int | None = None,
        before: datetime | None = None,
    ) -> list[Message]:
        stmt = (
            select(MessageModel)
            .where(MessageModel.room_id == room_id)
            .order_by(MessageModel.created_at.desc(), MessageModel.id.desc())
        )
        if before is not None:
            stmt = stmt.where(MessageModel.created_at < before)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.scalars().all()]


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        """Insert message idempotently. Returns (message, created_flag)."""
        values = {
            "id": message.id,
            "room_id": message.room_id,
            "sender_id": message.sender_id,
            "content": message.content,
            "file_url": message.file_url,
            "client_msg_id": message.client_msg_id,
            "is_read": message.is_read,
            "created_at": message.created_at,
        }
        stmt = (
            pg_insert(MessageModel)
            .values(**values)
            .on_conflict_do_nothing(constraint="uq_message_idempotency")
            .returning(MessageModel)
        )
        result = await self._session.execute(stmt)
        row = result.scalar_one_or_none()

        if row is not None:
            return mapper.model_to_entity(row), True

        # Conflict: same client_msg_id already stored for this sender and room
        existing = await self._get_by_client_msg_id(
            message.room_id, message.sender_id, message.client_msg_id,
        )
        assert existing is not None
        return existing, False

    async def _get_by_client_msg_id(
        self,
        room_id: UUID,
        sender_id: str,
        client_msg_id: UUID | None,
    ) -> Message | None:
        stmt = select(MessageModel).where(
            MessageModel.room_id == room_id,
            MessageModel.sender_id == sender_id,
            MessageModel.client_msg_id == client_msg_id,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def mark_read(self, room_id: UUID, reader_id: str) -> int:
        stmt = (
            update(MessageModel)
            .where(
                MessageModel.room_id == room_id,
                MessageModel.is_read.is_(False),
                MessageModel.sender_id != reader_id,
            )
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount or 0
