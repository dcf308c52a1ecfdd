from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from chat_hub.application.repositories.room import RoomSummary
from chat_hub.domain.entities.room import Room, pair_key
from chat_hub.domain.value_objects.enums import RoomKind
from chat_hub.infrastructure.db.mappers import message as message_mapper
from chat_hub.infrastructure.db.mappers import room as mapper
from chat_hub.infrastructure.db.models.message import MessageModel
from chat_hub.infrastructure.db.models.room import RoomModel, RoomParticipantModel


class RoomReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, room_id: uuid.UUID) -> Room | None:
        result = await self._session.get(RoomModel, room_id)
        return mapper.model_to_entity(result) if result else None

    async def find_single(self, user_a: str, user_b: str) -> Room | None:
        stmt = select(RoomModel).where(
            RoomModel.kind == RoomKind.SINGLE,
            RoomModel.pair_key == pair_key(user_a, user_b),
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def list_for_user(self, user_id: str) -> list[RoomSummary]:
        stmt = (
            select(RoomModel)
            .join(
                RoomParticipantModel,
                RoomParticipantModel.room_id == RoomModel.id,
            )
            .where(RoomParticipantModel.user_id == user_id)
            .order_by(RoomModel.updated_at.desc())
        )
        result = await self._session.execute(stmt)
        rooms = result.scalars().all()
        if not rooms:
            return []
        room_ids = [r.id for r in rooms]

        # DISTINCT ON picks the first row per room in ORDER BY order
        latest_stmt = (
            select(MessageModel)
            .where(MessageModel.room_id.in_(room_ids))
            .order_by(
                MessageModel.room_id,
                MessageModel.created_at.desc(),
                MessageModel.id.desc(),
            )
            .distinct(MessageModel.room_id)
        )
        latest = {
            m.room_id: message_mapper.model_to_entity(m)
            for m in (await self._session.execute(latest_stmt)).scalars().all()
        }

        unread_stmt = (
            select(MessageModel.room_id, func.count(MessageModel.id))
            .where(
                MessageModel.room_id.in_(room_ids),
                MessageModel.is_read.is_(False),
                MessageModel.sender_id != user_id,
            )
            .group_by(MessageModel.room_id)
        )
        unread = dict((await self._session.execute(unread_stmt)).tuples().all())

        return [
            RoomSummary(
                room=mapper.model_to_entity(r),
                last_message=latest.get(r.id),
                unread_count=unread.get(r.id, 0),
            )
            for r in rooms
        ]


class RoomWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_single_if_not_exists(
        self,
        user_a: str,
        user_b: str,
        ts: datetime,
    ) -> Room:
        key = pair_key(user_a, user_b)
        stmt = (
            pg_insert(RoomModel)
            .values(
                id=uuid.uuid4(),
                kind=RoomKind.SINGLE.value,
                pair_key=key,
                created_at=ts,
                updated_at=ts,
            )
            .on_conflict_do_nothing(constraint="uq_rooms_pair_key")
            .returning(RoomModel.id)
        )
        result = await self._session.execute(stmt)
        room_id = result.scalar_one_or_none()

        if room_id is not None:
            await self._session.execute(
                pg_insert(RoomParticipantModel).values(
                    [
                        {"room_id": room_id, "user_id": user_a},
                        {"room_id": room_id, "user_id": user_b},
                    ]
                )
            )

        # Either ours or the concurrent winner's row
        model = (
            await self._session.execute(
                select(RoomModel)
                .where(RoomModel.pair_key == key)
                .execution_options(populate_existing=True)
            )
        ).scalar_one()
        return mapper.model_to_entity(model)

    async def touch_updated_at(self, room_id: uuid.UUID, ts: datetime) -> None:
        stmt = (
            update(RoomModel)
            .where(RoomModel.id == room_id)
            .values(updated_at=ts)
        )
        await self._session.execute(stmt)
