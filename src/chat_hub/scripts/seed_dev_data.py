"""Seed development data: two users, their SINGLE room and a short exchange."""
from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone

from chat_hub.domain.entities.message import Message
from chat_hub.domain.entities.user import User
from chat_hub.domain.value_objects.enums import UserStatus
from chat_hub.infrastructure.db.mappers.user import entity_to_model
from chat_hub.infrastructure.db.session import AsyncSessionLocal, create_schema
from chat_hub.infrastructure.db.uow import SqlAlchemyUoW
from chat_hub.logging_config import configure_logging

logger = logging.getLogger(__name__)

USERS = [
    ("user-alice", "Alice"),
    ("user-bob", "Bob"),
]


async def seed() -> None:
    await create_schema()
    now = datetime.now(timezone.utc)

    async with AsyncSessionLocal() as session:
        uow = SqlAlchemyUoW(session)
        for user_id, name in USERS:
            if await uow.users.get_by_id(user_id) is None:
                session.add(entity_to_model(User(
                    id=user_id,
                    display_name=name,
                    photo_url=None,
                    status=UserStatus.ACTIVE,
                    is_deleted=False,
                    created_at=now,
                )))
        await uow.flush()

        alice, bob = (uid for uid, _ in USERS)
        room = await uow.rooms_w.create_single_if_not_exists(alice, bob, now)

        exchange = [
            (alice, "Hi Bob!"),
            (bob, "Hey, how are you?"),
            (alice, "Good, thanks."),
        ]
        for i, (sender_id, content) in enumerate(exchange):
            ts = now + timedelta(seconds=i)
            await uow.messages_w.create_if_not_exists(Message(
                id=uuid.uuid4(),
                room_id=room.id,
                sender_id=sender_id,
                content=content,
                file_url=None,
                client_msg_id=uuid.uuid4(),
                created_at=ts,
            ))
            await uow.rooms_w.touch_updated_at(room.id, ts)

        await uow.commit()
        logger.info("Seeded room %s with %d messages", room.id, len(exchange))


def main() -> None:
    configure_logging("INFO")
    asyncio.run(seed())


if __name__ == "__main__":
    main()
