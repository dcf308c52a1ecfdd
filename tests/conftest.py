"""Shared test fixtures."""
from __future__ import annotations

import json
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator, Iterable
from uuid import UUID

import pytest

from chat_hub.application.dto.principal import Principal
from chat_hub.application.exceptions import AuthError
from chat_hub.application.repositories.room import RoomSummary
from chat_hub.domain.entities.message import Message
from chat_hub.domain.entities.room import Room, pair_key
from chat_hub.domain.entities.user import Identity, User
from chat_hub.domain.value_objects.enums import RoomKind, UserStatus
from chat_hub.infrastructure.ws.connection import Connection
from chat_hub.infrastructure.ws.hub import ChatHub

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_user(
    user_id: str = "alice",
    *,
    display_name: str | None = None,
    photo_url: str | None = None,
    status: str = UserStatus.ACTIVE,
    is_deleted: bool = False,
) -> User:
    return User(
        id=user_id,
        display_name=display_name or user_id.title(),
        photo_url=photo_url,
        status=status,
        is_deleted=is_deleted,
        created_at=T0,
    )


def make_room(
    *participants: str,
    room_id: UUID | None = None,
    kind: str = RoomKind.SINGLE,
    name: str | None = None,
    photo_url: str | None = None,
    created_at: datetime = T0,
) -> Room:
    return Room(
        id=room_id or uuid.uuid4(),
        kind=kind,
        participant_ids=frozenset(participants or ("alice", "bob")),
        name=name,
        photo_url=photo_url,
        created_at=created_at,
        updated_at=created_at,
    )


def make_message(
    room_id: UUID,
    sender_id: str = "alice",
    content: str | None = "hello",
    *,
    file_url: str | None = None,
    is_read: bool = False,
    created_at: datetime | None = None,
    client_msg_id: UUID | None = None,
) -> Message:
    return Message(
        id=uuid.uuid4(),
        room_id=room_id,
        sender_id=sender_id,
        content=content,
        file_url=file_url,
        client_msg_id=client_msg_id,
        created_at=created_at or datetime.now(timezone.utc),
        is_read=is_read,
    )


@dataclass
class FakeUserReader:
    _store: dict[str, User] = field(default_factory=dict)

    async def get_by_id(self, user_id: str) -> User | None:
        return self._store.get(user_id)

    async def get_many(self, user_ids: Iterable[str]) -> dict[str, User]:
        return {uid: self._store[uid] for uid in user_ids if uid in self._store}


@dataclass
class FakeMessageReader:
    _messages: list[Message] = field(default_factory=list)

    async def list_for_room(
        self,
        room_id: UUID,
        *,
        limit: int | None = None,
        before: datetime | None = None,
    ) -> list[Message]:
        result = [
            m for m in self._messages
            if m.room_id == room_id and (before is None or m.created_at < before)
        ]
        result.sort(key=lambda m: m.created_at, reverse=True)
        return result[:limit] if limit is not None else result


@dataclass
class FakeMessageWriter:
    _reader: FakeMessageReader

    async def create_if_not_exists(self, message: Message) -> tuple[Message, bool]:
        if message.client_msg_id is not None:
            for m in self._reader._messages:
                if (
                    m.room_id == message.room_id
                    and m.sender_id == message.sender_id
                    and m.client_msg_id == message.client_msg_id
                ):
                    return m, False
        self._reader._messages.append(message)
        return message, True

    async def mark_read(self, room_id: UUID, reader_id: str) -> int:
        count = 0
        for i, m in enumerate(self._reader._messages):
            if m.room_id == room_id and m.sender_id != reader_id and not m.is_read:
                self._reader._messages[i] = replace(m, is_read=True)
                count += 1
        return count


@dataclass
class FakeRoomReader:
    _messages: FakeMessageReader
    _store: dict[UUID, Room] = field(default_factory=dict)

    async def get_by_id(self, room_id: UUID) -> Room | None:
        return self._store.get(room_id)

    async def find_single(self, user_a: str, user_b: str) -> Room | None:
        key = pair_key(user_a, user_b)
        for room in self._store.values():
            if room.is_single and pair_key(*sorted(room.participant_ids)) == key:
                return room
        return None

    async def list_for_user(self, user_id: str) -> list[RoomSummary]:
        summaries = []
        for room in self._store.values():
            if not room.has_participant(user_id):
                continue
            history = await self._messages.list_for_room(room.id)
            unread = sum(1 for m in history if m.sender_id != user_id and not m.is_read)
            summaries.append(RoomSummary(room, history[0] if history else None, unread))
        return summaries


@dataclass
class FakeRoomWriter:
    _reader: FakeRoomReader
    created: int = 0

    async def create_single_if_not_exists(self, user_a: str, user_b: str, ts: datetime) -> Room:
        existing = await self._reader.find_single(user_a, user_b)
        if existing is not None:
            return existing
        room = make_room(user_a, user_b, created_at=ts)
        self._reader._store[room.id] = room
        self.created += 1
        return room

    async def touch_updated_at(self, room_id: UUID, ts: datetime) -> None:
        room = self._reader._store[room_id]
        self._reader._store[room_id] = replace(room, updated_at=ts)


@dataclass
class FakeUoW:
    """In-memory UoW for unit tests."""
    users: FakeUserReader = field(default_factory=FakeUserReader)
    messages: FakeMessageReader = field(default_factory=FakeMessageReader)
    messages_w: FakeMessageWriter | None = None
    rooms: FakeRoomReader | None = None
    rooms_w: FakeRoomWriter | None = None
    commits: int = 0
    rollbacks: int = 0

    def __post_init__(self) -> None:
        if self.messages_w is None:
            self.messages_w = FakeMessageWriter(self.messages)
        if self.rooms is None:
            self.rooms = FakeRoomReader(self.messages)
        if self.rooms_w is None:
            self.rooms_w = FakeRoomWriter(self.rooms)

    def add_users(self, *users: User) -> None:
        for user in users:
            self.users._store[user.id] = user

    def add_room(self, room: Room) -> Room:
        self.rooms._store[room.id] = room
        return room

    def add_message(self, message: Message) -> Message:
        self.messages._messages.append(message)
        return message

    async def flush(self) -> None:
        pass

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1


def uow_factory(uow: FakeUoW):
    """Session-per-operation factory that always hands out the same fake."""

    @asynccontextmanager
    async def _open() -> AsyncIterator[FakeUoW]:
        try:
            yield uow
        except BaseException:
            await uow.rollback()
            raise

    return _open


class FakeVerifier:
    """Treats the token as the user id; tokens starting with ``bad`` are rejected."""

    async def verify(self, token: str) -> Principal:
        if token.startswith("bad"):
            raise AuthError("Invalid token!")
        return Principal(user_id=token)


class FakeWebSocket:
    """Records what the server sends; can be told to fail on send."""

    def __init__(self, *, fail: bool = False) -> None:
        self.sent: list[str] = []
        self.closed: tuple[int, str | None] | None = None
        self.fail = fail

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise RuntimeError("socket is gone")
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        if self.closed is not None:
            raise RuntimeError("already closed")
        self.closed = (code, reason)

    def frames(self, type_: str | None = None) -> list[dict[str, Any]]:
        decoded = [json.loads(raw) for raw in self.sent]
        if type_ is None:
            return decoded
        return [f for f in decoded if f["type"] == type_]

    def clear(self) -> None:
        self.sent.clear()


def make_connection(user_id: str = "alice", *, fail: bool = False) -> tuple[Connection, FakeWebSocket]:
    ws = FakeWebSocket(fail=fail)
    return Connection(ws, Identity(id=user_id, display_name=user_id.title())), ws


def make_hub(uow: FakeUoW, *, persistence_timeout: float = 1.0) -> ChatHub:
    return ChatHub(
        uow_factory(uow),
        FakeVerifier(),
        persistence_timeout=persistence_timeout,
        heartbeat_interval=30,
        liveness_window=40,
    )


def at(seconds: int) -> datetime:
    return T0 + timedelta(seconds=seconds)


@pytest.fixture
def uow() -> FakeUoW:
    uow = FakeUoW()
    uow.add_users(make_user("alice"), make_user("bob"), make_user("carol"))
    return uow


@pytest.fixture
def hub(uow: FakeUoW) -> ChatHub:
    return make_hub(uow)
