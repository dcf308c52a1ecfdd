from __future__ import annotations

import uuid

import pytest

from chat_hub.infrastructure.ws.connection import Closed, Subscribed
from chat_hub.infrastructure.ws.subscriptions import RoomSubscriptionTable
from tests.conftest import make_connection


@pytest.mark.asyncio
async def test_subscribe_moves_connection_between_rooms():
    table = RoomSubscriptionTable()
    conn, _ = make_connection("alice")
    r1, r2 = uuid.uuid4(), uuid.uuid4()

    assert await table.subscribe(conn, r1)
    assert conn.state == Subscribed(r1)

    assert await table.subscribe(conn, r2)
    assert conn.state == Subscribed(r2)
    assert await table.members_of(r1) == frozenset()
    assert await table.members_of(r2) == frozenset({conn})
    # empty room entries are dropped
    assert await table.room_ids() == frozenset({r2})


@pytest.mark.asyncio
async def test_release_shrinks_room_by_one_and_removes_empty_entry():
    table = RoomSubscriptionTable()
    room_id = uuid.uuid4()
    a, _ = make_connection("alice")
    b, _ = make_connection("bob")
    await table.subscribe(a, room_id)
    await table.subscribe(b, room_id)

    assert await table.release(a) == room_id
    assert await table.members_of(room_id) == frozenset({b})
    assert a.state == Closed()

    await table.release(b)
    assert room_id not in await table.room_ids()

    # a fresh subscriber recreates the entry
    c, _ = make_connection("alice")
    assert await table.subscribe(c, room_id)
    assert await table.members_of(room_id) == frozenset({c})


@pytest.mark.asyncio
async def test_release_is_idempotent():
    table = RoomSubscriptionTable()
    conn, _ = make_connection("alice")
    await table.subscribe(conn, uuid.uuid4())

    await table.release(conn)
    assert await table.release(conn) is None
    assert conn.is_closed


@pytest.mark.asyncio
async def test_closed_connection_cannot_subscribe():
    table = RoomSubscriptionTable()
    conn, _ = make_connection("alice")
    await table.release(conn)
    room_id = uuid.uuid4()

    assert await table.subscribe(conn, room_id) is False
    assert await table.members_of(room_id) == frozenset()
    assert conn.is_closed
