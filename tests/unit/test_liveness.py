from __future__ import annotations

import asyncio
import uuid

import pytest

from chat_hub.infrastructure.ws.heartbeat import LivenessProbe
from chat_hub.infrastructure.ws.manager import ConnectionManager
from chat_hub.infrastructure.ws.protocol import PingOut
from tests.conftest import make_connection


@pytest.mark.asyncio
async def test_probe_releases_and_closes_stale_connections():
    manager = ConnectionManager()
    room_id = uuid.uuid4()
    stale, stale_ws = make_connection("alice")
    fresh, fresh_ws = make_connection("bob")
    for conn in (stale, fresh):
        await manager.connect(conn)
        await manager.subscribe(conn, room_id)
    stale.last_seen_at -= 100

    evicted = await manager.probe(window=40)

    assert evicted == [stale]
    assert stale.is_closed
    assert stale_ws.closed == (1001, "Liveness timeout")
    assert await manager.members_of(room_id) == frozenset({fresh})
    assert await manager.room_count() == 1
    assert await manager.active_user_ids() == frozenset({"bob"})
    assert fresh_ws.frames("ping") == [{"type": "ping"}]


@pytest.mark.asyncio
async def test_liveness_probe_runs_periodically():
    manager = ConnectionManager()
    conn, ws = make_connection("alice")
    await manager.connect(conn)
    conn.last_seen_at -= 100

    probe = LivenessProbe(manager, interval=0.01, window=1)
    await probe.start()
    for _ in range(100):
        if conn.is_closed:
            break
        await asyncio.sleep(0.01)
    await probe.stop()

    assert conn.is_closed
    assert await manager.connection_count() == 0


@pytest.mark.asyncio
async def test_stop_without_start_is_noop():
    probe = LivenessProbe(ConnectionManager(), interval=1, window=1)
    await probe.stop()


@pytest.mark.asyncio
async def test_close_all_tears_everything_down():
    manager = ConnectionManager()
    a, a_ws = make_connection("alice")
    b, b_ws = make_connection("bob")
    await manager.connect(a)
    await manager.connect(b)

    await manager.close_all()

    assert await manager.connection_count() == 0
    assert a.is_closed and b.is_closed
    assert a_ws.closed == (1001, "Server shutting down")
    assert b_ws.closed == (1001, "Server shutting down")


@pytest.mark.asyncio
async def test_send_after_close_is_dropped():
    manager = ConnectionManager()
    conn, ws = make_connection("alice")
    await manager.connect(conn)
    await manager.disconnect(conn)

    assert await manager.send_to_user("alice", PingOut()) == 0
    assert ws.sent == []


@pytest.mark.asyncio
async def test_room_count_tracks_viewed_rooms():
    manager = ConnectionManager()
    first, second = uuid.uuid4(), uuid.uuid4()
    a, _ = make_connection("alice")
    b, _ = make_connection("bob")
    await manager.connect(a)
    await manager.connect(b)
    assert await manager.room_count() == 0

    await manager.subscribe(a, first)
    await manager.subscribe(b, first)
    assert await manager.room_count() == 1

    await manager.subscribe(b, second)
    assert await manager.room_count() == 2

    await manager.disconnect(a)
    assert await manager.room_count() == 1
