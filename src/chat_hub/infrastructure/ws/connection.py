"""One live socket and its protocol state."""
from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from chat_hub.domain.entities.user import Identity
from chat_hub.infrastructure.ws.protocol import WsOutbound, encode

logger = logging.getLogger(__name__)


class SocketLike(Protocol):
    """The slice of ``fastapi.WebSocket`` a connection needs."""

    async def send_text(self, data: str) -> None: ...
    async def close(self, code: int = 1000, reason: str | None = None) -> None: ...


@dataclass(frozen=True, slots=True)
class Authenticated:
    """Registered, not viewing any room."""


@dataclass(frozen=True, slots=True)
class Subscribed:
    room_id: UUID


@dataclass(frozen=True, slots=True)
class Closed:
    """Torn down. Never leaves this state."""


ConnectionState = Authenticated | Subscribed | Closed


class Connection:
    """A socket bound to an authenticated identity.

    ``state`` is only changed by the subscription table, under its lock.
    Sends are serialized so concurrent fan-outs never interleave frames.
    """

    def __init__(self, socket: SocketLike, identity: Identity) -> None:
        self.connection_id = uuid.uuid4().hex
        self.identity = identity
        self.state: ConnectionState = Authenticated()
        self.last_seen_at = time.monotonic()
        self._socket = socket
        self._send_lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"<Connection {self.connection_id} user={self.owner_id} state={self.state}>"

    @property
    def owner_id(self) -> str:
        return self.identity.id

    @property
    def room_id(self) -> UUID | None:
        if isinstance(self.state, Subscribed):
            return self.state.room_id
        return None

    @property
    def is_closed(self) -> bool:
        return isinstance(self.state, Closed)

    def touch(self) -> None:
        self.last_seen_at = time.monotonic()

    def is_stale(self, window: float, now: float | None = None) -> bool:
        now = time.monotonic() if now is None else now
        return now - self.last_seen_at > window

    async def send(self, event: WsOutbound) -> bool:
        """Deliver one frame. Returns False if the socket is gone."""
        if self.is_closed:
            return False
        raw = encode(event)
        async with self._send_lock:
            try:
                await self._socket.send_text(raw)
            except Exception:
                logger.debug("Send to %s failed", self.connection_id, exc_info=True)
                return False
        return True

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        try:
            await self._socket.close(code=code, reason=reason)
        except (RuntimeError, OSError):
            # already closed by the peer or the server
            logger.debug("Close on finished socket %s", self.connection_id)
