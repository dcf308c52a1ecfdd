from __future__ import annotations

import asyncio
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import AsyncIterator, Callable, Protocol

from chat_hub.application.exceptions import PersistenceError
from chat_hub.application.repositories.message import MessageReader, MessageWriter
from chat_hub.application.repositories.room import RoomReader, RoomWriter
from chat_hub.application.repositories.user import UserReader


class UnitOfWork(Protocol):
    users: UserReader
    rooms: RoomReader
    rooms_w: RoomWriter
    messages: MessageReader
    messages_w: MessageWriter

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...


UoWFactory = Callable[[], AbstractAsyncContextManager[UnitOfWork]]


@asynccontextmanager
async def bounded_uow(factory: UoWFactory, timeout: float) -> AsyncIterator[UnitOfWork]:
    """Open a unit of work whose whole body must finish within ``timeout`` seconds."""
    try:
        async with asyncio.timeout(timeout):
            async with factory() as uow:
                yield uow
    except TimeoutError as exc:
        raise PersistenceError("Storage did not respond in time") from exc
