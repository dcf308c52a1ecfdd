from __future__ import annotations

from typing import Iterable, Protocol

from chat_hub.domain.entities.user import User


class UserReader(Protocol):
    async def get_by_id(self, user_id: str) -> User | None: ...

    async def get_many(self, user_ids: Iterable[str]) -> dict[str, User]:
        """Return the users that exist, keyed by id. Unknown ids are skipped."""
        ...
