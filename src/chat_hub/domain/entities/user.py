from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Identity:
    """Who is on the other end of a connection. Fixed for its lifetime."""

    id: str
    display_name: str
    photo_url: str | None = None


@dataclass(frozen=True, slots=True)
class User:
    id: str
    display_name: str
    photo_url: str | None
    status: str
    is_deleted: bool
    created_at: datetime

    @property
    def identity(self) -> Identity:
        return Identity(id=self.id, display_name=self.display_name, photo_url=self.photo_url)
