from __future__ import annotations

from enum import StrEnum


class RoomKind(StrEnum):
    SINGLE = "SINGLE"
    GROUP = "GROUP"


class UserStatus(StrEnum):
    ACTIVE = "ACTIVE"
    BLOCKED = "BLOCKED"
