from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller extracted from a JWT, before the user record is loaded."""

    user_id: str
    roles: list[str] = field(default_factory=list)
