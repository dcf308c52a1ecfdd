from __future__ import annotations

from typing import Protocol

from chat_hub.application.dto.principal import Principal


class TokenVerifier(Protocol):
    async def verify(self, token: str) -> Principal:
        """Decode ``token``. Raise ``AuthError`` when it is invalid or expired."""
        ...
