from __future__ import annotations

import jwt

from chat_hub.application.dto.principal import Principal
from chat_hub.infrastructure.auth.claims import auth_error, principal_from_claims


class HS256Verifier:
    """Verify JWTs signed with a shared HS256 secret."""

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    async def verify(self, token: str) -> Principal:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.PyJWTError as exc:
            raise auth_error(exc) from exc
        return principal_from_claims(payload)
