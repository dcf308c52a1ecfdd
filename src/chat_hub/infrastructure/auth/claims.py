from __future__ import annotations

from typing import Any

import jwt

from chat_hub.application.dto.principal import Principal
from chat_hub.application.exceptions import AuthError


def auth_error(exc: jwt.PyJWTError) -> AuthError:
    if isinstance(exc, jwt.ExpiredSignatureError):
        return AuthError("Token has expired!")
    return AuthError("Invalid token!")


def principal_from_claims(payload: dict[str, Any]) -> Principal:
    # Tokens minted by the accounts service carry the user id as ``id``
    subject = payload.get("sub", payload.get("id"))
    if not subject:
        raise AuthError("Invalid token!")
    return Principal(user_id=str(subject), roles=payload.get("roles", []))
