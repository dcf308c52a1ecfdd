"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated, AsyncIterator

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from chat_hub.application.ports.auth import TokenVerifier
from chat_hub.application.uow import UnitOfWork
from chat_hub.config import settings
from chat_hub.domain.entities.user import Identity
from chat_hub.infrastructure.auth.hs256_verifier import HS256Verifier
from chat_hub.infrastructure.auth.jwks_verifier import JWKSVerifier
from chat_hub.infrastructure.db.uow import open_uow
from chat_hub.infrastructure.ws.hub import ChatHub
from chat_hub.services import identity_service

_bearer_scheme = HTTPBearer()


async def get_uow() -> AsyncIterator[UnitOfWork]:
    async with open_uow() as uow:
        yield uow


UoWDep = Annotated[UnitOfWork, Depends(get_uow)]


def _get_verifier() -> TokenVerifier:
    if settings.JWT_VERIFY_MODE == "jwks":
        assert settings.JWKS_URL, "JWKS_URL must be set when JWT_VERIFY_MODE=jwks"
        return JWKSVerifier(settings.JWKS_URL)
    return HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = _get_verifier()
    return _verifier


def get_hub(request: Request) -> ChatHub:
    return request.app.state.hub


HubDep = Annotated[ChatHub, Depends(get_hub)]


async def get_current_identity(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
    uow: UoWDep,
) -> Identity:
    # AuthError is mapped to 401 by the app's exception handlers
    return await identity_service.authenticate(credentials.credentials, get_verifier(), uow)


CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]
