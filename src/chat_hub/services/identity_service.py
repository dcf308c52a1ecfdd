from __future__ import annotations

from chat_hub.application.dto.principal import Principal
from chat_hub.application.exceptions import AuthError
from chat_hub.application.ports.auth import TokenVerifier
from chat_hub.application.uow import UnitOfWork
from chat_hub.domain.entities.user import Identity
from chat_hub.domain.value_objects.enums import UserStatus


async def resolve_identity(principal: Principal, uow: UnitOfWork) -> Identity:
    """Load the user behind a verified token and refuse unusable accounts."""
    user = await uow.users.get_by_id(principal.user_id)
    if user is None:
        raise AuthError("Unauthorized")
    if user.is_deleted:
        raise AuthError("Your account has been deleted")
    if user.status == UserStatus.BLOCKED:
        raise AuthError("You are blocked")
    return user.identity


async def authenticate(token: str | None, verifier: TokenVerifier, uow: UnitOfWork) -> Identity:
    if not token:
        raise AuthError("You are not authenticated")
    principal = await verifier.verify(token)
    return await resolve_identity(principal, uow)
