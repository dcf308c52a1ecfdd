from __future__ import annotations

from chat_hub.application.ports.auth import TokenVerifier
from chat_hub.application.ports.bus import EventPublisher
from chat_hub.application.uow import UoWFactory, bounded_uow
from chat_hub.domain.entities.user import Identity
from chat_hub.infrastructure.ws.dispatcher import MessageDispatcher
from chat_hub.infrastructure.ws.heartbeat import LivenessProbe
from chat_hub.infrastructure.ws.manager import ConnectionManager
from chat_hub.services import identity_service


class ChatHub:
    """Everything one hub process shares across its sockets."""

    def __init__(
        self,
        uow_factory: UoWFactory,
        verifier: TokenVerifier,
        *,
        persistence_timeout: float,
        heartbeat_interval: float,
        liveness_window: float,
        publisher: EventPublisher | None = None,
        notify_channel: str = "chat.notifications",
    ) -> None:
        self._uow_factory = uow_factory
        self._verifier = verifier
        self._timeout = persistence_timeout
        self.manager = ConnectionManager()
        self.dispatcher = MessageDispatcher(
            self.manager,
            uow_factory,
            persistence_timeout=persistence_timeout,
            publisher=publisher,
            notify_channel=notify_channel,
        )
        self.probe = LivenessProbe(
            self.manager,
            interval=heartbeat_interval,
            window=liveness_window,
        )

    async def authenticate(self, token: str | None) -> Identity:
        """Resolve a bearer token to an identity or raise ``AuthError``."""
        async with bounded_uow(self._uow_factory, self._timeout) as uow:
            return await identity_service.authenticate(token, self._verifier, uow)

    def use_publisher(self, publisher: EventPublisher | None) -> None:
        self.dispatcher.publisher = publisher
