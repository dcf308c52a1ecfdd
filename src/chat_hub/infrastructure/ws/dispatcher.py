"""Per-connection protocol handling.

A connection is ``Authenticated`` until its first successful ``subscribe``,
then ``Subscribed(room_id)`` until it subscribes elsewhere or closes. Actions
that need a room check the state explicitly and answer with an ``error``
frame; nothing a client sends can close its own connection.
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import AbstractAsyncContextManager
from typing import Any, Awaitable, Callable
from uuid import UUID

from chat_hub.application.dto.conversation import ConversationView
from chat_hub.application.exceptions import AppError, PersistenceError, ProtocolError
from chat_hub.application.ports.bus import EventPublisher
from chat_hub.application.uow import UnitOfWork, UoWFactory, bounded_uow
from chat_hub.domain.entities.message import Message
from chat_hub.domain.entities.room import Room
from chat_hub.domain.events.message_created import EVENT_TYPE, MessageCreated
from chat_hub.infrastructure.bus.serializer import event_payload
from chat_hub.infrastructure.ws.connection import Connection
from chat_hub.infrastructure.ws.manager import ConnectionManager
from chat_hub.infrastructure.ws.protocol import (
    ConversationList,
    ConversationListOut,
    ConversationOut,
    ErrorOut,
    MessageOut,
    NewConversationOut,
    NewMessageOut,
    PastMessagesOut,
    Ping,
    Pong,
    PongOut,
    ReadMessage,
    ReceiveCandidateOut,
    SendCandidate,
    SendMessage,
    Subscribe,
    SuccessOut,
    parse_inbound,
)
from chat_hub.services import conversation_service, message_service, room_service

logger = logging.getLogger(__name__)

Handler = Callable[[Connection, Any], Awaitable[None]]

NOT_SUBSCRIBED = "You are not subscribed to any room"


class MessageDispatcher:
    def __init__(
        self,
        manager: ConnectionManager,
        uow_factory: UoWFactory,
        *,
        persistence_timeout: float,
        publisher: EventPublisher | None = None,
        notify_channel: str = "chat.notifications",
    ) -> None:
        self._manager = manager
        self._uow_factory = uow_factory
        self._timeout = persistence_timeout
        self.publisher = publisher
        self._notify_channel = notify_channel
        self._handlers: dict[str, Handler] = {
            "subscribe": self._on_subscribe,
            "send-message": self._on_send_message,
            "read-message": self._on_read_message,
            "conversation-list": self._on_conversation_list,
            "send-candidate": self._on_send_candidate,
            "ping": self._on_ping,
            "pong": self._on_pong,
        }

    def _persistence(self) -> AbstractAsyncContextManager[UnitOfWork]:
        return bounded_uow(self._uow_factory, self._timeout)

    @staticmethod
    def _require_room(connection: Connection) -> UUID:
        room_id = connection.room_id
        if room_id is None:
            raise ProtocolError(NOT_SUBSCRIBED)
        return room_id

    async def greet(self, connection: Connection) -> None:
        """Initial handshake: push the caller's conversation list."""
        await self._guarded(connection, self._send_conversation_list)

    async def dispatch(self, connection: Connection, raw: str | bytes) -> None:
        """Handle one inbound frame. Failures are reported to this connection only."""
        connection.touch()

        async def _handle(conn: Connection) -> None:
            envelope = parse_inbound(raw)
            await self._handlers[envelope.type](conn, envelope)

        await self._guarded(connection, _handle)

    async def _guarded(
        self,
        connection: Connection,
        action: Callable[[Connection], Awaitable[None]],
    ) -> None:
        try:
            await action(connection)
        except PersistenceError as exc:
            logger.warning("Persistence failure for %s: %s", connection.connection_id, exc.detail)
            await connection.send(ErrorOut(message=exc.detail))
        except AppError as exc:
            logger.debug("Rejected frame from %s: %s", connection.connection_id, exc.detail)
            await connection.send(ErrorOut(message=exc.detail))
        except Exception:
            logger.exception("Unhandled error for %s", connection.connection_id)
            await connection.send(ErrorOut(message="Something went wrong"))

    # ------------------------------------------------------------------
    # handlers
    # ------------------------------------------------------------------

    async def _on_subscribe(self, connection: Connection, msg: Subscribe) -> None:
        if msg.room_id is None and not msg.receiver_id:
            raise ProtocolError("receiverId or roomId is required")
        if msg.room_id is not None and msg.receiver_id:
            raise ProtocolError("Send either roomId or receiverId, not both")

        user_id = connection.owner_id
        async with self._persistence() as uow:
            if msg.room_id is not None:
                room = await room_service.get_room_for_member(msg.room_id, user_id, uow)
                await message_service.mark_read(room.id, user_id, uow)
            else:
                assert msg.receiver_id is not None
                room = await room_service.find_or_create_single_room(user_id, msg.receiver_id, uow)

            # Join before reading history so nothing sent in between is missed;
            # a message in both places is deduped by id on the client.
            if not await self._manager.subscribe(connection, room.id):
                # torn down while we were resolving the room
                return
            history = await message_service.room_messages(room.id, uow)

        await connection.send(
            PastMessagesOut(
                room_id=room.id,
                messages=[MessageOut.from_entity(m) for m in history],
            )
        )

    async def _on_send_message(self, connection: Connection, msg: SendMessage) -> None:
        room_id = self._require_room(connection)
        if not msg.content and not msg.file_url:
            raise ProtocolError("content or fileUrl is required")

        sender_id = connection.owner_id
        active_ids = await self._manager.active_user_ids()
        async with self._persistence() as uow:
            room = await room_service.get_room_for_member(room_id, sender_id, uow)
            message, created = await message_service.append_message(
                room_id, sender_id, msg.content, msg.file_url, msg.client_msg_id, uow,
            )

        # Committed from here on; nothing below may keep the fan-out from happening.
        new_message = NewMessageOut(room_id=room_id, message=MessageOut.from_entity(message))
        if not created and message.is_read:
            # resend of a message the recipients have already read
            await connection.send(new_message)
            return

        # A resend that is still unread replays the whole fan-out: the first
        # attempt may have failed after the commit. Events carry the same
        # message id and lastMessageAt, so clients can drop repeats.
        await self._manager.send_to_room(room_id, new_message)
        own_view = await self._sender_view(room, message, sender_id, active_ids)
        if own_view is not None:
            await self._manager.send_to_user(
                sender_id,
                NewConversationOut(conversations=ConversationOut.from_view(own_view)),
                exclude=connection,
            )
        theirs = NewConversationOut(
            conversations=ConversationOut.from_view(
                conversation_service.recipient_view(room, message, connection.identity)
            )
        )
        for user_id in sorted(room.others(sender_id)):
            await self._manager.send_to_user(user_id, theirs)

        await self._publish_created(room, message)

    async def _sender_view(
        self,
        room: Room,
        message: Message,
        sender_id: str,
        active_ids: frozenset[str],
    ) -> ConversationView | None:
        try:
            async with self._persistence() as uow:
                return await conversation_service.sender_view(
                    room, message, sender_id, active_ids, uow,
                )
        except PersistenceError as exc:
            logger.warning("Skipping own preview for message %s: %s", message.id, exc.detail)
            return None

    async def _on_read_message(self, connection: Connection, msg: ReadMessage) -> None:
        room_id = self._require_room(connection)
        async with self._persistence() as uow:
            count = await message_service.mark_read(room_id, connection.owner_id, uow)
        await connection.send(
            SuccessOut(message="Messages marked as read", result={"count": count})
        )

    async def _on_conversation_list(self, connection: Connection, msg: ConversationList) -> None:
        await self._send_conversation_list(connection)

    async def _on_send_candidate(self, connection: Connection, msg: SendCandidate) -> None:
        room_id = self._require_room(connection)
        if msg.content is None:
            raise ProtocolError("content is required")
        await self._manager.send_to_room(
            room_id,
            ReceiveCandidateOut(candidate=msg.content, user_id=connection.owner_id),
            exclude=connection,
        )

    async def _on_ping(self, connection: Connection, msg: Ping) -> None:
        await connection.send(PongOut())

    async def _on_pong(self, connection: Connection, msg: Pong) -> None:
        # liveness already refreshed by dispatch()
        return None

    # ------------------------------------------------------------------

    async def _send_conversation_list(self, connection: Connection) -> None:
        active_ids = await self._manager.active_user_ids()
        async with self._persistence() as uow:
            views = await conversation_service.list_conversations(
                connection.owner_id, active_ids, uow,
            )
        await connection.send(
            ConversationListOut(conversations=[ConversationOut.from_view(v) for v in views])
        )

    async def _publish_created(self, room: Room, message: Message) -> None:
        if self.publisher is None:
            return
        event = MessageCreated(
            message_id=message.id,
            room_id=room.id,
            sender_id=message.sender_id,
            recipient_ids=sorted(room.others(message.sender_id)),
            content=message.content,
            file_url=message.file_url,
            created_at=message.created_at,
        )
        try:
            async with asyncio.timeout(self._timeout):
                await self.publisher.publish(self._notify_channel, EVENT_TYPE, event_payload(event))
        except Exception:
            logger.warning("Could not publish %s for message %s", EVENT_TYPE, message.id, exc_info=True)
