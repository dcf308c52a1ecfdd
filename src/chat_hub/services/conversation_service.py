"""Per-user conversation summaries.

Everything here is read-only and recomputed on each call: a view is built
from the room, its latest message, the viewer's unread count and a presence
snapshot taken by the caller.
"""
from __future__ import annotations

from typing import AbstractSet

from chat_hub.application.dto.conversation import ConversationView
from chat_hub.application.uow import UnitOfWork
from chat_hub.domain.entities.message import Message
from chat_hub.domain.entities.room import Room
from chat_hub.domain.entities.user import Identity, User
from chat_hub.services.presence_service import any_active

FILE_PREVIEW = "sent file"
UNKNOWN_USER = "Unknown User"


def preview(message: Message | None) -> str | None:
    if message is None:
        return None
    return message.content or FILE_PREVIEW


def _peer_id(room: Room, viewer_id: str) -> str | None:
    return next(iter(sorted(room.others(viewer_id))), None)


def _title(room: Room, viewer_id: str, users: dict[str, User]) -> tuple[str | None, str | None]:
    if not room.is_single:
        return room.name, room.photo_url
    peer = users.get(_peer_id(room, viewer_id) or "")
    if peer is None:
        return UNKNOWN_USER, None
    return peer.display_name, peer.photo_url


def is_peer_active(room: Room, viewer_id: str, active_ids: AbstractSet[str]) -> bool:
    # Scoped to this room's other participants, not to everyone online.
    return any_active(room.others(viewer_id), active_ids)


def build_view(
    room: Room,
    viewer_id: str,
    last_message: Message | None,
    unread_count: int,
    users: dict[str, User],
    active_ids: AbstractSet[str],
) -> ConversationView:
    name, photo = _title(room, viewer_id, users)
    return ConversationView(
        room_id=room.id,
        kind=room.kind,
        name=name,
        photo=photo,
        last_message=preview(last_message),
        last_message_at=last_message.created_at if last_message else None,
        unread_count=unread_count,
        is_active=is_peer_active(room, viewer_id, active_ids),
        created_at=room.created_at,
    )


async def list_conversations(
    user_id: str,
    active_ids: AbstractSet[str],
    uow: UnitOfWork,
) -> list[ConversationView]:
    """Every room the user is in, most recent activity first."""
    summaries = await uow.rooms.list_for_user(user_id)

    peer_ids = {
        peer
        for s in summaries
        if s.room.is_single
        for peer in s.room.others(user_id)
    }
    users = await uow.users.get_many(peer_ids) if peer_ids else {}

    views = [
        build_view(s.room, user_id, s.last_message, s.unread_count, users, active_ids)
        for s in summaries
    ]
    views.sort(key=lambda v: v.sort_key, reverse=True)
    return views


async def sender_view(
    room: Room,
    message: Message,
    sender_id: str,
    active_ids: AbstractSet[str],
    uow: UnitOfWork,
) -> ConversationView:
    """Full preview for the sender's other devices right after a send."""
    users: dict[str, User] = {}
    if room.is_single:
        users = await uow.users.get_many(room.others(sender_id))
    return build_view(room, sender_id, message, 0, users, active_ids)


def recipient_view(room: Room, message: Message, sender: Identity) -> ConversationView:
    """Preview pushed to the other participants; they add ``count_increase_by`` to their unread badge."""
    if room.is_single:
        name, photo = sender.display_name, sender.photo_url
    else:
        name, photo = room.name, room.photo_url
    return ConversationView(
        room_id=room.id,
        kind=room.kind,
        name=name,
        photo=photo,
        last_message=preview(message),
        last_message_at=message.created_at,
        unread_count=0,
        is_active=True,
        created_at=room.created_at,
        count_increase_by=1,
    )
