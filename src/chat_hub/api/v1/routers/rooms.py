from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Query

from chat_hub.api.deps import CurrentIdentity, HubDep, UoWDep
from chat_hub.api.v1.schemas.room import CreateRoomRequest, RoomResponse
from chat_hub.infrastructure.ws.protocol import ConversationOut, MessageOut
from chat_hub.services import conversation_service, message_service, room_service

router = APIRouter(prefix="/api/v1/chat/rooms", tags=["rooms"])


@router.get("", response_model=list[ConversationOut])
async def list_rooms(
    identity: CurrentIdentity,
    uow: UoWDep,
    hub: HubDep,
) -> list[ConversationOut]:
    active_ids = await hub.manager.active_user_ids()
    views = await conversation_service.list_conversations(identity.id, active_ids, uow)
    return [ConversationOut.from_view(v) for v in views]


@router.post("", response_model=RoomResponse)
async def create_or_get_room(
    body: CreateRoomRequest,
    identity: CurrentIdentity,
    uow: UoWDep,
) -> RoomResponse:
    room = await room_service.find_or_create_single_room(identity.id, body.receiver_id, uow)
    return RoomResponse.from_entity(room)


@router.get("/{room_id}/messages", response_model=list[MessageOut])
async def list_messages(
    room_id: UUID,
    identity: CurrentIdentity,
    uow: UoWDep,
    limit: int = Query(50, ge=1, le=200),
    before: datetime | None = Query(None),
) -> list[MessageOut]:
    await room_service.get_room_for_member(room_id, identity.id, uow)
    messages = await message_service.room_messages(room_id, uow, limit=limit, before=before)
    return [MessageOut.from_entity(m) for m in messages]
