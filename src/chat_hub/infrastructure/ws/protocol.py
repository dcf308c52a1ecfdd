"""WebSocket envelope models.

Every frame is a flat JSON object discriminated by ``type``. Field names are
camelCase on the wire and snake_case in Python.
"""
from __future__ import annotations

import json
from datetime import datetime
from typing import Annotated, Any, Literal, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from chat_hub.application.dto.conversation import ConversationView
from chat_hub.application.exceptions import ProtocolError
from chat_hub.domain.entities.message import Message


class _Wire(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# ---------------------------------------------------------------------------
# Client -> Server
# ---------------------------------------------------------------------------


class Subscribe(_Wire):
    type: Literal["subscribe"]
    room_id: UUID | None = None
    receiver_id: str | None = None


class SendMessage(_Wire):
    type: Literal["send-message"]
    content: str | None = None
    file_url: str | None = None
    client_msg_id: UUID | None = None


class ReadMessage(_Wire):
    type: Literal["read-message"]


class ConversationList(_Wire):
    type: Literal["conversation-list"]


class SendCandidate(_Wire):
    type: Literal["send-candidate"]
    content: Any = Field(...)


class Ping(_Wire):
    type: Literal["ping"]


class Pong(_Wire):
    type: Literal["pong"]


WsInbound = Annotated[
    Union[Subscribe, SendMessage, ReadMessage, ConversationList, SendCandidate, Ping, Pong],
    Field(discriminator="type"),
]

INBOUND_TYPES = frozenset(
    {"subscribe", "send-message", "read-message", "conversation-list", "send-candidate", "ping", "pong"}
)

_inbound_adapter: TypeAdapter[WsInbound] = TypeAdapter(WsInbound)


def parse_inbound(raw: str | bytes) -> WsInbound:
    """Decode one client frame or raise ``ProtocolError``."""
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise ProtocolError("Invalid payload: malformed JSON") from exc

    if not isinstance(data, dict):
        raise ProtocolError("Invalid payload: expected a JSON object")

    msg_type = data.get("type")
    if not isinstance(msg_type, str) or msg_type not in INBOUND_TYPES:
        raise ProtocolError("Invalid message type")

    try:
        return _inbound_adapter.validate_python(data)
    except PydanticValidationError as exc:
        fields = ", ".join(".".join(str(p) for p in err["loc"][1:]) or "type" for err in exc.errors())
        raise ProtocolError(f"Invalid {data['type']} payload: {fields}") from exc


# ---------------------------------------------------------------------------
# Server -> Client
# ---------------------------------------------------------------------------


class MessageOut(_Wire):
    id: UUID
    room_id: UUID
    sender_id: str
    content: str | None
    file_url: str | None
    client_msg_id: UUID | None = None
    created_at: datetime
    is_read: bool

    @classmethod
    def from_entity(cls, msg: Message) -> MessageOut:
        return cls(
            id=msg.id,
            room_id=msg.room_id,
            sender_id=msg.sender_id,
            content=msg.content,
            file_url=msg.file_url,
            client_msg_id=msg.client_msg_id,
            created_at=msg.created_at,
            is_read=msg.is_read,
        )


class ConversationOut(_Wire):
    room_id: UUID
    kind: str
    name: str | None
    photo: str | None
    last_message: str | None
    last_message_at: datetime | None
    unread_count: int
    is_active: bool
    created_at: datetime
    count_increase_by: int | None = None

    @classmethod
    def from_view(cls, view: ConversationView) -> ConversationOut:
        return cls(
            room_id=view.room_id,
            kind=view.kind,
            name=view.name,
            photo=view.photo,
            last_message=view.last_message,
            last_message_at=view.last_message_at,
            unread_count=view.unread_count,
            is_active=view.is_active,
            created_at=view.created_at,
            count_increase_by=view.count_increase_by,
        )


class ConversationListOut(_Wire):
    type: Literal["conversation-list"] = "conversation-list"
    conversations: list[ConversationOut]


class PastMessagesOut(_Wire):
    type: Literal["past-messages"] = "past-messages"
    room_id: UUID
    messages: list[MessageOut]


class NewMessageOut(_Wire):
    type: Literal["new-message"] = "new-message"
    room_id: UUID
    message: MessageOut


class NewConversationOut(_Wire):
    type: Literal["new-conversation"] = "new-conversation"
    conversations: ConversationOut


class ReceiveCandidateOut(_Wire):
    type: Literal["receive-candidate"] = "receive-candidate"
    candidate: Any
    user_id: str


class SuccessOut(_Wire):
    type: Literal["success"] = "success"
    message: str
    result: dict[str, Any] | None = None


class ErrorOut(_Wire):
    type: Literal["error"] = "error"
    message: str


class PingOut(_Wire):
    type: Literal["ping"] = "ping"


class PongOut(_Wire):
    type: Literal["pong"] = "pong"


WsOutbound = Union[
    ConversationListOut,
    PastMessagesOut,
    NewMessageOut,
    NewConversationOut,
    ReceiveCandidateOut,
    SuccessOut,
    ErrorOut,
    PingOut,
    PongOut,
]


def encode(event: WsOutbound) -> str:
    return event.model_dump_json(by_alias=True)
