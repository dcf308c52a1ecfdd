from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chat_hub.infrastructure.db.base import Base


class RoomModel(Base):
    __tablename__ = "rooms"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    kind: Mapped[str] = mapped_column(String(20), nullable=False, default="SINGLE")
    # "<a>:<b>" with ids sorted; NULL for group rooms
    pair_key: Mapped[str | None] = mapped_column(String(140), nullable=True)
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )

    participants = relationship("RoomParticipantModel", back_populates="room", lazy="selectin")
    messages = relationship("MessageModel", back_populates="room", lazy="noload")

    __table_args__ = (
        UniqueConstraint("pair_key", name="uq_rooms_pair_key"),
        Index("ix_rooms_updated_at", updated_at.desc()),
    )


class RoomParticipantModel(Base):
    __tablename__ = "room_participants"

    room_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("rooms.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )

    room = relationship("RoomModel", back_populates="participants")

    __table_args__ = (
        Index("ix_room_participants_user", "user_id", "room_id"),
    )
