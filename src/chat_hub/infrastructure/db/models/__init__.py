"""Import all models so Base.metadata sees every table."""
from chat_hub.infrastructure.db.models.message import MessageModel
from chat_hub.infrastructure.db.models.room import RoomModel, RoomParticipantModel
from chat_hub.infrastructure.db.models.user import UserModel

__all__ = [
    "MessageModel",
    "RoomModel",
    "RoomParticipantModel",
    "UserModel",
]
