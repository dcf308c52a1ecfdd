from __future__ import annotations

from chat_hub.domain.entities.user import User
from chat_hub.infrastructure.db.models.user import UserModel


def model_to_entity(model: UserModel) -> User:
    return User(
        id=model.id,
        display_name=model.display_name,
        photo_url=model.photo_url,
        status=model.status,
        is_deleted=model.is_deleted,
        created_at=model.created_at,
    )


def entity_to_model(entity: User) -> UserModel:
    return UserModel(
        id=entity.id,
        display_name=entity.display_name,
        photo_url=entity.photo_url,
        status=entity.status,
        is_deleted=entity.is_deleted,
        created_at=entity.created_at,
    )
