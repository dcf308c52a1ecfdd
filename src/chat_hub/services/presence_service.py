"""Presence is derived, never stored: a user is active while at least one of
their connections is registered."""
from __future__ import annotations

from typing import AbstractSet, Iterable


def is_active(user_id: str, active_ids: AbstractSet[str]) -> bool:
    return user_id in active_ids


def any_active(user_ids: Iterable[str], active_ids: AbstractSet[str]) -> bool:
    return any(is_active(uid, active_ids) for uid in user_ids)
