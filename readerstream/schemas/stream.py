"""Schemas for activity feeds and the stream:* socket events."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, List

from pydantic import Field

from .base import WireModel


class ActivityType(str, Enum):
    NEWS = "news"
    BOOK = "book"
    COMMENT = "comment"
    REVIEW = "review"
    USER_ACTION = "user_action"


class Reaction(WireModel):
    emoji: str
    count: int = Field(0, ge=0)
    user_reacted: bool = False


class Activity(WireModel):
    """One entry of a feed; the same id may sit in several feeds at once."""

    id: str
    type: ActivityType
    entity_id: str | None = None
    user_id: str | None = None
    target_user_id: str | None = None
    news_id: str | None = None
    book_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ActivityUpdatedEvent(WireModel):
    entity_id: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class ActivityDeletedEvent(WireModel):
    entity_id: str


class ReactionUpdateEvent(WireModel):
    entity_id: str
    entity_type: str
    comment_id: str | None = None
    reactions: List[Reaction] = Field(default_factory=list)
    action: str | None = None


class CounterUpdateEvent(WireModel):
    """Counter deltas; a field left out of the payload stays None."""

    entity_id: str
    entity_type: str
    comment_count: int | None = None
    reaction_count: int | None = None
    view_count: int | None = None
    review_count: int | None = None


class LastActionsPage(WireModel):
    activities: List[Activity] = Field(default_factory=list)


__all__ = [
    "ActivityType",
    "Reaction",
    "Activity",
    "ActivityUpdatedEvent",
    "ActivityDeletedEvent",
    "ReactionUpdateEvent",
    "CounterUpdateEvent",
    "LastActionsPage",
]
