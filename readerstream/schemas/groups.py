"""Schemas for groups, their channels and channel events."""
from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import Field

from .base import RequestModel, WireModel
from .messages import Message


class GroupPrivacy(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class GroupRole(str, Enum):
    ADMINISTRATOR = "administrator"
    MODERATOR = "moderator"
    MEMBER = "member"
    NONE = "none"


class Group(WireModel):
    id: str
    name: str
    description: str | None = None
    creator_id: str | None = None
    privacy: GroupPrivacy = GroupPrivacy.PUBLIC
    unread_count: int = 0
    member_count: int | None = None
    created_at: datetime | None = None


class GroupCreate(RequestModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    privacy: GroupPrivacy = GroupPrivacy.PUBLIC


class Channel(WireModel):
    id: str
    group_id: str
    name: str
    description: str | None = None
    display_order: int = 0
    created_at: datetime | None = None


class GroupRoleResponse(WireModel):
    role: GroupRole | None = None


class ChannelMessageNewEvent(WireModel):
    channel_id: str
    group_id: str
    message: Message


class ChannelMessageDeletedEvent(WireModel):
    message_id: str
    channel_id: str


__all__ = [
    "GroupPrivacy",
    "GroupRole",
    "Group",
    "GroupCreate",
    "Channel",
    "GroupRoleResponse",
    "ChannelMessageNewEvent",
    "ChannelMessageDeletedEvent",
]
