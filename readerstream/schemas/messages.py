"""Schemas used by private messaging."""
from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import Field

from .base import RequestModel, WireModel


class UserSummary(WireModel):
    id: str
    username: str | None = None
    full_name: str | None = None
    avatar_url: str | None = None


class LastMessage(WireModel):
    content: str | None = None
    created_at: datetime | None = None


class Conversation(WireModel):
    id: str
    other_user: UserSummary | None = None
    last_message: LastMessage | None = None
    updated_at: datetime | None = None
    unread_count: int = 0


class Attachment(WireModel):
    url: str
    filename: str | None = None
    file_size: int | None = None
    mime_type: str | None = None
    thumbnail_url: str | None = None


class Message(WireModel):
    id: str
    sender_id: str
    content: str = ""
    created_at: datetime | None = None
    read_status: bool = False
    sender_username: str | None = None
    sender_full_name: str | None = None
    sender_avatar_url: str | None = None
    quoted_message_id: str | None = None
    quoted_text: str | None = None
    quoted_sender_name: str | None = None
    quoted_message_content: str | None = None
    attachments: List[Attachment] = Field(default_factory=list)


class MessageSendRequest(RequestModel):
    recipient_id: str | None = None
    conversation_id: str | None = None
    content: str = Field("", max_length=5000)
    quoted_message_id: str | None = None
    quoted_text: str | None = None
    attachments: List[str] = Field(default_factory=list)


class MessageNewEvent(WireModel):
    conversation_id: str
    message: Message


class MessageDeletedEvent(WireModel):
    message_id: str
    conversation_id: str


class TypingEvent(WireModel):
    user_id: str
    conversation_id: str
    typing: bool = False


class NotificationEvent(WireModel):
    type: str
    conversation_id: str | None = None
    sender_id: str | None = None


__all__ = [
    "UserSummary",
    "LastMessage",
    "Conversation",
    "Attachment",
    "Message",
    "MessageSendRequest",
    "MessageNewEvent",
    "MessageDeletedEvent",
    "TypingEvent",
    "NotificationEvent",
]
