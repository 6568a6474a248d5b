"""Project-wide constant values: feed names, socket events and room topics."""
from __future__ import annotations

# Feeds shown on the stream page
FEED_GLOBAL = "global"
FEED_PERSONAL = "personal"
FEED_SHELVES = "shelves"
FEED_LAST_ACTIONS = "last-actions"

STREAM_FEEDS = (FEED_GLOBAL, FEED_PERSONAL, FEED_SHELVES, FEED_LAST_ACTIONS)
AUTH_ONLY_FEEDS = frozenset({FEED_PERSONAL, FEED_SHELVES})
# Rooms kept joined for the whole session, whatever tab is visible
ALWAYS_ON_FEEDS = (FEED_GLOBAL, FEED_LAST_ACTIONS)

# Server -> client events
EVENT_NEW_ACTIVITY = "stream:new-activity"
EVENT_ACTIVITY_UPDATED = "stream:activity-updated"
EVENT_ACTIVITY_DELETED = "stream:activity-deleted"
EVENT_REACTION_UPDATE = "stream:reaction-update"
EVENT_COUNTER_UPDATE = "stream:counter-update"
EVENT_LAST_ACTION = "stream:last-action"

EVENT_MESSAGE_NEW = "message:new"
EVENT_MESSAGE_DELETED = "message:deleted"
EVENT_USER_TYPING = "user:typing"
EVENT_NOTIFICATION_NEW = "notification:new"
EVENT_CHANNEL_MESSAGE_NEW = "channel:message:new"
EVENT_CHANNEL_MESSAGE_DELETED = "channel:message:deleted"

# Transport lifecycle events
EVENT_CONNECT = "connect"
EVENT_DISCONNECT = "disconnect"
EVENT_CONNECT_ERROR = "connect_error"

# Room topics; the wire event is "join:<topic>" / "leave:<topic>"
ROOM_CONVERSATION = "conversation"
ROOM_CHANNEL = "channel"


def stream_room(feed: str) -> str:
    return f"stream:{feed}"


# Activity metadata counters a stream:counter-update may overwrite
COUNTER_FIELDS = ("comment_count", "reaction_count", "view_count", "review_count")

ACCESS_LEVEL_ADMIN = "admin"
ACCESS_LEVEL_MODERATOR = "moder"
MODERATION_ACCESS_LEVELS = frozenset({ACCESS_LEVEL_ADMIN, ACCESS_LEVEL_MODERATOR})

NOTIFICATION_NEW_MESSAGE = "new_message"

__all__ = [
    "FEED_GLOBAL",
    "FEED_PERSONAL",
    "FEED_SHELVES",
    "FEED_LAST_ACTIONS",
    "STREAM_FEEDS",
    "AUTH_ONLY_FEEDS",
    "ALWAYS_ON_FEEDS",
    "EVENT_NEW_ACTIVITY",
    "EVENT_ACTIVITY_UPDATED",
    "EVENT_ACTIVITY_DELETED",
    "EVENT_REACTION_UPDATE",
    "EVENT_COUNTER_UPDATE",
    "EVENT_LAST_ACTION",
    "EVENT_MESSAGE_NEW",
    "EVENT_MESSAGE_DELETED",
    "EVENT_USER_TYPING",
    "EVENT_NOTIFICATION_NEW",
    "EVENT_CHANNEL_MESSAGE_NEW",
    "EVENT_CHANNEL_MESSAGE_DELETED",
    "EVENT_CONNECT",
    "EVENT_DISCONNECT",
    "EVENT_CONNECT_ERROR",
    "ROOM_CONVERSATION",
    "ROOM_CHANNEL",
    "stream_room",
    "COUNTER_FIELDS",
    "ACCESS_LEVEL_ADMIN",
    "ACCESS_LEVEL_MODERATOR",
    "MODERATION_ACCESS_LEVELS",
    "NOTIFICATION_NEW_MESSAGE",
]
