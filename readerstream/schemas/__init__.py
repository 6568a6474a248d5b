"""Convenience exports for schema layer."""
from .base import RequestModel, WireModel
from .groups import (
    Channel,
    ChannelMessageDeletedEvent,
    ChannelMessageNewEvent,
    Group,
    GroupCreate,
    GroupPrivacy,
    GroupRole,
    GroupRoleResponse,
)
from .library import (
    Book,
    Comment,
    CommentCreate,
    News,
    ReactionResult,
    Review,
    ReviewCreate,
    Shelf,
    ShelfCreate,
)
from .messages import (
    Attachment,
    Conversation,
    LastMessage,
    Message,
    MessageDeletedEvent,
    MessageNewEvent,
    MessageSendRequest,
    NotificationEvent,
    TypingEvent,
    UserSummary,
)
from .profiles import (
    AdminUser,
    AdminUserPage,
    ImpersonationResponse,
    Pagination,
    PasswordChangeRequest,
    Profile,
    ProfileUpdateRequest,
)
from .stream import (
    Activity,
    ActivityDeletedEvent,
    ActivityType,
    ActivityUpdatedEvent,
    CounterUpdateEvent,
    LastActionsPage,
    Reaction,
    ReactionUpdateEvent,
)

__all__ = [
    "RequestModel",
    "WireModel",
    "Activity",
    "ActivityDeletedEvent",
    "ActivityType",
    "ActivityUpdatedEvent",
    "CounterUpdateEvent",
    "LastActionsPage",
    "Reaction",
    "ReactionUpdateEvent",
    "Attachment",
    "Conversation",
    "LastMessage",
    "Message",
    "MessageDeletedEvent",
    "MessageNewEvent",
    "MessageSendRequest",
    "NotificationEvent",
    "TypingEvent",
    "UserSummary",
    "Channel",
    "ChannelMessageDeletedEvent",
    "ChannelMessageNewEvent",
    "Group",
    "GroupCreate",
    "GroupPrivacy",
    "GroupRole",
    "GroupRoleResponse",
    "Book",
    "Comment",
    "CommentCreate",
    "News",
    "ReactionResult",
    "Review",
    "ReviewCreate",
    "Shelf",
    "ShelfCreate",
    "AdminUser",
    "AdminUserPage",
    "ImpersonationResponse",
    "Pagination",
    "PasswordChangeRequest",
    "Profile",
    "ProfileUpdateRequest",
]
