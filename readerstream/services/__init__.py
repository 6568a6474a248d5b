"""Convenience exports for service layer."""
from .cache import CacheEntry, PendingRequestTracker, QueryCache, ResourceCache, feed_key
from .discussions import BookDiscussion, NewsDiscussion, can_moderate
from .messaging_session import MessagingSession, MessagingTab
from .notifier import Notice, NoticeLevel, Notifier
from .reconciler import (
    ActivityReconciler,
    merge_counter_update,
    merge_delete,
    merge_insert,
    merge_reaction_update,
    merge_update,
    route_insert,
    toggle_reaction,
)
from .shelves import ShelfService
from .stream_session import ShelfFilters, StreamSession

__all__ = [
    "CacheEntry",
    "PendingRequestTracker",
    "QueryCache",
    "ResourceCache",
    "feed_key",
    "BookDiscussion",
    "NewsDiscussion",
    "can_moderate",
    "MessagingSession",
    "MessagingTab",
    "Notice",
    "NoticeLevel",
    "Notifier",
    "ActivityReconciler",
    "merge_counter_update",
    "merge_delete",
    "merge_insert",
    "merge_reaction_update",
    "merge_update",
    "route_insert",
    "toggle_reaction",
    "ShelfService",
    "ShelfFilters",
    "StreamSession",
]
