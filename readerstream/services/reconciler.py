"""Merge functions that apply realtime stream events to cached feed views."""
from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Sequence

from ..constants import (
    COUNTER_FIELDS,
    FEED_GLOBAL,
    FEED_LAST_ACTIONS,
    FEED_PERSONAL,
    FEED_SHELVES,
)
from ..schemas import (
    Activity,
    ActivityType,
    CounterUpdateEvent,
    Reaction,
    ReactionUpdateEvent,
)
from .cache import QueryCache, feed_key

logger = logging.getLogger(__name__)

View = tuple[Activity, ...]

# Views that follow edits, reactions, counters and deletes
MERGED_FEEDS = (FEED_GLOBAL, FEED_PERSONAL, FEED_SHELVES)


def _replace_matching(view: Sequence[Activity], predicate, transform) -> Sequence[Activity]:
    changed = False
    merged: list[Activity] = []
    for activity in view:
        if predicate(activity):
            merged.append(transform(activity))
            changed = True
        else:
            merged.append(activity)
    return tuple(merged) if changed else view


def merge_insert(view: Sequence[Activity], activity: Activity) -> Sequence[Activity]:
    """Prepend ``activity`` unless an entry with the same id is already there."""

    if any(existing.id == activity.id for existing in view):
        return view
    return (activity,) + tuple(view)


def merge_update(view: Sequence[Activity], entity_id: str, metadata: Mapping[str, Any]) -> Sequence[Activity]:
    return _replace_matching(
        view,
        lambda activity: activity.entity_id == entity_id,
        lambda activity: activity.model_copy(update={"metadata": {**activity.metadata, **metadata}}),
    )


def _reaction_target(activity: Activity, event: ReactionUpdateEvent) -> bool:
    if event.entity_type == ActivityType.COMMENT.value:
        return activity.entity_id == event.entity_id or (
            event.comment_id is not None and activity.id == event.comment_id
        )
    if event.entity_type == ActivityType.REVIEW.value:
        return activity.entity_id == event.entity_id
    if event.entity_type == ActivityType.NEWS.value:
        # Books and news can share ids
        return activity.entity_id == event.entity_id and activity.type is ActivityType.NEWS
    return False


def merge_reaction_update(view: Sequence[Activity], event: ReactionUpdateEvent) -> Sequence[Activity]:
    """Replace ``metadata["reactions"]`` on matching entries, leaving everything else as is."""

    reactions = [reaction.to_payload() for reaction in event.reactions]
    return _replace_matching(
        view,
        lambda activity: _reaction_target(activity, event),
        lambda activity: activity.model_copy(update={"metadata": {**activity.metadata, "reactions": reactions}}),
    )


def _counter_target(activity: Activity, event: CounterUpdateEvent) -> bool:
    target = event.entity_id
    if target not in (activity.entity_id, activity.news_id, activity.book_id):
        return False
    return activity.type.value == event.entity_type


def merge_counter_update(view: Sequence[Activity], event: CounterUpdateEvent) -> Sequence[Activity]:
    """Overwrite the counters the event carries; counters it leaves out are untouched."""

    counters = {name: getattr(event, name) for name in COUNTER_FIELDS if getattr(event, name) is not None}
    if not counters:
        return view
    return _replace_matching(
        view,
        lambda activity: _counter_target(activity, event),
        lambda activity: activity.model_copy(update={"metadata": {**activity.metadata, **counters}}),
    )


def merge_delete(view: Sequence[Activity], entity_id: str) -> Sequence[Activity]:
    kept = tuple(activity for activity in view if activity.entity_id != entity_id)
    return view if len(kept) == len(view) else kept


def route_insert(activity: Activity, viewer_id: str | None) -> tuple[str, ...]:
    """Feeds a newly published activity belongs to.

    Shelf membership is deliberately permissive: anything tied to a book goes
    in, and the shelf/book filter is applied when the view is read.
    """

    feeds = [FEED_GLOBAL, FEED_LAST_ACTIONS]
    if viewer_id is not None and activity.user_id == viewer_id:
        feeds.append(FEED_PERSONAL)
    if activity.book_id:
        feeds.append(FEED_SHELVES)
    return tuple(feeds)


def toggle_reaction(reactions: Sequence[Reaction], emoji: str) -> tuple[Reaction, ...]:
    """Optimistically flip the viewer's ``emoji`` reaction.

    Counts never drop below zero and an emoji appears at most once; an emoji
    whose count reaches zero is removed.
    """

    toggled: list[Reaction] = []
    found = False
    for reaction in reactions:
        if reaction.emoji != emoji:
            toggled.append(reaction)
            continue
        found = True
        if reaction.user_reacted:
            count = max(reaction.count - 1, 0)
            if count:
                toggled.append(reaction.model_copy(update={"count": count, "user_reacted": False}))
        else:
            toggled.append(reaction.model_copy(update={"count": reaction.count + 1, "user_reacted": True}))
    if not found:
        toggled.append(Reaction(emoji=emoji, count=1, user_reacted=True))
    return tuple(toggled)


class ActivityReconciler:
    """Applies one stream event to every cached feed view it affects."""

    def __init__(self, cache: QueryCache, viewer_id: str | None = None) -> None:
        self.cache = cache
        self.viewer_id = viewer_id

    def apply_insert(self, activity: Activity) -> tuple[str, ...]:
        feeds = route_insert(activity, self.viewer_id)
        for feed in feeds:
            self.cache.update(feed_key(feed), lambda view: merge_insert(view, activity))
        logger.debug("Inserted activity %s into %s", activity.id, ", ".join(feeds))
        return feeds

    def apply_last_action(self, activity: Activity) -> None:
        self.cache.update(feed_key(FEED_LAST_ACTIONS), lambda view: merge_insert(view, activity))

    def apply_update(self, entity_id: str, metadata: Mapping[str, Any]) -> None:
        self._update_cached(lambda view: merge_update(view, entity_id, metadata))

    def apply_reaction_update(self, event: ReactionUpdateEvent) -> None:
        self._update_cached(lambda view: merge_reaction_update(view, event))

    def apply_counter_update(self, event: CounterUpdateEvent) -> None:
        self._update_cached(lambda view: merge_counter_update(view, event))

    def apply_delete(self, entity_id: str) -> None:
        self._update_cached(lambda view: merge_delete(view, entity_id))

    def _update_cached(self, fn: Callable[[View], View]) -> None:
        # Last actions is an append-only log; only the browsable feeds follow edits
        for feed in MERGED_FEEDS:
            key = feed_key(feed)
            if self.cache.get_entry(key) is not None:
                self.cache.update(key, fn)


__all__ = [
    "ActivityReconciler",
    "View",
    "merge_counter_update",
    "merge_delete",
    "merge_insert",
    "merge_reaction_update",
    "merge_update",
    "route_insert",
    "toggle_reaction",
]
