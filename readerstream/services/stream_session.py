"""Stream page session: feed tabs, room lifecycle and realtime reconciliation."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable

from ..clients.api import ApiClient, ApiError
from ..clients.socket import SocketChannel, get_channel
from ..constants import (
    ALWAYS_ON_FEEDS,
    AUTH_ONLY_FEEDS,
    EVENT_ACTIVITY_DELETED,
    EVENT_ACTIVITY_UPDATED,
    EVENT_COUNTER_UPDATE,
    EVENT_LAST_ACTION,
    EVENT_NEW_ACTIVITY,
    EVENT_REACTION_UPDATE,
    FEED_GLOBAL,
    FEED_LAST_ACTIONS,
    FEED_SHELVES,
    STREAM_FEEDS,
    stream_room,
)
from ..schemas import (
    Activity,
    ActivityDeletedEvent,
    ActivityType,
    ActivityUpdatedEvent,
    CounterUpdateEvent,
    ReactionUpdateEvent,
)
from .cache import PendingRequestTracker, QueryCache, feed_key
from .events import Subscriptions, parse_event
from .notifier import Notifier
from .reconciler import ActivityReconciler

logger = logging.getLogger(__name__)

_ACTIVITY_LABELS = {
    ActivityType.COMMENT: "New comment",
    ActivityType.REVIEW: "New review",
    ActivityType.BOOK: "New book",
}


@dataclass(frozen=True, slots=True)
class ShelfFilters:
    selected_shelf: str | None = None
    selected_books: tuple[str, ...] = ()


@dataclass(slots=True)
class FeedState:
    loading: bool = False
    error: str | None = None
    auth_required: bool = False


class StreamSession:
    """Keeps the stream tabs live while the page is mounted.

    The global and last-actions rooms stay joined for the whole session; the
    personal and shelves rooms follow the active tab and are only joined for
    an authenticated viewer.
    """

    def __init__(
        self,
        api: ApiClient,
        *,
        viewer_id: str | None = None,
        cache: QueryCache | None = None,
        notifier: Notifier | None = None,
        channel_provider: Callable[[], SocketChannel | None] = get_channel,
    ) -> None:
        self.api = api
        self.cache = cache or QueryCache()
        self.notifier = notifier or Notifier()
        self.reconciler = ActivityReconciler(self.cache, viewer_id)
        self.state = FeedState()
        self.tab = FEED_GLOBAL
        self.filters = ShelfFilters()
        self.visible = True

        self._channel_provider = channel_provider
        self._channel: SocketChannel | None = None
        self._subscriptions = Subscriptions()
        self._tab_room: str | None = None
        self._pending = PendingRequestTracker()
        self._mounted = False

    @property
    def viewer_id(self) -> str | None:
        return self.reconciler.viewer_id

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def bound(self) -> bool:
        return self._channel is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def mount(self, initial_tab: str = FEED_GLOBAL) -> None:
        self._check_tab(initial_tab)
        self.tab = initial_tab
        self._mounted = True

        # Whatever was cached while the viewer was elsewhere may be behind
        self.cache.invalidate(feed_key(FEED_GLOBAL))
        if initial_tab in AUTH_ONLY_FEEDS and self.api.is_authenticated:
            self.cache.invalidate(feed_key(initial_tab))

        await self._bind()
        loads = [self.load()]
        if initial_tab != FEED_GLOBAL:
            # Keep the global feed warm for realtime merges
            loads.append(self._load_feed(FEED_GLOBAL, force=False))
        await asyncio.gather(*loads)

    async def activate_tab(self, tab: str) -> None:
        self._check_tab(tab)
        if tab == self.tab:
            return
        if self._mounted:
            await self._release(full=False)
        self.tab = tab
        if self._mounted:
            await self._bind()
        await self.load()

    async def set_visibility(self, visible: bool) -> None:
        was_visible, self.visible = self.visible, visible
        if visible and not was_visible:
            logger.info("Page visible again; refetching %s feed", self.tab)
            await self.refresh()

    async def set_shelf_filters(self, filters: ShelfFilters) -> None:
        if filters == self.filters:
            return
        self.filters = filters
        self.cache.invalidate(feed_key(FEED_SHELVES))
        if self.tab == FEED_SHELVES:
            await self.load()

    async def ensure_bound(self) -> bool:
        """Bind to the socket channel if it was not ready when the session mounted."""

        if self._mounted and self._channel is None:
            await self._bind()
        return self._channel is not None

    async def unmount(self) -> None:
        await self._release(full=True)
        self._mounted = False

    # ------------------------------------------------------------------
    # Data
    # ------------------------------------------------------------------
    def activities(self) -> tuple[Activity, ...]:
        if self.tab in AUTH_ONLY_FEEDS and not self.api.is_authenticated:
            return ()
        view = tuple(self.cache.get(feed_key(self.tab), ()))
        if self.tab == FEED_SHELVES and self.filters.selected_books:
            selected = set(self.filters.selected_books)
            view = tuple(activity for activity in view if activity.book_id in selected)
        return view

    async def load(self, *, force: bool = False) -> tuple[Activity, ...]:
        if self.tab in AUTH_ONLY_FEEDS and not self.api.is_authenticated:
            self.state.auth_required = True
            return ()
        self.state.auth_required = False
        await self._load_feed(self.tab, force=force)
        return self.activities()

    async def refresh(self) -> tuple[Activity, ...]:
        return await self.load(force=True)

    async def _load_feed(self, feed: str, *, force: bool) -> None:
        key = feed_key(feed)
        if not force and not self.cache.is_stale(key):
            return
        active = feed == self.tab
        if active:
            self.state.loading = True
            self.state.error = None
        filters = self.filters if feed == FEED_SHELVES else None
        try:
            activities = await self._pending.run("stream", (feed, filters), lambda: self._fetch(feed, filters))
        except ApiError as exc:
            logger.warning("Loading %s feed failed: %s", feed, exc)
            if active:
                self.state.error = str(exc)
                self.notifier.error("Failed to load activities", str(exc))
            return
        finally:
            if active:
                self.state.loading = False
        self.cache.set(key, tuple(activities))

    async def _fetch(self, feed: str, filters: ShelfFilters | None) -> list[Activity]:
        if feed == FEED_LAST_ACTIONS:
            return await self.api.stream.feed(feed, limit=self.api.settings.last_actions_limit)
        if feed == FEED_SHELVES and filters is not None:
            shelf_ids = [filters.selected_shelf] if filters.selected_shelf else None
            return await self.api.stream.feed(feed, shelf_ids=shelf_ids, book_ids=filters.selected_books)
        return await self.api.stream.feed(feed)

    # ------------------------------------------------------------------
    # Socket binding
    # ------------------------------------------------------------------
    async def _bind(self) -> None:
        channel = self._channel_provider()
        if channel is None:
            logger.warning("Socket channel not ready; stream updates paused until ensure_bound()")
            return
        self._channel = channel

        handlers = {
            EVENT_NEW_ACTIVITY: self._on_new_activity,
            EVENT_ACTIVITY_UPDATED: self._on_activity_updated,
            EVENT_ACTIVITY_DELETED: self._on_activity_deleted,
            EVENT_REACTION_UPDATE: self._on_reaction_update,
            EVENT_COUNTER_UPDATE: self._on_counter_update,
            EVENT_LAST_ACTION: self._on_last_action,
        }
        for event, handler in handlers.items():
            self._subscriptions.add(channel.on(event, handler))

        for feed in ALWAYS_ON_FEEDS:
            await channel.join_room(stream_room(feed))
        if self.tab in AUTH_ONLY_FEEDS and self.api.is_authenticated:
            self._tab_room = stream_room(self.tab)
            await channel.join_room(self._tab_room)

    async def _release(self, *, full: bool) -> None:
        self._subscriptions.dispose_all()
        channel, self._channel = self._channel, None
        if channel is None:
            return
        if self._tab_room is not None:
            await channel.leave_room(self._tab_room)
            self._tab_room = None
        if full:
            for feed in ALWAYS_ON_FEEDS:
                await channel.leave_room(stream_room(feed))

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------
    def _on_new_activity(self, payload: object) -> None:
        activity = parse_event(Activity, payload, EVENT_NEW_ACTIVITY)
        if activity is None:
            return
        self.reconciler.apply_insert(activity)
        self.notifier.info("New activity", _ACTIVITY_LABELS.get(activity.type, "New news"))

    def _on_activity_updated(self, payload: object) -> None:
        event = parse_event(ActivityUpdatedEvent, payload, EVENT_ACTIVITY_UPDATED)
        if event is not None:
            self.reconciler.apply_update(event.entity_id, event.metadata)

    def _on_activity_deleted(self, payload: object) -> None:
        event = parse_event(ActivityDeletedEvent, payload, EVENT_ACTIVITY_DELETED)
        if event is not None:
            self.reconciler.apply_delete(event.entity_id)

    def _on_reaction_update(self, payload: object) -> None:
        event = parse_event(ReactionUpdateEvent, payload, EVENT_REACTION_UPDATE)
        if event is not None:
            self.reconciler.apply_reaction_update(event)

    def _on_counter_update(self, payload: object) -> None:
        event = parse_event(CounterUpdateEvent, payload, EVENT_COUNTER_UPDATE)
        if event is not None:
            self.reconciler.apply_counter_update(event)

    def _on_last_action(self, payload: object) -> None:
        activity = parse_event(Activity, payload, EVENT_LAST_ACTION)
        if activity is None:
            return
        self.reconciler.apply_last_action(activity)
        extra = activity.model_extra or {}
        action_type = extra.get("action_type") or extra.get("actionType") or "activity"
        self.notifier.info("New activity", str(action_type).replace("_", " "))

    @staticmethod
    def _check_tab(tab: str) -> None:
        if tab not in STREAM_FEEDS:
            raise ValueError(f"Unknown stream tab: {tab}")


__all__ = ["FeedState", "ShelfFilters", "StreamSession"]
