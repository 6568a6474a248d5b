"""Endpoints for the activity feeds."""
from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from ..constants import AUTH_ONLY_FEEDS, FEED_LAST_ACTIONS, STREAM_FEEDS
from ..schemas import Activity, LastActionsPage

if TYPE_CHECKING:
    from .api import ApiClient


def _join_ids(values: Sequence[str] | None) -> str | None:
    cleaned = [value for value in (values or ()) if value]
    return ",".join(cleaned) if cleaned else None


class StreamApi:
    def __init__(self, client: "ApiClient") -> None:
        self._client = client

    async def feed(
        self,
        feed: str,
        *,
        shelf_ids: Sequence[str] | None = None,
        book_ids: Sequence[str] | None = None,
        limit: int | None = None,
    ) -> list[Activity]:
        """Fetch one feed, newest first.

        The last-actions endpoint wraps its entries in ``{"activities": [...]}``;
        the other feeds return a bare list.
        """

        if feed not in STREAM_FEEDS:
            raise ValueError(f"Unknown feed: {feed}")
        path = f"/api/stream/{feed}"
        require_auth = feed in AUTH_ONLY_FEEDS
        if feed == FEED_LAST_ACTIONS:
            page = await self._client.request_model(LastActionsPage, "GET", path, params={"limit": limit})
            return list(page.activities)
        params = {
            "shelfIds": _join_ids(shelf_ids),
            "bookIds": _join_ids(book_ids),
            "limit": limit,
        }
        return await self._client.request_models(Activity, "GET", path, params=params, require_auth=require_auth)


__all__ = ["StreamApi"]
