"""The viewer's shelves, cached alongside book discussions."""
from __future__ import annotations

import logging

from ..clients.api import ApiClient, ApiError, describe_error
from ..schemas import Shelf, ShelfCreate
from .cache import SHELVES, ResourceCache
from .notifier import Notifier

logger = logging.getLogger(__name__)


class ShelfService:
    """Shelf list plus the book add/remove operations.

    A book's ``shelf_count`` belongs to the server; nothing here touches it.
    """

    def __init__(
        self,
        api: ApiClient,
        *,
        cache: ResourceCache | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self.api = api
        self.cache = cache or ResourceCache(stale_after=api.settings.cache_stale_after)
        self.notifier = notifier or Notifier()

    @property
    def shelves(self) -> tuple[Shelf, ...]:
        return tuple(self.cache.queries.get((SHELVES, None), ()))

    def find(self, shelf_id: str) -> Shelf | None:
        return next((shelf for shelf in self.shelves if shelf.id == shelf_id), None)

    async def list_shelves(self, *, force: bool = False) -> tuple[Shelf, ...]:
        if not self.api.is_authenticated:
            return ()
        try:
            if force:
                return await self.cache.refresh(SHELVES, None, self._fetch)
            return await self.cache.load(SHELVES, None, self._fetch)
        except ApiError as exc:
            logger.warning("Fetching shelves failed: %s", exc)
            self.notifier.error("Error", describe_error(exc, "Failed to fetch shelves"))
            return self.shelves

    async def create_shelf(self, name: str, *, description: str | None = None, color: str | None = None) -> Shelf | None:
        try:
            shelf = await self.api.shelves.create(ShelfCreate(name=name, description=description, color=color))
        except ApiError as exc:
            self.notifier.error("Error", describe_error(exc, "Failed to create shelf"))
            return None
        self._store(self.shelves + (shelf,))
        return shelf

    async def update_shelf(self, shelf_id: str, *, name: str, description: str | None = None, color: str | None = None) -> Shelf | None:
        try:
            updated = await self.api.shelves.update(shelf_id, ShelfCreate(name=name, description=description, color=color))
        except ApiError as exc:
            self.notifier.error("Error", describe_error(exc, "Failed to update shelf"))
            return None
        self._store(tuple(updated if shelf.id == shelf_id else shelf for shelf in self.shelves))
        return updated

    async def delete_shelf(self, shelf_id: str) -> bool:
        try:
            await self.api.shelves.delete(shelf_id)
        except ApiError as exc:
            self.notifier.error("Error", describe_error(exc, "Failed to delete shelf"))
            return False
        self._store(tuple(shelf for shelf in self.shelves if shelf.id != shelf_id))
        return True

    async def add_book(self, shelf_id: str, book_id: str) -> bool:
        """Put a book on a shelf; a book already there is left alone without a request."""

        shelf = self.find(shelf_id)
        if shelf is not None and book_id in shelf.book_ids:
            logger.debug("Book %s already on shelf %s", book_id, shelf_id)
            return False
        try:
            await self.api.shelves.add_book(shelf_id, book_id)
        except ApiError as exc:
            self.notifier.error("Error", describe_error(exc, "Failed to update shelf"))
            return False
        self._store(
            tuple(
                s.model_copy(update={"book_ids": [*s.book_ids, book_id]}) if s.id == shelf_id else s
                for s in self.shelves
            )
        )
        self.notifier.success("Book added", "The book was added to the shelf")
        return True

    async def remove_book(self, shelf_id: str, book_id: str) -> bool:
        try:
            await self.api.shelves.remove_book(shelf_id, book_id)
        except ApiError as exc:
            self.notifier.error("Error", describe_error(exc, "Failed to update shelf"))
            return False
        self._store(
            tuple(
                s.model_copy(update={"book_ids": [b for b in s.book_ids if b != book_id]}) if s.id == shelf_id else s
                for s in self.shelves
            )
        )
        self.notifier.success("Book removed", "The book was removed from the shelf")
        return True

    async def _fetch(self) -> tuple[Shelf, ...]:
        return tuple(await self.api.shelves.list())

    def _store(self, shelves: tuple[Shelf, ...]) -> None:
        self.cache.queries.set((SHELVES, None), shelves)


__all__ = ["ShelfService"]
