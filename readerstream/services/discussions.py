"""Book and news detail sessions: comments, reviews and reactions."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Sequence

from ..clients.api import ApiClient, ApiError, describe_error
from ..constants import MODERATION_ACCESS_LEVELS
from ..schemas import Book, Comment, CommentCreate, News, Reaction, Review, ReviewCreate
from .cache import COMMENTS, REVIEWS, CacheKey, ResourceCache
from .notifier import Notifier
from .reconciler import toggle_reaction

logger = logging.getLogger(__name__)


def can_moderate(access_level: str | None) -> bool:
    return access_level in MODERATION_ACCESS_LEVELS


async def _settle(*awaitables: Awaitable[Any]) -> list[Any]:
    """Await independently; API failures come back as values, anything else is raised."""

    results = await asyncio.gather(*awaitables, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException) and not isinstance(result, ApiError):
            raise result
    return results


@dataclass(slots=True)
class BookDetailState:
    book: Book | None = None
    comments: tuple[Comment, ...] = ()
    reviews: tuple[Review, ...] = ()
    loading: bool = False
    error: str | None = None


class BookDiscussion:
    """Comments and reviews for one book, served through the shared resource cache."""

    def __init__(
        self,
        api: ApiClient,
        *,
        cache: ResourceCache | None = None,
        notifier: Notifier | None = None,
        access_level: str | None = None,
    ) -> None:
        self.api = api
        self.cache = cache or ResourceCache(stale_after=api.settings.cache_stale_after)
        self.notifier = notifier or Notifier()
        self.access_level = access_level
        self.state = BookDetailState()
        self.book_id: str | None = None
        self._dispose_listener = self.cache.queries.listen(self._on_cache_change)

    def close(self) -> None:
        self._dispose_listener()

    async def load(self, book_id: str) -> None:
        self.book_id = book_id
        self.state = BookDetailState(loading=True)
        try:
            book = await self.api.books.get(book_id)
        except ApiError as exc:
            logger.warning("Loading book %s failed: %s", book_id, exc)
            self.state.error = describe_error(exc, "Failed to load book")
            self.state.loading = False
            self.notifier.error("Error", "Failed to load book data")
            return
        self.state.book = book
        await self.load_discussion()
        self.state.loading = False
        try:
            await self.api.books.track_view(book_id)
        except ApiError as exc:
            logger.info("Tracking view of book %s failed: %s", book_id, exc)

    async def load_discussion(self, *, force: bool = False) -> None:
        """Fetch comments and reviews; either one failing leaves the other intact."""

        book_id = self._require_book()
        comments, reviews = await _settle(
            self._cached(COMMENTS, book_id, self._fetch_comments, force=force),
            self._cached(REVIEWS, book_id, self._fetch_reviews, force=force),
        )
        if book_id != self.book_id:
            return
        if isinstance(comments, ApiError):
            logger.warning("Fetching comments for %s failed: %s", book_id, comments)
        else:
            self.state.comments = comments
        if isinstance(reviews, ApiError):
            logger.warning("Fetching reviews for %s failed: %s", book_id, reviews)
        else:
            self.state.reviews = reviews

    async def post_comment(self, content: str, *, attachments: Sequence[str] = ()) -> Comment | None:
        book_id = self._require_book()
        text = content.strip()
        if not text:
            return None
        try:
            comment = await self.api.books.add_comment(book_id, CommentCreate(content=text, attachments=list(attachments)))
        except ApiError as exc:
            self.notifier.error("Error", describe_error(exc, "Failed to add comment"))
            return None
        self._store(COMMENTS, (comment,) + self.state.comments)
        self.notifier.success("Comment added")
        return comment

    async def delete_comment(self, comment_id: str) -> bool:
        try:
            await self.api.books.delete_comment(comment_id, moderator=can_moderate(self.access_level))
        except ApiError as exc:
            self.notifier.error("Error", describe_error(exc, "Failed to delete comment"))
            return False
        self._store(COMMENTS, tuple(c for c in self.state.comments if c.id != comment_id))
        self.notifier.success("Comment deleted")
        return True

    async def react_to_comment(self, comment_id: str, emoji: str) -> None:
        try:
            await self.api.books.react(emoji, comment_id=comment_id)
        except ApiError as exc:
            self.notifier.error("Error", describe_error(exc, "Failed to add reaction"))
            return
        await self.load_discussion(force=True)

    async def post_review(self, rating: int, content: str) -> Review | None:
        book_id = self._require_book()
        try:
            review = await self.api.books.add_review(book_id, ReviewCreate(rating=rating, content=content.strip()))
        except ApiError as exc:
            self.notifier.error("Error", describe_error(exc, "Failed to add review"))
            return None
        self._store(REVIEWS, (review,) + self.state.reviews)
        await self._refresh_book()
        self.notifier.success("Review added")
        return review

    async def react_to_review(self, review_id: str, emoji: str) -> None:
        """Toggle locally first, then take the server's reviews as the truth."""

        previous = self.state.reviews
        self._store(
            REVIEWS,
            tuple(
                review.model_copy(update={"reactions": list(toggle_reaction(review.reactions, emoji))})
                if review.id == review_id
                else review
                for review in previous
            ),
        )
        try:
            await self.api.books.react(emoji, review_id=review_id)
        except ApiError as exc:
            self._store(REVIEWS, previous)
            self.notifier.error("Error", describe_error(exc, "Failed to add reaction"))
            return
        await self.load_discussion(force=True)

    async def delete_review(self, review_id: str) -> bool:
        previous = self.state.reviews
        self._store(REVIEWS, tuple(review for review in previous if review.id != review_id))
        try:
            await self.api.books.delete_review(review_id)
        except ApiError as exc:
            self._store(REVIEWS, previous)
            self.notifier.error("Error", describe_error(exc, "Failed to delete review"))
            return False
        await self._refresh_book()
        self.notifier.success("Review deleted")
        return True

    async def _refresh_book(self) -> None:
        book_id = self._require_book()
        try:
            book = await self.api.books.get(book_id)
        except ApiError as exc:
            logger.warning("Refreshing book %s failed: %s", book_id, exc)
            return
        if book_id == self.book_id:
            self.state.book = book

    async def _fetch_comments(self) -> tuple[Comment, ...]:
        return tuple(await self.api.books.comments(self._require_book()))

    async def _fetch_reviews(self) -> tuple[Review, ...]:
        return tuple(await self.api.books.reviews(self._require_book()))

    async def _cached(self, kind: str, key: str, fetch, *, force: bool) -> Any:
        if force:
            return await self.cache.refresh(kind, key, fetch)
        return await self.cache.load(kind, key, fetch)

    def _store(self, kind: str, value: tuple) -> None:
        self.cache.queries.set((kind, self._require_book()), value)

    def _on_cache_change(self, key: CacheKey) -> None:
        if self.book_id is None or key[1:] != (self.book_id,):
            return
        if key[0] == COMMENTS:
            self.state.comments = tuple(self.cache.queries.get(key, ()))
        elif key[0] == REVIEWS:
            self.state.reviews = tuple(self.cache.queries.get(key, ()))

    def _require_book(self) -> str:
        if self.book_id is None:
            raise RuntimeError("No book loaded")
        return self.book_id


@dataclass(slots=True)
class NewsDetailState:
    news: News | None = None
    comments: tuple[Comment, ...] = ()
    reactions: tuple[Reaction, ...] = ()
    loading: bool = False
    error: str | None = None


class NewsDiscussion:
    """A news item with its comments and reactions.

    Reaction lists always come from the server's aggregate; nothing is counted
    locally.
    """

    def __init__(self, api: ApiClient, *, notifier: Notifier | None = None, access_level: str | None = None) -> None:
        self.api = api
        self.notifier = notifier or Notifier()
        self.access_level = access_level
        self.state = NewsDetailState()
        self.news_id: str | None = None

    async def load(self, news_id: str) -> None:
        self.news_id = news_id
        self.state = NewsDetailState(loading=True)
        news, comments, reactions = await _settle(
            self.api.news.get(news_id),
            self.api.news.comments(news_id),
            self.api.news.reactions(news_id),
        )
        self.state.loading = False
        if isinstance(news, ApiError):
            logger.warning("Loading news %s failed: %s", news_id, news)
            self.state.error = "News not found" if getattr(news, "is_not_found", False) else str(news)
            return
        self.state.news = news
        if isinstance(comments, ApiError):
            logger.warning("Fetching comments for news %s failed: %s", news_id, comments)
        else:
            self.state.comments = tuple(comments)
        if isinstance(reactions, ApiError):
            logger.warning("Fetching reactions for news %s failed: %s", news_id, reactions)
        else:
            self.state.reactions = tuple(reactions)

    async def post_comment(self, content: str, *, attachments: Sequence[str] = ()) -> Comment | None:
        news_id = self._require_news()
        text = content.strip()
        if not text:
            return None
        try:
            comment = await self.api.news.add_comment(news_id, CommentCreate(content=text, attachments=list(attachments)))
        except ApiError as exc:
            logger.warning("Posting comment on news %s failed: %s", news_id, exc)
            self.notifier.error("Error", describe_error(exc, "Failed to add comment"))
            return None
        self.state.comments = (comment,) + self.state.comments
        if self.state.news is not None:
            self.state.news = self.state.news.model_copy(update={"comment_count": self.state.news.comment_count + 1})
        return comment

    async def delete_comment(self, comment_id: str) -> bool:
        try:
            await self.api.books.delete_comment(comment_id, moderator=can_moderate(self.access_level))
        except ApiError as exc:
            logger.warning("Deleting news comment %s failed: %s", comment_id, exc)
            self.notifier.error("Error", describe_error(exc, "Failed to delete comment"))
            return False
        self.state.comments = tuple(c for c in self.state.comments if c.id != comment_id)
        if self.state.news is not None:
            # Resync with what is actually listed
            self.state.news = self.state.news.model_copy(update={"comment_count": len(self.state.comments)})
        return True

    async def react(self, emoji: str) -> None:
        news_id = self._require_news()
        try:
            result = await self.api.news.react(news_id, emoji)
        except ApiError as exc:
            logger.warning("Reacting to news %s failed: %s", news_id, exc)
            self.notifier.error("Error", describe_error(exc, "Failed to add reaction"))
            return
        if result.reactions is None:
            return
        self.state.reactions = tuple(result.reactions)
        if self.state.news is not None:
            total = sum(reaction.count for reaction in result.reactions)
            self.state.news = self.state.news.model_copy(update={"reaction_count": total})

    async def react_to_comment(self, comment_id: str, emoji: str) -> None:
        news_id = self._require_news()
        try:
            await self.api.news.react_to_comment(comment_id, emoji)
            comments = await self.api.news.comments(news_id)
        except ApiError as exc:
            logger.warning("Reacting to news comment %s failed: %s", comment_id, exc)
            self.notifier.error("Error", describe_error(exc, "Failed to add reaction"))
            return
        if news_id == self.news_id:
            self.state.comments = tuple(comments)

    def _require_news(self) -> str:
        if self.news_id is None:
            raise RuntimeError("No news item loaded")
        return self.news_id


__all__ = [
    "BookDetailState",
    "BookDiscussion",
    "NewsDetailState",
    "NewsDiscussion",
    "can_moderate",
]
