"""Endpoints for books, their discussions, news and shelves."""
from __future__ import annotations

from typing import TYPE_CHECKING

from ..schemas import (
    Book,
    Comment,
    CommentCreate,
    News,
    Reaction,
    ReactionResult,
    Review,
    ReviewCreate,
    Shelf,
    ShelfCreate,
)

if TYPE_CHECKING:
    from .api import ApiClient


class BooksApi:
    def __init__(self, client: "ApiClient") -> None:
        self._client = client

    async def get(self, book_id: str) -> Book:
        return await self._client.request_model(Book, "GET", f"/api/books/{book_id}")

    async def search(self, query: str) -> list[Book]:
        return await self._client.request_models(Book, "GET", "/api/books/search", params={"query": query})

    async def comments(self, book_id: str) -> list[Comment]:
        return await self._client.request_models(Comment, "GET", f"/api/books/{book_id}/comments")

    async def reviews(self, book_id: str) -> list[Review]:
        return await self._client.request_models(Review, "GET", f"/api/books/{book_id}/reviews")

    async def track_view(self, book_id: str, view_type: str = "card_view") -> None:
        await self._client.request(
            "POST", f"/api/books/{book_id}/track-view", json={"viewType": view_type}, require_auth=True
        )

    async def add_comment(self, book_id: str, payload: CommentCreate) -> Comment:
        return await self._client.request_model(
            Comment,
            "POST",
            f"/api/books/{book_id}/comments",
            json=payload.to_payload(),
            require_auth=True,
        )

    async def delete_comment(self, comment_id: str, *, moderator: bool = False) -> None:
        """Delete a comment; moderators and admins go through the admin route."""

        path = f"/api/admin/comments/{comment_id}" if moderator else f"/api/comments/{comment_id}"
        await self._client.request("DELETE", path, require_auth=True)

    async def add_review(self, book_id: str, payload: ReviewCreate) -> Review:
        return await self._client.request_model(
            Review,
            "POST",
            f"/api/books/{book_id}/reviews",
            json=payload.to_payload(),
            require_auth=True,
        )

    async def delete_review(self, review_id: str) -> None:
        await self._client.request("DELETE", f"/api/reviews/{review_id}", require_auth=True)

    async def react(self, emoji: str, *, comment_id: str | None = None, review_id: str | None = None) -> ReactionResult:
        """Toggle ``emoji`` on exactly one comment or review."""

        if (comment_id is None) == (review_id is None):
            raise ValueError("Pass exactly one of comment_id or review_id")
        body: dict[str, str] = {"emoji": emoji}
        if comment_id is not None:
            body["commentId"] = comment_id
        else:
            body["reviewId"] = review_id  # type: ignore[assignment]
        data = await self._client.request("POST", "/api/reactions", json=body, require_auth=True)
        return ReactionResult.model_validate(data or {})


class NewsApi:
    def __init__(self, client: "ApiClient") -> None:
        self._client = client

    async def get(self, news_id: str) -> News:
        return await self._client.request_model(News, "GET", f"/api/news/{news_id}")

    async def comments(self, news_id: str) -> list[Comment]:
        return await self._client.request_models(Comment, "GET", f"/api/news/{news_id}/comments")

    async def add_comment(self, news_id: str, payload: CommentCreate) -> Comment:
        return await self._client.request_model(
            Comment,
            "POST",
            f"/api/news/{news_id}/comments",
            json=payload.to_payload(),
            require_auth=True,
        )

    async def reactions(self, news_id: str) -> list[Reaction]:
        return await self._client.request_models(Reaction, "GET", f"/api/news/{news_id}/reactions")

    async def react(self, news_id: str, emoji: str) -> ReactionResult:
        data = await self._client.request(
            "POST",
            f"/api/news/{news_id}/reactions",
            json={"emoji": emoji},
            require_auth=True,
        )
        return ReactionResult.model_validate(data or {})

    async def react_to_comment(self, comment_id: str, emoji: str) -> ReactionResult:
        data = await self._client.request(
            "POST",
            f"/api/news/comments/{comment_id}/reactions",
            json={"emoji": emoji},
            require_auth=True,
        )
        return ReactionResult.model_validate(data or {})


class ShelvesApi:
    def __init__(self, client: "ApiClient") -> None:
        self._client = client

    async def list(self) -> list[Shelf]:
        return await self._client.request_models(Shelf, "GET", "/api/shelves", require_auth=True)

    async def create(self, payload: ShelfCreate) -> Shelf:
        return await self._client.request_model(
            Shelf, "POST", "/api/shelves", json=payload.to_payload(), require_auth=True
        )

    async def update(self, shelf_id: str, payload: ShelfCreate) -> Shelf:
        return await self._client.request_model(
            Shelf, "PUT", f"/api/shelves/{shelf_id}", json=payload.to_payload(), require_auth=True
        )

    async def delete(self, shelf_id: str) -> None:
        await self._client.request("DELETE", f"/api/shelves/{shelf_id}", require_auth=True)

    async def add_book(self, shelf_id: str, book_id: str) -> None:
        await self._client.request("POST", f"/api/shelves/{shelf_id}/books/{book_id}", require_auth=True)

    async def remove_book(self, shelf_id: str, book_id: str) -> None:
        await self._client.request("DELETE", f"/api/shelves/{shelf_id}/books/{book_id}", require_auth=True)


__all__ = ["BooksApi", "NewsApi", "ShelvesApi"]
