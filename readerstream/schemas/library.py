"""Schemas for books, shelves, news and their discussions."""
from __future__ import annotations

from datetime import datetime
from typing import Any, List

from pydantic import Field

from .base import RequestModel, WireModel
from .stream import Reaction


class Book(WireModel):
    id: str
    title: str
    author: str | None = None
    description: str | None = None
    cover_image_url: str | None = None
    genre: str | None = None
    rating: float | None = None
    user_id: str | None = None
    # Maintained by the server only
    shelf_count: int = 0
    comment_count: int | None = None
    review_count: int | None = None
    uploaded_at: datetime | None = None


class Comment(WireModel):
    id: str
    user_id: str | None = None
    book_id: str | None = None
    news_id: str | None = None
    author: str | None = None
    avatar_url: str | None = None
    content: str
    created_at: datetime | None = None
    reactions: List[Reaction] = Field(default_factory=list)
    attachment_metadata: dict[str, Any] | None = None


class CommentCreate(RequestModel):
    content: str = Field(..., min_length=1, max_length=5000)
    attachments: List[str] = Field(default_factory=list)


class Review(WireModel):
    id: str
    user_id: str | None = None
    book_id: str | None = None
    author: str | None = None
    rating: int = Field(..., ge=1, le=10)
    content: str
    created_at: datetime | None = None
    reactions: List[Reaction] = Field(default_factory=list)


class ReviewCreate(RequestModel):
    rating: int = Field(..., ge=1, le=10)
    content: str = Field(..., min_length=1, max_length=10000)
    attachments: List[str] = Field(default_factory=list)


class News(WireModel):
    id: str
    title: str
    content: str | None = None
    author_id: str | None = None
    author: str | None = None
    published_at: datetime | None = None
    view_count: int = 0
    comment_count: int = 0
    reaction_count: int = 0
    reactions: List[Reaction] = Field(default_factory=list)


class ReactionResult(WireModel):
    """Response to a reaction toggle; ``reactions`` is the server's aggregate when sent."""

    action: str | None = None
    reactions: List[Reaction] | None = None


class Shelf(WireModel):
    id: str
    user_id: str | None = None
    name: str
    description: str | None = None
    color: str | None = None
    # Insertion order, as returned by the server
    book_ids: List[str] = Field(default_factory=list)


class ShelfCreate(RequestModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    color: str | None = None


__all__ = [
    "Book",
    "Comment",
    "CommentCreate",
    "Review",
    "ReviewCreate",
    "News",
    "ReactionResult",
    "Shelf",
    "ShelfCreate",
]
