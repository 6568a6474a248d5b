"""Schemas for the viewer's profile and admin user management."""
from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import Field

from .base import RequestModel, WireModel


class Profile(WireModel):
    id: str
    username: str
    email: str | None = None
    full_name: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
    access_level: str = "user"
    language: str = "en"
    created_at: datetime | None = None


class ProfileUpdateRequest(RequestModel):
    full_name: str | None = Field(None, max_length=200)
    email: str | None = None
    bio: str | None = Field(None, max_length=1000)


class PasswordChangeRequest(RequestModel):
    current_password: str
    new_password: str = Field(..., min_length=6)


class AdminUser(WireModel):
    id: str
    username: str
    full_name: str | None = None
    access_level: str = "user"
    created_at: datetime | None = None
    last_login: datetime | None = None
    shelves_count: int = 0
    books_on_shelves_count: int = 0
    comments_count: int = 0
    reviews_count: int = 0


class Pagination(WireModel):
    page: int = 1
    limit: int = 10
    total: int = 0
    pages: int = 1


class AdminUserPage(WireModel):
    users: List[AdminUser] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)


class ImpersonationResponse(WireModel):
    token: str
    user: AdminUser


__all__ = [
    "Profile",
    "ProfileUpdateRequest",
    "PasswordChangeRequest",
    "AdminUser",
    "Pagination",
    "AdminUserPage",
    "ImpersonationResponse",
]
