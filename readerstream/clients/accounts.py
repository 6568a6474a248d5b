"""Endpoints for the viewer's profile and for admin user management."""
from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from ..schemas import (
    AdminUserPage,
    ImpersonationResponse,
    PasswordChangeRequest,
    Profile,
    ProfileUpdateRequest,
)

if TYPE_CHECKING:
    from .api import ApiClient


class ProfileApi:
    def __init__(self, client: "ApiClient") -> None:
        self._client = client

    async def get(self) -> Profile:
        return await self._client.request_model(Profile, "GET", "/api/profile", require_auth=True)

    async def update(self, payload: ProfileUpdateRequest) -> Profile:
        return await self._client.request_model(
            Profile, "PUT", "/api/profile", json=payload.to_payload(), require_auth=True
        )

    async def delete(self) -> None:
        """Delete the viewer's account and forget the stored token."""

        await self._client.request("DELETE", "/api/profile", require_auth=True)
        self._client.tokens.clear()

    async def upload_avatar(self, path: Path | str, *, content_type: str = "image/jpeg") -> Profile:
        file_path = Path(path)
        with file_path.open("rb") as fh:
            files = {"avatar": (file_path.name, fh.read(), content_type)}
        return await self._client.request_model(
            Profile, "POST", "/api/profile/avatar", files=files, require_auth=True
        )

    async def set_language(self, language: str) -> None:
        await self._client.request(
            "PUT", "/api/profile/language", json={"language": language}, require_auth=True
        )

    async def change_password(self, payload: PasswordChangeRequest) -> None:
        await self._client.request(
            "PUT", "/api/profile/password", json=payload.to_payload(), require_auth=True
        )


class AdminApi:
    def __init__(self, client: "ApiClient") -> None:
        self._client = client

    async def users(self, *, page: int = 1, limit: int = 10, search: str | None = None) -> AdminUserPage:
        params = {"page": page, "limit": limit, "search": (search or "").strip() or None}
        return await self._client.request_model(
            AdminUserPage, "GET", "/api/admin/users", params=params, require_auth=True
        )

    async def update_user(
        self,
        user_id: str,
        *,
        username: str | None = None,
        full_name: str | None = None,
        email: str | None = None,
    ) -> None:
        body = {
            key: value
            for key, value in (("username", username), ("fullName", full_name), ("email", email))
            if value is not None
        }
        await self._client.request("PUT", f"/api/admin/users/{user_id}", json=body, require_auth=True)

    async def set_password(self, user_id: str, new_password: str) -> None:
        await self._client.request(
            "PUT",
            f"/api/admin/users/{user_id}/password",
            json={"newPassword": new_password},
            require_auth=True,
        )

    async def set_access_level(self, user_id: str, access_level: str) -> None:
        await self._client.request(
            "PUT",
            f"/api/admin/users/{user_id}/access-level",
            json={"accessLevel": access_level},
            require_auth=True,
        )

    async def impersonate(self, user_id: str) -> ImpersonationResponse:
        """Issue a token for acting as another user; the admin's own token is kept."""

        return await self._client.request_model(
            ImpersonationResponse, "POST", f"/api/admin/users/{user_id}/impersonate", require_auth=True
        )


__all__ = ["ProfileApi", "AdminApi"]
