"""Endpoints for conversations, messages, groups and channels."""
from __future__ import annotations

from typing import TYPE_CHECKING

from ..schemas import (
    Channel,
    Conversation,
    Group,
    GroupCreate,
    GroupRole,
    GroupRoleResponse,
    Message,
    MessageSendRequest,
    UserSummary,
)

if TYPE_CHECKING:
    from .api import ApiClient


class MessagesApi:
    def __init__(self, client: "ApiClient") -> None:
        self._client = client

    async def conversations(self) -> list[Conversation]:
        return await self._client.request_models(Conversation, "GET", "/api/conversations", require_auth=True)

    async def start_conversation(self, other_user_id: str) -> Conversation:
        """Create the conversation with a user, or return the existing one."""

        return await self._client.request_model(
            Conversation,
            "POST",
            "/api/conversations",
            json={"otherUserId": other_user_id},
            require_auth=True,
        )

    async def conversation_messages(self, conversation_id: str) -> list[Message]:
        return await self._client.request_models(
            Message, "GET", f"/api/messages/conversation/{conversation_id}", require_auth=True
        )

    async def send(self, payload: MessageSendRequest) -> Message:
        return await self._client.request_model(
            Message, "POST", "/api/messages", json=payload.to_payload(), require_auth=True
        )

    async def mark_read(self, message_id: str) -> None:
        await self._client.request("PUT", f"/api/messages/{message_id}/read", require_auth=True)

    async def delete(self, message_id: str) -> None:
        await self._client.request("DELETE", f"/api/messages/{message_id}", require_auth=True)

    async def search_users(self, query: str) -> list[UserSummary]:
        return await self._client.request_models(
            UserSummary, "GET", "/api/users/search", params={"q": query}, require_auth=True
        )


class GroupsApi:
    def __init__(self, client: "ApiClient") -> None:
        self._client = client

    async def list(self) -> list[Group]:
        return await self._client.request_models(Group, "GET", "/api/groups", require_auth=True)

    async def create(self, payload: GroupCreate) -> Group:
        return await self._client.request_model(
            Group, "POST", "/api/groups", json=payload.to_payload(), require_auth=True
        )

    async def get(self, group_id: str) -> Group:
        return await self._client.request_model(Group, "GET", f"/api/groups/{group_id}", require_auth=True)

    async def search(self, query: str) -> list[Group]:
        return await self._client.request_models(
            Group, "GET", "/api/groups/search", params={"q": query}, require_auth=True
        )

    async def channels(self, group_id: str) -> list[Channel]:
        return await self._client.request_models(
            Channel, "GET", f"/api/groups/{group_id}/channels", require_auth=True
        )

    async def join(self, group_id: str) -> None:
        await self._client.request("POST", f"/api/groups/{group_id}/join", require_auth=True)

    async def my_role(self, group_id: str) -> GroupRole:
        response = await self._client.request_model(
            GroupRoleResponse, "GET", f"/api/groups/{group_id}/my-role", require_auth=True
        )
        return response.role or GroupRole.NONE

    async def channel_messages(self, group_id: str, channel_id: str) -> list[Message]:
        return await self._client.request_models(
            Message,
            "GET",
            f"/api/groups/{group_id}/channels/{channel_id}/messages",
            require_auth=True,
        )

    async def send_channel_message(self, group_id: str, channel_id: str, payload: MessageSendRequest) -> Message:
        return await self._client.request_model(
            Message,
            "POST",
            f"/api/groups/{group_id}/channels/{channel_id}/messages",
            json=payload.to_payload(),
            require_auth=True,
        )

    async def mark_channel_read(self, group_id: str, channel_id: str) -> None:
        await self._client.request(
            "PUT", f"/api/groups/{group_id}/channels/{channel_id}/mark-read", require_auth=True
        )


__all__ = ["MessagesApi", "GroupsApi"]
