"""Messaging session driven by socket events."""
from __future__ import annotations

import asyncio
import json

import pytest

from readerstream.schemas import Channel, Group, GroupRole
from readerstream.services import MessagingSession, Notifier
from readerstream.services.messaging_session import MessagingTab
from readerstream.services.notifier import NoticeLevel


def _conversation(conversation_id: str, other_id: str, updated_at: str, unread: int = 0) -> dict:
    return {
        "id": conversation_id,
        "otherUser": {"id": other_id, "username": f"user-{other_id}"},
        "updatedAt": updated_at,
        "unreadCount": unread,
    }


def _message(message_id: str, sender_id: str, content: str = "hi", created_at: str = "2024-01-02T00:00:00Z") -> dict:
    return {"id": message_id, "senderId": sender_id, "content": content, "createdAt": created_at}


@pytest.fixture
def inbox(server):
    server.add(
        "GET",
        "/api/conversations",
        [
            _conversation("c2", "u3", "2024-01-01T12:00:00Z"),
            _conversation("c1", "u2", "2024-01-01T10:00:00Z"),
        ],
    )
    server.add("GET", "/api/groups", [{"id": "g1", "name": "Readers", "unreadCount": 0}])
    server.add("GET", "/api/messages/conversation/c1", [])
    server.add("PUT", "/api/messages/m1/read", {"success": True})
    return server


async def _open(make_api, server, channel) -> MessagingSession:
    session = MessagingSession(
        make_api(server),
        viewer_id="u1",
        notifier=Notifier(),
        channel_provider=lambda: channel,
    )
    await session.open()
    return session


def _find(session: MessagingSession, conversation_id: str):
    return next(c for c in session.state.conversations if c.id == conversation_id)


@pytest.mark.asyncio
async def test_new_message_bumps_unread_even_when_refetch_fails(make_api, inbox, channel, socket_client) -> None:
    session = await _open(make_api, inbox, channel)
    assert [c.id for c in session.state.conversations] == ["c2", "c1"]
    inbox.add("GET", "/api/conversations", {"error": "down"}, status=500)

    await socket_client.trigger("message:new", {"conversationId": "c1", "message": _message("m1", "u2")})

    conversation = session.state.conversations[0]
    assert conversation.id == "c1"
    assert conversation.unread_count == 1
    assert conversation.last_message.content == "hi"
    assert session.state.messages == ()


@pytest.mark.asyncio
async def test_message_in_open_thread_is_appended_and_marked_read(make_api, inbox, channel, socket_client) -> None:
    session = await _open(make_api, inbox, channel)
    await session.select_conversation(_find(session, "c1"))
    assert ("join:conversation", "c1") in socket_client.emitted

    payload = {"conversationId": "c1", "message": _message("m1", "u2")}
    await socket_client.trigger("message:new", payload)
    await socket_client.trigger("message:new", payload)

    assert [m.id for m in session.state.messages] == ["m1"]
    assert len(inbox.calls("PUT", "/api/messages/m1/read")) == 2
    assert _find(session, "c1").unread_count == 0


@pytest.mark.asyncio
async def test_own_message_is_not_counted_as_unread(make_api, inbox, channel, socket_client) -> None:
    session = await _open(make_api, inbox, channel)
    inbox.add("GET", "/api/conversations", {"error": "down"}, status=500)

    await socket_client.trigger("message:new", {"conversationId": "c2", "message": _message("m5", "u1")})

    assert _find(session, "c2").unread_count == 0


@pytest.mark.asyncio
async def test_typing_indicator_clears_after_timeout(make_api, inbox, channel, socket_client) -> None:
    session = await _open(make_api, inbox, channel)
    await session.select_conversation(_find(session, "c1"))

    await socket_client.trigger("user:typing", {"userId": "u1", "conversationId": "c1", "typing": True})
    assert not session.state.other_user_typing

    await socket_client.trigger("user:typing", {"userId": "u2", "conversationId": "c1", "typing": True})
    assert session.state.other_user_typing

    await asyncio.sleep(session.typing_timeout * 3)
    assert not session.state.other_user_typing


@pytest.mark.asyncio
async def test_channel_message_elsewhere_bumps_group_unread(make_api, inbox, channel, socket_client) -> None:
    session = await _open(make_api, inbox, channel)

    await socket_client.trigger(
        "channel:message:new",
        {"channelId": "ch1", "groupId": "g1", "message": _message("m7", "u2")},
    )

    assert session.state.groups[0].unread_count == 1
    assert session.state.messages == ()


@pytest.mark.asyncio
async def test_switching_groups_clears_previous_channel_state(make_api, inbox, channel, socket_client) -> None:
    inbox.add("GET", "/api/groups/g1/channels", [{"id": "ch1", "groupId": "g1", "name": "general"}])
    inbox.add("GET", "/api/groups/g1/my-role", {"role": "member"})
    inbox.add("GET", "/api/groups/g1/channels/ch1/messages", [_message("m2", "u2"), _message("m1", "u3")])
    inbox.add("PUT", "/api/groups/g1/channels/ch1/mark-read", {"success": True})
    inbox.add("GET", "/api/groups/g2/channels", {"error": "Forbidden"}, status=403)
    session = await _open(make_api, inbox, channel)
    await session.switch_tab(MessagingTab.GROUPS)

    await session.select_group(Group(id="g1", name="Readers"))
    assert session.state.group_role is GroupRole.MEMBER
    await session.select_channel(Channel(id="ch1", group_id="g1", name="general"))
    assert [m.id for m in session.state.messages] == ["m1", "m2"]
    assert len(inbox.calls("PUT", "/api/groups/g1/channels/ch1/mark-read")) == 1

    await session.select_group(Group(id="g2", name="Private"))

    assert ("leave:channel", "ch1") in socket_client.emitted
    assert session.state.selected_channel is None
    assert session.state.channels == ()
    assert session.state.group_role is None
    assert session.state.messages == ()
    assert session.notifier.notices[-1].description == "Forbidden"


@pytest.mark.asyncio
async def test_deep_link_to_inaccessible_group(make_api, inbox, channel) -> None:
    inbox.add("POST", "/api/groups/g9/join", {"error": "Private group"}, status=403)
    session = await _open(make_api, inbox, channel)

    await session.open_deep_link(group_id="g9")

    assert session.state.tab is MessagingTab.GROUPS
    notice = session.notifier.notices[-1]
    assert notice.level is NoticeLevel.ERROR
    assert notice.title == "Access denied"
    assert inbox.calls("GET", "/api/groups/g9") == []


@pytest.mark.asyncio
async def test_deep_link_to_known_user_selects_the_conversation(make_api, inbox, channel) -> None:
    session = await _open(make_api, inbox, channel)

    await session.open_deep_link(user_id="u2")

    assert session.state.selected_conversation.id == "c1"
    assert inbox.calls("POST", "/api/conversations") == []


@pytest.mark.asyncio
async def test_send_message_stops_typing_and_appends(make_api, inbox, channel, socket_client) -> None:
    inbox.add("POST", "/api/messages", _message("m9", "u1", content="hello"))
    session = await _open(make_api, inbox, channel)
    await session.select_conversation(_find(session, "c1"))

    sent = await session.send_message("  hello  ")

    assert sent is not None and sent.id == "m9"
    assert ("typing:stop", {"conversationId": "c1"}) in socket_client.emitted
    body = json.loads(inbox.calls("POST", "/api/messages")[0].content)
    assert body["recipientId"] == "u2"
    assert body["conversationId"] == "c1"
    assert body["content"] == "hello"
    assert [m.id for m in session.state.messages] == ["m9"]


@pytest.mark.asyncio
async def test_close_leaves_rooms_and_drops_handlers(make_api, inbox, channel, socket_client) -> None:
    session = await _open(make_api, inbox, channel)
    await session.select_conversation(_find(session, "c1"))

    await session.close()

    assert ("leave:conversation", "c1") in socket_client.emitted
    assert channel.handler_count("message:new") == 0
    assert channel.rooms == []
