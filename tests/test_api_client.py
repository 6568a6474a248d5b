"""REST client against an in-memory transport."""
from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from readerstream.clients import (
    ApiResponseError,
    ApiTransportError,
    AuthRequiredError,
    MalformedResponseError,
    TokenStore,
    describe_error,
)
from readerstream.schemas import ActivityType, GroupRole


@pytest.mark.asyncio
async def test_bearer_token_is_sent(make_api, server) -> None:
    server.add("GET", "/api/stream/personal", [])
    api = make_api(server, token="secret")

    await api.stream.feed("personal")

    assert server.requests[0].headers["Authorization"] == "Bearer secret"


@pytest.mark.asyncio
async def test_auth_only_endpoint_fails_before_any_request(make_api, server) -> None:
    api = make_api(server, token=None)

    with pytest.raises(AuthRequiredError):
        await api.stream.feed("shelves")

    assert server.requests == []


@pytest.mark.asyncio
async def test_public_endpoint_works_without_token(make_api, server) -> None:
    server.add("GET", "/api/stream/global", [{"id": "a1", "type": "news", "entityId": "n1"}])
    api = make_api(server, token=None)

    activities = await api.stream.feed("global")

    assert activities[0].type is ActivityType.NEWS
    assert "Authorization" not in server.requests[0].headers


@pytest.mark.asyncio
async def test_error_body_message_is_surfaced(make_api, server) -> None:
    server.add("POST", "/api/books/b1/comments", {"error": "Comment is too long"}, status=400)
    api = make_api(server)

    with pytest.raises(ApiResponseError) as excinfo:
        await api.request("POST", "/api/books/b1/comments", json={"content": "x"}, require_auth=True)

    assert excinfo.value.status_code == 400
    assert excinfo.value.message == "Comment is too long"
    assert describe_error(excinfo.value, "Failed") == "Comment is too long"


@pytest.mark.asyncio
async def test_unknown_route_maps_to_not_found(make_api, server) -> None:
    api = make_api(server)

    with pytest.raises(ApiResponseError) as excinfo:
        await api.news.get("missing")

    assert excinfo.value.is_not_found


@pytest.mark.asyncio
async def test_empty_response_decodes_to_none(make_api, server) -> None:
    server.add("DELETE", "/api/reviews/r1", None, status=204)
    api = make_api(server)

    assert await api.request("DELETE", "/api/reviews/r1", require_auth=True) is None


@pytest.mark.asyncio
async def test_unexpected_shape_is_malformed(make_api, server) -> None:
    server.add("GET", "/api/books/b1/comments", {"comments": []})
    api = make_api(server)

    with pytest.raises(MalformedResponseError):
        await api.books.comments("b1")


@pytest.mark.asyncio
async def test_transport_failure_is_wrapped(make_api) -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    api = make_api(refuse)

    with pytest.raises(ApiTransportError):
        await api.books.get("b1")
    assert describe_error(ApiTransportError("x"), "Failed to load book") == "Failed to load book"


@pytest.mark.asyncio
async def test_shelves_feed_joins_filter_ids(make_api, server) -> None:
    server.add("GET", "/api/stream/shelves", [])
    api = make_api(server)

    await api.stream.feed("shelves", shelf_ids=["s1", "s2"], book_ids=["b1"])

    params = server.requests[0].url.params
    assert params["shelfIds"] == "s1,s2"
    assert params["bookIds"] == "b1"
    assert "limit" not in params


@pytest.mark.asyncio
async def test_last_actions_are_unwrapped(make_api, server) -> None:
    server.add(
        "GET",
        "/api/stream/last-actions",
        {"activities": [{"id": "a1", "type": "user_action", "actionType": "shelf_add"}]},
    )
    api = make_api(server, token=None)

    activities = await api.stream.feed("last-actions", limit=50)

    assert [a.id for a in activities] == ["a1"]
    assert activities[0].model_extra["actionType"] == "shelf_add"
    assert server.requests[0].url.params["limit"] == "50"


@pytest.mark.asyncio
async def test_unknown_feed_is_rejected(make_api, server) -> None:
    api = make_api(server)

    with pytest.raises(ValueError):
        await api.stream.feed("trending")


@pytest.mark.asyncio
async def test_reaction_needs_exactly_one_target(make_api, server) -> None:
    api = make_api(server)

    with pytest.raises(ValueError):
        await api.books.react("👍")
    with pytest.raises(ValueError):
        await api.books.react("👍", comment_id="c1", review_id="r1")
    assert server.requests == []


@pytest.mark.asyncio
async def test_missing_group_role_means_none(make_api, server) -> None:
    server.add("GET", "/api/groups/g1/my-role", {"role": None})
    api = make_api(server)

    assert await api.groups.my_role("g1") is GroupRole.NONE


@pytest.mark.asyncio
async def test_impersonation_keeps_the_admin_token(make_api, server) -> None:
    server.add("POST", "/api/admin/users/u2/impersonate", {"token": "user-token", "user": {"id": "u2", "username": "bob"}})
    api = make_api(server, token="admin-token")

    result = await api.admin.impersonate("u2")

    assert result.token == "user-token"
    assert api.tokens.get() == "admin-token"


@pytest.mark.asyncio
async def test_deleting_the_profile_forgets_the_token(make_api, server, tmp_path: Path) -> None:
    server.add("DELETE", "/api/profile", {"message": "deleted"})
    api = make_api(server, token=None)
    api.tokens.set("stored-token")

    await api.profile.delete()

    assert api.tokens.get() is None
    assert not (tmp_path / "token.json").exists()


def test_token_store_persists_and_honours_override(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "token.json"
    TokenStore(path).set("  abc  ")

    assert TokenStore(path).get() == "abc"
    assert TokenStore(path, override="env-token").get() == "env-token"

    path.write_text("not json", encoding="utf-8")
    assert TokenStore(path).get() is None
