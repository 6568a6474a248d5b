"""Discussion threads with optimistic reactions and comment posting."""
from __future__ import annotations

import pytest

from readerstream.services import BookDiscussion, NewsDiscussion, Notifier, can_moderate
from readerstream.services.notifier import NoticeLevel


def _review(review_id: str, reactions: list | None = None) -> dict:
    return {"id": review_id, "userId": "u2", "rating": 8, "content": "Great read", "reactions": reactions or []}


@pytest.fixture
def book_routes(server):
    server.add("GET", "/api/books/b1", {"id": "b1", "title": "Dune", "shelfCount": 3})
    server.add("GET", "/api/books/b1/comments", [{"id": "c1", "content": "Loved it"}])
    server.add("GET", "/api/books/b1/reviews", [_review("r1")])
    server.add("POST", "/api/books/b1/track-view", {"success": True})
    return server


def test_moderation_roles() -> None:
    assert can_moderate("admin")
    assert can_moderate("moder")
    assert not can_moderate("user")
    assert not can_moderate(None)


@pytest.mark.asyncio
async def test_comment_failure_does_not_hide_reviews(make_api, book_routes) -> None:
    book_routes.add("GET", "/api/books/b1/comments", {"error": "boom"}, status=500)
    discussion = BookDiscussion(make_api(book_routes), notifier=Notifier())

    await discussion.load("b1")

    assert discussion.state.book.title == "Dune"
    assert discussion.state.comments == ()
    assert [r.id for r in discussion.state.reviews] == ["r1"]
    assert discussion.state.error is None
    assert len(book_routes.calls("POST", "/api/books/b1/track-view")) == 1


@pytest.mark.asyncio
async def test_missing_book_sets_error(make_api, server) -> None:
    discussion = BookDiscussion(make_api(server), notifier=Notifier())

    await discussion.load("missing")

    assert discussion.state.book is None
    assert discussion.state.error == "Not found"
    assert discussion.notifier.notices[-1].description == "Failed to load book data"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("access_level", "path"),
    [("moder", "/api/admin/comments/c1"), ("admin", "/api/admin/comments/c1"), ("user", "/api/comments/c1")],
)
async def test_comment_delete_route_follows_role(make_api, book_routes, access_level: str, path: str) -> None:
    book_routes.add("DELETE", path, None, status=204)
    discussion = BookDiscussion(make_api(book_routes), notifier=Notifier(), access_level=access_level)
    await discussion.load("b1")

    assert await discussion.delete_comment("c1")

    assert len(book_routes.calls("DELETE", path)) == 1
    assert discussion.state.comments == ()


@pytest.mark.asyncio
async def test_review_reaction_rolls_back_on_failure(make_api, book_routes) -> None:
    book_routes.add("POST", "/api/reactions", {"error": "Rate limited"}, status=429)
    discussion = BookDiscussion(make_api(book_routes), notifier=Notifier())
    await discussion.load("b1")
    before = discussion.state.reviews

    await discussion.react_to_review("r1", "👍")

    assert discussion.state.reviews == before
    assert discussion.state.reviews[0].reactions == []
    notice = discussion.notifier.notices[-1]
    assert notice.level is NoticeLevel.ERROR
    assert notice.description == "Rate limited"


@pytest.mark.asyncio
async def test_review_reaction_takes_server_state_on_success(make_api, book_routes) -> None:
    book_routes.add("POST", "/api/reactions", {"action": "added"})
    discussion = BookDiscussion(make_api(book_routes), notifier=Notifier())
    await discussion.load("b1")
    book_routes.add("GET", "/api/books/b1/reviews", [_review("r1", [{"emoji": "👍", "count": 4, "userReacted": True}])])

    await discussion.react_to_review("r1", "👍")

    assert [(r.emoji, r.count) for r in discussion.state.reviews[0].reactions] == [("👍", 4)]


@pytest.mark.asyncio
async def test_review_delete_is_restored_when_server_refuses(make_api, book_routes) -> None:
    book_routes.add("DELETE", "/api/reviews/r1", {"error": "Not your review"}, status=403)
    discussion = BookDiscussion(make_api(book_routes), notifier=Notifier())
    await discussion.load("b1")

    assert not await discussion.delete_review("r1")

    assert [r.id for r in discussion.state.reviews] == ["r1"]


@pytest.mark.asyncio
async def test_posted_comment_is_prepended(make_api, book_routes) -> None:
    book_routes.add("POST", "/api/books/b1/comments", {"id": "c2", "content": "Second"})
    discussion = BookDiscussion(make_api(book_routes), notifier=Notifier())
    await discussion.load("b1")

    assert await discussion.post_comment("   ") is None
    comment = await discussion.post_comment("Second")

    assert comment is not None
    assert [c.id for c in discussion.state.comments] == ["c2", "c1"]
    assert discussion.notifier.notices[-1].title == "Comment added"


@pytest.fixture
def news_routes(server):
    server.add("GET", "/api/news/n1", {"id": "n1", "title": "Launch", "commentCount": 1, "reactionCount": 1})
    server.add("GET", "/api/news/n1/comments", [{"id": "nc1", "content": "Nice"}])
    server.add("GET", "/api/news/n1/reactions", [{"emoji": "👍", "count": 1}])
    return server


@pytest.mark.asyncio
async def test_news_reaction_uses_server_aggregate(make_api, news_routes) -> None:
    news_routes.add(
        "POST",
        "/api/news/n1/reactions",
        {
            "action": "added",
            "reactions": [
                {"emoji": "👍", "count": 3, "userReacted": True},
                {"emoji": "🔥", "count": 1, "userReacted": False},
            ],
        },
    )
    discussion = NewsDiscussion(make_api(news_routes), notifier=Notifier())
    await discussion.load("n1")

    await discussion.react("👍")

    assert [(r.emoji, r.count) for r in discussion.state.reactions] == [("👍", 3), ("🔥", 1)]
    assert discussion.state.news.reaction_count == 4


@pytest.mark.asyncio
async def test_news_comment_count_follows_list(make_api, news_routes) -> None:
    news_routes.add("POST", "/api/news/n1/comments", {"id": "nc2", "content": "Agreed"})
    news_routes.add("DELETE", "/api/comments/nc1", None, status=204)
    discussion = NewsDiscussion(make_api(news_routes), notifier=Notifier())
    await discussion.load("n1")

    await discussion.post_comment("Agreed")
    assert discussion.state.news.comment_count == 2

    await discussion.delete_comment("nc1")
    assert [c.id for c in discussion.state.comments] == ["nc2"]
    assert discussion.state.news.comment_count == 1


@pytest.mark.asyncio
async def test_missing_news_reports_not_found(make_api, server) -> None:
    discussion = NewsDiscussion(make_api(server), notifier=Notifier())

    await discussion.load("gone")

    assert discussion.state.error == "News not found"
    assert discussion.state.news is None
