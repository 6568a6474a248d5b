"""Command-line harness for exercising the stream client against a live server."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Iterable

from readerstream.clients import (
    ApiClient,
    ApiError,
    SocketChannelError,
    TokenStore,
    disconnect_channel,
    initialize_channel,
)
from readerstream.config import get_settings
from readerstream.constants import FEED_GLOBAL, STREAM_FEEDS
from readerstream.schemas import Activity
from readerstream.services import Notice, Notifier, StreamSession


def _print_activities(activities: Iterable[Activity]) -> None:
    count = 0
    for activity in activities:
        count += 1
        stamp = f"{activity.created_at:%Y-%m-%d %H:%M:%S}" if activity.created_at else "-"
        title = activity.metadata.get("book_title") or activity.metadata.get("news_title") or ""
        print(f"{stamp} | {activity.type.value:<11} | {activity.id} | user={activity.user_id or '-'} | {title}")
    if not count:
        print("(no activities)")


def _print_notice(notice: Notice) -> None:
    print(f"[{notice.level.value.upper()}] {notice.title}: {notice.description}")


async def _fetch_feed(args: argparse.Namespace) -> int:
    async with ApiClient() as api:
        try:
            activities = await api.stream.feed(
                args.name,
                shelf_ids=[args.shelf] if args.shelf else None,
                book_ids=args.book or None,
                limit=args.limit,
            )
        except ApiError as exc:
            print(f"Fetching {args.name} failed: {exc}", file=sys.stderr)
            return 2
    _print_activities(activities)
    return 0


async def _tail(args: argparse.Namespace) -> int:
    settings = get_settings()
    async with ApiClient(settings=settings) as api:
        viewer_id = args.viewer_id
        if viewer_id is None and api.is_authenticated:
            try:
                viewer_id = (await api.profile.get()).id
            except ApiError as exc:
                print(f"Could not resolve the signed-in user: {exc}", file=sys.stderr)
        try:
            channel = await initialize_channel(api.tokens.get() or "", settings=settings)
        except SocketChannelError as exc:
            print(f"Socket connection failed: {exc}", file=sys.stderr)
            return 2

        notifier = Notifier()
        notifier.listen(_print_notice)
        session = StreamSession(api, viewer_id=viewer_id, notifier=notifier)
        try:
            await session.mount(args.tab)
            _print_activities(session.activities())
            print("-" * 80)
            await channel.wait()
        finally:
            await session.unmount()
            await disconnect_channel()
    return 0


def _run_feed(args: argparse.Namespace) -> int:
    return asyncio.run(_fetch_feed(args))


def _run_tail(args: argparse.Namespace) -> int:
    try:
        return asyncio.run(_tail(args))
    except KeyboardInterrupt:
        return 130


def _run_token(args: argparse.Namespace) -> int:
    store = TokenStore(get_settings().token_path)
    if args.clear:
        store.clear()
        print(f"Removed token from {store.path}")
    elif args.value:
        store.set(args.value)
        print(f"Stored token in {store.path}")
    else:
        print("Token is set" if store.get() else "No token stored")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Developer harness for the reader stream client.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    subcommands = parser.add_subparsers(dest="command", required=True)

    feed = subcommands.add_parser("feed", help="Fetch one feed over REST and print it.")
    feed.add_argument("name", choices=STREAM_FEEDS, help="Feed to fetch.")
    feed.add_argument("--limit", type=int, help="Maximum number of entries.")
    feed.add_argument("--shelf", help="Shelf id to filter the shelves feed by.")
    feed.add_argument("--book", action="append", help="Book id to filter the shelves feed by (repeatable).")
    feed.set_defaults(func=_run_feed)

    tail = subcommands.add_parser("tail", help="Mount a stream session and print live notices until interrupted.")
    tail.add_argument("--tab", choices=STREAM_FEEDS, default=FEED_GLOBAL, help="Initial tab (default: %(default)s).")
    tail.add_argument("--viewer-id", help="Viewer id used to route personal activities.")
    tail.set_defaults(func=_run_tail)

    token = subcommands.add_parser("token", help="Show, store or clear the saved auth token.")
    token.add_argument("value", nargs="?", help="Token to store.")
    token.add_argument("--clear", action="store_true", help="Remove the stored token.")
    token.set_defaults(func=_run_token)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    handler = getattr(args, "func", None)
    if handler is None:
        parser.error("Please supply a sub-command")
    return handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
