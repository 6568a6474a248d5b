"""Socket.IO channel adapter: shared connection, room membership and event fan-out."""
from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Optional

import socketio
from socketio.exceptions import ConnectionError as SocketConnectError
from socketio.exceptions import SocketIOError

from ..config import Settings, get_settings
from ..constants import (
    EVENT_CONNECT,
    EVENT_CONNECT_ERROR,
    EVENT_DISCONNECT,
    ROOM_CHANNEL,
    ROOM_CONVERSATION,
)

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]
Disposer = Callable[[], None]
RoomKey = tuple[str, Optional[str]]


class SocketChannelError(RuntimeError):
    """Raised when the Socket.IO connection cannot be established."""


def _noop() -> None:
    return None


class SocketChannel:
    """Wraps one ``socketio.AsyncClient`` for the whole process.

    The adapter remembers which rooms the caller wants to be in and re-joins
    all of them whenever the transport (re)connects, since the server does not
    keep room membership across connections. Any number of handlers can be
    attached to the same event; each gets its own disposer.
    """

    def __init__(self, *, settings: Settings | None = None, client: Any | None = None) -> None:
        self._settings = settings or get_settings()
        self._sio = client or socketio.AsyncClient(
            reconnection=True,
            reconnection_attempts=self._settings.reconnection_attempts,
            reconnection_delay=self._settings.reconnection_delay,
            reconnection_delay_max=self._settings.reconnection_delay_max,
        )
        self._handlers: dict[str, list[Handler]] = {}
        self._dispatchers: set[str] = set()
        # Insertion ordered; values unused
        self._rooms: dict[RoomKey, None] = {}

        self._bind(EVENT_CONNECT)
        self._bind(EVENT_DISCONNECT)
        self._bind(EVENT_CONNECT_ERROR)

    @property
    def connected(self) -> bool:
        return bool(getattr(self._sio, "connected", False))

    @property
    def rooms(self) -> list[RoomKey]:
        return list(self._rooms)

    async def connect(self, token: str) -> None:
        url = self._settings.resolved_socket_url
        try:
            await self._sio.connect(
                url,
                auth={"token": token},
                socketio_path=self._settings.socket_path,
            )
        except SocketConnectError as exc:
            logger.warning("Socket connection to %s failed: %s", url, exc)
            raise SocketChannelError(f"Unable to connect to {url}") from exc

    async def disconnect(self) -> None:
        await self._sio.disconnect()

    async def wait(self) -> None:
        """Block until the connection is closed for good."""

        await self._sio.wait()

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def on(self, event: str, handler: Handler) -> Disposer:
        self._bind(event)
        handlers = self._handlers.setdefault(event, [])
        handlers.append(handler)

        def dispose() -> None:
            current = self._handlers.get(event)
            if current and handler in current:
                current.remove(handler)

        return dispose

    def handler_count(self, event: str) -> int:
        return len(self._handlers.get(event, ()))

    def _bind(self, event: str) -> None:
        if event in self._dispatchers:
            return
        self._dispatchers.add(event)

        async def dispatch(*args: Any) -> None:
            await self._dispatch(event, *args)

        self._sio.on(event, dispatch)

    async def _dispatch(self, event: str, *args: Any) -> None:
        if event == EVENT_CONNECT:
            await self._rejoin_rooms()
        elif event == EVENT_DISCONNECT:
            logger.info("Socket disconnected: %s", args[0] if args else "unknown reason")
        elif event == EVENT_CONNECT_ERROR:
            logger.warning("Socket connection error: %s", args[0] if args else "unknown error")

        for handler in list(self._handlers.get(event, ())):
            try:
                result = handler(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Handler for %s failed", event)

    async def emit(self, event: str, data: Any = None) -> bool:
        """Send an event; returns False when the socket is not connected."""

        if not self.connected:
            logger.debug("Socket not connected; %s not sent", event)
            return False
        try:
            await self._sio.emit(event, data)
        except SocketIOError as exc:
            logger.warning("Emitting %s failed: %s", event, exc)
            return False
        return True

    # ------------------------------------------------------------------
    # Rooms
    # ------------------------------------------------------------------
    async def join_room(self, topic: str, argument: str | None = None) -> None:
        self._rooms[(topic, argument)] = None
        await self._emit_room("join", topic, argument)

    async def leave_room(self, topic: str, argument: str | None = None) -> None:
        self._rooms.pop((topic, argument), None)
        await self._emit_room("leave", topic, argument)

    def is_joined(self, topic: str, argument: str | None = None) -> bool:
        return (topic, argument) in self._rooms

    async def _emit_room(self, action: str, topic: str, argument: str | None) -> None:
        if await self.emit(f"{action}:{topic}", argument):
            logger.debug("%s %s %s", action, topic, argument or "")

    async def _rejoin_rooms(self) -> None:
        # The client only reports connected once every connect handler has
        # returned, so the joins go straight to the transport.
        logger.info("Socket connected; rejoining %d room(s)", len(self._rooms))
        for topic, argument in list(self._rooms):
            try:
                await self._sio.emit(f"join:{topic}", argument)
            except SocketIOError as exc:
                logger.warning("Rejoining %s %s failed: %s", topic, argument or "", exc)
                continue
            logger.debug("join %s %s", topic, argument or "")

    async def join_conversation(self, conversation_id: str) -> None:
        await self.join_room(ROOM_CONVERSATION, conversation_id)

    async def leave_conversation(self, conversation_id: str) -> None:
        await self.leave_room(ROOM_CONVERSATION, conversation_id)

    async def join_channel(self, channel_id: str) -> None:
        await self.join_room(ROOM_CHANNEL, channel_id)

    async def leave_channel(self, channel_id: str) -> None:
        await self.leave_room(ROOM_CHANNEL, channel_id)

    # ------------------------------------------------------------------
    # Typing indicators
    # ------------------------------------------------------------------
    async def start_typing(self, conversation_id: str) -> None:
        await self.emit("typing:start", {"conversationId": conversation_id})

    async def stop_typing(self, conversation_id: str) -> None:
        await self.emit("typing:stop", {"conversationId": conversation_id})

    async def start_channel_typing(self, channel_id: str) -> None:
        await self.emit("channel:typing:start", {"channelId": channel_id})

    async def stop_channel_typing(self, channel_id: str) -> None:
        await self.emit("channel:typing:stop", {"channelId": channel_id})


_channel: SocketChannel | None = None


async def initialize_channel(
    token: str,
    *,
    settings: Settings | None = None,
    client: Any | None = None,
) -> SocketChannel:
    """Connect the shared channel, reusing it when it is already connected."""

    global _channel
    if _channel is not None and _channel.connected:
        return _channel
    if _channel is not None:
        await _channel.disconnect()

    channel = SocketChannel(settings=settings, client=client)
    _channel = channel
    try:
        await channel.connect(token)
    except SocketChannelError:
        _channel = None
        raise
    return channel


def get_channel() -> SocketChannel | None:
    return _channel


async def disconnect_channel() -> None:
    global _channel
    if _channel is None:
        return
    channel, _channel = _channel, None
    await channel.disconnect()


def on_channel_event(event: str, handler: Handler) -> Disposer:
    """Subscribe on the shared channel; a no-op disposer when none exists yet."""

    if _channel is None:
        return _noop
    return _channel.on(event, handler)


__all__ = [
    "SocketChannel",
    "SocketChannelError",
    "initialize_channel",
    "get_channel",
    "disconnect_channel",
    "on_channel_event",
]
