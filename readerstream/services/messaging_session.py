"""Messages page session: conversations, groups, channels and their live events."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Sequence

from ..clients.api import ApiClient, ApiError, describe_error
from ..clients.socket import SocketChannel, get_channel
from ..constants import (
    EVENT_CHANNEL_MESSAGE_DELETED,
    EVENT_CHANNEL_MESSAGE_NEW,
    EVENT_MESSAGE_DELETED,
    EVENT_MESSAGE_NEW,
    EVENT_NOTIFICATION_NEW,
    EVENT_USER_TYPING,
    NOTIFICATION_NEW_MESSAGE,
)
from ..schemas import (
    Channel,
    ChannelMessageDeletedEvent,
    ChannelMessageNewEvent,
    Conversation,
    Group,
    GroupRole,
    LastMessage,
    Message,
    MessageDeletedEvent,
    MessageNewEvent,
    MessageSendRequest,
    NotificationEvent,
    TypingEvent,
)
from .events import Subscriptions, parse_event
from .notifier import Notifier

logger = logging.getLogger(__name__)


class MessagingTab(str, Enum):
    PRIVATE = "private"
    GROUPS = "groups"


@dataclass(slots=True)
class MessagingState:
    tab: MessagingTab = MessagingTab.PRIVATE
    conversations: tuple[Conversation, ...] = ()
    groups: tuple[Group, ...] = ()
    selected_conversation: Conversation | None = None
    selected_group: Group | None = None
    channels: tuple[Channel, ...] = ()
    selected_channel: Channel | None = None
    group_role: GroupRole | None = None
    messages: tuple[Message, ...] = ()
    other_user_typing: bool = False
    loading: bool = False
    error: str | None = None


def sort_conversations(conversations: Iterable[Conversation]) -> tuple[Conversation, ...]:
    """Most recently updated first; conversations without a timestamp go last."""

    def sort_key(conversation: Conversation) -> float:
        stamp = conversation.updated_at
        return stamp.timestamp() if stamp is not None else float("-inf")

    return tuple(sorted(conversations, key=sort_key, reverse=True))


def append_message(messages: Sequence[Message], message: Message) -> tuple[Message, ...]:
    if any(existing.id == message.id for existing in messages):
        return tuple(messages)
    return tuple(messages) + (message,)


class MessagingSession:
    """Private conversations and group channels kept in sync with the socket.

    Handlers are registered once in :meth:`open` and read the current
    selection when an event arrives, so changing the selection never needs a
    re-subscription. Only the conversation and channel rooms follow the
    selection.
    """

    def __init__(
        self,
        api: ApiClient,
        *,
        viewer_id: str | None,
        notifier: Notifier | None = None,
        channel_provider: Callable[[], SocketChannel | None] = get_channel,
    ) -> None:
        self.api = api
        self.viewer_id = viewer_id
        self.notifier = notifier or Notifier()
        self.state = MessagingState()
        self.typing_timeout = api.settings.typing_indicator_timeout

        self._channel_provider = channel_provider
        self._channel: SocketChannel | None = None
        self._subscriptions = Subscriptions()
        self._typing_timer: asyncio.TimerHandle | None = None
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def open(self) -> None:
        self._closed = False
        self.state.loading = True
        try:
            await asyncio.gather(self.load_conversations(), self.load_groups())
        finally:
            self.state.loading = False
        self.bind()

    def bind(self) -> bool:
        """Attach the socket handlers; returns False while the channel is not ready."""

        if self._channel is not None:
            return True
        channel = self._channel_provider()
        if channel is None:
            logger.warning("Socket channel not ready; messaging updates paused")
            return False
        self._channel = channel
        handlers = {
            EVENT_MESSAGE_NEW: self._on_message_new,
            EVENT_MESSAGE_DELETED: self._on_message_deleted,
            EVENT_USER_TYPING: self._on_user_typing,
            EVENT_NOTIFICATION_NEW: self._on_notification,
            EVENT_CHANNEL_MESSAGE_NEW: self._on_channel_message_new,
            EVENT_CHANNEL_MESSAGE_DELETED: self._on_channel_message_deleted,
        }
        for event, handler in handlers.items():
            self._subscriptions.add(channel.on(event, handler))
        return True

    async def close(self) -> None:
        self._closed = True
        self._subscriptions.dispose_all()
        self._cancel_typing_timer()
        channel, self._channel = self._channel, None
        if channel is None:
            return
        if self.state.selected_conversation is not None:
            await channel.leave_conversation(self.state.selected_conversation.id)
        if self.state.selected_channel is not None:
            await channel.leave_channel(self.state.selected_channel.id)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    async def load_conversations(self) -> None:
        try:
            conversations = await self.api.messages.conversations()
        except ApiError as exc:
            logger.warning("Fetching conversations failed: %s", exc)
            self.state.error = str(exc)
            return
        self.state.error = None
        self.state.conversations = sort_conversations(conversations)

    async def load_groups(self) -> None:
        try:
            groups = await self.api.groups.list()
        except ApiError as exc:
            logger.warning("Fetching groups failed: %s", exc)
            return
        self.state.groups = tuple(groups)

    async def load_messages(self) -> None:
        conversation = self.state.selected_conversation
        if conversation is None:
            return
        try:
            messages = await self.api.messages.conversation_messages(conversation.id)
        except ApiError as exc:
            logger.warning("Fetching messages for %s failed: %s", conversation.id, exc)
            self.notifier.error("Error", describe_error(exc, "Failed to load messages"))
            return
        if self._is_open_conversation(conversation.id):
            # Server sends newest first
            self.state.messages = tuple(reversed(messages))

    async def load_channel_messages(self) -> None:
        group, channel = self.state.selected_group, self.state.selected_channel
        if group is None or channel is None:
            return
        try:
            messages = await self.api.groups.channel_messages(group.id, channel.id)
        except ApiError as exc:
            logger.warning("Fetching messages for channel %s failed: %s", channel.id, exc)
            self.notifier.error("Error", describe_error(exc, "Failed to load messages"))
            return
        if not self._is_open_channel(channel.id):
            return
        self.state.messages = tuple(reversed(messages))
        try:
            await self.api.groups.mark_channel_read(group.id, channel.id)
        except ApiError as exc:
            logger.warning("Marking channel %s read failed: %s", channel.id, exc)
            return
        await self.load_groups()

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------
    async def switch_tab(self, tab: MessagingTab | str) -> None:
        self.state.tab = MessagingTab(tab)
        if self.state.tab is MessagingTab.GROUPS:
            await self.select_conversation(None)
        else:
            await self.select_group(None)

    async def select_conversation(self, conversation: Conversation | None) -> None:
        previous = self.state.selected_conversation
        if previous is not None and self._channel is not None:
            await self._channel.leave_conversation(previous.id)
        self._cancel_typing_timer()
        self.state.selected_conversation = conversation
        self.state.other_user_typing = False
        self.state.messages = ()
        if conversation is None:
            return
        if self._channel is not None:
            await self._channel.join_conversation(conversation.id)
        await self.load_messages()

    async def select_group(self, group: Group | None) -> None:
        """Switch groups, clearing the previous group's channels and messages first."""

        await self.select_channel(None)
        self.state.selected_group = group
        self.state.channels = ()
        self.state.group_role = None
        self.state.messages = ()
        if group is None:
            return

        channels, role = await asyncio.gather(
            self.api.groups.channels(group.id),
            self.api.groups.my_role(group.id),
            return_exceptions=True,
        )
        if not self._is_open_group(group.id):
            return
        if isinstance(channels, BaseException):
            logger.warning("Fetching channels for group %s failed: %s", group.id, channels)
            if isinstance(channels, ApiError):
                self.notifier.error("Error", describe_error(channels, "Failed to load channels"))
            else:
                raise channels
        else:
            self.state.channels = tuple(channels)
        if isinstance(role, BaseException):
            logger.warning("Fetching role in group %s failed: %s", group.id, role)
            if not isinstance(role, ApiError):
                raise role
        else:
            self.state.group_role = role

    async def select_channel(self, channel: Channel | None) -> None:
        previous = self.state.selected_channel
        if previous is not None and self._channel is not None:
            await self._channel.leave_channel(previous.id)
        self.state.selected_channel = channel
        self.state.messages = ()
        if channel is None or self.state.selected_group is None:
            return
        if self._channel is not None:
            await self._channel.join_channel(channel.id)
        await self.load_channel_messages()

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    async def send_message(
        self,
        content: str,
        *,
        attachments: Sequence[str] = (),
        quoted: Message | None = None,
    ) -> Message | None:
        conversation = self.state.selected_conversation
        text = content.strip()
        if conversation is None or not text:
            return None
        if conversation.other_user is None:
            self.notifier.error("Error", "Failed to identify the recipient")
            return None
        if self._channel is not None:
            await self._channel.stop_typing(conversation.id)

        payload = MessageSendRequest(
            recipient_id=conversation.other_user.id,
            conversation_id=conversation.id,
            content=text,
            attachments=list(attachments),
            **_quote_fields(quoted),
        )
        try:
            message = await self.api.messages.send(payload)
        except ApiError as exc:
            logger.warning("Sending message failed: %s", exc)
            self.notifier.error("Error", describe_error(exc, "Failed to send message"))
            return None
        if self._is_open_conversation(conversation.id):
            self.state.messages = append_message(self.state.messages, message)
        await self.load_conversations()
        return message

    async def send_channel_message(
        self,
        content: str,
        *,
        attachments: Sequence[str] = (),
        quoted: Message | None = None,
    ) -> Message | None:
        group, channel = self.state.selected_group, self.state.selected_channel
        text = content.strip()
        if group is None or channel is None or not text:
            return None
        payload = MessageSendRequest(content=text, attachments=list(attachments), **_quote_fields(quoted))
        try:
            message = await self.api.groups.send_channel_message(group.id, channel.id, payload)
        except ApiError as exc:
            logger.warning("Sending channel message failed: %s", exc)
            self.notifier.error("Error", describe_error(exc, "Failed to send message"))
            return None
        # The socket echo may arrive first; append deduplicates
        if self._is_open_channel(channel.id):
            self.state.messages = append_message(self.state.messages, message)
        await self.load_groups()
        return message

    async def delete_message(self, message_id: str) -> bool:
        try:
            await self.api.messages.delete(message_id)
        except ApiError as exc:
            logger.warning("Deleting message %s failed: %s", message_id, exc)
            self.notifier.error("Error", describe_error(exc, "Failed to delete message"))
            return False
        self._remove_message(message_id)
        self.notifier.success("Message deleted")
        return True

    async def start_conversation(self, user_id: str) -> Conversation | None:
        try:
            conversation = await self.api.messages.start_conversation(user_id)
        except ApiError as exc:
            logger.warning("Starting conversation with %s failed: %s", user_id, exc)
            self.notifier.error("Error", describe_error(exc, "Failed to create conversation"))
            return None
        await self.load_conversations()
        listed = self._find_conversation(conversation.id)
        await self.select_conversation(listed or conversation)
        return self.state.selected_conversation

    async def join_group(self, group_id: str) -> bool:
        try:
            await self.api.groups.join(group_id)
        except ApiError as exc:
            logger.warning("Joining group %s failed: %s", group_id, exc)
            self.notifier.error("Error", describe_error(exc, "Failed to join group"))
            return False
        await self.load_groups()
        return True

    async def open_deep_link(
        self,
        *,
        user_id: str | None = None,
        group_id: str | None = None,
        channel_id: str | None = None,
    ) -> None:
        """Open the conversation or group a shared link points at."""

        try:
            if user_id:
                await self.switch_tab(MessagingTab.PRIVATE)
                existing = next(
                    (c for c in self.state.conversations if c.other_user is not None and c.other_user.id == user_id),
                    None,
                )
                if existing is not None:
                    await self.select_conversation(existing)
                else:
                    await self.start_conversation(user_id)
            elif group_id:
                await self.switch_tab(MessagingTab.GROUPS)
                if not any(group.id == group_id for group in self.state.groups):
                    if not await self.join_group(group_id):
                        self.notifier.error("Access denied", "You don't have access to this group")
                        return
                group = await self.api.groups.get(group_id)
                await self.select_group(group)
                if channel_id:
                    channel = next((c for c in self.state.channels if c.id == channel_id), None)
                    if channel is not None:
                        await self.select_channel(channel)
        except ApiError as exc:
            logger.warning("Opening deep link failed: %s", exc)
            self.notifier.error("Error", "Failed to open the conversation")

    async def start_typing(self) -> None:
        conversation = self.state.selected_conversation
        if conversation is not None and self._channel is not None:
            await self._channel.start_typing(conversation.id)

    async def stop_typing(self) -> None:
        conversation = self.state.selected_conversation
        if conversation is not None and self._channel is not None:
            await self._channel.stop_typing(conversation.id)

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------
    async def _on_message_new(self, payload: object) -> None:
        event = parse_event(MessageNewEvent, payload, EVENT_MESSAGE_NEW)
        if event is None or self._closed:
            return
        message = event.message
        is_open = self._is_open_conversation(event.conversation_id)
        from_other = message.sender_id != self.viewer_id

        updated = []
        found = False
        for conversation in self.state.conversations:
            if conversation.id != event.conversation_id:
                updated.append(conversation)
                continue
            found = True
            unread = conversation.unread_count + 1 if from_other and not is_open else conversation.unread_count
            updated.append(
                conversation.model_copy(
                    update={
                        "last_message": LastMessage(content=message.content, created_at=message.created_at),
                        "updated_at": message.created_at,
                        "unread_count": unread,
                    }
                )
            )
        if found:
            self.state.conversations = sort_conversations(updated)

        if is_open:
            self.state.messages = append_message(self.state.messages, message)
            if from_other:
                try:
                    await self.api.messages.mark_read(message.id)
                except ApiError as exc:
                    logger.warning("Marking message %s read failed: %s", message.id, exc)

        await self.load_conversations()

    def _on_message_deleted(self, payload: object) -> None:
        event = parse_event(MessageDeletedEvent, payload, EVENT_MESSAGE_DELETED)
        if event is not None and self._is_open_conversation(event.conversation_id):
            self._remove_message(event.message_id)

    def _on_user_typing(self, payload: object) -> None:
        event = parse_event(TypingEvent, payload, EVENT_USER_TYPING)
        if event is None or not self._is_open_conversation(event.conversation_id):
            return
        if event.user_id == self.viewer_id:
            return
        self.state.other_user_typing = event.typing
        if event.typing:
            self._cancel_typing_timer()
            loop = asyncio.get_running_loop()
            self._typing_timer = loop.call_later(self.typing_timeout, self._clear_typing)

    async def _on_notification(self, payload: object) -> None:
        event = parse_event(NotificationEvent, payload, EVENT_NOTIFICATION_NEW)
        if event is None or event.type != NOTIFICATION_NEW_MESSAGE or self._closed:
            return
        await self.load_conversations()
        if event.conversation_id and self._is_open_conversation(event.conversation_id):
            await self.load_messages()

    def _on_channel_message_new(self, payload: object) -> None:
        event = parse_event(ChannelMessageNewEvent, payload, EVENT_CHANNEL_MESSAGE_NEW)
        if event is None:
            return
        if self._is_open_group(event.group_id) and self._is_open_channel(event.channel_id):
            self.state.messages = append_message(self.state.messages, event.message)
            return
        self.state.groups = tuple(
            group.model_copy(update={"unread_count": group.unread_count + 1}) if group.id == event.group_id else group
            for group in self.state.groups
        )

    def _on_channel_message_deleted(self, payload: object) -> None:
        event = parse_event(ChannelMessageDeletedEvent, payload, EVENT_CHANNEL_MESSAGE_DELETED)
        if event is not None and self._is_open_channel(event.channel_id):
            self._remove_message(event.message_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _is_open_conversation(self, conversation_id: str) -> bool:
        selected = self.state.selected_conversation
        return selected is not None and selected.id == conversation_id

    def _is_open_group(self, group_id: str) -> bool:
        selected = self.state.selected_group
        return selected is not None and selected.id == group_id

    def _is_open_channel(self, channel_id: str) -> bool:
        selected = self.state.selected_channel
        return selected is not None and selected.id == channel_id

    def _find_conversation(self, conversation_id: str) -> Conversation | None:
        return next((c for c in self.state.conversations if c.id == conversation_id), None)

    def _remove_message(self, message_id: str) -> None:
        self.state.messages = tuple(message for message in self.state.messages if message.id != message_id)

    def _clear_typing(self) -> None:
        self._typing_timer = None
        self.state.other_user_typing = False

    def _cancel_typing_timer(self) -> None:
        if self._typing_timer is not None:
            self._typing_timer.cancel()
            self._typing_timer = None


def _quote_fields(quoted: Message | None) -> dict[str, str | None]:
    if quoted is None:
        return {}
    return {
        "quoted_message_id": quoted.id,
        "quoted_text": quoted.quoted_text or quoted.content,
    }


__all__ = [
    "MessagingSession",
    "MessagingState",
    "MessagingTab",
    "append_message",
    "sort_conversations",
]
