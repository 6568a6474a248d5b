"""Convenience exports for client layer."""
from .api import (
    ApiClient,
    ApiError,
    ApiResponseError,
    ApiTransportError,
    AuthRequiredError,
    MalformedResponseError,
    describe_error,
)
from .socket import (
    SocketChannel,
    SocketChannelError,
    disconnect_channel,
    get_channel,
    initialize_channel,
    on_channel_event,
)
from .tokens import TokenStore

__all__ = [
    "ApiClient",
    "ApiError",
    "ApiResponseError",
    "ApiTransportError",
    "AuthRequiredError",
    "MalformedResponseError",
    "describe_error",
    "SocketChannel",
    "SocketChannelError",
    "disconnect_channel",
    "get_channel",
    "initialize_channel",
    "on_channel_event",
    "TokenStore",
]
