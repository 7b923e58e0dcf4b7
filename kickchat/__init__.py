"""
kickchat - an asyncio client for Kick's REST API and live chat.
"""

from .backoff import BackoffPolicy
from .base import BaseChatClient
from .chatroom import fetch_chatroom_id, get_chatroom_id
from .client import KickApiClient
from .config import ApiConfig, StreamConfig
from .connection import Connection, ConnectionManager, ConnectionState
from .events import ChatMessage, ChatSender, Event, OpaqueEvent
from .exceptions import (
    AuthError,
    ChannelNotFoundError,
    ClientError,
    ConfigurationError,
    ConnectError,
    KickChatError,
    RateLimitExhausted,
    RequestError,
    ServerError,
    StreamError,
)
from .http import RequestPipeline
from .live_chat import LiveChatClient

__version__ = "0.1.0"
__all__ = [
    "ApiConfig",
    "AuthError",
    "BackoffPolicy",
    "BaseChatClient",
    "ChannelNotFoundError",
    "ChatMessage",
    "ChatSender",
    "ClientError",
    "ConfigurationError",
    "ConnectError",
    "Connection",
    "ConnectionManager",
    "ConnectionState",
    "Event",
    "KickApiClient",
    "KickChatError",
    "LiveChatClient",
    "OpaqueEvent",
    "RateLimitExhausted",
    "RequestError",
    "RequestPipeline",
    "ServerError",
    "StreamConfig",
    "StreamError",
    "fetch_chatroom_id",
    "get_chatroom_id",
]
