"""
Single entry point for the Kick REST API and live chat.
"""

from typing import Optional

import aiohttp

from .api import ChannelsApi, ChatApi, EventsApi, ModerationApi, RewardsApi, UsersApi
from .config import ApiConfig, StreamConfig
from .connection import Transport
from .http import RequestPipeline
from .live_chat import LiveChatClient


class KickApiClient:
    """
    Unified client for the Kick public API.

    Holds one credential and one request pipeline, shared by all resource APIs.
    The credential can not change after construction; build a new client to
    use a different token.

    Example:
        async with KickApiClient(token) as client:
            channel = await client.channels.get("xqc")
            async with client.live_chat(chatroom_id) as chat:
                message = await chat.next_message()
    """

    def __init__(
        self,
        token: Optional[str] = None,
        config: Optional[ApiConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize the client.

        Args:
            token: OAuth bearer token; overrides ``config.token``
            config: REST configuration (base URL, timeout, backoff)
            session: Externally owned aiohttp session
        """
        self.config = config or ApiConfig()
        self.pipeline = RequestPipeline(
            self.config.base_url,
            token if token is not None else self.config.token,
            policy=self.config.backoff,
            timeout=self.config.timeout,
            session=session,
        )
        self._channels = ChannelsApi(self.pipeline)
        self._users = UsersApi(self.pipeline)
        self._chat = ChatApi(self.pipeline)
        self._moderation = ModerationApi(self.pipeline)
        self._rewards = RewardsApi(self.pipeline)
        self._events = EventsApi(self.pipeline)

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "KickApiClient":
        """Build a client from ``KICK_*`` environment variables."""
        return cls(config=ApiConfig.from_env(dotenv_path))

    @property
    def has_token(self) -> bool:
        return self.pipeline.has_token

    @property
    def channels(self) -> ChannelsApi:
        return self._channels

    @property
    def users(self) -> UsersApi:
        return self._users

    @property
    def chat(self) -> ChatApi:
        return self._chat

    @property
    def moderation(self) -> ModerationApi:
        return self._moderation

    @property
    def rewards(self) -> RewardsApi:
        return self._rewards

    @property
    def events(self) -> EventsApi:
        return self._events

    def live_chat(
        self,
        chatroom_id: int,
        config: Optional[StreamConfig] = None,
        transport: Optional[Transport] = None,
    ) -> LiveChatClient:
        """
        Create a live chat client for a chatroom. The stream needs no token.

        Returns:
            LiveChatClient: not yet connected
        """
        return LiveChatClient(chatroom_id, config=config, transport=transport)

    async def close(self) -> None:
        await self.pipeline.close()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
