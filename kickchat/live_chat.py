"""
Kick live chat client over the public Pusher WebSocket.
"""

import logging
from typing import Optional

from .base import BaseChatClient
from .config import StreamConfig
from .connection import Connection, ConnectionManager, ConnectionState, Transport
from .events import Event
from .exceptions import StreamError

logger = logging.getLogger(__name__)


class LiveChatClient(BaseChatClient):
    """
    Receives live chat events for one chatroom. No authentication is required.

    The chatroom ID can be found with ``get_chatroom_id(slug)`` or by visiting
    ``https://kick.com/api/v2/channels/{slug}`` and looking for
    ``"chatroom":{"id":``.

    Example:
        async with LiveChatClient(27670567) as chat:
            async for message in chat.listen():
                print(f"{message.sender.username}: {message.content}")

    Reconnects happen behind the scenes. Events sent while the socket is down
    are missed, never replayed.
    """

    def __init__(
        self,
        chatroom_id: int,
        config: Optional[StreamConfig] = None,
        transport: Optional[Transport] = None,
    ):
        """
        Initialize the live chat client.

        Args:
            chatroom_id: Numeric chatroom ID
            config: Stream configuration (timeouts, heartbeat, backoff)
            transport: Socket factory, defaults to websockets
        """
        self.chatroom_id = chatroom_id
        self.manager = ConnectionManager(config, transport)
        self.connection: Optional[Connection] = None

    @property
    def is_connected(self) -> bool:
        return (
            self.connection is not None
            and not self.connection.is_closed
            and not self.connection.is_failed
        )

    @property
    def state(self) -> ConnectionState:
        if self.connection is None:
            return ConnectionState.DISCONNECTED
        return self.connection.state

    async def connect(self) -> None:
        """
        Subscribe to the chatroom, starting a fresh event sequence.

        Raises:
            ConnectError: if the subscription can not be established
        """
        if self.is_connected:
            logger.warning("Already connected to chatroom %s", self.chatroom_id)
            return
        if self.connection is not None:
            # A connection that gave up is replaced, not resumed
            await self.connection.close()
        self.connection = await self.manager.connect(self.chatroom_id)

    async def disconnect(self) -> None:
        """Close the connection; waiting readers get None."""
        if self.connection:
            await self.connection.close()

    async def next_event(self) -> Optional[Event]:
        """
        Wait for the next event from the chatroom.

        Returns:
            Event: the next event, or None once disconnected

        Raises:
            ConnectError: the connection was lost for good
        """
        if self.connection is None:
            raise StreamError("Not connected. Call connect() first.")
        return await self.connection.next_event()
