"""
Abstract base class for live chat clients.
"""

from abc import ABC, abstractmethod
from typing import AsyncGenerator, Optional

from .events import ChatMessage, Event


class BaseChatClient(ABC):
    """
    A restartable source of live chat events.

    Subclasses provide ``connect``, ``disconnect`` and ``next_event``. The
    message and iterator views here all read from ``next_event``, so they
    compete for the same events: use one consumer per connection.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Connect to the chat stream."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Disconnect from the chat stream."""
        pass

    @abstractmethod
    async def next_event(self) -> Optional[Event]:
        """
        Wait for the next event.

        Returns:
            Event: the next decoded event, or None once disconnected
        """
        pass

    async def next_message(self) -> Optional[ChatMessage]:
        """
        Wait for the next chat message.

        Events of any other kind are read and skipped.

        Returns:
            ChatMessage: the next chat message, or None once disconnected
        """
        while True:
            event = await self.next_event()
            if event is None:
                return None
            if isinstance(event, ChatMessage):
                return event

    async def events(self) -> AsyncGenerator[Event, None]:
        """
        Iterate over every event.

        Yields:
            Event: decoded events, including OpaqueEvent for unknown ones
        """
        while True:
            event = await self.next_event()
            if event is None:
                return
            yield event

    async def listen(self) -> AsyncGenerator[ChatMessage, None]:
        """
        Listen for chat messages.

        Yields:
            ChatMessage: parsed chat messages
        """
        while True:
            message = await self.next_message()
            if message is None:
                return
            yield message

    async def __aenter__(self):
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.disconnect()
