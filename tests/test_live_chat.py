"""
Tests for LiveChatClient and the message views.
"""

import asyncio

import pytest

from kickchat.backoff import BackoffPolicy
from kickchat.config import StreamConfig
from kickchat.connection import ConnectionState
from kickchat.events import USER_BANNED_EVENT, ChatMessage, OpaqueEvent, UserBanned
from kickchat.exceptions import ConnectError, StreamError
from kickchat.live_chat import LiveChatClient
from tests.fakes import FakeSocket, FakeTransport, chat_frame, frame

RAW_FRAME = (
    r'{"event":"App\\Events\\ChatMessageEvent","channel":"chatrooms.27670567.v2",'
    r'"data":"{\"id\":\"abc\",\"content\":\"hi\",\"sender\":{\"username\":\"bob\"}}"}'
)

CONFIG = StreamConfig(backoff=BackoffPolicy(base_delay=0.01, max_delay=0.05, max_attempts=3))


def banned_frame(username="troll"):
    return frame(USER_BANNED_EVENT, {"user": {"id": 5, "username": username}}, "chatrooms.42.v2")


class TestLiveChatClient:
    """Tests for LiveChatClient."""

    @pytest.mark.asyncio
    async def test_next_message_from_raw_frame(self):
        transport = FakeTransport([FakeSocket([RAW_FRAME])])

        async with LiveChatClient(27670567, config=CONFIG, transport=transport) as chat:
            message = await asyncio.wait_for(chat.next_message(), 2.0)

        assert isinstance(message, ChatMessage)
        assert message.content == "hi"
        assert message.sender.username == "bob"

    @pytest.mark.asyncio
    async def test_next_message_skips_other_events_in_order(self):
        script = [
            banned_frame(),
            chat_frame("1", "one"),
            frame("App\\Events\\Mystery", {"a": 1}, "chatrooms.42.v2"),
            chat_frame("2", "two"),
            banned_frame("spammer"),
            frame(USER_BANNED_EVENT, {"no_user": True}),
            chat_frame("3", "three"),
            chat_frame("4", "four"),
        ]
        transport = FakeTransport([FakeSocket(script)])
        chat = LiveChatClient(42, config=CONFIG, transport=transport)
        await chat.connect()

        messages = [await asyncio.wait_for(chat.next_message(), 2.0) for _ in range(4)]
        await chat.disconnect()

        assert [m.content for m in messages] == ["one", "two", "three", "four"]
        assert await chat.next_message() is None

    @pytest.mark.asyncio
    async def test_next_event_includes_everything(self):
        script = [banned_frame(), frame("App\\Events\\Mystery", {"a": 1}), chat_frame("1", "one")]
        transport = FakeTransport([FakeSocket(script)])

        async with LiveChatClient(42, config=CONFIG, transport=transport) as chat:
            events = [await asyncio.wait_for(chat.next_event(), 2.0) for _ in range(3)]

        assert isinstance(events[0], UserBanned)
        assert isinstance(events[1], OpaqueEvent)
        assert isinstance(events[2], ChatMessage)

    @pytest.mark.asyncio
    async def test_listen_ends_on_disconnect(self):
        transport = FakeTransport([FakeSocket([chat_frame("1", "a"), banned_frame(), chat_frame("2", "b")])])
        chat = LiveChatClient(42, config=CONFIG, transport=transport)
        await chat.connect()

        seen = []

        async def consume():
            async for message in chat.listen():
                seen.append(message.content)
                if len(seen) == 2:
                    await chat.disconnect()

        await asyncio.wait_for(consume(), 2.0)

        assert seen == ["a", "b"]
        assert not chat.is_connected

    @pytest.mark.asyncio
    async def test_events_view(self):
        transport = FakeTransport([FakeSocket([banned_frame(), chat_frame("1", "a")])])
        chat = LiveChatClient(42, config=CONFIG, transport=transport)
        await chat.connect()

        names = []
        async for event in chat.events():
            names.append(type(event).__name__)
            if len(names) == 2:
                await chat.disconnect()

        assert names == ["UserBanned", "ChatMessage"]

    @pytest.mark.asyncio
    async def test_next_event_requires_connect(self):
        chat = LiveChatClient(42, config=CONFIG, transport=FakeTransport())

        with pytest.raises(StreamError):
            await chat.next_event()
        assert chat.state == ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_restart_after_disconnect(self):
        first = FakeSocket([chat_frame("1", "old")])
        second = FakeSocket([chat_frame("2", "new")])
        transport = FakeTransport([first, second])
        chat = LiveChatClient(42, config=CONFIG, transport=transport)

        await chat.connect()
        old = await asyncio.wait_for(chat.next_message(), 2.0)
        await chat.disconnect()
        assert chat.state == ConnectionState.CLOSED

        await chat.connect()
        new = await asyncio.wait_for(chat.next_message(), 2.0)
        await chat.disconnect()

        assert (old.content, new.content) == ("old", "new")
        assert transport.attempts == 2

    @pytest.mark.asyncio
    async def test_connect_twice_is_noop(self):
        transport = FakeTransport([FakeSocket(), FakeSocket()])
        chat = LiveChatClient(42, config=CONFIG, transport=transport)

        await chat.connect()
        await chat.connect()
        await chat.disconnect()

        assert transport.attempts == 1


class TestRestartAfterFailure:
    """Tests for reconnecting once the budget is spent."""

    @pytest.mark.asyncio
    async def test_connect_replaces_failed_connection(self):
        config = StreamConfig(
            resubscribe_attempts=0,
            backoff=BackoffPolicy(base_delay=0.01, max_delay=0.05, max_attempts=2),
        )
        transport = FakeTransport([FakeSocket([chat_frame("1", "old"), OSError("reset")])])
        chat = LiveChatClient(42, config=config, transport=transport)
        await chat.connect()

        assert (await asyncio.wait_for(chat.next_message(), 2.0)).content == "old"
        with pytest.raises(ConnectError):
            await asyncio.wait_for(chat.next_message(), 2.0)
        assert not chat.is_connected

        fresh = FakeSocket([chat_frame("2", "fresh")])
        transport.sockets.append(fresh)
        await chat.connect()
        message = await asyncio.wait_for(chat.next_message(), 2.0)
        await chat.disconnect()

        assert message.content == "fresh"
        assert fresh in transport.opened
