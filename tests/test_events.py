"""
Tests for Pusher frame decoding.
"""

import json

import pytest

from kickchat.events import (
    CHAT_MESSAGE_EVENT,
    CONNECTION_ESTABLISHED,
    GIFTED_SUBSCRIPTIONS_EVENT,
    MESSAGE_DELETED_EVENT,
    PINNED_MESSAGE_CREATED_EVENT,
    POLL_UPDATE_EVENT,
    PUSHER_ERROR,
    PUSHER_PING,
    SUBSCRIPTION_EVENT,
    USER_BANNED_EVENT,
    ChannelSubscription,
    ChatMessage,
    ConnectionEstablished,
    EventEnvelope,
    GiftedSubscriptions,
    MessageDeleted,
    OpaqueEvent,
    PinnedMessageCreated,
    Ping,
    PollUpdate,
    ProtocolError,
    UserBanned,
    decode,
    decode_envelope,
    decode_event,
    encode_frame,
    room_id_from_channel,
    topic_for_room,
)
from kickchat.exceptions import MalformedEnvelopeError
from tests.fakes import frame

CHAT_FRAME = (
    r'{"event":"App\\Events\\ChatMessageEvent","channel":"chatrooms.27670567.v2",'
    r'"data":"{\"id\":\"abc\",\"content\":\"hi\",\"sender\":{\"username\":\"bob\"}}"}'
)


class TestDecodeEnvelope:
    """Tests for decode_envelope."""

    def test_string_data_kept_verbatim(self):
        envelope = decode_envelope(CHAT_FRAME)

        assert envelope == EventEnvelope(
            event=CHAT_MESSAGE_EVENT,
            channel="chatrooms.27670567.v2",
            data='{"id":"abc","content":"hi","sender":{"username":"bob"}}',
        )

    def test_object_data_is_reencoded(self):
        envelope = decode_envelope('{"event": "pusher:ping", "data": {}}')

        assert envelope.data == "{}"
        assert envelope.channel is None

    def test_missing_data(self):
        assert decode_envelope('{"event": "pusher:pong"}').data == ""

    def test_bytes_accepted(self):
        assert decode_envelope(CHAT_FRAME.encode("utf-8")).event == CHAT_MESSAGE_EVENT

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            "[1, 2, 3]",
            '"just a string"',
            '{"data": "{}"}',
            '{"event": "", "data": "{}"}',
            '{"event": 5, "data": "{}"}',
            '{"event": "x", "channel": 12, "data": "{}"}',
            '{"event": "x", "data": 12}',
            b"\xff\xfe",
        ],
    )
    def test_malformed(self, raw):
        with pytest.raises(MalformedEnvelopeError):
            decode_envelope(raw)

    def test_deeply_nested_frame(self):
        with pytest.raises(MalformedEnvelopeError, match="nested too deeply"):
            decode_envelope("[" * 200000 + "]" * 200000)


class TestDecodeChatMessage:
    """Tests for chat message decoding."""

    def test_minimal_frame(self):
        event = decode(CHAT_FRAME)

        assert isinstance(event, ChatMessage)
        assert event.content == "hi"
        assert event.sender.username == "bob"
        assert event.id == "abc"
        assert event.room_id == 27670567
        assert event.created_at is None
        assert event.timestamp == event.received_at

    def test_full_payload(self):
        payload = {
            "id": "m-1",
            "chatroom_id": 42,
            "content": "replying",
            "type": "reply",
            "created_at": "2025-03-01T10:00:00Z",
            "sender": {
                "id": 99,
                "username": "Alice",
                "slug": "alice",
                "identity": {
                    "color": "#00FF00",
                    "badges": [
                        {"type": "moderator", "text": "Moderator"},
                        {"type": "subscriber", "text": "Subscriber", "count": 6},
                    ],
                },
            },
            "metadata": {
                "original_sender": {"id": 1, "username": "bob"},
                "original_message": {"id": "m-0", "content": "hello"},
            },
        }

        event = decode(frame(CHAT_MESSAGE_EVENT, payload, "chatrooms.42.v2"))

        assert isinstance(event, ChatMessage)
        assert event.chatroom_id == 42
        assert event.sender.id == 99
        assert event.sender.color == "#00FF00"
        assert event.sender.badge_types == ["moderator", "subscriber"]
        assert event.sender.is_moderator
        assert event.sender.is_subscriber
        assert not event.sender.is_vip
        assert event.sender.badges[1].count == 6
        assert event.created_at.year == 2025
        assert event.is_reply
        assert event.metadata.original_sender == "bob"
        assert event.metadata.original_message_id == "m-0"
        assert event.raw_data == payload

    def test_bad_timestamp_keeps_message(self):
        payload = {"id": "1", "content": "x", "sender": {"username": "a"}, "created_at": "yesterday"}

        event = decode(frame(CHAT_MESSAGE_EVENT, payload))

        assert isinstance(event, ChatMessage)
        assert event.created_at is None

    @pytest.mark.parametrize(
        "payload",
        [
            {"content": "no id", "sender": {"username": "a"}},
            {"id": "1", "content": "no sender"},
            {"id": "1", "content": "x", "sender": "bob"},
            {"id": "1", "content": "x", "sender": {"id": 3}},
        ],
    )
    def test_bad_payload_becomes_opaque(self, payload):
        raw = frame(CHAT_MESSAGE_EVENT, payload, "chatrooms.1.v2")

        event = decode(raw)

        assert isinstance(event, OpaqueEvent)
        assert event.name == CHAT_MESSAGE_EVENT
        assert event.data == json.loads(raw)["data"]
        assert event.note

    def test_payload_that_is_not_json_becomes_opaque(self):
        event = decode(json.dumps({"event": CHAT_MESSAGE_EVENT, "data": "{broken"}))

        assert isinstance(event, OpaqueEvent)
        assert event.data == "{broken"

    def test_deeply_nested_payload_becomes_opaque(self):
        nested = "[" * 200000 + "]" * 200000

        event = decode(json.dumps({"event": CHAT_MESSAGE_EVENT, "data": nested}))

        assert isinstance(event, OpaqueEvent)
        assert event.data == nested
        assert event.note.startswith("RecursionError")


class TestOpaqueEvents:
    """Tests for unknown events."""

    def test_unknown_event_round_trips(self):
        data = '{ "spacing" :  "kept",\n"n": [1,2] }'
        raw = json.dumps({"event": "App\\Events\\SomethingNew", "channel": "chatrooms.5.v2", "data": data})

        event = decode(raw)

        assert isinstance(event, OpaqueEvent)
        assert event.event == "App\\Events\\SomethingNew"
        assert event.name == "App\\Events\\SomethingNew"
        assert event.data == data
        assert event.channel == "chatrooms.5.v2"
        assert event.note is None
        assert event.json() == {"spacing": "kept", "n": [1, 2]}

    def test_unknown_event_with_non_json_payload(self):
        event = decode('{"event": "custom", "data": "plain text"}')

        assert isinstance(event, OpaqueEvent)
        assert event.data == "plain text"

    def test_decode_event_from_envelope(self):
        envelope = EventEnvelope(event="mystery", channel=None, data="{}")

        event = decode_event(envelope)

        assert isinstance(event, OpaqueEvent)
        assert (event.event, event.data) == (envelope.event, envelope.data)


class TestOtherEvents:
    """Tests for the remaining typed events."""

    def test_user_banned(self):
        payload = {
            "id": "b-1",
            "user": {"id": 5, "username": "troll", "slug": "troll"},
            "banned_by": {"id": 1, "username": "mod", "slug": "mod"},
            "permanent": False,
            "duration": 10,
            "expires_at": "2025-01-01T00:10:00+00:00",
        }

        event = decode(frame(USER_BANNED_EVENT, payload, "chatrooms.1.v2"))

        assert isinstance(event, UserBanned)
        assert event.user.username == "troll"
        assert event.banned_by.username == "mod"
        assert event.duration == 10
        assert event.expires_at is not None

    def test_message_deleted(self):
        payload = {"id": "d-1", "message": {"id": "m-9"}, "aiModerated": True}

        event = decode(frame(MESSAGE_DELETED_EVENT, payload))

        assert isinstance(event, MessageDeleted)
        assert event.message_id == "m-9"
        assert event.ai_moderated is True

    def test_poll_update(self):
        payload = {
            "poll": {
                "title": "Best map?",
                "options": [{"id": 0, "label": "A", "votes": 3}, {"id": 1, "label": "B", "votes": 4}],
                "duration": 60,
                "remaining": 30,
            }
        }

        event = decode(frame(POLL_UPDATE_EVENT, payload))

        assert isinstance(event, PollUpdate)
        assert event.title == "Best map?"
        assert event.total_votes == 7

    def test_channel_subscription(self):
        payload = {"chatroom_id": 9, "username": "carol", "months": 3}

        event = decode(frame(SUBSCRIPTION_EVENT, payload, "chatrooms.9.v2"))

        assert isinstance(event, ChannelSubscription)
        assert (event.username, event.months, event.chatroom_id) == ("carol", 3, 9)

    def test_gifted_subscriptions(self):
        payload = {"chatroom_id": 1, "gifted_usernames": ["a", "b"], "gifter_username": "santa"}

        event = decode(frame(GIFTED_SUBSCRIPTIONS_EVENT, payload))

        assert isinstance(event, GiftedSubscriptions)
        assert event.gifted_usernames == ["a", "b"]

    def test_pinned_message(self):
        payload = {
            "message": {"id": "m-1", "content": "pinned!", "sender": {"username": "host"}},
            "duration": 120,
        }

        event = decode(frame(PINNED_MESSAGE_CREATED_EVENT, payload, "chatrooms.8.v2"))

        assert isinstance(event, PinnedMessageCreated)
        assert event.message.content == "pinned!"
        assert event.message.room_id == 8


class TestControlEvents:
    """Tests for Pusher protocol frames."""

    def test_connection_established(self):
        event = decode(frame(CONNECTION_ESTABLISHED, {"socket_id": "1.2", "activity_timeout": 120}))

        assert isinstance(event, ConnectionEstablished)
        assert event.socket_id == "1.2"
        assert event.activity_timeout == 120

    def test_ping_with_object_data(self):
        assert isinstance(decode('{"event": "pusher:ping", "data": {}}'), Ping)

    @pytest.mark.parametrize("code,fatal", [(4001, True), (4099, True), (4100, False), (4200, False), (None, False)])
    def test_protocol_error_fatality(self, code, fatal):
        event = decode(json.dumps({"event": PUSHER_ERROR, "data": {"message": "x", "code": code}}))

        assert isinstance(event, ProtocolError)
        assert event.is_fatal is fatal


class TestHelpers:
    """Tests for frame encoding and channel helpers."""

    def test_encode_frame(self):
        assert json.loads(encode_frame(PUSHER_PING)) == {"event": "pusher:ping", "data": {}}

    def test_encode_frame_with_channel(self):
        encoded = json.loads(encode_frame("client-event", {"a": 1}, channel="chatrooms.1.v2"))

        assert encoded == {"event": "client-event", "data": {"a": 1}, "channel": "chatrooms.1.v2"}

    def test_room_id_from_channel(self):
        assert room_id_from_channel("chatrooms.27670567.v2") == 27670567
        assert room_id_from_channel("chatrooms.12") == 12
        assert room_id_from_channel("channel.12") is None
        assert room_id_from_channel(None) is None

    def test_topic_for_room(self):
        assert topic_for_room(27670567) == "chatrooms.27670567.v2"
