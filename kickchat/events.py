"""
Decoding of Kick's Pusher frames into typed events.

Pusher frames look like::

    {"event": "App\\Events\\ChatMessageEvent",
     "channel": "chatrooms.27670567.v2",
     "data": "{\\"id\\": \\"...\\", \\"content\\": \\"hi\\", ...}"}

The ``data`` field is itself JSON encoded as a string. Decoding happens in two
steps: the outer envelope is parsed strictly, then the payload is decoded
into a typed event when the event name is known. Unknown event names, and
known events whose payload does not match the expected shape, become an
``OpaqueEvent`` that keeps the name and the raw payload text untouched.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, ClassVar, Dict, List, Optional, Union

from .exceptions import MalformedEnvelopeError

logger = logging.getLogger(__name__)

# Kick application events
CHAT_MESSAGE_EVENT = "App\\Events\\ChatMessageEvent"
USER_BANNED_EVENT = "App\\Events\\UserBannedEvent"
USER_UNBANNED_EVENT = "App\\Events\\UserUnbannedEvent"
MESSAGE_DELETED_EVENT = "App\\Events\\MessageDeletedEvent"
POLL_UPDATE_EVENT = "App\\Events\\PollUpdateEvent"
POLL_DELETE_EVENT = "App\\Events\\PollDeleteEvent"
SUBSCRIPTION_EVENT = "App\\Events\\SubscriptionEvent"
GIFTED_SUBSCRIPTIONS_EVENT = "App\\Events\\GiftedSubscriptionsEvent"
PINNED_MESSAGE_CREATED_EVENT = "App\\Events\\PinnedMessageCreatedEvent"
PINNED_MESSAGE_DELETED_EVENT = "App\\Events\\PinnedMessageDeletedEvent"
CHATROOM_CLEAR_EVENT = "App\\Events\\ChatroomClearEvent"
STREAM_HOST_EVENT = "App\\Events\\StreamHostEvent"

# Pusher protocol events
CONNECTION_ESTABLISHED = "pusher:connection_established"
SUBSCRIPTION_SUCCEEDED = "pusher_internal:subscription_succeeded"
SUBSCRIPTION_ERROR = "pusher:subscription_error"
PUSHER_ERROR = "pusher:error"
PUSHER_PING = "pusher:ping"
PUSHER_PONG = "pusher:pong"
PUSHER_SUBSCRIBE = "pusher:subscribe"

_CHATROOM_CHANNEL = re.compile(r"^chatrooms\.(\d+)(?:\.v2)?$")


class PayloadError(ValueError):
    """A known event's payload does not have the expected shape."""


@dataclass(frozen=True)
class EventEnvelope:
    """The outer Pusher frame, before the payload is decoded."""

    event: str
    channel: Optional[str]
    data: str


@dataclass
class Event:
    """Base class for decoded events."""

    EVENT_NAME: ClassVar[str] = ""

    channel: Optional[str]

    @property
    def name(self) -> str:
        return self.EVENT_NAME


# ---------------------------------------------------------------------------
# Chat payload parts
# ---------------------------------------------------------------------------


@dataclass
class ChatBadge:
    """A badge displayed next to a user's name in chat."""

    type: str
    text: str = ""
    count: Optional[int] = None


@dataclass
class ChatSender:
    """The user who sent a chat message."""

    username: str
    id: Optional[int] = None
    slug: Optional[str] = None
    color: Optional[str] = None
    badges: List[ChatBadge] = field(default_factory=list)

    @property
    def badge_types(self) -> List[str]:
        return [badge.type for badge in self.badges if badge.type]

    @property
    def is_moderator(self) -> bool:
        return "moderator" in self.badge_types

    @property
    def is_subscriber(self) -> bool:
        return "subscriber" in self.badge_types

    @property
    def is_vip(self) -> bool:
        return "vip" in self.badge_types

    @property
    def is_broadcaster(self) -> bool:
        return "broadcaster" in self.badge_types


@dataclass
class ReplyMetadata:
    """What a reply message is replying to."""

    original_sender: Optional[str] = None
    original_message_id: Optional[str] = None
    original_message: Optional[str] = None


@dataclass
class ChatUser:
    """A user referenced by a moderation event."""

    username: str
    id: Optional[int] = None
    slug: Optional[str] = None


@dataclass
class PollOption:
    id: int
    label: str
    votes: int = 0


# ---------------------------------------------------------------------------
# Typed events
# ---------------------------------------------------------------------------


@dataclass
class ChatMessage(Event):
    """A message sent in a chatroom."""

    EVENT_NAME: ClassVar[str] = CHAT_MESSAGE_EVENT

    id: str
    content: str
    sender: ChatSender
    chatroom_id: Optional[int] = None
    type: str = "message"
    created_at: Optional[datetime] = None
    metadata: Optional[ReplyMetadata] = None
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    raw_data: Optional[Dict[str, Any]] = field(default=None, repr=False)

    @property
    def room_id(self) -> Optional[int]:
        if self.chatroom_id is not None:
            return self.chatroom_id
        return room_id_from_channel(self.channel)

    @property
    def timestamp(self) -> datetime:
        return self.created_at or self.received_at

    @property
    def is_reply(self) -> bool:
        return self.metadata is not None


@dataclass
class UserBanned(Event):
    EVENT_NAME: ClassVar[str] = USER_BANNED_EVENT

    user: ChatUser
    banned_by: Optional[ChatUser] = None
    id: Optional[str] = None
    permanent: bool = False
    duration: Optional[int] = None  # minutes
    expires_at: Optional[datetime] = None


@dataclass
class UserUnbanned(Event):
    EVENT_NAME: ClassVar[str] = USER_UNBANNED_EVENT

    user: ChatUser
    unbanned_by: Optional[ChatUser] = None
    id: Optional[str] = None


@dataclass
class MessageDeleted(Event):
    EVENT_NAME: ClassVar[str] = MESSAGE_DELETED_EVENT

    message_id: str
    id: Optional[str] = None
    ai_moderated: bool = False


@dataclass
class PollUpdate(Event):
    EVENT_NAME: ClassVar[str] = POLL_UPDATE_EVENT

    title: str
    options: List[PollOption] = field(default_factory=list)
    duration: Optional[int] = None
    remaining: Optional[int] = None
    result_display_duration: Optional[int] = None

    @property
    def total_votes(self) -> int:
        return sum(option.votes for option in self.options)


@dataclass
class PollDeleted(Event):
    EVENT_NAME: ClassVar[str] = POLL_DELETE_EVENT


@dataclass
class ChannelSubscription(Event):
    EVENT_NAME: ClassVar[str] = SUBSCRIPTION_EVENT

    username: str
    months: Optional[int] = None
    chatroom_id: Optional[int] = None


@dataclass
class GiftedSubscriptions(Event):
    EVENT_NAME: ClassVar[str] = GIFTED_SUBSCRIPTIONS_EVENT

    gifter_username: str
    gifted_usernames: List[str] = field(default_factory=list)
    chatroom_id: Optional[int] = None


@dataclass
class PinnedMessageCreated(Event):
    EVENT_NAME: ClassVar[str] = PINNED_MESSAGE_CREATED_EVENT

    message: ChatMessage
    duration: Optional[int] = None


@dataclass
class PinnedMessageDeleted(Event):
    EVENT_NAME: ClassVar[str] = PINNED_MESSAGE_DELETED_EVENT


@dataclass
class ChatroomCleared(Event):
    EVENT_NAME: ClassVar[str] = CHATROOM_CLEAR_EVENT

    id: Optional[str] = None


@dataclass
class StreamHost(Event):
    EVENT_NAME: ClassVar[str] = STREAM_HOST_EVENT

    host_username: str
    number_viewers: int = 0
    optional_message: Optional[str] = None
    chatroom_id: Optional[int] = None


# Pusher control events


@dataclass
class ControlEvent(Event):
    """Pusher protocol traffic, as opposed to chatroom activity."""


@dataclass
class ConnectionEstablished(ControlEvent):
    EVENT_NAME: ClassVar[str] = CONNECTION_ESTABLISHED

    socket_id: str
    activity_timeout: Optional[int] = None


@dataclass
class SubscriptionSucceeded(ControlEvent):
    EVENT_NAME: ClassVar[str] = SUBSCRIPTION_SUCCEEDED


@dataclass
class SubscriptionFailed(ControlEvent):
    EVENT_NAME: ClassVar[str] = SUBSCRIPTION_ERROR

    error: str = ""
    status: Optional[int] = None


@dataclass
class ProtocolError(ControlEvent):
    """``pusher:error``; the code decides whether reconnecting is allowed."""

    EVENT_NAME: ClassVar[str] = PUSHER_ERROR

    message: str = ""
    code: Optional[int] = None

    @property
    def is_fatal(self) -> bool:
        # 4000-4099: the client must not reconnect
        return self.code is not None and 4000 <= self.code < 4100


@dataclass
class Ping(ControlEvent):
    EVENT_NAME: ClassVar[str] = PUSHER_PING


@dataclass
class Pong(ControlEvent):
    EVENT_NAME: ClassVar[str] = PUSHER_PONG


@dataclass
class OpaqueEvent(Event):
    """
    An event that was not decoded into a typed variant.

    ``event`` and ``data`` are exactly what arrived on the wire. ``note`` is
    set when the name was recognised but the payload could not be decoded.
    """

    event: str = ""
    data: str = ""
    note: Optional[str] = None

    @property
    def name(self) -> str:
        return self.event

    def json(self) -> Any:
        return json.loads(self.data) if self.data else None


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def decode_envelope(raw: Union[str, bytes]) -> EventEnvelope:
    """
    Parse the outer Pusher frame.

    Raises:
        MalformedEnvelopeError: if the frame is not a JSON object with a
            string ``event``, an optional string ``channel`` and a ``data``
            field that is text, an object/array, or absent
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedEnvelopeError(f"Frame is not valid UTF-8: {e}") from e

    try:
        frame = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedEnvelopeError(f"Frame is not valid JSON: {e}", raw=raw) from e
    except RecursionError as e:
        raise MalformedEnvelopeError("Frame is nested too deeply", raw=raw[:200]) from e

    if not isinstance(frame, dict):
        raise MalformedEnvelopeError("Frame is not a JSON object", raw=raw)

    event = frame.get("event")
    if not isinstance(event, str) or not event:
        raise MalformedEnvelopeError("Frame has no event name", raw=raw)

    channel = frame.get("channel")
    if channel is not None and not isinstance(channel, str):
        raise MalformedEnvelopeError("Frame channel is not a string", raw=raw)

    data = frame.get("data")
    if data is None:
        data = ""
    elif isinstance(data, (dict, list)):
        # Pusher protocol frames carry an object instead of encoded text
        data = json.dumps(data, separators=(",", ":"))
    elif not isinstance(data, str):
        raise MalformedEnvelopeError("Frame data is neither text nor an object", raw=raw)

    return EventEnvelope(event=event, channel=channel, data=data)


def decode_event(envelope: EventEnvelope) -> Event:
    """Decode the payload of an envelope into a typed event, or an OpaqueEvent."""
    decoder = _DECODERS.get(envelope.event)
    if decoder is None:
        return OpaqueEvent(channel=envelope.channel, event=envelope.event, data=envelope.data)

    try:
        payload = _load_payload(envelope.data)
        return decoder(envelope.channel, payload)
    except (PayloadError, AttributeError, KeyError, TypeError, ValueError, RecursionError) as e:
        note = f"{type(e).__name__}: {e}"
        logger.debug("Could not decode %s payload: %s", envelope.event, note)
        return OpaqueEvent(
            channel=envelope.channel, event=envelope.event, data=envelope.data, note=note
        )


def decode(raw: Union[str, bytes]) -> Event:
    """Decode a raw frame. Only a malformed outer envelope raises."""
    return decode_event(decode_envelope(raw))


def encode_frame(event: str, data: Any = None, channel: Optional[str] = None) -> str:
    """Build a client-to-server Pusher frame."""
    frame: Dict[str, Any] = {"event": event, "data": {} if data is None else data}
    if channel is not None:
        frame["channel"] = channel
    return json.dumps(frame)


def room_id_from_channel(channel: Optional[str]) -> Optional[int]:
    """Extract the chatroom id from a ``chatrooms.<id>.v2`` channel name."""
    if not channel:
        return None
    match = _CHATROOM_CHANNEL.match(channel)
    return int(match.group(1)) if match else None


def topic_for_room(room_id: int) -> str:
    return f"chatrooms.{room_id}.v2"


def _load_payload(data: str) -> Dict[str, Any]:
    if not data:
        return {}
    payload = json.loads(data)
    if not isinstance(payload, dict):
        raise PayloadError("payload is not a JSON object")
    return payload


def _require(payload: Dict[str, Any], key: str) -> Any:
    value = payload.get(key)
    if value is None:
        raise PayloadError(f"missing field '{key}'")
    return value


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


def _parse_time(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def _object(value: Any, what: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise PayloadError(f"{what} is not an object")
    return value


def _parse_sender(raw: Any) -> ChatSender:
    sender = _object(raw, "sender")
    identity = sender.get("identity") or {}
    badges = []
    for badge in identity.get("badges") or []:
        if isinstance(badge, dict) and badge.get("type"):
            badges.append(
                ChatBadge(
                    type=badge["type"],
                    text=badge.get("text") or "",
                    count=_optional_int(badge.get("count")),
                )
            )
    return ChatSender(
        username=str(_require(sender, "username")),
        id=_optional_int(sender.get("id")),
        slug=sender.get("slug"),
        color=identity.get("color"),
        badges=badges,
    )


def _parse_user(raw: Any, what: str) -> ChatUser:
    user = _object(raw, what)
    return ChatUser(
        username=str(_require(user, "username")),
        id=_optional_int(user.get("id")),
        slug=user.get("slug"),
    )


def _parse_reply(raw: Any) -> Optional[ReplyMetadata]:
    if not isinstance(raw, dict):
        return None
    sender = raw.get("original_sender") or {}
    message = raw.get("original_message") or {}
    if not sender and not message:
        return None
    return ReplyMetadata(
        original_sender=sender.get("username"),
        original_message_id=message.get("id"),
        original_message=message.get("content"),
    )


def _chat_message(channel: Optional[str], payload: Dict[str, Any]) -> ChatMessage:
    return ChatMessage(
        channel=channel,
        id=str(_require(payload, "id")),
        content=str(_require(payload, "content")),
        sender=_parse_sender(_require(payload, "sender")),
        chatroom_id=_optional_int(payload.get("chatroom_id")),
        type=payload.get("type") or "message",
        created_at=_parse_time(payload.get("created_at")),
        metadata=_parse_reply(payload.get("metadata")),
        raw_data=payload,
    )


def _user_banned(channel, payload):
    return UserBanned(
        channel=channel,
        user=_parse_user(_require(payload, "user"), "user"),
        banned_by=_parse_user(payload["banned_by"], "banned_by") if payload.get("banned_by") else None,
        id=payload.get("id"),
        permanent=bool(payload.get("permanent", False)),
        duration=_optional_int(payload.get("duration")),
        expires_at=_parse_time(payload.get("expires_at")),
    )


def _user_unbanned(channel, payload):
    return UserUnbanned(
        channel=channel,
        user=_parse_user(_require(payload, "user"), "user"),
        unbanned_by=(
            _parse_user(payload["unbanned_by"], "unbanned_by") if payload.get("unbanned_by") else None
        ),
        id=payload.get("id"),
    )


def _message_deleted(channel, payload):
    message = _object(_require(payload, "message"), "message")
    return MessageDeleted(
        channel=channel,
        message_id=str(_require(message, "id")),
        id=payload.get("id"),
        ai_moderated=bool(payload.get("aiModerated", False)),
    )


def _poll_update(channel, payload):
    poll = _object(_require(payload, "poll"), "poll")
    options = [
        PollOption(
            id=int(_require(option, "id")),
            label=str(option.get("label", "")),
            votes=int(option.get("votes") or 0),
        )
        for option in poll.get("options") or []
    ]
    return PollUpdate(
        channel=channel,
        title=str(_require(poll, "title")),
        options=options,
        duration=_optional_int(poll.get("duration")),
        remaining=_optional_int(poll.get("remaining")),
        result_display_duration=_optional_int(poll.get("result_display_duration")),
    )


def _poll_deleted(channel, payload):
    return PollDeleted(channel=channel)


def _subscription(channel, payload):
    return ChannelSubscription(
        channel=channel,
        username=str(_require(payload, "username")),
        months=_optional_int(payload.get("months")),
        chatroom_id=_optional_int(payload.get("chatroom_id")),
    )


def _gifted_subscriptions(channel, payload):
    gifted = payload.get("gifted_usernames") or []
    if not isinstance(gifted, list):
        raise PayloadError("gifted_usernames is not a list")
    return GiftedSubscriptions(
        channel=channel,
        gifter_username=str(_require(payload, "gifter_username")),
        gifted_usernames=[str(name) for name in gifted],
        chatroom_id=_optional_int(payload.get("chatroom_id")),
    )


def _pinned_message_created(channel, payload):
    message = _object(_require(payload, "message"), "message")
    return PinnedMessageCreated(
        channel=channel,
        message=_chat_message(channel, message),
        duration=_optional_int(payload.get("duration")),
    )


def _pinned_message_deleted(channel, payload):
    return PinnedMessageDeleted(channel=channel)


def _chatroom_clear(channel, payload):
    return ChatroomCleared(channel=channel, id=payload.get("id"))


def _stream_host(channel, payload):
    return StreamHost(
        channel=channel,
        host_username=str(_require(payload, "host_username")),
        number_viewers=int(payload.get("number_viewers") or 0),
        optional_message=payload.get("optional_message") or None,
        chatroom_id=_optional_int(payload.get("chatroom_id")),
    )


def _connection_established(channel, payload):
    return ConnectionEstablished(
        channel=channel,
        socket_id=str(_require(payload, "socket_id")),
        activity_timeout=_optional_int(payload.get("activity_timeout")),
    )


def _subscription_succeeded(channel, payload):
    return SubscriptionSucceeded(channel=channel)


def _subscription_error(channel, payload):
    return SubscriptionFailed(
        channel=channel,
        error=str(payload.get("error") or payload.get("type") or ""),
        status=_optional_int(payload.get("status")),
    )


def _pusher_error(channel, payload):
    return ProtocolError(
        channel=channel,
        message=str(payload.get("message") or ""),
        code=_optional_int(payload.get("code")),
    )


def _ping(channel, payload):
    return Ping(channel=channel)


def _pong(channel, payload):
    return Pong(channel=channel)


_DECODERS: Dict[str, Callable[[Optional[str], Dict[str, Any]], Event]] = {
    CHAT_MESSAGE_EVENT: _chat_message,
    USER_BANNED_EVENT: _user_banned,
    USER_UNBANNED_EVENT: _user_unbanned,
    MESSAGE_DELETED_EVENT: _message_deleted,
    POLL_UPDATE_EVENT: _poll_update,
    POLL_DELETE_EVENT: _poll_deleted,
    SUBSCRIPTION_EVENT: _subscription,
    GIFTED_SUBSCRIPTIONS_EVENT: _gifted_subscriptions,
    PINNED_MESSAGE_CREATED_EVENT: _pinned_message_created,
    PINNED_MESSAGE_DELETED_EVENT: _pinned_message_deleted,
    CHATROOM_CLEAR_EVENT: _chatroom_clear,
    STREAM_HOST_EVENT: _stream_host,
    CONNECTION_ESTABLISHED: _connection_established,
    SUBSCRIPTION_SUCCEEDED: _subscription_succeeded,
    SUBSCRIPTION_ERROR: _subscription_error,
    PUSHER_ERROR: _pusher_error,
    PUSHER_PING: _ping,
    PUSHER_PONG: _pong,
}
