"""
Data models for the Kick REST API.

Response models are built with ``from_dict`` from the unwrapped ``data``
payload. Request models serialise with ``to_dict``, leaving out unset fields.
"""

import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


def _compact(values: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


@dataclass
class Category:
    id: int
    name: str
    thumbnail: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Category":
        return cls(id=data["id"], name=data["name"], thumbnail=data.get("thumbnail"))


@dataclass
class Stream:
    """A channel's current (or last) stream."""

    is_live: bool
    key: str = ""
    language: str = ""
    start_time: str = ""
    url: str = ""
    viewer_count: int = 0
    is_mature: bool = False
    custom_tags: List[str] = field(default_factory=list)
    thumbnail: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Stream":
        return cls(
            is_live=bool(data.get("is_live", False)),
            key=data.get("key") or "",
            language=data.get("language") or "",
            start_time=data.get("start_time") or "",
            url=data.get("url") or "",
            viewer_count=data.get("viewer_count") or 0,
            is_mature=bool(data.get("is_mature", False)),
            custom_tags=list(data.get("custom_tags") or []),
            thumbnail=data.get("thumbnail"),
        )


@dataclass
class Channel:
    """Channel information returned by ``/channels``."""

    broadcaster_user_id: int
    slug: str
    active_subscribers_count: int = 0
    canceled_subscribers_count: int = 0
    banner_picture: Optional[str] = None
    channel_description: Optional[str] = None
    stream_title: Optional[str] = None
    category: Optional[Category] = None
    stream: Optional[Stream] = None

    @property
    def is_live(self) -> bool:
        return self.stream is not None and self.stream.is_live

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Channel":
        category = data.get("category")
        stream = data.get("stream")
        return cls(
            broadcaster_user_id=data["broadcaster_user_id"],
            slug=data["slug"],
            active_subscribers_count=data.get("active_subscribers_count") or 0,
            canceled_subscribers_count=data.get("canceled_subscribers_count") or 0,
            banner_picture=data.get("banner_picture"),
            channel_description=data.get("channel_description"),
            stream_title=data.get("stream_title"),
            category=Category.from_dict(category) if category else None,
            stream=Stream.from_dict(stream) if stream else None,
        )


@dataclass
class User:
    user_id: int
    name: str
    email: Optional[str] = None  # only visible to the token's owner
    profile_picture: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            user_id=data["user_id"],
            name=data["name"],
            email=data.get("email"),
            profile_picture=data.get("profile_picture"),
        )


@dataclass
class TokenIntrospection:
    """
    Result of ``POST /token/introspect`` (RFC 7662).

    Everything except ``active`` is only present for active tokens.
    """

    active: bool
    client_id: Optional[str] = None
    token_type: Optional[str] = None
    scope: Optional[str] = None
    exp: Optional[int] = None

    @property
    def scopes(self) -> List[str]:
        return self.scope.split() if self.scope else []

    def has_scope(self, scope: str) -> bool:
        return scope in self.scopes

    def is_expired(self, now: Optional[float] = None) -> bool:
        if self.exp is None:
            return False
        if now is None:
            now = time.time()
        return now >= self.exp

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenIntrospection":
        return cls(
            active=bool(data.get("active", False)),
            client_id=data.get("client_id"),
            token_type=data.get("token_type"),
            scope=data.get("scope"),
            exp=data.get("exp"),
        )


@dataclass
class SendMessageRequest:
    content: str
    type: str = "user"
    broadcaster_user_id: Optional[int] = None
    reply_to_message_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact(asdict(self))


@dataclass
class SendMessageResponse:
    is_sent: bool
    message_id: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SendMessageResponse":
        return cls(is_sent=bool(data["is_sent"]), message_id=str(data["message_id"]))


@dataclass
class BanRequest:
    """
    Ban a user from a channel.

    With a ``duration`` (seconds) this is a timeout, otherwise a permanent ban.
    """

    broadcaster_user_id: int
    user_id: int
    reason: Optional[str] = None
    duration: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact(asdict(self))


@dataclass
class UnbanRequest:
    broadcaster_user_id: int
    user_id: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class RedemptionStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class FailureReason(str, Enum):
    UNKNOWN = "UNKNOWN"
    NOT_PENDING = "NOT_PENDING"
    NOT_FOUND = "NOT_FOUND"
    NOT_OWNED = "NOT_OWNED"


@dataclass
class ChannelReward:
    """A channel points reward."""

    id: str
    title: str
    cost: int
    description: str = ""
    is_enabled: bool = True
    is_paused: bool = False
    is_user_input_required: bool = False
    should_redemptions_skip_request_queue: bool = False
    background_color: str = "#00e701"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChannelReward":
        return cls(
            id=data["id"],
            title=data["title"],
            cost=data["cost"],
            description=data.get("description") or "",
            is_enabled=data.get("is_enabled", True),
            is_paused=data.get("is_paused", False),
            is_user_input_required=data.get("is_user_input_required", False),
            should_redemptions_skip_request_queue=data.get(
                "should_redemptions_skip_request_queue", False
            ),
            background_color=data.get("background_color") or "#00e701",
        )


@dataclass
class CreateRewardRequest:
    title: str
    cost: int
    description: Optional[str] = None
    is_enabled: Optional[bool] = None
    is_paused: Optional[bool] = None
    is_user_input_required: Optional[bool] = None
    should_redemptions_skip_request_queue: Optional[bool] = None
    background_color: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact(asdict(self))


@dataclass
class UpdateRewardRequest:
    """Partial update; only the fields that are set are sent."""

    title: Optional[str] = None
    description: Optional[str] = None
    cost: Optional[int] = None
    is_enabled: Optional[bool] = None
    is_paused: Optional[bool] = None
    is_user_input_required: Optional[bool] = None
    should_redemptions_skip_request_queue: Optional[bool] = None
    background_color: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact(asdict(self))


@dataclass
class ChannelRewardRedemption:
    id: str
    redeemed_at: str
    redeemer_user_id: int
    status: RedemptionStatus
    user_input: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChannelRewardRedemption":
        return cls(
            id=data["id"],
            redeemed_at=data["redeemed_at"],
            redeemer_user_id=data["redeemer"]["user_id"],
            status=RedemptionStatus(data["status"]),
            user_input=data.get("user_input"),
        )


@dataclass
class FailedRedemption:
    id: str
    reason: FailureReason

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FailedRedemption":
        try:
            reason = FailureReason(data.get("reason"))
        except ValueError:
            reason = FailureReason.UNKNOWN
        return cls(id=data["id"], reason=reason)


@dataclass
class ManageRedemptionsResponse:
    """Outcome of a batch accept or reject."""

    data: List[ChannelRewardRedemption] = field(default_factory=list)
    failed: List[FailedRedemption] = field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ManageRedemptionsResponse":
        return cls(
            data=[ChannelRewardRedemption.from_dict(item) for item in data.get("data") or []],
            failed=[FailedRedemption.from_dict(item) for item in data.get("failed") or []],
        )


@dataclass
class EventSubscription:
    """An active webhook event subscription."""

    id: str
    app_id: str
    broadcaster_user_id: int
    event: str
    version: int
    method: str
    created_at: str
    updated_at: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EventSubscription":
        return cls(
            id=data["id"],
            app_id=data["app_id"],
            broadcaster_user_id=data["broadcaster_user_id"],
            event=data["event"],
            version=data["version"],
            method=data["method"],
            created_at=data["created_at"],
            updated_at=data["updated_at"],
        )


@dataclass
class SubscribeEvent:
    name: str
    version: int = 1


@dataclass
class SubscribeRequest:
    events: List[SubscribeEvent]
    method: str = "webhook"
    broadcaster_user_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "method": self.method,
            "events": [asdict(event) for event in self.events],
        }
        if self.broadcaster_user_id is not None:
            body["broadcaster_user_id"] = self.broadcaster_user_id
        return body


@dataclass
class SubscribeResult:
    name: str
    version: int
    subscription_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.subscription_id is not None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SubscribeResult":
        return cls(
            name=data["name"],
            version=data["version"],
            subscription_id=data.get("subscription_id"),
            error=data.get("error"),
        )
