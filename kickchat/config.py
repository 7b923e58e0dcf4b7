"""
Configuration types for the REST client and the live chat stream.

Both configs are immutable and validated on construction.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from .backoff import BackoffPolicy
from .exceptions import ConfigurationError

KICK_API_BASE_URL = "https://api.kick.com/public/v1"
KICK_WEBSITE_URL = "https://kick.com"

PUSHER_APP_KEY = "32cbd69e4b950bf97679"
PUSHER_URL = (
    f"wss://ws-us2.pusher.com/app/{PUSHER_APP_KEY}"
    "?protocol=7&client=js&version=8.4.0&flash=false"
)


@dataclass(frozen=True)
class ApiConfig:
    """Configuration for the REST request pipeline."""

    base_url: str = KICK_API_BASE_URL
    timeout: float = 30.0  # per attempt, seconds
    backoff: BackoffPolicy = field(default_factory=BackoffPolicy)
    token: Optional[str] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if not self.base_url.startswith(("http://", "https://")):
            raise ConfigurationError(
                "base_url must be an http(s) URL", field="base_url", value=self.base_url
            )
        if self.timeout <= 0:
            raise ConfigurationError(
                "timeout must be positive", field="timeout", value=self.timeout
            )

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "ApiConfig":
        """
        Build a config from the environment, loading a .env file first.

        Recognised variables:
            KICK_OAUTH_TOKEN: bearer token for authenticated endpoints
            KICK_API_BASE_URL: REST base URL
            KICK_HTTP_TIMEOUT: per-attempt timeout in seconds
            KICK_MAX_ATTEMPTS: attempt ceiling per request
        """
        load_dotenv(dotenv_path)

        timeout = _env_number("KICK_HTTP_TIMEOUT", float, 30.0)
        max_attempts = _env_number("KICK_MAX_ATTEMPTS", int, BackoffPolicy.max_attempts)

        return cls(
            base_url=os.getenv("KICK_API_BASE_URL") or KICK_API_BASE_URL,
            timeout=timeout,
            backoff=BackoffPolicy(max_attempts=max_attempts),
            token=os.getenv("KICK_OAUTH_TOKEN") or None,
        )


@dataclass(frozen=True)
class StreamConfig:
    """Configuration for a live chat WebSocket connection."""

    url: str = PUSHER_URL
    connect_timeout: float = 10.0
    handshake_timeout: float = 10.0
    heartbeat_interval: float = 30.0  # client-side pusher:ping
    heartbeat_grace: float = 10.0  # time allowed for the matching pusher:pong
    resubscribe_attempts: int = 1  # immediate retries while degraded
    max_buffered_events: int = 0  # unread events kept; 0 means no limit
    backoff: BackoffPolicy = field(default_factory=BackoffPolicy)

    def __post_init__(self) -> None:
        if not self.url.startswith(("ws://", "wss://")):
            raise ConfigurationError(
                "url must be a ws(s) URL", field="url", value=self.url
            )
        for name in ("connect_timeout", "handshake_timeout", "heartbeat_interval", "heartbeat_grace"):
            value = getattr(self, name)
            if value <= 0:
                raise ConfigurationError(f"{name} must be positive", field=name, value=value)
        if self.resubscribe_attempts < 0:
            raise ConfigurationError(
                "resubscribe_attempts must be non-negative",
                field="resubscribe_attempts",
                value=self.resubscribe_attempts,
            )
        if self.max_buffered_events < 0:
            raise ConfigurationError(
                "max_buffered_events must be non-negative",
                field="max_buffered_events",
                value=self.max_buffered_events,
            )


def _env_number(name, cast, default):
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number", field=name, value=raw) from e
