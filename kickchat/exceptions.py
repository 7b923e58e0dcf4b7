"""
Custom exceptions for the kickchat library.

Exception hierarchy:
- KickChatError (base)
  - ConfigurationError: invalid configuration values
  - RequestError: REST pipeline failures
    - AuthError, ClientError, RateLimitExhausted, ServerError
  - StreamError: live chat connection failures
    - ConnectError, StateTransitionError
  - DecodeError: Pusher frame decoding failures
    - MalformedEnvelopeError
  - ChannelNotFoundError: chatroom lookup found no channel
"""

from typing import Any, Optional


class KickChatError(Exception):
    """Base exception for all kickchat errors."""
    pass


class ConfigurationError(KickChatError):
    """Raised when configuration is invalid."""

    def __init__(self, message: str, *, field: Optional[str] = None, value: Any = None):
        self.field = field
        self.value = value
        super().__init__(message)


class RequestError(KickChatError):
    """Base class for REST request failures."""
    pass


class AuthError(RequestError):
    """Raised when a credential is required but missing, or rejected by the API."""

    def __init__(self, message: str, *, status: Optional[int] = None, body: Optional[str] = None):
        self.status = status
        self.body = body
        super().__init__(message)


class ClientError(RequestError):
    """Raised for non-retryable 4xx responses."""

    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        super().__init__(f"Request failed with status {status}: {body[:200]}")


class RateLimitExhausted(RequestError):
    """Raised when the retry budget is spent on repeated 429 responses."""

    def __init__(self, retry_after: Optional[float], attempts: int):
        self.retry_after = retry_after
        self.attempts = attempts
        super().__init__(
            f"Rate limited after {attempts} attempts (last retry-after: {retry_after})"
        )


class ServerError(RequestError):
    """Raised when 5xx responses or transport faults outlast the retry budget."""

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        body: Optional[str] = None,
        attempts: int = 0,
    ):
        self.status = status
        self.body = body
        self.attempts = attempts
        super().__init__(message)


class StreamError(KickChatError):
    """Base class for live chat stream failures."""
    pass


class ConnectError(StreamError):
    """Raised when the stream cannot be (re)established within the retry budget."""

    def __init__(self, message: str, *, room_id: Optional[int] = None, attempts: int = 0):
        self.room_id = room_id
        self.attempts = attempts
        super().__init__(message)


class StateTransitionError(StreamError):
    """Raised on a connection state change the state machine does not allow."""

    def __init__(self, current: Any, target: Any):
        self.current = current
        self.target = target
        super().__init__(f"Illegal connection state transition: {current} -> {target}")


class DecodeError(KickChatError):
    """Base class for frame decoding failures."""
    pass


class MalformedEnvelopeError(DecodeError):
    """Raised when the outer Pusher envelope is not well-formed."""

    def __init__(self, message: str, *, raw: Optional[str] = None):
        self.raw = raw
        super().__init__(message)


class ChannelNotFoundError(KickChatError):
    """Raised when the specified channel is not found."""

    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(f"Channel not found: {slug}")
