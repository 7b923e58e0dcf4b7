"""
Live chat WebSocket connection for Kick's Pusher channels.

Handles the connection lifecycle:
- Pusher handshake and chatroom subscription with timeout
- Client-side pusher:ping heartbeat with a pong grace window
- Immediate resubscribe after a socket error (degraded mode)
- Exponential backoff reconnection within a fixed attempt budget

State machine::

    DISCONNECTED -> CONNECTING -> HANDSHAKING -> SUBSCRIBED <-> DEGRADED
         ^              |              |             |              |
         +--------------+--------------+-------------+--------------+
    any state -> CLOSED (caller initiated only)

A single reader task owns the socket. Decoded events go into a queue that
survives reconnects, so events already received are not lost when the socket
drops. The queue has no bound unless ``StreamConfig.max_buffered_events`` is
set, in which case the oldest unread event is dropped to make room. Events
sent by the server while no socket is subscribed are never seen:
delivery is at most once across reconnects, and events are never reordered.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional

import websockets
import websockets.exceptions

from .config import StreamConfig
from .events import (
    PUSHER_PING,
    PUSHER_PONG,
    PUSHER_SUBSCRIBE,
    ConnectionEstablished,
    ControlEvent,
    Event,
    Ping,
    Pong,
    ProtocolError,
    SubscriptionFailed,
    SubscriptionSucceeded,
    decode,
    encode_frame,
    topic_for_room,
)
from .exceptions import (
    ConfigurationError,
    ConnectError,
    MalformedEnvelopeError,
    StateTransitionError,
)

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    """State machine for a live chat connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    HANDSHAKING = "handshaking"
    SUBSCRIBED = "subscribed"
    DEGRADED = "degraded"
    CLOSED = "closed"


TRANSITIONS: Dict[ConnectionState, FrozenSet[ConnectionState]] = {
    ConnectionState.DISCONNECTED: frozenset(
        {ConnectionState.CONNECTING, ConnectionState.CLOSED}
    ),
    ConnectionState.CONNECTING: frozenset(
        {ConnectionState.HANDSHAKING, ConnectionState.DISCONNECTED, ConnectionState.CLOSED}
    ),
    ConnectionState.HANDSHAKING: frozenset(
        {ConnectionState.SUBSCRIBED, ConnectionState.DISCONNECTED, ConnectionState.CLOSED}
    ),
    ConnectionState.SUBSCRIBED: frozenset(
        {ConnectionState.DEGRADED, ConnectionState.DISCONNECTED, ConnectionState.CLOSED}
    ),
    ConnectionState.DEGRADED: frozenset(
        {ConnectionState.SUBSCRIBED, ConnectionState.DISCONNECTED, ConnectionState.CLOSED}
    ),
    ConnectionState.CLOSED: frozenset(),
}


@dataclass(frozen=True)
class Subscription:
    """A chatroom channel that is resubscribed after every reconnect."""

    topic: str
    room_id: int

    @classmethod
    def for_room(cls, room_id: int) -> "Subscription":
        return cls(topic=topic_for_room(room_id), room_id=room_id)


class Transport(ABC):
    """Opens sockets; each socket needs ``send(str)``, ``recv()`` and ``close()``."""

    @abstractmethod
    async def open(self, url: str, timeout: float) -> Any:
        pass


class WebSocketTransport(Transport):
    """Transport backed by the websockets library."""

    async def open(self, url: str, timeout: float) -> Any:
        # Keepalive is done with pusher:ping frames, not WebSocket pings
        return await websockets.connect(
            url,
            open_timeout=timeout,
            ping_interval=None,
            ping_timeout=None,
            close_timeout=5,
        )


class _HandshakeFailed(Exception):
    pass


class _HeartbeatMissed(Exception):
    pass


class _Unrecoverable(Exception):
    pass


_RETRYABLE = (
    _HandshakeFailed,
    websockets.exceptions.WebSocketException,
    OSError,
    asyncio.TimeoutError,
)

_END = object()


def _close_code(exc: BaseException) -> Optional[int]:
    rcvd = getattr(exc, "rcvd", None)
    return getattr(rcvd, "code", None)


class Connection:
    """
    One live chat subscription and the socket sessions that carry it.

    Use ``next_event()`` (or ``async for``) to consume events. The sequence
    ends with None when ``close()`` is called, and raises ``ConnectError``
    once the reconnect budget is spent or the server refuses the connection
    for good. Only one consumer should read from a connection at a time.
    """

    def __init__(
        self,
        subscription: Subscription,
        config: StreamConfig,
        transport: Transport,
    ):
        self.subscription = subscription
        self.config = config
        self._transport = transport

        self._state = ConnectionState.DISCONNECTED
        self._socket: Any = None
        self._queue: "asyncio.Queue[Any]" = asyncio.Queue()
        self._reader: Optional["asyncio.Task[None]"] = None
        self._ready: Optional["asyncio.Future[None]"] = None
        self._error: Optional[BaseException] = None

        # Assigned by the server on each handshake
        self.socket_id: Optional[str] = None

        self.reconnects = 0
        self.skipped_frames = 0
        self.dropped_events = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def topic(self) -> str:
        return self.subscription.topic

    @property
    def room_id(self) -> int:
        return self.subscription.room_id

    @property
    def is_subscribed(self) -> bool:
        return self._state == ConnectionState.SUBSCRIBED

    @property
    def is_closed(self) -> bool:
        return self._state == ConnectionState.CLOSED

    @property
    def is_failed(self) -> bool:
        """True once the connection gave up; only a new connection can resume."""
        return self._error is not None

    def _transition(self, target: ConnectionState) -> None:
        if target not in TRANSITIONS[self._state]:
            raise StateTransitionError(self._state, target)
        logger.debug("[%s] State: %s -> %s", self.topic, self._state.value, target.value)
        self._state = target

    async def open(self) -> None:
        """
        Start the reader task and wait for the first subscription.

        Raises:
            ConnectError: if no subscription succeeds within the retry budget
        """
        if self._reader is not None:
            raise ConnectError("Connection already opened", room_id=self.room_id)

        self._ready = asyncio.get_running_loop().create_future()
        self._reader = asyncio.create_task(self._run(), name=f"kickchat-{self.topic}")
        try:
            await self._ready
        except asyncio.CancelledError:
            await self.close()
            raise

    async def close(self) -> None:
        """Close the connection; pending and future ``next_event`` calls return None."""
        if self._state == ConnectionState.CLOSED:
            return

        self._transition(ConnectionState.CLOSED)
        if self._reader and not self._reader.done():
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass
        await self._drop_socket()

        if self._ready and not self._ready.done():
            self._ready.cancel()
        self._queue.put_nowait(_END)
        logger.info("[%s] Connection closed", self.topic)

    async def next_event(self) -> Optional[Event]:
        """
        Wait for the next event.

        Returns:
            The next event, or None once the connection is closed

        Raises:
            ConnectError: the connection was lost for good
        """
        if self._state == ConnectionState.CLOSED:
            return None

        item = await self._queue.get()
        if item is _END:
            self._queue.put_nowait(_END)
            if self._error is not None and self._state != ConnectionState.CLOSED:
                raise self._error
            return None
        return item

    def __aiter__(self):
        return self

    async def __anext__(self) -> Event:
        event = await self.next_event()
        if event is None:
            raise StopAsyncIteration
        return event

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # ------------------------------------------------------------------
    # Reader task
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        backoff = self.config.backoff
        failures = 0
        immediate = 0

        try:
            while True:
                if failures:
                    if backoff.exhausted(failures):
                        raise ConnectError(
                            f"Could not subscribe to {self.topic} after {failures} attempts",
                            room_id=self.room_id,
                            attempts=failures,
                        )
                    delay = backoff.delay(failures)
                    logger.warning(
                        "[%s] Reconnecting in %.2fs (attempt %d/%d)",
                        self.topic, delay, failures + 1, backoff.max_attempts,
                    )
                    await asyncio.sleep(delay)

                try:
                    socket = await self._establish()
                except _RETRYABLE as e:
                    await self._drop_socket()
                    if immediate > 0:
                        immediate -= 1
                        logger.warning("[%s] Resubscribe failed: %s", self.topic, e)
                        if immediate > 0:
                            continue
                    if self._state != ConnectionState.DISCONNECTED:
                        self._transition(ConnectionState.DISCONNECTED)
                    failures += 1
                    logger.warning(
                        "[%s] Connection attempt %d failed: %s", self.topic, failures, e
                    )
                    continue

                failures = 0
                immediate = 0
                if self._ready and not self._ready.done():
                    self._ready.set_result(None)

                try:
                    await self._pump(socket)
                except _HeartbeatMissed as e:
                    logger.warning("[%s] %s", self.topic, e)
                    await self._drop_socket()
                    self._transition(ConnectionState.DISCONNECTED)
                    self.reconnects += 1
                    failures = 1
                except _RETRYABLE as e:
                    logger.warning("[%s] Connection lost: %s", self.topic, e)
                    await self._drop_socket()
                    self.reconnects += 1
                    if self.config.resubscribe_attempts:
                        self._transition(ConnectionState.DEGRADED)
                        immediate = self.config.resubscribe_attempts
                    else:
                        self._transition(ConnectionState.DISCONNECTED)
                        failures = 1

        except _Unrecoverable as e:
            await self._fail(
                ConnectError(str(e), room_id=self.room_id, attempts=failures + 1)
            )
        except ConnectError as e:
            await self._fail(e)
        except Exception as e:
            logger.exception("[%s] Reader task crashed", self.topic)
            error = ConnectError(str(e) or type(e).__name__, room_id=self.room_id)
            error.__cause__ = e
            await self._fail(error)

    async def _fail(self, error: ConnectError) -> None:
        logger.error("[%s] Giving up: %s", self.topic, error)
        self._error = error
        await self._drop_socket()
        if self._state != ConnectionState.DISCONNECTED:
            self._transition(ConnectionState.DISCONNECTED)
        if self._ready and not self._ready.done():
            self._ready.set_exception(error)
        self._queue.put_nowait(_END)

    async def _establish(self) -> Any:
        degraded = self._state == ConnectionState.DEGRADED
        if not degraded:
            self._transition(ConnectionState.CONNECTING)

        logger.info("[%s] Connecting to %s", self.topic, self.config.url.split("?")[0])
        socket = await self._transport.open(self.config.url, self.config.connect_timeout)
        self._socket = socket

        if not degraded:
            self._transition(ConnectionState.HANDSHAKING)
        try:
            await asyncio.wait_for(self._handshake(socket), self.config.handshake_timeout)
        except asyncio.TimeoutError as e:
            raise _HandshakeFailed(
                f"No subscription acknowledgment within {self.config.handshake_timeout}s"
            ) from e

        self._transition(ConnectionState.SUBSCRIBED)
        logger.info("[%s] Subscribed (socket %s)", self.topic, self.socket_id)
        return socket

    async def _handshake(self, socket: Any) -> None:
        established = await self._await_control(socket, ConnectionEstablished)
        self.socket_id = established.socket_id

        await socket.send(
            encode_frame(PUSHER_SUBSCRIBE, {"auth": "", "channel": self.topic})
        )
        await self._await_control(socket, SubscriptionSucceeded, channel=self.topic)

    async def _await_control(self, socket: Any, expected: type, channel: Optional[str] = None):
        while True:
            raw = await self._recv(socket)
            try:
                event = decode(raw)
            except MalformedEnvelopeError as e:
                self.skipped_frames += 1
                logger.warning("[%s] Skipping malformed frame during handshake: %s", self.topic, e)
                continue

            if isinstance(event, expected) and (channel is None or event.channel == channel):
                return event
            if isinstance(event, Ping):
                await socket.send(encode_frame(PUSHER_PONG))
            elif isinstance(event, SubscriptionFailed):
                raise _HandshakeFailed(
                    f"Subscription to {self.topic} refused: {event.error} ({event.status})"
                )
            elif isinstance(event, ProtocolError):
                if event.is_fatal:
                    raise _Unrecoverable(f"Pusher error {event.code}: {event.message}")
                raise _HandshakeFailed(f"Pusher error {event.code}: {event.message}")
            else:
                logger.debug("[%s] Ignoring %s during handshake", self.topic, event.name)

    async def _recv(self, socket: Any) -> Any:
        try:
            return await socket.recv()
        except websockets.exceptions.ConnectionClosed as e:
            code = _close_code(e)
            if code is not None and 4000 <= code < 4100:
                raise _Unrecoverable(f"Server closed the connection with code {code}") from e
            raise

    async def _pump(self, socket: Any) -> None:
        loop = asyncio.get_running_loop()
        interval = self.config.heartbeat_interval
        grace = self.config.heartbeat_grace
        next_ping = loop.time() + interval
        pong_deadline: Optional[float] = None

        while True:
            now = loop.time()
            if pong_deadline is not None:
                if now >= pong_deadline:
                    raise _HeartbeatMissed(f"No {PUSHER_PONG} within {grace}s of {PUSHER_PING}")
                wake = pong_deadline
            elif now >= next_ping:
                await socket.send(encode_frame(PUSHER_PING))
                pong_deadline = now + grace
                next_ping = now + interval
                continue
            else:
                wake = next_ping

            try:
                raw = await asyncio.wait_for(self._recv(socket), timeout=wake - now)
            except asyncio.TimeoutError:
                continue

            try:
                event = decode(raw)
            except MalformedEnvelopeError as e:
                self.skipped_frames += 1
                logger.warning("[%s] Skipping malformed frame: %s", self.topic, e)
                continue

            if isinstance(event, ControlEvent):
                if isinstance(event, Pong):
                    pong_deadline = None
                await self._handle_control(socket, event)
                continue

            self._enqueue(event)

    async def _handle_control(self, socket: Any, event: ControlEvent) -> None:
        if isinstance(event, Ping):
            await socket.send(encode_frame(PUSHER_PONG))
        elif isinstance(event, ProtocolError):
            if event.is_fatal:
                raise _Unrecoverable(f"Pusher error {event.code}: {event.message}")
            logger.warning("[%s] Pusher error %s: %s", self.topic, event.code, event.message)
        elif isinstance(event, SubscriptionFailed):
            raise _HandshakeFailed(f"Subscription to {self.topic} dropped: {event.error}")
        else:
            logger.debug("[%s] Control frame %s", self.topic, event.name)

    def _enqueue(self, event: Event) -> None:
        limit = self.config.max_buffered_events
        if limit and self._queue.qsize() >= limit:
            self._queue.get_nowait()
            self.dropped_events += 1
            logger.warning(
                "[%s] Event buffer full (%d), dropping the oldest event", self.topic, limit
            )
        self._queue.put_nowait(event)

    async def _drop_socket(self) -> None:
        socket, self._socket = self._socket, None
        if socket is None:
            return
        try:
            await socket.close()
        except Exception as e:
            logger.debug("[%s] Error closing socket: %s", self.topic, e)


class ConnectionManager:
    """
    Opens live chat connections.

    Usage:
        manager = ConnectionManager()
        connection = await manager.connect(27670567)
        async for event in connection:
            print(event)
    """

    def __init__(
        self,
        config: Optional[StreamConfig] = None,
        transport: Optional[Transport] = None,
    ):
        self.config = config or StreamConfig()
        self.transport = transport or WebSocketTransport()

    async def connect(self, room_id: int) -> Connection:
        """
        Subscribe to a chatroom.

        Args:
            room_id: Numeric chatroom ID (not the channel or user ID)

        Returns:
            Connection: a subscribed connection

        Raises:
            ConnectError: if the subscription can not be established
        """
        if isinstance(room_id, bool) or not isinstance(room_id, int) or room_id <= 0:
            raise ConfigurationError(
                "room_id must be a positive integer", field="room_id", value=room_id
            )

        connection = Connection(Subscription.for_room(room_id), self.config, self.transport)
        await connection.open()
        return connection
