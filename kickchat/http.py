"""
Rate-limited request pipeline for the Kick REST API.

Every resource API call goes through ``RequestPipeline.execute``, which
attaches the bearer token, classifies the response and retries transient
failures:

- 429: waits for ``Retry-After`` (or the backoff schedule) and retries
- 5xx and transport faults: exponential backoff and retry
- other 4xx: fails immediately

Retrying after a 5xx is not safe for every request. If the server applied a
write (sending a chat message, banning a user) but the response was lost, the
retry repeats the write. The pipeline does not try to detect this.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import aiohttp

from .backoff import BackoffPolicy, parse_retry_after
from .config import KICK_API_BASE_URL
from .exceptions import (
    AuthError,
    ClientError,
    RateLimitExhausted,
    RequestError,
    ServerError,
)

logger = logging.getLogger(__name__)

TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError)


@dataclass
class Response:
    """A fully read HTTP response."""

    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None

    def json(self) -> Any:
        """Parse the body as JSON; an empty body parses as None."""
        if not self.body:
            return None
        try:
            return json.loads(self.body)
        except json.JSONDecodeError as e:
            raise RequestError(f"Invalid JSON in response: {e}") from e

    def data(self) -> Any:
        """Unwrap Kick's ``{"data": ...}`` response envelope."""
        payload = self.json()
        if not isinstance(payload, dict) or "data" not in payload:
            raise RequestError("Response is missing the 'data' field")
        return payload["data"]


class RequestPipeline:
    """
    Builds, sends and retries a single outbound REST call.

    The credential is fixed at construction and only read afterwards, and
    retry state lives inside each ``execute`` call, so one pipeline can be
    shared by any number of concurrent callers.

    Writes retried after a 5xx may be applied twice (see the module docstring).
    """

    def __init__(
        self,
        base_url: str = KICK_API_BASE_URL,
        token: Optional[str] = None,
        *,
        policy: Optional[BackoffPolicy] = None,
        timeout: float = 30.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            base_url: REST API base URL
            token: OAuth bearer token (optional for public endpoints)
            policy: Retry schedule and attempt ceiling
            timeout: Per-attempt timeout in seconds
            session: Externally owned aiohttp session (left open on close)
        """
        self.base_url = base_url.rstrip("/")
        self._token = token
        self.policy = policy or BackoffPolicy()
        self.timeout = timeout
        self.session = session
        self._owns_session = session is None

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def has_token(self) -> bool:
        return bool(self._token)

    async def _get_session(self):
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
            self._owns_session = True
        return self.session

    async def close(self) -> None:
        """Close the HTTP session if this pipeline created it."""
        if self.session and self._owns_session and not self.session.closed:
            await self.session.close()
        self.session = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _build_headers(self, auth_required: bool) -> Dict[str, str]:
        headers = {"Accept": "*/*"}
        if auth_required:
            if not self._token:
                raise AuthError("OAuth token required for this endpoint")
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def execute(
        self,
        method: str,
        path: str,
        body: Any = None,
        auth_required: bool = True,
        params: Any = None,
    ) -> Response:
        """
        Send a request, retrying rate limits and transient failures.

        Args:
            method: HTTP method
            path: Path appended to the base URL
            body: Optional JSON body
            auth_required: Attach the bearer token (fails fast without one)
            params: Optional query parameters (mapping or list of pairs)

        Returns:
            Response: the first successful (2xx/3xx) response

        Raises:
            AuthError: token missing, or rejected with 401
            ClientError: any other 4xx except 429
            RateLimitExhausted: still rate limited after the last attempt
            ServerError: 5xx or transport failure after the last attempt
        """
        headers = self._build_headers(auth_required)
        url = f"{self.base_url}/{path.lstrip('/')}"
        session = await self._get_session()

        attempt = 0
        last_hint: Optional[float] = None
        while True:
            attempt += 1
            try:
                response = await self._send(session, method, url, headers, body, params)
            except TRANSPORT_ERRORS as e:
                if self.policy.exhausted(attempt):
                    logger.error(
                        "%s %s failed after %d attempts: %s", method, path, attempt, e
                    )
                    raise ServerError(
                        f"{method} {path} failed after {attempt} attempts: {e}",
                        attempts=attempt,
                    ) from e
                delay = self.policy.delay(attempt)
                logger.warning(
                    "%s %s transport error (%s), retrying in %.2fs (attempt %d/%d)",
                    method, path, type(e).__name__, delay, attempt, self.policy.max_attempts,
                )
                await asyncio.sleep(delay)
                continue

            if response.status == 429:
                last_hint = parse_retry_after(response.header("Retry-After"))
                if self.policy.exhausted(attempt):
                    logger.error("%s %s still rate limited after %d attempts", method, path, attempt)
                    raise RateLimitExhausted(last_hint, attempt)
                delay = self.policy.delay(attempt, last_hint)
                logger.warning(
                    "%s %s rate limited (429), retrying in %.2fs (attempt %d/%d)",
                    method, path, delay, attempt, self.policy.max_attempts,
                )
                await asyncio.sleep(delay)
                continue

            if response.status >= 500:
                if self.policy.exhausted(attempt):
                    logger.error(
                        "%s %s returned %d after %d attempts", method, path, response.status, attempt
                    )
                    raise ServerError(
                        f"{method} {path} returned {response.status} after {attempt} attempts",
                        status=response.status,
                        body=response.body,
                        attempts=attempt,
                    )
                delay = self.policy.delay(attempt)
                logger.warning(
                    "%s %s returned %d, retrying in %.2fs (attempt %d/%d)",
                    method, path, response.status, delay, attempt, self.policy.max_attempts,
                )
                await asyncio.sleep(delay)
                continue

            if response.status == 401:
                raise AuthError(
                    "OAuth token was rejected", status=response.status, body=response.body
                )

            if response.status >= 400:
                raise ClientError(response.status, response.body)

            return response

    async def _send(self, session, method, url, headers, body, params) -> Response:
        kwargs: Dict[str, Any] = {"headers": headers}
        if body is not None:
            kwargs["json"] = body
        if params:
            kwargs["params"] = params

        async with session.request(method, url, **kwargs) as response:
            text = await response.text()
            return Response(
                status=response.status,
                headers=dict(response.headers),
                body=text,
            )
