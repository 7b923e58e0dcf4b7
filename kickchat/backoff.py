"""
Retry delay schedule shared by the REST pipeline and the live chat connection.
"""

import math
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional

from .exceptions import ConfigurationError


@dataclass(frozen=True)
class BackoffPolicy:
    """
    Exponential backoff schedule.

    Attempts are counted from 1. The delay before retrying after the
    ``attempt``-th failure is ``base_delay * 2 ** (attempt - 1)``, capped at
    ``max_delay``. A server supplied hint replaces the schedule entirely and
    is never shortened, so a retry can not be issued before the server allows it.
    """

    base_delay: float = 0.5
    max_delay: float = 30.0
    max_attempts: int = 5
    jitter: float = 0.0  # upward only, as a fraction of the scheduled delay

    def __post_init__(self) -> None:
        if self.base_delay < 0:
            raise ConfigurationError(
                "base_delay must be non-negative", field="base_delay", value=self.base_delay
            )
        if self.max_delay < self.base_delay:
            raise ConfigurationError(
                "max_delay must be >= base_delay", field="max_delay", value=self.max_delay
            )
        if self.max_attempts < 1:
            raise ConfigurationError(
                "max_attempts must be at least 1", field="max_attempts", value=self.max_attempts
            )
        if not (0 <= self.jitter <= 1):
            raise ConfigurationError(
                "jitter must be between 0 and 1", field="jitter", value=self.jitter
            )

    def delay(self, attempt: int, hint: Optional[float] = None) -> float:
        """Seconds to wait before the next attempt."""
        if hint is not None:
            return max(0.0, float(hint))

        exponent = max(0, attempt - 1)
        delay = min(self.base_delay * (2 ** exponent), self.max_delay)
        if self.jitter:
            delay += random.uniform(0, delay * self.jitter)
        return float(delay)

    def exhausted(self, attempt: int) -> bool:
        """True once ``attempt`` attempts have been made."""
        return attempt >= self.max_attempts


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """
    Parse a ``Retry-After`` header value.

    Accepts delta-seconds or an HTTP-date. Returns None when the value is
    missing or unparseable; dates in the past yield 0.0.
    """
    if value is None:
        return None

    value = value.strip()
    if not value:
        return None

    try:
        seconds = float(value)
    except ValueError:
        pass
    else:
        if not math.isfinite(seconds) or seconds < 0:
            return None
        return seconds

    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if when is None:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())
