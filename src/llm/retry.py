# SPDX-License-Identifier: MIT
"""Retry policy shared by the request queue and the HTTP client.

A single :class:`RetryPolicy` instance is injected into both layers. The queue
retries whole jobs that fail with a rate-limit error using exponential backoff
plus additive jitter; the client retries individual HTTP sends on 429 (honouring
``Retry-After``) and on transport failures (plain exponential backoff).
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

from llm.errors import RateLimitExceededError

DEFAULT_RETRY_AFTER = 60.0


def _parse_retry_datetime(retry_after: str) -> float | None:
    """Return seconds until ``retry_after`` datetime or ``None``."""
    try:
        dt = parsedate_to_datetime(retry_after)
    except (ValueError, TypeError, IndexError):
        return None
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return max(0.0, (dt - datetime.now(timezone.utc)).total_seconds())


def parse_retry_after(
    value: str | None, default: float = DEFAULT_RETRY_AFTER
) -> float:
    """Return the ``Retry-After`` hint in seconds.

    Args:
        value: Raw header value; either delay seconds or an HTTP date.
        default: Delay used when the header is absent or unparseable.
    """
    if value is None:
        return default
    value = value.strip()
    if not value:
        return default
    try:
        seconds = float(value)
    except ValueError:
        parsed = _parse_retry_datetime(value)
        return default if parsed is None else parsed
    if seconds != seconds or seconds in (float("inf"), float("-inf")):
        return default
    return max(0.0, seconds)


@dataclass(frozen=True)
class RetryPolicy:
    """Limits and delays for both retry layers.

    Attributes:
        queue_max_attempts: Total job invocations per ``enqueue`` call.
        transport_max_retries: Extra HTTP sends the client may make after
            a 429 or a transport failure.
        default_retry_after: Delay used when a 429 carries no usable
            ``Retry-After`` header.
        compose_layers: When ``False`` a rate-limit error that already
            exhausted the client's 429 loop is not retried again by the
            queue, so attempts do not multiply across layers.
    """

    queue_max_attempts: int = 3
    transport_max_retries: int = 3
    default_retry_after: float = DEFAULT_RETRY_AFTER
    compose_layers: bool = False

    def __post_init__(self) -> None:
        if self.queue_max_attempts < 1:
            raise ValueError("queue_max_attempts must be >= 1")
        if self.transport_max_retries < 0:
            raise ValueError("transport_max_retries must be >= 0")
        if self.default_retry_after < 0:
            raise ValueError("default_retry_after must be >= 0")

    def queue_delay(self, attempt: int) -> float:
        """Return ``2**attempt`` seconds plus jitter in ``[0, 1)``."""
        return float(2**attempt) + random.random()  # nosec B311 - jitter

    def transport_delay(self, attempt: int) -> float:
        """Return ``2**attempt`` seconds without jitter."""
        return float(2**attempt)

    def retry_after(self, value: str | None) -> float:
        """Parse a ``Retry-After`` header using this policy's default."""
        return parse_retry_after(value, self.default_retry_after)

    def should_retry_rate_limit(self, exc: BaseException, attempt: int) -> bool:
        """Return ``True`` when the queue should replay the job.

        Args:
            exc: Error raised by the job.
            attempt: Zero-based index of the attempt that just failed.
        """
        if not isinstance(exc, RateLimitExceededError):
            return False
        if attempt + 1 >= self.queue_max_attempts:
            return False
        if exc.retries_exhausted and not self.compose_layers:
            return False
        return True

    @property
    def worst_case_sends(self) -> int:
        """Return the most HTTP sends a persistent 429 can cause per call."""
        inner = self.transport_max_retries + 1
        return inner * self.queue_max_attempts if self.compose_layers else inner


__all__ = ["DEFAULT_RETRY_AFTER", "RetryPolicy", "parse_retry_after"]
