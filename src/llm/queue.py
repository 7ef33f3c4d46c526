# SPDX-License-Identifier: MIT
"""Single choke point for outbound generative API jobs.

Every call to the provider is submitted as a zero-argument coroutine factory.
The queue replays the whole job when it fails with
:class:`~llm.errors.RateLimitExceededError`, waiting ``2**attempt`` seconds
plus up to one second of jitter between attempts. Other failures propagate
untouched.

"Queue" names the role, not a FIFO: there is no concurrency limit and no
ordering between distinct jobs. Retries of one job are strictly sequential.
Jobs may run several times, so they must tolerate replay.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol, TypeVar

import logfire

from llm.retry import RetryPolicy

T = TypeVar("T", covariant=True)
R = TypeVar("R")


class _CoroFactory(Protocol[T]):
    def __call__(self) -> Awaitable[T]: ...


@dataclass
class JobMeta:
    """Optional metadata for tracing."""

    operation: str | None = None
    subject_id: str | None = None


class RequestQueue:
    """Rate-limit aware resilience wrapper for API jobs."""

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self.policy = policy or RetryPolicy()
        self._sleep = sleep or asyncio.sleep
        self._submitted = logfire.metric_counter("request_queue_submitted")
        self._retries = logfire.metric_counter("request_queue_retries")
        self._completed = logfire.metric_counter("request_queue_completed")

    async def enqueue(
        self,
        job: _CoroFactory[R],
        *,
        meta: JobMeta | None = None,
    ) -> R:
        """Run ``job`` and return its result, backing off on rate limits.

        Args:
            job: Zero-arg coroutine factory performing the API call.
            meta: Optional metadata recorded on the span.

        Returns:
            Whatever ``job`` returns on its first successful invocation.

        Raises:
            Exception: The job's error when it is not a retryable rate limit,
                or the last rate-limit error once attempts are exhausted.
        """
        self._submitted.add(1)
        span_attrs = {
            k: v
            for k, v in {
                "operation": getattr(meta, "operation", None),
                "subject_id": getattr(meta, "subject_id", None),
            }.items()
            if v is not None
        }
        with logfire.span("request_queue.enqueue", attributes=span_attrs):
            attempt = 0
            while True:
                try:
                    result = await job()
                except Exception as exc:
                    if not self.policy.should_retry_rate_limit(exc, attempt):
                        raise
                    delay = self.policy.queue_delay(attempt)
                    logfire.warning(
                        "Rate limited; retrying job",
                        attempt=attempt + 1,
                        backoff_delay=delay,
                        **span_attrs,
                    )
                    self._retries.add(1)
                    await self._sleep(delay)
                    attempt += 1
                    continue
                self._completed.add(1)
                return result


__all__ = ["JobMeta", "RequestQueue"]
