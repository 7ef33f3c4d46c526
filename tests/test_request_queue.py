# SPDX-License-Identifier: MIT
"""Tests for the rate-limit aware request queue."""

from __future__ import annotations

import asyncio

import pytest

import llm.retry
from llm.errors import InvalidResponseError, RateLimitExceededError
from llm.queue import JobMeta, RequestQueue
from llm.retry import RetryPolicy


class DummyError(Exception):
    """Non rate-limit failure."""


def _flaky(failures: int, result: str = "done"):
    calls = {"count": 0}

    async def job() -> str:
        calls["count"] += 1
        if calls["count"] <= failures:
            raise RateLimitExceededError(retry_after=0)
        return result

    return job, calls


@pytest.mark.asyncio
async def test_enqueue_success_does_not_retry(sleeper) -> None:
    queue = RequestQueue(sleep=sleeper)
    job, calls = _flaky(0, "ok")

    assert await queue.enqueue(job) == "ok"
    assert calls["count"] == 1
    assert sleeper.delays == []


@pytest.mark.asyncio
@pytest.mark.parametrize("failures", [1, 2])
async def test_enqueue_retries_rate_limits_then_succeeds(sleeper, failures) -> None:
    queue = RequestQueue(sleep=sleeper)
    job, calls = _flaky(failures)

    assert await queue.enqueue(job, meta=JobMeta(operation="test")) == "done"
    assert calls["count"] == failures + 1
    assert len(sleeper.delays) == failures
    for attempt, delay in enumerate(sleeper.delays):
        assert 2**attempt <= delay < 2**attempt + 1


@pytest.mark.asyncio
async def test_enqueue_gives_up_after_three_invocations(sleeper) -> None:
    queue = RequestQueue(sleep=sleeper)
    job, calls = _flaky(10)

    with pytest.raises(RateLimitExceededError):
        await queue.enqueue(job)
    assert calls["count"] == 3
    assert len(sleeper.delays) == 2


@pytest.mark.asyncio
async def test_enqueue_non_rate_limit_error_propagates(sleeper) -> None:
    queue = RequestQueue(sleep=sleeper)
    calls = {"count": 0}

    async def job() -> str:
        calls["count"] += 1
        raise DummyError()

    with pytest.raises(DummyError):
        await queue.enqueue(job)
    assert calls["count"] == 1
    assert sleeper.delays == []


@pytest.mark.asyncio
async def test_enqueue_does_not_retry_decode_failures(sleeper) -> None:
    queue = RequestQueue(sleep=sleeper)
    calls = {"count": 0}

    async def job() -> str:
        calls["count"] += 1
        raise InvalidResponseError()

    with pytest.raises(InvalidResponseError):
        await queue.enqueue(job)
    assert calls["count"] == 1


@pytest.mark.asyncio
async def test_enqueue_skips_errors_with_spent_inner_budget(sleeper) -> None:
    queue = RequestQueue(sleep=sleeper)
    calls = {"count": 0}

    async def job() -> str:
        calls["count"] += 1
        raise RateLimitExceededError(5, retries_exhausted=True)

    with pytest.raises(RateLimitExceededError):
        await queue.enqueue(job)
    assert calls["count"] == 1
    assert sleeper.delays == []


@pytest.mark.asyncio
async def test_enqueue_composes_layers_when_enabled(sleeper) -> None:
    queue = RequestQueue(RetryPolicy(compose_layers=True), sleep=sleeper)
    calls = {"count": 0}

    async def job() -> str:
        calls["count"] += 1
        raise RateLimitExceededError(5, retries_exhausted=True)

    with pytest.raises(RateLimitExceededError):
        await queue.enqueue(job)
    assert calls["count"] == 3


@pytest.mark.asyncio
async def test_backoff_uses_additive_jitter(sleeper, monkeypatch) -> None:
    monkeypatch.setattr(llm.retry.random, "random", lambda: 0.5)
    queue = RequestQueue(sleep=sleeper)
    job, _ = _flaky(2)

    await queue.enqueue(job)
    assert sleeper.delays == [1.5, 2.5]


@pytest.mark.asyncio
async def test_concurrent_jobs_are_not_serialised() -> None:
    queue = RequestQueue()
    running = 0
    max_seen = 0

    async def job() -> int:
        nonlocal running, max_seen
        running += 1
        max_seen = max(max_seen, running)
        await asyncio.sleep(0.01)
        running -= 1
        return 1

    results = await asyncio.gather(*(queue.enqueue(job) for _ in range(4)))
    assert results == [1, 1, 1, 1]
    assert max_seen == 4


@pytest.mark.asyncio
async def test_cancel_during_backoff_stops_retries() -> None:
    started = asyncio.Event()
    calls = {"count": 0}

    async def slow_sleep(_: float) -> None:
        started.set()
        await asyncio.sleep(10)

    queue = RequestQueue(sleep=slow_sleep)

    async def job() -> str:
        calls["count"] += 1
        raise RateLimitExceededError(0)

    task = asyncio.create_task(queue.enqueue(job))
    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert calls["count"] == 1
