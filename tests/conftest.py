# SPDX-License-Identifier: MIT
"""Test configuration for the generation core.

Keeps logfire local, blocks real sleeps and provides helpers for building
clients over ``httpx.MockTransport``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import httpx
import logfire
import pytest

from io_utils.assets import AssetStore
from io_utils.loader import clear_config_cache
from llm.client import ClientOptions, GenerativeAPIClient
from llm.queue import RequestQueue
from llm.retry import RetryPolicy

logfire.configure(send_to_logfire=False, console=False)


class RecordingSleep:
    """Awaitable sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeProvider:
    """Scripted provider answering requests from a list of responses."""

    def __init__(self, *responses: httpx.Response | Exception) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"Unexpected request to {request.url}")
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return item

    @property
    def calls(self) -> int:
        return len(self.requests)

    def body(self, index: int = 0) -> dict[str, Any]:
        return json.loads(self.requests[index].content)


def json_response(status: int, payload: Any, **headers: str) -> httpx.Response:
    return httpx.Response(status, json=payload, headers=headers)


def chat_ok(text: str) -> httpx.Response:
    return json_response(200, {"choices": [{"message": {"content": text}}]})


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Strip provider credentials and cached config between tests."""
    for var in ("TW_OPENAI_API_KEY", "OPENAI_API_KEY", "TW_LOGFIRE_TOKEN"):
        monkeypatch.delenv(var, raising=False)
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture()
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
def assets(tmp_path: Path) -> AssetStore:
    return AssetStore(tmp_path / "avatars")


@pytest.fixture()
def make_client(
    sleeper: RecordingSleep, assets: AssetStore
) -> Callable[..., GenerativeAPIClient]:
    """Return a factory building clients over a scripted provider."""

    def _make(
        provider: FakeProvider,
        *,
        api_key: Any = "test-key",
        policy: RetryPolicy | None = None,
        options: ClientOptions | None = None,
    ) -> GenerativeAPIClient:
        queue = RequestQueue(policy or RetryPolicy(), sleep=sleeper)
        return GenerativeAPIClient(
            api_key=api_key,
            queue=queue,
            assets=assets,
            options=options or ClientOptions(base_url="https://provider.test/v1"),
            transport=httpx.MockTransport(provider),
            sleep=sleeper,
        )

    return _make
