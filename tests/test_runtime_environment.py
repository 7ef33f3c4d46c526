# SPDX-License-Identifier: MIT
"""Tests for the runtime composition root."""

from __future__ import annotations

import base64

import httpx
import pytest

from conftest import FakeProvider, RecordingSleep, chat_ok, json_response
from runtime.environment import RuntimeEnv
from runtime.settings import Settings


def _settings(tmp_path, **overrides) -> Settings:
    return Settings(
        openai_api_key="env-key",
        base_url="https://provider.test/v1",
        assets_dir=tmp_path / "avatars",
        **overrides,
    )


@pytest.mark.asyncio
async def test_environment_wires_shared_policy(tmp_path) -> None:
    provider = FakeProvider(chat_ok("hello"))
    async with RuntimeEnv(
        _settings(tmp_path), transport=httpx.MockTransport(provider)
    ) as env:
        assert env.queue.policy is env.policy
        assert env.client.assets is env.assets
        assert await env.client.generate_text("hi") == "hello"
    assert provider.requests[0].headers["Authorization"] == "Bearer env-key"


@pytest.mark.asyncio
async def test_environments_are_independent(tmp_path) -> None:
    first = RuntimeEnv(_settings(tmp_path))
    second = RuntimeEnv(_settings(tmp_path, retry={"max_attempts": 1}))
    try:
        assert first.client is not second.client
        assert first.policy.queue_max_attempts == 3
        assert second.policy.queue_max_attempts == 1
    finally:
        await first.aclose()
        await second.aclose()


@pytest.mark.asyncio
async def test_api_key_override_and_shared_sleep(tmp_path) -> None:
    sleeper = RecordingSleep()
    image = base64.b64encode(b"png").decode()
    provider = FakeProvider(
        json_response(429, {}, **{"Retry-After": "3"}),
        json_response(200, {"data": [{"b64_json": image}]}),
    )
    async with RuntimeEnv(
        _settings(tmp_path),
        api_key=lambda: "settings-screen-key",
        transport=httpx.MockTransport(provider),
        sleep=sleeper,
    ) as env:
        path = await env.client.generate_character_portrait("knight", "hero")
    assert path == tmp_path / "avatars" / "hero.png"
    assert sleeper.delays == [3.0]
    assert provider.requests[0].headers["Authorization"] == "Bearer settings-screen-key"
