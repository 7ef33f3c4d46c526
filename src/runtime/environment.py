# SPDX-License-Identifier: MIT
"""Composition root wiring settings into the generation components.

:class:`RuntimeEnv` builds one retry policy, request queue, asset store and
API client from validated :class:`~runtime.settings.Settings`. There is no
process-wide instance: the application creates an environment, passes the
client to whatever needs it and closes it on shutdown.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Awaitable, Callable

import httpx
import logfire

from io_utils.assets import AssetStore
from llm.client import GenerativeAPIClient, KeyProvider
from llm.queue import RequestQueue

if TYPE_CHECKING:  # pragma: no cover - for type checkers only
    from runtime.settings import Settings


class RuntimeEnv:
    """Container for the components built from one settings object."""

    def __init__(
        self,
        settings: "Settings",
        *,
        api_key: str | KeyProvider | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        """Initialise the runtime environment.

        Args:
            settings: Validated application settings.
            api_key: Overrides ``settings.openai_api_key``; a callable lets a
                settings screen change the key without rebuilding the client.
            transport: Optional HTTP transport (tests, proxies).
            sleep: Optional awaitable sleep shared by both retry layers.
        """
        self.settings = settings
        self.policy = settings.retry_policy()
        self.queue = RequestQueue(self.policy, sleep=sleep)
        self.assets = AssetStore(settings.assets_dir)
        self.client = GenerativeAPIClient(
            api_key=api_key if api_key is not None else settings.openai_api_key,
            queue=self.queue,
            assets=self.assets,
            options=settings.client_options(),
            transport=transport,
            sleep=sleep,
        )
        # Debug logging helps diagnose configuration loading problems.
        logfire.debug(
            "RuntimeEnv created",
            assets_dir=str(settings.assets_dir),
            worst_case_sends=self.policy.worst_case_sends,
        )

    async def __aenter__(self) -> "RuntimeEnv":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Release network resources held by the client."""
        await self.client.aclose()


__all__ = ["RuntimeEnv"]
