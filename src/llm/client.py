# SPDX-License-Identifier: MIT
"""HTTP client for text and image generation.

:class:`GenerativeAPIClient` builds provider requests, submits them through a
:class:`~llm.queue.RequestQueue` and turns raw responses into typed results or
one of the :mod:`llm.errors` classes.

Each send runs its own retry loop beneath the queue:

* 2xx: decode the body. Decode failures are terminal.
* 401: :class:`~llm.errors.InvalidAPIKeyError`, never retried.
* 429: sleep for ``Retry-After`` (default 60s) and resend, up to
  ``transport_max_retries`` times, then raise
  :class:`~llm.errors.RateLimitExceededError`.
* any other status: :class:`~llm.errors.ProviderAPIError`, never retried.
* transport failure, or a body the transport cannot decode (for example
  broken gzip): sleep ``2**n`` seconds and resend, up to
  ``transport_max_retries`` times.

Both layers read the same :class:`~llm.retry.RetryPolicy`, which stops the
queue from replaying a job whose 429 budget is already spent.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Literal, TypeVar

import httpx
import logfire

from constants import DEFAULT_BASE_URL
from core.templates import render
from io_utils.assets import AssetStore
from llm.decoding import ImagePayload, decode_image, decode_text
from llm.errors import (
    APIError,
    HTTPStatusError,
    ImageGenerationFailedError,
    ImageSaveFailedError,
    InvalidAPIKeyError,
    RateLimitExceededError,
    classify_exception,
    classify_status,
)
from llm.queue import JobMeta, RequestQueue

R = TypeVar("R")

KeyProvider = Callable[[], "str | None"]

CHAT_PATH = "/chat/completions"
RESPONSES_PATH = "/responses"
IMAGES_PATH = "/images/generations"


@dataclass(frozen=True)
class ClientOptions:
    """Provider endpoint, model selection and prompt configuration."""

    base_url: str = DEFAULT_BASE_URL
    text_model: str = "o4-mini"
    text_endpoint: Literal["chat", "responses"] = "chat"
    temperature: float | None = 0.7
    max_tokens: int | None = 1000
    image_model: str = "gpt-image-1"
    image_size: str = "1024x1024"
    system_prompt: str = "You are a creative storyteller."
    portrait_prompt_template: str = (
        "Create a detailed portrait of a character with the following "
        "description: {{description}}. The image should be a high-quality, "
        "professional character portrait."
    )
    scene_prompt_template: str = (
        "Describe a vivid story scene based on the following theme: {{theme}}. "
        "Keep it to a single evocative paragraph."
    )
    request_timeout: float = 60.0


def build_text_request(
    prompt: str, options: ClientOptions
) -> tuple[str, dict[str, Any]]:
    """Return the endpoint path and JSON body for a text completion."""
    if options.text_endpoint == "responses":
        return RESPONSES_PATH, {
            "model": options.text_model,
            "instructions": options.system_prompt,
            "input": prompt,
        }
    body: dict[str, Any] = {
        "model": options.text_model,
        "messages": [
            {"role": "system", "content": options.system_prompt},
            {"role": "user", "content": prompt},
        ],
    }
    if options.temperature is not None:
        body["temperature"] = options.temperature
    if options.max_tokens is not None:
        body["max_tokens"] = options.max_tokens
    return CHAT_PATH, body


def build_image_request(
    prompt: str, options: ClientOptions
) -> tuple[str, dict[str, Any]]:
    """Return the endpoint path and JSON body for a single image."""
    return IMAGES_PATH, {
        "model": options.image_model,
        "prompt": prompt,
        "n": 1,
        "size": options.image_size,
    }


class GenerativeAPIClient:
    """Typed access to the provider's text and image generation endpoints.

    Args:
        api_key: Bearer token, or a zero-arg callable returning the current
            token. Empty values make every network operation fail with
            :class:`InvalidAPIKeyError` before anything is sent.
        queue: Queue through which every request is submitted.
        assets: Store for generated images.
        options: Endpoint, model and prompt configuration.
        http_client: Pre-built ``httpx.AsyncClient``; the caller keeps
            ownership and must close it.
        transport: Optional transport for an owned client (useful in tests).
        sleep: Awaitable sleep used between inner retries.
    """

    def __init__(
        self,
        *,
        api_key: str | KeyProvider | None,
        queue: RequestQueue,
        assets: AssetStore,
        options: ClientOptions | None = None,
        http_client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self.options = options or ClientOptions()
        self._api_key = api_key
        self._queue = queue
        self._assets = assets
        self._sleep = sleep or asyncio.sleep
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(
            base_url=self.options.base_url,
            timeout=httpx.Timeout(self.options.request_timeout),
            transport=transport,
        )

    async def __aenter__(self) -> "GenerativeAPIClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_http:
            await self._http.aclose()

    @property
    def assets(self) -> AssetStore:
        return self._assets

    def _current_key(self) -> str:
        key = self._api_key() if callable(self._api_key) else self._api_key
        return (key or "").strip()

    def _require_key(self) -> str:
        key = self._current_key()
        if not key:
            logfire.error("API key is not configured")
            raise InvalidAPIKeyError()
        return key

    # -- Public operations -----------------------------------------------------

    async def generate_text(self, prompt: str) -> str:
        """Return generated text for ``prompt``.

        Raises:
            APIError: One of the classified failures.
        """
        key = self._require_key()
        path, body = build_text_request(prompt, self.options)
        with logfire.span(
            "generate_text", attributes={"model": self.options.text_model}
        ):
            text = await self._submit(
                lambda: self._send(path, body, key, self._decode_text),
                meta=JobMeta(operation="generate_text"),
            )
            logfire.info("Text generated", characters=len(text))
            return text

    async def generate_scene_description(self, theme: str) -> str:
        """Return a short scene description for ``theme``."""
        prompt = render(self.options.scene_prompt_template, {"theme": theme})
        text = await self.generate_text(prompt)
        return text.strip()

    async def generate_character_portrait(
        self,
        description: str,
        subject_id: str,
        force_regenerate: bool = False,
    ) -> Path:
        """Return the path of a portrait for ``subject_id``.

        An image already stored for ``subject_id`` is reused without any
        network call unless ``force_regenerate`` is set.

        Raises:
            ValueError: If ``subject_id`` is not a valid file name.
            APIError: One of the classified failures.
        """
        if not force_regenerate:
            existing = await asyncio.to_thread(self._assets.existing, subject_id)
            if existing is not None:
                logfire.info(
                    "Reusing existing portrait",
                    subject_id=subject_id,
                    path=str(existing),
                )
                return existing
        else:
            # Validate before spending a request.
            self._assets.path_for(subject_id)

        key = self._require_key()
        prompt = render(
            self.options.portrait_prompt_template, {"description": description}
        )
        path, body = build_image_request(prompt, self.options)
        with logfire.span(
            "generate_character_portrait",
            attributes={"subject_id": subject_id, "model": self.options.image_model},
        ):
            data = await self._submit(
                lambda: self._send(path, body, key, self._decode_image),
                meta=JobMeta(
                    operation="generate_character_portrait", subject_id=subject_id
                ),
            )
            try:
                saved = await asyncio.to_thread(self._assets.write, subject_id, data)
            except OSError as exc:
                logfire.error(
                    "Failed to save portrait", subject_id=subject_id, error=str(exc)
                )
                raise ImageSaveFailedError(f"Failed to save image: {exc}") from exc
            logfire.info("Portrait generated", subject_id=subject_id, path=str(saved))
            return saved

    async def delete_asset(self, subject_id: str) -> None:
        """Remove the stored image for ``subject_id`` if there is one."""
        await asyncio.to_thread(self._assets.delete, subject_id)

    # -- Request plumbing ------------------------------------------------------

    async def _submit(self, job: Callable[[], Awaitable[R]], *, meta: JobMeta) -> R:
        """Run ``job`` through the queue, classifying anything unexpected."""
        try:
            return await self._queue.enqueue(job, meta=meta)
        except APIError:
            raise
        except Exception as exc:
            logfire.error(
                "Request failed", operation=meta.operation, error=repr(exc)
            )
            raise classify_exception(exc) from exc

    async def _send(
        self,
        path: str,
        body: dict[str, Any],
        key: str,
        decode: Callable[[httpx.Response], Awaitable[R]],
    ) -> R:
        """POST ``body`` to ``path`` and decode the response.

        Implements the per-send retry loop described in the module docstring.
        """
        policy = self._queue.policy
        headers = {"Authorization": f"Bearer {key}"}
        attempt = 0
        while True:
            try:
                with logfire.span(
                    "http.post", attributes={"path": path, "attempt": attempt + 1}
                ):
                    response = await self._http.post(path, json=body, headers=headers)
            except (httpx.TransportError, httpx.DecodingError) as exc:
                if attempt >= policy.transport_max_retries:
                    raise
                delay = policy.transport_delay(attempt)
                logfire.warning(
                    "Transport error; retrying request",
                    path=path,
                    attempt=attempt + 1,
                    backoff_delay=delay,
                    error=str(exc),
                )
                await self._sleep(delay)
                attempt += 1
                continue

            status = response.status_code
            logfire.debug("Response received", path=path, status=status)
            if 200 <= status < 300:
                return await decode(response)
            if status == 401:
                logfire.error("Provider rejected API key", path=path)
                raise InvalidAPIKeyError()
            if status == 429:
                retry_after = policy.retry_after(response.headers.get("Retry-After"))
                if attempt >= policy.transport_max_retries:
                    logfire.error(
                        "Rate limit exceeded after retries",
                        path=path,
                        attempts=attempt + 1,
                    )
                    raise RateLimitExceededError(retry_after, retries_exhausted=True)
                logfire.warning(
                    "Rate limited; waiting before retry",
                    path=path,
                    attempt=attempt + 1,
                    retry_after=retry_after,
                )
                await self._sleep(retry_after)
                attempt += 1
                continue
            error = classify_status(status, response.content)
            logfire.error(
                "Provider returned error", path=path, status=status, error=str(error)
            )
            raise error

    async def _decode_text(self, response: httpx.Response) -> str:
        return decode_text(response.content)

    async def _decode_image(self, response: httpx.Response) -> bytes:
        payload: ImagePayload = decode_image(response.content)
        if payload.data is not None:
            return payload.data
        if not payload.url:
            raise ImageGenerationFailedError("Image entry has neither data nor url")
        return await self._download(payload.url)

    async def _download(self, url: str) -> bytes:
        """Fetch an image the provider returned by URL."""
        with logfire.span("http.download", attributes={"url": url}):
            response = await self._http.get(url)
        if response.status_code != 200:
            logfire.error("Image download failed", status=response.status_code)
            raise HTTPStatusError(response.status_code)
        return response.content


__all__ = [
    "ClientOptions",
    "GenerativeAPIClient",
    "KeyProvider",
    "build_image_request",
    "build_text_request",
]
