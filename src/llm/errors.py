# SPDX-License-Identifier: MIT
"""Closed error taxonomy for generative API calls.

Every terminal outcome of :class:`llm.client.GenerativeAPIClient` is one of
the exception classes below. HTTP failures are mapped with
:func:`classify_status`; anything raised outside the normal response path is
folded into the taxonomy by :func:`classify_exception` so callers never see a
raw transport exception.
"""

from __future__ import annotations

import json

import httpx


class APIError(Exception):
    """Base class for all classified generative API failures."""

    kind: str = "api_error"


class InvalidResponseError(APIError):
    """Response body did not match any known success envelope."""

    kind = "invalid_response"

    def __init__(self, detail: str = "Invalid response from provider") -> None:
        super().__init__(detail)


class RateLimitExceededError(APIError):
    """Provider kept rejecting requests with HTTP 429."""

    kind = "rate_limit_exceeded"

    def __init__(
        self, retry_after: float = 60.0, *, retries_exhausted: bool = False
    ) -> None:
        super().__init__(f"Rate limit exceeded; retry after {retry_after:g}s")
        self.retry_after = retry_after
        # Set by the client once its own 429 loop has spent its budget.
        self.retries_exhausted = retries_exhausted


class ProviderAPIError(APIError):
    """Provider reported an error, usually through ``error.message``."""

    kind = "api_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidAPIKeyError(APIError):
    """No credential configured, or the provider rejected it (HTTP 401)."""

    kind = "invalid_api_key"

    def __init__(self) -> None:
        super().__init__("Invalid or missing API key")


class ImageGenerationFailedError(APIError):
    """Image response carried no usable image payload."""

    kind = "image_generation_failed"

    def __init__(self, detail: str = "Image generation failed") -> None:
        super().__init__(detail)


class ImageSaveFailedError(APIError):
    """Generated image could not be written to local storage."""

    kind = "image_save_failed"

    def __init__(self, detail: str = "Failed to save generated image") -> None:
        super().__init__(detail)


class HTTPStatusError(APIError):
    """Unexpected HTTP status outside the provider API envelope."""

    kind = "http_error"

    def __init__(self, code: int) -> None:
        super().__init__(f"HTTP {code}")
        self.code = code


def _error_message(body: bytes) -> str | None:
    """Return ``error.message`` from a JSON error body, if present."""
    try:
        payload = json.loads(body)
    except (ValueError, UnicodeDecodeError):
        return None
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str) and message:
            return message
    return None


def classify_status(code: int, body: bytes) -> APIError:
    """Map a non-success status (other than 401/429) to an error.

    Args:
        code: HTTP status code returned by the provider.
        body: Raw response body.

    Returns:
        ``ProviderAPIError`` carrying the provider message when the body is a
        structured error, otherwise ``ProviderAPIError("HTTP <code>")``.
    """
    message = _error_message(body)
    if message is not None:
        return ProviderAPIError(message)
    return ProviderAPIError(f"HTTP {code}")


def classify_exception(exc: BaseException) -> APIError:
    """Fold ``exc`` into the taxonomy, passing ``APIError`` through."""
    if isinstance(exc, APIError):
        return exc
    if isinstance(exc, httpx.TimeoutException):
        return ProviderAPIError(f"transport error: request timed out ({exc})")
    if isinstance(exc, (httpx.HTTPError, OSError)):
        return ProviderAPIError(f"transport error: {exc}")
    return ProviderAPIError(f"unexpected error: {exc!r}")


__all__ = [
    "APIError",
    "HTTPStatusError",
    "ImageGenerationFailedError",
    "ImageSaveFailedError",
    "InvalidAPIKeyError",
    "InvalidResponseError",
    "ProviderAPIError",
    "RateLimitExceededError",
    "classify_exception",
    "classify_status",
]
