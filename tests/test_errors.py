# SPDX-License-Identifier: MIT
"""Tests for error classification."""

from __future__ import annotations

import httpx
import pytest

from llm.errors import (
    APIError,
    InvalidAPIKeyError,
    ProviderAPIError,
    classify_exception,
    classify_status,
)


def test_classify_status_uses_error_message() -> None:
    error = classify_status(400, b'{"error": {"message": "bad prompt"}}')
    assert isinstance(error, ProviderAPIError)
    assert error.message == "bad prompt"


@pytest.mark.parametrize(
    "body", [b"", b"gateway down", b'{"error": "flat"}', b'{"error": {"code": 1}}']
)
def test_classify_status_falls_back_to_code(body: bytes) -> None:
    error = classify_status(503, body)
    assert isinstance(error, ProviderAPIError)
    assert error.message == "HTTP 503"


def test_classify_exception_passes_api_errors_through() -> None:
    original = InvalidAPIKeyError()
    assert classify_exception(original) is original


@pytest.mark.parametrize(
    "exc",
    [
        httpx.ConnectError("refused"),
        httpx.ReadTimeout("slow"),
        OSError("disk"),
        KeyError("x"),
    ],
)
def test_classify_exception_wraps_everything_else(exc: Exception) -> None:
    error = classify_exception(exc)
    assert isinstance(error, ProviderAPIError)
    assert isinstance(error, APIError)


def test_error_kinds_are_distinct() -> None:
    from llm import errors

    kinds = {
        cls.kind
        for cls in (
            errors.InvalidResponseError,
            errors.RateLimitExceededError,
            errors.ProviderAPIError,
            errors.InvalidAPIKeyError,
            errors.ImageGenerationFailedError,
            errors.ImageSaveFailedError,
            errors.HTTPStatusError,
        )
    }
    assert len(kinds) == 7
