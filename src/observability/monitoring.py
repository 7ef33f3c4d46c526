# SPDX-License-Identifier: MIT
"""Helpers for enabling Pydantic Logfire telemetry."""

from __future__ import annotations

import os
import re
from typing import Literal

import logfire


def _mask_token(value: str | None) -> str | None:
    """Return a masked representation of ``value`` for safe logging."""

    if not value:
        return None
    return f"{value[:4]}..."


def init_logfire(
    token: str | None = None,
    min_log_level: Literal[
        "fatal", "error", "warn", "notice", "info", "debug", "trace"
    ] = "warn",
    *,
    api_key: str | None = None,
) -> None:
    """Configure Logfire and enable HTTP instrumentation.

    Args:
        token: Optional Logfire API token. If omitted, ``TW_LOGFIRE_TOKEN`` from
            the environment is used. Missing tokens keep telemetry local.
        min_log_level: Minimum level for console and telemetry output.
        api_key: Provider credential to scrub from every log record.
    """

    key = token or os.getenv("TW_LOGFIRE_TOKEN")
    logfire.debug("Configuring logfire", token=_mask_token(key))
    scrubbing = (
        logfire.ScrubbingOptions(extra_patterns=[re.escape(api_key)])
        if api_key
        else None
    )
    logfire.configure(
        token=key,
        send_to_logfire="if-token-present",
        service_name="taleweaver-generation",
        console=logfire.ConsoleOptions(
            min_log_level=min_log_level,
            show_project_link=False,
            verbose=True,
        ),
        min_level=min_log_level,
        scrubbing=scrubbing,
    )
    instrument = getattr(logfire, "instrument_httpx", None)
    if instrument:
        instrument()
