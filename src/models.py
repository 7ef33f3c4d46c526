# SPDX-License-Identifier: MIT
"""Pydantic models describing file-based application configuration.

``config/app.yaml`` is validated against :class:`AppConfig` before being merged
with environment variables by :mod:`runtime.settings`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from constants import DEFAULT_ASSETS_DIR, DEFAULT_BASE_URL

LOG_LEVELS = ("error", "warn", "info", "debug")


def _normalise_log_level(value: object) -> object:
    """Accept any case and ``warning`` as an alias for ``warn``."""
    if not isinstance(value, str):
        return value
    level = value.strip().lower()
    if level == "warning":
        level = "warn"
    if level not in LOG_LEVELS:
        raise ValueError(f"log level must be one of {', '.join(LOG_LEVELS)}")
    return level


LogLevel = Annotated[str, BeforeValidator(_normalise_log_level)]


class StrictModel(BaseModel):
    """Base model with strict settings to prevent shape drift."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=False)


class TextGenerationConfig(StrictModel):
    """Text completion request parameters."""

    model: Annotated[str, Field(min_length=1, description="Text model name.")] = (
        "o4-mini"
    )
    endpoint: Literal["chat", "responses"] = Field(
        "chat", description="Chat completions or responses API request shape."
    )
    temperature: float | None = Field(
        0.7, ge=0.0, le=2.0, description="Sampling temperature; omitted when null."
    )
    max_tokens: int | None = Field(
        1000, ge=1, description="Completion token limit; omitted when null."
    )
    system_prompt: str = Field(
        "You are a creative storyteller.",
        description="System instructions sent with every text request.",
    )
    scene_prompt_template: str = Field(
        "Describe a vivid story scene based on the following theme: {{theme}}. "
        "Keep it to a single evocative paragraph.",
        description="Template for scene descriptions; uses {{theme}}.",
    )


class ImageGenerationConfig(StrictModel):
    """Image generation request parameters."""

    model: Annotated[str, Field(min_length=1, description="Image model name.")] = (
        "gpt-image-1"
    )
    size: Annotated[str, Field(pattern=r"^\d+x\d+$")] = "1024x1024"
    portrait_prompt_template: str = Field(
        "Create a detailed portrait of a character with the following "
        "description: {{description}}. The image should be a high-quality, "
        "professional character portrait.",
        description="Template for character portraits; uses {{description}}.",
    )


class RetryConfig(StrictModel):
    """Limits shared by the request queue and the HTTP client."""

    max_attempts: int = Field(3, ge=1, description="Job invocations per enqueue.")
    transport_max_retries: int = Field(
        3, ge=0, description="Inner HTTP retries after 429 or transport errors."
    )
    default_retry_after: float = Field(
        60.0, ge=0.0, description="Delay used when 429 omits Retry-After."
    )
    compose_layers: bool = Field(
        False,
        description="Let the queue replay jobs whose inner 429 budget is spent.",
    )


class AppConfig(StrictModel):
    """Top-level application configuration."""

    base_url: Annotated[
        str, Field(min_length=1, description="Provider API base URL.")
    ] = DEFAULT_BASE_URL
    log_level: LogLevel = Field(
        "warn", description="Base console level; -v/-q move it up or down."
    )
    request_timeout: float = Field(
        60.0, gt=0, description="Per-request timeout in seconds."
    )
    assets_dir: Path = Field(
        DEFAULT_ASSETS_DIR, description="Directory holding generated portraits."
    )
    text: TextGenerationConfig = Field(default_factory=TextGenerationConfig)
    image: ImageGenerationConfig = Field(default_factory=ImageGenerationConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)


__all__ = [
    "AppConfig",
    "ImageGenerationConfig",
    "LOG_LEVELS",
    "LogLevel",
    "RetryConfig",
    "StrictModel",
    "TextGenerationConfig",
]
