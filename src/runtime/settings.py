# SPDX-License-Identifier: MIT
"""Centralised application configuration management.

This module exposes :class:`Settings`, a ``pydantic-settings`` model that
combines values sourced from ``config/app.yaml`` and environment variables.
Environment variables (prefix ``TW_``, nested fields separated by ``__``, e.g.
``TW_TEXT__MODEL``) take precedence over file-based values and the merged
configuration is validated before use.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import AliasChoices, Field, ValidationError
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from constants import DEFAULT_ASSETS_DIR, DEFAULT_BASE_URL
from io_utils.loader import load_app_config
from llm.client import ClientOptions
from llm.retry import RetryPolicy
from models import (
    ImageGenerationConfig,
    LogLevel,
    RetryConfig,
    TextGenerationConfig,
)


class Settings(BaseSettings):
    """Application settings combining file-based and environment configuration."""

    openai_api_key: str = Field(
        "",
        description="Provider bearer token; empty keeps the client fail-closed.",
        validation_alias=AliasChoices("TW_OPENAI_API_KEY", "OPENAI_API_KEY"),
        repr=False,
    )
    logfire_token: str | None = Field(
        None, description="Logfire authentication token, if available.", repr=False
    )
    base_url: str = Field(DEFAULT_BASE_URL, description="Provider API base URL.")
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

    model_config = SettingsConfigDict(
        env_prefix="TW_",
        env_nested_delimiter="__",
        extra="ignore",
        populate_by_name=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment beats values passed in from the YAML file.
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    def client_options(self) -> ClientOptions:
        """Return request options for :class:`~llm.client.GenerativeAPIClient`."""
        return ClientOptions(
            base_url=self.base_url,
            text_model=self.text.model,
            text_endpoint=self.text.endpoint,
            temperature=self.text.temperature,
            max_tokens=self.text.max_tokens,
            image_model=self.image.model,
            image_size=self.image.size,
            system_prompt=self.text.system_prompt,
            portrait_prompt_template=self.image.portrait_prompt_template,
            scene_prompt_template=self.text.scene_prompt_template,
            request_timeout=self.request_timeout,
        )

    def retry_policy(self) -> RetryPolicy:
        """Return the retry policy shared by the queue and the client."""
        return RetryPolicy(
            queue_max_attempts=self.retry.max_attempts,
            transport_max_retries=self.retry.transport_max_retries,
            default_retry_after=self.retry.default_retry_after,
            compose_layers=self.retry.compose_layers,
        )


def _resolve_assets_dir(raw: str) -> Path:
    expanded = os.path.expandvars(raw)
    if "$" in expanded:
        return DEFAULT_ASSETS_DIR
    return Path(expanded).expanduser()


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load and validate application settings.

    Configuration values are read from the application configuration file and
    then merged with environment variables using ``pydantic-settings``. When a
    value is provided in both sources the environment variable wins. A ``.env``
    file in the working directory is loaded automatically when present.

    Args:
        config_path: Optional path to a YAML configuration file. Defaults to
            ``config/app.yaml``; a missing default file yields built-in values.

    Returns:
        Settings: Fully validated application configuration.

    Raises:
        RuntimeError: If configuration values are invalid.
    """
    if config_path:
        cfg_path = Path(config_path)
        config = load_app_config(cfg_path.parent, cfg_path.name)
    else:
        config = load_app_config()
    env_file_path = Path(".env")
    env_file = env_file_path if env_file_path.exists() else None
    try:
        # Validate and merge configuration from file, env file and environment.
        settings = Settings(
            base_url=config.base_url,
            log_level=config.log_level,
            request_timeout=config.request_timeout,
            assets_dir=config.assets_dir,
            text=config.text.model_dump(),
            image=config.image.model_dump(),
            retry=config.retry.model_dump(),
            _env_file=env_file,
        )
    except ValidationError as exc:
        # Summarise validation issues so the caller receives clear feedback.
        details = "; ".join(
            f"{'.'.join(map(str, error['loc']))}: {error['msg']}"
            for error in exc.errors()
        )
        raise RuntimeError(f"Invalid configuration: {details}") from exc
    settings.assets_dir = _resolve_assets_dir(str(settings.assets_dir))
    return settings


__all__ = ["Settings", "load_settings"]
