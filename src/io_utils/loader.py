# SPDX-License-Identifier: MIT
"""Utilities for loading file-based configuration.

The YAML loader validates content against a pydantic schema so callers receive
either a typed object or a concise ``RuntimeError``. Results of
:func:`load_app_config` are cached for the lifetime of the process.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import TypeVar

import logfire
import yaml
from pydantic import TypeAdapter, ValidationError

from models import AppConfig

T = TypeVar("T")


def _read_file(path: Path) -> str:
    """Return the contents of ``path``.

    Raises:
        FileNotFoundError: If the file does not exist.
        RuntimeError: If the file cannot be read.
    """
    with logfire.span("fs.read_text", attributes={"path": str(path)}):
        try:
            with path.open("r", encoding="utf-8") as file:
                text = file.read()
                logfire.debug("Read text file", path=str(path), bytes=len(text))
                return text
        except FileNotFoundError:
            raise
        except OSError as exc:
            logfire.error(f"Error reading file {path}: {exc}")
            raise RuntimeError(
                f"An error occurred while reading the file: {exc}"
            ) from exc


def _read_yaml_file(path: Path, schema: type[T]) -> T:
    """Return YAML data loaded from ``path`` validated against ``schema``."""
    with logfire.span("fs.read_yaml", attributes={"path": str(path)}):
        try:
            adapter = TypeAdapter(schema)
            # An empty document means "use the defaults".
            return adapter.validate_python(yaml.safe_load(_read_file(path)) or {})
        except FileNotFoundError:
            raise
        except (ValidationError, yaml.YAMLError, ValueError) as exc:
            logfire.error(f"Error reading YAML file {path}: {exc}")
            raise RuntimeError(
                f"An error occurred while reading the YAML file: {exc}"
            ) from exc


@lru_cache(maxsize=None)
def load_app_config(
    base_dir: Path | str = Path("config"),
    filename: Path | str = Path("app.yaml"),
) -> AppConfig:
    """Return application configuration from ``base_dir``.

    A missing file yields the built-in defaults. Results are cached for the
    lifetime of the process; call :func:`clear_config_cache` after editing the
    file.
    """
    path = Path(base_dir) / Path(filename)
    try:
        return _read_yaml_file(path, AppConfig)
    except FileNotFoundError:
        logfire.debug("Config file not found; using defaults", path=str(path))
        return AppConfig()


def clear_config_cache() -> None:
    """Forget configuration loaded by :func:`load_app_config`."""
    load_app_config.cache_clear()


__all__ = ["clear_config_cache", "load_app_config"]
