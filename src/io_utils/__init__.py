"""Input and output helpers for configuration and generated assets.

Exports:
    AssetStore: Deterministic per-subject image storage.
    file_url: Format a path or URL for image loaders.
    load_app_config: Read and validate ``config/app.yaml``.
    clear_config_cache: Drop cached configuration.
"""

from __future__ import annotations

from .assets import AssetStore, file_url
from .loader import clear_config_cache, load_app_config

__all__ = ["AssetStore", "clear_config_cache", "file_url", "load_app_config"]
