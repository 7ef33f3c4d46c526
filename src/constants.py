"""Project-wide constants and default paths.

This module centralises small constants that are imported across the
application. Keep this file minimal and free of side effects.
"""

from __future__ import annotations

import os
from pathlib import Path

DEFAULT_DATA_DIR = (
    Path(
        os.path.expandvars(
            os.environ.get("XDG_DATA_HOME", str(Path.home() / ".local" / "share"))
        )
    )
    / "taleweaver"
)

DEFAULT_ASSETS_DIR = DEFAULT_DATA_DIR / "character_avatars"

DEFAULT_BASE_URL = "https://api.openai.com/v1"

__all__ = ["DEFAULT_ASSETS_DIR", "DEFAULT_BASE_URL", "DEFAULT_DATA_DIR"]
