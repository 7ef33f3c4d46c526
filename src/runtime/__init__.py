# SPDX-License-Identifier: MIT
"""Runtime package exposing settings and the :class:`RuntimeEnv` composition root."""

from .environment import RuntimeEnv
from .settings import Settings, load_settings

__all__ = ["RuntimeEnv", "Settings", "load_settings"]
