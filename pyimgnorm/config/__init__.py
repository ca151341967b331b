from __future__ import annotations

from .io import load_config
from .settings import NormalizeSettings, load_settings

__all__ = ["NormalizeSettings", "load_config", "load_settings"]
