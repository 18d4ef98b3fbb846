from __future__ import annotations

from .retry import RetryConfig
from .settings import RouterSettings, get_settings

__all__ = ["RetryConfig", "RouterSettings", "get_settings"]
