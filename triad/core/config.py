"""
Runtime configuration

Process-wide settings for futures, read from the environment.
"""

import os
from dataclasses import dataclass, replace
from typing import Optional


_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class FutureConfig:
    """Settings shared by every future."""

    # Capture the creation stack of each future for unhandled error reports
    debug: bool = False

    # Message attached to unhandled error reports
    unhandled_message: str = "Future error was never handled"

    @classmethod
    def from_env(cls) -> "FutureConfig":
        """
        Build a config from environment variables.

        Variables:
            TRIAD_DEBUG: enable creation-stack capture ("1", "true", "yes", "on")
            TRIAD_UNHANDLED_MESSAGE: override the unhandled report message
        """
        debug = os.getenv("TRIAD_DEBUG", "").strip().lower() in _TRUTHY
        message = os.getenv("TRIAD_UNHANDLED_MESSAGE", cls.unhandled_message)
        return cls(debug=debug, unhandled_message=message)

    def with_overrides(self, **changes) -> "FutureConfig":
        return replace(self, **changes)


_config: Optional[FutureConfig] = None


def get_config() -> FutureConfig:
    """Return the active config, loading it from the environment on first use."""
    global _config
    if _config is None:
        _config = FutureConfig.from_env()
    return _config


def set_config(config: Optional[FutureConfig]) -> None:
    """Replace the active config. ``None`` reloads from the environment on next use."""
    global _config
    _config = config
