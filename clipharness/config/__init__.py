"""Configuration loading and validation."""

from clipharness.config.loader import DEFAULT_CONFIG, DEFAULTS_DIR, load_config
from clipharness.config.schema import (
    ChannelApi,
    ContentConfig,
    HarnessConfig,
    MirrorConfig,
    StorageMode,
)

__all__ = [
    "ChannelApi",
    "ContentConfig",
    "DEFAULT_CONFIG",
    "DEFAULTS_DIR",
    "HarnessConfig",
    "MirrorConfig",
    "StorageMode",
    "load_config",
]
