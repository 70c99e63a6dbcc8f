"""Configuration loading with fail-fast behavior and layered merging.

Layers, later overriding earlier (deep merge, lists replaced):
1. Shipped defaults (clipharness/defaults/config.json)
2. Global user config (~/.clipharness/config.json)
3. Project local config (<cwd>/.clipharness/config.json)

A missing layer is skipped. A layer that exists but is unreadable or not a
JSON object stops loading with ConfigError. An empty file is an empty layer.
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from clipharness.config.schema import HarnessConfig
from clipharness.core.constants import HARNESS_DIR_NAME, get_defaults_dir, get_harness_dir
from clipharness.core.errors import ConfigError, LoadError
from clipharness.core.utils import deep_merge

logger = logging.getLogger(__name__)

DEFAULTS_DIR = get_defaults_dir()
DEFAULT_CONFIG = DEFAULTS_DIR / "config.json"


def config_layers(cwd: Path | None = None, home_dir: Path | None = None) -> list[Path]:
    """Config file locations in merge order."""
    return [
        DEFAULT_CONFIG,
        (home_dir or get_harness_dir()) / "config.json",
        (cwd or Path.cwd()) / HARNESS_DIR_NAME / "config.json",
    ]


def read_layer(path: Path) -> dict[str, Any]:
    """Parse one config file into a dict.

    A leading UTF-8 BOM is accepted.

    Raises:
        LoadError: If the file cannot be read, is not valid JSON, or its top
            level is not an object.
    """
    try:
        text = path.read_text(encoding="utf-8-sig")
    except OSError as e:
        raise LoadError(f"Cannot read config {path}: {e.strerror or e}") from e

    if not text.strip():
        logger.debug("Config file %s is empty", path)
        return {}

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise LoadError(
            f"Invalid JSON in {path} (line {e.lineno}, column {e.colno}): {e.msg}"
        ) from e

    if not isinstance(data, dict):
        raise LoadError(f"Config {path} must be a JSON object, not {type(data).__name__}")
    return data


def load_config(
    path: Path | None = None,
    cwd: Path | None = None,
    home_dir: Path | None = None,
) -> HarnessConfig:
    """Load configuration from file with layered merging.

    Args:
        path: Explicit config file path. If provided, skips layered loading.
        cwd: Working directory for local lookup. Defaults to Path.cwd().
        home_dir: Global config directory override (for testing).

    Returns:
        Validated HarnessConfig object.

    Raises:
        ConfigError: If any config file contains invalid JSON or the merged
            config fails validation.
    """
    if path is not None:
        return _load_from_path(path)

    merged: dict[str, Any] = {}
    loaded_from: list[Path] = []
    for layer in config_layers(cwd, home_dir):
        if not layer.is_file():
            logger.debug("No config at %s", layer)
            continue
        try:
            data = read_layer(layer)
        except LoadError as e:
            raise ConfigError(e.message) from e
        if data:
            merged = deep_merge(merged, data)
            loaded_from.append(layer)

    if loaded_from:
        logger.info("Config loaded from: %s", [str(p) for p in loaded_from])
    else:
        logger.debug("No config files found, using Pydantic defaults")

    try:
        return HarnessConfig.model_validate(merged)
    except ValidationError as e:
        sources = ", ".join(str(p) for p in loaded_from) or "defaults"
        raise ConfigError(f"Config validation failed (merged from {sources}): {e}") from e


def _load_from_path(path: Path) -> HarnessConfig:
    """Load and validate config from a specific path.

    Raises:
        ConfigError: If file doesn't exist, contains invalid JSON, or fails validation.
    """
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")
    try:
        data = read_layer(path)
    except LoadError as e:
        raise ConfigError(e.message) from e

    try:
        return HarnessConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Config validation failed for {path}: {e}") from e
