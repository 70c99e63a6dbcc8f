"""Core constants and paths for clipharness.

Single source of truth for global paths. All modules should import from here
instead of hardcoding paths like `Path.home() / ".clipharness"`.
"""

from pathlib import Path

HARNESS_DIR_NAME = ".clipharness"

# Mirror store keys (shared by every context of an origin)
COPY_PAYLOADS_KEY = "CopyPayloads"
COPY_METADATA_KEY = "CopyMetadata"


def get_harness_dir() -> Path:
    """Get ~/.clipharness (global config directory)."""
    return Path.home() / HARNESS_DIR_NAME


def get_defaults_dir() -> Path:
    """Get package defaults directory (shipped with package)."""
    import clipharness
    return Path(clipharness.__file__).parent / "defaults"


def get_default_mirror_path() -> Path:
    """Get default mirror database path."""
    return get_harness_dir() / "mirror.db"
