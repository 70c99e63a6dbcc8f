"""Secure file helpers for the mirror database."""

import os
import stat
from pathlib import Path

# Owner-only permissions for harness directories
SECURE_DIR_MODE: int = stat.S_IRWXU  # 0o700

# Owner read/write only for database files
SECURE_FILE_MODE: int = stat.S_IRUSR | stat.S_IWUSR  # 0o600


def secure_mkdir(path: Path) -> None:
    """Create directory (and missing parents) with owner-only permissions.

    Unlike Path.mkdir(), this ensures the final directory has secure
    permissions even when it already exists.
    """
    for parent in reversed(list(path.parents)):
        if not parent.exists():
            parent.mkdir(mode=SECURE_DIR_MODE)
            os.chmod(parent, SECURE_DIR_MODE)

    if not path.exists():
        path.mkdir(mode=SECURE_DIR_MODE)

    os.chmod(path, SECURE_DIR_MODE)


def secure_touch(path: Path) -> None:
    """Atomically create an empty file with owner-only permissions if missing."""
    if path.exists():
        return
    try:
        fd = os.open(
            str(path),
            os.O_CREAT | os.O_EXCL | os.O_WRONLY,
            SECURE_FILE_MODE,
        )
    except FileExistsError:
        # Another context created it between exists() and open()
        return
    os.close(fd)
