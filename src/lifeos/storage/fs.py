"""Atomic file writes and data directory discovery."""

from __future__ import annotations

import contextlib
import os
import tempfile
from pathlib import Path

LIFEOS_DIR = ".lifeos"
LIFEOS_HOME_ENV = "LIFEOS_HOME"
CONFIG_FILE = "config.json"

# Owner read/write only: the cache holds personal data, config.json may hold an API key.
PRIVATE_FILE_MODE = 0o600


class LifeOSRootError(Exception):
    """Raised when the LIFEOS_HOME env var is set but invalid."""


def _fsync_directory(path: Path) -> None:
    """Flush a rename in *path* to disk.  Best effort: some filesystems
    refuse fsync on a directory descriptor."""
    with contextlib.suppress(OSError):
        fd = os.open(path, os.O_RDONLY)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)


def atomic_write(path: Path, content: str | bytes, *, mode: int | None = None) -> None:
    """Replace *path* with *content*; readers see the old file or the new one.

    The data goes to a temp file beside the target, is fsynced, and is then
    renamed over the target.  ``mode`` sets the permission bits of the new
    file; without it the temp file's default (0600) is kept.

    Raises:
        FileNotFoundError: If the parent directory does not exist.
    """
    parent = path.parent
    if not parent.is_dir():
        raise FileNotFoundError(f"Parent directory does not exist: {parent}")

    data = content.encode("utf-8") if isinstance(content, str) else content

    fd, tmp_name = tempfile.mkstemp(dir=parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        if mode is not None:
            os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise
    _fsync_directory(parent)


def default_data_dir() -> Path:
    return Path.home() / LIFEOS_DIR


def find_data_dir() -> Path:
    """Return the directory holding the cache, config and locks.

    ``LIFEOS_HOME`` wins when set; it must name an existing directory.
    Otherwise ``~/.lifeos`` is used (it may not exist yet).

    Raises:
        LifeOSRootError: If LIFEOS_HOME is set but empty or not a directory.
    """
    env_root = os.environ.get(LIFEOS_HOME_ENV)
    if env_root is not None:
        if not env_root:
            raise LifeOSRootError("LIFEOS_HOME is set but empty")
        env_path = Path(env_root)
        if not env_path.is_dir():
            raise LifeOSRootError(f"LIFEOS_HOME points to a path that does not exist: {env_root}")
        return env_path
    return default_data_dir()


def ensure_data_dirs(data_dir: Path) -> None:
    """Create the data directory and its ``locks/`` subdirectory."""
    (data_dir / "locks").mkdir(parents=True, exist_ok=True)
