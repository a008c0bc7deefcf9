"""Local cache: the whole document as one JSON entry under a fixed key.

The cache is always available and needs no identity, so it is the source of
truth on cold start.  It is written on every state change regardless of how
remote sync fares.  Failures here are not recoverable conditions; they are
raised as ``LocalPersistenceError`` and never swallowed.
"""

from __future__ import annotations

import json
from pathlib import Path

from lifeos.core.schema import Document
from lifeos.storage.fs import PRIVATE_FILE_MODE, atomic_write, ensure_data_dirs
from lifeos.storage.locks import LockTimeout, data_lock

STORAGE_KEY = "life_os_data"


class LocalPersistenceError(Exception):
    """Raised when the local cache cannot be read or written."""


def serialize_document(doc: Document) -> str:
    """Serialize a document as indented JSON with a trailing newline."""
    return json.dumps(doc, indent=2, ensure_ascii=False) + "\n"


class LocalCacheStore:
    """Read and write the document stored under ``STORAGE_KEY``."""

    def __init__(self, data_dir: Path, key: str = STORAGE_KEY) -> None:
        self.data_dir = data_dir
        self.key = key
        self.locks_dir = data_dir / "locks"

    @property
    def path(self) -> Path:
        return self.data_dir / f"{self.key}.json"

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> Document | None:
        """Return the cached document, or None if nothing is cached yet.

        The result is returned as stored; callers normalize it.

        Raises:
            LocalPersistenceError: If the entry exists but cannot be read or
                does not hold a JSON object.
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise LocalPersistenceError(f"Cannot read {self.path}: {exc}") from exc

        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise LocalPersistenceError(f"Corrupt cache entry {self.path}: {exc}") from exc
        if parsed is None:
            return None
        if not isinstance(parsed, dict):
            raise LocalPersistenceError(
                f"Corrupt cache entry {self.path}: expected an object, got {type(parsed).__name__}"
            )
        return parsed  # type: ignore[return-value]

    def write(self, doc: Document) -> None:
        """Persist *doc* atomically, replacing whatever was cached.

        Raises:
            LocalPersistenceError: If the directory, lock or file write fails.
        """
        content = serialize_document(doc)
        try:
            ensure_data_dirs(self.data_dir)
            with data_lock(self.locks_dir, self.key):
                atomic_write(self.path, content, mode=PRIVATE_FILE_MODE)
        except (OSError, LockTimeout) as exc:
            raise LocalPersistenceError(f"Cannot write {self.path}: {exc}") from exc

    def clear(self) -> None:
        """Remove the cached entry if present."""
        if not self.path.exists():
            return
        try:
            ensure_data_dirs(self.data_dir)
            with data_lock(self.locks_dir, self.key):
                self.path.unlink(missing_ok=True)
        except (OSError, LockTimeout) as exc:
            raise LocalPersistenceError(f"Cannot remove {self.path}: {exc}") from exc
