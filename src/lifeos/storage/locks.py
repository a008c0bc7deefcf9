"""Cross-process lock around one cache entry."""

from __future__ import annotations

import contextlib
from collections.abc import Iterator
from pathlib import Path

from filelock import FileLock, Timeout

DEFAULT_LOCK_TIMEOUT = 10.0


class LockTimeout(Exception):
    """The lock for a cache entry stayed busy longer than the allowed wait."""

    def __init__(self, key: str, timeout: float) -> None:
        super().__init__(f"Cache entry '{key}' is locked by another process (waited {timeout}s)")
        self.key = key
        self.timeout = timeout


@contextlib.contextmanager
def data_lock(
    locks_dir: Path,
    key: str,
    timeout: float = DEFAULT_LOCK_TIMEOUT,
) -> Iterator[Path]:
    """Hold ``locks_dir/<key>.lock`` for the duration of the block.

    Two processes sharing a data directory (a CLI invocation while a
    long-running session is open, say) serialize their writes of the same
    entry through it.  Yields the lock file path.

    Raises:
        LockTimeout: If the lock is not acquired within *timeout* seconds.
    """
    lock_path = locks_dir / f"{key}.lock"
    lock = FileLock(lock_path, timeout=timeout)
    try:
        lock.acquire()
    except Timeout:
        raise LockTimeout(key, timeout) from None
    try:
        yield lock_path
    finally:
        lock.release()
