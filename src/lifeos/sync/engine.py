"""Remote sync engine: load once per identity, then debounced whole-document upserts.

Phases:

``unauthenticated``
    No identity.  Nothing touches the remote store.
``loading``
    Entered once per identity.  A remote document, when present, replaces
    local state; when the user has no row yet the cached local document is
    pushed as the seed.  A failed read is recorded and local state is kept.
``idle``
    Every document change restarts a debounce timer.  When it fires, the
    document as it is at that moment is upserted.  Failures are recorded and
    not retried; the next edit schedules the next attempt.

Errors never propagate out of the engine.  They are kept in ``last_error``
for the collaborator to display and logged.

Everything runs on one asyncio event loop.  The blocking store calls are
pushed to a worker thread with ``asyncio.to_thread`` and bounded by
``timeout`` when one is set.  A call that times out still occupies the
store until its thread returns; later calls wait for it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from lifeos.core.schema import Document, normalize_document, utc_now
from lifeos.storage.cache import LocalCacheStore
from lifeos.sync.remote import RemoteDocumentStore, RemoteStoreError
from lifeos.sync.status import SyncStatus, derive_sync_status

logger = logging.getLogger(__name__)

PHASE_UNAUTHENTICATED = "unauthenticated"
PHASE_LOADING = "loading"
PHASE_IDLE = "idle"

DEFAULT_DEBOUNCE_SECONDS = 1.0


class SyncError(Exception):
    """Base class for sync failures recorded by the engine."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class LoadError(SyncError):
    """The initial remote read failed for a reason other than "no rows"."""


class WriteError(SyncError):
    """A remote upsert failed."""


class RemoteSyncEngine:
    """Reconcile one remote document per user with the in-memory document.

    Args:
        remote: The remote store.
        cache: The local cache; consulted for the seed write.
        current: Returns the document as it is right now.
        adopt: Called with a normalized remote document that must replace
            the current state (and be written to the cache).
        debounce_seconds: Quiet period before a scheduled write fires.
        timeout: Upper bound in seconds for each remote call, or None.
        clock: Timestamp source for ``updated_at``.
    """

    def __init__(
        self,
        remote: RemoteDocumentStore,
        cache: LocalCacheStore,
        *,
        current: Callable[[], Document],
        adopt: Callable[[Document], None],
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        timeout: float | None = None,
        clock: Callable[[], str] = utc_now,
    ) -> None:
        self.remote = remote
        self.cache = cache
        self.debounce_seconds = debounce_seconds
        self.timeout = timeout
        self._current = current
        self._adopt = adopt
        self._clock = clock

        self.phase = PHASE_UNAUTHENTICATED
        self.user_id: str | None = None
        self.loaded = False
        self.last_error: SyncError | None = None
        self.closed = False

        self._busy = 0
        self._changed_while_loading = False
        self._load_task: asyncio.Task | None = None
        self._pending: asyncio.Task | None = None
        self._inflight: asyncio.Task | None = None
        self._abandoned: asyncio.Future | None = None

    # ------------------------------------------------------------------
    # Read surface
    # ------------------------------------------------------------------

    @property
    def syncing(self) -> bool:
        return self._busy > 0

    @property
    def last_sync_error(self) -> str | None:
        return self.last_error.message if self.last_error is not None else None

    @property
    def status(self) -> SyncStatus:
        return derive_sync_status(self.syncing, self.last_error)

    @property
    def has_pending_write(self) -> bool:
        return self._pending is not None and not self._pending.done()

    # ------------------------------------------------------------------
    # Identity lifecycle
    # ------------------------------------------------------------------

    async def sign_in(self, user_id: str) -> None:
        """Set the identity and run the one load pass for it.

        Calling again with the same identity does not load again; it only
        waits for a load that is still running.  A different identity signs
        the previous one out first.
        """
        if self.closed:
            raise RuntimeError("sync engine is closed")
        if user_id == self.user_id and self.loaded:
            if self._load_task is not None and not self._load_task.done():
                await self._load_task
            return
        if self.user_id is not None:
            self.sign_out()

        self.user_id = user_id
        self.loaded = True
        self.phase = PHASE_LOADING
        self._changed_while_loading = False
        self._load_task = asyncio.get_running_loop().create_task(self._load(user_id))
        await self._load_task

    def sign_out(self) -> None:
        """Drop the identity: cancel the pending write and reset the load guard."""
        if self.user_id is not None:
            logger.info("sync: signed out %s", self.user_id)
        self._cancel_pending()
        self.user_id = None
        self.loaded = False
        self.last_error = None
        self.phase = PHASE_UNAUTHENTICATED

    async def reload(self) -> None:
        """Run a fresh load pass for the current identity on request."""
        user_id = self.user_id
        if user_id is None:
            return
        self.sign_out()
        await self.sign_in(user_id)

    # ------------------------------------------------------------------
    # Change notification and debounce
    # ------------------------------------------------------------------

    def notify_change(self) -> None:
        """Record that the document changed; schedules a debounced write.

        Must be called from code running on the event loop when signed in.
        """
        if self.closed or self.user_id is None:
            return
        if self.phase == PHASE_LOADING:
            self._changed_while_loading = True
            return
        self._schedule_write()

    def _schedule_write(self) -> None:
        self._cancel_pending()
        loop = asyncio.get_running_loop()
        self._pending = loop.create_task(self._debounced_write(self.user_id))
        logger.debug("sync: write scheduled in %.3fs", self.debounce_seconds)

    def _cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    async def _debounced_write(self, user_id: str) -> None:
        await asyncio.sleep(self.debounce_seconds)
        if self._pending is asyncio.current_task():
            self._pending = None
        await self._fire(user_id)

    async def _fire(self, user_id: str) -> None:
        document = self._current()
        previous = self._inflight
        self._inflight = asyncio.current_task()
        try:
            if previous is not None and not previous.done():
                await asyncio.wait({previous})
            if user_id != self.user_id:
                return
            await self._write(user_id, document)
        finally:
            if self._inflight is asyncio.current_task():
                self._inflight = None

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def flush(self) -> None:
        """Write a pending change now instead of waiting for the timer,
        then wait for any in-flight write."""
        if self.has_pending_write and self.user_id is not None:
            self._cancel_pending()
            await asyncio.get_running_loop().create_task(self._fire(self.user_id))
        await self.wait_idle()

    async def wait_idle(self) -> None:
        """Wait until no load, scheduled write or in-flight write remains."""
        while True:
            tasks = {
                t
                for t in (self._load_task, self._pending, self._inflight)
                if t is not None and not t.done() and t is not asyncio.current_task()
            }
            if not tasks:
                return
            await asyncio.wait(tasks)

    async def close(self, *, flush: bool = False) -> None:
        """Tear down the engine.

        With ``flush=False`` a pending debounced write is cancelled and the
        change it carried is not sent.  With ``flush=True`` it is sent first.
        A write already in flight is always allowed to finish.
        """
        if self.closed:
            return
        if flush:
            await self.flush()
        else:
            if self.has_pending_write:
                logger.info("sync: discarding unsent change on close")
            self._cancel_pending()
        if self._inflight is not None and not self._inflight.done():
            await asyncio.wait({self._inflight})
        self.closed = True

    # ------------------------------------------------------------------
    # Remote operations
    # ------------------------------------------------------------------

    async def _load(self, user_id: str) -> None:
        self._busy += 1
        adopted = False
        succeeded = False
        try:
            try:
                remote_doc = await self._call("Load", self.remote.fetch, user_id)
            except RemoteStoreError as exc:
                if user_id == self.user_id:
                    self._record(LoadError(exc.message))
                return

            if user_id != self.user_id:
                logger.debug("sync: discarding load result for signed-out %s", user_id)
                return

            if remote_doc is not None:
                self._adopt(normalize_document(remote_doc))
                adopted = True
                logger.info("sync: adopted remote document for %s", user_id)
            elif self.cache.exists():
                logger.info("sync: no remote document for %s, pushing local seed", user_id)
                seed = self._current()
                self._changed_while_loading = False
                try:
                    await self._call("Save", self.remote.upsert, user_id, seed, self._clock())
                except RemoteStoreError as exc:
                    self._record(WriteError(exc.message))
                    return
            else:
                logger.info("sync: no remote or local document for %s", user_id)
            self.last_error = None
            succeeded = True
        finally:
            self._busy -= 1
            if user_id == self.user_id:
                self.phase = PHASE_IDLE
                # Edits made during the load are superseded by an adopted
                # remote document; otherwise they still need to go out.
                if succeeded and self._changed_while_loading and not adopted:
                    self._schedule_write()
                self._changed_while_loading = False

    async def _write(self, user_id: str, document: Document) -> None:
        self._busy += 1
        try:
            await self._call("Save", self.remote.upsert, user_id, document, self._clock())
        except RemoteStoreError as exc:
            self._record(WriteError(exc.message))
        else:
            self.last_error = None
            logger.debug("sync: saved document for %s", user_id)
        finally:
            self._busy -= 1

    async def _call(self, label: str, fn: Callable[..., Any], *args: Any) -> Any:
        # A call abandoned after a timeout keeps running in its thread. The
        # next call starts only once that thread has returned.
        if self._abandoned is not None and not self._abandoned.done():
            logger.info("sync: waiting for an earlier timed-out call to finish")
            await asyncio.wait({self._abandoned})
        self._abandoned = None

        worker = asyncio.ensure_future(asyncio.to_thread(fn, *args))
        try:
            done, _ = await asyncio.wait({worker}, timeout=self.timeout)
        except asyncio.CancelledError:
            self._abandon(worker)
            raise
        if not done:
            self._abandon(worker)
            raise RemoteStoreError(f"{label} timed out after {self.timeout}s", "timeout")
        return worker.result()

    def _abandon(self, worker: asyncio.Future) -> None:
        self._abandoned = worker
        worker.add_done_callback(_log_abandoned_result)

    def _record(self, error: SyncError) -> None:
        self.last_error = error
        logger.warning("sync: %s: %s", type(error).__name__, error.message)


def _log_abandoned_result(worker: asyncio.Future) -> None:
    if worker.cancelled():
        return
    exc = worker.exception()
    if exc is not None:
        logger.debug("sync: timed-out call failed later: %s", exc)
    else:
        logger.debug("sync: timed-out call completed late")
