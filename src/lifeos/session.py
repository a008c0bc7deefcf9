"""The session: the one owner of the current document.

A session is created when a collaborator mounts.  It reads the cache,
normalizes it and holds the result as the current document.  Every intent
goes through a mutation function and lands in ``_commit``, which writes the
cache, tells listeners and lets the sync engine schedule a remote write.

Listeners are fire-and-forget: failures are logged but never interrupt the
commit.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from lifeos.core import mutations
from lifeos.core.config import ConfigError, LifeOSConfig, debounce_seconds, default_config
from lifeos.core.ids import (
    generate_area_id,
    generate_group_id,
    generate_phase_id,
    generate_project_id,
    generate_task_id,
)
from lifeos.core.queries import Location, check_document, search_tasks
from lifeos.core.schema import (
    Area,
    AreaGroup,
    Document,
    Phase,
    Project,
    Task,
    initial_document,
    new_attachment,
    new_resource,
    normalize_document,
)
from lifeos.storage.cache import LocalCacheStore
from lifeos.storage.export import export_document
from lifeos.sync.engine import RemoteSyncEngine, SyncError
from lifeos.sync.remote import PostgrestDocumentStore, RemoteDocumentStore
from lifeos.sync.status import SyncStatus, derive_sync_status

logger = logging.getLogger(__name__)

Listener = Callable[[Document], None]


class LifeOSSession:
    """Current document, its read surface and its intent surface."""

    def __init__(
        self,
        cache: LocalCacheStore,
        document: Document,
        remote: RemoteDocumentStore | None = None,
        config: LifeOSConfig | None = None,
    ) -> None:
        self.cache = cache
        self.config = config if config is not None else default_config()
        self._document = document
        self._listeners: list[Listener] = []
        self.engine: RemoteSyncEngine | None = None
        if remote is not None:
            self.engine = RemoteSyncEngine(
                remote,
                cache,
                current=lambda: self._document,
                adopt=self._adopt,
                debounce_seconds=debounce_seconds(self.config),
                timeout=self.config.get("request_timeout"),
            )

    @classmethod
    def open(
        cls,
        cache: LocalCacheStore,
        remote: RemoteDocumentStore | None = None,
        config: LifeOSConfig | None = None,
    ) -> LifeOSSession:
        """Start a session from the cache, or from the first-run document."""
        raw = cache.read()
        document = normalize_document(raw) if raw is not None else initial_document()
        return cls(cache, document, remote, config)

    # ------------------------------------------------------------------
    # Read surface
    # ------------------------------------------------------------------

    @property
    def document(self) -> Document:
        return self._document

    @property
    def syncing(self) -> bool:
        return self.engine.syncing if self.engine is not None else False

    @property
    def last_error(self) -> SyncError | None:
        return self.engine.last_error if self.engine is not None else None

    @property
    def last_sync_error(self) -> str | None:
        return self.engine.last_sync_error if self.engine is not None else None

    @property
    def sync_status(self) -> SyncStatus:
        return derive_sync_status(self.syncing, self.last_error)

    @property
    def user_id(self) -> str | None:
        return self.engine.user_id if self.engine is not None else None

    def search(self, query: str) -> list[tuple[Location, Task]]:
        return search_tasks(self._document, query)

    def check(self) -> list[dict]:
        return check_document(self._document)

    def export(self, destination: Path) -> Path:
        return export_document(self._document, destination)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def subscribe(self, fn: Listener) -> None:
        """Register a callback invoked with the new document after each change."""
        self._listeners.append(fn)

    def unsubscribe(self, fn: Listener) -> None:
        try:
            self._listeners.remove(fn)
        except ValueError:
            pass

    def _notify(self, document: Document) -> None:
        for fn in list(self._listeners):
            try:
                fn(document)
            except Exception as exc:
                logger.warning("session: listener error: %s", exc)

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    def _commit(self, document: Document) -> None:
        if document is self._document:
            return
        self._document = document
        self.cache.write(document)
        self._notify(document)
        if self.engine is not None:
            self.engine.notify_change()

    def _adopt(self, document: Document) -> None:
        self._document = document
        self.cache.write(document)
        self._notify(document)

    def replace_document(self, document: Document) -> None:
        """Swap in a whole document (bulk edits); it is normalized first."""
        self._commit(normalize_document(document))

    def reset(self) -> None:
        """Forget the cached document and start over from the first-run one."""
        self.cache.clear()
        self._commit(initial_document())

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def sign_in(self, user_id: str) -> None:
        if self.engine is None:
            logger.info("session: no remote store configured; staying local")
            return
        await self.engine.sign_in(user_id)

    def sign_out(self) -> None:
        if self.engine is not None:
            self.engine.sign_out()

    async def close(self, *, flush: bool | None = None) -> None:
        """Tear down remote sync.  ``flush`` defaults to the config's
        ``flush_on_close``."""
        if self.engine is None:
            return
        if flush is None:
            flush = bool(self.config.get("flush_on_close", False))
        await self.engine.close(flush=flush)

    # ------------------------------------------------------------------
    # Intents: groups and areas
    # ------------------------------------------------------------------

    def create_group(self, title: str) -> str:
        group_id = generate_group_id()
        self._commit(mutations.create_group(self._document, title, group_id=group_id))
        return group_id

    def update_group(self, group: AreaGroup) -> None:
        self._commit(mutations.update_group(self._document, group))

    def delete_group(self, group_id: str) -> None:
        self._commit(mutations.delete_group(self._document, group_id))

    def create_area(self, title: str, icon: str, group_id: str | None = None) -> str:
        area_id = generate_area_id()
        self._commit(mutations.create_area(self._document, title, icon, group_id, area_id=area_id))
        return area_id

    def update_area(self, area: Area) -> None:
        self._commit(mutations.update_area(self._document, area))

    def delete_area(self, area_id: str) -> None:
        self._commit(mutations.delete_area(self._document, area_id))

    # ------------------------------------------------------------------
    # Intents: projects and phases
    # ------------------------------------------------------------------

    def create_project(self, title: str, area_id: str) -> str:
        project_id = generate_project_id()
        self._commit(mutations.create_project(self._document, title, area_id, project_id=project_id))
        return project_id

    def update_project(self, project: Project) -> None:
        self._commit(mutations.update_project(self._document, project))

    def delete_project(self, project_id: str) -> None:
        self._commit(mutations.delete_project(self._document, project_id))

    def move_project(self, project_id: str, target_area_id: str) -> None:
        self._commit(mutations.move_project(self._document, project_id, target_area_id))

    def create_phase(self, title: str, project_id: str) -> str:
        phase_id = generate_phase_id()
        self._commit(mutations.create_phase(self._document, title, project_id, phase_id=phase_id))
        return phase_id

    def update_phase(self, phase: Phase) -> None:
        self._commit(mutations.update_phase(self._document, phase))

    def delete_phase(self, phase_id: str) -> None:
        self._commit(mutations.delete_phase(self._document, phase_id))

    # ------------------------------------------------------------------
    # Intents: tasks
    # ------------------------------------------------------------------

    def create_task(self, title: str, location: Location) -> str:
        task_id = generate_task_id()
        self._commit(mutations.create_task(self._document, title, location, task_id=task_id))
        return task_id

    def update_task(self, task: Task) -> None:
        self._commit(mutations.update_task(self._document, task))

    def delete_task(self, task_id: str) -> None:
        self._commit(mutations.delete_task(self._document, task_id))

    def move_task(self, task_id: str, location: Location) -> None:
        self._commit(mutations.move_task(self._document, task_id, location))

    def toggle_task_status(self, task_id: str) -> None:
        self._commit(mutations.toggle_task_status(self._document, task_id))

    # ------------------------------------------------------------------
    # Intents: attachments and resources
    # ------------------------------------------------------------------

    def add_attachment(
        self,
        kind: str,
        target_id: str,
        name: str,
        url: str,
        mime_type: str = "application/octet-stream",
        size: int = 0,
    ) -> str:
        attachment = new_attachment(name, url, mime_type, size)
        self._commit(mutations.add_attachment(self._document, kind, target_id, attachment))
        return attachment["id"]

    def add_resource(
        self,
        kind: str,
        target_id: str,
        title: str,
        content: str = "",
        resource_type: str = "note",
        url: str | None = None,
    ) -> str:
        resource = new_resource(title, content, resource_type, url)
        self._commit(mutations.add_resource(self._document, kind, target_id, resource))
        return resource["id"]  # type: ignore[typeddict-item]


def build_remote_store(config: LifeOSConfig) -> RemoteDocumentStore | None:
    """Return the configured remote store, or None when sync is not set up.

    Raises:
        ConfigError: If a remote URL is configured without an API key.
    """
    url = config.get("remote_url")
    if not url:
        return None
    api_key = config.get("api_key")
    if not api_key:
        raise ConfigError("remote_url is set but no API key is configured (LIFEOS_API_KEY)")
    return PostgrestDocumentStore(
        url,
        api_key,
        access_token=config.get("access_token"),
        table=config.get("remote_table", "user_data"),
        timeout=config.get("request_timeout"),
    )


def open_session(data_dir: Path, config: LifeOSConfig) -> LifeOSSession:
    """Build the cache and remote store for *data_dir* and open a session."""
    return LifeOSSession.open(LocalCacheStore(data_dir), build_remote_store(config), config)
