"""Remote sync: one whole-document row per user, debounced upserts."""

from __future__ import annotations

from lifeos.sync.engine import LoadError, RemoteSyncEngine, SyncError, WriteError
from lifeos.sync.remote import (
    InMemoryDocumentStore,
    PostgrestDocumentStore,
    RemoteDocumentStore,
    RemoteStoreError,
)
from lifeos.sync.status import SyncStatus, derive_sync_status

__all__ = [
    "InMemoryDocumentStore",
    "LoadError",
    "PostgrestDocumentStore",
    "RemoteDocumentStore",
    "RemoteStoreError",
    "RemoteSyncEngine",
    "SyncError",
    "SyncStatus",
    "WriteError",
    "derive_sync_status",
]
