"""Sync status shown to the collaborator."""

from __future__ import annotations

from enum import Enum


class SyncStatus(str, Enum):
    """What the sync indicator should display."""

    SYNCED = "synced"
    SYNCING = "syncing"
    ERROR = "error"


def derive_sync_status(syncing: bool, last_error: object | None) -> SyncStatus:
    """Syncing wins over a recorded error; no activity and no error is synced."""
    if syncing:
        return SyncStatus.SYNCING
    if last_error is not None:
        return SyncStatus.ERROR
    return SyncStatus.SYNCED
