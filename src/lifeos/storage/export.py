"""Document export: a direct dump of the stored payload."""

from __future__ import annotations

import json
from pathlib import Path

from lifeos.core.schema import Document
from lifeos.storage.fs import atomic_write

EXPORT_FILENAME = "lifeos-data.json"


def export_document(doc: Document, destination: Path) -> Path:
    """Write *doc* as JSON to *destination* and return the file path.

    When *destination* is a directory the file is named
    ``lifeos-data.json`` inside it.  The payload is the same structure the
    remote store holds; there is no separate export schema.
    """
    path = destination / EXPORT_FILENAME if destination.is_dir() else destination
    atomic_write(path, json.dumps(doc, ensure_ascii=False))
    return path
