"""Tests for the local cache store."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from lifeos.core.schema import initial_document
from lifeos.storage.cache import STORAGE_KEY, LocalCacheStore, LocalPersistenceError


class TestLocalCacheStore:
    def test_path_uses_storage_key(self, data_dir: Path) -> None:
        assert LocalCacheStore(data_dir).path == data_dir / f"{STORAGE_KEY}.json"

    def test_absent_reads_none(self, data_dir: Path) -> None:
        cache = LocalCacheStore(data_dir)
        assert cache.exists() is False
        assert cache.read() is None

    def test_round_trip(self, data_dir: Path, sample_doc) -> None:
        cache = LocalCacheStore(data_dir)
        cache.write(sample_doc)
        assert cache.exists()
        assert cache.read() == sample_doc

    def test_write_replaces(self, data_dir: Path, sample_doc) -> None:
        cache = LocalCacheStore(data_dir)
        cache.write(sample_doc)
        cache.write(initial_document())
        assert cache.read() == initial_document()

    def test_write_creates_missing_directory(self, tmp_path: Path) -> None:
        cache = LocalCacheStore(tmp_path / "fresh")
        cache.write(initial_document())
        assert cache.read() == initial_document()

    def test_non_ascii_kept_readable(self, data_dir: Path) -> None:
        cache = LocalCacheStore(data_dir)
        cache.write({"areaGroups": [], "areas": [], "inbox": [{"id": "t", "title": "Café"}]})
        assert "Café" in cache.path.read_text(encoding="utf-8")

    def test_null_entry_reads_none(self, data_dir: Path) -> None:
        cache = LocalCacheStore(data_dir)
        cache.path.write_text("null")
        assert cache.read() is None

    def test_corrupt_entry_raises(self, data_dir: Path) -> None:
        cache = LocalCacheStore(data_dir)
        cache.path.write_text("{not json")
        with pytest.raises(LocalPersistenceError, match="Corrupt"):
            cache.read()

    def test_non_object_entry_raises(self, data_dir: Path) -> None:
        cache = LocalCacheStore(data_dir)
        cache.path.write_text(json.dumps([1, 2]))
        with pytest.raises(LocalPersistenceError, match="expected an object"):
            cache.read()

    def test_write_failure_raises(self, data_dir: Path) -> None:
        cache = LocalCacheStore(data_dir)
        with patch("lifeos.storage.cache.atomic_write", side_effect=OSError("read-only")):
            with pytest.raises(LocalPersistenceError, match="read-only"):
                cache.write(initial_document())

    def test_clear(self, data_dir: Path, sample_doc) -> None:
        cache = LocalCacheStore(data_dir)
        cache.write(sample_doc)
        cache.clear()
        assert cache.read() is None
        cache.clear()

    def test_separate_keys(self, data_dir: Path, sample_doc) -> None:
        LocalCacheStore(data_dir, "a").write(sample_doc)
        assert LocalCacheStore(data_dir, "b").read() is None
