"""Unit tests for cache export/import (src.toolcache.exporter).

Tests cover:
- export document shape (version, platform, every entry incl. expired)
- export -> import into a fresh cache
- rejection of bad version, missing entries, null entries, bad JSON
- all-or-nothing: a rejected import leaves the cache untouched
- preserve_timestamps
"""

from __future__ import annotations

import json
import sys
from datetime import timedelta
from pathlib import Path

import pytest

from src.toolcache.cache import ToolCache
from src.toolcache.exporter import (
    EXPORT_FORMAT_VERSION,
    CacheImportError,
    export_cache,
    import_cache,
    read_export,
)


def _write(path: Path, data) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def _valid_entry() -> dict:
    return {
        "available": True,
        "version": "1.0",
        "cached_at": "2026-01-01T11:00:00Z",
        "ttl": 300,
    }


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


class TestExport:
    @pytest.mark.unit
    def test_document_shape(self, tool_cache: ToolCache, tmp_path: Path, clock):
        tool_cache.set("npx", True, "10.2.0")
        tool_cache.set("go", False)
        clock.advance(hours=2)  # both entries are now expired

        path = export_cache(tool_cache, tmp_path / "exports" / "cache.json")
        data = json.loads(path.read_text(encoding="utf-8"))

        assert data["version"] == EXPORT_FORMAT_VERSION == "1.0"
        assert data["platform"] == sys.platform
        assert set(data["entries"]) == {"npx", "go"}
        assert data["entries"]["npx"]["version"] == "10.2.0"

    @pytest.mark.unit
    def test_export_import_into_fresh_cache(self, tool_cache: ToolCache, tmp_path: Path, clock):
        tool_cache.set("npx", True, "9.0.0")
        tool_cache.set("go", True, "go1.22")
        path = export_cache(tool_cache, tmp_path / "cache.json")

        fresh = ToolCache(clock=clock)
        count = import_cache(fresh, path)

        stats = fresh.stats()
        assert count == 2
        assert stats.total_entries == 2
        assert stats.available_tools == 2


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


class TestImport:
    @pytest.mark.unit
    def test_import_restamps_entries(self, tmp_path: Path, clock):
        path = _write(tmp_path / "e.json", {"version": "1.0", "entries": {"npx": _valid_entry()}})
        cache = ToolCache(ttl=timedelta(minutes=10), clock=clock)
        import_cache(cache, path)
        entry = cache.peek("npx")
        assert entry.cached_at == clock()
        assert entry.ttl == timedelta(minutes=10)
        assert cache.get("npx")[1] is True

    @pytest.mark.unit
    def test_preserve_timestamps(self, tmp_path: Path, clock):
        path = _write(tmp_path / "e.json", {"version": "1.0", "entries": {"npx": _valid_entry()}})
        cache = ToolCache(clock=clock)
        import_cache(cache, path, preserve_timestamps=True)
        entry = cache.peek("npx")
        assert entry.ttl == timedelta(seconds=300)
        assert entry.cached_at < clock()
        assert cache.get("npx") == (None, False)

    @pytest.mark.unit
    def test_wrong_version_rejected_without_mutation(self, tool_cache: ToolCache, tmp_path: Path):
        tool_cache.set("npx", True, "9.0.0")
        before = tool_cache.entries()
        path = _write(tmp_path / "e.json", {"version": "2.0", "entries": {"go": _valid_entry()}})

        with pytest.raises(CacheImportError, match="unsupported export version"):
            import_cache(tool_cache, path)
        assert tool_cache.entries() == before

    @pytest.mark.unit
    def test_missing_entries_field(self, tool_cache: ToolCache, tmp_path: Path):
        path = _write(tmp_path / "e.json", {"version": "1.0"})
        with pytest.raises(CacheImportError, match="entries"):
            import_cache(tool_cache, path)

    @pytest.mark.unit
    def test_null_entry_rejects_whole_file(self, tool_cache: ToolCache, tmp_path: Path):
        path = _write(
            tmp_path / "e.json",
            {"version": "1.0", "entries": {"go": _valid_entry(), "npx": None}},
        )
        with pytest.raises(CacheImportError, match="'npx' is null"):
            import_cache(tool_cache, path)
        assert len(tool_cache) == 0

    @pytest.mark.unit
    def test_malformed_entry_rejects_whole_file(self, tool_cache: ToolCache, tmp_path: Path):
        path = _write(
            tmp_path / "e.json",
            {"version": "1.0", "entries": {"go": _valid_entry(), "npx": {"available": True}}},
        )
        with pytest.raises(CacheImportError, match="malformed"):
            import_cache(tool_cache, path)
        assert len(tool_cache) == 0

    @pytest.mark.unit
    def test_invalid_json(self, tmp_path: Path):
        path = tmp_path / "e.json"
        path.write_text("{", encoding="utf-8")
        with pytest.raises(CacheImportError, match="invalid JSON"):
            read_export(path)

    @pytest.mark.unit
    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(CacheImportError, match="does not exist"):
            read_export(tmp_path / "missing.json")

    @pytest.mark.unit
    def test_non_object_document(self, tmp_path: Path):
        path = _write(tmp_path / "e.json", ["not", "an", "object"])
        with pytest.raises(CacheImportError):
            read_export(path)
