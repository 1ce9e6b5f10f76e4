"""Versioned export/import of tool cache snapshots.

An export is a portable JSON document::

    {
      "version": "1.0",
      "exported_at": "2026-01-01T12:00:00Z",
      "platform": "linux",
      "entries": {"npx": {"available": true, "version": "9.0.0", ...}}
    }

Only ``version == "1.0"`` can be imported.  Import validates the whole
document before touching the live cache, so a rejected file leaves the
cache exactly as it was.
"""

from __future__ import annotations

import json
import sys
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from src.utils import ensure_dir, load_json

from .cache import ToolCache, ToolCacheEntry, utc_now

EXPORT_FORMAT_VERSION = "1.0"


class CacheImportError(Exception):
    """Raised when an export file cannot be imported."""

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"cannot import cache from {self.path}: {reason}")


class CacheExportFormat(BaseModel):
    """On-disk shape of a cache export."""

    version: str = EXPORT_FORMAT_VERSION
    exported_at: datetime = Field(default_factory=utc_now)
    platform: str = Field(default_factory=lambda: sys.platform)
    entries: dict[str, ToolCacheEntry] = Field(default_factory=dict)


def export_cache(cache: ToolCache, path: str | Path) -> Path:
    """Write a snapshot of every entry (expired or not) to *path*."""
    snapshot = CacheExportFormat(exported_at=cache.now(), entries=cache.entries())
    target = Path(path)
    ensure_dir(target.parent)
    target.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")
    return target


def read_export(path: str | Path) -> CacheExportFormat:
    """Parse and fully validate an export file without applying it."""
    source = Path(path)
    try:
        data = load_json(source)
    except FileNotFoundError as exc:
        raise CacheImportError(source, "file does not exist") from exc
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise CacheImportError(source, f"invalid JSON: {exc}") from exc

    version = data.get("version")
    if version != EXPORT_FORMAT_VERSION:
        raise CacheImportError(
            source,
            f"unsupported export version {version!r} (expected {EXPORT_FORMAT_VERSION!r})",
        )

    if "entries" not in data or data["entries"] is None:
        raise CacheImportError(source, "missing 'entries' field")
    if not isinstance(data["entries"], dict):
        raise CacheImportError(source, "'entries' must be an object")

    for name, raw in data["entries"].items():
        if raw is None:
            raise CacheImportError(source, f"entry '{name}' is null")

    try:
        return CacheExportFormat.model_validate(data)
    except ValidationError as exc:
        raise CacheImportError(source, f"malformed export: {exc}") from exc


def import_cache(
    cache: ToolCache,
    path: str | Path,
    *,
    preserve_timestamps: bool = False,
) -> int:
    """Load every entry of an export into *cache*.

    By default each entry is re-stamped through ``cache.set`` so it gets a
    fresh ``cached_at`` and the cache's TTL.  With ``preserve_timestamps``
    the exported entries are stored verbatim.

    Returns:
        The number of imported entries.

    Raises:
        CacheImportError: If the file is unreadable, has the wrong version,
            lacks ``entries`` or contains a null or malformed entry.  The
            cache is left untouched in that case.
    """
    snapshot = read_export(path)
    for name, entry in snapshot.entries.items():
        if preserve_timestamps:
            cache.replace(name, entry)
        else:
            cache.set(name, entry.available, entry.version)
    return len(snapshot.entries)
