"""Persistent tool-availability cache.

Memoises tool probe results with a time-to-live so repeated runs do not pay
for probing every external tool.  The cache is an explicitly constructed
object with its own lifecycle: ``load`` at startup, ``save`` after mutation.
"""

from __future__ import annotations

import json
import os
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from src.utils import save_json

DEFAULT_TTL = timedelta(minutes=5)
MAX_TTL = timedelta(hours=24)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ToolCacheEntry(BaseModel):
    """A single cached probe result.  Entries are replaced, never mutated."""

    model_config = ConfigDict(frozen=True)

    available: bool
    version: str = ""
    cached_at: datetime
    ttl: timedelta

    @field_validator("cached_at")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def is_expired(self, now: datetime) -> bool:
        """An entry expires strictly after ``cached_at + ttl``."""
        return now - self.cached_at > self.ttl


@dataclass
class CacheStats:
    """Summary counters for the cache contents."""

    total_entries: int
    available_tools: int
    unavailable_tools: int
    ttl: timedelta


class ToolCache:
    """Thread-safe, file-backed map of tool name to ``ToolCacheEntry``.

    A corrupt cache file never raises: the cache starts empty and the parse
    failure is kept in ``load_error`` (entries that fail to parse are kept in
    ``rejected``) for the validator to report.
    """

    def __init__(
        self,
        cache_file: str | Path | None = None,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = utc_now,
        autoload: bool = True,
    ) -> None:
        self.cache_file = Path(cache_file) if cache_file is not None else None
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, ToolCacheEntry] = {}
        self._lock = threading.RLock()
        self.load_error: Optional[str] = None
        self.rejected: dict[str, str] = {}

        if autoload and self.cache_file is not None:
            self.load()

    # ------------------------------------------------------------------
    # Lookup / mutation
    # ------------------------------------------------------------------

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def set_ttl(self, ttl: timedelta) -> None:
        """Change the TTL applied to entries written from now on."""
        if ttl < timedelta(0) or ttl > MAX_TTL:
            raise ValueError(f"TTL must be between 0 and {MAX_TTL}, got {ttl}")
        self._ttl = ttl

    def now(self) -> datetime:
        return self._clock()

    def get(self, name: str) -> tuple[Optional[ToolCacheEntry], bool]:
        """Return ``(entry, True)`` on a fresh hit, ``(None, False)`` otherwise."""
        with self._lock:
            entry = self._entries.get(name)
        if entry is None or entry.is_expired(self.now()):
            return None, False
        return entry, True

    def peek(self, name: str) -> Optional[ToolCacheEntry]:
        """Return the raw entry regardless of expiry."""
        with self._lock:
            return self._entries.get(name)

    def set(self, name: str, available: bool, version: str = "") -> ToolCacheEntry:
        """Overwrite the entry for *name* with a freshly timestamped result."""
        entry = ToolCacheEntry(
            available=available,
            version=version,
            cached_at=self.now(),
            ttl=self._ttl,
        )
        with self._lock:
            self._entries[name] = entry
            self.rejected.pop(name, None)
        return entry

    def replace(self, name: str, entry: ToolCacheEntry) -> None:
        """Store *entry* verbatim (used when importing a snapshot)."""
        with self._lock:
            self._entries[name] = entry
            self.rejected.pop(name, None)

    def expired(self, name: str) -> bool:
        """Return ``True`` if *name* is absent or its entry has expired."""
        with self._lock:
            entry = self._entries.get(name)
        return entry is None or entry.is_expired(self.now())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.rejected.clear()
            self.load_error = None

    def entries(self) -> dict[str, ToolCacheEntry]:
        """Return a snapshot copy of every entry, expired or not."""
        with self._lock:
            return dict(self._entries)

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._entries

    def stats(self) -> CacheStats:
        snapshot = self.entries()
        available = sum(1 for e in snapshot.values() if e.available)
        return CacheStats(
            total_entries=len(snapshot),
            available_tools=available,
            unavailable_tools=len(snapshot) - available,
            ttl=self._ttl,
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_json_dict(self) -> dict[str, Any]:
        return {name: entry.model_dump(mode="json") for name, entry in self.entries().items()}

    def save(self) -> Path:
        """Write every entry to ``cache_file`` atomically."""
        if self.cache_file is None:
            raise ValueError("cache has no backing file")
        tmp = self.cache_file.with_suffix(self.cache_file.suffix + ".tmp")
        save_json(self.to_json_dict(), tmp)
        os.replace(tmp, self.cache_file)
        return self.cache_file

    def load(self) -> None:
        """Replace the in-memory entries with the contents of ``cache_file``.

        A missing file yields an empty cache.  An unreadable or unparsable
        file yields an empty cache with ``load_error`` set.
        """
        with self._lock:
            self._entries.clear()
            self.rejected.clear()
            self.load_error = None

            if self.cache_file is None or not self.cache_file.exists():
                return

            try:
                data = json.loads(self.cache_file.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
                self.load_error = f"failed to parse cache file {self.cache_file}: {exc}"
                return

            if not isinstance(data, dict):
                self.load_error = (
                    f"cache file {self.cache_file} must contain a JSON object, "
                    f"got {type(data).__name__}"
                )
                return

            for name, raw in data.items():
                if raw is None:
                    self.rejected[name] = "entry is null"
                    continue
                try:
                    self._entries[name] = ToolCacheEntry.model_validate(raw)
                except ValidationError as exc:
                    self.rejected[name] = f"malformed entry: {exc.error_count()} error(s)"
