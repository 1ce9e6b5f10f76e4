"""Facade over the tool cache: stats, validation, refresh, export/import."""

from __future__ import annotations

import asyncio
from datetime import timedelta
from pathlib import Path
from typing import Optional

from src.config import CacheConfig
from src.utils import console

from .cache import CacheStats, ToolCache, ToolCacheEntry
from .discovery import ToolProbe
from .exporter import export_cache, import_cache
from .validator import CacheValidator, ValidationReport


class CacheManager:
    """Owns one ``ToolCache`` and the operations that maintain it."""

    def __init__(self, cache: ToolCache, validator: CacheValidator | None = None) -> None:
        self.cache = cache
        self.validator = validator or CacheValidator()

    @classmethod
    def from_config(cls, config: CacheConfig) -> "CacheManager":
        cache = ToolCache(config.cache_file, ttl=timedelta(seconds=config.ttl_seconds))
        return cls(cache)

    def stats(self) -> CacheStats:
        return self.cache.stats()

    def validate(self) -> ValidationReport:
        return self.validator.validate(self.cache)

    async def _probe(self, probe: ToolProbe, name: str) -> tuple[bool, str]:
        available = await probe.is_available(name)
        version = await probe.get_version(name) if available else ""
        return available, version

    async def refresh(self, probe: ToolProbe, tools: Optional[list[str]] = None) -> dict[str, ToolCacheEntry]:
        """Re-probe *tools* (default: every name in the cache) and overwrite their entries.

        The cache is saved afterwards when it has a backing file.
        """
        names = list(tools) if tools is not None else self.cache.names()
        results = await asyncio.gather(*(self._probe(probe, n) for n in names))
        refreshed = {
            name: self.cache.set(name, available, version)
            for name, (available, version) in zip(names, results)
        }
        if self.cache.cache_file is not None:
            self.cache.save()
        console.print(f"[dim]Refreshed {len(refreshed)} cached tool(s)[/dim]")
        return refreshed

    async def ensure(self, probe: ToolProbe, tools: list[str]) -> dict[str, ToolCacheEntry]:
        """Return a fresh entry for every tool, probing only on a cache miss."""
        resolved: dict[str, ToolCacheEntry] = {}
        missing: list[str] = []
        for name in dict.fromkeys(tools):
            entry, hit = self.cache.get(name)
            if hit and entry is not None:
                resolved[name] = entry
            else:
                missing.append(name)

        if missing:
            results = await asyncio.gather(*(self._probe(probe, n) for n in missing))
            for name, (available, version) in zip(missing, results):
                resolved[name] = self.cache.set(name, available, version)
        return resolved

    def export(self, path: str | Path) -> Path:
        return export_cache(self.cache, path)

    def import_(self, path: str | Path, *, preserve_timestamps: bool = False) -> int:
        """Import an export file and persist the result."""
        count = import_cache(self.cache, path, preserve_timestamps=preserve_timestamps)
        if self.cache.cache_file is not None:
            self.cache.save()
        return count

    def clear(self) -> None:
        self.cache.clear()
        if self.cache.cache_file is not None:
            self.cache.save()
