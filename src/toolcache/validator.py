"""Integrity checks for the tool-availability cache."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from .cache import MAX_TTL, ToolCache, ToolCacheEntry, utc_now


class CacheEntryError(Exception):
    """Raised when a cache entry violates an integrity rule."""

    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        self.reason = reason
        super().__init__(f"cache entry '{name}': {reason}")


@dataclass
class ValidationReport:
    """Result of validating every entry of a cache."""

    valid: bool = True
    total_entries: int = 0
    corrupted_entries: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


class CacheValidator:
    """Validates cache entries against clock skew and TTL bounds."""

    def __init__(self, max_ttl: timedelta = MAX_TTL) -> None:
        self.max_ttl = max_ttl

    def validate_entry(
        self,
        name: str,
        entry: Optional[ToolCacheEntry],
        now: Optional[datetime] = None,
    ) -> None:
        """Raise ``CacheEntryError`` if *entry* is unusable."""
        if now is None:
            now = utc_now()
        if entry is None:
            raise CacheEntryError(name, "entry is null")
        if entry.cached_at > now:
            raise CacheEntryError(name, f"cached_at {entry.cached_at.isoformat()} is in the future")
        if entry.ttl < timedelta(0):
            raise CacheEntryError(name, f"negative TTL {entry.ttl}")
        if entry.ttl > self.max_ttl:
            raise CacheEntryError(name, f"TTL {entry.ttl} exceeds maximum {self.max_ttl}")

    def validate(self, cache: ToolCache) -> ValidationReport:
        """Validate every entry.

        A cache file that failed to parse is reported as a warning: the
        cache is empty but recoverable by re-probing.
        """
        entries = cache.entries()
        now = cache.now()
        report = ValidationReport(total_entries=len(entries) + len(cache.rejected))

        if cache.load_error:
            report.warnings.append(f"cache file could not be loaded: {cache.load_error}")

        for name, reason in sorted(cache.rejected.items()):
            report.corrupted_entries.append(name)
            report.errors.append(f"cache entry '{name}': {reason}")

        for name in sorted(entries):
            try:
                self.validate_entry(name, entries[name], now)
            except CacheEntryError as exc:
                report.corrupted_entries.append(name)
                report.errors.append(str(exc))

        report.valid = not report.corrupted_entries
        return report
