"""StackForge tool-availability cache.

Memoises external tool probes with TTL expiry, detects corrupted entries,
and moves cache snapshots between machines in a versioned export format.

Key classes:
    ToolCache       - Thread-safe, file-backed TTL cache of probe results
    CacheValidator  - Integrity checks (clock skew, TTL bounds, corruption)
    CacheManager    - Stats / validate / refresh / export / import facade
    ToolDiscovery   - PATH lookup and version probing for bootstrap tools
    OfflineDetector - Package-registry reachability check
"""

from .cache import CacheStats, ToolCache, ToolCacheEntry
from .discovery import (
    TOOL_REGISTRY,
    OfflineDetector,
    ToolDiscovery,
    ToolMetadata,
    ToolProbe,
    install_instructions,
    tools_for_component,
)
from .exporter import CacheExportFormat, CacheImportError, export_cache, import_cache
from .manager import CacheManager
from .validator import CacheEntryError, CacheValidator, ValidationReport

__all__ = [
    # Cache
    "ToolCache",
    "ToolCacheEntry",
    "CacheStats",
    # Validation
    "CacheValidator",
    "CacheEntryError",
    "ValidationReport",
    # Export / import
    "CacheExportFormat",
    "CacheImportError",
    "export_cache",
    "import_cache",
    # Manager
    "CacheManager",
    # Discovery
    "ToolDiscovery",
    "ToolProbe",
    "ToolMetadata",
    "TOOL_REGISTRY",
    "OfflineDetector",
    "install_instructions",
    "tools_for_component",
]
