"""StackForge configuration.

Centralised, typed configuration for a generation run. All settings use
Pydantic v2 models so they can be validated at construction time and
serialised to/from JSON or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

from src.models import ComponentSpec

DEFAULT_TOOL_TIMEOUT = 300.0
MAX_WORKERS = 4


class GenerationOptions(BaseModel):
    """Behavioural switches for a run."""

    use_external_tools: bool = Field(
        default=True, description="Prefer bootstrap tools over fallback generators"
    )
    offline: bool = Field(default=False, description="Force offline mode")
    dry_run: bool = Field(default=False)
    create_backup: bool = Field(default=True)
    force_overwrite: bool = Field(default=False)
    disable_parallel: bool = Field(default=False)
    max_workers: int = Field(default=MAX_WORKERS, ge=1, le=MAX_WORKERS)
    verbose: bool = Field(default=False)
    stream_output: bool = Field(default=False)
    tool_timeout: float = Field(
        default=DEFAULT_TOOL_TIMEOUT, gt=0, description="Per-invocation tool timeout in seconds"
    )
    deadline: Optional[float] = Field(
        default=None, gt=0, description="Cancel every in-flight tool after this many seconds"
    )


class CacheConfig(BaseModel):
    """Tool-availability cache settings."""

    cache_dir: Path = Field(default=Path.home() / ".stackforge" / "cache")
    ttl_seconds: float = Field(default=300.0, ge=0, le=86400.0)
    file_name: str = Field(default="tool_cache.json")

    @property
    def cache_file(self) -> Path:
        return self.cache_dir / self.file_name


class GeneratorConfig(BaseModel):
    """Global configuration for one generation run.

    Instances are typically created once by the caller and passed to
    ``ProjectCoordinator.generate`` or ``ProjectCoordinator.dry_run``.
    """

    project_name: str = Field(..., min_length=1)
    description: str = Field(default="")
    output_dir: Path = Field(default=Path("./output"))
    backup_dir: Path = Field(default=Path(".backups"))
    components: list[ComponentSpec] = Field(default_factory=list)
    options: GenerationOptions = Field(default_factory=GenerationOptions)
    cache: CacheConfig = Field(default_factory=CacheConfig)

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def temp_root(self) -> Path:
        """Scratch directory for per-component generation output."""
        return self.output_dir / ".temp"

    @property
    def enabled_components(self) -> list[ComponentSpec]:
        return [c for c in self.components if c.enabled]

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "GeneratorConfig":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls, components: list[ComponentSpec] | None = None) -> "GeneratorConfig":
        """Build a ``GeneratorConfig`` from environment variables.

        Recognised variables (all optional):
            SF_PROJECT_NAME, SF_OUTPUT_DIR, SF_BACKUP_DIR, SF_OFFLINE,
            SF_NO_EXTERNAL_TOOLS, SF_DISABLE_PARALLEL, SF_TOOL_TIMEOUT,
            SF_CACHE_DIR, SF_CACHE_TTL.
        """
        options_kwargs: dict[str, Any] = {}
        if os.environ.get("SF_OFFLINE"):
            options_kwargs["offline"] = _truthy(os.environ["SF_OFFLINE"])
        if os.environ.get("SF_NO_EXTERNAL_TOOLS"):
            options_kwargs["use_external_tools"] = not _truthy(os.environ["SF_NO_EXTERNAL_TOOLS"])
        if os.environ.get("SF_DISABLE_PARALLEL"):
            options_kwargs["disable_parallel"] = _truthy(os.environ["SF_DISABLE_PARALLEL"])
        if os.environ.get("SF_TOOL_TIMEOUT"):
            options_kwargs["tool_timeout"] = float(os.environ["SF_TOOL_TIMEOUT"])

        cache_kwargs: dict[str, Any] = {}
        if os.environ.get("SF_CACHE_DIR"):
            cache_kwargs["cache_dir"] = Path(os.environ["SF_CACHE_DIR"])
        if os.environ.get("SF_CACHE_TTL"):
            cache_kwargs["ttl_seconds"] = float(os.environ["SF_CACHE_TTL"])

        return cls(
            project_name=os.environ.get("SF_PROJECT_NAME", "project"),
            output_dir=Path(os.environ.get("SF_OUTPUT_DIR", "./output")),
            backup_dir=Path(os.environ.get("SF_BACKUP_DIR", ".backups")),
            components=components or [],
            options=GenerationOptions(**options_kwargs),
            cache=CacheConfig(**cache_kwargs),
        )


def _truthy(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")
