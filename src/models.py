"""Data model for component generation.

Component specifications are Pydantic v2 models so user configuration is
validated once at the boundary: every component type owns a typed
configuration model, and unknown keys are rejected.  Per-run results are
plain dataclasses written by exactly one worker each.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, SerializeAsAny, field_validator, model_validator


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class ComponentType(str, Enum):
    """Supported component types."""

    NEXTJS = "nextjs"
    GO_BACKEND = "go-backend"
    ANDROID = "android"
    IOS = "ios"


class GenerationMethod(str, Enum):
    """Method that produced (or attempted to produce) a component."""

    BOOTSTRAP = "bootstrap"
    FALLBACK = "fallback"
    NONE = ""


# ---------------------------------------------------------------------------
# Per-type component configuration
# ---------------------------------------------------------------------------


class ComponentConfig(BaseModel):
    """Base class for typed component configuration."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class NextJSConfig(ComponentConfig):
    """Options passed to ``create-next-app``."""

    typescript: bool = True
    tailwind: bool = True
    app_router: bool = True
    src_dir: bool = False
    import_alias: str = Field(default="@/*")


class GoBackendConfig(ComponentConfig):
    """Go module settings."""

    module: str = Field(default="", description="Go module path; derived from the name when empty")
    framework: Literal["gin", "echo", "fiber"] = "gin"
    port: int = Field(default=8080, ge=1, le=65535)

    @field_validator("module")
    @classmethod
    def _module_path(cls, value: str) -> str:
        if value and not re.fullmatch(r"[A-Za-z0-9._~/-]+", value):
            raise ValueError(f"invalid Go module path: {value!r}")
        return value


class AndroidConfig(ComponentConfig):
    """Android application settings."""

    package_name: str = Field(default="com.example.app")
    app_name: str = Field(default="", description="Display name; derived from the component name when empty")
    min_sdk: int = Field(default=24, ge=21, le=35)
    target_sdk: int = Field(default=34, ge=21, le=35)

    @field_validator("package_name")
    @classmethod
    def _package(cls, value: str) -> str:
        if not re.fullmatch(r"[a-zA-Z][a-zA-Z0-9_]*(\.[a-zA-Z][a-zA-Z0-9_]*)+", value):
            raise ValueError(f"invalid Android package name: {value!r}")
        return value


class IOSConfig(ComponentConfig):
    """iOS application settings."""

    bundle_id: str = Field(default="com.example.app")
    app_name: str = Field(default="", description="Target name; derived from the component name when empty")
    organization: str = Field(default="Example")
    deployment_target: str = Field(default="16.0")

    @field_validator("deployment_target")
    @classmethod
    def _target(cls, value: str) -> str:
        if not re.fullmatch(r"\d+(\.\d+){0,2}", value):
            raise ValueError(f"invalid deployment target: {value!r}")
        return value


CONFIG_MODELS: dict[ComponentType, type[ComponentConfig]] = {
    ComponentType.NEXTJS: NextJSConfig,
    ComponentType.GO_BACKEND: GoBackendConfig,
    ComponentType.ANDROID: AndroidConfig,
    ComponentType.IOS: IOSConfig,
}


class ComponentSpec(BaseModel):
    """One independently-configured component of the project.

    ``config`` is accepted as a plain mapping and converted to the typed model
    registered for ``type``; downstream code never inspects raw dictionaries.
    """

    model_config = ConfigDict(frozen=True)

    type: ComponentType
    name: str = Field(..., min_length=1)
    enabled: bool = True
    config: SerializeAsAny[ComponentConfig] = Field(default_factory=ComponentConfig)
    timeout: Optional[float] = Field(
        default=None, gt=0, description="Per-invocation tool timeout override in seconds"
    )

    @model_validator(mode="before")
    @classmethod
    def _typed_config(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        raw_type = data.get("type")
        try:
            component_type = ComponentType(raw_type)
        except ValueError:
            return data  # field validation reports the bad type
        model = CONFIG_MODELS[component_type]
        raw_config = data.get("config")
        if isinstance(raw_config, model):
            return data
        if isinstance(raw_config, ComponentConfig):
            raw_config = raw_config.model_dump()
        return {**data, "config": model.model_validate(raw_config or {})}


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class ComponentResult:
    """Outcome of one component's generation."""

    type: str
    name: str
    success: bool = False
    method: str = GenerationMethod.NONE.value
    tool_used: str = ""
    output_path: str = ""
    manual_steps: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    duration: float = 0.0
    error: BaseException | None = None
    attempts: int = 0

    def summary(self) -> str:
        """Return a human-readable summary of the result."""
        status = "SUCCESS" if self.success else "FAILED"
        lines = [
            f"Component: {self.name} ({self.type})",
            f"Status: {status}",
            f"Method: {self.method or 'none'}",
            f"Duration: {self.duration:.1f}s",
        ]
        if self.error is not None:
            lines.append(f"Error: {self.error}")
        if self.manual_steps:
            lines.append(f"Manual steps: {len(self.manual_steps)}")
        return "\n".join(lines)


@dataclass
class GenerationReport:
    """Aggregate outcome of one generation run."""

    success: bool
    project_root: str
    components: list[ComponentResult] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    errors: list[BaseException] = field(default_factory=list)
    duration: float = 0.0
    backup_path: str = ""
    rollback_performed: bool = False
    rollback_succeeded: bool = False
    dry_run: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "project_root": self.project_root,
            "components": [
                {
                    "type": c.type,
                    "name": c.name,
                    "success": c.success,
                    "method": c.method,
                    "tool_used": c.tool_used,
                    "output_path": c.output_path,
                    "manual_steps": c.manual_steps,
                    "warnings": c.warnings,
                    "duration": c.duration,
                    "error": str(c.error) if c.error else None,
                }
                for c in self.components
            ],
            "warnings": self.warnings,
            "errors": [str(e) for e in self.errors],
            "duration": self.duration,
            "backup_path": self.backup_path,
            "rollback_performed": self.rollback_performed,
            "rollback_succeeded": self.rollback_succeeded,
        }


@dataclass
class ComponentPreview:
    """Dry-run preview of one component."""

    type: str
    name: str
    method: str
    tool_used: str
    target_path: str
    files: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class PreviewResult:
    """Dry-run preview of a whole generation run."""

    project_root: str
    components: list[ComponentPreview] = field(default_factory=list)
    structure: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
