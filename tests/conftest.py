"""Shared pytest fixtures for the StackForge test suite.

Provides reusable fixtures for:
- A controllable clock and file-backed tool caches
- Fake tool probes and bootstrap executors
- Sample component specifications and generator configs
- Mock subprocess helpers
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional
from unittest.mock import AsyncMock, patch

import pytest

from src.config import CacheConfig, GenerationOptions, GeneratorConfig
from src.generators.base import ExecutionOutcome, ExecutionSpec, ExecutorRegistry
from src.models import ComponentSpec, ComponentType
from src.toolcache import CacheManager, OfflineDetector, ToolCache


# ---------------------------------------------------------------------------
# Clock & Cache
# ---------------------------------------------------------------------------

class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.current = start or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache_file(tmp_path: Path) -> Path:
    return tmp_path / "cache" / "tool_cache.json"


@pytest.fixture
def tool_cache(cache_file: Path, clock: FakeClock) -> ToolCache:
    """Empty file-backed cache driven by the fake clock."""
    return ToolCache(cache_file, clock=clock)


@pytest.fixture
def cache_manager(tool_cache: ToolCache) -> CacheManager:
    return CacheManager(tool_cache)


# ---------------------------------------------------------------------------
# Fake tool probe
# ---------------------------------------------------------------------------

class FakeProbe:
    """ToolProbe that answers from a dict and records every probe."""

    def __init__(self, available: Optional[dict[str, str]] = None) -> None:
        self.available = dict(available or {})
        self.probed: list[str] = []

    async def is_available(self, name: str) -> bool:
        self.probed.append(name)
        return name in self.available

    async def get_version(self, name: str) -> str:
        return self.available.get(name, "")


@pytest.fixture
def make_probe():
    """Factory for FakeProbe instances: ``make_probe({"go": "go1.22"})``."""
    return FakeProbe


@pytest.fixture
def fake_probe() -> FakeProbe:
    """Probe reporting every bootstrap tool as installed."""
    return FakeProbe(
        {
            "npx": "10.2.0",
            "go": "go version go1.22.0 linux/amd64",
            "gradle": "Gradle 8.5",
            "xcodebuild": "Xcode 15.2",
        }
    )


@pytest.fixture
def online_detector() -> OfflineDetector:
    detector = OfflineDetector()
    detector.force_offline(False)
    return detector


# ---------------------------------------------------------------------------
# Fake bootstrap executor
# ---------------------------------------------------------------------------

class FakeExecutor:
    """Scriptable BootstrapExecutor.

    ``script`` holds one item per attempt: an exception to raise, an
    ``ExecutionOutcome`` to return, or ``"ok"`` to write a marker file and
    succeed.  When the script runs out every further attempt succeeds.
    """

    def __init__(
        self,
        tool: str,
        component_type: ComponentType,
        script: Optional[list[Any]] = None,
        files: Optional[dict[str, str]] = None,
    ) -> None:
        self.tool = tool
        self.component_type = component_type
        self.script = list(script or [])
        self.files = files or {"README.md": "generated\n"}
        self.calls: list[ExecutionSpec] = []
        self.streamed = False

    def supports_component(self, component_type: str) -> bool:
        return component_type == self.component_type.value

    def default_flags(self, component_type: str) -> list[str]:
        return []

    def validate_config(self, component: ComponentSpec) -> None:
        return None

    async def execute(self, spec: ExecutionSpec) -> ExecutionOutcome:
        self.calls.append(spec)
        step = self.script.pop(0) if self.script else "ok"
        if isinstance(step, BaseException):
            raise step
        if isinstance(step, ExecutionOutcome):
            return step
        out_dir = spec.target_dir / spec.dir_name
        out_dir.mkdir(parents=True, exist_ok=True)
        for rel, content in self.files.items():
            path = out_dir / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return ExecutionOutcome(
            success=True,
            output_dir=str(out_dir),
            tool_used=self.tool,
            manual_steps=[f"run {self.tool}"],
        )

    async def execute_with_streaming(self, spec: ExecutionSpec, sink) -> ExecutionOutcome:
        self.streamed = True
        sink(f"{self.tool}: working")
        return await self.execute(spec)


@pytest.fixture
def make_executor():
    """Factory for FakeExecutor instances."""

    def _make(tool: str, component_type: ComponentType, script=None, files=None) -> FakeExecutor:
        return FakeExecutor(tool, component_type, script, files)

    return _make


@pytest.fixture
def go_project_files() -> dict[str, str]:
    """Minimal files that satisfy the Go structure check."""
    return {"go.mod": "module api\n\ngo 1.22\n", "main.go": "package main\n\nfunc main() {}\n"}


@pytest.fixture
def nextjs_project_files() -> dict[str, str]:
    """Minimal files that satisfy the Next.js structure check."""
    return {"package.json": '{"name": "web"}\n', "app/page.tsx": "export default function Page() {}\n"}


@pytest.fixture
def fake_executors(make_executor, go_project_files, nextjs_project_files) -> ExecutorRegistry:
    """Registry with a succeeding fake executor for every component type."""
    registry = ExecutorRegistry()
    registry.register(
        make_executor("npx", ComponentType.NEXTJS, files=nextjs_project_files), ComponentType.NEXTJS
    )
    registry.register(
        make_executor("go", ComponentType.GO_BACKEND, files=go_project_files), ComponentType.GO_BACKEND
    )
    registry.register(
        make_executor(
            "gradle",
            ComponentType.ANDROID,
            files={"build.gradle.kts": "", "settings.gradle.kts": "", "app/build.gradle.kts": ""},
        ),
        ComponentType.ANDROID,
    )
    registry.register(
        make_executor("xcodebuild", ComponentType.IOS, files={"Package.swift": "// swift-tools-version:5.9\n"}),
        ComponentType.IOS,
    )
    return registry


# ---------------------------------------------------------------------------
# Mock Subprocess (generic)
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Patch the executors' ``run_command`` to succeed without spawning anything.

    Yields the AsyncMock so tests can inspect the invoked commands.
    """
    with patch(
        "src.generators.base.run_command",
        new_callable=AsyncMock,
        return_value=(0, "ok", ""),
    ) as mock_run:
        yield mock_run


# ---------------------------------------------------------------------------
# Components & Config
# ---------------------------------------------------------------------------

@pytest.fixture
def nextjs_component() -> ComponentSpec:
    return ComponentSpec(type="nextjs", name="web")


@pytest.fixture
def go_component() -> ComponentSpec:
    return ComponentSpec(type="go-backend", name="api", config={"framework": "gin", "port": 8080})


@pytest.fixture
def android_component() -> ComponentSpec:
    return ComponentSpec(
        type="android",
        name="mobile-android",
        config={"package_name": "com.example.demo", "app_name": "Demo"},
    )


@pytest.fixture
def ios_component() -> ComponentSpec:
    return ComponentSpec(type="ios", name="mobile-ios", config={"bundle_id": "com.example.demo"})


@pytest.fixture
def all_components(nextjs_component, go_component, android_component, ios_component) -> list[ComponentSpec]:
    return [nextjs_component, go_component, android_component, ios_component]


@pytest.fixture
def generator_config(tmp_path: Path, all_components) -> GeneratorConfig:
    """Config writing into a temp directory with every component enabled."""
    return GeneratorConfig(
        project_name="demo",
        output_dir=tmp_path / "out",
        backup_dir=tmp_path / "backups",
        components=all_components,
        options=GenerationOptions(),
        cache=CacheConfig(cache_dir=tmp_path / "cache"),
    )


@pytest.fixture
def sample_config_dict(tmp_path: Path) -> dict[str, Any]:
    """Raw configuration mapping as loaded from JSON."""
    return {
        "project_name": "demo",
        "output_dir": str(tmp_path / "out"),
        "backup_dir": str(tmp_path / "backups"),
        "components": [
            {"type": "nextjs", "name": "web", "config": {"tailwind": False}},
            {"type": "go-backend", "name": "api", "config": {"framework": "echo", "port": 9000}},
            {"type": "android", "name": "droid", "enabled": False},
        ],
        "options": {"disable_parallel": True, "tool_timeout": 60},
        "cache": {"cache_dir": str(tmp_path / "cache"), "ttl_seconds": 120},
    }
