"""Unit tests for executor/generator contracts and registries (src.generators.base)."""

from __future__ import annotations

from pathlib import Path

import pytest

from src.errors import ErrorCategory, GenerationError
from src.generators import (
    AndroidExecutor,
    AndroidFallbackGenerator,
    BootstrapExecutor,
    ExecutionSpec,
    ExecutorRegistry,
    FallbackGenerator,
    FallbackRegistry,
    GoExecutor,
    IOSExecutor,
    IOSFallbackGenerator,
    NextJSExecutor,
    default_executor_registry,
    default_fallback_registry,
)
from src.models import ComponentSpec, ComponentType


# ---------------------------------------------------------------------------
# ExecutionSpec
# ---------------------------------------------------------------------------


class TestExecutionSpec:
    @pytest.mark.unit
    def test_dir_name_sanitized(self, tmp_path: Path):
        spec = ExecutionSpec(ComponentSpec(type="nextjs", name="Web Frontend"), tmp_path)
        assert spec.dir_name == "web-frontend"

    @pytest.mark.unit
    def test_dir_name_falls_back_to_type(self, tmp_path: Path):
        spec = ExecutionSpec(ComponentSpec(type="go-backend", name="!!"), tmp_path)
        assert spec.dir_name == "go-backend"


# ---------------------------------------------------------------------------
# Protocol conformance
# ---------------------------------------------------------------------------


class TestProtocols:
    @pytest.mark.unit
    @pytest.mark.parametrize("cls", [NextJSExecutor, GoExecutor, AndroidExecutor, IOSExecutor])
    def test_executors_conform(self, cls):
        assert isinstance(cls(), BootstrapExecutor)

    @pytest.mark.unit
    @pytest.mark.parametrize("cls", [AndroidFallbackGenerator, IOSFallbackGenerator])
    def test_generators_conform(self, cls):
        assert isinstance(cls(), FallbackGenerator)


# ---------------------------------------------------------------------------
# Registries
# ---------------------------------------------------------------------------


class TestExecutorRegistry:
    @pytest.mark.unit
    def test_default_registry_covers_every_type(self):
        registry = default_executor_registry()
        assert set(registry.types()) == set(ComponentType)
        assert isinstance(registry.get("go-backend"), GoExecutor)
        assert registry.get(ComponentType.IOS).tool == "xcodebuild"

    @pytest.mark.unit
    def test_unknown_type(self):
        registry = default_executor_registry()
        assert registry.get("flutter") is None
        assert registry.has("flutter") is False

    @pytest.mark.unit
    def test_register_explicit_types(self):
        registry = ExecutorRegistry()
        registry.register(NextJSExecutor(), ComponentType.NEXTJS)
        assert registry.types() == [ComponentType.NEXTJS]

    @pytest.mark.unit
    def test_later_registration_wins(self):
        registry = ExecutorRegistry()
        first, second = NextJSExecutor(), NextJSExecutor()
        registry.register(first)
        registry.register(second)
        assert registry.get("nextjs") is second


class TestFallbackRegistry:
    @pytest.mark.unit
    def test_only_mobile_fallbacks(self):
        registry = default_fallback_registry()
        assert set(registry.types()) == {ComponentType.ANDROID, ComponentType.IOS}
        assert registry.has("nextjs") is False
        assert registry.has("go-backend") is False

    @pytest.mark.unit
    def test_unregister(self):
        registry = default_fallback_registry()
        registry.unregister(ComponentType.IOS)
        assert registry.get("ios") is None
        assert registry.has("android") is True

    @pytest.mark.unit
    def test_empty(self):
        assert FallbackRegistry().types() == []


# ---------------------------------------------------------------------------
# Shared validation
# ---------------------------------------------------------------------------


class TestBaseValidation:
    @pytest.mark.unit
    def test_wrong_type_rejected(self):
        with pytest.raises(GenerationError) as exc_info:
            GoExecutor().validate_config(ComponentSpec(type="nextjs", name="web"))
        assert exc_info.value.category is ErrorCategory.VALIDATION

    @pytest.mark.unit
    def test_unsanitizable_name_rejected(self):
        with pytest.raises(GenerationError) as exc_info:
            NextJSExecutor().validate_config(ComponentSpec(type="nextjs", name="???"))
        assert exc_info.value.category is ErrorCategory.VALIDATION
        assert "alphanumeric" in exc_info.value.message

    @pytest.mark.unit
    def test_default_flags_for_other_type_empty(self):
        assert GoExecutor().default_flags("nextjs") == []
        assert GoExecutor().default_flags("go-backend") == ["mod", "init"]
