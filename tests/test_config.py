"""Unit tests for GeneratorConfig and related Pydantic models (src.config).

Tests cover:
- GenerationOptions defaults and bounds
- CacheConfig defaults and derived cache_file
- GeneratorConfig derived paths, enabled_components, save/load, from_env
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from src.config import (
    DEFAULT_TOOL_TIMEOUT,
    MAX_WORKERS,
    CacheConfig,
    GenerationOptions,
    GeneratorConfig,
)
from src.models import ComponentSpec, GoBackendConfig


# ---------------------------------------------------------------------------
# GenerationOptions
# ---------------------------------------------------------------------------


class TestGenerationOptions:
    @pytest.mark.unit
    def test_defaults(self):
        opts = GenerationOptions()
        assert opts.use_external_tools is True
        assert opts.offline is False
        assert opts.dry_run is False
        assert opts.create_backup is True
        assert opts.force_overwrite is False
        assert opts.disable_parallel is False
        assert opts.max_workers == MAX_WORKERS
        assert opts.tool_timeout == DEFAULT_TOOL_TIMEOUT
        assert opts.deadline is None

    @pytest.mark.unit
    def test_max_workers_capped(self):
        with pytest.raises(ValidationError):
            GenerationOptions(max_workers=MAX_WORKERS + 1)

    @pytest.mark.unit
    def test_max_workers_minimum(self):
        with pytest.raises(ValidationError):
            GenerationOptions(max_workers=0)

    @pytest.mark.unit
    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            GenerationOptions(tool_timeout=0)


# ---------------------------------------------------------------------------
# CacheConfig
# ---------------------------------------------------------------------------


class TestCacheConfig:
    @pytest.mark.unit
    def test_defaults(self):
        cfg = CacheConfig()
        assert cfg.ttl_seconds == 300.0
        assert cfg.file_name == "tool_cache.json"
        assert cfg.cache_dir.name == "cache"

    @pytest.mark.unit
    def test_cache_file(self, tmp_path: Path):
        cfg = CacheConfig(cache_dir=tmp_path)
        assert cfg.cache_file == tmp_path / "tool_cache.json"

    @pytest.mark.unit
    def test_ttl_over_a_day_rejected(self):
        with pytest.raises(ValidationError):
            CacheConfig(ttl_seconds=86401)


# ---------------------------------------------------------------------------
# GeneratorConfig
# ---------------------------------------------------------------------------


class TestGeneratorConfig:
    @pytest.mark.unit
    def test_project_name_required(self):
        with pytest.raises(ValidationError):
            GeneratorConfig(project_name="")

    @pytest.mark.unit
    def test_temp_root(self, tmp_path: Path):
        cfg = GeneratorConfig(project_name="demo", output_dir=tmp_path / "out")
        assert cfg.temp_root == tmp_path / "out" / ".temp"

    @pytest.mark.unit
    def test_enabled_components(self):
        cfg = GeneratorConfig(
            project_name="demo",
            components=[
                ComponentSpec(type="nextjs", name="web"),
                ComponentSpec(type="go-backend", name="api", enabled=False),
            ],
        )
        assert [c.name for c in cfg.enabled_components] == ["web"]

    @pytest.mark.unit
    def test_from_dict_builds_typed_component_config(self, sample_config_dict):
        cfg = GeneratorConfig.model_validate(sample_config_dict)
        api = cfg.components[1]
        assert isinstance(api.config, GoBackendConfig)
        assert api.config.framework == "echo"
        assert api.config.port == 9000
        assert cfg.options.disable_parallel is True
        assert cfg.cache.ttl_seconds == 120

    @pytest.mark.unit
    def test_save_and_load_roundtrip(self, tmp_path: Path, sample_config_dict):
        cfg = GeneratorConfig.model_validate(sample_config_dict)
        path = cfg.save(tmp_path / "conf" / "stackforge.json")
        loaded = GeneratorConfig.load(path)
        assert loaded.project_name == "demo"
        assert loaded.components[1].config.framework == "echo"
        assert loaded.components[2].enabled is False
        assert loaded.options.tool_timeout == 60

    @pytest.mark.unit
    def test_from_env_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            cfg = GeneratorConfig.from_env()
        assert cfg.project_name == "project"
        assert cfg.output_dir == Path("./output")
        assert cfg.options.offline is False

    @pytest.mark.unit
    def test_from_env_overrides(self, tmp_path: Path):
        env = {
            "SF_PROJECT_NAME": "envproj",
            "SF_OUTPUT_DIR": str(tmp_path / "envout"),
            "SF_OFFLINE": "true",
            "SF_NO_EXTERNAL_TOOLS": "1",
            "SF_DISABLE_PARALLEL": "yes",
            "SF_TOOL_TIMEOUT": "42",
            "SF_CACHE_DIR": str(tmp_path / "c"),
            "SF_CACHE_TTL": "60",
        }
        with patch.dict(os.environ, env, clear=True):
            cfg = GeneratorConfig.from_env()
        assert cfg.project_name == "envproj"
        assert cfg.output_dir == tmp_path / "envout"
        assert cfg.options.offline is True
        assert cfg.options.use_external_tools is False
        assert cfg.options.disable_parallel is True
        assert cfg.options.tool_timeout == 42.0
        assert cfg.cache.cache_file == tmp_path / "c" / "tool_cache.json"
        assert cfg.cache.ttl_seconds == 60.0

    @pytest.mark.unit
    def test_from_env_false_values(self):
        with patch.dict(os.environ, {"SF_OFFLINE": "no"}, clear=True):
            cfg = GeneratorConfig.from_env()
        assert cfg.options.offline is False
