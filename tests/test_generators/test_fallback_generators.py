"""Unit tests for fallback generators (src.generators.fallback).

Generators render real templates into ``tmp_path``.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from src.generators import AndroidFallbackGenerator, ExecutionSpec, IOSFallbackGenerator
from src.models import ComponentSpec


# ---------------------------------------------------------------------------
# Android
# ---------------------------------------------------------------------------


class TestAndroidFallback:
    @pytest.mark.unit
    def test_supports_only_android(self):
        generator = AndroidFallbackGenerator()
        assert generator.supports("android") is True
        assert generator.supports("ios") is False

    @pytest.mark.unit
    def test_manual_steps(self):
        generator = AndroidFallbackGenerator()
        steps = generator.manual_steps("android")
        assert len(steps) == 6
        assert steps[0].startswith("Install Android Studio")
        assert generator.manual_steps("ios") == []

    @pytest.mark.unit
    def test_expected_files(self, android_component):
        files = AndroidFallbackGenerator().expected_files(android_component)
        assert len(files) == 14
        assert "app/src/main/java/com/example/demo/MainActivity.kt" in files
        assert files == sorted(files)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_generate(self, android_component, tmp_path: Path):
        generator = AndroidFallbackGenerator()
        outcome = await generator.generate(ExecutionSpec(android_component, tmp_path))

        project = tmp_path / "mobile-android"
        assert outcome.output_path == str(project)
        assert sorted(outcome.files) == generator.expected_files(android_component)
        assert len(outcome.manual_steps) == 6
        assert len(outcome.warnings) == 3

        manifest = (project / "app/src/main/AndroidManifest.xml").read_text(encoding="utf-8")
        activity = (project / "app/src/main/java/com/example/demo/MainActivity.kt").read_text(encoding="utf-8")
        assert "package com.example.demo" in activity
        assert "@style/Theme.Demo" in manifest
        assert "targetSdk 34" in (project / "app/build.gradle").read_text(encoding="utf-8")
        assert (project / "app/src/main/res/drawable").is_dir()
        assert (project / "app/src/test/java/com/example/demo").is_dir()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_readme_lists_manual_steps(self, android_component, tmp_path: Path):
        await AndroidFallbackGenerator().generate(ExecutionSpec(android_component, tmp_path))
        readme = (tmp_path / "mobile-android" / "README.md").read_text(encoding="utf-8")
        assert "Install Android Studio" in readme

    @pytest.mark.unit
    def test_app_name_defaults_to_component_name(self):
        component = ComponentSpec(type="android", name="field-notes")
        assert AndroidFallbackGenerator().context(component)["app_name"] == "FieldNotes"


# ---------------------------------------------------------------------------
# iOS
# ---------------------------------------------------------------------------


class TestIOSFallback:
    @pytest.mark.unit
    def test_manual_steps(self):
        steps = IOSFallbackGenerator().manual_steps("ios")
        assert len(steps) == 6
        assert steps[-1] == "Build and run the project using Cmd+R"

    @pytest.mark.unit
    def test_expected_files(self, ios_component):
        files = IOSFallbackGenerator().expected_files(ios_component)
        assert len(files) == 13
        assert "MobileIos.xcodeproj/project.pbxproj" in files
        assert "MobileIos/MobileIosApp.swift" in files

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_generate(self, ios_component, tmp_path: Path):
        outcome = await IOSFallbackGenerator().generate(ExecutionSpec(ios_component, tmp_path))

        project = tmp_path / "mobile-ios"
        assert outcome.output_path == str(project)
        assert len(outcome.files) == 13
        assert len(outcome.warnings) == 3
        app_swift = (project / "MobileIos" / "MobileIosApp.swift").read_text(encoding="utf-8")
        assert "struct MobileIosApp" in app_swift
        pbxproj = (project / "MobileIos.xcodeproj" / "project.pbxproj").read_text(encoding="utf-8")
        assert "com.example.demo" in pbxproj
        assert "16.0" in pbxproj

    @pytest.mark.unit
    def test_configured_app_name(self):
        component = ComponentSpec(type="ios", name="mobile-ios", config={"app_name": "field notes"})
        assert IOSFallbackGenerator().context(component)["app_name"] == "FieldNotes"
