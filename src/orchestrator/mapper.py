"""Relocation of component outputs into the canonical project layout.

Canonical layout::

    <root>/
      App/               nextjs
      CommonServer/      go-backend
      Mobile/android/    android
      Mobile/ios/        ios
      Deploy/docker/     docker
      Deploy/k8s/        kubernetes
      Deploy/terraform/  terraform
"""

from __future__ import annotations

import os
import shutil
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from src.errors import GenerationError, structure_mapping_error

CANONICAL_PATHS: dict[str, str] = {
    "nextjs": "App",
    "go-backend": "CommonServer",
    "android": "Mobile/android",
    "ios": "Mobile/ios",
    "docker": "Deploy/docker",
    "kubernetes": "Deploy/k8s",
    "terraform": "Deploy/terraform",
}

# (relocated directory, component type) -> None; raises to abort the mapping.
ReferenceUpdater = Callable[[Path, str], None]


@dataclass
class MapOptions:
    use_symlinks: bool = False
    preserve_source: bool = False


@dataclass
class StructureReport:
    """Per-type structural findings for a mapped project."""

    valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    components: dict[str, bool] = field(default_factory=dict)


class StructureMapper:
    """Moves, copies or links component outputs into the canonical layout."""

    def __init__(self, updaters: Optional[list[ReferenceUpdater]] = None) -> None:
        self.updaters: list[ReferenceUpdater] = list(updaters or [])

    def add_updater(self, updater: ReferenceUpdater) -> None:
        self.updaters.append(updater)

    def target_path(self, target_root: str | Path, component_type: str) -> Path:
        """Return the canonical directory of *component_type* under *target_root*."""
        rel = CANONICAL_PATHS.get(_type_key(component_type))
        if rel is None:
            raise structure_mapping_error(f"unknown component type: {component_type}")
        return Path(target_root) / rel

    def map(
        self,
        source: str | Path,
        target_root: str | Path,
        component_type: str,
        options: Optional[MapOptions] = None,
    ) -> Path:
        """Relocate *source* to its canonical path and return the destination.

        Raises:
            GenerationError: STRUCTURE_MAPPING when the type is unmapped, the
                source is empty or missing, or the destination already exists.
        """
        options = options or MapOptions()
        if not str(source).strip():
            raise structure_mapping_error(f"no source directory given for component type '{component_type}'")
        src = Path(source)
        dest = self.target_path(target_root, component_type)

        if not src.exists():
            raise structure_mapping_error(f"source directory does not exist: {src}")

        if src.resolve() == dest.resolve():
            return dest

        if dest.exists() or dest.is_symlink():
            raise structure_mapping_error(f"target directory already exists: {dest}")

        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            if options.use_symlinks:
                dest.symlink_to(src.resolve(), target_is_directory=True)
            elif options.preserve_source:
                shutil.copytree(src, dest, symlinks=True)
            else:
                shutil.move(os.fspath(src), os.fspath(dest))
        except OSError as exc:
            raise structure_mapping_error(
                f"failed to relocate {src} to {dest}", cause=exc
            ) from exc

        for updater in self.updaters:
            try:
                updater(dest, _type_key(component_type))
            except GenerationError:
                raise
            except Exception as exc:  # noqa: BLE001
                raise structure_mapping_error(
                    f"failed to update references in {dest}", cause=exc
                ) from exc

        return dest

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, root_dir: str | Path, component_types: list[str]) -> StructureReport:
        """Check that each component type left a usable project behind."""
        root = Path(root_dir)
        report = StructureReport()

        for component_type in component_types:
            key = _type_key(component_type)
            rel = CANONICAL_PATHS.get(key)
            if rel is None:
                report.errors.append(f"unknown component type: {key}")
                report.components[key] = False
                continue

            directory = root / rel
            if not directory.is_dir():
                report.errors.append(f"{key}: component directory missing: {rel}")
                report.components[key] = False
                continue

            problems = _CHECKS.get(key, _no_checks)(directory)
            report.errors.extend(f"{key}: {problem}" for problem in problems)
            report.components[key] = not problems

        report.valid = not report.errors
        return report


def _type_key(component_type: object) -> str:
    return str(getattr(component_type, "value", component_type))


def _any_exists(directory: Path, *names: str) -> bool:
    return any((directory / name).exists() for name in names)


def _check_nextjs(directory: Path) -> list[str]:
    problems = []
    if not _any_exists(directory, "package.json", "next.config.js", "next.config.mjs", "next.config.ts"):
        problems.append("missing package.json or next.config.*")
    if not any((directory / d).is_dir() for d in ("app", "pages", "src/app", "src/pages")):
        problems.append("missing app/ or pages/ directory")
    return problems


def _check_go(directory: Path) -> list[str]:
    problems = []
    if not (directory / "go.mod").is_file():
        problems.append("missing go.mod")
    if not ((directory / "main.go").is_file() or (directory / "cmd").is_dir()):
        problems.append("missing main.go or cmd/ entry point")
    return problems


def _check_android(directory: Path) -> list[str]:
    problems = []
    if not _any_exists(directory, "build.gradle", "build.gradle.kts"):
        problems.append("missing build.gradle")
    if not _any_exists(directory, "settings.gradle", "settings.gradle.kts"):
        problems.append("missing settings.gradle")
    if not (directory / "app").is_dir():
        problems.append("missing app/ module")
    return problems


def _check_ios(directory: Path) -> list[str]:
    if any(directory.glob("*.xcodeproj")) or (directory / "Package.swift").is_file():
        return []
    return ["missing *.xcodeproj or Package.swift"]


def _no_checks(directory: Path) -> list[str]:
    return []


_CHECKS: dict[str, Callable[[Path], list[str]]] = {
    "nextjs": _check_nextjs,
    "go-backend": _check_go,
    "android": _check_android,
    "ios": _check_ios,
}
