"""Best-effort undo of a failed generation run.

The manager keeps two registries: backups (original path -> full copy taken
before any destructive step) and temporary directories created during the
run.  ``rollback`` removes the temporaries and restores the backups.  It
never raises: every failure becomes a warning carrying the shell command
the user can run to finish the cleanup by hand.
"""

from __future__ import annotations

import shutil
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from src.errors import file_system_error, rollback_error
from src.utils import console, ensure_dir, print_warning, timestamp_slug


@dataclass
class RollbackReport:
    """Outcome of one rollback."""

    success: bool = True
    warnings: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    restored: list[str] = field(default_factory=list)
    manual_commands: list[str] = field(default_factory=list)


class RollbackManager:
    """Tracks backups and temporary directories for one run.  Thread-safe."""

    def __init__(
        self,
        backup_root: str | Path = ".backups",
        stamp: Callable[[], str] = timestamp_slug,
    ) -> None:
        self.backup_root = Path(backup_root)
        self._stamp = stamp
        self._lock = threading.Lock()
        self._backups: dict[Path, Path] = {}
        self._temp_dirs: list[Path] = []

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_backup(self, original: str | Path, backup: str | Path) -> None:
        with self._lock:
            self._backups[Path(original)] = Path(backup)

    def register_temp_dir(self, path: str | Path) -> None:
        temp = Path(path)
        with self._lock:
            if temp not in self._temp_dirs:
                self._temp_dirs.append(temp)

    @property
    def backups(self) -> dict[Path, Path]:
        with self._lock:
            return dict(self._backups)

    @property
    def temp_dirs(self) -> list[Path]:
        with self._lock:
            return list(self._temp_dirs)

    @property
    def has_backups(self) -> bool:
        with self._lock:
            return bool(self._backups)

    @property
    def has_temp_dirs(self) -> bool:
        with self._lock:
            return bool(self._temp_dirs)

    def clear(self) -> None:
        """Forget every registration without touching the file system."""
        with self._lock:
            self._backups.clear()
            self._temp_dirs.clear()

    # ------------------------------------------------------------------
    # Backup
    # ------------------------------------------------------------------

    def _backup_destination(self, source: Path) -> Path:
        stamp = self._stamp()
        dest = self.backup_root / f"{source.name}-{stamp}"
        counter = 1
        while dest.exists():
            dest = self.backup_root / f"{source.name}-{stamp}-{counter}"
            counter += 1
        return dest

    def create_backup(self, path: str | Path) -> Optional[Path]:
        """Copy *path* recursively into the backup root and register it.

        Returns ``None`` when *path* does not exist (nothing to protect).

        Raises:
            GenerationError: FILE_SYSTEM category when the copy fails.
        """
        source = Path(path)
        if not source.exists():
            return None

        dest = self._backup_destination(source)
        ignore = None
        try:
            self.backup_root.resolve().relative_to(source.resolve())
        except ValueError:
            pass
        else:
            ignore = shutil.ignore_patterns(self.backup_root.name)

        try:
            ensure_dir(self.backup_root)
            shutil.copytree(source, dest, symlinks=True, ignore=ignore)
        except OSError as exc:
            raise file_system_error("backup", str(source), cause=exc) from exc

        self.register_backup(source, dest)
        console.print(f"[dim]Backup created: {dest}[/dim]")
        return dest

    # ------------------------------------------------------------------
    # Cleanup / restore
    # ------------------------------------------------------------------

    def cleanup_temp_dirs(self) -> list[str]:
        """Remove every registered temporary directory; return warnings."""
        report = RollbackReport()
        self._remove_temps(self.temp_dirs, report)
        with self._lock:
            self._temp_dirs.clear()
        return report.warnings

    def _remove_temps(self, temps: list[Path], report: RollbackReport) -> None:
        # Children are registered after their parents.
        for temp in reversed(temps):
            if not temp.exists() and not temp.is_symlink():
                continue
            try:
                shutil.rmtree(temp)
            except OSError as exc:
                report.success = False
                err = rollback_error(f"failed to remove temporary directory {temp}", exc)
                command = f"rm -rf {temp}"
                report.warnings.append(f"{err}; remove manually: {command}")
                report.manual_commands.append(command)
            else:
                report.removed.append(str(temp))

    def _restore(self, original: Path, backup: Path, report: RollbackReport) -> None:
        if not backup.exists():
            report.success = False
            report.warnings.append(str(rollback_error(f"backup not found: {backup}")))
            return
        try:
            if original.exists() or original.is_symlink():
                if original.is_dir() and not original.is_symlink():
                    shutil.rmtree(original)
                else:
                    original.unlink()
            shutil.copytree(backup, original, symlinks=True)
        except OSError as exc:
            report.success = False
            err = rollback_error(f"failed to restore backup for {original}", exc)
            command = f"mv {backup} {original}"
            report.warnings.append(f"{err}; restore manually: {command}")
            report.manual_commands.append(command)
        else:
            report.restored.append(str(original))

    def rollback(self) -> RollbackReport:
        """Remove temporaries, restore backups, and clear the registrations.

        Never raises.  Backups stay on disk after a successful restore.
        """
        with self._lock:
            temps = list(self._temp_dirs)
            backups = dict(self._backups)

        report = RollbackReport()
        if temps:
            console.print(f"[dim]Removing {len(temps)} temporary director(ies)...[/dim]")
        self._remove_temps(temps, report)

        if backups:
            console.print(f"[dim]Restoring {len(backups)} backup(s)...[/dim]")
        for original, backup in backups.items():
            self._restore(original, backup, report)

        if report.manual_commands:
            print_warning("Manual cleanup may be required:")
            for command in report.manual_commands:
                print_warning(f"  - {command}")

        self.clear()
        return report
