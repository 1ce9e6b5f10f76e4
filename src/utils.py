"""Shared utility functions for the StackForge generator.

Provides async command execution with cancellation, JSON I/O, file-system
helpers and Rich-based console reporting.  Every public function is designed
to be safe and side-effect-free where possible, with clear error messages
when something goes wrong.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import os
import re
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table

console = Console()


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class CommandTimeoutError(Exception):
    """Raised when a child process exceeds its wall-clock budget."""

    def __init__(self, command: str, timeout: float) -> None:
        self.command = command
        self.timeout = timeout
        super().__init__(f"Command timed out after {timeout}s: {command}")


class CommandCancelledError(Exception):
    """Raised when a child process is killed because the run was cancelled."""

    def __init__(self, command: str) -> None:
        self.command = command
        super().__init__(f"Command cancelled: {command}")


# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


def _command_str(cmd: str | list[str]) -> str:
    return cmd if isinstance(cmd, str) else " ".join(cmd)


async def _spawn(
    cmd: str | list[str],
    cwd: str | Path | None,
    env: dict[str, str] | None,
) -> asyncio.subprocess.Process:
    merged_env: dict[str, str] | None = None
    if env:
        merged_env = {**os.environ, **env}

    if isinstance(cmd, list):
        return await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd else None,
            env=merged_env,
        )
    return await asyncio.create_subprocess_shell(
        cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        cwd=str(cwd) if cwd else None,
        env=merged_env,
    )


async def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        with contextlib.suppress(ProcessLookupError):
            process.kill()
    await process.wait()


async def _race(
    work: asyncio.Future,
    process: asyncio.subprocess.Process,
    command: str,
    timeout: float,
    cancel_event: asyncio.Event | None,
) -> Any:
    """Await *work* unless the timeout elapses or *cancel_event* fires first.

    On timeout or cancellation the child process is killed before the
    corresponding exception is raised.
    """
    waiters: set[asyncio.Future] = {work}
    cancel_waiter: asyncio.Future | None = None
    if cancel_event is not None:
        cancel_waiter = asyncio.ensure_future(cancel_event.wait())
        waiters.add(cancel_waiter)

    try:
        done, _ = await asyncio.wait(
            waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        if cancel_waiter is not None and not cancel_waiter.done():
            cancel_waiter.cancel()

    if work in done:
        return work.result()

    await _kill(process)
    work.cancel()
    with contextlib.suppress(asyncio.CancelledError, Exception):
        await work

    if cancel_waiter is not None and cancel_waiter in done:
        raise CommandCancelledError(command)
    raise CommandTimeoutError(command, timeout)


async def run_command(
    cmd: str | list[str],
    cwd: str | Path | None = None,
    timeout: float = 120,
    env: dict[str, str] | None = None,
    cancel_event: asyncio.Event | None = None,
) -> tuple[int, str, str]:
    """Run a shell command asynchronously.

    Args:
        cmd: Shell command string or list of arguments.
        cwd: Working directory for the child process.
        timeout: Maximum wall-clock seconds before the process is killed.
        env: Optional extra environment variables merged on top of ``os.environ``.
        cancel_event: Optional event; when set, the process is killed.

    Returns:
        A ``(returncode, stdout, stderr)`` tuple.

    Raises:
        CommandTimeoutError: If the process outlives *timeout*.
        CommandCancelledError: If *cancel_event* is set before the process exits.
        FileNotFoundError: If the executable does not exist.
    """
    command = _command_str(cmd)
    if cancel_event is not None and cancel_event.is_set():
        raise CommandCancelledError(command)

    process = await _spawn(cmd, cwd, env)
    communicate = asyncio.ensure_future(process.communicate())
    stdout_bytes, stderr_bytes = await _race(
        communicate, process, command, timeout, cancel_event
    )

    stdout_str = (stdout_bytes or b"").decode("utf-8", errors="replace").strip()
    stderr_str = (stderr_bytes or b"").decode("utf-8", errors="replace").strip()
    return (process.returncode or 0, stdout_str, stderr_str)


async def run_command_streaming(
    cmd: str | list[str],
    sink: Callable[[str], None],
    cwd: str | Path | None = None,
    timeout: float = 600,
    env: dict[str, str] | None = None,
    cancel_event: asyncio.Event | None = None,
) -> tuple[int, str]:
    """Run a command and push each stdout line to *sink* as it arrives.

    Stderr is collected and returned once the process exits.

    Returns:
        A ``(returncode, stderr)`` tuple.

    Raises:
        CommandTimeoutError: If the process outlives *timeout*.
        CommandCancelledError: If *cancel_event* is set before the process exits.
    """
    command = _command_str(cmd)
    if cancel_event is not None and cancel_event.is_set():
        raise CommandCancelledError(command)

    process = await _spawn(cmd, cwd, env)
    assert process.stdout is not None  # guaranteed by PIPE
    assert process.stderr is not None

    async def _read_stdout() -> None:
        while True:
            line_bytes = await process.stdout.readline()
            if not line_bytes:
                break
            sink(line_bytes.decode("utf-8", errors="replace").rstrip("\n"))

    async def _pump() -> bytes:
        _, stderr_bytes = await asyncio.gather(_read_stdout(), process.stderr.read())
        await process.wait()
        return stderr_bytes

    pump = asyncio.ensure_future(_pump())
    stderr_bytes = await _race(pump, process, command, timeout, cancel_event)
    return (
        process.returncode or 0,
        (stderr_bytes or b"").decode("utf-8", errors="replace").strip(),
    )


# ---------------------------------------------------------------------------
# String / name helpers
# ---------------------------------------------------------------------------


def sanitize_name(name: str) -> str:
    """Convert an arbitrary component or project name to a safe directory name.

    * Lowercases the input.
    * Replaces spaces and non-alphanumeric characters (except hyphens and
      underscores) with hyphens.
    * Collapses consecutive hyphens and strips leading/trailing hyphens.

    Examples::

        sanitize_name("Web Frontend") -> "web-frontend"
        sanitize_name("  API (v2)  ") -> "api-v2"
    """
    result = re.sub(r"[^a-zA-Z0-9_-]", "-", name.strip().lower())
    result = re.sub(r"-+", "-", result)
    return result.strip("-")


# ---------------------------------------------------------------------------
# JSON I/O
# ---------------------------------------------------------------------------


def load_json(path: str | Path) -> dict[str, Any]:
    """Load and parse a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    raw = Path(path).read_text(encoding="utf-8")
    data = json.loads(raw)
    if not isinstance(data, dict):
        return {"_root": data}
    return data


def save_json(data: dict[str, Any] | list[Any], path: str | Path) -> Path:
    """Save data as pretty-printed JSON, creating parent directories."""
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps(data, indent=2, ensure_ascii=False, default=str)
    file_path.write_text(content, encoding="utf-8")
    return file_path


# ---------------------------------------------------------------------------
# File-system helpers
# ---------------------------------------------------------------------------


def ensure_dir(path: str | Path) -> Path:
    """Create a directory (and parents) if it does not exist.

    Returns:
        The resolved ``Path`` object.
    """
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path.resolve()


def timestamp_slug() -> str:
    """Return a local ``YYYYmmdd-HHMMSS`` stamp used in backup/log names."""
    return time.strftime("%Y%m%d-%H%M%S")


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(3.7)    -> "3.7s"
        format_duration(65.2)   -> "1m 5s"
        format_duration(3661.0) -> "1h 1m 1s"
    """
    if seconds < 0:
        return "0.0s"

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = seconds % 60

    parts: list[str] = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")

    if hours > 0 or minutes > 0:
        parts.append(f"{int(secs)}s")
    else:
        parts.append(f"{secs:.1f}s")

    return " ".join(parts)


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_step(step: int, total: int, name: str) -> None:
    """Print a pipeline step header as a dim rule."""
    console.print(Rule(f"[bold cyan] Step {step}/{total}: {name} [/bold cyan]", style="cyan"))


def print_banner(title: str, body: str, style: str = "bright_cyan") -> None:
    """Print a bordered panel with a bold title."""
    console.print(Panel(body, title=f"[bold]{title}[/bold]", border_style=style))


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def component_line(component: str, message: str) -> str:
    """Prefix *message* with the component name so interleaved output stays attributable."""
    return f"[bold]\\[{component}][/bold] {message}"


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")
