"""Executor and generator contracts, shared outcomes and registries.

A component is produced either by a *bootstrap executor* (shells out to an
installed platform tool) or by a *fallback generator* (writes embedded
boilerplate).  Both are selected through registries keyed by
``ComponentType`` so the orchestrator never compares type strings.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from src.config import DEFAULT_TOOL_TIMEOUT
from src.errors import validation_error
from src.models import ComponentSpec, ComponentType
from src.utils import run_command, run_command_streaming, sanitize_name

OutputSink = Callable[[str], None]


@dataclass
class ExecutionSpec:
    """Everything an executor or generator needs for one invocation."""

    component: ComponentSpec
    target_dir: Path
    timeout: float = DEFAULT_TOOL_TIMEOUT
    cancel_event: Optional[asyncio.Event] = None
    env: dict[str, str] = field(default_factory=dict)

    @property
    def dir_name(self) -> str:
        return sanitize_name(self.component.name) or self.component.type.value


@dataclass
class ExecutionOutcome:
    """Result of one bootstrap execution."""

    success: bool
    exit_code: int = 0
    output_dir: str = ""
    tool_used: str = ""
    stdout: str = ""
    stderr: str = ""
    duration: float = 0.0
    manual_steps: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class FallbackOutcome:
    """Result of one fallback generation."""

    output_path: str
    manual_steps: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    files: list[str] = field(default_factory=list)
    duration: float = 0.0


@runtime_checkable
class BootstrapExecutor(Protocol):
    tool: str

    def supports_component(self, component_type: str) -> bool: ...

    def default_flags(self, component_type: str) -> list[str]: ...

    def validate_config(self, component: ComponentSpec) -> None: ...

    async def execute(self, spec: ExecutionSpec) -> ExecutionOutcome: ...

    async def execute_with_streaming(self, spec: ExecutionSpec, sink: OutputSink) -> ExecutionOutcome: ...


@runtime_checkable
class FallbackGenerator(Protocol):
    def supports(self, component_type: str) -> bool: ...

    def manual_steps(self, component_type: str) -> list[str]: ...

    def expected_files(self, component: ComponentSpec) -> list[str]: ...

    async def generate(self, spec: ExecutionSpec) -> FallbackOutcome: ...


def _as_type(component_type: str | ComponentType) -> Optional[ComponentType]:
    try:
        return ComponentType(component_type)
    except ValueError:
        return None


class StepFailed(Exception):
    """Internal signal: one tool invocation exited non-zero."""

    def __init__(self, args: list[str], exit_code: int, stderr: str) -> None:
        self.args_run = args
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(f"{' '.join(args)} exited with code {exit_code}")


class BaseExecutor:
    """Common plumbing for bootstrap executors.

    Subclasses set ``tool`` (the required tool name), ``command`` (the
    executable actually invoked, defaults to ``tool``) and
    ``component_types``, then implement ``run``.  Each tool invocation goes
    through ``invoke``, which honours the execution spec's timeout and
    cancellation event and streams stdout to the sink when one is given.
    """

    tool: str = ""
    command: str = ""
    component_types: tuple[ComponentType, ...] = ()

    def supports_component(self, component_type: str) -> bool:
        return _as_type(component_type) in self.component_types

    def default_flags(self, component_type: str) -> list[str]:
        return []

    def manual_steps(self, spec: ExecutionSpec) -> list[str]:
        return []

    def validate_config(self, component: ComponentSpec) -> None:
        """Raise a VALIDATION ``GenerationError`` if *component* is unusable."""
        if not self.supports_component(component.type):
            raise validation_error(
                f"executor '{self.tool}' does not support component type '{component.type.value}'",
                component=component.name,
            )
        if not sanitize_name(component.name):
            raise validation_error(
                "name must contain at least one alphanumeric character",
                component=component.name,
                field="name",
            )
        self.check_config(component)

    def check_config(self, component: ComponentSpec) -> None:
        """Type-specific validation hook."""

    def output_dir(self, spec: ExecutionSpec) -> Path:
        return spec.target_dir / spec.dir_name

    async def invoke(
        self,
        args: list[str],
        spec: ExecutionSpec,
        cwd: Path,
        sink: Optional[OutputSink] = None,
    ) -> str:
        """Run ``command *args`` in *cwd*; raise ``StepFailed`` on a non-zero exit."""
        cmd = [self.command or self.tool, *args]
        if sink is not None:
            rc, stderr = await run_command_streaming(
                cmd,
                sink,
                cwd=cwd,
                timeout=spec.timeout,
                env=spec.env or None,
                cancel_event=spec.cancel_event,
            )
            stdout = ""
        else:
            rc, stdout, stderr = await run_command(
                cmd,
                cwd=cwd,
                timeout=spec.timeout,
                env=spec.env or None,
                cancel_event=spec.cancel_event,
            )
        if rc != 0:
            raise StepFailed(cmd, rc, stderr)
        return stdout

    async def run(self, spec: ExecutionSpec, sink: Optional[OutputSink]) -> str:
        raise NotImplementedError

    async def _execute(self, spec: ExecutionSpec, sink: Optional[OutputSink]) -> ExecutionOutcome:
        start = time.monotonic()
        outcome = ExecutionOutcome(
            success=False,
            output_dir=str(self.output_dir(spec)),
            tool_used=self.command or self.tool,
        )
        try:
            outcome.stdout = await self.run(spec, sink)
        except StepFailed as exc:
            outcome.exit_code = exc.exit_code
            outcome.stderr = exc.stderr or str(exc)
        else:
            outcome.success = True
            outcome.manual_steps = self.manual_steps(spec)
        outcome.duration = time.monotonic() - start
        return outcome

    async def execute(self, spec: ExecutionSpec) -> ExecutionOutcome:
        """Run the tool.  Timeouts, cancellation and a missing executable raise."""
        return await self._execute(spec, None)

    async def execute_with_streaming(self, spec: ExecutionSpec, sink: OutputSink) -> ExecutionOutcome:
        """Like ``execute`` but pushes every stdout line to *sink* as it arrives."""
        return await self._execute(spec, sink)


# ---------------------------------------------------------------------------
# Registries
# ---------------------------------------------------------------------------


class ExecutorRegistry:
    """Bootstrap executors keyed by component type."""

    def __init__(self) -> None:
        self._executors: dict[ComponentType, BootstrapExecutor] = {}

    def register(self, executor: BootstrapExecutor, *types: ComponentType) -> None:
        """Register *executor* for *types* (default: every type it supports)."""
        targets = types or tuple(t for t in ComponentType if executor.supports_component(t.value))
        for component_type in targets:
            self._executors[component_type] = executor

    def get(self, component_type: str | ComponentType) -> Optional[BootstrapExecutor]:
        key = _as_type(component_type)
        return self._executors.get(key) if key is not None else None

    def has(self, component_type: str | ComponentType) -> bool:
        return self.get(component_type) is not None

    def types(self) -> list[ComponentType]:
        return list(self._executors)


class FallbackRegistry:
    """Fallback generators keyed by component type."""

    def __init__(self) -> None:
        self._generators: dict[ComponentType, FallbackGenerator] = {}

    def register(self, generator: FallbackGenerator, *types: ComponentType) -> None:
        targets = types or tuple(t for t in ComponentType if generator.supports(t.value))
        for component_type in targets:
            self._generators[component_type] = generator

    def unregister(self, component_type: ComponentType) -> None:
        self._generators.pop(component_type, None)

    def get(self, component_type: str | ComponentType) -> Optional[FallbackGenerator]:
        key = _as_type(component_type)
        return self._generators.get(key) if key is not None else None

    def has(self, component_type: str | ComponentType) -> bool:
        return self.get(component_type) is not None

    def types(self) -> list[ComponentType]:
        return list(self._generators)
