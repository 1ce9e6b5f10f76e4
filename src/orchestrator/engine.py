"""Retry / fallback decision engine.

Drives one component from its selected strategy to a terminal state:
``INIT -> BOOTSTRAPPING -> {RETRYING, FALLING_BACK, SUCCEEDED, FAILED}``.

Bootstrap is attempted at most ``MAX_ATTEMPTS`` times and only retried for
retryable categories.  Once retries are exhausted (or the category is not
retryable) the registered fallback generator runs exactly once.
"""

from __future__ import annotations

import asyncio
import shutil
import time
from enum import Enum
from pathlib import Path
from typing import Optional

from rich.markup import escape

from src.errors import (
    MAX_ATTEMPTS,
    ErrorContext,
    GenerationError,
    canceled_error,
    fallback_unavailable_error,
    file_system_error,
    should_fallback,
    should_retry,
    tool_execution_error,
    tool_not_found_error,
)
from src.generators.base import (
    BootstrapExecutor,
    ExecutionOutcome,
    ExecutionSpec,
    ExecutorRegistry,
    FallbackRegistry,
)
from src.generators.fallback import EMBEDDED_TOOL
from src.models import ComponentResult, GenerationMethod
from src.toolcache.discovery import install_instructions
from src.utils import CommandCancelledError, CommandTimeoutError, component_line, console

from .strategy import StrategyDecision


class EngineState(str, Enum):
    """States of the per-component decision state machine."""

    INIT = "init"
    BOOTSTRAPPING = "bootstrapping"
    RETRYING = "retrying"
    FALLING_BACK = "falling_back"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


TERMINAL_STATES = frozenset({EngineState.SUCCEEDED, EngineState.FAILED})


class DecisionEngine:
    """Runs components through bootstrap, retry and fallback.

    One engine is shared by every worker of a batch.  Per-component state
    lives in local variables, and the transition log in ``history`` is keyed
    by component name so workers never write the same slot.
    """

    def __init__(
        self,
        executors: ExecutorRegistry,
        fallbacks: FallbackRegistry,
        *,
        max_attempts: int = MAX_ATTEMPTS,
        stream_output: bool = False,
        verbose: bool = False,
    ) -> None:
        self.executors = executors
        self.fallbacks = fallbacks
        self.max_attempts = max_attempts
        self.stream_output = stream_output
        self.verbose = verbose
        self.history: dict[str, list[EngineState]] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self, spec: ExecutionSpec, decision: StrategyDecision) -> ComponentResult:
        """Drive *spec* to a terminal state and return its result."""
        component = spec.component
        start = time.monotonic()
        result = ComponentResult(type=component.type.value, name=component.name)
        self.history[component.name] = [EngineState.INIT]

        if decision.strategy is GenerationMethod.BOOTSTRAP:
            await self._bootstrap_phase(spec, decision, result)
        elif decision.strategy is GenerationMethod.FALLBACK:
            await self._fallback_phase(spec, result)
        else:
            self._fail(
                result,
                fallback_unavailable_error(component.type.value, component.name, decision.reason),
            )

        result.duration = time.monotonic() - start
        return result

    def state(self, name: str) -> EngineState:
        """Return the latest state recorded for component *name*."""
        return self.history.get(name, [EngineState.INIT])[-1]

    def is_terminal(self, name: str) -> bool:
        return self.state(name) in TERMINAL_STATES

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    async def _bootstrap_phase(
        self,
        spec: ExecutionSpec,
        decision: StrategyDecision,
        result: ComponentResult,
    ) -> None:
        component = spec.component
        result.method = GenerationMethod.BOOTSTRAP.value
        executor = self.executors.get(component.type)

        if executor is None:
            tool = decision.tool or component.type.value
            err = tool_not_found_error(tool, component.name, hint=install_instructions(tool))
            ctx = self._context(spec, attempt=0)
            if should_fallback(err, ctx):
                await self._fallback_phase(spec, result, after=err)
            else:
                self._fail(result, err)
            return

        result.tool_used = executor.tool

        try:
            executor.validate_config(component)
        except GenerationError as err:
            self._fail(result, err)
            return

        ctx = self._context(spec, attempt=0)
        last_error: Optional[GenerationError] = None
        while ctx.attempt_number < self.max_attempts:
            ctx.attempt_number += 1
            result.attempts = ctx.attempt_number
            self._transition(
                component.name,
                EngineState.BOOTSTRAPPING if ctx.attempt_number == 1 else EngineState.RETRYING,
            )

            try:
                if ctx.attempt_number > 1:
                    await _reset_dir(spec.target_dir, component.name)
                outcome = await self._execute(executor, spec)
            except GenerationError as err:
                last_error = err
            else:
                self._succeed(
                    result,
                    GenerationMethod.BOOTSTRAP,
                    output_path=outcome.output_dir,
                    tool=outcome.tool_used or executor.tool,
                    manual_steps=outcome.manual_steps,
                    warnings=outcome.warnings,
                )
                return

            if should_retry(last_error, ctx):
                console.print(
                    component_line(
                        component.name,
                        f"[yellow]attempt {ctx.attempt_number} failed, retrying:[/yellow] "
                        f"{escape(last_error.message)}",
                    )
                )
                continue
            break

        assert last_error is not None
        if should_fallback(last_error, ctx):
            await self._fallback_phase(spec, result, after=last_error)
        else:
            self._fail(result, last_error)

    async def _fallback_phase(
        self,
        spec: ExecutionSpec,
        result: ComponentResult,
        after: Optional[GenerationError] = None,
    ) -> None:
        component = spec.component
        self._transition(component.name, EngineState.FALLING_BACK)
        result.method = GenerationMethod.FALLBACK.value
        result.tool_used = EMBEDDED_TOOL
        result.attempts += 1

        generator = self.fallbacks.get(component.type)
        if generator is None:
            self._fail(result, fallback_unavailable_error(component.type.value, component.name))
            return
        if spec.cancel_event is not None and spec.cancel_event.is_set():
            self._fail(result, canceled_error("fallback", component.name))
            return

        if after is not None:
            console.print(
                component_line(
                    component.name,
                    f"[yellow]bootstrap failed, using fallback generator:[/yellow] {escape(after.message)}",
                )
            )
            result.warnings.append(f"bootstrap generation failed: {after.message}")

        try:
            if after is not None:
                await _reset_dir(spec.target_dir, component.name)
            outcome = await generator.generate(spec)
        except GenerationError as err:
            self._fail(result, err)
            return
        except Exception as exc:  # noqa: BLE001
            self._fail(
                result,
                file_system_error("fallback generation", str(spec.target_dir), component.name, exc),
            )
            return

        self._succeed(
            result,
            GenerationMethod.FALLBACK,
            output_path=outcome.output_path,
            tool=EMBEDDED_TOOL,
            manual_steps=outcome.manual_steps,
            warnings=outcome.warnings,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _execute(self, executor: BootstrapExecutor, spec: ExecutionSpec) -> ExecutionOutcome:
        """Run one bootstrap attempt, translating every failure into a ``GenerationError``."""
        name = spec.component.name
        if spec.cancel_event is not None and spec.cancel_event.is_set():
            raise canceled_error("bootstrap", name)

        try:
            if self.stream_output:
                outcome = await executor.execute_with_streaming(
                    spec, lambda line: console.print(component_line(name, escape(line)))
                )
            else:
                outcome = await executor.execute(spec)
        except GenerationError:
            raise
        except CommandCancelledError as exc:
            raise canceled_error(exc.command, name) from exc
        except CommandTimeoutError as exc:
            raise tool_execution_error(
                executor.tool, name, exc, detail=f"timed out after {exc.timeout}s"
            ) from exc
        except FileNotFoundError as exc:
            raise tool_not_found_error(
                executor.tool, name, exc, hint=install_instructions(executor.tool)
            ) from exc
        except Exception as exc:  # noqa: BLE001
            raise tool_execution_error(executor.tool, name, exc) from exc

        if not outcome.success:
            detail = f"exit code {outcome.exit_code}"
            lines = (outcome.stderr or "").strip().splitlines()
            if lines:
                detail += f": {lines[-1]}"
            raise tool_execution_error(executor.tool, name, detail=detail)

        if self.verbose and outcome.stdout:
            console.print(component_line(name, f"[dim]{escape(outcome.stdout)}[/dim]"))
        return outcome

    def _context(self, spec: ExecutionSpec, attempt: int) -> ErrorContext:
        return ErrorContext(
            operation="generate",
            component=spec.component.name,
            attempt_number=attempt,
            can_retry=self.max_attempts > 1,
            can_fallback=self.fallbacks.has(spec.component.type),
        )

    def _transition(self, name: str, state: EngineState) -> None:
        self.history.setdefault(name, []).append(state)

    def _succeed(
        self,
        result: ComponentResult,
        method: GenerationMethod,
        *,
        output_path: str,
        tool: str,
        manual_steps: list[str],
        warnings: list[str],
    ) -> None:
        result.success = True
        result.method = method.value
        result.output_path = output_path
        result.tool_used = tool
        result.manual_steps = list(manual_steps)
        result.warnings.extend(warnings)
        result.error = None
        self._transition(result.name, EngineState.SUCCEEDED)

    def _fail(self, result: ComponentResult, err: GenerationError) -> None:
        result.success = False
        result.error = err
        self._transition(result.name, EngineState.FAILED)


async def _reset_dir(path: Path, component: str) -> None:
    """Empty a component's scratch directory between attempts."""
    try:
        if path.exists():
            await asyncio.to_thread(shutil.rmtree, path)
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise file_system_error("reset", str(path), component, exc) from exc
