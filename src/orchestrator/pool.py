"""Bounded worker pool for one flat batch of component jobs."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Optional

from src.config import MAX_WORKERS
from src.errors import ErrorCategory, GenerationError
from src.models import ComponentResult, ComponentSpec

Worker = Callable[[ComponentSpec], Awaitable[ComponentResult]]


@dataclass
class PoolOutcome:
    """Results in input order plus the batch-level error, if any."""

    results: list[ComponentResult] = field(default_factory=list)
    error: Optional[BaseException] = None

    @property
    def success(self) -> bool:
        return self.error is None


def _failure_error(result: ComponentResult) -> BaseException:
    if result.error is not None:
        return result.error
    return GenerationError(
        ErrorCategory.TOOL_EXECUTION,
        "component generation failed",
        component=result.name,
    )


class ComponentWorkerPool:
    """Runs one worker coroutine per component under bounded concurrency.

    Results are written into a pre-sized list at each component's input
    index, so output order never depends on completion order.  Sequential
    mode stops at the first failure; parallel mode lets every in-flight job
    finish and reports the first failure by completion order.
    """

    def __init__(self, max_workers: int = MAX_WORKERS) -> None:
        self.max_workers = max(1, min(max_workers, MAX_WORKERS))

    def size_for(self, job_count: int) -> int:
        return max(1, min(self.max_workers, job_count))

    async def run(
        self,
        components: list[ComponentSpec],
        worker: Worker,
        *,
        sequential: bool = False,
    ) -> PoolOutcome:
        if not components:
            return PoolOutcome()
        if sequential or self.size_for(len(components)) == 1:
            return await self._run_sequential(components, worker)
        return await self._run_parallel(components, worker)

    async def _run_sequential(self, components: list[ComponentSpec], worker: Worker) -> PoolOutcome:
        outcome = PoolOutcome()
        for component in components:
            result = await _guarded(worker, component)
            outcome.results.append(result)
            if not result.success:
                outcome.error = _failure_error(result)
                break
        return outcome

    async def _run_parallel(self, components: list[ComponentSpec], worker: Worker) -> PoolOutcome:
        semaphore = asyncio.Semaphore(self.size_for(len(components)))
        slots: list[Optional[ComponentResult]] = [None] * len(components)
        first_error: list[BaseException] = []

        async def _job(index: int, component: ComponentSpec) -> None:
            async with semaphore:
                result = await _guarded(worker, component)
            slots[index] = result
            if not result.success and not first_error:
                first_error.append(_failure_error(result))

        await asyncio.gather(*(_job(i, c) for i, c in enumerate(components)))

        results = [r for r in slots if r is not None]
        return PoolOutcome(results=results, error=first_error[0] if first_error else None)


async def _guarded(worker: Worker, component: ComponentSpec) -> ComponentResult:
    """Run *worker*, turning an unexpected exception into a failed result."""
    try:
        return await worker(component)
    except Exception as exc:  # noqa: BLE001
        return ComponentResult(
            type=component.type.value,
            name=component.name,
            success=False,
            error=exc,
        )
