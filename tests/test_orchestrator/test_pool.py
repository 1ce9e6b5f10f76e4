"""Unit tests for the bounded component worker pool (src.orchestrator.pool)."""

from __future__ import annotations

import asyncio

import pytest

from src.errors import ErrorCategory
from src.models import ComponentResult, ComponentSpec
from src.orchestrator.pool import ComponentWorkerPool


def _components(count: int) -> list[ComponentSpec]:
    return [ComponentSpec(type="go-backend", name=f"svc-{i}") for i in range(count)]


def _delayed_worker(delays: dict[str, float], failing: frozenset[str] = frozenset()):
    """Worker whose completion order follows *delays*, not input order."""
    completed: list[str] = []
    active = {"now": 0, "peak": 0}

    async def _worker(component: ComponentSpec) -> ComponentResult:
        active["now"] += 1
        active["peak"] = max(active["peak"], active["now"])
        await asyncio.sleep(delays.get(component.name, 0))
        active["now"] -= 1
        completed.append(component.name)
        return ComponentResult(
            type=component.type.value,
            name=component.name,
            success=component.name not in failing,
        )

    return _worker, completed, active


class TestPoolSizing:
    @pytest.mark.unit
    def test_capped_at_max(self):
        assert ComponentWorkerPool(16).max_workers == 4
        assert ComponentWorkerPool(0).max_workers == 1

    @pytest.mark.unit
    def test_size_for_job_count(self):
        pool = ComponentWorkerPool(4)
        assert pool.size_for(2) == 2
        assert pool.size_for(10) == 4
        assert pool.size_for(0) == 1


class TestParallel:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_results_keep_input_order(self):
        components = _components(4)
        worker, completed, _ = _delayed_worker({"svc-0": 0.04, "svc-1": 0.0, "svc-2": 0.02, "svc-3": 0.01})

        outcome = await ComponentWorkerPool(2).run(components, worker)

        assert outcome.success is True
        assert [r.name for r in outcome.results] == ["svc-0", "svc-1", "svc-2", "svc-3"]
        assert completed != ["svc-0", "svc-1", "svc-2", "svc-3"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_concurrency_bounded(self):
        worker, _, active = _delayed_worker({f"svc-{i}": 0.01 for i in range(6)})
        await ComponentWorkerPool(2).run(_components(6), worker)
        assert active["peak"] == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failure_does_not_stop_in_flight_jobs(self):
        worker, completed, _ = _delayed_worker({"svc-0": 0.0, "svc-1": 0.02}, failing=frozenset({"svc-0"}))

        outcome = await ComponentWorkerPool(2).run(_components(2), worker)

        assert outcome.success is False
        assert sorted(completed) == ["svc-0", "svc-1"]
        assert len(outcome.results) == 2
        assert outcome.error.category is ErrorCategory.TOOL_EXECUTION

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_first_error_by_completion(self):
        worker, _, _ = _delayed_worker(
            {"svc-0": 0.03, "svc-1": 0.0}, failing=frozenset({"svc-0", "svc-1"})
        )
        outcome = await ComponentWorkerPool(2).run(_components(2), worker)
        assert outcome.error.component == "svc-1"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_exception_becomes_failed_result(self):
        async def _worker(component: ComponentSpec) -> ComponentResult:
            if component.name == "svc-1":
                raise RuntimeError("boom")
            return ComponentResult(type=component.type.value, name=component.name, success=True)

        outcome = await ComponentWorkerPool(2).run(_components(3), _worker)

        assert [r.success for r in outcome.results] == [True, False, True]
        assert isinstance(outcome.results[1].error, RuntimeError)
        assert outcome.error is outcome.results[1].error

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_batch(self):
        worker, _, _ = _delayed_worker({})
        outcome = await ComponentWorkerPool().run([], worker)
        assert outcome.results == []
        assert outcome.success is True


class TestSequential:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_same_results_as_parallel(self):
        delays = {"svc-0": 0.02, "svc-1": 0.0, "svc-2": 0.01}
        parallel_worker, _, _ = _delayed_worker(delays)
        sequential_worker, completed, active = _delayed_worker(delays)

        parallel = await ComponentWorkerPool(4).run(_components(3), parallel_worker)
        sequential = await ComponentWorkerPool(4).run(_components(3), sequential_worker, sequential=True)

        assert [(r.name, r.success) for r in sequential.results] == [
            (r.name, r.success) for r in parallel.results
        ]
        assert completed == ["svc-0", "svc-1", "svc-2"]
        assert active["peak"] == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_stops_at_first_failure(self):
        worker, completed, _ = _delayed_worker({}, failing=frozenset({"svc-1"}))

        outcome = await ComponentWorkerPool().run(_components(4), worker, sequential=True)

        assert completed == ["svc-0", "svc-1"]
        assert [r.name for r in outcome.results] == ["svc-0", "svc-1"]
        assert outcome.error.component == "svc-1"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_single_worker_runs_sequentially(self):
        worker, completed, _ = _delayed_worker({"svc-0": 0.02, "svc-1": 0.0})
        await ComponentWorkerPool(1).run(_components(2), worker)
        assert completed == ["svc-0", "svc-1"]
