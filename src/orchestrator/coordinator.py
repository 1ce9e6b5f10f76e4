"""Top-level orchestration of a StackForge generation run.

``ProjectCoordinator`` ties the pieces together::

    validate -> discover tools -> back up -> prepare output
             -> worker pool (strategy -> engine) -> map layout
             -> validate layout -> clean scratch -> report

Any fatal failure (a component that could not be produced, or a layout
mapping error) hands control to the ``RollbackManager``.
"""

from __future__ import annotations

import asyncio
import shutil
import time
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError
from rich.markup import escape

from src.config import GeneratorConfig
from src.errors import GenerationError, aggregate_errors, file_system_error, validation_error
from src.generators import (
    ExecutionSpec,
    ExecutorRegistry,
    FallbackRegistry,
    TemplateRenderer,
    default_executor_registry,
    default_fallback_registry,
)
from src.models import (
    ComponentPreview,
    ComponentResult,
    ComponentSpec,
    GenerationMethod,
    GenerationReport,
    PreviewResult,
)
from src.toolcache import CacheManager, OfflineDetector, ToolDiscovery, ToolProbe, tools_for_component
from src.utils import (
    component_line,
    console,
    format_duration,
    print_banner,
    print_error,
    print_step,
    print_success,
    print_summary_table,
    print_warning,
    sanitize_name,
)

from .engine import DecisionEngine
from .mapper import CANONICAL_PATHS, StructureMapper
from .pool import ComponentWorkerPool
from .rollback import RollbackManager
from .strategy import StrategyDecision, select_strategy

TOTAL_STEPS = 7


def component_dir_name(component: ComponentSpec) -> str:
    """Scratch directory name of *component* under ``<output>/.temp``."""
    return sanitize_name(component.name) or component.type.value


class ProjectCoordinator:
    """Runs a whole project generation from configuration to report.

    Collaborators are injectable; the defaults probe the real machine,
    shell out to real tools and write embedded templates.
    """

    def __init__(
        self,
        *,
        cache_manager: Optional[CacheManager] = None,
        probe: Optional[ToolProbe] = None,
        executors: Optional[ExecutorRegistry] = None,
        fallbacks: Optional[FallbackRegistry] = None,
        mapper: Optional[StructureMapper] = None,
        offline_detector: Optional[OfflineDetector] = None,
        renderer: Optional[TemplateRenderer] = None,
    ) -> None:
        renderer = renderer or TemplateRenderer()
        self.cache_manager = cache_manager
        self.probe: ToolProbe = probe or ToolDiscovery()
        self.executors = executors or default_executor_registry(renderer)
        self.fallbacks = fallbacks or default_fallback_registry(renderer)
        self.mapper = mapper or StructureMapper()
        self.offline_detector = offline_detector or OfflineDetector()
        self.engine: Optional[DecisionEngine] = None
        self.rollback_manager: Optional[RollbackManager] = None
        self._cancel_event = asyncio.Event()

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------

    def set_offline_mode(self, offline: bool) -> None:
        """Force offline (or online) mode for subsequent runs."""
        self.offline_detector.force_offline(offline)

    def cancel(self) -> None:
        """Kill every in-flight tool invocation of the current run."""
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, config: GeneratorConfig | dict[str, Any]) -> list[str]:
        """Check *config* before anything touches the disk.

        Returns:
            Non-fatal warnings.

        Raises:
            GenerationError: VALIDATION category on the first fatal problem.
        """
        config = _coerce_config(config)
        warnings: list[str] = []

        if ".." in Path(config.output_dir).parts:
            raise validation_error(
                f"output directory must not contain '..': {config.output_dir}",
                field="output_dir",
            )
        if config.options.create_backup and _is_within(config.backup_dir, config.output_dir):
            raise validation_error(
                f"backup directory {config.backup_dir} lies inside the output directory",
                field="backup_dir",
            )

        names: set[str] = set()
        dir_names: dict[str, str] = {}
        for component in config.components:
            if component.name in names:
                raise validation_error(
                    f"duplicate component name: {component.name}",
                    component=component.name,
                    field="name",
                )
            names.add(component.name)

            dir_name = component_dir_name(component)
            if dir_name in dir_names:
                raise validation_error(
                    f"components '{dir_names[dir_name]}' and '{component.name}' "
                    f"share the directory name '{dir_name}'",
                    component=component.name,
                    field="name",
                )
            dir_names[dir_name] = component.name

        enabled = config.enabled_components
        if not enabled:
            warnings.append("no enabled components; nothing will be generated")

        seen_types: dict[str, str] = {}
        for component in enabled:
            type_key = component.type.value
            if type_key in seen_types:
                raise validation_error(
                    f"components '{seen_types[type_key]}' and '{component.name}' both map to "
                    f"{CANONICAL_PATHS[type_key]}/; enable at most one {type_key} component",
                    component=component.name,
                    field="type",
                )
            seen_types[type_key] = component.name

            executor = self.executors.get(component.type)
            if executor is not None:
                executor.validate_config(component)

        return warnings

    # ------------------------------------------------------------------
    # Dry run
    # ------------------------------------------------------------------

    async def dry_run(self, config: GeneratorConfig | dict[str, Any]) -> PreviewResult:
        """Preview strategy, tool, target path and files for every component.

        Probes missing tools into the in-memory cache but never saves it,
        and never writes to the output directory.

        Raises:
            GenerationError: VALIDATION category when the config is invalid.
        """
        config = _coerce_config(config)
        preview = PreviewResult(project_root=str(config.output_dir))
        preview.warnings.extend(self.validate(config))

        enabled = config.enabled_components
        manager = self._manager_for(config)
        offline = await self._resolve_offline(config)
        await self._discover(config, manager, offline, save=False)

        for component in enabled:
            decision = self._decide(component, config, manager, offline)
            target = self.mapper.target_path(config.output_dir, component.type)
            item = ComponentPreview(
                type=component.type.value,
                name=component.name,
                method=decision.strategy.value,
                tool_used=decision.tool,
                target_path=str(target),
            )
            if decision.strategy is GenerationMethod.FALLBACK:
                generator = self.fallbacks.get(component.type)
                assert generator is not None
                item.files = generator.expected_files(component)
            elif decision.strategy is GenerationMethod.BOOTSTRAP:
                item.warnings.append(f"file list is determined by {decision.tool} at generation time")
            else:
                item.warnings.append(f"component cannot be generated: {decision.reason}")
            preview.components.append(item)

        preview.structure = sorted(CANONICAL_PATHS[c.type.value] for c in enabled)
        return preview

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate(self, config: GeneratorConfig | dict[str, Any]) -> GenerationReport:
        """Generate every enabled component and assemble the project layout.

        Never raises for component or file-system failures; they are
        reported in the returned ``GenerationReport``.
        """
        start = time.monotonic()
        self._cancel_event.clear()

        try:
            config = _coerce_config(config)
        except GenerationError as err:
            print_error(str(err))
            return GenerationReport(success=False, project_root="", errors=[err])

        options = config.options
        report = GenerationReport(
            success=False,
            project_root=str(config.output_dir),
            dry_run=options.dry_run,
        )

        print_banner(
            "StackForge",
            f"Project: [bold]{config.project_name}[/bold]\n"
            f"Output:  {config.output_dir}\n"
            f"Components: {', '.join(c.name for c in config.enabled_components) or '(none)'}",
        )

        if options.dry_run:
            return await self._dry_run_report(config, report, start)

        loop = asyncio.get_running_loop()
        deadline_handle = None
        if options.deadline is not None:
            deadline_handle = loop.call_later(options.deadline, self._cancel_event.set)

        self.rollback_manager = RollbackManager(config.backup_dir)
        try:
            await self._generate(config, report)
        finally:
            if deadline_handle is not None:
                deadline_handle.cancel()

        report.duration = time.monotonic() - start
        self._print_summary(report)
        return report

    async def _generate(self, config: GeneratorConfig, report: GenerationReport) -> None:
        options = config.options
        rollback = self.rollback_manager
        assert rollback is not None

        # Step 1: validation
        print_step(1, TOTAL_STEPS, "Validate configuration")
        try:
            report.warnings.extend(self.validate(config))
        except GenerationError as err:
            report.errors.append(err)
            print_error(str(err))
            return
        enabled = config.enabled_components

        # Step 2: tool discovery
        print_step(2, TOTAL_STEPS, "Discover tools")
        manager = self._manager_for(config)
        offline = await self._resolve_offline(config)
        report.warnings.extend(await self._discover(config, manager, offline, save=True))

        # Step 3: backup + output directory
        print_step(3, TOTAL_STEPS, "Prepare output directory")
        try:
            await self._prepare_output(config, rollback, report)
        except GenerationError as err:
            report.errors.append(err)
            print_error(str(err))
            self._rollback(report)
            return

        # Step 4: components
        print_step(4, TOTAL_STEPS, f"Generate {len(enabled)} component(s)")
        self.engine = DecisionEngine(
            self.executors,
            self.fallbacks,
            stream_output=options.stream_output,
            verbose=options.verbose,
        )
        pool = ComponentWorkerPool(options.max_workers)

        async def _worker(component: ComponentSpec) -> ComponentResult:
            return await self._generate_component(component, config, manager, offline)

        outcome = await pool.run(enabled, _worker, sequential=options.disable_parallel)
        report.components = outcome.results

        if not outcome.success:
            assert outcome.error is not None
            report.errors.append(outcome.error)
            report.errors.extend(
                r.error
                for r in outcome.results
                if not r.success and r.error is not None and r.error is not outcome.error
            )
            print_error(f"Component generation failed: {outcome.error}")
            self._rollback(report)
            return

        # Step 5: canonical layout
        print_step(5, TOTAL_STEPS, "Map project structure")
        try:
            for result in outcome.results:
                dest = await asyncio.to_thread(
                    self.mapper.map, result.output_path, config.output_dir, result.type
                )
                result.output_path = str(dest)
        except GenerationError as err:
            report.errors.append(err)
            print_error(str(err))
            self._rollback(report)
            return

        # Step 6: layout checks
        print_step(6, TOTAL_STEPS, "Validate project structure")
        structure = self.mapper.validate(config.output_dir, [r.type for r in outcome.results])
        report.warnings.extend(structure.errors)
        report.warnings.extend(structure.warnings)
        for problem in structure.errors:
            print_warning(problem)

        # Step 7: scratch cleanup
        print_step(7, TOTAL_STEPS, "Clean up")
        try:
            if config.temp_root.exists():
                await asyncio.to_thread(shutil.rmtree, config.temp_root)
        except OSError as exc:
            report.warnings.append(f"failed to remove scratch directory {config.temp_root}: {exc}")
        rollback.clear()

        report.success = True

    async def _prepare_output(
        self,
        config: GeneratorConfig,
        rollback: RollbackManager,
        report: GenerationReport,
    ) -> None:
        """Back up, clear and (re)create the output directory.

        Raises:
            GenerationError: VALIDATION when the directory exists and may not
                be overwritten, FILE_SYSTEM when a file operation fails.
        """
        options = config.options
        output_dir = Path(config.output_dir)
        existed = output_dir.exists()

        if existed and not options.force_overwrite:
            raise validation_error(
                f"output directory already exists: {output_dir} (use force_overwrite to replace it)",
                field="output_dir",
            ).with_suggestions("Set options.force_overwrite = True", "Choose another output directory")

        if existed:
            if options.create_backup:
                backup = await asyncio.to_thread(rollback.create_backup, output_dir)
                report.backup_path = str(backup) if backup else ""
            try:
                await asyncio.to_thread(shutil.rmtree, output_dir)
            except OSError as exc:
                raise file_system_error("remove", str(output_dir), cause=exc) from exc

        try:
            output_dir.mkdir(parents=True, exist_ok=True)
            rollback.register_temp_dir(output_dir)
            config.temp_root.mkdir(parents=True, exist_ok=True)
            rollback.register_temp_dir(config.temp_root)
        except OSError as exc:
            raise file_system_error("create", str(output_dir), cause=exc) from exc

        console.print(f"  [green]+[/green] Output directory ready: {output_dir}")

    async def _generate_component(
        self,
        component: ComponentSpec,
        config: GeneratorConfig,
        manager: CacheManager,
        offline: bool,
    ) -> ComponentResult:
        assert self.engine is not None
        options = config.options
        target = config.temp_root / component_dir_name(component)
        target.mkdir(parents=True, exist_ok=True)

        spec = ExecutionSpec(
            component=component,
            target_dir=target,
            timeout=component.timeout or options.tool_timeout,
            cancel_event=self._cancel_event,
        )
        decision = self._decide(component, config, manager, offline)
        console.print(
            component_line(
                component.name,
                f"strategy [cyan]{decision.strategy.value or 'none'}[/cyan] ({decision.reason})",
            )
        )

        result = await self.engine.run(spec, decision)
        if result.success:
            console.print(
                component_line(
                    component.name,
                    f"[green]done[/green] via {result.method} in {format_duration(result.duration)}",
                )
            )
        else:
            console.print(component_line(component.name, f"[red]failed:[/red] {result.error}"))
        if options.verbose:
            console.print(escape(result.summary()))
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _manager_for(self, config: GeneratorConfig) -> CacheManager:
        if self.cache_manager is None:
            self.cache_manager = CacheManager.from_config(config.cache)
        return self.cache_manager

    async def _resolve_offline(self, config: GeneratorConfig) -> bool:
        if config.options.offline:
            return True
        if not config.options.use_external_tools:
            return False
        return await self.offline_detector.is_offline()

    async def _discover(
        self,
        config: GeneratorConfig,
        manager: CacheManager,
        offline: bool,
        *,
        save: bool,
    ) -> list[str]:
        """Probe the tools of enabled components into the cache.

        Skipped entirely when the strategy will not consult the cache.
        Returns warnings.
        """
        if offline or not config.options.use_external_tools:
            reason = "offline mode" if offline else "external tools disabled"
            console.print(f"  [dim]Tool discovery skipped ({reason})[/dim]")
            return []

        tools = sorted({t for c in config.enabled_components for t in tools_for_component(c.type.value)})
        if not tools:
            return []

        entries = await manager.ensure(self.probe, tools)
        for name, entry in entries.items():
            mark = "[green]+[/green]" if entry.available else "[red]-[/red]"
            version = f" ({entry.version})" if entry.version else ""
            console.print(f"  {mark} {name}{version}")

        if not save or manager.cache.cache_file is None:
            return []
        try:
            manager.cache.save()
        except OSError as exc:
            return [f"failed to save tool cache: {exc}"]
        return []

    def _decide(
        self,
        component: ComponentSpec,
        config: GeneratorConfig,
        manager: CacheManager,
        offline: bool,
    ) -> StrategyDecision:
        return select_strategy(
            component.type.value,
            offline=offline,
            use_external_tools=config.options.use_external_tools,
            required_tools=tools_for_component(component.type.value),
            cache=manager.cache,
            fallback_available=self.fallbacks.has(component.type),
        )

    def _rollback(self, report: GenerationReport) -> None:
        assert self.rollback_manager is not None
        print_warning("Rolling back...")
        outcome = self.rollback_manager.rollback()
        report.rollback_performed = True
        report.rollback_succeeded = outcome.success
        report.warnings.extend(outcome.warnings)

    async def _dry_run_report(
        self, config: GeneratorConfig, report: GenerationReport, start: float
    ) -> GenerationReport:
        try:
            preview = await self.dry_run(config)
        except GenerationError as err:
            report.errors.append(err)
            print_error(str(err))
        else:
            report.success = True
            report.warnings.extend(preview.warnings)
            for item in preview.components:
                report.warnings.extend(f"{item.name}: {w}" for w in item.warnings)
            print_summary_table(
                {
                    f"{item.name} ({item.type})": f"{item.method or 'none'} -> {item.target_path}"
                    for item in preview.components
                },
                title="Dry run",
            )
        report.duration = time.monotonic() - start
        return report

    def _print_summary(self, report: GenerationReport) -> None:
        rows = {
            f"{r.name} ({r.type})": f"{'OK' if r.success else 'FAILED'} / {r.method or 'none'}"
            for r in report.components
        }
        rows["Duration"] = format_duration(report.duration)
        if report.backup_path:
            rows["Backup"] = report.backup_path
        if report.rollback_performed:
            rows["Rollback"] = "succeeded" if report.rollback_succeeded else "incomplete"
        print_summary_table(rows, title="Generation Summary")

        for result in report.components:
            for step in result.manual_steps:
                console.print(component_line(result.name, f"[yellow]manual:[/yellow] {step}"))
        for warning in report.warnings:
            print_warning(warning)

        if report.success:
            print_success(f"Project generated at {report.project_root}")
        else:
            print_error(aggregate_errors(report.errors) or "Generation failed")


def _is_within(path: Path, parent: Path) -> bool:
    try:
        Path(path).resolve().relative_to(Path(parent).resolve())
    except ValueError:
        return False
    return True


def _coerce_config(config: GeneratorConfig | dict[str, Any]) -> GeneratorConfig:
    """Accept a config model or a raw mapping, translating pydantic errors."""
    if isinstance(config, GeneratorConfig):
        return config
    try:
        return GeneratorConfig.model_validate(config)
    except ValidationError as exc:
        raise validation_error(f"invalid configuration: {exc}") from exc
