"""StackForge orchestration module.

Drives a generation run: per-component strategy selection, the
retry/fallback state machine, bounded concurrent execution, rollback of
partial work, and relocation into the canonical project layout.

Key classes:
    ProjectCoordinator   - End-to-end generate / dry-run / validate
    DecisionEngine       - Bootstrap -> retry -> fallback state machine
    ComponentWorkerPool  - Bounded, order-preserving job execution
    RollbackManager      - Backups, temp-dir tracking and restore
    StructureMapper      - Canonical layout mapping and validation
"""

from .coordinator import ProjectCoordinator, component_dir_name
from .engine import TERMINAL_STATES, DecisionEngine, EngineState
from .mapper import CANONICAL_PATHS, MapOptions, ReferenceUpdater, StructureMapper, StructureReport
from .pool import ComponentWorkerPool, PoolOutcome
from .rollback import RollbackManager, RollbackReport
from .strategy import StrategyDecision, select_strategy

__all__ = [
    # Coordinator
    "ProjectCoordinator",
    "component_dir_name",
    # Strategy
    "StrategyDecision",
    "select_strategy",
    # Decision engine
    "DecisionEngine",
    "EngineState",
    "TERMINAL_STATES",
    # Worker pool
    "ComponentWorkerPool",
    "PoolOutcome",
    # Rollback
    "RollbackManager",
    "RollbackReport",
    # Structure mapping
    "StructureMapper",
    "StructureReport",
    "MapOptions",
    "ReferenceUpdater",
    "CANONICAL_PATHS",
]
