"""Per-component choice between bootstrap and fallback generation."""

from __future__ import annotations

from dataclasses import dataclass

from src.generators.fallback import EMBEDDED_TOOL
from src.models import GenerationMethod
from src.toolcache import ToolCache


@dataclass(frozen=True)
class StrategyDecision:
    """The selected method, why it was selected, and the tool it relies on."""

    strategy: GenerationMethod
    reason: str
    tool: str = ""

    @property
    def available(self) -> bool:
        return self.strategy is not GenerationMethod.NONE


def _fallback_or_none(fallback_available: bool, reason: str) -> StrategyDecision:
    if fallback_available:
        return StrategyDecision(GenerationMethod.FALLBACK, reason, EMBEDDED_TOOL)
    return StrategyDecision(GenerationMethod.NONE, f"{reason}; no fallback generator registered")


def select_strategy(
    component_type: str,
    *,
    offline: bool,
    use_external_tools: bool,
    required_tools: list[str],
    cache: ToolCache,
    fallback_available: bool,
) -> StrategyDecision:
    """Decide how *component_type* should be generated.

    Rules, first match wins:

    1. offline: fallback (bootstrap tools download templates).
    2. external tools disabled by the user: fallback.
    3. every required tool cached as available: bootstrap.
    4. otherwise: fallback.

    Whenever fallback is chosen but none is registered for the type the
    decision is ``GenerationMethod.NONE``.  Reads the cache only.
    """
    if offline:
        return _fallback_or_none(fallback_available, "offline mode")

    if not use_external_tools:
        return _fallback_or_none(fallback_available, "external tools disabled")

    if required_tools:
        missing: list[str] = []
        for tool in required_tools:
            entry, hit = cache.get(tool)
            if not hit or entry is None or not entry.available:
                missing.append(tool)
        if not missing:
            return StrategyDecision(
                GenerationMethod.BOOTSTRAP,
                f"required tools available: {', '.join(required_tools)}",
                required_tools[0],
            )
        reason = f"required tools unavailable: {', '.join(missing)}"
    else:
        reason = f"no bootstrap tool known for component type '{component_type}'"

    return _fallback_or_none(fallback_available, reason)
