"""StackForge component generators.

Bootstrap executors delegate to installed platform tools; fallback
generators write embedded boilerplate when those tools are unusable.

Key classes:
    ExecutorRegistry          - Bootstrap executors keyed by component type
    FallbackRegistry          - Fallback generators keyed by component type
    NextJSExecutor            - ``create-next-app`` via npx
    GoExecutor                - Go module + web framework server
    AndroidExecutor           - ``gradle init``
    IOSExecutor               - ``swift package init``
    AndroidFallbackGenerator  - Embedded Android project templates
    IOSFallbackGenerator      - Embedded SwiftUI project templates
    TemplateRenderer          - Jinja2 rendering of ``.j2`` templates
"""

from .base import (
    BaseExecutor,
    BootstrapExecutor,
    ExecutionOutcome,
    ExecutionSpec,
    ExecutorRegistry,
    FallbackGenerator,
    FallbackOutcome,
    FallbackRegistry,
    OutputSink,
)
from .bootstrap import (
    AndroidExecutor,
    GoExecutor,
    IOSExecutor,
    NextJSExecutor,
    default_executor_registry,
)
from .fallback import (
    EMBEDDED_TOOL,
    AndroidFallbackGenerator,
    IOSFallbackGenerator,
    default_fallback_registry,
)
from .templates import TemplateRenderer

__all__ = [
    # Contracts
    "BootstrapExecutor",
    "FallbackGenerator",
    "ExecutionSpec",
    "ExecutionOutcome",
    "FallbackOutcome",
    "OutputSink",
    "BaseExecutor",
    # Registries
    "ExecutorRegistry",
    "FallbackRegistry",
    "default_executor_registry",
    "default_fallback_registry",
    # Executors
    "NextJSExecutor",
    "GoExecutor",
    "AndroidExecutor",
    "IOSExecutor",
    # Fallback generators
    "AndroidFallbackGenerator",
    "IOSFallbackGenerator",
    "EMBEDDED_TOOL",
    # Templates
    "TemplateRenderer",
]
