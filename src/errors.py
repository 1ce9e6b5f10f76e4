"""Error taxonomy for component generation.

Every failure the retry/fallback decision engine reasons about is a
``GenerationError`` tagged with an ``ErrorCategory``.  Errors raised by
collaborators (subprocess failures, file-system errors, validation errors)
are wrapped into this shape at the boundary.

Category policy:

==================== ========= ============
Category             Retried   Falls back
==================== ========= ============
VALIDATION           no        no
TOOL_NOT_FOUND       no        yes
TOOL_EXECUTION       yes       yes
CANCELED             no        no
FALLBACK_UNAVAILABLE no        no
STRUCTURE_MAPPING    no        no
ROLLBACK             no        no
FILE_SYSTEM          no        no
==================== ========= ============
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

MAX_ATTEMPTS = 2


class ErrorCategory(str, Enum):
    """Category of a generation failure."""

    VALIDATION = "VALIDATION"
    TOOL_NOT_FOUND = "TOOL_NOT_FOUND"
    TOOL_EXECUTION = "TOOL_EXECUTION"
    CANCELED = "CANCELED"
    FALLBACK_UNAVAILABLE = "FALLBACK_UNAVAILABLE"
    STRUCTURE_MAPPING = "STRUCTURE_MAPPING"
    ROLLBACK = "ROLLBACK"
    FILE_SYSTEM = "FILE_SYSTEM"


_RETRYABLE = frozenset({ErrorCategory.TOOL_EXECUTION})
_FALLBACK_ELIGIBLE = frozenset({ErrorCategory.TOOL_NOT_FOUND, ErrorCategory.TOOL_EXECUTION})


def is_retryable(category: ErrorCategory) -> bool:
    return category in _RETRYABLE


def can_fall_back(category: ErrorCategory) -> bool:
    return category in _FALLBACK_ELIGIBLE


class GenerationError(Exception):
    """A categorised generation failure carrying remediation suggestions."""

    def __init__(
        self,
        category: ErrorCategory,
        message: str,
        *,
        component: str = "",
        cause: BaseException | None = None,
        suggestions: list[str] | None = None,
    ) -> None:
        self.category = category
        self.message = message
        self.component = component
        self.cause = cause
        self.suggestions: list[str] = list(suggestions or [])
        super().__init__(self._render())
        if cause is not None:
            self.__cause__ = cause

    def _render(self) -> str:
        text = f"[{self.category.value}]"
        if self.component:
            text += f" Component '{self.component}':"
        text += f" {self.message}"
        if self.cause is not None:
            text += f" (caused by: {self.cause})"
        return text

    @property
    def retryable(self) -> bool:
        return is_retryable(self.category)

    def with_suggestions(self, *suggestions: str) -> "GenerationError":
        self.suggestions.extend(suggestions)
        return self

    def format_suggestions(self) -> str:
        if not self.suggestions:
            return ""
        lines = ["Suggestions:"]
        lines.extend(f"  {i}. {s}" for i, s in enumerate(self.suggestions, 1))
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def validation_error(message: str, *, component: str = "", field: str = "") -> GenerationError:
    if field:
        message = f"configuration validation failed for field '{field}': {message}"
    return GenerationError(
        ErrorCategory.VALIDATION,
        message,
        component=component,
        suggestions=[
            "Check your configuration file for errors",
            "Refer to the component configuration reference",
        ],
    )


def tool_not_found_error(
    tool: str,
    component: str = "",
    cause: BaseException | None = None,
    hint: str = "",
) -> GenerationError:
    """*hint* replaces the generic install suggestion, e.g. a platform-specific URL."""
    return GenerationError(
        ErrorCategory.TOOL_NOT_FOUND,
        f"required tool '{tool}' is not available",
        component=component,
        cause=cause,
        suggestions=[
            hint or f"Install {tool} on your system",
            "Disable external tools to force fallback generation",
        ],
    )


def tool_execution_error(
    tool: str,
    component: str = "",
    cause: BaseException | None = None,
    detail: str = "",
) -> GenerationError:
    message = f"tool '{tool}' execution failed"
    if detail:
        message += f": {detail}"
    return GenerationError(
        ErrorCategory.TOOL_EXECUTION,
        message,
        component=component,
        cause=cause,
        suggestions=[
            "Check tool output for specific error messages",
            "Try running the tool manually to diagnose the issue",
            "Enable verbose output for detailed execution logs",
        ],
    )


def canceled_error(operation: str, component: str = "") -> GenerationError:
    return GenerationError(
        ErrorCategory.CANCELED,
        f"operation '{operation}' was canceled",
        component=component,
    )


def fallback_unavailable_error(component_type: str, component: str = "", reason: str = "") -> GenerationError:
    message = f"no generation method available for component type: {component_type}"
    if reason:
        message += f" ({reason})"
    return GenerationError(
        ErrorCategory.FALLBACK_UNAVAILABLE,
        message,
        component=component,
        suggestions=[
            "Install required tools for this component type",
            "Enable external tools if they were disabled",
        ],
    )


def structure_mapping_error(message: str, component: str = "", cause: BaseException | None = None) -> GenerationError:
    return GenerationError(
        ErrorCategory.STRUCTURE_MAPPING,
        message,
        component=component,
        cause=cause,
        suggestions=[
            "Check that the target directory is empty",
            "Verify file system permissions on the output directory",
        ],
    )


def rollback_error(message: str, cause: BaseException | None = None) -> GenerationError:
    return GenerationError(ErrorCategory.ROLLBACK, message, cause=cause)


def file_system_error(operation: str, path: str, component: str = "", cause: BaseException | None = None) -> GenerationError:
    return GenerationError(
        ErrorCategory.FILE_SYSTEM,
        f"file system operation '{operation}' failed for path '{path}'",
        component=component,
        cause=cause,
        suggestions=[
            "Check file system permissions",
            "Verify disk space is available",
        ],
    )


# ---------------------------------------------------------------------------
# Decision helpers
# ---------------------------------------------------------------------------


@dataclass
class ErrorContext:
    """Per-component context that drives retry and fallback decisions."""

    operation: str
    component: str
    phase: str = "generation"
    attempt_number: int = 0
    can_retry: bool = True
    can_fallback: bool = False


def should_retry(err: GenerationError, ctx: ErrorContext) -> bool:
    """Return ``True`` when another attempt with the same strategy is allowed."""
    if not ctx.can_retry:
        return False
    if ctx.attempt_number >= MAX_ATTEMPTS:
        return False
    return is_retryable(err.category)


def should_fallback(err: GenerationError, ctx: ErrorContext) -> bool:
    """Return ``True`` when switching to the fallback generator is allowed."""
    if not ctx.can_fallback:
        return False
    return can_fall_back(err.category)


def format_error(err: BaseException) -> str:
    """Format an error for display, appending suggestions when present."""
    if isinstance(err, GenerationError):
        suggestions = err.format_suggestions()
        return f"{err}\n{suggestions}" if suggestions else str(err)
    return str(err)


def aggregate_errors(errors: list[BaseException]) -> str:
    """Combine several errors into one message."""
    if not errors:
        return ""
    if len(errors) == 1:
        return str(errors[0])
    lines = [f"multiple errors occurred ({len(errors)}):"]
    lines.extend(f"  {i}. {err}" for i, err in enumerate(errors, 1))
    return "\n".join(lines)
