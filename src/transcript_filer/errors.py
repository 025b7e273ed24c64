"""Error hierarchy for transcript-filer.

Configuration problems are raised when a component is constructed, never
while it is making a decision. Knowledge lookups that fail are recovered
locally (logged, zero entities), and ambiguous or missing matches are
normal outcomes rather than errors.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Categories of errors for handling decisions."""

    VALIDATION = "validation"  # Bad input record
    CONFIGURATION = "configuration"  # Bad settings or routing config
    RESOURCE = "resource"  # Missing or unreadable file
    INTERNAL = "internal"  # Bug in code


class TranscriptFilerError(Exception):
    """Base exception for transcript-filer errors.

    Attributes:
        message: Human-readable error message
        category: Error category for handling
        context: Additional context information
        recoverable: Whether the pipeline can continue past this error
    """

    category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        context: dict | None = None,
        recoverable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} (context: {self.context})"
        return self.message


class ValidationError(TranscriptFilerError):
    """A record failed validation.

    Examples: a tier-1 mapping declaring a collision risk, an entity without an id.
    """

    category = ErrorCategory.VALIDATION

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message, context, recoverable=False)


class ConfigurationError(TranscriptFilerError):
    """Configuration error.

    Examples: malformed term registry, unknown conflict resolution policy.
    """

    category = ErrorCategory.CONFIGURATION

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message, context, recoverable=False)


class ResourceError(TranscriptFilerError):
    """A file the caller explicitly asked for is missing or unreadable.

    Examples: routing config path passed on the command line.
    """

    category = ErrorCategory.RESOURCE

    def __init__(self, message: str, context: dict | None = None):
        super().__init__(message, context, recoverable=False)


def configuration_error_from(error: Exception, source: str) -> ConfigurationError:
    """Wrap a pydantic or parser error raised while building configuration.

    Args:
        error: Original error
        source: What was being configured (e.g. "routing config")

    Returns:
        ConfigurationError carrying the original message
    """
    details: Any = str(error)
    if hasattr(error, "errors"):
        try:
            details = [
                f"{'.'.join(str(p) for p in e.get('loc', ()))}: {e.get('msg')}"
                for e in error.errors()
            ]
        except (TypeError, AttributeError):
            details = str(error)

    return ConfigurationError(
        f"Invalid {source}",
        context={"source": source, "details": details},
    )


def format_error_for_display(error: Exception) -> str:
    """Format an error message for user display.

    Args:
        error: Error to format

    Returns:
        Human-readable error message
    """
    if isinstance(error, TranscriptFilerError):
        category = error.category.value
        base_message = error.message

        if error.context:
            context_str = ", ".join(f"{k}={v}" for k, v in error.context.items())
            return f"[{category}] {base_message} ({context_str})"

        return f"[{category}] {base_message}"

    return f"[error] {type(error).__name__}: {error}"
