"""
================================================================================
Locator Engine Exceptions
================================================================================

Error taxonomy shared by every layer of the resolution engine.

    LocatorError
      ├── InvalidQuerySyntax    expression cannot be compiled (never retried)
      ├── MalformedExpression   compiled query failed against real data
      ├── NotFound              wait policy exhausted, nothing ever matched
      ├── ConditionTimeout      matches existed, condition never satisfied
      ├── AmbiguousMatch        strict mode only, more than one match
      └── ResolutionCancelled   cancellation signal observed between polls

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .tree import Node


class LocatorError(Exception):
    """
    Base class for all resolution failures.

    Attributes:
        message: Human-readable failure reason
        query: Description of the query that failed (e.g. "By.id('login')")
        elapsed_ms: Time spent waiting before the failure, if any
    """

    def __init__(
        self,
        message: str,
        query: Optional[str] = None,
        elapsed_ms: Optional[float] = None,
    ) -> None:
        self.message = message
        self.query = query
        self.elapsed_ms = elapsed_ms
        super().__init__(self._render())

    def _render(self) -> str:
        parts = [self.message]
        if self.query:
            parts.append(f"query={self.query}")
        if self.elapsed_ms is not None:
            parts.append(f"elapsed={self.elapsed_ms:.0f}ms")
        return " | ".join(parts)

    def __str__(self) -> str:
        return self._render()


class InvalidQuerySyntax(LocatorError):
    """Raised when a locator expression cannot be compiled."""

    def __init__(
        self,
        message: str,
        expression: Any = None,
        position: Optional[int] = None,
        query: Optional[str] = None,
    ) -> None:
        self.expression = expression
        self.position = position
        if expression is not None and query is None:
            query = repr(expression)
        if position is not None:
            message = f"{message} (at position {position})"
        super().__init__(message, query=query)


class MalformedExpression(LocatorError):
    """Raised when a compiled query fails during evaluation."""
    pass


class NotFound(LocatorError):
    """Raised when no node ever matched before the deadline."""
    pass


class ConditionTimeout(LocatorError):
    """
    Raised when matches were seen but none satisfied the wait condition.

    ``last_node`` is the first match observed on the final poll, kept for
    diagnostics.
    """

    def __init__(
        self,
        message: str,
        last_node: Optional["Node"] = None,
        query: Optional[str] = None,
        elapsed_ms: Optional[float] = None,
    ) -> None:
        self.last_node = last_node
        super().__init__(message, query=query, elapsed_ms=elapsed_ms)


class AmbiguousMatch(LocatorError):
    """Raised by strict lookups when more than one node matches."""

    def __init__(
        self,
        message: str,
        count: int = 0,
        query: Optional[str] = None,
        elapsed_ms: Optional[float] = None,
    ) -> None:
        self.count = count
        super().__init__(message, query=query, elapsed_ms=elapsed_ms)


class ResolutionCancelled(LocatorError):
    """Raised when a wait loop observes its cancellation signal."""

    def __init__(
        self,
        message: str,
        attempts: int = 0,
        query: Optional[str] = None,
        elapsed_ms: Optional[float] = None,
    ) -> None:
        self.attempts = attempts
        super().__init__(message, query=query, elapsed_ms=elapsed_ms)


__all__ = [
    "LocatorError",
    "InvalidQuerySyntax",
    "MalformedExpression",
    "NotFound",
    "ConditionTimeout",
    "AmbiguousMatch",
    "ResolutionCancelled",
]
