"""
================================================================================
Smart Locator with Fallback Chains
================================================================================

Named elements resolved through an ordered chain of locator queries:
    - Multiple fallback queries per element
    - Automatic degradation when the primary query fails
    - Usage analytics (which elements needed a fallback)
    - Strategy priority ordering for hand-written chains

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from loguru import logger

from .exceptions import LocatorError, NotFound, ResolutionCancelled
from .query import By, LocatorQuery, QUERY_TYPES, Strategy, strategy_of
from .resolver import ElementResolver, FindOptions
from .tree import Node
from .tree_sources import TreeSource


LocatorMap = Dict[str, Union[LocatorQuery, str]]

# Most stable first; XPath is the last resort
DEFAULT_PRIORITY: Tuple[Strategy, ...] = (
    Strategy.ID,
    Strategy.NAME,
    Strategy.CSS_SELECTOR,
    Strategy.LINK_TEXT,
    Strategy.PARTIAL_LINK_TEXT,
    Strategy.CLASS_NAME,
    Strategy.TAG_NAME,
    Strategy.RELATIVE,
    Strategy.XPATH,
)


@dataclass
class LocatorHealth:
    """
    Tracks locator health and usage statistics.

    Attributes:
        element_name: Human-readable element name
        primary_query: Description of the preferred query
        used_fallback: Whether a fallback was used
        fallback_name: Name of fallback used (if any)
        fallback_query: Description of the fallback used (if any)
    """
    element_name: str
    primary_query: str
    used_fallback: bool = False
    fallback_name: Optional[str] = None
    fallback_query: Optional[str] = None


def _coerce(selector: Union[LocatorQuery, str]) -> LocatorQuery:
    # Plain strings in locator maps are CSS selectors
    if isinstance(selector, QUERY_TYPES):
        return selector
    if isinstance(selector, str):
        return By.css_selector(selector)
    raise TypeError(f"Locator must be a compiled query or a CSS string, got {selector!r}")


def sort_by_priority(
    locators: LocatorMap,
    priority: Optional[Sequence[Union[Strategy, str]]] = None,
) -> List[Tuple[str, LocatorQuery]]:
    """
    Order a locator map by strategy stability.

    Strategies missing from ``priority`` go last; ties keep map order.

    Args:
        locators: Mapping of strategy name -> query (or CSS string)
        priority: Strategies from most to least preferred

    Returns:
        List of (name, query) pairs in trial order
    """
    order = [Strategy(item) for item in (priority or DEFAULT_PRIORITY)]
    rank = {strategy: index for index, strategy in enumerate(order)}

    entries = [(name, _coerce(selector)) for name, selector in locators.items()]
    return sorted(entries, key=lambda entry: rank.get(strategy_of(entry[1]), len(rank)))


class SmartLocator:
    """
    Element locator with fallback strategies.

    Each element name maps to ``{"primary": query, "fallback_1": query, ...}``.
    Queries are tried in map order (or priority order when ``use_priority``
    is set) and the first one that resolves wins.

    Usage:
        >>> smart = SmartLocator(source)
        >>> button = smart.locate("login_button", FindOptions(timeout_ms=2000))
        >>> print(smart.get_health_report())

    Configuration:
        Class-level defaults live in ``LOCATORS``; instances copy them, so
        ``register_locator`` never leaks between instances.
    """

    # Format: element_name -> {strategy_name: query}
    LOCATORS: Dict[str, LocatorMap] = {
        # Authentication elements
        "login_button": {
            "primary": "[data-testid='btn-login']",
            "fallback_1": "[aria-label='Login']",
            "fallback_2": "button:has-text('Log In')",
            "fallback_3": By.id("login-button"),
        },
        "logout_button": {
            "primary": "[data-testid='btn-logout']",
            "fallback_1": "[aria-label='Logout']",
            "fallback_2": "button:has-text('Log Out')",
        },
        "username_input": {
            "primary": "[data-testid='input-username']",
            "fallback_1": By.id("username"),
            "fallback_2": By.name("username"),
            "fallback_3": "input[placeholder*='Username']",
        },
        "password_input": {
            "primary": "[data-testid='input-password']",
            "fallback_1": By.id("password"),
            "fallback_2": By.name("password"),
            "fallback_3": "input[type='password']",
        },

        # Common UI elements
        "submit_button": {
            "primary": "[data-testid='btn-submit']",
            "fallback_1": "button[type='submit']",
            "fallback_2": "button:has-text('Submit')",
        },
        "close_modal": {
            "primary": "[data-testid='btn-close-modal']",
            "fallback_1": "[aria-label='Close']",
            "fallback_2": By.class_name("modal-close"),
        },
        "toast_error": {
            "primary": "[data-testid='toast-error']",
            "fallback_1": ".toast.error",
            "fallback_2": "[role='alert']:has-text('error')",
        },
    }

    def __init__(
        self,
        source: Union[ElementResolver, TreeSource, Node],
        locators: Optional[Dict[str, LocatorMap]] = None,
        priority: Optional[Sequence[Union[Strategy, str]]] = None,
        use_priority: bool = False,
    ):
        """
        Initialize SmartLocator.

        Args:
            source: Resolver, tree source or bare tree to search
            locators: Extra element maps merged over ``LOCATORS``
            priority: Strategy order for ``sort_by_priority``
            use_priority: Try queries in priority order instead of map order
        """
        self.resolver = source if isinstance(source, ElementResolver) else ElementResolver(source)
        self.locators: Dict[str, LocatorMap] = dict(self.LOCATORS)
        self.locators.update(locators or {})
        self.priority = tuple(Strategy(item) for item in (priority or DEFAULT_PRIORITY))
        self.use_priority = use_priority
        self._health_records: List[LocatorHealth] = []
        self._fallback_used: Dict[str, LocatorHealth] = {}

    @classmethod
    def from_config(
        cls,
        source: Union[TreeSource, Node],
        config: Any,
        scenario: Optional[str] = None,
    ) -> "SmartLocator":
        """Build from a ConfigLoader (wait defaults, ``locators.priority``)."""
        priority = config.get("locators.priority", None)
        return cls(
            ElementResolver.from_config(source, config, scenario),
            priority=priority,
            use_priority=bool(priority),
        )

    @property
    def health_records(self) -> List[LocatorHealth]:
        return list(self._health_records)

    def _chain(self, locators: LocatorMap) -> List[Tuple[str, LocatorQuery]]:
        if self.use_priority:
            return sort_by_priority(locators, self.priority)
        return [(name, _coerce(selector)) for name, selector in locators.items()]

    def locate(
        self,
        target: Union[str, LocatorMap],
        options: Optional[FindOptions] = None,
        element_name: Optional[str] = None,
    ) -> Node:
        """
        Locate an element using the fallback chain.

        Each query gets the full ``options`` wait budget; the first query
        that resolves wins and the outcome is recorded for the health report.

        Args:
            target: Element key in the locator maps, or a locator map
            options: Resolution options applied to every attempt
            element_name: Display name when ``target`` is a map

        Returns:
            The resolved Node

        Raises:
            NotFound: every strategy failed (all failures are listed)
            ResolutionCancelled: cancellation signal observed
        """
        if isinstance(target, dict):
            locators = target
            display_name = element_name or "custom_element"
        else:
            locators = self.locators.get(target, {})
            display_name = target

        if not locators:
            raise NotFound(f"No locators defined for element: {display_name}", query=display_name)

        chain = self._chain(locators)
        primary_name, primary_query = chain[0]
        if "primary" in locators:
            primary_query = _coerce(locators["primary"])
            primary_name = "primary"

        errors = []
        started = time.monotonic()
        for strategy_name, query in chain:
            try:
                node = self.resolver.find_one(query, options)
            except ResolutionCancelled:
                raise
            except LocatorError as e:
                errors.append(f"{strategy_name}: {query.describe()} -> {e.message}")
                continue

            used_fallback = strategy_name != primary_name
            health = LocatorHealth(
                element_name=display_name,
                primary_query=primary_query.describe(),
                used_fallback=used_fallback,
                fallback_name=strategy_name if used_fallback else None,
                fallback_query=query.describe() if used_fallback else None,
            )
            self._health_records.append(health)

            if used_fallback:
                logger.warning(
                    f"Element '{display_name}' used fallback: {strategy_name} -> {query.describe()}"
                )
                self._fallback_used[display_name] = health
            else:
                logger.debug(f"Element '{display_name}' found: {query.describe()}")
            return node

        error_msg = (
            f"All locators failed for '{display_name}':\n" +
            "\n".join(f"  - {err}" for err in errors)
        )
        logger.error(error_msg)
        raise NotFound(error_msg, query=display_name, elapsed_ms=(time.monotonic() - started) * 1000.0)

    def is_present(
        self,
        target: Union[str, LocatorMap],
        options: Optional[FindOptions] = None,
        element_name: Optional[str] = None,
    ) -> bool:
        """Return True when any strategy of the chain resolves."""
        try:
            self.locate(target, options, element_name)
            return True
        except NotFound:
            return False

    def get_health_report(self) -> str:
        """
        Generate locator health report.

        Lists elements that needed a fallback (maintenance candidates).
        """
        if not self._fallback_used:
            return "All elements used primary locators. No maintenance needed."

        report_lines = [
            "Locator Health Report - Fallbacks Used:",
            "",
            "The following elements used fallback locators.",
            "Consider updating the primary queries:",
            "",
        ]

        for element_name, health in self._fallback_used.items():
            report_lines.extend([
                f"  [{element_name}]",
                f"    Failed primary: {health.primary_query}",
                f"    Used: {health.fallback_name} -> {health.fallback_query}",
                "",
            ])

        return "\n".join(report_lines)

    def register_locator(self, element_name: str, locators: LocatorMap) -> None:
        """
        Register a locator map at runtime.

        Queries are compiled immediately so a bad selector fails here rather
        than in the middle of a test.
        """
        self.locators[element_name] = {name: _coerce(selector) for name, selector in locators.items()}
        logger.debug(f"Registered new locator: {element_name}")


__all__ = [
    "SmartLocator",
    "LocatorHealth",
    "DEFAULT_PRIORITY",
    "sort_by_priority",
]
