"""
================================================================================
Query Compiler
================================================================================

Turns a (strategy, expression) pair into an immutable ``LocatorQuery``.

Strategies form a closed set of frozen dataclasses; the matcher dispatches
on the concrete type:

    ById, ByName, ByClass, ByTag, ByLinkText, ByXPath, ByCss, ByRelative

Compilation is pure: CSS and XPath expressions are parsed and validated here
(balanced brackets and quotes, known axes/functions/pseudo-classes) but never
evaluated against a tree.

Usage:
    >>> compile_query(Strategy.ID, "login")
    ById(value='login')
    >>> By.css_selector("form > button[type='submit']")
    >>> locate_with(By.tag_name("input")).below(By.id("email-label"))

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from numbers import Real
from typing import Any, Optional, Union

from .css_selector import SelectorList, parse_selector
from .exceptions import InvalidQuerySyntax
from .geometry import DEFAULT_NEAR_DISTANCE, Relation
from .predicates import WHITESPACE
from .tree import Node
from .xpath import parse_xpath


class Strategy(str, Enum):
    """Locator strategies (values follow the WebDriver ``By`` names)."""
    ID = "id"
    NAME = "name"
    CLASS_NAME = "class name"
    TAG_NAME = "tag name"
    LINK_TEXT = "link text"
    PARTIAL_LINK_TEXT = "partial link text"
    XPATH = "xpath"
    CSS_SELECTOR = "css selector"
    RELATIVE = "relative"


@dataclass(frozen=True)
class ById:
    value: str

    def describe(self) -> str:
        return f"By.id({self.value!r})"


@dataclass(frozen=True)
class ByName:
    value: str

    def describe(self) -> str:
        return f"By.name({self.value!r})"


@dataclass(frozen=True)
class ByClass:
    value: str

    def describe(self) -> str:
        return f"By.class_name({self.value!r})"


@dataclass(frozen=True)
class ByTag:
    value: str

    def describe(self) -> str:
        return f"By.tag_name({self.value!r})"


@dataclass(frozen=True)
class ByLinkText:
    text: str
    partial: bool = False

    def describe(self) -> str:
        method = "partial_link_text" if self.partial else "link_text"
        return f"By.{method}({self.text!r})"


@dataclass(frozen=True)
class ByXPath:
    expression: str
    plan: Any = field(compare=False, repr=False, default=None)

    def describe(self) -> str:
        return f"By.xpath({self.expression!r})"


@dataclass(frozen=True)
class ByCss:
    expression: str
    plan: Optional[SelectorList] = field(compare=False, repr=False, default=None)

    def describe(self) -> str:
        return f"By.css_selector({self.expression!r})"


@dataclass(frozen=True)
class ByRelative:
    base: "LocatorQuery"
    relation: Relation
    anchor: Union["LocatorQuery", Node]
    distance: float = DEFAULT_NEAR_DISTANCE

    def describe(self) -> str:
        anchor = self.anchor.describe() if not isinstance(self.anchor, Node) else repr(self.anchor)
        method = {
            Relation.ABOVE: "above",
            Relation.BELOW: "below",
            Relation.TO_LEFT_OF: "to_left_of",
            Relation.TO_RIGHT_OF: "to_right_of",
            Relation.NEAR: "near",
        }[self.relation]
        extra = f", {self.distance:g}" if self.relation is Relation.NEAR else ""
        return f"locate_with({self.base.describe()}).{method}({anchor}{extra})"


LocatorQuery = Union[ById, ByName, ByClass, ByTag, ByLinkText, ByXPath, ByCss, ByRelative]
QUERY_TYPES = (ById, ByName, ByClass, ByTag, ByLinkText, ByXPath, ByCss, ByRelative)


def _require_text(strategy: Strategy, expression: Any) -> str:
    if not isinstance(expression, str):
        raise InvalidQuerySyntax(
            f"{strategy.value} locator expects a string, got {type(expression).__name__}",
            expression=expression,
        )
    return expression


def _require_token(strategy: Strategy, expression: Any) -> str:
    value = _require_text(strategy, expression)
    if not value:
        raise InvalidQuerySyntax(f"{strategy.value} locator cannot be empty", expression=value)
    if any(ch in WHITESPACE for ch in value) and strategy in (Strategy.CLASS_NAME, Strategy.TAG_NAME):
        raise InvalidQuerySyntax(
            f"Compound values are not permitted for {strategy.value}; use a CSS selector",
            expression=value,
        )
    return value


def compile_query(strategy: Union[Strategy, str], expression: Any) -> LocatorQuery:
    """
    Compile a locator expression for one of the plain strategies.

    Args:
        strategy: ``Strategy`` member or its string value (e.g. "css selector")
        expression: Locator text

    Returns:
        An immutable LocatorQuery

    Raises:
        InvalidQuerySyntax: unknown strategy or unparsable expression
    """
    try:
        strategy = Strategy(strategy)
    except ValueError:
        raise InvalidQuerySyntax(f"Unknown locator strategy: {strategy!r}", expression=expression) from None

    if strategy is Strategy.ID:
        return ById(_require_token(strategy, expression))
    if strategy is Strategy.NAME:
        return ByName(_require_token(strategy, expression))
    if strategy is Strategy.CLASS_NAME:
        return ByClass(_require_token(strategy, expression))
    if strategy is Strategy.TAG_NAME:
        return ByTag(_require_token(strategy, expression).lower())
    if strategy is Strategy.LINK_TEXT:
        return ByLinkText(_require_text(strategy, expression))
    if strategy is Strategy.PARTIAL_LINK_TEXT:
        return ByLinkText(_require_text(strategy, expression), partial=True)
    if strategy is Strategy.XPATH:
        text = _require_text(strategy, expression)
        return ByXPath(text, plan=parse_xpath(text))
    if strategy is Strategy.CSS_SELECTOR:
        text = _require_text(strategy, expression)
        return ByCss(text, plan=parse_selector(text))
    raise InvalidQuerySyntax(
        "Relative locators are built with compile_relative() or locate_with()",
        expression=expression,
    )


def compile_relative(
    base: LocatorQuery,
    relation: Union[Relation, str],
    anchor: Union[LocatorQuery, Node],
    distance: Optional[float] = None,
) -> ByRelative:
    """
    Compile a relative locator.

    ``distance`` only applies to ``near`` and must be a positive finite
    number; it defaults to 50.
    """
    if not isinstance(base, QUERY_TYPES):
        raise InvalidQuerySyntax("Relative locator base must be a compiled query", expression=base)
    if not isinstance(anchor, QUERY_TYPES) and not isinstance(anchor, Node):
        raise InvalidQuerySyntax("Relative locator anchor must be a query or a Node", expression=anchor)
    try:
        relation = Relation(relation)
    except ValueError:
        raise InvalidQuerySyntax(f"Unknown relation: {relation!r}", expression=relation) from None

    if distance is None:
        distance = DEFAULT_NEAR_DISTANCE
    if (
        isinstance(distance, bool)
        or not isinstance(distance, Real)
        or not math.isfinite(distance)
        or distance <= 0
    ):
        raise InvalidQuerySyntax(
            f"Relative locator distance must be a positive number, got {distance!r}",
            expression=distance,
        )
    return ByRelative(base, relation, anchor, float(distance))


def describe(query: Union[LocatorQuery, Node]) -> str:
    return query.describe() if not isinstance(query, Node) else repr(query)


def strategy_of(query: LocatorQuery) -> Strategy:
    """Return the strategy a compiled query was built with."""
    if isinstance(query, ByLinkText):
        return Strategy.PARTIAL_LINK_TEXT if query.partial else Strategy.LINK_TEXT
    strategies = {
        ById: Strategy.ID,
        ByName: Strategy.NAME,
        ByClass: Strategy.CLASS_NAME,
        ByTag: Strategy.TAG_NAME,
        ByXPath: Strategy.XPATH,
        ByCss: Strategy.CSS_SELECTOR,
        ByRelative: Strategy.RELATIVE,
    }
    try:
        return strategies[type(query)]
    except KeyError:
        raise TypeError(f"Not a compiled locator query: {query!r}") from None


class By:
    """Factory mirroring the WebDriver ``By`` helpers."""

    @staticmethod
    def id(value: str) -> ById:
        return compile_query(Strategy.ID, value)

    @staticmethod
    def name(value: str) -> ByName:
        return compile_query(Strategy.NAME, value)

    @staticmethod
    def class_name(value: str) -> ByClass:
        return compile_query(Strategy.CLASS_NAME, value)

    @staticmethod
    def tag_name(value: str) -> ByTag:
        return compile_query(Strategy.TAG_NAME, value)

    @staticmethod
    def link_text(text: str) -> ByLinkText:
        return compile_query(Strategy.LINK_TEXT, text)

    @staticmethod
    def partial_link_text(text: str) -> ByLinkText:
        return compile_query(Strategy.PARTIAL_LINK_TEXT, text)

    @staticmethod
    def xpath(expression: str) -> ByXPath:
        return compile_query(Strategy.XPATH, expression)

    @staticmethod
    def css_selector(expression: str) -> ByCss:
        return compile_query(Strategy.CSS_SELECTOR, expression)


class RelativeBy:
    """
    Builder returned by ``locate_with``.

    ``default_distance`` is the radius used by ``near`` when the call gives
    none (``relative.default_distance`` in config.yaml).
    """

    def __init__(self, base: LocatorQuery, default_distance: float = DEFAULT_NEAR_DISTANCE) -> None:
        self.base = base
        self.default_distance = default_distance

    @classmethod
    def from_config(cls, base: LocatorQuery, config: Any) -> "RelativeBy":
        """Builder whose ``near`` radius is ``relative.default_distance``."""
        return cls(base, float(config.get("relative.default_distance", DEFAULT_NEAR_DISTANCE)))

    def above(self, anchor: Union[LocatorQuery, Node]) -> ByRelative:
        return compile_relative(self.base, Relation.ABOVE, anchor)

    def below(self, anchor: Union[LocatorQuery, Node]) -> ByRelative:
        return compile_relative(self.base, Relation.BELOW, anchor)

    def to_left_of(self, anchor: Union[LocatorQuery, Node]) -> ByRelative:
        return compile_relative(self.base, Relation.TO_LEFT_OF, anchor)

    def to_right_of(self, anchor: Union[LocatorQuery, Node]) -> ByRelative:
        return compile_relative(self.base, Relation.TO_RIGHT_OF, anchor)

    def near(self, anchor: Union[LocatorQuery, Node], distance: Optional[float] = None) -> ByRelative:
        if distance is None:
            distance = self.default_distance
        return compile_relative(self.base, Relation.NEAR, anchor, distance)


def locate_with(base: LocatorQuery, default_distance: float = DEFAULT_NEAR_DISTANCE) -> RelativeBy:
    """Start a relative locator from ``base``."""
    return RelativeBy(base, default_distance)


__all__ = [
    "Strategy",
    "ById",
    "ByName",
    "ByClass",
    "ByTag",
    "ByLinkText",
    "ByXPath",
    "ByCss",
    "ByRelative",
    "LocatorQuery",
    "QUERY_TYPES",
    "compile_query",
    "compile_relative",
    "describe",
    "strategy_of",
    "By",
    "RelativeBy",
    "locate_with",
]
