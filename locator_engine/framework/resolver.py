"""
================================================================================
Resolution API
================================================================================

Public entry points consumed by test code:

    find_one(source, query, options)  -> Node        (first match wins)
    find_all(source, query, options)  -> List[Node]  (never raises for zero)

Each poll takes a fresh snapshot from the tree source, runs the matcher and
checks the wait condition. The wait policy comes from explicit ``FindOptions``;
nothing is read from global state during a call.

Failure mapping after the deadline:
    - nothing ever matched                      -> NotFound
    - matched, but never satisfied the condition -> ConditionTimeout
    - strict mode and several matches            -> AmbiguousMatch

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Tuple, Union

import allure
from loguru import logger

from .exceptions import AmbiguousMatch, ConditionTimeout, MalformedExpression, NotFound
from .matcher import MatcherEngine
from .query import LocatorQuery, QUERY_TYPES
from .tree import Node
from .tree_sources import StaticTreeSource, TreeSource
from .wait_helpers import PollResult, WaitConfig, async_poll_until, poll_until
from .xpath import DEFAULT_MAX_STEPS


class Condition(str, Enum):
    """What a matched node must satisfy before the wait ends."""
    PRESENT = "present"
    VISIBLE = "visible"
    CLICKABLE = "clickable"

    def is_met(self, node: Node) -> bool:
        if self is Condition.PRESENT:
            return True
        if self is Condition.VISIBLE:
            return node.visible
        return node.visible and node.bounding_box is not None


@dataclass(frozen=True)
class FindOptions:
    """
    Per-call resolution options.

    Attributes:
        timeout_ms: Wait budget; 0 means one attempt and no sleeping
        poll_interval_ms: Delay between attempts
        condition: Condition the returned node(s) must satisfy
        strict: Raise AmbiguousMatch when find_one sees several matches
        context: Restrict the search to this node's descendants
        cancel_event: threading.Event (sync) or asyncio.Event (async)
        wait: Full WaitConfig; overrides timeout_ms/poll_interval_ms
    """
    timeout_ms: float = 0
    poll_interval_ms: float = 500
    condition: Condition = Condition.PRESENT
    strict: bool = False
    context: Optional[Node] = None
    cancel_event: Any = None
    wait: Optional[WaitConfig] = None

    @property
    def wait_config(self) -> WaitConfig:
        if self.wait is not None:
            return self.wait
        return WaitConfig(timeout_ms=self.timeout_ms, poll_interval_ms=self.poll_interval_ms)


class _Observation:
    """What the polls of one resolution call have seen so far."""

    def __init__(self) -> None:
        self.ever_matched = False
        self.last_node: Optional[Node] = None

    def update(self, matches: List[Node]) -> None:
        if matches:
            self.ever_matched = True
            self.last_node = matches[0]


class ElementResolver:
    """
    Resolves locator queries against a tree source.

    Usage:
        >>> resolver = ElementResolver(source)
        >>> button = resolver.find_one(By.id("submit"), FindOptions(timeout_ms=2000))
        >>> rows = resolver.find_all(By.css_selector("table tr"))

    Args:
        source: Object exposing ``snapshot() -> Node`` (a bare Node is
            wrapped in a StaticTreeSource)
        matcher: Matcher engine to use
        default_options: Used when a call passes no options
    """

    def __init__(
        self,
        source: Union[TreeSource, Node],
        matcher: Optional[MatcherEngine] = None,
        default_options: Optional[FindOptions] = None,
    ) -> None:
        self.source = StaticTreeSource(source) if isinstance(source, Node) else source
        self.matcher = matcher or MatcherEngine()
        self.default_options = default_options or FindOptions()

    @classmethod
    def from_config(
        cls,
        source: Union[TreeSource, Node],
        config: Any,
        scenario: Optional[str] = None,
    ) -> "ElementResolver":
        """
        Build a resolver whose defaults come from a ConfigLoader.

        Reads ``xpath.max_steps`` and the ``wait`` section (or the named
        ``wait.scenarios`` entry). The values are copied into explicit
        objects; later config changes do not affect this resolver.
        """
        max_steps = int(config.get("xpath.max_steps", DEFAULT_MAX_STEPS))
        options = FindOptions(wait=WaitConfig.from_config(config, scenario))
        return cls(source, matcher=MatcherEngine(xpath_max_steps=max_steps), default_options=options)

    # ------------------------------------------------------------------
    # Sync API
    # ------------------------------------------------------------------

    def find_one(self, query: LocatorQuery, options: Optional[FindOptions] = None) -> Node:
        """
        Return the first match in document order.

        Raises:
            NotFound: zero matches after the wait policy
            ConditionTimeout: matches seen, condition never satisfied
            AmbiguousMatch: ``strict`` and more than one match
            MalformedExpression: evaluation kept failing until the deadline
            ResolutionCancelled: cancellation signal observed
        """
        options = options or self.default_options
        description = self._describe(query)
        observation = _Observation()
        probe = self._probe(query, options, observation)
        started = time.monotonic()

        with allure.step(f"Find element {description}"):
            try:
                result = poll_until(
                    probe, options.wait_config, description, cancel_event=options.cancel_event
                )
            except MalformedExpression as e:
                raise self._malformed(e, description, started) from e
            return self._first(result, options, observation, description)

    def find_all(self, query: LocatorQuery, options: Optional[FindOptions] = None) -> List[Node]:
        """Return every match (possibly none) once the wait policy is done."""
        options = options or self.default_options
        description = self._describe(query)
        probe = self._probe(query, options, _Observation())
        started = time.monotonic()

        with allure.step(f"Find elements {description}"):
            try:
                result = poll_until(
                    probe, options.wait_config, description, cancel_event=options.cancel_event
                )
            except MalformedExpression as e:
                raise self._malformed(e, description, started) from e
            return list(result.value or [])

    # ------------------------------------------------------------------
    # Asyncio API
    # ------------------------------------------------------------------

    async def find_one_async(self, query: LocatorQuery, options: Optional[FindOptions] = None) -> Node:
        """Asyncio variant of ``find_one``; ``cancel_event`` must be an asyncio.Event."""
        options = options or self.default_options
        description = self._describe(query)
        observation = _Observation()
        probe = self._probe(query, options, observation)
        started = time.monotonic()

        with allure.step(f"Find element {description}"):
            try:
                result = await async_poll_until(
                    probe, options.wait_config, description, cancel_event=options.cancel_event
                )
            except MalformedExpression as e:
                raise self._malformed(e, description, started) from e
            return self._first(result, options, observation, description)

    async def find_all_async(self, query: LocatorQuery, options: Optional[FindOptions] = None) -> List[Node]:
        """Asyncio variant of ``find_all``."""
        options = options or self.default_options
        description = self._describe(query)
        probe = self._probe(query, options, _Observation())
        started = time.monotonic()

        with allure.step(f"Find elements {description}"):
            try:
                result = await async_poll_until(
                    probe, options.wait_config, description, cancel_event=options.cancel_event
                )
            except MalformedExpression as e:
                raise self._malformed(e, description, started) from e
            return list(result.value or [])

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _describe(query: LocatorQuery) -> str:
        if not isinstance(query, QUERY_TYPES):
            raise TypeError(f"Not a compiled locator query: {query!r}")
        return query.describe()

    def _probe(
        self,
        query: LocatorQuery,
        options: FindOptions,
        observation: _Observation,
    ) -> Callable[[], Tuple[bool, List[Node]]]:
        def probe() -> Tuple[bool, List[Node]]:
            root = self.source.snapshot()
            context = None
            if options.context is not None:
                context = root.find_by_node_id(options.context.node_id)
                if context is None:
                    logger.debug(f"Context {options.context!r} is stale in this snapshot")
                    return False, []

            matches = self.matcher.match(query, root, context)
            observation.update(matches)
            satisfied = [node for node in matches if options.condition.is_met(node)]
            return bool(satisfied), satisfied

        return probe

    @staticmethod
    def _first(
        result: PollResult,
        options: FindOptions,
        observation: _Observation,
        description: str,
    ) -> Node:
        if result.satisfied:
            nodes = result.value
            if options.strict and len(nodes) > 1:
                logger.error(f"{len(nodes)} nodes matched strict query {description}")
                raise AmbiguousMatch(
                    f"Expected exactly one match, found {len(nodes)}",
                    count=len(nodes),
                    query=description,
                    elapsed_ms=result.elapsed_ms,
                )
            return nodes[0]

        if observation.ever_matched:
            logger.error(
                f"Element {description} never became {options.condition.value} "
                f"after {result.attempts} attempts"
            )
            raise ConditionTimeout(
                f"Matched element never became {options.condition.value}: "
                f"{observation.last_node.describe()}",
                last_node=observation.last_node,
                query=description,
                elapsed_ms=result.elapsed_ms,
            )

        logger.error(f"Element {description} not found after {result.attempts} attempts")
        raise NotFound(
            f"No element matched after {result.attempts} attempt(s)",
            query=description,
            elapsed_ms=result.elapsed_ms,
        )

    @staticmethod
    def _malformed(error: MalformedExpression, description: str, started: float) -> MalformedExpression:
        elapsed_ms = (time.monotonic() - started) * 1000.0
        logger.error(f"Query {description} failed during evaluation: {error.message}")
        return MalformedExpression(error.message, query=description, elapsed_ms=elapsed_ms)


def find_one(
    source: Union[TreeSource, Node],
    query: LocatorQuery,
    options: Optional[FindOptions] = None,
) -> Node:
    """Resolve ``query`` to a single node (see ``ElementResolver.find_one``)."""
    return ElementResolver(source).find_one(query, options)


def find_all(
    source: Union[TreeSource, Node],
    query: LocatorQuery,
    options: Optional[FindOptions] = None,
) -> List[Node]:
    """Resolve ``query`` to all matching nodes (see ``ElementResolver.find_all``)."""
    return ElementResolver(source).find_all(query, options)


__all__ = [
    "Condition",
    "FindOptions",
    "ElementResolver",
    "find_one",
    "find_all",
]
