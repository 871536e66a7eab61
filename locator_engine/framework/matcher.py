"""
================================================================================
Matcher Engine
================================================================================

Executes a compiled ``LocatorQuery`` against one tree snapshot.

Search scope:
    - default: the snapshot root and all of its descendants
    - with ``context``: the descendants of that node only

Results come back in document order (pre-order), except relative locators,
which are ranked by center distance to the anchor with document order
breaking ties. "No match" is an empty list, never an exception.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

from typing import Callable, Dict, Iterator, List, Optional, Tuple, Type

from loguru import logger

from . import css_selector, geometry, xpath
from .exceptions import MalformedExpression
from .predicates import contains
from .query import (
    ByClass,
    ByCss,
    ById,
    ByLinkText,
    ByName,
    ByRelative,
    ByTag,
    ByXPath,
    LocatorQuery,
)
from .tree import BoundingBox, Node


class MatcherEngine:
    """
    Stateless evaluator; one instance can serve concurrent readers.

    Args:
        xpath_max_steps: Evaluation budget for the XPath sub-evaluator
    """

    def __init__(self, xpath_max_steps: int = xpath.DEFAULT_MAX_STEPS) -> None:
        self.xpath_max_steps = xpath_max_steps
        self._handlers: Dict[Type, Callable[[LocatorQuery, Node, Optional[Node]], List[Node]]] = {
            ById: self._match_id,
            ByName: self._match_name,
            ByClass: self._match_class,
            ByTag: self._match_tag,
            ByLinkText: self._match_link_text,
            ByXPath: self._match_xpath,
            ByCss: self._match_css,
            ByRelative: self._match_relative,
        }

    def match(self, query: LocatorQuery, root: Node, context: Optional[Node] = None) -> List[Node]:
        """
        Return every node under ``root`` (or ``context``) matching ``query``.

        Raises:
            MalformedExpression: the query failed while evaluating real data
            TypeError: ``query`` is not a compiled LocatorQuery
        """
        handler = self._handlers.get(type(query))
        if handler is None:
            raise TypeError(f"Not a compiled locator query: {query!r}")
        matches = handler(query, root, context)
        logger.debug(f"{query.describe()} matched {len(matches)} node(s)")
        return matches

    # ------------------------------------------------------------------
    # Scope
    # ------------------------------------------------------------------

    @staticmethod
    def _scope(root: Node, context: Optional[Node]) -> Iterator[Node]:
        if context is None:
            return root.iter_preorder()
        return context.iter_descendants()

    def _filter(self, root: Node, context: Optional[Node], predicate: Callable[[Node], bool]) -> List[Node]:
        return [node for node in self._scope(root, context) if predicate(node)]

    # ------------------------------------------------------------------
    # Plain strategies
    # ------------------------------------------------------------------

    def _match_id(self, query: ById, root: Node, context: Optional[Node]) -> List[Node]:
        # Duplicate ids are legal; all of them are returned
        return self._filter(root, context, lambda node: node.attributes.get("id") == query.value)

    def _match_name(self, query: ByName, root: Node, context: Optional[Node]) -> List[Node]:
        return self._filter(root, context, lambda node: node.attributes.get("name") == query.value)

    def _match_class(self, query: ByClass, root: Node, context: Optional[Node]) -> List[Node]:
        return self._filter(root, context, lambda node: query.value in node.class_list)

    def _match_tag(self, query: ByTag, root: Node, context: Optional[Node]) -> List[Node]:
        return self._filter(root, context, lambda node: node.tag == query.value)

    def _match_link_text(self, query: ByLinkText, root: Node, context: Optional[Node]) -> List[Node]:
        if query.partial:
            return self._filter(
                root, context, lambda node: node.tag == "a" and contains(node.normalized_text, query.text)
            )
        return self._filter(root, context, lambda node: node.tag == "a" and node.normalized_text == query.text)

    # ------------------------------------------------------------------
    # Sub-evaluators
    # ------------------------------------------------------------------

    def _match_css(self, query: ByCss, root: Node, context: Optional[Node]) -> List[Node]:
        plan = query.plan if query.plan is not None else css_selector.parse_selector(query.expression)
        return self._filter(root, context, lambda node: css_selector.matches(node, plan))

    def _match_xpath(self, query: ByXPath, root: Node, context: Optional[Node]) -> List[Node]:
        plan = query.plan if query.plan is not None else xpath.parse_xpath(query.expression)
        try:
            nodes = xpath.evaluate(plan, root, context=context, max_steps=self.xpath_max_steps)
        except MalformedExpression as e:
            raise MalformedExpression(e.message, query=query.describe()) from e
        except RecursionError as e:
            raise MalformedExpression("XPath evaluation exceeded the nesting limit", query=query.describe()) from e

        if context is None:
            return nodes
        # Absolute paths and reverse axes can leave the context subtree
        inside = {node.node_id for node in context.iter_descendants()}
        return [node for node in nodes if node.node_id in inside]

    # ------------------------------------------------------------------
    # Relative locators
    # ------------------------------------------------------------------

    def _anchor_box(self, query: ByRelative, root: Node) -> Tuple[Optional[Node], Optional[BoundingBox]]:
        if isinstance(query.anchor, Node):
            return query.anchor, query.anchor.bounding_box
        anchors = self.match(query.anchor, root)
        if not anchors:
            return None, None
        return anchors[0], anchors[0].bounding_box

    def _match_relative(self, query: ByRelative, root: Node, context: Optional[Node]) -> List[Node]:
        anchor, anchor_box = self._anchor_box(query, root)
        if anchor_box is None:
            logger.debug(f"Anchor for {query.describe()} not resolvable to a box; no candidates")
            return []

        ranked = []
        for position, candidate in enumerate(self.match(query.base, root, context)):
            box = candidate.bounding_box
            if box is None or candidate.node_id == anchor.node_id:
                continue
            if geometry.satisfies(query.relation, box, anchor_box, query.distance):
                ranked.append((geometry.center_distance(box, anchor_box), position, candidate))

        ranked.sort(key=lambda entry: (entry[0], entry[1]))
        return [candidate for _, _, candidate in ranked]


_default_engine = MatcherEngine()


def match(query: LocatorQuery, root: Node, context: Optional[Node] = None) -> List[Node]:
    """Match with the shared default engine."""
    return _default_engine.match(query, root, context)


__all__ = [
    "MatcherEngine",
    "match",
]
