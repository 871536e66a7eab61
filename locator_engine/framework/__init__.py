"""
================================================================================
Locator Resolution Framework
================================================================================

Resolves symbolic element queries against a DOM-like tree that may change
between polls.

Components:
    - query: Query compiler (By factory, relative locators)
    - dynamic_query: Placeholder templates with quoting guards
    - matcher: Per-snapshot evaluation (CSS, XPath, geometry)
    - wait_helpers: Deadline-bounded polling with cancellation
    - resolver: find_one / find_all entry points
    - tree_sources: Static, live and Playwright-backed snapshots
    - smart_locator: Named elements with fallback chains

Author: Automation Team
License: MIT
================================================================================
"""

from .exceptions import (
    AmbiguousMatch,
    ConditionTimeout,
    InvalidQuerySyntax,
    LocatorError,
    MalformedExpression,
    NotFound,
    ResolutionCancelled,
)
from .tree import BoundingBox, Node
from .geometry import Relation
from .query import By, LocatorQuery, RelativeBy, Strategy, compile_query, compile_relative, locate_with
from .dynamic_query import build_dynamic_query
from .matcher import MatcherEngine
from .wait_helpers import WaitConfig, get_wait_config
from .resolver import Condition, ElementResolver, FindOptions, find_all, find_one
from .tree_sources import (
    LiveTreeSource,
    PlaywrightTreeSource,
    StaticTreeSource,
    TreeSource,
    build_tree,
    load_tree,
)
from .smart_locator import LocatorHealth, SmartLocator, sort_by_priority

__all__ = [
    # Errors
    "LocatorError",
    "InvalidQuerySyntax",
    "MalformedExpression",
    "NotFound",
    "ConditionTimeout",
    "AmbiguousMatch",
    "ResolutionCancelled",
    # Tree
    "Node",
    "BoundingBox",
    "TreeSource",
    "StaticTreeSource",
    "LiveTreeSource",
    "PlaywrightTreeSource",
    "build_tree",
    "load_tree",
    # Queries
    "Strategy",
    "Relation",
    "LocatorQuery",
    "By",
    "compile_query",
    "compile_relative",
    "RelativeBy",
    "locate_with",
    "build_dynamic_query",
    # Resolution
    "MatcherEngine",
    "WaitConfig",
    "get_wait_config",
    "Condition",
    "FindOptions",
    "ElementResolver",
    "find_one",
    "find_all",
    # Fallback chains
    "SmartLocator",
    "LocatorHealth",
    "sort_by_priority",
]
