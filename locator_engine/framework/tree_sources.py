"""
================================================================================
Tree Sources
================================================================================

Collaborators that hand the engine a read-consistent snapshot per poll.

    StaticTreeSource      fixed tree that nobody mutates
    LiveTreeSource        owner mutates under a lock, readers get copies
    PlaywrightTreeSource  serialises a live Playwright page into Nodes

Tree fixtures can also be built from dictionaries or YAML files:

    tag: form
    attributes: {id: login}
    box: [0, 0, 300, 200]
    children:
      - tag: input
        attributes: {name: username}
        box: {x: 10, y: 10, width: 200, height: 24}

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Protocol, Union

import yaml
from loguru import logger
from playwright.sync_api import Page

from .tree import Node, new_node_id


class TreeSource(Protocol):
    """Anything that can produce a point-in-time tree."""

    def snapshot(self) -> Node:
        ...


class StaticTreeSource:
    """Returns the same, never-mutated tree on every snapshot."""

    def __init__(self, root: Node) -> None:
        self.root = root

    def snapshot(self) -> Node:
        return self.root


class LiveTreeSource:
    """
    Copy-on-read source for trees that change between polls.

    The owner (a DOM-sync collaborator or a test) is the only mutator and
    must go through ``mutate()``; every ``snapshot()`` is a deep copy taken
    under the same lock, so one matcher pass never sees a half-applied update.

    Usage:
        >>> source = LiveTreeSource(root)
        >>> with source.mutate() as live_root:
        ...     live_root.append_child(Node("button", {"id": "late"}))
    """

    def __init__(self, root: Node) -> None:
        self._root = root
        self._lock = threading.RLock()
        self.version = 0

    @contextmanager
    def mutate(self) -> Iterator[Node]:
        with self._lock:
            yield self._root
            self.version += 1
            logger.debug(f"Live tree mutated (version {self.version})")

    def replace_root(self, root: Node) -> None:
        with self._lock:
            self._root = root
            self.version += 1

    def snapshot(self) -> Node:
        with self._lock:
            return self._root.clone()


# Serialises the rendered DOM: tag, attributes, own text, client rect, visibility.
# Each element gets a key from a WeakMap kept on window, so the same element
# has the same key in every snapshot until the document is replaced; the
# session token changes with the document.
_DOM_SNAPSHOT_SCRIPT = """
() => {
  const state = window.__locatorEngineKeys || (window.__locatorEngineKeys = {
    session: Date.now().toString(36) + "-" + Math.random().toString(36).slice(2),
    next: 1,
    keys: new WeakMap(),
  });
  const keyOf = (el) => {
    let key = state.keys.get(el);
    if (key === undefined) {
      key = state.next++;
      state.keys.set(el, key);
    }
    return key;
  };
  const serialize = (el) => {
    const rect = el.getBoundingClientRect();
    const style = window.getComputedStyle(el);
    const ownText = Array.from(el.childNodes)
      .filter((n) => n.nodeType === Node.TEXT_NODE)
      .map((n) => n.textContent)
      .join('');
    const attributes = {};
    for (const attr of el.attributes) attributes[attr.name] = attr.value;
    return {
      key: keyOf(el),
      tag: el.tagName.toLowerCase(),
      attributes,
      text: ownText,
      box: {x: rect.x, y: rect.y, width: rect.width, height: rect.height},
      visible: style.visibility !== 'hidden' && style.display !== 'none'
        && rect.width > 0 && rect.height > 0,
      children: Array.from(el.children).map(serialize),
    };
  };
  return {session: state.session, root: serialize(document.documentElement)};
}
"""


class PlaywrightTreeSource:
    """
    Snapshots a live Playwright page.

    Geometry and visibility come from the browser's layout; the engine never
    computes layout itself.

    A DOM element keeps its ``node_id`` across snapshots, so contexts and
    literal anchors taken from one snapshot are recognised in the next. After
    a navigation the page reports a new session and every element gets a
    fresh id.
    """

    def __init__(self, page: Page) -> None:
        self.page = page
        self._session: Optional[str] = None
        self._node_ids: Dict[int, int] = {}

    def snapshot(self) -> Node:
        data = self.page.evaluate(_DOM_SNAPSHOT_SCRIPT)
        if data["session"] != self._session:
            logger.debug(f"New page session {data['session']}; element ids restart")
            self._session = data["session"]
            self._node_ids = {}
        return build_tree(data["root"], node_id_for=self._node_id)

    def _node_id(self, key: int) -> int:
        node_id = self._node_ids.get(key)
        if node_id is None:
            node_id = self._node_ids[key] = new_node_id()
        return node_id


def build_tree(
    data: Mapping[str, Any],
    node_id_for: Optional[Callable[[Any], int]] = None,
) -> Node:
    """
    Build a Node tree from a nested mapping.

    Keys: ``tag`` (required), ``attributes``, ``text``, ``box``, ``visible``,
    ``children``. When ``node_id_for`` is given, each mapping's ``key`` is
    passed to it to obtain the node's ``node_id``.
    """
    if not isinstance(data, Mapping) or "tag" not in data:
        raise ValueError(f"Tree node mapping needs a 'tag' key, got {data!r}")

    attributes: Dict[str, str] = {
        str(key): str(value) for key, value in (data.get("attributes") or {}).items()
    }
    node = Node(
        str(data["tag"]),
        attributes=attributes,
        text=str(data.get("text") or ""),
        bounding_box=data.get("box"),
        visible=data.get("visible", True),
        node_id=node_id_for(data["key"]) if node_id_for is not None and "key" in data else None,
    )
    for child in data.get("children") or ():
        node.append_child(build_tree(child, node_id_for))
    return node


def load_tree(path: Union[str, Path]) -> Node:
    """Load a tree fixture from a YAML file."""
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    logger.debug(f"Loaded tree fixture from: {path}")
    return build_tree(data)


__all__ = [
    "TreeSource",
    "StaticTreeSource",
    "LiveTreeSource",
    "PlaywrightTreeSource",
    "build_tree",
    "load_tree",
]
