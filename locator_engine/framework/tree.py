"""
================================================================================
Tree Model
================================================================================

In-memory representation of a DOM-like document.

Every element is a ``Node`` with a lower-case tag, an attribute map, its own
direct text, ordered children and optional precomputed geometry. The parent
link is a weak reference: the tree owns its nodes through ``children`` only.

Invariants:
    - strict rooted tree (one parent per node, no cycles)
    - ``children`` is document order
    - ``node_id`` is unique for the lifetime of the process, and copies made
      by ``clone()`` keep the ids of the nodes they copy

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import itertools
import weakref
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from .predicates import normalize_space, split_words


_node_ids = itertools.count(1)


def new_node_id() -> int:
    """Next process-unique node id."""
    return next(_node_ids)


@dataclass(frozen=True)
class BoundingBox:
    """
    Axis-aligned rectangle in page coordinates (y grows downwards).

    A zero-size box is a point at (x, y).
    """
    x: float
    y: float
    width: float = 0.0
    height: float = 0.0

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(
                f"Bounding box size must be non-negative, got {self.width}x{self.height}"
            )

    @property
    def left(self) -> float:
        return self.x

    @property
    def top(self) -> float:
        return self.y

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2.0, self.y + self.height / 2.0)

    @property
    def is_point(self) -> bool:
        return self.width == 0 and self.height == 0

    @classmethod
    def from_value(
        cls,
        value: Union["BoundingBox", Sequence[float], Mapping[str, float], None],
    ) -> Optional["BoundingBox"]:
        """
        Coerce ``[x, y, w, h]`` lists or ``{x, y, width, height}`` mappings.

        ``w``/``h`` are accepted as short keys. ``None`` stays ``None``.
        """
        if value is None or isinstance(value, BoundingBox):
            return value
        if isinstance(value, Mapping):
            return cls(
                float(value["x"]),
                float(value["y"]),
                float(value.get("width", value.get("w", 0.0))),
                float(value.get("height", value.get("h", 0.0))),
            )
        items = list(value)
        if len(items) != 4:
            raise ValueError(f"Bounding box needs 4 numbers, got {items!r}")
        return cls(*(float(v) for v in items))


class Node:
    """A single element of the tree."""

    def __init__(
        self,
        tag: str,
        attributes: Optional[Mapping[str, str]] = None,
        text: str = "",
        children: Optional[Iterable["Node"]] = None,
        bounding_box: Union[BoundingBox, Sequence[float], Mapping[str, float], None] = None,
        visible: bool = True,
        node_id: Optional[int] = None,
    ) -> None:
        if not tag:
            raise ValueError("Node tag must be a non-empty string")
        self.node_id: int = new_node_id() if node_id is None else node_id
        self.tag: str = tag.lower()
        self.attributes: Dict[str, str] = dict(attributes or {})
        self.text: str = text or ""
        self.bounding_box: Optional[BoundingBox] = BoundingBox.from_value(bounding_box)
        self.visible: bool = bool(visible)
        self.children: List[Node] = []
        self._parent_ref: Optional[weakref.ReferenceType] = None
        for child in children or ():
            self.append_child(child)

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    @property
    def parent(self) -> Optional["Node"]:
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    def append_child(self, child: "Node") -> "Node":
        """Attach ``child`` as the last child and return it for chaining."""
        self._check_can_adopt(child)
        child._parent_ref = weakref.ref(self)
        self.children.append(child)
        return child

    def insert_child(self, index: int, child: "Node") -> "Node":
        """Attach ``child`` at ``index`` among the children."""
        self._check_can_adopt(child)
        child._parent_ref = weakref.ref(self)
        self.children.insert(index, child)
        return child

    def remove_child(self, child: "Node") -> "Node":
        """Detach ``child``; raises ``ValueError`` if it is not a child."""
        for index, existing in enumerate(self.children):
            if existing is child:
                del self.children[index]
                child._parent_ref = None
                return child
        raise ValueError(f"{child!r} is not a child of {self!r}")

    def _check_can_adopt(self, child: "Node") -> None:
        if child.parent is not None:
            raise ValueError(f"{child!r} already has a parent; detach it first")
        ancestor: Optional[Node] = self
        while ancestor is not None:
            if ancestor is child:
                raise ValueError(f"Adding {child!r} under {self!r} would create a cycle")
            ancestor = ancestor.parent

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def iter_preorder(self) -> Iterator["Node"]:
        """Yield self then descendants in document order."""
        stack: List[Node] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def iter_descendants(self) -> Iterator["Node"]:
        """Yield descendants (not self) in document order."""
        nodes = self.iter_preorder()
        next(nodes)
        yield from nodes

    def iter_ancestors(self) -> Iterator["Node"]:
        """Yield parent, grandparent, ... up to the root."""
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def index_in_parent(self) -> int:
        parent = self.parent
        if parent is None:
            return 0
        for index, sibling in enumerate(parent.children):
            if sibling is self:
                return index
        raise ValueError(f"{self!r} is detached from its parent")

    def preceding_siblings(self) -> List["Node"]:
        """Siblings before this node, nearest first."""
        parent = self.parent
        if parent is None:
            return []
        return list(reversed(parent.children[: self.index_in_parent()]))

    def following_siblings(self) -> List["Node"]:
        """Siblings after this node, nearest first."""
        parent = self.parent
        if parent is None:
            return []
        return parent.children[self.index_in_parent() + 1:]

    def find_by_node_id(self, node_id: int) -> Optional["Node"]:
        for node in self.iter_preorder():
            if node.node_id == node_id:
                return node
        return None

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    def get_attribute(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.attributes.get(name, default)

    @property
    def class_list(self) -> List[str]:
        return split_words(self.attributes.get("class", ""))

    @property
    def normalized_text(self) -> str:
        return normalize_space(self.text)

    def text_content(self) -> str:
        """Own text followed by every descendant's text, in document order."""
        return "".join(node.text for node in self.iter_preorder())

    # ------------------------------------------------------------------
    # Copies and diagnostics
    # ------------------------------------------------------------------

    def clone(self) -> "Node":
        """Deep copy of this subtree; copies keep the original node ids."""
        copy = Node(
            self.tag,
            attributes=self.attributes,
            text=self.text,
            bounding_box=self.bounding_box,
            visible=self.visible,
            node_id=self.node_id,
        )
        for child in self.children:
            copy.append_child(child.clone())
        return copy

    def describe(self) -> str:
        """Short start-tag rendering, e.g. ``<a id="home" class="nav">``."""
        attrs = "".join(f' {key}="{value}"' for key, value in self.attributes.items())
        return f"<{self.tag}{attrs}>"

    def __repr__(self) -> str:
        return f"Node#{self.node_id}{self.describe()}"


def document_order_index(root: Node) -> Dict[int, int]:
    """Map ``id(node)`` to its pre-order position under ``root``."""
    return {id(node): position for position, node in enumerate(root.iter_preorder())}


__all__ = [
    "BoundingBox",
    "Node",
    "document_order_index",
    "new_node_id",
]
