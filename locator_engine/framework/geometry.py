"""
================================================================================
Relative-Position Resolver
================================================================================

Pure geometry used by relative locators. A candidate box is compared with an
anchor box:

    below       candidate.top    >= anchor.bottom
    above       candidate.bottom <= anchor.top
    to_right_of candidate.left   >= anchor.right
    to_left_of  candidate.right  <= anchor.left
    near        center distance  <= distance (inclusive)

Degenerate (zero-size) boxes are points at (x, y); nothing here divides by a
box dimension.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import math
from enum import Enum

from .tree import BoundingBox


DEFAULT_NEAR_DISTANCE = 50.0


class Relation(str, Enum):
    """Spatial relation between a candidate and its anchor."""
    ABOVE = "above"
    BELOW = "below"
    TO_LEFT_OF = "toLeftOf"
    TO_RIGHT_OF = "toRightOf"
    NEAR = "near"


def center_distance(a: BoundingBox, b: BoundingBox) -> float:
    """Euclidean distance between the centers of two boxes."""
    ax, ay = a.center
    bx, by = b.center
    return math.hypot(ax - bx, ay - by)


def is_above(candidate: BoundingBox, anchor: BoundingBox) -> bool:
    return candidate.bottom <= anchor.top


def is_below(candidate: BoundingBox, anchor: BoundingBox) -> bool:
    return candidate.top >= anchor.bottom


def is_left_of(candidate: BoundingBox, anchor: BoundingBox) -> bool:
    return candidate.right <= anchor.left


def is_right_of(candidate: BoundingBox, anchor: BoundingBox) -> bool:
    return candidate.left >= anchor.right


def is_near(
    candidate: BoundingBox,
    anchor: BoundingBox,
    distance: float = DEFAULT_NEAR_DISTANCE,
) -> bool:
    return center_distance(candidate, anchor) <= distance


def satisfies(
    relation: Relation,
    candidate: BoundingBox,
    anchor: BoundingBox,
    distance: float = DEFAULT_NEAR_DISTANCE,
) -> bool:
    """
    Check ``relation`` between two boxes.

    Args:
        relation: One of the ``Relation`` members
        candidate: Box of the node being filtered
        anchor: Reference box
        distance: Radius for ``Relation.NEAR`` (ignored otherwise)
    """
    if relation is Relation.ABOVE:
        return is_above(candidate, anchor)
    if relation is Relation.BELOW:
        return is_below(candidate, anchor)
    if relation is Relation.TO_LEFT_OF:
        return is_left_of(candidate, anchor)
    if relation is Relation.TO_RIGHT_OF:
        return is_right_of(candidate, anchor)
    if relation is Relation.NEAR:
        return is_near(candidate, anchor, distance)
    raise ValueError(f"Unknown relation: {relation!r}")


__all__ = [
    "DEFAULT_NEAR_DISTANCE",
    "Relation",
    "center_distance",
    "is_above",
    "is_below",
    "is_left_of",
    "is_right_of",
    "is_near",
    "satisfies",
]
