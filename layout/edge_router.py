"""
Connection side selection for parent/child edges.

Edges are straight segments between side midpoints. Candidate side pairs are
tried from the most natural one (facing each other along the centre line)
outwards; the first candidate crossing at most one existing edge wins,
otherwise the cheapest candidate by length plus crossing penalty.
"""

import math
import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from models.common import Side
from models.geometry import Point, Rect, Segment

logger = logging.getLogger(__name__)

CROSSING_PENALTY = 10000.0
MAX_ACCEPTED_CROSSINGS = 1


def connection_point(rect: Rect, side: Side) -> Point:
    """Midpoint of one side of a rectangle."""
    if side == Side.TOP:
        return Point(rect.x + rect.width / 2, rect.y)
    if side == Side.RIGHT:
        return Point(rect.right, rect.y + rect.height / 2)
    if side == Side.BOTTOM:
        return Point(rect.x + rect.width / 2, rect.bottom)
    return Point(rect.x, rect.y + rect.height / 2)


def side_from_angle(angle: float) -> Side:
    """Side of a node facing direction ``angle`` (radians, canvas y axis down)."""
    angle = angle % (2 * math.pi)
    if angle < math.pi / 4 or angle > 7 * math.pi / 4:
        return Side.RIGHT
    if angle < 3 * math.pi / 4:
        return Side.BOTTOM
    if angle < 5 * math.pi / 4:
        return Side.LEFT
    return Side.TOP


def _apply_bias(from_side: Side, to_side: Side, bias: Side) -> Tuple[Side, Side]:
    """Lean a side pair towards the direction the layout placed the child in."""
    if from_side == bias.opposite:
        from_side = bias
    if bias in (Side.TOP, Side.BOTTOM) and from_side in (Side.LEFT, Side.RIGHT):
        to_side = bias.opposite
    elif bias in (Side.LEFT, Side.RIGHT) and from_side in (Side.TOP, Side.BOTTOM):
        to_side = bias.opposite
    return from_side, to_side


def candidate_pairs(parent: Rect, child: Rect, bias: Optional[Side] = None) -> List[Tuple[Side, Side]]:
    """Side pairs in the order they are tried, without duplicates."""
    parent_center, child_center = parent.center, child.center
    angle = math.atan2(child_center.y - parent_center.y, child_center.x - parent_center.x)
    from_side = side_from_angle(angle)
    to_side = from_side.opposite

    candidates = [(from_side, to_side)]
    if bias is not None:
        candidates.append(_apply_bias(from_side, to_side, bias))
    candidates.extend([
        (from_side, from_side.opposite),
        (from_side.opposite, to_side),
        (Side.TOP, Side.BOTTOM),
        (Side.RIGHT, Side.LEFT),
        (Side.BOTTOM, Side.TOP),
        (Side.LEFT, Side.RIGHT),
    ])

    unique = []
    for pair in candidates:
        if pair not in unique:
            unique.append(pair)
    return unique


def count_crossings(segment: Segment, existing: Iterable[Segment]) -> int:
    return sum(1 for other in existing if segment.intersects(other))


def edge_segment(parent: Rect, child: Rect, from_side: Side, to_side: Side) -> Segment:
    return Segment(connection_point(parent, from_side), connection_point(child, to_side))


def route_edge(
    parent: Rect,
    child: Rect,
    bias: Optional[Side] = None,
    existing: Sequence[Segment] = ()
) -> Tuple[Side, Side]:
    """
    Choose the connection sides for an edge from parent to child.

    Args:
        parent: Parent node bounds
        child: Child node bounds
        bias: Direction of the child relative to its layout anchor
        existing: Already drawn edges as straight segments

    Returns:
        (from_side, to_side)
    """
    best: Optional[Tuple[float, Tuple[Side, Side]]] = None
    for from_side, to_side in candidate_pairs(parent, child, bias):
        segment = edge_segment(parent, child, from_side, to_side)
        crossings = count_crossings(segment, existing)
        if crossings <= MAX_ACCEPTED_CROSSINGS:
            return from_side, to_side

        cost = segment.length + CROSSING_PENALTY * crossings
        if best is None or cost < best[0]:
            best = (cost, (from_side, to_side))

    logger.debug("No edge candidate with <= %d crossings, using cheapest", MAX_ACCEPTED_CROSSINGS)
    return best[1]
