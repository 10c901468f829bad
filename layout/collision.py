"""
Pairwise collision resolution for placed nodes.

Two nodes collide when their padded bounding boxes overlap or their centres
are closer than the sum of their half-diagonals plus the padding. Colliding
nodes are pushed apart along the line between their centres; the less
important node of a pair moves more.
"""

import math
import logging
from typing import Collection, List, Optional, Sequence

from models.geometry import Rect
from models.layout import LayoutNode, Placement

logger = logging.getLogger(__name__)

_EPSILON = 1e-6
# Small overshoot so a separated pair does not re-collide on rounding
_OVERSHOOT = 1e-3


def _fallback_direction(i: int, j: int):
    """Deterministic direction for coincident centres."""
    angle = (i * 0.618033988749895 + j * 0.381966011250105) * 2 * math.pi
    return math.cos(angle), math.sin(angle)


def separation_distance(
    width_a: float, height_a: float,
    width_b: float, height_b: float,
    ux: float, uy: float,
    padding: float
) -> float:
    """
    Centre distance along unit direction (ux, uy) at which two nodes stop colliding.

    The larger of the bounding-circle requirement and the padded box
    requirement along that direction.
    """
    circle = (math.hypot(width_a, height_a) + math.hypot(width_b, height_b)) / 2 + padding
    box_x = (width_a + width_b) / 2 + padding
    box_y = (height_a + height_b) / 2 + padding
    box = min(
        box_x / abs(ux) if abs(ux) > _EPSILON else math.inf,
        box_y / abs(uy) if abs(uy) > _EPSILON else math.inf,
    )
    return max(circle, box)


def _push_apart(
    a: Placement, size_a, weight_a: float, pinned_a: bool,
    b: Placement, size_b, weight_b: float, pinned_b: bool,
    padding: float, fallback
) -> bool:
    dx = b.x - a.x
    dy = b.y - a.y
    distance = math.hypot(dx, dy)
    if distance > _EPSILON:
        ux, uy = dx / distance, dy / distance
    else:
        ux, uy = fallback

    target = separation_distance(size_a[0], size_a[1], size_b[0], size_b[1], ux, uy, padding)
    if distance >= target - _EPSILON:
        return False

    if pinned_a and pinned_b:
        return True

    total = weight_a + weight_b
    share_a = weight_b / total if total > 0 else 0.5
    if pinned_a:
        share_a = 0.0
    elif pinned_b:
        share_a = 1.0
    share_b = 1.0 - share_a

    push = target - distance + _OVERSHOOT
    a.x -= ux * push * share_a
    a.y -= uy * push * share_a
    b.x += ux * push * share_b
    b.y += uy * push * share_b
    return True


def count_collisions(nodes: Sequence[LayoutNode], placements: Sequence[Placement], padding: float) -> int:
    """Number of colliding node pairs."""
    collisions = 0
    for i in range(len(nodes)):
        for j in range(i + 1, len(nodes)):
            dx = placements[j].x - placements[i].x
            dy = placements[j].y - placements[i].y
            distance = math.hypot(dx, dy)
            ux, uy = (dx / distance, dy / distance) if distance > _EPSILON else (1.0, 0.0)
            target = separation_distance(
                nodes[i].width, nodes[i].height, nodes[j].width, nodes[j].height, ux, uy, padding
            )
            if distance < target - _EPSILON:
                collisions += 1
    return collisions


def resolve_collisions(
    nodes: Sequence[LayoutNode],
    placements: List[Placement],
    padding: float = 50.0,
    iterations: int = 50,
    pinned: Collection[int] = (),
    obstacles: Optional[Sequence[Rect]] = None
) -> bool:
    """
    Separate overlapping nodes in place.

    Args:
        nodes: Layout nodes (sizes and importance)
        placements: Centre positions, updated in place
        padding: Gap kept between nodes
        iterations: Maximum number of full passes
        pinned: Indices of nodes that must not move
        obstacles: Fixed rectangles (e.g. the anchor node) nodes are pushed off

    Returns:
        True when a pass found no collisions, False when the budget ran out
    """
    obstacles = obstacles or ()
    pinned = set(pinned)

    for iteration in range(iterations):
        collided = False
        for i in range(len(nodes)):
            for j in range(i + 1, len(nodes)):
                if _push_apart(
                    placements[i], (nodes[i].width, nodes[i].height), nodes[i].importance, i in pinned,
                    placements[j], (nodes[j].width, nodes[j].height), nodes[j].importance, j in pinned,
                    padding, _fallback_direction(i, j)
                ):
                    collided = True

        for i in range(len(nodes)):
            if i in pinned:
                continue
            for k, obstacle in enumerate(obstacles):
                centre = Placement(obstacle.center.x, obstacle.center.y)
                if _push_apart(
                    centre, (obstacle.width, obstacle.height), 1.0, True,
                    placements[i], (nodes[i].width, nodes[i].height), 1.0, False,
                    padding, _fallback_direction(k, i)
                ):
                    collided = True

        if not collided:
            logger.debug("Collisions resolved after %d passes", iteration)
            return True

    logger.info("Collision resolver exhausted %d passes with overlaps remaining", iterations)
    return False
