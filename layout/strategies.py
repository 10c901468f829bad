"""
Deterministic layout strategies: cross, hierarchical rings and organic branches.

Every strategy maps layout nodes to centre positions around an anchor and
returns one Placement per node, in input order. Distances scale with the
spacing multiplier; ring and branch steps also grow by the profile's
radius increment.
"""

import math
import logging
from typing import Dict, List

from models.common import ContentCategory, Side
from models.geometry import Point
from models.layout import LayoutNode, Placement
from models.settings import SpacingSettings

logger = logging.getLogger(__name__)

CROSS_DISTANCE = 700
CROSS_HORIZONTAL_STRETCH = 1.2

# (minimum importance, nodes per ring) for the primary, secondary and tertiary tiers
HIERARCHY_TIERS = ((4.0, 4), (2.5, 6), (0.0, 8))
RING_BASE_RADIUS = 600
RING_STEP = 300

ORGANIC_GROUP_PRIORITY = ['algorithms', 'summary', 'important', 'code', 'steps', 'list', 'general']
ORGANIC_BASE_DISTANCE = 600
ORGANIC_NODE_STEP = 350


def bias_for_offset(dx: float, dy: float) -> Side:
    """Direction of a point relative to its anchor, dominant axis first."""
    if abs(dx) > abs(dy):
        return Side.RIGHT if dx > 0 else Side.LEFT
    return Side.BOTTOM if dy > 0 else Side.TOP


def cross_layout(nodes: List[LayoutNode], anchor: Point, spacing: SpacingSettings) -> List[Placement]:
    """Place up to four nodes above, right of, below and left of the anchor."""
    distance = CROSS_DISTANCE * spacing.multiplier
    slots = [
        (0.0, -distance, Side.TOP),
        (distance * CROSS_HORIZONTAL_STRETCH, 0.0, Side.RIGHT),
        (0.0, distance, Side.BOTTOM),
        (-distance * CROSS_HORIZONTAL_STRETCH, 0.0, Side.LEFT),
    ]
    placements = []
    for index, node in enumerate(nodes):
        # More than four only happens when cross is forced; extra nodes go further out
        dx, dy, side = slots[index % 4]
        reach = 1 + index // 4
        placements.append(Placement(
            x=anchor.x + dx * reach,
            y=anchor.y + dy * reach,
            bias=side,
            level=index // 4,
            importance=node.importance,
        ))
    return placements


def importance_tier(importance: float) -> int:
    """0 = primary, 1 = secondary, 2 = tertiary."""
    for tier, (threshold, _) in enumerate(HIERARCHY_TIERS):
        if importance >= threshold:
            return tier
    return len(HIERARCHY_TIERS) - 1


def hierarchical_layout(nodes: List[LayoutNode], anchor: Point, spacing: SpacingSettings) -> List[Placement]:
    """
    Concentric rings by importance tier.

    Each tier starts a new ring; a tier holding more nodes than its ring
    capacity spills into further rings. Each ring sits one scaled step plus
    the radius increment further out. Odd rings are rotated by half a step
    so neighbours on adjacent rings do not line up.
    """
    tiers: Dict[int, List[int]] = {}
    for index, node in enumerate(nodes):
        tiers.setdefault(importance_tier(node.importance), []).append(index)

    placements: List[Placement] = [None] * len(nodes)  # type: ignore[list-item]
    ring_index = 0
    for tier in sorted(tiers):
        capacity = HIERARCHY_TIERS[tier][1]
        members = tiers[tier]
        for ring_start in range(0, len(members), capacity):
            ring = members[ring_start:ring_start + capacity]
            radius = (
                (RING_BASE_RADIUS + RING_STEP * ring_index) * spacing.multiplier
                + spacing.radius_increment * ring_index
            )
            angle_step = 2 * math.pi / len(ring)
            offset = angle_step / 2 if ring_index % 2 else 0.0
            for position, node_index in enumerate(ring):
                angle = offset + angle_step * position
                dx = math.cos(angle) * radius
                dy = math.sin(angle) * radius
                placements[node_index] = Placement(
                    x=anchor.x + dx,
                    y=anchor.y + dy,
                    bias=bias_for_offset(dx, dy),
                    level=tier,
                    importance=nodes[node_index].importance,
                )
            ring_index += 1
    return placements


def _organic_group_key(category: ContentCategory) -> str:
    return 'algorithms' if category.is_algorithm else category.value


def _organic_priority(key: str) -> int:
    if key in ORGANIC_GROUP_PRIORITY:
        return ORGANIC_GROUP_PRIORITY.index(key)
    return len(ORGANIC_GROUP_PRIORITY)


def organic_layout(nodes: List[LayoutNode], anchor: Point, spacing: SpacingSettings) -> List[Placement]:
    """
    Content-grouped branches.

    Nodes of one category share a branch angle; branches follow a fixed
    category priority. Within a branch nodes sit further out by importance
    rank and fan out sideways. Sinusoidal jitter keyed by index keeps the
    result irregular but deterministic.
    """
    groups: Dict[str, List[int]] = {}
    for index, node in enumerate(nodes):
        groups.setdefault(_organic_group_key(node.category), []).append(index)

    ordered_groups = sorted(groups.items(), key=lambda item: _organic_priority(item[0]))
    angle_step = 2 * math.pi / max(len(ordered_groups), 4)
    multiplier = spacing.multiplier

    placements: List[Placement] = [None] * len(nodes)  # type: ignore[list-item]
    for group_index, (_, members) in enumerate(ordered_groups):
        members = sorted(members, key=lambda i: -nodes[i].importance)
        group_angle = angle_step * group_index + math.sin(group_index * 0.7) * 0.3
        dir_x, dir_y = math.cos(group_angle), math.sin(group_angle)
        perp_x, perp_y = -dir_y, dir_x
        count = len(members)

        for rank, node_index in enumerate(members):
            distance = (
                ORGANIC_BASE_DISTANCE + rank * (ORGANIC_NODE_STEP * multiplier + spacing.radius_increment)
                + math.sin(rank * 1.1 + group_index) * 80
            )
            perp_offset = 0.0
            if count > 1:
                max_spread = min(200, 100 + count * 30) * multiplier
                perp_offset = (rank - (count - 1) / 2) * max_spread / max(1, count - 1)
                perp_offset += math.cos(rank * 1.4 + group_index * 0.8) * 50

            placements[node_index] = Placement(
                x=anchor.x + dir_x * distance + perp_x * perp_offset,
                y=anchor.y + dir_y * distance + perp_y * perp_offset,
                bias=bias_for_offset(dir_x, dir_y),
                level=rank,
                importance=nodes[node_index].importance,
            )
    return placements
