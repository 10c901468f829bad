"""
Layout engine entry point.

Dispatches to one of the five strategies, applies the small-set cross
override and runs the collision resolver after the non-physics strategies.

Copyright 2024-2025 北京思源智教科技有限公司 (Beijing Siyuan Zhijiao Technology Co., Ltd.)
All Rights Reserved
Proprietary License
"""

import logging
from typing import List, Optional, Sequence

from models.common import LayoutStrategy
from models.geometry import Point, Rect
from models.layout import CanvasContext, LayoutNode, LayoutResult
from models.settings import GeometrySettings, LayoutSettings, SpacingSettings
from markdown_tree.content_detector import calculate_importance, detect_category
from layout.canvas_context import select_strategy
from layout.collision import resolve_collisions
from layout.force_simulation import force_directed_layout, hybrid_layout
from layout.geometry_estimator import estimate_size
from layout.strategies import cross_layout, hierarchical_layout, organic_layout

logger = logging.getLogger(__name__)

SMALL_SET_SIZE = 4

_STATIC_STRATEGIES = {
    LayoutStrategy.CROSS: cross_layout,
    LayoutStrategy.HIERARCHICAL: hierarchical_layout,
    LayoutStrategy.ORGANIC: organic_layout,
}


def build_layout_node(text: str, geometry: Optional[GeometrySettings] = None, key: Optional[int] = None) -> LayoutNode:
    """Layout node for a piece of text: category, importance and estimated size."""
    category = detect_category(text)
    size = estimate_size(text, category, geometry)
    return LayoutNode(
        width=size.width,
        height=size.height,
        importance=calculate_importance(text, category),
        category=category,
        text=text,
        key=key,
    )


def layout(
    nodes: List[LayoutNode],
    anchor: Point,
    spacing: Optional[SpacingSettings] = None,
    strategy: Optional[LayoutStrategy] = None,
    context: Optional[CanvasContext] = None,
    settings: Optional[LayoutSettings] = None,
    obstacles: Sequence[Rect] = ()
) -> LayoutResult:
    """
    Position nodes around an anchor.

    Args:
        nodes: Nodes to place (sizes and weights)
        anchor: Centre the layout is arranged around
        spacing: Spacing profile numbers
        strategy: Forced strategy; falls back to settings.strategy, then to
                  auto-selection from content and context
        context: Existing-canvas summary used by auto-selection
        settings: Engine tuning
        obstacles: Fixed rectangles the non-physics layouts are pushed off

    Returns:
        LayoutResult with one placement per node, in input order
    """
    spacing = spacing or SpacingSettings()
    settings = settings or LayoutSettings()

    if not nodes:
        return LayoutResult(placements=[], strategy=strategy or LayoutStrategy.CROSS)

    if len(nodes) <= SMALL_SET_SIZE:
        chosen = LayoutStrategy.CROSS
    else:
        chosen = strategy or settings.strategy
        if chosen is None:
            chosen = select_strategy(nodes, context)
            logger.debug("Auto-selected %s layout for %d nodes", chosen.value, len(nodes))

    if chosen == LayoutStrategy.FORCE:
        result = force_directed_layout(nodes, anchor, spacing, settings)
    elif chosen == LayoutStrategy.HYBRID:
        result = hybrid_layout(nodes, anchor, spacing, settings)
    else:
        placements = _STATIC_STRATEGIES[chosen](nodes, anchor, spacing)
        converged = resolve_collisions(
            nodes,
            placements,
            padding=settings.collision_padding,
            iterations=settings.collision_iterations,
            obstacles=obstacles,
        )
        result = LayoutResult(placements=placements, strategy=chosen, converged=converged)

    for node, placement in zip(nodes, result.placements):
        node.position = placement
    return result
