"""
Existing-canvas analysis and layout strategy selection.

Looks at the nodes already on the canvas around the anchor (density, row or
column alignment, free space) and at the content being laid out, and picks a
layout strategy when the caller did not force one.
"""

import re
import logging
from typing import Optional, Sequence

from models.common import LayoutStrategy
from models.geometry import Rect, Size
from models.layout import CanvasContext, LayoutNode

logger = logging.getLogger(__name__)

NEARBY_DISTANCE = 1500
ALIGNED_TOLERANCE = 100
ALIGNED_MIN_GAP = 200
DEFAULT_AVAILABLE_SPACE = 2000
CONSTRAINED_SPACE = 3000
DENSE_NEIGHBOURHOOD = 5


def analyze_canvas_context(
    anchor: Rect,
    existing: Sequence[Rect],
    canvas_size: Optional[Size] = None
) -> CanvasContext:
    """
    Summarize the canvas around an anchor node.

    Args:
        anchor: Bounds of the node the layout is anchored on
        existing: Bounds of the other nodes on the canvas
        canvas_size: Finite canvas extent with origin (0, 0); None for an
                     unbounded canvas

    Returns:
        CanvasContext
    """
    center = anchor.center
    nearby = []
    for rect in existing:
        if rect == anchor:
            continue
        if rect.center.distance_to(center) < NEARBY_DISTANCE:
            nearby.append(rect)

    has_vertical = any(
        abs(rect.center.x - center.x) < ALIGNED_TOLERANCE and abs(rect.center.y - center.y) > ALIGNED_MIN_GAP
        for rect in nearby
    )
    has_horizontal = any(
        abs(rect.center.y - center.y) < ALIGNED_TOLERANCE and abs(rect.center.x - center.x) > ALIGNED_MIN_GAP
        for rect in nearby
    )

    if canvas_size is None:
        available = {side: float(DEFAULT_AVAILABLE_SPACE) for side in ('top', 'right', 'bottom', 'left')}
    else:
        available = {
            'top': anchor.y,
            'right': canvas_size.width - anchor.right,
            'bottom': canvas_size.height - anchor.bottom,
            'left': anchor.x,
        }

    return CanvasContext(
        nearby_node_count=len(nearby),
        has_vertical_pattern=has_vertical,
        has_horizontal_pattern=has_horizontal,
        available_space=available,
    )


def select_strategy(nodes: Sequence[LayoutNode], context: Optional[CanvasContext] = None) -> LayoutStrategy:
    """
    Pick a layout strategy from node content and canvas context.

    Dense neighbourhoods favour force/hybrid, an existing row or column
    favours hierarchical, and otherwise the content decides.
    """
    count = len(nodes)
    if count == 0:
        return LayoutStrategy.CROSS

    texts = [node.text for node in nodes]
    has_structured = any('##' in text or re.match(r'^\d+\.', text) or 'Step' in text for text in texts)
    has_code = any('```' in text or 'function' in text or 'class ' in text for text in texts)
    has_mixed = len({node.category for node in nodes}) > 2
    has_important = any(node.importance >= 4 for node in nodes)
    is_complex = sum(len(text) for text in texts) / count > 400

    if context is not None:
        if context.nearby_node_count > DENSE_NEIGHBOURHOOD:
            return LayoutStrategy.HYBRID if count > 8 and has_important else LayoutStrategy.FORCE
        if context.has_vertical_pattern != context.has_horizontal_pattern:
            return LayoutStrategy.HIERARCHICAL
        if context.total_available_space < CONSTRAINED_SPACE:
            return LayoutStrategy.HIERARCHICAL

    if count <= 4:
        return LayoutStrategy.CROSS
    if count > 8 and has_mixed and has_important:
        return LayoutStrategy.HYBRID
    if has_structured and count <= 8:
        return LayoutStrategy.HIERARCHICAL
    if has_code and count > 6:
        return LayoutStrategy.HYBRID if count > 10 else LayoutStrategy.FORCE
    if is_complex or has_mixed:
        return LayoutStrategy.FORCE if count > 10 else LayoutStrategy.ORGANIC
    return LayoutStrategy.ORGANIC
