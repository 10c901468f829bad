"""
Layout Module

Node size estimation, the five layout strategies (cross, hierarchical,
organic, force-directed, hybrid), collision resolution, edge routing and
canvas-context driven strategy selection.

Author: MindSpring Team
Copyright 2024-2025 北京思源智教科技有限公司
"""

from layout.canvas_context import analyze_canvas_context, select_strategy
from layout.collision import resolve_collisions
from layout.edge_router import route_edge
from layout.engine import build_layout_node, layout
from layout.geometry_estimator import estimate_height, estimate_size

__all__ = [
    "analyze_canvas_context",
    "select_strategy",
    "resolve_collisions",
    "route_edge",
    "build_layout_node",
    "layout",
    "estimate_height",
    "estimate_size",
]
