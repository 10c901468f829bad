"""
Mindmap Models
==============

Enums, geometry primitives, section-tree and layout dataclasses, and the
immutable session settings.

Author: lycosa9527
Made by: MindSpring Team

Copyright 2024-2025 北京思源智教科技有限公司 (Beijing Siyuan Zhijiao Technology Co., Ltd.)
All Rights Reserved
Proprietary License
"""

from .common import (
    ContentCategory,
    LayoutStrategy,
    Side,
    SpacingProfile,
    StreamState,
)
from .geometry import Point, Rect, Segment, Size
from .layout import CanvasContext, LayoutNode, LayoutResult, Placement
from .sections import (
    HeaderMatch,
    MarkdownSection,
    MarkdownSplitResult,
    SectionEdge,
    SectionNode,
    TreeUpdate,
)
from .settings import (
    GeometrySettings,
    LayoutSettings,
    MindmapSettings,
    SpacingSettings,
    StreamingSettings,
)

__all__ = [
    'ContentCategory',
    'LayoutStrategy',
    'Side',
    'SpacingProfile',
    'StreamState',
    'Point',
    'Rect',
    'Segment',
    'Size',
    'CanvasContext',
    'LayoutNode',
    'LayoutResult',
    'Placement',
    'HeaderMatch',
    'MarkdownSection',
    'MarkdownSplitResult',
    'SectionEdge',
    'SectionNode',
    'TreeUpdate',
    'GeometrySettings',
    'LayoutSettings',
    'MindmapSettings',
    'SpacingSettings',
    'StreamingSettings',
]
