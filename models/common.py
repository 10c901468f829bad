"""
Common Enums
============

Shared enumerations used across the tree builder, the layout engine and the
streaming orchestrator.

Author: lycosa9527
Made by: MindSpring Team

Copyright 2024-2025 北京思源智教科技有限公司 (Beijing Siyuan Zhijiao Technology Co., Ltd.)
All Rights Reserved
Proprietary License
"""
from enum import Enum



class LayoutStrategy(str, Enum):
    """Supported layout strategies"""
    CROSS = "cross"
    HIERARCHICAL = "hierarchical"
    ORGANIC = "organic"
    FORCE = "force"
    HYBRID = "hybrid"


class SpacingProfile(str, Enum):
    """Spacing density presets"""
    COMPACT = "compact"
    NORMAL = "normal"
    SPACIOUS = "spacious"


class ContentCategory(str, Enum):
    """Content categories detected from section text"""
    ALGORITHM = "algorithm"
    ALGORITHM_FORCE = "algorithm-force"
    ALGORITHM_HIERARCHICAL = "algorithm-hierarchical"
    ALGORITHM_RADIAL = "algorithm-radial"
    ALGORITHM_ORGANIC = "algorithm-organic"
    CODE = "code"
    STEPS = "steps"
    LIST = "list"
    EXAMPLE = "example"
    IMPORTANT = "important"
    SUMMARY = "summary"
    STRUCTURED = "structured"
    GENERAL = "general"

    @property
    def is_algorithm(self) -> bool:
        """True for the algorithm family of categories."""
        return self.value.startswith("algorithm")


class Side(str, Enum):
    """Connection side of a canvas node"""
    TOP = "top"
    RIGHT = "right"
    BOTTOM = "bottom"
    LEFT = "left"

    @property
    def opposite(self) -> "Side":
        """Side facing this one."""
        return _OPPOSITES[self]


_OPPOSITES = {
    Side.TOP: Side.BOTTOM,
    Side.BOTTOM: Side.TOP,
    Side.LEFT: Side.RIGHT,
    Side.RIGHT: Side.LEFT,
}


class StreamState(str, Enum):
    """Lifecycle states of one streaming session"""
    IDLE = "idle"
    STREAMING = "streaming"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Completed and Failed accept no further events."""
        return self in (StreamState.COMPLETED, StreamState.FAILED)
