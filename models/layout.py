"""
Data models for the layout engine.

LayoutNode instances are ephemeral: one per node per layout pass. Positions
are always recomputed, never accumulated across passes.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .common import ContentCategory, LayoutStrategy, Side
from .geometry import Point, Size


@dataclass
class LayoutNode:
    """A sized, weighted node handed to a layout strategy."""
    width: float
    height: float
    importance: float = 1.0
    category: ContentCategory = ContentCategory.GENERAL
    text: str = ""
    key: Optional[int] = None
    position: Optional["Placement"] = None

    @property
    def size(self) -> Size:
        return Size(self.width, self.height)


@dataclass
class Placement:
    """
    Position assigned to a layout node.

    (x, y) is the node centre. ``bias`` is the direction of the node relative
    to its anchor, used by the edge router to pick connection sides.
    """
    x: float
    y: float
    bias: Optional[Side] = None
    level: int = 0
    importance: float = 1.0

    @property
    def point(self) -> Point:
        return Point(self.x, self.y)


@dataclass
class LayoutResult:
    """Placements for one layout pass, in input order."""
    placements: List[Placement]
    strategy: LayoutStrategy
    converged: bool = True

    @property
    def points(self) -> List[Point]:
        return [placement.point for placement in self.placements]


@dataclass
class CanvasContext:
    """Summary of the existing canvas content around an anchor node."""
    nearby_node_count: int = 0
    has_vertical_pattern: bool = False
    has_horizontal_pattern: bool = False
    available_space: Dict[str, float] = field(default_factory=dict)

    @property
    def total_available_space(self) -> float:
        return sum(self.available_space.values())
