"""
Geometry primitives shared by the layout engine, the collision resolver and
the edge router.

Rectangles use canvas coordinates: (x, y) is the top-left corner, y grows
downwards.
"""
from dataclasses import dataclass
import math


@dataclass(frozen=True)
class Point:
    """A 2D point."""
    x: float
    y: float

    def distance_to(self, other: "Point") -> float:
        """Euclidean distance to another point."""
        return math.hypot(self.x - other.x, self.y - other.y)


@dataclass(frozen=True)
class Size:
    """Width and height of a node in pixels."""
    width: float
    height: float


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle of a canvas node."""
    x: float
    y: float
    width: float
    height: float

    @classmethod
    def centered(cls, center: Point, size: Size) -> "Rect":
        """Build a rectangle of the given size centred on a point."""
        return cls(
            x=center.x - size.width / 2,
            y=center.y - size.height / 2,
            width=size.width,
            height=size.height,
        )

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    @property
    def size(self) -> Size:
        return Size(self.width, self.height)

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def overlaps(self, other: "Rect", padding: float = 0.0) -> bool:
        """True when the two rectangles, each inflated by padding, intersect."""
        return (
            self.x - padding < other.right + padding
            and other.x - padding < self.right + padding
            and self.y - padding < other.bottom + padding
            and other.y - padding < self.bottom + padding
        )


@dataclass(frozen=True)
class Segment:
    """A straight edge segment between two connection points."""
    start: Point
    end: Point

    @property
    def length(self) -> float:
        return self.start.distance_to(self.end)

    def intersects(self, other: "Segment") -> bool:
        """
        Check whether two segments cross.

        Parallel (or nearly parallel) segments are treated as non-crossing, and
        segments that only touch at an endpoint (edges fanning out of the same
        connection point) do not cross.
        """
        p1, p2, p3, p4 = self.start, self.end, other.start, other.end
        denominator = (p4.y - p3.y) * (p2.x - p1.x) - (p4.x - p3.x) * (p2.y - p1.y)
        if abs(denominator) < 0.001:
            return False

        ua = ((p4.x - p3.x) * (p1.y - p3.y) - (p4.y - p3.y) * (p1.x - p3.x)) / denominator
        ub = ((p2.x - p1.x) * (p1.y - p3.y) - (p2.y - p1.y) * (p1.x - p3.x)) / denominator
        eps = 1e-6
        return eps < ua < 1 - eps and eps < ub < 1 - eps
