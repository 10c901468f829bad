"""
Canvas collaborator interface.

The host canvas owns node storage, persistence and undo. The streaming
orchestrator only talks to it through this surface and only reads node
geometry back from the handles it returns.
"""

from typing import Any, Optional, Protocol, runtime_checkable

from models.common import Side
from models.geometry import Point, Rect, Size


class CanvasError(Exception):
    """Raised by a canvas collaborator when an operation cannot be applied."""

    def __init__(self, message: str, error_code: Optional[str] = None, context: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}


@runtime_checkable
class NodeHandle(Protocol):
    """Geometry of a canvas node as reported by the canvas."""

    x: float
    y: float
    width: float
    height: float


class CanvasCollaborator(Protocol):
    """Operations the core needs from the host canvas."""

    def create_node(self, position: Point, text: str, size: Size) -> NodeHandle:
        """Create a text node with its top-left corner at ``position``."""
        ...

    def resize_node(self, handle: NodeHandle, width: float, height: float) -> None:
        """Resize a node in place."""
        ...

    def move_node(self, handle: NodeHandle, x: float, y: float) -> None:
        """Move a node's top-left corner to (x, y)."""
        ...

    def connect(self, from_handle: NodeHandle, to_handle: NodeHandle, from_side: Side, to_side: Side) -> Any:
        """Create an edge; may raise CanvasError."""
        ...

    def remove_node(self, handle: NodeHandle) -> None:
        """Remove a node and its edges."""
        ...

    def set_text(self, handle: NodeHandle, text: str) -> None:
        """Replace a node's text."""
        ...

    def notify(self, message: str) -> None:
        """Show a user-facing notice."""
        ...


def rect_of(handle: NodeHandle) -> Rect:
    """Bounds of a canvas node."""
    return Rect(handle.x, handle.y, handle.width, handle.height)
