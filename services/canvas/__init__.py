"""
Canvas Services

Typed surface of the host canvas consumed by the streaming orchestrator.
"""

from services.canvas.protocol import CanvasCollaborator, CanvasError, NodeHandle, rect_of

__all__ = [
    'CanvasCollaborator',
    'CanvasError',
    'NodeHandle',
    'rect_of',
]
