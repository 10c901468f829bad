"""
Pytest Configuration
====================

Ensures project root is in Python path for imports and provides a recording
fake of the host canvas.

@author lycosa9527
@made_by MindSpring Team

Copyright 2024-2025 北京思源智教科技有限公司 (Beijing Siyuan Zhijiao Technology Co., Ltd.)
All Rights Reserved
Proprietary License
"""

import sys
from pathlib import Path

import pytest

# Add project root to Python path
project_root = Path(__file__).parent.parent.absolute()
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from models.geometry import Rect  # noqa: E402
from services.canvas.protocol import CanvasError  # noqa: E402


class FakeNode:
    """Canvas node handle with live geometry."""

    def __init__(self, node_id, x, y, width, height, text):
        self.id = node_id
        self.x = x
        self.y = y
        self.width = width
        self.height = height
        self.text = text

    @property
    def rect(self):
        return Rect(self.x, self.y, self.width, self.height)

    def __repr__(self):
        return f"FakeNode({self.id}, {self.text[:20]!r})"


class FakeCanvas:
    """Records every operation the core issues against the canvas."""

    def __init__(self):
        self.calls = []
        self.nodes = {}
        self.edges = []
        self.notices = []
        self.fail_connect = False
        self._next_id = 1

    def add_node(self, x, y, width, height, text=""):
        """Put a node on the canvas without recording a call (test setup)."""
        node = FakeNode(self._next_id, x, y, width, height, text)
        self._next_id += 1
        self.nodes[node.id] = node
        return node

    def create_node(self, position, text, size):
        node = self.add_node(position.x, position.y, size.width, size.height, text)
        self.calls.append(("create_node", node.id))
        return node

    def resize_node(self, handle, width, height):
        self.calls.append(("resize_node", handle.id))
        handle.width = width
        handle.height = height

    def move_node(self, handle, x, y):
        self.calls.append(("move_node", handle.id))
        handle.x = x
        handle.y = y

    def connect(self, from_handle, to_handle, from_side, to_side):
        self.calls.append(("connect", from_handle.id, to_handle.id))
        if self.fail_connect:
            raise CanvasError("edge rejected", error_code="EDGE_REJECTED")
        edge = (from_handle.id, to_handle.id, from_side, to_side)
        self.edges.append(edge)
        return edge

    def remove_node(self, handle):
        self.calls.append(("remove_node", handle.id))
        self.nodes.pop(handle.id, None)
        self.edges = [edge for edge in self.edges if handle.id not in (edge[0], edge[1])]

    def set_text(self, handle, text):
        self.calls.append(("set_text", handle.id))
        handle.text = text

    def notify(self, message):
        self.calls.append(("notify",))
        self.notices.append(message)

    def call_names(self):
        return [call[0] for call in self.calls]


@pytest.fixture
def canvas():
    """Empty recording canvas."""
    return FakeCanvas()


@pytest.fixture
def trigger(canvas):
    """Node the AI response is requested from."""
    return canvas.add_node(0, 0, 400, 100, "What is a mindmap?")


@pytest.fixture
def placeholder(canvas, trigger):
    """Placeholder node created before the stream starts."""
    return canvas.add_node(trigger.x + trigger.width + 60, trigger.y, 400, 60, "Calling AI...")
