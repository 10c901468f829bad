"""
Streaming Session Support
=========================

Session result and metrics types, plus the transient progress and controls
nodes shown next to the trigger node while a response streams in.

Author: lycosa9527
Made by: MindSpring Team

Copyright 2024-2025 北京思源智教科技有限公司 (Beijing Siyuan Zhijiao Technology Co., Ltd.)
All Rights Reserved
Proprietary License
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from models.common import StreamState
from models.geometry import Point, Rect, Size
from models.sections import SectionNode
from models.settings import StreamingSettings
from services.canvas.protocol import CanvasCollaborator, CanvasError, NodeHandle
from services.streaming.exceptions import StreamingError

logger = logging.getLogger(__name__)

INDICATOR_WIDTH = 360
PROGRESS_HEIGHT = 60
CONTROLS_HEIGHT = 100
INDICATOR_GAP = 20

# Seconds before transient nodes are removed
CONTROLS_REMOVE_DELAY = 1.0
PROGRESS_REMOVE_DELAY = 2.0
FAILED_PROGRESS_REMOVE_DELAY = 5.0

STREAMING_INDICATOR = "●"
STOPPED_MARKER = "⏹️ Streaming stopped by user"
FAILED_PREFIX = "❌ Streaming failed: "


@dataclass
class StreamMetrics:
    """Counters of one streaming session. Times come from the event loop clock."""
    token_count: int = 0
    char_count: int = 0
    error_count: int = 0
    started_at: Optional[float] = None
    finished_at: Optional[float] = None

    def record_token(self, text: str, now: float) -> None:
        if self.started_at is None:
            self.started_at = now
        self.token_count += 1
        self.char_count += len(text)

    def elapsed(self, now: Optional[float] = None) -> float:
        """Seconds since the first token (frozen once finished)."""
        if self.started_at is None:
            return 0.0
        end = self.finished_at if self.finished_at is not None else now
        if end is None:
            return 0.0
        return max(0.0, end - self.started_at)

    def tokens_per_second(self, now: Optional[float] = None) -> float:
        elapsed = self.elapsed(now)
        return self.token_count / elapsed if elapsed > 0 else 0.0

    def chars_per_second(self, now: Optional[float] = None) -> float:
        elapsed = self.elapsed(now)
        return self.char_count / elapsed if elapsed > 0 else 0.0


@dataclass
class SessionResult:
    """Value the session result future resolves with."""
    state: StreamState
    text: str
    nodes: List[SectionNode] = field(default_factory=list)
    metrics: StreamMetrics = field(default_factory=StreamMetrics)
    error: Optional[StreamingError] = None
    cancelled: bool = False

    @property
    def succeeded(self) -> bool:
        return self.state == StreamState.COMPLETED and self.error is None


def progress_text(metrics: StreamMetrics, node_count: int, now: float, include_errors: bool = False) -> str:
    """Text of the progress node."""
    text = (
        f"📊 Streaming: {metrics.token_count} tokens | {metrics.char_count} chars | "
        f"{metrics.chars_per_second(now):.0f} chars/sec | {node_count} nodes"
    )
    if include_errors and metrics.error_count:
        text += f" | {metrics.error_count} errors"
    return text


def controls_text(paused: bool) -> str:
    """Text of the controls node."""
    status = "(Paused)" if paused else "(Streaming...)"
    actions = "▶️ Resume | ⏹️ Stop" if paused else "⏸️ Pause | ⏹️ Stop"
    return f"🎛️ Streaming Controls {status}\n{actions}\n\nClick to interact"


class StreamIndicators:
    """
    Progress and controls nodes of one session.

    Both are optional (``show_progress`` / ``enable_controls``). They sit
    above the trigger node and are removed on a delay once the session ends,
    or immediately when the user stops the stream.
    """

    def __init__(
        self,
        canvas: CanvasCollaborator,
        trigger: Rect,
        settings: StreamingSettings,
        loop: asyncio.AbstractEventLoop
    ):
        self.canvas = canvas
        self.trigger = trigger
        self.settings = settings
        self.loop = loop
        self.progress: Optional[NodeHandle] = None
        self.controls: Optional[NodeHandle] = None
        self._pending: List[Tuple[asyncio.TimerHandle, NodeHandle]] = []

    @property
    def enabled(self) -> bool:
        return self.settings.show_progress or self.settings.enable_controls

    def open(self) -> None:
        """Create the enabled indicator nodes."""
        top = self.trigger.y - INDICATOR_GAP
        try:
            if self.settings.show_progress and self.progress is None:
                top -= PROGRESS_HEIGHT
                self.progress = self.canvas.create_node(
                    Point(self.trigger.x, top),
                    "📊 Streaming: 0 tokens | 0 chars | 0 chars/sec | 0 nodes",
                    Size(INDICATOR_WIDTH, PROGRESS_HEIGHT),
                )
                top -= INDICATOR_GAP
            if self.settings.enable_controls and self.controls is None:
                self.controls = self.canvas.create_node(
                    Point(self.trigger.x, top - CONTROLS_HEIGHT),
                    controls_text(paused=False),
                    Size(INDICATOR_WIDTH, CONTROLS_HEIGHT),
                )
        except CanvasError as e:
            logger.warning("Could not create streaming indicator: %s", e.message)

    def update_progress(self, metrics: StreamMetrics, node_count: int) -> None:
        if self.progress is None:
            return
        text = progress_text(metrics, node_count, self.loop.time(), self.settings.enable_metrics)
        self._set_text(self.progress, text)

    def update_controls(self, paused: bool) -> None:
        if self.controls is None:
            return
        self._set_text(self.controls, controls_text(paused))

    def finish(self, state: StreamState, message: Optional[str] = None) -> None:
        """Schedule removal after the session reached a terminal state."""
        if self.controls is not None:
            self._remove_later(self.controls, CONTROLS_REMOVE_DELAY)
            self.controls = None
        if self.progress is not None:
            if state == StreamState.FAILED:
                self._set_text(self.progress, f"{FAILED_PREFIX}{message or 'unknown error'}")
                self._remove_later(self.progress, FAILED_PROGRESS_REMOVE_DELAY)
            else:
                self._remove_later(self.progress, PROGRESS_REMOVE_DELAY)
            self.progress = None

    def close_now(self) -> None:
        """Remove every indicator immediately, including ones already scheduled."""
        for timer, node in self._pending:
            timer.cancel()
            self._remove(node)
        self._pending.clear()
        for node in (self.controls, self.progress):
            if node is not None:
                self._remove(node)
        self.controls = None
        self.progress = None

    def _remove_later(self, node: NodeHandle, delay: float) -> None:
        timer = self.loop.call_later(delay, self._remove_scheduled, node)
        self._pending.append((timer, node))

    def _remove_scheduled(self, node: NodeHandle) -> None:
        self._pending = [(timer, pending) for timer, pending in self._pending if pending is not node]
        self._remove(node)

    def _remove(self, node: NodeHandle) -> None:
        try:
            self.canvas.remove_node(node)
        except CanvasError as e:
            logger.warning("Could not remove streaming indicator: %s", e.message)

    def _set_text(self, node: NodeHandle, text: str) -> None:
        try:
            self.canvas.set_text(node, text)
        except CanvasError as e:
            logger.warning("Could not update streaming indicator: %s", e.message)
