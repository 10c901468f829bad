"""
Streaming Mindmap Orchestrator
==============================

Turns an incrementally arriving markdown response into a live mindmap on the
host canvas. Token events update the text buffer and schedule a throttled
refresh; each refresh runs the tree builder, lays out and materializes new
sections, re-positions existing ones and pushes grown text to the canvas.

One orchestrator per AI invocation. All work happens on the event loop
thread; nothing here blocks on I/O.

Author: lycosa9527
Made by: MindSpring Team

Copyright 2024-2025 北京思源智教科技有限公司 (Beijing Siyuan Zhijiao Technology Co., Ltd.)
All Rights Reserved
Proprietary License
"""

import asyncio
import itertools
import logging
import math
from dataclasses import dataclass
from typing import AsyncIterable, Callable, Dict, List, Optional, Sequence, Tuple

from models.common import Side, StreamState
from models.geometry import Point, Rect, Segment, Size
from models.layout import LayoutNode, Placement
from models.sections import SectionNode
from models.settings import MindmapSettings
from markdown_tree.content_detector import detect_category
from markdown_tree.section_splitter import split_into_sections
from markdown_tree.tree_builder import HierarchyTreeBuilder
from layout.canvas_context import analyze_canvas_context
from layout.collision import resolve_collisions
from layout.edge_router import edge_segment, route_edge
from layout.engine import build_layout_node, layout
from layout.geometry_estimator import estimate_size
from services.canvas.protocol import CanvasCollaborator, CanvasError, NodeHandle, rect_of
from services.streaming.exceptions import InvalidTransitionError, TransportFailure
from services.streaming.session import (
    FAILED_PREFIX,
    STOPPED_MARKER,
    STREAMING_INDICATOR,
    SessionResult,
    StreamIndicators,
    StreamMetrics,
)
from services.streaming.state_machine import StreamStateMachine

logger = logging.getLogger(__name__)

PLACEHOLDER_TEXT = "Calling AI..."
PLACEHOLDER_HEIGHT = 60
NEW_NODE_MARGIN = 60
MOVE_TOLERANCE = 0.5


@dataclass
class EdgeRecord:
    """An edge created by this session, kept for crossing estimates."""
    source: NodeHandle
    target: NodeHandle
    from_side: Side
    to_side: Side

    @property
    def segment(self) -> Segment:
        return edge_segment(rect_of(self.source), rect_of(self.target), self.from_side, self.to_side)


class StreamingOrchestrator:
    """
    Drives one streaming session.

    Must be constructed inside a running event loop. The transport calls
    ``on_token``, ``on_complete`` and ``on_error``; the user surface calls
    ``pause``, ``resume`` and ``cancel``. Every handler returns False when
    the event is rejected (e.g. after the session reached a terminal state).

    Args:
        canvas: Host canvas collaborator
        trigger: Node the response was requested from
        placeholder: "Calling AI..." node standing in for the root section
        settings: Immutable session settings
        existing: Bounds of unrelated nodes already on the canvas
        canvas_size: Finite canvas extent, None for an unbounded canvas
    """

    def __init__(
        self,
        canvas: CanvasCollaborator,
        trigger: NodeHandle,
        placeholder: Optional[NodeHandle],
        settings: Optional[MindmapSettings] = None,
        existing: Sequence[Rect] = (),
        canvas_size: Optional[Size] = None
    ):
        self.canvas = canvas
        self.trigger = trigger
        self.settings = settings or MindmapSettings()
        self.existing = list(existing)
        self.canvas_size = canvas_size
        self._loop = asyncio.get_running_loop()

        self._ids = itertools.count(1)
        self.builder = HierarchyTreeBuilder(self.settings.streaming.max_depth, id_counter=self._ids)
        self.builder.root.visual_ref = placeholder
        self.state_machine = StreamStateMachine()
        self.metrics = StreamMetrics()
        self.indicators = StreamIndicators(canvas, rect_of(trigger), self.settings.streaming, self._loop)
        self.edges: List[EdgeRecord] = []

        self.buffer = ""
        self.refresh_count = 0
        self._paused_tokens: List[str] = []
        self._deferred_completion = False
        self._deferred_text: Optional[str] = None
        self._pushed_text: Dict[int, str] = {}
        self._pushed_size: Dict[int, Size] = {}

        self._last_refresh_at = float("-inf")
        self._refresh_handle: Optional[asyncio.TimerHandle] = None
        self._watchdog_handle: Optional[asyncio.TimerHandle] = None
        self._result: "asyncio.Future[SessionResult]" = self._loop.create_future()

        self._arm_watchdog()

    # ------------------------------------------------------------------
    # Session surface
    # ------------------------------------------------------------------

    @property
    def state(self) -> StreamState:
        return self.state_machine.state

    @property
    def placeholder(self) -> Optional[NodeHandle]:
        return self.builder.root.visual_ref

    @property
    def section_nodes(self) -> List[SectionNode]:
        return self.builder.section_nodes

    @property
    def done(self) -> bool:
        return self._result.done()

    @property
    def retry_attempts(self) -> int:
        """Retry budget the transport should spend before reporting a failure."""
        return self.settings.streaming.retry_attempts

    @property
    def timeout(self) -> float:
        """Per-request transport timeout in seconds."""
        return self.settings.streaming.timeout

    async def wait(self) -> SessionResult:
        """Wait for the session to reach Completed or Failed."""
        return await self._result

    def link(self, source: NodeHandle, target: NodeHandle, bias: Optional[Side] = None) -> bool:
        """Connect two nodes with routed sides and remember the edge."""
        segments = [edge.segment for edge in self.edges]
        from_side, to_side = route_edge(rect_of(source), rect_of(target), bias, segments)
        try:
            self.canvas.connect(source, target, from_side, to_side)
        except CanvasError as e:
            logger.warning("Canvas refused edge %s -> %s: %s", from_side.value, to_side.value, e.message)
            return False
        self.edges.append(EdgeRecord(source, target, from_side, to_side))
        return True

    # ------------------------------------------------------------------
    # Transport events
    # ------------------------------------------------------------------

    def on_token(self, text: str) -> bool:
        if self._rejected("token"):
            return False
        if self.state == StreamState.IDLE:
            self.state_machine.transition(StreamState.STREAMING)
            self.indicators.open()
            logger.info("Streaming started")

        self._arm_watchdog()
        if self.state == StreamState.PAUSED:
            self._paused_tokens.append(text)
            return True

        self._consume(text)
        self._schedule_refresh()
        return True

    def on_complete(self, full_text: Optional[str] = None) -> bool:
        """
        Transport finished successfully.

        Args:
            full_text: Complete response as reported by the transport; it
                       replaces the streamed buffer when it extends it
        """
        if self._rejected("completion"):
            return False
        if self.state == StreamState.PAUSED:
            self._deferred_completion = True
            self._deferred_text = full_text
            logger.debug("Completion deferred until the session is resumed")
            return True

        self._complete(full_text)
        return True

    def on_error(self, error: BaseException) -> bool:
        """Transport gave up after exhausting its retries."""
        if self._rejected("error"):
            return False

        failure = error if isinstance(error, TransportFailure) else TransportFailure(error)
        self.metrics.error_count += 1
        logger.error(
            "Streaming failed after %d tokens: %s", self.metrics.token_count, failure.message
        )

        self.state_machine.transition(StreamState.FAILED)
        self._cancel_timers()
        self._drain_paused_tokens()
        self._refresh(final=False)

        active = self.builder.active_node()
        if active is not None:
            self._set_text(active, f"{FAILED_PREFIX}{failure.message}")
        self._safe(self.canvas.notify, f"Streaming failed: {failure.message}")

        self.indicators.finish(StreamState.FAILED, failure.message)
        self._resolve(error=failure)
        return True

    async def run_stream(self, chunks: AsyncIterable[str]) -> SessionResult:
        """
        Feed an async iterable of text chunks through the session.

        Any exception raised by the iterable is treated as the transport's
        final failure.
        """
        try:
            async for chunk in chunks:
                if not self.on_token(chunk):
                    break
        except Exception as e:
            self.on_error(e)
        else:
            if not self.state.is_terminal:
                self.on_complete(None)
        return await self._result

    async def render_response(self, text: str, auto_split: bool = False, max_sections: int = 0) -> SessionResult:
        """
        Lay out a complete (non-streamed) response.

        Args:
            text: Full response text
            auto_split: Split header-less text into category-headed sections first
            max_sections: Section cap for auto-split (0 = no limit)
        """
        document = text
        if auto_split:
            document = "\n\n".join(split_into_sections(text, max_sections))
        if document:
            self.on_token(document)
        self.on_complete(document)
        return await self._result

    # ------------------------------------------------------------------
    # User controls
    # ------------------------------------------------------------------

    def pause(self) -> bool:
        if not self._try_transition(StreamState.PAUSED):
            return False
        self.indicators.update_controls(paused=True)
        logger.info("Streaming paused")
        return True

    def resume(self) -> bool:
        """Resume consumption and replay tokens buffered while paused."""
        if self.state != StreamState.PAUSED:
            logger.warning("Ignoring resume: session is %s", self.state.value)
            return False
        if not self._try_transition(StreamState.STREAMING):
            return False
        self.indicators.update_controls(paused=False)
        logger.info("Streaming resumed (%d buffered tokens)", len(self._paused_tokens))

        if self._drain_paused_tokens():
            self._schedule_refresh()

        if self._deferred_completion:
            self._deferred_completion = False
            self._complete(self._deferred_text)
        return True

    def cancel(self) -> bool:
        """User stop: complete with all text received so far, including tokens buffered while paused."""
        if self._rejected("stop"):
            return False
        logger.info("Streaming stopped by user")
        self._complete(None, cancelled=True)
        return True

    stop = cancel

    def flush(self) -> None:
        """Run a pending refresh now instead of waiting for the throttle."""
        if self._refresh_handle is not None:
            self._refresh_handle.cancel()
            self._refresh_handle = None
        if not self.state.is_terminal:
            self._refresh(final=False)

    # ------------------------------------------------------------------
    # Lifecycle internals
    # ------------------------------------------------------------------

    def _rejected(self, event: str) -> bool:
        if self.state.is_terminal:
            logger.warning("Ignoring %s: session already %s", event, self.state.value)
            return True
        return False

    def _try_transition(self, target: StreamState) -> bool:
        try:
            self.state_machine.transition(target)
        except InvalidTransitionError as e:
            logger.warning("Rejected event: %s", e.message)
            return False
        return True

    def _consume(self, text: str) -> None:
        self.buffer += text
        self.metrics.record_token(text, self._loop.time())

    def _drain_paused_tokens(self) -> int:
        """Consume tokens that arrived while paused, in arrival order."""
        tokens, self._paused_tokens = self._paused_tokens, []
        for token in tokens:
            self._consume(token)
        if tokens:
            logger.debug("Consumed %d tokens buffered while paused", len(tokens))
        return len(tokens)

    def _complete(self, full_text: Optional[str], cancelled: bool = False) -> None:
        self._drain_paused_tokens()
        if full_text is not None and full_text != self.buffer:
            if full_text.startswith(self.buffer):
                self.buffer = full_text
                self.metrics.char_count = len(full_text)
            else:
                logger.warning("Completion text does not extend the streamed text, keeping streamed text")

        self.state_machine.transition(StreamState.COMPLETED)
        self._cancel_timers()
        self._refresh(final=True)

        if cancelled:
            active = self.builder.active_node()
            if active is not None:
                shown = active.display_text
                self._set_text(active, f"{shown}\n\n{STOPPED_MARKER}" if shown else STOPPED_MARKER)
            self.indicators.close_now()
        else:
            self.indicators.finish(StreamState.COMPLETED)

        self._resolve(cancelled=cancelled)

    def _resolve(self, error: Optional[TransportFailure] = None, cancelled: bool = False) -> None:
        now = self._loop.time()
        if self.metrics.finished_at is None and self.metrics.started_at is not None:
            self.metrics.finished_at = now
        logger.info(
            "Streaming session %s: %d tokens, %d chars, %d sections in %.2fs",
            self.state.value, self.metrics.token_count, self.metrics.char_count,
            len(self.builder.section_nodes), self.metrics.elapsed(now)
        )
        if not self._result.done():
            self._result.set_result(SessionResult(
                state=self.state,
                text=self.buffer,
                nodes=self.builder.section_nodes,
                metrics=self.metrics,
                error=error,
                cancelled=cancelled,
            ))

    def _arm_watchdog(self) -> None:
        if self._watchdog_handle is not None:
            self._watchdog_handle.cancel()
        self._watchdog_handle = self._loop.call_later(
            self.settings.streaming.watchdog_delay, self._on_watchdog
        )

    def _on_watchdog(self) -> None:
        self._watchdog_handle = None
        if self.state.is_terminal:
            return
        logger.warning(
            "No stream activity for %.1fs, forcing completion", self.settings.streaming.watchdog_delay
        )
        self._deferred_completion = False
        self._complete(self._deferred_text)

    def _cancel_timers(self) -> None:
        for handle in (self._refresh_handle, self._watchdog_handle):
            if handle is not None:
                handle.cancel()
        self._refresh_handle = None
        self._watchdog_handle = None

    # ------------------------------------------------------------------
    # Refresh pass
    # ------------------------------------------------------------------

    def _schedule_refresh(self) -> None:
        """Coalesce refresh requests into at most one per update interval."""
        if self._refresh_handle is not None:
            return
        elapsed = self._loop.time() - self._last_refresh_at
        delay = max(0.0, self.settings.streaming.update_interval - elapsed)
        self._refresh_handle = self._loop.call_later(delay, self._scheduled_refresh)

    def _scheduled_refresh(self) -> None:
        self._refresh_handle = None
        if self.state.is_terminal:
            return
        self._refresh(final=False)

    def _refresh(self, final: bool) -> None:
        self._last_refresh_at = self._loop.time()
        self.refresh_count += 1

        update = self.builder.update(self.buffer, final=final)
        if update.retire_root:
            self._retire_placeholder()
        if update.has_structure_change or (final and self.builder.section_nodes):
            self._arrange()
        self._push_content()
        self.indicators.update_progress(self.metrics, len(self.builder.section_nodes))

    def _retire_placeholder(self) -> None:
        root = self.builder.root
        handle = root.visual_ref
        if handle is None:
            return
        root.visual_ref = None
        self.edges = [edge for edge in self.edges if edge.source is not handle and edge.target is not handle]
        self._pushed_text.pop(root.id, None)
        self._pushed_size.pop(root.id, None)
        self._safe(self.canvas.remove_node, handle)

    def _arrange(self) -> None:
        """
        Lay out every section node and bring the canvas in line.

        Top-level sections are arranged around the root visual (the trigger
        once the placeholder is retired); children around a point pushed
        outwards from their parent. A final collision pass runs over all
        sections with the anchor nodes as obstacles.
        """
        sections = self.builder.section_nodes
        if not sections:
            return

        root = self.builder.root
        root_rect = rect_of(root.visual_ref) if root.visual_ref is not None else rect_of(self.trigger)
        targets: Dict[int, Tuple[LayoutNode, Placement]] = {}

        for parent in [root] + sections:
            children = self.builder.children_of(parent)
            if not children:
                continue
            if parent is root:
                anchor_rect = root_rect
                anchor = root_rect.center
            else:
                parent_node, parent_placement = targets[parent.id]
                anchor_rect = Rect.centered(parent_placement.point, parent_node.size)
                anchor = self._outward(parent_placement.point, root_rect.center)

            nodes = [
                build_layout_node(child.display_text, self.settings.geometry, key=child.id)
                for child in children
            ]
            context = analyze_canvas_context(anchor_rect, self.existing, self.canvas_size)
            result = layout(
                nodes,
                anchor,
                spacing=self.settings.spacing,
                context=context,
                settings=self.settings.layout,
                obstacles=[anchor_rect],
            )
            for child, node, placement in zip(children, nodes, result.placements):
                targets[child.id] = (node, placement)

        ordered = [section for section in sections if section.id in targets]
        nodes = [targets[section.id][0] for section in ordered]
        placements = [targets[section.id][1] for section in ordered]
        obstacles = [rect_of(self.trigger)] + self.existing
        if root.visual_ref is not None:
            obstacles.append(root_rect)
        resolve_collisions(
            nodes,
            placements,
            padding=self.settings.layout.collision_padding,
            iterations=self.settings.layout.collision_iterations,
            obstacles=obstacles,
        )

        # Existing nodes move first so new edges are routed against final geometry
        created = []
        for section, node, placement in zip(ordered, nodes, placements):
            rect = Rect.centered(placement.point, node.size)
            if section.visual_ref is None:
                created.append((section, rect, placement.bias))
                continue
            handle = section.visual_ref
            if abs(handle.x - rect.x) > MOVE_TOLERANCE or abs(handle.y - rect.y) > MOVE_TOLERANCE:
                self._safe(self.canvas.move_node, handle, rect.x, rect.y)

        for section, rect, bias in created:
            self._materialize(section, rect, bias)

    def _materialize(self, section: SectionNode, rect: Rect, bias: Optional[Side]) -> None:
        text = section.display_text
        handle = self._safe(self.canvas.create_node, Point(rect.x, rect.y), text, rect.size)
        if handle is None:
            return
        section.visual_ref = handle
        self._pushed_text[section.id] = text
        self._pushed_size[section.id] = rect.size
        logger.debug("Materialized section %d '%s'", section.id, section.header_text)

        parent = self.builder.parent_of(section)
        if parent is not None and parent.visual_ref is not None:
            source = parent.visual_ref
        else:
            source = self.trigger
        self.link(source, handle, bias)

    def _push_content(self) -> None:
        """Send grown text and sizes of materialized nodes to the canvas."""
        streaming = self.state in (StreamState.STREAMING, StreamState.PAUSED)
        active = self.builder.active_node() if streaming else None

        for section in self.builder.nodes:
            if section.visual_ref is None:
                continue
            shown = section.display_text
            # The placeholder keeps its own text until preamble text arrives
            if section.is_root and not shown:
                continue
            text = shown
            if active is not None and section.id == active.id:
                text = f"{shown} {STREAMING_INDICATOR}"
            if self._pushed_text.get(section.id) != text:
                self._set_text(section, text)

            size = estimate_size(shown, detect_category(shown), self.settings.geometry)
            if self._pushed_size.get(section.id) != size:
                self._safe(self.canvas.resize_node, section.visual_ref, size.width, size.height)
                self._pushed_size[section.id] = size

    def _set_text(self, section: SectionNode, text: str) -> None:
        if section.visual_ref is None:
            return
        self._safe(self.canvas.set_text, section.visual_ref, text)
        self._pushed_text[section.id] = text

    def _outward(self, point: Point, origin: Point) -> Point:
        """Point pushed away from origin by the spacing profile's minimum radius."""
        dx, dy = point.x - origin.x, point.y - origin.y
        distance = math.hypot(dx, dy)
        if distance < 1e-6:
            return point
        offset = self.settings.spacing.min_radius
        return Point(point.x + dx / distance * offset, point.y + dy / distance * offset)

    @staticmethod
    def _safe(operation: Callable, *args):
        """Apply a canvas operation; a refused operation is logged, not raised."""
        try:
            return operation(*args)
        except CanvasError as e:
            logger.warning("Canvas %s failed: %s", getattr(operation, "__name__", "operation"), e.message)
            return None


def open_session(
    canvas: CanvasCollaborator,
    trigger: NodeHandle,
    settings: Optional[MindmapSettings] = None,
    existing: Sequence[Rect] = (),
    canvas_size: Optional[Size] = None,
    model_name: Optional[str] = None
) -> StreamingOrchestrator:
    """
    Start a streaming session next to a trigger node.

    Creates the "Calling AI..." placeholder to the right of the trigger,
    connects it and returns the orchestrator the transport should feed.
    Must be called inside a running event loop.

    Raises:
        CanvasError: If the canvas cannot create the placeholder
    """
    settings = settings or MindmapSettings()
    trigger_rect = rect_of(trigger)
    size = Size(max(settings.geometry.min_width, trigger_rect.width), PLACEHOLDER_HEIGHT)
    text = f"Calling AI ({model_name})..." if model_name else PLACEHOLDER_TEXT

    placeholder = canvas.create_node(Point(trigger_rect.right + NEW_NODE_MARGIN, trigger_rect.y), text, size)
    orchestrator = StreamingOrchestrator(canvas, trigger, placeholder, settings, existing, canvas_size)
    orchestrator.link(trigger, placeholder, Side.RIGHT)
    return orchestrator
