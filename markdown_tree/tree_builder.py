"""
Incremental section tree for a growing markdown buffer.

The builder re-scans the whole buffer on every update, turns headers it has
not seen before into SectionNode instances and recomputes every node's
content span. Only ``max_depth`` header depths below the first header's level
become nodes; deeper headers fold into the nearest materialized ancestor.
"""

import itertools
import logging
from typing import Dict, Iterator, List, Optional

from models.sections import ROOT_LEVEL, HeaderMatch, SectionNode, TreeUpdate
from markdown_tree.header_scanner import HeaderScanner

logger = logging.getLogger(__name__)


class HierarchyTreeBuilder:
    """
    Stateful section tree builder.

    One instance per streaming session. The implicit root node covers the
    text before the first header and is created up front.

    Args:
        max_depth: Number of header depths materialized as nodes
                   (2 = first header level and one level below)
        id_counter: Monotonic id source owned by the session
        scanner: Header scanner (a fresh one when omitted)
    """

    def __init__(
        self,
        max_depth: int = 2,
        id_counter: Optional[Iterator[int]] = None,
        scanner: Optional[HeaderScanner] = None
    ):
        self.max_depth = max(1, max_depth)
        self._ids = id_counter if id_counter is not None else itertools.count(1)
        self._scanner = scanner or HeaderScanner()

        self.root = SectionNode(
            id=next(self._ids),
            header_level=ROOT_LEVEL,
            header_text="",
            content_start=0,
            content_end=0,
        )
        self._nodes: Dict[int, SectionNode] = {self.root.id: self.root}
        self._order: List[SectionNode] = [self.root]
        # _stack[d] is the latest node materialized at depth index d
        self._stack: List[SectionNode] = []

        self.first_header_level: Optional[int] = None
        self.last_processed_offset = 0
        self.root_retired = False
        self.buffer = ""

    @property
    def nodes(self) -> List[SectionNode]:
        """All nodes in discovery order, root first."""
        return list(self._order)

    @property
    def section_nodes(self) -> List[SectionNode]:
        """Header nodes in discovery order (root excluded)."""
        return self._order[1:]

    @property
    def current_top_level_node(self) -> Optional[SectionNode]:
        """Most recent node at the first header level."""
        return self._stack[0] if self._stack else None

    def get(self, node_id: int) -> SectionNode:
        return self._nodes[node_id]

    def parent_of(self, node: SectionNode) -> Optional[SectionNode]:
        if node.parent_id is None:
            return None
        return self._nodes[node.parent_id]

    def children_of(self, node: SectionNode) -> List[SectionNode]:
        return [self._nodes[child_id] for child_id in node.child_ids]

    def active_node(self) -> Optional[SectionNode]:
        """
        Node receiving trailing header-less text.

        The most recently discovered node that still has a live visual.
        """
        for node in reversed(self._order):
            if node.is_materialized:
                return node
        return None

    def update(self, buffer: str, final: bool = False) -> TreeUpdate:
        """
        Bring the tree up to date with the buffer.

        Args:
            buffer: Full accumulated text (always an extension of the
                    previous buffer)
            final: True once the stream has completed; confirms a trailing
                   header line without a newline

        Returns:
            TreeUpdate describing created and changed nodes
        """
        self.buffer = buffer
        result = TreeUpdate()
        stable_end = self._stable_end(buffer, final)

        new_headers = [
            header for header in self._scanner.scan(buffer)
            if header.start >= self.last_processed_offset and self._is_confirmed(header, buffer, final)
        ]
        for header in new_headers:
            node = self._attach(header)
            if node is not None:
                result.created.append(node)

        # Cursor moves only after the whole pass so comparisons above stay consistent
        if new_headers:
            self.last_processed_offset = new_headers[-1].start + 1

        created_ids = {node.id for node in result.created}
        for index, node in enumerate(self._order):
            if index + 1 < len(self._order):
                end = self._order[index + 1].content_start
            else:
                end = stable_end
            node.extend_to(end)
            content = buffer[node.content_start:node.content_end]
            if content != node.content:
                node.content = content
                if node.id not in created_ids:
                    result.changed.append(node)

        if not self.root_retired and self._should_retire_root(buffer, final):
            self.root_retired = True
            result.retire_root = True
            logger.debug("Root placeholder retired (blank preamble)")

        return result

    def _attach(self, header: HeaderMatch) -> Optional[SectionNode]:
        """Create the node for a newly confirmed header, or fold it."""
        if self.first_header_level is None:
            self.first_header_level = header.level
            logger.debug("First header level set to %d", header.level)

        depth_index = header.level - self.first_header_level
        if depth_index < 0:
            logger.warning(
                "Header '%s' (level %d) is shallower than the first header level %d; attaching to root",
                header.title, header.level, self.first_header_level
            )
            depth_index = 0

        if depth_index >= self.max_depth:
            logger.debug("Folding deep header '%s' (level %d) into its ancestor", header.title, header.level)
            return None

        # A level jump attaches to the deepest existing ancestor
        depth_index = min(depth_index, len(self._stack))
        parent = self._stack[depth_index - 1] if depth_index > 0 else self.root

        node = SectionNode(
            id=next(self._ids),
            header_level=header.level,
            header_text=header.title,
            content_start=header.start,
            content_end=header.start,
            parent_id=parent.id,
            depth=depth_index + 1,
        )
        parent.child_ids.append(node.id)
        self._nodes[node.id] = node
        self._order.append(node)
        del self._stack[depth_index:]
        self._stack.append(node)

        logger.debug("Section '%s' (level %d) attached to node %d", node.header_text, node.header_level, parent.id)
        return node

    def _should_retire_root(self, buffer: str, final: bool) -> bool:
        if len(self._order) > 1:
            return not buffer[:self._order[1].content_start].strip()
        return final and not buffer.strip()

    @staticmethod
    def _is_confirmed(header: HeaderMatch, buffer: str, final: bool) -> bool:
        """A header counts once its line is terminated, or at completion."""
        return final or header.end < len(buffer)

    @staticmethod
    def _stable_end(buffer: str, final: bool) -> int:
        """
        Offset up to which content spans may extend.

        A trailing unterminated line starting with ``#`` may still turn into
        a header, so it is kept out of every span until confirmed.
        """
        if final:
            return len(buffer)
        line_start = buffer.rfind("\n") + 1
        if buffer.startswith("#", line_start):
            return line_start
        return len(buffer)
