"""
Data models for the markdown section tree.

Defines the structures produced by the header scanner and maintained by the
hierarchy tree builder:
- HeaderMatch: one markdown header line found in the buffer
- SectionNode: one element of the section tree
- TreeUpdate: what changed during one tree builder pass
- MarkdownSection / SectionEdge / MarkdownSplitResult: non-streaming split of a
  complete document
"""
from dataclasses import dataclass, field
from typing import Any, List, Optional


ROOT_LEVEL = 0


@dataclass(frozen=True)
class HeaderMatch:
    """A markdown header line (``#`` .. ``######``) located in a text buffer."""
    level: int
    title: str
    start: int
    end: int


@dataclass
class SectionNode:
    """
    Tree element representing one markdown header's scope of content.

    ``content_start``/``content_end`` delimit the node's slice of the
    accumulating buffer. The end only ever grows. ``visual_ref`` is the handle
    returned by the canvas collaborator once the node has been materialized.
    """
    id: int
    header_level: int
    header_text: str
    content_start: int
    content_end: int
    parent_id: Optional[int] = None
    child_ids: List[int] = field(default_factory=list)
    depth: int = 0
    visual_ref: Optional[Any] = None
    content: str = ""

    @property
    def is_root(self) -> bool:
        """Only the implicit root has no parent."""
        return self.parent_id is None

    @property
    def is_materialized(self) -> bool:
        """True while the node is bound to a live canvas node."""
        return self.visual_ref is not None

    @property
    def display_text(self) -> str:
        """Text shown on the canvas node (header line included)."""
        return self.content.rstrip()

    @property
    def body(self) -> str:
        """Content without the header line, surrounding whitespace stripped."""
        if self.header_level == ROOT_LEVEL:
            return self.content.strip()
        _, _, rest = self.content.partition("\n")
        return rest.strip()

    def extend_to(self, end: int) -> None:
        """Grow the content span; never shrinks it."""
        if end > self.content_end:
            self.content_end = end


@dataclass
class TreeUpdate:
    """Result of one tree builder pass."""
    created: List[SectionNode] = field(default_factory=list)
    changed: List[SectionNode] = field(default_factory=list)
    retire_root: bool = False

    @property
    def has_structure_change(self) -> bool:
        """True when nodes were added or the root placeholder was retired."""
        return bool(self.created) or self.retire_root


@dataclass
class MarkdownSection:
    """One section of a complete markdown document (non-streaming split)."""
    id: str
    header_level: int
    header_text: str
    content: str
    start_index: int
    end_index: int
    parent_id: Optional[str] = None
    children: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class SectionEdge:
    """Parent to child relationship between two markdown sections."""
    source: str
    target: str
    type: str = "parent-child"


@dataclass
class MarkdownSplitResult:
    """Sections, edges and top-level section ids of one split."""
    nodes: List[MarkdownSection] = field(default_factory=list)
    edges: List[SectionEdge] = field(default_factory=list)
    root_ids: List[str] = field(default_factory=list)

    def get(self, section_id: str) -> Optional[MarkdownSection]:
        for node in self.nodes:
            if node.id == section_id:
                return node
        return None
