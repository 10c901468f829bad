"""
Markdown Tree Module

Turns markdown text into a section tree: stateless header scanning, the
incremental tree builder used while a response streams in, content
category/importance heuristics, and splitters for complete responses.

Author: MindSpring Team
Copyright 2024-2025 北京思源智教科技有限公司
"""

from markdown_tree.header_scanner import HeaderScanner, scan_headers
from markdown_tree.tree_builder import HierarchyTreeBuilder
from markdown_tree.content_detector import calculate_importance, detect_category
from markdown_tree.section_splitter import (
    HierarchicalMarkdownSplitter,
    split_into_sections,
)

__all__ = [
    "HeaderScanner",
    "scan_headers",
    "HierarchyTreeBuilder",
    "calculate_importance",
    "detect_category",
    "HierarchicalMarkdownSplitter",
    "split_into_sections",
]
