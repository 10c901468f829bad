"""
Section splitting for complete (non-streaming) responses.

Two splitters:
- split_into_sections: structural split (headings, fenced code, numbered and
  definition sections), content-aware re-chunking and category headers
- HierarchicalMarkdownSplitter: header-stack split into parent/child
  sections, with oversized sections re-split by LangChain's
  RecursiveCharacterTextSplitter

Copyright 2024-2025 北京思源智教科技有限公司 (Beijing Siyuan Zhijiao Technology Co., Ltd.)
All Rights Reserved
Proprietary License
"""

import re
import logging
from typing import Callable, List, Optional

from langchain_text_splitters import RecursiveCharacterTextSplitter

from models.common import ContentCategory
from models.sections import MarkdownSection, MarkdownSplitResult, SectionEdge
from markdown_tree.content_detector import detect_category
from markdown_tree.header_scanner import HeaderScanner

logger = logging.getLogger(__name__)

HEADING_START = re.compile(r'^#{1,6}\s')
NUMBERED_START = re.compile(r'^\d+\.\s')
DEFINITION_LINE = re.compile(r'^[A-Z][^.]*:\s*$')
PARAGRAPH_BREAK = re.compile(r'\n\s*\n')
SENTENCE_BREAK = re.compile(r'[.!?]+')

# Maximum characters per chunk by content category
CHUNK_SIZES = {
    ContentCategory.CODE: 300,
    ContentCategory.STEPS: 200,
    ContentCategory.LIST: 250,
    ContentCategory.EXAMPLE: 400,
    ContentCategory.IMPORTANT: 300,
    ContentCategory.SUMMARY: 600,
    ContentCategory.STRUCTURED: 500,
}
DEFAULT_CHUNK_SIZE = 400


def optimal_chunk_size(category: ContentCategory) -> int:
    """Chunk size for a content category."""
    return CHUNK_SIZES.get(category, DEFAULT_CHUNK_SIZE)


def split_into_sections(text: str, max_sections: int = 0) -> List[str]:
    """
    Split a complete response into mindmap sections.

    Args:
        text: Response text
        max_sections: Keep at most this many sections (0 = no limit)

    Returns:
        Section texts, each starting with a markdown header
    """
    if not text or not text.strip():
        return []

    clean_text = text.strip()

    processed = []
    for section in split_by_structural_markers(clean_text):
        processed.extend(split_section_into_chunks(section))

    enhanced = enhance_sections(processed)
    if max_sections > 0:
        enhanced = enhanced[:max_sections]

    logger.debug("Split %d chars into %d sections", len(clean_text), len(enhanced))
    return enhanced or [clean_text]


def split_by_structural_markers(text: str) -> List[str]:
    """Split on headings, fenced code blocks and long numbered/definition runs."""
    sections = []
    current_section = ''
    code_block = ''
    in_code_block = False

    for line in text.split('\n'):
        stripped = line.strip()

        # Code blocks are kept whole
        if stripped.startswith('```'):
            if current_section.strip():
                sections.append(current_section.strip())
                current_section = ''
            if in_code_block:
                code_block += line + '\n'
                sections.append(code_block.strip())
                code_block = ''
                in_code_block = False
            else:
                code_block = line + '\n'
                in_code_block = True
            continue

        if in_code_block:
            code_block += line + '\n'
            continue

        is_major_break = (
            bool(HEADING_START.match(stripped))
            or (bool(NUMBERED_START.match(stripped)) and len(current_section.strip()) > 100)
            or (bool(DEFINITION_LINE.match(stripped)) and len(current_section.strip()) > 50)
        )

        if is_major_break and current_section.strip():
            sections.append(current_section.strip())
            current_section = line + '\n'
        else:
            current_section += line + '\n'

    if current_section.strip():
        sections.append(current_section.strip())
    # Unterminated code block
    if code_block.strip():
        sections.append(code_block.strip())

    return [section for section in sections if section.strip()]


def split_section_into_chunks(section: str) -> List[str]:
    """Split an oversized section by paragraphs, then by sentences."""
    max_length = optimal_chunk_size(detect_category(section))
    if len(section) <= max_length:
        return [section]

    chunks = []
    current = ''
    for paragraph in PARAGRAPH_BREAK.split(section):
        paragraph = paragraph.strip()
        if not paragraph:
            continue
        if current and len(current) + len(paragraph) > max_length:
            chunks.append(current.strip())
            current = paragraph
        else:
            current += ('\n\n' if current else '') + paragraph
    if current.strip():
        chunks.append(current.strip())

    final_chunks = []
    for chunk in chunks:
        if len(chunk) <= max_length:
            final_chunks.append(chunk)
        else:
            final_chunks.extend(split_by_sentences(chunk, max_length))
    return final_chunks


def split_by_sentences(text: str, max_length: int) -> List[str]:
    """Last-resort split on sentence punctuation."""
    chunks = []
    current = ''
    for sentence in SENTENCE_BREAK.split(text):
        sentence = sentence.strip()
        if not sentence:
            continue
        if current and len(current) + len(sentence) > max_length:
            chunks.append(current.strip() + '.')
            current = sentence
        else:
            current += ('. ' if current else '') + sentence
    if current.strip():
        chunks.append(current.strip() + ('' if current.endswith('.') else '.'))
    return chunks


def _category_header(section: str, index: int) -> str:
    if '```' in section:
        return '## 💻 Code Block'
    if re.match(r'^\s*\d+\.\s', section) or 'Step ' in section or 'step ' in section:
        return '## 📋 Steps'
    if re.match(r'^\s*[-*+•]\s', section) or '•' in section:
        return '## 📝 Key Points'
    if 'Example' in section or 'example' in section:
        return '## 💡 Example'
    if 'Note:' in section or 'Important:' in section or 'Warning:' in section:
        return '## ⚠️ Important'
    if any(marker in section for marker in ('function', 'const ', 'class ', 'import ')):
        return '## ⚙️ Technical'
    if 'Summary' in section or 'Conclusion' in section or 'conclusion' in section:
        return '## 📊 Summary'
    return f'## 🔹 Part {index + 1}'


def enhance_sections(sections: List[str]) -> List[str]:
    """Prefix header-less sections with a category header and tidy bullets."""
    enhanced_sections = []
    for index, section in enumerate(sections):
        enhanced = section
        if not HEADING_START.match(enhanced):
            enhanced = f"{_category_header(enhanced, index)}\n\n{enhanced}"
        enhanced = re.sub(r'^[ \t]*[-*+][ \t]', '• ', enhanced, flags=re.MULTILINE)
        enhanced = re.sub(r'\n{3,}', '\n\n', enhanced)
        enhanced_sections.append(enhanced.strip())
    return enhanced_sections


# Markdown separators in priority order; the numbered-item entry is a regex
MARKDOWN_SEPARATORS = [
    re.escape('\n## '),
    re.escape('\n### '),
    re.escape('\n#### '),
    re.escape('\n##### '),
    re.escape('\n###### '),
    re.escape('\n# '),
    re.escape('\n\n'),
    re.escape('\n- '),
    re.escape('\n* '),
    re.escape('\n+ '),
    r'\n\d+\. ',
    re.escape('```\n'),
    re.escape('\n```'),
    re.escape('.\n'),
    re.escape('.\t'),
    re.escape('. '),
    re.escape('\n'),
    re.escape(' '),
    '',
]


class HierarchicalMarkdownSplitter:
    """
    Header-stack markdown splitter producing parent/child sections.

    Sections longer than ``chunk_size`` are re-split with LangChain's
    RecursiveCharacterTextSplitter; follow-up chunks are named
    "<title> (continued N)".
    """

    INTRODUCTION_TITLE = "Introduction"

    def __init__(
        self,
        chunk_size: int = 1000,
        chunk_overlap: int = 200,
        max_header_level: int = 6,
        length_function: Callable[[str], int] = len,
        keep_separator: bool = True
    ):
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.max_header_level = max_header_level
        self.length_function = length_function
        self.scanner = HeaderScanner()
        self.splitter = RecursiveCharacterTextSplitter(
            separators=MARKDOWN_SEPARATORS,
            is_separator_regex=True,
            keep_separator=keep_separator,
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
            length_function=length_function,
        )

    def split_markdown(self, text: str) -> MarkdownSplitResult:
        """
        Split markdown text into hierarchical sections.

        Args:
            text: Complete markdown document

        Returns:
            MarkdownSplitResult with sections, edges and top-level ids
        """
        sections = self._refine_sections(self._parse_sections(text))
        edges = self._establish_relationships(sections)
        root_ids = [section.id for section in sections if section.parent_id is None]
        return MarkdownSplitResult(nodes=sections, edges=edges, root_ids=root_ids)

    def _parse_sections(self, text: str) -> List[MarkdownSection]:
        headers = [h for h in self.scanner.scan(text) if h.level <= self.max_header_level]
        sections = []

        preamble_end = headers[0].start if headers else len(text)
        preamble = text[:preamble_end]
        if preamble.strip():
            content = preamble.strip()
            start = len(preamble) - len(preamble.lstrip())
            sections.append(MarkdownSection(
                id=f"section-{len(sections)}",
                header_level=0,
                header_text=self.INTRODUCTION_TITLE,
                content=content,
                start_index=start,
                end_index=start + len(content),
            ))

        for index, header in enumerate(headers):
            end = headers[index + 1].start if index + 1 < len(headers) else len(text)
            sections.append(MarkdownSection(
                id=f"section-{len(sections)}",
                header_level=header.level,
                header_text=header.title,
                content=text[header.start:end].strip(),
                start_index=header.start,
                end_index=end,
            ))
        return sections

    def _refine_sections(self, sections: List[MarkdownSection]) -> List[MarkdownSection]:
        refined = []
        for section in sections:
            if self.length_function(section.content) <= self.chunk_size:
                refined.append(section)
                continue

            chunks = self.splitter.split_text(section.content)
            logger.debug("Section '%s' re-split into %d chunks", section.header_text, len(chunks))
            chunk_start = section.start_index
            for index, chunk in enumerate(chunks):
                chunk_end = chunk_start + len(chunk)
                if index == 0:
                    section_id, title = section.id, section.header_text
                else:
                    section_id = f"{section.id}-part-{index + 1}"
                    title = f"{section.header_text} (continued {index + 1})"
                refined.append(MarkdownSection(
                    id=section_id,
                    header_level=section.header_level,
                    header_text=title,
                    content=chunk.strip(),
                    start_index=chunk_start,
                    end_index=chunk_end,
                ))
                chunk_start = chunk_end
        return refined

    @staticmethod
    def _establish_relationships(sections: List[MarkdownSection]) -> List[SectionEdge]:
        edges = []
        stack: List[MarkdownSection] = []
        for section in sections:
            if section.header_level == 0:
                continue
            while stack and stack[-1].header_level >= section.header_level:
                stack.pop()
            if stack:
                parent = stack[-1]
                section.parent_id = parent.id
                parent.children.append(section.id)
                edges.append(SectionEdge(source=parent.id, target=section.id))
            stack.append(section)
        return edges

    @staticmethod
    def tree_visualization(result: MarkdownSplitResult) -> str:
        """Render the section tree, one line per section indented by depth."""
        lines = []

        def render(section_id: str, depth: int) -> None:
            section: Optional[MarkdownSection] = result.get(section_id)
            if section is None:
                return
            if section.header_level == 0:
                icon = '📄'
            elif section.header_level == 1:
                icon = '📚'
            elif section.header_level == 2:
                icon = '📖'
            else:
                icon = '📝'
            prefix = '#' * section.header_level + ' ' if section.header_level > 0 else ''
            lines.append(
                f"{'  ' * depth}{icon} {prefix}{section.header_text} "
                f"({len(section.content)} chars, level {section.header_level})"
            )
            for child_id in section.children:
                render(child_id, depth + 1)

        for root_id in result.root_ids:
            render(root_id, 0)
        return '\n'.join(lines)
