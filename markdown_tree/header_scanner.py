"""
Markdown header detection for the streaming section tree.

Finds ATX headings (``#`` through ``######``) in a text buffer and reports
their level, title and position. Scanning is stateless, so the tree builder
can re-scan the whole growing buffer on every update.
"""

import re
import logging
from typing import List

from models.sections import HeaderMatch

logger = logging.getLogger(__name__)


class HeaderScanner:
    """
    Regex-based markdown header scanner.

    A line starting with 1-6 ``#`` followed by horizontal whitespace and a
    non-blank title is a header. Seven or more ``#`` never match.
    """

    # [ \t] instead of \s so a bare "##\n" cannot borrow the next line as its title
    MARKDOWN_HEADING = r'^(#{1,6})[ \t]+(\S.*?)[ \t]*$'

    def __init__(self):
        self.markdown_heading_pattern = re.compile(self.MARKDOWN_HEADING, re.MULTILINE)

    def scan(self, text: str) -> List[HeaderMatch]:
        """
        Find every header line in the text.

        Args:
            text: Markdown buffer

        Returns:
            Headers in offset order; ``end`` is the offset of the end of the
            header line (before its newline)
        """
        headers = []
        for match in self.markdown_heading_pattern.finditer(text):
            headers.append(HeaderMatch(
                level=len(match.group(1)),
                title=match.group(2).strip(),
                start=match.start(),
                end=match.end(),
            ))
        return headers


_default_scanner = HeaderScanner()


def scan_headers(text: str) -> List[HeaderMatch]:
    """Scan a buffer with the shared stateless scanner."""
    return _default_scanner.scan(text)
