"""
Content category detection and importance scoring.

Keyword and marker heuristics that tag a section of text with a
ContentCategory and score it for the layout engine (1-6 within the 0-6
importance scale).
"""

import re
import logging

from models.common import ContentCategory

logger = logging.getLogger(__name__)

NUMBERED_ITEM = re.compile(r'\d+\.')
BULLET_LINE = re.compile(r'^\s*[-*+•]', re.MULTILINE)
HEADING_LINE = re.compile(r'^#{1,6}\s', re.MULTILINE)

ALGORITHM_KEYWORDS = ['layout', 'algorithm', 'method', 'approach', 'technique']
GENERAL_KEYWORDS = ['important', 'key', 'main', 'primary', 'essential', 'critical']

# 0-6 scale with a floor of 1: importance-scaled charge and collision shares
# require a non-zero score
MIN_IMPORTANCE = 1.0
MAX_IMPORTANCE = 6.0

# Category bonuses outside the algorithm family
CATEGORY_BONUS = {
    ContentCategory.CODE: 2.0,
    ContentCategory.IMPORTANT: 2.0,
    ContentCategory.STRUCTURED: 1.0,
    ContentCategory.SUMMARY: 1.5,
    ContentCategory.STEPS: 1.2,
}


def detect_category(text: str) -> ContentCategory:
    """
    Tag text with its dominant content category.

    Algorithm descriptions win over everything else, then code fences,
    numbered steps, bullet lists and keyword based categories.
    """
    lower_text = text.lower()

    if 'layout' in lower_text or 'algorithm' in lower_text or 'method' in lower_text:
        if 'force' in lower_text or 'physics' in lower_text:
            return ContentCategory.ALGORITHM_FORCE
        if 'hierarchical' in lower_text or 'tree' in lower_text or 'layered' in lower_text:
            return ContentCategory.ALGORITHM_HIERARCHICAL
        if 'radial' in lower_text or 'circular' in lower_text:
            return ContentCategory.ALGORITHM_RADIAL
        if 'organic' in lower_text or 'natural' in lower_text:
            return ContentCategory.ALGORITHM_ORGANIC
        return ContentCategory.ALGORITHM

    if '```' in text:
        return ContentCategory.CODE
    if 'step' in lower_text and NUMBERED_ITEM.search(text):
        return ContentCategory.STEPS
    if BULLET_LINE.search(text):
        return ContentCategory.LIST
    if 'example' in lower_text:
        return ContentCategory.EXAMPLE
    if 'important' in lower_text or 'note:' in lower_text or 'warning' in lower_text:
        return ContentCategory.IMPORTANT
    if 'summary' in lower_text or 'conclusion' in lower_text:
        return ContentCategory.SUMMARY
    if HEADING_LINE.search(text):
        return ContentCategory.STRUCTURED
    return ContentCategory.GENERAL


def calculate_importance(text: str, category: ContentCategory) -> float:
    """
    Score text on the 0-6 importance scale, never below MIN_IMPORTANCE.

    Args:
        text: Section text
        category: Category from detect_category

    Returns:
        Importance score between MIN_IMPORTANCE and MAX_IMPORTANCE
    """
    importance = MIN_IMPORTANCE

    if category.is_algorithm and category != ContentCategory.ALGORITHM:
        importance += 3
        if category == ContentCategory.ALGORITHM_FORCE:
            importance += 0.5
        elif category == ContentCategory.ALGORITHM_HIERARCHICAL:
            importance += 0.3
    else:
        importance += CATEGORY_BONUS.get(category, 0.0)

    # Longer content is usually more important
    if len(text) > 500:
        importance += 1
    if len(text) > 1000:
        importance += 1

    lower_text = text.lower()
    importance += 0.7 * sum(1 for keyword in ALGORITHM_KEYWORDS if keyword in lower_text)
    importance += 0.5 * sum(1 for keyword in GENERAL_KEYWORDS if keyword in lower_text)

    if HEADING_LINE.search(text):
        importance += 0.8
    if 'Steps' in text or 'Part' in text:
        importance += 0.6

    return min(importance, MAX_IMPORTANCE)
