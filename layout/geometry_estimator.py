"""
Node size estimation from text.

Sizes are estimated from character counts, not measured: nodes can be resized
as their text grows, so a rough estimate is enough.
"""

import math
import logging
from typing import Optional

from models.common import ContentCategory
from models.geometry import Size
from models.settings import GeometrySettings

logger = logging.getLogger(__name__)

_DEFAULT_GEOMETRY = GeometrySettings()


def estimate_height(text: str, geometry: Optional[GeometrySettings] = None) -> float:
    """
    Estimate the pixel height needed to show text.

    Every ``\\n`` separated segment takes at least one visual line; longer
    segments wrap every ``chars_per_line`` characters.
    """
    geometry = geometry or _DEFAULT_GEOMETRY

    visual_lines = 0
    for segment in text.split('\n'):
        if not segment.strip():
            visual_lines += 1
        else:
            visual_lines += max(1, math.ceil(len(segment) / geometry.chars_per_line))

    text_height = round(geometry.text_padding + geometry.px_per_line * visual_lines)
    return max(geometry.min_height, text_height)


def _category_size(text: str, category: ContentCategory, geometry: GeometrySettings):
    length = len(text)
    line_count = len(text.split('\n'))

    if category == ContentCategory.CODE:
        # Monospace needs more width per character
        width = max(350, min(length * 3.2, 600))
        height = max(120, line_count * 35)
    elif category in (ContentCategory.LIST, ContentCategory.STEPS):
        width = max(280, min(length * 2.5, 500))
        height = max(100, line_count * 30)
    elif category == ContentCategory.IMPORTANT:
        width = max(320, min(length * 3.0, 550))
        height = max(110, line_count * 32)
    else:
        width = max(280, min(length * 2.8, 520))
        height = max(estimate_height(text, geometry), 80)

    if line_count > 3:
        width += 40
    if line_count > 5:
        height += 25
    return width, height


def estimate_size(
    text: str,
    category: ContentCategory = ContentCategory.GENERAL,
    geometry: Optional[GeometrySettings] = None
) -> Size:
    """
    Estimate the node size for text of a given content category.

    Args:
        text: Node text
        category: Content category (code, list and important are wider)
        geometry: Estimation constants and size bounds

    Returns:
        Size clamped to the configured bounds
    """
    geometry = geometry or _DEFAULT_GEOMETRY
    width, height = _category_size(text, category, geometry)

    clamped_width = min(max(width, geometry.min_width), geometry.max_width)
    clamped_height = min(max(height, geometry.min_height), geometry.max_height)
    if width > geometry.max_width or height > geometry.max_height:
        logger.debug(
            "Estimated size %.0fx%.0f exceeds bounds, clamped to %.0fx%.0f",
            width, height, clamped_width, clamped_height
        )
    return Size(float(clamped_width), float(clamped_height))
