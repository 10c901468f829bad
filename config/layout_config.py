"""Mindmap layout configuration settings.

This module provides spacing, strategy, geometry and collision related
configuration properties.
"""
import logging
from typing import TYPE_CHECKING, Any, Optional

from models.common import LayoutStrategy, SpacingProfile

logger = logging.getLogger(__name__)


class LayoutConfigMixin:
    """Mixin class for layout configuration properties.

    This mixin expects the class to inherit from BaseConfig or provide
    the _get_cached_value / _get_int / _get_float helpers.
    """

    if TYPE_CHECKING:
        def _get_cached_value(self, _key: str, _default: Any = None) -> Any:
            """Type stub: method provided by BaseConfig."""
            return _default

        def _get_int(self, _key: str, _default: int, minimum: int = 0) -> int:
            """Type stub: method provided by BaseConfig."""
            return _default

        def _get_float(self, _key: str, _default: float, minimum: float = 0.0) -> float:
            """Type stub: method provided by BaseConfig."""
            return _default

    @property
    def MINDMAP_SPACING(self) -> SpacingProfile:
        """Spacing density profile (compact, normal, spacious)."""
        value = str(self._get_cached_value('MINDMAP_SPACING', 'normal')).lower()
        try:
            return SpacingProfile(value)
        except ValueError:
            logger.warning("Invalid MINDMAP_SPACING '%s', using normal", value)
            return SpacingProfile.NORMAL

    @property
    def MINDMAP_LAYOUT_STRATEGY(self) -> Optional[LayoutStrategy]:
        """Forced layout strategy; None means auto-selection."""
        value = str(self._get_cached_value('MINDMAP_LAYOUT_STRATEGY', 'auto')).lower()
        if value in ('', 'auto'):
            return None
        if value == 'radial':
            return LayoutStrategy.CROSS
        try:
            return LayoutStrategy(value)
        except ValueError:
            logger.warning("Invalid MINDMAP_LAYOUT_STRATEGY '%s', using auto", value)
            return None

    @property
    def GEOMETRY_CHARS_PER_LINE(self) -> int:
        """Assumed characters per wrapped text line."""
        return self._get_int('GEOMETRY_CHARS_PER_LINE', 50, minimum=1)

    @property
    def GEOMETRY_PX_PER_LINE(self) -> float:
        """Pixel height of one text line."""
        return self._get_float('GEOMETRY_PX_PER_LINE', 28.0, minimum=1.0)

    @property
    def GEOMETRY_MIN_WIDTH(self) -> float:
        """Minimum node width in pixels."""
        return self._get_float('GEOMETRY_MIN_WIDTH', 280.0, minimum=1.0)

    @property
    def GEOMETRY_MIN_HEIGHT(self) -> float:
        """Minimum node height in pixels."""
        return self._get_float('GEOMETRY_MIN_HEIGHT', 60.0, minimum=1.0)

    @property
    def GEOMETRY_MAX_WIDTH(self) -> float:
        """Maximum node width in pixels."""
        return self._get_float('GEOMETRY_MAX_WIDTH', 800.0, minimum=1.0)

    @property
    def GEOMETRY_MAX_HEIGHT(self) -> float:
        """Maximum node height in pixels."""
        return self._get_float('GEOMETRY_MAX_HEIGHT', 2400.0, minimum=1.0)

    @property
    def LAYOUT_COLLISION_PADDING(self) -> float:
        """Gap kept between node bounds by the collision resolver."""
        return self._get_float('LAYOUT_COLLISION_PADDING', 50.0)

    @property
    def LAYOUT_COLLISION_ITERATIONS(self) -> int:
        """Pass budget of the collision resolver."""
        return self._get_int('LAYOUT_COLLISION_ITERATIONS', 50, minimum=1)

    def get_geometry_bounds(self) -> dict:
        """
        Get node size bounds.

        Returns:
            dict: min/max width and height
        """
        return {
            'minWidth': self.GEOMETRY_MIN_WIDTH,
            'minHeight': self.GEOMETRY_MIN_HEIGHT,
            'maxWidth': self.GEOMETRY_MAX_WIDTH,
            'maxHeight': self.GEOMETRY_MAX_HEIGHT,
        }

    def validate_layout_config(self) -> bool:
        """
        Validate layout configuration values.

        Returns:
            bool: True if all values are consistent, False otherwise
        """
        if self.GEOMETRY_MIN_WIDTH > self.GEOMETRY_MAX_WIDTH:
            return False
        if self.GEOMETRY_MIN_HEIGHT > self.GEOMETRY_MAX_HEIGHT:
            return False
        return True
