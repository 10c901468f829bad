"""Streaming session configuration settings.

This module provides throttle, retry, timeout and depth related configuration
properties for streaming mindmap sessions.
"""
import logging
from typing import TYPE_CHECKING, Any

logger = logging.getLogger(__name__)


class StreamingConfigMixin:
    """Mixin class for streaming configuration properties.

    This mixin expects the class to inherit from BaseConfig or provide
    the _get_int / _get_bool helpers.
    """

    if TYPE_CHECKING:
        def _get_int(self, _key: str, _default: int, minimum: int = 0) -> int:
            """Type stub: method provided by BaseConfig."""
            return _default

        def _get_bool(self, _key: str, _default: bool = False) -> bool:
            """Type stub: method provided by BaseConfig."""
            return _default

        def _get_cached_value(self, _key: str, _default: Any = None) -> Any:
            """Type stub: method provided by BaseConfig."""
            return _default

    @property
    def MINDMAP_MAX_DEPTH(self) -> int:
        """Number of header depths materialized as separate nodes."""
        return self._get_int('MINDMAP_MAX_DEPTH', 2, minimum=1)

    @property
    def STREAMING_UPDATE_INTERVAL_MS(self) -> int:
        """Minimum interval between display refreshes in milliseconds."""
        return self._get_int('STREAMING_UPDATE_INTERVAL_MS', 500)

    @property
    def STREAMING_RETRY_ATTEMPTS(self) -> int:
        """Retry budget handed to the transport."""
        return self._get_int('STREAMING_RETRY_ATTEMPTS', 3)

    @property
    def STREAMING_TIMEOUT_MS(self) -> int:
        """Transport timeout in milliseconds."""
        return self._get_int('STREAMING_TIMEOUT_MS', 10000, minimum=1)

    @property
    def STREAMING_WATCHDOG_BUFFER_MS(self) -> int:
        """Grace period added to the timeout before a session is forced to complete."""
        return self._get_int('STREAMING_WATCHDOG_BUFFER_MS', 5000)

    @property
    def STREAMING_SHOW_PROGRESS(self) -> bool:
        """Show a transient progress node while streaming."""
        return self._get_bool('STREAMING_SHOW_PROGRESS')

    @property
    def STREAMING_ENABLE_CONTROLS(self) -> bool:
        """Show a transient pause/stop node while streaming."""
        return self._get_bool('STREAMING_ENABLE_CONTROLS')

    @property
    def STREAMING_ENABLE_METRICS(self) -> bool:
        """Include error metrics in the progress node."""
        return self._get_bool('STREAMING_ENABLE_METRICS')
