"""Base configuration class and core settings.

This module provides the base Config class with caching mechanism and core
application settings like version and logging.
"""
import logging
import os
import time
from pathlib import Path

logger = logging.getLogger(__name__)


class BaseConfig:
    """Base configuration class with caching mechanism."""

    def __init__(self):
        self._cache = {}
        self._cache_timestamp = 0
        self._cache_duration = 30
        self._version = None

    def _get_cached_value(self, key: str, default=None):
        """Get cached value from environment."""
        current_time = time.time()
        if current_time - self._cache_timestamp > self._cache_duration:
            self._cache.clear()
            self._cache_timestamp = current_time
        if key not in self._cache:
            self._cache[key] = os.environ.get(key, default)
        return self._cache[key]

    def clear_cache(self) -> None:
        """Drop cached environment values so the next read sees fresh values."""
        self._cache.clear()
        self._cache_timestamp = 0

    def _get_int(self, key: str, default: int, minimum: int = 0) -> int:
        """Read an integer setting, falling back to the default when invalid."""
        try:
            val = int(self._get_cached_value(key, str(default)))
            if val < minimum:
                logger.warning("%s %s out of range, using %s", key, val, default)
                return default
            return val
        except (ValueError, TypeError):
            logger.warning("Invalid %s value, using %s", key, default)
            return default

    def _get_float(self, key: str, default: float, minimum: float = 0.0) -> float:
        """Read a float setting, falling back to the default when invalid."""
        try:
            val = float(self._get_cached_value(key, str(default)))
            if val < minimum:
                logger.warning("%s %s out of range, using %s", key, val, default)
                return default
            return val
        except (ValueError, TypeError):
            logger.warning("Invalid %s value, using %s", key, default)
            return default

    def _get_bool(self, key: str, default: bool = False) -> bool:
        """Read a true/false setting."""
        return str(self._get_cached_value(key, str(default))).lower() == 'true'

    @property
    def version(self) -> str:
        """
        Application version - read from VERSION file (single source of truth).
        Cached after first read for performance.
        """
        if self._version is None:
            try:
                version_file = Path(__file__).parent.parent / 'VERSION'
                self._version = version_file.read_text(encoding='utf-8').strip()
            except OSError as e:
                logger.warning("Failed to read VERSION file: %s", e)
                self._version = "0.0.0"
        return self._version

    @property
    def debug(self) -> bool:
        """Debug mode setting."""
        return self._get_bool('DEBUG')

    @property
    def log_level(self) -> str:
        """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""
        level = self._get_cached_value('LOG_LEVEL', 'INFO').upper()
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if level not in valid_levels:
            logger.warning("Invalid LOG_LEVEL '%s', using INFO", level)
            return 'INFO'
        return level

    @property
    def verbose_logging(self) -> bool:
        """Enable verbose logging for debugging (logs every refresh and layout pass)."""
        return self._get_bool('VERBOSE_LOGGING')
