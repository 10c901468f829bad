"""
Logging configuration for the mindmap engine.

Handles:
- Unified formatter with ANSI colors
- Source abbreviations for the project's packages
- Console handler that tolerates closed streams
"""

import os
import re
import sys
import logging
from typing import Literal, Optional

from config.settings import config


def _is_stream_usable(stream) -> bool:
    """
    Check if a stream is usable for logging without triggering errors.

    Returns True if stream can be written to, False otherwise.
    """
    if stream is None:
        return False
    try:
        if getattr(stream, 'closed', False):
            return False
        return hasattr(stream, 'write')
    except (AttributeError, ValueError, OSError):
        return False


class SafeStreamHandler(logging.StreamHandler):
    """StreamHandler that skips records once its stream has been closed."""

    def emit(self, record):
        if not _is_stream_usable(self.stream):
            return
        super().emit(record)


class UnifiedFormatter(logging.Formatter):
    """Unified logging formatter with ANSI color support."""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARN': '\033[33m',     # Yellow
        'ERROR': '\033[31m',    # Red
        'CRIT': '\033[35m',     # Magenta
        'RESET': '\033[0m',     # Reset
        'BOLD': '\033[1m',      # Bold
    }

    LEVEL_MAP = {
        'DEBUG': 'DEBUG',
        'INFO': 'INFO',
        'WARNING': 'WARN',
        'ERROR': 'ERROR',
        'CRITICAL': 'CRIT'
    }

    SOURCE_PREFIXES = (
        ('markdown_tree', 'TREE'),
        ('layout', 'LAYT'),
        ('services.streaming', 'STRM'),
        ('services.canvas', 'CNVS'),
        ('services', 'SERV'),
        ('config', 'CONF'),
        ('models', 'MODL'),
    )

    def __init__(self, fmt=None, datefmt=None, style: Literal['%', '{', '$'] = '%', validate=True, use_colors=True):
        super().__init__(fmt=fmt, datefmt=datefmt, style=style, validate=validate)
        self.use_colors = use_colors

    def _abbreviate_source(self, name: str) -> str:
        if name == '__main__':
            return 'MAIN'
        if name == 'asyncio':
            return 'ASYN'
        for prefix, abbreviation in self.SOURCE_PREFIXES:
            if name == prefix or name.startswith(prefix + '.'):
                return abbreviation
        return name[:4].upper()

    def format(self, record):
        timestamp = self.formatTime(record, '%H:%M:%S')
        level_name = self.LEVEL_MAP.get(record.levelname, record.levelname)

        if self.use_colors:
            color = self.COLORS.get(level_name, '')
            reset = self.COLORS['RESET']
            if level_name == 'CRIT':
                colored_level = f"{self.COLORS['BOLD']}{color}{level_name.ljust(5)}{reset}"
            else:
                colored_level = f"{color}{level_name.ljust(5)}{reset}"
        else:
            colored_level = level_name.ljust(5)

        source = self._abbreviate_source(record.name).ljust(4)
        pid = os.getpid()

        # Normalize message spacing
        message = record.getMessage().lstrip()
        message = re.sub(r' +', ' ', message)

        formatted = f"[{timestamp}] {colored_level} | {source} | [{pid}] {message}"
        if record.exc_info:
            formatted = f"{formatted}\n{self.formatException(record.exc_info)}"
        return formatted


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure all logging for the application.

    Args:
        level: Explicit level name; defaults to config.log_level
               (DEBUG when VERBOSE_LOGGING is enabled)
    """
    unified_formatter = UnifiedFormatter(use_colors=sys.stdout.isatty() if _is_stream_usable(sys.stdout) else False)

    handlers = []
    if _is_stream_usable(sys.stdout):
        console_handler = SafeStreamHandler(sys.stdout)
        console_handler.setFormatter(unified_formatter)
        handlers.append(console_handler)
    else:
        handlers.append(logging.NullHandler())

    if level is None:
        level = 'DEBUG' if config.verbose_logging else config.log_level
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        handlers=handlers,
        force=True
    )

    for logger_name in ['markdown_tree', 'layout', 'services', 'config']:
        specific_logger = logging.getLogger(logger_name)
        specific_logger.setLevel(log_level)
        specific_logger.propagate = True

    logging.getLogger(__name__).debug("Logging configured at %s", logging.getLevelName(log_level))
