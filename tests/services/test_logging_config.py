"""
Logging Configuration Tests
===========================

Formatter output and logger setup.
"""

import logging
from unittest.mock import patch

from services.infrastructure.logging_config import UnifiedFormatter, setup_logging


def make_record(name, level=logging.INFO, msg="hello  %s", args=("world",)):
    return logging.LogRecord(name, level, __file__, 1, msg, args, None)


class TestUnifiedFormatter:
    """Test line layout and source abbreviations."""

    def test_plain_line(self):
        formatter = UnifiedFormatter(use_colors=False)
        line = formatter.format(make_record("services.streaming.orchestrator", logging.WARNING))

        assert "WARN  | STRM |" in line
        assert line.endswith("hello world")

    def test_source_abbreviations(self):
        formatter = UnifiedFormatter(use_colors=False)

        assert formatter._abbreviate_source("markdown_tree.tree_builder") == "TREE"
        assert formatter._abbreviate_source("layout.engine") == "LAYT"
        assert formatter._abbreviate_source("services.canvas.protocol") == "CNVS"
        assert formatter._abbreviate_source("config.settings") == "CONF"
        assert formatter._abbreviate_source("__main__") == "MAIN"
        assert formatter._abbreviate_source("numpy") == "NUMP"

    def test_colored_level(self):
        formatter = UnifiedFormatter(use_colors=True)
        line = formatter.format(make_record("layout.engine", logging.ERROR))

        assert "\033[31mERROR" in line


class TestSetupLogging:
    """Test level selection."""

    def test_explicit_level(self):
        setup_logging("debug")
        assert logging.getLogger("layout").level == logging.DEBUG

    def test_level_from_config(self):
        with patch("services.infrastructure.logging_config.config") as mock_config:
            mock_config.verbose_logging = False
            mock_config.log_level = "WARNING"
            setup_logging()

        assert logging.getLogger("markdown_tree").level == logging.WARNING

    def test_verbose_logging_forces_debug(self):
        with patch("services.infrastructure.logging_config.config") as mock_config:
            mock_config.verbose_logging = True
            mock_config.log_level = "ERROR"
            setup_logging()

        assert logging.getLogger("services").level == logging.DEBUG
