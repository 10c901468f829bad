"""Mindmap Canvas Configuration Module.

This module provides centralized configuration management for the streaming
mindmap engine. It handles environment variable loading, validation, and
provides a clean interface for accessing configuration values.

Features:
- Dynamic environment variable loading with .env support
- Property-based configuration access for real-time updates
- Validation with logged fallbacks to documented defaults
- Snapshot into an immutable MindmapSettings for each streaming session

Environment Variables:
- See env.example for complete configuration options

Usage:
    from config.settings import config
    settings = config.to_mindmap_settings()

Copyright 2024-2025 北京思源智教科技有限公司 (Beijing Siyuan Zhijiao Technology Co., Ltd.)
All Rights Reserved
Proprietary License
"""
import logging

from dotenv import load_dotenv

from config.base_config import BaseConfig
from config.layout_config import LayoutConfigMixin
from config.streaming_config import StreamingConfigMixin
from models.settings import MindmapSettings

logger = logging.getLogger(__name__)

load_dotenv()  # Load environment variables from .env file


class Config(
    BaseConfig,
    LayoutConfigMixin,
    StreamingConfigMixin,
):
    """
    Centralized configuration management for the mindmap engine.

    Combines all configuration mixins to provide a unified interface
    for accessing configuration values.
    """

    def to_mindmap_settings(self) -> MindmapSettings:
        """Freeze the current configuration for one streaming session."""
        if not self.validate_layout_config():
            logger.warning("Geometry bounds are inconsistent (min > max); node sizes will clamp to max")
        return MindmapSettings.from_config(self)


# Create global configuration instance
config = Config()
