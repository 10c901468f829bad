"""
Immutable Mindmap Settings
==========================

One frozen settings object is handed to the streaming orchestrator at
construction time and threaded down to the layout engine and the geometry
estimator. Nothing below the orchestrator reads the environment.

Author: lycosa9527
Made by: MindSpring Team

Copyright 2024-2025 北京思源智教科技有限公司 (Beijing Siyuan Zhijiao Technology Co., Ltd.)
All Rights Reserved
Proprietary License
"""
from typing import Optional, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from .common import LayoutStrategy, SpacingProfile

if TYPE_CHECKING:
    from config.settings import Config


class SpacingSettings(BaseModel):
    """Spacing profile resolved to concrete numbers"""
    model_config = ConfigDict(frozen=True)

    multiplier: float = Field(1.2, gt=0, description="Scales every layout distance")
    min_radius: float = Field(450, ge=0, description="Closest distance to the anchor")
    radius_increment: float = Field(35, ge=0, description="Ring growth per level")

    @classmethod
    def for_profile(cls, profile: SpacingProfile) -> "SpacingSettings":
        """Resolve a named spacing profile (enum member or its value)."""
        try:
            profile = SpacingProfile(profile)
        except ValueError:
            return SPACING_PROFILES[SpacingProfile.NORMAL]
        return SPACING_PROFILES[profile]


SPACING_PROFILES = {
    SpacingProfile.COMPACT: SpacingSettings(multiplier=0.8, min_radius=350, radius_increment=25),
    SpacingProfile.NORMAL: SpacingSettings(multiplier=1.2, min_radius=450, radius_increment=35),
    SpacingProfile.SPACIOUS: SpacingSettings(multiplier=1.6, min_radius=600, radius_increment=50),
}


class GeometrySettings(BaseModel):
    """Constants used to estimate node sizes from text"""
    model_config = ConfigDict(frozen=True)

    chars_per_line: int = Field(50, ge=1, description="Assumed characters per wrapped line")
    px_per_line: float = Field(28, gt=0, description="Pixel height of one text line")
    text_padding: float = Field(12, ge=0, description="Top + bottom text padding")
    min_width: float = Field(280, gt=0)
    min_height: float = Field(60, gt=0)
    max_width: float = Field(800, gt=0)
    max_height: float = Field(2400, gt=0)


class LayoutSettings(BaseModel):
    """Tuning knobs of the layout engine and the collision resolver"""
    model_config = ConfigDict(frozen=True)

    strategy: Optional[LayoutStrategy] = Field(
        None, description="Forced layout strategy (auto-selected if not provided)"
    )
    collision_padding: float = Field(50, ge=0, description="Gap kept between node bounds")
    collision_iterations: int = Field(50, ge=1, description="Collision resolver pass budget")
    force_iterations: int = Field(300, ge=1, description="Force simulation step budget")
    hybrid_iterations: int = Field(200, ge=1, description="Hybrid simulation step budget")
    hybrid_threshold: int = Field(6, ge=1, description="Hybrid falls back to force at or below this count")
    movement_threshold: float = Field(0.5, ge=0, description="Early-stop total movement per step")


class StreamingSettings(BaseModel):
    """Streaming session behaviour"""
    model_config = ConfigDict(frozen=True)

    max_depth: int = Field(2, ge=1, description="Header depths materialized as nodes")
    update_interval: float = Field(0.5, ge=0, description="Minimum seconds between refreshes")
    retry_attempts: int = Field(3, ge=0, description="Retry budget handed to the transport")
    timeout: float = Field(10.0, gt=0, description="Transport timeout in seconds")
    watchdog_buffer: float = Field(5.0, ge=0, description="Grace added to the timeout before forcing completion")
    show_progress: bool = Field(False, description="Show a transient progress node")
    enable_controls: bool = Field(False, description="Show a transient pause/stop node")
    enable_metrics: bool = Field(False, description="Include error metrics in the progress node")

    @property
    def watchdog_delay(self) -> float:
        """Seconds without activity before the session is forced to complete."""
        return self.timeout + self.watchdog_buffer


class MindmapSettings(BaseModel):
    """Complete immutable configuration of one streaming session"""
    model_config = ConfigDict(frozen=True)

    spacing_profile: SpacingProfile = Field(SpacingProfile.NORMAL)
    geometry: GeometrySettings = Field(default_factory=GeometrySettings)
    layout: LayoutSettings = Field(default_factory=LayoutSettings)
    streaming: StreamingSettings = Field(default_factory=StreamingSettings)

    @property
    def spacing(self) -> SpacingSettings:
        """Spacing numbers for the configured profile."""
        return SpacingSettings.for_profile(self.spacing_profile)

    @classmethod
    def from_config(cls, config: "Config") -> "MindmapSettings":
        """
        Snapshot the environment-backed configuration.

        Args:
            config: Config instance (see config.settings)

        Returns:
            MindmapSettings: frozen settings
        """
        return cls(
            spacing_profile=config.MINDMAP_SPACING,
            geometry=GeometrySettings(
                chars_per_line=config.GEOMETRY_CHARS_PER_LINE,
                px_per_line=config.GEOMETRY_PX_PER_LINE,
                min_width=config.GEOMETRY_MIN_WIDTH,
                min_height=config.GEOMETRY_MIN_HEIGHT,
                max_width=config.GEOMETRY_MAX_WIDTH,
                max_height=config.GEOMETRY_MAX_HEIGHT,
            ),
            layout=LayoutSettings(
                strategy=config.MINDMAP_LAYOUT_STRATEGY,
                collision_padding=config.LAYOUT_COLLISION_PADDING,
                collision_iterations=config.LAYOUT_COLLISION_ITERATIONS,
            ),
            streaming=StreamingSettings(
                max_depth=config.MINDMAP_MAX_DEPTH,
                update_interval=config.STREAMING_UPDATE_INTERVAL_MS / 1000,
                retry_attempts=config.STREAMING_RETRY_ATTEMPTS,
                timeout=config.STREAMING_TIMEOUT_MS / 1000,
                watchdog_buffer=config.STREAMING_WATCHDOG_BUFFER_MS / 1000,
                show_progress=config.STREAMING_SHOW_PROGRESS,
                enable_controls=config.STREAMING_ENABLE_CONTROLS,
                enable_metrics=config.STREAMING_ENABLE_METRICS,
            ),
        )
