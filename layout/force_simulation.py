"""
Force-directed and hybrid layouts.

A small velocity-Verlet style simulation in the manner of d3-force, written
with numpy: many-body repulsion, collision, weak centering, a category angle
bias and a minimum radius around the anchor. Step size decays with ``alpha``.
The run stops early once the total movement per step drops below a
threshold; a non-converged run is accepted as is.
"""

import math
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np

from models.common import ContentCategory, LayoutStrategy
from models.geometry import Point
from models.layout import LayoutNode, LayoutResult, Placement
from models.settings import LayoutSettings, SpacingSettings
from layout.collision import resolve_collisions
from layout.strategies import bias_for_offset, hierarchical_layout

logger = logging.getLogger(__name__)

# Target angle (radians) per category for the grouping force
CATEGORY_ANGLES: Dict[ContentCategory, float] = {
    ContentCategory.ALGORITHM: 0.0,
    ContentCategory.ALGORITHM_FORCE: 0.2,
    ContentCategory.ALGORITHM_HIERARCHICAL: 0.4,
    ContentCategory.ALGORITHM_RADIAL: 0.6,
    ContentCategory.ALGORITHM_ORGANIC: 0.8,
    ContentCategory.CODE: math.pi / 2,
    ContentCategory.STEPS: math.pi,
    ContentCategory.LIST: math.pi + 0.5,
    ContentCategory.EXAMPLE: 3 * math.pi / 2,
    ContentCategory.IMPORTANT: 3 * math.pi / 2 + 0.5,
    ContentCategory.SUMMARY: 2 * math.pi - 0.5,
    ContentCategory.STRUCTURED: 2 * math.pi - 1,
    ContentCategory.GENERAL: 1.5,
}

ALPHA_MIN = 0.001
VELOCITY_DECAY = 0.4
GROUPING_ALPHA_FLOOR = 0.1
SETTLE_SWEEPS = 300


@dataclass
class SimulationParams:
    """Tuning of one simulation run."""
    charge_base: float = -800.0
    charge_base_fixed: float = -800.0
    importance_scaled_charge: bool = True
    distance_min: float = 50.0
    distance_max: Optional[float] = 1000.0
    collide_strength: float = 0.8
    collide_iterations: int = 3
    center_strength: float = 0.02
    grouping: bool = True
    grouping_radius: float = 400.0
    # Radial floor around the anchor, taken as-is from the spacing profile
    min_radius: float = 450.0
    alpha_decay: float = 0.02
    max_iterations: int = 300
    initial_radius: float = 200.0


def category_angle(category: ContentCategory) -> float:
    """Angle the grouping force pulls a category towards."""
    return CATEGORY_ANGLES.get(category, CATEGORY_ANGLES[ContentCategory.GENERAL])


class ForceSimulation:
    """
    Deterministic force simulation around an anchor.

    Args:
        nodes: Sized, weighted layout nodes
        anchor: Centre of the layout
        multiplier: Spacing multiplier applied to force distances and strengths
                    (params.min_radius is already in canvas units)
        padding: Gap kept between node bounding circles
        params: Force tuning
        fixed: Node index -> pinned (x, y); pinned nodes never move
        movement_threshold: Early-stop threshold on total movement per step
    """

    def __init__(
        self,
        nodes: List[LayoutNode],
        anchor: Point,
        multiplier: float,
        padding: float,
        params: SimulationParams,
        fixed: Optional[Dict[int, Tuple[float, float]]] = None,
        movement_threshold: float = 0.5
    ):
        self.nodes = nodes
        self.anchor = np.array([anchor.x, anchor.y], dtype=float)
        self.multiplier = multiplier
        self.params = params
        self.movement_threshold = movement_threshold
        self.fixed = fixed or {}

        count = len(nodes)
        self.widths = np.array([node.width for node in nodes], dtype=float)
        self.heights = np.array([node.height for node in nodes], dtype=float)
        self.importance = np.array([node.importance for node in nodes], dtype=float)
        # Pairwise radius sum = half the two diagonals + padding
        self.radii = np.hypot(self.widths, self.heights) / 2 + padding / 2
        self.pinned = np.zeros(count, dtype=bool)
        for index in self.fixed:
            self.pinned[index] = True

        angles = 2 * np.pi * np.arange(count) / max(count, 1)
        self.initial_angles = angles
        radius = params.initial_radius * multiplier
        self.positions = self.anchor + radius * np.column_stack([np.cos(angles), np.sin(angles)])
        for index, (x, y) in self.fixed.items():
            self.positions[index] = (x, y)
        self.velocities = np.zeros_like(self.positions)

        self.charge = self._charge_strengths()
        self.target_angles = np.array([category_angle(node.category) for node in nodes], dtype=float)
        self.alpha = 1.0
        self.iterations = 0

    def _charge_strengths(self) -> np.ndarray:
        params = self.params
        base = np.where(self.pinned, params.charge_base_fixed, params.charge_base) * self.multiplier
        size_factor = np.sqrt(self.widths * self.heights) / 100
        strengths = base * size_factor
        if params.importance_scaled_charge:
            strengths = strengths * self.importance / 3
        return strengths

    def _apply_charge(self) -> None:
        delta = self.positions[None, :, :] - self.positions[:, None, :]
        dist2 = np.sum(delta ** 2, axis=2)
        dist2 = np.maximum(dist2, self.params.distance_min ** 2)
        mask = ~np.eye(len(self.nodes), dtype=bool)
        if self.params.distance_max is not None:
            mask &= dist2 < (self.params.distance_max * self.multiplier) ** 2
        weights = np.where(mask, self.charge[None, :] * self.alpha / dist2, 0.0)
        self.velocities += np.sum(delta * weights[:, :, None], axis=1)

    def _pair_shares(self) -> np.ndarray:
        """share[i, j]: fraction of a collision between i and j taken by i."""
        r2 = self.radii ** 2
        share = r2[None, :] / (r2[:, None] + r2[None, :])
        share = np.where(self.pinned[:, None], 0.0, share)
        share = np.where(self.pinned[None, :] & ~self.pinned[:, None], 1.0, share)
        return share

    def _coincident_directions(self) -> np.ndarray:
        count = len(self.nodes)
        index = np.arange(count)
        angle = (index[:, None] * 0.618033988749895 - index[None, :] * 0.381966011250105) * 2 * np.pi
        directions = np.stack([np.cos(angle), np.sin(angle)], axis=2)
        # Antisymmetric so the pair separates instead of drifting together
        upper = np.triu(np.ones((count, count), dtype=bool), 1)
        directions = np.where(upper[:, :, None], directions, -np.transpose(directions, (1, 0, 2)))
        return directions

    def _overlap_correction(self, points: np.ndarray, strength: float, slack: float = 0.0) -> np.ndarray:
        """Displacement per node separating overlapping bounding circles."""
        delta = points[:, None, :] - points[None, :, :]
        dist = np.sqrt(np.sum(delta ** 2, axis=2))
        radius_sum = self.radii[:, None] + self.radii[None, :]
        overlap = (dist < radius_sum) & ~np.eye(len(self.nodes), dtype=bool)
        if not overlap.any():
            return np.zeros_like(points)

        safe_dist = np.where(dist > 1e-9, dist, 1.0)
        unit = np.where((dist > 1e-9)[:, :, None], delta / safe_dist[:, :, None], self._coincident_directions())
        push = np.where(overlap, (radius_sum - dist + slack) * strength, 0.0)
        return np.sum(unit * (push * self._pair_shares())[:, :, None], axis=1)

    def _apply_collide(self) -> None:
        for _ in range(self.params.collide_iterations):
            self.velocities += self._overlap_correction(self.positions + self.velocities, self.params.collide_strength)

    def _apply_center(self) -> None:
        free = ~self.pinned
        if not free.any():
            return
        shift = (self.anchor - self.positions[free].mean(axis=0)) * self.params.center_strength
        self.positions[free] += shift

    def _apply_grouping(self) -> None:
        if not self.params.grouping or self.alpha < GROUPING_ALPHA_FLOOR:
            return
        radius = self.params.grouping_radius * self.multiplier
        targets = self.anchor + radius * np.column_stack([np.cos(self.target_angles), np.sin(self.target_angles)])
        free = ~self.pinned
        self.positions[free] += (targets[free] - self.positions[free]) * 0.02 * self.alpha

    def _apply_min_radius(self) -> None:
        min_radius = self.params.min_radius
        offsets = self.positions - self.anchor
        distance = np.sqrt(np.sum(offsets ** 2, axis=1))
        inside = (distance < min_radius) & ~self.pinned
        if not inside.any():
            return
        fallback = np.column_stack([np.cos(self.initial_angles), np.sin(self.initial_angles)])
        safe = np.where(distance > 1e-9, distance, 1.0)
        unit = np.where((distance > 1e-9)[:, None], offsets / safe[:, None], fallback)
        push = np.where(inside, (min_radius - distance) * self.alpha * 0.1, 0.0)
        self.positions += unit * push[:, None]

    def tick(self) -> float:
        """Advance one step; returns the total movement of free nodes."""
        before = self.positions.copy()
        self.alpha += (0.0 - self.alpha) * self.params.alpha_decay

        self._apply_charge()
        self._apply_collide()
        self._apply_center()
        self._apply_grouping()
        self._apply_min_radius()

        self.velocities *= 1 - VELOCITY_DECAY
        self.positions += self.velocities
        for index, (x, y) in self.fixed.items():
            self.positions[index] = (x, y)
            self.velocities[index] = 0.0

        self.iterations += 1
        return float(np.sum(np.sqrt(np.sum((self.positions - before) ** 2, axis=1))))

    def settle(self) -> int:
        """
        Project remaining circle overlaps away after the run.

        Returns:
            Number of overlapping pairs left
        """
        for _ in range(SETTLE_SWEEPS):
            correction = self._overlap_correction(self.positions, 0.5, slack=0.01)
            if not correction.any():
                break
            self.positions += correction
        delta = self.positions[:, None, :] - self.positions[None, :, :]
        dist = np.sqrt(np.sum(delta ** 2, axis=2))
        radius_sum = self.radii[:, None] + self.radii[None, :]
        overlaps = (dist < radius_sum - 1e-6) & ~np.eye(len(self.nodes), dtype=bool)
        return int(np.count_nonzero(overlaps) // 2)

    def run(self) -> bool:
        """
        Run until settled or out of budget.

        Returns:
            True when the simulation settled before exhausting its budget
        """
        converged = False
        while self.iterations < self.params.max_iterations:
            movement = self.tick()
            if self.alpha < ALPHA_MIN or movement < self.movement_threshold:
                converged = True
                break

        if not converged:
            logger.info(
                "Force simulation did not settle within %d iterations; keeping current positions",
                self.params.max_iterations
            )
        remaining = self.settle()
        if remaining:
            logger.debug("%d node pairs still overlap after settling", remaining)
        return converged


def _placements_from(simulation: ForceSimulation, anchor: Point, levels: List[int]) -> List[Placement]:
    placements = []
    for index, node in enumerate(simulation.nodes):
        x, y = (float(value) for value in simulation.positions[index])
        placements.append(Placement(
            x=x,
            y=y,
            bias=bias_for_offset(x - anchor.x, y - anchor.y),
            level=levels[index],
            importance=node.importance,
        ))
    return placements


def force_directed_layout(
    nodes: List[LayoutNode],
    anchor: Point,
    spacing: SpacingSettings,
    settings: Optional[LayoutSettings] = None
) -> LayoutResult:
    """Physics layout of all nodes around the anchor."""
    settings = settings or LayoutSettings()
    params = SimulationParams(max_iterations=settings.force_iterations, min_radius=spacing.min_radius)
    simulation = ForceSimulation(
        nodes, anchor, spacing.multiplier, settings.collision_padding, params,
        movement_threshold=settings.movement_threshold,
    )
    converged = simulation.run()

    ring = params.initial_radius * spacing.multiplier
    levels = [
        int(math.hypot(x - anchor.x, y - anchor.y) // ring)
        for x, y in simulation.positions.tolist()
    ]
    logger.debug("Force layout: %d nodes, %d iterations", len(nodes), simulation.iterations)
    return LayoutResult(_placements_from(simulation, anchor, levels), LayoutStrategy.FORCE, converged)


def hybrid_layout(
    nodes: List[LayoutNode],
    anchor: Point,
    spacing: SpacingSettings,
    settings: Optional[LayoutSettings] = None
) -> LayoutResult:
    """
    Hierarchical rings for important nodes, physics for the rest.

    Nodes with importance >= 4 are placed by the hierarchical strategy and
    pinned; the simulation then arranges the remaining nodes around them.
    Small sets fall back to the plain force layout.
    """
    settings = settings or LayoutSettings()
    important = [index for index, node in enumerate(nodes) if node.importance >= 4]
    if len(nodes) <= settings.hybrid_threshold or not important:
        result = force_directed_layout(nodes, anchor, spacing, settings)
        return LayoutResult(result.placements, LayoutStrategy.HYBRID, result.converged)

    important_nodes = [nodes[index] for index in important]
    ring_positions = hierarchical_layout(important_nodes, anchor, spacing)
    # Pinned nodes cannot be separated by the simulation, so separate them up front
    resolve_collisions(
        important_nodes, ring_positions,
        padding=settings.collision_padding, iterations=settings.collision_iterations,
    )
    fixed = {index: (placement.x, placement.y) for index, placement in zip(important, ring_positions)}

    params = SimulationParams(
        charge_base=-600.0,
        charge_base_fixed=-1200.0,
        importance_scaled_charge=False,
        distance_max=None,
        collide_strength=0.9,
        collide_iterations=1,
        center_strength=0.01,
        grouping=False,
        alpha_decay=0.03,
        max_iterations=settings.hybrid_iterations,
        initial_radius=300.0,
        min_radius=spacing.min_radius,
    )
    simulation = ForceSimulation(
        nodes, anchor, spacing.multiplier, settings.collision_padding, params,
        fixed=fixed, movement_threshold=settings.movement_threshold,
    )
    converged = simulation.run()

    levels = [0 if index in fixed else 1 for index in range(len(nodes))]
    logger.debug("Hybrid layout: %d pinned of %d nodes", len(fixed), len(nodes))
    return LayoutResult(_placements_from(simulation, anchor, levels), LayoutStrategy.HYBRID, converged)
