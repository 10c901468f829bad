"""
Layout Engine Tests
===================

Unit tests for the five layout strategies:
- Small-set cross override
- Pairwise separation of every strategy after resolution
- Determinism and input-order preservation
- Hybrid pinning of important nodes
"""

import itertools
import math

import pytest

from models.common import ContentCategory, LayoutStrategy, Side, SpacingProfile
from models.geometry import Point
from models.layout import LayoutNode
from models.settings import LayoutSettings, SpacingSettings
from layout.engine import build_layout_node, layout
from layout.force_simulation import force_directed_layout, hybrid_layout
from layout.strategies import hierarchical_layout, importance_tier, organic_layout

ANCHOR = Point(1000.0, 500.0)
WIDTH, HEIGHT = 300.0, 100.0
PADDING = 50.0
CATEGORIES = [ContentCategory.GENERAL, ContentCategory.CODE, ContentCategory.LIST, ContentCategory.SUMMARY]


def make_nodes(count):
    return [
        LayoutNode(
            width=WIDTH,
            height=HEIGHT,
            importance=5.0 if index % 3 == 0 else 1.5,
            category=CATEGORIES[index % len(CATEGORIES)],
            text=f"Node {index}",
            key=index,
        )
        for index in range(count)
    ]


def min_pairwise_distance(points):
    return min(a.distance_to(b) for a, b in itertools.combinations(points, 2))


class TestCrossLayout:
    """Test the small-set override."""

    def test_four_nodes_at_cardinal_points(self):
        spacing = SpacingSettings.for_profile(SpacingProfile.NORMAL)
        result = layout(make_nodes(4), ANCHOR, spacing=spacing, strategy=LayoutStrategy.HIERARCHICAL)

        distance = 700 * spacing.multiplier
        assert result.strategy == LayoutStrategy.CROSS
        expected = [
            (ANCHOR.x, ANCHOR.y - distance, Side.TOP),
            (ANCHOR.x + distance * 1.2, ANCHOR.y, Side.RIGHT),
            (ANCHOR.x, ANCHOR.y + distance, Side.BOTTOM),
            (ANCHOR.x - distance * 1.2, ANCHOR.y, Side.LEFT),
        ]
        for placement, (x, y, bias) in zip(result.placements, expected):
            assert placement.x == pytest.approx(x)
            assert placement.y == pytest.approx(y)
            assert placement.bias == bias

    def test_distance_scales_with_spacing(self):
        compact = layout(make_nodes(1), ANCHOR, spacing=SpacingSettings.for_profile(SpacingProfile.COMPACT))
        spacious = layout(make_nodes(1), ANCHOR, spacing=SpacingSettings.for_profile(SpacingProfile.SPACIOUS))

        assert ANCHOR.y - compact.placements[0].y == pytest.approx(560)
        assert ANCHOR.y - spacious.placements[0].y == pytest.approx(1120)

    def test_empty_input(self):
        assert layout([], ANCHOR).placements == []


class TestSeparation:
    """No two nodes end up closer than their diagonal plus the margin."""

    @pytest.mark.parametrize("strategy", list(LayoutStrategy))
    @pytest.mark.parametrize("count", [5, 9, 14])
    def test_pairwise_distance(self, strategy, count):
        nodes = make_nodes(count)
        settings = LayoutSettings(collision_padding=PADDING)
        result = layout(nodes, ANCHOR, strategy=strategy, settings=settings)

        assert len(result.placements) == count
        minimum = math.hypot(WIDTH, HEIGHT) + PADDING
        assert min_pairwise_distance(result.points) >= minimum - 1.0

    @pytest.mark.parametrize("strategy", list(LayoutStrategy))
    def test_deterministic(self, strategy):
        first = layout(make_nodes(9), ANCHOR, strategy=strategy).points
        second = layout(make_nodes(9), ANCHOR, strategy=strategy).points
        assert first == second

    def test_positions_are_assigned_in_input_order(self):
        nodes = make_nodes(7)
        result = layout(nodes, ANCHOR, strategy=LayoutStrategy.ORGANIC)
        for node, placement in zip(nodes, result.placements):
            assert node.position is placement


class TestHierarchicalLayout:
    """Test importance tiers and ring placement."""

    def test_importance_tiers(self):
        assert importance_tier(6) == 0
        assert importance_tier(4) == 0
        assert importance_tier(3) == 1
        assert importance_tier(2.5) == 1
        assert importance_tier(1) == 2

    def test_tiers_use_growing_rings(self):
        spacing = SpacingSettings(multiplier=1.0, radius_increment=0)
        nodes = [LayoutNode(width=100, height=50, importance=value) for value in (5, 5, 3, 3, 1, 1)]
        placements = hierarchical_layout(nodes, Point(0, 0), spacing)

        radii = [math.hypot(p.x, p.y) for p in placements]
        assert radii[0] == pytest.approx(600)
        assert radii[1] == pytest.approx(600)
        assert radii[2] == pytest.approx(900)
        assert radii[4] == pytest.approx(1200)
        assert [p.level for p in placements] == [0, 0, 1, 1, 2, 2]

    def test_ring_overflow(self):
        spacing = SpacingSettings(multiplier=1.0, radius_increment=0)
        nodes = [LayoutNode(width=100, height=50, importance=5) for _ in range(5)]
        placements = hierarchical_layout(nodes, Point(0, 0), spacing)

        radii = sorted(round(math.hypot(p.x, p.y)) for p in placements)
        assert radii == [600, 600, 600, 600, 900]

    def test_radius_increment_widens_each_ring(self):
        spacing = SpacingSettings(multiplier=1.0, radius_increment=50)
        nodes = [LayoutNode(width=100, height=50, importance=value) for value in (5, 3, 1)]
        placements = hierarchical_layout(nodes, Point(0, 0), spacing)

        radii = [round(math.hypot(p.x, p.y)) for p in placements]
        assert radii == [600, 950, 1300]


class TestOrganicLayout:
    """Test category grouping."""

    def test_same_category_shares_a_branch(self):
        spacing = SpacingSettings(multiplier=1.0, radius_increment=0)
        nodes = [
            LayoutNode(width=100, height=50, category=ContentCategory.CODE, importance=2),
            LayoutNode(width=100, height=50, category=ContentCategory.GENERAL),
            LayoutNode(width=100, height=50, category=ContentCategory.CODE, importance=1),
        ]
        placements = organic_layout(nodes, Point(0, 0), spacing)

        # Code sorts before general, so the code branch is group 0 at angle 0
        assert placements[0].bias == Side.RIGHT
        assert placements[2].bias == Side.RIGHT
        assert placements[0].level == 0
        assert placements[2].level == 1
        assert math.hypot(placements[2].x, placements[2].y) > math.hypot(placements[0].x, placements[0].y)

    def test_radius_increment_lengthens_branch_steps(self):
        nodes = [
            LayoutNode(width=100, height=50, category=ContentCategory.CODE, importance=2),
            LayoutNode(width=100, height=50, category=ContentCategory.CODE, importance=1),
        ]
        tight = organic_layout(nodes, Point(0, 0), SpacingSettings(multiplier=1.0, radius_increment=0))
        loose = organic_layout(nodes, Point(0, 0), SpacingSettings(multiplier=1.0, radius_increment=100))

        # A single branch points along +x, so x is the distance along the branch
        assert loose[0].x == pytest.approx(tight[0].x)
        assert loose[1].x - tight[1].x == pytest.approx(100)


class TestForceLayout:
    """Test the physics layout's use of the spacing profile."""

    def test_min_radius_keeps_nodes_away_from_anchor(self):
        nodes = make_nodes(6)
        near = force_directed_layout(nodes, ANCHOR, SpacingSettings(multiplier=1.0, min_radius=450))
        far = force_directed_layout(nodes, ANCHOR, SpacingSettings(multiplier=1.0, min_radius=3000))

        closest_near = min(point.distance_to(ANCHOR) for point in near.points)
        closest_far = min(point.distance_to(ANCHOR) for point in far.points)
        assert closest_far > closest_near


class TestHybridLayout:
    """Test pinning of important nodes."""

    def test_important_nodes_keep_ring_positions(self):
        nodes = make_nodes(10)
        spacing = SpacingSettings()
        result = hybrid_layout(nodes, ANCHOR, spacing)

        assert result.strategy == LayoutStrategy.HYBRID
        important = [index for index, node in enumerate(nodes) if node.importance >= 4]
        assert [result.placements[index].level for index in important] == [0] * len(important)
        others = [index for index in range(len(nodes)) if index not in important]
        assert all(result.placements[index].level == 1 for index in others)

    def test_spacing_profile_changes_placements(self):
        compact = hybrid_layout(make_nodes(10), ANCHOR, SpacingSettings.for_profile(SpacingProfile.COMPACT))
        spacious = hybrid_layout(make_nodes(10), ANCHOR, SpacingSettings.for_profile(SpacingProfile.SPACIOUS))

        assert compact.points != spacious.points
        closest_compact = min(point.distance_to(ANCHOR) for point in compact.points)
        closest_spacious = min(point.distance_to(ANCHOR) for point in spacious.points)
        assert closest_spacious > closest_compact

    def test_small_sets_fall_back_to_force(self):
        result = hybrid_layout(make_nodes(5), ANCHOR, SpacingSettings())
        assert result.strategy == LayoutStrategy.HYBRID
        assert len(result.placements) == 5


class TestBuildLayoutNode:
    """Test layout node construction from section text."""

    def test_category_importance_and_size(self):
        node = build_layout_node("## Setup\n```\npip install\n```", key=7)

        assert node.category == ContentCategory.CODE
        assert node.importance > 1
        assert node.width >= 350
        assert node.key == 7
