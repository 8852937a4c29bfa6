"""Tests for scatter placement."""

import numpy as np
import pytest

from terraforge.classification import classify_surface
from terraforge.config import ScatterConfig, WaterConfig, WorldConfig
from terraforge.scatter import GridGroundQuery, paint_layer, place_scatter


def _scatter(heights, layers, config, seed=4, ground_query=None):
    splat = classify_surface(heights, layers)
    return place_scatter(
        heights,
        splat,
        layers,
        config,
        WaterConfig(),
        WorldConfig(),
        seed,
        ground_query,
    )


def _eager(**overrides) -> ScatterConfig:
    """Scatter config where every dry trial passes density and chance."""
    values = {
        "attempts": 2000,
        "spawn_chance": 1.0,
        "density_threshold": -1.0,
        "paint_layer": "grass",
    }
    values.update(overrides)
    return ScatterConfig(**values)


class TestPlaceScatter:
    """Tests for place_scatter."""

    def test_zero_budget(self, half_flooded, quarter_layers) -> None:
        result = _scatter(half_flooded, quarter_layers, _eager(attempts=0))
        assert result.placements == []
        assert result.stats.attempts == 0

    def test_impossible_threshold(self, half_flooded, quarter_layers) -> None:
        """A density threshold of 1.0 can never be exceeded."""
        config = ScatterConfig(
            attempts=20000, spawn_chance=1.0, density_threshold=1.0, paint_layer="grass"
        )
        result = _scatter(half_flooded, quarter_layers, config)
        assert result.placements == []

    def test_avoids_water(self, half_flooded, quarter_layers) -> None:
        """Only dry cells receive placements."""
        result = _scatter(half_flooded, quarter_layers, _eager())

        assert result.placements
        assert all(p.x >= 32 for p in result.placements)
        assert result.stats.rejected_water > 0

    def test_deterministic(self, half_flooded, quarter_layers) -> None:
        first = _scatter(half_flooded, quarter_layers, _eager(spawn_chance=0.3))
        second = _scatter(half_flooded, quarter_layers, _eager(spawn_chance=0.3))

        assert first.placements == second.placements
        np.testing.assert_array_equal(first.splat, second.splat)

    def test_seed_changes_placements(self, half_flooded, quarter_layers) -> None:
        first = _scatter(half_flooded, quarter_layers, _eager(), seed=1)
        second = _scatter(half_flooded, quarter_layers, _eager(), seed=2)
        assert first.placements != second.placements

    def test_stats_account_for_every_trial(self, half_flooded, quarter_layers) -> None:
        config = ScatterConfig(attempts=3000, spawn_chance=0.5, paint_layer="grass")
        stats = _scatter(half_flooded, quarter_layers, config).stats

        total = (
            stats.rejected_water
            + stats.rejected_density
            + stats.rejected_chance
            + stats.rejected_ground
            + stats.accepted
        )
        assert total == stats.attempts == 3000

    def test_placement_fields(self, half_flooded, quarter_layers) -> None:
        world = WorldConfig()
        result = _scatter(half_flooded, quarter_layers, _eager(attempts=200))

        for p in result.placements:
            assert 0.0 <= p.u <= 1.0 and 0.0 <= p.v <= 1.0
            assert p.u == pytest.approx(p.x / 63)
            assert p.world_position[0] == pytest.approx(p.u * world.size)
            assert p.world_position[2] == pytest.approx(p.v * world.size)
            assert p.world_position[1] == pytest.approx(0.5 * world.height)
            assert 0.0 <= p.yaw < 360.0
            assert p.category == "tree"

    def test_object_ids_unique(self, half_flooded, quarter_layers) -> None:
        config = _eager(categories=["tree", "rock"], paint_categories=["tree"])
        result = _scatter(half_flooded, quarter_layers, config)

        ids = [p.object_id for p in result.placements]
        assert len(ids) == len(set(ids))
        assert {p.category for p in result.placements} == {"tree", "rock"}

    def test_ground_miss_rejected(self, half_flooded, quarter_layers) -> None:
        """Candidates the ground query can't resolve are dropped."""
        result = _scatter(
            half_flooded, quarter_layers, _eager(), ground_query=lambda x, z: None
        )
        assert result.placements == []
        assert result.stats.rejected_ground > 0

    def test_low_ground_rejected(self, half_flooded, quarter_layers) -> None:
        """Ground reported at the water line is too low to build on."""
        water_line = WaterConfig().height * WorldConfig().height
        result = _scatter(
            half_flooded,
            quarter_layers,
            _eager(),
            ground_query=lambda x, z: water_line,
        )
        assert result.placements == []

    def test_paints_under_trees(self, half_flooded, quarter_layers) -> None:
        """Painting categories blend the paint layer in around them."""
        result = _scatter(half_flooded, quarter_layers, _eager(attempts=50))
        grass = 2

        assert result.placements
        for p in result.placements:
            assert result.splat[p.y, p.x, grass] == pytest.approx(1.0)

    def test_non_painting_category_leaves_splat(
        self, half_flooded, quarter_layers
    ) -> None:
        config = _eager(categories=["rock"], paint_categories=[])
        splat = classify_surface(half_flooded, quarter_layers)

        result = _scatter(half_flooded, quarter_layers, config)

        assert result.placements
        np.testing.assert_array_equal(result.splat, splat)

    def test_input_splat_not_modified(self, half_flooded, quarter_layers) -> None:
        splat = classify_surface(half_flooded, quarter_layers)
        original = splat.copy()

        place_scatter(
            half_flooded,
            splat,
            quarter_layers,
            _eager(),
            WaterConfig(),
            WorldConfig(),
            seed=3,
        )

        np.testing.assert_array_equal(splat, original)


class TestPaintLayer:
    """Tests for paint_layer."""

    def test_centre_fully_painted(self) -> None:
        splat = np.zeros((9, 9, 2), dtype=np.float32)
        splat[..., 0] = 1.0

        paint_layer(splat, 4, 4, layer=1, radius=3.0)

        np.testing.assert_allclose(splat[4, 4], [0.0, 1.0])

    def test_falloff(self) -> None:
        splat = np.zeros((9, 9, 2), dtype=np.float32)
        splat[..., 0] = 1.0

        paint_layer(splat, 4, 4, layer=1, radius=2.0, exponent=1.5)

        strength = 0.5**1.5
        np.testing.assert_allclose(splat[4, 5], [1.0 - strength, strength], rtol=1e-6)

    def test_outside_radius_untouched(self) -> None:
        splat = np.zeros((9, 9, 2), dtype=np.float32)
        splat[..., 0] = 1.0

        paint_layer(splat, 4, 4, layer=1, radius=2.0)

        np.testing.assert_array_equal(splat[0, 0], [1.0, 0.0])
        np.testing.assert_array_equal(splat[4, 7], [1.0, 0.0])

    def test_never_lowers_target(self) -> None:
        splat = np.zeros((5, 5, 2), dtype=np.float32)
        splat[..., 1] = 1.0

        paint_layer(splat, 2, 2, layer=1, radius=2.0)

        np.testing.assert_allclose(splat[..., 1], 1.0)

    def test_clipped_at_edges(self) -> None:
        splat = np.zeros((5, 5, 2), dtype=np.float32)
        splat[..., 0] = 1.0

        paint_layer(splat, 0, 0, layer=1, radius=4.0)

        assert splat[0, 0, 1] == pytest.approx(1.0)
        assert splat.shape == (5, 5, 2)


class TestGridGroundQuery:
    """Tests for GridGroundQuery."""

    def test_interpolates(self) -> None:
        heights = np.tile(np.linspace(0.0, 1.0, 11, dtype=np.float32), (11, 1))
        world = WorldConfig(size=10.0, height=50.0)
        query = GridGroundQuery(heights, world)

        assert query(5.0, 3.0) == pytest.approx(25.0, rel=1e-5)
        assert query(2.5, 0.0) == pytest.approx(12.5, rel=1e-5)

    def test_outside_is_none(self) -> None:
        heights = np.zeros((4, 4), dtype=np.float32)
        query = GridGroundQuery(heights, WorldConfig(size=10.0))
        assert query(-1.0, 5.0) is None
        assert query(5.0, 10.5) is None
