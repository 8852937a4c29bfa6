"""Tests for channel carving, bank blending and slope relaxation."""

import numpy as np
import pytest

from terraforge.carving import (
    MIN_CHANNEL_DEPTH,
    blend_river_banks,
    carve_rivers,
    channel_depth,
    enforce_waterline,
    footprint_radius,
    relax_slopes,
)
from terraforge.rivers import PathKind, RiverPath, RiverProfile


def _straight_river(resolution: int, width: float, depth: float) -> RiverPath:
    """Vertical path down the middle column."""
    side = resolution - 1
    column = resolution // 2
    ys = np.arange(resolution, dtype=np.float64)
    points = np.stack([np.full(resolution, column, dtype=np.float64), ys], axis=1)
    return RiverPath(
        points=points / side,
        kind=PathKind.MAIN,
        profile=RiverProfile(width=width, depth=depth),
    )


class TestChannelShape:
    """Tests for the channel cross-section helpers."""

    def test_quadratic(self) -> None:
        d = np.array([0.0, 0.5, 1.0, 2.0])
        np.testing.assert_allclose(channel_depth(d, "quadratic"), [1.0, 0.25, 0.0, 0.0])

    def test_linear(self) -> None:
        d = np.array([0.0, 0.5, 1.0, 2.0])
        np.testing.assert_allclose(channel_depth(d, "linear"), [1.0, 0.5, 0.0, 0.0])

    def test_footprint_radius(self) -> None:
        assert footprint_radius(0.1, 128) == 7
        assert footprint_radius(0.35, 512) == 90
        assert footprint_radius(0.0001, 16) == 1


class TestCarveRivers:
    """Tests for carve_rivers."""

    @pytest.fixture
    def carved(self) -> tuple[np.ndarray, np.ndarray, np.ndarray, RiverPath]:
        heights = np.full((128, 128), 0.5, dtype=np.float32)
        river = _straight_river(128, width=0.1, depth=0.2)
        carved, ceiling = carve_rivers(heights, [river], 0.25, "quadratic")
        return heights, carved, ceiling, river

    def test_input_not_modified(self, carved) -> None:
        heights, _, _, _ = carved
        assert np.all(heights == 0.5)

    def test_centerline_depth(self, carved) -> None:
        """Centerline cells sit a full depth below the water line."""
        _, result, _, _ = carved
        np.testing.assert_allclose(result[:, 64], 0.05, atol=1e-6)

    def test_footprint_below_water(self, carved) -> None:
        """Every footprint cell ends below the water line by its depth."""
        _, result, ceiling, _ = carved
        footprint = np.isfinite(ceiling)

        # Radius 7 around column 64
        assert footprint[:, 58:71].all()
        assert not footprint[:, :57].any()
        assert not footprint[:, 72:].any()

        assert np.all(result[footprint] < 0.25)
        assert np.all(result[footprint] <= ceiling[footprint] + 1e-6)

    def test_ceiling_follows_falloff(self, carved) -> None:
        _, _, ceiling, _ = carved
        for offset in range(7):
            expected = 0.25 - 0.2 * (1.0 - offset / 7.0) ** 2
            assert ceiling[64, 64 + offset] == pytest.approx(expected)

    def test_outside_untouched(self, carved) -> None:
        _, result, ceiling, _ = carved
        outside = ~np.isfinite(ceiling)
        assert np.all(result[outside] == 0.5)

    def test_overlapping_channels_never_raise(self) -> None:
        """Carving the same path twice can only lower cells."""
        heights = np.full((64, 64), 0.5, dtype=np.float32)
        river = _straight_river(64, width=0.2, depth=0.1)

        once, _ = carve_rivers(heights, [river], 0.25)
        twice, _ = carve_rivers(heights, [river, river], 0.25)

        assert np.all(twice <= once)
        assert twice[32, 32] < once[32, 32]

    def test_zero_depth_uses_minimum(self) -> None:
        """A zero-depth channel still drops below the water line."""
        heights = np.full((32, 32), 0.5, dtype=np.float32)
        river = _straight_river(32, width=0.2, depth=0.0)

        result, _ = carve_rivers(heights, [river], 0.25)

        assert result[16, 16] == pytest.approx(0.25 - MIN_CHANNEL_DEPTH)

    def test_deep_channel_clipped_at_zero(self) -> None:
        """Channels deeper than the water line bottom out at 0."""
        heights = np.full((32, 32), 0.5, dtype=np.float32)
        river = _straight_river(32, width=0.2, depth=0.9)

        result, _ = carve_rivers(heights, [river], 0.25)

        assert result.min() == 0.0

    def test_empty_river_list(self) -> None:
        heights = np.full((16, 16), 0.4, dtype=np.float32)
        result, ceiling = carve_rivers(heights, [], 0.25)
        np.testing.assert_array_equal(result, heights)
        assert np.all(np.isinf(ceiling))


class TestBankBlending:
    """Tests for blend_river_banks."""

    def test_far_cells_unchanged(self) -> None:
        heights = np.full((64, 64), 0.5, dtype=np.float32)
        river = _straight_river(64, width=0.1, depth=0.2)
        carved, _ = carve_rivers(heights, [river], 0.25)

        blended = blend_river_banks(carved, [river], radius_fraction=0.05)

        # Radius ceil(3.2) = 4 around column 32
        np.testing.assert_array_equal(blended[:, :28], carved[:, :28])
        np.testing.assert_array_equal(blended[:, 37:], carved[:, 37:])

    def test_borders_unchanged(self) -> None:
        rng = np.random.default_rng(0)
        heights = rng.random((32, 32)).astype(np.float32)
        river = _straight_river(32, width=0.1, depth=0.2)

        blended = blend_river_banks(heights, [river])

        np.testing.assert_array_equal(blended[0], heights[0])
        np.testing.assert_array_equal(blended[-1], heights[-1])
        np.testing.assert_array_equal(blended[:, 0], heights[:, 0])
        np.testing.assert_array_equal(blended[:, -1], heights[:, -1])

    def test_softens_channel_edge(self) -> None:
        """A sharp step at the bank is reduced."""
        heights = np.full((64, 64), 0.5, dtype=np.float32)
        heights[:, 32] = 0.1
        river = _straight_river(64, width=0.02, depth=0.2)

        blended = blend_river_banks(heights, [river])

        assert blended[20, 32] > 0.1
        assert blended[20, 31] < 0.5

    def test_no_rivers(self) -> None:
        heights = np.full((16, 16), 0.3, dtype=np.float32)
        np.testing.assert_array_equal(blend_river_banks(heights, []), heights)


class TestRelaxSlopes:
    """Tests for relax_slopes."""

    def test_spike_pulled_toward_neighbours(self) -> None:
        heights = np.full((5, 5), 0.3, dtype=np.float32)
        heights[2, 2] = 0.8

        relaxed = relax_slopes(heights, threshold=0.05, strength=0.5)

        assert relaxed[2, 2] == pytest.approx(0.55)
        # Neighbours see the old spike in their mean: 0.3 + (0.425 - 0.3) * 0.5
        assert relaxed[1, 2] == pytest.approx(0.3625)

    def test_gentle_terrain_unchanged(self) -> None:
        ramp = np.tile(np.linspace(0.2, 0.4, 16, dtype=np.float32), (16, 1))
        relaxed = relax_slopes(ramp, threshold=0.05, strength=0.5)
        np.testing.assert_allclose(relaxed, ramp, atol=1e-7)

    def test_borders_unchanged(self) -> None:
        heights = np.full((6, 6), 0.2, dtype=np.float32)
        heights[0, 3] = 1.0
        relaxed = relax_slopes(heights, threshold=0.01, strength=1.0)
        assert relaxed[0, 3] == pytest.approx(1.0)

    def test_zero_strength_is_identity(self) -> None:
        rng = np.random.default_rng(3)
        heights = rng.random((16, 16)).astype(np.float32)
        relaxed = relax_slopes(heights, threshold=0.0, strength=0.0)
        np.testing.assert_allclose(relaxed, heights, atol=1e-7)


class TestEnforceWaterline:
    """Tests for enforce_waterline."""

    def test_clamps_only_carved_cells(self) -> None:
        heights = np.full((4, 4), 0.4, dtype=np.float32)
        ceiling = np.full((4, 4), np.inf)
        ceiling[1, 1] = 0.1

        result = enforce_waterline(heights, ceiling)

        assert result[1, 1] == pytest.approx(0.1)
        assert result[0, 0] == pytest.approx(0.4)
        assert result.dtype == np.float32
