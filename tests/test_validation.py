"""Tests for terrain validation."""

from dataclasses import replace

import numpy as np

from terraforge.generator import generate_terrain
from terraforge.rivers import RiverPath
from terraforge.validation import ValidationResult, validate_terrain


class TestValidateTerrain:
    """Tests for validate_terrain."""

    def test_generated_terrain_passes(self, small_config) -> None:
        result = generate_terrain(small_config)

        validation = validate_terrain(result)

        assert validation.passed
        assert validation.errors == []

    def test_out_of_range_heights(self, small_config) -> None:
        result = generate_terrain(small_config)
        heights = result.heights.copy()
        heights[0, 0] = 1.5

        validation = validate_terrain(replace(result, heights=heights))

        assert not validation.passed
        assert any("outside [0, 1]" in e for e in validation.errors)

    def test_non_finite_heights(self, small_config) -> None:
        result = generate_terrain(small_config)
        heights = result.heights.copy()
        heights[3, 3] = np.nan

        validation = validate_terrain(replace(result, heights=heights))

        assert not validation.passed

    def test_unclassified_cells_warn(self, small_config) -> None:
        result = generate_terrain(small_config)
        splat = result.splat.copy()
        splat[0, 0] = 0.0

        validation = validate_terrain(replace(result, splat=splat))

        assert validation.passed
        assert validation.warnings

    def test_river_jump(self, small_config) -> None:
        result = generate_terrain(small_config)
        river = result.rivers[0]
        points = river.points.copy()
        points[5] = [1.0, 1.0] if points[4, 0] < 0.5 else [0.0, 0.0]
        broken = RiverPath(points=points, kind=river.kind, profile=river.profile)

        validation = validate_terrain(
            replace(result, rivers=[broken, *result.rivers[1:]])
        )

        assert not validation.passed
        assert any("jumps" in e for e in validation.errors)

    def test_river_out_of_bounds(self, small_config) -> None:
        result = generate_terrain(small_config)
        river = result.rivers[0]
        points = river.points.copy()
        points[0] = [-0.01, 0.0]
        broken = RiverPath(points=points, kind=river.kind, profile=river.profile)

        validation = validate_terrain(replace(result, rivers=[broken]))

        assert any("leaves the grid" in e for e in validation.errors)

    def test_placement_in_water(self, small_config) -> None:
        result = generate_terrain(small_config)
        assert result.placements
        heights = result.heights.copy()
        first = result.placements[0]
        heights[first.y, first.x] = 0.1

        validation = validate_terrain(replace(result, heights=heights))

        assert not validation.passed
        assert any("water line" in e for e in validation.errors)


class TestValidationResult:
    def test_warning_keeps_pass(self) -> None:
        result = ValidationResult()
        result.add_warning("odd")
        assert result.passed

    def test_error_fails(self) -> None:
        result = ValidationResult()
        result.add_error("bad")
        assert not result.passed
        assert result.errors == ["bad"]
