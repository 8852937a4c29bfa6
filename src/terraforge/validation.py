"""Post-generation validation."""


import numpy as np
from numpy.typing import NDArray
import structlog

from .config import TerrainConfig
from .generator import GenerationResult
from .rivers import RiverPath, max_step_distance
from .scatter import PlacementRequest

logger = structlog.get_logger()

# Float32 storage slack allowed on bound checks
TOLERANCE = 1e-6


class ValidationResult:
    """Result of terrain validation."""

    def __init__(self) -> None:
        self.errors: list[str] = []
        self.warnings: list[str] = []
        self.passed = True

    def add_error(self, message: str) -> None:
        """Add validation error."""
        self.errors.append(message)
        self.passed = False

    def add_warning(self, message: str) -> None:
        """Add validation warning."""
        self.warnings.append(message)


def validate_terrain(result: GenerationResult) -> ValidationResult:
    """Validate generated terrain against its invariants.

    Args:
        result: Generation result to check.

    Returns:
        ValidationResult with any errors/warnings.
    """
    validation = ValidationResult()
    config = result.config

    # Check 1: Heights in [0, 1]
    _check_height_bounds(result.heights, validation)

    # Check 2: Splat weights in [0, 1], every cell classified
    _check_splat(result.splat, validation)

    # Check 3: River paths in bounds and continuous
    _check_rivers(result.rivers, config, validation)

    # Check 4: Placements above the water line
    _check_placements(result.placements, result.heights, config, validation)

    # Log results
    if validation.passed:
        logger.info("terrain_validation_passed", warnings=len(validation.warnings))
    else:
        logger.warning("terrain_validation_failed", errors=len(validation.errors))
        for error in validation.errors:
            logger.error("terrain_validation_error", message=error)

    for warning in validation.warnings:
        logger.warning("terrain_validation_warning", message=warning)

    return validation


def _check_height_bounds(
    heights: NDArray[np.float32],
    result: ValidationResult,
) -> None:
    """Check heights stay in [0, 1]."""
    if not np.all(np.isfinite(heights)):
        result.add_error("Heightfield contains non-finite values")
        return

    low, high = float(heights.min()), float(heights.max())
    if low < 0.0 or high > 1.0:
        result.add_error(f"Heights outside [0, 1]: min {low:.4f}, max {high:.4f}")


def _check_splat(splat: NDArray[np.float32], result: ValidationResult) -> None:
    """Check splat weights are in range and cover every cell."""
    if splat.min() < 0.0 or splat.max() > 1.0 + TOLERANCE:
        result.add_error("Splat weights outside [0, 1]")

    unclassified = int(np.sum(splat.max(axis=-1) <= 0.0))
    if unclassified:
        result.add_warning(f"{unclassified} cells have no surface layer")


def _check_rivers(
    rivers: list[RiverPath],
    config: TerrainConfig,
    result: ValidationResult,
) -> None:
    """Check river points are in bounds and steps are bounded."""
    for i, river in enumerate(rivers):
        points = river.points
        if np.any(points < 0.0) or np.any(points > 1.0):
            result.add_error(f"River {i} leaves the grid")

        if len(points) < 2:
            continue

        steps = np.hypot(*np.diff(points, axis=0).T)
        limit = max_step_distance(river.kind, config.rivers, config.resolution)
        if steps.max() > limit + TOLERANCE:
            result.add_error(
                f"River {i} jumps {steps.max():.4f} (limit {limit:.4f})"
            )

        if river.parent is not None and river.parent >= i:
            result.add_error(f"River {i} branches from later path {river.parent}")


def _check_placements(
    placements: list[PlacementRequest],
    heights: NDArray[np.float32],
    config: TerrainConfig,
    result: ValidationResult,
) -> None:
    """Check placements sit on dry cells."""
    resolution = heights.shape[0]
    floor = config.water.height + config.water.floor_epsilon

    invalid_count = 0
    for placement in placements:
        if not (0 <= placement.x < resolution and 0 <= placement.y < resolution):
            invalid_count += 1
            continue
        if heights[placement.y, placement.x] <= floor:
            invalid_count += 1

    if invalid_count > 0:
        result.add_error(f"{invalid_count} placements at or below the water line")
