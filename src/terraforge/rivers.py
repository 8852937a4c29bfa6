"""River planning: main and branch centerlines as normalized point paths.

Main rivers run between opposite grid edges and follow a noise-perturbed
straight course with critically damped steps. Branch rivers leave an existing
path, steer downhill on the un-carved heightmap and bend away from earlier
paths they would otherwise cross.
"""

import math
from dataclasses import dataclass
from enum import Enum

import numpy as np
from numpy.typing import NDArray
import structlog

from .config import RiverConfig
from .noise import NoiseField

logger = structlog.get_logger()

# Fraction of the remaining distance to the target covered per step
STEP_DAMPING = 0.5

# Noise sample spacing along a path (in steps)
NOISE_STEP = 0.1


class PathKind(str, Enum):
    """Role of a river path."""

    MAIN = "main"
    BRANCH = "branch"


@dataclass(frozen=True)
class RiverProfile:
    """Channel cross-section applied when carving."""

    width: float
    depth: float


@dataclass
class RiverPath:
    """A river centerline with its carving profile."""

    points: NDArray[np.float64]  # (N, 2) normalized (x, y)
    kind: PathKind
    profile: RiverProfile
    parent: int | None = None  # Index of the parent path (branches)
    origin_index: int | None = None  # Index of the origin point on the parent

    def __len__(self) -> int:
        return len(self.points)

    def pixel_points(self, resolution: int) -> NDArray[np.float64]:
        """Points in grid cell units."""
        return self.points * (resolution - 1)


def river_profiles(config: RiverConfig) -> tuple[list[RiverProfile], list[RiverProfile]]:
    """Build main and branch profiles, padding short lists with defaults.

    Args:
        config: River configuration.

    Returns:
        Tuple of (main profiles, branch profiles).
    """
    main = [
        RiverProfile(
            width=_pick(config.main_widths, i, config.default_main_width),
            depth=_pick(config.main_depths, i, config.default_main_depth),
        )
        for i in range(config.main_count)
    ]
    branches = [
        RiverProfile(
            width=_pick(config.branch_widths, i, config.default_branch_width),
            depth=_pick(config.branch_depths, i, config.default_branch_depth),
        )
        for i in range(config.branch_count)
    ]
    return main, branches


def _pick(values: list[float], index: int, default: float) -> float:
    return values[index] if index < len(values) else default


def plan_rivers(
    heights: NDArray[np.float32],
    config: RiverConfig,
    seed: int,
) -> list[RiverPath]:
    """Plan all river paths for a run.

    Every path draws its own seed from a single stream derived from the run
    seed, so results depend only on (seed, config).

    Args:
        heights: Un-carved elevation grid (used for downhill steering).
        config: River configuration.
        seed: Run seed.

    Returns:
        Main paths first, then branches in generation order.
    """
    resolution = heights.shape[0]
    rng = np.random.default_rng(seed + config.seed_offset)
    main_profiles, branch_profiles = river_profiles(config)

    rivers: list[RiverPath] = []

    for profile in main_profiles:
        local_seed = int(rng.integers(0, 2**31 - 1))
        rivers.append(trace_main_river(local_seed, resolution, config, profile))

    for profile in branch_profiles:
        local_seed = int(rng.integers(0, 2**31 - 1))
        rivers.append(
            trace_branch_river(local_seed, heights, rivers, config, profile)
        )

    logger.debug(
        "rivers_planned", main=len(main_profiles), branches=len(branch_profiles)
    )
    return rivers


def trace_main_river(
    local_seed: int,
    resolution: int,
    config: RiverConfig,
    profile: RiverProfile,
) -> RiverPath:
    """Trace a main river between two opposite grid edges.

    Each step aims at the straight-line position for its fraction of the
    course, offset perpendicular by smooth noise, and moves halfway there.

    Args:
        local_seed: Seed for this path.
        resolution: Grid side length.
        config: River configuration.
        profile: Channel profile for the path.

    Returns:
        The main RiverPath.
    """
    rng = np.random.default_rng(local_seed)
    wander = NoiseField(local_seed)
    side = resolution - 1

    orientation = config.orientation
    if orientation == "random":
        orientation = "vertical" if rng.random() < 0.5 else "horizontal"

    low, high = resolution // 4, max(resolution // 4 + 1, 3 * resolution // 4)
    a = float(rng.integers(low, high))
    b = float(rng.integers(low, high))

    if orientation == "vertical":
        start = np.array([a, 0.0])
        end = np.array([b, float(side)])
        across = np.array([1.0, 0.0])
    else:
        start = np.array([0.0, a])
        end = np.array([float(side), b])
        across = np.array([0.0, 1.0])

    count = config.main_points
    amplitude = 0.5 * resolution * config.main_wander
    points = np.empty((count, 2), dtype=np.float64)
    current = start.copy()
    points[0] = current

    for i in range(1, count):
        t = i / (count - 1)
        target = start + (end - start) * t
        target += across * float(wander.value_noise(i * NOISE_STEP, 0.0)) * amplitude
        target = np.clip(target, 0.0, side)

        current = current + (target - current) * STEP_DAMPING
        current = np.clip(current, 0.0, side)
        points[i] = current

    return RiverPath(points=points / side, kind=PathKind.MAIN, profile=profile)


def trace_branch_river(
    local_seed: int,
    heights: NDArray[np.float32],
    rivers: list[RiverPath],
    config: RiverConfig,
    profile: RiverProfile,
) -> RiverPath:
    """Trace a branch river leaving an existing path.

    With no earlier path to branch from, the branch starts at a random cell.

    Args:
        local_seed: Seed for this path.
        heights: Un-carved elevation grid.
        rivers: Paths generated so far.
        config: River configuration.
        profile: Channel profile for the path.

    Returns:
        The branch RiverPath.
    """
    rng = np.random.default_rng(local_seed)
    jitter_x = NoiseField(local_seed)
    jitter_y = NoiseField(local_seed + 1)
    resolution = heights.shape[0]
    side = resolution - 1

    parent: int | None = None
    origin_index: int | None = None
    if rivers:
        parent = int(rng.integers(len(rivers)))
        parent_points = rivers[parent].pixel_points(resolution)
        origin_index = int(rng.integers(1, max(2, len(parent_points) - 1)))
        start = parent_points[origin_index].copy()
    else:
        start = rng.integers(0, resolution, size=2).astype(np.float64)

    angle = math.radians(int(rng.integers(0, 360)))
    heading = np.array([math.cos(angle), math.sin(angle)])
    low, high = branch_distance_range(resolution)
    distance = float(rng.integers(low, high))

    end = start + heading * distance
    if config.downhill_bias and config.downhill_samples > 0:
        end = find_downhill_end(start, end, heights, rng, config.downhill_samples)
    end = np.clip(end, 0.0, side)

    count = config.resolved_branch_points
    if config.avoid_crossings:
        others = [
            river.pixel_points(resolution)
            for index, river in enumerate(rivers)
            if index != parent
        ]
        end = deflect_from_paths(
            start,
            end,
            others,
            count,
            config.crossing_distance * resolution,
            config.crossing_angle,
            config.crossing_retries,
            side,
        )

    aim = _normalized(end - start)
    if aim.any():
        heading = aim

    step = distance / (count - 1)
    amplitude = 0.5 * resolution * config.branch_curvature
    points = np.empty((count, 2), dtype=np.float64)
    current = start.copy()
    points[0] = current

    for i in range(1, count):
        if config.downhill_bias:
            gradient = downhill_direction(heights, current)
        else:
            gradient = np.zeros(2)

        jitter = np.array(
            [
                float(jitter_x.value_noise(i * NOISE_STEP, 0.0)),
                float(jitter_y.value_noise(i * NOISE_STEP, 0.0)),
            ]
        ) * amplitude

        target = np.clip(current + (gradient + heading) * step + jitter, 0.0, side)
        current = np.clip(current + (target - current) * STEP_DAMPING, 0.0, side)

        # Follow the terrain: new heading points at what is left of the target
        turned = _normalized(target - current)
        if turned.any():
            heading = turned
        points[i] = current

    return RiverPath(
        points=points / side,
        kind=PathKind.BRANCH,
        profile=profile,
        parent=parent,
        origin_index=origin_index,
    )


def branch_distance_range(resolution: int) -> tuple[int, int]:
    """Half-open range of branch travel distances in cells."""
    low = max(1, resolution // 8)
    high = max(low + 1, resolution // 4)
    return low, high


def downhill_direction(
    heights: NDArray[np.float32],
    point: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Unit vector along the negative central-difference gradient.

    Args:
        heights: Elevation grid.
        point: (x, y) position in cells.

    Returns:
        Unit (x, y) direction, or zeros on flat ground.
    """
    resolution = heights.shape[0]
    x = int(np.clip(round(point[0]), 1, resolution - 2))
    y = int(np.clip(round(point[1]), 1, resolution - 2))

    dx = float(heights[y, x + 1]) - float(heights[y, x - 1])
    dy = float(heights[y + 1, x]) - float(heights[y - 1, x])
    return _normalized(np.array([-dx, -dy]))


def find_downhill_end(
    start: NDArray[np.float64],
    proposed_end: NDArray[np.float64],
    heights: NDArray[np.float32],
    rng: np.random.Generator,
    samples: int,
) -> NDArray[np.float64]:
    """Search randomly around a proposed end point for lower ground.

    Args:
        start: (x, y) start in cells.
        proposed_end: (x, y) tentative end in cells.
        heights: Elevation grid.
        rng: Path random number generator.
        samples: Number of cells probed.

    Returns:
        The lowest probed cell below the start height, else the proposed end.
    """
    resolution = heights.shape[0]
    side = resolution - 1
    x = int(np.clip(round(proposed_end[0]), 0, side))
    y = int(np.clip(round(proposed_end[1]), 0, side))
    sx0 = int(np.clip(round(start[0]), 0, side))
    sy0 = int(np.clip(round(start[1]), 0, side))

    start_height = heights[sy0, sx0]
    best_end = proposed_end
    best_height = heights[y, x]

    radius = max(1, resolution // 8)
    for _ in range(samples):
        sx = int(np.clip(rng.integers(-radius, radius) + x, 0, side))
        sy = int(np.clip(rng.integers(-radius, radius) + y, 0, side))

        sample_height = heights[sy, sx]
        if sample_height < start_height and sample_height < best_height:
            best_end = np.array([sx, sy], dtype=np.float64)
            best_height = sample_height

    return best_end


def crosses_paths(
    start: NDArray[np.float64],
    end: NDArray[np.float64],
    others: list[NDArray[np.float64]],
    count: int,
    threshold: float,
) -> bool:
    """Check whether the straight course start->end passes near other paths.

    Args:
        start: (x, y) start in cells.
        end: (x, y) end in cells.
        others: Earlier paths in cells.
        count: Number of points the course is sampled at.
        threshold: Proximity distance in cells.

    Returns:
        True if any sample lies within threshold of another path's point.
    """
    t = np.arange(1, count) / (count - 1)
    samples = start + (end - start) * t[:, None]

    for other in others:
        dist = np.linalg.norm(samples[:, None, :] - other[None, :, :], axis=2)
        if np.any(dist < threshold):
            return True
    return False


def deflect_from_paths(
    start: NDArray[np.float64],
    end: NDArray[np.float64],
    others: list[NDArray[np.float64]],
    count: int,
    threshold: float,
    angle_degrees: float,
    retries: int,
    side: int,
) -> NDArray[np.float64]:
    """Rotate the course around its start until it clears earlier paths.

    Args:
        start: (x, y) start in cells.
        end: (x, y) end in cells.
        others: Earlier paths in cells.
        count: Number of points the course is sampled at.
        threshold: Proximity distance in cells.
        angle_degrees: Rotation per attempt.
        retries: Maximum rotations.
        side: Largest valid cell coordinate.

    Returns:
        Adjusted end point (the last attempt if none clears).
    """
    adjusted = end
    for _ in range(retries):
        if not crosses_paths(start, adjusted, others, count, threshold):
            break

        offset = adjusted - start
        angle = math.atan2(offset[1], offset[0]) + math.radians(angle_degrees)
        length = float(np.hypot(offset[0], offset[1]))
        adjusted = start + np.array([math.cos(angle), math.sin(angle)]) * length
        adjusted = np.clip(adjusted, 0.0, side)

    return adjusted


def max_step_distance(kind: PathKind, config: RiverConfig, resolution: int) -> float:
    """Upper bound on the normalized distance between consecutive points.

    Args:
        kind: Path kind.
        config: River configuration.
        resolution: Grid side length.

    Returns:
        Maximum step in normalized units.
    """
    side = resolution - 1
    if kind == PathKind.MAIN:
        count = config.main_points
        segment = resolution * math.sqrt(2.0) / (count - 1)
        return (segment + resolution * config.main_wander) / side

    count = config.resolved_branch_points
    _, high = branch_distance_range(resolution)
    jitter = resolution * config.branch_curvature * math.sqrt(2.0) / 2.0
    return STEP_DAMPING * (2.0 * high / (count - 1) + jitter) / side


def _normalized(vector: NDArray[np.float64]) -> NDArray[np.float64]:
    norm = float(np.hypot(vector[0], vector[1]))
    if norm < 1e-12:
        return np.zeros(2)
    return vector / norm
