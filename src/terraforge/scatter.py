"""Scatter placement: density-masked random trials with surface painting."""

import math
from collections.abc import Callable
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray
from scipy.ndimage import map_coordinates
import structlog

from .classification import layer_index
from .config import ScatterConfig, SurfaceLayer, WaterConfig, WorldConfig
from .noise import NoiseField

logger = structlog.get_logger()

# Ground query: world (x, z) -> surface height, or None if nothing was hit
GroundQuery = Callable[[float, float], float | None]


@dataclass(frozen=True)
class PlacementRequest:
    """An accepted scatter candidate for the host to instantiate."""

    x: int  # Grid cell column
    y: int  # Grid cell row
    u: float  # Normalized x in [0, 1]
    v: float  # Normalized y in [0, 1]
    world_position: tuple[float, float, float]  # (x, height, z)
    yaw: float  # Degrees around the vertical axis
    category: str
    object_id: str


@dataclass
class ScatterStats:
    """Trial outcome counts."""

    attempts: int = 0
    rejected_water: int = 0
    rejected_density: int = 0
    rejected_chance: int = 0
    rejected_ground: int = 0
    accepted: int = 0


@dataclass
class ScatterResult:
    """Placements plus the splat weights painted under them."""

    placements: list[PlacementRequest]
    splat: NDArray[np.float32]
    stats: ScatterStats


class GridGroundQuery:
    """Ground query answered from the elevation grid.

    Bilinearly interpolates the grid at a world-space column. Columns outside
    the terrain report no surface.
    """

    def __init__(self, heights: NDArray[np.float32], world: WorldConfig):
        self.heights = heights
        self.world = world
        self._side = heights.shape[0] - 1

    def __call__(self, x: float, z: float) -> float | None:
        col = x / self.world.size * self._side
        row = z / self.world.size * self._side
        if not (0.0 <= col <= self._side and 0.0 <= row <= self._side):
            return None

        sample = map_coordinates(
            self.heights, np.array([[row], [col]]), order=1, mode="nearest"
        )
        return float(sample[0]) * self.world.height


def paint_layer(
    splat: NDArray[np.float32],
    x: int,
    y: int,
    layer: int,
    radius: float,
    exponent: float = 1.5,
) -> None:
    """Blend a layer in around a cell, in place.

    Within the radius the target layer is raised to at least
    (1 - d)^exponent and every other layer is scaled by its complement.

    Args:
        splat: Splat weights (height, width, layers), modified in place.
        x: Centre column.
        y: Centre row.
        layer: Layer index to paint.
        radius: Paint radius in cells.
        exponent: Falloff exponent.
    """
    rows, cols = splat.shape[:2]
    reach = math.ceil(radius)
    x0, x1 = max(x - reach, 0), min(x + reach + 1, cols)
    y0, y1 = max(y - reach, 0), min(y + reach + 1, rows)

    ys, xs = np.ogrid[y0:y1, x0:x1]
    dist = np.hypot(xs - x, ys - y) / radius
    inside = dist <= 1.0
    strength = np.where(inside, np.clip(1.0 - dist, 0.0, 1.0) ** exponent, 0.0)

    window = splat[y0:y1, x0:x1]
    target = window[..., layer].copy()
    window *= (1.0 - strength)[..., None].astype(np.float32)
    window[..., layer] = np.where(inside, np.maximum(target, strength), target)


def place_scatter(
    heights: NDArray[np.float32],
    splat: NDArray[np.float32],
    layers: list[SurfaceLayer],
    config: ScatterConfig,
    water: WaterConfig,
    world: WorldConfig,
    seed: int,
    ground_query: GroundQuery | None = None,
) -> ScatterResult:
    """Place scatter objects using a fixed budget of random trials.

    A trial draws a random cell and is rejected if the cell is at or near the
    water line, the density mask there is too thin, the spawn coin fails, or
    the ground query finds no dry surface. Accepted painting categories blend
    the paint layer into the splat weights around the cell.

    Args:
        heights: Final elevation grid.
        splat: Classified splat weights (not modified).
        layers: Surface layers.
        config: Scatter configuration.
        water: Water line parameters.
        world: World-space extent.
        seed: Run seed.
        ground_query: Surface height lookup; defaults to the grid itself.

    Returns:
        ScatterResult with placements, painted splat weights and counts.
    """
    resolution = heights.shape[0]
    side = resolution - 1
    rng = np.random.default_rng(seed + config.seed_offset)
    stats = ScatterStats(attempts=config.attempts)
    painted = splat.copy()

    if ground_query is None:
        ground_query = GridGroundQuery(heights, world)

    # Draw every trial up front so results don't depend on rejection order
    count = config.attempts
    xs = rng.integers(0, resolution, size=count)
    ys = rng.integers(0, resolution, size=count)
    coins = rng.random(count)
    yaws = rng.uniform(0.0, 360.0, size=count)
    kinds = rng.integers(0, len(config.categories), size=count)

    density = NoiseField(seed + config.density_seed_offset, scale=config.density_scale)
    mask = (density.sample(xs, ys) + 1.0) / 2.0

    dry = heights[ys, xs] > water.height + water.floor_epsilon
    dense = mask > config.density_threshold
    lucky = coins <= config.spawn_chance

    stats.rejected_water = int(np.sum(~dry))
    stats.rejected_density = int(np.sum(dry & ~dense))
    stats.rejected_chance = int(np.sum(dry & dense & ~lucky))

    paint_index = layer_index(layers, config.paint_layer)
    water_line = water.height * world.height + config.water_clearance
    per_category: dict[str, int] = {}
    placements: list[PlacementRequest] = []

    for i in np.flatnonzero(dry & dense & lucky):
        x, y = int(xs[i]), int(ys[i])
        u, v = x / side, y / side
        world_x, world_z = u * world.size, v * world.size

        ground = ground_query(world_x, world_z)
        if ground is None or ground <= water_line:
            stats.rejected_ground += 1
            continue

        category = config.categories[int(kinds[i])]
        if category in config.paint_categories:
            paint_layer(
                painted, x, y, paint_index, config.paint_radius, config.paint_exponent
            )

        number = per_category.get(category, 0)
        per_category[category] = number + 1
        placements.append(
            PlacementRequest(
                x=x,
                y=y,
                u=u,
                v=v,
                world_position=(world_x, ground, world_z),
                yaw=float(yaws[i]),
                category=category,
                object_id=f"{category}_{number}",
            )
        )

    stats.accepted = len(placements)
    if stats.rejected_ground:
        logger.warning("scatter_ground_missed", candidates=stats.rejected_ground)
    logger.debug(
        "scatter_placed",
        accepted=stats.accepted,
        attempts=stats.attempts,
        rejected_water=stats.rejected_water,
        rejected_density=stats.rejected_density,
        rejected_chance=stats.rejected_chance,
    )

    return ScatterResult(placements=placements, splat=painted, stats=stats)
