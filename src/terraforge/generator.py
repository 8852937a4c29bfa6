"""Main terrain generation orchestration."""

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import numpy as np
from numpy.typing import NDArray
import structlog

from .carving import blend_river_banks, carve_rivers, enforce_waterline, relax_slopes
from .classification import classify_surface, layer_coverage
from .config import TerrainConfig
from .exceptions import PlacementError
from .heightmap import synthesize_heightmap
from .persistence import save_map
from .rivers import PathKind, RiverPath, plan_rivers
from .scatter import GroundQuery, PlacementRequest, ScatterStats, place_scatter
from .smoothing import smooth_heights

logger = structlog.get_logger()

# Seeds drawn for runs without a fixed seed fall in [0, SEED_RANGE)
SEED_RANGE = 100_000

# Instantiation collaborator: returns False (or raises PlacementError) on failure
Spawner = Callable[[PlacementRequest], bool | None]


@dataclass
class GenerationResult:
    """Result of terrain generation, handed to the host read-only."""

    config: TerrainConfig
    seed: int
    heights: NDArray[np.float32]
    splat: NDArray[np.float32]
    rivers: list[RiverPath]
    placements: list[PlacementRequest]
    scatter_stats: ScatterStats

    @property
    def resolution(self) -> int:
        return self.heights.shape[0]


@dataclass
class SpawnReport:
    """Outcome of handing placements to the instantiation collaborator."""

    attempted: int = 0
    spawned: int = 0
    failed: int = 0


@dataclass(frozen=True)
class WaterPlane:
    """Water surface the host places over the terrain."""

    position: tuple[float, float, float]
    scale: tuple[float, float, float]
    depth: float


def resolve_seed(config: TerrainConfig) -> int:
    """Return the configured seed, or draw a fresh one for this run."""
    if config.seed is not None:
        return config.seed
    return int(np.random.default_rng().integers(0, SEED_RANGE))


def generate_terrain(
    config: TerrainConfig,
    ground_query: GroundQuery | None = None,
) -> GenerationResult:
    """Generate complete terrain from configuration.

    Args:
        config: Terrain generation configuration.
        ground_query: Surface height lookup for scatter placement; defaults
            to interpolating the generated grid.

    Returns:
        GenerationResult with heights, splat weights, rivers and placements.
    """
    seed = resolve_seed(config)
    resolution = config.resolution

    logger.info("terrain_generation_started", resolution=resolution, seed=seed)

    # Stage A: Base heightmap
    logger.info("stage_started", stage="heightmap")
    heights = synthesize_heightmap(resolution, seed, config.noise, config.water)

    # Stage B: Rivers
    rivers: list[RiverPath] = []
    ceiling = None
    if config.rivers.enabled:
        logger.info("stage_started", stage="rivers")
        rivers = plan_rivers(heights, config.rivers, seed)
        heights, ceiling = carve_rivers(
            heights, rivers, config.water.height, config.rivers.falloff
        )
        if config.rivers.bank_smoothing:
            heights = blend_river_banks(heights, rivers, config.rivers.bank_radius)

        mains = sum(1 for river in rivers if river.kind == PathKind.MAIN)
        logger.info("rivers_carved", main=mains, branches=len(rivers) - mains)

    # Stage C: Slope relaxation
    if config.slope.enabled:
        logger.info("stage_started", stage="slopes")
        heights = relax_slopes(heights, config.slope.threshold, config.slope.strength)

    # Stage D: Smoothing
    logger.info(
        "stage_started", stage="smoothing", iterations=config.smoothing.iterations
    )
    heights = smooth_heights(heights, config.smoothing.iterations)
    if ceiling is not None:
        heights = enforce_waterline(heights, ceiling)

    # Stage E: Surface classification
    logger.info("stage_started", stage="classification")
    splat = classify_surface(heights, config.layers)

    # Stage F: Scatter placement
    logger.info("stage_started", stage="scatter")
    scatter = place_scatter(
        heights,
        splat,
        config.layers,
        config.scatter,
        config.water,
        config.world,
        seed,
        ground_query,
    )
    logger.info("scatter_done", placements=len(scatter.placements))

    heights.setflags(write=False)
    scatter.splat.setflags(write=False)

    _log_terrain_stats(scatter.splat, config)

    # Debug output if enabled
    if config.debug_output_dir:
        _dump_debug_images(
            Path(config.debug_output_dir),
            heights=heights,
            surface=np.argmax(scatter.splat, axis=-1).astype(np.uint8),
        )

    return GenerationResult(
        config=config,
        seed=seed,
        heights=heights,
        splat=scatter.splat,
        rivers=rivers,
        placements=scatter.placements,
        scatter_stats=scatter.stats,
    )


def spawn_placements(
    placements: list[PlacementRequest],
    spawner: Spawner,
) -> SpawnReport:
    """Hand placements to the instantiation collaborator.

    Failures are counted and skipped; they never abort the batch.

    Args:
        placements: Placement requests from generation.
        spawner: Callable that creates the scene object.

    Returns:
        SpawnReport with attempted/spawned/failed counts.
    """
    report = SpawnReport()

    for request in placements:
        report.attempted += 1
        try:
            created = spawner(request)
        except PlacementError as e:
            logger.warning("spawn_failed", object_id=request.object_id, error=str(e))
            report.failed += 1
            continue

        if created is False:
            report.failed += 1
        else:
            report.spawned += 1

    logger.info(
        "placements_spawned",
        attempted=report.attempted,
        spawned=report.spawned,
        failed=report.failed,
    )
    return report


def water_plane(config: TerrainConfig) -> WaterPlane | None:
    """Describe the water surface for the host, or None if disabled.

    Args:
        config: Terrain generation configuration.

    Returns:
        WaterPlane centred over the terrain at the water line.
    """
    if not config.water.generate_water:
        return None

    size = config.world.size
    return WaterPlane(
        position=(size / 2.0, config.water.height * config.world.height, size / 2.0),
        scale=(size / 10.0, 1.0, size / 10.0),
        depth=config.water.depth * config.world.height,
    )


def generate_and_save(
    config: TerrainConfig,
    save_path: Path,
    ground_query: GroundQuery | None = None,
) -> GenerationResult:
    """Generate terrain and save it.

    Args:
        config: Terrain generation configuration.
        save_path: Path to save the generated map.
        ground_query: Optional surface height lookup.

    Returns:
        The GenerationResult that was saved.
    """
    result = generate_terrain(config, ground_query)

    save_path.parent.mkdir(parents=True, exist_ok=True)
    save_map(save_path, result)

    return result


def _log_terrain_stats(splat: NDArray[np.float32], config: TerrainConfig) -> None:
    """Log surface coverage statistics."""
    total = splat.shape[0] * splat.shape[1]
    coverage = layer_coverage(splat, config.layers)

    logger.info("surface_stats", cells=total)
    for name, fraction in coverage.items():
        logger.info(
            "layer_coverage",
            layer=name,
            cells=round(fraction * total),
            percent=round(fraction * 100, 1),
        )


def _dump_debug_images(output_dir: Path, **arrays: NDArray) -> None:
    """Save arrays as images for debugging.

    Args:
        output_dir: Directory to save images.
        **arrays: Named arrays to save.
    """
    try:
        import matplotlib.pyplot as plt
    except ImportError:
        logger.warning("debug_images_skipped", reason="matplotlib not available")
        return

    output_dir.mkdir(parents=True, exist_ok=True)

    for name, arr in arrays.items():
        fig, ax = plt.subplots(figsize=(10, 10))

        if arr.dtype == np.uint8:
            ax.imshow(arr, cmap="tab10")
        else:
            ax.imshow(arr, cmap="terrain")

        ax.set_title(name)
        ax.axis("off")

        fig.savefig(output_dir / f"{name}.png", dpi=150, bbox_inches="tight")
        plt.close(fig)

    logger.info("debug_images_saved", output_dir=str(output_dir))
