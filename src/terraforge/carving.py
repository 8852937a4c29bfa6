"""Terrain carving: river channels, bank blending and slope relaxation."""

import math

import numpy as np
from numpy.typing import NDArray
from scipy import ndimage
import structlog

from .rivers import RiverPath

logger = structlog.get_logger()

# Every channel is at least this deep at its centerline
MIN_CHANNEL_DEPTH = 0.01


def channel_depth(distance: NDArray[np.float64], falloff: str) -> NDArray[np.float64]:
    """Depth fraction at a normalized distance from the centerline.

    Args:
        distance: Distance divided by the footprint radius.
        falloff: "linear" (1 - d) or "quadratic" ((1 - d)^2).

    Returns:
        Fraction of the full channel depth, 0 at and beyond d = 1.
    """
    remaining = np.clip(1.0 - distance, 0.0, 1.0)
    if falloff == "linear":
        return remaining
    return remaining * remaining


def footprint_radius(width: float, resolution: int) -> int:
    """Carving radius in cells for a channel width."""
    return max(1, math.ceil(width * resolution * 0.5))


def carve_river(
    heights: NDArray[np.float32],
    ceiling: NDArray[np.float64],
    path: RiverPath,
    water_height: float,
    falloff: str = "quadratic",
) -> None:
    """Carve one river channel into the grid in place.

    Each footprint cell takes the deepest channel depth of any path point
    covering it, is lowered by that depth and held below the water line by
    the same amount. Cells are never raised, so overlapping channels from
    separate paths deepen each other.

    Args:
        heights: Elevation grid, modified in place.
        ceiling: Highest height each carved cell may end at, modified in place.
        path: River to carve.
        water_height: Water line.
        falloff: Channel depth falloff.
    """
    resolution = heights.shape[0]
    radius = footprint_radius(path.profile.width, resolution)
    max_depth = max(MIN_CHANNEL_DEPTH, path.profile.depth)

    # Deepest depth per cell; NaN outside the footprint
    depth = np.full(heights.shape, np.nan, dtype=np.float64)
    centers = np.rint(path.pixel_points(resolution)).astype(np.int64)

    for cx, cy in centers:
        x0, x1 = max(cx - radius, 0), min(cx + radius + 1, resolution)
        y0, y1 = max(cy - radius, 0), min(cy + radius + 1, resolution)
        if x0 >= x1 or y0 >= y1:
            continue

        ys, xs = np.ogrid[y0:y1, x0:x1]
        dist = np.hypot(xs - cx, ys - cy) / radius
        inside = dist < 1.0

        window = depth[y0:y1, x0:x1]
        local = max_depth * channel_depth(dist, falloff)
        window[inside] = np.fmax(window, local)[inside]

    footprint = ~np.isnan(depth)
    limit = water_height - depth[footprint]
    lowered = np.minimum(heights[footprint] - depth[footprint], limit)
    heights[footprint] = np.clip(np.minimum(heights[footprint], lowered), 0.0, 1.0)
    ceiling[footprint] = np.minimum(ceiling[footprint], limit)


def carve_rivers(
    heights: NDArray[np.float32],
    rivers: list[RiverPath],
    water_height: float,
    falloff: str = "quadratic",
) -> tuple[NDArray[np.float32], NDArray[np.float64]]:
    """Carve all river channels in generation order.

    Args:
        heights: Elevation grid (not modified).
        rivers: Paths to carve.
        water_height: Water line.
        falloff: Channel depth falloff.

    Returns:
        Tuple of (carved heights, channel ceiling). The ceiling is +inf
        outside every footprint.
    """
    carved = heights.astype(np.float32, copy=True)
    ceiling = np.full(heights.shape, np.inf, dtype=np.float64)

    for river in rivers:
        carve_river(carved, ceiling, river, water_height, falloff)

    footprint = np.isfinite(ceiling)
    logger.debug(
        "channels_carved", channels=len(rivers), cells=int(np.sum(footprint))
    )
    return carved, ceiling


def _bank_kernel() -> NDArray[np.float64]:
    """3x3 kernel weighted by exp(-distance), normalized."""
    offsets = np.arange(-1, 2, dtype=np.float64)
    dist = np.hypot(offsets[:, None], offsets[None, :])
    kernel = np.exp(-dist)
    return kernel / kernel.sum()


def blend_river_banks(
    heights: NDArray[np.float32],
    rivers: list[RiverPath],
    radius_fraction: float = 0.05,
) -> NDArray[np.float32]:
    """Soften carved channels into the surrounding terrain.

    Interior cells within the blend radius of any river point take the
    weighted average of their 3x3 neighbourhood from the unblended grid.
    All other cells are returned unchanged.

    Args:
        heights: Carved elevation grid.
        rivers: Carved paths.
        radius_fraction: Blend radius as a fraction of the grid side.

    Returns:
        Blended elevation grid.
    """
    resolution = heights.shape[0]
    radius = max(1, math.ceil(resolution * radius_fraction))

    centers = np.zeros(heights.shape, dtype=bool)
    for river in rivers:
        cells = np.clip(
            np.rint(river.pixel_points(resolution)).astype(np.int64), 0, resolution - 1
        )
        centers[cells[:, 1], cells[:, 0]] = True

    if not centers.any():
        return heights.copy()

    near = ndimage.distance_transform_edt(~centers) < radius
    near[0, :] = near[-1, :] = False
    near[:, 0] = near[:, -1] = False

    blurred = ndimage.convolve(heights.astype(np.float64), _bank_kernel(), mode="nearest")
    result = np.where(near, blurred, heights)
    return np.clip(result, 0.0, 1.0).astype(np.float32)


def relax_slopes(
    heights: NDArray[np.float32],
    threshold: float,
    strength: float,
) -> NDArray[np.float32]:
    """Pull cells that stand out from their neighbours back toward them.

    Interior cells whose difference to the mean of their 4 neighbours exceeds
    the threshold move toward that mean by the given strength.

    Args:
        heights: Elevation grid (not modified).
        threshold: Allowed absolute difference to the neighbour mean.
        strength: Blend factor in [0, 1].

    Returns:
        Relaxed elevation grid.
    """
    old = heights.astype(np.float64)
    result = old.copy()

    center = old[1:-1, 1:-1]
    mean = (old[:-2, 1:-1] + old[2:, 1:-1] + old[1:-1, :-2] + old[1:-1, 2:]) / 4.0
    steep = np.abs(center - mean) > threshold

    result[1:-1, 1:-1] = np.where(steep, center + (mean - center) * strength, center)

    logger.debug("slopes_relaxed", cells=int(np.sum(steep)))
    return np.clip(result, 0.0, 1.0).astype(np.float32)


def enforce_waterline(
    heights: NDArray[np.float32],
    ceiling: NDArray[np.float64],
) -> NDArray[np.float32]:
    """Hold carved cells at or below their channel ceiling.

    Args:
        heights: Elevation grid after smoothing.
        ceiling: Channel ceiling from carving.

    Returns:
        Elevation grid with carved cells re-clamped.
    """
    return np.clip(np.minimum(heights, ceiling), 0.0, 1.0).astype(np.float32)
