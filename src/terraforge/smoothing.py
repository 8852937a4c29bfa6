"""Grid smoothing: iterative 5-point stencil averaging."""

import numpy as np
from numpy.typing import NDArray


def smooth_heights(
    heights: NDArray[np.float32],
    iterations: int = 2,
) -> NDArray[np.float32]:
    """Smooth interior cells with a 5-point stencil.

    Each pass reads the previous buffer and writes a fresh one, replacing
    every interior cell with the mean of itself and its 4 neighbours.
    Border rows and columns keep their values.

    Args:
        heights: Elevation grid (not modified).
        iterations: Number of passes.

    Returns:
        Smoothed elevation grid.
    """
    current = heights.astype(np.float64)

    for _ in range(iterations):
        smoothed = current.copy()
        smoothed[1:-1, 1:-1] = (
            current[1:-1, 1:-1]
            + current[:-2, 1:-1]
            + current[2:, 1:-1]
            + current[1:-1, :-2]
            + current[1:-1, 2:]
        ) / 5.0
        current = smoothed

    return np.clip(current, 0.0, 1.0).astype(np.float32)


def max_neighbour_difference(heights: NDArray[np.float32], interior: bool = False) -> float:
    """Largest absolute height difference between 4-adjacent cells.

    Args:
        heights: Elevation grid.
        interior: Only consider pairs of non-border cells.

    Returns:
        Maximum difference (0 for grids without pairs).
    """
    grid = heights.astype(np.float64)
    if interior:
        grid = grid[1:-1, 1:-1]
    if grid.shape[0] < 2 or grid.shape[1] < 2:
        return 0.0

    dy = np.abs(np.diff(grid, axis=0))
    dx = np.abs(np.diff(grid, axis=1))
    return float(max(dy.max(), dx.max()))
