"""Base elevation synthesis from fractal noise."""

import numpy as np
from numpy.typing import NDArray

from .config import NoiseConfig, WaterConfig
from .noise import NoiseField


def synthesize_heightmap(
    resolution: int,
    seed: int,
    noise: NoiseConfig,
    water: WaterConfig,
) -> NDArray[np.float32]:
    """Generate the base elevation grid.

    Remaps fractal noise from [-1, 1] to [0, 1], applies the sharpness
    exponent, lifts un-carved ground above the water line (optional) and caps
    the result at the configured maximum height.

    Args:
        resolution: Grid side length in cells.
        seed: Random seed.
        noise: Noise and shaping parameters.
        water: Water line parameters.

    Returns:
        2D elevation array in [0, 1], shape (resolution, resolution).
    """
    field = NoiseField.from_config(seed, noise)
    raw = field.sample_grid(resolution)

    heights = remap_noise(raw, noise.sharpness)

    if water.enforce_floor:
        heights = np.maximum(heights, water.height + water.floor_epsilon)

    heights = np.minimum(heights, noise.max_height)
    return np.clip(heights, 0.0, 1.0).astype(np.float32)


def remap_noise(raw: NDArray[np.float64], sharpness: float) -> NDArray[np.float64]:
    """Remap signed noise to [0, 1] and apply the sharpness exponent."""
    # Multi-octave sums can leave [-1, 1]; clip before the power
    return np.clip((raw + 1.0) / 2.0, 0.0, 1.0) ** sharpness
