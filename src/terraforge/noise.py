"""Noise generation for terrain synthesis.

Provides seeded 2D lattice value noise and a fractal (multi-octave) sampler
built on top of it. All state is drawn once from a seeded generator at
construction, so sampling is a pure function of (seed, parameters, x, y).
"""

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .config import NoiseConfig

# Lattice hash table size (must be a power of two)
TABLE_SIZE = 256
_TABLE_MASK = TABLE_SIZE - 1

# Range octave offsets are drawn from
OFFSET_RANGE = 100_000


class NoiseField:
    """Deterministic fractal value-noise sampler.

    Each octave samples value noise at ``(p + offset_i) / scale * frequency_i``
    scaled by ``amplitude_i``. Amplitude is multiplied by ``persistence`` and
    frequency by ``lacunarity`` per octave. The signed sum is returned as-is;
    callers renormalize.
    """

    def __init__(
        self,
        seed: int,
        scale: float = 1.0,
        octaves: int = 1,
        persistence: float = 0.5,
        lacunarity: float = 2.0,
    ):
        """Initialize NoiseField.

        Args:
            seed: Random seed for offsets and the lattice tables.
            scale: Feature size in sample units.
            octaves: Number of noise layers to sum.
            persistence: Amplitude multiplier between octaves.
            lacunarity: Frequency multiplier between octaves.

        Raises:
            ValueError: If scale or octaves are not positive.
        """
        if scale <= 0:
            raise ValueError(f"scale must be positive, got {scale}")
        if octaves < 1:
            raise ValueError(f"octaves must be at least 1, got {octaves}")

        self.seed = seed
        self.scale = float(scale)
        self.octaves = octaves
        self.persistence = float(persistence)
        self.lacunarity = float(lacunarity)

        rng = np.random.default_rng(seed)
        self.offsets = rng.integers(
            -OFFSET_RANGE, OFFSET_RANGE, size=(octaves, 2)
        ).astype(np.float64)
        self._perm = rng.permutation(TABLE_SIZE).astype(np.int64)
        self._values = rng.uniform(-1.0, 1.0, TABLE_SIZE)

        for table in (self.offsets, self._perm, self._values):
            table.setflags(write=False)

    @classmethod
    def from_config(cls, seed: int, config: NoiseConfig) -> "NoiseField":
        """Build a field from heightmap noise parameters."""
        return cls(
            seed,
            scale=config.scale,
            octaves=config.octaves,
            persistence=config.persistence,
            lacunarity=config.lacunarity,
        )

    def _lattice(self, ix: NDArray[np.int64], iy: NDArray[np.int64]) -> NDArray:
        perm = self._perm
        return self._values[perm[(perm[ix & _TABLE_MASK] + iy) & _TABLE_MASK]]

    def value_noise(self, x: ArrayLike, y: ArrayLike) -> NDArray[np.float64]:
        """Single layer of value noise in [-1, 1].

        Args:
            x: Sample x coordinates (lattice units).
            y: Sample y coordinates (lattice units).

        Returns:
            Noise values with the broadcast shape of x and y.
        """
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)

        x0 = np.floor(x)
        y0 = np.floor(y)
        sx = smoothstep(0.0, 1.0, x - x0)
        sy = smoothstep(0.0, 1.0, y - y0)

        ix = x0.astype(np.int64)
        iy = y0.astype(np.int64)

        v00 = self._lattice(ix, iy)
        v10 = self._lattice(ix + 1, iy)
        v01 = self._lattice(ix, iy + 1)
        v11 = self._lattice(ix + 1, iy + 1)

        top = v00 + (v10 - v00) * sx
        bottom = v01 + (v11 - v01) * sx
        return top + (bottom - top) * sy

    def sample(self, x: ArrayLike, y: ArrayLike) -> NDArray[np.float64]:
        """Sample fractal noise at (x, y).

        Args:
            x: Sample x coordinates (cells).
            y: Sample y coordinates (cells).

        Returns:
            Signed octave sum. A single octave stays within [-1, 1].
        """
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)

        result = np.zeros(np.broadcast(x, y).shape, dtype=np.float64)
        amplitude = 1.0
        frequency = 1.0

        for ox, oy in self.offsets:
            sample_x = (x + ox) / self.scale * frequency
            sample_y = (y + oy) / self.scale * frequency
            result += self.value_noise(sample_x, sample_y) * amplitude
            amplitude *= self.persistence
            frequency *= self.lacunarity

        return result

    def sample_grid(self, resolution: int) -> NDArray[np.float64]:
        """Sample the field at every integer cell of a square grid.

        Args:
            resolution: Grid side length.

        Returns:
            Array of shape (resolution, resolution) indexed [y, x].
        """
        ys, xs = np.meshgrid(
            np.arange(resolution, dtype=np.float64),
            np.arange(resolution, dtype=np.float64),
            indexing="ij",
        )
        return self.sample(xs, ys)


def smoothstep(edge0: float, edge1: float, x: ArrayLike) -> NDArray[np.float64]:
    """Smooth Hermite interpolation between 0 and 1.

    Args:
        edge0: Lower edge of transition.
        edge1: Upper edge of transition.
        x: Input values.

    Returns:
        Smoothly interpolated values in [0, 1].
    """
    t = np.clip((np.asarray(x) - edge0) / (edge1 - edge0), 0.0, 1.0)
    return t * t * (3.0 - 2.0 * t)
