"""Shared test fixtures for terrain tests."""

import numpy as np
import pytest

from terraforge.config import ScatterConfig, SurfaceLayer, TerrainConfig


@pytest.fixture
def small_config() -> TerrainConfig:
    """64x64 terrain with a fixed seed and a modest scatter budget."""
    return TerrainConfig(
        seed=7,
        resolution=64,
        scatter=ScatterConfig(attempts=5000, spawn_chance=0.5),
    )


@pytest.fixture
def quarter_layers() -> list[SurfaceLayer]:
    """Four layers with exactly representable thresholds."""
    return [
        SurfaceLayer(name="water", max_height=0.25),
        SurfaceLayer(name="sand", max_height=0.5),
        SurfaceLayer(name="grass", max_height=0.75),
        SurfaceLayer(name="rock", max_height=1.0),
    ]


@pytest.fixture
def half_flooded() -> np.ndarray:
    """64x64 grid: left half under water (0.1), right half dry (0.5)."""
    heights = np.full((64, 64), 0.5, dtype=np.float32)
    heights[:, :32] = 0.1
    return heights
