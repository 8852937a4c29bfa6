"""Procedural terrain generation package.

This package synthesizes a deterministic heightfield from fractal noise,
plans and carves rivers, smooths and classifies the surface into splat
layers, and places scatter objects for a rendering host to instantiate.
"""

from .config import TerrainConfig, load_config
from .exceptions import MapFormatError, PlacementError, TerrainError
from .generator import (
    GenerationResult,
    SpawnReport,
    WaterPlane,
    generate_and_save,
    generate_terrain,
    spawn_placements,
    water_plane,
)
from .noise import NoiseField
from .persistence import SavedMap, load_map, save_map
from .rivers import PathKind, RiverPath, RiverProfile
from .scatter import GridGroundQuery, PlacementRequest, ScatterStats
from .validation import ValidationResult, validate_terrain

__all__ = [
    "GenerationResult",
    "GridGroundQuery",
    "MapFormatError",
    "NoiseField",
    "PathKind",
    "PlacementError",
    "PlacementRequest",
    "RiverPath",
    "RiverProfile",
    "SavedMap",
    "ScatterStats",
    "SpawnReport",
    "TerrainConfig",
    "TerrainError",
    "ValidationResult",
    "WaterPlane",
    "generate_and_save",
    "generate_terrain",
    "load_config",
    "load_map",
    "save_map",
    "spawn_placements",
    "validate_terrain",
    "water_plane",
]
