"""Map persistence: save and load generated terrain."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray
import structlog

from .exceptions import MapFormatError
from .rivers import PathKind, RiverPath, RiverProfile
from .scatter import PlacementRequest

if TYPE_CHECKING:
    from .generator import GenerationResult

logger = structlog.get_logger()

FORMAT_VERSION = 1


@dataclass
class SavedMap:
    """Terrain data read back from disk."""

    heights: NDArray[np.float32]
    splat: NDArray[np.float32]
    rivers: list[RiverPath]
    placements: list[PlacementRequest]
    metadata: dict


def save_map(path: Path, result: GenerationResult) -> None:
    """Save generated terrain to disk.

    Uses numpy's compressed .npz format for efficient storage.

    Args:
        path: Output path (should end with .npz).
        result: Generation result to save.
    """
    rivers_data = [
        {
            "points": river.points.tolist(),
            "kind": river.kind.value,
            "width": river.profile.width,
            "depth": river.profile.depth,
            "parent": river.parent,
            "origin_index": river.origin_index,
        }
        for river in result.rivers
    ]
    placements_data = [asdict(placement) for placement in result.placements]

    # Metadata
    metadata = {
        "version": FORMAT_VERSION,
        "seed": result.seed,
        "resolution": result.resolution,
        "layers": [layer.name for layer in result.config.layers],
        "water_height": result.config.water.height,
        "generated_at": datetime.now(timezone.utc).isoformat(),
    }

    np.savez_compressed(
        path,
        heights=result.heights,
        splat=result.splat,
        rivers=np.frombuffer(json.dumps(rivers_data).encode("utf-8"), dtype=np.uint8),
        placements=np.frombuffer(
            json.dumps(placements_data).encode("utf-8"), dtype=np.uint8
        ),
        metadata=np.frombuffer(json.dumps(metadata).encode("utf-8"), dtype=np.uint8),
    )

    file_size = path.stat().st_size / (1024 * 1024)
    logger.info("map_saved", path=str(path), size_mb=round(file_size, 1))


def load_map(path: Path) -> SavedMap:
    """Load terrain from disk.

    Args:
        path: Path to .npz file.

    Returns:
        SavedMap with arrays, rivers, placements and metadata.

    Raises:
        FileNotFoundError: If file doesn't exist.
        MapFormatError: If file format is invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Map file not found: {path}")

    with np.load(path) as data:
        for key in ("heights", "splat"):
            if key not in data:
                raise MapFormatError(f"Invalid map file: missing '{key}' array")
        heights = data["heights"]
        splat = data["splat"]

        rivers_data = _read_json(data, "rivers", [])
        placements_data = _read_json(data, "placements", [])
        metadata = _read_json(data, "metadata", {})

    if heights.ndim != 2 or splat.shape[:2] != heights.shape:
        raise MapFormatError(
            f"Invalid map file: splat {splat.shape} does not match heights {heights.shape}"
        )

    try:
        rivers = [
            RiverPath(
                points=np.array(river["points"], dtype=np.float64).reshape(-1, 2),
                kind=PathKind(river["kind"]),
                profile=RiverProfile(width=river["width"], depth=river["depth"]),
                parent=river["parent"],
                origin_index=river["origin_index"],
            )
            for river in rivers_data
        ]
        placements = [
            PlacementRequest(
                **{**item, "world_position": tuple(item["world_position"])}
            )
            for item in placements_data
        ]
    except (KeyError, TypeError, ValueError) as e:
        raise MapFormatError(f"Invalid map file: {e}") from e

    logger.info("map_loaded", path=str(path), resolution=heights.shape[0])
    return SavedMap(
        heights=heights,
        splat=splat,
        rivers=rivers,
        placements=placements,
        metadata=metadata,
    )


def _read_json(data: np.lib.npyio.NpzFile, key: str, default):
    if key not in data:
        return default
    try:
        return json.loads(data[key].tobytes().decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MapFormatError(f"Invalid map file: bad '{key}' entry") from e
