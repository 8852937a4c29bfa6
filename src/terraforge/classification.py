"""Surface classification: height thresholds to splat layer weights."""


import numpy as np
from numpy.typing import NDArray
import structlog

from .config import SurfaceLayer

logger = structlog.get_logger()

# Marker for cells no layer covers
UNCLASSIFIED = -1


def classify_surface(
    heights: NDArray[np.float32],
    layers: list[SurfaceLayer],
) -> NDArray[np.float32]:
    """Assign each cell to the first layer whose threshold covers its height.

    Args:
        heights: Final elevation grid.
        layers: Surface layers, ascending by max_height.

    Returns:
        Splat weights of shape (height, width, len(layers)); one-hot per cell,
        all zero where no threshold covers the height.
    """
    thresholds = np.array([layer.max_height for layer in layers], dtype=np.float64)
    index = np.searchsorted(thresholds, heights.astype(np.float64), side="left")

    splat = (index[..., None] == np.arange(len(layers))).astype(np.float32)

    unclassified = int(np.sum(index >= len(layers)))
    if unclassified:
        logger.warning(
            "cells_unclassified",
            cells=unclassified,
            highest_threshold=float(thresholds[-1]),
        )

    return splat


def layer_index(layers: list[SurfaceLayer], name: str) -> int:
    """Index of a layer by name.

    Raises:
        KeyError: If no layer has that name.
    """
    for i, layer in enumerate(layers):
        if layer.name == name:
            return i
    raise KeyError(f"Unknown surface layer: {name}")


def dominant_layer(splat: NDArray[np.float32]) -> NDArray[np.int16]:
    """Index of the heaviest layer per cell, UNCLASSIFIED where all are zero."""
    dominant = np.argmax(splat, axis=-1).astype(np.int16)
    dominant[splat.max(axis=-1) <= 0.0] = UNCLASSIFIED
    return dominant


def layer_coverage(
    splat: NDArray[np.float32],
    layers: list[SurfaceLayer],
) -> dict[str, float]:
    """Fraction of cells dominated by each layer.

    Args:
        splat: Splat weights.
        layers: Surface layers.

    Returns:
        Mapping of layer name to cell fraction.
    """
    dominant = dominant_layer(splat)
    total = dominant.size
    return {
        layer.name: float(np.sum(dominant == i)) / total
        for i, layer in enumerate(layers)
    }
