"""Custom exceptions for terrain generation."""


class TerrainError(Exception):
    """Base exception for terrain errors."""

    pass


class PlacementError(TerrainError):
    """Raised by an instantiation collaborator when an object can't be created."""

    pass


class MapFormatError(TerrainError, ValueError):
    """Raised when a saved map file is missing data or malformed."""

    pass
