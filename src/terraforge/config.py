"""Terrain generation configuration models."""

import tomllib
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _FrozenModel(BaseModel):
    """Base for configuration sections: immutable once built."""

    model_config = ConfigDict(frozen=True, extra="forbid")


class NoiseConfig(_FrozenModel):
    """Fractal noise parameters for the base heightmap."""

    scale: float = Field(default=100.0, gt=0, description="Noise scale in cells")
    octaves: int = Field(default=4, ge=1, description="Number of octaves")
    persistence: float = Field(
        default=0.5, gt=0, description="Amplitude multiplier per octave"
    )
    lacunarity: float = Field(
        default=2.0, gt=0, description="Frequency multiplier per octave"
    )
    sharpness: float = Field(
        default=1.5,
        gt=0,
        description="Height exponent (<1 flattens plateaus, >1 sharpens peaks)",
    )
    max_height: float = Field(
        default=0.8, gt=0, le=1.0, description="Cap on synthesized height"
    )


class WaterConfig(_FrozenModel):
    """Water line parameters."""

    generate_water: bool = Field(default=True, description="Emit a water plane")
    height: float = Field(default=0.25, ge=0, le=1.0, description="Water line")
    depth: float = Field(
        default=0.25, ge=0, description="Water plane depth below the line"
    )
    floor_epsilon: float = Field(
        default=0.01, ge=0, description="Margin kept above the water line"
    )
    enforce_floor: bool = Field(
        default=True, description="Keep un-carved terrain above the water line"
    )


class RiverConfig(_FrozenModel):
    """River planning and carving parameters."""

    enabled: bool = Field(default=True, description="Plan and carve rivers")
    main_count: int = Field(default=1, ge=0, le=5, description="Main rivers")
    branch_count: int = Field(default=3, ge=0, le=10, description="Branch rivers")
    main_widths: list[float] = Field(
        default_factory=lambda: [0.35], description="Width per main river"
    )
    branch_widths: list[float] = Field(
        default_factory=lambda: [0.15, 0.15, 0.15],
        description="Width per branch river",
    )
    main_depths: list[float] = Field(
        default_factory=lambda: [0.2], description="Depth per main river"
    )
    branch_depths: list[float] = Field(
        default_factory=lambda: [0.1, 0.1, 0.1],
        description="Depth per branch river",
    )
    default_main_width: float = Field(default=0.35, gt=0)
    default_main_depth: float = Field(default=0.2, ge=0)
    default_branch_width: float = Field(default=0.15, gt=0)
    default_branch_depth: float = Field(default=0.1, ge=0)
    main_points: int = Field(default=100, ge=2, description="Points per main path")
    branch_points: int | None = Field(
        default=None, ge=2, description="Points per branch (default: main/2)"
    )
    orientation: Literal["vertical", "horizontal", "random"] = Field(
        default="vertical", description="Edge pair main rivers run between"
    )
    main_wander: float = Field(
        default=0.05, ge=0, description="Main path noise offset (fraction of side)"
    )
    branch_curvature: float = Field(
        default=0.05, ge=0, description="Branch path noise jitter (fraction of side)"
    )
    downhill_bias: bool = Field(default=True, description="Steer branches downhill")
    downhill_samples: int = Field(
        default=20, ge=0, description="Random cells probed for a lower end point"
    )
    avoid_crossings: bool = Field(
        default=True, description="Deflect branches away from earlier paths"
    )
    crossing_distance: float = Field(
        default=0.05, gt=0, description="Proximity threshold (fraction of side)"
    )
    crossing_angle: float = Field(
        default=30.0, description="Heading rotation per deflection, degrees"
    )
    crossing_retries: int = Field(default=11, ge=0, description="Max deflections")
    falloff: Literal["linear", "quadratic"] = Field(
        default="quadratic", description="Channel depth falloff"
    )
    bank_smoothing: bool = Field(default=True, description="Blend carved banks")
    bank_radius: float = Field(
        default=0.05, gt=0, description="Bank blend radius (fraction of side)"
    )
    seed_offset: int = Field(default=1000, description="Offset for river stream")

    @model_validator(mode="after")
    def _check_profiles(self) -> "RiverConfig":
        for name in ("main_widths", "branch_widths"):
            if any(w <= 0 for w in getattr(self, name)):
                raise ValueError(f"{name} must be positive")
        for name in ("main_depths", "branch_depths"):
            if any(d < 0 for d in getattr(self, name)):
                raise ValueError(f"{name} must not be negative")
        return self

    @property
    def resolved_branch_points(self) -> int:
        """Branch point count, half the main count unless set."""
        if self.branch_points is not None:
            return self.branch_points
        return max(2, self.main_points // 2)


class SlopeConfig(_FrozenModel):
    """Cliff relaxation parameters."""

    enabled: bool = Field(default=True, description="Relax steep cells")
    threshold: float = Field(
        default=0.05, ge=0, description="Max difference to the 4-neighbour mean"
    )
    strength: float = Field(
        default=0.5, ge=0, le=1.0, description="Blend factor toward the mean"
    )


class SmoothingConfig(_FrozenModel):
    """Grid smoothing parameters."""

    iterations: int = Field(default=2, ge=0, description="5-point stencil passes")


class SurfaceLayer(_FrozenModel):
    """A splat layer and the highest height it covers."""

    name: str
    max_height: float = Field(ge=0, le=1.0)


def _default_layers() -> list[SurfaceLayer]:
    return [
        SurfaceLayer(name="riverbed", max_height=0.25),
        SurfaceLayer(name="sand", max_height=0.3),
        SurfaceLayer(name="grass", max_height=0.55),
        SurfaceLayer(name="rock", max_height=0.7),
        SurfaceLayer(name="snow", max_height=1.0),
    ]


class ScatterConfig(_FrozenModel):
    """Scatter (tree) placement parameters."""

    attempts: int = Field(default=200_000, ge=0, description="Random trial budget")
    spawn_chance: float = Field(
        default=0.02, ge=0, le=5.0, description="Per-trial spawn probability"
    )
    density_scale: float = Field(
        default=30.0, gt=0, description="Density mask noise scale"
    )
    density_threshold: float = Field(
        default=0.45, description="Density mask value a trial must exceed"
    )
    categories: list[str] = Field(
        default_factory=lambda: ["tree"], description="Object categories"
    )
    paint_categories: list[str] = Field(
        default_factory=lambda: ["tree"],
        description="Categories that paint the surface",
    )
    paint_layer: str = Field(default="grass", description="Layer painted under objects")
    paint_radius: float = Field(default=4.0, ge=1.0, le=20.0)
    paint_exponent: float = Field(default=1.5, gt=0)
    water_clearance: float = Field(
        default=0.5, ge=0, description="World units required above the water line"
    )
    seed_offset: int = Field(default=2000, description="Offset for scatter stream")
    density_seed_offset: int = Field(default=3000, description="Offset for mask noise")

    @model_validator(mode="after")
    def _check_categories(self) -> "ScatterConfig":
        if not self.categories:
            raise ValueError("categories must not be empty")
        return self


class WorldConfig(_FrozenModel):
    """World-space extent of the grid."""

    size: float = Field(default=512.0, gt=0, description="Side length in world units")
    height: float = Field(default=100.0, gt=0, description="Height of a 1.0 sample")


class TerrainConfig(_FrozenModel):
    """Complete terrain generation configuration."""

    seed: int | None = Field(
        default=None, description="Random seed (None = draw one per run)"
    )
    resolution: int = Field(default=512, ge=3, description="Grid side in cells")

    world: WorldConfig = Field(default_factory=WorldConfig)
    noise: NoiseConfig = Field(default_factory=NoiseConfig)
    water: WaterConfig = Field(default_factory=WaterConfig)
    rivers: RiverConfig = Field(default_factory=RiverConfig)
    slope: SlopeConfig = Field(default_factory=SlopeConfig)
    smoothing: SmoothingConfig = Field(default_factory=SmoothingConfig)
    layers: list[SurfaceLayer] = Field(default_factory=_default_layers)
    scatter: ScatterConfig = Field(default_factory=ScatterConfig)

    # Debug options
    debug_output_dir: str | None = Field(
        default=None, description="Directory for debug images (None = disabled)"
    )

    @model_validator(mode="after")
    def _check_layers(self) -> "TerrainConfig":
        if not self.layers:
            raise ValueError("at least one surface layer is required")
        thresholds = [layer.max_height for layer in self.layers]
        if any(b <= a for a, b in zip(thresholds, thresholds[1:])):
            raise ValueError("layer thresholds must be strictly ascending")
        if thresholds[-1] < self.noise.max_height:
            raise ValueError(
                f"last layer threshold {thresholds[-1]} does not cover "
                f"max height {self.noise.max_height}"
            )
        names = [layer.name for layer in self.layers]
        if len(set(names)) != len(names):
            raise ValueError("layer names must be unique")
        if self.scatter.paint_layer not in names:
            raise ValueError(f"unknown paint layer: {self.scatter.paint_layer}")
        return self


def load_config(config_path: Path) -> TerrainConfig:
    """Load configuration from a TOML file.

    Args:
        config_path: Path to the TOML config file.

    Returns:
        Parsed TerrainConfig.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        tomllib.TOMLDecodeError: If TOML is malformed.
        pydantic.ValidationError: If parameters are invalid.
    """
    with open(config_path, "rb") as f:
        data = tomllib.load(f)
    return TerrainConfig.model_validate(data)
