"""Command-line interface for terrain generation."""

import argparse
import logging
import sys
import time
from pathlib import Path

import structlog


def main() -> None:
    """CLI entry point for terrain generation."""
    parser = argparse.ArgumentParser(
        description="Generate a procedural terrain heightfield, splat map and scatter"
    )
    parser.add_argument(
        "--config", "-c", type=str, default=None, help="TOML configuration file"
    )
    parser.add_argument(
        "--resolution", type=int, default=None, help="Grid resolution (default: 512)"
    )
    parser.add_argument(
        "--seed", type=int, default=None, help="Random seed (default: random)"
    )
    parser.add_argument(
        "--output",
        "-o",
        type=str,
        default="saves/terrain.npz",
        help="Output path (default: saves/terrain.npz)",
    )
    parser.add_argument(
        "--debug-images",
        type=str,
        default=None,
        help="Directory to save debug images (optional)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Verbose logging"
    )

    args = parser.parse_args()

    # Configure structlog for CLI
    level = logging.DEBUG if args.verbose else logging.INFO
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
    )

    # Import here to avoid slow startup for --help
    from pydantic import ValidationError

    from .config import TerrainConfig, load_config
    from .generator import generate_and_save
    from .validation import validate_terrain

    try:
        config = load_config(Path(args.config)) if args.config else TerrainConfig()
        overrides = {
            "seed": args.seed,
            "resolution": args.resolution,
            "debug_output_dir": args.debug_images,
        }
        overrides = {k: v for k, v in overrides.items() if v is not None}
        if overrides:
            config = TerrainConfig.model_validate(
                {**config.model_dump(), **overrides}
            )
    except (FileNotFoundError, ValidationError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(2)

    output_path = Path(args.output)
    print(f"Generating {config.resolution}x{config.resolution} terrain")
    print(f"Output: {output_path}")
    print()

    start_time = time.time()
    result = generate_and_save(config, output_path)
    gen_time = time.time() - start_time

    validation = validate_terrain(result)

    print()
    print(f"Generation complete in {gen_time:.1f}s (seed {result.seed})")
    print(f"Rivers: {len(result.rivers)}, placements: {len(result.placements)}")
    print(f"Saved to {output_path}")

    if not validation.passed:
        sys.exit(1)


if __name__ == "__main__":
    main()
