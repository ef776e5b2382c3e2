"""CLI entry point for estimating the volume and weight of a food region in an image."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from portion_estimator.cli import run_estimation
from portion_estimator.core.types import InvalidInputError
from portion_estimator.utils.config import load_config


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Estimate portion volume and weight of a food item in an image."
    )
    parser.add_argument("image", help="Image containing the food item")
    parser.add_argument(
        "--food", required=True,
        help="Food name from the upstream classifier (e.g. 'Apple')"
    )
    parser.add_argument(
        "--bbox",
        nargs=4,
        type=float,
        required=True,
        metavar=("X", "Y", "WIDTH", "HEIGHT"),
        help="Food bounding box in pixels",
    )
    parser.add_argument("--category", default=None, help="Food category, e.g. 'Fruits'")
    parser.add_argument(
        "--config", dest="config", default=None,
        help="Path to JSON/YAML config file"
    )
    parser.add_argument(
        "--no-depth", action="store_true",
        help="Disable depth estimation stage"
    )
    parser.add_argument(
        "--no-reference", action="store_true",
        help="Disable reference object detection"
    )
    parser.add_argument(
        "--density-table",
        default=None,
        help="JSON density table to read and update (overrides config)",
    )
    parser.add_argument(
        "--actual-weight",
        type=float,
        default=None,
        help="Measured weight in grams, used to calibrate the density table",
    )
    parser.add_argument(
        "--actual-volume",
        type=float,
        default=None,
        help="Measured volume in ml, required for a density update",
    )
    parser.add_argument(
        "--summary", action="store_true",
        help="Print a one-line summary instead of JSON"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def apply_overrides(cfg: dict, args: argparse.Namespace) -> dict:
    """Apply command line overrides to configuration."""
    cfg = json.loads(json.dumps(cfg))  # deep copy

    if args.no_depth:
        cfg.setdefault("depth", {})["enabled"] = False
    if args.no_reference:
        cfg.setdefault("detector", {})["enabled"] = False
    if args.density_table is not None:
        cfg.setdefault("density", {})["table_path"] = str(args.density_table)

    return cfg


def main(argv: list[str]) -> int:
    """Main entry point."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    target = Path(args.image)
    if not target.exists():
        print(f"Image not found: {target}")
        return 1

    cfg = load_config(args.config, search_cwd=True)
    cfg = apply_overrides(cfg, args)

    try:
        run_estimation(
            target,
            cfg,
            food_name=args.food,
            bbox=args.bbox,
            category=args.category,
            actual_weight=args.actual_weight,
            actual_volume=args.actual_volume,
            as_json=not args.summary,
        )
    except InvalidInputError as exc:
        print(f"Invalid input: {exc}")
        return 2
    return 0


def cli() -> int:
    """Console script entry point."""
    return main(sys.argv[1:])


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
