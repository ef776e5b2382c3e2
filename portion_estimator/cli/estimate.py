"""Estimate command: one image, one food region."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Sequence

from portion_estimator.core.pipeline import VolumeEstimationPipeline
from portion_estimator.core.types import BoundingBox, VolumeEstimationResult


def format_summary(result: VolumeEstimationResult) -> str:
    """One-line console summary of an estimate."""
    return (
        f"{result.food_name}: {result.estimated_volume} ml | {result.estimated_weight} g | "
        f"{result.method.value} ({result.confidence:.2f}) | {result.shape_analysis.shape.value}"
    )


def run_estimation(
    image_path: Path,
    cfg: Dict[str, Any],
    food_name: str,
    bbox: Sequence[float],
    category: str | None = None,
    actual_weight: float | None = None,
    actual_volume: float | None = None,
    as_json: bool = True,
) -> VolumeEstimationResult:
    """Run one estimate and optionally feed back a measured portion."""
    pipeline = VolumeEstimationPipeline.from_config(cfg)
    x, y, width, height = (float(v) for v in bbox)
    box = BoundingBox(x=x, y=y, width=width, height=height)

    result = pipeline.estimate(image_path, food_name, category, box)
    if as_json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(format_summary(result))

    if actual_weight is not None:
        pipeline.calibrate(food_name, result, actual_weight, actual_volume)
        entry = pipeline.density_repository.lookup(food_name)
        if actual_volume is None:
            print("No actual volume given; density unchanged.")
        print(f"Density for {food_name}: {entry.density:.4f} g/ml")

    return result


__all__ = ["format_summary", "run_estimation"]
