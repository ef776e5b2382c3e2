"""User-feedback calibration of stored food densities."""

from __future__ import annotations

import dataclasses
import logging
import math

from ..core.types import FoodDensityEntry, InvalidInputError, VolumeEstimationResult
from .table import DensityRepository, normalize_food_name

logger = logging.getLogger(__name__)


def _positive(name: str, value: float) -> float:
    value = float(value)
    if not math.isfinite(value) or value <= 0:
        raise InvalidInputError(f"{name} must be a positive number, got {value}")
    return value


class CalibrationFeedbackLoop:
    """Moves stored densities toward user-confirmed measurements.

    Each feedback event with a measured volume replaces the stored density by
    the mean of the stored value and the observed one. Without a measured
    volume a weight correction cannot be attributed to density, so nothing
    is updated. Updates affect future estimates only.
    """

    def __init__(self, repository: DensityRepository) -> None:
        self.repository = repository

    def calibrate(
        self,
        food_name: str,
        prior_result: VolumeEstimationResult | None,
        actual_weight: float,
        actual_volume: float | None = None,
    ) -> None:
        key = normalize_food_name(food_name)
        actual_weight = _positive("actual_weight", actual_weight)
        if actual_volume is None:
            logger.debug("no measured volume for %r, density left unchanged", key)
            return
        actual_density = actual_weight / _positive("actual_volume", actual_volume)

        def _blend(current: FoodDensityEntry) -> FoodDensityEntry:
            return dataclasses.replace(current, density=(current.density + actual_density) / 2)

        updated = self.repository.update(key, _blend)
        if prior_result is not None:
            logger.info(
                "calibrated %r: estimated %d g, actual %.1f g, density now %.4f g/ml",
                key,
                prior_result.estimated_weight,
                actual_weight,
                updated.density,
            )


__all__ = ["CalibrationFeedbackLoop"]
