"""Scaling of per-100g nutrient values to an estimated portion."""
from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass
from typing import Any, Dict

from ..core.types import InvalidInputError

_SCALED_FIELDS = ("calories", "protein", "carbs", "fat", "fiber", "sugar", "sodium")


@dataclass(frozen=True)
class NutritionInfo:
    """Nutritional values for a food, per 100g unless returned by a scaling call."""

    ingredient: str
    calories: float = 0.0  # kcal
    protein: float = 0.0   # grams
    carbs: float = 0.0     # grams
    fat: float = 0.0       # grams
    fiber: float = 0.0     # grams
    sugar: float = 0.0     # grams
    sodium: float = 0.0    # mg
    source: str = "unknown"

    def calories_for_grams(self, grams: float) -> float:
        """Calculate calories for a given portion in grams."""
        return (self.calories * grams) / 100.0

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


def nutrition_for_portion(
    nutrition_per_100g: NutritionInfo, estimated_weight: float
) -> NutritionInfo:
    """Scale every per-100g value by ``estimated_weight / 100``.

    Args:
        nutrition_per_100g: Reference values for 100 g of the food
        estimated_weight: Portion weight in grams

    Returns:
        New NutritionInfo for the portion; the input is not modified.
    """
    weight = float(estimated_weight)
    if not math.isfinite(weight) or weight < 0:
        raise InvalidInputError(f"Portion weight must be non-negative, got {estimated_weight}")
    factor = weight / 100.0
    scaled = {name: getattr(nutrition_per_100g, name) * factor for name in _SCALED_FIELDS}
    return dataclasses.replace(nutrition_per_100g, **scaled)


__all__ = ["NutritionInfo", "nutrition_for_portion"]
