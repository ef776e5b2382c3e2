"""Portion-level nutrition scaling."""

from .portion import NutritionInfo, nutrition_for_portion

__all__ = ["NutritionInfo", "nutrition_for_portion"]
