"""Food density table and calibration feedback."""

from .calibration import CalibrationFeedbackLoop
from .table import (
    DEFAULT_DENSITY_ENTRY,
    DensityRepository,
    InMemoryDensityRepository,
    JsonDensityRepository,
    SEED_DENSITIES,
    normalize_food_name,
)

__all__ = [
    "CalibrationFeedbackLoop",
    "DEFAULT_DENSITY_ENTRY",
    "DensityRepository",
    "InMemoryDensityRepository",
    "JsonDensityRepository",
    "SEED_DENSITIES",
    "normalize_food_name",
]
