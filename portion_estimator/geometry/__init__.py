"""Shape analysis and volume formulas."""

from .shape import (
    CATEGORY_SHAPE_PRIORS,
    ShapeAnalyzer,
    classify_shape,
    rescale_analysis,
    shape_prior_for,
    surface_area,
)
from .volume import VOLUME_FORMULAS, volume_for

__all__ = [
    "CATEGORY_SHAPE_PRIORS",
    "ShapeAnalyzer",
    "VOLUME_FORMULAS",
    "classify_shape",
    "rescale_analysis",
    "shape_prior_for",
    "surface_area",
    "volume_for",
]
