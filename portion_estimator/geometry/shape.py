"""Shape classification and image-relative dimension estimates for food regions."""

from __future__ import annotations

import math
from typing import Callable, Dict

from ..core.types import BoundingBox, Dimensions, Shape, ShapeAnalysis

# Aspect-ratio bands, width / height.
SPHERICAL_RATIO_MIN = 0.8
SPHERICAL_RATIO_MAX = 1.2
ELONGATED_RATIO_MAX = 2.0
ELONGATED_RATIO_MIN = 0.5

DEFAULT_PIXEL_TO_LENGTH = 0.1
DEFAULT_HEIGHT_FACTOR = 0.08

# Fallback priors for foods missing from the density table.
RECTANGULAR_NAME_KEYWORDS = ("bread", "cheese")
CATEGORY_SHAPE_PRIORS: Dict[str, Shape] = {
    "bakery": Shape.RECTANGULAR,
    "bread": Shape.RECTANGULAR,
    "breads": Shape.RECTANGULAR,
    "cheese": Shape.RECTANGULAR,
    "beverages": Shape.CYLINDRICAL,
    "drinks": Shape.CYLINDRICAL,
}


def classify_shape(aspect_ratio: float, shape_prior: Shape | None = None) -> Shape:
    if SPHERICAL_RATIO_MIN <= aspect_ratio <= SPHERICAL_RATIO_MAX:
        return Shape.SPHERICAL
    if aspect_ratio > ELONGATED_RATIO_MAX or aspect_ratio < ELONGATED_RATIO_MIN:
        return Shape.CYLINDRICAL
    if shape_prior is not None:
        return shape_prior
    return Shape.IRREGULAR


def shape_prior_for(food_name: str | None, category: str | None = None) -> Shape | None:
    """Shape prior guessed from the food name, then the category."""
    name = (food_name or "").lower()
    if any(keyword in name for keyword in RECTANGULAR_NAME_KEYWORDS):
        return Shape.RECTANGULAR
    if category:
        return CATEGORY_SHAPE_PRIORS.get(" ".join(category.split()).lower())
    return None


def _sphere_area(d: Dimensions) -> float:
    # Radius from the mean footprint diameter.
    radius = (d.length + d.width) / 4
    return 4 * math.pi * radius**2


def _cylinder_area(d: Dimensions) -> float:
    radius = min(d.length, d.width) / 2
    height = max(d.length, d.width)
    return 2 * math.pi * radius * (radius + height)


def _box_area(d: Dimensions) -> float:
    return 2 * (d.length * d.width + d.width * d.height + d.height * d.length)


def _irregular_area(d: Dimensions) -> float:
    # Rough approximation, not a closed form.
    return d.length * d.width * 1.5


SURFACE_AREA_FORMULAS: Dict[Shape, Callable[[Dimensions], float]] = {
    Shape.SPHERICAL: _sphere_area,
    Shape.CYLINDRICAL: _cylinder_area,
    Shape.RECTANGULAR: _box_area,
    Shape.IRREGULAR: _irregular_area,
}


def surface_area(shape: Shape, dimensions: Dimensions) -> float:
    return SURFACE_AREA_FORMULAS[shape](dimensions)


def rescale_analysis(analysis: ShapeAnalysis, dimensions: Dimensions) -> ShapeAnalysis:
    """Same shape with new (real-world) dimensions and a recomputed surface area."""
    return ShapeAnalysis(
        shape=analysis.shape,
        dimensions=dimensions,
        surface_area=surface_area(analysis.shape, dimensions),
    )


class ShapeAnalyzer:
    """Classifies a bounding box into a canonical shape.

    The analyzer is scale-agnostic: dimensions are derived from pixel extents
    with a fixed heuristic factor and are meant to be replaced by the caller
    once a better scale is known.
    """

    def __init__(
        self,
        pixel_to_length: float = DEFAULT_PIXEL_TO_LENGTH,
        height_factor: float = DEFAULT_HEIGHT_FACTOR,
    ) -> None:
        self.pixel_to_length = pixel_to_length
        self.height_factor = height_factor

    def analyze(
        self,
        bounding_box: BoundingBox,
        shape_prior: Shape | None = None,
        food_name: str | None = None,
        category: str | None = None,
    ) -> ShapeAnalysis:
        """Classify ``bounding_box``.

        ``shape_prior`` is the density-table prior for a known food. Without
        one, the prior is guessed from ``food_name`` and ``category``.
        """
        if shape_prior is None:
            shape_prior = shape_prior_for(food_name, category)
        shape = classify_shape(bounding_box.aspect_ratio, shape_prior)
        mean_extent = (bounding_box.width + bounding_box.height) / 2
        dimensions = Dimensions(
            length=bounding_box.width * self.pixel_to_length,
            width=bounding_box.height * self.pixel_to_length,
            height=mean_extent * self.height_factor,
        )
        return ShapeAnalysis(
            shape=shape,
            dimensions=dimensions,
            surface_area=surface_area(shape, dimensions),
        )


__all__ = [
    "CATEGORY_SHAPE_PRIORS",
    "SURFACE_AREA_FORMULAS",
    "ShapeAnalyzer",
    "classify_shape",
    "rescale_analysis",
    "shape_prior_for",
    "surface_area",
]
