"""Closed-form volume formulas, one per canonical shape.

Dimensions are expected in centimeters; results are in cubic centimeters,
which are numerically equal to milliliters.
"""

from __future__ import annotations

import math
from typing import Callable, Dict

from ..core.types import Dimensions, Shape


def _check(dimensions: Dimensions) -> None:
    if min(dimensions.length, dimensions.width, dimensions.height) < 0:
        raise ValueError(f"Dimensions must be non-negative: {dimensions}")


def spherical_volume(dimensions: Dimensions) -> float:
    _check(dimensions)
    radius = min(dimensions.length, dimensions.width) / 2
    return (4.0 / 3.0) * math.pi * radius**3


def cylindrical_volume(dimensions: Dimensions, depth: float | None = None) -> float:
    """Cylinder lying along its longer footprint axis, or standing ``depth`` tall."""
    _check(dimensions)
    radius = min(dimensions.length, dimensions.width) / 2
    height = max(dimensions.length, dimensions.width) if depth is None else depth
    return math.pi * radius**2 * height


def rectangular_volume(dimensions: Dimensions) -> float:
    _check(dimensions)
    return dimensions.length * dimensions.width * dimensions.height


def irregular_volume(dimensions: Dimensions) -> float:
    """Ellipsoid with the three dimensions as axes."""
    _check(dimensions)
    return (
        (4.0 / 3.0)
        * math.pi
        * (dimensions.length / 2)
        * (dimensions.width / 2)
        * (dimensions.height / 2)
    )


VOLUME_FORMULAS: Dict[Shape, Callable[[Dimensions], float]] = {
    Shape.SPHERICAL: spherical_volume,
    Shape.CYLINDRICAL: cylindrical_volume,
    Shape.RECTANGULAR: rectangular_volume,
    Shape.IRREGULAR: irregular_volume,
}


def volume_for(shape: Shape, dimensions: Dimensions, depth: float | None = None) -> float:
    """Volume of ``shape`` with the given dimensions.

    ``depth`` overrides the cylinder's length axis; the other shapes take
    their height from ``dimensions.height``.
    """
    if depth is not None and shape is Shape.CYLINDRICAL:
        return cylindrical_volume(dimensions, depth)
    return VOLUME_FORMULAS[shape](dimensions)


__all__ = [
    "VOLUME_FORMULAS",
    "cylindrical_volume",
    "irregular_volume",
    "rectangular_volume",
    "spherical_volume",
    "volume_for",
]
