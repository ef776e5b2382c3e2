"""Shared dataclasses, enums and errors used across portion estimator components."""

from __future__ import annotations

import math
import numbers
from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar, Dict, Mapping, Tuple, Union

from PIL import Image


ImageInput = Union[str, Path, Image.Image]


class InvalidInputError(ValueError):
    """Raised when a caller violates the estimation contract."""


class InvalidBoundingBoxError(InvalidInputError):
    """Raised for bounding boxes with non-positive or non-finite extents."""


class Shape(str, Enum):
    """Canonical 3-D shapes a food region can be approximated by."""

    SPHERICAL = "spherical"
    CYLINDRICAL = "cylindrical"
    RECTANGULAR = "rectangular"
    IRREGULAR = "irregular"


class EstimationMethod(str, Enum):
    """Evidence path that produced a volume estimate."""

    REFERENCE_OBJECT = "reference_object"
    DEPTH_ANALYSIS = "3d_analysis"
    HEURISTIC = "ml_estimation"


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned food region in image pixels."""

    x: float
    y: float
    width: float
    height: float

    def __post_init__(self) -> None:
        values = (self.x, self.y, self.width, self.height)
        if not all(isinstance(v, numbers.Real) and math.isfinite(v) for v in values):
            raise InvalidBoundingBoxError(f"Bounding box values must be finite numbers: {values}")
        if self.width <= 0 or self.height <= 0:
            raise InvalidBoundingBoxError(
                f"Bounding box width and height must be positive, got {self.width}x{self.height}"
            )

    @classmethod
    def from_box(cls, box: Tuple[float, float, float, float]) -> "BoundingBox":
        """Build from a ``(left, top, right, bottom)`` tuple."""
        left, top, right, bottom = box
        return cls(x=left, y=top, width=right - left, height=bottom - top)

    @classmethod
    def from_dict(cls, data: Mapping[str, float]) -> "BoundingBox":
        try:
            return cls(
                x=data["x"], y=data["y"], width=data["width"], height=data["height"]
            )
        except KeyError as exc:
            raise InvalidBoundingBoxError(f"Bounding box is missing field {exc}") from exc

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    @property
    def area(self) -> float:
        return self.width * self.height

    def to_box(self) -> Tuple[float, float, float, float]:
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class RealWorldSize:
    """Physical size of a reference object in centimeters."""

    width: float
    height: float
    depth: float | None = None


@dataclass(frozen=True)
class PixelSize:
    width: float
    height: float


@dataclass(frozen=True)
class ReferenceObject:
    """A detected calibration object of known physical size."""

    name: str
    real_world_size: RealWorldSize
    pixel_size: PixelSize
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        real = {"width": self.real_world_size.width, "height": self.real_world_size.height}
        if self.real_world_size.depth is not None:
            real["depth"] = self.real_world_size.depth
        return {
            "name": self.name,
            "realWorldSize": real,
            "pixelSize": {"width": self.pixel_size.width, "height": self.pixel_size.height},
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class DepthEstimate:
    """Depth evidence for a region; the numbers are meaningless without ``has_depth_data``."""

    has_depth_data: bool
    average_depth: float = 0.0
    depth_variance: float = 0.0

    @classmethod
    def unavailable(cls) -> "DepthEstimate":
        return cls(has_depth_data=False, average_depth=0.0, depth_variance=0.0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hasDepthData": self.has_depth_data,
            "averageDepth": self.average_depth,
            "depthVariance": self.depth_variance,
        }


@dataclass(frozen=True)
class Dimensions:
    length: float
    width: float
    height: float


@dataclass(frozen=True)
class ShapeAnalysis:
    """Shape class, dimensions and surface area of a food region."""

    shape: Shape
    dimensions: Dimensions
    surface_area: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "shape": self.shape.value,
            "dimensions": asdict(self.dimensions),
            "surfaceArea": self.surface_area,
        }


@dataclass(frozen=True)
class FoodDensityEntry:
    """Density profile of a food (density in g/ml)."""

    density: float
    density_variance: float = 0.0
    shape_prior: Shape = Shape.IRREGULAR
    compressibility: float = 0.5

    def __post_init__(self) -> None:
        if not self.density > 0:
            raise InvalidInputError(f"Density must be positive, got {self.density}")
        if not 0.0 <= self.compressibility <= 1.0:
            raise InvalidInputError(
                f"Compressibility must lie in [0, 1], got {self.compressibility}"
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FoodDensityEntry":
        return cls(
            density=float(data["density"]),
            density_variance=float(data.get("variance", data.get("density_variance", 0.0))),
            shape_prior=Shape(data.get("shape", data.get("shape_prior", Shape.IRREGULAR.value))),
            compressibility=float(data.get("compressibility", 0.5)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "density": self.density,
            "variance": self.density_variance,
            "shape": self.shape_prior.value,
            "compressibility": self.compressibility,
        }


@dataclass(frozen=True)
class FoodClassification:
    """Upstream classifier output identifying the food in a region."""

    name: str
    category: str | None = None
    confidence: float = 1.0


@dataclass(frozen=True)
class VolumeEstimationResult:
    """Immutable estimate returned to the caller.

    Each evidence path has its own subclass so that only the fields meaningful
    to that path exist on the result. ``method`` is fixed per subclass.
    """

    estimated_volume: int
    estimated_weight: int
    confidence: float
    bounding_box: BoundingBox
    shape_analysis: ShapeAnalysis
    food_name: str
    category: str | None
    density: float

    method: ClassVar[EstimationMethod]

    def __post_init__(self) -> None:
        if self.estimated_volume < 0 or self.estimated_weight < 0:
            raise ValueError(
                f"Estimated volume and weight must be non-negative, got "
                f"{self.estimated_volume} ml / {self.estimated_weight} g"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "foodName": self.food_name,
            "category": self.category,
            "estimatedVolume": self.estimated_volume,
            "estimatedWeight": self.estimated_weight,
            "confidence": self.confidence,
            "method": self.method.value,
            "density": self.density,
            "boundingBox": self.bounding_box.to_dict(),
            "shapeAnalysis": self.shape_analysis.to_dict(),
        }


@dataclass(frozen=True)
class ReferenceObjectEstimate(VolumeEstimationResult):
    """Estimate scaled by a detected reference object."""

    reference_object: ReferenceObject

    method: ClassVar[EstimationMethod] = EstimationMethod.REFERENCE_OBJECT

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["referenceObject"] = self.reference_object.to_dict()
        return data


@dataclass(frozen=True)
class DepthAnalysisEstimate(VolumeEstimationResult):
    """Estimate using monocular depth as the height axis."""

    depth_estimation: DepthEstimate

    method: ClassVar[EstimationMethod] = EstimationMethod.DEPTH_ANALYSIS

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["depthEstimation"] = self.depth_estimation.to_dict()
        return data


@dataclass(frozen=True)
class HeuristicEstimate(VolumeEstimationResult):
    """Uncalibrated estimate from bounding-box area and shape multipliers."""

    method: ClassVar[EstimationMethod] = EstimationMethod.HEURISTIC


__all__ = [
    "BoundingBox",
    "DepthAnalysisEstimate",
    "DepthEstimate",
    "Dimensions",
    "EstimationMethod",
    "FoodClassification",
    "FoodDensityEntry",
    "HeuristicEstimate",
    "ImageInput",
    "InvalidBoundingBoxError",
    "InvalidInputError",
    "PixelSize",
    "RealWorldSize",
    "ReferenceObject",
    "ReferenceObjectEstimate",
    "Shape",
    "ShapeAnalysis",
    "VolumeEstimationResult",
]
