"""Core orchestration and shared types for the portion estimator."""

from .types import (
    BoundingBox,
    DepthAnalysisEstimate,
    DepthEstimate,
    Dimensions,
    EstimationMethod,
    FoodClassification,
    FoodDensityEntry,
    HeuristicEstimate,
    ImageInput,
    InvalidBoundingBoxError,
    InvalidInputError,
    PixelSize,
    RealWorldSize,
    ReferenceObject,
    ReferenceObjectEstimate,
    Shape,
    ShapeAnalysis,
    VolumeEstimationResult,
)
from .pipeline import VolumeEstimationPipeline, estimate_volume

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
    "VolumeEstimationPipeline",
    "VolumeEstimationResult",
    "estimate_volume",
]
