"""Portion volume and weight estimation for photographed food items."""

from .core import (
    BoundingBox,
    DepthEstimate,
    EstimationMethod,
    FoodClassification,
    FoodDensityEntry,
    ImageInput,
    InvalidBoundingBoxError,
    InvalidInputError,
    ReferenceObject,
    Shape,
    ShapeAnalysis,
    VolumeEstimationPipeline,
    VolumeEstimationResult,
    estimate_volume,
)
from .density import CalibrationFeedbackLoop, InMemoryDensityRepository, JsonDensityRepository
from .detection import DepthEstimator, ReferenceObjectDetector
from .geometry import ShapeAnalyzer, volume_for
from .nutrition import NutritionInfo, nutrition_for_portion
from .utils import load_config

__all__ = [
    "BoundingBox",
    "CalibrationFeedbackLoop",
    "DepthEstimate",
    "DepthEstimator",
    "EstimationMethod",
    "FoodClassification",
    "FoodDensityEntry",
    "ImageInput",
    "InMemoryDensityRepository",
    "InvalidBoundingBoxError",
    "InvalidInputError",
    "JsonDensityRepository",
    "NutritionInfo",
    "ReferenceObject",
    "ReferenceObjectDetector",
    "Shape",
    "ShapeAnalysis",
    "ShapeAnalyzer",
    "VolumeEstimationPipeline",
    "VolumeEstimationResult",
    "estimate_volume",
    "load_config",
    "nutrition_for_portion",
    "volume_for",
]
