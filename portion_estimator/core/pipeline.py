"""Orchestration of evidence gathering, shape analysis, volume and weight."""

from __future__ import annotations

import logging
import math
import warnings
from concurrent.futures import ThreadPoolExecutor
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Mapping, Tuple

from PIL import Image, UnidentifiedImageError

from ..density.calibration import CalibrationFeedbackLoop
from ..density.table import (
    DensityRepository,
    InMemoryDensityRepository,
    JsonDensityRepository,
    normalize_food_name,
)
from ..detection.depth import DepthEstimator
from ..detection.reference import ReferenceObjectDetector
from ..geometry.shape import ShapeAnalyzer, rescale_analysis
from ..geometry.volume import volume_for
from ..nutrition.portion import NutritionInfo, nutrition_for_portion
from .types import (
    BoundingBox,
    DepthAnalysisEstimate,
    DepthEstimate,
    Dimensions,
    FoodClassification,
    HeuristicEstimate,
    ImageInput,
    InvalidBoundingBoxError,
    ReferenceObject,
    ReferenceObjectEstimate,
    Shape,
    ShapeAnalysis,
    VolumeEstimationResult,
)

logger = logging.getLogger(__name__)

# Fraction of the bounding-box "volume" a shape fills, for the uncalibrated path.
HEURISTIC_MULTIPLIERS: Dict[Shape, float] = {
    Shape.SPHERICAL: 0.5,
    Shape.CYLINDRICAL: 0.6,
    Shape.RECTANGULAR: 0.8,
    Shape.IRREGULAR: 0.4,
}

# Depth of a reference-scaled region relative to its smaller footprint side.
REFERENCE_DEPTH_RATIO = 0.8


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class VolumeEstimationPipeline:
    """Estimates portion volume and weight with a strict evidence priority.

    1. A detected reference object gives a real-world scale.
    2. Otherwise usable depth data gives the height axis.
    3. Otherwise an uncalibrated area heuristic is used.

    Missing or failing evidence sources never raise; only malformed input
    (bounding box, food name) does.
    """

    def __init__(
        self,
        density_repository: DensityRepository | None = None,
        reference_detector: ReferenceObjectDetector | None = None,
        depth_estimator: DepthEstimator | None = None,
        shape_analyzer: ShapeAnalyzer | None = None,
        use_reference_objects: bool = True,
        use_depth: bool = True,
        pixel_to_cm: float = 0.1,
        min_reference_confidence: float = 0.0,
        reference_confidence_factor: float = 0.9,
        depth_confidence: float = 0.85,
        heuristic_confidence: float = 0.6,
        heuristic_volume_scale: float = 10.0,
    ) -> None:
        self.density_repository = (
            density_repository if density_repository is not None else InMemoryDensityRepository()
        )
        self.reference_detector = (
            (reference_detector or ReferenceObjectDetector()) if use_reference_objects else None
        )
        self.depth_estimator = (depth_estimator or DepthEstimator()) if use_depth else None
        self.shape_analyzer = shape_analyzer or ShapeAnalyzer()
        self.calibration = CalibrationFeedbackLoop(self.density_repository)
        self.pixel_to_cm = pixel_to_cm
        self.min_reference_confidence = min_reference_confidence
        self.reference_confidence_factor = reference_confidence_factor
        self.depth_confidence = depth_confidence
        self.heuristic_confidence = heuristic_confidence
        self.heuristic_volume_scale = heuristic_volume_scale

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any]) -> "VolumeEstimationPipeline":
        """Build a pipeline from a :func:`~portion_estimator.utils.load_config` mapping."""
        det_cfg = cfg.get("detector", {})
        depth_cfg = cfg.get("depth", {})
        est_cfg = cfg.get("estimation", {})
        table_path = cfg.get("density", {}).get("table_path")

        reference_detector = None
        if det_cfg.get("enabled", True):
            from ..detection.backends.faster_rcnn import FasterRCNNBackend

            reference_detector = ReferenceObjectDetector(
                backend=FasterRCNNBackend(
                    device=det_cfg.get("device"),
                    score_threshold=float(det_cfg.get("score_threshold", 0.5)),
                    max_detections=int(det_cfg.get("max_detections", 20)),
                )
            )
        depth_estimator = None
        if depth_cfg.get("enabled", True):
            depth_estimator = DepthEstimator(
                model_type=depth_cfg.get("model_type", "MiDaS_small"),
                device=depth_cfg.get("device"),
                depth_scale_cm=float(depth_cfg.get("depth_scale_cm", 10.0)),
                min_depth_cm=float(depth_cfg.get("min_depth_cm", 0.5)),
            )

        return cls(
            density_repository=(
                JsonDensityRepository(table_path) if table_path else InMemoryDensityRepository()
            ),
            reference_detector=reference_detector,
            depth_estimator=depth_estimator,
            use_reference_objects=reference_detector is not None,
            use_depth=depth_estimator is not None,
            pixel_to_cm=float(est_cfg.get("pixel_to_cm", 0.1)),
            min_reference_confidence=float(est_cfg.get("min_reference_confidence", 0.0)),
            reference_confidence_factor=float(est_cfg.get("reference_confidence_factor", 0.9)),
            depth_confidence=float(est_cfg.get("depth_confidence", 0.85)),
            heuristic_confidence=float(est_cfg.get("heuristic_confidence", 0.6)),
            heuristic_volume_scale=float(est_cfg.get("heuristic_volume_scale", 10.0)),
        )

    def estimate(
        self,
        image_input: ImageInput,
        food_name: str,
        category: str | None,
        bounding_box: BoundingBox | Mapping[str, float],
    ) -> VolumeEstimationResult:
        normalize_food_name(food_name)
        box = _coerce_box(bounding_box)
        image = _load_image(image_input)

        references, depth = self._gather_evidence(image, box)
        entry = self.density_repository.lookup(food_name)
        known = self.density_repository.contains(food_name)
        shape_analysis = self.shape_analyzer.analyze(
            box,
            entry.shape_prior if known else None,
            food_name=food_name,
            category=category,
        )
        common = dict(
            bounding_box=box,
            food_name=food_name,
            category=category,
            density=entry.density,
        )

        reference = self._select_reference(references)
        if reference is not None:
            return self._with_reference(reference, shape_analysis, common)
        if depth.has_depth_data:
            return self._with_depth(depth, shape_analysis, common)
        return self._with_heuristic(shape_analysis, common)

    def estimate_for_classification(
        self,
        image_input: ImageInput,
        classification: FoodClassification,
        bounding_box: BoundingBox | Mapping[str, float],
    ) -> VolumeEstimationResult:
        return self.estimate(image_input, classification.name, classification.category, bounding_box)

    def calibrate(
        self,
        food_name: str,
        prior_result: VolumeEstimationResult | None,
        actual_weight: float,
        actual_volume: float | None = None,
    ) -> None:
        self.calibration.calibrate(food_name, prior_result, actual_weight, actual_volume)

    @staticmethod
    def nutrition_for_portion(
        nutrition_per_100g: NutritionInfo, estimated_weight: float
    ) -> NutritionInfo:
        return nutrition_for_portion(nutrition_per_100g, estimated_weight)

    def dispose(self) -> None:
        """Release loaded models; they are reloaded lazily if used again."""
        if self.depth_estimator is not None:
            self.depth_estimator.reset()
        if self.reference_detector is not None:
            self.reference_detector.reset()

    # Evidence -----------------------------------------------------------

    def _gather_evidence(
        self, image: Image.Image, box: BoundingBox
    ) -> Tuple[List[ReferenceObject], DepthEstimate]:
        references: List[ReferenceObject] = []
        depth = DepthEstimate.unavailable()
        if self.reference_detector is None and self.depth_estimator is None:
            return references, depth

        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="evidence") as pool:
            ref_future = (
                pool.submit(self.reference_detector.detect, image)
                if self.reference_detector is not None
                else None
            )
            depth_future = (
                pool.submit(self.depth_estimator.estimate, image, box)
                if self.depth_estimator is not None
                else None
            )
            if ref_future is not None:
                try:
                    references = list(ref_future.result())
                except Exception as exc:
                    warnings.warn(f"Reference object detection failed, ignoring it: {exc}")
            if depth_future is not None:
                try:
                    depth = depth_future.result()
                except Exception as exc:
                    warnings.warn(f"Depth estimation failed, ignoring it: {exc}")
        return references, depth

    def _select_reference(self, references: List[ReferenceObject]) -> ReferenceObject | None:
        usable = [
            ref
            for ref in references
            if ref.confidence > self.min_reference_confidence
            and ref.pixel_size.width > 0
            and ref.pixel_size.height > 0
            and ref.real_world_size.width > 0
            and ref.real_world_size.height > 0
        ]
        if not usable:
            return None
        return max(usable, key=lambda ref: ref.confidence)

    # Paths --------------------------------------------------------------

    def _with_reference(
        self,
        reference: ReferenceObject,
        shape_analysis: ShapeAnalysis,
        common: Dict[str, Any],
    ) -> ReferenceObjectEstimate:
        scale_x = reference.real_world_size.width / reference.pixel_size.width
        scale_y = reference.real_world_size.height / reference.pixel_size.height
        scale = (scale_x + scale_y) / 2

        box: BoundingBox = common["bounding_box"]
        real_w = box.width * scale
        real_h = box.height * scale
        dimensions = Dimensions(
            length=real_w, width=real_h, height=min(real_w, real_h) * REFERENCE_DEPTH_RATIO
        )
        volume = volume_for(shape_analysis.shape, dimensions)
        logger.debug(
            "reference path: %s at %.4f cm/px, %.1f ml", reference.name, scale, volume
        )
        return ReferenceObjectEstimate(
            **self._amounts(volume, common["density"]),
            confidence=reference.confidence * self.reference_confidence_factor,
            shape_analysis=rescale_analysis(shape_analysis, dimensions),
            reference_object=reference,
            **common,
        )

    def _with_depth(
        self,
        depth: DepthEstimate,
        shape_analysis: ShapeAnalysis,
        common: Dict[str, Any],
    ) -> DepthAnalysisEstimate:
        box: BoundingBox = common["bounding_box"]
        real_w = box.width * self.pixel_to_cm
        real_h = box.height * self.pixel_to_cm
        real_depth = depth.average_depth

        if shape_analysis.shape is Shape.SPHERICAL:
            diameter = min(real_w, real_h, real_depth)
            dimensions = Dimensions(length=diameter, width=diameter, height=diameter)
            volume = volume_for(Shape.SPHERICAL, dimensions)
        else:
            dimensions = Dimensions(length=real_w, width=real_h, height=real_depth)
            volume = volume_for(shape_analysis.shape, dimensions, depth=real_depth)
        logger.debug("depth path: %.2f cm average height, %.1f ml", real_depth, volume)
        return DepthAnalysisEstimate(
            **self._amounts(volume, common["density"]),
            confidence=self.depth_confidence,
            shape_analysis=rescale_analysis(shape_analysis, dimensions),
            depth_estimation=depth,
            **common,
        )

    def _with_heuristic(
        self, shape_analysis: ShapeAnalysis, common: Dict[str, Any]
    ) -> HeuristicEstimate:
        box: BoundingBox = common["bounding_box"]
        volume = (
            math.sqrt(box.area)
            * HEURISTIC_MULTIPLIERS[shape_analysis.shape]
            * self.heuristic_volume_scale
        )
        logger.debug("heuristic path: %s, %.1f ml", shape_analysis.shape.value, volume)
        return HeuristicEstimate(
            **self._amounts(volume, common["density"]),
            confidence=self.heuristic_confidence,
            shape_analysis=shape_analysis,
            **common,
        )

    @staticmethod
    def _amounts(volume: float, density: float) -> Dict[str, int]:
        volume = max(volume, 0.0)
        return {
            "estimated_volume": round_half_up(volume),
            "estimated_weight": round_half_up(volume * density),
        }


def estimate_volume(
    image_input: ImageInput,
    food_name: str,
    category: str | None,
    bounding_box: BoundingBox | Mapping[str, float],
) -> VolumeEstimationResult:
    """Functional helper mirroring :meth:`VolumeEstimationPipeline.estimate`.

    Calls share one default pipeline, so its models load (or fail) once.
    """
    return _default_pipeline().estimate(image_input, food_name, category, bounding_box)


@lru_cache(maxsize=None)
def _default_pipeline() -> VolumeEstimationPipeline:
    return VolumeEstimationPipeline()


def _coerce_box(bounding_box: BoundingBox | Mapping[str, float]) -> BoundingBox:
    if isinstance(bounding_box, BoundingBox):
        return bounding_box
    if isinstance(bounding_box, Mapping):
        return BoundingBox.from_dict(bounding_box)
    raise InvalidBoundingBoxError(f"Unsupported bounding box: {bounding_box!r}")


def _load_image(image_input: ImageInput) -> Image.Image:
    if isinstance(image_input, Image.Image):
        return image_input
    path = Path(image_input)
    if not path.exists():
        raise FileNotFoundError(path)
    try:
        image = Image.open(path)
        image.load()
        return image
    except UnidentifiedImageError as exc:
        raise UnidentifiedImageError(f"Unsupported image file: {path}") from exc


__all__ = [
    "HEURISTIC_MULTIPLIERS",
    "VolumeEstimationPipeline",
    "estimate_volume",
    "round_half_up",
]
