"""Evidence sources: reference-object detection and monocular depth.

Quick Start:
    from portion_estimator.detection import DepthEstimator, ReferenceObjectDetector
    references = ReferenceObjectDetector().detect(image)
    depth = DepthEstimator().estimate(image, bounding_box)

Both load their models lazily on first use and degrade to "no evidence"
(an empty list, or ``has_depth_data=False``) when a model cannot be loaded.
"""

from .backends import BaseDetectorBackend, DetectionResult, DetectorBackend, FasterRCNNBackend
from .depth import DepthEstimator
from .reference import LABEL_ALIASES, REFERENCE_CATALOG, ReferenceObjectDetector

__all__ = [
    "BaseDetectorBackend",
    "DepthEstimator",
    "DetectionResult",
    "DetectorBackend",
    "FasterRCNNBackend",
    "LABEL_ALIASES",
    "REFERENCE_CATALOG",
    "ReferenceObjectDetector",
]
