"""Detection backend implementations."""

from .base import BaseDetectorBackend, DetectionResult, DetectorBackend
from .faster_rcnn import FasterRCNNBackend

__all__ = [
    "BaseDetectorBackend",
    "DetectionResult",
    "DetectorBackend",
    "FasterRCNNBackend",
]
