"""Base protocol for reference-object detection backends."""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Protocol, Tuple, runtime_checkable

from PIL import Image

from ...utils.lazy import LazyLoader


@dataclass
class DetectionResult:
    """Raw detection result from a backend."""

    box: Tuple[int, int, int, int]  # (left, top, right, bottom)
    confidence: float
    label: str

    @property
    def pixel_width(self) -> int:
        return self.box[2] - self.box[0]

    @property
    def pixel_height(self) -> int:
        return self.box[3] - self.box[1]


@runtime_checkable
class DetectorBackend(Protocol):
    """Protocol for detection backends.

    Backends handle the actual model inference and return raw labelled boxes.
    Mapping labels onto physical sizes is the detector's job.
    """

    @property
    def categories(self) -> List[str]:
        """List of category names the model can detect."""
        ...

    def detect(self, image: Image.Image) -> List[DetectionResult]:
        """Run detection on an image.

        Args:
            image: PIL Image to detect objects in

        Returns:
            List of DetectionResult objects
        """
        ...


class BaseDetectorBackend(ABC):
    """Abstract base class for detector backends with lazily loaded models."""

    def __init__(
        self,
        device: str | None = None,
        score_threshold: float = 0.5,
        max_detections: int = 20,
    ):
        self._device = device
        self.score_threshold = score_threshold
        self.max_detections = max_detections
        self._categories: List[str] = []
        self._model = LazyLoader(self._load_model, name=type(self).__name__)

    @property
    def device(self) -> str:
        if self._device is None:
            import torch

            self._device = "cuda" if torch.cuda.is_available() else "cpu"
        return self._device

    @property
    def categories(self) -> List[str]:
        return self._categories

    @property
    def available(self) -> bool:
        return self._model.get() is not None

    @abstractmethod
    def _load_model(self) -> Any:
        """Build and return the inference model."""

    @abstractmethod
    def detect(self, image: Image.Image) -> List[DetectionResult]:
        """Run detection on an image."""

    def reset(self) -> None:
        """Forget a loaded or failed model so the next call retries."""
        self._model.reset()
