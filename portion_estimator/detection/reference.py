"""Detection of everyday objects with known physical size for scale calibration."""

from __future__ import annotations

from typing import Dict, List, Mapping

from PIL import Image

from ..core.types import PixelSize, RealWorldSize, ReferenceObject
from .backends.base import DetectionResult, DetectorBackend

# Physical sizes in centimeters, width x height as usually photographed.
REFERENCE_CATALOG: Dict[str, RealWorldSize] = {
    "Credit Card": RealWorldSize(width=8.56, height=5.398),
    "Coin": RealWorldSize(width=2.4, height=2.4),
    "Phone": RealWorldSize(width=7.5, height=15.0),
    "Fork": RealWorldSize(width=2.0, height=18.0),
    "Knife": RealWorldSize(width=2.0, height=22.0),
    "Spoon": RealWorldSize(width=3.0, height=16.0),
    "Plate": RealWorldSize(width=25.0, height=25.0),
    "Bowl": RealWorldSize(width=15.0, height=15.0),
    "Cup": RealWorldSize(width=8.0, height=10.0),
}

# Detector vocabulary -> catalog name.
LABEL_ALIASES: Dict[str, str] = {
    "card": "Credit Card",
    "bank card": "Credit Card",
    "payment card": "Credit Card",
    "cell phone": "Phone",
    "mobile phone": "Phone",
    "smartphone": "Phone",
    "dish": "Plate",
    "dinner plate": "Plate",
    "mug": "Cup",
    "coffee cup": "Cup",
}


def _label_key(label: str) -> str:
    return " ".join(str(label).replace("_", " ").split()).lower()


class ReferenceObjectDetector:
    """Finds catalog objects in an image and pairs them with their real size.

    Results are sorted by descending confidence. Unrecognised labels are
    dropped. No backend, or a backend whose model failed to load, yields an
    empty list.
    """

    def __init__(
        self,
        backend: DetectorBackend | None = None,
        catalog: Mapping[str, RealWorldSize] | None = None,
        aliases: Mapping[str, str] | None = None,
        score_threshold: float = 0.0,
    ) -> None:
        if backend is None:
            from .backends.faster_rcnn import FasterRCNNBackend

            backend = FasterRCNNBackend()
        self.backend = backend
        self.catalog = dict(catalog or REFERENCE_CATALOG)
        self.score_threshold = score_threshold
        self._by_label: Dict[str, str] = {_label_key(name): name for name in self.catalog}
        for alias, name in (aliases or LABEL_ALIASES).items():
            if name in self.catalog:
                self._by_label[_label_key(alias)] = name

    def resolve(self, label: str) -> str | None:
        """Catalog name for a detector label, if any."""
        return self._by_label.get(_label_key(label))

    def detect(self, image: Image.Image) -> List[ReferenceObject]:
        found = [
            ref
            for ref in (self._to_reference(d) for d in self.backend.detect(image))
            if ref is not None and ref.confidence > self.score_threshold
        ]
        found.sort(key=lambda ref: ref.confidence, reverse=True)
        return found

    def reset(self) -> None:
        reset = getattr(self.backend, "reset", None)
        if callable(reset):
            reset()

    def _to_reference(self, detection: DetectionResult) -> ReferenceObject | None:
        name = self.resolve(detection.label)
        if name is None:
            return None
        pixel_w, pixel_h = detection.pixel_width, detection.pixel_height
        if pixel_w <= 0 or pixel_h <= 0:
            return None
        size = self.catalog[name]
        # Match the catalog orientation to the detected box.
        if (pixel_w > pixel_h) != (size.width > size.height) and size.width != size.height:
            size = RealWorldSize(width=size.height, height=size.width, depth=size.depth)
        return ReferenceObject(
            name=name,
            real_world_size=size,
            pixel_size=PixelSize(width=float(pixel_w), height=float(pixel_h)),
            confidence=float(detection.confidence),
        )


__all__ = ["LABEL_ALIASES", "REFERENCE_CATALOG", "ReferenceObjectDetector"]
