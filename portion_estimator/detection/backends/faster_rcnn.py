"""Faster R-CNN detection backend (COCO categories)."""
from __future__ import annotations

from typing import Any, List

import torch
from PIL import Image
from torchvision import transforms
from torchvision.models import detection as detection_models

from .base import BaseDetectorBackend, DetectionResult


class FasterRCNNBackend(BaseDetectorBackend):
    """Detection backend using torchvision's COCO-trained Faster R-CNN.

    COCO covers several everyday reference objects (fork, knife, spoon, cup,
    bowl, cell phone); other catalog items need a custom backend.
    """

    def __init__(
        self,
        device: str | None = None,
        score_threshold: float = 0.5,
        max_detections: int = 20,
        use_v2: bool = True,
    ):
        """Initialize Faster R-CNN backend.

        Args:
            device: Device to run on ('cuda' or 'cpu')
            score_threshold: Minimum confidence threshold
            max_detections: Maximum number of detections to return
            use_v2: Whether to use the v2 model weights (better accuracy)
        """
        super().__init__(device, score_threshold, max_detections)
        self.use_v2 = use_v2
        self._preprocess = transforms.Compose([transforms.ToTensor()])

    def _load_model(self) -> Any:
        if self.use_v2:
            weights = detection_models.FasterRCNN_ResNet50_FPN_V2_Weights.DEFAULT
            model = detection_models.fasterrcnn_resnet50_fpn_v2(weights=weights)
        else:
            weights = detection_models.FasterRCNN_ResNet50_FPN_Weights.DEFAULT
            model = detection_models.fasterrcnn_resnet50_fpn(weights=weights)

        model.to(self.device).eval()
        self._categories = list(weights.meta.get("categories", self._categories))
        return model

    def detect(self, image: Image.Image) -> List[DetectionResult]:
        """Run Faster R-CNN detection on an image."""
        model = self._model.get()
        if model is None:
            return []

        image = image.convert("RGB")
        tensor = self._preprocess(image).to(self.device)

        with torch.inference_mode():
            outputs = model([tensor])[0]

        results = []
        for score, label_idx, box in zip(
            outputs.get("scores", []).cpu().numpy(),
            outputs.get("labels", []).cpu().numpy(),
            outputs.get("boxes", []).cpu().numpy(),
        ):
            if score < self.score_threshold:
                continue

            left, top, right, bottom = (int(round(v)) for v in box)
            if right <= left or bottom <= top:
                continue
            category = (
                self._categories[label_idx]
                if 0 <= label_idx < len(self._categories)
                else "unknown"
            )
            results.append(DetectionResult(
                box=(left, top, right, bottom),
                confidence=float(score),
                label=category,
            ))

        # Sort by confidence and limit
        results.sort(key=lambda x: x.confidence, reverse=True)
        return results[:self.max_detections]
