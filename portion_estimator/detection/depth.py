"""Monocular depth estimation used to recover the height axis of a food region."""

from __future__ import annotations

import io
from contextlib import redirect_stdout
from typing import Any, Callable, Tuple

import numpy as np
import torch
import torch.nn.functional as F
from PIL import Image

from ..core.types import BoundingBox, DepthEstimate
from ..utils.lazy import LazyLoader

ModelBundle = Tuple[Any, Callable[[np.ndarray], torch.Tensor]]


class DepthEstimator:
    """Predicts per-region food height from a MiDaS relative depth map.

    MiDaS outputs inverse relative depth (larger means closer). The map is
    normalized to [0, 1], the frame median is taken as the table plane, and
    the relief above it inside the box is scaled to centimeters with
    ``depth_scale_cm``.

    The model is loaded on first use, once per instance, even under
    concurrent calls. If loading fails every estimate reports no depth data
    until :meth:`reset` is called.
    """

    def __init__(
        self,
        model_type: str = "MiDaS_small",
        device: str | None = None,
        depth_scale_cm: float = 10.0,
        min_depth_cm: float = 0.5,
        loader: Callable[[], ModelBundle] | None = None,
    ) -> None:
        self.model_type = model_type
        self.device = device or ("cuda" if torch.cuda.is_available() else "cpu")
        self.depth_scale_cm = depth_scale_cm
        self.min_depth_cm = min_depth_cm
        self._bundle = LazyLoader(loader or self._load_midas, name=f"Depth model {model_type}")

    @property
    def available(self) -> bool:
        return self._bundle.get() is not None

    def _load_midas(self) -> ModelBundle:
        # Suppress the misleading "Loading weights: None" message from MiDaS
        with redirect_stdout(io.StringIO()):
            model = torch.hub.load("intel-isl/MiDaS", self.model_type, trust_repo=True)
            model.to(self.device).eval()
            transforms = torch.hub.load("intel-isl/MiDaS", "transforms", trust_repo=True)
        if self.model_type in ("DPT_Large", "DPT_Hybrid"):
            return model, transforms.dpt_transform
        return model, transforms.small_transform

    def depth_map(self, image: Image.Image) -> torch.Tensor | None:
        """Normalized inverse-depth map (H x W), or ``None`` without a model."""
        bundle = self._bundle.get()
        if bundle is None:
            return None
        model, transform = bundle

        image = image.convert("RGB")
        width, height = image.size
        array = np.asarray(image)
        input_batch = transform(array).to(self.device)
        with torch.inference_mode():
            prediction = model(input_batch)
            if prediction.ndim == 2:
                prediction = prediction.unsqueeze(0)
            if prediction.ndim == 3:
                prediction = prediction.unsqueeze(0)
            if tuple(prediction.shape[-2:]) != (height, width):
                prediction = F.interpolate(
                    prediction,
                    size=(height, width),
                    mode="bicubic",
                    align_corners=False,
                )
        depth = prediction.squeeze().float().cpu()

        low, high = float(depth.min()), float(depth.max())
        if high - low > 1e-8:
            depth = (depth - low) / (high - low)
        return depth

    def region_estimate(self, depth: torch.Tensor, bounding_box: BoundingBox) -> DepthEstimate:
        """Height statistics (cm) of ``bounding_box`` over a normalized depth map."""
        h, w = depth.shape[-2:]
        left, top, right, bottom = bounding_box.to_box()
        left_i = max(int(left), 0)
        top_i = max(int(top), 0)
        right_i = min(int(round(right)), w)
        bottom_i = min(int(round(bottom)), h)
        region = depth[top_i:bottom_i, left_i:right_i]
        if region.numel() == 0:
            return DepthEstimate.unavailable()

        table_plane = float(depth.median())
        relief = (region - table_plane).clamp(min=0.0) * self.depth_scale_cm
        average = float(relief.mean())
        variance = float(relief.var(unbiased=False))
        if not np.isfinite(average) or average < self.min_depth_cm:
            return DepthEstimate.unavailable()
        return DepthEstimate(has_depth_data=True, average_depth=average, depth_variance=variance)

    def estimate(self, image: Image.Image, bounding_box: BoundingBox) -> DepthEstimate:
        depth = self.depth_map(image)
        if depth is None or depth.numel() == 0:
            return DepthEstimate.unavailable()
        return self.region_estimate(depth, bounding_box)

    def reset(self) -> None:
        """Drop the loaded model, or a remembered load failure."""
        self._bundle.reset()

    dispose = reset


__all__ = ["DepthEstimator"]
