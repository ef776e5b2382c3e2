"""Shared fixtures: fake evidence sources so no model is ever downloaded."""

from __future__ import annotations

from typing import Callable, List

import pytest
from PIL import Image

from portion_estimator.core.pipeline import VolumeEstimationPipeline
from portion_estimator.core.types import (
    BoundingBox,
    DepthEstimate,
    PixelSize,
    RealWorldSize,
    ReferenceObject,
)
from portion_estimator.density.table import InMemoryDensityRepository


class FakeReferenceDetector:
    """Returns a fixed list of reference objects."""

    def __init__(self, references: List[ReferenceObject] | None = None, error: Exception | None = None):
        self.references = list(references or [])
        self.error = error
        self.calls = 0

    def detect(self, image: Image.Image) -> List[ReferenceObject]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.references)

    def reset(self) -> None:
        pass


class FakeDepthEstimator:
    """Returns a fixed depth estimate."""

    def __init__(self, estimate: DepthEstimate | None = None, error: Exception | None = None):
        self.result = estimate or DepthEstimate.unavailable()
        self.error = error
        self.calls = 0

    def estimate(self, image: Image.Image, bounding_box: BoundingBox) -> DepthEstimate:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result

    def reset(self) -> None:
        pass


@pytest.fixture
def image() -> Image.Image:
    return Image.new("RGB", (640, 480), color=(200, 200, 200))


@pytest.fixture
def apple_box() -> BoundingBox:
    return BoundingBox(x=100, y=150, width=200, height=180)


@pytest.fixture
def credit_card() -> ReferenceObject:
    return ReferenceObject(
        name="Credit Card",
        real_world_size=RealWorldSize(width=8.56, height=5.398),
        pixel_size=PixelSize(width=80, height=50),
        confidence=0.8,
    )


@pytest.fixture
def repository() -> InMemoryDensityRepository:
    return InMemoryDensityRepository()


@pytest.fixture
def make_pipeline(repository) -> Callable[..., VolumeEstimationPipeline]:
    def _make(
        references: List[ReferenceObject] | None = None,
        depth: DepthEstimate | None = None,
        **kwargs,
    ) -> VolumeEstimationPipeline:
        return VolumeEstimationPipeline(
            density_repository=kwargs.pop("density_repository", repository),
            reference_detector=kwargs.pop("reference_detector", FakeReferenceDetector(references)),
            depth_estimator=kwargs.pop("depth_estimator", FakeDepthEstimator(depth)),
            **kwargs,
        )

    return _make
