"""Tests for the estimation pipeline's evidence priority and result contract."""

import math

import pytest

from portion_estimator.core import pipeline as pipeline_module
from portion_estimator.core.pipeline import (
    HEURISTIC_MULTIPLIERS,
    VolumeEstimationPipeline,
    estimate_volume,
    round_half_up,
)
from portion_estimator.core.types import (
    BoundingBox,
    DepthAnalysisEstimate,
    DepthEstimate,
    EstimationMethod,
    FoodClassification,
    HeuristicEstimate,
    InvalidBoundingBoxError,
    InvalidInputError,
    PixelSize,
    RealWorldSize,
    ReferenceObject,
    ReferenceObjectEstimate,
    Shape,
)
from portion_estimator.detection.backends.faster_rcnn import FasterRCNNBackend
from portion_estimator.detection.depth import DepthEstimator
from portion_estimator.density.table import InMemoryDensityRepository
from portion_estimator.nutrition.portion import NutritionInfo

from .conftest import FakeDepthEstimator, FakeReferenceDetector

DEPTH = DepthEstimate(has_depth_data=True, average_depth=6.0, depth_variance=0.8)


class TestEndToEndScenarios:
    def test_apple_without_evidence_uses_heuristic(self, make_pipeline, image, apple_box):
        result = make_pipeline().estimate(image, "Apple", "Fruits", apple_box)

        raw_volume = math.sqrt(200 * 180) * 0.5 * 10
        assert isinstance(result, HeuristicEstimate)
        assert result.method is EstimationMethod.HEURISTIC
        assert result.method.value == "ml_estimation"
        assert result.shape_analysis.shape is Shape.SPHERICAL
        assert result.confidence == 0.6
        assert result.estimated_volume == round_half_up(raw_volume) == 949
        assert result.estimated_weight == round_half_up(raw_volume * 0.85) == 806
        assert result.density == 0.85
        assert result.category == "Fruits"

    def test_apple_with_credit_card_uses_reference(self, make_pipeline, image, apple_box, credit_card):
        result = make_pipeline(references=[credit_card]).estimate(image, "Apple", "Fruits", apple_box)

        scale = (8.56 / 80 + 5.398 / 50) / 2
        radius = min(200 * scale, 180 * scale) / 2
        raw_volume = (4 / 3) * math.pi * radius**3
        assert isinstance(result, ReferenceObjectEstimate)
        assert result.method.value == "reference_object"
        assert result.confidence == pytest.approx(0.72)
        assert result.reference_object == credit_card
        assert result.estimated_volume == round_half_up(raw_volume)
        assert result.estimated_weight == round_half_up(raw_volume * 0.85)
        assert result.estimated_volume != 949
        assert result.shape_analysis.dimensions.length == pytest.approx(200 * scale)
        assert result.shape_analysis.dimensions.width == pytest.approx(180 * scale)


class TestEvidencePriority:
    def test_reference_beats_depth(self, make_pipeline, image, apple_box, credit_card):
        result = make_pipeline(references=[credit_card], depth=DEPTH).estimate(
            image, "Apple", None, apple_box
        )
        assert result.method is EstimationMethod.REFERENCE_OBJECT
        assert not hasattr(result, "depth_estimation")

    def test_any_positive_confidence_reference_is_used(self, make_pipeline, image, apple_box, credit_card):
        weak = ReferenceObject(
            name=credit_card.name,
            real_world_size=credit_card.real_world_size,
            pixel_size=credit_card.pixel_size,
            confidence=0.01,
        )
        result = make_pipeline(references=[weak]).estimate(image, "Apple", None, apple_box)
        assert result.method is not EstimationMethod.HEURISTIC
        assert result.method is EstimationMethod.REFERENCE_OBJECT

    def test_empty_detector_never_reports_reference(self, make_pipeline, image, apple_box):
        for depth in (None, DEPTH):
            result = make_pipeline(references=[], depth=depth).estimate(image, "Apple", None, apple_box)
            assert result.method is not EstimationMethod.REFERENCE_OBJECT

    def test_depth_used_without_reference(self, make_pipeline, image, apple_box):
        result = make_pipeline(depth=DEPTH).estimate(image, "Apple", None, apple_box)
        assert isinstance(result, DepthAnalysisEstimate)
        assert result.method.value == "3d_analysis"
        assert result.confidence == 0.85
        assert result.depth_estimation == DEPTH
        assert not hasattr(result, "reference_object")

    def test_depth_without_data_falls_back(self, make_pipeline, image, apple_box):
        result = make_pipeline(depth=DepthEstimate.unavailable()).estimate(image, "Apple", None, apple_box)
        assert result.method is EstimationMethod.HEURISTIC

    def test_highest_confidence_reference_wins(self, make_pipeline, image, apple_box, credit_card):
        coin = ReferenceObject(
            name="Coin",
            real_world_size=RealWorldSize(2.4, 2.4),
            pixel_size=PixelSize(24, 24),
            confidence=0.95,
        )
        result = make_pipeline(references=[credit_card, coin]).estimate(image, "Apple", None, apple_box)
        assert result.reference_object.name == "Coin"
        assert result.confidence == pytest.approx(0.95 * 0.9)

    def test_reference_below_threshold_is_ignored(self, make_pipeline, image, apple_box, credit_card):
        pipeline = make_pipeline(references=[credit_card], min_reference_confidence=0.9)
        assert pipeline.estimate(image, "Apple", None, apple_box).method is EstimationMethod.HEURISTIC

    def test_confidence_ordering(self, make_pipeline, image, apple_box):
        strong = ReferenceObject(
            name="Credit Card",
            real_world_size=RealWorldSize(8.56, 5.398),
            pixel_size=PixelSize(80, 50),
            confidence=0.95,
        )
        by_ref = make_pipeline(references=[strong]).estimate(image, "Apple", None, apple_box)
        by_depth = make_pipeline(depth=DEPTH).estimate(image, "Apple", None, apple_box)
        by_heuristic = make_pipeline().estimate(image, "Apple", None, apple_box)
        assert by_ref.confidence >= by_depth.confidence >= by_heuristic.confidence

    def test_disabled_sources_are_not_consulted(self, repository, image, apple_box, credit_card):
        pipeline = VolumeEstimationPipeline(
            density_repository=repository,
            use_reference_objects=False,
            use_depth=False,
        )
        assert pipeline.reference_detector is None
        assert pipeline.depth_estimator is None
        assert pipeline.estimate(image, "Apple", None, apple_box).method is EstimationMethod.HEURISTIC


class TestDepthPath:
    def test_spherical_diameter_is_smallest_axis(self, make_pipeline, image, apple_box):
        result = make_pipeline(depth=DEPTH).estimate(image, "Apple", None, apple_box)
        # footprint 20 x 18 cm, depth 6 cm -> diameter 6
        assert result.estimated_volume == round_half_up((4 / 3) * math.pi * 3.0**3)

    def test_cylinder_height_is_depth(self, make_pipeline, image):
        box = BoundingBox(0, 0, 300, 60)
        result = make_pipeline(depth=DEPTH).estimate(image, "Banana", None, box)
        assert result.shape_analysis.shape is Shape.CYLINDRICAL
        raw = math.pi * 3.0**2 * 6.0
        assert result.estimated_volume == round_half_up(raw)
        assert result.estimated_weight == round_half_up(raw * 0.9)

    def test_rectangular_height_is_depth(self, make_pipeline, image):
        box = BoundingBox(0, 0, 150, 100)
        result = make_pipeline(depth=DEPTH).estimate(image, "Bread", None, box)
        assert result.shape_analysis.shape is Shape.RECTANGULAR
        assert result.estimated_volume == round_half_up(15.0 * 10.0 * 6.0)
        assert result.estimated_weight == round_half_up(900.0 * 0.4)


class TestHeuristicPath:
    @pytest.mark.parametrize(
        "food, box, shape",
        [
            ("Apple", BoundingBox(0, 0, 100, 100), Shape.SPHERICAL),
            ("Banana", BoundingBox(0, 0, 300, 60), Shape.CYLINDRICAL),
            ("Cheese", BoundingBox(0, 0, 150, 100), Shape.RECTANGULAR),
            ("Pasta", BoundingBox(0, 0, 150, 100), Shape.IRREGULAR),
        ],
    )
    def test_weight_is_rounded_volume_times_density(self, make_pipeline, repository, image, food, box, shape):
        result = make_pipeline().estimate(image, food, None, box)
        raw = math.sqrt(box.area) * HEURISTIC_MULTIPLIERS[shape] * 10
        density = repository.lookup(food).density
        assert result.shape_analysis.shape is shape
        assert result.estimated_volume == round_half_up(raw)
        assert result.estimated_weight == round_half_up(raw * density)


class TestUnknownFood:
    def test_defaults_without_error(self, make_pipeline, image):
        result = make_pipeline().estimate(image, "Mystery Stew", "Soups", BoundingBox(0, 0, 150, 100))
        raw = math.sqrt(150 * 100) * 0.4 * 10
        assert result.density == 1.0
        assert result.shape_analysis.shape is Shape.IRREGULAR
        assert result.estimated_weight == round_half_up(raw)
        assert result.confidence == 0.6

    @pytest.mark.parametrize("name", ["Sourdough Bread", "Cheddar Cheese"])
    def test_bread_and_cheese_are_rectangular(self, make_pipeline, image, name):
        result = make_pipeline().estimate(image, name, "Bakery", BoundingBox(0, 0, 150, 100))
        assert result.shape_analysis.shape is Shape.RECTANGULAR
        # sqrt(150 * 100) * 0.8 * 10
        assert result.estimated_volume == 980
        assert result.estimated_weight == 980

    def test_category_prior(self, make_pipeline, image):
        result = make_pipeline().estimate(image, "Focaccia", "Bakery", BoundingBox(0, 0, 150, 100))
        assert result.shape_analysis.shape is Shape.RECTANGULAR

    def test_known_food_ignores_category(self, make_pipeline, image):
        result = make_pipeline().estimate(image, "Apple", "Bakery", BoundingBox(0, 0, 150, 100))
        assert result.shape_analysis.shape is Shape.SPHERICAL


class TestInvalidInput:
    @pytest.mark.parametrize(
        "box",
        [
            {"x": 0, "y": 0, "width": 0, "height": 10},
            {"x": 0, "y": 0, "width": 10, "height": -3},
            {"x": 0, "y": 0, "width": float("nan"), "height": 10},
            {"x": 0, "y": 0, "width": 10},
        ],
    )
    def test_malformed_box_fails_fast(self, make_pipeline, image, box):
        detector = FakeReferenceDetector()
        pipeline = make_pipeline(reference_detector=detector)
        with pytest.raises(InvalidBoundingBoxError):
            pipeline.estimate(image, "Apple", None, box)
        assert detector.calls == 0

    @pytest.mark.parametrize("name", [None, "", "  "])
    def test_missing_food_name(self, make_pipeline, image, apple_box, name):
        with pytest.raises(InvalidInputError):
            make_pipeline().estimate(image, name, None, apple_box)

    def test_dict_box_accepted(self, make_pipeline, image):
        result = make_pipeline().estimate(
            image, "Apple", "Fruits", {"x": 100, "y": 150, "width": 200, "height": 180}
        )
        assert result.bounding_box == BoundingBox(100, 150, 200, 180)


class TestFailingSources:
    def test_detector_error_is_absorbed(self, make_pipeline, image, apple_box):
        pipeline = make_pipeline(
            reference_detector=FakeReferenceDetector(error=RuntimeError("backend crashed")),
            depth=DEPTH,
        )
        with pytest.warns(UserWarning, match="Reference object detection failed"):
            result = pipeline.estimate(image, "Apple", None, apple_box)
        assert result.method is EstimationMethod.DEPTH_ANALYSIS

    def test_depth_error_is_absorbed(self, make_pipeline, image, apple_box):
        pipeline = make_pipeline(depth_estimator=FakeDepthEstimator(error=RuntimeError("oom")))
        with pytest.warns(UserWarning, match="Depth estimation failed"):
            result = pipeline.estimate(image, "Apple", None, apple_box)
        assert result.method is EstimationMethod.HEURISTIC

    def test_both_sources_consulted_once(self, image, apple_box, repository):
        detector, depth = FakeReferenceDetector(), FakeDepthEstimator(DEPTH)
        pipeline = VolumeEstimationPipeline(
            density_repository=repository, reference_detector=detector, depth_estimator=depth
        )
        pipeline.estimate(image, "Apple", None, apple_box)
        assert (detector.calls, depth.calls) == (1, 1)


class TestResults:
    def test_result_is_immutable(self, make_pipeline, image, apple_box):
        result = make_pipeline().estimate(image, "Apple", None, apple_box)
        with pytest.raises(AttributeError):
            result.estimated_weight = 1

    def test_to_dict_shapes(self, make_pipeline, image, apple_box, credit_card):
        heuristic = make_pipeline().estimate(image, "Apple", None, apple_box).to_dict()
        assert heuristic["method"] == "ml_estimation"
        assert "depthEstimation" not in heuristic and "referenceObject" not in heuristic

        by_depth = make_pipeline(depth=DEPTH).estimate(image, "Apple", None, apple_box).to_dict()
        assert by_depth["depthEstimation"]["averageDepth"] == 6.0

        by_ref = make_pipeline(references=[credit_card]).estimate(image, "Apple", None, apple_box).to_dict()
        assert by_ref["referenceObject"]["name"] == "Credit Card"
        assert by_ref["boundingBox"] == {"x": 100, "y": 150, "width": 200, "height": 180}

    def test_calibration_affects_future_estimates_only(self, make_pipeline, repository, image, apple_box):
        pipeline = make_pipeline()
        first = pipeline.estimate(image, "Apple", None, apple_box)
        pipeline.calibrate("Apple", first, actual_weight=1140.0, actual_volume=1000.0)

        assert first.density == 0.85
        assert repository.lookup("Apple").density == pytest.approx(0.995)
        second = pipeline.estimate(image, "Apple", None, apple_box)
        assert second.estimated_volume == first.estimated_volume
        assert second.estimated_weight > first.estimated_weight

    def test_classification_entry_point(self, make_pipeline, image, apple_box):
        result = make_pipeline().estimate_for_classification(
            image, FoodClassification(name="Apple", category="Fruits", confidence=0.93), apple_box
        )
        assert result.food_name == "Apple"
        assert result.category == "Fruits"

    def test_nutrition_for_portion(self, make_pipeline, image, apple_box):
        result = make_pipeline().estimate(image, "Apple", None, apple_box)
        apple = NutritionInfo(ingredient="apple", calories=52, protein=0.3, carbs=13.8, fat=0.2)
        portion = VolumeEstimationPipeline.nutrition_for_portion(apple, result.estimated_weight)
        assert portion.calories == pytest.approx(52 * 806 / 100)


def test_image_path_is_loaded(tmp_path, make_pipeline, image, apple_box):
    path = tmp_path / "plate.png"
    image.save(path)
    result = make_pipeline().estimate(path, "Apple", None, apple_box)
    assert result.method is EstimationMethod.HEURISTIC


def test_missing_image_path(make_pipeline, apple_box, tmp_path):
    with pytest.raises(FileNotFoundError):
        make_pipeline().estimate(tmp_path / "nope.jpg", "Apple", None, apple_box)


def test_separate_repository_instances(image, apple_box):
    repo = InMemoryDensityRepository()
    pipeline = VolumeEstimationPipeline(
        density_repository=repo,
        reference_detector=FakeReferenceDetector(),
        depth_estimator=FakeDepthEstimator(),
    )
    assert pipeline.density_repository is repo
    assert pipeline.calibration.repository is repo


class TestEstimateVolume:
    @pytest.fixture
    def load_calls(self, monkeypatch):
        calls = {"depth": 0, "detector": 0}

        def failing_depth(self):
            calls["depth"] += 1
            raise RuntimeError("offline")

        def failing_detector(self):
            calls["detector"] += 1
            raise RuntimeError("offline")

        monkeypatch.setattr(DepthEstimator, "_load_midas", failing_depth)
        monkeypatch.setattr(FasterRCNNBackend, "_load_model", failing_detector)
        pipeline_module._default_pipeline.cache_clear()
        yield calls
        pipeline_module._default_pipeline.cache_clear()

    @pytest.mark.filterwarnings("ignore::UserWarning")
    def test_models_load_once_across_calls(self, load_calls, image, apple_box):
        results = [estimate_volume(image, "Apple", "Fruits", apple_box) for _ in range(3)]

        assert load_calls == {"depth": 1, "detector": 1}
        assert all(r.method is EstimationMethod.HEURISTIC for r in results)
        assert results[-1].estimated_volume == 949

    @pytest.mark.filterwarnings("ignore::UserWarning")
    def test_shared_default_pipeline(self, load_calls, image, apple_box):
        estimate_volume(image, "Apple", None, apple_box)
        assert pipeline_module._default_pipeline() is pipeline_module._default_pipeline()
