"""Tests for the estimator registry and the luminance stand-in."""

from __future__ import annotations

import pytest

from frame_affect.estimators import (
    BaseEstimator,
    BlendshapeEstimator,
    LuminanceEstimator,
    analyze_blendshapes,
    available_estimators,
    get_estimator,
    register_estimator,
    score_blendshapes,
)
from frame_affect.estimators import registry
from frame_affect.fusion import EstimatorOutput, FusionEngine
from frame_affect.models import FusionStrategy, Label


class FixedEstimator(BaseEstimator):
    name = "fixed"

    def predict(self, frame):
        return [1.0, 0, 0, 0, 0, 0, 0]


# ── Registry ──────────────────────────────────────────────────


class TestRegistry:
    """Tests for the estimator registry."""

    def test_luminance_available(self):
        assert "luminance" in available_estimators()

    def test_get_instantiates(self):
        assert isinstance(get_estimator("luminance"), LuminanceEstimator)

    def test_unknown_raises(self):
        with pytest.raises(ValueError, match="Available"):
            get_estimator("does-not-exist")

    def test_register(self, monkeypatch):
        monkeypatch.setattr(registry, "_REGISTRY", dict(registry._REGISTRY))
        register_estimator("fixed", FixedEstimator)
        assert "fixed" in available_estimators()
        assert isinstance(get_estimator("fixed"), FixedEstimator)


# ── Luminance estimator ──────────────────────────────────────


class TestLuminanceEstimator:
    """Unit tests for :class:`LuminanceEstimator`."""

    def test_load_and_close(self):
        estimator = LuminanceEstimator()
        estimator.load()
        assert estimator.loaded
        estimator.close()
        assert not estimator.loaded

    def test_bright_frame(self, bright_frame):
        probs = LuminanceEstimator().predict(bright_frame)
        assert len(probs) == 7
        assert sum(probs) == pytest.approx(1.0)
        assert probs[1] == pytest.approx(0.3 / 0.95)  # happy
        assert probs[2] == pytest.approx(0.05 / 0.95)  # sad

    def test_dark_frame(self, black_frame):
        probs = LuminanceEstimator().predict(black_frame)
        assert probs[2] == pytest.approx(0.2 / 0.9)
        assert probs[1] == pytest.approx(0.1 / 0.9)

    def test_high_spread_raises_angry(self, split_frame):
        probs = LuminanceEstimator().predict(split_frame)
        assert probs[3] == pytest.approx(0.15 / 1.05)

    def test_deterministic(self, noisy_frame):
        estimator = LuminanceEstimator()
        assert estimator.predict(noisy_frame) == estimator.predict(noisy_frame)

    def test_output_fits_fusion_contract(self, bright_frame):
        output = EstimatorOutput.from_raw(LuminanceEstimator().predict(bright_frame))
        assert output is not None
        assert output.label == Label.NEUTRAL
        assert output.sanitized is False


# ── Blendshape estimator ─────────────────────────────────────

SMILE = {"mouthSmileLeft": 0.5, "mouthSmileRight": 0.5}


class TestBlendshapes:
    """Unit tests for the blendshape mapping and :class:`BlendshapeEstimator`."""

    def test_smile_scores(self):
        scores = score_blendshapes(SMILE)
        assert scores[Label.HAPPY] == pytest.approx(1.0)
        assert scores[Label.NEUTRAL] == pytest.approx(0.5)
        assert scores[Label.SAD] == 0.0

    def test_no_cues_is_neutral(self):
        scores = score_blendshapes({})
        assert scores[Label.NEUTRAL] == pytest.approx(1.0)
        assert all(scores[label] == 0.0 for label in Label if label != Label.NEUTRAL)
        assert analyze_blendshapes({}).label == Label.NEUTRAL

    def test_coefficients_are_clamped(self):
        scores = score_blendshapes({"mouthSmileLeft": 5.0})
        assert scores[Label.HAPPY] == pytest.approx(1.0)
        assert scores[Label.NEUTRAL] == pytest.approx(0.1)

    def test_bad_coefficients_count_as_zero(self):
        scores = score_blendshapes({"mouthSmileLeft": float("nan"), "mouthSmileRight": "x"})
        assert scores[Label.HAPPY] == 0.0
        assert scores[Label.NEUTRAL] == pytest.approx(1.0)

    def test_wide_eyes_read_as_surprise(self):
        prediction = analyze_blendshapes({"eyeWideLeft": 0.4})
        scores = score_blendshapes({"eyeWideLeft": 0.4})
        assert scores[Label.SURPRISED] == pytest.approx(0.8)
        assert scores[Label.FEARFUL] == pytest.approx(0.6)
        assert prediction.label == Label.SURPRISED
        assert prediction.confidence == pytest.approx(1.0)

    def test_tie_prefers_happy(self):
        categories = {**SMILE, "browDownLeft": 0.5, "browDownRight": 0.5}
        scores = score_blendshapes(categories)
        assert scores[Label.HAPPY] == pytest.approx(scores[Label.ANGRY])
        assert analyze_blendshapes(categories).label == Label.HAPPY

    def test_analyze_normalises_scores(self):
        prediction = analyze_blendshapes(SMILE)
        assert prediction.label == Label.HAPPY
        assert prediction.confidence == pytest.approx(1.0)
        assert sum(prediction.scores.values()) == pytest.approx(1.0)
        assert prediction.scores[Label.HAPPY] == pytest.approx(1.0 / 1.5)

    def test_predict_vector(self, bright_frame):
        probs = BlendshapeEstimator(lambda frame: SMILE).predict(bright_frame)
        assert len(probs) == 7
        assert sum(probs) == pytest.approx(1.0)
        output = EstimatorOutput.from_raw(probs)
        assert output.label == Label.HAPPY
        assert output.sanitized is False

    def test_no_face(self, bright_frame):
        estimator = BlendshapeEstimator(lambda frame: None)
        assert estimator.estimate(bright_frame) is None
        assert estimator.predict(bright_frame) == [0.0] * 7
        assert EstimatorOutput.from_raw(estimator.predict(bright_frame)) is None

    def test_estimate_reconciles_with_primary(self, bright_frame, happy_prediction):
        estimate = BlendshapeEstimator(lambda frame: SMILE).estimate(bright_frame)
        result = FusionEngine().reconcile(happy_prediction, estimate)
        assert result.strategy == FusionStrategy.AGREEMENT
        assert result.confidence == pytest.approx(1.0)
