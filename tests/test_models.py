"""Tests for frames, score helpers and value objects."""

from __future__ import annotations

import math

import numpy as np
import pytest

from frame_affect.errors import InvalidFrameError
from frame_affect.models import (
    FacialProxies,
    FeatureVector,
    Frame,
    Label,
    RegionOfInterest,
    default_scores,
    dominant_label,
    normalize_scores,
    ranked_scores,
    uniform_scores,
)


# ── Frames ────────────────────────────────────────────────────


class TestFrame:
    """Unit tests for :class:`Frame`."""

    def test_from_bytes(self):
        frame = Frame.from_buffer(2, 2, bytes(range(16)))
        assert frame.data.shape == (2, 2, 4)
        assert frame.data.dtype == np.uint8
        assert frame.data[1, 1, 3] == 15
        assert frame.pixel_count == 4

    def test_from_flat_sequence(self):
        frame = Frame.from_buffer(1, 2, [10, 20, 30, 255, 40, 50, 60, 255])
        assert frame.data[1, 0, 2] == 60

    def test_wrong_length_rejected(self):
        with pytest.raises(InvalidFrameError):
            Frame.from_buffer(2, 2, bytes(15))

    def test_invalid_frame_error_is_value_error(self):
        with pytest.raises(ValueError):
            Frame.from_buffer(2, 2, bytes(12))

    @pytest.mark.parametrize("width,height", [(0, 2), (2, 0), (-1, 3)])
    def test_non_positive_dimensions_rejected(self, width, height):
        with pytest.raises(InvalidFrameError):
            Frame.from_buffer(width, height, b"")

    def test_three_channel_array_rejected(self):
        with pytest.raises(InvalidFrameError):
            Frame.from_buffer(2, 2, np.zeros((2, 2, 3), dtype=np.uint8))

    def test_constructor_checks_shape(self):
        with pytest.raises(InvalidFrameError):
            Frame(width=3, height=2, data=np.zeros((2, 2, 4), dtype=np.uint8))

    def test_out_of_range_values_rejected(self):
        with pytest.raises(InvalidFrameError):
            Frame(width=1, height=1, data=np.array([[[0, 0, 300, 0]]]))

    def test_data_is_read_only(self, bright_frame):
        with pytest.raises(ValueError):
            bright_frame.data[0, 0, 0] = 1

    def test_source_buffer_is_copied(self):
        source = np.zeros((1, 1, 4), dtype=np.uint8)
        frame = Frame(width=1, height=1, data=source)
        source[0, 0, 0] = 99
        assert frame.data[0, 0, 0] == 0

    def test_from_rgb_array_adds_opaque_alpha(self):
        frame = Frame.from_array(np.full((3, 4, 3), 10, dtype=np.uint8))
        assert (frame.width, frame.height) == (4, 3)
        assert np.all(frame.data[..., 3] == 255)

    def test_copy_pixels_is_writable(self, bright_frame):
        pixels = bright_frame.copy_pixels()
        pixels[0, 0, 0] = 1
        assert bright_frame.data[0, 0, 0] == 200


# ── Class scores ──────────────────────────────────────────────


class TestScoreHelpers:
    """Tests for the class-score helper functions."""

    def test_uniform(self):
        scores = uniform_scores()
        assert set(scores) == set(Label)
        assert sum(scores.values()) == pytest.approx(1.0)

    def test_default_leans_neutral(self):
        scores = default_scores()
        assert dominant_label(scores) == Label.NEUTRAL
        assert sum(scores.values()) == pytest.approx(1.0)

    def test_normalize_fills_missing_labels(self):
        scores = normalize_scores({Label.HAPPY: 3.0, Label.SAD: 1.0})
        assert scores[Label.HAPPY] == pytest.approx(0.75)
        assert scores[Label.ANGRY] == 0.0
        assert len(scores) == len(Label)

    def test_normalize_zeroes_bad_entries(self):
        scores = normalize_scores({Label.HAPPY: math.nan, Label.SAD: -2.0, Label.ANGRY: 1.0})
        assert scores[Label.ANGRY] == pytest.approx(1.0)
        assert scores[Label.HAPPY] == 0.0
        assert scores[Label.SAD] == 0.0

    def test_normalize_all_zero_is_uniform(self):
        scores = normalize_scores({})
        assert all(v == pytest.approx(1 / 7) for v in scores.values())

    def test_dominant_tie_goes_to_earlier_label(self):
        assert dominant_label({Label.SAD: 0.5, Label.HAPPY: 0.5}) == Label.HAPPY

    def test_dominant_of_zeros_is_neutral(self):
        assert dominant_label({}) == Label.NEUTRAL

    def test_dominant_of_uniform_is_neutral(self):
        assert dominant_label(uniform_scores()) == Label.NEUTRAL
        assert dominant_label(normalize_scores({})) == Label.NEUTRAL

    def test_dominant_scan_order(self):
        assert dominant_label({Label.FEARFUL: 0.4, Label.SURPRISED: 0.4}) == Label.SURPRISED
        assert dominant_label({Label.DISGUSTED: 0.5, Label.ANGRY: 0.5}) == Label.ANGRY

    def test_ranked(self):
        ranked = ranked_scores({Label.SAD: 0.6, Label.HAPPY: 0.4})
        assert [label for label, _ in ranked[:2]] == [Label.SAD, Label.HAPPY]


# ── Value objects ─────────────────────────────────────────────


class TestRegionOfInterest:
    """Unit tests for :class:`RegionOfInterest`."""

    def test_centered_default_fraction(self):
        roi = RegionOfInterest.centered(100, 50)
        assert roi.x == pytest.approx(20.0)
        assert roi.y == pytest.approx(10.0)
        assert roi.width == pytest.approx(60.0)
        assert roi.height == pytest.approx(30.0)

    def test_negative_size_rejected(self):
        with pytest.raises(ValueError):
            RegionOfInterest(width=-1, height=5)


class TestFeatureVector:
    """Unit tests for :class:`FeatureVector`."""

    def test_bounds_enforced(self):
        with pytest.raises(ValueError):
            FeatureVector(brightness=1.5)

    def test_namespace_keys(self):
        ns = FeatureVector().as_namespace()
        assert set(ns) == {
            "brightness",
            "contrast",
            "edge_density",
            "gradient_magnitude",
            "face_brightness",
            "face_contrast",
            "dominant_r",
            "dominant_g",
            "dominant_b",
        }


class TestFacialProxies:
    """Unit tests for :class:`FacialProxies`."""

    def test_scaled_and_capped(self):
        features = FeatureVector(brightness=0.4, edge_density=0.5, face_brightness=0.5)
        proxies = FacialProxies.from_features(features)
        assert proxies.eye_openness == pytest.approx(0.6)
        assert proxies.jaw_tension == pytest.approx(1.0)
        assert proxies.cheek_raise == pytest.approx(0.6)
        assert proxies.mouth_curvature == 0.0
