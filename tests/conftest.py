"""Shared pytest fixtures."""

from __future__ import annotations

from typing import Callable, Iterator

import numpy as np
import pytest

from frame_affect.detector import EmotionDetector
from frame_affect.models import FeatureVector, Frame, Label, Prediction


def make_solid_frame(
    width: int = 16,
    height: int = 16,
    rgb: tuple[int, int, int] = (128, 128, 128),
) -> Frame:
    pixels = np.empty((height, width, 4), dtype=np.uint8)
    pixels[..., 0] = rgb[0]
    pixels[..., 1] = rgb[1]
    pixels[..., 2] = rgb[2]
    pixels[..., 3] = 255
    return Frame(width=width, height=height, data=pixels)


@pytest.fixture
def solid_frame() -> Callable[..., Frame]:
    return make_solid_frame


@pytest.fixture
def bright_frame() -> Frame:
    return make_solid_frame(rgb=(200, 200, 200))


@pytest.fixture
def black_frame() -> Frame:
    return make_solid_frame(rgb=(0, 0, 0))


@pytest.fixture
def noisy_frame() -> Frame:
    rng = np.random.default_rng(7)
    pixels = rng.integers(0, 256, size=(12, 9, 4), dtype=np.uint8)
    return Frame(width=9, height=12, data=pixels)


@pytest.fixture
def split_frame() -> Frame:
    """Left half black, right half white."""
    pixels = np.zeros((10, 10, 4), dtype=np.uint8)
    pixels[:, 5:, :3] = 255
    pixels[..., 3] = 255
    return Frame(width=10, height=10, data=pixels)


@pytest.fixture
def neutral_features() -> FeatureVector:
    return FeatureVector(brightness=0.5, face_brightness=0.5)


@pytest.fixture
def happy_prediction() -> Prediction:
    return Prediction(label=Label.HAPPY, confidence=0.7)


@pytest.fixture
def detector() -> Iterator[EmotionDetector]:
    d = EmotionDetector()
    d.initialize()
    yield d
    d.dispose()
