"""Deterministic stand-in estimator driven by global luminance."""

from __future__ import annotations

import numpy as np
import structlog

from frame_affect.estimators.base import BaseEstimator
from frame_affect.models import Frame

logger = structlog.get_logger(__name__)

BRIGHT_MEAN = 120.0
DARK_MEAN = 80.0
HIGH_SPREAD = 50.0


class LuminanceEstimator(BaseEstimator):
    """Map mean brightness and brightness spread to a label distribution.

    Intended for wiring and integration tests where no real model is
    available.  Output is a pure function of the frame.
    """

    name = "luminance"

    def __init__(self) -> None:
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    def load(self) -> None:
        self._loaded = True
        logger.info("estimator.loaded", estimator=self.name)

    def predict(self, frame: Frame) -> list[float]:
        brightness = frame.data[..., :3].astype(np.float64).mean(axis=2)
        mean = float(brightness.mean())
        spread = float(brightness.std())

        raw = [
            0.4,  # neutral
            0.3 if mean > BRIGHT_MEAN else 0.1,  # happy
            0.2 if mean < DARK_MEAN else 0.05,  # sad
            0.15 if spread > HIGH_SPREAD else 0.05,  # angry
            0.05,  # fearful
            0.05,  # disgust
            0.05,  # surprised
        ]
        total = sum(raw)
        return [value / total for value in raw]

    def close(self) -> None:
        self._loaded = False
