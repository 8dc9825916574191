"""Confidence calibration from score separation and recent stability."""

from __future__ import annotations

import math
from typing import Sequence

from frame_affect.models import ClassScores, Label


class ConfidenceCalibrator:
    """Turn the top smoothed score into a bounded confidence.

    ``adjusted = top + gap_weight * (top - runner_up) + stability_bonus``

    The stability bonus rewards a run of identical recent labels: with at
    least ``stability_window`` labels of history, it is the share of the
    last ``stability_window`` labels equal to the most recent one, times
    ``stability_weight``.  Values below ``threshold`` are shrunk by
    ``low_scale`` (but not below ``low_minimum``) and the result is clamped
    to ``[floor, ceiling]``.
    """

    def __init__(
        self,
        threshold: float = 0.6,
        floor: float = 0.1,
        ceiling: float = 0.95,
        gap_weight: float = 0.3,
        stability_window: int = 5,
        stability_weight: float = 0.1,
        low_scale: float = 0.8,
        low_minimum: float = 0.3,
    ) -> None:
        self._threshold = threshold
        self._floor = floor
        self._ceiling = ceiling
        self._gap_weight = gap_weight
        self._stability_window = stability_window
        self._stability_weight = stability_weight
        self._low_scale = low_scale
        self._low_minimum = low_minimum

    def gap_bonus(self, scores: ClassScores) -> float:
        ordered = sorted(scores.values(), reverse=True)
        if len(ordered) < 2:
            return 0.0
        return (ordered[0] - ordered[1]) * self._gap_weight

    def stability_bonus(self, recent_labels: Sequence[Label]) -> float:
        if len(recent_labels) < self._stability_window:
            return 0.0
        window = list(recent_labels)[-self._stability_window:]
        latest = window[-1]
        same = sum(1 for label in window if label == latest)
        return same / self._stability_window * self._stability_weight

    def calibrate(self, scores: ClassScores, recent_labels: Sequence[Label] = ()) -> float:
        """Return a confidence in ``[floor, ceiling]``.

        ``recent_labels`` is the label history *before* the current frame,
        oldest first.
        """
        raw = max(scores.values()) if scores else 0.0
        adjusted = raw + self.gap_bonus(scores) + self.stability_bonus(recent_labels)

        if not math.isfinite(adjusted):
            return self._floor

        if adjusted < self._threshold:
            adjusted = max(self._low_minimum, adjusted * self._low_scale)

        return max(self._floor, min(self._ceiling, adjusted))
