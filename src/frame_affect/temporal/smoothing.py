"""Recency-weighted temporal smoothing of class scores."""

from __future__ import annotations

from collections import deque

from frame_affect.models import ClassScores, Label

WINDOW_SIZE = 5


class TemporalSmoother:
    """Damp frame-to-frame jitter with a bounded, linearly weighted window.

    For a window of ``N`` entries indexed 0 (oldest) to ``N-1`` (newest),
    entry ``i`` has weight ``(i + 1) / N``.  The output is the weighted mean
    of the window, so recent frames dominate without discarding older
    context.
    """

    def __init__(self, window_size: int = WINDOW_SIZE) -> None:
        self._window: deque[ClassScores] = deque(maxlen=window_size)

    def __len__(self) -> int:
        return len(self._window)

    @property
    def window(self) -> list[ClassScores]:
        """Copy of the buffered score vectors, oldest first."""
        return [dict(scores) for scores in self._window]

    def reset(self) -> None:
        self._window.clear()

    def smooth(self, scores: ClassScores) -> ClassScores:
        """Push ``scores`` into the window and return the smoothed vector."""
        self._window.append(dict(scores))

        n = len(self._window)
        if n <= 1:
            return dict(scores)

        weights = [(i + 1) / n for i in range(n)]
        total_weight = sum(weights)
        return {
            label: sum(w * entry.get(label, 0.0) for w, entry in zip(weights, self._window)) / total_weight
            for label in Label
        }
