"""Bounded prediction history and the analytics derived from it."""

from __future__ import annotations

import math
from collections import deque

from frame_affect.models import (
    EmotionAnalytics,
    FacialProxies,
    FeatureVector,
    HistoryEntry,
    Label,
    Prediction,
)

HISTORY_SIZE = 100


class HistoryTracker:
    """FIFO of past predictions with their feature snapshots.

    Holds at most ``max_size`` entries; appending beyond capacity evicts the
    oldest entry.  Insertion order is preserved.
    """

    def __init__(self, max_size: int = HISTORY_SIZE) -> None:
        self._entries: deque[HistoryEntry] = deque(maxlen=max_size)

    def __len__(self) -> int:
        return len(self._entries)

    def append(self, prediction: Prediction, features: FeatureVector) -> HistoryEntry:
        entry = HistoryEntry(
            prediction=prediction,
            features=features,
            proxies=FacialProxies.from_features(features),
        )
        self._entries.append(entry)
        return entry

    def snapshot(self) -> list[HistoryEntry]:
        """Entries oldest first.  The list is a copy; entries are shared."""
        return list(self._entries)

    def labels(self) -> list[Label]:
        return [e.prediction.label for e in self._entries]

    def recent_labels(self, n: int) -> list[Label]:
        """The last ``n`` labels, oldest first."""
        if n <= 0:
            return []
        return self.labels()[-n:]

    def clear(self) -> None:
        self._entries.clear()

    def analytics(self) -> EmotionAnalytics:
        """Summarise the buffer.

        An empty buffer yields ``neutral`` and zeros.  The dominant label is
        the most frequent one; counts are folded in order of first
        occurrence and only a strictly larger count takes over, so ties go
        to the label seen earliest.
        """
        if not self._entries:
            return EmotionAnalytics()

        labels = self.labels()
        confidences = [e.prediction.confidence for e in self._entries]

        counts: dict[Label, int] = {}
        for label in labels:
            counts[label] = counts.get(label, 0) + 1

        dominant, best = Label.NEUTRAL, 0
        for label, count in counts.items():
            if count > best:
                dominant, best = label, count

        duration = 0
        for label in reversed(labels):
            if label != dominant:
                break
            duration += 1

        transitions = sum(1 for prev, cur in zip(labels, labels[1:]) if prev != cur)
        transition_frequency = transitions / max(1, len(labels) - 1)

        mean = sum(confidences) / len(confidences)
        variance = sum((c - mean) ** 2 for c in confidences) / len(confidences)
        stability = max(0.0, 1.0 - math.sqrt(variance))

        return EmotionAnalytics(
            dominant_label=dominant,
            emotion_duration=duration,
            transition_frequency=transition_frequency,
            average_confidence=mean,
            confidence_stability=stability,
        )
