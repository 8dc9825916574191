"""Blendshape estimator — map face-tracker expression coefficients to labels.

A face tracker reports named expression coefficients ("blendshapes"), each
in [0, 1].  This module turns such a ``{category: score}`` mapping into a
label distribution.  Tracking itself is out of scope: the coefficients are
supplied by a caller-provided source.

Mapping
-------
Each label is the maximum over a few weighted terms; a term is the sum of
one or more categories times a weight.  Neutral is the inverse of the
strongest expression cue, floored at 0.1.  Every label score is clamped to
[0, 1]; the confidence of the top label is ``min(1, top x 2)``.
"""

from __future__ import annotations

import math
from typing import Callable, Mapping, Optional

from frame_affect.estimators.base import BaseEstimator
from frame_affect.fusion.engine import ESTIMATOR_LABEL_MAP, ESTIMATOR_LABELS
from frame_affect.models import ClassScores, Frame, Label, Prediction, normalize_scores

# ── Mapping tables ────────────────────────────────────────────

# label -> ((categories summed, weight), ...)
BLENDSHAPE_TERMS: dict[Label, tuple[tuple[tuple[str, ...], float], ...]] = {
    Label.HAPPY: (
        (("mouthSmileLeft",), 2.0),
        (("mouthSmileRight",), 2.0),
        (("mouthSmileLeft", "mouthSmileRight"), 1.5),
        (("cheekSquintLeft",), 1.2),
        (("cheekSquintRight",), 1.2),
    ),
    Label.SAD: (
        (("mouthFrownLeft",), 2.0),
        (("mouthFrownRight",), 2.0),
        (("mouthLowerDownLeft",), 1.5),
        (("mouthLowerDownRight",), 1.5),
        (("browDownLeft",), 1.3),
        (("browDownRight",), 1.3),
    ),
    Label.SURPRISED: (
        (("eyeWideLeft",), 2.0),
        (("eyeWideRight",), 2.0),
        (("jawOpen",), 1.8),
        (("browOuterUpLeft",), 1.5),
        (("browOuterUpRight",), 1.5),
    ),
    Label.ANGRY: (
        (("browDownLeft",), 2.0),
        (("browDownRight",), 2.0),
        (("eyeSquintLeft",), 1.5),
        (("eyeSquintRight",), 1.5),
        (("mouthPressLeft",), 1.3),
        (("mouthPressRight",), 1.3),
        (("browInnerUp",), 1.2),
    ),
    Label.DISGUSTED: (
        (("noseSneerLeft",), 2.0),
        (("noseSneerRight",), 2.0),
        (("mouthUpperUpLeft",), 1.5),
        (("mouthUpperUpRight",), 1.5),
    ),
    Label.FEARFUL: (
        (("eyeWideLeft",), 1.5),
        (("eyeWideRight",), 1.5),
        (("browInnerUp",), 1.8),
        (("mouthStretchLeft",), 1.3),
        (("mouthStretchRight",), 1.3),
    ),
}

# Strongest of these suppresses neutral.
NEUTRAL_CUES: tuple[str, ...] = (
    "mouthSmileLeft",
    "mouthSmileRight",
    "mouthFrownLeft",
    "mouthFrownRight",
    "eyeWideLeft",
    "eyeWideRight",
    "browDownLeft",
    "browDownRight",
    "jawOpen",
)
NEUTRAL_FLOOR = 0.1
CONFIDENCE_BOOST = 2.0

BlendshapeSource = Callable[[Frame], Optional[Mapping[str, float]]]


def _coefficient(categories: Mapping[str, float], name: str) -> float:
    """Category score clamped to [0, 1]; missing or non-numeric counts as 0."""
    try:
        value = float(categories.get(name, 0.0))
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return max(0.0, min(1.0, value))


def score_blendshapes(categories: Mapping[str, float]) -> ClassScores:
    """Per-label scores in [0, 1], not normalised.

    Keys are ordered happy, sad, surprised, angry, disgusted, fearful,
    neutral; :func:`analyze_blendshapes` breaks ties in that order.
    """
    scores: ClassScores = {}
    for label, terms in BLENDSHAPE_TERMS.items():
        raw = max(
            sum(_coefficient(categories, name) for name in names) * weight
            for names, weight in terms
        )
        scores[label] = max(0.0, min(1.0, raw))

    strongest_cue = max(_coefficient(categories, name) for name in NEUTRAL_CUES)
    scores[Label.NEUTRAL] = max(NEUTRAL_FLOOR, min(1.0, 1.0 - strongest_cue))
    return scores


def analyze_blendshapes(categories: Mapping[str, float]) -> Prediction:
    """Label a set of blendshape coefficients.

    The returned prediction carries the normalised distribution as its
    scores and the boosted top score as its confidence.
    """
    scores = score_blendshapes(categories)

    label, top = next(iter(scores.items()))
    for candidate, value in scores.items():
        if value > top:
            label, top = candidate, value

    return Prediction(
        label=label,
        confidence=min(1.0, top * CONFIDENCE_BOOST),
        scores=normalize_scores(scores),
    )


class BlendshapeEstimator(BaseEstimator):
    """Estimator fed by a face tracker's blendshape coefficients.

    Parameters
    ----------
    source : Callable[[Frame], Mapping[str, float] | None]
        Returns the tracker's ``{category: score}`` mapping for a frame, or
        ``None`` when no face was found.
    """

    name = "blendshape"

    def __init__(self, source: BlendshapeSource) -> None:
        self._source = source

    def estimate(self, frame: Frame) -> Prediction | None:
        """Blendshape prediction for ``frame``, or ``None`` without a face.

        Suitable for :meth:`FusionEngine.reconcile`, which keeps the boosted
        confidence.
        """
        categories = self._source(frame)
        if not categories:
            return None
        return analyze_blendshapes(categories)

    def predict(self, frame: Frame) -> list[float]:
        """Distribution in estimator label order; all zeros without a face."""
        prediction = self.estimate(frame)
        if prediction is None or prediction.scores is None:
            return [0.0] * len(ESTIMATOR_LABELS)
        return [prediction.scores[ESTIMATOR_LABEL_MAP[name]] for name in ESTIMATOR_LABELS]
