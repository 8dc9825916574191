"""Fusion engine — reconcile the heuristic prediction with an external estimate.

Two independently produced estimates of the same signal are reconciled into
a single :class:`FusionResult` with a reliability tier.

Policy
------
=====================  ==============================================  ==========================
Case                   Fused confidence                                Reliability
=====================  ==============================================  ==========================
No estimate            primary confidence                              tier(confidence)
Labels agree           min(mean + agreement_bonus, 1)                  tier(confidence)
Disagree, large gap    max of the two; stronger side becomes primary   tier(confidence x penalty)
Disagree, small gap    weighted mean; distributions blended            tier(confidence x penalty)
=====================  ==============================================  ==========================

Tiers: high >= 0.8, medium >= 0.6, otherwise low.
"""

from __future__ import annotations

import math
from typing import Protocol, Sequence

import structlog
from pydantic import BaseModel, Field

from frame_affect.errors import EstimatorContractError
from frame_affect.models import (
    ClassScores,
    FusionResult,
    FusionStrategy,
    Label,
    Prediction,
    Reliability,
    SourceFlags,
    dominant_label,
    normalize_scores,
)

logger = structlog.get_logger(__name__)

# ── Estimator label space ────────────────────────────────────

# Order of the raw probability vector produced by external estimators.
ESTIMATOR_LABELS: tuple[str, ...] = (
    "neutral",
    "happy",
    "sad",
    "angry",
    "fearful",
    "disgust",
    "surprised",
)

# One-to-one mapping from estimator spelling to the pipeline's labels.
ESTIMATOR_LABEL_MAP: dict[str, Label] = {
    "neutral": Label.NEUTRAL,
    "happy": Label.HAPPY,
    "sad": Label.SAD,
    "angry": Label.ANGRY,
    "fearful": Label.FEARFUL,
    "disgust": Label.DISGUSTED,
    "surprised": Label.SURPRISED,
}


class AffectEstimate(Protocol):
    """Anything that offers a normalised distribution, its label and confidence.

    Both :class:`Prediction` and :class:`EstimatorOutput` satisfy it.
    """

    label: Label
    confidence: float
    scores: ClassScores | None


class EstimatorOutput(BaseModel):
    """An external estimator's distribution mapped into the label space."""

    label: Label
    confidence: float = Field(ge=0.0, le=1.0)
    scores: ClassScores
    sanitized: bool = Field(
        False,
        description="True if some raw entries were non-numeric, non-finite or out of range.",
    )

    @classmethod
    def from_raw(cls, probabilities: Sequence[float]) -> EstimatorOutput | None:
        """Map a raw vector in :data:`ESTIMATOR_LABELS` order.

        Non-numeric, non-finite or out-of-[0, 1] entries are treated as 0
        and the rest is renormalised.  Returns ``None`` when no valid mass remains.

        Raises :class:`EstimatorContractError` if the vector does not have
        exactly one entry per label.
        """
        values = list(probabilities)
        if len(values) != len(ESTIMATOR_LABELS):
            raise EstimatorContractError(
                f"Estimator returned {len(values)} probabilities, "
                f"expected {len(ESTIMATOR_LABELS)} ({', '.join(ESTIMATOR_LABELS)})."
            )

        cleaned: list[float] = []
        sanitized = False
        for raw in values:
            try:
                value = float(raw)
            except (TypeError, ValueError):
                value = math.nan
            if not math.isfinite(value) or value < 0.0 or value > 1.0:
                cleaned.append(0.0)
                sanitized = True
            else:
                cleaned.append(value)

        total = sum(cleaned)
        if total <= 0.0:
            return None

        scores: ClassScores = {label: 0.0 for label in Label}
        for name, value in zip(ESTIMATOR_LABELS, cleaned):
            scores[ESTIMATOR_LABEL_MAP[name]] = value / total

        # Dominant label in estimator order; ties keep the earlier entry.
        best_name, best = ESTIMATOR_LABELS[0], -1.0
        for name in ESTIMATOR_LABELS:
            if scores[ESTIMATOR_LABEL_MAP[name]] > best:
                best_name, best = name, scores[ESTIMATOR_LABEL_MAP[name]]
        label = ESTIMATOR_LABEL_MAP[best_name]

        return cls(
            label=label,
            confidence=min(1.0, scores[label]),
            scores=scores,
            sanitized=sanitized,
        )

    def to_prediction(self) -> Prediction:
        return Prediction(label=self.label, confidence=self.confidence, scores=dict(self.scores))


def _as_prediction(estimate: AffectEstimate) -> Prediction:
    if isinstance(estimate, Prediction):
        return estimate
    return Prediction(
        label=estimate.label,
        confidence=estimate.confidence,
        scores=dict(estimate.scores) if estimate.scores is not None else None,
    )


def _distribution(estimate: AffectEstimate) -> ClassScores:
    """The estimate's scores, or a one-hot on its label when it has none."""
    if estimate.scores is not None:
        return normalize_scores(estimate.scores)
    return {label: 1.0 if label == estimate.label else 0.0 for label in Label}


# ── Engine ────────────────────────────────────────────────────


class FusionEngine:
    """Reconcile the pipeline's prediction with an independent estimate.

    Parameters
    ----------
    primary_weight : float
        Weight of the heuristic side in the small-gap blend; the estimator
        gets ``1 - primary_weight``.
    agreement_bonus : float
        Added to the mean confidence when both sides agree.
    disagreement_gap : float
        Confidence difference above which the stronger side simply wins.
    disagreement_penalty : float
        Factor applied to the fused confidence before tiering a
        disagreement.
    high_threshold, medium_threshold : float
        Reliability tier boundaries (inclusive).
    """

    def __init__(
        self,
        primary_weight: float = 0.6,
        agreement_bonus: float = 0.15,
        disagreement_gap: float = 0.3,
        disagreement_penalty: float = 0.8,
        high_threshold: float = 0.8,
        medium_threshold: float = 0.6,
    ) -> None:
        self._primary_weight = primary_weight
        self._agreement_bonus = agreement_bonus
        self._disagreement_gap = disagreement_gap
        self._disagreement_penalty = disagreement_penalty
        self._high = high_threshold
        self._medium = medium_threshold

    def tier(self, confidence: float) -> Reliability:
        if confidence >= self._high:
            return Reliability.HIGH
        if confidence >= self._medium:
            return Reliability.MEDIUM
        return Reliability.LOW

    def fuse(
        self,
        primary: Prediction,
        secondary: Sequence[float] | None = None,
    ) -> FusionResult:
        """Fuse ``primary`` with an optional raw estimator vector.

        An all-invalid vector falls back to the primary-only branch.  A
        vector of the wrong length raises :class:`EstimatorContractError`.
        """
        if secondary is None:
            return self._primary_only(primary, SourceFlags())

        output = EstimatorOutput.from_raw(secondary)
        if output is None:
            logger.warning("fusion.estimator_rejected", reason="no_valid_probabilities")
            return self._primary_only(primary, SourceFlags(estimator_rejected=True))

        return self.reconcile(primary, output, sanitized=output.sanitized)

    def reconcile(
        self,
        primary: Prediction,
        secondary: AffectEstimate,
        *,
        sanitized: bool = False,
    ) -> FusionResult:
        """Fuse two estimates that already share the label space."""
        sources = SourceFlags(estimator=True, sanitized=sanitized)

        if primary.label == secondary.label:
            confidence = min(
                (primary.confidence + secondary.confidence) / 2 + self._agreement_bonus,
                1.0,
            )
            result = FusionResult(
                primary=primary,
                confidence=confidence,
                reliability=self.tier(confidence),
                sources=sources,
                strategy=FusionStrategy.AGREEMENT,
            )
        elif abs(primary.confidence - secondary.confidence) > self._disagreement_gap:
            confidence = max(primary.confidence, secondary.confidence)
            if secondary.confidence > primary.confidence:
                winner, loser = _as_prediction(secondary), primary
            else:
                winner, loser = primary, _as_prediction(secondary)
            result = FusionResult(
                primary=winner,
                secondary=loser,
                confidence=confidence,
                reliability=self.tier(confidence * self._disagreement_penalty),
                sources=sources,
                strategy=FusionStrategy.OVERRIDE,
            )
        else:
            w = self._primary_weight
            confidence = primary.confidence * w + secondary.confidence * (1 - w)
            ours = _distribution(primary)
            theirs = _distribution(secondary)
            blended = normalize_scores(
                {label: ours[label] * w + theirs[label] * (1 - w) for label in Label}
            )
            result = FusionResult(
                primary=Prediction(
                    label=dominant_label(blended),
                    confidence=confidence,
                    timestamp=primary.timestamp,
                    scores=blended,
                    features=primary.features,
                    flags=list(primary.flags),
                ),
                confidence=confidence,
                reliability=self.tier(confidence * self._disagreement_penalty),
                sources=sources,
                strategy=FusionStrategy.BLEND,
            )

        logger.debug(
            "fusion.reconciled",
            strategy=result.strategy.value,
            label=result.primary.label.value,
            confidence=round(result.confidence, 3),
            reliability=result.reliability.value,
        )
        return result

    def _primary_only(self, primary: Prediction, sources: SourceFlags) -> FusionResult:
        return FusionResult(
            primary=primary,
            confidence=primary.confidence,
            reliability=self.tier(primary.confidence),
            sources=sources,
            strategy=FusionStrategy.PRIMARY_ONLY,
        )
