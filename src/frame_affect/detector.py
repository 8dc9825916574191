"""Emotion detector — orchestrates conditioning, features, scoring and fusion.

This module provides the high-level :class:`EmotionDetector` that callers
feed frames into.  It coordinates:

1. Frame conditioning (histogram equalisation, noise reduction)
2. Feature extraction over the frame and the face region
3. Rule-based scoring and contextual reweighting
4. Temporal smoothing and confidence calibration
5. Recording predictions in the bounded history
6. Optional fusion with an external estimator
"""

from __future__ import annotations

from types import TracebackType

import structlog

from frame_affect.config import Settings, get_settings
from frame_affect.errors import (
    DetectorInitError,
    DetectorNotReadyError,
    EstimatorContractError,
    InvalidFrameError,
)
from frame_affect.estimators.base import BaseEstimator
from frame_affect.estimators.registry import get_estimator
from frame_affect.fusion.engine import FusionEngine
from frame_affect.models import (
    ClassScores,
    DetectorState,
    EmotionAnalytics,
    FeatureVector,
    Frame,
    FusionResult,
    HistoryEntry,
    Label,
    Prediction,
    RegionOfInterest,
    default_scores,
    dominant_label,
)
from frame_affect.scoring.scorer import BaseScorer, ContextualAdjuster
from frame_affect.temporal.calibration import ConfidenceCalibrator
from frame_affect.temporal.history import HistoryTracker
from frame_affect.temporal.smoothing import TemporalSmoother
from frame_affect.vision.conditioning import FrameConditioner
from frame_affect.vision.features import FeatureExtractor

logger = structlog.get_logger(__name__)

INTERNAL_ERROR_FLAG = "internal_error"
ESTIMATOR_ERROR_FLAG = "estimator_error"


class EmotionDetector:
    """Stateful per-stream classifier.

    A detector owns its smoothing window and prediction history; use one
    instance per frame stream and serialise calls to it.

    Parameters
    ----------
    conditioner, extractor, scorer, adjuster, smoother, calibrator, history, fusion
        Pipeline components.  Each defaults to an instance with default
        constants.
    estimator : BaseEstimator | None
        Optional external estimator consulted by :meth:`analyze`.
    fallback_confidence : float
        Confidence of the neutral prediction returned on internal faults.
    stability_window : int
        Number of recent labels handed to the calibrator.
    """

    def __init__(
        self,
        conditioner: FrameConditioner | None = None,
        extractor: FeatureExtractor | None = None,
        scorer: BaseScorer | None = None,
        adjuster: ContextualAdjuster | None = None,
        smoother: TemporalSmoother | None = None,
        calibrator: ConfidenceCalibrator | None = None,
        history: HistoryTracker | None = None,
        fusion: FusionEngine | None = None,
        estimator: BaseEstimator | None = None,
        fallback_confidence: float = 0.1,
        stability_window: int = 5,
    ) -> None:
        self._conditioner = conditioner if conditioner is not None else FrameConditioner()
        self._extractor = extractor if extractor is not None else FeatureExtractor()
        self._scorer = scorer if scorer is not None else BaseScorer()
        self._adjuster = adjuster if adjuster is not None else ContextualAdjuster()
        self._smoother = smoother if smoother is not None else TemporalSmoother()
        self._calibrator = calibrator if calibrator is not None else ConfidenceCalibrator()
        self._history = history if history is not None else HistoryTracker()
        self._fusion = fusion if fusion is not None else FusionEngine()
        self._estimator = estimator
        self._fallback_confidence = fallback_confidence
        self._stability_window = stability_window

        self._state = DetectorState.UNINITIALIZED
        self._last_scores: ClassScores | None = None
        self._frame_count = 0

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> EmotionDetector:
        """Wire every component from configuration."""
        s = settings or get_settings()
        return cls(
            conditioner=FrameConditioner(
                equalize=s.equalize_histogram,
                denoise=s.reduce_noise,
            ),
            extractor=FeatureExtractor(
                edge_threshold=s.edge_threshold,
                roi_fraction=s.roi_fraction,
            ),
            scorer=BaseScorer(base_score=s.base_score),
            adjuster=ContextualAdjuster(),
            smoother=TemporalSmoother(window_size=s.smoothing_window),
            calibrator=ConfidenceCalibrator(
                threshold=s.confidence_threshold,
                floor=s.confidence_floor,
                ceiling=s.confidence_ceiling,
                gap_weight=s.gap_weight,
                stability_window=s.stability_window,
                stability_weight=s.stability_weight,
                low_scale=s.low_confidence_scale,
                low_minimum=s.low_confidence_minimum,
            ),
            history=HistoryTracker(max_size=s.history_size),
            fusion=FusionEngine(
                primary_weight=s.fusion_primary_weight,
                agreement_bonus=s.fusion_agreement_bonus,
                disagreement_gap=s.fusion_disagreement_gap,
                disagreement_penalty=s.fusion_disagreement_penalty,
                high_threshold=s.reliability_high,
                medium_threshold=s.reliability_medium,
            ),
            estimator=get_estimator(s.estimator) if s.estimator else None,
            fallback_confidence=s.fallback_confidence,
            stability_window=s.stability_window,
        )

    # ── Lifecycle ─────────────────────────────────────────────

    @property
    def state(self) -> DetectorState:
        return self._state

    @property
    def estimator(self) -> BaseEstimator | None:
        return self._estimator

    def initialize(self) -> None:
        """Load the estimator (if any) and move to READY.

        Idempotent: a READY detector is left alone and a FAILED one is
        retried.  Raises :class:`DetectorInitError` if loading fails.
        """
        if self._state is DetectorState.READY:
            return

        self._state = DetectorState.INITIALIZING
        if self._estimator is not None:
            try:
                self._estimator.load()
            except Exception as exc:
                self._state = DetectorState.FAILED
                logger.exception("detector.init_failed", estimator=self._estimator.name)
                raise DetectorInitError(
                    f"Estimator {self._estimator.name!r} failed to load: {exc}"
                ) from exc

        self._state = DetectorState.READY
        logger.info(
            "detector.initialized",
            estimator=self._estimator.name if self._estimator else None,
        )

    def dispose(self) -> None:
        """Close the estimator, clear buffers and return to UNINITIALIZED."""
        if self._estimator is not None:
            self._estimator.close()
        self._smoother.reset()
        self._history.clear()
        self._last_scores = None
        self._frame_count = 0
        self._state = DetectorState.UNINITIALIZED
        logger.info("detector.disposed")

    def __enter__(self) -> EmotionDetector:
        self.initialize()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.dispose()

    # ── Classification ────────────────────────────────────────

    def score_frame(self, frame: Frame, roi: RegionOfInterest | None = None) -> ClassScores:
        """Return the smoothed scores for ``frame`` without producing a prediction.

        The frame still enters the smoothing window.
        """
        self._check_input(frame)
        _, smoothed = self._smoothed_scores(frame, roi)
        return dict(smoothed)

    def classify(self, frame: Frame, roi: RegionOfInterest | None = None) -> Prediction:
        """Classify one frame and record the prediction in the history.

        Raises :class:`DetectorNotReadyError` outside READY and
        :class:`InvalidFrameError` for anything that is not a frame.  Every
        other fault is logged and answered with a low-confidence neutral
        prediction flagged ``internal_error``; such predictions are not
        recorded.
        """
        self._check_input(frame)
        try:
            features, smoothed = self._smoothed_scores(frame, roi)
            label = dominant_label(smoothed)
            # Stability is judged on the history before this frame.
            recent = self._history.recent_labels(self._stability_window)
            confidence = self._calibrator.calibrate(smoothed, recent)
            prediction = Prediction(
                label=label,
                confidence=confidence,
                scores=smoothed,
                features=features,
            )
            self._history.append(prediction, features)
        except Exception:
            logger.exception("detector.classify_failed", frame_count=self._frame_count)
            return self._fallback_prediction()

        self._frame_count += 1
        logger.debug(
            "detector.classified",
            label=label.value,
            confidence=round(confidence, 3),
            frame_count=self._frame_count,
        )
        return prediction

    def analyze(self, frame: Frame, roi: RegionOfInterest | None = None) -> FusionResult:
        """Classify ``frame`` and fuse the result with the estimator, if any.

        A failing estimator degrades to primary-only fusion and flags the
        primary ``estimator_error``.  :class:`EstimatorContractError`
        propagates.
        """
        prediction = self.classify(frame, roi)
        if self._estimator is None:
            return self._fusion.fuse(prediction)

        try:
            probabilities = self._estimator.predict(frame)
        except EstimatorContractError:
            raise
        except Exception:
            logger.exception("detector.estimator_failed", estimator=self._estimator.name)
            flagged = prediction.model_copy(
                update={"flags": [*prediction.flags, ESTIMATOR_ERROR_FLAG]}
            )
            return self._fusion.fuse(flagged)

        return self._fusion.fuse(prediction, probabilities)

    # ── Introspection ─────────────────────────────────────────

    @property
    def last_scores(self) -> ClassScores | None:
        """Copy of the most recent smoothed scores, or ``None``."""
        return dict(self._last_scores) if self._last_scores is not None else None

    @property
    def frame_count(self) -> int:
        """Number of frames successfully classified since the last dispose."""
        return self._frame_count

    def history(self) -> list[HistoryEntry]:
        return self._history.snapshot()

    def analytics(self) -> EmotionAnalytics:
        return self._history.analytics()

    # ── Internals ─────────────────────────────────────────────

    def _check_input(self, frame: Frame) -> None:
        if self._state is not DetectorState.READY:
            raise DetectorNotReadyError(
                f"Detector is {self._state.value}; call initialize() first."
            )
        if not isinstance(frame, Frame):
            raise InvalidFrameError(f"Expected a Frame, got {type(frame).__name__}.")

    def _smoothed_scores(
        self,
        frame: Frame,
        roi: RegionOfInterest | None,
    ) -> tuple[FeatureVector, ClassScores]:
        conditioned = self._conditioner.condition(frame)
        features = self._extractor.extract(conditioned, roi)
        scores = self._scorer.score(features)
        adjusted = self._adjuster.adjust(scores, features)
        smoothed = self._smoother.smooth(adjusted)
        self._last_scores = smoothed
        return features, smoothed

    def _fallback_prediction(self) -> Prediction:
        return Prediction(
            label=Label.NEUTRAL,
            confidence=self._fallback_confidence,
            scores=default_scores(),
            flags=[INTERNAL_ERROR_FLAG],
        )
