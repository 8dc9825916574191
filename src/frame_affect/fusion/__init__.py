"""Fusion of the heuristic prediction with an external estimator."""

from frame_affect.fusion.engine import (
    ESTIMATOR_LABEL_MAP,
    ESTIMATOR_LABELS,
    AffectEstimate,
    EstimatorOutput,
    FusionEngine,
)

__all__ = [
    "AffectEstimate",
    "ESTIMATOR_LABELS",
    "ESTIMATOR_LABEL_MAP",
    "EstimatorOutput",
    "FusionEngine",
]
