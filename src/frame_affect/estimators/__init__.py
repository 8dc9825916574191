"""External estimators that can be fused with the heuristic pipeline."""

from frame_affect.estimators.base import BaseEstimator
from frame_affect.estimators.blendshapes import (
    BlendshapeEstimator,
    analyze_blendshapes,
    score_blendshapes,
)
from frame_affect.estimators.luminance import LuminanceEstimator
from frame_affect.estimators.registry import (
    available_estimators,
    get_estimator,
    register_estimator,
)

__all__ = [
    "BaseEstimator",
    "BlendshapeEstimator",
    "LuminanceEstimator",
    "analyze_blendshapes",
    "available_estimators",
    "get_estimator",
    "register_estimator",
    "score_blendshapes",
]
