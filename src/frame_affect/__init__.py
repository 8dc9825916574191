"""Frame affect — discrete affect classification from camera frames.

This package classifies a stream of RGBA frames into one of seven affect
labels with a calibrated confidence.  It is a deterministic
signal-processing and decision layer; it trains nothing.

Architecture
------------
1. **Vision** (`vision/`)
   - Histogram equalisation and 3x3 noise reduction
   - Brightness, local contrast, Sobel gradient and edge statistics,
     frame-level and inside a face region of interest

2. **Scoring** (`scoring/`)
   - Rule table mapping features to per-label deltas
   - Multiplicative contextual reweighting

3. **Temporal** (`temporal/`)
   - Recency-weighted smoothing window
   - Confidence calibration from score separation and label stability
   - Bounded prediction history with analytics

4. **Fusion** (`fusion/`, `estimators/`)
   - Reconciliation with an optional external estimator
   - Reliability tiers and source flags
   - Label mapping for face-tracker blendshape coefficients

Usage
-----
Call :func:`setup_logging` once at startup (level from
``FRAME_AFFECT_LOG_LEVEL``), then build a detector with
:meth:`EmotionDetector.from_settings` and feed it frames inside a ``with``
block.

Confidence & limitations
------------------------
Scores come from global image statistics, not facial geometry.  Treat the
output as a coarse, probabilistic signal.
"""

from frame_affect.detector import EmotionDetector
from frame_affect.errors import (
    DetectorInitError,
    DetectorNotReadyError,
    EstimatorContractError,
    FrameAffectError,
    InvalidFrameError,
)
from frame_affect.logger import setup_logging
from frame_affect.models import (
    ClassScores,
    DetectorState,
    EmotionAnalytics,
    FeatureVector,
    Frame,
    FusionResult,
    FusionStrategy,
    Label,
    Prediction,
    RegionOfInterest,
    Reliability,
)

__all__ = [
    "ClassScores",
    "DetectorInitError",
    "DetectorNotReadyError",
    "DetectorState",
    "EmotionAnalytics",
    "EmotionDetector",
    "EstimatorContractError",
    "FeatureVector",
    "Frame",
    "FrameAffectError",
    "FusionResult",
    "FusionStrategy",
    "InvalidFrameError",
    "Label",
    "Prediction",
    "RegionOfInterest",
    "Reliability",
    "setup_logging",
]
