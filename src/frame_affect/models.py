"""Shared data model for the frame-affect pipeline.

These models represent:
- The closed seven-label affect vocabulary and normalised class scores
- Raw frames and regions of interest
- Feature vectors and the coarse facial proxies derived from them
- Predictions, history entries and history analytics
- Fusion results with reliability tiers and source flags
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Mapping, Sequence

import numpy as np
from pydantic import BaseModel, Field

from frame_affect.errors import InvalidFrameError

CHANNELS = 4


# ── Enums ─────────────────────────────────────────────────────


class Label(str, Enum):
    """The closed set of affect labels.  No other value is ever produced."""

    ANGRY = "angry"
    DISGUSTED = "disgusted"
    FEARFUL = "fearful"
    HAPPY = "happy"
    NEUTRAL = "neutral"
    SAD = "sad"
    SURPRISED = "surprised"


class Reliability(str, Enum):
    """Coarse confidence bucket attached to a fusion result."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class FusionStrategy(str, Enum):
    """Which branch of the fusion policy produced a result."""

    PRIMARY_ONLY = "primary_only"
    AGREEMENT = "agreement"
    OVERRIDE = "override"  # large confidence gap, stronger side wins
    BLEND = "blend"  # small confidence gap, weighted blend


class DetectorState(str, Enum):
    """Lifecycle of an :class:`~frame_affect.detector.EmotionDetector`."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


# ── Class scores ──────────────────────────────────────────────

ClassScores = dict[Label, float]


def uniform_scores() -> ClassScores:
    """Equal probability for every label."""
    share = 1.0 / len(Label)
    return {label: share for label in Label}


def default_scores() -> ClassScores:
    """Neutral-leaning distribution used when a frame could not be scored."""
    return {
        Label.ANGRY: 0.1,
        Label.DISGUSTED: 0.1,
        Label.FEARFUL: 0.1,
        Label.HAPPY: 0.2,
        Label.NEUTRAL: 0.3,
        Label.SAD: 0.1,
        Label.SURPRISED: 0.1,
    }


def normalize_scores(scores: Mapping[Label, float]) -> ClassScores:
    """Return a distribution over every label that sums to 1.

    Missing, negative and non-finite entries count as 0.  An all-zero input
    becomes the uniform distribution.
    """
    cleaned: ClassScores = {}
    for label in Label:
        value = float(scores.get(label, 0.0))
        cleaned[label] = value if math.isfinite(value) and value > 0.0 else 0.0

    total = sum(cleaned.values())
    if total <= 0.0:
        return uniform_scores()
    return {label: value / total for label, value in cleaned.items()}


# Argmax scan order; exact ties resolve to the earliest entry.
ARGMAX_ORDER: tuple[Label, ...] = (
    Label.NEUTRAL,
    Label.HAPPY,
    Label.SAD,
    Label.ANGRY,
    Label.SURPRISED,
    Label.FEARFUL,
    Label.DISGUSTED,
)


def dominant_label(scores: Mapping[Label, float]) -> Label:
    """Return the argmax label.

    Labels are scanned in :data:`ARGMAX_ORDER` and only a strictly greater
    score replaces the current best, so a uniform or all-zero distribution
    yields ``neutral``.
    """
    best_label, best_score = Label.NEUTRAL, -1.0
    for label in ARGMAX_ORDER:
        score = scores.get(label, 0.0)
        if score > best_score:
            best_label, best_score = label, score
    return best_label


def ranked_scores(scores: Mapping[Label, float]) -> list[tuple[Label, float]]:
    """Labels sorted by descending score (stable for ties)."""
    return sorted(
        ((label, scores.get(label, 0.0)) for label in Label),
        key=lambda item: item[1],
        reverse=True,
    )


# ── Frames ────────────────────────────────────────────────────


@dataclass(frozen=True, eq=False)
class Frame:
    """An RGBA frame held as a read-only ``(height, width, 4)`` uint8 array.

    Attributes:
        width: Frame width in pixels.
        height: Frame height in pixels.
        data: Interleaved RGBA pixels.
    """

    width: int
    height: int
    data: np.ndarray

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise InvalidFrameError(
                f"Frame dimensions must be positive, got {self.width}x{self.height}."
            )

        arr = np.array(self.data, copy=True)
        if arr.ndim != 3 or arr.shape[:2] != (self.height, self.width):
            raise InvalidFrameError(
                f"Expected pixel array of shape ({self.height}, {self.width}, {CHANNELS}), "
                f"got {arr.shape}."
            )
        if arr.shape[2] != CHANNELS:
            raise InvalidFrameError(
                f"Expected {CHANNELS} channels per pixel, got {arr.shape[2]}."
            )
        if arr.dtype != np.uint8:
            if not np.issubdtype(arr.dtype, np.integer) or arr.min() < 0 or arr.max() > 255:
                raise InvalidFrameError(f"Pixel values must be 8-bit integers, got {arr.dtype}.")
            arr = arr.astype(np.uint8)

        arr.setflags(write=False)
        object.__setattr__(self, "data", arr)

    @classmethod
    def from_buffer(
        cls,
        width: int,
        height: int,
        buffer: bytes | bytearray | memoryview | Sequence[int] | np.ndarray,
    ) -> Frame:
        """Build a frame from a flat interleaved RGBA buffer.

        Raises :class:`InvalidFrameError` if the buffer length is not
        ``width * height * 4`` or an array argument carries a different
        channel count.
        """
        if width <= 0 or height <= 0:
            raise InvalidFrameError(f"Frame dimensions must be positive, got {width}x{height}.")

        if isinstance(buffer, (bytes, bytearray, memoryview)):
            arr = np.frombuffer(buffer, dtype=np.uint8)
        else:
            arr = np.asarray(buffer)
            if arr.ndim == 3 and arr.shape[2] != CHANNELS:
                raise InvalidFrameError(
                    f"Expected {CHANNELS} channels per pixel, got {arr.shape[2]}."
                )

        expected = width * height * CHANNELS
        if arr.size != expected:
            raise InvalidFrameError(
                f"Buffer holds {arr.size} values, expected {expected} "
                f"for a {width}x{height} RGBA frame."
            )
        return cls(width=width, height=height, data=arr.reshape(height, width, CHANNELS))

    @classmethod
    def from_array(cls, pixels: np.ndarray) -> Frame:
        """Wrap an ``(H, W, 4)`` RGBA or ``(H, W, 3)`` RGB array.

        RGB input gets an opaque alpha channel.
        """
        arr = np.asarray(pixels)
        if arr.ndim != 3 or arr.shape[2] not in (3, CHANNELS):
            raise InvalidFrameError(f"Expected an (H, W, 3|4) pixel array, got {arr.shape}.")
        if arr.shape[2] == 3:
            alpha = np.full(arr.shape[:2] + (1,), 255, dtype=arr.dtype)
            arr = np.concatenate([arr, alpha], axis=2)
        return cls(width=arr.shape[1], height=arr.shape[0], data=arr)

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    def copy_pixels(self) -> np.ndarray:
        """A writable copy of the pixel array."""
        return self.data.copy()


class RegionOfInterest(BaseModel):
    """Axis-aligned rectangle presumed to contain the subject's face."""

    x: float = Field(0.0, description="Left edge in pixels.")
    y: float = Field(0.0, description="Top edge in pixels.")
    width: float = Field(ge=0.0)
    height: float = Field(ge=0.0)

    @classmethod
    def centered(cls, width: int, height: int, fraction: float = 0.6) -> RegionOfInterest:
        """Centered box covering ``fraction`` of each frame dimension."""
        roi_w = width * fraction
        roi_h = height * fraction
        return cls(
            x=width / 2 - roi_w / 2,
            y=height / 2 - roi_h / 2,
            width=roi_w,
            height=roi_h,
        )


# ── Features ──────────────────────────────────────────────────


class DominantColor(BaseModel):
    """Mean RGB of the frame interior, each channel scaled to [0, 1]."""

    r: float = Field(0.0, ge=0.0, le=1.0)
    g: float = Field(0.0, ge=0.0, le=1.0)
    b: float = Field(0.0, ge=0.0, le=1.0)


class FeatureVector(BaseModel):
    """Statistical / gradient features of one frame, each in [0, 1]."""

    brightness: float = Field(0.0, ge=0.0, le=1.0)
    contrast: float = Field(0.0, ge=0.0, le=1.0)
    edge_density: float = Field(0.0, ge=0.0, le=1.0)
    gradient_magnitude: float = Field(0.0, ge=0.0, le=1.0)
    face_brightness: float = Field(0.0, ge=0.0, le=1.0)
    face_contrast: float = Field(0.0, ge=0.0, le=1.0)
    dominant_color: DominantColor = Field(default_factory=DominantColor)

    def as_namespace(self) -> dict[str, float]:
        """Flat name → value mapping used by rule conditions."""
        return {
            "brightness": self.brightness,
            "contrast": self.contrast,
            "edge_density": self.edge_density,
            "gradient_magnitude": self.gradient_magnitude,
            "face_brightness": self.face_brightness,
            "face_contrast": self.face_contrast,
            "dominant_r": self.dominant_color.r,
            "dominant_g": self.dominant_color.g,
            "dominant_b": self.dominant_color.b,
        }


class FacialProxies(BaseModel):
    """Coarse facial-expression proxies derived from image statistics.

    These are not landmark measurements; they rescale feature-vector
    fields into expression-flavoured names for downstream presentation.
    """

    eye_openness: float = 0.5
    mouth_curvature: float = 0.5
    eyebrow_position: float = 0.5
    jaw_tension: float = 0.5
    cheek_raise: float = 0.5
    nose_scrunch: float = 0.5

    @classmethod
    def from_features(cls, features: FeatureVector) -> FacialProxies:
        return cls(
            eye_openness=min(1.0, features.brightness * 1.5),
            mouth_curvature=min(1.0, features.dominant_color.r * 2),
            eyebrow_position=min(1.0, features.contrast * 2),
            jaw_tension=min(1.0, features.edge_density * 3),
            cheek_raise=min(1.0, features.face_brightness * 1.2),
            nose_scrunch=min(1.0, features.face_contrast * 1.5),
        )


# ── Predictions ───────────────────────────────────────────────


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Prediction(BaseModel):
    """A single labelled prediction for one frame."""

    label: Label
    confidence: float = Field(ge=0.0, le=1.0)
    timestamp: datetime = Field(default_factory=_utcnow)
    scores: ClassScores | None = Field(
        None,
        description="Distribution the label was taken from, when available.",
    )
    features: FeatureVector | None = None
    flags: list[str] = Field(
        default_factory=list,
        description="Diagnostic flags, e.g. 'internal_error'.  Empty when healthy.",
    )


class HistoryEntry(BaseModel):
    """One slot of the prediction history buffer."""

    prediction: Prediction
    features: FeatureVector
    proxies: FacialProxies = Field(default_factory=FacialProxies)


class EmotionAnalytics(BaseModel):
    """Summary statistics over the prediction history."""

    dominant_label: Label = Label.NEUTRAL
    emotion_duration: int = Field(
        0,
        description="Length of the trailing run of the dominant label.",
    )
    transition_frequency: float = 0.0
    average_confidence: float = 0.0
    confidence_stability: float = 0.0


# ── Fusion ────────────────────────────────────────────────────


class SourceFlags(BaseModel):
    """Which inputs contributed to a fusion result."""

    heuristic: bool = True
    estimator: bool = False
    sanitized: bool = Field(
        False,
        description="Some estimator entries were non-numeric or out of range and zeroed.",
    )
    estimator_rejected: bool = Field(
        False,
        description="The estimator vector had no valid entries and was ignored.",
    )


class FusionResult(BaseModel):
    """Reconciled output of the heuristic pipeline and an external estimator."""

    primary: Prediction
    secondary: Prediction | None = None
    confidence: float = Field(ge=0.0, le=1.0)
    reliability: Reliability = Reliability.LOW
    sources: SourceFlags = Field(default_factory=SourceFlags)
    strategy: FusionStrategy = FusionStrategy.PRIMARY_ONLY
