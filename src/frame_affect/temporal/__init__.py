"""Stateful stages: smoothing window, confidence calibration, history."""

from frame_affect.temporal.calibration import ConfidenceCalibrator
from frame_affect.temporal.history import HistoryTracker
from frame_affect.temporal.smoothing import TemporalSmoother

__all__ = ["ConfidenceCalibrator", "HistoryTracker", "TemporalSmoother"]
