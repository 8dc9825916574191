"""Exception hierarchy for the frame-affect pipeline."""

from __future__ import annotations


class FrameAffectError(Exception):
    """Base class for every error raised by this package."""


class InvalidFrameError(FrameAffectError, ValueError):
    """The frame buffer is malformed (bad dimensions or channel count).

    Callers should drop the frame and submit the next one.
    """


class EstimatorContractError(FrameAffectError, ValueError):
    """An external estimator produced a vector of the wrong shape.

    Not recoverable: the estimator is incompatible with the label space.
    """


class DetectorNotReadyError(FrameAffectError, RuntimeError):
    """A classify-style call was made before the detector reached READY."""


class DetectorInitError(FrameAffectError, RuntimeError):
    """Detector initialisation failed; the detector is now FAILED."""
