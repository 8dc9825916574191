"""Abstract base class for external affect estimators."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from frame_affect.models import Frame


class BaseEstimator(ABC):
    """Contract that every external estimator must implement.

    An estimator is a separately-owned model (a neural network, a remote
    service, a deterministic stand-in) that turns a frame into a raw
    probability vector.  The detector only ever sees that vector; backend
    selection and weights are the estimator's own business.
    """

    name: str

    def load(self) -> None:
        """Acquire models or sessions.  Called once by ``initialize()``.

        Raising here moves the owning detector to FAILED.
        """

    @abstractmethod
    def predict(self, frame: Frame) -> Sequence[float]:
        """Return seven probabilities in estimator label order.

        The order is ``neutral, happy, sad, angry, fearful, disgust,
        surprised`` (see :data:`frame_affect.fusion.ESTIMATOR_LABELS`).
        """

    def close(self) -> None:
        """Release any resources held by the estimator."""
