"""Estimator registry — discover and instantiate external estimators by name."""

from __future__ import annotations

from typing import Type

from frame_affect.estimators.base import BaseEstimator
from frame_affect.estimators.luminance import LuminanceEstimator

# ── Registry ──────────────────────────────────────────────────

_REGISTRY: dict[str, Type[BaseEstimator]] = {
    LuminanceEstimator.name: LuminanceEstimator,
}


def register_estimator(name: str, cls: Type[BaseEstimator]) -> None:
    """Register an estimator class under ``name``."""
    _REGISTRY[name] = cls


def get_estimator(name: str) -> BaseEstimator:
    """Instantiate and return the estimator registered as ``name``.

    Raises :class:`ValueError` if no estimator is registered.
    """
    cls = _REGISTRY.get(name)
    if cls is None:
        raise ValueError(
            f"No estimator registered as {name!r}. "
            f"Available: {sorted(_REGISTRY)}"
        )
    return cls()


def available_estimators() -> list[str]:
    """Return the names of registered estimators."""
    return list(_REGISTRY.keys())
