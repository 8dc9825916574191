"""Centralised pipeline settings loaded from environment / .env file."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """All tunable constants of the frame-affect pipeline.

    Values are read from environment variables first, then from a *.env* file
    located at the project root.  Every variable lives in the flat
    ``FRAME_AFFECT_`` namespace (stripped automatically by
    *pydantic-settings*).  Most numeric defaults are empirically chosen
    placeholders; they are exposed here so they can be tuned without
    touching control flow.
    """

    model_config = SettingsConfigDict(
        env_prefix="FRAME_AFFECT_",
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Logging ───────────────────────────────────────────────
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # ── Frame conditioning ────────────────────────────────────
    equalize_histogram: bool = True
    reduce_noise: bool = True

    # ── Feature extraction ────────────────────────────────────
    roi_fraction: float = Field(0.6, gt=0.0, le=1.0)  # default centered face crop
    edge_threshold: float = 30.0  # gradient magnitude, strictly greater counts

    # ── Scoring ───────────────────────────────────────────────
    base_score: float = 0.1

    # ── Temporal ──────────────────────────────────────────────
    smoothing_window: int = Field(5, ge=1)
    history_size: int = Field(100, ge=1)

    # ── Calibration ───────────────────────────────────────────
    confidence_threshold: float = 0.6
    confidence_floor: float = 0.1
    confidence_ceiling: float = 0.95
    low_confidence_scale: float = 0.8
    low_confidence_minimum: float = 0.3
    gap_weight: float = 0.3
    stability_window: int = Field(5, ge=1)
    stability_weight: float = 0.1

    # ── Fusion ────────────────────────────────────────────────
    fusion_primary_weight: float = Field(0.6, ge=0.0, le=1.0)
    fusion_agreement_bonus: float = 0.15
    fusion_disagreement_gap: float = 0.3
    fusion_disagreement_penalty: float = 0.8
    reliability_high: float = 0.8
    reliability_medium: float = 0.6

    # ── Detector ──────────────────────────────────────────────
    fallback_confidence: float = 0.1  # confidence of the internal-error prediction
    estimator: str | None = None  # registered estimator name, None = heuristic only


@lru_cache
def get_settings() -> Settings:
    """Return a cached :class:`Settings` singleton."""
    return Settings()
