"""Declarative scoring rules and their default tables.

A rule pairs a condition expression over feature names with a per-label
adjustment.  Conditions use a small expression language evaluated in a
restricted namespace.  The available names are the keys of
:meth:`FeatureVector.as_namespace`::

    brightness, contrast, edge_density, gradient_magnitude,
    face_brightness, face_contrast, dominant_r, dominant_g, dominant_b

Example condition::

    "dominant_r > 0.5 and face_contrast > 0.3"
"""

from __future__ import annotations

from functools import lru_cache
from types import CodeType

import structlog
from pydantic import BaseModel, Field

from frame_affect.models import Label

logger = structlog.get_logger(__name__)


class ScoringRule(BaseModel):
    """Additive rule: when ``condition`` holds, add ``deltas`` to the scores.

    Rules sharing an ``exclusive_group`` form an if / elif / else chain:
    only the first matching rule of the group (in table order) fires.
    """

    rule_id: str
    condition: str = Field(description="Expression over feature names, e.g. 'face_contrast > 0.5'.")
    deltas: dict[Label, float]
    exclusive_group: str | None = None


class ContextRule(BaseModel):
    """Multiplicative rule: when ``condition`` holds, scale the listed labels."""

    rule_id: str
    condition: str
    factors: dict[Label, float]


# ── Default tables ────────────────────────────────────────────

DEFAULT_SCORING_RULES: list[ScoringRule] = [
    ScoringRule(
        rule_id="bright_face",
        condition="face_brightness > 0.6",
        deltas={Label.HAPPY: 0.3, Label.NEUTRAL: 0.2},
        exclusive_group="face_brightness",
    ),
    ScoringRule(
        rule_id="dim_face",
        condition="face_brightness < 0.4",
        deltas={Label.SAD: 0.25, Label.NEUTRAL: 0.15},
        exclusive_group="face_brightness",
    ),
    ScoringRule(
        rule_id="mid_face",
        condition="True",
        deltas={Label.NEUTRAL: 0.4},
        exclusive_group="face_brightness",
    ),
    ScoringRule(
        rule_id="high_face_contrast",
        condition="face_contrast > 0.5",
        deltas={Label.SURPRISED: 0.2, Label.ANGRY: 0.15},
    ),
    ScoringRule(
        rule_id="dense_edges",
        condition="edge_density > 0.4",
        deltas={Label.FEARFUL: 0.2, Label.SURPRISED: 0.15},
    ),
    ScoringRule(
        rule_id="red_tension",
        condition="dominant_r > 0.5 and face_contrast > 0.3",
        deltas={Label.ANGRY: 0.2},
    ),
    ScoringRule(
        rule_id="strong_gradient",
        condition="gradient_magnitude > 0.3",
        deltas={Label.DISGUSTED: 0.15, Label.FEARFUL: 0.1},
    ),
]

DEFAULT_CONTEXT_RULES: list[ContextRule] = [
    ContextRule(
        rule_id="bright_warm_face",
        condition="face_brightness > 0.7 and dominant_r > 0.4",
        factors={Label.HAPPY: 1.3, Label.ANGRY: 1.2},
    ),
    ContextRule(
        rule_id="contrast_with_edges",
        condition="face_contrast > 0.5 and edge_density > 0.3",
        factors={Label.SURPRISED: 1.4, Label.FEARFUL: 1.2},
    ),
    ContextRule(
        rule_id="dark_scene",
        condition="brightness < 0.3",
        factors={Label.SAD: 1.3, Label.NEUTRAL: 1.1},
    ),
]


# ── Evaluation ────────────────────────────────────────────────


@lru_cache(maxsize=256)
def _compile(condition: str) -> CodeType:
    return compile(condition, "<rule>", "eval")


def condition_met(condition: str, namespace: dict[str, float]) -> bool:
    """Safely evaluate a rule condition string.

    Only the feature names in ``namespace`` are exposed; builtins are
    blocked.  A condition that fails to compile or evaluate is logged and
    treated as not met.
    """
    try:
        return bool(eval(_compile(condition), {"__builtins__": {}}, dict(namespace)))
    except Exception as exc:
        logger.error("scoring.condition_eval_error", condition=condition, error=str(exc))
        return False
