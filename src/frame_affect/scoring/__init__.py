"""Rule-based scoring: base rule table and contextual reweighting."""

from frame_affect.scoring.rules import (
    DEFAULT_CONTEXT_RULES,
    DEFAULT_SCORING_RULES,
    ContextRule,
    ScoringRule,
    condition_met,
)
from frame_affect.scoring.scorer import BaseScorer, ContextualAdjuster

__all__ = [
    "BaseScorer",
    "ContextRule",
    "ContextualAdjuster",
    "DEFAULT_CONTEXT_RULES",
    "DEFAULT_SCORING_RULES",
    "ScoringRule",
    "condition_met",
]
