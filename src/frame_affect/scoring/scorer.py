"""Rule-based scorers — base scores from features, then contextual reweighting."""

from __future__ import annotations

import structlog

from frame_affect.models import ClassScores, FeatureVector, Label, normalize_scores
from frame_affect.scoring.rules import (
    DEFAULT_CONTEXT_RULES,
    DEFAULT_SCORING_RULES,
    ContextRule,
    ScoringRule,
    condition_met,
)

logger = structlog.get_logger(__name__)

BASE_SCORE = 0.1


class BaseScorer:
    """Map a feature vector to a normalised score per label.

    Every label starts at ``base_score``; each firing rule adds its deltas;
    the result is normalised to sum to 1.

    Parameters
    ----------
    rules : list[ScoringRule] | None
        Rule table, evaluated in order.  Defaults to
        :data:`DEFAULT_SCORING_RULES`.
    base_score : float
        Starting value of every label before rules are applied.
    """

    def __init__(
        self,
        rules: list[ScoringRule] | None = None,
        base_score: float = BASE_SCORE,
    ) -> None:
        self._rules: list[ScoringRule] = list(DEFAULT_SCORING_RULES if rules is None else rules)
        self._base_score = base_score

    # ── Rule management ───────────────────────────────────────

    def add_rule(self, rule: ScoringRule) -> None:
        self._rules.append(rule)

    def remove_rule(self, rule_id: str) -> bool:
        before = len(self._rules)
        self._rules = [r for r in self._rules if r.rule_id != rule_id]
        return len(self._rules) < before

    def list_rules(self) -> list[ScoringRule]:
        return list(self._rules)

    # ── Scoring ───────────────────────────────────────────────

    def fired_rules(self, features: FeatureVector) -> list[ScoringRule]:
        """Rules that apply to ``features``, honouring exclusive groups."""
        namespace = features.as_namespace()
        settled_groups: set[str] = set()
        fired: list[ScoringRule] = []
        for rule in self._rules:
            if rule.exclusive_group is not None and rule.exclusive_group in settled_groups:
                continue
            if condition_met(rule.condition, namespace):
                fired.append(rule)
                if rule.exclusive_group is not None:
                    settled_groups.add(rule.exclusive_group)
        return fired

    def score(self, features: FeatureVector) -> ClassScores:
        scores: ClassScores = {label: self._base_score for label in Label}
        fired = self.fired_rules(features)
        for rule in fired:
            for label, delta in rule.deltas.items():
                scores[label] += delta
        logger.debug("scorer.rules_fired", rules=[r.rule_id for r in fired])
        return normalize_scores(scores)


class ContextualAdjuster:
    """Apply multiplicative, feature-conditioned reweighting to scores.

    Rules are independent and cumulative: every rule whose condition holds
    is applied, then the scores are renormalised.
    """

    def __init__(self, rules: list[ContextRule] | None = None) -> None:
        self._rules: list[ContextRule] = list(DEFAULT_CONTEXT_RULES if rules is None else rules)

    def list_rules(self) -> list[ContextRule]:
        return list(self._rules)

    def adjust(self, scores: ClassScores, features: FeatureVector) -> ClassScores:
        namespace = features.as_namespace()
        adjusted = dict(scores)
        for rule in self._rules:
            if not condition_met(rule.condition, namespace):
                continue
            for label, factor in rule.factors.items():
                adjusted[label] = adjusted.get(label, 0.0) * factor
        return normalize_scores(adjusted)
