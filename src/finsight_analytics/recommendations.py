# FinSight Analytics - Financial analytics engine for SMB bookkeeping
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Rule-based financial recommendations.

Each RecommendationRule (config.py) is a standalone predicate over the ratio
set, so several findings can fire at once. Fired rules are returned ordered
by severity (error, then warning, then info and success together); rules of
equal rank keep their declaration order.
"""

from collections.abc import Sequence
from typing import Optional

from .config import DEFAULT_RULES, RecommendationRule
from .exceptions import InvalidInput
from .models import HealthScore, RatioSet, Recommendation

SEVERITY_RANK: dict[str, int] = {"error": 0, "warning": 1, "info": 2, "success": 2}


def _metric_value(rule: RecommendationRule, ratios: RatioSet, health: HealthScore) -> float:
    if rule.metric == "health_score":
        return float(health.score)
    if not hasattr(ratios, rule.metric):
        raise InvalidInput(
            f"Rule {rule.key!r} refers to unknown metric {rule.metric!r}.",
            field="metric",
        )
    return float(getattr(ratios, rule.metric))


def build_recommendations(
    ratios: RatioSet,
    health: HealthScore,
    rules: Optional[Sequence[RecommendationRule]] = None,
) -> list[Recommendation]:
    """
    Evaluate every rule against the ratio set and health score.

    Args:
        ratios: Ratio set returned by ratios.compute_ratios().
        health: Health score returned by health.score_health().
        rules: Rule table; defaults to config.DEFAULT_RULES.

    Returns:
        The recommendations of the rules that fired, most severe first.
    """
    rules = DEFAULT_RULES if rules is None else rules

    fired = [
        Recommendation(key=rule.key, title=rule.title, body=rule.body, severity=rule.severity)
        for rule in rules
        if rule.matches(_metric_value(rule, ratios, health))
    ]
    # sorted() is stable: ties keep declaration order.
    return sorted(fired, key=lambda rec: SEVERITY_RANK[rec.severity])
