# FinSight Analytics - Financial analytics engine for SMB bookkeeping
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Composite financial health score.

The score is the sum of four independent buckets, each obtained by
discretising one ratio through a TierTable (see config.py):

    liquidity      current_ratio          (higher is better)
    profitability  net_profit_margin      (higher is better)
    leverage       debt_to_asset_ratio    (lower is better)
    returns        roa                    (higher is better)

With the default tables every bucket is worth at most 25 points, so the
total lies in [0, 100]. The grade is the first GradeBand whose
``min_score`` the total reaches.
"""

import logging
from typing import Optional

from .config import GradeBand, HealthSettings
from .models import HealthScore, RatioSet, SubScores

logger = logging.getLogger(__name__)


def grade_for(score: float, grades: tuple[GradeBand, ...]) -> GradeBand:
    """Return the grade band reached by ``score``."""
    for band in grades:
        if score >= band.min_score:
            return band
    return grades[-1]


def score_health(
    ratios: RatioSet, settings: Optional[HealthSettings] = None
) -> HealthScore:
    """
    Score a ratio set.

    Args:
        ratios: Ratio set returned by ratios.compute_ratios().
        settings: Tier tables and grade bands; defaults to HealthSettings().

    Returns:
        A HealthScore whose ``score`` equals the sum of its sub-scores.
    """
    settings = settings or HealthSettings()

    sub_scores = SubScores(
        liquidity=settings.liquidity.points_for(ratios.current_ratio),
        profitability=settings.profitability.points_for(ratios.net_profit_margin),
        leverage=settings.leverage.points_for(ratios.debt_to_asset_ratio),
        returns=settings.returns.points_for(ratios.roa),
    )
    total = sub_scores.total
    band = grade_for(total, settings.grades)

    logger.debug("Health score %s (%s): %s", total, band.grade, sub_scores)

    return HealthScore(
        score=total,
        grade=band.grade,
        label=band.label,
        sub_scores=sub_scores,
    )
