import math

import pytest

from finsight_analytics.config import (
    DEFAULT_GRADES,
    DEFAULT_LEVERAGE,
    DEFAULT_LIQUIDITY,
    DEFAULT_PROFITABILITY,
    DEFAULT_RETURNS,
    HealthSettings,
    Tier,
    TierTable,
)
from finsight_analytics.exceptions import InvalidInput
from finsight_analytics.health import grade_for, score_health
from finsight_analytics.models import RatioSet
from finsight_analytics.ratios import compute_ratios


def _ratios(**overrides) -> RatioSet:
    values = {
        "current_ratio": 1.2,
        "quick_ratio": 1.0,
        "gross_profit_margin": 40.0,
        "net_profit_margin": 8.0,
        "roa": 6.0,
        "roe": 12.0,
        "debt_to_asset_ratio": 45.0,
        "debt_to_equity_ratio": 80.0,
        "asset_turnover": 1.1,
    }
    values.update(overrides)
    return RatioSet(**values)


def test_reference_snapshot_scores_75_grade_b(balance_sheet, income_statement) -> None:
    """Current ratio 1.83 sits in the >= 1.5 tier and earns 20 liquidity points."""
    health = score_health(compute_ratios(balance_sheet, income_statement))

    assert health.sub_scores.liquidity == 20
    assert health.sub_scores.profitability == 15
    assert health.sub_scores.leverage == 15
    assert health.sub_scores.returns == 25
    assert health.score == 75
    assert health.grade == "B"
    assert health.label == "good"
    assert health.max_score == 100


@pytest.mark.parametrize(
    "value, points",
    [
        (3.0, 25),
        (2.0, 25),
        (1.99, 20),
        (1.5, 20),
        (1.0, 15),
        (0.8, 10),
        (0.79, 5),
        (0.0, 5),
    ],
)
def test_liquidity_tiers(value: float, points: int) -> None:
    assert DEFAULT_LIQUIDITY.points_for(value) == points


@pytest.mark.parametrize(
    "value, points",
    [
        (20.0, 25),
        (15.0, 25),
        (12.0, 20),
        (5.0, 15),
        (0.0, 10),
        (-0.01, 0),
    ],
)
def test_profitability_tiers(value: float, points: int) -> None:
    assert DEFAULT_PROFITABILITY.points_for(value) == points


@pytest.mark.parametrize(
    "value, points",
    [
        (0.0, 25),
        (30.0, 25),
        (30.01, 20),
        (50.0, 20),
        (70.0, 15),
        (85.0, 10),
        (85.01, 5),
        (150.0, 5),
    ],
)
def test_leverage_tiers_lower_is_better(value: float, points: int) -> None:
    assert DEFAULT_LEVERAGE.points_for(value) == points


def test_nan_falls_to_floor_tier() -> None:
    for table in (DEFAULT_LIQUIDITY, DEFAULT_PROFITABILITY, DEFAULT_LEVERAGE, DEFAULT_RETURNS):
        assert table.points_for(math.nan) == table.floor_points


@pytest.mark.parametrize(
    "score, grade",
    [
        (100, "A"),
        (85, "A"),
        (84, "B"),
        (70, "B"),
        (69, "C"),
        (50, "C"),
        (49, "D"),
        (35, "D"),
        (34, "F"),
        (0, "F"),
    ],
)
def test_grade_bands(score: int, grade: str) -> None:
    assert grade_for(score, DEFAULT_GRADES).grade == grade


def test_best_and_worst_cases_stay_within_bounds() -> None:
    best = score_health(
        _ratios(current_ratio=5.0, net_profit_margin=30.0, debt_to_asset_ratio=10.0, roa=40.0)
    )
    worst = score_health(
        _ratios(current_ratio=0.1, net_profit_margin=-50.0, debt_to_asset_ratio=120.0, roa=-20.0)
    )

    assert best.score == 100
    assert best.grade == "A"
    assert worst.score == 10
    assert worst.grade == "F"
    assert worst.label == "needs improvement"


def test_score_is_sum_of_sub_scores() -> None:
    health = score_health(_ratios())

    assert health.score == health.sub_scores.total
    assert 0 <= health.score <= 100


def test_custom_tier_table_is_used() -> None:
    strict_liquidity = TierTable(
        metric="current_ratio",
        tiers=(Tier(3.0, 25), Tier(2.0, 10)),
        floor_points=0,
    )
    settings = HealthSettings(liquidity=strict_liquidity)

    health = score_health(_ratios(current_ratio=1.83), settings)

    assert health.sub_scores.liquidity == 0


def test_non_monotonic_tiers_are_rejected() -> None:
    with pytest.raises(InvalidInput):
        TierTable(
            metric="current_ratio",
            tiers=(Tier(1.0, 25), Tier(2.0, 20)),
            floor_points=5,
        )
