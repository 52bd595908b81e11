from pathlib import Path

import pytest

from finsight_analytics.config import (
    DEFAULT_LIQUIDITY,
    DEFAULT_RULES,
    AnalyticsConfig,
    AnomalySettings,
    BudgetSettings,
    ForecastSettings,
    load_analytics_config,
)
from finsight_analytics.exceptions import InvalidInput


def _write(tmp_path: Path, content: str) -> str:
    path = tmp_path / "analytics.toml"
    path.write_text(content, encoding="utf-8")
    return str(path)


def test_no_path_returns_documented_defaults() -> None:
    cfg = load_analytics_config()

    assert cfg == AnalyticsConfig()
    assert cfg.budgets == BudgetSettings(warning_threshold=80.0, exceeded_threshold=100.0)
    assert cfg.forecast.trend_window == 6
    assert cfg.anomalies.min_sample_size == 5
    assert cfg.anomalies.exclude_self is True
    assert cfg.recommendations == DEFAULT_RULES
    assert cfg.health.liquidity == DEFAULT_LIQUIDITY


def test_empty_file_returns_defaults(tmp_path: Path) -> None:
    assert load_analytics_config(_write(tmp_path, "")) == AnalyticsConfig()


def test_scalar_overrides(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
[budgets]
warning_threshold = 75

[forecast]
trend_window = 3
confidence_ceiling = 0.9

[anomalies]
exclude_self = false
high_threshold = 3.5
""",
    )

    cfg = load_analytics_config(path)

    assert cfg.budgets.warning_threshold == 75.0
    assert cfg.budgets.exceeded_threshold == 100.0
    assert cfg.forecast.trend_window == 3
    assert isinstance(cfg.forecast.trend_window, int)
    assert cfg.forecast.confidence_ceiling == pytest.approx(0.9)
    assert cfg.forecast.upward_spread == ForecastSettings().upward_spread
    assert cfg.anomalies == AnomalySettings(exclude_self=False, high_threshold=3.5)


def test_integral_float_is_accepted_for_int_setting(tmp_path: Path) -> None:
    cfg = load_analytics_config(_write(tmp_path, "[forecast]\ntrend_window = 4.0\n"))

    assert cfg.forecast.trend_window == 4
    assert isinstance(cfg.forecast.trend_window, int)


def test_health_tiers_and_grades(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
[health]
liquidity_floor = 0

[[health.liquidity]]
threshold = 2.5
points = 25

[[health.liquidity]]
threshold = 1.2
points = 12

[[health.grades]]
min_score = 60
grade = "PASS"
label = "acceptable"

[[health.grades]]
min_score = 0
grade = "FAIL"
label = "insufficient"
""",
    )

    cfg = load_analytics_config(path)

    assert cfg.health.liquidity.points_for(3.0) == 25
    assert cfg.health.liquidity.points_for(1.83) == 12
    assert cfg.health.liquidity.points_for(1.0) == 0
    assert [g.grade for g in cfg.health.grades] == ["PASS", "FAIL"]
    # Untouched buckets keep their defaults
    assert cfg.health.profitability == AnalyticsConfig().health.profitability


def test_recommendation_rules_replace_defaults(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
[[recommendations]]
key = "cash_buffer"
metric = "quick_ratio"
operator = "<"
threshold = 1.0
severity = "warning"
title = "Thin cash buffer"
""",
    )

    cfg = load_analytics_config(path)

    assert len(cfg.recommendations) == 1
    rule = cfg.recommendations[0]
    assert rule.key == "cash_buffer"
    assert rule.matches(0.9)
    assert not rule.matches(1.0)


@pytest.mark.parametrize(
    "content",
    [
        "[forecast]\nunknown_knob = 1\n",
        "[forecast]\ntrend_window = 'six'\n",
        "[forecast]\ntrend_window = 2.7\n",
        "[anomalies]\nmin_sample_size = true\n",
        "[anomalies]\nexclude_self = 1\n",
        "[anomalies]\nmedium_threshold = 4.0\n",
        "[budgets]\nwarning_threshold = 120\n",
        "[forecast]\nconfidence_decay = 1.0\n",
        "[[health.liquidity]]\nthreshold = 1.0\npoints = 10\n"
        "[[health.liquidity]]\nthreshold = 2.0\npoints = 20\n",
        "[[health.liquidity]]\nthreshold = 2.0\npoints = 40\n",
        "[[health.grades]]\nmin_score = 50\ngrade = 'X'\n",
        "[[recommendations]]\nkey = 'k'\nmetric = 'roa'\noperator = '!='\n"
        "threshold = 1\nseverity = 'info'\n",
        "[[recommendations]]\nkey = 'k'\nmetric = 'roa'\n",
        "this is not toml",
    ],
)
def test_invalid_configuration_is_rejected(tmp_path: Path, content: str) -> None:
    with pytest.raises(InvalidInput):
        load_analytics_config(_write(tmp_path, content))


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_analytics_config(str(tmp_path / "missing.toml"))
