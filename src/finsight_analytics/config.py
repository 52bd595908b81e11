# FinSight Analytics - Financial analytics engine for SMB bookkeeping
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Threshold configuration for FinSight Analytics.

This module is responsible for:
- defining the tunable tables used by the analytics components (health
  score tiers, grade bands, recommendation rules, budget thresholds,
  forecast spreads and confidence decay, anomaly cut-offs),
- providing documented defaults for each of them,
- loading overrides from a TOML file into typed, frozen dataclasses.

Nothing here is global state: every component receives its settings as an
explicit argument, and falls back to the defaults below when none is given.

Expected TOML layout (every section is optional)
-----------------------------------------------
    [[health.liquidity]]
    threshold = 2.0
    points = 25
    ...
    [health]
    liquidity_floor = 5

    [[health.grades]]
    min_score = 85
    grade = "A"
    label = "excellent"

    [[recommendations]]
    key = "low_liquidity"
    metric = "current_ratio"
    operator = "<"
    threshold = 1.0
    severity = "error"
    title = "Insufficient liquidity"
    body = "..."

    [budgets]
    warning_threshold = 80.0
    exceeded_threshold = 100.0

    [forecast]
    trend_window = 6
    ...

    [anomalies]
    min_sample_size = 5
    medium_threshold = 2.0
    high_threshold = 3.0
    exclude_self = true

When ``[[recommendations]]`` is present it replaces the default rule table.
"""

import logging
import math
import operator
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Optional

import tomllib

from .exceptions import InvalidInput

logger = logging.getLogger(__name__)

SEVERITIES: tuple[str, ...] = ("error", "warning", "info", "success")

OPERATORS: dict[str, Callable[[float, float], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


# ---------------------------------------------------------------------------
# Health score tiers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Tier:
    """One step of a tier table: reaching ``threshold`` earns ``points``."""

    threshold: float
    points: int


@dataclass(frozen=True)
class TierTable:
    """
    Ordered discretisation of one ratio into points.

    Tiers are checked in order; the first one reached wins. When
    ``higher_is_better`` is true a tier is reached by ``value >= threshold``,
    otherwise by ``value <= threshold``. Values reaching no tier (including
    NaN) earn ``floor_points``, so every input maps to exactly one outcome.
    """

    metric: str
    tiers: tuple[Tier, ...]
    floor_points: int
    higher_is_better: bool = True

    def __post_init__(self) -> None:
        thresholds = [t.threshold for t in self.tiers]
        points = [t.points for t in self.tiers] + [self.floor_points]

        if self.higher_is_better:
            ordered = all(a > b for a, b in zip(thresholds, thresholds[1:]))
        else:
            ordered = all(a < b for a, b in zip(thresholds, thresholds[1:]))
        if not ordered:
            raise InvalidInput(
                f"Tier thresholds for {self.metric!r} must be strictly monotonic.",
                field=self.metric,
            )
        if any(a < b for a, b in zip(points, points[1:])):
            raise InvalidInput(
                f"Tier points for {self.metric!r} must not increase down the table.",
                field=self.metric,
            )
        if any(p < 0 for p in points):
            raise InvalidInput(
                f"Tier points for {self.metric!r} cannot be negative.",
                field=self.metric,
            )

    @property
    def max_points(self) -> int:
        return self.tiers[0].points if self.tiers else self.floor_points

    def points_for(self, value: float) -> int:
        reached = operator.ge if self.higher_is_better else operator.le
        for tier in self.tiers:
            if reached(value, tier.threshold):
                return tier.points
        return self.floor_points


@dataclass(frozen=True)
class GradeBand:
    min_score: float
    grade: str
    label: str


DEFAULT_LIQUIDITY = TierTable(
    metric="current_ratio",
    tiers=(Tier(2.0, 25), Tier(1.5, 20), Tier(1.0, 15), Tier(0.8, 10)),
    floor_points=5,
)

DEFAULT_PROFITABILITY = TierTable(
    metric="net_profit_margin",
    tiers=(Tier(15.0, 25), Tier(10.0, 20), Tier(5.0, 15), Tier(0.0, 10)),
    floor_points=0,
)

DEFAULT_LEVERAGE = TierTable(
    metric="debt_to_asset_ratio",
    tiers=(Tier(30.0, 25), Tier(50.0, 20), Tier(70.0, 15), Tier(85.0, 10)),
    floor_points=5,
    higher_is_better=False,
)

DEFAULT_RETURNS = TierTable(
    metric="roa",
    tiers=(Tier(15.0, 25), Tier(10.0, 20), Tier(5.0, 15), Tier(0.0, 10)),
    floor_points=0,
)

DEFAULT_GRADES: tuple[GradeBand, ...] = (
    GradeBand(85, "A", "excellent"),
    GradeBand(70, "B", "good"),
    GradeBand(50, "C", "fair"),
    GradeBand(35, "D", "needs improvement"),
    GradeBand(0, "F", "needs improvement"),
)


@dataclass(frozen=True)
class HealthSettings:
    liquidity: TierTable = DEFAULT_LIQUIDITY
    profitability: TierTable = DEFAULT_PROFITABILITY
    leverage: TierTable = DEFAULT_LEVERAGE
    returns: TierTable = DEFAULT_RETURNS
    grades: tuple[GradeBand, ...] = DEFAULT_GRADES

    def __post_init__(self) -> None:
        total = sum(
            t.max_points
            for t in (self.liquidity, self.profitability, self.leverage, self.returns)
        )
        if total > 100:
            raise InvalidInput(
                f"Health tiers can award at most 100 points in total, got {total}.",
                field="health",
            )
        mins = [g.min_score for g in self.grades]
        if not mins or any(a <= b for a, b in zip(mins, mins[1:])) or mins[-1] > 0:
            raise InvalidInput(
                "Grade bands must have strictly decreasing min_score values "
                "ending at 0 or below.",
                field="grades",
            )


# ---------------------------------------------------------------------------
# Recommendation rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RecommendationRule:
    """
    A standalone predicate over the ratio set.

    ``metric`` names a RatioSet attribute, or ``health_score`` for the
    composite score. The rule fires when ``metric <operator> threshold``.
    """

    key: str
    metric: str
    operator: str
    threshold: float
    severity: str
    title: str
    body: str

    def __post_init__(self) -> None:
        if self.operator not in OPERATORS:
            raise InvalidInput(
                f"Rule {self.key!r}: unsupported operator {self.operator!r}.",
                field="operator",
            )
        if self.severity not in SEVERITIES:
            raise InvalidInput(
                f"Rule {self.key!r}: unknown severity {self.severity!r}.",
                field="severity",
            )

    def matches(self, value: float) -> bool:
        if math.isnan(value):
            return False
        return OPERATORS[self.operator](value, self.threshold)


DEFAULT_RULES: tuple[RecommendationRule, ...] = (
    RecommendationRule(
        key="insufficient_liquidity",
        metric="current_ratio",
        operator="<",
        threshold=1.0,
        severity="error",
        title="Insufficient liquidity",
        body=(
            "The current ratio is below 1: short-term obligations exceed "
            "current assets. Speed up receivable collection, postpone "
            "non-essential spending or arrange short-term financing."
        ),
    ),
    RecommendationRule(
        key="idle_cash",
        metric="current_ratio",
        operator=">",
        threshold=3.0,
        severity="info",
        title="Idle cash",
        body=(
            "The current ratio is very high, which suggests idle funds. "
            "Consider investing or expanding the business to put the cash "
            "to work."
        ),
    ),
    RecommendationRule(
        key="low_profitability",
        metric="net_profit_margin",
        operator="<",
        threshold=5.0,
        severity="warning",
        title="Low profitability",
        body=(
            "The net profit margin is below 5%. Review the cost structure, "
            "pricing strategy and operating efficiency."
        ),
    ),
    RecommendationRule(
        key="excessive_leverage",
        metric="debt_to_asset_ratio",
        operator=">",
        threshold=70.0,
        severity="error",
        title="Excessive leverage",
        body=(
            "Liabilities exceed 70% of total assets, which is a high financial "
            "risk. Prioritise repaying part of the debt to improve the "
            "capital structure."
        ),
    ),
    RecommendationRule(
        key="efficient_asset_use",
        metric="roa",
        operator=">",
        threshold=15.0,
        severity="success",
        title="Efficient asset use",
        body=(
            "Return on assets is excellent. Keep the current operating "
            "strategy and consider a measured expansion."
        ),
    ),
    RecommendationRule(
        key="weak_quick_ratio",
        metric="quick_ratio",
        operator="<",
        threshold=0.8,
        severity="warning",
        title="Liquidity depends on inventory",
        body=(
            "Without inventory, current assets cover less than 80% of current "
            "liabilities. Watch stock levels and receivable collection."
        ),
    ),
    RecommendationRule(
        key="thin_gross_margin",
        metric="gross_profit_margin",
        operator="<",
        threshold=20.0,
        severity="warning",
        title="Thin gross margin",
        body=(
            "Less than 20% of revenue remains after the cost of goods. "
            "Negotiate supplier prices or review product pricing."
        ),
    ),
    RecommendationRule(
        key="high_debt_to_equity",
        metric="debt_to_equity_ratio",
        operator=">",
        threshold=200.0,
        severity="warning",
        title="Debt outweighs equity",
        body=(
            "Liabilities are more than twice the owners' equity. New "
            "borrowing should be weighed carefully."
        ),
    ),
    RecommendationRule(
        key="negative_roe",
        metric="roe",
        operator="<",
        threshold=0.0,
        severity="error",
        title="Losses erode equity",
        body=(
            "The business is losing money relative to the owners' equity. "
            "Identify the loss-making activities and act on them quickly."
        ),
    ),
    RecommendationRule(
        key="low_health_score",
        metric="health_score",
        operator="<",
        threshold=50.0,
        severity="warning",
        title="Overall financial health needs attention",
        body=(
            "The composite health score is below 50. Address the liquidity, "
            "profitability and leverage findings above in priority order."
        ),
    ),
)


# ---------------------------------------------------------------------------
# Budgets, forecast, anomalies
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BudgetSettings:
    """Usage thresholds, in percent of the planned amount."""

    warning_threshold: float = 80.0
    exceeded_threshold: float = 100.0

    def __post_init__(self) -> None:
        if not 0 <= self.warning_threshold <= self.exceeded_threshold:
            raise InvalidInput(
                "Budget thresholds must satisfy 0 <= warning <= exceeded.",
                field="budgets",
            )


@dataclass(frozen=True)
class ForecastSettings:
    """
    Cash-flow forecast parameters.

    Attributes
    ----------
    trend_window :
        Number of most recent months used for the linear trend.
    upward_spread / downward_spread :
        Relative band width of the optimistic / pessimistic scenarios for
        the first forecast month.
    spread_growth :
        Added to both spreads for every further month.
    max_spread :
        Upper bound for both spreads.
    confidence_ceiling :
        Confidence of the first month with a full history (never exceeded).
    confidence_decay :
        Multiplicative confidence decay per additional month, in (0, 1).
    full_history_months :
        History length at which the data-quality factor reaches 1.
    """

    trend_window: int = 6
    upward_spread: float = 0.10
    downward_spread: float = 0.10
    spread_growth: float = 0.05
    max_spread: float = 0.90
    confidence_ceiling: float = 0.95
    confidence_decay: float = 0.90
    full_history_months: int = 12

    def __post_init__(self) -> None:
        if self.trend_window < 1:
            raise InvalidInput("forecast.trend_window must be >= 1.", field="trend_window")
        if min(self.upward_spread, self.downward_spread, self.spread_growth) < 0:
            raise InvalidInput("Forecast spreads cannot be negative.", field="forecast")
        if not 0 < self.confidence_ceiling <= 1:
            raise InvalidInput(
                "forecast.confidence_ceiling must be in (0, 1].",
                field="confidence_ceiling",
            )
        if not 0 < self.confidence_decay < 1:
            raise InvalidInput(
                "forecast.confidence_decay must be in (0, 1).", field="confidence_decay"
            )
        if self.full_history_months < 1:
            raise InvalidInput(
                "forecast.full_history_months must be >= 1.",
                field="full_history_months",
            )


@dataclass(frozen=True)
class AnomalySettings:
    """
    Anomaly detection parameters.

    Standard deviations are population standard deviations (ddof=0).
    """

    min_sample_size: int = 5
    medium_threshold: float = 2.0
    high_threshold: float = 3.0
    exclude_self: bool = True

    def __post_init__(self) -> None:
        if self.min_sample_size < 2:
            raise InvalidInput(
                "anomalies.min_sample_size must be at least 2.", field="min_sample_size"
            )
        if not 0 < self.medium_threshold < self.high_threshold:
            raise InvalidInput(
                "Anomaly thresholds must satisfy 0 < medium < high.",
                field="anomalies",
            )


@dataclass(frozen=True)
class AnalyticsConfig:
    health: HealthSettings = field(default_factory=HealthSettings)
    recommendations: tuple[RecommendationRule, ...] = DEFAULT_RULES
    budgets: BudgetSettings = field(default_factory=BudgetSettings)
    forecast: ForecastSettings = field(default_factory=ForecastSettings)
    anomalies: AnomalySettings = field(default_factory=AnomalySettings)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        InvalidInput: if the TOML content cannot be parsed.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise InvalidInput(f"Failed to parse TOML config file: {path}") from exc

    return data


def _table(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    section = data.get(key) or {}
    if not isinstance(section, Mapping):
        raise InvalidInput(f"[{key}] must be a table.", field=key)
    return section


def _override(defaults: Any, section: Mapping[str, Any], name: str) -> Any:
    """Return ``defaults`` with the scalar fields found in ``section`` replaced."""
    known = {f.name for f in fields(defaults)}
    changes: dict[str, Any] = {}
    for key, value in section.items():
        if key not in known:
            raise InvalidInput(f"Unknown setting {name}.{key}.", field=f"{name}.{key}")
        current = getattr(defaults, key)
        try:
            if isinstance(current, bool):
                if not isinstance(value, bool):
                    raise TypeError(value)
                changes[key] = value
            elif isinstance(current, int):
                # 2.7 must not silently become 2
                if isinstance(value, bool) or (
                    isinstance(value, float) and not value.is_integer()
                ):
                    raise ValueError(value)
                changes[key] = int(value)
            else:
                changes[key] = float(value)
        except (TypeError, ValueError) as exc:
            raise InvalidInput(
                f"Invalid value for {name}.{key}: {value!r}.", field=f"{name}.{key}"
            ) from exc
    return replace(defaults, **changes)


def _parse_tier_table(
    health: Mapping[str, Any], name: str, default: TierTable
) -> TierTable:
    raw = health.get(name)
    floor = health.get(f"{name}_floor", default.floor_points)
    if raw is None:
        if floor == default.floor_points:
            return default
        return replace(default, floor_points=int(floor))

    if not isinstance(raw, list):
        raise InvalidInput(f"health.{name} must be an array of tables.", field=name)

    try:
        tiers = tuple(Tier(float(t["threshold"]), int(t["points"])) for t in raw)
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidInput(
            f"health.{name} entries need numeric 'threshold' and 'points'.",
            field=name,
        ) from exc

    return TierTable(
        metric=default.metric,
        tiers=tiers,
        floor_points=int(floor),
        higher_is_better=default.higher_is_better,
    )


def _parse_health(data: Mapping[str, Any]) -> HealthSettings:
    health = _table(data, "health")
    if not health:
        return HealthSettings()

    grades = DEFAULT_GRADES
    raw_grades = health.get("grades")
    if raw_grades is not None:
        try:
            grades = tuple(
                GradeBand(float(g["min_score"]), str(g["grade"]), str(g.get("label", "")))
                for g in raw_grades
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidInput(
                "health.grades entries need 'min_score' and 'grade'.", field="grades"
            ) from exc

    return HealthSettings(
        liquidity=_parse_tier_table(health, "liquidity", DEFAULT_LIQUIDITY),
        profitability=_parse_tier_table(health, "profitability", DEFAULT_PROFITABILITY),
        leverage=_parse_tier_table(health, "leverage", DEFAULT_LEVERAGE),
        returns=_parse_tier_table(health, "returns", DEFAULT_RETURNS),
        grades=grades,
    )


def _parse_rules(data: Mapping[str, Any]) -> tuple[RecommendationRule, ...]:
    raw = data.get("recommendations")
    if raw is None:
        return DEFAULT_RULES
    if not isinstance(raw, list):
        raise InvalidInput(
            "'recommendations' must be an array of tables.", field="recommendations"
        )

    rules: list[RecommendationRule] = []
    for item in raw:
        try:
            rules.append(
                RecommendationRule(
                    key=str(item["key"]),
                    metric=str(item["metric"]),
                    operator=str(item["operator"]),
                    threshold=float(item["threshold"]),
                    severity=str(item["severity"]),
                    title=str(item.get("title", item["key"])),
                    body=str(item.get("body", "")),
                )
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidInput(
                "Each [[recommendations]] entry needs key, metric, operator, "
                "threshold and severity.",
                field="recommendations",
            ) from exc
    return tuple(rules)


def load_analytics_config(config_path: Optional[str] = None) -> AnalyticsConfig:
    """
    Load analytics thresholds from a TOML file.

    Parameters
    ----------
    config_path :
        Path to the TOML file. When None, the documented defaults are
        returned; there is no implicit lookup of a default file.

    Returns
    -------
    AnalyticsConfig
        Parsed and validated configuration.
    """
    if config_path is None:
        return AnalyticsConfig()

    config_file = Path(config_path).resolve()
    raw = _load_toml(config_file)
    logger.debug("Loading analytics configuration from %s", config_file)

    return AnalyticsConfig(
        health=_parse_health(raw),
        recommendations=_parse_rules(raw),
        budgets=_override(BudgetSettings(), _table(raw, "budgets"), "budgets"),
        forecast=_override(ForecastSettings(), _table(raw, "forecast"), "forecast"),
        anomalies=_override(AnomalySettings(), _table(raw, "anomalies"), "anomalies"),
    )
