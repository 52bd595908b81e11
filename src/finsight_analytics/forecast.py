# FinSight Analytics - Financial analytics engine for SMB bookkeeping
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Cash-flow forecasting.

1. History
   -------
   ``monthly_income_expense(transactions)`` aggregates a transactions frame
   into one row per calendar month (income, expense, net_flow), months
   without activity included with zeros. ``monthly_net_flows()`` returns the
   same series as MonthlyNetFlow records, the input of the forecaster.

2. Forecast
   --------
   ``forecast_cashflow(history, horizon)`` projects ``horizon`` months past
   the last historical month:

   - the baseline is an ordinary least-squares line fitted on the last
     ``trend_window`` months; with a single month the line is flat, so the
     forecast repeats the last known value;
   - realistic[i] is the line extended i months forward;
   - optimistic[i] = realistic[i] + |realistic[i]| * up_i and
     pessimistic[i] = realistic[i] - |realistic[i]| * down_i, where both
     spreads grow linearly with i up to ``max_spread``. For positive flows
     this is realistic * (1 +/- spread); using the absolute value keeps
     optimistic >= realistic >= pessimistic when the flow is negative;
   - confidence[i] = ceiling * quality * decay ** (i - 1), where quality
     grows from 0.5 to 1 with the history length. It is strictly
     decreasing in i, strictly positive and never above the ceiling.

   Labels continue the history's 'YYYY-MM' keys without gaps.

3. Insights and risk
   -----------------
   ``summarize_history()`` describes the recent trend (direction, slope,
   average, volatility). ``assess_cashflow_risk()`` scores monthly income
   and expense series against a small table of additive risk factors.

4. Patterns, seasonality and alerts
   --------------------------------
   ``analyze_cashflow_patterns()`` gives income and expense their own trend,
   volatility and monthly average. ``seasonal_averages()`` averages both per
   calendar month. ``cashflow_alerts()`` turns a forecast and the pending
   receivables into alerts, and ``year_over_year()`` compares revenue,
   expense and profit of two calendar years.
"""

import logging
import math
from collections.abc import Mapping, Sequence
from datetime import date
from typing import Optional, Union

import pandas as pd

from .config import ForecastSettings
from .exceptions import InsufficientData, InvalidHorizon, InvalidInput
from .io import Transactions, ensure_frame, frame_to_transactions
from .models import (
    CashflowAlert,
    CashflowInsights,
    CashflowPatterns,
    CashflowRisk,
    FlowPattern,
    ForecastPoint,
    MonthlyNetFlow,
    YearComparison,
    YearTotals,
    mark_overdue,
)
from .periods import is_month_key, months_between, shift_month_key

logger = logging.getLogger(__name__)

History = Union[Sequence[MonthlyNetFlow], Mapping[str, float]]


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


def monthly_income_expense(transactions: Transactions) -> pd.DataFrame:
    """
    Aggregate transactions per calendar month.

    Returns
    -------
    pandas.DataFrame
        Columns: period ('YYYY-MM'), income, expense, net_flow. One row per
        month between the first and last transaction, chronological.
    """
    frame = ensure_frame(transactions)
    columns = ["period", "income", "expense", "net_flow"]
    if frame.empty:
        return pd.DataFrame(columns=columns)

    d = frame.assign(month=frame["date"].dt.to_period("M"))
    pivot = d.pivot_table(
        index="month", columns="type", values="amount", aggfunc="sum", fill_value=0.0
    )
    months = pd.period_range(d["month"].min(), d["month"].max(), freq="M")
    pivot = pivot.reindex(months, fill_value=0.0)

    out = pd.DataFrame(
        {
            "period": [str(m) for m in pivot.index],
            "income": pivot["income"].astype(float).to_numpy()
            if "income" in pivot.columns
            else 0.0,
            "expense": pivot["expense"].astype(float).to_numpy()
            if "expense" in pivot.columns
            else 0.0,
        }
    )
    out["net_flow"] = out["income"] - out["expense"]
    return out[columns]


def monthly_net_flows(transactions: Transactions) -> list[MonthlyNetFlow]:
    """Return income minus expense per month as MonthlyNetFlow records."""
    monthly = monthly_income_expense(transactions)
    return [
        MonthlyNetFlow(period=row.period, net_flow=float(row.net_flow))
        for row in monthly.itertuples(index=False)
    ]


def _normalize_history(history: History) -> list[MonthlyNetFlow]:
    """Validate a history and return it as a list of MonthlyNetFlow."""
    if isinstance(history, Mapping):
        points = [MonthlyNetFlow(period=str(k), net_flow=v) for k, v in history.items()]
    else:
        points = list(history)

    out: list[MonthlyNetFlow] = []
    for point in points:
        if not is_month_key(point.period):
            raise InvalidInput(
                f"History period {point.period!r} is not a YYYY-MM key.", field="period"
            )
        try:
            value = float(point.net_flow)
        except (TypeError, ValueError) as exc:
            raise InvalidInput(
                f"Net flow for {point.period} must be a number.", field="net_flow"
            ) from exc
        if not math.isfinite(value):
            raise InvalidInput(
                f"Net flow for {point.period} must be finite.", field="net_flow"
            )
        if out and months_between(out[-1].period, point.period) != 1:
            raise InvalidInput(
                "History must list consecutive months in chronological order "
                f"({out[-1].period} is followed by {point.period}).",
                field="period",
            )
        out.append(MonthlyNetFlow(period=point.period, net_flow=value))
    return out


def _linear_trend(values: Sequence[float]) -> tuple[float, float]:
    """
    Least-squares line through (0, v0), (1, v1), ...

    Returns (slope, intercept). A single value gives a flat line.
    """
    n = len(values)
    if n == 1:
        return 0.0, float(values[0])

    mean_x = (n - 1) / 2.0
    mean_y = sum(values) / n
    sxx = sum((x - mean_x) ** 2 for x in range(n))
    sxy = sum((x - mean_x) * (y - mean_y) for x, y in enumerate(values))
    slope = sxy / sxx
    return slope, mean_y - slope * mean_x


def mean_and_std(values: Sequence[float]) -> tuple[float, float]:
    """Mean and population standard deviation (ddof=0) of ``values``."""
    series = pd.Series(values, dtype="float64")
    return float(series.mean()), float(series.std(ddof=0))


# ---------------------------------------------------------------------------
# Forecast
# ---------------------------------------------------------------------------


def _check_horizon(horizon: int) -> int:
    if isinstance(horizon, bool) or not isinstance(horizon, int) or horizon <= 0:
        raise InvalidHorizon(horizon)
    return horizon


def forecast_cashflow(
    history: History,
    horizon: int,
    settings: Optional[ForecastSettings] = None,
) -> list[ForecastPoint]:
    """
    Project monthly net cash flow ``horizon`` months ahead.

    Args:
        history: Consecutive monthly net flows, oldest first (MonthlyNetFlow
            records or an ordered {'YYYY-MM': net_flow} mapping).
        horizon: Number of months to forecast, >= 1.
        settings: Trend window, spreads and confidence curve; defaults to
            ForecastSettings().

    Returns:
        One ForecastPoint per future month, in chronological order.

    Raises:
        InvalidHorizon: if horizon is not a positive integer.
        InsufficientData: if the history is empty.
        InvalidInput: if the history is not a run of consecutive months.
    """
    settings = settings or ForecastSettings()
    _check_horizon(horizon)

    points = _normalize_history(history)
    if not points:
        raise InsufficientData(
            "Cash-flow forecast needs at least one month of history.",
            required=1,
            actual=0,
        )

    window = [p.net_flow for p in points[-settings.trend_window :]]
    slope, intercept = _linear_trend(window)
    quality = 0.5 + 0.5 * min(1.0, len(points) / settings.full_history_months)
    last_label = points[-1].period

    logger.debug(
        "Forecasting %d months from %d months of history "
        "(window=%d, slope=%.2f, quality=%.2f)",
        horizon,
        len(points),
        len(window),
        slope,
        quality,
    )

    forecast: list[ForecastPoint] = []
    for i in range(1, horizon + 1):
        realistic = intercept + slope * (len(window) - 1 + i)
        growth = settings.spread_growth * (i - 1)
        up = min(settings.upward_spread + growth, settings.max_spread)
        down = min(settings.downward_spread + growth, settings.max_spread)
        magnitude = abs(realistic)

        forecast.append(
            ForecastPoint(
                period_label=shift_month_key(last_label, i),
                optimistic=round(realistic + magnitude * up, 2),
                realistic=round(realistic, 2),
                pessimistic=round(realistic - magnitude * down, 2),
                confidence=settings.confidence_ceiling
                * quality
                * settings.confidence_decay ** (i - 1),
            )
        )
    return forecast


def summarize_history(
    history: History, settings: Optional[ForecastSettings] = None
) -> CashflowInsights:
    """
    Describe the recent cash-flow trend.

    Uses the same window as the forecast. ``volatility`` is the population
    standard deviation of the window.

    Raises:
        InsufficientData: if the history is empty.
    """
    settings = settings or ForecastSettings()
    points = _normalize_history(history)
    if not points:
        raise InsufficientData(
            "Cash-flow insights need at least one month of history.",
            required=1,
            actual=0,
        )

    window = [p.net_flow for p in points[-settings.trend_window :]]
    slope, _ = _linear_trend(window)
    if slope > 0:
        trend = "positive"
    elif slope < 0:
        trend = "negative"
    else:
        trend = "stable"

    average, volatility = mean_and_std(window)
    return CashflowInsights(
        months=len(points),
        trend=trend,
        slope=round(slope, 2),
        average_monthly_flow=round(average, 2),
        volatility=round(volatility, 2),
    )


# ---------------------------------------------------------------------------
# Risk
# ---------------------------------------------------------------------------

# (key, points, label, recommendation), evaluated independently.
RISK_FACTORS: tuple[tuple[str, int, str, str], ...] = (
    (
        "negative_cash_flow",
        30,
        "Negative cash flow",
        "Step up receivable collection and postpone non-essential spending.",
    ),
    (
        "unstable_income",
        25,
        "Unstable income",
        "Diversify revenue sources and build a stable customer base.",
    ),
    (
        "uncontrolled_expenses",
        20,
        "Uncontrolled expenses",
        "Set up a detailed budget and keep variable costs under control.",
    ),
    (
        "low_cash_flow_margin",
        15,
        "Low cash-flow margin",
        "Improve gross margin and optimise the cost structure.",
    ),
)

INCOME_VOLATILITY_LIMIT = 0.3
EXPENSE_VOLATILITY_LIMIT = 0.2
CASH_FLOW_MARGIN_LIMIT = 0.1


def coefficient_of_variation(values: Sequence[float]) -> float:
    """Population standard deviation divided by the mean (0 when undefined)."""
    if len(values) < 2:
        return 0.0
    mean, std = mean_and_std(values)
    if mean == 0:
        return 0.0
    return std / abs(mean)


def assess_cashflow_risk(
    income: Sequence[float], expense: Sequence[float]
) -> CashflowRisk:
    """
    Score cash-flow risk from monthly income and expense totals.

    Each factor of RISK_FACTORS adds its points when it applies:

    - negative_cash_flow     total income < total expense
    - unstable_income        income coefficient of variation > 0.3
    - uncontrolled_expenses  expense coefficient of variation > 0.2
    - low_cash_flow_margin   |net flow| / total income < 0.1 (or no income)

    The score is capped at 100; level is 'high' above 70, 'medium' above 40,
    'low' otherwise.

    Raises:
        InsufficientData: if both series are empty.
    """
    if not income and not expense:
        raise InsufficientData(
            "Cash-flow risk needs at least one month of income or expense.",
            required=1,
            actual=0,
        )

    total_income = float(sum(income))
    total_expense = float(sum(expense))
    net = total_income - total_expense

    applies = {
        "negative_cash_flow": net < 0,
        "unstable_income": coefficient_of_variation(income) > INCOME_VOLATILITY_LIMIT,
        "uncontrolled_expenses": coefficient_of_variation(expense)
        > EXPENSE_VOLATILITY_LIMIT,
        "low_cash_flow_margin": total_income <= 0
        or abs(net) / total_income < CASH_FLOW_MARGIN_LIMIT,
    }

    score = 0
    factors: list[str] = []
    recommendations: list[str] = []
    for key, points, label, recommendation in RISK_FACTORS:
        if applies[key]:
            score += points
            factors.append(label)
            recommendations.append(recommendation)

    score = min(score, 100)
    if score > 70:
        level = "high"
    elif score > 40:
        level = "medium"
    else:
        level = "low"

    return CashflowRisk(
        score=score,
        level=level,
        factors=tuple(factors),
        recommendations=tuple(recommendations),
    )


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------


def _flow_pattern(values: Sequence[float]) -> FlowPattern:
    slope, _ = _linear_trend(values)
    if slope > 0:
        trend = "increasing"
    elif slope < 0:
        trend = "decreasing"
    else:
        trend = "stable"
    average, _ = mean_and_std(values)
    return FlowPattern(
        trend=trend,
        slope=round(slope, 2),
        volatility=round(coefficient_of_variation(values), 4),
        average_monthly=round(average, 2),
    )


def analyze_cashflow_patterns(transactions: Transactions) -> CashflowPatterns:
    """
    Trend, volatility and monthly average of income and expense separately.

    The trend is the least-squares slope over every month of history and
    volatility is the coefficient of variation of the monthly totals.

    Raises:
        InsufficientData: if there are no transactions.
    """
    monthly = monthly_income_expense(transactions)
    if monthly.empty:
        raise InsufficientData(
            "Cash-flow patterns need at least one month of history.",
            required=1,
            actual=0,
        )
    return CashflowPatterns(
        income=_flow_pattern([float(v) for v in monthly["income"]]),
        expense=_flow_pattern([float(v) for v in monthly["expense"]]),
    )


def seasonal_averages(transactions: Transactions) -> pd.DataFrame:
    """
    Average monthly income and expense per calendar month.

    Every month between the first and the last transaction counts, quiet
    months included. Calendar months never seen in the history are 0.

    Returns
    -------
    pandas.DataFrame
        Columns: month (1-12), income, expense; always twelve rows.
    """
    monthly = monthly_income_expense(transactions)
    calendar = pd.RangeIndex(1, 13, name="month")
    if monthly.empty:
        return pd.DataFrame({"month": list(calendar), "income": 0.0, "expense": 0.0})

    d = monthly.assign(month=monthly["period"].str[5:7].astype(int))
    averages = (
        d.groupby("month")[["income", "expense"]]
        .mean()
        .reindex(calendar, fill_value=0.0)
        .round(2)
    )
    return averages.reset_index()[["month", "income", "expense"]]


# ---------------------------------------------------------------------------
# Alerts
# ---------------------------------------------------------------------------


def cashflow_alerts(
    transactions: Transactions,
    as_of: date,
    forecast: Optional[Sequence[ForecastPoint]] = None,
) -> list[CashflowAlert]:
    """
    Alerts a bookkeeper should act on, most urgent first.

    - critical: the realistic forecast turns negative (first such month);
    - warning: only the pessimistic scenario goes negative;
    - warning: income still pending after its due date (or its booking
      date when there is none) on ``as_of``, or already marked overdue.
    """
    alerts: list[CashflowAlert] = []
    points = list(forecast or [])

    shortfall = next((p for p in points if p.realistic < 0), None)
    at_risk = [p for p in points if p.pessimistic < 0]
    if shortfall is not None:
        alerts.append(
            CashflowAlert(
                type="critical",
                title="Cash shortfall",
                message=(
                    f"Net cash flow is expected to turn negative in "
                    f"{shortfall.period_label} ({shortfall.realistic:,.2f})."
                ),
                urgency="immediate",
                recommendations=(
                    "Collect outstanding receivables now",
                    "Suspend non-essential spending",
                    "Consider short-term financing",
                ),
            )
        )
    elif at_risk:
        alerts.append(
            CashflowAlert(
                type="warning",
                title="Cash-flow risk",
                message=(
                    f"The pessimistic scenario is negative in {len(at_risk)} of "
                    f"the next {len(points)} months."
                ),
                urgency="high",
                recommendations=(
                    "Review budget execution",
                    "Tighten cash-flow management",
                    "Set aside an emergency reserve",
                ),
            )
        )

    frame = ensure_frame(transactions)
    receivables = frame_to_transactions(frame[frame["type"] == "income"])
    overdue = [tx for tx in mark_overdue(receivables, as_of) if tx.status == "overdue"]
    if overdue:
        total = sum(tx.amount for tx in overdue)
        alerts.append(
            CashflowAlert(
                type="warning",
                title="Overdue receivables",
                message=(
                    f"{len(overdue)} receivable(s) overdue on {as_of.isoformat()} "
                    f"for a total of {total:,.2f}."
                ),
                urgency="medium",
                recommendations=(
                    "Contact overdue customers",
                    "Review the credit policy",
                    "Consider receivables insurance",
                ),
            )
        )

    logger.debug("%d cash-flow alert(s) as of %s", len(alerts), as_of)
    return alerts


# ---------------------------------------------------------------------------
# Year over year
# ---------------------------------------------------------------------------


def _year_totals(frame: pd.DataFrame, year: int) -> YearTotals:
    in_year = frame[frame["date"].dt.year == year]
    revenue = float(in_year.loc[in_year["type"] == "income", "amount"].sum())
    expense = float(in_year.loc[in_year["type"] == "expense", "amount"].sum())
    return YearTotals(
        year=year,
        revenue=round(revenue, 2),
        expense=round(expense, 2),
        profit=round(revenue - expense, 2),
    )


def _growth(current: float, previous: float) -> float:
    """Percentage change; 0 when there is no base to compare with."""
    if previous == 0:
        return 0.0
    return round((current - previous) / abs(previous) * 100.0, 1)


def year_over_year(
    transactions: Transactions,
    year: Optional[int] = None,
    compare_year: Optional[int] = None,
) -> YearComparison:
    """
    Compare revenue, expense and profit of two calendar years.

    ``year`` defaults to the year of the latest transaction and
    ``compare_year`` to the year before it. Growth is a percentage of the
    previous year's figure (of its magnitude for profit, so a smaller loss
    reads as growth).

    Raises:
        InsufficientData: if ``year`` is omitted and there are no transactions.
    """
    frame = ensure_frame(transactions)
    if year is None:
        if frame.empty:
            raise InsufficientData(
                "Year-over-year comparison needs at least one transaction.",
                required=1,
                actual=0,
            )
        year = int(frame["date"].dt.year.max())
    previous_year = compare_year if compare_year is not None else year - 1

    current = _year_totals(frame, year)
    previous = _year_totals(frame, previous_year)
    return YearComparison(
        current=current,
        previous=previous,
        revenue_growth=_growth(current.revenue, previous.revenue),
        expense_growth=_growth(current.expense, previous.expense),
        profit_growth=_growth(current.profit, previous.profit),
    )
