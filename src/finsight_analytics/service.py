# FinSight Analytics - Financial analytics engine for SMB bookkeeping
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Request-level orchestration for FinSight Analytics.

The analytics components are independent pure functions. This module is
the thin layer a request handler calls once it has fetched the inputs:
it runs the relevant components with the configured thresholds and
returns JSON-ready dictionaries.

    financial_health_report   ratios + health score + recommendations
    budget_report             budget executions + overview for a period
    cashflow_forecast_report  history + insights + forecast + risk, with
                              patterns, seasonality, alerts and the
                              year-over-year comparison
    anomaly_report            anomaly records + summary + weekday patterns

``error_response(exc)`` turns an AnalyticsError into a response body with an
HTTP-like status, so callers can tell a bad request (400) from missing
history (422) from broken stored data (500).
"""

import logging
from collections.abc import Sequence
from datetime import date
from typing import Any, Optional

from .anomalies import detect_anomalies, summarize_anomalies, weekday_patterns
from .budgets import budget_overview, track_budgets
from .config import AnalyticsConfig
from .exceptions import (
    CLIENT_ERROR,
    DATA_ERROR,
    INSUFFICIENT_DATA,
    AnalyticsError,
    InvalidInput,
)
from .forecast import (
    analyze_cashflow_patterns,
    assess_cashflow_risk,
    cashflow_alerts,
    forecast_cashflow,
    monthly_income_expense,
    seasonal_averages,
    summarize_history,
    year_over_year,
)
from .health import score_health
from .io import Transactions, ensure_frame
from .models import (
    TRANSACTION_TYPES,
    BalanceSheetSnapshot,
    BudgetDefinition,
    IncomeStatementSnapshot,
    MonthlyNetFlow,
)
from .ratios import compute_ratios
from .recommendations import build_recommendations

logger = logging.getLogger(__name__)

STATUS_BY_CATEGORY: dict[str, int] = {
    CLIENT_ERROR: 400,
    INSUFFICIENT_DATA: 422,
    DATA_ERROR: 500,
}


def financial_health_report(
    balance_sheet: BalanceSheetSnapshot,
    income_statement: IncomeStatementSnapshot,
    config: Optional[AnalyticsConfig] = None,
) -> dict[str, Any]:
    """Ratios, health score and recommendations for one pair of snapshots."""
    config = config or AnalyticsConfig()

    ratios = compute_ratios(balance_sheet, income_statement)
    health = score_health(ratios, config.health)
    recommendations = build_recommendations(ratios, health, config.recommendations)

    return {
        "as_of": balance_sheet.as_of.isoformat(),
        "period": income_statement.period,
        "ratios": ratios.to_dict(),
        "health": health.to_dict(),
        "recommendations": [r.to_dict() for r in recommendations],
    }


def budget_report(
    budgets: Sequence[BudgetDefinition],
    transactions: Transactions,
    period: Optional[str] = None,
    config: Optional[AnalyticsConfig] = None,
) -> dict[str, Any]:
    """
    Budget executions and their overview.

    If ``period`` is given only the budgets defined for it are tracked.
    """
    config = config or AnalyticsConfig()
    if period is not None:
        budgets = [b for b in budgets if b.period == period]

    executions = track_budgets(budgets, transactions, config.budgets)
    overview = budget_overview(executions, period)

    return {
        "period": period,
        "executions": [e.to_dict() for e in executions],
        "overview": overview.to_dict(),
    }


def cashflow_forecast_report(
    transactions: Transactions,
    horizon: int,
    config: Optional[AnalyticsConfig] = None,
    as_of: Optional[date] = None,
) -> dict[str, Any]:
    """
    Monthly history, trend insights, forecast and risk from transactions.

    ``as_of`` (default: today) is the date receivables are checked against
    for the overdue alert.
    """
    config = config or AnalyticsConfig()
    as_of = as_of or date.today()

    frame = ensure_frame(transactions)
    monthly = monthly_income_expense(frame)
    history = [
        MonthlyNetFlow(period=row.period, net_flow=float(row.net_flow))
        for row in monthly.itertuples(index=False)
    ]

    forecast = forecast_cashflow(history, horizon, config.forecast)
    insights = summarize_history(history, config.forecast)
    risk = assess_cashflow_risk(
        [float(v) for v in monthly["income"]], [float(v) for v in monthly["expense"]]
    )
    patterns = analyze_cashflow_patterns(frame)
    alerts = cashflow_alerts(frame, as_of, forecast)
    comparison = year_over_year(frame)

    return {
        "historical": [h.to_dict() for h in history],
        "insights": insights.to_dict(),
        "forecast": [p.to_dict() for p in forecast],
        "risk": risk.to_dict(),
        "patterns": patterns.to_dict(),
        "seasonality": seasonal_averages(frame).to_dict(orient="records"),
        "alerts": [a.to_dict() for a in alerts],
        "comparison": comparison.to_dict(),
    }


def anomaly_report(
    transactions: Transactions,
    transaction_type: str,
    config: Optional[AnalyticsConfig] = None,
) -> dict[str, Any]:
    """Anomalies among the transactions of one type, with a summary."""
    config = config or AnalyticsConfig()
    if transaction_type not in TRANSACTION_TYPES:
        raise InvalidInput(
            f"Transaction type must be income or expense, got {transaction_type!r}.",
            field="type",
        )

    frame = ensure_frame(transactions)
    population = frame[frame["type"] == transaction_type]

    records = detect_anomalies(population, config.anomalies)
    summary = summarize_anomalies(records)
    patterns = weekday_patterns(population)

    return {
        "type": transaction_type,
        "population": len(population),
        "anomalies": [r.to_dict() for r in records],
        "summary": summary.to_dict(),
        "patterns": patterns.to_dict(orient="records"),
    }


def error_response(exc: AnalyticsError) -> dict[str, Any]:
    """Build a response body for an analytics error."""
    status = STATUS_BY_CATEGORY.get(exc.category, 500)
    if status >= 500:
        logger.error("Analytics data error: %s", exc)
    else:
        logger.info("Analytics request rejected (%s): %s", exc.code, exc)

    body = exc.to_dict()
    body["status"] = status
    body["success"] = False
    return body
