# FinSight Analytics - Financial analytics engine for SMB bookkeeping
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Tabular views of analytics results.

These helpers convert result records into pandas DataFrames with a stable
column order, ready to be printed by the CLI (``DataFrame.to_string``).
They do not compute anything beyond rounding.
"""

from collections.abc import Sequence

import pandas as pd

from .models import AnomalyRecord, BudgetExecution, ForecastPoint, HealthScore, Recommendation
from .ratios import RatioResult


def ratios_to_dataframe(ratios: Sequence[RatioResult], decimals: int) -> pd.DataFrame:
    """
    Convert RatioResult rows into a DataFrame.

    Columns: category, key, label, value, unit. Rows keep the display order
    of ``ratios``.
    """
    columns = ["category", "key", "label", "value", "unit"]
    if not ratios:
        return pd.DataFrame(columns=columns)

    rows = [
        {
            "category": r.category,
            "key": r.key,
            "label": r.label,
            "value": round(r.value, decimals),
            "unit": r.unit,
        }
        for r in ratios
    ]
    return pd.DataFrame(rows)[columns]


def health_to_dataframe(health: HealthScore) -> pd.DataFrame:
    """One row per sub-score plus a total row carrying the grade."""
    sub = health.sub_scores
    rows = [
        {"bucket": "liquidity", "points": sub.liquidity},
        {"bucket": "profitability", "points": sub.profitability},
        {"bucket": "leverage", "points": sub.leverage},
        {"bucket": "returns", "points": sub.returns},
        {"bucket": f"total ({health.grade}, {health.label})", "points": health.score},
    ]
    return pd.DataFrame(rows)[["bucket", "points"]]


def recommendations_to_dataframe(recs: Sequence[Recommendation]) -> pd.DataFrame:
    columns = ["severity", "title", "body"]
    if not recs:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame([{c: getattr(r, c) for c in columns} for r in recs])[columns]


def budgets_to_dataframe(
    executions: Sequence[BudgetExecution], decimals: int = 1
) -> pd.DataFrame:
    columns = [
        "budget_id",
        "period",
        "planned_amount",
        "actual_amount",
        "usage_percentage",
        "status",
    ]
    if not executions:
        return pd.DataFrame(columns=columns)

    df = pd.DataFrame([e.to_dict() for e in executions])[columns]
    df["usage_percentage"] = df["usage_percentage"].round(decimals)
    return df


def forecast_to_dataframe(points: Sequence[ForecastPoint]) -> pd.DataFrame:
    columns = ["period_label", "pessimistic", "realistic", "optimistic", "confidence"]
    if not points:
        return pd.DataFrame(columns=columns)

    df = pd.DataFrame([p.to_dict() for p in points])[columns]
    df["confidence"] = df["confidence"].round(3)
    return df


def anomalies_to_dataframe(records: Sequence[AnomalyRecord]) -> pd.DataFrame:
    columns = ["transaction_id", "date", "type", "amount", "z_score", "severity"]
    if not records:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame([r.to_dict() for r in records])[columns]
