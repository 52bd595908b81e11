# FinSight Analytics - Financial analytics engine for SMB bookkeeping
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Statistical anomaly detection on transaction amounts.

The population is a set of transactions of a single type (income or
expense), typically the last few months. Conventions:

- standard deviations are *population* standard deviations (ddof=0);
- a population where every amount is equal has no outliers and yields no
  records;
- a population smaller than ``min_sample_size`` (default 5) raises
  InsufficientSampleSize, so "no anomalies" and "cannot assess" stay
  distinguishable.

Peer scoring
------------
With ``exclude_self=True`` (the default) each transaction is scored against
its peers, i.e. the population without that transaction:

    z = (amount - mean(peers)) / std(peers)

Scoring against a population that contains the candidate caps |z| at
sqrt(n - 1), so in a population of 5 a single huge amount could never
exceed |z| = 2. When the peers all share the same amount their spread is
zero, and the whole population's standard deviation is used instead.

With ``exclude_self=False`` every transaction is scored against the mean
and standard deviation of the whole population.

Severity: |z| > high_threshold (3) is 'high', medium_threshold (2) < |z| <=
high_threshold is 'medium'; anything else is not reported. Records are
sorted by descending |z|.
"""

import logging
from collections.abc import Sequence
from typing import Optional

import pandas as pd

from .config import AnomalySettings
from .exceptions import InsufficientSampleSize, InvalidInput
from .forecast import mean_and_std
from .io import Transactions, ensure_frame
from .models import AnomalyRecord, AnomalyReport

logger = logging.getLogger(__name__)

WEEKDAY_NAMES: tuple[str, ...] = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


def _is_constant(values: Sequence[float]) -> bool:
    return len(set(values)) <= 1


def _describe(row, z: float, mean: float) -> str:
    direction = "above" if z > 0 else "below"
    who = f" ({row.counterpart})" if row.counterpart else ""
    day = pd.Timestamp(row.date).date().isoformat()
    return (
        f"{row.type.capitalize()} of {row.amount:,.2f} on {day}{who} is "
        f"{abs(z):.1f} standard deviations {direction} the average "
        f"{row.type} amount of {mean:,.2f}."
    )


def detect_anomalies(
    transactions: Transactions,
    settings: Optional[AnomalySettings] = None,
) -> list[AnomalyRecord]:
    """
    Flag transactions whose amount is a statistical outlier.

    Args:
        transactions: Transactions frame or Transaction objects, all of the
            same type.
        settings: Sample size and z-score thresholds; defaults to
            AnomalySettings().

    Returns:
        AnomalyRecord for every flagged transaction, largest |z| first.

    Raises:
        InvalidInput: if the population mixes income and expense.
        InsufficientSampleSize: if the population is below min_sample_size.
    """
    settings = settings or AnomalySettings()
    frame = ensure_frame(transactions)

    types = sorted(frame["type"].unique())
    if len(types) > 1:
        raise InvalidInput(
            "Anomaly detection needs a population of a single transaction type, "
            f"got {types}.",
            field="type",
        )
    if len(frame) < settings.min_sample_size:
        raise InsufficientSampleSize(required=settings.min_sample_size, actual=len(frame))

    amounts = [float(a) for a in frame["amount"]]
    if _is_constant(amounts):
        logger.warning(
            "Zero-variance population of %d amounts: no anomalies.", len(amounts)
        )
        return []

    mean_all, std_all = mean_and_std(amounts)

    scored: list[tuple[float, AnomalyRecord]] = []
    for i, row in enumerate(frame.itertuples(index=False)):
        if settings.exclude_self:
            peers = amounts[:i] + amounts[i + 1 :]
            mean, std = mean_and_std(peers)
            if _is_constant(peers):
                std = std_all
        else:
            mean, std = mean_all, std_all

        z = (row.amount - mean) / std
        magnitude = abs(z)
        if magnitude <= settings.medium_threshold:
            continue

        severity = "high" if magnitude > settings.high_threshold else "medium"
        scored.append(
            (
                magnitude,
                AnomalyRecord(
                    transaction_id=str(row.id),
                    type=row.type,
                    amount=float(row.amount),
                    date=pd.Timestamp(row.date).date(),
                    z_score=round(z, 2),
                    severity=severity,
                    description=_describe(row, z, mean),
                ),
            )
        )

    scored.sort(key=lambda item: -item[0])
    logger.debug(
        "Anomaly detection on %d %s transactions: %d flagged.",
        len(amounts),
        types[0],
        len(scored),
    )
    return [record for _, record in scored]


def summarize_anomalies(records: Sequence[AnomalyRecord]) -> AnomalyReport:
    """Count anomalies by severity and suggest follow-up actions."""
    high = sum(1 for r in records if r.severity == "high")
    medium = sum(1 for r in records if r.severity == "medium")

    if len(records) > 5:
        actions: tuple[str, ...] = (
            "Review the flagged transactions",
            "Update the budget plan",
            "Revise the cash-flow forecast",
        )
    elif records:
        actions = ("Review the flagged transactions", "Keep monitoring transaction patterns")
    else:
        actions = ("Keep monitoring transaction patterns",)

    return AnomalyReport(
        total_anomalies=len(records),
        high_severity=high,
        medium_severity=medium,
        recommended_actions=actions,
    )


def weekday_patterns(transactions: Transactions) -> pd.DataFrame:
    """
    Transaction count and average amount per type and weekday.

    Returns
    -------
    pandas.DataFrame
        Columns: type, weekday (0 = Monday), weekday_name,
        transaction_count, average_amount; sorted by type then weekday.
    """
    frame = ensure_frame(transactions)
    columns = ["type", "weekday", "weekday_name", "transaction_count", "average_amount"]
    if frame.empty:
        return pd.DataFrame(columns=columns)

    d = frame.assign(weekday=frame["date"].dt.dayofweek)
    grouped = (
        d.groupby(["type", "weekday"])["amount"]
        .agg(transaction_count="count", average_amount="mean")
        .reset_index()
    )
    grouped["weekday_name"] = grouped["weekday"].map(lambda wd: WEEKDAY_NAMES[int(wd)])
    grouped["average_amount"] = grouped["average_amount"].round(2)
    return grouped.sort_values(["type", "weekday"], kind="stable")[columns].reset_index(
        drop=True
    )
