# FinSight Analytics - Financial analytics engine for SMB bookkeeping
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Calendar-key helpers for FinSight Analytics.

Budgets and forecasts identify periods with unambiguous string keys:

    'YYYY-MM'  monthly periods
    'YYYY'     yearly periods

This module defines a Period value object, converts keys to date bounds,
steps monthly keys forward, and filters transaction DataFrames to a period.
"""

import re
from calendar import monthrange
from dataclasses import dataclass
from datetime import date

import pandas as pd

from .exceptions import InvalidInput

_MONTH_KEY = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")
_YEAR_KEY = re.compile(r"^(\d{4})$")


@dataclass(frozen=True)
class Period:
    """A calendar period with inclusive bounds and its key as label."""

    start: date
    end: date
    label: str


def is_month_key(key: str) -> bool:
    return bool(_MONTH_KEY.match(str(key)))


def is_year_key(key: str) -> bool:
    return bool(_YEAR_KEY.match(str(key)))


def month_key(d: date) -> str:
    """Return the 'YYYY-MM' key of a date."""
    return f"{d.year:04d}-{d.month:02d}"


def year_key(d: date) -> str:
    """Return the 'YYYY' key of a date."""
    return f"{d.year:04d}"


def parse_month_key(key: str) -> tuple[int, int]:
    """Split a 'YYYY-MM' key into (year, month)."""
    match = _MONTH_KEY.match(str(key))
    if match is None:
        raise InvalidInput(
            f"Invalid monthly period key {key!r}, expected YYYY-MM.", field="period"
        )
    return int(match.group(1)), int(match.group(2))


def period_from_key(key: str) -> Period:
    """
    Build the Period covered by a 'YYYY-MM' or 'YYYY' key.

    Raises:
        InvalidInput: if the key matches neither format.
    """
    key = str(key)
    if is_month_key(key):
        year, month = parse_month_key(key)
        last_day = monthrange(year, month)[1]
        return Period(start=date(year, month, 1), end=date(year, month, last_day), label=key)

    if is_year_key(key):
        year = int(key)
        return Period(start=date(year, 1, 1), end=date(year, 12, 31), label=key)

    raise InvalidInput(
        f"Invalid period key {key!r}, expected YYYY-MM or YYYY.", field="period"
    )


def shift_month_key(key: str, steps: int) -> str:
    """Return the monthly key ``steps`` months after ``key`` (negative allowed)."""
    year, month = parse_month_key(key)
    index = year * 12 + (month - 1) + steps
    return f"{index // 12:04d}-{index % 12 + 1:02d}"


def months_between(start_key: str, end_key: str) -> int:
    """Number of month steps from ``start_key`` to ``end_key``."""
    y1, m1 = parse_month_key(start_key)
    y2, m2 = parse_month_key(end_key)
    return (y2 * 12 + m2) - (y1 * 12 + m1)


def filter_transactions_by_period(
    transactions: pd.DataFrame, period: Period
) -> pd.DataFrame:
    """
    Keep only transactions dated within the period (inclusive bounds).

    The ``transactions`` DataFrame is expected to contain a 'date' column of
    type datetime64[ns] (as produced by ``io.transactions_to_frame``).
    """
    mask = (transactions["date"] >= pd.Timestamp(period.start)) & (
        transactions["date"] <= pd.Timestamp(period.end)
    )
    return transactions.loc[mask].copy()
