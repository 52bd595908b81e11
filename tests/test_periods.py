from datetime import date

import pandas as pd
import pytest

import finsight_analytics.periods as periods
from finsight_analytics.exceptions import InvalidInput


def test_filter_transactions_by_period_inclusive_bounds() -> None:
    """filter_transactions_by_period should keep transactions dated in [start, end]."""
    df = pd.DataFrame(
        {
            "date": pd.to_datetime(
                ["2025-01-01", "2025-02-15", "2025-03-10", "2025-04-01", "2025-05-01"]
            ),
            "type": ["income", "income", "expense", "expense", "income"],
            "category": ["sales", "sales", "rent", "rent", "sales"],
            "amount": [10, 20, 5, 15, 30],
        }
    )

    p = periods.Period(
        start=date(2025, 2, 1),
        end=date(2025, 4, 1),
        label="Test period",
    )

    filtered = periods.filter_transactions_by_period(df, p)

    assert len(filtered) == 3
    assert filtered["date"].min() == pd.Timestamp("2025-02-15")
    assert filtered["date"].max() == pd.Timestamp("2025-04-01")


@pytest.mark.parametrize(
    "key, start, end",
    [
        ("2024-02", date(2024, 2, 1), date(2024, 2, 29)),
        ("2023-02", date(2023, 2, 1), date(2023, 2, 28)),
        ("2024-12", date(2024, 12, 1), date(2024, 12, 31)),
        ("2024", date(2024, 1, 1), date(2024, 12, 31)),
    ],
)
def test_period_from_key(key: str, start: date, end: date) -> None:
    p = periods.period_from_key(key)

    assert (p.start, p.end, p.label) == (start, end, key)


@pytest.mark.parametrize("key", ["2024-13", "2024-00", "24-01", "2024/01", "", "202"])
def test_invalid_period_keys(key: str) -> None:
    with pytest.raises(InvalidInput):
        periods.period_from_key(key)


def test_key_predicates_and_formatting() -> None:
    assert periods.is_month_key("2024-07")
    assert not periods.is_month_key("2024-7")
    assert periods.is_year_key("2024")
    assert not periods.is_year_key("2024-07")
    assert periods.month_key(date(2024, 7, 15)) == "2024-07"
    assert periods.year_key(date(2024, 7, 15)) == "2024"
    assert periods.parse_month_key("2024-07") == (2024, 7)


@pytest.mark.parametrize(
    "key, steps, expected",
    [
        ("2024-01", 1, "2024-02"),
        ("2024-11", 3, "2025-02"),
        ("2024-12", 12, "2025-12"),
        ("2024-01", -1, "2023-12"),
        ("2024-06", 0, "2024-06"),
    ],
)
def test_shift_month_key(key: str, steps: int, expected: str) -> None:
    assert periods.shift_month_key(key, steps) == expected


def test_months_between() -> None:
    assert periods.months_between("2024-11", "2025-02") == 3
    assert periods.months_between("2024-03", "2024-03") == 0
    assert periods.months_between("2024-03", "2023-03") == -12
