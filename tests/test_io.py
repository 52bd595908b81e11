from datetime import date
from pathlib import Path

import pandas as pd
import pytest

from finsight_analytics.exceptions import InvalidInput
from finsight_analytics.io import (
    TRANSACTION_COLUMNS,
    ensure_frame,
    frame_to_transactions,
    load_budgets,
    load_snapshots,
    read_transactions,
    transactions_to_frame,
)
from finsight_analytics.models import Transaction


def _csv(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "transactions.csv"
    path.write_text(content, encoding="utf-8")
    return path


def test_read_transactions_normalises_columns(tmp_path: Path) -> None:
    """Column names are case-insensitive and 'vendor' maps to counterpart."""
    path = _csv(
        tmp_path,
        "Date,Type,Amount,Category,Vendor\n"
        "2024-03-01,Expense,1200.50,rent,Landlord Ltd\n"
        "2024-03-05,income,3000,sales,\n",
    )

    df = read_transactions(path)

    assert list(df.columns) == TRANSACTION_COLUMNS
    assert df["id"].tolist() == ["1", "2"]
    assert df["type"].tolist() == ["expense", "income"]
    assert df["amount"].tolist() == [1200.5, 3000.0]
    assert df["counterpart"].tolist() == ["Landlord Ltd", ""]
    assert df["status"].tolist() == ["pending", "pending"]
    assert pd.api.types.is_datetime64_any_dtype(df["date"])
    assert df["due_date"].isna().all()


def test_read_transactions_keeps_ids_and_statuses(tmp_path: Path) -> None:
    path = _csv(
        tmp_path,
        "id,date,type,amount,status,due_date\n"
        "INV-7,2024-01-10,income,500,received,2024-02-10\n",
    )

    df = read_transactions(path)

    assert df.loc[0, "id"] == "INV-7"
    assert df.loc[0, "status"] == "received"
    assert df.loc[0, "due_date"] == pd.Timestamp("2024-02-10")


@pytest.mark.parametrize(
    "content, field",
    [
        ("date,type\n2024-01-01,income\n", "amount"),
        ("date,type,amount\nnot-a-date,income,10\n", "date"),
        ("date,type,amount\n2024-01-01,income,ten\n", "amount"),
        ("date,type,amount\n2024-01-01,income,-10\n", "amount"),
        ("date,type,amount\n2024-01-01,transfer,10\n", "type"),
        ("date,type,amount,status\n2024-01-01,income,10,lost\n", "status"),
    ],
)
def test_read_transactions_rejects_bad_input(tmp_path: Path, content: str, field: str) -> None:
    with pytest.raises(InvalidInput) as excinfo:
        read_transactions(_csv(tmp_path, content))

    assert excinfo.value.field == field


def test_transactions_frame_conversions() -> None:
    txs = [
        Transaction(
            id="A",
            date=date(2024, 5, 2),
            type="expense",
            amount=80,
            category="travel",
            counterpart="Rail Co",
            status="pending",
            due_date=date(2024, 6, 1),
        ),
        Transaction(id="B", date=date(2024, 5, 3), type="income", amount=150),
    ]

    df = transactions_to_frame(txs)

    assert list(df.columns) == TRANSACTION_COLUMNS
    assert df["amount"].dtype == float
    assert frame_to_transactions(df) == [
        Transaction(
            id="A",
            date=date(2024, 5, 2),
            type="expense",
            amount=80.0,
            category="travel",
            counterpart="Rail Co",
            status="pending",
            due_date=date(2024, 6, 1),
        ),
        Transaction(id="B", date=date(2024, 5, 3), type="income", amount=150.0),
    ]


def test_ensure_frame_accepts_raw_frames() -> None:
    raw = pd.DataFrame({"date": ["2024-01-01"], "type": ["income"], "amount": [10]})

    df = ensure_frame(raw)

    assert list(df.columns) == TRANSACTION_COLUMNS
    assert ensure_frame(df) is df


def test_ensure_frame_parses_canonical_columns_with_text_values() -> None:
    """Rows built from JSON or SQL keep the column order but not the dtypes."""
    raw = pd.DataFrame(
        [
            ["1", "2024-03-05", "expense", "100", "rent", "", "paid", None],
            ["2", "2024-03-20", "expense", "50", "rent", "", "paid", "2024-04-01"],
        ],
        columns=TRANSACTION_COLUMNS,
    )

    df = ensure_frame(raw)

    assert df is not raw
    assert pd.api.types.is_datetime64_any_dtype(df["date"])
    assert pd.api.types.is_datetime64_any_dtype(df["due_date"])
    assert df["amount"].tolist() == [100.0, 50.0]
    assert pd.isna(df.loc[0, "due_date"])


def test_ensure_frame_rejects_canonical_columns_with_bad_dates() -> None:
    raw = pd.DataFrame(
        [["1", "someday", "expense", 10.0, "rent", "", "paid", None]],
        columns=TRANSACTION_COLUMNS,
    )

    with pytest.raises(InvalidInput) as excinfo:
        ensure_frame(raw)

    assert excinfo.value.field == "date"


@pytest.mark.parametrize(
    "content",
    [
        "",
        "date,type,amount\n2024-01-01,income,100\n2024-01-02,income,200,5,6\n",
    ],
)
def test_read_transactions_rejects_unreadable_csv(tmp_path: Path, content: str) -> None:
    with pytest.raises(InvalidInput) as excinfo:
        read_transactions(_csv(tmp_path, content))

    assert excinfo.value.field == "transactions"


def test_load_snapshots(snapshot_file: Path, balance_sheet, income_statement) -> None:
    bs, is_ = load_snapshots(snapshot_file)

    assert bs == balance_sheet
    assert is_ == income_statement
    assert bs.total_assets == pytest.approx(550000)
    assert is_.net_income == pytest.approx(83000)


def test_load_snapshots_requires_both_statements(tmp_path: Path) -> None:
    path = tmp_path / "partial.toml"
    path.write_text('[balance_sheet]\nas_of = "2024-12-31"\n', encoding="utf-8")

    with pytest.raises(InvalidInput):
        load_snapshots(path)


def test_load_snapshots_rejects_non_numeric_amount(tmp_path: Path) -> None:
    path = tmp_path / "bad.toml"
    path.write_text(
        '[balance_sheet]\nas_of = 2024-12-31\n'
        '[balance_sheet.current_assets]\ncash = "lots"\n'
        '[income_statement]\nperiod = "2024"\n',
        encoding="utf-8",
    )

    with pytest.raises(InvalidInput) as excinfo:
        load_snapshots(path)

    assert excinfo.value.field == "current_assets.cash"


def test_load_budgets(tmp_path: Path) -> None:
    path = tmp_path / "budgets.toml"
    path.write_text(
        """
[[budgets]]
id = "B1"
name = "Office rent"
category = "rent"
period = "2024-03"
planned_amount = 15000

[[budgets]]
id = "B2"
category = "sales"
period = "2024"
planned_amount = 500000
flow = "income"

[[budgets]]
id = "B3"
category = "rent"
period = "2024-04"
planned_amount = 15000
""",
        encoding="utf-8",
    )

    everything = load_budgets(path)
    march = load_budgets(path, period="2024-03")

    assert [b.id for b in everything] == ["B1", "B2", "B3"]
    assert everything[0].period_type == "monthly"
    assert everything[1].period_type == "yearly"
    assert everything[1].name == "sales"
    assert everything[1].flow == "income"
    assert everything[0].flow == "expense"
    assert [b.id for b in march] == ["B1"]


def test_load_budgets_missing_field(tmp_path: Path) -> None:
    path = tmp_path / "budgets.toml"
    path.write_text('[[budgets]]\nid = "B1"\ncategory = "rent"\n', encoding="utf-8")

    with pytest.raises(InvalidInput):
        load_budgets(path)
