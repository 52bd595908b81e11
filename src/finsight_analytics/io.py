# FinSight Analytics - Financial analytics engine for SMB bookkeeping
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O helpers for FinSight Analytics.

The analytics components work on in-memory records. This module is the
boundary that turns external inputs into those records:

Transactions
------------
Transactions are normalised into a pandas DataFrame with exactly these
columns (the "transactions frame"):

    - ``id``          (str)
    - ``date``        (datetime64[ns])
    - ``type``        (str, 'income' or 'expense')
    - ``amount``      (float, >= 0)
    - ``category``    (str)
    - ``counterpart`` (str)
    - ``status``      (str)
    - ``due_date``    (datetime64[ns], NaT when absent)

``read_transactions()`` builds it from a CSV file (column names are
case-insensitive; ``customer`` and ``vendor`` are accepted as aliases for
``counterpart``), ``transactions_to_frame()`` from Transaction objects.

Snapshots and budgets
---------------------
``load_snapshots()`` reads a balance sheet and an income statement from a
TOML file:

    [balance_sheet]
    as_of = "2024-01-31"

    [balance_sheet.current_assets]
    cash = 125000
    receivables = 45000
    ...

    [income_statement]
    period = "2024"
    revenue = 950000
    cost_of_goods = 320000

    [income_statement.operating_expenses]
    salary = 480000
    ...

``load_budgets()`` reads ``[[budgets]]`` tables into BudgetDefinition objects.

Every structural problem raises ``InvalidInput`` with a clear message.
"""

import os
from collections.abc import Iterable, Mapping
from datetime import date
from pathlib import Path
from typing import Any, Optional, Union

import pandas as pd
import tomllib

from .exceptions import InvalidInput
from .models import (
    TRANSACTION_STATUSES,
    TRANSACTION_TYPES,
    BalanceSheetSnapshot,
    BudgetDefinition,
    CurrentAssets,
    CurrentLiabilities,
    Equity,
    FixedAssets,
    IncomeStatementSnapshot,
    LongTermLiabilities,
    Transaction,
)

TRANSACTION_COLUMNS: list[str] = [
    "id",
    "date",
    "type",
    "amount",
    "category",
    "counterpart",
    "status",
    "due_date",
]

_COUNTERPART_ALIASES = ("customer", "vendor")

# Anything the components accept as transactions.
Transactions = Union[pd.DataFrame, Iterable[Transaction]]


def empty_transactions_frame() -> pd.DataFrame:
    """Return an empty, well-typed transactions frame."""
    return pd.DataFrame(
        {
            "id": pd.Series([], dtype="object"),
            "date": pd.to_datetime(pd.Series([], dtype="object")),
            "type": pd.Series([], dtype="object"),
            "amount": pd.Series([], dtype="float64"),
            "category": pd.Series([], dtype="object"),
            "counterpart": pd.Series([], dtype="object"),
            "status": pd.Series([], dtype="object"),
            "due_date": pd.to_datetime(pd.Series([], dtype="object")),
        }
    )[TRANSACTION_COLUMNS]


def _normalize_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Validate and coerce a raw DataFrame into the transactions frame."""
    d = df.copy()
    d.columns = [str(c).lower().strip() for c in d.columns]
    cols = set(d.columns)

    if "counterpart" not in cols:
        for alias in _COUNTERPART_ALIASES:
            if alias in cols:
                d = d.rename(columns={alias: "counterpart"})
                break

    required = {"date", "type", "amount"}
    missing = required - set(d.columns)
    if missing:
        raise InvalidInput(
            "Invalid transactions structure, missing column(s): "
            + ", ".join(sorted(missing))
            + ". Expected at least: date, type, amount "
            "(optional: id, category, counterpart, status, due_date).",
            field=sorted(missing)[0],
        )

    if d.empty:
        return empty_transactions_frame()

    # Parse date strictly: invalid dates should fail loudly
    try:
        d["date"] = pd.to_datetime(d["date"], errors="raise")
    except Exception as exc:  # noqa: BLE001
        raise InvalidInput("Invalid values in 'date' column.", field="date") from exc

    if "due_date" in d.columns:
        try:
            d["due_date"] = pd.to_datetime(d["due_date"], errors="raise")
        except Exception as exc:  # noqa: BLE001
            raise InvalidInput(
                "Invalid values in 'due_date' column.", field="due_date"
            ) from exc
    else:
        d["due_date"] = pd.NaT

    d["amount"] = pd.to_numeric(d["amount"], errors="coerce")
    if d["amount"].isna().any():
        raise InvalidInput("Invalid numeric values in 'amount' column.", field="amount")
    if (d["amount"] < 0).any():
        raise InvalidInput(
            "Negative values in 'amount' column; use 'type' to carry the sign.",
            field="amount",
        )
    d["amount"] = d["amount"].astype(float)

    d["type"] = d["type"].astype(str).str.strip().str.lower()
    bad_types = sorted(set(d["type"]) - set(TRANSACTION_TYPES))
    if bad_types:
        raise InvalidInput(
            f"Unknown transaction type(s) {bad_types}, expected income or expense.",
            field="type",
        )

    if "status" in d.columns:
        d["status"] = d["status"].fillna("pending").astype(str).str.strip().str.lower()
        bad_statuses = sorted(set(d["status"]) - set(TRANSACTION_STATUSES))
        if bad_statuses:
            raise InvalidInput(
                f"Unknown transaction status(es) {bad_statuses}.", field="status"
            )
    else:
        d["status"] = "pending"

    if "id" in d.columns:
        d["id"] = d["id"].astype(str)
    else:
        d["id"] = [str(i + 1) for i in range(len(d))]

    for col in ("category", "counterpart"):
        if col in d.columns:
            d[col] = d[col].fillna("").astype(str)
        else:
            d[col] = ""

    return d[TRANSACTION_COLUMNS].reset_index(drop=True)


def read_transactions(path: Union[str, "os.PathLike[str]"]) -> pd.DataFrame:
    """
    Read transactions from a CSV file and normalise them.

    Returns
    -------
    pandas.DataFrame
        The transactions frame (see module docstring).

    Raises
    ------
    InvalidInput
        If the file is empty or not valid CSV, if required columns are
        missing or if date/numeric parsing fails.
    """
    try:
        raw = pd.read_csv(path)
    except pd.errors.EmptyDataError as exc:
        raise InvalidInput(
            f"Transactions file {path} is empty.", field="transactions"
        ) from exc
    except pd.errors.ParserError as exc:
        raise InvalidInput(
            f"Transactions file {path} is not valid CSV: {exc}", field="transactions"
        ) from exc
    return _normalize_frame(raw)


def transactions_to_frame(transactions: Iterable[Transaction]) -> pd.DataFrame:
    """Convert Transaction objects into the transactions frame."""
    rows = [
        {
            "id": tx.id,
            "date": tx.date,
            "type": tx.type,
            "amount": tx.amount,
            "category": tx.category,
            "counterpart": tx.counterpart,
            "status": tx.status,
            "due_date": tx.due_date,
        }
        for tx in transactions
    ]
    if not rows:
        return empty_transactions_frame()
    return _normalize_frame(pd.DataFrame(rows))


def frame_to_transactions(frame: pd.DataFrame) -> list[Transaction]:
    """Convert a transactions frame back into Transaction objects."""
    out: list[Transaction] = []
    for row in frame.itertuples(index=False):
        due = row.due_date
        out.append(
            Transaction(
                id=str(row.id),
                date=pd.Timestamp(row.date).date(),
                type=row.type,
                amount=float(row.amount),
                category=row.category,
                counterpart=row.counterpart,
                status=row.status,
                due_date=None if pd.isna(due) else pd.Timestamp(due).date(),
            )
        )
    return out


def _is_normalized(frame: pd.DataFrame) -> bool:
    return (
        list(frame.columns) == TRANSACTION_COLUMNS
        and pd.api.types.is_datetime64_any_dtype(frame["date"])
        and pd.api.types.is_datetime64_any_dtype(frame["due_date"])
        and pd.api.types.is_float_dtype(frame["amount"])
    )


def ensure_frame(transactions: Transactions) -> pd.DataFrame:
    """
    Accept either a transactions frame or Transaction objects.

    A DataFrame is returned as is only when it already has the transactions
    frame's columns and dtypes; anything else (string dates, text amounts)
    goes through the same validation as a CSV file.
    """
    if isinstance(transactions, pd.DataFrame):
        if _is_normalized(transactions):
            return transactions
        return _normalize_frame(transactions)
    return transactions_to_frame(transactions)


# ---------------------------------------------------------------------------
# TOML inputs
# ---------------------------------------------------------------------------


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        InvalidInput: if the TOML content cannot be parsed.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Input file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise InvalidInput(f"Failed to parse TOML input file: {path}") from exc

    return data


def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    section = data.get(key) or {}
    if not isinstance(section, Mapping):
        raise InvalidInput(f"[{key}] must be a table.", field=key)
    return section


def _number(section: Mapping[str, Any], key: str, prefix: str) -> float:
    value = section.get(key, 0.0)
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInput(
            f"{prefix}.{key} must be a number, got {value!r}.", field=f"{prefix}.{key}"
        ) from exc


def _parse_date(value: Any, field_name: str) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as exc:
        raise InvalidInput(
            f"{field_name} must be a YYYY-MM-DD date, got {value!r}.", field=field_name
        ) from exc


def parse_balance_sheet(data: Mapping[str, Any]) -> BalanceSheetSnapshot:
    """Build a BalanceSheetSnapshot from a [balance_sheet]-shaped mapping."""
    if "as_of" not in data:
        raise InvalidInput("balance_sheet.as_of is required.", field="as_of")

    ca = _section(data, "current_assets")
    fa = _section(data, "fixed_assets")
    cl = _section(data, "current_liabilities")
    ltl = _section(data, "long_term_liabilities")
    eq = _section(data, "equity")

    return BalanceSheetSnapshot(
        as_of=_parse_date(data["as_of"], "balance_sheet.as_of"),
        current_assets=CurrentAssets(
            cash=_number(ca, "cash", "current_assets"),
            receivables=_number(ca, "receivables", "current_assets"),
            inventory=_number(ca, "inventory", "current_assets"),
            prepaid=_number(ca, "prepaid", "current_assets"),
        ),
        fixed_assets=FixedAssets(
            equipment=_number(fa, "equipment", "fixed_assets"),
            furniture=_number(fa, "furniture", "fixed_assets"),
            accumulated_depreciation=_number(
                fa, "accumulated_depreciation", "fixed_assets"
            ),
        ),
        current_liabilities=CurrentLiabilities(
            payables=_number(cl, "payables", "current_liabilities"),
            short_term_loan=_number(cl, "short_term_loan", "current_liabilities"),
            accrued=_number(cl, "accrued", "current_liabilities"),
        ),
        long_term_liabilities=LongTermLiabilities(
            long_term_loan=_number(ltl, "long_term_loan", "long_term_liabilities"),
        ),
        equity=Equity(
            capital=_number(eq, "capital", "equity"),
            retained_earnings=_number(eq, "retained_earnings", "equity"),
        ),
    )


def parse_income_statement(data: Mapping[str, Any]) -> IncomeStatementSnapshot:
    """Build an IncomeStatementSnapshot from an [income_statement] mapping."""
    if "period" not in data:
        raise InvalidInput("income_statement.period is required.", field="period")

    opex = _section(data, "operating_expenses")
    return IncomeStatementSnapshot(
        period=str(data["period"]),
        revenue=_number(data, "revenue", "income_statement"),
        cost_of_goods=_number(data, "cost_of_goods", "income_statement"),
        operating_expenses={
            str(k): _number(opex, k, "operating_expenses") for k in opex
        },
        other_income=_number(data, "other_income", "income_statement"),
        other_expenses=_number(data, "other_expenses", "income_statement"),
    )


def load_snapshots(
    path: Union[str, "os.PathLike[str]"],
) -> tuple[BalanceSheetSnapshot, IncomeStatementSnapshot]:
    """Load the balance sheet and income statement stored in a TOML file."""
    data = _load_toml(Path(path))
    if "balance_sheet" not in data or "income_statement" not in data:
        raise InvalidInput(
            f"{path} must define both [balance_sheet] and [income_statement]."
        )
    return (
        parse_balance_sheet(_section(data, "balance_sheet")),
        parse_income_statement(_section(data, "income_statement")),
    )


def parse_budget(data: Mapping[str, Any]) -> BudgetDefinition:
    """Build a BudgetDefinition from a mapping (one [[budgets]] entry)."""
    for key in ("id", "category", "period", "planned_amount"):
        if key not in data:
            raise InvalidInput(f"Budget is missing required field {key!r}.", field=key)

    period = str(data["period"])
    default_type = "yearly" if len(period) == 4 else "monthly"
    try:
        planned = float(data["planned_amount"])
    except (TypeError, ValueError) as exc:
        raise InvalidInput(
            f"Budget {data['id']!r}: planned_amount must be a number.",
            field="planned_amount",
        ) from exc

    return BudgetDefinition(
        id=str(data["id"]),
        name=str(data.get("name") or data["category"]),
        category=str(data["category"]),
        period_type=str(data.get("period_type") or default_type),
        period=period,
        planned_amount=planned,
        flow=str(data.get("flow") or "expense"),
    )


def load_budgets(
    path: Union[str, "os.PathLike[str]"],
    period: Optional[str] = None,
) -> list[BudgetDefinition]:
    """
    Load ``[[budgets]]`` entries from a TOML file.

    If ``period`` is given, only budgets defined for that period are kept.
    """
    data = _load_toml(Path(path))
    raw = data.get("budgets") or []
    if not isinstance(raw, list):
        raise InvalidInput("'budgets' must be an array of tables.", field="budgets")

    budgets = [parse_budget(item) for item in raw]
    if period is not None:
        budgets = [b for b in budgets if b.period == str(period)]
    return budgets
