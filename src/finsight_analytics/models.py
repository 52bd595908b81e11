# FinSight Analytics - Financial analytics engine for SMB bookkeeping
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Data model for FinSight Analytics.

Input records
-------------
The engine never queries storage. Callers hand it fully-formed snapshots:

- ``Transaction``             one income or expense ledger line,
- ``BalanceSheetSnapshot``    assets / liabilities / equity at a date,
- ``IncomeStatementSnapshot`` revenue and expenses for a period,
- ``BudgetDefinition``        a planned amount for a category and period,
- ``MonthlyNetFlow``          one month of income minus expense.

All input records are frozen dataclasses. ``Transaction`` can only change
status through ``with_status()``, which returns a new object.

Derived records
---------------
Every component returns frozen dataclasses as well (``RatioSet``,
``HealthScore``, ``Recommendation``, ``BudgetExecution``, ``BudgetOverview``,
``ForecastPoint``, ``CashflowInsights``, ``CashflowRisk``, ``CashflowPatterns``,
``CashflowAlert``, ``YearComparison``, ``AnomalyRecord``, ``AnomalyReport``).
They expose ``to_dict()`` returning plain, JSON-ready values: floats for
numbers, ISO strings for dates, lists for tuples.

Percentages are always expressed already multiplied by 100 (``12.5`` means
12.5 %).
"""

import math
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, field, replace
from datetime import date
from typing import Any, Optional

from .exceptions import InvalidInput

TRANSACTION_TYPES: tuple[str, ...] = ("income", "expense")
TRANSACTION_STATUSES: tuple[str, ...] = ("paid", "received", "pending", "overdue")
BUDGET_PERIOD_TYPES: tuple[str, ...] = ("monthly", "yearly")

# Allowed status transitions. Settled and overdue states are terminal for
# the engine; anything else is a ledger correction, not a transition.
_STATUS_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"paid", "received", "overdue"}),
    "paid": frozenset(),
    "received": frozenset(),
    "overdue": frozenset(),
}


def _jsonable(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


class _Record:
    """Mixin giving dataclasses a JSON-ready ``to_dict()``."""

    def to_dict(self) -> dict[str, Any]:
        return _jsonable(asdict(self))  # type: ignore[call-overload]


def require_amount(value: Any, field_name: str, allow_negative: bool = False) -> float:
    try:
        amount = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInput(
            f"Field {field_name!r} must be a number, got {value!r}.", field=field_name
        ) from exc
    if not math.isfinite(amount):
        raise InvalidInput(f"Field {field_name!r} must be finite.", field=field_name)
    if amount < 0 and not allow_negative:
        raise InvalidInput(
            f"Field {field_name!r} cannot be negative, got {amount}.", field=field_name
        )
    return amount


# ---------------------------------------------------------------------------
# Ledger transactions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Transaction(_Record):
    """
    One income or expense line of the ledger.

    Attributes
    ----------
    id :
        Identifier of the ledger line (opaque to the engine).
    date :
        Booking date.
    type :
        'income' or 'expense'.
    amount :
        Non-negative amount; the sign is carried by ``type``.
    category :
        Budget category (e.g. 'rent', 'salary', 'sales').
    counterpart :
        Customer (income) or vendor (expense).
    status :
        'paid' / 'received' once settled, 'pending' or 'overdue' otherwise.
    due_date :
        Optional due date used to decide when a pending line becomes overdue.
    """

    id: str
    date: date
    type: str
    amount: float
    category: str = ""
    counterpart: str = ""
    status: str = "pending"
    due_date: Optional[date] = None

    def __post_init__(self) -> None:
        if self.type not in TRANSACTION_TYPES:
            raise InvalidInput(
                f"Transaction {self.id!r}: type must be one of "
                f"{TRANSACTION_TYPES}, got {self.type!r}.",
                field="type",
            )
        if self.status not in TRANSACTION_STATUSES:
            raise InvalidInput(
                f"Transaction {self.id!r}: unknown status {self.status!r}.",
                field="status",
            )
        if not isinstance(self.date, date):
            raise InvalidInput(
                f"Transaction {self.id!r}: date must be a date.", field="date"
            )
        object.__setattr__(self, "amount", require_amount(self.amount, "amount"))

    def with_status(self, status: str) -> "Transaction":
        """Return a copy of this transaction moved to ``status``."""
        if status == self.status:
            return self
        if status not in _STATUS_TRANSITIONS.get(self.status, frozenset()):
            raise InvalidInput(
                f"Transaction {self.id!r}: cannot move from {self.status!r} "
                f"to {status!r}.",
                field="status",
            )
        return replace(self, status=status)


def mark_overdue(transactions: Iterable[Transaction], as_of: date) -> list[Transaction]:
    """
    Mark pending transactions as overdue when their due date has passed.

    A transaction without a due date is due on its booking date. Settled and
    already overdue transactions are returned unchanged.
    """
    out: list[Transaction] = []
    for tx in transactions:
        due = tx.due_date or tx.date
        if tx.status == "pending" and due < as_of:
            out.append(tx.with_status("overdue"))
        else:
            out.append(tx)
    return out


# ---------------------------------------------------------------------------
# Balance sheet and income statement snapshots
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CurrentAssets:
    cash: float = 0.0
    receivables: float = 0.0
    inventory: float = 0.0
    prepaid: float = 0.0

    @property
    def total(self) -> float:
        return self.cash + self.receivables + self.inventory + self.prepaid


@dataclass(frozen=True)
class FixedAssets:
    """Fixed assets; accumulated depreciation is a non-positive contra amount."""

    equipment: float = 0.0
    furniture: float = 0.0
    accumulated_depreciation: float = 0.0

    @property
    def total(self) -> float:
        return self.equipment + self.furniture + self.accumulated_depreciation


@dataclass(frozen=True)
class CurrentLiabilities:
    payables: float = 0.0
    short_term_loan: float = 0.0
    accrued: float = 0.0

    @property
    def total(self) -> float:
        return self.payables + self.short_term_loan + self.accrued


@dataclass(frozen=True)
class LongTermLiabilities:
    long_term_loan: float = 0.0

    @property
    def total(self) -> float:
        return self.long_term_loan


@dataclass(frozen=True)
class Equity:
    capital: float = 0.0
    retained_earnings: float = 0.0

    @property
    def total(self) -> float:
        return self.capital + self.retained_earnings


@dataclass(frozen=True)
class BalanceSheetSnapshot:
    """
    Balance sheet at ``as_of``.

    ``total_assets == total_liabilities + total_equity`` is assumed to hold
    on input; the engine does not re-derive it.
    """

    as_of: date
    current_assets: CurrentAssets = field(default_factory=CurrentAssets)
    fixed_assets: FixedAssets = field(default_factory=FixedAssets)
    current_liabilities: CurrentLiabilities = field(default_factory=CurrentLiabilities)
    long_term_liabilities: LongTermLiabilities = field(
        default_factory=LongTermLiabilities
    )
    equity: Equity = field(default_factory=Equity)

    @property
    def total_assets(self) -> float:
        return self.current_assets.total + self.fixed_assets.total

    @property
    def total_liabilities(self) -> float:
        return self.current_liabilities.total + self.long_term_liabilities.total

    @property
    def total_equity(self) -> float:
        return self.equity.total


@dataclass(frozen=True)
class IncomeStatementSnapshot:
    """
    Income statement for ``period`` (a ``YYYY`` or ``YYYY-MM`` key).

    Gross profit, operating income and net income are derived, never stored.
    """

    period: str
    revenue: float = 0.0
    cost_of_goods: float = 0.0
    operating_expenses: Mapping[str, float] = field(default_factory=dict)
    other_income: float = 0.0
    other_expenses: float = 0.0

    @property
    def gross_profit(self) -> float:
        return self.revenue - self.cost_of_goods

    @property
    def total_operating_expenses(self) -> float:
        return float(sum(self.operating_expenses.values()))

    @property
    def operating_income(self) -> float:
        return self.gross_profit - self.total_operating_expenses

    @property
    def net_income(self) -> float:
        return self.operating_income + self.other_income - self.other_expenses


# ---------------------------------------------------------------------------
# Budgets
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BudgetDefinition:
    """
    A planned amount for one category over one calendar period.

    ``period_type`` is 'monthly' (period 'YYYY-MM') or 'yearly' (period
    'YYYY'). ``flow`` tells which transactions feed the actual amount:
    'expense' budgets sum expenses, 'income' budgets sum income.
    """

    id: str
    name: str
    category: str
    period_type: str
    period: str
    planned_amount: float
    flow: str = "expense"


@dataclass(frozen=True)
class BudgetExecution(_Record):
    budget_id: str
    period: str
    planned_amount: float
    actual_amount: float
    usage_percentage: float
    status: str


@dataclass(frozen=True)
class BudgetOverview(_Record):
    period: Optional[str]
    total_budgets: int
    total_planned: float
    total_actual: float
    overall_usage: float
    exceeded_count: int
    warning_count: int
    normal_count: int


# ---------------------------------------------------------------------------
# Ratios, health score and recommendations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RatioSet(_Record):
    """
    Named financial ratios computed from one pair of snapshots.

    Margins, returns and debt ratios are percentages; current ratio, quick
    ratio and asset turnover are plain ratios. The base totals used to
    compute them are kept for presentation.
    """

    current_ratio: float
    quick_ratio: float
    gross_profit_margin: float
    net_profit_margin: float
    roa: float
    roe: float
    debt_to_asset_ratio: float
    debt_to_equity_ratio: float
    asset_turnover: float
    current_assets: float = 0.0
    current_liabilities: float = 0.0
    total_assets: float = 0.0
    total_liabilities: float = 0.0
    total_equity: float = 0.0
    revenue: float = 0.0
    net_income: float = 0.0


@dataclass(frozen=True)
class SubScores(_Record):
    liquidity: int
    profitability: int
    leverage: int
    returns: int

    @property
    def total(self) -> int:
        return self.liquidity + self.profitability + self.leverage + self.returns


@dataclass(frozen=True)
class HealthScore(_Record):
    score: int
    grade: str
    label: str
    sub_scores: SubScores
    max_score: int = 100


@dataclass(frozen=True)
class Recommendation(_Record):
    key: str
    title: str
    body: str
    severity: str


# ---------------------------------------------------------------------------
# Cash flow
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MonthlyNetFlow(_Record):
    """Income minus expense for the month ``period`` ('YYYY-MM')."""

    period: str
    net_flow: float


@dataclass(frozen=True)
class ForecastPoint(_Record):
    period_label: str
    optimistic: float
    realistic: float
    pessimistic: float
    confidence: float


@dataclass(frozen=True)
class CashflowInsights(_Record):
    months: int
    trend: str
    slope: float
    average_monthly_flow: float
    volatility: float


@dataclass(frozen=True)
class CashflowRisk(_Record):
    score: int
    level: str
    factors: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()


@dataclass(frozen=True)
class FlowPattern(_Record):
    """
    Shape of one side of the monthly cash flow.

    trend : str
        'increasing', 'decreasing' or 'stable' (sign of ``slope``).
    volatility : float
        Coefficient of variation of the monthly totals.
    """

    trend: str
    slope: float
    volatility: float
    average_monthly: float


@dataclass(frozen=True)
class CashflowPatterns(_Record):
    income: FlowPattern
    expense: FlowPattern


@dataclass(frozen=True)
class CashflowAlert(_Record):
    """``type`` is 'critical' or 'warning'."""

    type: str
    title: str
    message: str
    urgency: str
    recommendations: tuple[str, ...] = ()


@dataclass(frozen=True)
class YearTotals(_Record):
    year: int
    revenue: float
    expense: float
    profit: float


@dataclass(frozen=True)
class YearComparison(_Record):
    """Growth figures are percentages, rounded to one decimal."""

    current: YearTotals
    previous: YearTotals
    revenue_growth: float
    expense_growth: float
    profit_growth: float


# ---------------------------------------------------------------------------
# Anomalies
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AnomalyRecord(_Record):
    transaction_id: str
    type: str
    amount: float
    date: date
    z_score: float
    severity: str
    description: str


@dataclass(frozen=True)
class AnomalyReport(_Record):
    total_anomalies: int
    high_severity: int
    medium_severity: int
    recommended_actions: tuple[str, ...] = ()
