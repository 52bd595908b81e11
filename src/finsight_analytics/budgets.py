# FinSight Analytics - Financial analytics engine for SMB bookkeeping
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Budget execution tracking.

For one BudgetDefinition the execution is recomputed on demand from the
transactions, never stored:

    actual_amount     = sum of amounts of transactions of the budget's flow
                        (expense or income), category and period
    usage_percentage  = actual_amount * 100 / planned_amount, rounded to
                        9 decimals so exact thresholds are not missed
    status            = 'exceeded' if usage >  exceeded_threshold (100)
                        'warning'  if usage >= warning_threshold  (80)
                        'normal'   otherwise

A planned amount of zero or less cannot be created upstream; reaching this
module with one is reported as an InvariantViolation.

The overview for a period is built only by summing and counting the
individual executions, so the two can never disagree.
"""

import logging
from collections.abc import Sequence
from typing import Optional

import pandas as pd

from .config import BudgetSettings
from .exceptions import InvalidInput, InvariantViolation
from .io import Transactions, ensure_frame
from .models import (
    BUDGET_PERIOD_TYPES,
    TRANSACTION_TYPES,
    BudgetDefinition,
    BudgetExecution,
    BudgetOverview,
)
from .periods import filter_transactions_by_period, is_month_key, is_year_key, period_from_key

logger = logging.getLogger(__name__)


def validate_budget(budget: BudgetDefinition) -> None:
    """
    Check a budget definition before use.

    Raises:
        InvariantViolation: if planned_amount is not strictly positive.
        InvalidInput: if the period type, period key or flow is malformed.
    """
    if not budget.planned_amount > 0:
        raise InvariantViolation(
            f"Budget {budget.id!r} has a non-positive planned amount "
            f"({budget.planned_amount}); budgets must be created with a "
            "positive amount.",
            budget_id=budget.id,
            planned_amount=budget.planned_amount,
        )
    if budget.period_type not in BUDGET_PERIOD_TYPES:
        raise InvalidInput(
            f"Budget {budget.id!r}: period_type must be monthly or yearly, "
            f"got {budget.period_type!r}.",
            field="period_type",
        )
    key_ok = is_month_key if budget.period_type == "monthly" else is_year_key
    if not key_ok(budget.period):
        expected = "YYYY-MM" if budget.period_type == "monthly" else "YYYY"
        raise InvalidInput(
            f"Budget {budget.id!r}: period {budget.period!r} does not match "
            f"{budget.period_type} format {expected}.",
            field="period",
        )
    if budget.flow not in TRANSACTION_TYPES:
        raise InvalidInput(
            f"Budget {budget.id!r}: flow must be income or expense, got {budget.flow!r}.",
            field="flow",
        )


def select_budget_transactions(
    budget: BudgetDefinition, transactions: Transactions
) -> pd.DataFrame:
    """Return the transactions feeding ``budget``: same flow, category and period."""
    frame = ensure_frame(transactions)
    frame = frame[(frame["type"] == budget.flow) & (frame["category"] == budget.category)]
    return filter_transactions_by_period(frame, period_from_key(budget.period))


def classify_usage(usage_percentage: float, settings: BudgetSettings) -> str:
    if usage_percentage > settings.exceeded_threshold:
        return "exceeded"
    if usage_percentage >= settings.warning_threshold:
        return "warning"
    return "normal"


def compute_budget_execution(
    budget: BudgetDefinition,
    transactions: Transactions,
    settings: Optional[BudgetSettings] = None,
) -> BudgetExecution:
    """
    Compute the execution of one budget.

    Args:
        budget: The budget definition.
        transactions: Transactions frame or Transaction objects. Only the
            ones matching the budget's flow, category and period are summed.
        settings: Usage thresholds; defaults to BudgetSettings().

    Returns:
        The BudgetExecution for the budget's period.
    """
    settings = settings or BudgetSettings()
    validate_budget(budget)

    matching = select_budget_transactions(budget, transactions)
    actual = float(matching["amount"].sum()) if not matching.empty else 0.0
    # Rounded so 1.1 + 2.2 spent on 3.3 is 100%, not 100.00000000000003
    usage = round(actual * 100.0 / budget.planned_amount, 9)
    status = classify_usage(usage, settings)

    logger.debug(
        "Budget %s (%s): %d transactions, %.2f / %.2f (%.1f%%) -> %s",
        budget.id,
        budget.period,
        len(matching),
        actual,
        budget.planned_amount,
        usage,
        status,
    )

    return BudgetExecution(
        budget_id=budget.id,
        period=budget.period,
        planned_amount=float(budget.planned_amount),
        actual_amount=actual,
        usage_percentage=usage,
        status=status,
    )


def track_budgets(
    budgets: Sequence[BudgetDefinition],
    transactions: Transactions,
    settings: Optional[BudgetSettings] = None,
) -> list[BudgetExecution]:
    """Compute the execution of every budget, in the order given."""
    frame = ensure_frame(transactions)
    return [compute_budget_execution(b, frame, settings) for b in budgets]


def budget_overview(
    executions: Sequence[BudgetExecution], period: Optional[str] = None
) -> BudgetOverview:
    """
    Aggregate budget executions into an overview.

    Every figure is a sum or count over ``executions``; nothing is re-derived
    from transactions.
    """
    total_planned = sum(e.planned_amount for e in executions)
    total_actual = sum(e.actual_amount for e in executions)
    exceeded = sum(1 for e in executions if e.status == "exceeded")
    warning = sum(1 for e in executions if e.status == "warning")

    return BudgetOverview(
        period=period,
        total_budgets=len(executions),
        total_planned=float(total_planned),
        total_actual=float(total_actual),
        overall_usage=total_actual / total_planned * 100.0 if total_planned > 0 else 0.0,
        exceeded_count=exceeded,
        warning_count=warning,
        normal_count=len(executions) - exceeded - warning,
    )
