# FinSight Analytics - Financial analytics engine for SMB bookkeeping
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
Financial ratio computation for FinSight Analytics.

``compute_ratios(balance_sheet, income_statement)`` turns one balance sheet
and one income statement into a RatioSet:

    current_ratio         = current assets / current liabilities
    quick_ratio           = (current assets - inventory) / current liabilities
    gross_profit_margin   = gross profit / revenue * 100
    net_profit_margin     = net income / revenue * 100
    roa                   = net income / total assets * 100
    roe                   = net income / total equity * 100
    debt_to_asset_ratio   = total liabilities / total assets * 100
    debt_to_equity_ratio  = total liabilities / total equity * 100
    asset_turnover        = revenue / total assets

Every ratio is independent of the others. A divisor that is zero (or
negative, which is meaningless for revenue, assets and equity here) yields
0 instead of raising, so the function is total over valid snapshots.

``ratio_results(ratios)`` returns the same values as labelled rows
(RatioResult) for display, grouped by category (liquidity, profitability,
leverage, efficiency).
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .exceptions import InvalidInput
from .models import BalanceSheetSnapshot, IncomeStatementSnapshot, RatioSet, require_amount

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RatioResult:
    """
    One ratio as a labelled row.

    Attributes:
        key: Attribute name in RatioSet (e.g. 'current_ratio').
        label: Human-readable label for display.
        value: Numeric value.
        unit: 'ratio' or 'percent'.
        category: 'liquidity', 'profitability', 'leverage' or 'efficiency'.
    """

    key: str
    label: str
    value: float
    unit: str
    category: str


# (key, label, unit, category) in display order.
RATIO_DEFINITIONS: tuple[tuple[str, str, str, str], ...] = (
    ("current_ratio", "Current ratio", "ratio", "liquidity"),
    ("quick_ratio", "Quick ratio", "ratio", "liquidity"),
    ("gross_profit_margin", "Gross profit margin (%)", "percent", "profitability"),
    ("net_profit_margin", "Net profit margin (%)", "percent", "profitability"),
    ("roa", "Return on assets (%)", "percent", "profitability"),
    ("roe", "Return on equity (%)", "percent", "profitability"),
    ("debt_to_asset_ratio", "Debt to assets (%)", "percent", "leverage"),
    ("debt_to_equity_ratio", "Debt to equity (%)", "percent", "leverage"),
    ("asset_turnover", "Asset turnover", "ratio", "efficiency"),
)


def _safe_div(numerator: float, denominator: float, scale: float = 1.0) -> float:
    """Return numerator / denominator * scale, or 0.0 if the divisor is not positive."""
    if denominator <= 0:
        return 0.0
    return numerator / denominator * scale


def _validate(
    balance_sheet: BalanceSheetSnapshot, income_statement: IncomeStatementSnapshot
) -> None:
    """Reject snapshots with missing parts or non-numeric / negative amounts."""
    if balance_sheet is None or income_statement is None:
        raise InvalidInput("Both a balance sheet and an income statement are required.")

    parts = {
        "current_assets": balance_sheet.current_assets,
        "fixed_assets": balance_sheet.fixed_assets,
        "current_liabilities": balance_sheet.current_liabilities,
        "long_term_liabilities": balance_sheet.long_term_liabilities,
        "equity": balance_sheet.equity,
    }
    for part_name, part in parts.items():
        if part is None:
            raise InvalidInput(
                f"Balance sheet is missing {part_name!r}.", field=part_name
            )
        for name, value in vars(part).items():
            # Contra accounts and accumulated results may be negative.
            allow_negative = name in {"accumulated_depreciation", "retained_earnings"}
            require_amount(value, f"{part_name}.{name}", allow_negative=allow_negative)

    if balance_sheet.fixed_assets.accumulated_depreciation > 0:
        raise InvalidInput(
            "fixed_assets.accumulated_depreciation must be zero or negative.",
            field="fixed_assets.accumulated_depreciation",
        )

    for name in ("revenue", "cost_of_goods", "other_income", "other_expenses"):
        require_amount(getattr(income_statement, name), f"income_statement.{name}")
    if income_statement.operating_expenses is None:
        raise InvalidInput(
            "Income statement is missing 'operating_expenses'.",
            field="operating_expenses",
        )
    for name, value in income_statement.operating_expenses.items():
        require_amount(value, f"operating_expenses.{name}")


def compute_ratios(
    balance_sheet: BalanceSheetSnapshot,
    income_statement: IncomeStatementSnapshot,
) -> RatioSet:
    """
    Compute the ratio set for one balance sheet / income statement pair.

    Args:
        balance_sheet: Snapshot of assets, liabilities and equity.
        income_statement: Snapshot of revenue and expenses for a compatible period.

    Returns:
        A RatioSet. Percentages are already multiplied by 100.

    Raises:
        InvalidInput: if a snapshot is missing parts or carries invalid amounts.
    """
    _validate(balance_sheet, income_statement)

    current_assets = balance_sheet.current_assets.total
    inventory = balance_sheet.current_assets.inventory
    current_liabilities = balance_sheet.current_liabilities.total
    total_assets = balance_sheet.total_assets
    total_liabilities = balance_sheet.total_liabilities
    total_equity = balance_sheet.total_equity

    revenue = income_statement.revenue
    gross_profit = income_statement.gross_profit
    net_income = income_statement.net_income

    zero_divisors = [
        name
        for name, value in (
            ("current_liabilities", current_liabilities),
            ("revenue", revenue),
            ("total_assets", total_assets),
            ("total_equity", total_equity),
        )
        if value <= 0
    ]
    if zero_divisors:
        logger.warning(
            "Ratios depending on %s default to 0 (non-positive divisor).",
            ", ".join(zero_divisors),
        )

    return RatioSet(
        current_ratio=_safe_div(current_assets, current_liabilities),
        quick_ratio=_safe_div(current_assets - inventory, current_liabilities),
        gross_profit_margin=_safe_div(gross_profit, revenue, 100.0),
        net_profit_margin=_safe_div(net_income, revenue, 100.0),
        roa=_safe_div(net_income, total_assets, 100.0),
        roe=_safe_div(net_income, total_equity, 100.0),
        debt_to_asset_ratio=_safe_div(total_liabilities, total_assets, 100.0),
        debt_to_equity_ratio=_safe_div(total_liabilities, total_equity, 100.0),
        asset_turnover=_safe_div(revenue, total_assets),
        current_assets=current_assets,
        current_liabilities=current_liabilities,
        total_assets=total_assets,
        total_liabilities=total_liabilities,
        total_equity=total_equity,
        revenue=revenue,
        net_income=net_income,
    )


def ratio_results(
    ratios: RatioSet, decimals: Optional[int] = None
) -> list[RatioResult]:
    """
    Return the ratios of a RatioSet as labelled rows in display order.

    Args:
        ratios: Ratio set returned by compute_ratios().
        decimals: Optional rounding applied to the values.
    """
    results: list[RatioResult] = []
    for key, label, unit, category in RATIO_DEFINITIONS:
        value = float(getattr(ratios, key))
        if decimals is not None:
            value = round(value, decimals)
        results.append(
            RatioResult(key=key, label=label, value=value, unit=unit, category=category)
        )
    return results
