from datetime import date

import pytest

from finsight_analytics.models import (
    BalanceSheetSnapshot,
    CurrentAssets,
    CurrentLiabilities,
    Equity,
    FixedAssets,
    IncomeStatementSnapshot,
    LongTermLiabilities,
    Transaction,
)

SNAPSHOT_TOML = """
[balance_sheet]
as_of = "2024-12-31"

[balance_sheet.current_assets]
cash = 125000
receivables = 45000
inventory = 80000
prepaid = 12000

[balance_sheet.fixed_assets]
equipment = 300000
furniture = 50000
accumulated_depreciation = -62000

[balance_sheet.current_liabilities]
payables = 65000
short_term_loan = 50000
accrued = 28000

[balance_sheet.long_term_liabilities]
long_term_loan = 200000

[balance_sheet.equity]
capital = 150000
retained_earnings = 57000

[income_statement]
period = "2024"
revenue = 950000
cost_of_goods = 320000
other_income = 5000
other_expenses = 12000

[income_statement.operating_expenses]
salary = 480000
rent = 60000
"""


@pytest.fixture
def balance_sheet() -> BalanceSheetSnapshot:
    """Balanced sheet: 262k current assets, 143k current liabilities, 550k total."""
    return BalanceSheetSnapshot(
        as_of=date(2024, 12, 31),
        current_assets=CurrentAssets(
            cash=125000, receivables=45000, inventory=80000, prepaid=12000
        ),
        fixed_assets=FixedAssets(
            equipment=300000, furniture=50000, accumulated_depreciation=-62000
        ),
        current_liabilities=CurrentLiabilities(
            payables=65000, short_term_loan=50000, accrued=28000
        ),
        long_term_liabilities=LongTermLiabilities(long_term_loan=200000),
        equity=Equity(capital=150000, retained_earnings=57000),
    )


@pytest.fixture
def income_statement() -> IncomeStatementSnapshot:
    """Revenue 950k, gross profit 630k, net income 83k."""
    return IncomeStatementSnapshot(
        period="2024",
        revenue=950000,
        cost_of_goods=320000,
        operating_expenses={"salary": 480000, "rent": 60000},
        other_income=5000,
        other_expenses=12000,
    )


@pytest.fixture
def snapshot_file(tmp_path):
    path = tmp_path / "snapshot.toml"
    path.write_text(SNAPSHOT_TOML, encoding="utf-8")
    return path


@pytest.fixture
def outlier_expenses() -> list[Transaction]:
    """Five March expenses, the last one about 25 times the others."""
    amounts = [2000, 2100, 1950, 2050, 50000]
    return [
        Transaction(
            id=f"E{i + 1}",
            date=date(2024, 3, i + 1),
            type="expense",
            amount=amount,
            category="supplies",
            counterpart="Acme Supplies",
            status="paid",
        )
        for i, amount in enumerate(amounts)
    ]
