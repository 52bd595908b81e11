# FinSight Analytics - Financial analytics engine for SMB bookkeeping
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
FinSight Analytics
------------------

The analytics core of an SMB bookkeeping application. Given fully
materialised snapshots (transactions, balance sheet, income statement,
budgets), it computes:

- financial ratios (liquidity, profitability, leverage, efficiency),
- a composite 0-100 financial health score with a letter grade,
- prioritised, rule-based recommendations,
- budget execution and overview per period,
- a monthly cash-flow forecast with optimistic / pessimistic bands,
- statistical anomalies in income and expense amounts.

Every component is a pure function over immutable inputs. Thresholds are
passed explicitly (see ``config.py``) and default to documented values.
Storage, authentication and rendering belong to the calling application;
``service.py`` is the thin layer such an application calls, ``cli.py`` a
command-line front-end over local files.


Version: 0.1.0

Usage:
    python -m finsight_analytics.cli --help
"""

__all__ = [
    "anomalies",
    "budgets",
    "config",
    "forecast",
    "health",
    "io",
    "ratios",
    "recommendations",
    "service",
    "views",
]

__version__ = "0.1.0"
