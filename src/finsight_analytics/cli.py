# FinSight Analytics - Financial analytics engine for SMB bookkeeping
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-line interface for FinSight Analytics.

Reads snapshots (TOML), budgets (TOML) and transactions (CSV), runs one of
the analytics components and prints the result either as tables or as the
same JSON payloads the service layer returns.

Usage:
    finsight-analytics health --snapshot data/snapshot.toml
    finsight-analytics budgets --budgets budgets.toml --transactions tx.csv --period 2024-03
    finsight-analytics forecast --transactions tx.csv --months 6 --as-of 2024-06-30
    finsight-analytics anomalies --transactions tx.csv --type expense
"""

import argparse
import json
import logging
import sys
from datetime import date
from typing import Any, Optional

from . import __version__
from .anomalies import detect_anomalies, summarize_anomalies
from .budgets import budget_overview, track_budgets
from .config import AnalyticsConfig, load_analytics_config
from .exceptions import AnalyticsError
from .forecast import (
    cashflow_alerts,
    forecast_cashflow,
    monthly_net_flows,
    summarize_history,
)
from .health import score_health
from .io import load_budgets, load_snapshots, read_transactions
from .ratios import compute_ratios, ratio_results
from .recommendations import build_recommendations
from .service import anomaly_report, budget_report, cashflow_forecast_report
from .service import error_response, financial_health_report
from .views import (
    anomalies_to_dataframe,
    budgets_to_dataframe,
    forecast_to_dataframe,
    health_to_dataframe,
    ratios_to_dataframe,
    recommendations_to_dataframe,
)

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="finsight-analytics",
        description=(
            "FinSight Analytics - financial ratios, health score, budget "
            "tracking, cash-flow forecasts and anomaly detection for SMB "
            "bookkeeping data."
        ),
    )

    ap.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to a TOML file overriding the default thresholds. "
            "If omitted, the documented defaults are used."
        ),
    )
    ap.add_argument(
        "--format",
        dest="output_format",
        choices=["table", "json"],
        default="table",
        help="Print results as tables (default) or as JSON.",
    )
    ap.add_argument(
        "--decimals",
        type=int,
        default=2,
        help="Number of decimals used for ratios in table output.",
    )
    ap.add_argument(
        "--log-level",
        dest="log_level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING).",
    )

    subparsers = ap.add_subparsers(dest="command", metavar="command", required=True)

    health = subparsers.add_parser(
        "health", help="Financial ratios, health score and recommendations."
    )
    health.add_argument(
        "--snapshot",
        required=True,
        help="TOML file with [balance_sheet] and [income_statement] tables.",
    )

    budgets = subparsers.add_parser("budgets", help="Budget execution for a period.")
    budgets.add_argument("--budgets", required=True, help="TOML file with [[budgets]].")
    budgets.add_argument("--transactions", required=True, help="Transactions CSV file.")
    budgets.add_argument(
        "--period",
        help="Period key (YYYY-MM or YYYY). If omitted, every budget is tracked.",
    )

    forecast = subparsers.add_parser("forecast", help="Monthly cash-flow forecast.")
    forecast.add_argument("--transactions", required=True, help="Transactions CSV file.")
    forecast.add_argument(
        "--months", type=int, default=6, help="Forecast horizon in months (default: 6)."
    )
    forecast.add_argument(
        "--as-of",
        dest="as_of",
        type=date.fromisoformat,
        help="Date (YYYY-MM-DD) receivables are checked against (default: today).",
    )

    anomalies = subparsers.add_parser("anomalies", help="Outlier transactions.")
    anomalies.add_argument("--transactions", required=True, help="Transactions CSV file.")
    anomalies.add_argument(
        "--type",
        dest="transaction_type",
        choices=["income", "expense"],
        default="expense",
        help="Population to analyse (default: expense).",
    )

    return ap


def _print_json(payload: dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _handle_health(args: argparse.Namespace, config: AnalyticsConfig) -> None:
    balance_sheet, income_statement = load_snapshots(args.snapshot)

    if args.output_format == "json":
        _print_json(financial_health_report(balance_sheet, income_statement, config))
        return

    ratios = compute_ratios(balance_sheet, income_statement)
    health = score_health(ratios, config.health)
    recs = build_recommendations(ratios, health, config.recommendations)

    print(f"=== Ratios ({income_statement.period}, as of {balance_sheet.as_of}) ===")
    print(ratios_to_dataframe(ratio_results(ratios), args.decimals).to_string(index=False))
    print()
    print(f"=== Health score: {health.score}/{health.max_score} ({health.grade}) ===")
    print(health_to_dataframe(health).to_string(index=False))
    print()
    print("=== Recommendations ===")
    if recs:
        print(recommendations_to_dataframe(recs).to_string(index=False))
    else:
        print("No findings.")


def _handle_budgets(args: argparse.Namespace, config: AnalyticsConfig) -> None:
    budgets = load_budgets(args.budgets, period=args.period)
    transactions = read_transactions(args.transactions)

    if args.output_format == "json":
        _print_json(budget_report(budgets, transactions, args.period, config))
        return

    executions = track_budgets(budgets, transactions, config.budgets)
    overview = budget_overview(executions, args.period)

    print(f"=== Budgets ({args.period or 'all periods'}) ===")
    if executions:
        print(budgets_to_dataframe(executions).to_string(index=False))
    else:
        print("No budgets defined for the selected period.")
    print()
    print(
        f"Total planned: {overview.total_planned:,.2f} | "
        f"Total actual: {overview.total_actual:,.2f} | "
        f"Usage: {overview.overall_usage:.1f}% | "
        f"Exceeded: {overview.exceeded_count} | Warning: {overview.warning_count}"
    )


def _handle_forecast(args: argparse.Namespace, config: AnalyticsConfig) -> None:
    transactions = read_transactions(args.transactions)

    if args.output_format == "json":
        _print_json(
            cashflow_forecast_report(transactions, args.months, config, args.as_of)
        )
        return

    history = monthly_net_flows(transactions)
    forecast = forecast_cashflow(history, args.months, config.forecast)
    insights = summarize_history(history, config.forecast)

    print(f"=== Cash-flow forecast ({args.months} months) ===")
    print(forecast_to_dataframe(forecast).to_string(index=False))
    print()
    print(
        f"Trend: {insights.trend} | Average monthly flow: "
        f"{insights.average_monthly_flow:,.2f} | Volatility: {insights.volatility:,.2f}"
    )

    alerts = cashflow_alerts(transactions, args.as_of or date.today(), forecast)
    if alerts:
        print()
        print("=== Alerts ===")
        for alert in alerts:
            print(f"[{alert.type}] {alert.title}: {alert.message}")


def _handle_anomalies(args: argparse.Namespace, config: AnalyticsConfig) -> None:
    transactions = read_transactions(args.transactions)

    if args.output_format == "json":
        _print_json(anomaly_report(transactions, args.transaction_type, config))
        return

    population = transactions[transactions["type"] == args.transaction_type]
    records = detect_anomalies(population, config.anomalies)
    summary = summarize_anomalies(records)

    print(f"=== Anomalies ({args.transaction_type}, {len(population)} transactions) ===")
    if records:
        print(anomalies_to_dataframe(records).to_string(index=False))
        print()
        for record in records:
            print(f"- {record.description}")
    else:
        print("No anomalies found.")
    print()
    print("Recommended actions: " + "; ".join(summary.recommended_actions))


_HANDLERS = {
    "health": _handle_health,
    "budgets": _handle_budgets,
    "forecast": _handle_forecast,
    "anomalies": _handle_anomalies,
}


def main(argv: Optional[list[str]] = None) -> int:
    """CLI entry point. Returns the process exit status."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(levelname)s %(name)s: %(message)s",
    )

    logger.debug("Running %r with config %s", args.command, args.config_path or "defaults")

    try:
        config = load_analytics_config(args.config_path)
        _HANDLERS[args.command](args, config)
    except AnalyticsError as exc:
        body = error_response(exc)
        if args.output_format == "json":
            _print_json(body)
        else:
            print(f"Error [{body['code']}]: {body['message']}", file=sys.stderr)
        return 1
    except FileNotFoundError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
