import json
from pathlib import Path

import pytest

from finsight_analytics.cli import _build_parser, main

TRANSACTIONS_CSV = """id,date,type,amount,category,counterpart,status
I1,2024-01-15,income,6000,sales,Client A,received
I2,2024-02-15,income,6000,sales,Client B,received
I3,2024-03-15,income,6000,sales,Client A,received
E1,2024-03-01,expense,2000,supplies,Acme Supplies,paid
E2,2024-03-02,expense,2100,supplies,Acme Supplies,paid
E3,2024-03-03,expense,1950,supplies,Acme Supplies,paid
E4,2024-03-04,expense,2050,supplies,Acme Supplies,paid
E5,2024-03-05,expense,50000,supplies,Acme Supplies,pending
"""

BUDGETS_TOML = """
[[budgets]]
id = "B-SUP"
name = "Supplies"
category = "supplies"
period = "2024-03"
planned_amount = 50000
"""


@pytest.fixture
def transactions_file(tmp_path: Path) -> Path:
    path = tmp_path / "transactions.csv"
    path.write_text(TRANSACTIONS_CSV, encoding="utf-8")
    return path


@pytest.fixture
def budgets_file(tmp_path: Path) -> Path:
    path = tmp_path / "budgets.toml"
    path.write_text(BUDGETS_TOML, encoding="utf-8")
    return path


def test_parser_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        _build_parser().parse_args([])


def test_health_table(snapshot_file: Path, capsys) -> None:
    code = main(["health", "--snapshot", str(snapshot_file)])

    out = capsys.readouterr().out
    assert code == 0
    assert "Health score: 75/100 (B)" in out
    assert "Current ratio" in out
    assert "Efficient asset use" in out


def test_health_json(snapshot_file: Path, capsys) -> None:
    code = main(["--format", "json", "health", "--snapshot", str(snapshot_file)])

    payload = json.loads(capsys.readouterr().out)
    assert code == 0
    assert payload["health"]["score"] == 75
    assert payload["ratios"]["current_ratio"] == pytest.approx(262000 / 143000)


def test_budgets_table(budgets_file: Path, transactions_file: Path, capsys) -> None:
    code = main(
        [
            "budgets",
            "--budgets",
            str(budgets_file),
            "--transactions",
            str(transactions_file),
            "--period",
            "2024-03",
        ]
    )

    out = capsys.readouterr().out
    assert code == 0
    assert "B-SUP" in out
    assert "exceeded" in out
    assert "Exceeded: 1" in out


def test_forecast_json(transactions_file: Path, capsys) -> None:
    code = main(
        ["--format", "json", "forecast", "--transactions", str(transactions_file), "--months", "2"]
    )

    payload = json.loads(capsys.readouterr().out)
    assert code == 0
    assert [p["period_label"] for p in payload["forecast"]] == ["2024-04", "2024-05"]


def test_forecast_table(transactions_file: Path, capsys) -> None:
    code = main(["forecast", "--transactions", str(transactions_file), "--months", "2"])

    out = capsys.readouterr().out
    assert code == 0
    assert "2024-05" in out
    assert "Trend: negative" in out


def test_anomalies_table(transactions_file: Path, capsys) -> None:
    code = main(["anomalies", "--transactions", str(transactions_file)])

    out = capsys.readouterr().out
    assert code == 0
    assert "E5" in out
    assert "high" in out


def test_invalid_horizon_exits_non_zero(transactions_file: Path, capsys) -> None:
    code = main(["forecast", "--transactions", str(transactions_file), "--months", "0"])

    err = capsys.readouterr().err
    assert code == 1
    assert "INVALID_HORIZON" in err


def test_error_body_in_json_mode(transactions_file: Path, capsys) -> None:
    code = main(
        ["--format", "json", "anomalies", "--transactions", str(transactions_file), "--type", "income"]
    )

    body = json.loads(capsys.readouterr().out)
    assert code == 1
    assert body["code"] == "INSUFFICIENT_SAMPLE"
    assert body["status"] == 422


def test_missing_input_file(tmp_path: Path, capsys) -> None:
    code = main(["health", "--snapshot", str(tmp_path / "nope.toml")])

    assert code == 1
    assert "not found" in capsys.readouterr().err


def test_config_file_is_applied(
    tmp_path: Path, budgets_file: Path, transactions_file: Path, capsys
) -> None:
    config = tmp_path / "analytics.toml"
    config.write_text("[budgets]\nexceeded_threshold = 150\n", encoding="utf-8")

    main(
        [
            "--config",
            str(config),
            "--format",
            "json",
            "budgets",
            "--budgets",
            str(budgets_file),
            "--transactions",
            str(transactions_file),
        ]
    )

    payload = json.loads(capsys.readouterr().out)
    assert payload["executions"][0]["status"] == "warning"


@pytest.mark.parametrize(
    "content",
    [
        "",
        "date,type,amount\n2024-01-01,income,100\n2024-01-02,income,200,5,6\n",
    ],
)
def test_unreadable_transactions_file(tmp_path: Path, capsys, content: str) -> None:
    path = tmp_path / "broken.csv"
    path.write_text(content, encoding="utf-8")

    code = main(["forecast", "--transactions", str(path)])

    assert code == 1
    assert "Error [INVALID_INPUT]" in capsys.readouterr().err


def test_empty_transactions_file_in_json_mode(tmp_path: Path, capsys) -> None:
    path = tmp_path / "empty.csv"
    path.write_text("", encoding="utf-8")

    code = main(["--format", "json", "anomalies", "--transactions", str(path)])

    body = json.loads(capsys.readouterr().out)
    assert code == 1
    assert body["code"] == "INVALID_INPUT"
    assert body["status"] == 400


def test_forecast_table_prints_alerts(transactions_file: Path, capsys) -> None:
    code = main(
        [
            "forecast",
            "--transactions",
            str(transactions_file),
            "--months",
            "2",
            "--as-of",
            "2024-03-31",
        ]
    )

    out = capsys.readouterr().out
    assert code == 0
    assert "=== Alerts ===" in out
    assert "[critical] Cash shortfall" in out
    assert "Overdue receivables" not in out
