import json
import sqlite3
from pathlib import Path

import pytest

from smb_finreport import __version__
from smb_finreport.cli import main
from smb_finreport.db import SQLiteStore


def _setup(tmp_path: Path) -> Path:
    """Write a config file and a few CSV sources for March 2024."""
    config = tmp_path / "smb_finreport_config.toml"
    config.write_text(
        """
[account]
owner_id = "owner-1"
company_name = "Acme SARL"
currency = "eur"

[database]
path = "db/cli.sqlite"

[engine]
max_workers = 2

[export]
format = "pdf"
output_dir = "out"
""",
        encoding="utf-8",
    )
    (tmp_path / "invoices.csv").write_text(
        "invoice_number,status,issue_date,description,quantity,unit_price\n"
        "INV-1,paid,2024-03-04,Consulting,1,100\n"
        "INV-2,pending,2024-03-10,Audit,1,40\n",
        encoding="utf-8",
    )
    (tmp_path / "subscriptions.csv").write_text(
        "plan_name,price,status,start_date\nPro,30,active,2024-01-15\n",
        encoding="utf-8",
    )
    (tmp_path / "revenues.csv").write_text(
        "date,amount,description\n2024-03-03,15,Tip\n", encoding="utf-8"
    )
    (tmp_path / "expenses.csv").write_text(
        "date,amount,category,description\n2024-03-09,20,office,Paper\n",
        encoding="utf-8",
    )
    return config


def _import_all(tmp_path: Path, config: Path) -> None:
    for kind in ("invoices", "subscriptions", "revenues", "expenses"):
        main(["--config", str(config), "import", kind, str(tmp_path / f"{kind}.csv")])


def test_version_flag(capsys):
    main(["--version"])
    assert capsys.readouterr().out.strip() == f"smb_finreport version {__version__}"


def test_init_creates_database(tmp_path, capsys):
    config = _setup(tmp_path)
    main(["--config", str(config), "init"])

    assert (tmp_path / "db" / "cli.sqlite").is_file()
    assert "Database ready at" in capsys.readouterr().out


def test_import_reports_counts(tmp_path, capsys):
    config = _setup(tmp_path)
    csv_path = tmp_path / "invoices.csv"
    main(["--config", str(config), "import", "invoices", str(csv_path)])

    assert "Imported 2 invoices record(s)" in capsys.readouterr().out


def test_import_failure_exits_with_message(tmp_path):
    config = _setup(tmp_path)
    bad = tmp_path / "bad.csv"
    bad.write_text("date\n2024-03-01\n", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        main(["--config", str(config), "import", "revenues", str(bad)])
    assert "Import failed" in str(excinfo.value)


def test_statement_json(tmp_path, capsys):
    """The statement of March 2024 is printed as JSON, with the MRR."""
    config = _setup(tmp_path)
    _import_all(tmp_path, config)
    capsys.readouterr()

    main(
        [
            "--config",
            str(config),
            "statement",
            "--month",
            "2024-03",
            "--as-of",
            "2024-03-15",
            "--json",
        ]
    )
    payload = json.loads(capsys.readouterr().out)

    assert payload["period"] == "2024-03"
    assert payload["total_revenue"] == 145.0
    assert payload["unpaid_amount"] == 40.0
    assert payload["total_expenses"] == 20.0
    assert payload["net_result"] == 125.0
    assert payload["monthly_recurring_revenue"] == 30.0
    assert payload["currency"] == "eur"


def test_statement_table(tmp_path, capsys):
    config = _setup(tmp_path)
    _import_all(tmp_path, config)
    capsys.readouterr()

    main(["--config", str(config), "statement", "--period", "2024-03"])
    out = capsys.readouterr().out

    assert "Applied period: March 2024" in out
    assert "145.00 €" in out
    assert "Monthly recurring revenue" in out


def test_month_and_period_are_exclusive(tmp_path):
    config = _setup(tmp_path)
    with pytest.raises(SystemExit):
        main(
            [
                "--config",
                str(config),
                "statement",
                "--month",
                "2024-03",
                "--period",
                "thisMonth",
            ]
        )


def test_invalid_month_exits(tmp_path):
    config = _setup(tmp_path)
    with pytest.raises(SystemExit):
        main(["--config", str(config), "statement", "--month", "2024-13"])


def test_archive_lists_months(tmp_path, capsys):
    config = _setup(tmp_path)
    main(["--config", str(config), "archive", "--as-of", "2024-03-20"])
    assert "No financial activity recorded yet." in capsys.readouterr().out

    _import_all(tmp_path, config)
    capsys.readouterr()

    main(["--config", str(config), "archive", "--as-of", "2024-03-20"])
    assert capsys.readouterr().out.split() == ["2024-03", "2024-02", "2024-01"]


def test_trend(tmp_path, capsys):
    config = _setup(tmp_path)
    _import_all(tmp_path, config)
    capsys.readouterr()

    main(["--config", str(config), "trend", "--months", "2", "--as-of", "2024-03-20"])
    out = capsys.readouterr().out

    assert "2024-02" in out
    assert "2024-03" in out
    assert "125.00 €" in out


def test_export_csv_writes_file(tmp_path, capsys):
    config = _setup(tmp_path)
    _import_all(tmp_path, config)
    capsys.readouterr()

    main(
        [
            "--config",
            str(config),
            "export",
            "--month",
            "2024-03",
            "--format",
            "csv",
        ]
    )

    output = tmp_path / "out" / "financial-report-2024-03.csv"
    assert output.is_file()
    assert "Report written to" in capsys.readouterr().out
    assert "Paid Invoices" in output.read_text(encoding="utf-8")


def test_export_requires_a_period(tmp_path):
    config = _setup(tmp_path)
    with pytest.raises(SystemExit):
        main(["--config", str(config), "export", "--format", "csv"])


def test_statement_read_failure_exits_with_generic_error(tmp_path, monkeypatch):
    """A failing subscriptions read surfaces as the generic data error."""
    config = _setup(tmp_path)
    _import_all(tmp_path, config)

    def failing_read(self, owner_id):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(SQLiteStore, "list_subscriptions", failing_read)

    with pytest.raises(SystemExit) as excinfo:
        main(["--config", str(config), "statement", "--month", "2024-03"])
    assert str(excinfo.value) == "Error: Unable to load financial data."
