import threading
from datetime import date

import pytest

from smb_finreport.db import (
    DatabaseConfig,
    SQLiteStore,
    insert_client,
    insert_expense,
    insert_inventory_item,
    insert_invoice,
    insert_plan,
    insert_revenue,
    insert_subscription,
)
from smb_finreport.models import INVENTORY_SOURCE_TYPE, InvoiceItem
from smb_finreport.periods import period_for_month
from smb_finreport.service import (
    FinancialDataUnavailable,
    LatestResult,
    compute_live_statement,
    compute_report,
    compute_statement,
    fetch_snapshot,
    list_archive_periods,
)

OWNER = "owner-1"
MARCH = period_for_month("2024-03")


class StubStore:
    """In-memory store returning empty collections; single reads can fail."""

    def __init__(self, failing: str | None = None, event_dates=None) -> None:
        self.failing = failing
        self.event_dates = event_dates or []
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def _read(self, name, value):
        with self._lock:
            self.calls.append(name)
        if name == self.failing:
            raise RuntimeError(f"{name} backend is down")
        return value

    def list_invoices(self, owner_id, start, end):
        return self._read("list_invoices", [])

    def list_subscriptions(self, owner_id):
        return self._read("list_subscriptions", [])

    def list_sold_inventory_items(self, owner_id, start, end):
        return self._read("list_sold_inventory_items", [])

    def list_revenue_entries(self, owner_id, start, end):
        return self._read("list_revenue_entries", [])

    def list_expenses(self, owner_id, start, end):
        return self._read("list_expenses", [])

    def list_employees(self, owner_id, end):
        return self._read("list_employees", [])

    def count_new_clients(self, owner_id, start, end):
        return self._read("count_new_clients", 0)

    def list_event_dates(self, owner_id):
        return self._read("list_event_dates", self.event_dates)


def _seed_scenario(cfg: DatabaseConfig) -> None:
    """Paid invoice 100, subscription 30, sale 80/50, expense 20 in March 2024."""
    insert_client(cfg, OWNER, "Acme", date(2024, 3, 2))
    insert_invoice(
        cfg,
        OWNER,
        invoice_number="INV-001",
        status="paid",
        issue_date=date(2024, 3, 4),
        items=[InvoiceItem("Consulting", 1, 100.0)],
    )
    plan_id = insert_plan(cfg, OWNER, "Pro", 30.0, "month")
    insert_subscription(cfg, OWNER, plan_id, "active", date(2024, 1, 15))
    item_id = insert_inventory_item(
        cfg, OWNER, "Chair", 50.0, 80.0, sold_at=date(2024, 3, 12)
    )
    # Records written alongside the sale by the inventory module.
    insert_revenue(
        cfg,
        OWNER,
        80.0,
        date(2024, 3, 12),
        "Sale of Chair",
        source_type=INVENTORY_SOURCE_TYPE,
        source_id=item_id,
    )
    insert_expense(
        cfg,
        OWNER,
        50.0,
        date(2024, 3, 12),
        category="cogs",
        source_type=INVENTORY_SOURCE_TYPE,
        source_id=item_id,
    )
    insert_expense(cfg, OWNER, 20.0, date(2024, 3, 20), category="office")


def test_reference_scenario_against_sqlite_store(tmp_path):
    """The full pipeline gives 210 revenue, 70 expenses, 140 net result."""
    cfg = DatabaseConfig(engine="sqlite", path=tmp_path / "fin.sqlite")
    _seed_scenario(cfg)
    store = SQLiteStore(cfg)

    statement = compute_statement(store, OWNER, MARCH)

    assert statement.total_revenue == pytest.approx(210.0)
    assert statement.total_expenses == pytest.approx(70.0)
    assert statement.net_result == pytest.approx(140.0)
    assert statement.new_clients_count == 1

    # Idempotence: same inputs, identical result.
    assert compute_statement(store, OWNER, MARCH) == statement


def test_live_statement_uses_current_month_of_as_of(tmp_path):
    """The dashboard statement covers as_of's month by default."""
    cfg = DatabaseConfig(engine="sqlite", path=tmp_path / "fin.sqlite")
    _seed_scenario(cfg)

    store = SQLiteStore(cfg)
    statement = compute_live_statement(store, OWNER, as_of=date(2024, 3, 15))

    assert statement.period.key == "thisMonth"
    assert statement.period.start == date(2024, 3, 1)
    assert statement.total_revenue == pytest.approx(210.0)


def test_report_line_items_match_statement(tmp_path):
    """Line items come from the same snapshot as the statement."""
    cfg = DatabaseConfig(engine="sqlite", path=tmp_path / "fin.sqlite")
    _seed_scenario(cfg)

    report = compute_report(SQLiteStore(cfg), OWNER, MARCH)
    items = report.line_items

    paid_total = sum(i.amount for i in items.paid_invoices)
    assert paid_total == report.statement.paid_invoice_revenue
    assert sum(p.sale_price for p in items.product_sales) == 80.0
    assert sum(e.amount for e in items.general_expenses) == 20.0
    assert items.misc_revenues == ()
    assert len(items.subscriptions) == 1


def test_any_failed_read_fails_the_whole_computation(caplog):
    """A single failing read raises FinancialDataUnavailable, never a partial."""
    store = StubStore(failing="list_expenses")

    with caplog.at_level("ERROR", logger="smb_finreport.service"):
        with pytest.raises(FinancialDataUnavailable) as excinfo:
            compute_statement(store, OWNER, MARCH, max_workers=3)

    assert str(excinfo.value) == "Unable to load financial data."
    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert "Failed to read expenses" in caplog.text
    # Every read was issued, even though one of them failed.
    assert len(store.calls) == 7


def test_fetch_snapshot_reads_everything_once():
    """Each source collection is read exactly once per computation."""
    store = StubStore()
    snapshot = fetch_snapshot(store, OWNER, MARCH, max_workers=2)

    assert sorted(store.calls) == sorted(
        [
            "list_invoices",
            "list_subscriptions",
            "list_sold_inventory_items",
            "list_revenue_entries",
            "list_expenses",
            "list_employees",
            "count_new_clients",
        ]
    )
    assert snapshot.invoices == ()
    assert snapshot.new_clients_count == 0


def test_archive_periods_include_gap_months():
    """Events in January and March list February too, most recent first."""
    store = StubStore(event_dates=[date(2024, 1, 20), date(2024, 3, 2)])
    months = list_archive_periods(store, OWNER, as_of=date(2024, 3, 15))
    assert months == ["2024-03", "2024-02", "2024-01"]


def test_archive_periods_empty_history():
    """An owner without any event has nothing to archive."""
    months = list_archive_periods(StubStore(), OWNER, as_of=date(2024, 3, 15))
    assert months == []


def test_archive_periods_wraps_store_errors():
    """Errors while reading event dates surface as FinancialDataUnavailable."""
    store = StubStore(failing="list_event_dates")
    with pytest.raises(FinancialDataUnavailable):
        list_archive_periods(store, OWNER, as_of=date(2024, 3, 15))


def test_latest_result_discards_stale_publications():
    """Only the newest request may publish; older results are dropped."""
    latest: LatestResult[str] = LatestResult()

    first = latest.begin()
    second = latest.begin()

    assert latest.publish(second, "fresh") is True
    assert latest.publish(first, "stale") is False
    assert latest.value == "fresh"


def test_latest_result_stale_before_newest_finishes():
    """A stale result arriving before the newest one is still discarded."""
    latest: LatestResult[int] = LatestResult()

    old = latest.begin()
    new = latest.begin()

    assert latest.publish(old, 1) is False
    assert latest.value is None
    assert latest.publish(new, 2) is True
    assert latest.value == 2
