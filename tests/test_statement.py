from datetime import date

import pytest

from smb_finreport.engine import ExpenseBreakdown, RevenueBreakdown
from smb_finreport.models import (
    Employee,
    Expense,
    InventorySoldItem,
    Invoice,
    InvoiceItem,
    Plan,
    RevenueEntry,
    Subscription,
)
from smb_finreport.periods import period_for_month
from smb_finreport.service import SourceSnapshot, statement_from_snapshot
from smb_finreport.statement import (
    STATEMENT_MEASURES,
    assemble_statement,
    build_line_items,
)

MARCH = period_for_month("2024-03")


def _scenario_snapshot() -> SourceSnapshot:
    """
    One paid invoice of 100, one active monthly subscription at 30, one item
    sold for 80 (cost 50) and one general expense of 20, all in March 2024.
    """
    return SourceSnapshot(
        period=MARCH,
        invoices=(
            Invoice(
                id=1,
                invoice_number="INV-001",
                status="paid",
                issue_date=date(2024, 3, 4),
                due_date=date(2024, 4, 4),
                items=(InvoiceItem("Consulting", 1, 100.0),),
                client_name="Acme",
            ),
        ),
        subscriptions=(
            Subscription(1, "active", date(2024, 1, 1), Plan("Pro", 30.0, "month")),
        ),
        sold_items=(
            InventorySoldItem(1, "Chair", 80.0, 50.0, date(2024, 3, 12)),
        ),
        revenue_entries=(),
        expenses=(Expense(1, 20.0, "office", date(2024, 3, 20), "Paper"),),
        employees=(),
        new_clients_count=1,
    )


def test_reference_scenario_statement() -> None:
    """100 + 30 + 80 revenue, 50 + 20 expenses, 140 net result."""
    statement = statement_from_snapshot(_scenario_snapshot())

    assert statement.total_revenue == pytest.approx(210.0)
    assert statement.total_expenses == pytest.approx(70.0)
    assert statement.net_result == pytest.approx(140.0)
    assert statement.paid_invoice_revenue == pytest.approx(100.0)
    assert statement.subscription_revenue == pytest.approx(30.0)
    assert statement.product_sale_revenue == pytest.approx(80.0)
    assert statement.cogs == pytest.approx(50.0)
    assert statement.other_expenses == pytest.approx(20.0)
    assert statement.new_clients_count == 1


def test_totals_are_sums_of_components() -> None:
    """Revenue and expense totals always equal the sum of their parts."""
    statement = assemble_statement(
        MARCH,
        RevenueBreakdown(
            paid_invoice_revenue=10.5,
            product_sale_revenue=2.25,
            misc_revenue=-1.0,
            subscription_revenue=3.0,
            unpaid_amount=99.0,
        ),
        ExpenseBreakdown(cogs=1.0, payroll=2.0, other_expenses=3.5),
        new_clients_count=2,
    )

    assert statement.total_revenue == (
        statement.paid_invoice_revenue
        + statement.product_sale_revenue
        + statement.misc_revenue
        + statement.subscription_revenue
    )
    assert statement.total_expenses == (
        statement.cogs + statement.payroll + statement.other_expenses
    )
    assert statement.net_result == statement.total_revenue - statement.total_expenses
    assert statement.unpaid_amount == 99.0


def test_statement_is_idempotent() -> None:
    """Computing twice from the same data gives identical statements."""
    snapshot = _scenario_snapshot()
    assert statement_from_snapshot(snapshot) == statement_from_snapshot(snapshot)


def test_empty_period_gives_all_zero_statement() -> None:
    """A period without events has every aggregate at zero."""
    empty = SourceSnapshot(
        period=MARCH,
        invoices=(),
        subscriptions=(),
        sold_items=(),
        revenue_entries=(),
        expenses=(),
        employees=(),
        new_clients_count=0,
    )
    statement = statement_from_snapshot(empty)

    for key in STATEMENT_MEASURES:
        assert getattr(statement, key) == 0


def test_negative_net_result_is_preserved() -> None:
    """Expenses larger than revenue give a negative net result."""
    statement = assemble_statement(
        MARCH,
        RevenueBreakdown(paid_invoice_revenue=10.0),
        ExpenseBreakdown(payroll=25.0),
    )
    assert statement.net_result == -15.0


def test_to_dict_rounds_for_presentation_only() -> None:
    """to_dict rounds monetary values but the Statement keeps full precision."""
    statement = assemble_statement(
        MARCH,
        RevenueBreakdown(paid_invoice_revenue=10.005, misc_revenue=0.001),
        ExpenseBreakdown(),
    )
    data = statement.to_dict()

    assert data["period"] == "2024-03"
    assert data["start"] == "2024-03-01"
    assert data["end"] == "2024-03-31"
    assert data["misc_revenue"] == 0.0
    assert statement.misc_revenue == 0.001


def test_line_items_follow_aggregation_rules() -> None:
    """Line items are selected with the same filters as the aggregators."""
    snapshot = SourceSnapshot(
        period=MARCH,
        invoices=(
            Invoice(1, "INV-1", "paid", date(2024, 3, 1), None),
            Invoice(2, "INV-2", "pending", date(2024, 3, 2), None),
            Invoice(3, "INV-3", "paid", date(2024, 4, 1), None),
        ),
        subscriptions=(
            Subscription(1, "active", date(2024, 1, 1), Plan("A", 10.0)),
            Subscription(2, "active", date(2024, 5, 1), Plan("B", 10.0)),
        ),
        sold_items=(InventorySoldItem(5, "Lamp", 40.0, 25.0, date(2024, 3, 3)),),
        revenue_entries=(
            RevenueEntry(1, 40.0, date(2024, 3, 3), "", "inventory_item", 5),
            RevenueEntry(2, 12.0, date(2024, 3, 4), "Donation"),
        ),
        expenses=(Expense(1, 25.0, "cogs", date(2024, 3, 3), "", "inventory_item", 5),),
        employees=(Employee(1, "Ann", 1000.0, hire_date=date(2024, 6, 1)),),
        new_clients_count=0,
    )

    items = build_line_items(snapshot, MARCH)

    assert [i.id for i in items.paid_invoices] == [1]
    assert [i.id for i in items.unpaid_invoices] == [2]
    assert [s.id for s in items.subscriptions] == [1]
    assert [p.id for p in items.product_sales] == [5]
    assert [r.id for r in items.misc_revenues] == [2]
    assert items.general_expenses == ()
    assert items.employees == ()
