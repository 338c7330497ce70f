from datetime import date

import pandas as pd
import pytest

import smb_finreport.multi_periods as mp
from smb_finreport.models import (
    Expense,
    Invoice,
    InvoiceItem,
    Plan,
    Subscription,
)
from smb_finreport.periods import Period, period_for_month
from smb_finreport.service import FinancialDataUnavailable
from smb_finreport.statement import STATEMENT_MEASURES


def _paid_invoice(inv_id, issue, amount) -> Invoice:
    return Invoice(
        id=inv_id,
        invoice_number=f"INV-{inv_id}",
        status="paid",
        issue_date=issue,
        due_date=None,
        items=(InvoiceItem("Work", 1, amount),),
    )


class InMemoryStore:
    """
    Minimal store used to test the multi-period orchestration.

    Reads ignore the requested bounds on purpose: the aggregators must
    re-apply each period filter themselves.
    """

    def __init__(self, fail_new_clients: bool = False) -> None:
        self.fail_new_clients = fail_new_clients
        self.ranges: list[tuple[date, date]] = []
        self.invoices = [
            _paid_invoice(1, date(2024, 1, 10), 100.0),
            _paid_invoice(2, date(2024, 3, 10), 50.0),
        ]
        self.subscriptions = [
            Subscription(1, "active", date(2024, 2, 1), Plan("Pro", 30.0)),
        ]
        self.expenses = [Expense(1, 20.0, "office", date(2024, 2, 5))]
        self.client_dates = [date(2024, 1, 3), date(2024, 3, 4), date(2024, 3, 9)]

    def list_invoices(self, owner_id, start, end):
        self.ranges.append((start, end))
        return list(self.invoices)

    def list_subscriptions(self, owner_id):
        return list(self.subscriptions)

    def list_sold_inventory_items(self, owner_id, start, end):
        return []

    def list_revenue_entries(self, owner_id, start, end):
        return []

    def list_expenses(self, owner_id, start, end):
        return list(self.expenses)

    def list_employees(self, owner_id, end):
        return []

    def count_new_clients(self, owner_id, start, end):
        if self.fail_new_clients:
            raise RuntimeError("clients table unavailable")
        return sum(1 for d in self.client_dates if start <= d <= end)

    def list_event_dates(self, owner_id):
        return []


def _quarter():
    return [period_for_month(k) for k in ("2024-01", "2024-02", "2024-03")]


def test_compute_statements_multi_period_reads_once_and_splits_by_period():
    """One read over the global range, one Statement per requested period."""
    store = InMemoryStore()

    result = mp.compute_statements_multi_period(store, "owner-1", _quarter())

    # A single read over [2024-01-01, 2024-03-31].
    assert store.ranges == [(date(2024, 1, 1), date(2024, 3, 31))]

    jan, feb, mar = result.statements
    assert jan.total_revenue == 100.0
    assert jan.new_clients_count == 1
    assert feb.total_revenue == 30.0
    assert feb.total_expenses == 20.0
    assert feb.net_result == 10.0
    assert mar.total_revenue == 80.0
    assert mar.new_clients_count == 2


def test_multi_period_dataframe_layout():
    """The long DataFrame has one row per measure and period."""
    result = mp.compute_statements_multi_period(InMemoryStore(), "owner-1", _quarter())
    df = result.data

    assert list(df.columns) == mp.MULTI_PERIOD_COLUMNS
    assert len(df) == 3 * len(STATEMENT_MEASURES)
    assert list(df["period"].unique()) == ["2024-01", "2024-02", "2024-03"]

    march_net = df[(df["period"] == "2024-03") & (df["measure_key"] == "net_result")]
    assert march_net["value"].iloc[0] == 80.0


def test_pivot_orders_measures_and_periods():
    """pivot() keeps measure order and request order of the periods."""
    result = mp.compute_statements_multi_period(InMemoryStore(), "owner-1", _quarter())
    wide = result.pivot()

    assert list(wide.index) == list(STATEMENT_MEASURES)
    assert list(wide.columns) == ["January 2024", "February 2024", "March 2024"]
    assert wide.loc["total_revenue", "February 2024"] == 30.0


def test_empty_period_list_is_rejected():
    """At least one period is required."""
    with pytest.raises(ValueError):
        mp.compute_statements_multi_period(InMemoryStore(), "owner-1", [])


def test_failed_new_clients_count_fails_the_computation():
    """A failing per-period read fails the whole multi-period computation."""
    store = InMemoryStore(fail_new_clients=True)
    with pytest.raises(FinancialDataUnavailable):
        mp.compute_statements_multi_period(store, "owner-1", _quarter())


def test_trend_periods_cross_year_boundary():
    """Trend months go back across January, oldest first."""
    periods = mp.trend_periods(date(2024, 2, 10), months=4)

    assert [p.key for p in periods] == ["2023-11", "2023-12", "2024-01", "2024-02"]
    assert periods[-1].end == date(2024, 2, 29)

    with pytest.raises(ValueError):
        mp.trend_periods(date(2024, 2, 10), months=0)


def test_revenue_trend_frame():
    """revenue_trend returns monthly totals for the chart."""
    df = mp.revenue_trend(InMemoryStore(), "owner-1", date(2024, 3, 20), months=3)

    assert isinstance(df, pd.DataFrame)
    assert list(df.columns) == [
        "month",
        "label",
        "total_revenue",
        "total_expenses",
        "net_result",
    ]
    assert df["month"].tolist() == ["2024-01", "2024-02", "2024-03"]
    assert df["total_revenue"].tolist() == [100.0, 30.0, 80.0]
    assert df["net_result"].tolist() == [100.0, 10.0, 80.0]


def test_pivot_keeps_periods_sharing_a_label_apart():
    """Two periods with the same label give two columns, never a sum."""
    periods = [
        Period(date(2024, 1, 1), date(2024, 1, 31), "Same label", "custom"),
        Period(date(2024, 3, 1), date(2024, 3, 31), "Same label", "custom"),
    ]
    result = mp.compute_statements_multi_period(InMemoryStore(), "owner-1", periods)
    wide = result.pivot()

    assert wide.shape == (len(STATEMENT_MEASURES), 2)
    assert wide.loc["total_revenue"].tolist() == [100.0, 80.0]
