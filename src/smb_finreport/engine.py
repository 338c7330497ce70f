# SMB FinReport - Financial Aggregation & Reporting Engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Core financial aggregation engine for SMB FinReport.

This module sums heterogeneous source records into the two halves of a
financial statement for one period.

1. Revenue aggregation
   --------------------
   `aggregate_revenue()` computes:
   - paid invoice revenue (derived invoice amounts of paid invoices),
   - product sale revenue (sale prices of items sold in the period),
   - miscellaneous revenue (free-form revenue entries),
   - subscription revenue (monthly equivalents of contributing
     subscriptions, see proration.py),
   and, because it shares the invoice scan, the unpaid invoice amount
   (pending + overdue invoices).

2. Expense aggregation
   --------------------
   `aggregate_expenses()` computes:
   - cost of goods sold (purchase prices of the same sold items),
   - payroll (gross salaries of employees hired by the end of the period),
   - other expenses (general expense records).

Inputs are usually pre-filtered to the period by the data store. The period
filter is applied again here (it is idempotent), so that an unfiltered
snapshot gives the same figures. Subscriptions are always passed
unfiltered: their contribution depends on cross-period state.

Marking an inventory item as sold elsewhere in the application also writes
a revenue entry and a cost-of-goods expense linked to the item
(`source_type = "inventory_item"`). Those side-effect records are skipped
when the sold item itself is counted in the period, so a sale is counted
exactly once.

No rounding is applied here; values are rounded at presentation time only.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .models import (
    INVENTORY_SOURCE_TYPE,
    UNPAID_INVOICE_STATUSES,
    Employee,
    Expense,
    InventorySoldItem,
    Invoice,
    RevenueEntry,
    Subscription,
)
from .periods import Period, filter_by_date
from .proration import subscription_contribution

# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RevenueBreakdown:
    """
    Revenue of one period, by source.

    Attributes
    ----------
    paid_invoice_revenue:
        Sum of derived amounts of paid invoices issued in the period.
    product_sale_revenue:
        Sum of sale prices of inventory items sold in the period.
    misc_revenue:
        Sum of miscellaneous revenue entries dated in the period.
    subscription_revenue:
        Sum of monthly equivalents of subscriptions contributing to the
        period.
    unpaid_amount:
        Sum of derived amounts of pending and overdue invoices issued in the
        period. Not part of `total_revenue`.
    """

    paid_invoice_revenue: float = 0.0
    product_sale_revenue: float = 0.0
    misc_revenue: float = 0.0
    subscription_revenue: float = 0.0
    unpaid_amount: float = 0.0

    @property
    def total_revenue(self) -> float:
        return (
            self.paid_invoice_revenue
            + self.product_sale_revenue
            + self.misc_revenue
            + self.subscription_revenue
        )


@dataclass(frozen=True)
class ExpenseBreakdown:
    """Expenses of one period: COGS, payroll and other expenses."""

    cogs: float = 0.0
    payroll: float = 0.0
    other_expenses: float = 0.0

    @property
    def total_expenses(self) -> float:
        return self.cogs + self.payroll + self.other_expenses


# ---------------------------------------------------------------------------
# Selection helpers (shared with the statement line items)
# ---------------------------------------------------------------------------


def invoices_in_period(invoices: Iterable[Invoice], period: Period) -> list[Invoice]:
    """Invoices issued within the period."""
    return filter_by_date(invoices, "issue_date", period)


def paid_invoices(invoices: Iterable[Invoice], period: Period) -> list[Invoice]:
    """Paid invoices issued within the period."""
    return [i for i in invoices_in_period(invoices, period) if i.status == "paid"]


def unpaid_invoices(invoices: Iterable[Invoice], period: Period) -> list[Invoice]:
    """Pending or overdue invoices issued within the period."""
    return [
        i
        for i in invoices_in_period(invoices, period)
        if i.status in UNPAID_INVOICE_STATUSES
    ]


def sold_items_in_period(
    sold_items: Iterable[InventorySoldItem],
    period: Period,
) -> list[InventorySoldItem]:
    """Inventory items sold within the period."""
    return filter_by_date(sold_items, "sold_at", period)


def _is_counted_sale_side_effect(
    source_type: str | None,
    source_id: int | None,
    counted_item_ids: set[int],
) -> bool:
    return source_type == INVENTORY_SOURCE_TYPE and source_id in counted_item_ids


def misc_revenues_in_period(
    revenue_entries: Iterable[RevenueEntry],
    sold_items: Sequence[InventorySoldItem],
    period: Period,
) -> list[RevenueEntry]:
    """
    Revenue entries dated within the period, excluding the side-effect
    entries of sales already counted as product sale revenue.
    """
    counted = {item.id for item in sold_items_in_period(sold_items, period)}
    return [
        r
        for r in filter_by_date(revenue_entries, "date", period)
        if not _is_counted_sale_side_effect(r.source_type, r.source_id, counted)
    ]


def general_expenses_in_period(
    expenses: Iterable[Expense],
    sold_items: Sequence[InventorySoldItem],
    period: Period,
) -> list[Expense]:
    """
    Expense records dated within the period, excluding the cost-of-goods
    side-effect expenses of sales already counted as COGS.
    """
    counted = {item.id for item in sold_items_in_period(sold_items, period)}
    return [
        e
        for e in filter_by_date(expenses, "date", period)
        if not _is_counted_sale_side_effect(e.source_type, e.source_id, counted)
    ]


def eligible_employees(employees: Iterable[Employee], period: Period) -> list[Employee]:
    """
    Employees on the payroll for the period: hired on or before its end.

    Employees without any known hire or creation date cannot be placed in
    time and are left out.
    """
    return [
        e
        for e in employees
        if e.eligibility_date is not None and e.eligibility_date <= period.end
    ]


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


def aggregate_revenue(
    invoices: Iterable[Invoice],
    sold_items: Iterable[InventorySoldItem],
    revenue_entries: Iterable[RevenueEntry],
    subscriptions: Iterable[Subscription],
    period: Period,
) -> RevenueBreakdown:
    """Aggregate every revenue source for a period.

    Args:
        invoices: Invoices (bucketed by issue date).
        sold_items: Sold inventory items (bucketed by sale date).
        revenue_entries: Miscellaneous revenue entries (bucketed by date).
        subscriptions: All subscriptions of the owner, unfiltered.
        period: Target period.

    Returns:
        A RevenueBreakdown. `total_revenue` is always the sum of its four
        revenue components.
    """
    invoices = list(invoices)
    sold_items = list(sold_items)

    paid_total = sum(i.amount for i in paid_invoices(invoices, period))
    unpaid_total = sum(i.amount for i in unpaid_invoices(invoices, period))

    product_sales = sum(s.sale_price for s in sold_items_in_period(sold_items, period))

    misc_total = sum(
        r.amount for r in misc_revenues_in_period(revenue_entries, sold_items, period)
    )

    subscription_total = sum(
        subscription_contribution(s, period) for s in subscriptions
    )

    return RevenueBreakdown(
        paid_invoice_revenue=paid_total,
        product_sale_revenue=product_sales,
        misc_revenue=misc_total,
        subscription_revenue=subscription_total,
        unpaid_amount=unpaid_total,
    )


def aggregate_expenses(
    sold_items: Iterable[InventorySoldItem],
    employees: Iterable[Employee],
    expenses: Iterable[Expense],
    period: Period,
) -> ExpenseBreakdown:
    """Aggregate every expense source for a period.

    Args:
        sold_items: The same sold-items set given to `aggregate_revenue`.
        employees: Employees of the owner.
        expenses: General expense records (bucketed by date).
        period: Target period.

    Returns:
        An ExpenseBreakdown. `total_expenses` is always the sum of COGS,
        payroll and other expenses.
    """
    sold_items = list(sold_items)

    cogs = sum(s.purchase_price for s in sold_items_in_period(sold_items, period))
    payroll = sum(e.gross_salary for e in eligible_employees(employees, period))
    other = sum(
        e.amount for e in general_expenses_in_period(expenses, sold_items, period)
    )

    return ExpenseBreakdown(cogs=cogs, payroll=payroll, other_expenses=other)
