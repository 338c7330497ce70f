# SMB FinReport - Financial Aggregation & Reporting Engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Statement assembly for SMB FinReport.

A Statement is the single, immutable result of one financial computation
for one period. It is built fresh on every query by combining a
RevenueBreakdown and an ExpenseBreakdown (see engine.py) with the
secondary metrics (unpaid invoices, new clients).

The live dashboard and the historical report exporter both consume this
exact shape, so "total revenue" can never mean two different things.

`StatementLineItems` carries the source records a Statement was built from,
selected with the same rules as the aggregators. It feeds the itemized
sections of exported reports.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .engine import (
    ExpenseBreakdown,
    RevenueBreakdown,
    eligible_employees,
    general_expenses_in_period,
    misc_revenues_in_period,
    paid_invoices,
    sold_items_in_period,
    unpaid_invoices,
)
from .models import (
    Employee,
    Expense,
    InventorySoldItem,
    Invoice,
    RevenueEntry,
    Subscription,
)
from .periods import Period
from .proration import contributing_subscriptions

if TYPE_CHECKING:
    from .service import SourceSnapshot


@dataclass(frozen=True)
class Statement:
    """
    Financial statement for one period.

    Revenue side:
        total_revenue = paid_invoice_revenue + subscription_revenue
                        + product_sale_revenue + misc_revenue
    Expense side:
        total_expenses = cogs + payroll + other_expenses
    Result:
        net_result = total_revenue - total_expenses

    `unpaid_amount` and `new_clients_count` are informational and do not
    enter the totals. Values are unrounded.
    """

    period: Period
    total_revenue: float
    paid_invoice_revenue: float
    subscription_revenue: float
    product_sale_revenue: float
    misc_revenue: float
    unpaid_amount: float
    new_clients_count: int
    total_expenses: float
    cogs: float
    payroll: float
    other_expenses: float
    net_result: float

    def to_dict(self, decimals: int = 2) -> dict[str, Any]:
        """
        Flat, JSON-friendly representation (monetary values rounded).

        Rounding happens here only, as a presentation step.
        """
        return {
            "period": self.period.key,
            "period_label": self.period.label,
            "start": self.period.start.isoformat(),
            "end": self.period.end.isoformat(),
            "total_revenue": round(self.total_revenue, decimals),
            "paid_invoice_revenue": round(self.paid_invoice_revenue, decimals),
            "subscription_revenue": round(self.subscription_revenue, decimals),
            "product_sale_revenue": round(self.product_sale_revenue, decimals),
            "misc_revenue": round(self.misc_revenue, decimals),
            "unpaid_amount": round(self.unpaid_amount, decimals),
            "new_clients_count": self.new_clients_count,
            "total_expenses": round(self.total_expenses, decimals),
            "cogs": round(self.cogs, decimals),
            "payroll": round(self.payroll, decimals),
            "other_expenses": round(self.other_expenses, decimals),
            "net_result": round(self.net_result, decimals),
        }


STATEMENT_MEASURES: tuple[str, ...] = (
    "total_revenue",
    "paid_invoice_revenue",
    "subscription_revenue",
    "product_sale_revenue",
    "misc_revenue",
    "unpaid_amount",
    "new_clients_count",
    "total_expenses",
    "cogs",
    "payroll",
    "other_expenses",
    "net_result",
)


def assemble_statement(
    period: Period,
    revenue: RevenueBreakdown,
    expenses: ExpenseBreakdown,
    new_clients_count: int = 0,
) -> Statement:
    """Combine revenue, expenses and secondary metrics into a Statement."""
    total_revenue = float(revenue.total_revenue)
    total_expenses = float(expenses.total_expenses)

    return Statement(
        period=period,
        total_revenue=total_revenue,
        paid_invoice_revenue=float(revenue.paid_invoice_revenue),
        subscription_revenue=float(revenue.subscription_revenue),
        product_sale_revenue=float(revenue.product_sale_revenue),
        misc_revenue=float(revenue.misc_revenue),
        unpaid_amount=float(revenue.unpaid_amount),
        new_clients_count=int(new_clients_count),
        total_expenses=total_expenses,
        cogs=float(expenses.cogs),
        payroll=float(expenses.payroll),
        other_expenses=float(expenses.other_expenses),
        net_result=total_revenue - total_expenses,
    )


@dataclass(frozen=True)
class StatementLineItems:
    """
    Source records behind a Statement, already restricted to its period.

    COGS lines are the `product_sales` records read through their purchase
    price.
    """

    paid_invoices: tuple[Invoice, ...] = ()
    subscriptions: tuple[Subscription, ...] = ()
    product_sales: tuple[InventorySoldItem, ...] = ()
    misc_revenues: tuple[RevenueEntry, ...] = ()
    employees: tuple[Employee, ...] = ()
    general_expenses: tuple[Expense, ...] = ()
    unpaid_invoices: tuple[Invoice, ...] = ()


def build_line_items(snapshot: SourceSnapshot, period: Period) -> StatementLineItems:
    """Select the line items of a period using the aggregators' rules."""
    sold_items = list(snapshot.sold_items)
    return StatementLineItems(
        paid_invoices=tuple(paid_invoices(snapshot.invoices, period)),
        subscriptions=tuple(contributing_subscriptions(snapshot.subscriptions, period)),
        product_sales=tuple(sold_items_in_period(sold_items, period)),
        misc_revenues=tuple(
            misc_revenues_in_period(snapshot.revenue_entries, sold_items, period)
        ),
        employees=tuple(eligible_employees(snapshot.employees, period)),
        general_expenses=tuple(
            general_expenses_in_period(snapshot.expenses, sold_items, period)
        ),
        unpaid_invoices=tuple(unpaid_invoices(snapshot.invoices, period)),
    )
