# SMB FinReport - Financial Aggregation & Reporting Engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Source record types for SMB FinReport.

Every record handled by the reporting engine is owned by a single business
account and is created or updated by other parts of the application
(billing, inventory, HR). The engine only ever reads them.

The dataclasses below are the typed shape of these records once they have
crossed the data-store boundary. Loosely-typed raw values (None amounts,
timestamps instead of dates, mixed-case statuses) are normalized by the
coercion helpers of this module, which are called by the fetch layer
(`db.py`, `io.py`) and never inside aggregation logic.

Record types
------------
- InvoiceItem / Invoice :
    Billing documents. The invoice amount is *derived* from its items and
    tax rate and is never read from a stored total.
- Plan / Subscription :
    Recurring revenue. A subscription references the plan it is billed on.
- InventorySoldItem :
    One realized sale event (sale price and cost basis).
- RevenueEntry :
    Free-form miscellaneous income.
- Expense :
    General expense with a category.
- Employee :
    Payroll cost, treated as recurring monthly while employed.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Literal, Optional

InvoiceStatus = Literal["pending", "paid", "overdue"]
"""
Lifecycle status of an invoice.

Values
------
- "pending" : issued, not yet paid.
- "paid"    : settled; counts as revenue.
- "overdue" : past its due date and unpaid.
"""

SubscriptionStatus = Literal["active", "canceled"]
PlanInterval = Literal["month", "year"]

UNPAID_INVOICE_STATUSES: frozenset[str] = frozenset({"pending", "overdue"})

# Source type written on revenue/expense records created as a side effect of
# marking an inventory item as sold.
INVENTORY_SOURCE_TYPE = "inventory_item"


# ---------------------------------------------------------------------------
# Boundary coercion
# ---------------------------------------------------------------------------


def coerce_amount(value: Any) -> float:
    """
    Convert a raw numeric field into a float, treating malformed values as 0.

    None, empty strings, NaN, infinities and values that cannot be parsed as
    numbers all become 0.0, so that they can never propagate as NaN through
    the aggregation.
    """
    if value is None:
        return 0.0
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def coerce_date(value: Any) -> Optional[date]:
    """
    Convert a raw date or timestamp value into a calendar date.

    Accepts `date`, `datetime` (and pandas Timestamps), and ISO-8601 strings
    with or without a time part. Returns None for empty values.

    Raises
    ------
    ValueError
        If a non-empty string cannot be parsed as an ISO date.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text or text.lower() in {"nan", "nat", "none"}:
        return None
    # Timestamps such as "2024-03-15T10:22:00Z" or "2024-03-15 10:22:00".
    return date.fromisoformat(text[:10])


def parse_invoice_status(value: Any) -> InvoiceStatus:
    """Normalize an invoice status, raising ValueError on unknown values."""
    status = str(value or "").strip().lower()
    if status not in {"pending", "paid", "overdue"}:
        raise ValueError(f"Unknown invoice status: {value!r}")
    return status  # type: ignore[return-value]


def parse_subscription_status(value: Any) -> SubscriptionStatus:
    """Normalize a subscription status ('cancelled' is accepted as an alias)."""
    status = str(value or "").strip().lower()
    if status == "cancelled":
        status = "canceled"
    if status not in {"active", "canceled"}:
        raise ValueError(f"Unknown subscription status: {value!r}")
    return status  # type: ignore[return-value]


def parse_plan_interval(value: Any) -> str:
    """
    Normalize a plan billing interval.

    The value is only lower-cased and stripped: unrecognized intervals are
    kept as-is and handled by the proration calculator, which treats them
    as monthly.
    """
    return str(value or "month").strip().lower() or "month"


# ---------------------------------------------------------------------------
# Record types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InvoiceItem:
    """One invoice line: quantity x unit price."""

    description: str
    quantity: float
    unit_price: float

    @property
    def total(self) -> float:
        return self.quantity * self.unit_price


@dataclass(frozen=True)
class Invoice:
    """
    Invoice with its ordered line items.

    Attributes
    ----------
    id:
        Store identifier.
    invoice_number:
        Human-facing invoice number.
    status:
        One of "pending", "paid", "overdue".
    issue_date, due_date:
        Calendar dates. Invoices are bucketed into periods by `issue_date`.
    items:
        Ordered tuple of InvoiceItem.
    tax_rate:
        Tax rate in percent (20.0 means 20 %).
    client_name:
        Name of the billed client, or None when the client record no longer
        exists. Display-only; never affects amounts.
    """

    id: int
    invoice_number: str
    status: InvoiceStatus
    issue_date: date
    due_date: Optional[date]
    items: tuple[InvoiceItem, ...] = ()
    tax_rate: float = 0.0
    client_name: Optional[str] = None

    @property
    def subtotal(self) -> float:
        return sum(item.total for item in self.items)

    @property
    def amount(self) -> float:
        """Derived amount: sum(quantity x unit_price) x (1 + tax_rate / 100)."""
        return self.subtotal * (1 + self.tax_rate / 100)


@dataclass(frozen=True)
class Plan:
    """Subscription plan: a price billed every `interval`."""

    name: str
    price: float
    interval: str = "month"


@dataclass(frozen=True)
class Subscription:
    """
    Customer subscription to a plan.

    `canceled_at` is only meaningful when `status == "canceled"` and, when
    present, is never earlier than `start_date`.
    """

    id: int
    status: SubscriptionStatus
    start_date: date
    plan: Plan
    canceled_at: Optional[date] = None
    client_name: Optional[str] = None


@dataclass(frozen=True)
class InventorySoldItem:
    """A realized inventory sale (immutable; a re-sale is a new record)."""

    id: int
    name: str
    sale_price: float
    purchase_price: float
    sold_at: date


@dataclass(frozen=True)
class RevenueEntry:
    """
    Miscellaneous revenue.

    `source_type` / `source_id` link the entry to the record that created
    it as a side effect (e.g. "inventory_item" and the sold item's id).
    """

    id: int
    amount: float
    date: date
    description: str = ""
    source_type: Optional[str] = None
    source_id: Optional[int] = None


@dataclass(frozen=True)
class Expense:
    """General expense. Same side-effect linkage as RevenueEntry."""

    id: int
    amount: float
    category: str
    date: date
    description: str = ""
    source_type: Optional[str] = None
    source_id: Optional[int] = None


@dataclass(frozen=True)
class Employee:
    """
    Employee on the payroll.

    `gross_salary` is a monthly cost. `hire_date` bounds payroll
    eligibility; `created_at` is used in its place when it is missing.
    """

    id: int
    name: Optional[str]
    gross_salary: float
    hire_date: Optional[date] = None
    created_at: Optional[date] = None

    @property
    def eligibility_date(self) -> Optional[date]:
        return self.hire_date or self.created_at

