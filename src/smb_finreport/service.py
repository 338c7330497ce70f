# SMB FinReport - Financial Aggregation & Reporting Engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
High-level services for computing financial statements.

This module sits between:
- the collaborator data store (see `db.py` for the SQLite rendition), and
- user-facing layers such as the CLI, the live dashboard or the report
  exporter.

Responsibilities
----------------
1) Fan-out / fan-in reads
   - All source reads for one computation are scoped by owner and period and
     are independent, so they are issued concurrently on a thread pool.
   - Every read must complete before aggregation starts. If any read fails,
     the whole computation fails with a single `FinancialDataUnavailable`
     error: a partial Statement is never returned.

2) Statement computation
   - `compute_statement()` for any Period.
   - `compute_live_statement()` for the dashboard (current month by default).
   - `compute_report()` for exports: the Statement together with the line
     items it was built from.

3) Archive enumeration
   - `list_archive_periods()` lists the `YYYY-MM` months containing at least
     one financial event, up to the reference date.

4) Last-result-wins publication
   - `LatestResult` lets a polling UI keep only the newest computation when
     an older, slower one finishes later. In-flight reads are never
     cancelled; stale results are discarded.

Design notes
------------
- Each computation closes over its own `SourceSnapshot`; nothing is shared
  between concurrent computations.
- The store is treated as read-only. Writes that other modules perform
  (e.g. sale confirmation inserting revenue and expense records) may land at
  any time relative to a report request.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Generic, Optional, Protocol, TypeVar

from .engine import aggregate_expenses, aggregate_revenue
from .models import (
    Employee,
    Expense,
    InventorySoldItem,
    Invoice,
    RevenueEntry,
    Subscription,
)
from .periods import Period, enumerate_archive_months, resolve_period
from .statement import (
    Statement,
    StatementLineItems,
    assemble_statement,
    build_line_items,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 6

T = TypeVar("T")


class FinancialDataUnavailable(RuntimeError):
    """Raised when the financial data needed for a computation cannot be read."""

    def __init__(self, message: str = "Unable to load financial data.") -> None:
        super().__init__(message)


class FinancialDataStore(Protocol):
    """
    Read operations the engine needs from the collaborator data store.

    Every operation is scoped to one owner. Date bounds are inclusive.
    """

    def list_invoices(self, owner_id: str, start: date, end: date) -> list[Invoice]: ...

    def list_subscriptions(self, owner_id: str) -> list[Subscription]: ...

    def list_sold_inventory_items(
        self, owner_id: str, start: date, end: date
    ) -> list[InventorySoldItem]: ...

    def list_revenue_entries(
        self, owner_id: str, start: date, end: date
    ) -> list[RevenueEntry]: ...

    def list_expenses(self, owner_id: str, start: date, end: date) -> list[Expense]: ...

    def list_employees(self, owner_id: str, end: date) -> list[Employee]: ...

    def count_new_clients(self, owner_id: str, start: date, end: date) -> int: ...

    def list_event_dates(self, owner_id: str) -> list[date]: ...


@dataclass(frozen=True)
class SourceSnapshot:
    """
    Everything read from the store for one computation.

    Subscriptions are the owner's full history; every other collection is
    scoped to the snapshot's period.
    """

    period: Period
    invoices: tuple[Invoice, ...]
    subscriptions: tuple[Subscription, ...]
    sold_items: tuple[InventorySoldItem, ...]
    revenue_entries: tuple[RevenueEntry, ...]
    expenses: tuple[Expense, ...]
    employees: tuple[Employee, ...]
    new_clients_count: int


@dataclass(frozen=True)
class FinancialReport:
    """A Statement with the line items used to build it."""

    statement: Statement
    line_items: StatementLineItems


# ---------------------------------------------------------------------------
# Fan-out / fan-in
# ---------------------------------------------------------------------------


def fetch_snapshot(
    store: FinancialDataStore,
    owner_id: str,
    period: Period,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> SourceSnapshot:
    """
    Read every source collection for an owner and period concurrently.

    Raises
    ------
    FinancialDataUnavailable
        If any of the reads fails. The original error is chained.
    """
    start, end = period.start, period.end
    reads: dict[str, Callable[[], Any]] = {
        "invoices": lambda: store.list_invoices(owner_id, start, end),
        "subscriptions": lambda: store.list_subscriptions(owner_id),
        "sold_items": lambda: store.list_sold_inventory_items(owner_id, start, end),
        "revenue_entries": lambda: store.list_revenue_entries(owner_id, start, end),
        "expenses": lambda: store.list_expenses(owner_id, start, end),
        "employees": lambda: store.list_employees(owner_id, end),
        "new_clients_count": lambda: store.count_new_clients(owner_id, start, end),
    }

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        futures: dict[str, Future] = {
            name: executor.submit(read) for name, read in reads.items()
        }
        # Fan-in: wait for every read, successful or not.
        wait(futures.values())

    results: dict[str, Any] = {}
    for name, future in futures.items():
        exc = future.exception()
        if exc is not None:
            LOGGER.error(
                "Failed to read %s for owner %s (%s → %s).",
                name,
                owner_id,
                start,
                end,
                exc_info=exc,
            )
            raise FinancialDataUnavailable() from exc
        results[name] = future.result()

    return SourceSnapshot(
        period=period,
        invoices=tuple(results["invoices"] or ()),
        subscriptions=tuple(results["subscriptions"] or ()),
        sold_items=tuple(results["sold_items"] or ()),
        revenue_entries=tuple(results["revenue_entries"] or ()),
        expenses=tuple(results["expenses"] or ()),
        employees=tuple(results["employees"] or ()),
        new_clients_count=int(results["new_clients_count"] or 0),
    )


# ---------------------------------------------------------------------------
# Statement computation
# ---------------------------------------------------------------------------


def statement_from_snapshot(
    snapshot: SourceSnapshot,
    period: Optional[Period] = None,
    new_clients_count: Optional[int] = None,
) -> Statement:
    """
    Aggregate a snapshot into a Statement.

    `period` defaults to the snapshot's own period; a narrower period can be
    given when one snapshot covers several periods (see multi_periods.py),
    together with that period's `new_clients_count`.
    """
    if period is None:
        period = snapshot.period
    if new_clients_count is None:
        new_clients_count = snapshot.new_clients_count

    revenue = aggregate_revenue(
        invoices=snapshot.invoices,
        sold_items=snapshot.sold_items,
        revenue_entries=snapshot.revenue_entries,
        subscriptions=snapshot.subscriptions,
        period=period,
    )
    expenses = aggregate_expenses(
        sold_items=snapshot.sold_items,
        employees=snapshot.employees,
        expenses=snapshot.expenses,
        period=period,
    )
    return assemble_statement(period, revenue, expenses, new_clients_count)


def compute_statement(
    store: FinancialDataStore,
    owner_id: str,
    period: Period,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> Statement:
    """Compute the Statement of one owner for one period."""
    snapshot = fetch_snapshot(store, owner_id, period, max_workers=max_workers)
    return statement_from_snapshot(snapshot)


def compute_report(
    store: FinancialDataStore,
    owner_id: str,
    period: Period,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> FinancialReport:
    """Compute a Statement and its line items from a single snapshot."""
    snapshot = fetch_snapshot(store, owner_id, period, max_workers=max_workers)
    return FinancialReport(
        statement=statement_from_snapshot(snapshot),
        line_items=build_line_items(snapshot, period),
    )


def compute_live_statement(
    store: FinancialDataStore,
    owner_id: str,
    as_of: date,
    period_key: str = "thisMonth",
    custom_start: Optional[date] = None,
    custom_end: Optional[date] = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> Statement:
    """Statement for the dashboard: a named period relative to `as_of`."""
    period = resolve_period(
        period_key,
        as_of=as_of,
        custom_start=custom_start,
        custom_end=custom_end,
    )
    return compute_statement(store, owner_id, period, max_workers=max_workers)


def list_archive_periods(
    store: FinancialDataStore,
    owner_id: str,
    as_of: date,
) -> list[str]:
    """
    Archivable `YYYY-MM` months for an owner, most recent first.

    An owner without any financial event gets an empty list.
    """
    try:
        event_dates = store.list_event_dates(owner_id)
    except Exception as exc:  # noqa: BLE001
        LOGGER.error("Failed to read event dates for owner %s.", owner_id, exc_info=exc)
        raise FinancialDataUnavailable() from exc

    return enumerate_archive_months(event_dates, as_of)


# ---------------------------------------------------------------------------
# Last-result-wins
# ---------------------------------------------------------------------------


class LatestResult(Generic[T]):
    """
    Thread-safe holder keeping only the result of the newest request.

    Usage::

        ticket = latest.begin()
        statement = compute_live_statement(...)
        latest.publish(ticket, statement)   # ignored if a newer begin() exists
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._issued = 0
        self._published = 0
        self._value: Optional[T] = None

    def begin(self) -> int:
        """Register a new request and return its ticket."""
        with self._lock:
            self._issued += 1
            return self._issued

    def publish(self, ticket: int, value: T) -> bool:
        """
        Publish a result. Returns False (and discards the value) when a newer
        request has been started or already published since `ticket`.
        """
        with self._lock:
            if ticket != self._issued or ticket <= self._published:
                return False
            self._published = ticket
            self._value = value
            return True

    @property
    def value(self) -> Optional[T]:
        with self._lock:
            return self._value
