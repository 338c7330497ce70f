# SMB FinReport - Financial Aggregation & Reporting Engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
Database layer for SMB FinReport.

The reporting engine treats the application's data store as an external
collaborator: it only needs a handful of owner-scoped read operations (see
`service.FinancialDataStore`). This module provides a SQLite rendition of
that store, used by the CLI, by CSV imports and by the tests.

It is responsible for:

- Initializing the database schema.
- Inserting source records (clients, invoices and their items, plans,
  subscriptions, inventory items, revenues, expenses, employees). These
  writes stand in for the billing, inventory and HR modules of the wider
  application.
- Exposing the read operations of the reporting engine through
  `SQLiteStore`, converting raw rows into the typed records of `models.py`.

------------------------------------------------------------------------------
Schema Overview
------------------------------------------------------------------------------

Every table carries an `owner_id` column: all reads are scoped to one
business account. Monetary values are stored as integer cents and may be
NULL (the hosted store does not enforce them); NULL amounts are read back
as 0.0. Dates are ISO-8601 text; timestamp columns (`sold_at`,
`canceled_at`, `created_at`) may carry a time part and are compared on
their first ten characters.

1) clients            id, owner_id, name, created_at
2) invoices           id, owner_id, client_id, invoice_number, status,
                      issue_date, due_date, tax_rate
3) invoice_items      id, invoice_id, position, description, quantity,
                      unit_price_cents
4) plans              id, owner_id, name, price_cents, interval
5) subscriptions      id, owner_id, client_id, plan_id, status, start_date,
                      canceled_at
6) inventory_items    id, owner_id, name, sku, purchase_price_cents,
                      sale_price_cents, status ('in_stock' | 'sold'), sold_at
7) revenues           id, owner_id, amount_cents, revenue_date, description,
                      source_type, source_id
8) expenses           id, owner_id, amount_cents, category, expense_date,
                      description, source_type, source_id
9) employees          id, owner_id, name, gross_salary_cents, hire_date,
                      created_at

------------------------------------------------------------------------------
SQLite Notes
------------------------------------------------------------------------------

- Foreign key enforcement is explicitly enabled. Deleting a client keeps
  its invoices and subscriptions (client_id is set to NULL), which is how
  "missing relation" labels arise.
- Each public function opens and closes its own connection, so the reads
  of `SQLiteStore` can safely run on several threads at once.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional

from .models import (
    Employee,
    Expense,
    InventorySoldItem,
    Invoice,
    InvoiceItem,
    Plan,
    RevenueEntry,
    Subscription,
    coerce_amount,
    coerce_date,
    parse_invoice_status,
    parse_plan_interval,
    parse_subscription_status,
)

# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """
    Database configuration for SMB FinReport.

    Attributes
    ----------
    engine:
        Database engine identifier. Only "sqlite" is supported.
    path:
        Path to the SQLite database file.
    """

    engine: str
    path: Path


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _ensure_sqlite(cfg: DatabaseConfig) -> None:
    """Raise if the configuration does not refer to a supported engine."""
    if cfg.engine.lower() != "sqlite":
        msg = (
            f"Unsupported database engine: {cfg.engine!r}. "
            "Only 'sqlite' is supported for now."
        )
        raise ValueError(msg)


def _connect(cfg: DatabaseConfig) -> sqlite3.Connection:
    """
    Open a SQLite connection with foreign keys enabled.

    The caller is responsible for closing the connection.
    """
    _ensure_sqlite(cfg)
    conn = sqlite3.connect(cfg.path)
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def _create_schema_if_needed(conn: sqlite3.Connection) -> None:
    """
    Create tables and indexes if they do not exist yet.

    This function is idempotent and can be called multiple times safely.
    """
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS clients (
            id          INTEGER PRIMARY KEY AUTOINCREMENT,
            owner_id    TEXT    NOT NULL,
            name        TEXT    NOT NULL,
            created_at  TEXT    NOT NULL
        );

        CREATE TABLE IF NOT EXISTS invoices (
            id              INTEGER PRIMARY KEY AUTOINCREMENT,
            owner_id        TEXT    NOT NULL,
            client_id       INTEGER,
            invoice_number  TEXT    NOT NULL,
            status          TEXT    NOT NULL,  -- 'pending' | 'paid' | 'overdue'
            issue_date      TEXT    NOT NULL,
            due_date        TEXT,
            tax_rate        REAL,

            FOREIGN KEY (client_id) REFERENCES clients(id) ON DELETE SET NULL
        );

        CREATE TABLE IF NOT EXISTS invoice_items (
            id                INTEGER PRIMARY KEY AUTOINCREMENT,
            invoice_id        INTEGER NOT NULL,
            position          INTEGER NOT NULL,
            description       TEXT,
            quantity          REAL,
            unit_price_cents  INTEGER,

            FOREIGN KEY (invoice_id) REFERENCES invoices(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS plans (
            id           INTEGER PRIMARY KEY AUTOINCREMENT,
            owner_id     TEXT    NOT NULL,
            name         TEXT    NOT NULL,
            price_cents  INTEGER,
            interval     TEXT    NOT NULL DEFAULT 'month'
        );

        CREATE TABLE IF NOT EXISTS subscriptions (
            id           INTEGER PRIMARY KEY AUTOINCREMENT,
            owner_id     TEXT    NOT NULL,
            client_id    INTEGER,
            plan_id      INTEGER,
            status       TEXT    NOT NULL,  -- 'active' | 'canceled'
            start_date   TEXT    NOT NULL,
            canceled_at  TEXT,

            FOREIGN KEY (client_id) REFERENCES clients(id) ON DELETE SET NULL,
            FOREIGN KEY (plan_id) REFERENCES plans(id) ON DELETE SET NULL
        );

        CREATE TABLE IF NOT EXISTS inventory_items (
            id                    INTEGER PRIMARY KEY AUTOINCREMENT,
            owner_id              TEXT    NOT NULL,
            name                  TEXT    NOT NULL,
            sku                   TEXT,
            purchase_price_cents  INTEGER,
            sale_price_cents      INTEGER,
            status                TEXT    NOT NULL DEFAULT 'in_stock',
            sold_at               TEXT
        );

        CREATE TABLE IF NOT EXISTS revenues (
            id            INTEGER PRIMARY KEY AUTOINCREMENT,
            owner_id      TEXT    NOT NULL,
            amount_cents  INTEGER,
            revenue_date  TEXT    NOT NULL,
            description   TEXT,
            source_type   TEXT,
            source_id     INTEGER
        );

        CREATE TABLE IF NOT EXISTS expenses (
            id            INTEGER PRIMARY KEY AUTOINCREMENT,
            owner_id      TEXT    NOT NULL,
            amount_cents  INTEGER,
            category      TEXT,
            expense_date  TEXT    NOT NULL,
            description   TEXT,
            source_type   TEXT,
            source_id     INTEGER
        );

        CREATE TABLE IF NOT EXISTS employees (
            id                  INTEGER PRIMARY KEY AUTOINCREMENT,
            owner_id            TEXT    NOT NULL,
            name                TEXT,
            gross_salary_cents  INTEGER,
            hire_date           TEXT,
            created_at          TEXT
        );

        CREATE INDEX IF NOT EXISTS idx_invoices_owner_date
            ON invoices(owner_id, issue_date);
        CREATE INDEX IF NOT EXISTS idx_revenues_owner_date
            ON revenues(owner_id, revenue_date);
        CREATE INDEX IF NOT EXISTS idx_expenses_owner_date
            ON expenses(owner_id, expense_date);
        CREATE INDEX IF NOT EXISTS idx_inventory_owner_sold
            ON inventory_items(owner_id, status, sold_at);
        """
    )
    conn.commit()


def _to_iso(value: Any) -> Optional[str]:
    """Convert a date, datetime or ISO string into ISO text (None stays None)."""
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def _to_cents(value: Any) -> Optional[int]:
    """Convert a monetary amount to integer cents (None stays None)."""
    if value is None:
        return None
    return int(round(float(value) * 100))


def _from_cents(value: Any) -> float:
    """Convert stored cents back to a monetary amount; NULL reads as 0.0."""
    return coerce_amount(value) / 100.0


def _execute_insert(cfg: DatabaseConfig, sql: str, params: Sequence[Any]) -> int:
    """Run one INSERT statement and return the new row id."""
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.execute(sql, tuple(params))
        row_id = cur.lastrowid
        conn.commit()
    finally:
        conn.close()

    if row_id is None:
        raise RuntimeError("Insert did not return a row id.")
    return int(row_id)


def _fetch_all(
    cfg: DatabaseConfig,
    sql: str,
    params: Sequence[Any] | Mapping[str, Any],
) -> list[tuple]:
    """Run one SELECT statement (positional or named parameters)."""
    conn = _connect(cfg)
    try:
        return conn.execute(sql, params).fetchall()
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Public API: schema & writes
# ---------------------------------------------------------------------------


def init_database(cfg: DatabaseConfig) -> None:
    """
    Initialize the database schema if needed.

    - Creates the SQLite file (and its parent directory) if it does not exist.
    - Creates tables and indexes if they are missing.
    - This function is idempotent: calling it multiple times is safe.

    Raises
    ------
    ValueError
        If cfg.engine is not supported.
    sqlite3.Error
        If schema creation fails.
    """
    cfg.path.parent.mkdir(parents=True, exist_ok=True)

    conn = _connect(cfg)
    try:
        _create_schema_if_needed(conn)
    finally:
        conn.close()


def insert_client(
    cfg: DatabaseConfig,
    owner_id: str,
    name: str,
    created_at: date | datetime,
) -> int:
    """Insert a client and return its id."""
    return _execute_insert(
        cfg,
        "INSERT INTO clients (owner_id, name, created_at) VALUES (?, ?, ?);",
        (owner_id, name, _to_iso(created_at)),
    )


def delete_client(cfg: DatabaseConfig, client_id: int) -> None:
    """Delete a client. Its invoices and subscriptions lose their client link."""
    init_database(cfg)

    conn = _connect(cfg)
    try:
        conn.execute("DELETE FROM clients WHERE id = ?;", (client_id,))
        conn.commit()
    finally:
        conn.close()


def insert_invoice(
    cfg: DatabaseConfig,
    owner_id: str,
    invoice_number: str,
    status: str,
    issue_date: date,
    items: Iterable[InvoiceItem],
    tax_rate: Optional[float] = 0.0,
    due_date: Optional[date] = None,
    client_id: Optional[int] = None,
) -> int:
    """
    Insert an invoice with its ordered items and return the invoice id.

    No total is stored: the invoice amount is always derived from its items.
    """
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            """
            INSERT INTO invoices (
                owner_id, client_id, invoice_number, status,
                issue_date, due_date, tax_rate
            )
            VALUES (?, ?, ?, ?, ?, ?, ?);
            """,
            (
                owner_id,
                client_id,
                invoice_number,
                parse_invoice_status(status),
                _to_iso(issue_date),
                _to_iso(due_date),
                tax_rate,
            ),
        )
        invoice_id = int(cur.lastrowid)
        conn.executemany(
            """
            INSERT INTO invoice_items (
                invoice_id, position, description, quantity, unit_price_cents
            )
            VALUES (?, ?, ?, ?, ?);
            """,
            [
                (
                    invoice_id,
                    position,
                    item.description,
                    item.quantity,
                    _to_cents(item.unit_price),
                )
                for position, item in enumerate(items)
            ],
        )
        conn.commit()
    finally:
        conn.close()

    return invoice_id


def insert_plan(
    cfg: DatabaseConfig,
    owner_id: str,
    name: str,
    price: Optional[float],
    interval: str = "month",
) -> int:
    """Insert a subscription plan and return its id."""
    return _execute_insert(
        cfg,
        """
        INSERT INTO plans (owner_id, name, price_cents, interval)
        VALUES (?, ?, ?, ?);
        """,
        (owner_id, name, _to_cents(price), interval),
    )


def find_client(cfg: DatabaseConfig, owner_id: str, name: str) -> Optional[int]:
    """Return the id of the owner's first client with this exact name, if any."""
    init_database(cfg)
    rows = _fetch_all(
        cfg,
        "SELECT id FROM clients WHERE owner_id = ? AND name = ? ORDER BY id LIMIT 1;",
        (owner_id, name),
    )
    return int(rows[0][0]) if rows else None


def find_plan(
    cfg: DatabaseConfig,
    owner_id: str,
    name: str,
    price: Optional[float],
    interval: str,
) -> Optional[int]:
    """Return the id of an identical existing plan, if any."""
    init_database(cfg)
    rows = _fetch_all(
        cfg,
        """
        SELECT id FROM plans
         WHERE owner_id = ? AND name = ? AND price_cents IS ? AND interval = ?
         ORDER BY id LIMIT 1;
        """,
        (owner_id, name, _to_cents(price), interval),
    )
    return int(rows[0][0]) if rows else None


def insert_subscription(
    cfg: DatabaseConfig,
    owner_id: str,
    plan_id: int,
    status: str,
    start_date: date,
    canceled_at: Optional[date | datetime] = None,
    client_id: Optional[int] = None,
) -> int:
    """Insert a subscription and return its id."""
    return _execute_insert(
        cfg,
        """
        INSERT INTO subscriptions (
            owner_id, client_id, plan_id, status, start_date, canceled_at
        )
        VALUES (?, ?, ?, ?, ?, ?);
        """,
        (
            owner_id,
            client_id,
            plan_id,
            parse_subscription_status(status),
            _to_iso(start_date),
            _to_iso(canceled_at),
        ),
    )


def insert_inventory_item(
    cfg: DatabaseConfig,
    owner_id: str,
    name: str,
    purchase_price: Optional[float],
    sale_price: Optional[float],
    sold_at: Optional[date | datetime] = None,
    sku: Optional[str] = None,
) -> int:
    """
    Insert an inventory item and return its id.

    Items with a `sold_at` value are stored with status 'sold'.
    """
    status = "sold" if sold_at is not None else "in_stock"
    return _execute_insert(
        cfg,
        """
        INSERT INTO inventory_items (
            owner_id, name, sku, purchase_price_cents, sale_price_cents,
            status, sold_at
        )
        VALUES (?, ?, ?, ?, ?, ?, ?);
        """,
        (
            owner_id,
            name,
            sku,
            _to_cents(purchase_price),
            _to_cents(sale_price),
            status,
            _to_iso(sold_at),
        ),
    )


def insert_revenue(
    cfg: DatabaseConfig,
    owner_id: str,
    amount: Optional[float],
    revenue_date: date | datetime,
    description: str = "",
    source_type: Optional[str] = None,
    source_id: Optional[int] = None,
) -> int:
    """Insert a miscellaneous revenue entry and return its id."""
    return _execute_insert(
        cfg,
        """
        INSERT INTO revenues (
            owner_id, amount_cents, revenue_date, description,
            source_type, source_id
        )
        VALUES (?, ?, ?, ?, ?, ?);
        """,
        (
            owner_id,
            _to_cents(amount),
            _to_iso(revenue_date),
            description,
            source_type,
            source_id,
        ),
    )


def insert_expense(
    cfg: DatabaseConfig,
    owner_id: str,
    amount: Optional[float],
    expense_date: date | datetime,
    category: str = "other",
    description: str = "",
    source_type: Optional[str] = None,
    source_id: Optional[int] = None,
) -> int:
    """Insert a general expense and return its id."""
    return _execute_insert(
        cfg,
        """
        INSERT INTO expenses (
            owner_id, amount_cents, category, expense_date, description,
            source_type, source_id
        )
        VALUES (?, ?, ?, ?, ?, ?, ?);
        """,
        (
            owner_id,
            _to_cents(amount),
            category,
            _to_iso(expense_date),
            description,
            source_type,
            source_id,
        ),
    )


def insert_employee(
    cfg: DatabaseConfig,
    owner_id: str,
    name: Optional[str],
    gross_salary: Optional[float],
    hire_date: Optional[date] = None,
    created_at: Optional[date | datetime] = None,
) -> int:
    """
    Insert an employee and return its id.

    `created_at` defaults to the hire date, or to the insertion time when the
    hire date is unknown, so every employee has a date on the payroll.
    """
    if created_at is None:
        created_at = hire_date if hire_date is not None else datetime.now()
    return _execute_insert(
        cfg,
        """
        INSERT INTO employees (
            owner_id, name, gross_salary_cents, hire_date, created_at
        )
        VALUES (?, ?, ?, ?, ?);
        """,
        (
            owner_id,
            name,
            _to_cents(gross_salary),
            _to_iso(hire_date),
            _to_iso(created_at),
        ),
    )


# ---------------------------------------------------------------------------
# Public API: reads (the collaborator store used by the engine)
# ---------------------------------------------------------------------------


class SQLiteStore:
    """
    SQLite implementation of the reporting engine's data store.

    Every method opens its own connection and converts raw rows into typed
    records, coercing malformed numeric fields to 0.0 on the way. Date
    bounds are inclusive.
    """

    def __init__(self, cfg: DatabaseConfig) -> None:
        self.cfg = cfg
        init_database(cfg)

    def list_invoices(self, owner_id: str, start: date, end: date) -> list[Invoice]:
        """Invoices issued within [start, end], with their items and client name."""
        bounds = (owner_id, start.isoformat(), end.isoformat())
        invoice_rows = _fetch_all(
            self.cfg,
            """
            SELECT i.id, i.invoice_number, i.status, i.issue_date, i.due_date,
                   i.tax_rate, c.name
              FROM invoices AS i
              LEFT JOIN clients AS c ON c.id = i.client_id
             WHERE i.owner_id = ?
               AND substr(i.issue_date, 1, 10) BETWEEN ? AND ?
             ORDER BY i.issue_date, i.id;
            """,
            bounds,
        )
        item_rows = _fetch_all(
            self.cfg,
            """
            SELECT it.invoice_id, it.description, it.quantity, it.unit_price_cents
              FROM invoice_items AS it
              JOIN invoices AS i ON i.id = it.invoice_id
             WHERE i.owner_id = ?
               AND substr(i.issue_date, 1, 10) BETWEEN ? AND ?
             ORDER BY it.invoice_id, it.position, it.id;
            """,
            bounds,
        )

        items_by_invoice: dict[int, list[InvoiceItem]] = {}
        for invoice_id, description, quantity, unit_price_cents in item_rows:
            items_by_invoice.setdefault(int(invoice_id), []).append(
                InvoiceItem(
                    description=description or "",
                    quantity=coerce_amount(quantity),
                    unit_price=_from_cents(unit_price_cents),
                )
            )

        invoices: list[Invoice] = []
        for row in invoice_rows:
            invoice_id, number, status, issue, due, tax_rate, client_name = row
            invoices.append(
                Invoice(
                    id=int(invoice_id),
                    invoice_number=str(number),
                    status=parse_invoice_status(status),
                    issue_date=coerce_date(issue),  # type: ignore[arg-type]
                    due_date=coerce_date(due),
                    items=tuple(items_by_invoice.get(int(invoice_id), [])),
                    tax_rate=coerce_amount(tax_rate),
                    client_name=client_name,
                )
            )
        return invoices

    def list_subscriptions(self, owner_id: str) -> list[Subscription]:
        """Every subscription of the owner (full history, no date scope)."""
        rows = _fetch_all(
            self.cfg,
            """
            SELECT s.id, s.status, s.start_date, s.canceled_at,
                   p.name, p.price_cents, p.interval, c.name
              FROM subscriptions AS s
              LEFT JOIN plans AS p ON p.id = s.plan_id
              LEFT JOIN clients AS c ON c.id = s.client_id
             WHERE s.owner_id = ?
             ORDER BY s.start_date, s.id;
            """,
            (owner_id,),
        )
        subscriptions: list[Subscription] = []
        for row in rows:
            sub_id, status, start, canceled, plan_name, price, interval, client = row
            subscriptions.append(
                Subscription(
                    id=int(sub_id),
                    status=parse_subscription_status(status),
                    start_date=coerce_date(start),  # type: ignore[arg-type]
                    plan=Plan(
                        name=plan_name or "",
                        price=_from_cents(price),
                        interval=parse_plan_interval(interval),
                    ),
                    canceled_at=coerce_date(canceled),
                    client_name=client,
                )
            )
        return subscriptions

    def list_sold_inventory_items(
        self, owner_id: str, start: date, end: date
    ) -> list[InventorySoldItem]:
        """Inventory items sold within [start, end]."""
        rows = _fetch_all(
            self.cfg,
            """
            SELECT id, name, sale_price_cents, purchase_price_cents, sold_at
              FROM inventory_items
             WHERE owner_id = ?
               AND status = 'sold'
               AND sold_at IS NOT NULL
               AND substr(sold_at, 1, 10) BETWEEN ? AND ?
             ORDER BY sold_at, id;
            """,
            (owner_id, start.isoformat(), end.isoformat()),
        )
        return [
            InventorySoldItem(
                id=int(item_id),
                name=name,
                sale_price=_from_cents(sale),
                purchase_price=_from_cents(purchase),
                sold_at=coerce_date(sold_at),  # type: ignore[arg-type]
            )
            for item_id, name, sale, purchase, sold_at in rows
        ]

    def list_revenue_entries(
        self, owner_id: str, start: date, end: date
    ) -> list[RevenueEntry]:
        """Miscellaneous revenue entries dated within [start, end]."""
        rows = _fetch_all(
            self.cfg,
            """
            SELECT id, amount_cents, revenue_date, description,
                   source_type, source_id
              FROM revenues
             WHERE owner_id = ?
               AND substr(revenue_date, 1, 10) BETWEEN ? AND ?
             ORDER BY revenue_date, id;
            """,
            (owner_id, start.isoformat(), end.isoformat()),
        )
        return [
            RevenueEntry(
                id=int(entry_id),
                amount=_from_cents(amount),
                date=coerce_date(day),  # type: ignore[arg-type]
                description=description or "",
                source_type=source_type,
                source_id=source_id,
            )
            for entry_id, amount, day, description, source_type, source_id in rows
        ]

    def list_expenses(self, owner_id: str, start: date, end: date) -> list[Expense]:
        """General expenses dated within [start, end]."""
        rows = _fetch_all(
            self.cfg,
            """
            SELECT id, amount_cents, category, expense_date, description,
                   source_type, source_id
              FROM expenses
             WHERE owner_id = ?
               AND substr(expense_date, 1, 10) BETWEEN ? AND ?
             ORDER BY expense_date, id;
            """,
            (owner_id, start.isoformat(), end.isoformat()),
        )
        return [
            Expense(
                id=int(expense_id),
                amount=_from_cents(amount),
                category=category or "other",
                date=coerce_date(day),  # type: ignore[arg-type]
                description=description or "",
                source_type=source_type,
                source_id=source_id,
            )
            for (
                expense_id,
                amount,
                category,
                day,
                description,
                source_type,
                source_id,
            ) in rows
        ]

    def list_employees(self, owner_id: str, end: date) -> list[Employee]:
        """Employees hired (or created, without hire date) on or before `end`."""
        rows = _fetch_all(
            self.cfg,
            """
            SELECT id, name, gross_salary_cents, hire_date, created_at
              FROM employees
             WHERE owner_id = ?
               AND substr(COALESCE(hire_date, created_at), 1, 10) <= ?
             ORDER BY id;
            """,
            (owner_id, end.isoformat()),
        )
        return [
            Employee(
                id=int(employee_id),
                name=name,
                gross_salary=_from_cents(salary),
                hire_date=coerce_date(hire_date),
                created_at=coerce_date(created_at),
            )
            for employee_id, name, salary, hire_date, created_at in rows
        ]

    def count_new_clients(self, owner_id: str, start: date, end: date) -> int:
        """Number of clients created within [start, end]."""
        rows = _fetch_all(
            self.cfg,
            """
            SELECT COUNT(*)
              FROM clients
             WHERE owner_id = ?
               AND substr(created_at, 1, 10) BETWEEN ? AND ?;
            """,
            (owner_id, start.isoformat(), end.isoformat()),
        )
        return int(rows[0][0]) if rows else 0

    def list_event_dates(self, owner_id: str) -> list[date]:
        """
        Distinct dates of every financial event of the owner.

        Covers invoice issue dates, expense dates, revenue dates, sale dates
        of sold items, employee hire (or creation) dates and subscription
        start dates. Employees are dated the same way as on the payroll.
        """
        rows = _fetch_all(
            self.cfg,
            """
            SELECT DISTINCT day FROM (
                SELECT substr(issue_date, 1, 10) AS day
                  FROM invoices WHERE owner_id = :owner
                UNION ALL
                SELECT substr(expense_date, 1, 10)
                  FROM expenses WHERE owner_id = :owner
                UNION ALL
                SELECT substr(revenue_date, 1, 10)
                  FROM revenues WHERE owner_id = :owner
                UNION ALL
                SELECT substr(sold_at, 1, 10)
                  FROM inventory_items
                 WHERE owner_id = :owner AND status = 'sold'
                UNION ALL
                SELECT substr(COALESCE(hire_date, created_at), 1, 10)
                  FROM employees WHERE owner_id = :owner
                UNION ALL
                SELECT substr(start_date, 1, 10)
                  FROM subscriptions WHERE owner_id = :owner
            )
             WHERE day IS NOT NULL
             ORDER BY day;
            """,
            {"owner": owner_id},
        )
        return [d for d in (coerce_date(row[0]) for row in rows) if d is not None]
