# SMB FinReport - Financial Aggregation & Reporting Engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for SMB FinReport.

This module reads source records from CSV files, normalizes them into a
simple, consistent structure and loads them into the application database.
It stands in for the billing, inventory and HR screens of the wider
application when setting up a database for reporting.

Supported kinds and columns
---------------------------

Column names are case-insensitive. Optional columns may be omitted.

    clients        name, created_at
    invoices       invoice_number, status, issue_date, description, quantity,
                   unit_price  [due_date, tax_rate, client]
    subscriptions  plan_name, price, status, start_date
                   [interval, canceled_at, client]
    inventory      name, purchase_price, sale_price  [sku, sold_at]
    revenues       date, amount  [description]
    expenses       date, amount  [category, description]
    employees      name, gross_salary  [hire_date]

Invoices are given one line item per row: rows sharing the same
``invoice_number`` form a single invoice, and the invoice-level columns are
taken from its first row.

The ``client`` column holds a client *name*; it is matched against the
clients already stored for the owner. Unknown names leave the record
without a client.

The whole file is read and validated before the first insert: if the CSV
structure does not match the expected columns, if a date or numeric column
cannot be parsed, or if a status is unknown, a clear ValueError is raised
and nothing is written. Records are then inserted one by one, each in its
own transaction, so a database error part-way through (e.g. a locked file)
leaves the records inserted so far in place.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Optional, Union

import pandas as pd

from .db import (
    DatabaseConfig,
    find_client,
    find_plan,
    insert_client,
    insert_employee,
    insert_expense,
    insert_inventory_item,
    insert_invoice,
    insert_plan,
    insert_revenue,
    insert_subscription,
)
from .models import (
    InvoiceItem,
    coerce_date,
    parse_invoice_status,
    parse_plan_interval,
    parse_subscription_status,
)


@dataclass(frozen=True)
class CsvLayout:
    """Expected columns of one kind of CSV file."""

    required: tuple[str, ...]
    optional: tuple[str, ...] = ()
    dates: tuple[str, ...] = ()
    numbers: tuple[str, ...] = ()


CSV_LAYOUTS: dict[str, CsvLayout] = {
    "clients": CsvLayout(
        required=("name", "created_at"),
        dates=("created_at",),
    ),
    "invoices": CsvLayout(
        required=(
            "invoice_number",
            "status",
            "issue_date",
            "description",
            "quantity",
            "unit_price",
        ),
        optional=("due_date", "tax_rate", "client"),
        dates=("issue_date", "due_date"),
        numbers=("quantity", "unit_price", "tax_rate"),
    ),
    "subscriptions": CsvLayout(
        required=("plan_name", "price", "status", "start_date"),
        optional=("interval", "canceled_at", "client"),
        dates=("start_date", "canceled_at"),
        numbers=("price",),
    ),
    "inventory": CsvLayout(
        required=("name", "purchase_price", "sale_price"),
        optional=("sku", "sold_at"),
        dates=("sold_at",),
        numbers=("purchase_price", "sale_price"),
    ),
    "revenues": CsvLayout(
        required=("date", "amount"),
        optional=("description",),
        dates=("date",),
        numbers=("amount",),
    ),
    "expenses": CsvLayout(
        required=("date", "amount"),
        optional=("category", "description"),
        dates=("date",),
        numbers=("amount",),
    ),
    "employees": CsvLayout(
        required=("name", "gross_salary"),
        optional=("hire_date",),
        dates=("hire_date",),
        numbers=("gross_salary",),
    ),
}

RECORD_KINDS: tuple[str, ...] = tuple(CSV_LAYOUTS)


def read_records(kind: str, path: Union[str, "os.PathLike[str]"]) -> pd.DataFrame:
    """
    Read one kind of source records from a CSV file and normalize them.

    Parameters
    ----------
    kind:
        One of RECORD_KINDS ("clients", "invoices", ...).
    path:
        Path to the CSV file.

    Returns
    -------
    pandas.DataFrame
        A DataFrame with exactly the required and optional columns of the
        kind (missing optional columns are added empty). Date columns hold
        `datetime.date` objects or None; numeric columns hold floats, with
        empty optional cells as NaN.

    Raises
    ------
    ValueError
        If the kind is unknown, if required columns are missing, or if
        date/numeric parsing fails.
    """
    layout = CSV_LAYOUTS.get(kind)
    if layout is None:
        raise ValueError(
            f"Unknown record kind {kind!r}. Expected one of: {', '.join(RECORD_KINDS)}."
        )

    df = pd.read_csv(path, dtype=str, keep_default_na=False)

    # Normalize column names to lowercase (to make the check case-insensitive)
    df.columns = [c.lower().strip() for c in df.columns]

    missing = [c for c in layout.required if c not in df.columns]
    if missing:
        expected = ", ".join(layout.required)
        if layout.optional:
            expected += f" (optional: {', '.join(layout.optional)})"
        raise ValueError(
            f"Invalid {kind} CSV structure: missing column(s) "
            f"{', '.join(missing)}. Expected: {expected}."
        )

    d = df.copy()
    for col in layout.optional:
        if col not in d.columns:
            d[col] = ""

    for col in layout.dates:
        try:
            d[col] = [coerce_date(v) for v in d[col]]
        except ValueError as exc:
            raise ValueError(f"Invalid values in '{col}' column.") from exc
        if col in layout.required and any(v is None for v in d[col]):
            raise ValueError(f"Missing values in '{col}' column.")

    for col in layout.numbers:
        raw = d[col].astype(str).str.strip()
        values = pd.to_numeric(raw, errors="coerce")
        bad = values.isna() & (raw != "")
        if col in layout.required:
            bad = bad | (raw == "")
        if bad.any():
            raise ValueError(f"Invalid numeric values in '{col}' column.")
        d[col] = values.astype(float)

    columns = list(layout.required) + list(layout.optional)
    return d[columns].reset_index(drop=True)


def _text(value: Any) -> Optional[str]:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    text = str(value).strip()
    return text or None


def _number(value: Any, default: Optional[float] = None) -> Optional[float]:
    if value is None or pd.isna(value):
        return default
    return float(value)


def _validate(kind: str, df: pd.DataFrame) -> None:
    """Check status values before anything is written."""
    try:
        if kind == "invoices":
            df["status"].map(parse_invoice_status)
        elif kind == "subscriptions":
            df["status"].map(parse_subscription_status)
    except ValueError as exc:
        raise ValueError(f"Invalid values in 'status' column: {exc}") from exc


def import_records(
    cfg: DatabaseConfig,
    owner_id: str,
    kind: str,
    path: Union[str, "os.PathLike[str]"],
) -> int:
    """
    Read a CSV file of one kind and insert its records for an owner.

    Returns
    -------
    int
        Number of records inserted (invoices count once, not per line item).

    Raises
    ------
    ValueError
        If the file does not match the expected structure (see read_records)
        or contains unknown status values.
    """
    df = read_records(kind, path)
    _validate(kind, df)

    def client_id(name: Any) -> Optional[int]:
        text = _text(name)
        return find_client(cfg, owner_id, text) if text else None

    count = 0

    if kind == "clients":
        for row in df.itertuples(index=False):
            insert_client(cfg, owner_id, row.name, row.created_at)
            count += 1

    elif kind == "invoices":
        for number, group in df.groupby("invoice_number", sort=False):
            first = group.iloc[0]
            items = [
                InvoiceItem(
                    description=_text(r.description) or "",
                    quantity=float(r.quantity),
                    unit_price=float(r.unit_price),
                )
                for r in group.itertuples(index=False)
            ]
            insert_invoice(
                cfg,
                owner_id,
                invoice_number=str(number),
                status=first["status"],
                issue_date=first["issue_date"],
                items=items,
                tax_rate=_number(first["tax_rate"], default=0.0),
                due_date=first["due_date"],
                client_id=client_id(first["client"]),
            )
            count += 1

    elif kind == "subscriptions":
        for row in df.itertuples(index=False):
            interval = parse_plan_interval(_text(row.interval))
            plan_id = find_plan(cfg, owner_id, row.plan_name, row.price, interval)
            if plan_id is None:
                plan_id = insert_plan(cfg, owner_id, row.plan_name, row.price, interval)
            insert_subscription(
                cfg,
                owner_id,
                plan_id=plan_id,
                status=row.status,
                start_date=row.start_date,
                canceled_at=row.canceled_at,
                client_id=client_id(row.client),
            )
            count += 1

    elif kind == "inventory":
        for row in df.itertuples(index=False):
            insert_inventory_item(
                cfg,
                owner_id,
                name=row.name,
                purchase_price=row.purchase_price,
                sale_price=row.sale_price,
                sold_at=row.sold_at,
                sku=_text(row.sku),
            )
            count += 1

    elif kind == "revenues":
        for row in df.itertuples(index=False):
            insert_revenue(
                cfg,
                owner_id,
                amount=row.amount,
                revenue_date=row.date,
                description=_text(row.description) or "",
            )
            count += 1

    elif kind == "expenses":
        for row in df.itertuples(index=False):
            insert_expense(
                cfg,
                owner_id,
                amount=row.amount,
                expense_date=row.date,
                category=_text(row.category) or "other",
                description=_text(row.description) or "",
            )
            count += 1

    elif kind == "employees":
        for row in df.itertuples(index=False):
            insert_employee(
                cfg,
                owner_id,
                name=_text(row.name),
                gross_salary=row.gross_salary,
                hire_date=row.hire_date,
            )
            count += 1

    return count
