# SMB FinReport - Financial Aggregation & Reporting Engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Multi-period orchestration for statements.

This module computes Statements for several reporting periods in a
*single pass* over the data store, for dashboards (revenue trend chart),
archive listings and CLI comparisons.

Workflow
--------
For a list of Period objects, ``compute_statements_multi_period()``:

1. Computes the overall [min(start), max(end)] range covering all requested
   periods.

2. Reads every source collection *once* for that global range (see
   ``service.fetch_snapshot``), instead of once per period.

3. For each Period:
   - counts the clients created within the period (the only figure that is
     not derived from the snapshot records),
   - aggregates the snapshot into a Statement, re-applying the period
     filter to every collection (the aggregators are idempotent on
     already-filtered input),
   - records every statement measure with a ``period_label`` column.

4. Returns the Statements in request order together with a long-format
   DataFrame suitable for charts and CSV export.

Separation of concerns
----------------------
- ``engine.py`` and ``statement.py`` remain the single source of truth for
  how one period is computed.
- ``multi_periods.py`` only decides which records are read and how the
  per-period results are laid out.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

import pandas as pd

from .periods import Period, month_key, period_for_month
from .service import (
    DEFAULT_MAX_WORKERS,
    FinancialDataStore,
    FinancialDataUnavailable,
    fetch_snapshot,
    statement_from_snapshot,
)
from .statement import STATEMENT_MEASURES, Statement

MULTI_PERIOD_COLUMNS = ["period_label", "period", "measure_key", "value"]


@dataclass(frozen=True)
class StatementsMultiPeriod:
    """
    Multi-period result for statements.

    Attributes
    ----------
    statements :
        One Statement per requested period, in request order.
    data :
        Long-format DataFrame. Each row is the value of one measure for one
        period.

        Columns:
            - period_label : str
                Human-readable label of the period (e.g. 'March 2024').
            - period       : str
                Period key (e.g. '2024-03', 'thisMonth').
            - measure_key  : str
                Statement field (e.g. 'total_revenue', 'net_result').
            - value        : float
                Unrounded value of the measure.
    """

    statements: list[Statement]
    data: pd.DataFrame

    def pivot(self) -> pd.DataFrame:
        """
        Wide view: one row per measure, one column per requested period.

        Columns are the period labels in request order. Periods sharing a
        label keep one column each; values are never summed across periods.
        """
        if not self.statements:
            return pd.DataFrame()
        return pd.DataFrame(
            [
                [float(getattr(s, key)) for s in self.statements]
                for key in STATEMENT_MEASURES
            ],
            index=pd.Index(list(STATEMENT_MEASURES), name="measure_key"),
            columns=[s.period.label for s in self.statements],
        )


def compute_statements_multi_period(
    store: FinancialDataStore,
    owner_id: str,
    periods: list[Period],
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> StatementsMultiPeriod:
    """
    Compute one Statement per period from a single read of the store.

    Parameters
    ----------
    store :
        Collaborator data store.
    owner_id :
        Owner whose records are aggregated.
    periods :
        Periods to compute. They may overlap and need not be contiguous.
    max_workers :
        Size of the thread pool used for the concurrent reads.

    Returns
    -------
    StatementsMultiPeriod

    Raises
    ------
    ValueError
        If no periods are provided.
    FinancialDataUnavailable
        If any read of the store fails.
    """
    if not periods:
        raise ValueError(
            "compute_statements_multi_period requires at least one Period."
        )

    # 1) Global range across all requested periods.
    global_period = Period(
        start=min(p.start for p in periods),
        end=max(p.end for p in periods),
        label="All periods",
    )

    # 2) Read everything once for the global range.
    snapshot = fetch_snapshot(store, owner_id, global_period, max_workers=max_workers)

    # 3) One Statement per period.
    statements: list[Statement] = []
    rows: list[dict[str, Any]] = []
    for period in periods:
        try:
            new_clients = store.count_new_clients(owner_id, period.start, period.end)
        except Exception as exc:  # noqa: BLE001
            raise FinancialDataUnavailable() from exc

        statement = statement_from_snapshot(
            snapshot,
            period=period,
            new_clients_count=int(new_clients or 0),
        )
        statements.append(statement)

        for key in STATEMENT_MEASURES:
            rows.append(
                {
                    "period_label": period.label,
                    "period": period.key,
                    "measure_key": key,
                    "value": float(getattr(statement, key)),
                }
            )

    data = pd.DataFrame(rows, columns=MULTI_PERIOD_COLUMNS)
    return StatementsMultiPeriod(statements=statements, data=data)


def trend_periods(as_of: date, months: int = 6) -> list[Period]:
    """The last `months` calendar months up to as_of's month, oldest first."""
    if months < 1:
        raise ValueError("months must be at least 1.")
    current = pd.Period(month_key(as_of), freq="M")
    keys = [
        (current - offset).strftime("%Y-%m") for offset in range(months - 1, -1, -1)
    ]
    return [period_for_month(k) for k in keys]


def revenue_trend(
    store: FinancialDataStore,
    owner_id: str,
    as_of: date,
    months: int = 6,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> pd.DataFrame:
    """
    Monthly revenue, expenses and net result over the last `months` months.

    Returns a DataFrame with columns ``month`` (YYYY-MM), ``label``,
    ``total_revenue``, ``total_expenses`` and ``net_result``, oldest month
    first. The current month is included in full.
    """
    result = compute_statements_multi_period(
        store, owner_id, trend_periods(as_of, months), max_workers=max_workers
    )
    return pd.DataFrame(
        [
            {
                "month": s.period.key,
                "label": s.period.label,
                "total_revenue": s.total_revenue,
                "total_expenses": s.total_expenses,
                "net_result": s.net_result,
            }
            for s in result.statements
        ],
        columns=["month", "label", "total_revenue", "total_expenses", "net_result"],
    )
