# SMB FinReport - Financial Aggregation & Reporting Engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers for SMB FinReport.

This module defines a Period value object and helpers to derive reporting
periods from a named period key (last 7 days, this month, a `YYYY-MM`
month, a custom range, ...) and to enumerate the historical months that can
be archived.

All helpers take an explicit reference date (`as_of`) instead of reading the
wall clock, so that callers and tests control "today".
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Optional, TypeVar

import pandas as pd

LOGGER = logging.getLogger(__name__)

PERIOD_KEYS: tuple[str, ...] = (
    "7days",
    "thisWeek",
    "30days",
    "thisMonth",
    "3months",
    "6months",
    "custom",
)

DEFAULT_WINDOW_DAYS = 30

_MONTH_KEY_RE = re.compile(r"^(\d{4})-(\d{2})$")

T = TypeVar("T")


@dataclass(frozen=True)
class Period:
    """Represents a reporting period with a human-readable label.

    Bounds are inclusive. `key` keeps the period key the period was resolved
    from ("thisMonth", "2024-03", "custom", ...).
    """

    start: date
    end: date
    label: str
    key: str = "custom"

    def contains(self, day: Optional[date]) -> bool:
        """Return True if `day` lies within [start, end]."""
        return day is not None and self.start <= day <= self.end


def _today() -> date:
    """Return today's date (isolated for callers that do not pass as_of)."""
    return date.today()


def _shift_months(day: date, months: int) -> date:
    """Move `day` by a number of calendar months, clamping the day of month."""
    return (pd.Timestamp(day) + pd.DateOffset(months=months)).date()


def month_key(day: date) -> str:
    """Return the `YYYY-MM` key of the month containing `day`."""
    return f"{day.year:04d}-{day.month:02d}"


def is_month_key(key: str) -> bool:
    """Return True if `key` looks like an explicit `YYYY-MM` month."""
    match = _MONTH_KEY_RE.match(key or "")
    return bool(match) and 1 <= int(match.group(2)) <= 12


def period_for_month(key: str) -> Period:
    """
    Full calendar month for an explicit `YYYY-MM` key.

    Raises
    ------
    ValueError
        If the key is not a valid `YYYY-MM` month.
    """
    if not is_month_key(key):
        raise ValueError(f"Invalid month key {key!r}, expected YYYY-MM.")

    month = pd.Period(key, freq="M")
    return Period(
        start=month.start_time.date(),
        end=month.end_time.date(),
        label=month.strftime("%B %Y"),
        key=key,
    )


def _default_window(as_of: date, key: str) -> Period:
    return Period(
        start=as_of - timedelta(days=DEFAULT_WINDOW_DAYS),
        end=as_of,
        label="Last 30 days",
        key=key,
    )


def resolve_period(
    key: str,
    as_of: Optional[date] = None,
    custom_start: Optional[date] = None,
    custom_end: Optional[date] = None,
) -> Period:
    """
    Resolve a named period key into an inclusive date range.

    Supported keys (relative to `as_of`, today by default):

        7days      : [as_of - 7 days, as_of]
        thisWeek   : Monday to Sunday of the week containing as_of
        30days     : [as_of - 30 days, as_of]
        thisMonth  : first to last day of as_of's month
        3months    : [as_of - 3 calendar months, as_of]
        6months    : [as_of - 6 calendar months, as_of]
        custom     : [custom_start, custom_end]
        YYYY-MM    : the full calendar month

    Resolution is fail-soft: a `custom` period missing either bound, and
    any unknown key, fall back to the default 30-day window so that a
    report can still be rendered.
    """
    if as_of is None:
        as_of = _today()

    if is_month_key(key):
        return period_for_month(key)

    if key == "7days":
        return Period(as_of - timedelta(days=7), as_of, "Last 7 days", key)

    if key == "thisWeek":
        monday = as_of - timedelta(days=as_of.weekday())
        return Period(monday, monday + timedelta(days=6), "This week", key)

    if key == "30days":
        return _default_window(as_of, key)

    if key == "thisMonth":
        month = period_for_month(month_key(as_of))
        return Period(month.start, month.end, "This month", key)

    if key == "3months":
        return Period(_shift_months(as_of, -3), as_of, "Last 3 months", key)

    if key == "6months":
        return Period(_shift_months(as_of, -6), as_of, "Last 6 months", key)

    if key == "custom":
        if custom_start is None or custom_end is None:
            LOGGER.warning(
                "Custom period requested without both bounds; "
                "falling back to the last %d days.",
                DEFAULT_WINDOW_DAYS,
            )
            return _default_window(as_of, key)

        start, end = sorted((custom_start, custom_end))
        label = f"Custom period ({start} to {end})"
        return Period(start=start, end=end, label=label, key=key)

    LOGGER.warning(
        "Unknown period key %r; falling back to the last %d days.",
        key,
        DEFAULT_WINDOW_DAYS,
    )
    return _default_window(as_of, key)


def enumerate_archive_months(
    event_dates: Iterable[Optional[date]],
    as_of: Optional[date] = None,
) -> list[str]:
    """
    List the archivable `YYYY-MM` months, most recent first.

    The list spans every calendar month from the month of the earliest event
    to the month of `as_of`, inclusive, including months without events.
    Events dated after `as_of` do not extend the list.

    Parameters
    ----------
    event_dates:
        Dates of every financial event across all source collections
        (invoice issue dates, expense dates, revenue dates, sale dates,
        employee creation dates, subscription start dates). None values are
        ignored.
    as_of:
        Reference date ("today").

    Returns
    -------
    list[str]
        Month keys in descending order, or an empty list when there are no
        events at all.
    """
    if as_of is None:
        as_of = _today()

    dates = [d for d in event_dates if d is not None]
    if not dates:
        return []

    earliest = min(min(dates), as_of)
    months = pd.period_range(
        start=pd.Timestamp(earliest), end=pd.Timestamp(as_of), freq="M"
    )
    return [m.strftime("%Y-%m") for m in reversed(months)]


def archive_periods(
    event_dates: Iterable[Optional[date]],
    as_of: Optional[date] = None,
) -> list[Period]:
    """Same as `enumerate_archive_months`, resolved into Period objects."""
    return [period_for_month(k) for k in enumerate_archive_months(event_dates, as_of)]


def filter_by_date(records: Iterable[T], attribute: str, period: Period) -> list[T]:
    """
    Keep only the records whose date attribute falls within the period.

    Records whose attribute is None are dropped.
    """
    kept: list[T] = []
    for record in records:
        value: Any = getattr(record, attribute)
        if period.contains(value):
            kept.append(record)
    return kept
