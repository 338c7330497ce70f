# SMB FinReport - Financial Aggregation & Reporting Engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Presentation helpers: currency symbols, money and date formatting.

The account currency is resolved once per request into a `Currency` value
and passed down as configuration. Symbols are cosmetic: no exchange-rate
conversion is ever performed.
"""

from __future__ import annotations

import enum
import logging
from datetime import date
from typing import Any, Optional

LOGGER = logging.getLogger(__name__)

UNKNOWN_CLIENT_LABEL = "Unknown client"
UNNAMED_LABEL = "Unnamed"


class Currency(str, enum.Enum):
    """Closed set of supported account currencies."""

    EUR = "eur"
    USD = "usd"
    CHF = "chf"

    @property
    def symbol(self) -> str:
        return _SYMBOLS[self]


_SYMBOLS: dict[Currency, str] = {
    Currency.EUR: "€",
    Currency.USD: "$",
    Currency.CHF: "CHF",
}


def resolve_currency(value: Any) -> Currency:
    """
    Resolve a raw currency code ("eur", "USD", ...) into a Currency.

    Missing or unknown codes resolve to EUR.
    """
    if isinstance(value, Currency):
        return value
    code = str(value or "").strip().lower()
    try:
        return Currency(code)
    except ValueError:
        if code:
            LOGGER.warning("Unknown currency %r; using EUR.", value)
        return Currency.EUR


def format_money(value: float, currency: Currency) -> str:
    """Format an amount with exactly two decimals and the currency symbol."""
    return f"{value:.2f} {currency.symbol}"


def format_date(value: Optional[date]) -> str:
    """Format a date as dd/mm/yyyy (empty string for None)."""
    if value is None:
        return ""
    return value.strftime("%d/%m/%Y")


def label_or(value: Optional[str], fallback: str) -> str:
    """Return `value` unless it is empty, in which case return `fallback`."""
    if value is None or not str(value).strip():
        return fallback
    return str(value)
