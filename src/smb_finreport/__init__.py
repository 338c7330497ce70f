# SMB FinReport - Financial Aggregation & Reporting Engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
SMB FinReport
-------------

The financial aggregation and reporting engine of a business-management
application for Small and Medium-sized Businesses (SMBs). It reconciles
independently-maintained records (invoices, recurring subscriptions,
inventory sales, miscellaneous revenues, payroll and general expenses) into
period-bucketed financial statements.

Main capabilities:
- named and monthly period resolution with an explicit reference date,
- subscription proration (monthly equivalent, period membership),
- revenue and expense aggregation without double counting,
- an immutable Statement shared by the live dashboard and the archive,
- concurrent fan-out reads from the data store with all-or-nothing joins,
- historical archive enumeration and multi-period computation,
- PDF and CSV report export with best-effort branding.

SMB FinReport separates computation (engine), configuration (TOML), storage
(collaborator store) and presentation (CLI / exporter).


Version: 0.2.0

Usage:
    python -m smb_finreport.cli --help
"""

__all__ = [
    "models",
    "periods",
    "proration",
    "engine",
    "statement",
    "service",
    "multi_periods",
    "formatting",
    "export",
    "db",
    "io",
    "config",
    "cli",
]

__version__ = "0.2.0"
