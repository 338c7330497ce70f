# SMB FinReport - Financial Aggregation & Reporting Engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for SMB FinReport.

This module is responsible for:
- loading the application configuration from a TOML file,
- exposing typed dataclasses used by the rest of the application.
"""

from __future__ import annotations

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .db import DatabaseConfig
from .export import DEFAULT_LOGO_TIMEOUT, MEDIA_TYPES, BrandingInfo
from .formatting import Currency, resolve_currency
from .service import DEFAULT_MAX_WORKERS

DEFAULT_CONFIG_FILE = "smb_finreport_config.toml"


@dataclass(frozen=True)
class AccountConfig:
    """The business account whose records are reported on."""

    owner_id: str
    company_name: Optional[str]
    currency: Currency
    logo_url: Optional[str]

    @property
    def branding(self) -> BrandingInfo:
        return BrandingInfo(
            company_name=self.company_name,
            logo_url=self.logo_url,
            currency=self.currency,
        )


@dataclass(frozen=True)
class ExportConfig:
    """Defaults for the report exporter."""

    format: str
    output_dir: Path
    logo_timeout: float


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for SMB FinReport.

    This aggregates:
    - the account (owner id, company name, currency, logo),
    - the database configuration (where source records are stored),
    - the engine options (size of the read thread pool),
    - the export defaults,
    - the logging level.
    """

    account: AccountConfig
    database: DatabaseConfig
    max_workers: int
    export: ExportConfig
    log_level: str


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    """Return a top-level table, or an empty mapping if missing or malformed."""
    value = raw.get(name) or {}
    if not isinstance(value, Mapping):
        return {}
    return value


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_account(raw: Mapping[str, Any]) -> AccountConfig:
    """
    Extract and validate the [account] table.

    Raises:
        ValueError: if `owner_id` is missing or empty.
    """
    section = _section(raw, "account")

    owner_id = _optional_str(section.get("owner_id"))
    if owner_id is None:
        raise ValueError("Config file is missing [account].owner_id.")

    return AccountConfig(
        owner_id=owner_id,
        company_name=_optional_str(section.get("company_name")),
        currency=resolve_currency(section.get("currency")),
        logo_url=_optional_str(section.get("logo_url")),
    )


def _parse_max_workers(raw: Mapping[str, Any]) -> int:
    section = _section(raw, "engine")
    value = section.get("max_workers", DEFAULT_MAX_WORKERS)
    try:
        max_workers = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            "Invalid value for 'engine.max_workers' in the configuration. "
            "Expected an integer."
        ) from exc
    if max_workers < 1:
        raise ValueError("'engine.max_workers' must be at least 1.")
    return max_workers


def _parse_export(raw: Mapping[str, Any], base_dir: Path) -> ExportConfig:
    section = _section(raw, "export")

    fmt = str(section.get("format") or "pdf").strip().lower()
    if fmt not in MEDIA_TYPES:
        raise ValueError(
            f"Invalid value for 'export.format': {fmt!r}. Expected 'pdf' or 'csv'."
        )

    output_dir_raw = section.get("output_dir") or "data/output"
    output_dir = (base_dir / str(output_dir_raw)).resolve()

    try:
        logo_timeout = float(section.get("logo_timeout", DEFAULT_LOGO_TIMEOUT))
    except (TypeError, ValueError):
        logo_timeout = DEFAULT_LOGO_TIMEOUT

    return ExportConfig(format=fmt, output_dir=output_dir, logo_timeout=logo_timeout)


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the SMB FinReport application configuration from a TOML file.

    Expected top-level sections in the TOML file
    --------------------------------------------
    [account]
        owner_id (mandatory), company_name, currency ("eur", "usd" or
        "chf"; anything else falls back to "eur") and logo_url.

    [database]
        Database engine and SQLite file path.

    [engine]
        max_workers: size of the thread pool used for concurrent reads.

    [export]
        Default format ("pdf" or "csv"), output directory and the timeout
        (seconds) used when fetching the company logo.

    [logging]
        level: standard logging level name ("DEBUG", "INFO", ...).

    Notes
    -----
    All file paths in the TOML are resolved relative to the directory of
    the TOML file itself.

    Parameters
    ----------
    config_path : str, optional
        Path to the TOML configuration file. Defaults to
        `smb_finreport_config.toml` in the current directory.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.
    """
    config_file = Path(config_path or DEFAULT_CONFIG_FILE).resolve()

    raw = _load_toml(config_file)
    base_dir = config_file.parent

    # 1) Account
    account = _parse_account(raw)

    # 2) Database
    database_section = _section(raw, "database")
    db_engine = str(database_section.get("engine") or "sqlite")
    db_path_raw = database_section.get("path") or "data/db/smb_finreport.sqlite"
    db_path = (base_dir / str(db_path_raw)).resolve()
    database = DatabaseConfig(engine=db_engine, path=db_path)

    # 3) Engine, export, logging
    max_workers = _parse_max_workers(raw)
    export = _parse_export(raw, base_dir)
    log_level = str(_section(raw, "logging").get("level") or "INFO").upper()

    return AppConfig(
        account=account,
        database=database,
        max_workers=max_workers,
        export=export,
        log_level=log_level,
    )
