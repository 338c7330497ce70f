# SMB FinReport - Financial Aggregation & Reporting Engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Report exporter for SMB FinReport.

Serializes a Statement and the line items it was built from into a
downloadable document. The layout is fixed:

1. Summary table: total revenue, unpaid invoices, new clients, total
   expenses and net result (green when >= 0, red otherwise in the PDF).
2. Itemized sections, in this order:
   paid invoices, subscription revenue, product sales, miscellaneous
   revenue, payroll, cost of goods sold, general expenses, unpaid invoices.
   A section without any line is omitted entirely.

Amounts are shown with two decimals and the account's currency symbol;
dates are shown as dd/mm/yyyy. The exporter never recomputes figures: the
summary comes from the Statement, the sections from the line items.

Two renderers share the same section model (`build_report_sections`):
- `render_pdf()` : ReportLab platypus document (A4), with the company name,
  period and optional logo in the header and a footer on every page.
- `render_csv()` : the same sections written one after the other with
  pandas, for spreadsheets.

The logo is fetched over HTTP with httpx. A logo that cannot be fetched or
decoded is logged and left out; it never prevents the report from being
produced.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

import httpx
import pandas as pd
from reportlab.lib import colors
from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.platypus import (
    Image,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from .formatting import (
    UNKNOWN_CLIENT_LABEL,
    UNNAMED_LABEL,
    Currency,
    format_date,
    format_money,
    label_or,
)
from .periods import Period
from .proration import monthly_equivalent
from .statement import Statement, StatementLineItems

LOGGER = logging.getLogger(__name__)

DEFAULT_COMPANY_NAME = "Your company"
DEFAULT_LOGO_TIMEOUT = 5.0

MEDIA_TYPES: dict[str, str] = {
    "pdf": "application/pdf",
    "csv": "text/csv",
}

_HEADER_BG = HexColor("#2c3e50")
_GRID = HexColor("#d1d5db")
_STRIPE = HexColor("#f3f4f6")
_POSITIVE = HexColor("#008000")
_NEGATIVE = HexColor("#ff0000")


@dataclass(frozen=True)
class BrandingInfo:
    """Account branding used in the report header and footer."""

    company_name: Optional[str] = None
    logo_url: Optional[str] = None
    currency: Currency = Currency.EUR

    @property
    def display_name(self) -> str:
        return label_or(self.company_name, DEFAULT_COMPANY_NAME)


@dataclass(frozen=True)
class ReportSection:
    """One titled table of the report. Cells are already formatted."""

    key: str
    title: str
    columns: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ExportedDocument:
    """A rendered report ready to be written or downloaded."""

    filename: str
    content: bytes
    media_type: str


# ---------------------------------------------------------------------------
# Section model
# ---------------------------------------------------------------------------


def _summary_section(statement: Statement, currency: Currency) -> ReportSection:
    return ReportSection(
        key="summary",
        title="Summary",
        columns=("Measure", "Amount"),
        rows=(
            ("Total revenue", format_money(statement.total_revenue, currency)),
            ("Unpaid invoices", format_money(statement.unpaid_amount, currency)),
            ("New clients", str(statement.new_clients_count)),
            ("Total expenses", format_money(statement.total_expenses, currency)),
            ("Net result", format_money(statement.net_result, currency)),
        ),
    )


def build_report_sections(
    statement: Statement,
    line_items: StatementLineItems,
    currency: Currency,
) -> list[ReportSection]:
    """
    Build the ordered sections of a report.

    The summary always comes first; itemized sections without lines are
    dropped. Missing client or employee names are replaced by placeholder
    labels.
    """

    def money(value: float) -> str:
        return format_money(value, currency)

    itemized = [
        ReportSection(
            key="paid_invoices",
            title="Paid Invoices",
            columns=("Number", "Client", "Date", "Amount"),
            rows=tuple(
                (
                    i.invoice_number,
                    label_or(i.client_name, UNKNOWN_CLIENT_LABEL),
                    format_date(i.issue_date),
                    money(i.amount),
                )
                for i in line_items.paid_invoices
            ),
        ),
        ReportSection(
            key="subscription_revenue",
            title="Subscription Revenue",
            columns=("Client", "Plan", "Monthly amount"),
            rows=tuple(
                (
                    label_or(s.client_name, UNKNOWN_CLIENT_LABEL),
                    label_or(s.plan.name, UNNAMED_LABEL),
                    money(monthly_equivalent(s.plan)),
                )
                for s in line_items.subscriptions
            ),
        ),
        ReportSection(
            key="product_sales",
            title="Product Sales",
            columns=("Product", "Sale date", "Sale price"),
            rows=tuple(
                (
                    label_or(p.name, UNNAMED_LABEL),
                    format_date(p.sold_at),
                    money(p.sale_price),
                )
                for p in line_items.product_sales
            ),
        ),
        ReportSection(
            key="misc_revenue",
            title="Miscellaneous Revenue",
            columns=("Date", "Description", "Amount"),
            rows=tuple(
                (format_date(r.date), r.description, money(r.amount))
                for r in line_items.misc_revenues
            ),
        ),
        ReportSection(
            key="payroll",
            title="Payroll",
            columns=("Employee", "Gross salary"),
            rows=tuple(
                (label_or(e.name, UNNAMED_LABEL), money(e.gross_salary))
                for e in line_items.employees
            ),
        ),
        ReportSection(
            key="cogs",
            title="Cost of Goods Sold",
            columns=("Product", "Sale date", "Purchase price"),
            rows=tuple(
                (
                    label_or(p.name, UNNAMED_LABEL),
                    format_date(p.sold_at),
                    money(p.purchase_price),
                )
                for p in line_items.product_sales
            ),
        ),
        ReportSection(
            key="general_expenses",
            title="General Expenses",
            columns=("Date", "Description", "Category", "Amount"),
            rows=tuple(
                (format_date(e.date), e.description, e.category, money(e.amount))
                for e in line_items.general_expenses
            ),
        ),
        ReportSection(
            key="unpaid_invoices",
            title="Unpaid Invoices",
            columns=("Number", "Client", "Issue date", "Due date", "Amount"),
            rows=tuple(
                (
                    i.invoice_number,
                    label_or(i.client_name, UNKNOWN_CLIENT_LABEL),
                    format_date(i.issue_date),
                    format_date(i.due_date),
                    money(i.amount),
                )
                for i in line_items.unpaid_invoices
            ),
        ),
    ]

    sections = [_summary_section(statement, currency)]
    sections.extend(s for s in itemized if s.rows)
    return sections


# ---------------------------------------------------------------------------
# Logo
# ---------------------------------------------------------------------------


def fetch_logo(
    url: Optional[str],
    timeout: float = DEFAULT_LOGO_TIMEOUT,
) -> Optional[bytes]:
    """
    Download the company logo.

    Returns None (and logs a warning) when no URL is configured or when the
    request fails for any reason. There is no retry.
    """
    if not url:
        return None
    try:
        response = httpx.get(url, timeout=timeout, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        LOGGER.warning("Could not fetch company logo from %s: %s", url, exc)
        return None
    return response.content


def _logo_flowable(data: Optional[bytes]) -> Optional[Image]:
    """Turn logo bytes into a flowable, or None if they cannot be decoded."""
    if not data:
        return None
    try:
        reader = ImageReader(io.BytesIO(data))
        width, height = reader.getSize()
    except Exception as exc:  # noqa: BLE001
        LOGGER.warning("Company logo could not be decoded; skipping it: %s", exc)
        return None

    target_height = 20 * mm
    target_width = target_height * width / height if height else target_height
    return Image(io.BytesIO(data), width=target_width, height=target_height)


# ---------------------------------------------------------------------------
# Renderers
# ---------------------------------------------------------------------------


def _section_table(section: ReportSection, net_result: Optional[float]) -> Table:
    data = [list(section.columns)] + [list(row) for row in section.rows]
    table = Table(data, hAlign="LEFT", repeatRows=1)

    style = [
        ("BACKGROUND", (0, 0), (-1, 0), _HEADER_BG),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("ALIGN", (-1, 0), (-1, -1), "RIGHT"),
        ("GRID", (0, 0), (-1, -1), 0.5, _GRID),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]
    for index in range(2, len(data), 2):
        style.append(("BACKGROUND", (0, index), (-1, index), _STRIPE))

    if net_result is not None:
        color = _POSITIVE if net_result >= 0 else _NEGATIVE
        style.extend(
            [
                ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
                ("TEXTCOLOR", (0, -1), (-1, -1), color),
            ]
        )

    table.setStyle(TableStyle(style))
    return table


def render_pdf(
    statement: Statement,
    line_items: StatementLineItems,
    branding: BrandingInfo,
    logo: Optional[bytes] = None,
    generated_at: Optional[datetime] = None,
) -> bytes:
    """
    Render the report as a PDF document.

    Parameters
    ----------
    statement, line_items:
        Figures and lines of the report.
    branding:
        Company name, currency and logo URL. The URL is not fetched here;
        pass the downloaded bytes as `logo`.
    logo:
        Raw image bytes. Undecodable images are skipped with a warning.
    generated_at:
        Timestamp printed in the footer (now by default).
    """
    if generated_at is None:
        generated_at = datetime.now()

    sections = build_report_sections(statement, line_items, branding.currency)
    footer_text = f"{branding.display_name} | {generated_at.strftime('%d/%m/%Y %H:%M')}"

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=15 * mm,
        rightMargin=15 * mm,
        topMargin=15 * mm,
        bottomMargin=20 * mm,
        title=f"Financial report - {statement.period.label}",
        author=branding.display_name,
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "ReportTitle",
        parent=styles["Heading1"],
        alignment=1,
        textColor=_HEADER_BG,
    )
    subtitle_style = ParagraphStyle(
        "ReportSubtitle", parent=styles["Normal"], alignment=1
    )
    section_style = ParagraphStyle(
        "SectionTitle",
        parent=styles["Heading2"],
        fontSize=13,
        spaceBefore=8,
        spaceAfter=4,
    )

    content: list = []
    logo_flowable = _logo_flowable(logo)
    if logo_flowable is not None:
        logo_flowable.hAlign = "LEFT"
        content.append(logo_flowable)
    content.append(Paragraph("Financial Report", title_style))
    content.append(Paragraph(branding.display_name, subtitle_style))
    content.append(Paragraph(statement.period.label, subtitle_style))
    content.append(Spacer(1, 6 * mm))

    for section in sections:
        content.append(Paragraph(section.title, section_style))
        net = statement.net_result if section.key == "summary" else None
        content.append(_section_table(section, net))
        content.append(Spacer(1, 4 * mm))

    def _footer(canvas, document) -> None:
        canvas.saveState()
        canvas.setFont("Helvetica", 8)
        canvas.setFillColor(colors.grey)
        canvas.drawString(15 * mm, 10 * mm, footer_text)
        canvas.drawRightString(A4[0] - 15 * mm, 10 * mm, f"Page {document.page}")
        canvas.restoreState()

    doc.build(content, onFirstPage=_footer, onLaterPages=_footer)
    return buffer.getvalue()


def render_csv(
    statement: Statement,
    line_items: StatementLineItems,
    branding: BrandingInfo,
) -> bytes:
    """
    Render the report as CSV.

    Each section is written as a title line followed by its table (header
    row included) and a blank separator line, in report order.
    """
    sections = build_report_sections(statement, line_items, branding.currency)

    buffer = io.StringIO()
    buffer.write(f"Financial Report,{statement.period.label}\n\n")
    for section in sections:
        buffer.write(f"{section.title}\n")
        df = pd.DataFrame(list(section.rows), columns=list(section.columns))
        df.to_csv(buffer, index=False, lineterminator="\n")
        buffer.write("\n")
    return buffer.getvalue().encode("utf-8")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def report_filename(period_key: str, ext: str) -> str:
    """File name of an exported report: `financial-report-<period>.<ext>`."""
    return f"financial-report-{period_key}.{ext}"


def export_report(
    statement: Statement,
    line_items: StatementLineItems,
    period: Period,
    branding: BrandingInfo,
    fmt: str = "pdf",
    logo_timeout: float = DEFAULT_LOGO_TIMEOUT,
    generated_at: Optional[datetime] = None,
) -> ExportedDocument:
    """
    Render a report in the requested format.

    Raises
    ------
    ValueError
        If `fmt` is not one of "pdf" or "csv".
    """
    fmt = (fmt or "").strip().lower()
    if fmt not in MEDIA_TYPES:
        raise ValueError(f"Unsupported export format {fmt!r}. Use 'pdf' or 'csv'.")

    if fmt == "pdf":
        logo = fetch_logo(branding.logo_url, timeout=logo_timeout)
        content = render_pdf(
            statement,
            line_items,
            branding,
            logo=logo,
            generated_at=generated_at,
        )
    else:
        content = render_csv(statement, line_items, branding)

    LOGGER.info(
        "Exported %s report for period %s (%d bytes).",
        fmt.upper(),
        period.key,
        len(content),
    )
    return ExportedDocument(
        filename=report_filename(period.key, fmt),
        content=content,
        media_type=MEDIA_TYPES[fmt],
    )
