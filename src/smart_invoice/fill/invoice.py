"""Invoice template fill."""

from __future__ import annotations

import re
from datetime import date

import structlog
from openpyxl.worksheet.worksheet import Worksheet

from smart_invoice.errors import LayoutNotResolved, MissingRateOrParameters, MissingTemplate
from smart_invoice.fill.cells import CellWriter, FillReport, is_formula
from smart_invoice.layout.types import InvoiceCellMapping
from smart_invoice.records import WorkRecord
from smart_invoice.workdays import days_in_month, format_month_display, parse_month

logger = structlog.get_logger(__name__)

DAYS_COUNT_RE = re.compile(r"(\d+)(\D{0,50}days?)", re.IGNORECASE)


def invoice_date(month: str) -> str:
    """Last day of the month as ``dd/mm/YYYY``."""
    year, month_number = parse_month(month)
    return date(year, month_number, days_in_month(month)).strftime("%d/%m/%Y")


def describe_services(current: str | None, month: str, days: int, days_cell_mapped: bool) -> str | None:
    """New description text, or ``None`` to leave the cell as it is.

    An empty description gets the standard wording; existing text only has
    its first day count updated.
    """
    text = "" if current is None else str(current)
    if not text.strip():
        description = f"Consulting Services for {format_month_display(month)}"
        if not days_cell_mapped:
            description += f" ({days} days)"
        return description

    if not DAYS_COUNT_RE.search(text):
        return None
    return DAYS_COUNT_RE.sub(lambda m: f"{days}{m.group(2)}", text, count=1)


def fill_invoice(
    worksheet: Worksheet | None,
    record: WorkRecord,
    mapping: InvoiceCellMapping | None,
    daily_rate: float | None,
    invoice_number: str,
) -> FillReport:
    """Write invoice values into the mapped cells of ``worksheet``.

    Raises:
        MissingTemplate: No worksheet.
        MissingRateOrParameters: No positive rate or no invoice number.
        LayoutNotResolved: The mapping names no cells at all.
    """
    if worksheet is None:
        raise MissingTemplate("No invoice template worksheet")
    if daily_rate is None or daily_rate <= 0:
        raise MissingRateOrParameters("Client has no daily rate", details={"rate": daily_rate})
    if not invoice_number or not invoice_number.strip():
        raise MissingRateOrParameters("Invoice number is required")
    if mapping is None or not any(getattr(mapping, name) for name in mapping.__dataclass_fields__):
        raise LayoutNotResolved("Client has no invoice cell mapping")

    log = logger.bind(month=record.month, invoice_number=invoice_number)
    writer = CellWriter(worksheet)
    days = record.total_working_days

    values = [
        (mapping.date, invoice_date(record.month)),
        (mapping.invoice_number, invoice_number),
        (mapping.days_worked, days),
        (mapping.daily_rate, daily_rate),
        (mapping.total_amount, record.amount(daily_rate)),
    ]
    for address, value in values:
        if address:
            writer.set(address, value)

    if mapping.description:
        cell = writer.cell(mapping.description)
        if cell is not None and not is_formula(cell):
            description = describe_services(
                cell.value, record.month, days, days_cell_mapped=bool(mapping.days_worked)
            )
            if description is not None:
                writer.set(mapping.description, description)

    log.info(
        "invoice_filled",
        days=days,
        total=record.amount(daily_rate),
        written=writer.report.cells_written,
        skipped=len(writer.report.skipped),
    )
    return writer.report
