"""Spreadsheet template fill engine."""

from smart_invoice.fill.cells import CellWriter, FillReport
from smart_invoice.fill.invoice import fill_invoice
from smart_invoice.fill.timesheet import FillParameters, SpreadsheetFillEngine, align_layout
from smart_invoice.fill.workbook import (
    first_worksheet,
    force_recalculation,
    load_template,
    workbook_to_bytes,
)

__all__ = [
    "CellWriter",
    "FillParameters",
    "FillReport",
    "SpreadsheetFillEngine",
    "align_layout",
    "fill_invoice",
    "first_worksheet",
    "force_recalculation",
    "load_template",
    "workbook_to_bytes",
]
