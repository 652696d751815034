"""Guarded cell access and date handling for template worksheets."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any

import structlog
from openpyxl.cell.cell import Cell
from openpyxl.styles import PatternFill
from openpyxl.utils.cell import column_index_from_string, coordinate_from_string
from openpyxl.utils.datetime import from_excel, to_excel
from openpyxl.utils.exceptions import CellCoordinatesException
from openpyxl.worksheet.worksheet import Worksheet

from smart_invoice.errors import CellWriteSkipped

logger = structlog.get_logger(__name__)

MAX_COLUMN = 16384  # XFD
MAX_ROW = 1048576
DATE_NUMBER_FORMAT = "dd/mm/yyyy"

# Excel serials between 1954 and 2119; smaller integers are read as day numbers
MIN_SERIAL = 20000
MAX_SERIAL = 80000

DATE_TEXT_RE = re.compile(
    r"^\s*(?:"
    r"\d{4}-\d{1,2}-\d{1,2}"
    r"|\d{1,2}[/.\-]\d{1,2}[/.\-]\d{2,4}"
    r"|\d{1,2}[\s\-]+[a-z]{3,9}[\s\-,]+\d{4}"
    r"|[a-z]{3,9}\s+\d{1,2},?\s+\d{4}"
    r")(?:[ t]\d{1,2}:\d{2}(?::\d{2})?)?\s*$",
    re.IGNORECASE,
)
TRAILING_TIME_RE = re.compile(r"[ tT]\d{1,2}:\d{2}(?::\d{2})?$")
TEXT_DATE_FORMATS = (
    "%Y-%m-%d",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%d/%m/%y",
    "%d %B %Y",
    "%d %b %Y",
    "%d-%B-%Y",
    "%d-%b-%Y",
    "%B %d, %Y",
    "%B %d %Y",
    "%b %d, %Y",
)


# =============================================================================
# ADDRESSES AND FILLS
# =============================================================================


def validate_address(address: str) -> str:
    """Normalize an A1-style address; raise ``ValueError`` if unusable."""
    if not isinstance(address, str) or not address.strip():
        raise ValueError("empty address")
    normalized = address.strip().replace("$", "").upper()
    try:
        column, row = coordinate_from_string(normalized)
        column_index = column_index_from_string(column)
    except (CellCoordinatesException, ValueError) as e:
        raise ValueError(str(e)) from e
    if not (1 <= column_index <= MAX_COLUMN and 1 <= row <= MAX_ROW):
        raise ValueError("address outside sheet bounds")
    return normalized


def weekend_fill(color: str) -> PatternFill:
    return PatternFill("solid", fgColor=color)


NO_FILL = PatternFill(fill_type=None)


@dataclass
class FillReport:
    """What a fill pass did, including writes it had to skip."""

    cells_written: int = 0
    cells_cleared: int = 0
    cells_styled: int = 0
    skipped: list[CellWriteSkipped] = field(default_factory=list)

    @property
    def has_skips(self) -> bool:
        return bool(self.skipped)

    def skipped_addresses(self) -> list[str]:
        return [skip.address for skip in self.skipped]


class CellWriter:
    """Worksheet wrapper that records bad writes instead of raising."""

    def __init__(self, worksheet: Worksheet, report: FillReport | None = None):
        self.worksheet = worksheet
        self.report = report or FillReport()

    def _skip(self, address: Any, reason: str) -> None:
        skip = CellWriteSkipped(str(address), reason)
        self.report.skipped.append(skip)
        logger.warning("cell_write_skipped", address=str(address), reason=reason)

    def cell(self, address: str) -> Cell | None:
        """Resolve an address to a cell, or record a skip and return ``None``."""
        try:
            return self.worksheet[validate_address(address)]
        except ValueError as e:
            self._skip(address, str(e))
            return None

    def peek(self, address: str) -> Any:
        """Value at ``address`` without recording anything; ``None`` if invalid."""
        try:
            return self.worksheet[validate_address(address)].value
        except ValueError:
            return None

    def set(self, address: str, value: Any, number_format: str | None = None) -> bool:
        cell = self.cell(address)
        if cell is None:
            return False
        try:
            cell.value = value
            if number_format:
                cell.number_format = number_format
        except (AttributeError, TypeError, ValueError) as e:
            # merged cells are read-only
            self._skip(address, str(e))
            return False
        self.report.cells_written += 1
        return True

    def clear(self, address: str) -> bool:
        cell = self.cell(address)
        if cell is None:
            return False
        if cell.value is None:
            return True
        try:
            cell.value = None
        except AttributeError as e:
            self._skip(address, str(e))
            return False
        self.report.cells_cleared += 1
        return True

    def style(self, address: str, pattern: PatternFill) -> bool:
        cell = self.cell(address)
        if cell is None:
            return False
        try:
            cell.fill = pattern
        except AttributeError as e:
            self._skip(address, str(e))
            return False
        self.report.cells_styled += 1
        return True


# =============================================================================
# DATES
# =============================================================================


def utc_midnight(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, tzinfo=UTC)


def to_cell_datetime(day: date) -> datetime:
    """Midnight of ``day`` as a naive datetime (workbooks carry no timezone)."""
    return utc_midnight(day).replace(tzinfo=None)


def to_excel_serial(day: date) -> int:
    return int(to_excel(to_cell_datetime(day)))


def is_bare_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def looks_like_date(cell: Cell | None) -> bool:
    """Native date, date-formatted number, or date-shaped text."""
    if cell is None or cell.value is None:
        return False
    if isinstance(cell.value, (datetime, date)):
        return True
    if is_bare_number(cell.value):
        return bool(cell.is_date)
    if isinstance(cell.value, str):
        return DATE_TEXT_RE.match(cell.value) is not None
    return False


def _parse_text_date(text: str) -> date | None:
    cleaned = re.sub(r"\s+", " ", text.strip())
    cleaned = TRAILING_TIME_RE.sub("", cleaned)
    for fmt in TEXT_DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue
    return None


def _day_in_month(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_row_date(value: Any, year: int, month: int) -> date | None:
    """Best-effort date for a row's date cell.

    Accepts native dates, Excel serials, bare day-of-month numbers (taken to be
    in ``year``/``month``) and common day-first text formats.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if is_bare_number(value):
        if float(value).is_integer() and 1 <= value <= 31:
            return _day_in_month(year, month, int(value))
        if MIN_SERIAL <= value <= MAX_SERIAL:
            return from_excel(value).date()
        return None
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit() and 1 <= int(text) <= 31:
            return _day_in_month(year, month, int(text))
        return _parse_text_date(text)
    return None


def is_formula(cell: Cell | None) -> bool:
    if cell is None:
        return False
    if cell.data_type == "f":
        return True
    return isinstance(cell.value, str) and cell.value.startswith("=")
