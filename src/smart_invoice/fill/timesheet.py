"""Timesheet fill engine.

Writes a ``WorkRecord`` into a template worksheet following a resolved
``CellLayout``. Passes run in a fixed order:

    placeholders -> period -> date sync -> range fill / row matching -> styling

Bad addresses never abort a fill; they are collected in the ``FillReport``.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, replace
from datetime import date

import structlog
from openpyxl.worksheet.worksheet import Worksheet

from smart_invoice.config import get_settings
from smart_invoice.errors import LayoutNotResolved, MissingRateOrParameters, MissingTemplate
from smart_invoice.fill.cells import (
    DATE_NUMBER_FORMAT,
    NO_FILL,
    CellWriter,
    FillReport,
    is_bare_number,
    looks_like_date,
    parse_row_date,
    to_cell_datetime,
    to_excel_serial,
    weekend_fill,
)
from smart_invoice.fill.invoice import fill_invoice
from smart_invoice.layout.types import CellLayout, ColumnMapping, InvoiceCellMapping, LayoutKind
from smart_invoice.records import WorkRecord
from smart_invoice.workdays import (
    days_in_month,
    format_month_display,
    is_weekend,
    month_dates,
    parse_month,
    period_label,
    working_day_numbers,
)

logger = structlog.get_logger(__name__)

MAX_MONTH_DAYS = 31
WORKING_DAY_PREFIX = "Working day - "


@dataclass(frozen=True)
class FillParameters:
    """Client numbers a fill needs."""

    daily_rate: float | None
    hours_per_day: float | None = None


def align_layout(layout: CellLayout) -> CellLayout:
    """Shift the hours range to start in the day-number range's first column."""
    days, hours = layout.day_number_range, layout.hours_range
    if days is None or hours is None or hours.start_col == days.start_col:
        return layout

    aligned = hours.aligned_to(days)
    logger.warning("hours_range_aligned", original=str(hours), aligned=str(aligned))
    return replace(layout, hours_range=aligned)


def replace_placeholders(writer: CellWriter, values: dict[str, str]) -> int:
    """Replace ``{{KEY}}`` tokens in every string cell; returns cells changed."""
    changed = 0
    for row in writer.worksheet.iter_rows():
        for cell in row:
            if not isinstance(cell.value, str) or "{{" not in cell.value:
                continue
            text = cell.value
            for key, value in values.items():
                text = text.replace(f"{{{{{key}}}}}", value)
            if text != cell.value and writer.set(cell.coordinate, text):
                changed += 1
    return changed


class SpreadsheetFillEngine:
    """Fills timesheet and invoice templates."""

    def __init__(self, weekend_color: str | None = None):
        self.weekend_color = weekend_color or get_settings().weekend_fill_color

    # -------------------------------------------------------------------------
    # Preconditions
    # -------------------------------------------------------------------------

    @staticmethod
    def _check_preconditions(
        worksheet: Worksheet | None,
        layout: CellLayout,
        params: FillParameters | None,
    ) -> None:
        if worksheet is None:
            raise MissingTemplate("No timesheet template worksheet")
        if params is None or params.daily_rate is None or params.daily_rate <= 0:
            raise MissingRateOrParameters(
                "Client has no daily rate",
                details={"rate": params.daily_rate if params else None},
            )
        if not layout.is_resolved:
            raise LayoutNotResolved(
                "Could not work out where to write the timesheet; "
                "add a column mapping or clearer instructions"
            )

    # -------------------------------------------------------------------------
    # Timesheet
    # -------------------------------------------------------------------------

    def fill_timesheet(
        self,
        worksheet: Worksheet | None,
        record: WorkRecord,
        layout: CellLayout,
        params: FillParameters,
        client_name: str | None = None,
    ) -> FillReport:
        """Fill ``worksheet`` in place and report what happened.

        Raises:
            MissingTemplate: No worksheet.
            MissingRateOrParameters: No positive daily rate.
            LayoutNotResolved: ``layout`` carries no location.
        """
        self._check_preconditions(worksheet, layout, params)
        assert worksheet is not None

        layout = align_layout(layout)
        hours = params.hours_per_day or layout.hours_per_day
        writer = CellWriter(worksheet)
        log = logger.bind(month=record.month, client=client_name, layout=layout.kind.value)

        replace_placeholders(
            writer,
            {
                "MONTH": format_month_display(record.month),
                "CLIENT": client_name or "",
                "TOTAL_DAYS": str(record.total_working_days),
            },
        )

        if layout.period_cell:
            writer.set(layout.period_cell, period_label(record.month))

        if layout.kind is LayoutKind.HORIZONTAL:
            self._fill_horizontal(writer, record, layout, hours)
        else:
            mapping = layout.column_mapping
            assert mapping is not None
            if mapping.sync_dates:
                self._sync_dates(writer, record.month, mapping)
            dated_rows = self._match_rows(writer, record, mapping, hours)
            if not layout.styling_disabled:
                self._style_rows(writer, mapping, dated_rows)

        log.info(
            "timesheet_filled",
            working_days=record.total_working_days,
            written=writer.report.cells_written,
            cleared=writer.report.cells_cleared,
            styled=writer.report.cells_styled,
            skipped=len(writer.report.skipped),
        )
        return writer.report

    def _fill_horizontal(
        self,
        writer: CellWriter,
        record: WorkRecord,
        layout: CellLayout,
        hours: float,
    ) -> None:
        day_range, hours_range = layout.day_number_range, layout.hours_range
        assert day_range is not None and hours_range is not None

        total_days = days_in_month(record.month)
        working = working_day_numbers(record.working_days)
        if day_range.width < total_days:
            logger.warning(
                "day_range_too_short",
                range=str(day_range),
                width=day_range.width,
                days=total_days,
            )

        for address in day_range.cells() + hours_range.cells():
            writer.clear(address)

        columns = zip(day_range.columns(), hours_range.columns(), strict=False)
        for day_number, (day_col, hours_col) in enumerate(columns, start=1):
            if day_number > total_days:
                break
            writer.set(f"{day_col}{day_range.row}", day_number)
            if day_number in working:
                writer.set(f"{hours_col}{hours_range.row}", hours)

        if not layout.styling_disabled and layout.style_rows is not None:
            year, month_number = parse_month(record.month)
            gray = weekend_fill(self.weekend_color)
            for day_number, column in enumerate(hours_range.columns(), start=1):
                weekend = day_number <= total_days and is_weekend(
                    date(year, month_number, day_number)
                )
                for row in layout.style_rows.rows():
                    writer.style(f"{column}{row}", gray if weekend else NO_FILL)

    # -------------------------------------------------------------------------
    # Vertical layouts
    # -------------------------------------------------------------------------

    @staticmethod
    def _row_columns(mapping: ColumnMapping) -> list[str]:
        columns = [mapping.date_col, mapping.hours_col]
        if mapping.description_col:
            columns.append(mapping.description_col)
        columns.extend(mapping.marker_columns())
        return list(dict.fromkeys(columns))

    def _sync_dates(self, writer: CellWriter, month: str, mapping: ColumnMapping) -> None:
        """One date per row for the whole month; clear stale date rows below."""
        dates = month_dates(month)
        for offset, day in enumerate(dates):
            address = f"{mapping.date_col}{mapping.start_row + offset}"
            cell = writer.cell(address)
            if cell is None:
                continue
            if is_bare_number(cell.value) and not cell.is_date:
                writer.set(address, to_excel_serial(day))
            elif cell.is_date:
                writer.set(address, to_cell_datetime(day))
            else:
                writer.set(address, to_cell_datetime(day), number_format=DATE_NUMBER_FORMAT)

        for row in range(mapping.start_row + len(dates), mapping.start_row + MAX_MONTH_DAYS):
            if not looks_like_date(writer.cell(f"{mapping.date_col}{row}")):
                continue
            for column in self._row_columns(mapping):
                writer.clear(f"{column}{row}")
            logger.debug("stale_date_row_cleared", row=row)

    def _match_rows(
        self,
        writer: CellWriter,
        record: WorkRecord,
        mapping: ColumnMapping,
        hours: float,
    ) -> dict[int, date]:
        """Write hours and markers into every row dated within the month.

        Returns the matched rows mapped to their dates.
        """
        year, month_number = parse_month(record.month)
        working = set(record.working_days)
        excluded = record.config.excluded_dates
        markers = mapping.day_off_markers
        marker_texts = set(markers.values())

        if mapping.sync_dates:
            last_row = mapping.start_row + days_in_month(record.month) - 1
        else:
            last_row = max(writer.worksheet.max_row, mapping.start_row + MAX_MONTH_DAYS - 1)
        dated_rows: dict[int, date] = {}

        for row in range(mapping.start_row, last_row + 1):
            day = parse_row_date(writer.peek(f"{mapping.date_col}{row}"), year, month_number)
            if day is None or (day.year, day.month) != (year, month_number):
                continue
            dated_rows[row] = day
            iso = day.isoformat()

            if iso in working:
                self._write_working_row(writer, mapping, row, day, hours, marker_texts)
            elif iso in excluded:
                writer.clear(f"{mapping.hours_col}{row}")
                self._clear_working_description(writer, mapping, row)
                for column, text in markers.items():
                    writer.set(f"{column}{row}", text)
            else:
                writer.clear(f"{mapping.hours_col}{row}")
                self._clear_working_description(writer, mapping, row)
                for column, text in markers.items():
                    if writer.peek(f"{column}{row}") == text:
                        writer.clear(f"{column}{row}")

        return dated_rows

    @staticmethod
    def _write_working_row(
        writer: CellWriter,
        mapping: ColumnMapping,
        row: int,
        day: date,
        hours: float,
        marker_texts: set[str],
    ) -> None:
        for column, text in mapping.day_off_markers.items():
            if column != mapping.hours_col and writer.peek(f"{column}{row}") == text:
                writer.clear(f"{column}{row}")

        writer.set(f"{mapping.hours_col}{row}", hours)

        if mapping.description_col:
            address = f"{mapping.description_col}{row}"
            current = writer.peek(address)
            if current is None or str(current).strip() == "" or current in marker_texts:
                writer.set(address, f"{WORKING_DAY_PREFIX}{calendar.day_name[day.weekday()]}")

    @staticmethod
    def _clear_working_description(writer: CellWriter, mapping: ColumnMapping, row: int) -> None:
        if not mapping.description_col:
            return
        address = f"{mapping.description_col}{row}"
        current = writer.peek(address)
        if isinstance(current, str) and current.startswith(WORKING_DAY_PREFIX):
            writer.clear(address)

    def _style_rows(
        self,
        writer: CellWriter,
        mapping: ColumnMapping,
        dated_rows: dict[int, date],
    ) -> None:
        gray = weekend_fill(self.weekend_color)
        columns = self._row_columns(mapping)
        for row, day in dated_rows.items():
            pattern = gray if is_weekend(day) else NO_FILL
            for column in columns:
                writer.style(f"{column}{row}", pattern)

    # -------------------------------------------------------------------------
    # Invoice
    # -------------------------------------------------------------------------

    def fill_invoice(
        self,
        worksheet: Worksheet | None,
        record: WorkRecord,
        mapping: InvoiceCellMapping | None,
        params: FillParameters,
        invoice_number: str,
    ) -> FillReport:
        return fill_invoice(worksheet, record, mapping, params.daily_rate, invoice_number)
