"""Tests for the timesheet fill engine."""

from datetime import date, datetime

import pytest
from openpyxl import Workbook
from openpyxl.styles import PatternFill
from openpyxl.utils.datetime import from_excel

from smart_invoice.errors import LayoutNotResolved, MissingRateOrParameters, MissingTemplate
from smart_invoice.fill.cells import looks_like_date, parse_row_date, validate_address
from smart_invoice.fill.timesheet import FillParameters, SpreadsheetFillEngine, align_layout
from smart_invoice.layout.types import CellLayout, CellRange, ColumnMapping, LayoutSource, RowSpan
from smart_invoice.records import WorkRecord
from smart_invoice.workdays import WorkRecordConfig, resolve_month

GRAY = "00D3D3D3"
PARAMS = FillParameters(daily_rate=500.0)


def _record(month, config=None):
    config = config or WorkRecordConfig()
    return WorkRecord.from_resolution("acme", resolve_month(month, config), config)


def _horizontal_layout(**overrides):
    values = {
        "period_cell": "C11",
        "day_number_range": CellRange(13, "C", "AG"),
        "hours_range": CellRange(14, "C", "AG"),
        "style_rows": RowSpan(14, 20),
        "source": LayoutSource.LOCAL,
    }
    values.update(overrides)
    return CellLayout(**values)


def _vertical_layout(mapping=None, styling_disabled=False):
    return CellLayout.from_mapping(
        mapping or ColumnMapping(date_col="A", hours_col="B", description_col="C"),
        styling_disabled=styling_disabled,
    )


@pytest.fixture
def engine():
    """Create a fill engine with the default weekend color."""
    return SpreadsheetFillEngine()


class TestPreconditions:
    """Tests for hard failures raised before any write."""

    def test_missing_worksheet(self, engine, april_record):
        """Test a missing template is fatal."""
        with pytest.raises(MissingTemplate):
            engine.fill_timesheet(None, april_record, _horizontal_layout(), PARAMS)

    @pytest.mark.parametrize("rate", [None, 0, -10])
    def test_missing_rate(self, engine, april_record, horizontal_sheet, rate):
        """Test a missing or non-positive rate is fatal and writes nothing."""
        with pytest.raises(MissingRateOrParameters):
            engine.fill_timesheet(
                horizontal_sheet, april_record, _horizontal_layout(), FillParameters(rate)
            )

        assert horizontal_sheet["C11"].value is None
        assert horizontal_sheet["C13"].value is None

    def test_unresolved_layout(self, engine, april_record, horizontal_sheet):
        """Test an unresolved layout blocks generation."""
        with pytest.raises(LayoutNotResolved):
            engine.fill_timesheet(
                horizontal_sheet, april_record, CellLayout.unresolved(), PARAMS
            )


class TestHorizontalFill:
    """Tests for one-column-per-day templates."""

    def test_april_fill(self, engine, april_record, horizontal_sheet):
        """Test period, day numbers and hours for April 2026."""
        report = engine.fill_timesheet(
            horizontal_sheet, april_record, _horizontal_layout(), PARAMS, client_name="Acme"
        )

        sheet = horizontal_sheet
        assert sheet["C11"].value == "01-April-2026 -> 30-April-2026"
        assert sheet["C13"].value == 1
        assert sheet["AF13"].value == 30
        assert sheet["AG13"].value is None
        # April 1st is a Wednesday, April 4th a Saturday
        assert sheet["C14"].value == 8.0
        assert sheet["F14"].value is None
        hours = [sheet.cell(row=14, column=col).value for col in range(3, 34)]
        assert sum(1 for value in hours if value == 8.0) == 22
        assert report.skipped == []

    def test_short_month_clears_stale_columns(self, engine, horizontal_sheet):
        """Test a 28-day month clears columns 29-31 left by a longer month."""
        sheet = horizontal_sheet
        for offset, column in enumerate(["AE", "AF", "AG"]):
            sheet[f"{column}13"] = 29 + offset
            sheet[f"{column}14"] = 8

        engine.fill_timesheet(sheet, _record("2026-02"), _horizontal_layout(), PARAMS)

        for column in ["AE", "AF", "AG"]:
            assert sheet[f"{column}13"].value is None
            assert sheet[f"{column}14"].value is None
        assert sheet["AD13"].value == 28
        assert sheet["C11"].value == "01-February-2026 -> 28-February-2026"

    def test_non_working_hours_stay_blank(self, engine, horizontal_sheet):
        """Test excluded days leave hours empty rather than zero."""
        record = _record("2026-04", WorkRecordConfig(excluded_dates=frozenset({"2026-04-01"})))
        horizontal_sheet["C14"] = 8

        engine.fill_timesheet(horizontal_sheet, record, _horizontal_layout(), PARAMS)

        assert horizontal_sheet["C13"].value == 1
        assert horizontal_sheet["C14"].value is None

    def test_hours_per_day_from_layout(self, engine, april_record, horizontal_sheet):
        """Test the layout's hours per day is written."""
        layout = _horizontal_layout(hours_per_day=6.0)

        engine.fill_timesheet(horizontal_sheet, april_record, layout, PARAMS)

        assert horizontal_sheet["C14"].value == 6.0

    def test_weekend_styling(self, engine, april_record, horizontal_sheet):
        """Test weekends are gray across every style row and weekdays unfilled."""
        horizontal_sheet["C14"].fill = PatternFill("solid", fgColor="FFFF00")

        engine.fill_timesheet(horizontal_sheet, april_record, _horizontal_layout(), PARAMS)

        for row in range(14, 21):
            assert horizontal_sheet[f"F{row}"].fill.fgColor.rgb == GRAY
            assert horizontal_sheet[f"F{row}"].fill.fill_type == "solid"
        assert horizontal_sheet["C14"].fill.fill_type is None
        assert horizontal_sheet["AG14"].fill.fill_type is None

    def test_included_weekend_keeps_gray(self, engine, horizontal_sheet):
        """Test a worked Saturday gets hours and is still colored as a weekend."""
        record = _record("2026-04", WorkRecordConfig(included_dates=frozenset({"2026-04-04"})))

        engine.fill_timesheet(horizontal_sheet, record, _horizontal_layout(), PARAMS)

        assert horizontal_sheet["F14"].value == 8.0
        assert horizontal_sheet["F14"].fill.fgColor.rgb == GRAY

    def test_styling_disabled(self, engine, april_record, horizontal_sheet):
        """Test disabled styling still writes values but no fills."""
        layout = _horizontal_layout(styling_disabled=True)

        report = engine.fill_timesheet(horizontal_sheet, april_record, layout, PARAMS)

        assert horizontal_sheet["C14"].value == 8.0
        assert horizontal_sheet["F14"].fill.fill_type is None
        assert report.cells_styled == 0

    def test_hours_range_aligned_to_day_range(self, engine, april_record, horizontal_sheet):
        """Test a shifted hours range is aligned before writing."""
        layout = _horizontal_layout(hours_range=CellRange(14, "D", "AH"))

        engine.fill_timesheet(horizontal_sheet, april_record, layout, PARAMS)

        assert horizontal_sheet["C14"].value == 8.0
        assert horizontal_sheet["AH14"].value is None

    def test_align_layout_keeps_width(self):
        """Test alignment preserves the hours range width."""
        layout = align_layout(_horizontal_layout(hours_range=CellRange(14, "E", "AI")))

        assert layout.hours_range == CellRange(14, "C", "AG")

    def test_invalid_period_cell_is_skipped(self, engine, april_record, horizontal_sheet):
        """Test a bad address is reported and the fill carries on."""
        layout = _horizontal_layout(period_cell="11C")

        report = engine.fill_timesheet(horizontal_sheet, april_record, layout, PARAMS)

        assert report.skipped_addresses() == ["11C"]
        assert horizontal_sheet["C13"].value == 1

    def test_placeholders(self, engine, april_record, horizontal_sheet):
        """Test template placeholders are replaced."""
        horizontal_sheet["A1"] = "Timesheet {{MONTH}} - {{CLIENT}} ({{TOTAL_DAYS}} days)"

        engine.fill_timesheet(
            horizontal_sheet, april_record, _horizontal_layout(), PARAMS, client_name="Acme Corp"
        )

        assert horizontal_sheet["A1"].value == "Timesheet April 2026 - Acme Corp (22 days)"


class TestDateSync:
    """Tests for date-column synchronization."""

    def test_april_writes_thirty_dates_and_clears_row_32(
        self, engine, april_record, vertical_sheet
    ):
        """Test rows 2-31 get April dates and a stale row 32 is cleared."""
        sheet = vertical_sheet
        sheet["A32"] = datetime(2026, 3, 31)
        sheet["B32"] = 8
        sheet["A33"] = "Total"
        sheet["B33"] = "=SUM(B2:B32)"

        engine.fill_timesheet(sheet, april_record, _vertical_layout(), PARAMS)

        dates = [sheet[f"A{row}"].value for row in range(2, 33)]
        assert sum(1 for value in dates if isinstance(value, datetime)) == 30
        assert sheet["A2"].value == datetime(2026, 4, 1)
        assert sheet["A31"].value == datetime(2026, 4, 30)
        assert sheet["A32"].value is None
        assert sheet["B32"].value is None
        assert sheet["A33"].value == "Total"
        assert sheet["B33"].value == "=SUM(B2:B32)"

    def test_unrelated_trailing_rows_kept(self, engine, vertical_sheet):
        """Test non-date rows below a short month survive."""
        sheet = vertical_sheet
        sheet["A30"] = "Signature"

        engine.fill_timesheet(sheet, _record("2026-02"), _vertical_layout(), PARAMS)

        assert sheet["A29"].value == datetime(2026, 2, 28)
        assert sheet["A30"].value == "Signature"

    def test_serial_cells_keep_serial_form(self, engine, april_record, vertical_sheet):
        """Test cells holding bare numbers get Excel serials."""
        vertical_sheet["A2"] = 46000

        engine.fill_timesheet(vertical_sheet, april_record, _vertical_layout(), PARAMS)

        value = vertical_sheet["A2"].value
        assert isinstance(value, int)
        assert from_excel(value).date() == date(2026, 4, 1)
        assert vertical_sheet["B2"].value == 8.0


class TestRowMatching:
    """Tests for status-based row matching on vertical layouts."""

    def test_working_rows(self, engine, april_record, vertical_sheet):
        """Test working rows get hours and a description."""
        engine.fill_timesheet(vertical_sheet, april_record, _vertical_layout(), PARAMS)

        assert vertical_sheet["B2"].value == 8.0
        assert vertical_sheet["C2"].value == "Working day - Wednesday"
        # April 4th (row 5) is a Saturday
        assert vertical_sheet["B5"].value is None
        assert vertical_sheet["C5"].value is None

    def test_existing_description_kept(self, engine, april_record, vertical_sheet):
        """Test a custom description on a working row is not overwritten."""
        vertical_sheet["C2"] = "Sprint planning"

        engine.fill_timesheet(vertical_sheet, april_record, _vertical_layout(), PARAMS)

        assert vertical_sheet["C2"].value == "Sprint planning"

    def test_day_off_markers_and_stale_values(self, engine, vertical_sheet):
        """Test excluded days get markers and stale hours and markers are cleared."""
        record = _record("2026-04", WorkRecordConfig(excluded_dates=frozenset({"2026-04-08"})))
        mapping = ColumnMapping(
            date_col="A", hours_col="B", description_col="C", day_off_markers={"D": "Leave"}
        )
        sheet = vertical_sheet
        sheet["B9"] = 8  # April 8th, stale hours
        sheet["C9"] = "Working day - Wednesday"
        sheet["D3"] = "Leave"  # April 2nd is now a working day
        sheet["B5"] = 8  # April 4th, weekend
        sheet["D5"] = "Leave"

        engine.fill_timesheet(sheet, record, _vertical_layout(mapping), PARAMS)

        assert sheet["B9"].value is None
        assert sheet["C9"].value is None
        assert sheet["D9"].value == "Leave"
        assert sheet["D3"].value is None
        assert sheet["B3"].value == 8.0
        assert sheet["B5"].value is None
        assert sheet["D5"].value is None

    def test_marker_replaced_by_working_description(self, engine, april_record, vertical_sheet):
        """Test a stale marker in the description column becomes a working description."""
        mapping = ColumnMapping(
            date_col="A", hours_col="B", description_col="C", day_off_markers={"C": "Day off"}
        )
        vertical_sheet["C2"] = "Day off"

        engine.fill_timesheet(vertical_sheet, april_record, _vertical_layout(mapping), PARAMS)

        assert vertical_sheet["C2"].value == "Working day - Wednesday"

    def test_rows_matched_without_sync(self, engine, april_record, vertical_sheet):
        """Test day numbers and text dates are recognised when dates are not synced."""
        mapping = ColumnMapping(date_col="A", hours_col="B", start_row=2, sync_dates=False)
        sheet = vertical_sheet
        sheet["A2"] = 1
        sheet["A3"] = "02/04/2026"
        sheet["A4"] = "4"
        sheet["A5"] = "Total"
        sheet["B5"] = 99

        engine.fill_timesheet(sheet, april_record, _vertical_layout(mapping), PARAMS)

        assert sheet["B2"].value == 8.0
        assert sheet["B3"].value == 8.0
        assert sheet["B4"].value is None
        assert sheet["B5"].value == 99
        assert sheet["A4"].fill.fgColor.rgb == GRAY

    def test_weekend_rows_gray(self, engine, april_record, vertical_sheet):
        """Test mapped cells on weekend rows are gray."""
        engine.fill_timesheet(vertical_sheet, april_record, _vertical_layout(), PARAMS)

        for column in "ABC":
            assert vertical_sheet[f"{column}5"].fill.fgColor.rgb == GRAY
        assert vertical_sheet["A2"].fill.fill_type is None
        assert vertical_sheet["D5"].fill.fill_type is None

    def test_vertical_styling_disabled(self, engine, april_record, vertical_sheet):
        """Test disabled styling leaves fills untouched on vertical layouts."""
        engine.fill_timesheet(
            vertical_sheet, april_record, _vertical_layout(styling_disabled=True), PARAMS
        )

        assert vertical_sheet["A5"].fill.fill_type is None
        assert vertical_sheet["B2"].value == 8.0


class TestCellHelpers:
    """Tests for address and date helpers."""

    @pytest.mark.parametrize("address", ["", "11C", "A0", "ABCD1", "XFE1", None])
    def test_invalid_addresses(self, address):
        """Test unusable addresses are rejected."""
        with pytest.raises(ValueError):
            validate_address(address)

    def test_address_normalized(self):
        """Test absolute markers and case are normalized."""
        assert validate_address(" $c$11 ") == "C11"

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (datetime(2026, 4, 3, 0, 0), date(2026, 4, 3)),
            (date(2026, 4, 3), date(2026, 4, 3)),
            (3, date(2026, 4, 3)),
            ("3", date(2026, 4, 3)),
            ("03/04/2026", date(2026, 4, 3)),
            ("2026-04-03", date(2026, 4, 3)),
            ("3 April 2026", date(2026, 4, 3)),
            (46115, date(2026, 4, 3)),
            (31, None),
            ("Total", None),
            (True, None),
        ],
    )
    def test_parse_row_date(self, value, expected):
        """Test the supported date representations."""
        assert parse_row_date(value, 2026, 4) == expected

    def test_looks_like_date(self):
        """Test date-like detection ignores plain numbers and labels."""
        sheet = Workbook().active
        sheet["A1"] = datetime(2026, 3, 31)
        sheet["A2"] = "31/03/2026"
        sheet["A3"] = 31
        sheet["A4"] = "Total"
        sheet["A5"] = 46112
        sheet["A5"].number_format = "dd/mm/yyyy"

        assert looks_like_date(sheet["A1"])
        assert looks_like_date(sheet["A2"])
        assert not looks_like_date(sheet["A3"])
        assert not looks_like_date(sheet["A4"])
        assert looks_like_date(sheet["A5"])
