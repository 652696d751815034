"""Pytest configuration and fixtures."""

import os
from unittest.mock import AsyncMock

import pytest
from openpyxl import Workbook

# Set test environment variables before importing settings
os.environ.setdefault("GOOGLE_API_KEY", "test-key")
os.environ.setdefault("HOLIDAY_COUNTRY", "GR")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from smart_invoice.layout.types import ColumnMapping, InvoiceCellMapping  # noqa: E402
from smart_invoice.records import ClientProfile, WorkRecord  # noqa: E402
from smart_invoice.workdays import WorkRecordConfig, resolve_month  # noqa: E402


@pytest.fixture
def mock_httpx_client():
    """Create a mock httpx AsyncClient."""
    client = AsyncMock()
    client.get = AsyncMock()
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def mock_holidays_response():
    """Nager.Date response for Greece (trimmed)."""
    return [
        {"date": "2026-01-01", "localName": "Πρωτοχρονιά", "name": "New Year's Day"},
        {"date": "2026-03-25", "localName": "Εικοστή Πέμπτη Μαρτίου", "name": "Independence Day"},
        {"date": "2026-04-10", "localName": "Μεγάλη Παρασκευή", "name": "Good Friday"},
        {"date": "2026-04-13", "localName": "", "name": "Easter Monday"},
        {"date": "2026-05-01", "localName": "Εργατική Πρωτομαγιά", "name": "Labour Day"},
    ]


@pytest.fixture
def april_holidays():
    """Holidays in April 2026 as the catalog returns them."""
    return {"2026-04-10": "Μεγάλη Παρασκευή", "2026-04-13": "Easter Monday"}


@pytest.fixture
def april_record():
    """Work record for April 2026 with no overrides (22 working days)."""
    config = WorkRecordConfig()
    return WorkRecord.from_resolution("acme", resolve_month("2026-04", config), config)


@pytest.fixture
def client_profile():
    """Client billed 500/day with both template mappings."""
    return ClientProfile(
        id="acme",
        name="Acme Corp",
        daily_rate=500.0,
        invoice_mapping=InvoiceCellMapping(
            date="F3",
            invoice_number="F4",
            description="A10",
            days_worked="D10",
            daily_rate="E10",
            total_amount="F10",
        ),
        timesheet_mapping=ColumnMapping(date_col="A", hours_col="B", description_col="C"),
    )


@pytest.fixture
def horizontal_sheet():
    """Worksheet shaped like the standard horizontal timesheet."""
    workbook = Workbook()
    sheet = workbook.active
    sheet["A11"] = "Period:"
    sheet["A13"] = "Day"
    sheet["A14"] = "Hours"
    return sheet


@pytest.fixture
def vertical_sheet():
    """Worksheet with a header row and one row per day below it."""
    workbook = Workbook()
    sheet = workbook.active
    sheet["A1"] = "Date"
    sheet["B1"] = "Hours"
    sheet["C1"] = "Description"
    return sheet
