"""SmartInvoice - working-day tracking and spreadsheet invoice/timesheet generation."""

__version__ = "0.1.0"

from smart_invoice.clients import GeminiClient
from smart_invoice.config import configure_logging, get_settings
from smart_invoice.documents import OutdatedDetector, snapshot_document
from smart_invoice.fill import FillParameters, FillReport, SpreadsheetFillEngine, load_template
from smart_invoice.holidays import HolidayCatalog
from smart_invoice.layout import (
    CellLayout,
    CellLayoutResolver,
    ColumnMapping,
    GeminiHintProvider,
    NullHintProvider,
)
from smart_invoice.records import ClientProfile, Document, DocumentType, WorkRecord
from smart_invoice.store import InMemoryStore, WorkRecordStore
from smart_invoice.workdays import DayStatusResolver, WorkRecordConfig, resolve_month
from smart_invoice.workflow import GenerationResult, InvoiceWorkflow

__all__ = [
    # Version
    "__version__",
    # Working days
    "DayStatusResolver",
    "HolidayCatalog",
    "WorkRecordConfig",
    "resolve_month",
    # Records
    "ClientProfile",
    "Document",
    "DocumentType",
    "WorkRecord",
    # Layout
    "CellLayout",
    "CellLayoutResolver",
    "ColumnMapping",
    "GeminiHintProvider",
    "NullHintProvider",
    # Fill
    "FillParameters",
    "FillReport",
    "SpreadsheetFillEngine",
    "load_template",
    # Documents & storage
    "OutdatedDetector",
    "snapshot_document",
    "InMemoryStore",
    "WorkRecordStore",
    # Workflow
    "GenerationResult",
    "InvoiceWorkflow",
    # LLM Clients
    "GeminiClient",
    # Config
    "get_settings",
    "configure_logging",
]
