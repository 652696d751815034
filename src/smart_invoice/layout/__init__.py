"""Template layout resolution."""

from smart_invoice.layout.hints import (
    GeminiHintProvider,
    LayoutHintProvider,
    NullHintProvider,
    parse_hint_response,
)
from smart_invoice.layout.parser import STANDARD_TIMESHEET_PROMPT, parse_instructions, parse_layout
from smart_invoice.layout.resolver import CellLayoutResolver
from smart_invoice.layout.types import (
    CellLayout,
    CellRange,
    ColumnMapping,
    InvoiceCellMapping,
    LayoutDraft,
    LayoutKind,
    LayoutSource,
    RowSpan,
)

__all__ = [
    "STANDARD_TIMESHEET_PROMPT",
    "CellLayout",
    "CellLayoutResolver",
    "CellRange",
    "ColumnMapping",
    "GeminiHintProvider",
    "InvoiceCellMapping",
    "LayoutDraft",
    "LayoutHintProvider",
    "LayoutKind",
    "LayoutSource",
    "NullHintProvider",
    "RowSpan",
    "parse_hint_response",
    "parse_instructions",
    "parse_layout",
]
