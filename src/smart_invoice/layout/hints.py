"""Optional layout hint providers.

A hint provider turns free-form instructions into a ``LayoutDraft``. It is a
best-effort capability: ``None`` means "nothing useful", and the resolver falls
back to the local parser in that case.
"""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING, Protocol

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from smart_invoice.layout.types import CellRange, LayoutDraft, RowSpan

if TYPE_CHECKING:
    from smart_invoice.clients.gemini import GeminiClient

logger = structlog.get_logger(__name__)

JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
CELL_ADDRESS_RE = re.compile(r"^([A-Za-z]{1,3})(\d{1,7})$")

HINT_SYSTEM_PROMPT = """You are a helpful assistant that processes timesheet generation instructions.
Analyze the user's prompt and extract the following information:
1. Which cells contain day numbers (e.g., C13 to AG13)
2. Which cells contain work hours (e.g., C14 to AG14)
3. Which cell contains the period display (e.g., C11)
4. How many hours per working day (default: 8)
5. Which rows get weekend styling, and whether styling must be left untouched
6. For templates with one row per day instead: the date, hours and description
   columns and the first data row

Respond in JSON format with this structure:
{
  "periodCell": "C11",
  "dayNumbersRange": { "start": "C13", "end": "AG13" },
  "hoursRange": { "start": "C14", "end": "AG14" },
  "hoursPerDay": 8,
  "styleRows": { "start": 14, "end": 20 },
  "disableStyling": false,
  "dateColumn": null,
  "hoursColumn": null,
  "descriptionColumn": null,
  "startRow": null
}
Use null for anything the instructions do not mention."""


class LayoutHintProvider(Protocol):
    """Capability that suggests a layout for free-form instructions."""

    async def suggest(
        self,
        prompt: str,
        working_days: list[str],
        client_name: str | None,
        month: str | None,
    ) -> LayoutDraft | None: ...


class NullHintProvider:
    """Default provider: never has a suggestion."""

    async def suggest(
        self,
        prompt: str,
        working_days: list[str],
        client_name: str | None,
        month: str | None,
    ) -> LayoutDraft | None:
        return None


# =============================================================================
# HINT PAYLOAD
# =============================================================================


class _AddressSpan(BaseModel):
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def _check_address(cls, value: str) -> str:
        if not CELL_ADDRESS_RE.match(value.strip()):
            raise ValueError(f"Invalid cell address {value!r}")
        return value.strip().upper()

    def to_range(self) -> CellRange | None:
        """Convert to a single-row range; ``None`` when the span crosses rows."""
        start = CELL_ADDRESS_RE.match(self.start)
        end = CELL_ADDRESS_RE.match(self.end)
        if start is None or end is None or start.group(2) != end.group(2):
            return None
        return CellRange(int(start.group(2)), start.group(1), end.group(1))


class _RowSpan(BaseModel):
    start: int = Field(ge=1)
    end: int = Field(ge=1)


class LayoutHint(BaseModel):
    """JSON shape returned by the hint model."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    period_cell: str | None = Field(default=None, alias="periodCell")
    day_numbers_range: _AddressSpan | None = Field(default=None, alias="dayNumbersRange")
    hours_range: _AddressSpan | None = Field(default=None, alias="hoursRange")
    hours_per_day: float | None = Field(default=None, alias="hoursPerDay", gt=0, le=24)
    style_rows: _RowSpan | None = Field(default=None, alias="styleRows")
    disable_styling: bool = Field(default=False, alias="disableStyling")
    date_column: str | None = Field(default=None, alias="dateColumn", pattern=r"^[A-Za-z]{1,3}$")
    hours_column: str | None = Field(default=None, alias="hoursColumn", pattern=r"^[A-Za-z]{1,3}$")
    description_column: str | None = Field(
        default=None, alias="descriptionColumn", pattern=r"^[A-Za-z]{1,3}$"
    )
    start_row: int | None = Field(default=None, alias="startRow", ge=1)

    @field_validator("period_cell")
    @classmethod
    def _check_period_cell(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        if not CELL_ADDRESS_RE.match(value.strip()):
            raise ValueError(f"Invalid period cell {value!r}")
        return value.strip().upper()

    def to_draft(self) -> LayoutDraft:
        draft = LayoutDraft(
            hours_per_day=self.hours_per_day,
            period_cell=self.period_cell,
            styling_disabled=self.disable_styling,
        )
        if self.day_numbers_range is not None:
            draft.day_number_range = self.day_numbers_range.to_range()
            if self.hours_range is not None:
                draft.hours_range = self.hours_range.to_range()
            if self.style_rows is not None:
                draft.style_rows = RowSpan(self.style_rows.start, self.style_rows.end)
        if draft.day_number_range is None:
            draft.hours_range = None
            draft.date_col = self.date_column.upper() if self.date_column else None
            draft.hours_col = self.hours_column.upper() if self.hours_column else None
            draft.description_col = (
                self.description_column.upper() if self.description_column else None
            )
            draft.start_row = self.start_row
        return draft


def parse_hint_response(text: str | None) -> LayoutDraft | None:
    """Extract a ``LayoutDraft`` from model output; ``None`` if unusable."""
    if not text:
        return None

    match = JSON_OBJECT_RE.search(text)
    if not match:
        logger.warning("hint_response_not_json")
        return None

    try:
        hint = LayoutHint.model_validate(json.loads(match.group(0)))
        draft = hint.to_draft()
    except (json.JSONDecodeError, ValidationError, ValueError) as e:
        logger.warning("hint_response_invalid", error=str(e))
        return None

    if draft.is_empty:
        return None
    return draft


class GeminiHintProvider:
    """Layout hints from Google Gemini."""

    def __init__(self, client: GeminiClient):
        self._client = client

    @staticmethod
    def build_user_prompt(
        prompt: str,
        working_days: list[str],
        client_name: str | None,
        month: str | None,
    ) -> str:
        return (
            f"Client: {client_name or 'Unknown'}\n"
            f"Month: {month or 'Unknown'}\n"
            f"Working days: {', '.join(working_days)}\n\n"
            f"User instructions:\n{prompt}"
        )

    async def suggest(
        self,
        prompt: str,
        working_days: list[str],
        client_name: str | None,
        month: str | None,
    ) -> LayoutDraft | None:
        response = await self._client.generate(
            HINT_SYSTEM_PROMPT,
            self.build_user_prompt(prompt, working_days, client_name, month),
        )
        return parse_hint_response(response.content)
