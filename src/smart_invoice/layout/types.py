"""Cell layout types describing where a template expects its values."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from openpyxl.utils.cell import column_index_from_string, get_column_letter

STANDARD_PERIOD_CELL = "C11"


class LayoutKind(str, Enum):
    """Which way the days of a month run through the template."""

    HORIZONTAL = "horizontal"  # one column per day
    VERTICAL = "vertical"      # one row per day
    UNRESOLVED = "unresolved"


class LayoutSource(str, Enum):
    MAPPING = "mapping"
    HINT = "hint"
    LOCAL = "local"
    NONE = "none"


@dataclass(frozen=True)
class CellRange:
    """A run of cells along one row, e.g. C13:AG13."""

    row: int
    start_col: str
    end_col: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "start_col", self.start_col.upper())
        object.__setattr__(self, "end_col", self.end_col.upper())
        if self.row < 1:
            raise ValueError(f"Invalid row {self.row}")
        if self.start_index > self.end_index:
            raise ValueError(f"Range {self.start_col}-{self.end_col} runs backwards")

    @property
    def start_index(self) -> int:
        return column_index_from_string(self.start_col)

    @property
    def end_index(self) -> int:
        return column_index_from_string(self.end_col)

    @property
    def width(self) -> int:
        return self.end_index - self.start_index + 1

    def columns(self) -> list[str]:
        return [get_column_letter(idx) for idx in range(self.start_index, self.end_index + 1)]

    def cells(self) -> list[str]:
        return [f"{col}{self.row}" for col in self.columns()]

    def aligned_to(self, other: CellRange) -> CellRange:
        """Same row and width, starting at ``other``'s first column."""
        if self.start_col == other.start_col:
            return self
        end_index = other.start_index + self.width - 1
        return CellRange(self.row, other.start_col, get_column_letter(end_index))

    def __str__(self) -> str:
        return f"{self.start_col}{self.row}:{self.end_col}{self.row}"


@dataclass(frozen=True)
class RowSpan:
    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start > self.end:
            object.__setattr__(self, "start", self.end)
            object.__setattr__(self, "end", self.start)

    def rows(self) -> range:
        return range(self.start, self.end + 1)


@dataclass(frozen=True)
class ColumnMapping:
    """Vertical layout: one row per day starting at ``start_row``."""

    date_col: str = "A"
    hours_col: str = "B"
    description_col: str | None = None
    start_row: int = 2
    day_off_markers: dict[str, str] = field(default_factory=dict)
    sync_dates: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "date_col", self.date_col.upper())
        object.__setattr__(self, "hours_col", self.hours_col.upper())
        if self.description_col:
            object.__setattr__(self, "description_col", self.description_col.upper())
        object.__setattr__(
            self,
            "day_off_markers",
            {col.upper(): text for col, text in self.day_off_markers.items()},
        )

    def marker_columns(self) -> list[str]:
        return list(self.day_off_markers)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ColumnMapping:
        return cls(
            date_col=str(data.get("date_column") or data.get("date_col") or "A"),
            hours_col=str(data.get("hours_column") or data.get("hours_col") or "B"),
            description_col=data.get("description_column") or data.get("description_col"),
            start_row=int(data.get("start_row") or 2),
            day_off_markers=dict(data.get("day_off_markers") or {}),
            sync_dates=bool(data.get("sync_dates", True)),
        )


@dataclass(frozen=True)
class InvoiceCellMapping:
    """Cells of an invoice template; empty strings mean "not mapped"."""

    date: str = ""
    invoice_number: str = ""
    description: str = ""
    days_worked: str = ""
    daily_rate: str = ""
    total_amount: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InvoiceCellMapping:
        return cls(**{name: str(data.get(name) or "") for name in cls.__dataclass_fields__})


@dataclass(frozen=True)
class CellLayout:
    """Resolved template layout.

    A resolved layout carries either ``day_number_range`` + ``hours_range``
    (horizontal) or ``column_mapping`` (vertical), never both. A layout with
    neither is unresolved and cannot be used to fill a template.
    """

    hours_per_day: float = 8.0
    period_cell: str | None = None
    day_number_range: CellRange | None = None
    hours_range: CellRange | None = None
    style_rows: RowSpan | None = None
    column_mapping: ColumnMapping | None = None
    styling_disabled: bool = False
    source: LayoutSource = LayoutSource.NONE

    def __post_init__(self) -> None:
        horizontal = self.day_number_range is not None or self.hours_range is not None
        if horizontal and self.column_mapping is not None:
            raise ValueError("A layout cannot be both horizontal and vertical")
        if horizontal and (self.day_number_range is None or self.hours_range is None):
            raise ValueError("Horizontal layouts need both a day-number and an hours range")

    @property
    def kind(self) -> LayoutKind:
        if self.day_number_range is not None:
            return LayoutKind.HORIZONTAL
        if self.column_mapping is not None:
            return LayoutKind.VERTICAL
        return LayoutKind.UNRESOLVED

    @property
    def is_resolved(self) -> bool:
        return self.kind is not LayoutKind.UNRESOLVED

    @classmethod
    def unresolved(cls, hours_per_day: float = 8.0) -> CellLayout:
        return cls(hours_per_day=hours_per_day)

    @classmethod
    def from_mapping(
        cls,
        mapping: ColumnMapping,
        hours_per_day: float = 8.0,
        styling_disabled: bool = False,
    ) -> CellLayout:
        return cls(
            hours_per_day=hours_per_day,
            column_mapping=mapping,
            styling_disabled=styling_disabled,
            source=LayoutSource.MAPPING,
        )

    def with_styling_disabled(self, disabled: bool = True) -> CellLayout:
        return replace(self, styling_disabled=disabled)


@dataclass
class LayoutDraft:
    """Partially parsed layout, filled in field by field by a parser."""

    hours_per_day: float | None = None
    period_cell: str | None = None
    day_number_range: CellRange | None = None
    hours_range: CellRange | None = None
    style_rows: RowSpan | None = None
    date_col: str | None = None
    hours_col: str | None = None
    description_col: str | None = None
    start_row: int | None = None
    day_off_markers: dict[str, str] = field(default_factory=dict)
    styling_disabled: bool = False

    @property
    def has_horizontal_signal(self) -> bool:
        return self.day_number_range is not None

    @property
    def has_vertical_signal(self) -> bool:
        return any(
            value is not None
            for value in (self.date_col, self.hours_col, self.description_col, self.start_row)
        )

    @property
    def is_empty(self) -> bool:
        return not (self.has_horizontal_signal or self.has_vertical_signal)

    def build(self, source: LayoutSource, default_hours_per_day: float = 8.0) -> CellLayout:
        """Turn the draft into a ``CellLayout``, applying the layout defaults."""
        hours_per_day = self.hours_per_day or default_hours_per_day

        if self.day_number_range is not None:
            days = self.day_number_range
            hours = self.hours_range or CellRange(days.row + 1, days.start_col, days.end_col)
            return CellLayout(
                hours_per_day=hours_per_day,
                period_cell=(self.period_cell or STANDARD_PERIOD_CELL).upper(),
                day_number_range=days,
                hours_range=hours,
                style_rows=self.style_rows or RowSpan(hours.row, hours.row),
                styling_disabled=self.styling_disabled,
                source=source,
            )

        if self.has_vertical_signal:
            markers = dict(self.day_off_markers)
            mapping = ColumnMapping(
                date_col=self.date_col or "A",
                hours_col=self.hours_col or "B",
                description_col=self.description_col,
                start_row=self.start_row or 2,
                day_off_markers=markers,
            )
            return CellLayout(
                hours_per_day=hours_per_day,
                period_cell=self.period_cell.upper() if self.period_cell else None,
                style_rows=self.style_rows,
                column_mapping=mapping,
                styling_disabled=self.styling_disabled,
                source=source,
            )

        return CellLayout.unresolved(hours_per_day)
