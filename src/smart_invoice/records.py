"""Durable entities: work records, generated documents and client profiles."""

from __future__ import annotations

import calendar
import re
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from smart_invoice.layout.types import ColumnMapping, InvoiceCellMapping
from smart_invoice.workdays import MonthResolution, WorkRecordConfig, parse_month

LEADING_NUMBER_RE = re.compile(r"^\s*(\d+)")


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DocumentType(str, Enum):
    INVOICE = "invoice"
    TIMESHEET = "timesheet"


# =============================================================================
# WORK RECORD
# =============================================================================


@dataclass
class WorkRecord:
    """Canonical working days of one client for one month.

    ``working_days`` is the only input to amounts; ``config`` is kept so the
    month can be edited and re-resolved later.
    """

    client_ref: str
    month: str
    working_days: tuple[str, ...] = ()
    weekend_dates: tuple[str, ...] = ()
    holiday_names: dict[str, str] = field(default_factory=dict)
    config: WorkRecordConfig = field(default_factory=WorkRecordConfig)
    notes: str | None = None
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        parse_month(self.month)
        self.working_days = tuple(sorted(self.working_days))
        self.weekend_dates = tuple(sorted(self.weekend_dates))

    @property
    def total_working_days(self) -> int:
        return len(self.working_days)

    @classmethod
    def from_resolution(
        cls,
        client_ref: str,
        resolution: MonthResolution,
        config: WorkRecordConfig,
        notes: str | None = None,
    ) -> WorkRecord:
        return cls(
            client_ref=client_ref,
            month=resolution.month,
            working_days=resolution.working_days,
            weekend_dates=resolution.weekend_dates,
            holiday_names=dict(resolution.holiday_names),
            config=config,
            notes=notes,
        )

    def apply_resolution(self, resolution: MonthResolution, config: WorkRecordConfig) -> None:
        """Replace the derived fields with a fresh resolution of the same month."""
        if resolution.month != self.month:
            raise ValueError(
                f"Resolution for {resolution.month} cannot update record for {self.month}"
            )
        self.working_days = tuple(sorted(resolution.working_days))
        self.weekend_dates = tuple(sorted(resolution.weekend_dates))
        self.holiday_names = dict(resolution.holiday_names)
        self.config = config
        self.updated_at = _utcnow()

    def amount(self, daily_rate: float) -> float:
        return self.total_working_days * daily_rate

    def is_working(self, day: str) -> bool:
        return day in self.working_days


# =============================================================================
# GENERATED DOCUMENTS
# =============================================================================


@dataclass(frozen=True)
class Document:
    """Snapshot of what was written when a document was generated.

    Only the outdated and paid flags ever change, through the ``flag_outdated``
    and ``mark_paid`` copies. Regeneration stores a fresh snapshot under the
    same id.
    """

    work_record_ref: str
    client_ref: str
    type: DocumentType
    document_number: str
    month: str
    working_days_array: tuple[str, ...]
    rate: float
    total_amount: float
    weekend_dates_array: tuple[str, ...] | None = None
    file_name: str | None = None
    file_data: bytes | None = field(default=None, repr=False)
    id: str = field(default_factory=_new_id)
    generated_at: datetime = field(default_factory=_utcnow)
    is_paid: bool = False
    paid_at: datetime | None = None
    is_outdated: bool = False
    outdated_at: datetime | None = None

    @property
    def working_days_count(self) -> int:
        return len(self.working_days_array)

    def flag_outdated(self, at: datetime | None = None) -> Document:
        return replace(self, is_outdated=True, outdated_at=at or _utcnow())

    def mark_paid(self, paid: bool = True, at: datetime | None = None) -> Document:
        if not paid:
            return replace(self, is_paid=False, paid_at=None)
        return replace(self, is_paid=True, paid_at=at or _utcnow())


# =============================================================================
# CLIENT PROFILES
# =============================================================================


@dataclass(frozen=True)
class ClientProfile:
    """Billing parameters and template hints for one client."""

    id: str
    name: str
    daily_rate: float | None = None
    currency: str = "EUR"
    use_holiday_source: bool = False
    hours_per_day: float = 8.0
    issuer_name: str | None = None
    invoice_mapping: InvoiceCellMapping | None = None
    timesheet_mapping: ColumnMapping | None = None
    timesheet_prompt: str | None = None

    @property
    def has_rate(self) -> bool:
        return self.daily_rate is not None and self.daily_rate > 0

    def default_config(self) -> WorkRecordConfig:
        return WorkRecordConfig(use_holiday_source=self.use_holiday_source)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ClientProfile:
        invoice_mapping = data.get("invoice_mapping")
        timesheet_mapping = data.get("timesheet_mapping")
        rate = data.get("daily_rate")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            daily_rate=float(rate) if rate is not None else None,
            currency=str(data.get("currency") or "EUR"),
            use_holiday_source=bool(data.get("use_holiday_source", False)),
            hours_per_day=float(data.get("hours_per_day") or 8.0),
            issuer_name=data.get("issuer_name"),
            invoice_mapping=(
                InvoiceCellMapping.from_dict(invoice_mapping) if invoice_mapping else None
            ),
            timesheet_mapping=(
                ColumnMapping.from_dict(timesheet_mapping) if timesheet_mapping else None
            ),
            timesheet_prompt=data.get("timesheet_prompt"),
        )


# =============================================================================
# NAMING
# =============================================================================


def safe_client_name(name: str | None) -> str:
    """``Acme Corp`` -> ``Acme_Corp``."""
    return re.sub(r"\s+", "_", (name or "").strip()) or "Client"


def _month_tag(month: str) -> str:
    year, month_number = parse_month(month)
    return f"{calendar.month_name[month_number].upper()}-{year}"


def timesheet_file_name(client_name: str | None, month: str) -> str:
    return f"Timesheet-{safe_client_name(client_name)}-{_month_tag(month)}.xlsx"


def invoice_file_name(invoice_number: str, client_name: str | None, month: str) -> str:
    return f"{invoice_number}-{safe_client_name(client_name)}-Invoice-{_month_tag(month)}.xlsx"


def timesheet_number(month: str) -> str:
    year, month_number = parse_month(month)
    return f"TS-{year:04d}-{month_number:02d}"


def next_document_number(existing: Iterable[str]) -> str:
    """Highest leading number among ``existing`` plus one, zero-padded to 2 digits.

    Numbers without a leading integer are ignored.
    """
    numbers = []
    for number in existing:
        match = LEADING_NUMBER_RE.match(number or "")
        if match and int(match.group(1)) > 0:
            numbers.append(int(match.group(1)))
    return str(max(numbers, default=0) + 1).zfill(2)
