"""Month-level workflow: resolve days, edit overrides, generate documents."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import structlog

from smart_invoice.documents import snapshot_document
from smart_invoice.errors import MissingRateOrParameters
from smart_invoice.fill import (
    FillParameters,
    FillReport,
    SpreadsheetFillEngine,
    first_worksheet,
    load_template,
    workbook_to_bytes,
)
from smart_invoice.layout import CellLayoutResolver, ColumnMapping
from smart_invoice.records import (
    ClientProfile,
    Document,
    DocumentType,
    WorkRecord,
    invoice_file_name,
    next_document_number,
    timesheet_file_name,
    timesheet_number,
)
from smart_invoice.store import WorkRecordStore
from smart_invoice.workdays import DayStatusResolver, WorkRecordConfig

logger = structlog.get_logger(__name__)

TemplateSource = bytes | str | Path


@dataclass
class GenerationResult:
    """A generated document plus the file bytes and what the fill did."""

    document: Document
    content: bytes
    report: FillReport


class InvoiceWorkflow:
    """Ties day resolution, layout resolution, fill and storage together."""

    def __init__(
        self,
        store: WorkRecordStore,
        resolver: DayStatusResolver | None = None,
        layout_resolver: CellLayoutResolver | None = None,
        fill_engine: SpreadsheetFillEngine | None = None,
    ):
        self.store = store
        self.resolver = resolver or DayStatusResolver()
        self.layout_resolver = layout_resolver or CellLayoutResolver()
        self.fill_engine = fill_engine or SpreadsheetFillEngine()

    # -------------------------------------------------------------------------
    # Work records
    # -------------------------------------------------------------------------

    async def open_month(self, client: ClientProfile, month: str) -> WorkRecord:
        """Existing record for the month, or a freshly resolved and saved one."""
        existing = await self.store.get_work_record(client.id, month)
        if existing is not None:
            return existing

        config = client.default_config()
        resolution = await self.resolver.resolve(month, config)
        record = WorkRecord.from_resolution(client.id, resolution, config.normalized())
        logger.info(
            "work_record_created",
            client=client.id,
            month=month,
            working_days=record.total_working_days,
        )
        return await self.store.save_work_record(record)

    async def update_config(self, record: WorkRecord, config: WorkRecordConfig) -> WorkRecord:
        """Re-resolve the month under ``config`` and flag documents it invalidates."""
        config = config.normalized()
        resolution = await self.resolver.resolve(record.month, config)
        record.apply_resolution(resolution, config)
        record = await self.store.save_work_record(record)

        flagged = await self.store.mark_outdated(
            record.id, record.working_days, record.weekend_dates
        )
        logger.info(
            "work_record_updated",
            client=record.client_ref,
            month=record.month,
            working_days=record.total_working_days,
            outdated_documents=len(flagged),
        )
        return record

    async def toggle_day(self, record: WorkRecord, day: str) -> WorkRecord:
        config = await self.resolver.toggle(record.month, record.config, day)
        return await self.update_config(record, config)

    # -------------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------------

    async def _existing_document_id(
        self, client: ClientProfile, doc_type: DocumentType, number: str
    ) -> str | None:
        documents = await self.store.get_documents(client_ref=client.id, doc_type=doc_type)
        match = next((doc for doc in documents if doc.document_number == number), None)
        return match.id if match else None

    @staticmethod
    def _require_rate(client: ClientProfile) -> float:
        if not client.has_rate:
            raise MissingRateOrParameters(
                f"Client {client.name!r} has no daily rate", details={"client": client.id}
            )
        assert client.daily_rate is not None
        return client.daily_rate

    async def generate_timesheet(
        self,
        client: ClientProfile,
        record: WorkRecord,
        template: TemplateSource | None,
        prompt: str | None = None,
        column_mapping: ColumnMapping | None = None,
    ) -> GenerationResult:
        """Fill a timesheet template and store the resulting document.

        An explicit ``column_mapping`` wins over the client's saved mapping;
        instructions fall back to the client's saved prompt.
        """
        rate = self._require_rate(client)
        workbook = load_template(template)
        worksheet = first_worksheet(workbook)

        layout = await self.layout_resolver.resolve(
            prompt or client.timesheet_prompt,
            column_mapping or client.timesheet_mapping,
            working_days=list(record.working_days),
            client_name=client.name,
            month=record.month,
            hours_per_day=client.hours_per_day,
        )
        report = self.fill_engine.fill_timesheet(
            worksheet, record, layout, FillParameters(daily_rate=rate), client_name=client.name
        )
        content = workbook_to_bytes(workbook)

        number = timesheet_number(record.month)
        document = snapshot_document(
            record,
            DocumentType.TIMESHEET,
            number,
            rate,
            file_name=timesheet_file_name(client.name, record.month),
            file_data=content,
            document_id=await self._existing_document_id(client, DocumentType.TIMESHEET, number),
        )
        await self.store.save_document(document)
        logger.info("timesheet_generated", client=client.id, document_number=number)
        return GenerationResult(document=document, content=content, report=report)

    async def generate_invoice(
        self,
        client: ClientProfile,
        record: WorkRecord,
        template: TemplateSource | None,
        invoice_number: str | None = None,
    ) -> GenerationResult:
        """Fill an invoice template; the number defaults to the next free one."""
        rate = self._require_rate(client)
        number = (invoice_number or "").strip() or await self.next_invoice_number()
        workbook = load_template(template)
        worksheet = first_worksheet(workbook)

        report = self.fill_engine.fill_invoice(
            worksheet, record, client.invoice_mapping, FillParameters(daily_rate=rate), number
        )
        content = workbook_to_bytes(workbook)

        document = snapshot_document(
            record,
            DocumentType.INVOICE,
            number,
            rate,
            file_name=invoice_file_name(number, client.name, record.month),
            file_data=content,
            include_weekends=False,
            document_id=await self._existing_document_id(client, DocumentType.INVOICE, number),
        )
        await self.store.save_document(document)
        logger.info("invoice_generated", client=client.id, document_number=number)
        return GenerationResult(document=document, content=content, report=report)

    async def next_invoice_number(self) -> str:
        """Next invoice number across all clients."""
        invoices = await self.store.get_documents(doc_type=DocumentType.INVOICE)
        return next_document_number(doc.document_number for doc in invoices)

    async def mark_paid(self, document_id: str, paid: bool = True) -> Document:
        return await self.store.mark_paid(document_id, paid)
