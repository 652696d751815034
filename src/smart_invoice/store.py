"""Persistence boundary for work records and documents."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

import structlog

from smart_invoice.documents import OutdatedDetector
from smart_invoice.errors import RecordNotFound
from smart_invoice.records import Document, DocumentType, WorkRecord

logger = structlog.get_logger(__name__)


class WorkRecordStore(Protocol):
    """Async storage used by the workflow; the format is up to the backend."""

    async def get_work_record(self, client_ref: str, month: str) -> WorkRecord | None: ...

    async def save_work_record(self, record: WorkRecord) -> WorkRecord: ...

    async def get_documents(
        self,
        client_ref: str | None = None,
        work_record_ref: str | None = None,
        doc_type: DocumentType | None = None,
    ) -> list[Document]: ...

    async def save_document(self, document: Document) -> Document: ...

    async def mark_outdated(
        self,
        work_record_id: str,
        working_days: Sequence[str],
        weekend_dates: Sequence[str] | None = None,
    ) -> list[Document]: ...

    async def mark_paid(self, document_id: str, paid: bool = True) -> Document: ...


class InMemoryStore:
    """Dict-backed store; one work record per (client, month)."""

    def __init__(self, detector: OutdatedDetector | None = None):
        self._records: dict[tuple[str, str], WorkRecord] = {}
        self._documents: dict[str, Document] = {}
        self._detector = detector or OutdatedDetector()

    async def get_work_record(self, client_ref: str, month: str) -> WorkRecord | None:
        return self._records.get((client_ref, month))

    async def save_work_record(self, record: WorkRecord) -> WorkRecord:
        key = (record.client_ref, record.month)
        existing = self._records.get(key)
        if existing is not None and existing.id != record.id:
            # keep the first record's identity for this client/month
            record.id = existing.id
            record.created_at = existing.created_at
        self._records[key] = record
        logger.debug("work_record_saved", client=record.client_ref, month=record.month)
        return record

    async def get_documents(
        self,
        client_ref: str | None = None,
        work_record_ref: str | None = None,
        doc_type: DocumentType | None = None,
    ) -> list[Document]:
        documents = [
            doc
            for doc in self._documents.values()
            if (client_ref is None or doc.client_ref == client_ref)
            and (work_record_ref is None or doc.work_record_ref == work_record_ref)
            and (doc_type is None or doc.type is doc_type)
        ]
        return sorted(documents, key=lambda doc: doc.generated_at)

    async def get_document(self, document_id: str) -> Document:
        try:
            return self._documents[document_id]
        except KeyError:
            raise RecordNotFound(f"Unknown document {document_id!r}") from None

    async def save_document(self, document: Document) -> Document:
        self._documents[document.id] = document
        logger.debug("document_saved", document_number=document.document_number)
        return document

    async def mark_outdated(
        self,
        work_record_id: str,
        working_days: Sequence[str],
        weekend_dates: Sequence[str] | None = None,
    ) -> list[Document]:
        documents = await self.get_documents(work_record_ref=work_record_id)
        flagged = self._detector.mark_outdated(documents, working_days, weekend_dates)
        for document in flagged:
            self._documents[document.id] = document
        return flagged

    async def mark_paid(self, document_id: str, paid: bool = True) -> Document:
        document = (await self.get_document(document_id)).mark_paid(paid)
        self._documents[document_id] = document
        logger.info("document_paid", document_number=document.document_number, paid=paid)
        return document
