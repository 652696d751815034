"""Document snapshots and outdated detection."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime

import structlog

from smart_invoice.records import Document, DocumentType, WorkRecord

logger = structlog.get_logger(__name__)


def snapshot_document(
    record: WorkRecord,
    doc_type: DocumentType,
    document_number: str,
    rate: float,
    *,
    file_name: str | None = None,
    file_data: bytes | None = None,
    include_weekends: bool = True,
    document_id: str | None = None,
) -> Document:
    """Freeze the record's working days into a new ``Document``.

    Passing ``document_id`` replaces an earlier document (regeneration); the
    new snapshot is never outdated.
    """
    extra = {"id": document_id} if document_id else {}
    return Document(
        work_record_ref=record.id,
        client_ref=record.client_ref,
        type=doc_type,
        document_number=document_number,
        month=record.month,
        working_days_array=tuple(record.working_days),
        weekend_dates_array=tuple(record.weekend_dates) if include_weekends else None,
        rate=rate,
        total_amount=record.amount(rate),
        file_name=file_name,
        file_data=file_data,
        **extra,
    )


class OutdatedDetector:
    """Compares stored document snapshots with a work record's current days."""

    @staticmethod
    def is_stale(
        document: Document,
        working_days: Sequence[str],
        weekend_dates: Sequence[str] | None = None,
    ) -> bool:
        stored = sorted(document.working_days_array)
        if not stored:
            # snapshots without days predate day tracking
            return True
        if stored != sorted(working_days):
            return True
        if document.weekend_dates_array is not None and weekend_dates is not None:
            return sorted(document.weekend_dates_array) != sorted(weekend_dates)
        return False

    def mark_outdated(
        self,
        documents: Iterable[Document],
        working_days: Sequence[str],
        weekend_dates: Sequence[str] | None = None,
        at: datetime | None = None,
    ) -> list[Document]:
        """Return flagged copies of every not-yet-outdated stale document."""
        flagged = []
        for document in documents:
            if document.is_outdated:
                continue
            if self.is_stale(document, working_days, weekend_dates):
                flagged.append(document.flag_outdated(at))

        if flagged:
            logger.info(
                "documents_outdated",
                count=len(flagged),
                documents=[doc.document_number for doc in flagged],
            )
        return flagged
