"""Find database records that still lack a QR code."""

from __future__ import annotations

import logging

from qrsync.config import NotionConfig
from qrsync.errors import DataError
from qrsync.integrations.notion_client import NotionHttpClient
from qrsync.integrations.notion_records import page_to_reference, qr_property_is_empty_filter
from qrsync.logging import get_logger
from qrsync.logging_events import log_event
from qrsync.models import PendingBatch, RecordReference, RejectedRecord

logger = get_logger(__name__)


class BatchCollector:
    def __init__(self, client: NotionHttpClient, config: NotionConfig) -> None:
        self._client = client
        self._config = config

    async def collect_pending(self) -> PendingBatch:
        """Query every page whose QR property is empty.

        Pages with unusable identifiers are reported in ``rejected`` and do
        not abort the collection. Transport failures propagate.
        """

        references: list[RecordReference] = []
        rejected: list[RejectedRecord] = []
        query_filter = qr_property_is_empty_filter(self._config.qr_property)

        async for page in self._client.iter_query_results(
            self._config.database_id, filter=query_filter
        ):
            try:
                references.append(page_to_reference(page, self._config))
            except DataError as exc:
                record_id = exc.record_id or str(page.get("id") or "unknown")
                rejected.append(RejectedRecord(record_id=record_id, reason=str(exc)))
                log_event(
                    logger,
                    "batch.record_skipped",
                    level=logging.WARNING,
                    component="pipeline.collector",
                    record_id=record_id,
                    reason=str(exc),
                )

        return PendingBatch(references=tuple(references), rejected=tuple(rejected))


__all__ = ["BatchCollector"]
