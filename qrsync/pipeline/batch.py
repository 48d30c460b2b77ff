"""Batch sweep: attach QR codes to every record that is missing one."""

from __future__ import annotations

import asyncio
import logging
import time

from qrsync.logging import get_logger
from qrsync.logging_events import log_event
from qrsync.models import BatchSummary, OutcomeStatus, ProcessingOutcome, RecordReference

from .collector import BatchCollector
from .orchestrator import UploadOrchestrator

logger = get_logger(__name__)


async def run_batch(collector: BatchCollector, orchestrator: UploadOrchestrator) -> BatchSummary:
    """Collect pending records and process them concurrently.

    Concurrency is bounded only by the rate budget shared by the client.
    """

    started = time.monotonic()
    pending = await collector.collect_pending()
    log_event(
        logger,
        "batch.started",
        component="pipeline.batch",
        collected=len(pending.references),
        skipped=len(pending.rejected),
    )

    results = await asyncio.gather(
        *(orchestrator.process(ref) for ref in pending.references),
        return_exceptions=True,
    )
    outcomes = tuple(
        _as_outcome(ref, result) for ref, result in zip(pending.references, results)
    )
    succeeded = sum(1 for outcome in outcomes if outcome.status is OutcomeStatus.SUCCEEDED)
    summary = BatchSummary(
        collected=len(pending.references),
        skipped=len(pending.rejected),
        succeeded=succeeded,
        failed=len(outcomes) - succeeded,
        outcomes=outcomes,
        rejected=pending.rejected,
    )

    log_event(
        logger,
        "batch.completed",
        component="pipeline.batch",
        status="ok" if summary.ok else "partial",
        collected=summary.collected,
        skipped=summary.skipped,
        succeeded=summary.succeeded,
        failed=summary.failed,
        duration_ms=int((time.monotonic() - started) * 1000),
    )
    return summary


def _as_outcome(
    ref: RecordReference, result: ProcessingOutcome | BaseException
) -> ProcessingOutcome:
    if isinstance(result, ProcessingOutcome):
        return result
    if not isinstance(result, Exception):
        raise result
    log_event(
        logger,
        "upload.failed",
        level=logging.ERROR,
        component="pipeline.batch",
        status="error",
        record_id=ref.record_id,
        external_key=ref.external_key,
        error=repr(result),
    )
    return ProcessingOutcome(
        record_id=ref.record_id,
        external_key=ref.external_key,
        status=OutcomeStatus.FAILED,
        error=result,
    )


__all__ = ["run_batch"]
