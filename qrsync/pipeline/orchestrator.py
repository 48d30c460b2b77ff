"""Reserve, encode, transmit and bind a QR code for one record."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, TypeVar

from qrsync.encoder import ARTIFACT_CONTENT_TYPE, encode_reference
from qrsync.errors import FailureKind, ProcessingError
from qrsync.integrations.notion_client import NotionHttpClient
from qrsync.integrations.notion_records import qr_property_update
from qrsync.logging import get_logger
from qrsync.logging_events import log_event
from qrsync.models import OutcomeStatus, ProcessingOutcome, RecordReference, UploadSession

logger = get_logger(__name__)

T = TypeVar("T")

ArtifactEncoder = Callable[[RecordReference], bytes]


class UploadOrchestrator:
    """Drive the upload sequence for a single record.

    The steps run strictly in order and each remote step is retried by the
    client. A failure stops the record at that step; earlier remote effects
    (an upload slot, an unbound file) are left in place and logged.
    """

    def __init__(
        self,
        client: NotionHttpClient,
        *,
        qr_property: str,
        encoder: ArtifactEncoder = encode_reference,
    ) -> None:
        self._client = client
        self._qr_property = qr_property
        self._encoder = encoder

    async def process(self, ref: RecordReference) -> ProcessingOutcome:
        session = UploadSession(record_id=ref.record_id)
        filename = ref.artifact_filename
        try:
            session.upload_slot_id = await _remote_step(
                FailureKind.SLOT_RESERVATION_FAILED,
                self._client.create_file_upload(
                    filename=filename,
                    content_type=ARTIFACT_CONTENT_TYPE,
                ),
            )
            session.artifact_bytes = self._encode(ref)
            session.bound_file_id = await _remote_step(
                FailureKind.TRANSMISSION_FAILED,
                self._client.send_file_upload(
                    session.upload_slot_id,
                    filename=filename,
                    content=session.artifact_bytes,
                    content_type=ARTIFACT_CONTENT_TYPE,
                ),
            )
            await _remote_step(
                FailureKind.BINDING_FAILED,
                self._client.update_page_properties(
                    ref.record_id,
                    qr_property_update(self._qr_property, session.bound_file_id),
                ),
            )
        except ProcessingError as exc:
            return self._failed(ref, session, exc)

        log_event(
            logger,
            "upload.completed",
            component="pipeline.orchestrator",
            status="ok",
            record_id=ref.record_id,
            external_key=ref.external_key,
            upload_slot_id=session.upload_slot_id,
            file_id=session.bound_file_id,
        )
        return ProcessingOutcome(
            record_id=ref.record_id,
            external_key=ref.external_key,
            status=OutcomeStatus.SUCCEEDED,
            upload_slot_id=session.upload_slot_id,
            bound_file_id=session.bound_file_id,
        )

    def _encode(self, ref: RecordReference) -> bytes:
        try:
            return self._encoder(ref)
        except Exception as exc:
            raise ProcessingError(FailureKind.ENCODING_FAILED, exc) from exc

    def _failed(
        self, ref: RecordReference, session: UploadSession, exc: ProcessingError
    ) -> ProcessingOutcome:
        cause = exc.cause
        log_event(
            logger,
            "upload.failed",
            level=logging.ERROR,
            component="pipeline.orchestrator",
            status="error",
            record_id=ref.record_id,
            external_key=ref.external_key,
            failure=exc.failure.value,
            error=str(cause),
            status_code=getattr(cause, "status_code", None),
        )
        if session.upload_slot_id is not None:
            log_event(
                logger,
                "upload.orphaned",
                level=logging.WARNING,
                component="pipeline.orchestrator",
                record_id=ref.record_id,
                upload_slot_id=session.upload_slot_id,
                file_id=session.bound_file_id,
                failure=exc.failure.value,
            )
        return ProcessingOutcome(
            record_id=ref.record_id,
            external_key=ref.external_key,
            status=OutcomeStatus.FAILED,
            failure=exc.failure,
            upload_slot_id=session.upload_slot_id,
            bound_file_id=session.bound_file_id,
            error=cause,
        )


async def _remote_step(failure: FailureKind, call: Awaitable[T]) -> T:
    try:
        return await call
    except Exception as exc:
        raise ProcessingError(failure, exc) from exc


__all__ = ["ArtifactEncoder", "UploadOrchestrator"]
