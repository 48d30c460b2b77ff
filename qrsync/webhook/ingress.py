"""Verification, filtering and delegation of inbound Notion webhook events."""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from typing import Mapping

from fastapi import status
from pydantic import ValidationError

from qrsync.config import NotionConfig, WebhookConfig
from qrsync.errors import (
    AppError,
    AuthenticityFailure,
    DataError,
    InternalServerError,
    MalformedEventError,
    MethodNotAllowedError,
)
from qrsync.integrations.notion_client import NotionClientError, NotionHttpClient
from qrsync.integrations.notion_records import page_to_reference
from qrsync.logging import get_logger
from qrsync.logging_events import log_event
from qrsync.models import InboundEvent, RecordReference
from qrsync.pipeline.orchestrator import UploadOrchestrator
from qrsync.schemas.webhook import WebhookPayload

from .signature import verify_signature

logger = get_logger(__name__)

PAGE_CREATED_EVENT = "page.created"


@dataclass(slots=True, frozen=True)
class WebhookReply:
    """Transport independent answer to one webhook delivery."""

    status_code: int
    body: str | None = None
    error: AppError | None = None


def _header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, candidate in headers.items():
        if key.lower() == lowered:
            return candidate
    return None


def _normalise_notion_id(value: str) -> str:
    return value.replace("-", "").strip().lower()


def parse_event(raw_body: bytes, signature_header: str | None) -> InboundEvent:
    """Decode the raw request body into an :class:`InboundEvent`."""

    try:
        decoded = json.loads(raw_body)
    except (UnicodeDecodeError, ValueError) as exc:
        raise MalformedEventError("Request body is not valid JSON.") from exc
    if not isinstance(decoded, dict):
        raise MalformedEventError("Request body must be a JSON object.")
    try:
        payload = WebhookPayload.model_validate(decoded)
    except ValidationError as exc:
        raise MalformedEventError("Request body does not match the event schema.") from exc

    return InboundEvent(
        raw_body=raw_body,
        signature_header=signature_header,
        event_type=payload.type,
        entity_id=payload.entity_id,
        parent_id=payload.parent_id,
        verification_token=payload.verification_token,
    )


class WebhookIngress:
    """Turn inbound deliveries into upload pipeline runs.

    The checks run in a fixed order and the first one that applies decides
    the reply: method, body shape, verification handshake, signature, event
    type, record lookup, and finally the upload itself.
    """

    def __init__(
        self,
        client: NotionHttpClient,
        orchestrator: UploadOrchestrator,
        *,
        notion: NotionConfig,
        webhook: WebhookConfig,
    ) -> None:
        self._client = client
        self._orchestrator = orchestrator
        self._notion = notion
        self._webhook = webhook

    async def handle(
        self, method: str, raw_body: bytes, headers: Mapping[str, str]
    ) -> WebhookReply:
        if method.upper() != "POST":
            return WebhookReply(status.HTTP_405_METHOD_NOT_ALLOWED, error=MethodNotAllowedError())

        signature = _header(headers, self._webhook.signature_header)
        try:
            event = parse_event(raw_body, signature)
        except MalformedEventError as exc:
            log_event(
                logger,
                "webhook.rejected",
                level=logging.WARNING,
                component="webhook.ingress",
                reason="malformed",
            )
            return WebhookReply(exc.http_status, error=exc)

        if event.verification_token:
            log_event(logger, "webhook.handshake", component="webhook.ingress", status="ok")
            return WebhookReply(status.HTTP_200_OK, body=event.verification_token)

        if not self._webhook.verification_token:
            log_event(
                logger,
                "webhook.misconfigured",
                level=logging.ERROR,
                component="webhook.ingress",
                status="error",
                reason="verification token is not configured",
            )
            return WebhookReply(status.HTTP_401_UNAUTHORIZED, error=AuthenticityFailure())

        if not verify_signature(self._webhook.verification_token, raw_body, signature):
            log_event(
                logger,
                "webhook.rejected",
                level=logging.WARNING,
                component="webhook.ingress",
                reason="signature_mismatch",
                signature_present=signature is not None,
            )
            return WebhookReply(status.HTTP_401_UNAUTHORIZED, error=AuthenticityFailure())

        if not self._is_relevant(event):
            log_event(
                logger,
                "webhook.ignored",
                component="webhook.ingress",
                event_type=event.event_type,
                parent_id=event.parent_id,
            )
            return WebhookReply(status.HTTP_200_OK)

        if not event.entity_id:
            log_event(
                logger,
                "webhook.rejected",
                level=logging.WARNING,
                component="webhook.ingress",
                reason="missing_entity_id",
            )
            error = MalformedEventError("Event does not identify a page.")
            return WebhookReply(error.http_status, error=error)

        try:
            ref = await self._resolve(event.entity_id)
        except (NotionClientError, DataError) as exc:
            log_event(
                logger,
                "webhook.failed",
                level=logging.ERROR,
                component="webhook.ingress",
                stage="resolution",
                record_id=event.entity_id,
                error=str(exc),
            )
            return WebhookReply(status.HTTP_500_INTERNAL_SERVER_ERROR, error=InternalServerError())

        outcome = await self._orchestrator.process(ref)
        if not outcome.ok:
            log_event(
                logger,
                "webhook.failed",
                level=logging.ERROR,
                component="webhook.ingress",
                stage="upload",
                record_id=ref.record_id,
                failure=outcome.failure.value if outcome.failure else None,
            )
            return WebhookReply(status.HTTP_500_INTERNAL_SERVER_ERROR, error=InternalServerError())

        log_event(
            logger,
            "webhook.processed",
            component="webhook.ingress",
            status="ok",
            record_id=ref.record_id,
            file_id=outcome.bound_file_id,
        )
        return WebhookReply(status.HTTP_200_OK)

    def _is_relevant(self, event: InboundEvent) -> bool:
        if event.event_type != PAGE_CREATED_EVENT:
            return False
        expected_parent = self._notion.database_id
        if expected_parent and event.parent_id:
            return _normalise_notion_id(event.parent_id) == _normalise_notion_id(expected_parent)
        return True

    async def _resolve(self, page_id: str) -> RecordReference:
        page = await self._client.retrieve_page(page_id)
        return page_to_reference(page, self._notion)


__all__ = ["PAGE_CREATED_EVENT", "WebhookIngress", "WebhookReply", "parse_event"]
