"""Data models shared by the upload pipeline and the webhook ingress."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from qrsync.errors import DataError, FailureKind


@dataclass(slots=True, frozen=True)
class RecordReference:
    """Identity of one Notion page that needs a QR code.

    ``record_id`` addresses the page in API calls, ``external_key`` is the
    human facing identifier (``PREFIX-NUMBER``) and ``stable_uuid`` is the
    immutable identifier derived by a formula property.
    """

    record_id: str
    external_key: str
    stable_uuid: str

    def __post_init__(self) -> None:
        for name in ("record_id", "external_key", "stable_uuid"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise DataError(
                    f"record reference requires a non-empty {name}",
                    record_id=self.record_id if isinstance(self.record_id, str) else None,
                )

    @property
    def artifact_filename(self) -> str:
        return f"{self.external_key}.png"


@dataclass(slots=True)
class UploadSession:
    """Transient state for a single record while it moves through the pipeline."""

    record_id: str
    upload_slot_id: str | None = None
    artifact_bytes: bytes | None = None
    bound_file_id: str | None = None


class OutcomeStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class ProcessingOutcome:
    """Terminal result of processing one record."""

    record_id: str
    external_key: str
    status: OutcomeStatus
    failure: FailureKind | None = None
    upload_slot_id: str | None = None
    bound_file_id: str | None = None
    error: BaseException | None = field(default=None, compare=False)

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.SUCCEEDED


@dataclass(slots=True, frozen=True)
class RejectedRecord:
    """A record skipped by the collector because its identifiers are unusable."""

    record_id: str
    reason: str


@dataclass(slots=True, frozen=True)
class PendingBatch:
    references: tuple[RecordReference, ...]
    rejected: tuple[RejectedRecord, ...] = ()


@dataclass(slots=True, frozen=True)
class BatchSummary:
    collected: int
    skipped: int
    succeeded: int
    failed: int
    outcomes: tuple[ProcessingOutcome, ...]
    rejected: tuple[RejectedRecord, ...]

    @property
    def ok(self) -> bool:
        return self.failed == 0


@dataclass(slots=True, frozen=True)
class InboundEvent:
    """A webhook delivery after the body has been parsed."""

    raw_body: bytes
    signature_header: str | None
    event_type: str | None
    entity_id: str | None
    parent_id: str | None = None
    verification_token: str | None = None


__all__ = [
    "BatchSummary",
    "InboundEvent",
    "OutcomeStatus",
    "PendingBatch",
    "ProcessingOutcome",
    "RecordReference",
    "RejectedRecord",
    "UploadSession",
]
