from __future__ import annotations

import pytest

from qrsync.errors import DataError, FailureKind
from qrsync.models import (
    BatchSummary,
    OutcomeStatus,
    ProcessingOutcome,
    RecordReference,
)


def test_reference_builds_artifact_filename_from_external_key() -> None:
    ref = RecordReference(record_id="page-1", external_key="ITEM-12", stable_uuid="uuid-1")

    assert ref.artifact_filename == "ITEM-12.png"


@pytest.mark.parametrize("field_name", ["record_id", "external_key", "stable_uuid"])
def test_reference_rejects_blank_fields(field_name: str) -> None:
    values = {"record_id": "page-1", "external_key": "ITEM-1", "stable_uuid": "uuid-1"}
    values[field_name] = "  "

    with pytest.raises(DataError):
        RecordReference(**values)


def test_summary_is_ok_only_without_failures() -> None:
    failed = ProcessingOutcome(
        record_id="page-1",
        external_key="ITEM-1",
        status=OutcomeStatus.FAILED,
        failure=FailureKind.BINDING_FAILED,
    )
    summary = BatchSummary(
        collected=1, skipped=0, succeeded=0, failed=1, outcomes=(failed,), rejected=()
    )

    assert not failed.ok
    assert not summary.ok
