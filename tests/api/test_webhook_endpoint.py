from __future__ import annotations

import json
from typing import Iterator

from fastapi.testclient import TestClient
import pytest

from qrsync.api import create_app
from qrsync.dependencies import Pipeline
from qrsync.webhook.signature import compute_signature
from tests.support.notion import FakeNotion, error_response, make_page

_WEBHOOK_PATH = "/api/webhook"


def _page_created(page_id: str = "page-1") -> bytes:
    return json.dumps(
        {
            "type": "page.created",
            "entity": {"id": page_id, "type": "page"},
            "data": {"parent": {"id": "db-123", "type": "database"}},
        }
    ).encode("utf-8")


@pytest.fixture()
def client(pipeline: Pipeline) -> Iterator[TestClient]:
    with TestClient(create_app(pipeline=pipeline)) as test_client:
        yield test_client


def test_handshake_returns_token_as_plain_text(client: TestClient) -> None:
    response = client.post(_WEBHOOK_PATH, json={"verification_token": "secret_abc"})

    assert response.status_code == 200
    assert response.text == "secret_abc"


def test_signed_event_attaches_qr_code(client: TestClient, fake_notion: FakeNotion) -> None:
    fake_notion.add(make_page("page-1"))
    body = _page_created()

    response = client.post(
        _WEBHOOK_PATH,
        content=body,
        headers={
            "Content-Type": "application/json",
            "X-Notion-Signature": compute_signature("whsec-test", body),
        },
    )

    assert response.status_code == 200
    assert response.content == b""
    assert fake_notion.qr_file_ids("page-1") == ["upload-1"]


def test_signature_is_checked_against_raw_body(client: TestClient, fake_notion: FakeNotion) -> None:
    fake_notion.add(make_page("page-1"))
    body = _page_created()
    reformatted = json.dumps(json.loads(body), indent=2).encode("utf-8")

    response = client.post(
        _WEBHOOK_PATH,
        content=reformatted,
        headers={"X-Notion-Signature": compute_signature("whsec-test", body)},
    )

    assert response.status_code == 401
    assert response.json() == {
        "ok": False,
        "error": {"code": "AUTH_REQUIRED", "message": "Invalid signature."},
    }
    assert response.headers["X-Debug-Id"]
    assert fake_notion.calls == []


def test_other_methods_are_rejected(client: TestClient) -> None:
    response = client.get(_WEBHOOK_PATH)

    assert response.status_code == 405
    assert response.headers["Allow"] == "POST"
    assert response.json()["error"]["code"] == "METHOD_NOT_ALLOWED"


def test_malformed_body_is_a_bad_request(client: TestClient) -> None:
    response = client.post(_WEBHOOK_PATH, content=b"{not json")

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_processing_failure_hides_internal_detail(
    client: TestClient, fake_notion: FakeNotion
) -> None:
    fake_notion.add(make_page("page-1"))
    fake_notion.fail("create_file_upload", error_response(400, "validation_error"))
    body = _page_created()

    response = client.post(
        _WEBHOOK_PATH,
        content=body,
        headers={"X-Notion-Signature": compute_signature("whsec-test", body)},
    )

    assert response.status_code == 500
    assert response.json() == {
        "ok": False,
        "error": {"code": "INTERNAL_ERROR", "message": "Internal error"},
    }
    assert "validation_error" not in response.text


def test_live_probe(client: TestClient) -> None:
    response = client.get("/live")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
