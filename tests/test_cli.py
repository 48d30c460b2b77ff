from __future__ import annotations

import json
import logging

import pytest

from qrsync import cli
from qrsync.config import AppConfig, load_config
from qrsync.dependencies import build_pipeline
from tests.support.notion import FakeNotion, error_response, make_page


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "configure_logging", lambda *_args, **_kwargs: None)


def _use(monkeypatch: pytest.MonkeyPatch, config: AppConfig, fake_notion: FakeNotion) -> None:
    monkeypatch.setattr(cli, "load_config", lambda: config)
    monkeypatch.setattr(
        cli,
        "build_pipeline",
        lambda resolved: build_pipeline(resolved, transport=fake_notion.transport()),
    )


def test_batch_requires_notion_credentials(
    monkeypatch: pytest.MonkeyPatch, fake_notion: FakeNotion
) -> None:
    _use(monkeypatch, load_config({}), fake_notion)

    assert cli._cli(["batch"]) == cli.EXIT_MISCONFIGURED
    assert fake_notion.calls == []


def test_batch_prints_summary(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    app_config: AppConfig,
    fake_notion: FakeNotion,
) -> None:
    _use(monkeypatch, app_config, fake_notion)
    fake_notion.add(make_page("page-1", number=1))
    fake_notion.add(make_page("page-2", number=None))

    exit_code = cli._cli(["batch"])

    assert exit_code == cli.EXIT_OK
    summary = json.loads(capsys.readouterr().out)
    assert summary["collected"] == 1
    assert summary["succeeded"] == 1
    assert summary["failed"] == 0
    assert summary["rejected"][0]["record_id"] == "page-2"


def test_batch_exit_code_reports_failures(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    app_config: AppConfig,
    fake_notion: FakeNotion,
) -> None:
    _use(monkeypatch, app_config, fake_notion)
    fake_notion.add(make_page("page-1", number=1))
    fake_notion.failing_pages.add("page-1")

    exit_code = cli._cli(["batch"])

    assert exit_code == cli.EXIT_FAILURES
    summary = json.loads(capsys.readouterr().out)
    assert summary["failures"] == [
        {"record_id": "page-1", "external_key": "ITEM-1", "failure": "BindingFailed"}
    ]


def test_batch_reports_failed_query_without_traceback(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    caplog: pytest.LogCaptureFixture,
    app_config: AppConfig,
    fake_notion: FakeNotion,
) -> None:
    _use(monkeypatch, app_config, fake_notion)
    fake_notion.fail("query_database", error_response(401, "unauthorized"))

    with caplog.at_level(logging.ERROR, logger="qrsync.cli"):
        exit_code = cli._cli(["batch"])

    assert exit_code == cli.EXIT_FAILURES
    assert capsys.readouterr().out == ""
    aborted = [
        record for record in caplog.records if getattr(record, "event", None) == "batch.aborted"
    ]
    assert aborted and aborted[0].operation == "query_database"
    assert aborted[0].status_code == 401


def test_serve_runs_uvicorn_with_app_factory(
    monkeypatch: pytest.MonkeyPatch, app_config: AppConfig, fake_notion: FakeNotion
) -> None:
    calls: list[tuple[str, dict]] = []
    _use(monkeypatch, app_config, fake_notion)
    monkeypatch.setattr("uvicorn.run", lambda app, **kwargs: calls.append((app, kwargs)))

    assert cli._cli(["serve", "--port", "9000"]) == cli.EXIT_OK

    app, kwargs = calls[0]
    assert app == "qrsync.api.app:create_app"
    assert kwargs["factory"] is True
    assert kwargs["port"] == 9000
    assert kwargs["host"] == app_config.server.host
