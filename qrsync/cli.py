"""Command line entry point: run a batch sweep or serve the webhook."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from typing import Sequence

from qrsync.config import AppConfig, load_config
from qrsync.dependencies import build_pipeline
from qrsync.integrations.notion_client import TransportError
from qrsync.logging import configure_logging, get_logger
from qrsync.logging_events import log_event
from qrsync.models import BatchSummary
from qrsync.pipeline.batch import run_batch

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_MISCONFIGURED = 2


def _summary_payload(summary: BatchSummary) -> dict[str, object]:
    return {
        "collected": summary.collected,
        "skipped": summary.skipped,
        "succeeded": summary.succeeded,
        "failed": summary.failed,
        "failures": [
            {
                "record_id": outcome.record_id,
                "external_key": outcome.external_key,
                "failure": outcome.failure.value if outcome.failure else None,
            }
            for outcome in summary.outcomes
            if not outcome.ok
        ],
        "rejected": [
            {"record_id": rejected.record_id, "reason": rejected.reason}
            for rejected in summary.rejected
        ],
    }


def _run_batch(config: AppConfig) -> int:
    missing = [
        name
        for name, value in (
            ("NOTION_TOKEN", config.notion.token),
            ("NOTION_DATABASE_ID", config.notion.database_id),
        )
        if not value
    ]
    if missing:
        logger.error("Missing required configuration: %s", ", ".join(missing))
        return EXIT_MISCONFIGURED

    pipeline = build_pipeline(config)
    try:
        summary = asyncio.run(run_batch(pipeline.collector, pipeline.orchestrator))
    except TransportError as exc:
        log_event(
            logger,
            "batch.aborted",
            level=logging.ERROR,
            component="cli",
            status="error",
            operation=exc.operation,
            attempts=exc.attempts,
            status_code=exc.status_code,
            error=str(exc),
        )
        return EXIT_FAILURES
    print(json.dumps(_summary_payload(summary), indent=2))
    return EXIT_OK if summary.ok else EXIT_FAILURES


def _serve(config: AppConfig, *, host: str | None, port: int | None) -> int:
    import uvicorn

    uvicorn.run(
        "qrsync.api.app:create_app",
        factory=True,
        host=host or config.server.host,
        port=port or config.server.port,
        log_config=None,
    )
    return EXIT_OK


def _cli(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Attach QR codes to Notion database records")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("batch", help="Process every record whose QR code is missing")
    serve = subparsers.add_parser("serve", help="Serve the Notion webhook endpoint")
    serve.add_argument("--host", default=None, help="Interface to bind (default: APP_HOST)")
    serve.add_argument("--port", type=int, default=None, help="Port to bind (default: APP_PORT)")
    args = parser.parse_args(argv)

    config = load_config()
    configure_logging(config.logging.level, config.logging.file)

    if args.command == "batch":
        return _run_batch(config)
    return _serve(config, host=args.host, port=args.port)


def main() -> None:
    raise SystemExit(_cli())


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    main()
