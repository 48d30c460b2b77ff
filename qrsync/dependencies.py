"""Component wiring and FastAPI dependency providers."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

import httpx
from fastapi import Request

from qrsync.config import AppConfig, load_config
from qrsync.encoder import encode_reference
from qrsync.integrations.notion_client import NotionHttpClient
from qrsync.pipeline.collector import BatchCollector
from qrsync.pipeline.orchestrator import ArtifactEncoder, UploadOrchestrator
from qrsync.utils.rate_budget import RateBudget
from qrsync.webhook.ingress import WebhookIngress


@dataclass(slots=True)
class Pipeline:
    """Every component built from one :class:`AppConfig`, sharing one budget."""

    config: AppConfig
    budget: RateBudget
    client: NotionHttpClient
    orchestrator: UploadOrchestrator
    collector: BatchCollector
    ingress: WebhookIngress


def build_pipeline(
    config: AppConfig,
    *,
    budget: RateBudget | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    encoder: ArtifactEncoder = encode_reference,
) -> Pipeline:
    shared_budget = budget or RateBudget.from_config(config.rate_limit)
    client = NotionHttpClient.from_config(
        config.notion,
        config.retry,
        budget=shared_budget,
        transport=transport,
    )
    orchestrator = UploadOrchestrator(
        client,
        qr_property=config.notion.qr_property,
        encoder=encoder,
    )
    return Pipeline(
        config=config,
        budget=shared_budget,
        client=client,
        orchestrator=orchestrator,
        collector=BatchCollector(client, config.notion),
        ingress=WebhookIngress(
            client,
            orchestrator,
            notion=config.notion,
            webhook=config.webhook,
        ),
    )


@lru_cache
def get_app_config() -> AppConfig:
    return load_config()


def get_pipeline(request: Request) -> Pipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if isinstance(pipeline, Pipeline):
        return pipeline
    pipeline = build_pipeline(get_app_config())
    request.app.state.pipeline = pipeline
    return pipeline


def get_webhook_ingress(request: Request) -> WebhookIngress:
    return get_pipeline(request).ingress


__all__ = [
    "Pipeline",
    "build_pipeline",
    "get_app_config",
    "get_pipeline",
    "get_webhook_ingress",
]
