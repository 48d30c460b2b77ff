"""FastAPI application serving the webhook endpoint."""

from __future__ import annotations

from fastapi import FastAPI

from qrsync import __version__
from qrsync.config import AppConfig
from qrsync.dependencies import Pipeline, build_pipeline, get_app_config
from qrsync.logging import get_logger

from .webhook import build_webhook_router

logger = get_logger(__name__)

_LIVE_HEALTH_PATH = "/live"


def create_app(config: AppConfig | None = None, *, pipeline: Pipeline | None = None) -> FastAPI:
    """Build the webhook application.

    ``pipeline`` lets callers (tests, mostly) inject pre-wired components;
    otherwise they are built from ``config`` or the runtime environment.
    """

    resolved_config = pipeline.config if pipeline is not None else config or get_app_config()
    resolved_pipeline = pipeline or build_pipeline(resolved_config)

    app = FastAPI(
        title="qrsync",
        version=__version__,
        docs_url=None,
        redoc_url=None,
    )
    app.state.config = resolved_config
    app.state.pipeline = resolved_pipeline
    app.include_router(build_webhook_router(resolved_config.webhook.path))

    @app.get(_LIVE_HEALTH_PATH, include_in_schema=False)
    async def live() -> dict[str, str]:
        return {"status": "ok"}

    logger.info("Webhook listening on %s", resolved_config.webhook.path)
    return app


__all__ = ["create_app"]
