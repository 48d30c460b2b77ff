"""HTTP endpoint receiving Notion webhook deliveries."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from starlette.responses import Response

from qrsync.dependencies import get_webhook_ingress
from qrsync.webhook.ingress import WebhookIngress

# Every method is routed here so that the ingress answers 405 itself.
_ACCEPTED_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


def build_webhook_router(path: str) -> APIRouter:
    router = APIRouter(tags=["Webhook"])

    @router.api_route(path, methods=_ACCEPTED_METHODS, include_in_schema=False)
    async def receive_webhook(
        request: Request,
        ingress: WebhookIngress = Depends(get_webhook_ingress),
    ) -> Response:
        # The signature covers the exact bytes, so the body is never re-serialised.
        raw_body = await request.body()
        reply = await ingress.handle(request.method, raw_body, request.headers)
        if reply.error is not None:
            return reply.error.as_response(request_path=request.url.path, method=request.method)
        if reply.body is not None:
            return PlainTextResponse(reply.body, status_code=reply.status_code)
        return Response(status_code=reply.status_code)

    return router


__all__ = ["build_webhook_router"]
