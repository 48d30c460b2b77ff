"""Pydantic schemas for inbound payloads."""

from .webhook import WebhookData, WebhookEntity, WebhookParent, WebhookPayload

__all__ = ["WebhookData", "WebhookEntity", "WebhookParent", "WebhookPayload"]
