"""Inbound Notion webhook handling."""

from .ingress import PAGE_CREATED_EVENT, WebhookIngress, WebhookReply, parse_event
from .signature import compute_signature, verify_signature

__all__ = [
    "PAGE_CREATED_EVENT",
    "WebhookIngress",
    "WebhookReply",
    "compute_signature",
    "parse_event",
    "verify_signature",
]
