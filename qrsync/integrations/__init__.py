"""Notion API integration for qrsync."""

from .notion_client import (
    NotionClientError,
    NotionHttpClient,
    TransportError,
    TransportExhausted,
    TransportRejected,
)
from .notion_records import page_to_reference

__all__ = [
    "NotionClientError",
    "NotionHttpClient",
    "TransportError",
    "TransportExhausted",
    "TransportRejected",
    "page_to_reference",
]
