"""Shapes of the event notifications Notion posts to the webhook."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore")


class WebhookEntity(_Lenient):
    id: str | None = None
    type: str | None = None


class WebhookParent(_Lenient):
    id: str | None = None
    type: str | None = None


class WebhookData(_Lenient):
    parent: WebhookParent | None = None


class WebhookPayload(_Lenient):
    """Either a one-off verification handshake or an event notification."""

    verification_token: str | None = None
    type: str | None = None
    entity: WebhookEntity | None = None
    data: WebhookData | None = None

    @property
    def entity_id(self) -> str | None:
        return self.entity.id if self.entity is not None else None

    @property
    def parent_id(self) -> str | None:
        if self.data is None or self.data.parent is None:
            return None
        return self.data.parent.id
