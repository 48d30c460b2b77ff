"""Mapping helpers between Notion page payloads and record references."""

from __future__ import annotations

from typing import Any, Mapping

from qrsync.config import NotionConfig
from qrsync.errors import DataError
from qrsync.models import RecordReference


def _property(page: Mapping[str, Any], name: str, record_id: str) -> Mapping[str, Any]:
    properties = page.get("properties")
    if not isinstance(properties, Mapping):
        raise DataError("page has no properties", record_id=record_id)
    prop = properties.get(name)
    if not isinstance(prop, Mapping):
        raise DataError(f"page is missing the '{name}' property", record_id=record_id)
    return prop


def extract_external_key(page: Mapping[str, Any], property_name: str) -> str:
    """Return ``PREFIX-NUMBER`` from a ``unique_id`` property."""

    record_id = str(page.get("id") or "")
    unique_id = _property(page, property_name, record_id).get("unique_id")
    if not isinstance(unique_id, Mapping):
        raise DataError(f"'{property_name}' is not a unique_id property", record_id=record_id)
    number = unique_id.get("number")
    if isinstance(number, bool) or not isinstance(number, int):
        raise DataError(f"'{property_name}' has no number yet", record_id=record_id)
    prefix = unique_id.get("prefix")
    if isinstance(prefix, str) and prefix.strip():
        return f"{prefix.strip()}-{number}"
    return str(number)


def extract_stable_uuid(page: Mapping[str, Any], property_name: str) -> str:
    """Return the string value of a formula (or rich text) property."""

    record_id = str(page.get("id") or "")
    prop = _property(page, property_name, record_id)
    value: Any = None
    formula = prop.get("formula")
    if isinstance(formula, Mapping):
        value = formula.get("string")
    elif isinstance(prop.get("rich_text"), list):
        value = "".join(
            str(part.get("plain_text") or "")
            for part in prop["rich_text"]
            if isinstance(part, Mapping)
        )
    if not isinstance(value, str) or not value.strip():
        raise DataError(f"'{property_name}' is empty", record_id=record_id)
    return value.strip()


def page_to_reference(page: Mapping[str, Any], config: NotionConfig) -> RecordReference:
    """Build a :class:`RecordReference` from a page object.

    Raises :class:`DataError` when either identifier is missing.
    """

    record_id = page.get("id")
    if not isinstance(record_id, str) or not record_id.strip():
        raise DataError("page has no id")
    return RecordReference(
        record_id=record_id.strip(),
        external_key=extract_external_key(page, config.id_property),
        stable_uuid=extract_stable_uuid(page, config.uuid_property),
    )


def qr_property_update(property_name: str, file_upload_id: str) -> dict[str, Any]:
    """Properties payload that points a files property at an uploaded file."""

    return {
        property_name: {
            "files": [
                {
                    "type": "file_upload",
                    "file_upload": {"id": file_upload_id},
                }
            ]
        }
    }


def qr_property_is_empty_filter(property_name: str) -> dict[str, Any]:
    return {"property": property_name, "files": {"is_empty": True}}


__all__ = [
    "extract_external_key",
    "extract_stable_uuid",
    "page_to_reference",
    "qr_property_is_empty_filter",
    "qr_property_update",
]
