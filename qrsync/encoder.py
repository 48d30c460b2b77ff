"""QR code rendering for record identifiers."""

from __future__ import annotations

import io
import json

import qrcode
from qrcode.constants import ERROR_CORRECT_M
from qrcode.exceptions import DataOverflowError

from qrsync.errors import EncodingError
from qrsync.models import RecordReference

ARTIFACT_CONTENT_TYPE = "image/png"

# Same geometry as the codes already attached to existing records.
_ERROR_CORRECTION = ERROR_CORRECT_M
_BOX_SIZE = 4
_BORDER = 4


def build_payload(ref: RecordReference) -> str:
    """Return the text embedded in the QR code for ``ref``."""

    return json.dumps(
        {"id": ref.external_key, "uuid": ref.stable_uuid},
        separators=(",", ":"),
        ensure_ascii=False,
    )


def encode(payload: str) -> bytes:
    """Render ``payload`` as PNG bytes."""

    qr = qrcode.QRCode(
        version=None,
        error_correction=_ERROR_CORRECTION,
        box_size=_BOX_SIZE,
        border=_BORDER,
    )
    try:
        qr.add_data(payload)
        qr.make(fit=True)
    except (DataOverflowError, ValueError) as exc:
        raise EncodingError(f"payload cannot be encoded as a QR code: {exc}") from exc

    image = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def encode_reference(ref: RecordReference) -> bytes:
    return encode(build_payload(ref))


__all__ = ["ARTIFACT_CONTENT_TYPE", "build_payload", "encode", "encode_reference"]
