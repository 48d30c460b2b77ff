"""HMAC signatures for webhook deliveries."""

from __future__ import annotations

import hashlib
import hmac

SIGNATURE_PREFIX = "sha256="


def compute_signature(secret: str, raw_body: bytes) -> str:
    """Return ``sha256=<hex digest>`` of ``raw_body`` keyed by ``secret``."""

    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(secret: str, raw_body: bytes, presented: str | None) -> bool:
    """Compare ``presented`` against the expected signature in constant time."""

    if not secret or not presented:
        return False
    expected = compute_signature(secret, raw_body)
    return hmac.compare_digest(expected.encode("utf-8"), presented.strip().encode("utf-8"))


__all__ = ["SIGNATURE_PREFIX", "compute_signature", "verify_signature"]
