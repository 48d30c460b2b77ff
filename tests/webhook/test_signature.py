import hashlib
import hmac

from qrsync.webhook.signature import compute_signature, verify_signature

_BODY = b'{"type":"page.created","entity":{"id":"page-1"}}'


def test_compute_signature_is_prefixed_hmac_sha256():
    expected = hmac.new(b"whsec-test", _BODY, hashlib.sha256).hexdigest()

    assert compute_signature("whsec-test", _BODY) == f"sha256={expected}"


def test_verify_signature_accepts_matching_header():
    assert verify_signature("whsec-test", _BODY, compute_signature("whsec-test", _BODY))


def test_verify_signature_rejects_other_secret_or_body():
    signature = compute_signature("whsec-test", _BODY)

    assert not verify_signature("other-secret", _BODY, signature)
    assert not verify_signature("whsec-test", _BODY + b" ", signature)


def test_verify_signature_requires_prefix():
    digest = hmac.new(b"whsec-test", _BODY, hashlib.sha256).hexdigest()

    assert not verify_signature("whsec-test", _BODY, digest)


def test_verify_signature_rejects_missing_header_or_secret():
    signature = compute_signature("whsec-test", _BODY)

    assert not verify_signature("whsec-test", _BODY, None)
    assert not verify_signature("whsec-test", _BODY, "")
    assert not verify_signature("", _BODY, signature)
