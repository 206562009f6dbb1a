"""Tests for webhook signature verification and tenant secret lookup."""

import base64
import json

from src.config import settings
from src.ingest.signature import compute_signature, resolve_secret, resolve_store, verify

SECRET = "bannos-test-secret"
RAW_BODY = b'{"id": 820982911946154508,  "order_number": 12345,\n  "note": "hi"}'


def test_valid_signature_verifies():
    result = verify(RAW_BODY, compute_signature(RAW_BODY, SECRET), SECRET)
    assert result.ok is True


def test_single_bit_flip_is_rejected():
    signature = compute_signature(RAW_BODY, SECRET)
    tampered = bytearray(RAW_BODY)
    tampered[5] ^= 0x01

    result = verify(bytes(tampered), signature, SECRET)

    assert result.ok is False
    assert result.note == "signature mismatch"


def test_raw_bytes_with_insignificant_whitespace_still_verify():
    signature = compute_signature(RAW_BODY, SECRET)
    assert verify(RAW_BODY, signature, SECRET).ok is True


def test_reserialized_body_does_not_verify():
    signature = compute_signature(RAW_BODY, SECRET)
    reserialized = json.dumps(json.loads(RAW_BODY)).encode()

    assert reserialized != RAW_BODY
    assert verify(reserialized, signature, SECRET).ok is False


def test_wrong_secret_is_rejected():
    signature = compute_signature(RAW_BODY, "some-other-secret")
    assert verify(RAW_BODY, signature, SECRET).ok is False


def test_missing_signature_is_rejected():
    assert verify(RAW_BODY, None, SECRET).note == "missing signature header"
    assert verify(RAW_BODY, "   ", SECRET).ok is False


def test_malformed_signature_is_rejected():
    result = verify(RAW_BODY, "not base64 at all!", SECRET)
    assert result.ok is False
    assert result.note == "malformed signature header"


def test_short_signature_is_rejected():
    short = base64.b64encode(b"abc").decode()
    result = verify(RAW_BODY, short, SECRET)
    assert result.ok is False
    assert result.note == "signature length mismatch"


def test_empty_secret_never_verifies():
    signature = compute_signature(RAW_BODY, "")
    result = verify(RAW_BODY, signature, "")
    assert result.ok is False
    assert result.note == "no signing secret for store"


def test_note_never_contains_expected_signature():
    expected = compute_signature(RAW_BODY, SECRET)
    result = verify(RAW_BODY, base64.b64encode(b"x" * 32).decode(), SECRET)
    assert expected not in result.note


def test_resolve_store_from_domain_aliases():
    assert resolve_store(None, "bannos.myshopify.com") == "bannos"
    assert resolve_store(None, "BannosCakes.myshopify.com") == "bannos"
    assert resolve_store(None, "flour-lane.myshopify.com") == "flourlane"
    assert resolve_store(None, "flourlane.myshopify.com") == "flourlane"
    assert resolve_store(None, "evil.myshopify.com") is None
    assert resolve_store(None, None) is None


def test_query_hint_takes_precedence_over_header():
    assert resolve_store("flourlane", "bannos.myshopify.com") == "flourlane"


def test_unknown_query_hint_does_not_fall_back_to_header():
    assert resolve_store("mystery", "bannos.myshopify.com") is None


def test_query_hint_ignored_when_not_trusted(monkeypatch):
    monkeypatch.setattr(settings, "trust_store_query_hint", False)
    assert resolve_store("flourlane", "bannos.myshopify.com") == "bannos"


def test_resolve_secret():
    assert resolve_secret("bannos") == "bannos-test-secret"
    assert resolve_secret("flourlane") == "flourlane-test-secret"
    assert resolve_secret("mystery") == ""
    assert resolve_secret(None) == ""
