"""Shopify webhook signature verification and per-tenant secret lookup.

The HMAC is always computed over the raw request bytes exactly as received.
Parsing and re-serializing the JSON body can reorder keys or change
whitespace, which would invalidate a genuine signature.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import logging
from dataclasses import dataclass

from src.config import settings

logger = logging.getLogger(__name__)

_STORE_ALIASES: dict[str, str] = {
    "bannos": "bannos",
    "bannos.myshopify.com": "bannos",
    "bannoscakes.myshopify.com": "bannos",
    "flourlane": "flourlane",
    "flourlane.myshopify.com": "flourlane",
    "flour-lane.myshopify.com": "flourlane",
}


@dataclass(frozen=True)
class VerificationResult:
    ok: bool
    note: str = ""


def _digest(raw_body: bytes, secret: str) -> bytes:
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).digest()


def compute_signature(raw_body: bytes, secret: str) -> str:
    """Return the base64 HMAC-SHA256 of ``raw_body`` as Shopify sends it."""
    return base64.b64encode(_digest(raw_body, secret)).decode("ascii")


def verify(raw_body: bytes, provided_signature: str | None, secret: str) -> VerificationResult:
    if not secret:
        return VerificationResult(False, "no signing secret for store")
    if not provided_signature or not provided_signature.strip():
        return VerificationResult(False, "missing signature header")

    try:
        provided = base64.b64decode(provided_signature.strip(), validate=True)
    except (binascii.Error, ValueError):
        return VerificationResult(False, "malformed signature header")

    expected = _digest(raw_body, secret)
    if len(provided) != len(expected):
        return VerificationResult(False, "signature length mismatch")
    if not hmac.compare_digest(provided, expected):
        return VerificationResult(False, "signature mismatch")
    return VerificationResult(True, "verified")


def _lookup_store(value: str | None) -> str | None:
    if not value:
        return None
    return _STORE_ALIASES.get(value.strip().lower())


def resolve_store(query_hint: str | None, shop_domain: str | None) -> str | None:
    """Map a routing hint or shop domain to a known store tag.

    An explicit hint takes precedence over the shop-domain header. A hint that
    names no known store resolves to ``None`` rather than falling through to
    the header.
    """
    if query_hint and settings.trust_store_query_hint:
        return _lookup_store(query_hint)
    return _lookup_store(shop_domain)


def resolve_secret(store: str | None) -> str:
    """Return the signing secret for ``store``; empty when unknown or unset."""
    if store == "bannos":
        return settings.bannos_webhook_secret
    if store == "flourlane":
        return settings.flourlane_webhook_secret
    if store:
        logger.warning("No signing secret mapping for store %s", store)
    return ""
