"""Orchestrates ingestion of one Shopify order webhook delivery.

Step order is fixed and each step short-circuits:

1. Reject deliveries without a webhook id or shop domain (400, dead letter).
2. Claim ``(event_id, shop_domain)``; a duplicate answers 200 immediately.
3. Verify the HMAC over the raw bytes; failure marks the claim rejected (401).
4. Parse the JSON body, falling back to ``{}``.
5. For order topics, normalize (422 on validation issues) and upsert.
6. Enqueue for order splitting; failure marks the claim error (500).
7. Mark the claim ok (200).

Once a delivery is claimed its row always leaves ``pending``: every failure
path records a terminal status, and a dead letter where operators need to
replay.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from fastapi.responses import JSONResponse, PlainTextResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from src.clients.gateway import OrderGateway
from src.config import settings
from src.ingest import dead_letter as reasons
from src.ingest.claims import ClaimResult, ClaimStore
from src.ingest.dead_letter import DeadLetterSink
from src.ingest.normalizer import normalize_order
from src.ingest.signature import resolve_secret, resolve_store, verify
from src.models.webhook_event import STATUS_ERROR, STATUS_OK, STATUS_REJECTED
from src.schemas.events import ValidationFailure

logger = logging.getLogger(__name__)

ORDER_TOPICS = frozenset({"orders/create", "orders/updated"})


@dataclass
class WebhookDelivery:
    """Everything the pipeline needs from one HTTP request."""

    raw_body: bytes
    event_id: str | None = None
    shop_domain: str | None = None
    topic: str | None = None
    signature: str | None = None
    store_hint: str | None = None


@dataclass
class IngestOutcome:
    status_code: int
    body: str | dict[str, Any] = field(default="ok")

    def to_response(self) -> Response:
        if isinstance(self.body, dict):
            return JSONResponse(self.body, status_code=self.status_code)
        return PlainTextResponse(self.body, status_code=self.status_code)


@dataclass
class _Context:
    event_id: str
    shop_domain: str
    topic: str
    claims: ClaimStore
    dead_letters: DeadLetterSink

    def describe(self) -> dict[str, str]:
        return {"topic": self.topic, "shop_domain": self.shop_domain, "hook_id": self.event_id}


def parse_body(raw_body: bytes) -> dict[str, Any]:
    """Decode the verified bytes; malformed or non-object JSON becomes ``{}``."""
    try:
        parsed = json.loads(raw_body)
    except (ValueError, RecursionError):
        return {}
    return parsed if isinstance(parsed, dict) else {}


async def _finish(ctx: _Context, status: str, note: str | None = None) -> None:
    """Record the terminal status; fall back to a dead letter if that fails."""
    try:
        await ctx.claims.mark_outcome(ctx.event_id, ctx.shop_domain, status, note)
    except Exception as exc:
        logger.exception("Could not mark webhook %s from %s as %s", ctx.event_id, ctx.shop_domain, status)
        await ctx.dead_letters.record_best_effort(
            reasons.STATUS_UPDATE_FAILED,
            **ctx.describe(),
            detail=f"wanted status {status}: {exc!r}",
        )


async def _fail(ctx: _Context, reason: str, detail: str) -> IngestOutcome:
    logger.error("Webhook %s from %s failed (%s): %s", ctx.event_id, ctx.shop_domain, reason, detail)
    await _finish(ctx, STATUS_ERROR, f"{reason}: {detail}")
    await ctx.dead_letters.record_best_effort(reason, **ctx.describe(), detail=detail)
    return IngestOutcome(500, "error")


async def _process_claimed(
    ctx: _Context,
    gateway: OrderGateway,
    delivery: WebhookDelivery,
    today: date | None,
) -> IngestOutcome:
    store = resolve_store(delivery.store_hint, ctx.shop_domain)
    verification = verify(delivery.raw_body, delivery.signature, resolve_secret(store))
    if not verification.ok:
        logger.warning(
            "Rejected webhook %s from %s: %s", ctx.event_id, ctx.shop_domain, verification.note
        )
        await _finish(ctx, STATUS_REJECTED, verification.note)
        return IngestOutcome(401, "unauthorized")

    body = parse_body(delivery.raw_body)

    if ctx.topic in ORDER_TOPICS:
        result = normalize_order(body, store, today)
        if not result.ok:
            paths = ", ".join(issue.path for issue in result.errors)
            logger.warning("Webhook %s from %s failed validation: %s", ctx.event_id, ctx.shop_domain, paths)
            await _finish(ctx, STATUS_REJECTED, f"validation failed: {paths}")
            if settings.ack_validation_failures:
                return IngestOutcome(200, "ok")
            return IngestOutcome(422, ValidationFailure(errors=result.errors).model_dump())

        try:
            await gateway.upsert_order(result.normalized)
        except Exception as exc:
            return await _fail(ctx, reasons.UPSERT_FAILED, repr(exc))

    try:
        await asyncio.wait_for(
            gateway.enqueue_order_split(ctx.shop_domain, ctx.topic, ctx.event_id, body),
            timeout=settings.enqueue_timeout_seconds,
        )
    except asyncio.TimeoutError:
        return await _fail(
            ctx, reasons.ENQUEUE_FAILED, f"timed out after {settings.enqueue_timeout_seconds}s"
        )
    except Exception as exc:
        return await _fail(ctx, reasons.ENQUEUE_FAILED, repr(exc))

    await _finish(ctx, STATUS_OK)
    logger.info("Webhook %s (%s) from %s processed", ctx.event_id, ctx.topic, ctx.shop_domain)
    return IngestOutcome(200, "ok")


async def handle_shopify_webhook(
    db: AsyncSession,
    gateway: OrderGateway,
    delivery: WebhookDelivery,
    today: date | None = None,
) -> IngestOutcome:
    """Run one delivery through the pipeline and return the HTTP outcome.

    Never raises: unexpected failures become a 500 with a
    ``webhook_unhandled`` dead letter.
    """
    event_id = (delivery.event_id or "").strip()
    shop_domain = (delivery.shop_domain or "").strip().lower()
    topic = (delivery.topic or "").strip()
    dead_letters = DeadLetterSink(db)

    if not event_id:
        await dead_letters.record_best_effort(
            reasons.MISSING_WEBHOOK_ID,
            topic=topic,
            shop_domain=shop_domain,
            hook_id=None,
            detail="X-Shopify-Webhook-Id header missing",
        )
        return IngestOutcome(400, "missing webhook id")
    if not shop_domain:
        await dead_letters.record_best_effort(
            reasons.MISSING_SHOP_DOMAIN,
            topic=topic,
            shop_domain=None,
            hook_id=event_id,
            detail="X-Shopify-Shop-Domain header missing",
        )
        return IngestOutcome(400, "missing shop domain")

    claims = ClaimStore(db)
    try:
        claim = await claims.claim(event_id, shop_domain, topic)
    except Exception as exc:
        logger.exception("Could not claim webhook %s from %s", event_id, shop_domain)
        await dead_letters.record_best_effort(
            reasons.CLAIM_FAILED,
            topic=topic,
            shop_domain=shop_domain,
            hook_id=event_id,
            detail=repr(exc),
        )
        return IngestOutcome(500, "error")

    if claim is ClaimResult.ALREADY_CLAIMED:
        logger.info("Duplicate webhook %s from %s, skipping", event_id, shop_domain)
        return IngestOutcome(200, "ok")

    ctx = _Context(event_id, shop_domain, topic, claims, dead_letters)
    try:
        return await _process_claimed(ctx, gateway, delivery, today)
    except Exception as exc:
        logger.exception("Unhandled failure for webhook %s from %s", event_id, shop_domain)
        await _finish(ctx, STATUS_ERROR, f"unhandled: {exc!r}")
        await dead_letters.record_best_effort(
            reasons.WEBHOOK_UNHANDLED, **ctx.describe(), detail=repr(exc)
        )
        return IngestOutcome(500, "error")
