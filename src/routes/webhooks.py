"""Webhook routes for order-ingest-service."""

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import PlainTextResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from src.clients.gateway import OrderGateway, get_order_gateway
from src.database import get_db
from src.handlers.webhook_handler import WebhookDelivery, handle_shopify_webhook

router = APIRouter(tags=["webhooks"])

WEBHOOK_ID_HEADER = "X-Shopify-Webhook-Id"
SHOP_DOMAIN_HEADER = "X-Shopify-Shop-Domain"
SIGNATURE_HEADER = "X-Shopify-Hmac-Sha256"
TOPIC_HEADER = "X-Shopify-Topic"


@router.get("/webhooks/shopify", response_class=PlainTextResponse)
async def shopify_webhook_health() -> str:
    return "ok"


@router.post("/webhooks/shopify")
async def shopify_webhook(
    request: Request,
    store: str | None = Query(default=None, description="Explicit tenant hint, e.g. bannos"),
    db: AsyncSession = Depends(get_db),
    gateway: OrderGateway = Depends(get_order_gateway),
) -> Response:
    """Receive a Shopify order webhook.

    The body is read once as raw bytes; the signature check and JSON parse
    both work from those bytes. Duplicate deliveries answer 200 without being
    processed again.
    """
    delivery = WebhookDelivery(
        raw_body=await request.body(),
        event_id=request.headers.get(WEBHOOK_ID_HEADER),
        shop_domain=request.headers.get(SHOP_DOMAIN_HEADER),
        topic=request.headers.get(TOPIC_HEADER),
        signature=request.headers.get(SIGNATURE_HEADER),
        store_hint=store,
    )
    outcome = await handle_shopify_webhook(db, gateway, delivery)
    return outcome.to_response()
