"""PostgREST-style client for the BaaS order tables and queue RPCs."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from src.clients.gateway import DownstreamError
from src.config import settings
from src.schemas.orders import NormalizedOrder

logger = logging.getLogger(__name__)

_QUEUE_RPCS = {
    "split": "process_webhook_order_split",
    "kitchen": "process_kitchen_task_create",
}


class BaasClient:
    """Upsert normalized orders and call the queue stored procedures."""

    def __init__(
        self,
        base_url: str | None = None,
        service_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or settings.baas_url).rstrip("/")
        if not self._base_url:
            raise RuntimeError("BaaS not configured: set INGEST_BAAS_URL")
        key = settings.baas_service_key if service_key is None else service_key
        self._headers = {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
        }
        self._client = httpx.AsyncClient(
            timeout=settings.baas_timeout_seconds,
            transport=transport,
        )

    async def _post(self, path: str, payload: Any, headers: dict | None = None) -> httpx.Response:
        url = f"{self._base_url}/rest/v1/{path}"
        try:
            resp = await self._client.post(url, json=payload, headers={**self._headers, **(headers or {})})
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise DownstreamError(f"{path} returned {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise DownstreamError(f"{path} request failed: {exc!r}") from exc
        return resp

    async def upsert_order(self, order: NormalizedOrder) -> None:
        """Insert or overwrite ``orders_<store>`` keyed on the human id."""
        await self._post(
            f"orders_{order.store}?on_conflict=id",
            order.model_dump(mode="json"),
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )
        logger.info("Order %s upserted", order.id)

    async def enqueue_order_split(
        self,
        shop_domain: str,
        topic: str,
        hook_id: str,
        body: dict[str, Any],
    ) -> None:
        await self._post(
            "rpc/enqueue_order_split",
            {
                "p_shop_domain": shop_domain,
                "p_topic": topic,
                "p_hook_id": hook_id,
                "p_body": body,
            },
        )
        logger.info("Webhook %s from %s enqueued for splitting", hook_id, shop_domain)

    async def process_queue(self, task: str, limit: int) -> int:
        rpc = _QUEUE_RPCS.get(task)
        if rpc is None:
            raise ValueError(f"unknown queue task: {task}")
        resp = await self._post(f"rpc/{rpc}", {"p_limit": limit})
        try:
            processed = int(resp.json())
        except (ValueError, TypeError):
            processed = 0
        logger.info("Queue task %s processed %d item(s)", task, processed)
        return processed

    async def close(self) -> None:
        await self._client.aclose()
