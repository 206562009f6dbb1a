"""Downstream order store and work-queue interface.

Handlers depend on ``OrderGateway`` only. Production uses ``BaasClient``;
without a configured BaaS URL an ``InMemoryOrderGateway`` held on the app
state stands in, which is also what tests inject.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from fastapi import Request

from src.config import settings
from src.schemas.orders import NormalizedOrder

logger = logging.getLogger(__name__)

QUEUE_TASKS = ("split", "kitchen")


class DownstreamError(RuntimeError):
    """A call to the order store or work queue failed."""


class OrderGateway(Protocol):
    async def upsert_order(self, order: NormalizedOrder) -> None: ...

    async def enqueue_order_split(
        self,
        shop_domain: str,
        topic: str,
        hook_id: str,
        body: dict[str, Any],
    ) -> None: ...

    async def process_queue(self, task: str, limit: int) -> int: ...

    async def close(self) -> None: ...


async def get_order_gateway(request: Request):
    if settings.baas_url:
        from src.clients.baas import BaasClient

        client = BaasClient()
        try:
            yield client
        finally:
            await client.close()
        return

    gateway = getattr(request.app.state, "order_gateway", None)
    if gateway is None:
        from src.clients.memory import InMemoryOrderGateway

        logger.info("BaaS URL not configured; keeping orders in memory")
        gateway = InMemoryOrderGateway()
        request.app.state.order_gateway = gateway
    yield gateway
