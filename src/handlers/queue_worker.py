"""Drains the downstream order-split and kitchen-task queues on demand."""

from __future__ import annotations

import logging

from src.clients.gateway import DownstreamError, OrderGateway
from src.schemas.events import QueueRunResponse

logger = logging.getLogger(__name__)


async def run_queue_task(gateway: OrderGateway, task: str, limit: int) -> QueueRunResponse:
    try:
        processed = await gateway.process_queue(task, limit)
    except DownstreamError as exc:
        logger.error("Queue task %s failed: %s", task, exc)
        return QueueRunResponse(ok=False, reason="rpc_failed")
    return QueueRunResponse(ok=True, processed=processed)
