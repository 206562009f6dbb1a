"""In-process order store used for local development and tests."""

from __future__ import annotations

from typing import Any

from src.schemas.orders import NormalizedOrder

_NEXT_STATE = {"split": ("queued", "split"), "kitchen": ("split", "kitchen")}


class InMemoryOrderGateway:
    """Keyed containers standing in for the order tables and work queue.

    Enqueueing is idempotent on ``(hook_id, shop_domain)``, matching the
    contract of the real ``enqueue_order_split`` procedure.
    """

    def __init__(self) -> None:
        self.orders: dict[str, dict[str, Any]] = {}
        self.queue: dict[tuple[str, str], dict[str, Any]] = {}

    async def upsert_order(self, order: NormalizedOrder) -> None:
        self.orders[order.id] = order.model_dump(mode="json")

    async def enqueue_order_split(
        self,
        shop_domain: str,
        topic: str,
        hook_id: str,
        body: dict[str, Any],
    ) -> None:
        self.queue.setdefault(
            (hook_id, shop_domain),
            {"topic": topic, "body": body, "state": "queued"},
        )

    async def process_queue(self, task: str, limit: int) -> int:
        if task not in _NEXT_STATE:
            raise ValueError(f"unknown queue task: {task}")
        source, target = _NEXT_STATE[task]
        processed = 0
        for item in self.queue.values():
            if processed >= limit:
                break
            if item["state"] == source:
                item["state"] = target
                processed += 1
        return processed

    async def close(self) -> None:
        return None
