"""Dead-letter bookkeeping for webhook deliveries operators must replay."""

from __future__ import annotations

import json
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.dead_letter import DeadLetter

logger = logging.getLogger(__name__)

MISSING_WEBHOOK_ID = "missing_webhook_id"
MISSING_SHOP_DOMAIN = "missing_shop_domain"
CLAIM_FAILED = "claim_failed"
STATUS_UPDATE_FAILED = "status_update_failed"
UPSERT_FAILED = "upsert_failed"
ENQUEUE_FAILED = "enqueue_failed"
WEBHOOK_UNHANDLED = "webhook_unhandled"

_DETAIL_LIMIT = 2000


class DeadLetterSink:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def record(
        self,
        reason: str,
        *,
        topic: str | None = None,
        shop_domain: str | None = None,
        hook_id: str | None = None,
        detail: str | None = None,
    ) -> DeadLetter:
        payload = {
            "topic": topic,
            "shop_domain": shop_domain,
            "hook_id": hook_id,
            "detail": detail[:_DETAIL_LIMIT] if detail else None,
        }
        row = DeadLetter(reason=reason, payload_json=json.dumps(payload, default=str))
        self._db.add(row)
        try:
            await self._db.commit()
        except Exception:
            await self._db.rollback()
            raise
        logger.warning("Dead-lettered webhook %s from %s: %s", hook_id, shop_domain, reason)
        return row

    async def record_best_effort(self, reason: str, **context: str | None) -> bool:
        """Like ``record`` but logs instead of raising; returns whether it was written."""
        try:
            await self.record(reason, **context)
        except Exception:
            logger.exception(
                "Could not write dead letter %s for webhook %s",
                reason,
                context.get("hook_id"),
            )
            return False
        return True

    async def list_recent(self, limit: int = 50) -> list[DeadLetter]:
        result = await self._db.execute(
            select(DeadLetter).order_by(DeadLetter.id.desc()).limit(limit)
        )
        return list(result.scalars().all())
