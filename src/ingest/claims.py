"""Atomic claim-or-reject over webhook deliveries.

The unique constraint on ``(event_id, shop_domain)`` is the only mutual
exclusion between concurrent deliveries: whichever INSERT commits first owns
the event, every other attempt hits ``IntegrityError``.
"""

from __future__ import annotations

import enum
import logging
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.webhook_event import STATUS_PENDING, TERMINAL_STATUSES, WebhookEvent

logger = logging.getLogger(__name__)

_NOTE_LIMIT = 1000


class ClaimResult(str, enum.Enum):
    CLAIMED = "claimed"
    ALREADY_CLAIMED = "already_claimed"


class ClaimStateError(RuntimeError):
    """Raised when an outcome is recorded for a row that is not pending."""


class ClaimStore:
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def claim(self, event_id: str, shop_domain: str, topic: str) -> ClaimResult:
        """Insert a pending row, or report that another delivery owns it.

        Storage errors other than the uniqueness violation propagate.
        """
        self._db.add(WebhookEvent(
            event_id=event_id,
            shop_domain=shop_domain,
            topic=topic or "",
            status=STATUS_PENDING,
        ))
        try:
            await self._db.commit()
        except IntegrityError:
            await self._db.rollback()
            logger.info("Webhook %s from %s already claimed", event_id, shop_domain)
            return ClaimResult.ALREADY_CLAIMED
        except Exception:
            await self._db.rollback()
            raise
        return ClaimResult.CLAIMED

    async def mark_outcome(
        self,
        event_id: str,
        shop_domain: str,
        status: str,
        note: str | None = None,
    ) -> None:
        if status not in TERMINAL_STATUSES:
            raise ValueError(f"not a terminal webhook status: {status}")

        try:
            result = await self._db.execute(
                update(WebhookEvent)
                .where(
                    WebhookEvent.event_id == event_id,
                    WebhookEvent.shop_domain == shop_domain,
                    WebhookEvent.status == STATUS_PENDING,
                )
                .values(
                    status=status,
                    note=note[:_NOTE_LIMIT] if note else None,
                    processed_at=datetime.now(timezone.utc),
                )
            )
            if result.rowcount != 1:
                raise ClaimStateError(
                    f"no pending webhook row for {event_id} from {shop_domain}"
                )
            await self._db.commit()
        except Exception:
            await self._db.rollback()
            raise

    async def get(self, event_id: str, shop_domain: str) -> WebhookEvent | None:
        result = await self._db.execute(
            select(WebhookEvent).where(
                WebhookEvent.event_id == event_id,
                WebhookEvent.shop_domain == shop_domain,
            )
        )
        return result.scalar_one_or_none()
