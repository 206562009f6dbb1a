"""Idempotency claims and outcome log for inbound webhook deliveries."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint

from src.database import Base

STATUS_PENDING = "pending"
STATUS_OK = "ok"
STATUS_REJECTED = "rejected"
STATUS_ERROR = "error"

TERMINAL_STATUSES = frozenset({STATUS_OK, STATUS_REJECTED, STATUS_ERROR})


class WebhookEvent(Base):
    __tablename__ = "webhook_events"
    __table_args__ = (
        UniqueConstraint("event_id", "shop_domain", name="uq_webhook_events_event_shop"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(String, nullable=False, index=True)
    shop_domain = Column(String, nullable=False)
    topic = Column(String, nullable=False, default="")
    status = Column(String, nullable=False, default=STATUS_PENDING)
    note = Column(Text, nullable=True)
    received_at = Column(
        DateTime, default=lambda: datetime.now(timezone.utc), nullable=False
    )
    processed_at = Column(DateTime, nullable=True)
