"""Append-only record of webhook deliveries that could not be processed."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, Text

from src.database import Base


class DeadLetter(Base):
    __tablename__ = "dead_letters"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reason = Column(String, nullable=False, index=True)
    payload_json = Column(Text, nullable=False)
    created_at = Column(
        DateTime, default=lambda: datetime.now(timezone.utc), nullable=False
    )
