"""Pydantic models for webhook and admin responses."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.schemas.orders import ValidationIssue


class ValidationFailure(BaseModel):
    """Body of a 422 answer to a payload that failed normalization."""

    ok: bool = False
    errors: list[ValidationIssue] = Field(default_factory=list)


class DeadLetterOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    reason: str
    created_at: datetime
    payload: dict[str, Any] = Field(default_factory=dict)


class QueueRunResponse(BaseModel):
    ok: bool
    processed: int = 0
    reason: str | None = None
