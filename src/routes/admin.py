"""Operator routes: queue draining and dead-letter triage."""

import hmac
import json
from typing import Literal

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.clients.gateway import OrderGateway, get_order_gateway
from src.config import settings
from src.database import get_db
from src.handlers.queue_worker import run_queue_task
from src.ingest.dead_letter import DeadLetterSink
from src.schemas.events import DeadLetterOut, QueueRunResponse


async def require_worker_token(authorization: str | None = Header(default=None)) -> None:
    if not settings.worker_token:
        return
    expected = f"Bearer {settings.worker_token}"
    if not authorization or not hmac.compare_digest(authorization.encode(), expected.encode()):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="unauthorized")


router = APIRouter(tags=["admin"], dependencies=[Depends(require_worker_token)])


@router.post("/queue/process", response_model=QueueRunResponse)
async def process_queue(
    task: Literal["split", "kitchen"] = Query(default="split"),
    limit: int = Query(default=10, ge=1, le=500),
    gateway: OrderGateway = Depends(get_order_gateway),
):
    """Run one batch of the order-split or kitchen-task queue."""
    result = await run_queue_task(gateway, task, limit)
    if not result.ok:
        return JSONResponse(result.model_dump(), status_code=500)
    return result


@router.get("/dead-letters", response_model=list[DeadLetterOut])
async def list_dead_letters(
    limit: int = Query(default=50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
) -> list[DeadLetterOut]:
    rows = await DeadLetterSink(db).list_recent(limit)
    return [
        DeadLetterOut(
            id=row.id,
            reason=row.reason,
            created_at=row.created_at,
            payload=json.loads(row.payload_json),
        )
        for row in rows
    ]
