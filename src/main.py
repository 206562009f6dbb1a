"""FastAPI application for order-ingest-service."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.config import settings
from src.database import init_db, close_db
from src.routes.admin import router as admin_router
from src.routes.webhooks import router as webhooks_router

logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("order-ingest-service starting up")
    await init_db()
    yield
    logger.info("order-ingest-service shutting down")
    gateway = getattr(app.state, "order_gateway", None)
    if gateway is not None:
        await gateway.close()
    await close_db()


app = FastAPI(
    title="Order Ingest Service",
    description="Verified, exactly-once ingestion of bakery store order webhooks",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(webhooks_router, prefix=settings.api_prefix)
app.include_router(admin_router, prefix=settings.api_prefix)


@app.get("/health")
async def health():
    return {"status": "ok", "service": "order-ingest-service"}
