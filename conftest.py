"""Shared test configuration: must be loaded before src modules."""

import os

# Override settings before any src modules are imported.
os.environ["INGEST_DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["INGEST_BANNOS_WEBHOOK_SECRET"] = "bannos-test-secret"
os.environ["INGEST_FLOURLANE_WEBHOOK_SECRET"] = "flourlane-test-secret"
os.environ["INGEST_BAAS_URL"] = ""
os.environ["INGEST_WORKER_TOKEN"] = ""

import pytest
from src.database import engine, Base
import src.models.dead_letter  # noqa: E402,F401
import src.models.webhook_event  # noqa: E402,F401


@pytest.fixture(autouse=True)
async def _reset_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
