"""Configuration for order-ingest-service."""

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./ingest.db"
    api_prefix: str = "/api/v1"
    debug: bool = False

    # Per-tenant Shopify webhook signing secrets
    bannos_webhook_secret: str = ""
    flourlane_webhook_secret: str = ""
    # When false, the ?store= hint is ignored and the tenant comes only from
    # the X-Shopify-Shop-Domain header.
    trust_store_query_hint: bool = True

    # BaaS (PostgREST-style) endpoint for order upserts and queue RPCs.
    # Empty means orders are kept in process memory (local development).
    baas_url: str = ""
    baas_service_key: str = ""
    baas_timeout_seconds: float = 10.0
    enqueue_timeout_seconds: float = 15.0

    # Due-date priority is computed against "today" in this zone
    business_timezone: str = "Australia/Sydney"

    # Answer 200 instead of 422 for payloads that fail normalization, so the
    # origin stops redelivering them.
    ack_validation_failures: bool = False

    # Bearer token for the admin routes; empty disables the check
    worker_token: str = ""

    model_config = {"env_prefix": "INGEST_"}

    @field_validator("bannos_webhook_secret", "flourlane_webhook_secret", "baas_service_key", mode="before")
    @classmethod
    def _strip_secret(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip()
        return value


settings = Settings()
