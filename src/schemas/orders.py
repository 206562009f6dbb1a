"""Pydantic models for normalized store orders."""

from typing import Any, Literal

from pydantic import BaseModel, Field

StoreTag = Literal["bannos", "flourlane"]
DeliveryMethod = Literal["pickup", "delivery"]
Priority = Literal["HIGH", "MEDIUM", "LOW"]

STORES: tuple[str, ...] = ("bannos", "flourlane")


class ValidationIssue(BaseModel):
    path: str
    message: str


class NormalizedOrder(BaseModel):
    """Canonical order record handed to the downstream order store.

    ``id`` is the human-readable upsert key ``"<store>-<order_number|id>"``,
    so redelivery of the same order overwrites rather than duplicates.
    """

    id: str
    store: StoreTag
    shopify_order_id: int | str
    shopify_order_gid: str
    shopify_order_number: int | str
    customer_name: str
    product_title: str = ""
    flavour: str = ""
    notes: str = ""
    currency: str = ""
    total_amount: float = 0.0
    due_date: str
    delivery_method: DeliveryMethod = "delivery"
    priority: Priority = "LOW"
    order_json: dict[str, Any] = Field(default_factory=dict)


class NormalizeResult(BaseModel):
    ok: bool
    normalized: NormalizedOrder | None = None
    errors: list[ValidationIssue] = Field(default_factory=list)
