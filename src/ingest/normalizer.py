"""Turn raw Shopify order payloads into ``NormalizedOrder`` records.

Rules follow the kitchen docket:

- dates and delivery method come from order attributes first, tags second
- internal line-item properties never reach customer-facing fields
- flavour comes from the "Gelato Flavour(s)" property, else the variant title

``normalize_order`` is pure: the same payload, store and ``today`` always give
the same result, so it is safe to retry and to run offline.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any
from zoneinfo import ZoneInfo

from src.config import settings
from src.schemas.orders import STORES, NormalizedOrder, NormalizeResult, ValidationIssue

DUE_DATE_ATTRIBUTE = "Local Delivery Date and Time"
DELIVERY_METHOD_ATTRIBUTE = "Delivery Method"
DELIVERY_INSTRUCTIONS_ATTRIBUTE = "Delivery Instructions"

NOTES_SEPARATOR = " • "

_BETWEEN = re.compile(r"between", re.IGNORECASE)
_DUE_TAG = re.compile(r"^(DEL|PICKUP):", re.IGNORECASE)
_PICKUP = re.compile(r"pickup|pick up")
_FLAVOUR_PROPERTY = re.compile(r"gelato flavours?", re.IGNORECASE)
_FLAVOUR_SPLIT = re.compile(r"\r?\n|[,/]")
_ISO_DAY = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})")

_INTERNAL_MARKERS = ("_origin", "_raw", "gwp", "_LocalDeliveryID")


def _to_str(value: Any) -> str:
    return "" if value is None else str(value)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _mapping(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _items(value: Any) -> list:
    return value if isinstance(value, list) else []


def _scalar(value: Any) -> int | str:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, (int, str)) and not isinstance(value, bool):
        return value
    return _to_str(value)


def _number(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def get_attribute(order: dict, key: str) -> str:
    """Read ``key`` case-insensitively from note_attributes or attributes.

    ``attributes`` may be a list of ``{name, value}`` pairs or a plain mapping.
    """
    key_lc = key.lower()
    for attr in _items(order.get("note_attributes")):
        attr = _mapping(attr)
        if _to_str(attr.get("name")).lower() == key_lc:
            if attr.get("value"):
                return _to_str(attr["value"])
            break

    attrs = order.get("attributes")
    if isinstance(attrs, list):
        for attr in attrs:
            attr = _mapping(attr)
            if _to_str(attr.get("name")).lower() == key_lc:
                return _to_str(attr["value"]) if attr.get("value") else ""
        return ""
    if isinstance(attrs, dict):
        if key in attrs:
            return _to_str(attrs[key])
        for name, value in attrs.items():
            if _to_str(name).lower() == key_lc:
                return _to_str(value)
    return ""


def is_internal_property(name: str) -> bool:
    if not name:
        return False
    return name.startswith("_") or any(marker in name for marker in _INTERNAL_MARKERS)


def split_clean(value: str) -> list[str]:
    return [part.strip() for part in _FLAVOUR_SPLIT.split(_to_str(value)) if part.strip()]


def pick_primary_line_item(order: dict) -> dict | None:
    """First line item that is not a gift card and has a positive quantity."""
    for item in _items(order.get("line_items")):
        item = _mapping(item)
        if not item.get("gift_card") and _number(item.get("quantity") or 0) > 0:
            return item
    return None


def _properties(item: dict) -> list[tuple[str, str]]:
    props = item.get("properties")
    if isinstance(props, dict):
        return [(_to_str(name), _to_str(value)) for name, value in props.items()]
    pairs = []
    for prop in _items(props):
        prop = _mapping(prop)
        name = _to_str(prop.get("name") or prop.get("first"))
        value = _to_str(prop.get("value") or prop.get("last"))
        pairs.append((name, value))
    return pairs


def resolve_flavour(item: dict | None) -> str:
    if item is None:
        return ""
    visible = [(name, value) for name, value in _properties(item) if not is_internal_property(name)]
    for name, value in visible:
        if _FLAVOUR_PROPERTY.search(name):
            flavours = ", ".join(split_clean(value))
            if flavours:
                return flavours
            break
    variant = split_clean(_to_str(item.get("variant_title")))
    return variant[0] if variant else ""


def _tags(order: dict) -> list[str]:
    tags = order.get("tags")
    if isinstance(tags, list):
        return [_to_str(tag).strip() for tag in tags]
    return [tag.strip() for tag in _to_str(tags).split(",")]


def resolve_due_date(order: dict) -> str:
    raw_due = get_attribute(order, DUE_DATE_ATTRIBUTE)
    if raw_due:
        return _BETWEEN.split(raw_due, maxsplit=1)[0].strip()
    for tag in _tags(order):
        if _DUE_TAG.match(tag):
            return tag.split(":", 1)[1].strip()
    return ""


def resolve_delivery_method(order: dict) -> str:
    method = get_attribute(order, DELIVERY_METHOD_ATTRIBUTE).lower()
    return "pickup" if _PICKUP.search(method) else "delivery"


def resolve_customer_name(order: dict) -> str:
    shipping = _mapping(order.get("shipping_address"))
    customer = _mapping(order.get("customer"))
    name = shipping.get("name") or customer.get("name")
    if not name:
        name = " ".join(
            part for part in (_to_str(customer.get("first_name")), _to_str(customer.get("last_name"))) if part
        )
    return _to_str(name).strip()


def build_notes(order: dict) -> str:
    parts = [
        _to_str(order.get("note")).strip(),
        get_attribute(order, DELIVERY_INSTRUCTIONS_ATTRIBUTE).strip(),
    ]
    return NOTES_SEPARATOR.join(part for part in parts if part)


def derive_priority(due_date: str, today: date) -> str:
    """HIGH for overdue, today or tomorrow; MEDIUM within three days; else LOW."""
    match = _ISO_DAY.match(_to_str(due_date).strip())
    if not match:
        return "LOW"
    try:
        due = date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return "LOW"
    delta_days = (due - today).days
    if delta_days <= 1:
        return "HIGH"
    if delta_days <= 3:
        return "MEDIUM"
    return "LOW"


def business_today() -> date:
    return datetime.now(ZoneInfo(settings.business_timezone)).date()


def normalize_order(payload: Any, store: str, today: date | None = None) -> NormalizeResult:
    """Validate ``payload`` and build the canonical order for ``store``.

    Issues accumulate; the result is ``ok`` only when there are none.
    """
    order = _mapping(payload)
    issues: list[ValidationIssue] = []

    if store not in STORES:
        issues.append(ValidationIssue(path="store", message=f"unknown store {store!r}"))

    gid = _to_str(order.get("admin_graphql_api_id") or "")
    if _is_blank(gid):
        issues.append(ValidationIssue(path="admin_graphql_api_id", message="missing"))

    order_id = order.get("id")
    if _is_blank(order_id):
        issues.append(ValidationIssue(path="id", message="missing"))

    order_number = order.get("order_number")
    if _is_blank(order_number):
        issues.append(ValidationIssue(path="order_number", message="missing"))

    primary = pick_primary_line_item(order)
    if primary is None:
        issues.append(ValidationIssue(path="line_items", message="no primary line item (non-gift, qty>0)"))

    customer_name = resolve_customer_name(order)
    if not customer_name:
        issues.append(ValidationIssue(path="customer_name", message="missing"))

    due_date = resolve_due_date(order)
    if not due_date:
        issues.append(ValidationIssue(path="due_date", message="missing (attributes-first)"))

    if issues:
        return NormalizeResult(ok=False, errors=issues)

    today = today or business_today()
    normalized = NormalizedOrder(
        id=f"{store}-{_scalar(order_number)}",
        store=store,
        shopify_order_id=_scalar(order_id),
        shopify_order_gid=gid,
        shopify_order_number=_scalar(order_number),
        customer_name=customer_name,
        product_title=_to_str(primary.get("title")),
        flavour=resolve_flavour(primary),
        notes=build_notes(order),
        currency=_to_str(order.get("presentment_currency") or order.get("currency") or ""),
        total_amount=_number(order.get("current_total_price") or order.get("total_price") or 0),
        due_date=due_date,
        delivery_method=resolve_delivery_method(order),
        priority=derive_priority(due_date, today),
        order_json=order,
    )
    return NormalizeResult(ok=True, normalized=normalized)
