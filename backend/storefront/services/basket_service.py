# Overview: Basket operations; pure functions from (basket, catalog) to a new basket.

"""
Basket invariants

- A basket is a plain dict of item id -> quantity.
- Every operation returns a NEW dict; the input is never mutated.
- 0 < quantity <= item.stock for every key. Entries that would drop to 0
  are pruned on write, so readers never see zero-quantity lines.

Each function takes an optional `catalog` mapping of item id -> item (any
object with .stock, .price and .name). When omitted the current catalog is
read from the database.
"""

from __future__ import annotations

import math
from typing import Mapping

from .catalog_service import list_items


def _catalog(catalog: Mapping | None) -> Mapping:
    if catalog is not None:
        return catalog
    return {item.id: item for item in list_items()}


def _coerce_quantity(qty) -> int:
    """Floor finite numbers; anything else (NaN, inf, junk strings) is 0."""
    if isinstance(qty, bool) or qty is None:
        return 0
    try:
        value = float(qty)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(value):
        return 0
    return math.floor(value)


def _with_quantity(basket: Mapping, item_id: str, qty: int) -> dict:
    updated = dict(basket)
    if qty > 0:
        updated[item_id] = qty
    else:
        updated.pop(item_id, None)
    return updated


def add(basket: Mapping, item_id: str, catalog: Mapping | None = None) -> dict:
    """Add one unit, never exceeding stock. Unknown or sold-out items are ignored."""
    item = _catalog(catalog).get(item_id)
    if item is None or item.stock <= 0:
        return dict(basket)

    current = basket.get(item_id, 0)
    if current + 1 > item.stock:
        return dict(basket)
    return _with_quantity(basket, item_id, current + 1)


def set_quantity(basket: Mapping, item_id: str, qty, catalog: Mapping | None = None) -> dict:
    item = _catalog(catalog).get(item_id)
    if item is None:
        return dict(basket)

    clamped = max(0, min(item.stock, _coerce_quantity(qty)))
    return _with_quantity(basket, item_id, clamped)


def remove(basket: Mapping, item_id: str) -> dict:
    updated = dict(basket)
    updated.pop(item_id, None)
    return updated


def total(basket: Mapping, catalog: Mapping | None = None):
    """Sum of quantity * price. Lines whose item no longer exists count 0."""
    items = _catalog(catalog)
    amount = 0
    for item_id, qty in basket.items():
        item = items.get(item_id)
        if item is None:
            continue
        amount += item.price * qty
    return amount


def lines(basket: Mapping, catalog: Mapping | None = None) -> list[dict]:
    """Rows for the basket summary, in basket order, skipping missing items."""
    items = _catalog(catalog)
    rows = []
    for item_id, qty in basket.items():
        item = items.get(item_id)
        if item is None or qty <= 0:
            continue
        rows.append({
            "item_id": item_id,
            "name": item.name,
            "quantity": qty,
            "unit_price": item.price,
            "line_total": item.price * qty,
        })
    return rows


def reconcile(basket: Mapping, catalog: Mapping | None = None) -> dict:
    """
    Re-apply the stock bound to every line.

    Stock can fall after an item went into the basket (another chat was
    confirmed), so checkout reconciles before fanning out chats.
    """
    items = _catalog(catalog)
    result = {}
    for item_id, qty in basket.items():
        item = items.get(item_id)
        if item is None:
            continue
        clamped = max(0, min(item.stock, _coerce_quantity(qty)))
        if clamped > 0:
            result[item_id] = clamped
    return result
