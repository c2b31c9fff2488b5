# Overview: Service-layer operations for the catalog; stock and price mutations.

"""
Catalog invariants (authoritative)

- stock is an integer >= 0 at all times; sale confirmation floors at zero.
- price is a number >= 0.
- Items are never deleted.
- Unknown item ids on restock/set_price are no-ops (the service returns None)
  so a stale admin screen cannot crash the client.
"""

from __future__ import annotations

import math

from sqlalchemy import func

from ..extensions import db
from ..errors import ValidationError
from ..models import Item
from .sequence_service import next_identifier, PREFIX_ITEM


SEED_ITEMS = [
    {"id": "b1", "name": "Normal Brainrot", "desc": "Basic Brainrot.", "stock": 5, "price": 100},
    {"id": "b2", "name": "Gold Brainrot", "desc": "Shiny Gold Brainrot.", "stock": 3, "price": 200},
    {"id": "b3", "name": "Diamond Brainrot", "desc": "Premium Diamond Brainrot.", "stock": 2, "price": 500},
    {"id": "b4", "name": "Rainbow Brainrot", "desc": "Colorful Rainbow Brainrot.", "stock": 2, "price": 750},
    {"id": "b5", "name": "Other Brainrots", "desc": "Special/Other Brainrots.", "stock": 1, "price": 1000},
]


def _coerce_stock(value, field: str = "stock") -> int:
    # Integers only; bool is an int subclass and is rejected too
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            raise ValidationError(f"{field} must be an integer")
        return int(value)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    raise ValidationError(f"{field} must be an integer")


def _coerce_price(value) -> float:
    if isinstance(value, bool):
        raise ValidationError("price must be a number")
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise ValidationError("price must be a number")
    if not math.isfinite(price):
        raise ValidationError("price must be a finite number")
    if price < 0:
        raise ValidationError("price must be >= 0")
    return price


def _next_position() -> int:
    current = db.session.query(func.max(Item.position)).scalar()
    return (current or 0) + 1


def list_items() -> list[Item]:
    return db.session.query(Item).order_by(Item.position.asc(), Item.id.asc()).all()


def get_item(item_id: str) -> Item | None:
    if not item_id:
        return None
    return db.session.get(Item, item_id)


def restock(item_id: str, delta) -> Item | None:
    """Increase stock by a positive integer delta. Unknown item -> None."""
    delta = _coerce_stock(delta, field="delta")
    if delta <= 0:
        raise ValidationError("delta must be > 0")

    item = get_item(item_id)
    if item is None:
        return None

    item.stock = item.stock + delta
    db.session.commit()
    return item


def set_price(item_id: str, price) -> Item | None:
    """Replace the price. Unknown item -> None."""
    price = _coerce_price(price)

    item = get_item(item_id)
    if item is None:
        return None

    item.price = price
    db.session.commit()
    return item


def create_item(name: str, desc: str | None = "", stock=0, price=0) -> Item:
    """Append a new item under a fresh "i<n>" id."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("Item name is required")

    stock = _coerce_stock(stock)
    if stock < 0:
        raise ValidationError("stock must be >= 0")
    price = _coerce_price(price)

    item = Item(
        id=next_identifier(PREFIX_ITEM),
        name=name,
        description=(desc or "").strip(),
        stock=stock,
        price=price,
        position=_next_position(),
    )
    db.session.add(item)
    db.session.commit()
    return item


def decrement_stock(item_id: str, *, commit: bool = True) -> Item | None:
    """
    Take one unit out of stock, flooring at zero.

    Only sale confirmation calls this; it passes commit=False so the stock
    change and the chat completion land in the same transaction.
    """
    item = get_item(item_id)
    if item is None:
        return None

    item.stock = max(0, item.stock - 1)
    if commit:
        db.session.commit()
    return item


def seed_catalog() -> list[Item]:
    """Insert any seed items that are missing. Returns the items created."""
    created = []
    for entry in SEED_ITEMS:
        if get_item(entry["id"]) is not None:
            continue
        item = Item(
            id=entry["id"],
            name=entry["name"],
            description=entry["desc"],
            stock=entry["stock"],
            price=entry["price"],
            position=_next_position(),
        )
        db.session.add(item)
        db.session.flush()
        created.append(item)
    db.session.commit()
    return created
