# Overview: Durable record export/import and the startup load/seed routine.

"""
State Store

Working state lives in the default (in-memory) database. The durable record
is a single JSON document

    {"users": [...], "items": [...], "chats": [...], "orders": [...]}

stored in StateRecord under a fixed namespace on the "durable" bind.

- load_state() runs once at startup: import the record if there is one,
  otherwise seed the owner account and catalog. Either way the record is
  rewritten so it reflects the working tables.
- save_state() rewrites the record; the client facade calls it after every
  mutation.
- The session is never part of the record.

Legacy compatibility: older records used camelCase keys (displayName,
isAdmin, userDisplay, robux, epoch-millisecond "time" values).
import_state() accepts both layouts.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..errors import ValidationError
from ..models import Account, Item, Chat, ChatMessage, Order, StateRecord, IdentifierSequence
from ..models.orders import (
    PAYMENT_CREDITS,
    PAYMENT_ROBUX,
    VALID_CHAT_STATUSES,
    CHAT_OPEN,
    CHAT_CLAIMED,
    CHAT_COMPLETED,
)
from ..time_utils import parse_timestamp, utcnow
from .account_service import ensure_admin_account, list_accounts
from .catalog_service import seed_catalog, list_items
from .chat_service import normalize_payment_method, list_chats, list_orders
from .sequence_service import sync_sequence, PREFIX_ITEM, PREFIX_CHAT, PREFIX_ORDER


def _namespace() -> str:
    return current_app.config["STOREFRONT_STATE_NAMESPACE"]


def _first(data: dict, *keys, default=None):
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _text(data: dict, *keys, default=None, required: bool = False):
    value = _first(data, *keys, default=default)
    if value is None or value == "":
        if required:
            raise ValidationError(f"missing field: {keys[0]}")
        return value
    if not isinstance(value, str):
        raise ValidationError(f"field {keys[0]!r} must be a string")
    return value


def _identifier(data: dict) -> str:
    value = data.get("id")
    if isinstance(value, bool) or not isinstance(value, (str, int)) or value == "":
        raise ValidationError(f"invalid id: {value!r}")
    return str(value)


def _parse_timestamp(value) -> datetime | None:
    try:
        return parse_timestamp(value)
    except (TypeError, ValueError, OverflowError, OSError):
        raise ValidationError(f"invalid timestamp: {value!r}")


def _chat_status(data: dict) -> str:
    status = data.get("status") or ""
    if not isinstance(status, str):
        raise ValidationError(f"invalid chat status: {status!r}")
    status = status.upper().strip()
    if status:
        if status not in VALID_CHAT_STATUSES:
            raise ValidationError(f"invalid chat status: {status}")
        return status
    if data.get("completed"):
        return CHAT_COMPLETED
    if data.get("claimed"):
        return CHAT_CLAIMED
    return CHAT_OPEN


def _chat_payment_method(data: dict) -> str:
    if "payment_method" in data or "paymentMethod" in data:
        return normalize_payment_method(_first(data, "payment_method", "paymentMethod"))
    return PAYMENT_ROBUX if data.get("robux") else PAYMENT_CREDITS


def _require_list(document: dict, key: str) -> list:
    value = document.get(key, [])
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError(f"'{key}' must be a list")
    if not all(isinstance(entry, dict) for entry in value):
        raise ValidationError(f"every entry in '{key}' must be an object")
    return value


# =============================================================================
# Export / import
# =============================================================================

def export_state() -> dict:
    """Serialize the working tables into the durable record layout."""
    return {
        "users": [a.to_dict(include_credential=True) for a in list_accounts()],
        "items": [i.to_dict() for i in list_items()],
        "chats": [c.to_dict() for c in list_chats()],
        "orders": [o.to_dict() for o in list_orders()],
    }


def clear_working_state() -> None:
    db.session.query(ChatMessage).delete()
    db.session.query(Chat).delete()
    db.session.query(Order).delete()
    db.session.query(Item).delete()
    db.session.query(Account).delete()
    db.session.query(IdentifierSequence).delete()
    db.session.flush()


def import_state(document: dict) -> None:
    """
    Replace the working tables with the contents of a durable record.

    Raises ValidationError (and leaves the working tables untouched) if the
    document is malformed.
    """
    if not isinstance(document, dict):
        raise ValidationError("state document must be an object")

    users = _require_list(document, "users")
    items = _require_list(document, "items")
    chats = _require_list(document, "chats")
    orders = _require_list(document, "orders")

    try:
        clear_working_state()

        for data in users:
            username = _text(data, "username", required=True)
            db.session.add(Account(
                username=username,
                credential=_text(data, "credential", "password"),
                display_name=_text(data, "display_name", "displayName", default=username),
                is_admin=bool(_first(data, "is_admin", "isAdmin", default=False)),
                created_at=_parse_timestamp(data.get("created_at")) or utcnow(),
            ))

        for position, data in enumerate(items, start=1):
            item_id = _identifier(data)
            stock = int(data.get("stock", 0))
            price = float(data.get("price", 0))
            if stock < 0 or price < 0:
                raise ValidationError(f"item {item_id!r} has negative stock or price")
            db.session.add(Item(
                id=item_id,
                name=_text(data, "name", required=True),
                description=_text(data, "desc", "description", default=""),
                stock=stock,
                price=price,
                position=position,
            ))

        order_ids = set()
        for data in orders:
            order_id = _identifier(data)
            order_ids.add(order_id)
            db.session.add(Order(
                id=order_id,
                buyer_username=_text(data, "buyer_username", "buyerUsername", "user", required=True),
                payment_method=_chat_payment_method(data),
                total=float(data.get("total", 0)),
                created_at=_parse_timestamp(_first(data, "created_at", "createdAt")) or utcnow(),
            ))
        db.session.flush()

        for position, data in enumerate(chats, start=1):
            order_id = _text(data, "order_id", "orderId")
            buyer = _text(data, "buyer_username", "buyerUsername", "user", required=True)
            chat = Chat(
                id=_identifier(data),
                order_id=order_id if order_id in order_ids else None,
                buyer_username=buyer,
                buyer_display=_text(data, "buyer_display", "buyerDisplay", "userDisplay", default=buyer),
                item_id=_text(data, "item_id", "itemId", required=True),
                item_name=_text(data, "item_name", "itemName", required=True),
                payment_method=_chat_payment_method(data),
                status=_chat_status(data),
                created_at=_parse_timestamp(_first(data, "created_at", "createdAt")) or utcnow(),
                claimed_at=_parse_timestamp(data.get("claimed_at")),
                completed_at=_parse_timestamp(data.get("completed_at")),
                position=position,
            )
            for message in _require_list(data, "messages"):
                chat.messages.append(ChatMessage(
                    sender=_text(message, "from", required=True),
                    text=_text(message, "text", required=True),
                    sent_at=_parse_timestamp(_first(message, "timestamp", "time")) or utcnow(),
                ))
            db.session.add(chat)
        db.session.flush()

        sync_sequence(PREFIX_ITEM, [i.id for i in db.session.query(Item.id)])
        sync_sequence(PREFIX_CHAT, [c.id for c in db.session.query(Chat.id)])
        sync_sequence(PREFIX_ORDER, [o.id for o in db.session.query(Order.id)])
        db.session.commit()
    except (KeyError, TypeError, ValueError, OverflowError, AttributeError, SQLAlchemyError) as exc:
        db.session.rollback()
        if isinstance(exc, ValidationError):
            raise
        raise ValidationError(f"malformed state document: {exc}")


# =============================================================================
# Durable record
# =============================================================================

def save_state() -> StateRecord:
    namespace = _namespace()
    payload = export_state()

    record = db.session.get(StateRecord, namespace)
    if record is None:
        record = StateRecord(namespace=namespace, payload=payload)
        db.session.add(record)
    else:
        record.payload = payload
        record.updated_at = utcnow()
    db.session.commit()
    return record


def read_record() -> dict | None:
    record = db.session.get(StateRecord, _namespace())
    return record.payload if record else None


def seed_state() -> None:
    ensure_admin_account()
    if current_app.config.get("STOREFRONT_SEED_CATALOG", True):
        seed_catalog()


def load_state() -> str:
    """
    Startup routine. Returns "loaded" when a record was imported, otherwise
    "seeded" (no record, or a record that could not be read).
    """
    payload = read_record()
    outcome = "seeded"

    if payload is not None:
        try:
            import_state(payload)
            outcome = "loaded"
        except ValidationError as exc:
            current_app.logger.warning(
                "Ignoring unreadable state record %r: %s", _namespace(), exc
            )

    if outcome == "seeded":
        clear_working_state()
        db.session.commit()
        seed_state()

    ensure_admin_account()
    save_state()
    return outcome


def reset_state() -> None:
    """Discard all working state, reseed, and overwrite the durable record."""
    clear_working_state()
    db.session.commit()
    seed_state()
    save_state()
