# Overview: Order/chat engine; checkout fan-out and the per-unit chat lifecycle.

"""
Order/Chat Engine

Checkout turns a basket into one Order plus one Chat per purchased unit.
Each Chat then moves through a single tagged status:

    OPEN -> CLAIMED -> COMPLETED

- mark_claimed: OPEN -> CLAIMED. Repeats and completed chats are ignored.
- confirm_sale: OPEN/CLAIMED -> COMPLETED, and the only place a chat touches
  inventory (one unit out of stock). An OPEN chat passes through CLAIMED
  first. A COMPLETED chat is left alone, so stock is decremented exactly
  once per chat no matter how often the seller confirms.

Messages carry the sender from the authenticated session, never from a
caller-supplied name. Only the buyer of a chat or an admin may post.
"""

from __future__ import annotations

from typing import Mapping

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..errors import ValidationError, Unauthenticated, Forbidden, ChatNotFound
from ..models import Chat, ChatMessage, Order
from ..models.orders import (
    PAYMENT_CREDITS,
    PAYMENT_ROBUX,
    VALID_PAYMENT_METHODS,
    CHAT_OPEN,
    CHAT_CLAIMED,
    CHAT_COMPLETED,
)
from ..time_utils import utcnow
from . import basket_service
from .account_service import SessionSnapshot
from .catalog_service import decrement_stock, list_items
from .sequence_service import next_identifier, PREFIX_CHAT, PREFIX_ORDER


_TRANSITIONS = {
    CHAT_OPEN: {CHAT_CLAIMED},
    CHAT_CLAIMED: {CHAT_COMPLETED},
    CHAT_COMPLETED: set(),
}


def normalize_payment_method(value) -> str:
    method = (str(value or "")).upper().strip() or PAYMENT_CREDITS
    if method not in VALID_PAYMENT_METHODS:
        raise ValidationError("payment_method must be CREDITS or ROBUX")
    return method


def opening_message(item_name: str, payment_method: str) -> str:
    suffix = " (paying with Robux)" if payment_method == PAYMENT_ROBUX else ""
    return f"Hi, I'd like to buy {item_name}{suffix}."


def _advance(chat: Chat, target: str) -> bool:
    """Apply one lifecycle step. Returns False for repeats and out-of-order steps."""
    if target not in _TRANSITIONS.get(chat.status, set()):
        return False

    chat.status = target
    if target == CHAT_CLAIMED:
        chat.claimed_at = utcnow()
    elif target == CHAT_COMPLETED:
        chat.completed_at = utcnow()
    return True


def _next_position() -> int:
    current = db.session.query(func.max(Chat.position)).scalar()
    return (current or 0) + 1


def get_chat(chat_id: str) -> Chat | None:
    if not chat_id:
        return None
    return db.session.get(Chat, chat_id)


def list_chats(session: SessionSnapshot | None = None) -> list[Chat]:
    """Admins (and callers without a session filter) see every chat; buyers see their own."""
    q = db.session.query(Chat)
    if session is not None and not session.is_admin:
        q = q.filter(Chat.buyer_username == session.username)
    return q.order_by(Chat.position.asc()).all()


def list_orders(session: SessionSnapshot | None = None) -> list[Order]:
    q = db.session.query(Order)
    if session is not None and not session.is_admin:
        q = q.filter(Order.buyer_username == session.username)
    return q.order_by(Order.created_at.asc(), Order.id.asc()).all()


def checkout(
    session: SessionSnapshot | None,
    basket: Mapping[str, int],
    payment_method=PAYMENT_CREDITS,
) -> list[str]:
    """
    Turn the basket into one chat per unit and return the new chat ids.

    Raises Unauthenticated without touching any state when there is no
    session. An empty basket (after reconciling against current stock)
    creates nothing and returns [].
    """
    if session is None:
        raise Unauthenticated("Log in to check out")

    method = normalize_payment_method(payment_method)
    catalog = {item.id: item for item in list_items()}
    lines = basket_service.reconcile(basket, catalog)
    if not lines:
        return []

    order = Order(
        id=next_identifier(PREFIX_ORDER),
        buyer_username=session.username,
        payment_method=method,
        total=basket_service.total(lines, catalog),
    )
    db.session.add(order)

    position = _next_position()
    chat_ids = []
    for item_id, qty in lines.items():
        item = catalog[item_id]
        for _ in range(qty):
            chat = Chat(
                id=next_identifier(PREFIX_CHAT),
                order=order,
                buyer_username=session.username,
                buyer_display=session.display_name,
                item_id=item.id,
                item_name=item.name,
                payment_method=method,
                status=CHAT_OPEN,
                position=position,
            )
            chat.messages.append(ChatMessage(
                sender=session.username,
                text=opening_message(item.name, method),
            ))
            db.session.add(chat)
            chat_ids.append(chat.id)
            position += 1

    db.session.commit()
    current_app.logger.info(
        "Checkout %s by %s: %d chat(s) via %s", order.id, session.username, len(chat_ids), method
    )
    return chat_ids


def send_message(chat_id: str, session: SessionSnapshot | None, text: str) -> ChatMessage | None:
    """
    Append a message as the session's user. Unknown chat -> None.

    Raises:
        Unauthenticated: no session
        Forbidden: session is neither the buyer nor an admin
        ValidationError: empty text
    """
    if session is None:
        raise Unauthenticated("Log in to send messages")

    chat = get_chat(chat_id)
    if chat is None:
        return None

    if not session.is_admin and session.username != chat.buyer_username:
        raise Forbidden("Only the buyer or the seller may post in this chat")

    text = (text or "").strip()
    if not text:
        raise ValidationError("Message text is required")

    message = ChatMessage(sender=session.username, text=text)
    chat.messages.append(message)
    db.session.commit()
    return message


def mark_claimed(chat_id: str) -> Chat | None:
    """OPEN -> CLAIMED. Idempotent; unknown chat -> None."""
    chat = get_chat(chat_id)
    if chat is None:
        return None

    if _advance(chat, CHAT_CLAIMED):
        db.session.commit()
        current_app.logger.info("Chat %s claimed", chat.id)
    return chat


def confirm_sale(chat_id: str) -> Chat:
    """
    Complete the chat and take its unit out of stock, exactly once.

    Raises ChatNotFound for unknown ids. Confirming a completed chat is a
    no-op that returns the chat unchanged.
    """
    chat = get_chat(chat_id)
    if chat is None:
        raise ChatNotFound("Chat not found", details={"chat_id": chat_id})

    if chat.status == CHAT_COMPLETED:
        return chat

    if chat.status == CHAT_OPEN:
        _advance(chat, CHAT_CLAIMED)
    _advance(chat, CHAT_COMPLETED)
    decrement_stock(chat.item_id, commit=False)
    db.session.commit()

    current_app.logger.info("Sale confirmed for chat %s (item %s)", chat.id, chat.item_id)
    return chat
