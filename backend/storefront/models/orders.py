from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .catalog import as_number


PAYMENT_CREDITS = "CREDITS"
PAYMENT_ROBUX = "ROBUX"
VALID_PAYMENT_METHODS = {PAYMENT_CREDITS, PAYMENT_ROBUX}

CHAT_OPEN = "OPEN"
CHAT_CLAIMED = "CLAIMED"
CHAT_COMPLETED = "COMPLETED"
VALID_CHAT_STATUSES = {CHAT_OPEN, CHAT_CLAIMED, CHAT_COMPLETED}


class Order(db.Model):
    """
    One checkout. Groups the per-unit chats it produced.

    WHY: chats are the unit of fulfilment, but the buyer paid for a basket;
    the order keeps the basket total and payment method together.
    """
    __tablename__ = "orders"

    id = db.Column(db.String(64), primary_key=True)
    buyer_username = db.Column(db.String(64), nullable=False, index=True)
    payment_method = db.Column(db.String(16), nullable=False, default=PAYMENT_CREDITS)
    total = db.Column(db.Float, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    chats = db.relationship(
        "Chat",
        back_populates="order",
        order_by="Chat.position",
        lazy=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "buyer_username": self.buyer_username,
            "payment_method": self.payment_method,
            "total": as_number(self.total),
            "chat_ids": [c.id for c in self.chats],
            "created_at": to_utc_z(self.created_at),
        }


class Chat(db.Model):
    """
    Buyer/seller handoff thread for exactly one purchased unit.

    Lifecycle: OPEN -> CLAIMED -> COMPLETED. Only the transition into
    COMPLETED touches inventory, and it fires once.
    """
    __tablename__ = "chats"
    __table_args__ = (
        db.Index("ix_chats_buyer_status", "buyer_username", "status"),
    )

    id = db.Column(db.String(64), primary_key=True)
    order_id = db.Column(db.String(64), db.ForeignKey("orders.id"), nullable=True, index=True)

    buyer_username = db.Column(db.String(64), nullable=False)
    buyer_display = db.Column(db.String(128), nullable=False)

    # Item name is copied at checkout so the thread reads the same after edits
    item_id = db.Column(db.String(64), nullable=False, index=True)
    item_name = db.Column(db.String(128), nullable=False)

    payment_method = db.Column(db.String(16), nullable=False, default=PAYMENT_CREDITS)
    status = db.Column(db.String(16), nullable=False, default=CHAT_OPEN, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    claimed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    position = db.Column(db.Integer, nullable=False, default=0, index=True)

    order = db.relationship("Order", back_populates="chats")
    messages = db.relationship(
        "ChatMessage",
        back_populates="chat",
        order_by="ChatMessage.id",
        cascade="all, delete-orphan",
        lazy=True,
    )

    @property
    def claimed(self) -> bool:
        return self.status in {CHAT_CLAIMED, CHAT_COMPLETED}

    @property
    def completed(self) -> bool:
        return self.status == CHAT_COMPLETED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "buyer_username": self.buyer_username,
            "buyer_display": self.buyer_display,
            "item_id": self.item_id,
            "item_name": self.item_name,
            "messages": [m.to_dict() for m in self.messages],
            "payment_method": self.payment_method,
            "status": self.status,
            "claimed": self.claimed,
            "completed": self.completed,
            "created_at": to_utc_z(self.created_at),
            "claimed_at": to_utc_z(self.claimed_at),
            "completed_at": to_utc_z(self.completed_at),
        }


class ChatMessage(db.Model):
    __tablename__ = "chat_messages"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    chat_id = db.Column(db.String(64), db.ForeignKey("chats.id"), nullable=False, index=True)
    sender = db.Column(db.String(64), nullable=False)
    text = db.Column(db.Text, nullable=False)
    sent_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    chat = db.relationship("Chat", back_populates="messages")

    def to_dict(self) -> dict:
        return {
            "from": self.sender,
            "text": self.text,
            "timestamp": to_utc_z(self.sent_at),
        }
