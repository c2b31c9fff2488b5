from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class StateRecord(db.Model):
    """
    Durable mirror of the working tables.

    One row per namespace holding the serialized {users, items, chats, orders}
    document. Lives on the "durable" bind so the working database can stay
    in memory.
    """
    __bind_key__ = "durable"
    __tablename__ = "state_records"

    namespace = db.Column(db.String(128), primary_key=True)
    payload = db.Column(db.JSON, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "namespace": self.namespace,
            "payload": self.payload,
            "updated_at": to_utc_z(self.updated_at),
        }


class IdentifierSequence(db.Model):
    """
    Monotonic per-prefix counters for item, chat and order ids.

    WHY: ids must never collide for the lifetime of the process, including
    ids imported from an earlier durable record (see state_service).
    """
    __tablename__ = "identifier_sequences"

    prefix = db.Column(db.String(8), primary_key=True)
    next_number = db.Column(db.Integer, nullable=False, default=1)

    def to_dict(self) -> dict:
        return {
            "prefix": self.prefix,
            "next_number": self.next_number,
        }
