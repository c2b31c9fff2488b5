from __future__ import annotations

from ..extensions import db


def as_number(value):
    """Render whole-number prices as ints so records stay stable across reloads."""
    if value is None:
        return None
    value = float(value)
    return int(value) if value.is_integer() else value


class Item(db.Model):
    """
    Purchasable catalog entry.

    Stock only moves through restock (admin) and sale confirmation, and is
    never allowed below zero.
    """
    __tablename__ = "items"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_items_stock_non_negative"),
        db.CheckConstraint("price >= 0", name="ck_items_price_non_negative"),
    )

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    stock = db.Column(db.Integer, nullable=False, default=0)
    price = db.Column(db.Float, nullable=False, default=0)

    # Insertion order for the catalog grid
    position = db.Column(db.Integer, nullable=False, default=0, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "desc": self.description,
            "stock": self.stock,
            "price": as_number(self.price),
        }
