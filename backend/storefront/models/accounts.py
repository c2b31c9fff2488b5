from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class Account(db.Model):
    """
    Registered storefront account.

    Username is the primary key and is compared case-sensitively.
    Federated guests have no credential and can only come back through
    another federated sign-in. Credentials are stored as given: this is a
    local demo directory, not an authentication system.
    """
    __tablename__ = "accounts"

    username = db.Column(db.String(64), primary_key=True)
    credential = db.Column(db.String(255), nullable=True)
    display_name = db.Column(db.String(128), nullable=False)
    is_admin = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self, include_credential: bool = False) -> dict:
        data = {
            "username": self.username,
            "display_name": self.display_name,
            "is_admin": self.is_admin,
            "created_at": to_utc_z(self.created_at),
        }
        if include_credential:
            data["credential"] = self.credential
        return data
