# Overview: Service-layer operations for the account directory and session snapshots.

"""
Account Directory

Accounts are looked up by exact, case-sensitive username. A successful
signup, login or federated sign-in yields a SessionSnapshot: a detached copy
of the identity at that moment. Later changes to the Account are not
reflected in a snapshot that is already held by the client.

SECURITY NOTES:
- Credentials are compared as plain strings. There is no hashing, lockout or
  token issuance here; this directory backs a single local demo client.
- federated_sign_in() is a placeholder. It does NOT consult any identity
  provider and verifies nothing. A real deployment must delegate to an
  external provider behind its own interface instead of minting accounts.
"""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass, asdict

from flask import current_app

from ..extensions import db
from ..errors import ValidationError, DuplicateUsername, InvalidCredentials
from ..models import Account


GUEST_PREFIX = "google_"
GUEST_SUFFIX_LENGTH = 7
_GUEST_ALPHABET = string.ascii_lowercase + string.digits


@dataclass(frozen=True)
class SessionSnapshot:
    """The authenticated identity of the local client."""
    username: str
    display_name: str
    is_admin: bool = False

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_account(cls, account: Account) -> "SessionSnapshot":
        return cls(
            username=account.username,
            display_name=account.display_name or account.username,
            is_admin=bool(account.is_admin),
        )


def get_account(username: str) -> Account | None:
    if not username:
        return None
    return db.session.get(Account, username)


def list_accounts() -> list[Account]:
    return db.session.query(Account).order_by(Account.created_at.asc(), Account.username.asc()).all()


def signup(username: str, credential: str, display_name: str | None = None) -> SessionSnapshot:
    """
    Register a non-admin account and return its session snapshot.

    Raises:
        ValidationError: username or credential empty
        DuplicateUsername: username already registered
    """
    if not username or not credential:
        raise ValidationError("Username and password required")

    if get_account(username) is not None:
        raise DuplicateUsername("Username exists")

    account = Account(
        username=username,
        credential=credential,
        display_name=(display_name or "").strip() or username,
        is_admin=False,
    )
    db.session.add(account)
    db.session.commit()

    current_app.logger.info("Account created: %s", username)
    return SessionSnapshot.from_account(account)


def login(username: str, credential: str) -> SessionSnapshot:
    """
    Authenticate by exact username and credential match.

    Accounts without a credential (federated guests) never match.
    """
    account = get_account(username)
    if account is None or account.credential is None or account.credential != credential:
        current_app.logger.info("Failed login for %r", username)
        raise InvalidCredentials("Invalid credentials")

    current_app.logger.info("Login: %s (admin=%s)", account.username, account.is_admin)
    return SessionSnapshot.from_account(account)


def _generate_guest_username() -> str:
    while True:
        suffix = "".join(secrets.choice(_GUEST_ALPHABET) for _ in range(GUEST_SUFFIX_LENGTH))
        username = GUEST_PREFIX + suffix
        if get_account(username) is None:
            return username


def federated_sign_in() -> SessionSnapshot:
    """
    Create a throwaway guest account and sign it in.

    PLACEHOLDER: stands in for "sign in with an external provider". No
    provider is contacted and the resulting identity is unverified.
    """
    username = _generate_guest_username()
    account = Account(
        username=username,
        credential=None,
        display_name=username,
        is_admin=False,
    )
    db.session.add(account)
    db.session.commit()

    current_app.logger.info("Federated placeholder sign-in created guest %s", username)
    return SessionSnapshot.from_account(account)


def ensure_admin_account() -> Account:
    """Create the configured owner account if it does not exist yet."""
    username = current_app.config["STOREFRONT_ADMIN_USERNAME"]
    account = get_account(username)
    if account is not None:
        return account

    account = Account(
        username=username,
        credential=current_app.config["STOREFRONT_ADMIN_PASSWORD"],
        display_name=current_app.config["STOREFRONT_ADMIN_DISPLAY_NAME"],
        is_admin=True,
    )
    db.session.add(account)
    db.session.commit()
    return account
