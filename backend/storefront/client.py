# Overview: The local client facade; owns the session and basket and returns ActionResults.

"""
ShopClient is the single local client of the storefront: one session
snapshot, one basket, one thread of control. It is the boundary the
presentation layer talks to.

- Service errors (StorefrontError) come back as ActionResult failures.
- Unexpected exceptions are logged and come back as "internal_error".
- Every successful mutation of durable state rewrites the state record.
- Session and basket are process-lifetime only and never persisted.
"""

from __future__ import annotations

from flask import current_app

from .extensions import db
from .decorators import require_session, require_admin
from .errors import StorefrontError, NotFound, Forbidden
from .results import ActionResult
from .services import (
    account_service,
    basket_service,
    catalog_service,
    chat_service,
    state_service,
)
from .services.account_service import SessionSnapshot


class ShopClient:
    def __init__(self):
        self.session: SessionSnapshot | None = None
        self._basket: dict[str, int] = {}

    # ------------------------------------------------------------------
    # plumbing
    # ------------------------------------------------------------------

    def _run(self, description: str, func, *, persist: bool = False) -> ActionResult:
        try:
            data = func()
        except StorefrontError as e:
            db.session.rollback()
            return ActionResult.failure(e)
        except Exception:
            db.session.rollback()
            current_app.logger.exception("Failed to %s", description)
            return ActionResult(ok=False, error="Internal error", code="internal_error")

        if persist:
            state_service.save_state()
        return ActionResult.success(data)

    @property
    def basket(self) -> dict[str, int]:
        """The basket re-clamped to current stock. Always a copy."""
        return dict(self._reconcile_basket())

    def _reconcile_basket(self, catalog=None) -> dict[str, int]:
        # Stock can drop under the basket when another chat is confirmed
        if self._basket:
            self._basket = basket_service.reconcile(self._basket, catalog)
        return self._basket

    def _start_session(self, snapshot: SessionSnapshot) -> dict:
        if self.session is not None and self.session.username != snapshot.username:
            self._basket = {}
        self.session = snapshot
        return snapshot.to_dict()

    # ------------------------------------------------------------------
    # session
    # ------------------------------------------------------------------

    def signup(self, username: str, password: str, display_name: str | None = None) -> ActionResult:
        return self._run(
            "sign up",
            lambda: self._start_session(account_service.signup(username, password, display_name)),
            persist=True,
        )

    def login(self, username: str, password: str) -> ActionResult:
        return self._run(
            "log in",
            lambda: self._start_session(account_service.login(username, password)),
        )

    def federated_sign_in(self) -> ActionResult:
        """Placeholder external sign-in; see account_service.federated_sign_in."""
        return self._run(
            "sign in",
            lambda: self._start_session(account_service.federated_sign_in()),
            persist=True,
        )

    def sign_out(self) -> ActionResult:
        if self.session is not None:
            current_app.logger.info("Sign out: %s", self.session.username)
        self.session = None
        self._basket = {}
        return ActionResult.success()

    # ------------------------------------------------------------------
    # catalog & basket
    # ------------------------------------------------------------------

    def catalog(self) -> ActionResult:
        return self._run("list catalog", lambda: [i.to_dict() for i in catalog_service.list_items()])

    def _basket_catalog(self, item_id: str) -> dict:
        catalog = {item.id: item for item in catalog_service.list_items()}
        if item_id not in catalog:
            raise NotFound("Item not found", details={"item_id": item_id})
        self._reconcile_basket(catalog)
        return catalog

    def add_to_basket(self, item_id: str) -> ActionResult:
        def _op():
            catalog = self._basket_catalog(item_id)
            self._basket = basket_service.add(self._basket, item_id, catalog)
            return dict(self._basket)
        return self._run("add to basket", _op)

    def set_basket_quantity(self, item_id: str, qty) -> ActionResult:
        def _op():
            catalog = self._basket_catalog(item_id)
            self._basket = basket_service.set_quantity(self._basket, item_id, qty, catalog)
            return dict(self._basket)
        return self._run("set basket quantity", _op)

    def remove_from_basket(self, item_id: str) -> ActionResult:
        """Always allowed, so lines for items that no longer exist can be dropped."""
        self._basket = basket_service.remove(self._basket, item_id)
        return self._run("remove from basket", lambda: self.basket)

    def basket_summary(self) -> ActionResult:
        def _op():
            catalog = {item.id: item for item in catalog_service.list_items()}
            basket = self._reconcile_basket(catalog)
            return {
                "lines": basket_service.lines(basket, catalog),
                "total": basket_service.total(basket, catalog),
            }
        return self._run("summarize basket", _op)

    @require_session
    def checkout(self, payment_method: str = "CREDITS") -> ActionResult:
        """
        Fan the basket out into chats. An empty basket succeeds with no chat
        ids and changes nothing.
        """
        def _op():
            chat_ids = chat_service.checkout(self.session, self._basket, payment_method)
            if chat_ids:
                self._basket = {}
            return {"chat_ids": chat_ids}
        return self._run("check out", _op, persist=True)

    # ------------------------------------------------------------------
    # chats
    # ------------------------------------------------------------------

    @require_session
    def chats(self) -> ActionResult:
        return self._run("list chats", lambda: [c.to_dict() for c in chat_service.list_chats(self.session)])

    @require_session
    def get_chat(self, chat_id: str) -> ActionResult:
        def _op():
            chat = chat_service.get_chat(chat_id)
            if chat is None:
                raise NotFound("Chat not found", details={"chat_id": chat_id})
            if not self.session.is_admin and chat.buyer_username != self.session.username:
                raise Forbidden("Not your chat")
            return chat.to_dict()
        return self._run("load chat", _op)

    @require_session
    def send_message(self, chat_id: str, text: str) -> ActionResult:
        def _op():
            message = chat_service.send_message(chat_id, self.session, text)
            if message is None:
                raise NotFound("Chat not found", details={"chat_id": chat_id})
            return message.to_dict()
        return self._run("send message", _op, persist=True)

    @require_admin
    def claim_chat(self, chat_id: str) -> ActionResult:
        def _op():
            chat = chat_service.mark_claimed(chat_id)
            if chat is None:
                raise NotFound("Chat not found", details={"chat_id": chat_id})
            return chat.to_dict()
        return self._run("claim chat", _op, persist=True)

    @require_admin
    def confirm_sale(self, chat_id: str) -> ActionResult:
        return self._run("confirm sale", lambda: chat_service.confirm_sale(chat_id).to_dict(), persist=True)

    # ------------------------------------------------------------------
    # admin catalog management
    # ------------------------------------------------------------------

    @require_admin
    def restock(self, item_id: str, delta) -> ActionResult:
        def _op():
            item = catalog_service.restock(item_id, delta)
            if item is None:
                raise NotFound("Item not found", details={"item_id": item_id})
            return item.to_dict()
        return self._run("restock item", _op, persist=True)

    @require_admin
    def set_price(self, item_id: str, price) -> ActionResult:
        def _op():
            item = catalog_service.set_price(item_id, price)
            if item is None:
                raise NotFound("Item not found", details={"item_id": item_id})
            return item.to_dict()
        return self._run("set item price", _op, persist=True)

    @require_admin
    def create_item(self, name: str, desc: str = "", stock=0, price=0) -> ActionResult:
        return self._run(
            "create item",
            lambda: catalog_service.create_item(name, desc, stock, price).to_dict(),
            persist=True,
        )

