"""
Order/chat engine tests.

Verifies:
- Checkout fans a basket out into one chat per unit plus one order
- Checkout without a session changes nothing
- Messages are attributed to the session and gated to buyer/admin
- The OPEN -> CLAIMED -> COMPLETED lifecycle decrements stock exactly once
"""

import pytest

from storefront.errors import Unauthenticated, Forbidden, ValidationError, ChatNotFound
from storefront.models import Chat, Order
from storefront.services import chat_service, catalog_service
from storefront.services.account_service import SessionSnapshot


ALICE = SessionSnapshot(username="alice", display_name="Alice")
MALLORY = SessionSnapshot(username="mallory", display_name="Mallory")
OWNER = SessionSnapshot(username="SammySelling", display_name="Sammy (Owner)", is_admin=True)


# =============================================================================
# CHECKOUT
# =============================================================================


class TestCheckout:
    def test_one_chat_per_unit(self, seed):
        chat_ids = chat_service.checkout(ALICE, {"b1": 2}, "CREDITS")

        assert len(chat_ids) == 2
        assert len(set(chat_ids)) == 2
        for chat_id in chat_ids:
            chat = chat_service.get_chat(chat_id)
            assert chat.item_id == "b1"
            assert chat.item_name == "Normal Brainrot"
            assert chat.buyer_username == "alice"
            assert chat.buyer_display == "Alice"
            assert chat.status == "OPEN"
            assert chat.claimed is False
            assert chat.completed is False
            assert len(chat.messages) == 1
            assert chat.messages[0].sender == "alice"
            assert chat.messages[0].text == "Hi, I'd like to buy Normal Brainrot."

        # Stock only moves on confirmation
        assert catalog_service.get_item("b1").stock == 5

    def test_robux_opening_message(self, seed):
        [chat_id] = chat_service.checkout(ALICE, {"b3": 1}, "robux")
        chat = chat_service.get_chat(chat_id)
        assert chat.payment_method == "ROBUX"
        assert chat.messages[0].text == "Hi, I'd like to buy Diamond Brainrot (paying with Robux)."

    def test_records_one_order(self, seed):
        chat_ids = chat_service.checkout(ALICE, {"b1": 2, "b2": 1}, "CREDITS")

        orders = chat_service.list_orders()
        assert len(orders) == 1
        order = orders[0].to_dict()
        assert order["buyer_username"] == "alice"
        assert order["total"] == 400
        assert sorted(order["chat_ids"]) == sorted(chat_ids)

    def test_requires_session(self, seed):
        with pytest.raises(Unauthenticated):
            chat_service.checkout(None, {"b1": 1}, "CREDITS")
        assert Chat.query.count() == 0
        assert Order.query.count() == 0

    def test_empty_basket_is_noop(self, seed):
        assert chat_service.checkout(ALICE, {}, "CREDITS") == []
        assert Chat.query.count() == 0
        assert Order.query.count() == 0

    def test_basket_is_reconciled_against_stock(self, seed):
        chat_ids = chat_service.checkout(ALICE, {"b5": 4, "gone": 1}, "CREDITS")
        assert len(chat_ids) == 1

    def test_rejects_unknown_payment_method(self, seed):
        with pytest.raises(ValidationError):
            chat_service.checkout(ALICE, {"b1": 1}, "BITCOIN")

    def test_ids_stay_unique_across_checkouts(self, seed):
        ids = []
        for _ in range(3):
            ids.extend(chat_service.checkout(ALICE, {"b1": 2}, "CREDITS"))
        assert len(ids) == len(set(ids)) == 6


# =============================================================================
# MESSAGES
# =============================================================================


class TestSendMessage:
    def test_buyer_and_admin_can_post(self, seed):
        [chat_id] = chat_service.checkout(ALICE, {"b1": 1}, "CREDITS")

        chat_service.send_message(chat_id, ALICE, "When can we trade?")
        chat_service.send_message(chat_id, OWNER, "  Now works.  ")

        messages = [m.to_dict() for m in chat_service.get_chat(chat_id).messages]
        assert [(m["from"], m["text"]) for m in messages] == [
            ("alice", "Hi, I'd like to buy Normal Brainrot."),
            ("alice", "When can we trade?"),
            ("SammySelling", "Now works."),
        ]
        assert all(m["timestamp"].endswith("Z") for m in messages)

    def test_other_users_are_rejected(self, seed):
        [chat_id] = chat_service.checkout(ALICE, {"b1": 1}, "CREDITS")
        with pytest.raises(Forbidden):
            chat_service.send_message(chat_id, MALLORY, "I am alice")
        assert len(chat_service.get_chat(chat_id).messages) == 1

    def test_requires_session(self, seed):
        [chat_id] = chat_service.checkout(ALICE, {"b1": 1}, "CREDITS")
        with pytest.raises(Unauthenticated):
            chat_service.send_message(chat_id, None, "hello")

    def test_unknown_chat_is_noop(self, seed):
        assert chat_service.send_message("c999", ALICE, "hello") is None

    def test_empty_text_rejected(self, seed):
        [chat_id] = chat_service.checkout(ALICE, {"b1": 1}, "CREDITS")
        with pytest.raises(ValidationError):
            chat_service.send_message(chat_id, ALICE, "   ")


# =============================================================================
# LIFECYCLE
# =============================================================================


class TestLifecycle:
    def test_claim_is_idempotent(self, seed):
        [chat_id] = chat_service.checkout(ALICE, {"b1": 1}, "CREDITS")

        chat = chat_service.mark_claimed(chat_id)
        claimed_at = chat.claimed_at
        assert chat.status == "CLAIMED"
        assert chat.claimed is True

        chat = chat_service.mark_claimed(chat_id)
        assert chat.status == "CLAIMED"
        assert chat.claimed_at == claimed_at

    def test_claim_unknown_is_noop(self, seed):
        assert chat_service.mark_claimed("c404") is None

    def test_confirm_decrements_once(self, seed):
        first, second = chat_service.checkout(ALICE, {"b1": 2}, "CREDITS")
        chat_service.mark_claimed(first)

        chat = chat_service.confirm_sale(first)
        assert chat.completed is True
        assert chat.status == "COMPLETED"
        assert catalog_service.get_item("b1").stock == 4

        chat_service.confirm_sale(first)
        assert catalog_service.get_item("b1").stock == 4

        other = chat_service.get_chat(second)
        assert other.status == "OPEN"

    def test_confirm_open_chat_passes_through_claimed(self, seed):
        [chat_id] = chat_service.checkout(ALICE, {"b2": 1}, "CREDITS")
        chat = chat_service.confirm_sale(chat_id)
        assert chat.claimed is True
        assert chat.completed is True
        assert chat.claimed_at is not None
        assert chat.completed_at is not None

    def test_claim_after_completion_keeps_completed(self, seed):
        [chat_id] = chat_service.checkout(ALICE, {"b2": 1}, "CREDITS")
        chat_service.confirm_sale(chat_id)
        assert chat_service.mark_claimed(chat_id).status == "COMPLETED"

    def test_confirm_unknown_raises(self, seed):
        with pytest.raises(ChatNotFound):
            chat_service.confirm_sale("c404")

    def test_stock_never_negative(self, seed):
        # b5 has one unit, but two chats can be opened before either is confirmed
        [first] = chat_service.checkout(ALICE, {"b5": 1}, "CREDITS")
        [second] = chat_service.checkout(ALICE, {"b5": 1}, "CREDITS")
        chat_service.confirm_sale(first)
        chat_service.confirm_sale(second)
        assert catalog_service.get_item("b5").stock == 0


class TestListing:
    def test_buyers_see_only_their_chats(self, seed):
        chat_service.checkout(ALICE, {"b1": 1}, "CREDITS")
        chat_service.checkout(MALLORY, {"b2": 1}, "CREDITS")

        assert [c.buyer_username for c in chat_service.list_chats(ALICE)] == ["alice"]
        assert len(chat_service.list_chats(OWNER)) == 2
        assert [o.buyer_username for o in chat_service.list_orders(MALLORY)] == ["mallory"]
