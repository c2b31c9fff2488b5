"""
Durable record tests.

Verifies:
- Export -> import reproduces users, items, chats and orders
- The record is keyed by the configured namespace
- Startup seeds when there is no record and loads when there is one
- Legacy camelCase records import and never collide with new ids
"""

import pytest

from storefront.errors import ValidationError
from storefront.extensions import db
from storefront.models import Account, Item, StateRecord
from storefront.services import state_service, chat_service, catalog_service, account_service
from storefront.services.account_service import SessionSnapshot


ALICE = SessionSnapshot(username="alice", display_name="Alice")


def _busy_state():
    account_service.signup("alice", "pw", "Alice")
    catalog_service.create_item("Ruby Brainrot", "Red.", 4, 299.5)
    first, second = chat_service.checkout(ALICE, {"b1": 2}, "ROBUX")
    chat_service.send_message(first, ALICE, "hello")
    chat_service.mark_claimed(first)
    chat_service.confirm_sale(second)


class TestRoundTrip:
    def test_export_import_is_structurally_equal(self, seed):
        _busy_state()
        exported = state_service.export_state()

        state_service.import_state(exported)

        assert state_service.export_state() == exported

    def test_export_layout(self, seed):
        _busy_state()
        exported = state_service.export_state()

        assert set(exported) == {"users", "items", "chats", "orders"}
        assert {u["username"] for u in exported["users"]} == {"SammySelling", "alice"}
        assert all("credential" in u for u in exported["users"])
        statuses = sorted(c["status"] for c in exported["chats"])
        assert statuses == ["CLAIMED", "COMPLETED"]
        assert exported["orders"][0]["chat_ids"] == [c["id"] for c in exported["chats"]]

    def test_session_is_not_part_of_record(self, seed):
        exported = state_service.export_state()
        assert "session" not in exported
        assert "current_user" not in exported

    def test_import_keeps_ids_unique(self, seed):
        _busy_state()
        exported = state_service.export_state()
        state_service.import_state(exported)

        existing = {c["id"] for c in exported["chats"]}
        new_ids = chat_service.checkout(ALICE, {"b2": 1}, "CREDITS")
        assert not existing.intersection(new_ids)

        new_item = catalog_service.create_item("Jade", "", 1, 1)
        assert new_item.id not in {i["id"] for i in exported["items"]}


class TestDurableRecord:
    def test_save_state_uses_namespace(self, app, seed):
        state_service.save_state()
        record = db.session.get(StateRecord, app.config["STOREFRONT_STATE_NAMESPACE"])
        assert record.namespace == "steal-a-brainrot-state-v1"
        assert record.payload == state_service.export_state()

    def test_load_state_seeds_when_empty(self, db_session):
        assert state_service.load_state() == "seeded"
        assert [i.id for i in catalog_service.list_items()] == ["b1", "b2", "b3", "b4", "b5"]
        assert Account.query.filter_by(is_admin=True).count() == 1
        assert state_service.read_record() == state_service.export_state()

    def test_load_state_imports_existing_record(self, seed, db_session):
        _busy_state()
        state_service.save_state()
        snapshot = state_service.export_state()

        state_service.clear_working_state()
        db_session.commit()
        assert Item.query.count() == 0

        assert state_service.load_state() == "loaded"
        assert state_service.export_state() == snapshot

    @pytest.mark.parametrize("payload", [
        {"items": "not-a-list"},
        {"items": ["not-an-object"]},
        {"items": [{"id": "x", "name": ["list"], "desc": "", "stock": 1, "price": 1}]},
        {"chats": [{
            "id": "c1", "user": "alice", "itemId": "b1", "itemName": "Normal Brainrot",
            "status": 5, "messages": [],
        }]},
        {"chats": [{
            "id": "c1", "user": "alice", "itemId": "b1", "itemName": "Normal Brainrot",
            "messages": ["hello"],
        }]},
    ])
    def test_corrupt_record_falls_back_to_seed(self, app, db_session, payload):
        db_session.add(StateRecord(
            namespace=app.config["STOREFRONT_STATE_NAMESPACE"],
            payload=payload,
        ))
        db_session.commit()

        assert state_service.load_state() == "seeded"
        assert Item.query.count() == 5

    def test_reset_state_restores_seed(self, seed):
        _busy_state()
        state_service.reset_state()

        exported = state_service.export_state()
        assert exported["chats"] == []
        assert [u["username"] for u in exported["users"]] == ["SammySelling"]
        assert catalog_service.get_item("b1").stock == 5


class TestLegacyImport:
    LEGACY = {
        "users": [
            {"username": "SammySelling", "password": "Elliot1993", "displayName": "Sammy (Owner)", "isAdmin": True},
            {"username": "google_abc1234", "password": None, "displayName": "google_abc1234", "isAdmin": False},
        ],
        "items": [
            {"id": "b1", "name": "Normal Brainrot", "desc": "Basic Brainrot.", "stock": 4, "price": 100},
            {"id": "i1700000000000", "name": "Custom", "desc": "", "stock": 1, "price": 50},
        ],
        "chats": [{
            "id": "clx9k2abcd",
            "user": "google_abc1234",
            "userDisplay": "google_abc1234",
            "itemId": "b1",
            "itemName": "Normal Brainrot",
            "messages": [{"from": "google_abc1234", "text": "Hi, I'd like to buy Normal Brainrot (paying with Robux).", "time": 1700000000000}],
            "robux": True,
            "claimed": True,
            "completed": False,
        }],
        "orders": [],
    }

    def test_imports_camel_case_layout(self, db_session):
        state_service.import_state(self.LEGACY)

        admin = account_service.login("SammySelling", "Elliot1993")
        assert admin.is_admin is True

        chat = chat_service.get_chat("clx9k2abcd")
        assert chat.status == "CLAIMED"
        assert chat.payment_method == "ROBUX"
        assert chat.buyer_display == "google_abc1234"
        assert chat.messages[0].to_dict()["timestamp"] == "2023-11-14T22:13:20Z"

    def test_timestamp_item_ids_do_not_collide(self, db_session):
        state_service.import_state(self.LEGACY)
        item = catalog_service.create_item("Next", "", 1, 1)
        assert item.id == "i1700000000001"

    @pytest.mark.parametrize("document", [
        [],
        {"users": [{"displayName": "no username"}]},
        {"items": [{"id": "x", "name": "Bad", "stock": -1, "price": 1}]},
        {"chats": [{"id": "c1", "status": "SHIPPED"}]},
        {"items": [42]},
        {"items": [{"id": "x", "name": {"en": "Bad"}, "stock": 1, "price": 1}]},
        {"users": [{"username": ["alice"]}]},
        {"items": [{"id": "x", "name": "A"}, {"id": "x", "name": "B"}]},
        {"chats": [{"id": "c1", "user": "alice", "itemId": "b1", "itemName": "N", "status": 5}]},
    ])
    def test_malformed_documents_rejected(self, seed, document):
        before = state_service.export_state()
        with pytest.raises(ValidationError):
            state_service.import_state(document)
        assert state_service.export_state() == before
