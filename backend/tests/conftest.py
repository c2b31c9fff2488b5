"""
Pytest fixtures for storefront backend tests.

Provides the in-memory application, a clean database per test, seed data and
client facades for a buyer and the owner account.
"""

import pytest

from storefront import create_app
from storefront.client import ShopClient
from storefront.extensions import db
from storefront.models import (
    Account,
    Item,
    Order,
    Chat,
    ChatMessage,
    StateRecord,
    IdentifierSequence,
)
from storefront.services import state_service


ADMIN_USERNAME = "SammySelling"
ADMIN_PASSWORD = "Elliot1993"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_BINDS': {'durable': 'sqlite:///:memory:'},
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'STOREFRONT_AUTOLOAD_STATE': False,
        'STOREFRONT_ADMIN_USERNAME': ADMIN_USERNAME,
        'STOREFRONT_ADMIN_PASSWORD': ADMIN_PASSWORD,
    })

    with app.app_context():
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    # Clear all data but keep schema
    for model in (ChatMessage, Chat, Order, Item, Account, IdentifierSequence, StateRecord):
        db.session.query(model).delete()
    db.session.commit()

    yield db.session

    # Cleanup after test
    db.session.rollback()


@pytest.fixture(scope='function')
def seed(db_session):
    """Owner account plus the five seed items."""
    state_service.seed_state()
    return db_session


@pytest.fixture(scope='function')
def item(db_session):
    """A single item matching the b1 seed entry."""
    it = Item(id="b1", name="Normal Brainrot", description="Basic Brainrot.", stock=5, price=100, position=1)
    db_session.add(it)
    db_session.commit()
    return it


@pytest.fixture(scope='function')
def shop(seed):
    """Anonymous client facade over seeded state."""
    return ShopClient()


@pytest.fixture(scope='function')
def buyer(seed):
    """Client signed up as a regular buyer."""
    client = ShopClient()
    result = client.signup("alice", "pw", "Alice")
    assert result.ok, result.error
    return client


@pytest.fixture(scope='function')
def admin(seed):
    """Client logged in as the owner account."""
    client = ShopClient()
    result = client.login(ADMIN_USERNAME, ADMIN_PASSWORD)
    assert result.ok, result.error
    return client

