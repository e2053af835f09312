"""
Pytest fixtures for cash desk backend tests.

Provides test database setup, register and product fixtures, bearer-token
headers, and the test client.
"""

from datetime import datetime

import pytest
from cashdesk import create_app
from cashdesk.extensions import db
from cashdesk.models import Product, RegisterState, REGISTER_STATE_ID

ADMIN_TOKEN = "test-admin-token"
STAFF_TOKEN = "test-staff-token"

# Register opened well before any test activity
REGISTER_OPENED_AT = datetime(2020, 1, 1)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'API_TOKENS': {ADMIN_TOKEN: 'admin', STAFF_TOKEN: 'staff'},
        'SCAN_DEBOUNCE_SECONDS': 0.7,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def register(db_session):
    """Register state opened at REGISTER_OPENED_AT with a zero balance."""
    state = RegisterState(id=REGISTER_STATE_ID, opening_balance_cents=0, opened_at=REGISTER_OPENED_AT)
    db_session.add(state)
    db_session.commit()
    return state


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory for catalog products."""
    def _make(name="Water 600 ml", price_cents=1200, stock=10):
        product = Product(name=name, price_cents=price_cents, stock=stock)
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def water(make_product):
    return make_product("Water 600 ml", 1200, 30)


@pytest.fixture(scope='function')
def milk(make_product):
    return make_product("Milk 1 L", 3200, 18)


class FakeClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope='function')
def clock():
    return FakeClock()


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(db_session):
    return auth_headers(ADMIN_TOKEN)


@pytest.fixture(scope='function')
def staff_headers(db_session):
    return auth_headers(STAFF_TOKEN)


def reload(obj):
    """Re-read a row after another session (e.g. a request) changed it."""
    db.session.expire_all()
    return db.session.get(type(obj), obj.id)
