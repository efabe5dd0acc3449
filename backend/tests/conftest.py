"""
Pytest fixtures for goldbook backend tests.

Provides test database setup, domain fixtures (customer, published rates,
staff headers) and the Flask test client.
"""

import pytest
from goldbook import create_app
from goldbook.extensions import db
from goldbook.metals import METAL_GOLD, METAL_SILVER_92
from goldbook.models import Customer
from goldbook.services.rate_service import publish_rate
from goldbook.time_utils import today


# ₹6000.00 per gram of gold, ₹80.00 per gram of silver
GOLD_RATE_PAISE = 600_000
SILVER_RATE_PAISE = 8_000

STAFF_ID = 7


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
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
def customer(db_session):
    """A walk-in customer with a phone number."""
    c = Customer(name="Lakshmi R", phone="9840012345")
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture(scope='function')
def rates(db_session):
    """Today's gold and silver rates."""
    publish_rate(METAL_GOLD, GOLD_RATE_PAISE, today(), staff_id=STAFF_ID)
    publish_rate(METAL_SILVER_92, SILVER_RATE_PAISE, today(), staff_id=STAFF_ID)
    return {METAL_GOLD: GOLD_RATE_PAISE, METAL_SILVER_92: SILVER_RATE_PAISE}


@pytest.fixture(scope='function')
def staff_headers():
    return {'X-Staff-Id': str(STAFF_ID)}


def item_payload(name="Ring", grams="3.5", making=20_000, **extra) -> dict:
    """Helper to build one line item as the billing screen sends it."""
    payload = {
        'item_name': name,
        'weight_grams': grams,
        'metal_type': METAL_GOLD,
        'making_charge_paise': making,
    }
    payload.update(extra)
    return payload


def exchange_payload(grams="2.0", rate=550_000, **extra) -> dict:
    """Helper to build one old gold exchange row."""
    payload = {'weight_grams': grams, 'rate_paise': rate}
    payload.update(extra)
    return payload
