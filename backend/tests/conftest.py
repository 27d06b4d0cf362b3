"""
Pytest fixtures for orderdesk backend tests.

Provides test database setup, seller fixtures, products for both pricing
variants, and a test client.
"""

import pytest
from orderdesk import create_app
from orderdesk.extensions import db
from orderdesk.models import Product, SalesPerson, Seller
from orderdesk.models.inventory import PRICING_FLAT, PRICING_TIERED, TIER_SLOT_COLUMNS


TIER_PRICES = {
    "0.5g": 500,
    "1g": 900,
    "2g": 1600,
    "3.5g": 2500,
    "7g": 4500,
    "14g": 8000,
    "28g": 15000,
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'RETRY_BACKOFF_BASE': 0,
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
def seller(db_session):
    """Create the seller most tests run against."""
    s = Seller(name="Green Leaf Wholesale", code="GREENLEAF", is_active=True)
    db_session.add(s)
    db_session.commit()
    return s


@pytest.fixture(scope='function')
def other_seller(db_session):
    """Create a second seller for isolation checks."""
    s = Seller(name="Blue Ridge Supply", code="BLUERIDGE", is_active=True)
    db_session.add(s)
    db_session.commit()
    return s


@pytest.fixture(scope='function')
def flat_product(db_session, seller):
    """Flat-priced product: 2500 cents each."""
    p = Product(
        seller_id=seller.id,
        sku="SKU-FLAT",
        name="Pre-roll",
        measurement_unit="unit",
        pricing_kind=PRICING_FLAT,
        each_value="1",
        unit_price_cents=2500,
        quantity_on_hand=100,
        par_level=10,
    )
    db_session.add(p)
    db_session.commit()
    return p


@pytest.fixture(scope='function')
def tiered_product(db_session, seller):
    """Tiered product priced at all seven breakpoints."""
    p = Product(
        seller_id=seller.id,
        sku="SKU-TIER",
        name="House Flower",
        measurement_unit="gram",
        pricing_kind=PRICING_TIERED,
        quantity_on_hand=500,
        par_level=50,
    )
    for label, column in TIER_SLOT_COLUMNS.items():
        setattr(p, column, TIER_PRICES[label])
    db_session.add(p)
    db_session.commit()
    return p


@pytest.fixture(scope='function')
def sales_person(db_session, seller):
    """Sales person on a 5% (500 bps) commission rate."""
    person = SalesPerson(
        seller_id=seller.id,
        full_name="Sam Rivera",
        email="sam@greenleaf.test",
        commission_rate_bps=500,
        is_active=True,
    )
    db_session.add(person)
    db_session.commit()
    return person
