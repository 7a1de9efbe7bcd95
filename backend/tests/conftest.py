"""
Pytest fixtures for QPOS backend tests.

Provides the app on in-memory SQLite, a clean session per test, catalog and
customer rows, and the Flask test client.
"""

import pytest

from qpos import create_app
from qpos.cart import Cart
from qpos.extensions import db
from qpos.services import catalog_service, customer_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'TAX_RATE_BPS': 1800,
        'SETTLEMENT_TOLERANCE_CENTS': 100,
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
def product(db_session):
    """Running shoe at 2000.00 with two sizes (10 and 3 in stock)."""
    return catalog_service.create_product(
        db_session,
        sku="RUN-AIR-001",
        name="Air Runner",
        base_price_cents=200000,
        variants=[
            {"size_uk": 8, "color": "Black", "barcode": "8901000000017", "stock_quantity": 10},
            {"size_uk": 9, "color": "White", "barcode": "8901000000024", "stock_quantity": 3,
             "price_adjustment_cents": 5000},
        ],
    )


@pytest.fixture(scope='function')
def variant(product):
    """Size 8, 10 in stock, unit price 2000.00."""
    return product.variants[0]


@pytest.fixture(scope='function')
def scarce_variant(product):
    """Size 9, 3 in stock, unit price 2050.00."""
    return product.variants[1]


@pytest.fixture(scope='function')
def cheap_product(db_session):
    """Sock pack at 255.00, used for loyalty arithmetic."""
    return catalog_service.create_product(
        db_session,
        sku="ACC-SOCK-001",
        name="Sport Socks",
        base_price_cents=25500,
        variants=[{"size_uk": 8, "color": "Grey", "stock_quantity": 50}],
    )


@pytest.fixture(scope='function')
def customer(db_session):
    return customer_service.create_customer(db_session, name="Asha Rao", phone="9000000001")


@pytest.fixture(scope='function')
def cart():
    """Empty cart taxed at 18%."""
    return Cart(tax_rate_bps=1800)
