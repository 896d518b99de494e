"""
Pytest fixtures for MarketPOS backend tests.

Provides an in-memory database, a test client and a few catalog fixtures.
"""

import pytest

from marketpos import create_app
from marketpos.extensions import db
from marketpos.services import catalog_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'DEFAULT_TAX_PERCENT': '5',
        'LOW_STOCK_THRESHOLD': 10,
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
def milk(db_session):
    """Product priced 10.00, cost 6.00, 5 on hand."""
    return catalog_service.create({
        "barcode": "111",
        "name": "Milk",
        "category": "Dairy",
        "quantity": 5,
        "cost_price": "6.00",
        "selling_price": "10.00",
    })


@pytest.fixture(scope='function')
def bread(db_session):
    """Product priced 2.50, cost 1.00, 1 on hand."""
    return catalog_service.create({
        "barcode": "222",
        "name": "Bread",
        "category": "Bakery",
        "quantity": 1,
        "cost_price": "1.00",
        "selling_price": "2.50",
    })


def sale_body(*lines, payment_amount, tax_percent="5", **totals) -> dict:
    """POST /api/sales body from (product, quantity) pairs."""
    items = []
    for product, quantity in lines:
        items.append({
            "product_id": product.id,
            "barcode": product.barcode,
            "product_name": product.name,
            "unit_price": str(product.selling_price),
            "unit_cost": str(product.cost_price),
            "quantity": quantity,
        })
    body = {"items": items, "payment_amount": payment_amount, "tax_percent": tax_percent}
    body.update(totals)
    return body
