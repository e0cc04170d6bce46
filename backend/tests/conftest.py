"""
Pytest fixtures for StockSwift backend tests.

Every test gets a fresh in-memory store and an active app context.
"""
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from stockswift import create_app
from stockswift.extensions import db
from stockswift.wiring import get_services


@pytest.fixture(scope='function')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'REPORT_TIMEZONE': 'UTC',
        'ENFORCE_STOCK_ON_SALE': False,
    })

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def services(app):
    return get_services()


@pytest.fixture(scope='function')
def storage(services):
    return services.storage


@pytest.fixture(scope='function')
def products(services):
    return services.products


@pytest.fixture(scope='function')
def sales(services):
    return services.sales


@pytest.fixture(scope='function')
def backup(services):
    return services.backup


@pytest.fixture(scope='function')
def cli_runner(app):
    return app.test_cli_runner()


@pytest.fixture(scope='function')
def widget(products):
    """The reference product: 10 units, cost 5.00, price 9.90."""
    return products.add({
        "sku": "A1",
        "name": "Widget",
        "quantity": 10,
        "costPrice": Decimal("5.00"),
        "salePrice": Decimal("9.90"),
        "expiryDate": "2025-12-31",
    })


def ms(year, month, day, hour=0, minute=0, second=0, millisecond=0):
    """UTC calendar time -> epoch milliseconds (month is 1-12 here)."""
    dt = datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000) + millisecond


def product_record(**overrides) -> dict:
    """A complete stored product record, as found in a backup."""
    record = {
        "id": "prod_1",
        "sku": "SKU-1",
        "internalCode": "INT-000000000001",
        "name": "Sparkling Water",
        "quantity": 24,
        "costPrice": Decimal("0.80"),
        "salePrice": Decimal("1.50"),
        "expiryDate": "2026-06-30",
        "description": None,
        "image": None,
        "createdAt": ms(2025, 1, 10),
        "updatedAt": ms(2025, 1, 10),
    }
    record.update(overrides)
    return record


def sale_record(**overrides) -> dict:
    """A complete stored sale record, as found in a backup."""
    record = {
        "id": "sale_1",
        "items": [
            {"productId": "prod_1", "quantity": 2, "salePrice": Decimal("1.50"), "costPrice": Decimal("0.80")},
        ],
        "subtotal": Decimal("3.00"),
        "discount": Decimal("0"),
        "discountType": "fixed",
        "total": Decimal("3.00"),
        "costOfGoodsSold": Decimal("1.60"),
        "createdAt": ms(2025, 3, 15, 12),
    }
    record.update(overrides)
    return record
