"""
Pytest fixtures for AquaDist backend tests.

Provides an in-memory database, the test client, record factories and
actor header helpers.
"""

from decimal import Decimal

import pytest

from aquadist import create_app
from aquadist.extensions import db
from aquadist.models import User, Product, Customer
from aquadist.services import inventory_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOG_LEVEL': 'WARNING',
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


def _make_user(session, role: str, email: str, is_active: bool = True) -> User:
    user = User(email=email, full_name=email.split("@")[0].title(), role=role, is_active=is_active)
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def admin(db_session):
    return _make_user(db_session, "admin", "admin@aquadist.test")


@pytest.fixture(scope='function')
def seller(db_session):
    return _make_user(db_session, "seller", "seller@aquadist.test")


@pytest.fixture(scope='function')
def other_seller(db_session):
    return _make_user(db_session, "seller", "other.seller@aquadist.test")


@pytest.fixture(scope='function')
def driver(db_session):
    return _make_user(db_session, "delivery", "driver@aquadist.test")


@pytest.fixture(scope='function')
def collector(db_session):
    return _make_user(db_session, "collector", "collector@aquadist.test")


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory: make_product(code, price, stock=0, affects_bottle_deposit=False)."""
    def _make(code: str, price, stock: int = 0, affects_bottle_deposit: bool = False, is_active: bool = True):
        product = Product(
            code=code,
            name=f"Product {code}",
            category="water",
            price=Decimal(str(price)),
            is_active=is_active,
            affects_bottle_deposit=affects_bottle_deposit,
        )
        db_session.add(product)
        db_session.commit()
        if stock:
            inventory_service.apply_movement(product.id, stock, "adjustment", None, notes="Opening stock")
        return product
    return _make


@pytest.fixture(scope='function')
def make_customer(db_session):
    """Factory: make_customer(code, bottles_lent=0, **overrides)."""
    def _make(code: str, bottles_lent: int = 0, **overrides):
        values = {
            "code": code,
            "full_name": f"Customer {code}",
            "category": "personal",
            "street": "Av. Providencia",
            "number": "1234",
            "district": "Providencia",
            "city": "Santiago",
            "bottles_lent": bottles_lent,
        }
        values.update(overrides)
        customer = Customer(**values)
        db_session.add(customer)
        db_session.commit()
        return customer
    return _make


@pytest.fixture(scope='function')
def water(make_product):
    return make_product("W20", 1000, stock=10)


@pytest.fixture(scope='function')
def ice(make_product):
    return make_product("ICE", 500, stock=5)


@pytest.fixture(scope='function')
def refill(make_product):
    return make_product("R20", 2500, stock=10, affects_bottle_deposit=True)


@pytest.fixture(scope='function')
def customer(make_customer):
    return make_customer("C001", bottles_lent=5)


def actor_headers(user) -> dict:
    """Helper to create the identity header for a user."""
    return {'X-Actor-Id': str(user.id)}


@pytest.fixture(scope='function')
def admin_headers(admin):
    return actor_headers(admin)


@pytest.fixture(scope='function')
def seller_headers(seller):
    return actor_headers(seller)


@pytest.fixture(scope='function')
def driver_headers(driver):
    return actor_headers(driver)


@pytest.fixture(scope='function')
def collector_headers(collector):
    return actor_headers(collector)


@pytest.fixture(scope='function')
def headers_for():
    return actor_headers
