"""
Pytest fixtures for back-office backend tests.

Provides an in-memory database, per-test table cleanup, one user (and bearer
headers) per role, and small factories for customers, suppliers and products.
"""

import pytest

from backoffice import create_app
from backoffice.extensions import db
from backoffice.models import Customer, Supplier, User
from backoffice.services import products_service, session_service
from backoffice.services.auth_service import hash_password

TEST_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Empty every table before the test; the schema is kept."""
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    db.session.rollback()
    db.session.expunge_all()


@pytest.fixture(scope='function')
def client(app, db_session):
    """Create test client."""
    return app.test_client()


def _make_user(db_session, name: str, email: str, role: str) -> User:
    user = User(
        name=name,
        email=email,
        password_hash=hash_password(TEST_PASSWORD),
        role=role,
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(db_session):
    return _make_user(db_session, "Admin", "admin@test.local", "admin")


@pytest.fixture(scope='function')
def sales_user(db_session):
    return _make_user(db_session, "Sales", "sales@test.local", "sales")


@pytest.fixture(scope='function')
def warehouse_user(db_session):
    return _make_user(db_session, "Warehouse", "warehouse@test.local", "warehouse")


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def _headers_for(user: User) -> dict:
    _, token = session_service.create_session(user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return _headers_for(admin_user)


@pytest.fixture(scope='function')
def sales_headers(sales_user):
    return _headers_for(sales_user)


@pytest.fixture(scope='function')
def warehouse_headers(warehouse_user):
    return _headers_for(warehouse_user)


@pytest.fixture(scope='function')
def customer(db_session):
    customer = Customer(
        name="Jane Buyer",
        email="jane@acme.example",
        company="Acme Corp",
        shipping_address="1 Main St",
    )
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def supplier(db_session):
    supplier = Supplier(name="Widget Supply Co", email="orders@widgets.example")
    db_session.add(supplier)
    db_session.commit()
    return supplier


@pytest.fixture(scope='function')
def make_product(db_session):
    """
    Factory: make_product(sku="P-1", on_hand=50, price=1000, reorder_point=0).

    Opening stock goes through the inventory engine, so the ledger starts with
    one 'adjustment' row when on_hand > 0.
    """
    counter = {"n": 0}

    def _make(sku=None, *, on_hand=50, price=1000, cost=400, reorder_point=0, name=None):
        counter["n"] += 1
        sku = sku or f"SKU-{counter['n']:03d}"
        return products_service.create_product(
            patch={
                "sku": sku,
                "name": name or f"Product {sku}",
                "unit_price_cents": price,
                "cost_price_cents": cost,
                "reorder_point": reorder_point,
            },
            opening_quantity=on_hand,
        )

    return _make
