"""
Pytest fixtures for PosBuzz backend tests.

Provides test database setup, users, products, and a test client.
"""

import pytest
from posbuzz import create_app
from posbuzz.extensions import db
from posbuzz.models import User, Product
from posbuzz.services.auth_service import hash_password
from posbuzz.services import session_service


TEST_PASSWORD = "secret123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
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
        db.session.expunge_all()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def cashier(db_session):
    """Create the cashier who records sales."""
    user = User(
        email="cashier@posbuzz.test",
        name="Cashier One",
        password_hash=hash_password(TEST_PASSWORD),
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def other_cashier(db_session):
    """A second user, for attribution and filtering tests."""
    user = User(
        email="other@posbuzz.test",
        name="Cashier Two",
        password_hash=hash_password(TEST_PASSWORD),
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def cashier_headers(cashier):
    """Bearer headers for the cashier, without going through bcrypt login."""
    _, token = session_service.create_session(cashier.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def other_headers(other_cashier):
    _, token = session_service.create_session(other_cashier.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def make_product(db_session):
    """Factory for products committed to the database."""
    def _make(sku="A1", name=None, price_cents=1000, stock_quantity=5):
        product = Product(
            sku=sku,
            name=name or f"Product {sku}",
            price_cents=price_cents,
            stock_quantity=stock_quantity,
        )
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def product_a1(make_product):
    """The A1 product: $10.00, 5 in stock."""
    return make_product(sku="A1", name="Chicken Feed 1kg", price_cents=1000, stock_quantity=5)


def get_auth_token(client, email: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('access_token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
