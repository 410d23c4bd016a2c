"""
Pytest fixtures for retailstock backend tests.

Provides test database setup, staff accounts, a small catalog and test client.
"""

import pytest
from retailstock import create_app
from retailstock.extensions import db
from retailstock.models import Product, User
from retailstock.permissions import DEFAULT_EMPLOYEE_PERMISSIONS
from retailstock.services import category_service, department_service, products_service
from retailstock.services.auth_service import hash_password

TEST_PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
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


def _make_user(db_session, username, *, role="employee", permissions=None, is_active=True):
    if permissions is None:
        permissions = [] if role == "admin" else list(DEFAULT_EMPLOYEE_PERMISSIONS)
    user = User(
        username=username,
        email=f"{username}@shop.test",
        name=username.title(),
        role=role,
        permissions=permissions,
        is_active=is_active,
        password_hash=hash_password(TEST_PASSWORD),
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(db_session):
    return _make_user(db_session, "admin", role="admin")


@pytest.fixture(scope='function')
def employee_user(db_session):
    """Employee with the default permission set (no catalog edits, no reports)."""
    return _make_user(db_session, "clerk")


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.username, TEST_PASSWORD))


@pytest.fixture(scope='function')
def employee_headers(client, employee_user):
    return auth_headers(get_auth_token(client, employee_user.username, TEST_PASSWORD))


@pytest.fixture(scope='function')
def department(db_session):
    created = department_service.create_department(patch={"name": "Groceries"})
    return created["id"]


@pytest.fixture(scope='function')
def other_department(db_session):
    created = department_service.create_department(patch={"name": "Hardware"})
    return created["id"]


@pytest.fixture(scope='function')
def category(db_session, department):
    created = category_service.create_category(
        patch={"name": "Dairy", "code": "DAIRY", "department_id": department}
    )
    return created["id"]


@pytest.fixture(scope='function')
def product(db_session, department, category):
    """Product with stock 10, minimum level 5, price 2.50."""
    created = products_service.create_product(patch={
        "name": "Milk 1L",
        "code": "MILK-1L",
        "price_cents": 250,
        "stock_quantity": 10,
        "min_stock_level": 5,
        "department_id": department,
        "category_id": category,
    })
    return created["id"]


@pytest.fixture(scope='function')
def make_user(db_session):
    """Factory for extra staff accounts (password TEST_PASSWORD)."""
    def _factory(username, **kwargs):
        return _make_user(db_session, username, **kwargs)
    return _factory


@pytest.fixture(scope='function')
def login(client):
    """Log a user in and return Authorization headers."""
    def _login(username, password=TEST_PASSWORD):
        return auth_headers(get_auth_token(client, username, password))
    return _login


@pytest.fixture(scope='function')
def stock_of(db_session):
    """Current stored quantity of a product, bypassing the identity map."""
    def _stock_of(product_id: int) -> int:
        db_session.expire_all()
        return db_session.get(Product, product_id).stock_quantity
    return _stock_of


def get_auth_token(client, username: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
