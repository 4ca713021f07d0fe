"""
Pytest fixtures for BusinessCart backend tests.

Provides a fresh in-memory database per test, onboarding codes, one account
per role, catalog products and bearer headers.
"""

from decimal import Decimal

import pytest
from businesscart import create_app
from businesscart.extensions import db
from businesscart.models import Product
from businesscart.services import auth_service
from businesscart.services.token_service import claims_for_account


PASSWORD = "Password123!"


@pytest.fixture(scope='function')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'JWT_SECRET': 'test-access-secret',
        'JWT_REFRESH_SECRET': 'test-refresh-secret',
        'BCRYPT_ROUNDS': 4,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    yield db.session
    db.session.rollback()


# =============================================================================
# ONBOARDING CODES / ACCOUNTS
# =============================================================================


@pytest.fixture(scope='function')
def code_a(db_session):
    """Codes for company A (with a partner code)."""
    return auth_service.create_code("ACME-CO", "ACME-CU", "ACME-PA")


@pytest.fixture(scope='function')
def code_b(db_session):
    """Codes for company B."""
    return auth_service.create_code("BETA-CO", "BETA-CU")


@pytest.fixture(scope='function')
def admin(db_session):
    return auth_service.create_admin("Admin", "admin@businesscart.test", PASSWORD)


@pytest.fixture(scope='function')
def company_a(db_session, code_a):
    return auth_service.register_account("Acme Corp", "owner@acme.test", PASSWORD, "company", code="ACME-CO")


@pytest.fixture(scope='function')
def company_b(db_session, code_b):
    return auth_service.register_account("Beta Inc", "owner@beta.test", PASSWORD, "company", code="BETA-CO")


@pytest.fixture(scope='function')
def customer(db_session, code_a):
    """Customer associated with company A only."""
    return auth_service.register_account(
        "Carol Buyer", "carol@buyer.test", PASSWORD, "customer", customer_codes=["ACME-CU"],
    )


@pytest.fixture(scope='function')
def customer_b(db_session, code_a):
    """A second customer of company A."""
    return auth_service.register_account(
        "Dave Buyer", "dave@buyer.test", PASSWORD, "customer", customer_codes=["ACME-CU"],
    )


@pytest.fixture(scope='function')
def partner(db_session, code_a):
    return auth_service.register_account("Pat Partner", "pat@partner.test", PASSWORD, "partner", code="ACME-PA")


# =============================================================================
# CATALOG
# =============================================================================


def _product(seller_id: str, name: str, price: str) -> Product:
    product = Product(seller_id=seller_id, name=name, price=Decimal(price))
    db.session.add(product)
    db.session.commit()
    return product


@pytest.fixture(scope='function')
def product_a(db_session, company_a):
    """10.00 product sold by company A."""
    return _product(company_a.id, "Widget", "10.00")


@pytest.fixture(scope='function')
def product_a2(db_session, company_a):
    """2.50 product sold by company A."""
    return _product(company_a.id, "Gadget", "2.50")


@pytest.fixture(scope='function')
def product_b(db_session, company_b):
    """20.00 product sold by company B."""
    return _product(company_b.id, "Bolt", "20.00")


# =============================================================================
# TOKENS / HEADERS
# =============================================================================


def token_for(app, account) -> str:
    """Issue an access token straight from the app's issuer."""
    subject_id, role, company_id, associated = claims_for_account(account)
    return app.extensions["token_issuer"].issue_access(subject_id, role, company_id, associated)


def get_auth_token(client, email: str, password: str) -> str:
    """Helper to get an access token through the login route."""
    response = client.post('/accounts/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('accessToken')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(app, admin):
    return auth_headers(token_for(app, admin))


@pytest.fixture(scope='function')
def company_a_headers(app, company_a):
    return auth_headers(token_for(app, company_a))


@pytest.fixture(scope='function')
def company_b_headers(app, company_b):
    return auth_headers(token_for(app, company_b))


@pytest.fixture(scope='function')
def customer_headers(app, customer):
    return auth_headers(token_for(app, customer))


@pytest.fixture(scope='function')
def customer_b_headers(app, customer_b):
    return auth_headers(token_for(app, customer_b))


@pytest.fixture(scope='function')
def partner_headers(app, partner):
    return auth_headers(token_for(app, partner))
