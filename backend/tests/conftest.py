"""
Pytest fixtures for custody service tests.

Provides test database setup, enrolled participants for every role, and
test client.
"""

import pytest

from supplychain import create_app
from supplychain.extensions import db
from supplychain.roles import Role
from supplychain.services import notification_service, registry_service


ADMIN = "0xadmin"
MAKER = "0xmaker"
SHIPPER = "0xshipper"
SHOP = "0xshop"
BUYER = "0xbuyer"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'ADMIN_IDENTITY': ADMIN,
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
        notification_service.clear_subscribers()

        yield db.session

        # Cleanup after test
        db.session.rollback()
        notification_service.clear_subscribers()


@pytest.fixture(scope='function')
def chain(db_session):
    """Enroll one participant per role, keyed by role."""
    parties = {
        Role.MANUFACTURER: (MAKER, "Acme Manufacturing"),
        Role.DISTRIBUTOR: (SHIPPER, "FastFreight"),
        Role.RETAILER: (SHOP, "Corner Shop"),
        Role.CUSTOMER: (BUYER, "Jane Buyer"),
    }
    for role, (identity, name) in parties.items():
        registry_service.register_participant(identity, role, name, caller=ADMIN)
    return {role: identity for role, (identity, _) in parties.items()}


def identity_headers(identity: str) -> dict:
    """Helper to create the caller identity header."""
    return {'X-Identity': identity}
