"""
Pytest fixtures for ledger backend tests.

Provides test database setup, catalog fixtures, and a CLI runner.
"""

import pytest

from ims import create_app
from ims.extensions import db
from ims.services import catalog_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


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
def runner(app):
    return app.test_cli_runner()


@pytest.fixture(scope='function')
def category(db_session):
    return catalog_service.create_category(name="Beverages", created_by="admin")


@pytest.fixture(scope='function')
def product(db_session, category):
    """Product with ten units on hand, selling at 3.00."""
    return catalog_service.create_product(
        name="Green Tea",
        category_id=category.id,
        cost_price_cents=180,
        selling_price_cents=300,
        opening_stock=10,
        created_by="admin",
    )


@pytest.fixture(scope='function')
def last_unit_product(db_session):
    return catalog_service.create_product(
        name="Last Unit",
        selling_price_cents=1000,
        opening_stock=1,
        created_by="admin",
    )
