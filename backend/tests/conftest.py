"""
Pytest fixtures for poultrydash backend tests.

Provides a file-backed test database (the batch sync runs accruals on worker
threads, which need their own connections), per-test cleanup, operators,
farmers with stock, and a test client.
"""

from datetime import datetime

import pytest
from poultrydash import create_app
from poultrydash.extensions import db
from poultrydash.models import Cycle, Farmer, CYCLE_STATUS_ACTIVE
from poultrydash.services.auth_service import create_user


# Fixed clock for accrual tests: mid-morning, well clear of midnight
NOW = datetime(2026, 3, 10, 9, 30)

CRON_SECRET = "test-cron-secret"


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    db_path = tmp_path_factory.mktemp("db") / "poultrydash_test.sqlite3"
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f'sqlite:///{db_path}',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'FARM_TIMEZONE': 'UTC',
        'FEED_SYNC_MAX_WORKERS': 4,
        'FEED_SYNC_TIMEOUT_SECONDS': 30,
        'CRON_SECRET': CRON_SECRET,
        'LOW_STOCK_THRESHOLD_BAGS': 5.0,
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
def user_a(db_session):
    """Operator A (first tenant)."""
    return create_user(name="Operator A", email="a@farm.local")


@pytest.fixture(scope='function')
def user_b(db_session):
    """Operator B (second tenant)."""
    return create_user(name="Operator B", email="b@farm.local")


def make_farmer(session, user, name="rahim", stock=100.0):
    farmer = Farmer(
        user_id=user.id,
        name=name,
        main_stock_input=stock,
        main_stock_remaining=stock,
    )
    session.add(farmer)
    session.commit()
    return farmer


def make_cycle(session, user, *, farmer=None, name="batch one", doc=1000, mortality=0,
               start=NOW, age=0, intake=0.0, status=CYCLE_STATUS_ACTIVE):
    """Insert a cycle directly, bypassing create_cycle's initial accrual."""
    cycle = Cycle(
        user_id=user.id,
        farmer_id=farmer.id if farmer else None,
        name=name,
        doc=doc,
        mortality=mortality,
        age=age,
        intake=intake,
        start_date=start,
        status=status,
    )
    session.add(cycle)
    session.commit()
    return cycle


@pytest.fixture(scope='function')
def farmer_a(db_session, user_a):
    """Farmer owned by operator A with 100 bags in stock."""
    return make_farmer(db_session, user_a)


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
