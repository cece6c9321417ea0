"""
Shared test fixtures for GangRun Pricing tests

Provides database setup, client creation, and catalog fixtures
"""
import os

# The app builds its engine at import time; keep it off PostgreSQL
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("LOG_FORMAT", "console")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from gangrun.main import app
from gangrun.db.base import Base
from gangrun.db.session import get_db
from gangrun.services.catalog_repository import SqlCatalogRepository
from gangrun.services.pricing_engine import PricingEngine
from tests.factories import create_test_catalog, create_test_customer, reset_sequences


# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(engine):
    """Create all tables for testing using SQLAlchemy metadata"""
    # Import all models to ensure they're registered with Base
    import gangrun.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def drop_tables(engine):
    """Drop all tables after testing"""
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    """Create a fresh database session for each test"""
    reset_sequences()
    create_tables(engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        drop_tables(engine)


@pytest.fixture
def client(db_session):
    """Create a test client with database override"""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def catalog_data(db_session):
    """A complete business card catalog (see factories.create_test_catalog)"""
    data = create_test_catalog(db_session)
    db_session.commit()
    return data


@pytest.fixture
def repository(db_session):
    return SqlCatalogRepository(db_session)


@pytest.fixture
def engine_service(repository):
    return PricingEngine(repository)


@pytest.fixture
def broker_customer(db_session, catalog_data):
    """Broker with 10% off the test category and 5% everywhere else"""
    customer = create_test_customer(
        db_session,
        email="broker@test.com",
        is_broker=True,
        broker_discounts={catalog_data["category_id"]: 10, "_default": 5},
    )
    db_session.commit()
    return customer


@pytest.fixture
def regular_customer(db_session):
    customer = create_test_customer(db_session, email="customer@test.com")
    db_session.commit()
    return customer
