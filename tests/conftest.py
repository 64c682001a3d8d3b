"""
Pytest configuration and fixtures for catalog tests.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from catalog_api.main import app
from catalog_api.models import (
    AttributeDefinition,
    Base,
    Organization,
    Store,
    Supplier,
    Unit,
)
from catalog_api.services.domain import BarcodeService, ImportService, ProductService
from catalog_shared.config.constants import AttributeType, PlanTier
from catalog_shared.infrastructure.db import get_db
from catalog_shared.schemas import ActorContext, ProductCreate


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database session override.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# Tenant data
# =============================================================================


@pytest.fixture
def seed_org(db_session):
    """Create the organization most tests act in."""
    org = Organization(name="Test Market", plan=PlanTier.BUSINESS.value)
    db_session.add(org)
    db_session.commit()
    db_session.refresh(org)
    return org


@pytest.fixture
def seed_other_org(db_session):
    """A second tenant, used for isolation checks."""
    org = Organization(name="Other Market", plan=PlanTier.BUSINESS.value)
    db_session.add(org)
    db_session.commit()
    db_session.refresh(org)
    return org


@pytest.fixture
def seed_stores(db_session, seed_org):
    """Two stores of the test organization."""
    stores = [
        Store(organization_id=seed_org.id, name="Main Store"),
        Store(organization_id=seed_org.id, name="Outlet", allow_negative_stock=True),
    ]
    db_session.add_all(stores)
    db_session.commit()
    for store in stores:
        db_session.refresh(store)
    return stores


@pytest.fixture
def seed_units(db_session, seed_org):
    """Units "pcs" and "kg" keyed by code."""
    units = {
        code: Unit(organization_id=seed_org.id, code=code, label_ru=code, label_kg=code)
        for code in ("pcs", "kg")
    }
    db_session.add_all(units.values())
    db_session.commit()
    for unit in units.values():
        db_session.refresh(unit)
    return units


@pytest.fixture
def seed_supplier(db_session, seed_org):
    supplier = Supplier(organization_id=seed_org.id, name="Wholesale LLC")
    db_session.add(supplier)
    db_session.commit()
    db_session.refresh(supplier)
    return supplier


@pytest.fixture
def seed_attributes(db_session, seed_org):
    """
    Attribute schema:
    - size: SELECT, required
    - weight: NUMBER
    - tags: MULTI_SELECT
    - color: TEXT
    - legacy: TEXT, inactive and required (must be ignored)
    """
    definitions = [
        AttributeDefinition(
            organization_id=seed_org.id,
            key="size",
            type=AttributeType.SELECT.value,
            required=True,
            options_ru=["S", "M", "L"],
            options_kg=["S", "M", "L", "XL"],
        ),
        AttributeDefinition(
            organization_id=seed_org.id,
            key="weight",
            type=AttributeType.NUMBER.value,
        ),
        AttributeDefinition(
            organization_id=seed_org.id,
            key="tags",
            type=AttributeType.MULTI_SELECT.value,
            options_ru=["eco", "sale"],
        ),
        AttributeDefinition(
            organization_id=seed_org.id,
            key="color",
            type=AttributeType.TEXT.value,
        ),
        AttributeDefinition(
            organization_id=seed_org.id,
            key="legacy",
            type=AttributeType.TEXT.value,
            required=True,
            is_active=False,
        ),
    ]
    db_session.add_all(definitions)
    db_session.commit()
    return definitions


@pytest.fixture
def actor(seed_org):
    return ActorContext(
        organization_id=seed_org.id,
        actor_id="user-1",
        actor_email="admin@test.com",
        request_id="req-test",
    )


@pytest.fixture
def other_actor(seed_other_org):
    return ActorContext(organization_id=seed_other_org.id, actor_id="user-2")


@pytest.fixture
def api_headers(seed_org):
    """Headers the gateway forwards for the test organization."""
    return {
        "X-Organization-Id": seed_org.id,
        "X-Actor-Id": "user-1",
        "X-Actor-Email": "admin@test.com",
    }


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def product_service(db_session):
    return ProductService(db_session)


@pytest.fixture
def barcode_service(db_session):
    return BarcodeService(db_session)


@pytest.fixture
def import_service(db_session):
    return ImportService(db_session)


@pytest.fixture
def make_product(product_service, actor, seed_units, seed_stores, seed_attributes):
    """Factory creating a product through ProductService."""

    def _make(sku: str, **overrides):
        data = {
            "sku": sku,
            "name": f"Product {sku}",
            "base_unit_id": seed_units["pcs"].id,
        }
        data.update(overrides)
        return product_service.create_product(ProductCreate(**data), actor)

    return _make
