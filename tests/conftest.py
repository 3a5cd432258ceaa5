"""
Shared pytest fixtures: in-memory SQLite, a session per test and a
TestClient whose get_db dependency points at that session's engine.
"""

import os
from decimal import Decimal

os.environ.setdefault("RATE_AUTO_UPDATE", "false")
os.environ.setdefault("METALS_API_KEY", "test-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config.database import Base, get_db
from main import app
from modules.catalog.models import Product
from modules.pricing.service import ensure_assets, update_asset_rate


@pytest.fixture()
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture()
def db(engine):
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    ensure_assets(session)
    session.commit()
    yield session
    session.close()


@pytest.fixture()
def gold_rate(db):
    update_asset_rate(db, "gold", Decimal("6000"), updated_by="test")
    db.commit()
    return Decimal("6000")


@pytest.fixture()
def client(engine):
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        session = Session()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    # Not entered as a context manager, so lifespan (scheduler) never runs
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_ring(**overrides) -> Product:
    """The 5.5 g 22K gold ring priced throughout the tests."""
    data = dict(
        name="Solitaire Ring",
        sku="RNG-001",
        pricing_mode="dynamic",
        metal_type="gold",
        metal_weight=Decimal("5.5"),
        metal_purity=22,
        making_charge_percent=Decimal("15"),
        tax_percent=Decimal("3"),
    )
    data.update(overrides)
    return Product(**data)


@pytest.fixture()
def ring():
    return make_ring()


@pytest.fixture()
def ring_with_stones():
    p = make_ring()
    stones = p.stones
    stones.add("Diamond", "VS1", Decimal("0.5"), Decimal("50000"))
    stones.add("Ruby", "AAA", Decimal("1"), Decimal("20000"))
    p.stones = stones
    return p


@pytest.fixture()
def make_product():
    return make_ring
