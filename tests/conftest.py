from __future__ import annotations

from decimal import Decimal
import os
import sys

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import importlib

fastapi_app = importlib.import_module("ftz_outbound.main").app
from ftz_outbound.db.base import Base
from ftz_outbound.db.session import enable_sqlite_savepoints, get_db

# Ensure all models are registered with SQLAlchemy metadata
import ftz_outbound.models  # noqa: F401
from ftz_outbound.models.master_data import Customer, InventoryLot, Part
from ftz_outbound.models.preshipment import Preshipment, PreshipmentItem


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)

    Base.metadata.create_all(engine)
    return engine


@pytest.fixture(scope="function")
def db_session(engine):
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def client(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def _override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    with TestClient(fastapi_app) as test_client:
        yield test_client
    fastapi_app.dependency_overrides.clear()


def seed_master_data(db) -> None:
    db.add_all(
        [
            Customer(id=1, name="Acme Motors", ein="12-3456789"),
            Customer(id=2, name="Baja Parts", ein="98-7654321"),
            Part(
                id="P-100",
                description="Steering bracket",
                hts_code="870880",
                country_of_origin="MX",
                standard_value=Decimal("12.50"),
                unit_of_measure="PCS",
            ),
            Part(
                id="P-200",
                description="Brake rotor",
                hts_code="8708.30.5090",
                country_of_origin="CN",
                standard_value=Decimal("40.00"),
                unit_of_measure="PCS",
            ),
        ]
    )
    db.flush()
    db.add_all(
        [
            InventoryLot(
                id="LOT-1",
                part_id="P-100",
                customer_id=1,
                current_quantity=Decimal("100"),
                status="Available",
                ftz_status="P",
            ),
            InventoryLot(
                id="LOT-2",
                part_id="P-200",
                customer_id=1,
                current_quantity=Decimal("5"),
                status="Available",
                ftz_status="N",
            ),
        ]
    )
    db.commit()


def seed_preshipment(
    db,
    shipment_id: str,
    *,
    stage: str = "Planning",
    customer_id: int = 1,
    items: list[dict] | None = None,
    **fields,
) -> Preshipment:
    header = {
        "filing_district_port": "2304",
        "entry_filer_code": "ABC",
        "importer_of_record_number": "12-3456789",
    }
    header.update(fields)
    preshipment = Preshipment(
        shipment_id=shipment_id,
        shipment_type="7501 Consumption Entry",
        customer_id=customer_id,
        stage=stage,
        **header,
    )
    if items is None:
        items = [{"part_id": "P-100", "lot_id": "LOT-1", "quantity": Decimal("10")}]
    for index, item in enumerate(items, start=1):
        preshipment.items.append(PreshipmentItem(item_number=index, **item))
    db.add(preshipment)
    db.commit()
    return preshipment


@pytest.fixture(scope="function")
def master_data(db_session):
    seed_master_data(db_session)
    return db_session


@pytest.fixture(scope="function")
def make_preshipment(master_data):
    def _make(shipment_id: str, **kwargs) -> Preshipment:
        return seed_preshipment(master_data, shipment_id, **kwargs)

    return _make
