"""Root conftest: in-memory SQLite engine and fixtures for the full schema."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest
from sqlalchemy import Connection, create_engine, event, text
from sqlalchemy.engine import Engine

from rentflow.models.bill import Bill, Charge
from rentflow.models.tenant import Building, Room, Tenant
from rentflow.repositories.sqlalchemy import (
    SQLAlchemyBuildingRepository,
    SQLAlchemyRoomRepository,
    SQLAlchemyTenantRepository,
)
from rentflow.settings import Settings

# Matches Alembic head: 8c4e2d6a9b31 (add payment_order_id to bills)
SCHEMA_DDL = """
CREATE TABLE buildings (
    id VARCHAR(26) PRIMARY KEY,
    name TEXT NOT NULL,
    address TEXT NOT NULL DEFAULT '',
    created_at DATETIME NOT NULL
);

CREATE TABLE rooms (
    id VARCHAR(26) PRIMARY KEY,
    number TEXT NOT NULL,
    building_id VARCHAR(26) REFERENCES buildings(id),
    created_at DATETIME NOT NULL
);

CREATE TABLE tenants (
    id VARCHAR(26) PRIMARY KEY,
    tenant_code TEXT NOT NULL UNIQUE,
    full_name TEXT NOT NULL,
    email TEXT,
    phone TEXT,
    created_at DATETIME NOT NULL
);

CREATE TABLE bills (
    id VARCHAR(26) PRIMARY KEY,
    tenant_id VARCHAR(26) NOT NULL REFERENCES tenants(id),
    room_id VARCHAR(26) NOT NULL REFERENCES rooms(id),
    building_id VARCHAR(26) REFERENCES buildings(id),
    billing_month DATE NOT NULL,
    total_amount INTEGER NOT NULL,
    payment_status TEXT NOT NULL DEFAULT 'Not Paid',
    payment_method TEXT,
    payment_reference TEXT,
    paid_at DATETIME,
    pdf_key TEXT,
    pdf_url TEXT,
    payment_order_id VARCHAR(64),
    notes TEXT NOT NULL DEFAULT '',
    created_at DATETIME NOT NULL,
    updated_at DATETIME NOT NULL,
    UNIQUE(tenant_id, room_id, billing_month)
);

CREATE TABLE bill_charges (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    bill_id VARCHAR(26) NOT NULL REFERENCES bills(id) ON DELETE CASCADE,
    title TEXT NOT NULL,
    amount INTEGER NOT NULL,
    sort_order INTEGER NOT NULL DEFAULT 0
);
"""


def create_schema(conn: Connection) -> None:
    for statement in SCHEMA_DDL.strip().split(";"):
        stmt = statement.strip()
        if stmt:
            conn.execute(text(stmt))
    conn.commit()


@pytest.fixture()
def db_engine() -> Engine:
    engine = create_engine("sqlite:///:memory:")

    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    return engine


@pytest.fixture()
def db_connection(db_engine: Engine) -> Connection:
    conn = db_engine.connect()
    create_schema(conn)
    yield conn
    conn.close()


def seed_occupancy(conn: Connection, **tenant_overrides) -> tuple[Tenant, Room, Building]:
    """Create one building with one room and one tenant."""
    building = SQLAlchemyBuildingRepository(conn).create(Building(name="Sai Residency", address="12 MG Road, Pune"))
    room = SQLAlchemyRoomRepository(conn).create(Room(number="101", building_id=building.id))
    tenant_fields = dict(
        tenant_code="T-0001",
        full_name="Asha Verma",
        email="asha@example.com",
        phone="9876543210",
    )
    tenant_fields.update(tenant_overrides)
    tenant = SQLAlchemyTenantRepository(conn).create(Tenant(**tenant_fields))
    return tenant, room, building


def make_settings(**overrides) -> Settings:
    defaults = dict(
        frontend_url="https://app.example.com",
        backend_url="https://api.example.com",
        company_name="Sunrise Rentals",
        support_email="help@sunrise.example",
        email_throttle_seconds=0,
    )
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)


def _sample_bill(**overrides) -> Bill:
    defaults = dict(
        id="01HQ3K8Z9X0000000000000001",
        tenant_id="tenant-1",
        room_id="room-1",
        billing_month=date(2024, 3, 1),
        total_amount=500000,
        charges=[
            Charge(title="Rent", amount=450000),
            Charge(title="Electricity", amount=50000),
        ],
        updated_at=datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc),
        tenant=Tenant(
            id="tenant-1",
            tenant_code="T-0001",
            full_name="Asha Verma",
            email="asha@example.com",
            phone="9876543210",
        ),
        room=Room(id="room-1", number="101"),
    )
    defaults.update(overrides)
    return Bill(**defaults)


@pytest.fixture()
def app_settings(tmp_path) -> Settings:
    return make_settings(storage_local_path=str(tmp_path / "invoices"))


@pytest.fixture()
def sample_bill():
    return _sample_bill
