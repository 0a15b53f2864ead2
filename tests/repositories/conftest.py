import pytest
from sqlalchemy import Connection

from rentflow.repositories.sqlalchemy import (
    SQLAlchemyBillRepository,
    SQLAlchemyBuildingRepository,
    SQLAlchemyRoomRepository,
    SQLAlchemyTenantRepository,
)


@pytest.fixture()
def bill_repo(db_connection: Connection) -> SQLAlchemyBillRepository:
    return SQLAlchemyBillRepository(db_connection)


@pytest.fixture()
def tenant_repo(db_connection: Connection) -> SQLAlchemyTenantRepository:
    return SQLAlchemyTenantRepository(db_connection)


@pytest.fixture()
def room_repo(db_connection: Connection) -> SQLAlchemyRoomRepository:
    return SQLAlchemyRoomRepository(db_connection)


@pytest.fixture()
def building_repo(db_connection: Connection) -> SQLAlchemyBuildingRepository:
    return SQLAlchemyBuildingRepository(db_connection)
