from rentflow.repositories.base import (
    BillRepository,
    BuildingRepository,
    RoomRepository,
    TenantRepository,
)


def get_bill_repository() -> BillRepository:
    from rentflow.db import get_connection
    from rentflow.repositories.sqlalchemy import SQLAlchemyBillRepository

    return SQLAlchemyBillRepository(get_connection())


def get_tenant_repository() -> TenantRepository:
    from rentflow.db import get_connection
    from rentflow.repositories.sqlalchemy import SQLAlchemyTenantRepository

    return SQLAlchemyTenantRepository(get_connection())


def get_room_repository() -> RoomRepository:
    from rentflow.db import get_connection
    from rentflow.repositories.sqlalchemy import SQLAlchemyRoomRepository

    return SQLAlchemyRoomRepository(get_connection())


def get_building_repository() -> BuildingRepository:
    from rentflow.db import get_connection
    from rentflow.repositories.sqlalchemy import SQLAlchemyBuildingRepository

    return SQLAlchemyBuildingRepository(get_connection())
