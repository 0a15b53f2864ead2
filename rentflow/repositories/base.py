from abc import ABC, abstractmethod
from datetime import date

from rentflow.models.bill import Bill, Payment
from rentflow.models.tenant import Building, Room, Tenant


class BillRepository(ABC):
    @abstractmethod
    def create(self, bill: Bill) -> Bill: ...

    @abstractmethod
    def get_by_id(self, bill_id: str) -> Bill | None:
        """Bill joined with its tenant, room and building."""
        ...

    @abstractmethod
    def find_by_period(self, tenant_id: str, room_id: str, billing_month: date) -> Bill | None: ...

    @abstractmethod
    def list_bills(
        self,
        tenant_id: str | None = None,
        room_id: str | None = None,
        month: date | None = None,
    ) -> list[Bill]: ...

    @abstractmethod
    def list_all(self) -> list[Bill]: ...

    @abstractmethod
    def update(self, bill: Bill) -> Bill: ...

    @abstractmethod
    def update_pdf_locator(self, bill_id: str, pdf_key: str, pdf_url: str | None) -> None: ...

    @abstractmethod
    def set_payment_order(self, bill_id: str, order_id: str) -> None: ...

    @abstractmethod
    def mark_paid(self, bill_id: str, payment: Payment) -> Bill: ...

    @abstractmethod
    def delete(self, bill_id: str) -> None: ...


class TenantRepository(ABC):
    @abstractmethod
    def create(self, tenant: Tenant) -> Tenant: ...

    @abstractmethod
    def get_by_id(self, tenant_id: str) -> Tenant | None: ...

    @abstractmethod
    def get_by_code(self, tenant_code: str) -> Tenant | None: ...


class RoomRepository(ABC):
    @abstractmethod
    def create(self, room: Room) -> Room: ...

    @abstractmethod
    def get_by_id(self, room_id: str) -> Room | None: ...


class BuildingRepository(ABC):
    @abstractmethod
    def create(self, building: Building) -> Building: ...

    @abstractmethod
    def get_by_id(self, building_id: str) -> Building | None: ...
