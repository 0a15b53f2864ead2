from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Connection, text
from sqlalchemy.engine import RowMapping
from ulid import ULID

from rentflow.constants import IST_TZ
from rentflow.models.bill import Bill, Charge, Payment, PaymentStatus
from rentflow.models.tenant import Building, Room, Tenant
from rentflow.repositories.base import (
    BillRepository,
    BuildingRepository,
    RoomRepository,
    TenantRepository,
)


def _now() -> datetime:
    return datetime.now(IST_TZ)


BILL_SELECT = (
    "SELECT b.*, "
    "t.tenant_code AS t_tenant_code, t.full_name AS t_full_name, t.email AS t_email, t.phone AS t_phone, "
    "r.number AS r_number, r.building_id AS r_building_id, "
    "g.name AS g_name, g.address AS g_address "
    "FROM bills b "
    "LEFT JOIN tenants t ON t.id = b.tenant_id "
    "LEFT JOIN rooms r ON r.id = b.room_id "
    "LEFT JOIN buildings g ON g.id = b.building_id"
)


class SQLAlchemyBillRepository(BillRepository):
    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def _insert_charges(self, bill_id: str, charges: list[Charge]) -> None:
        for i, charge in enumerate(charges):
            self.conn.execute(
                text(
                    "INSERT INTO bill_charges (bill_id, title, amount, sort_order) "
                    "VALUES (:bill_id, :title, :amount, :sort_order)"
                ),
                {"bill_id": bill_id, "title": charge.title, "amount": charge.amount, "sort_order": i},
            )

    def create(self, bill: Bill) -> Bill:
        bill_id = bill.id or str(ULID())
        now = _now()
        self.conn.execute(
            text(
                "INSERT INTO bills (id, tenant_id, room_id, building_id, billing_month, total_amount, "
                "payment_status, pdf_key, pdf_url, notes, created_at, updated_at) "
                "VALUES (:id, :tenant_id, :room_id, :building_id, :billing_month, :total_amount, "
                ":payment_status, :pdf_key, :pdf_url, :notes, :created_at, :updated_at)"
            ),
            {
                "id": bill_id,
                "tenant_id": bill.tenant_id,
                "room_id": bill.room_id,
                "building_id": bill.building_id,
                "billing_month": bill.billing_month,
                "total_amount": bill.total_amount,
                "payment_status": bill.payment_status,
                "pdf_key": bill.pdf_key,
                "pdf_url": bill.pdf_url,
                "notes": bill.notes,
                "created_at": now,
                "updated_at": now,
            },
        )
        self._insert_charges(bill_id, bill.charges)
        self.conn.commit()
        result = self.get_by_id(bill_id)
        if result is None:
            raise RuntimeError(f"Failed to retrieve bill after create (id={bill_id})")
        return result

    @staticmethod
    def _build_bill(row: RowMapping, charge_rows: list[RowMapping]) -> Bill:
        payment = None
        if PaymentStatus.parse(row["payment_status"]) is PaymentStatus.PAID or row["paid_at"]:
            payment = Payment(
                method=row["payment_method"] or "",
                reference=row["payment_reference"] or "",
                paid_at=row["paid_at"],
            )
        tenant = None
        if row["t_full_name"] is not None or row["t_tenant_code"] is not None:
            tenant = Tenant(
                id=row["tenant_id"],
                tenant_code=row["t_tenant_code"] or "",
                full_name=row["t_full_name"] or "",
                email=row["t_email"],
                phone=row["t_phone"],
            )
        room = None
        if row["r_number"] is not None:
            room = Room(id=row["room_id"], number=row["r_number"], building_id=row["r_building_id"])
        building = None
        if row["g_name"] is not None:
            building = Building(id=row["building_id"], name=row["g_name"], address=row["g_address"] or "")

        return Bill(
            id=row["id"],
            tenant_id=row["tenant_id"],
            room_id=row["room_id"],
            building_id=row["building_id"],
            billing_month=row["billing_month"],
            total_amount=row["total_amount"],
            charges=[Charge(title=c["title"], amount=c["amount"]) for c in charge_rows],
            payment_status=row["payment_status"],
            payment=payment,
            pdf_key=row["pdf_key"],
            pdf_url=row["pdf_url"],
            payment_order_id=row["payment_order_id"],
            notes=row["notes"] or "",
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            tenant=tenant,
            room=room,
            building=building,
        )

    def _build_bills(self, rows: list[RowMapping]) -> list[Bill]:
        if not rows:
            return []
        bill_ids = [row["id"] for row in rows]
        placeholders = ", ".join(f":id{i}" for i in range(len(bill_ids)))
        params = {f"id{i}": bid for i, bid in enumerate(bill_ids)}
        all_charges = (
            self.conn.execute(
                text(f"SELECT * FROM bill_charges WHERE bill_id IN ({placeholders}) ORDER BY sort_order"),
                params,
            )
            .mappings()
            .fetchall()
        )
        charges_by_bill: dict[str, list[RowMapping]] = {}
        for charge_row in all_charges:
            charges_by_bill.setdefault(charge_row["bill_id"], []).append(charge_row)
        return [self._build_bill(row, charges_by_bill.get(row["id"], [])) for row in rows]

    def get_by_id(self, bill_id: str) -> Bill | None:
        row = (
            self.conn.execute(text(f"{BILL_SELECT} WHERE b.id = :id"), {"id": bill_id})
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return self._build_bills([row])[0]

    def find_by_period(self, tenant_id: str, room_id: str, billing_month: date) -> Bill | None:
        row = (
            self.conn.execute(
                text(
                    f"{BILL_SELECT} WHERE b.tenant_id = :tenant_id AND b.room_id = :room_id "
                    "AND b.billing_month = :billing_month"
                ),
                {"tenant_id": tenant_id, "room_id": room_id, "billing_month": billing_month},
            )
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return self._build_bills([row])[0]

    def list_bills(
        self,
        tenant_id: str | None = None,
        room_id: str | None = None,
        month: date | None = None,
    ) -> list[Bill]:
        clauses = []
        params: dict = {}
        if tenant_id:
            clauses.append("b.tenant_id = :tenant_id")
            params["tenant_id"] = tenant_id
        if room_id:
            clauses.append("b.room_id = :room_id")
            params["room_id"] = room_id
        if month:
            clauses.append("b.billing_month = :billing_month")
            params["billing_month"] = month
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = (
            self.conn.execute(text(f"{BILL_SELECT}{where} ORDER BY b.billing_month DESC, b.id DESC"), params)
            .mappings()
            .fetchall()
        )
        return self._build_bills(list(rows))

    def list_all(self) -> list[Bill]:
        return self.list_bills()

    def update(self, bill: Bill) -> Bill:
        self.conn.execute(
            text(
                "UPDATE bills SET total_amount = :total_amount, notes = :notes, "
                "updated_at = :updated_at WHERE id = :id"
            ),
            {
                "total_amount": bill.total_amount,
                "notes": bill.notes,
                "updated_at": _now(),
                "id": bill.id,
            },
        )
        self.conn.execute(text("DELETE FROM bill_charges WHERE bill_id = :bill_id"), {"bill_id": bill.id})
        self._insert_charges(bill.id, bill.charges)
        self.conn.commit()
        result = self.get_by_id(bill.id)
        if result is None:
            raise RuntimeError(f"Failed to retrieve bill after update (id={bill.id})")
        return result

    def update_pdf_locator(self, bill_id: str, pdf_key: str, pdf_url: str | None) -> None:
        self.conn.execute(
            text("UPDATE bills SET pdf_key = :pdf_key, pdf_url = :pdf_url, updated_at = :updated_at WHERE id = :id"),
            {"pdf_key": pdf_key, "pdf_url": pdf_url, "updated_at": _now(), "id": bill_id},
        )
        self.conn.commit()

    def set_payment_order(self, bill_id: str, order_id: str) -> None:
        self.conn.execute(
            text("UPDATE bills SET payment_order_id = :order_id WHERE id = :id"),
            {"order_id": order_id, "id": bill_id},
        )
        self.conn.commit()

    def mark_paid(self, bill_id: str, payment: Payment) -> Bill:
        self.conn.execute(
            text(
                "UPDATE bills SET payment_status = :payment_status, payment_method = :method, "
                "payment_reference = :reference, paid_at = :paid_at, updated_at = :updated_at WHERE id = :id"
            ),
            {
                "payment_status": PaymentStatus.PAID.value,
                "method": payment.method,
                "reference": payment.reference,
                "paid_at": payment.paid_at or _now(),
                "updated_at": _now(),
                "id": bill_id,
            },
        )
        self.conn.commit()
        result = self.get_by_id(bill_id)
        if result is None:
            raise RuntimeError(f"Failed to retrieve bill after payment (id={bill_id})")
        return result

    def delete(self, bill_id: str) -> None:
        self.conn.execute(text("DELETE FROM bill_charges WHERE bill_id = :id"), {"id": bill_id})
        self.conn.execute(text("DELETE FROM bills WHERE id = :id"), {"id": bill_id})
        self.conn.commit()


class SQLAlchemyTenantRepository(TenantRepository):
    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    @staticmethod
    def _row_to_tenant(row: RowMapping) -> Tenant:
        return Tenant(
            id=row["id"],
            tenant_code=row["tenant_code"],
            full_name=row["full_name"],
            email=row["email"],
            phone=row["phone"],
            created_at=row["created_at"],
        )

    def create(self, tenant: Tenant) -> Tenant:
        tenant_id = tenant.id or str(ULID())
        self.conn.execute(
            text(
                "INSERT INTO tenants (id, tenant_code, full_name, email, phone, created_at) "
                "VALUES (:id, :tenant_code, :full_name, :email, :phone, :created_at)"
            ),
            {
                "id": tenant_id,
                "tenant_code": tenant.tenant_code or tenant_id,
                "full_name": tenant.full_name,
                "email": tenant.email,
                "phone": tenant.phone,
                "created_at": _now(),
            },
        )
        self.conn.commit()
        result = self.get_by_id(tenant_id)
        if result is None:
            raise RuntimeError(f"Failed to retrieve tenant after create (id={tenant_id})")
        return result

    def get_by_id(self, tenant_id: str) -> Tenant | None:
        row = self.conn.execute(text("SELECT * FROM tenants WHERE id = :id"), {"id": tenant_id}).mappings().fetchone()
        if row is None:
            return None
        return self._row_to_tenant(row)

    def get_by_code(self, tenant_code: str) -> Tenant | None:
        row = (
            self.conn.execute(text("SELECT * FROM tenants WHERE tenant_code = :code"), {"code": tenant_code})
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return self._row_to_tenant(row)


class SQLAlchemyRoomRepository(RoomRepository):
    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def create(self, room: Room) -> Room:
        room_id = room.id or str(ULID())
        self.conn.execute(
            text(
                "INSERT INTO rooms (id, number, building_id, created_at) "
                "VALUES (:id, :number, :building_id, :created_at)"
            ),
            {"id": room_id, "number": room.number, "building_id": room.building_id, "created_at": _now()},
        )
        self.conn.commit()
        result = self.get_by_id(room_id)
        if result is None:
            raise RuntimeError(f"Failed to retrieve room after create (id={room_id})")
        return result

    def get_by_id(self, room_id: str) -> Room | None:
        row = self.conn.execute(text("SELECT * FROM rooms WHERE id = :id"), {"id": room_id}).mappings().fetchone()
        if row is None:
            return None
        return Room(id=row["id"], number=row["number"], building_id=row["building_id"], created_at=row["created_at"])


class SQLAlchemyBuildingRepository(BuildingRepository):
    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def create(self, building: Building) -> Building:
        building_id = building.id or str(ULID())
        self.conn.execute(
            text("INSERT INTO buildings (id, name, address, created_at) VALUES (:id, :name, :address, :created_at)"),
            {"id": building_id, "name": building.name, "address": building.address, "created_at": _now()},
        )
        self.conn.commit()
        result = self.get_by_id(building_id)
        if result is None:
            raise RuntimeError(f"Failed to retrieve building after create (id={building_id})")
        return result

    def get_by_id(self, building_id: str) -> Building | None:
        row = (
            self.conn.execute(text("SELECT * FROM buildings WHERE id = :id"), {"id": building_id})
            .mappings()
            .fetchone()
        )
        if row is None:
            return None
        return Building(id=row["id"], name=row["name"], address=row["address"] or "", created_at=row["created_at"])
