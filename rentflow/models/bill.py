from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel

from rentflow.models.tenant import Building, Room, Tenant


class PaymentStatus(str, Enum):
    NOT_PAID = "Not Paid"
    PAID = "Paid"

    @classmethod
    def parse(cls, value: str | None) -> PaymentStatus:
        """Stored statuses are free-form; anything but 'paid' (any case) is unpaid."""
        if (value or "").strip().lower() == "paid":
            return cls.PAID
        return cls.NOT_PAID


class Charge(BaseModel):
    title: str = ""
    amount: int = 0  # paise


class Payment(BaseModel):
    method: str = ""
    reference: str = ""
    paid_at: datetime | None = None


class Bill(BaseModel):
    id: str = ""
    tenant_id: str = ""
    room_id: str = ""
    building_id: str | None = None
    billing_month: date
    total_amount: int = 0  # paise
    charges: list[Charge] = []
    payment_status: str = PaymentStatus.NOT_PAID.value
    payment: Payment | None = None
    pdf_key: str | None = None
    pdf_url: str | None = None
    payment_order_id: str | None = None  # gateway order awaiting payment
    notes: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    # Read-only joins filled in by the repository.
    tenant: Tenant | None = None
    room: Room | None = None
    building: Building | None = None

    @property
    def status(self) -> PaymentStatus:
        return PaymentStatus.parse(self.payment_status)

    @property
    def is_paid(self) -> bool:
        return self.status is PaymentStatus.PAID


class BillCreate(BaseModel):
    tenant_id: str
    room_id: str
    billing_month: date
    charges: list[Charge] = []
    total_amount: int | None = None  # defaults to the sum of charges
    building_id: str | None = None  # defaults to the room's building
    notes: str = ""


class BillUpdate(BaseModel):
    charges: list[Charge] | None = None
    total_amount: int | None = None
    notes: str | None = None


class PaymentDetails(BaseModel):
    method: str = "UPI"
    reference: str = ""
    paid_at: datetime | None = None
