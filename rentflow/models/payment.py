from __future__ import annotations

from datetime import date, datetime

from pydantic import AliasChoices, BaseModel, Field

from rentflow.models.bill import Bill, Charge


class PaymentOrder(BaseModel):
    bill_id: str
    order_id: str
    key_id: str  # public key the checkout widget needs
    amount: int  # paise
    currency: str = "INR"


class PaymentConfirmation(BaseModel):
    """What the checkout widget hands back after a successful payment.

    Field names from the Razorpay handler (``razorpay_order_id`` and so on)
    are accepted as well.
    """

    order_id: str = Field(validation_alias=AliasChoices("order_id", "razorpay_order_id"))
    payment_id: str = Field(validation_alias=AliasChoices("payment_id", "razorpay_payment_id"))
    signature: str = Field(validation_alias=AliasChoices("signature", "razorpay_signature"))
    paid_at: datetime | None = None


class PublicBill(BaseModel):
    """Bill as shown to a tenant on the public payment page. No contact details."""

    id: str
    billing_month: date
    total_amount: int
    charges: list[Charge] = []
    payment_status: str
    paid_at: datetime | None = None
    tenant_code: str = ""
    tenant_name: str = ""
    room_number: str = ""
    building_name: str = ""
    building_address: str = ""

    @classmethod
    def from_bill(cls, bill: Bill) -> PublicBill:
        return cls(
            id=bill.id,
            billing_month=bill.billing_month,
            total_amount=bill.total_amount,
            charges=bill.charges,
            payment_status=bill.status.value,
            paid_at=bill.payment.paid_at if bill.payment else None,
            tenant_code=bill.tenant.tenant_code if bill.tenant else "",
            tenant_name=bill.tenant.full_name if bill.tenant else "",
            room_number=bill.room.number if bill.room else "",
            building_name=bill.building.name if bill.building else "",
            building_address=bill.building.address if bill.building else "",
        )
