from __future__ import annotations

import logging
from datetime import date

from rentflow.exceptions import (
    BillAlreadyPaidError,
    PaymentError,
    PaymentGatewayUnavailableError,
    PaymentVerificationError,
    TenantNotFoundError,
)
from rentflow.models.bill import Bill, PaymentDetails
from rentflow.models.payment import PaymentConfirmation, PaymentOrder
from rentflow.payments.razorpay import RazorpayGateway
from rentflow.services.bill_service import BillService

logger = logging.getLogger(__name__)

ONLINE_PAYMENT_METHOD = "Online"


class PaymentService:
    """Online payment of bills: gateway orders, confirmation and the tenant's bill lookup.

    A confirmed payment goes through ``BillService.mark_paid``, so pending
    reminders are cancelled and the PAID notification is sent as for a
    payment recorded by staff.
    """

    def __init__(self, bill_service: BillService, gateway: RazorpayGateway) -> None:
        self.bill_service = bill_service
        self.gateway = gateway

    def list_tenant_bills(self, tenant_code: str, month: date | None = None) -> list[Bill]:
        code = tenant_code.strip()
        tenant = self.bill_service.tenant_repo.get_by_code(code) if code else None
        if tenant is None:
            raise TenantNotFoundError(f"Tenant {tenant_code} not found")
        return self.bill_service.list_bills(tenant_id=tenant.id, month=month)

    async def create_order(self, bill_id: str) -> PaymentOrder:
        bill = self.bill_service.get_bill(bill_id)
        if bill.is_paid:
            raise BillAlreadyPaidError(f"Bill {bill_id} is already paid")
        if not self.gateway.configured:
            raise PaymentGatewayUnavailableError("Payment provider not configured")
        if bill.total_amount <= 0:
            raise PaymentError(f"Bill {bill_id} has nothing to pay")

        currency = self.gateway.settings.currency_code
        order_id = await self.gateway.create_order(
            amount=bill.total_amount,
            currency=currency,
            receipt=f"bill_{bill.id}",
            notes={"bill_id": bill.id, "tenant_id": bill.tenant_id},
        )
        self.bill_service.bill_repo.set_payment_order(bill.id, order_id)
        return PaymentOrder(
            bill_id=bill.id,
            order_id=order_id,
            key_id=self.gateway.key_id,
            amount=bill.total_amount,
            currency=currency,
        )

    async def confirm_payment(self, bill_id: str, confirmation: PaymentConfirmation) -> Bill:
        """Mark the bill paid once the gateway signature checks out."""
        bill = self.bill_service.get_bill(bill_id)
        if bill.is_paid:
            raise BillAlreadyPaidError(f"Bill {bill_id} is already paid")
        if not self.gateway.configured:
            raise PaymentGatewayUnavailableError("Payment provider not configured")
        if not bill.payment_order_id or confirmation.order_id != bill.payment_order_id:
            logger.warning(
                "Payment for bill %s names order %s, bill has %s",
                bill.id,
                confirmation.order_id,
                bill.payment_order_id,
            )
            raise PaymentVerificationError(f"Order {confirmation.order_id} does not belong to bill {bill_id}")
        if not self.gateway.verify_signature(confirmation.order_id, confirmation.payment_id, confirmation.signature):
            logger.warning("Invalid payment signature for bill %s (payment %s)", bill.id, confirmation.payment_id)
            raise PaymentVerificationError("Payment signature is invalid")

        logger.info("Online payment verified: bill=%s payment=%s", bill.id, confirmation.payment_id)
        details = PaymentDetails(
            method=ONLINE_PAYMENT_METHOD,
            reference=confirmation.payment_id,
            paid_at=confirmation.paid_at,
        )
        return await self.bill_service.mark_paid(bill.id, details)
