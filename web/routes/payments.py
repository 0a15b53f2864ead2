from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Request

from rentflow.models.payment import PaymentConfirmation, PaymentOrder, PublicBill
from web.deps import get_payment_service

logger = logging.getLogger(__name__)

# Unauthenticated routes behind the payment link sent to tenants.
router = APIRouter(prefix="/api/public/bills", tags=["public"])


@router.get("")
async def public_bill_list(request: Request, tenant_code: str, month: date | None = None) -> list[PublicBill]:
    bills = get_payment_service(request).list_tenant_bills(tenant_code, month=month)
    return [PublicBill.from_bill(bill) for bill in bills]


@router.get("/{bill_id}")
async def public_bill_detail(request: Request, bill_id: str) -> PublicBill:
    bill = get_payment_service(request).bill_service.get_bill(bill_id)
    return PublicBill.from_bill(bill)


@router.post("/{bill_id}/payment-order")
async def public_payment_order(request: Request, bill_id: str) -> PaymentOrder:
    logger.info("POST /api/public/bills/%s/payment-order", bill_id)
    return await get_payment_service(request).create_order(bill_id)


@router.post("/{bill_id}/mark-paid")
async def public_mark_paid(request: Request, bill_id: str, confirmation: PaymentConfirmation) -> PublicBill:
    logger.info("POST /api/public/bills/%s/mark-paid payment=%s", bill_id, confirmation.payment_id)
    bill = await get_payment_service(request).confirm_payment(bill_id, confirmation)
    return PublicBill.from_bill(bill)
