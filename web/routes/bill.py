from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse, RedirectResponse, Response

from rentflow.models.bill import Bill, BillCreate, BillUpdate, PaymentDetails
from rentflow.models.payment import PaymentOrder
from web.deps import get_bill_service, get_payment_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bills", tags=["bills"])


@router.get("")
async def bill_list(
    request: Request,
    tenant_id: str | None = None,
    room_id: str | None = None,
    month: date | None = None,
) -> list[Bill]:
    bill_service = get_bill_service(request)
    return bill_service.list_bills(tenant_id=tenant_id, room_id=room_id, month=month)


@router.post("", status_code=201)
async def bill_create(request: Request, data: BillCreate, send_notifications: bool = True) -> Bill:
    logger.info("POST /api/bills tenant=%s room=%s month=%s", data.tenant_id, data.room_id, data.billing_month)
    bill_service = get_bill_service(request)
    return await bill_service.create_bill(data, send_notifications=send_notifications)


@router.get("/{bill_id}")
async def bill_detail(request: Request, bill_id: str) -> Bill:
    return get_bill_service(request).get_bill(bill_id)


@router.patch("/{bill_id}")
async def bill_update(request: Request, bill_id: str, data: BillUpdate, send_notifications: bool = True) -> Bill:
    logger.info("PATCH /api/bills/%s", bill_id)
    bill_service = get_bill_service(request)
    return await bill_service.update_bill(bill_id, data, send_notifications=send_notifications)


@router.delete("/{bill_id}", status_code=204)
async def bill_delete(request: Request, bill_id: str) -> Response:
    logger.info("DELETE /api/bills/%s", bill_id)
    get_bill_service(request).delete_bill(bill_id)
    return Response(status_code=204)


@router.post("/{bill_id}/mark-paid")
async def bill_mark_paid(
    request: Request,
    bill_id: str,
    details: PaymentDetails | None = None,
    send_notifications: bool = True,
) -> Bill:
    logger.info("POST /api/bills/%s/mark-paid", bill_id)
    bill_service = get_bill_service(request)
    return await bill_service.mark_paid(bill_id, details or PaymentDetails(), send_notifications=send_notifications)


@router.post("/{bill_id}/payment-order")
async def bill_payment_order(request: Request, bill_id: str) -> PaymentOrder:
    logger.info("POST /api/bills/%s/payment-order", bill_id)
    return await get_payment_service(request).create_order(bill_id)


@router.post("/{bill_id}/resend")
async def bill_resend(request: Request, bill_id: str) -> Bill:
    logger.info("POST /api/bills/%s/resend", bill_id)
    return await get_bill_service(request).resend_notifications(bill_id)


@router.post("/{bill_id}/regenerate-pdf")
async def bill_regenerate_pdf(request: Request, bill_id: str) -> Bill:
    logger.info("POST /api/bills/%s/regenerate-pdf", bill_id)
    return await get_bill_service(request).regenerate_pdf(bill_id)


@router.get("/{bill_id}/pdf")
async def bill_pdf(request: Request, bill_id: str):
    url = await get_bill_service(request).get_pdf_url(bill_id)
    if url.startswith(("http://", "https://")):
        return RedirectResponse(url, status_code=302)
    logger.debug("Serving local PDF for bill %s from %s", bill_id, url)
    return FileResponse(url, media_type="application/pdf", filename=f"bill_{bill_id}.pdf")
