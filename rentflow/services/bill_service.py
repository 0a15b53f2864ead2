from __future__ import annotations

import logging
from datetime import date, datetime

from rentflow.constants import IST_TZ, month_start
from rentflow.exceptions import (
    BillAlreadyPaidError,
    BillNotFoundError,
    DuplicateBillError,
    PdfStorageError,
    RoomNotFoundError,
    TenantNotFoundError,
)
from rentflow.models.bill import Bill, BillCreate, BillUpdate, Payment, PaymentDetails
from rentflow.models.notification import NotificationType
from rentflow.notifications.service import NotificationService
from rentflow.repositories.base import BillRepository, RoomRepository, TenantRepository
from rentflow.services.pdf_service import PdfLocator, PdfService

logger = logging.getLogger(__name__)


class BillService:
    """Bill lifecycle: create, update, mark paid, resend.

    Every lifecycle step regenerates the PDF and notifies the tenant. PDF and
    notification failures are logged and never undo the bill change.
    """

    def __init__(
        self,
        bill_repo: BillRepository,
        tenant_repo: TenantRepository,
        room_repo: RoomRepository,
        pdf_service: PdfService,
        notifications: NotificationService | None = None,
    ) -> None:
        self.bill_repo = bill_repo
        self.tenant_repo = tenant_repo
        self.room_repo = room_repo
        self.pdf_service = pdf_service
        self.notifications = notifications

    def get_bill(self, bill_id: str) -> Bill:
        bill = self.bill_repo.get_by_id(bill_id)
        if bill is None:
            raise BillNotFoundError(f"Bill {bill_id} not found")
        return bill

    def list_bills(
        self,
        tenant_id: str | None = None,
        room_id: str | None = None,
        month: date | None = None,
    ) -> list[Bill]:
        return self.bill_repo.list_bills(
            tenant_id=tenant_id,
            room_id=room_id,
            month=month_start(month) if month else None,
        )

    async def _store_pdf(self, bill: Bill) -> tuple[Bill, PdfLocator | None]:
        """Materialize and persist the bill's PDF, keeping the bill usable on failure."""
        try:
            locator = await self.pdf_service.materialize(bill)
        except PdfStorageError:
            logger.exception("PDF unavailable for bill %s, continuing without it", bill.id)
            return bill, None
        self.bill_repo.update_pdf_locator(bill.id, locator.key, locator.url)
        return self.bill_repo.get_by_id(bill.id) or bill, locator

    async def _notify(self, bill: Bill, type: NotificationType | None, locator: PdfLocator | None) -> None:
        if self.notifications is None:
            return
        pdf_path = locator.local_path if locator else None
        await self.notifications.send_bill(bill, type=type, pdf_path=pdf_path)

    async def create_bill(self, data: BillCreate, send_notifications: bool = True) -> Bill:
        tenant = self.tenant_repo.get_by_id(data.tenant_id)
        if tenant is None:
            raise TenantNotFoundError(f"Tenant {data.tenant_id} not found")
        room = self.room_repo.get_by_id(data.room_id)
        if room is None:
            raise RoomNotFoundError(f"Room {data.room_id} not found")

        billing_month = month_start(data.billing_month)
        if self.bill_repo.find_by_period(tenant.id, room.id, billing_month) is not None:
            raise DuplicateBillError(
                f"A bill already exists for tenant {tenant.tenant_code or tenant.id}, "
                f"room {room.number}, {billing_month:%Y-%m}"
            )

        total = data.total_amount
        if total is None:
            total = sum(charge.amount for charge in data.charges)

        bill = self.bill_repo.create(
            Bill(
                tenant_id=tenant.id,
                room_id=room.id,
                building_id=data.building_id or room.building_id,
                billing_month=billing_month,
                total_amount=total,
                charges=data.charges,
                notes=data.notes,
            )
        )
        logger.info("Bill created: id=%s tenant=%s room=%s total=%d", bill.id, tenant.id, room.number, total)

        bill, locator = await self._store_pdf(bill)
        if send_notifications:
            await self._notify(bill, NotificationType.CREATED, locator)
        return bill

    async def update_bill(self, bill_id: str, data: BillUpdate, send_notifications: bool = True) -> Bill:
        bill = self.get_bill(bill_id)
        if data.charges is not None:
            bill.charges = data.charges
            if data.total_amount is None:
                bill.total_amount = sum(charge.amount for charge in data.charges)
        if data.total_amount is not None:
            bill.total_amount = data.total_amount
        if data.notes is not None:
            bill.notes = data.notes

        bill = self.bill_repo.update(bill)
        logger.info("Bill updated: id=%s total=%d", bill.id, bill.total_amount)

        bill, locator = await self._store_pdf(bill)
        if send_notifications:
            await self._notify(bill, NotificationType.UPDATED, locator)
        return bill

    async def mark_paid(self, bill_id: str, details: PaymentDetails, send_notifications: bool = True) -> Bill:
        bill = self.get_bill(bill_id)
        if bill.is_paid:
            raise BillAlreadyPaidError(f"Bill {bill_id} is already paid")

        payment = Payment(
            method=details.method or "UPI",
            reference=details.reference,
            paid_at=details.paid_at or datetime.now(IST_TZ),
        )
        bill = self.bill_repo.mark_paid(bill_id, payment)
        logger.info("Bill paid: id=%s method=%s ref=%s", bill.id, payment.method, payment.reference)

        bill, locator = await self._store_pdf(bill)
        if send_notifications and self.notifications is not None:
            self.notifications.cancel_pending_for_bill(bill.id)
            await self._notify(bill, NotificationType.PAID, locator)
        return bill

    async def resend_notifications(self, bill_id: str) -> Bill:
        """Send the bill again. The PDF is only generated when none is stored yet."""
        bill = self.get_bill(bill_id)
        locator = None
        if not bill.pdf_key:
            bill, locator = await self._store_pdf(bill)
        await self._notify(bill, None, locator)
        return bill

    async def regenerate_pdf(self, bill_id: str) -> Bill:
        """Re-render and store the PDF. Raises PdfStorageError when it cannot be stored."""
        bill = self.get_bill(bill_id)
        locator = await self.pdf_service.materialize(bill)
        self.bill_repo.update_pdf_locator(bill.id, locator.key, locator.url)
        return self.get_bill(bill_id)

    async def get_pdf_url(self, bill_id: str) -> str:
        """Short-lived URL (or local path) for the bill's PDF.

        A bill without a stored document, or whose key cannot be signed, gets
        its PDF generated on demand.
        """
        bill = self.get_bill(bill_id)
        if bill.pdf_key:
            local_path = self.pdf_service.local_path(bill.pdf_key)
            if local_path:
                return local_path
            try:
                return await self.pdf_service.signed_url(bill.pdf_key)
            except Exception:
                logger.warning("Signing %s failed, regenerating PDF for bill %s", bill.pdf_key, bill.id, exc_info=True)

        locator = await self.pdf_service.materialize(bill)
        self.bill_repo.update_pdf_locator(bill.id, locator.key, locator.url)
        if locator.local_path:
            return locator.local_path
        return await self.pdf_service.signed_url(locator.key)

    def delete_bill(self, bill_id: str) -> None:
        bill = self.get_bill(bill_id)
        if self.notifications is not None:
            self.notifications.cancel_pending_for_bill(bill.id)
        self.bill_repo.delete(bill.id)
        logger.info("Bill deleted: id=%s", bill.id)
