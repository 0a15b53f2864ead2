from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, MagicMock, call

import pytest

from rentflow.exceptions import (
    BillAlreadyPaidError,
    BillNotFoundError,
    DuplicateBillError,
    PdfStorageError,
    RoomNotFoundError,
    TenantNotFoundError,
)
from rentflow.models.bill import BillCreate, BillUpdate, Charge, PaymentDetails
from rentflow.models.notification import NotificationType
from rentflow.repositories.sqlalchemy import (
    SQLAlchemyBillRepository,
    SQLAlchemyRoomRepository,
    SQLAlchemyTenantRepository,
)
from rentflow.services.bill_service import BillService
from rentflow.services.pdf_service import PdfService
from rentflow.storage.local import LocalStorage
from tests.conftest import seed_occupancy


@pytest.fixture()
def occupancy(db_connection):
    return seed_occupancy(db_connection)


@pytest.fixture()
def notifications():
    service = MagicMock()
    service.send_bill = AsyncMock()
    service.cancel_pending_for_bill = MagicMock(return_value=0)
    return service


@pytest.fixture()
def generator():
    gen = MagicMock()
    gen.generate.return_value = b"%PDF-1.4 fake"
    return gen


@pytest.fixture()
def pdf_service(app_settings, generator):
    return PdfService(LocalStorage(app_settings.storage_local_path), app_settings, generator=generator)


@pytest.fixture()
def bill_service(db_connection, pdf_service, notifications):
    return BillService(
        SQLAlchemyBillRepository(db_connection),
        SQLAlchemyTenantRepository(db_connection),
        SQLAlchemyRoomRepository(db_connection),
        pdf_service,
        notifications,
    )


def _create_data(occupancy, **overrides) -> BillCreate:
    tenant, room, _ = occupancy
    defaults = dict(
        tenant_id=tenant.id,
        room_id=room.id,
        billing_month=date(2024, 3, 14),
        charges=[Charge(title="Rent", amount=450000), Charge(title="Electricity", amount=50000)],
    )
    defaults.update(overrides)
    return BillCreate(**defaults)


class TestCreateBill:
    async def test_creates_with_pdf_and_notifies(self, bill_service, occupancy, notifications):
        bill = await bill_service.create_bill(_create_data(occupancy))

        assert bill.billing_month == date(2024, 3, 1)
        assert bill.total_amount == 500000
        assert bill.building_id == occupancy[2].id
        assert bill.pdf_key == f"bills/bill_{bill.id}.pdf"
        notifications.send_bill.assert_awaited_once()
        args, kwargs = notifications.send_bill.await_args
        assert args[0].id == bill.id
        assert kwargs["type"] is NotificationType.CREATED
        assert kwargs["pdf_path"] is None

    async def test_explicit_total_wins(self, bill_service, occupancy):
        bill = await bill_service.create_bill(_create_data(occupancy, total_amount=480000))
        assert bill.total_amount == 480000

    async def test_without_notifications(self, bill_service, occupancy, notifications):
        await bill_service.create_bill(_create_data(occupancy), send_notifications=False)
        notifications.send_bill.assert_not_awaited()

    async def test_duplicate_period_rejected(self, bill_service, occupancy):
        await bill_service.create_bill(_create_data(occupancy))
        with pytest.raises(DuplicateBillError, match="T-0001"):
            await bill_service.create_bill(_create_data(occupancy, billing_month=date(2024, 3, 28)))

    async def test_unknown_tenant(self, bill_service, occupancy):
        with pytest.raises(TenantNotFoundError):
            await bill_service.create_bill(_create_data(occupancy, tenant_id="missing"))

    async def test_unknown_room(self, bill_service, occupancy):
        with pytest.raises(RoomNotFoundError):
            await bill_service.create_bill(_create_data(occupancy, room_id="missing"))

    async def test_pdf_failure_keeps_bill(self, bill_service, occupancy, notifications, generator):
        generator.generate.side_effect = RuntimeError("fpdf exploded")

        bill = await bill_service.create_bill(_create_data(occupancy))

        assert bill.pdf_key is None
        assert bill_service.get_bill(bill.id).total_amount == 500000
        notifications.send_bill.assert_awaited_once()

    async def test_fallback_path_passed_to_notifications(self, db_connection, occupancy, app_settings, generator, notifications, tmp_path):
        class Unreachable(LocalStorage):
            def save(self, key, data, content_type="application/pdf"):
                raise ConnectionError("bucket unreachable")

        fallback = LocalStorage(str(tmp_path / "fallback"))
        pdf_service = PdfService(Unreachable(str(tmp_path / "s3")), app_settings, fallback=fallback, generator=generator)
        service = BillService(
            SQLAlchemyBillRepository(db_connection),
            SQLAlchemyTenantRepository(db_connection),
            SQLAlchemyRoomRepository(db_connection),
            pdf_service,
            notifications,
        )

        bill = await service.create_bill(_create_data(occupancy))

        assert bill.pdf_key == f"bills/bill_{bill.id}.pdf"
        assert bill.pdf_url is None
        assert notifications.send_bill.await_args.kwargs["pdf_path"] == str(fallback.path_for(bill.pdf_key))


class TestUpdateBill:
    async def test_updates_charges_and_total(self, bill_service, occupancy, notifications):
        bill = await bill_service.create_bill(_create_data(occupancy))

        updated = await bill_service.update_bill(
            bill.id,
            BillUpdate(charges=[Charge(title="Rent", amount=450000), Charge(title="Water", amount=30000)]),
        )

        assert updated.total_amount == 480000
        assert [c.title for c in updated.charges] == ["Rent", "Water"]
        assert notifications.send_bill.await_args.kwargs["type"] is NotificationType.UPDATED

    async def test_notes_only(self, bill_service, occupancy):
        bill = await bill_service.create_bill(_create_data(occupancy))
        updated = await bill_service.update_bill(bill.id, BillUpdate(notes="Pay by the 5th"))
        assert updated.notes == "Pay by the 5th"
        assert updated.total_amount == 500000

    async def test_regenerates_pdf(self, bill_service, occupancy, generator):
        bill = await bill_service.create_bill(_create_data(occupancy))
        await bill_service.update_bill(bill.id, BillUpdate(total_amount=1))
        assert generator.generate.call_count == 2

    async def test_missing_bill(self, bill_service):
        with pytest.raises(BillNotFoundError):
            await bill_service.update_bill("missing", BillUpdate(notes="x"))


class TestMarkPaid:
    async def test_marks_paid_and_notifies(self, bill_service, occupancy, notifications):
        bill = await bill_service.create_bill(_create_data(occupancy))
        notifications.reset_mock()

        paid = await bill_service.mark_paid(bill.id, PaymentDetails(reference="TXN123"))

        assert paid.is_paid
        assert paid.payment.method == "UPI"
        assert paid.payment.reference == "TXN123"
        assert paid.payment.paid_at is not None
        assert notifications.send_bill.await_args.kwargs["type"] is NotificationType.PAID

    async def test_cancels_pending_before_paid_notice(self, bill_service, occupancy, notifications):
        bill = await bill_service.create_bill(_create_data(occupancy))
        notifications.reset_mock()

        await bill_service.mark_paid(bill.id, PaymentDetails())

        assert [c[0] for c in notifications.mock_calls] == ["cancel_pending_for_bill", "send_bill"]
        assert notifications.mock_calls[0] == call.cancel_pending_for_bill(bill.id)

    async def test_keeps_given_payment_time(self, bill_service, occupancy):
        bill = await bill_service.create_bill(_create_data(occupancy))
        paid_at = datetime(2024, 3, 4, 12, 0, tzinfo=timezone.utc)
        paid = await bill_service.mark_paid(bill.id, PaymentDetails(method="Cash", paid_at=paid_at))
        assert paid.payment.method == "Cash"
        assert paid.payment.paid_at == paid_at

    async def test_already_paid(self, bill_service, occupancy):
        bill = await bill_service.create_bill(_create_data(occupancy))
        await bill_service.mark_paid(bill.id, PaymentDetails())
        with pytest.raises(BillAlreadyPaidError):
            await bill_service.mark_paid(bill.id, PaymentDetails())


class TestResend:
    async def test_reuses_stored_pdf(self, bill_service, occupancy, notifications, generator):
        bill = await bill_service.create_bill(_create_data(occupancy))
        notifications.reset_mock()

        await bill_service.resend_notifications(bill.id)

        assert generator.generate.call_count == 1
        assert notifications.send_bill.await_args.kwargs["type"] is None

    async def test_generates_missing_pdf(self, bill_service, occupancy, generator):
        generator.generate.side_effect = [RuntimeError("first render fails"), b"%PDF-1.4 ok"]
        bill = await bill_service.create_bill(_create_data(occupancy))
        assert bill.pdf_key is None

        resent = await bill_service.resend_notifications(bill.id)

        assert resent.pdf_key == f"bills/bill_{bill.id}.pdf"


class TestPdfAccess:
    async def test_regenerate_pdf(self, bill_service, occupancy, generator):
        bill = await bill_service.create_bill(_create_data(occupancy))
        await bill_service.regenerate_pdf(bill.id)
        assert generator.generate.call_count == 2

    async def test_regenerate_pdf_propagates_failure(self, bill_service, occupancy, generator):
        bill = await bill_service.create_bill(_create_data(occupancy))
        generator.generate.side_effect = RuntimeError("broken")
        with pytest.raises(PdfStorageError):
            await bill_service.regenerate_pdf(bill.id)

    async def test_get_pdf_url_local(self, bill_service, occupancy, app_settings):
        bill = await bill_service.create_bill(_create_data(occupancy))
        url = await bill_service.get_pdf_url(bill.id)
        assert url.endswith(f"bill_{bill.id}.pdf")

    async def test_get_pdf_url_generates_on_demand(self, bill_service, occupancy, generator):
        generator.generate.side_effect = [RuntimeError("first render fails"), b"%PDF-1.4 ok"]
        bill = await bill_service.create_bill(_create_data(occupancy))

        url = await bill_service.get_pdf_url(bill.id)

        assert url.endswith(f"bill_{bill.id}.pdf")
        assert bill_service.get_bill(bill.id).pdf_key is not None

    async def test_get_pdf_url_rematerializes_when_signing_fails(self, bill_service, occupancy, pdf_service, generator):
        bill = await bill_service.create_bill(_create_data(occupancy))
        pdf_service.signed_url = AsyncMock(side_effect=[RuntimeError("expired credentials"), "https://signed"])

        url = await bill_service.get_pdf_url(bill.id)

        assert url == "https://signed"
        assert generator.generate.call_count == 2


class TestQueriesAndDelete:
    async def test_list_bills_normalizes_month(self, bill_service, occupancy):
        await bill_service.create_bill(_create_data(occupancy))
        assert len(bill_service.list_bills(month=date(2024, 3, 20))) == 1
        assert bill_service.list_bills(month=date(2024, 4, 1)) == []

    async def test_delete(self, bill_service, occupancy, notifications):
        bill = await bill_service.create_bill(_create_data(occupancy))

        bill_service.delete_bill(bill.id)

        notifications.cancel_pending_for_bill.assert_called_with(bill.id)
        with pytest.raises(BillNotFoundError):
            bill_service.get_bill(bill.id)

    def test_delete_missing(self, bill_service):
        with pytest.raises(BillNotFoundError):
            bill_service.delete_bill("missing")

    async def test_works_without_notifications(self, db_connection, pdf_service, occupancy):
        service = BillService(
            SQLAlchemyBillRepository(db_connection),
            SQLAlchemyTenantRepository(db_connection),
            SQLAlchemyRoomRepository(db_connection),
            pdf_service,
        )
        bill = await service.create_bill(_create_data(occupancy))
        paid = await service.mark_paid(bill.id, PaymentDetails())
        assert paid.is_paid
