from datetime import date

import pytest

from rentflow.models.bill import Bill, BillCreate, PaymentDetails, PaymentStatus
from rentflow.models.notification import NotificationType


class TestPaymentStatus:
    @pytest.mark.parametrize("value", ["Paid", "paid", " PAID "])
    def test_paid_any_case(self, value):
        assert PaymentStatus.parse(value) is PaymentStatus.PAID

    @pytest.mark.parametrize("value", ["Not Paid", "pending", "", None])
    def test_everything_else_unpaid(self, value):
        assert PaymentStatus.parse(value) is PaymentStatus.NOT_PAID


class TestBill:
    def test_defaults(self):
        bill = Bill(billing_month=date(2024, 3, 1))
        assert bill.payment_status == "Not Paid"
        assert not bill.is_paid
        assert bill.charges == []
        assert bill.tenant is None

    def test_is_paid(self, sample_bill):
        assert sample_bill(payment_status="paid").is_paid
        assert sample_bill(payment_status="Paid").status is PaymentStatus.PAID

    def test_billing_month_from_string(self):
        assert Bill(billing_month="2024-03-01").billing_month == date(2024, 3, 1)

    def test_deep_copy_is_independent(self, sample_bill):
        bill = sample_bill()
        snapshot = bill.model_copy(deep=True)
        bill.tenant.full_name = "Changed"
        bill.charges[0].amount = 1
        assert snapshot.tenant.full_name == "Asha Verma"
        assert snapshot.charges[0].amount == 450000


class TestRequests:
    def test_bill_create_defaults(self):
        data = BillCreate(tenant_id="t", room_id="r", billing_month=date(2024, 3, 15))
        assert data.total_amount is None
        assert data.charges == []

    def test_payment_details_default_method(self):
        assert PaymentDetails().method == "UPI"


def test_notification_type_values():
    assert {t.value for t in NotificationType} == {"created", "updated", "paid"}
