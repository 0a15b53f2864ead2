from datetime import datetime, timezone

from rentflow.models.bill import Payment
from rentflow.pdf.invoice import InvoicePDF, pdf_text
from rentflow.upi import generate_upi_qrcode_png, generate_upi_uri
from tests.conftest import make_settings


class TestInvoicePDF:
    def test_generate_returns_pdf_bytes(self, sample_bill):
        result = InvoicePDF().generate(sample_bill(), make_settings())

        assert isinstance(result, bytes)
        assert result[:5] == b"%PDF-"

    def test_generate_with_notes(self, sample_bill):
        result = InvoicePDF().generate(sample_bill(notes="Water meter read on the 28th"), make_settings())
        assert result[:5] == b"%PDF-"

    def test_generate_paid_bill(self, sample_bill):
        bill = sample_bill(
            payment_status="Paid",
            payment=Payment(method="UPI", reference="TXN1", paid_at=datetime(2024, 3, 5, tzinfo=timezone.utc)),
        )
        assert InvoicePDF().generate(bill, make_settings())[:5] == b"%PDF-"

    def test_generate_without_joins(self, sample_bill):
        bill = sample_bill(tenant=None, room=None, charges=[])
        assert InvoicePDF().generate(bill, make_settings())[:5] == b"%PDF-"

    def test_generate_with_company_details(self, sample_bill):
        settings = make_settings(company_bank_details="HDFC Bank A/C 0001", company_gst="27ABCDE1234F1Z5")
        assert InvoicePDF().generate(sample_bill(), settings)[:5] == b"%PDF-"

    def test_generate_with_upi_page(self, sample_bill):
        uri = generate_upi_uri(vpa="landlord@okhdfc", payee_name="Sunrise Rentals", amount=500000)
        qr = generate_upi_qrcode_png(uri=uri)

        with_qr = InvoicePDF().generate(sample_bill(), make_settings(), upi_qrcode_png=qr, upi_uri=uri)
        without_qr = InvoicePDF().generate(sample_bill(), make_settings())

        assert with_qr[:5] == b"%PDF-"
        assert len(with_qr) > len(without_qr)

    def test_upi_page_skipped_for_paid_bill(self, sample_bill):
        qr = generate_upi_qrcode_png(vpa="landlord@okhdfc", payee_name="Sunrise Rentals", amount=500000)
        paid = sample_bill(payment_status="Paid")

        with_qr = InvoicePDF().generate(paid, make_settings(), upi_qrcode_png=qr)
        without_qr = InvoicePDF().generate(paid, make_settings())

        assert abs(len(with_qr) - len(without_qr)) < 200

    def test_unreadable_logo_is_ignored(self, sample_bill):
        result = InvoicePDF().generate(sample_bill(), make_settings(), logo_png=b"not an image")
        assert result[:5] == b"%PDF-"


class TestPdfText:
    def test_rupee_sign_replaced(self):
        assert pdf_text("₹5,000.00") == "Rs. 5,000.00"

    def test_non_latin_replaced(self):
        assert pdf_text("आशा") == "???"

    def test_empty(self):
        assert pdf_text(None) == ""
