from __future__ import annotations

import logging
from io import BytesIO

from fpdf import FPDF

from rentflow.constants import DEFAULT_TENANT_NAME, IST_TZ, NOT_AVAILABLE, format_month
from rentflow.models import format_currency
from rentflow.models.bill import Bill
from rentflow.settings import Settings

logger = logging.getLogger(__name__)

COLORS = {
    "primary": (31, 41, 55),
    "primary_light": (243, 244, 246),
    "accent": (37, 99, 235),
    "paid": (22, 163, 74),
    "pending": (217, 119, 6),
    "text_color": (17, 24, 39),
    "text_contrast": (255, 255, 255),
    "muted_text": (107, 114, 128),
    "row_alt": (249, 250, 251),
    "border_color": (209, 213, 219),
}

FONT = "Helvetica"


def pdf_text(text: str | None) -> str:
    """Make text printable with the core PDF fonts (latin-1 only)."""
    if not text:
        return ""
    text = text.replace("₹", "Rs. ").replace("•", "-")
    return text.encode("latin-1", "replace").decode("latin-1")


class InvoicePDF:
    def generate(
        self,
        bill: Bill,
        settings: Settings,
        logo_png: bytes | None = None,
        upi_qrcode_png: bytes | None = None,
        upi_uri: str = "",
    ) -> bytes:
        self._settings = settings

        pdf = FPDF()
        pdf.add_page()
        pdf.set_auto_page_break(auto=True, margin=20)
        page_w = pdf.w - pdf.l_margin - pdf.r_margin

        self._draw_header(pdf, page_w, bill, logo_png)
        self._draw_parties(pdf, page_w, bill)
        self._draw_table(pdf, page_w, bill)
        self._draw_total(pdf, page_w, bill.total_amount)
        self._draw_status(pdf, page_w, bill)

        if bill.notes:
            self._draw_notes(pdf, page_w, bill.notes)

        if settings.company_bank_details or settings.company_gst:
            self._draw_company_details(pdf, page_w)

        self._draw_footer(pdf, page_w)

        if upi_qrcode_png and not bill.is_paid:
            pdf.add_page()
            self._draw_upi_page(pdf, page_w, upi_qrcode_png, bill.total_amount, upi_uri)
            self._draw_footer(pdf, page_w)

        output = bytes(pdf.output())
        logger.debug(
            "PDF generated: bill=%s charges=%d upi=%s size=%d bytes",
            bill.id,
            len(bill.charges),
            bool(upi_qrcode_png),
            len(output),
        )
        return output

    def _money(self, amount: int) -> str:
        s = self._settings
        return pdf_text(format_currency(amount, s.currency_code, s.currency_locale, s.currency_symbol))

    def _draw_header(self, pdf: FPDF, page_w: float, bill: Bill, logo_png: bytes | None) -> None:
        c = COLORS
        x = pdf.l_margin
        y = pdf.get_y()

        pdf.set_fill_color(*c["primary"])
        pdf.rect(x, y, page_w, 36, "F")

        if logo_png:
            try:
                pdf.image(BytesIO(logo_png), x=x + 6, y=y + 6, h=24)
            except Exception:  # fpdf2 raises several types for unreadable images
                logger.warning("Company logo could not be embedded for bill %s", bill.id)

        pdf.set_xy(x, y + 7)
        pdf.set_text_color(*c["text_contrast"])
        pdf.set_font(FONT, "B", 22)
        pdf.cell(page_w - 6, 12, "RENT INVOICE", align="R", new_x="LMARGIN", new_y="NEXT")
        pdf.set_font(FONT, "", 10)
        pdf.set_x(x)
        pdf.cell(
            page_w - 6,
            8,
            pdf_text(f"{self._settings.company_name} - {format_month(bill.billing_month)}"),
            align="R",
            new_x="LMARGIN",
            new_y="NEXT",
        )
        pdf.set_y(y + 44)

    def _draw_parties(self, pdf: FPDF, page_w: float, bill: Bill) -> None:
        c = COLORS
        tenant = bill.tenant
        room = bill.room
        building = bill.building

        rows = [
            ("BILL NO.", bill.id or NOT_AVAILABLE),
            ("TENANT", (tenant.full_name if tenant else "") or DEFAULT_TENANT_NAME),
            ("TENANT ID", (tenant.tenant_code if tenant else "") or NOT_AVAILABLE),
            ("ROOM", room.number if room else NOT_AVAILABLE),
        ]
        if building:
            rows.append(("BUILDING", building.name))
        if bill.created_at:
            rows.append(("ISSUED", bill.created_at.astimezone(IST_TZ).strftime("%d %b %Y")))

        label_w = 32
        for label, value in rows:
            pdf.set_font(FONT, "B", 8)
            pdf.set_text_color(*c["muted_text"])
            pdf.cell(label_w, 6, label)
            pdf.set_font(FONT, "", 10)
            pdf.set_text_color(*c["text_color"])
            pdf.cell(page_w - label_w, 6, pdf_text(value), new_x="LMARGIN", new_y="NEXT")
        pdf.ln(8)

    def _draw_table(self, pdf: FPDF, page_w: float, bill: Bill) -> None:
        c = COLORS
        col_desc = page_w * 0.70
        col_amount = page_w * 0.30
        line_h = 10

        pdf.set_font(FONT, "B", 11)
        pdf.set_text_color(*c["primary"])
        pdf.cell(0, 8, "CHARGES", new_x="LMARGIN", new_y="NEXT")

        pdf.set_draw_color(*c["accent"])
        pdf.set_line_width(0.8)
        y = pdf.get_y()
        pdf.line(pdf.l_margin, y, pdf.l_margin + 30, y)
        pdf.ln(4)

        pdf.set_fill_color(*c["primary"])
        pdf.set_text_color(*c["text_contrast"])
        pdf.set_font(FONT, "B", 9)
        pdf.cell(col_desc, line_h, "  Description", fill=True)
        pdf.cell(col_amount, line_h, "Amount  ", fill=True, align="R", new_x="LMARGIN", new_y="NEXT")

        pdf.set_text_color(*c["text_color"])
        pdf.set_font(FONT, "", 10)

        charges = bill.charges or []
        if not charges:
            pdf.set_fill_color(*c["row_alt"])
            pdf.cell(col_desc, line_h, "  Monthly rent", fill=True)
            pdf.cell(
                col_amount,
                line_h,
                f"{self._money(bill.total_amount)}  ",
                fill=True,
                align="R",
                new_x="LMARGIN",
                new_y="NEXT",
            )

        for i, charge in enumerate(charges):
            if i % 2 == 0:
                pdf.set_fill_color(*c["row_alt"])
            else:
                pdf.set_fill_color(*c["text_contrast"])
            pdf.cell(col_desc, line_h, pdf_text(f"  {charge.title or '-'}"), fill=True)
            pdf.cell(
                col_amount,
                line_h,
                f"{self._money(charge.amount)}  ",
                fill=True,
                align="R",
                new_x="LMARGIN",
                new_y="NEXT",
            )

        pdf.set_draw_color(*c["border_color"])
        pdf.set_line_width(0.3)
        y = pdf.get_y()
        pdf.line(pdf.l_margin, y, pdf.l_margin + page_w, y)

    def _draw_total(self, pdf: FPDF, page_w: float, total_amount: int) -> None:
        c = COLORS
        pdf.ln(4)

        pdf.set_fill_color(*c["primary"])
        pdf.set_text_color(*c["text_contrast"])
        pdf.set_font(FONT, "B", 12)
        pdf.cell(page_w * 0.70, 12, "TOTAL  ", fill=True, align="R")
        pdf.set_font(FONT, "B", 13)
        pdf.cell(
            page_w * 0.30,
            12,
            f"{self._money(total_amount)}  ",
            fill=True,
            align="R",
            new_x="LMARGIN",
            new_y="NEXT",
        )

    def _draw_status(self, pdf: FPDF, page_w: float, bill: Bill) -> None:
        c = COLORS
        pdf.ln(8)
        x = pdf.l_margin
        y = pdf.get_y()

        if bill.is_paid:
            color = c["paid"]
            title = "PAID"
            payment = bill.payment
            details = (
                f"Method: {(payment.method if payment else '') or NOT_AVAILABLE}    "
                f"Ref: {(payment.reference if payment else '') or NOT_AVAILABLE}"
            )
            if payment and payment.paid_at:
                details += f"    On: {payment.paid_at.astimezone(IST_TZ).strftime('%d %b %Y')}"
        else:
            color = c["pending"]
            title = "PAYMENT PENDING"
            details = "Please pay before the end of the billing month."

        pdf.set_fill_color(*color)
        pdf.rect(x, y, 3, 16, "F")
        pdf.set_xy(x + 8, y + 1)
        pdf.set_font(FONT, "B", 12)
        pdf.set_text_color(*color)
        pdf.cell(0, 7, title, new_x="LMARGIN", new_y="NEXT")
        pdf.set_x(x + 8)
        pdf.set_font(FONT, "", 9)
        pdf.set_text_color(*c["text_color"])
        pdf.cell(0, 7, pdf_text(details), new_x="LMARGIN", new_y="NEXT")

    def _draw_notes(self, pdf: FPDF, page_w: float, notes: str) -> None:
        c = COLORS
        pdf.ln(8)
        pdf.set_font(FONT, "B", 8)
        pdf.set_text_color(*c["muted_text"])
        pdf.cell(0, 6, "NOTES", new_x="LMARGIN", new_y="NEXT")
        pdf.set_font(FONT, "", 10)
        pdf.set_text_color(*c["text_color"])
        pdf.multi_cell(page_w, 6, pdf_text(notes), new_x="LMARGIN", new_y="NEXT")

    def _draw_company_details(self, pdf: FPDF, page_w: float) -> None:
        c = COLORS
        s = self._settings
        pdf.ln(6)
        pdf.set_font(FONT, "", 8)
        pdf.set_text_color(*c["muted_text"])
        if s.company_bank_details:
            pdf.multi_cell(page_w, 5, pdf_text(f"Bank: {s.company_bank_details}"), new_x="LMARGIN", new_y="NEXT")
        if s.company_gst:
            pdf.cell(0, 5, pdf_text(f"GSTIN: {s.company_gst}"), new_x="LMARGIN", new_y="NEXT")

    def _draw_upi_page(
        self,
        pdf: FPDF,
        page_w: float,
        qrcode_png: bytes,
        total_amount: int,
        upi_uri: str,
    ) -> None:
        c = COLORS
        s = self._settings
        x = pdf.l_margin

        y = pdf.get_y()
        pdf.set_fill_color(*c["primary"])
        pdf.rect(x, y, page_w, 28, "F")
        pdf.set_y(y + 8)
        pdf.set_text_color(*c["text_contrast"])
        pdf.set_font(FONT, "B", 20)
        pdf.cell(0, 12, "PAY WITH UPI", align="C", new_x="LMARGIN", new_y="NEXT")
        pdf.ln(14)

        qr_size = 55
        qr_y = pdf.get_y()
        pdf.image(BytesIO(qrcode_png), x=x + (page_w - qr_size) / 2, y=qr_y, w=qr_size, h=qr_size)
        pdf.set_y(qr_y + qr_size + 6)

        pdf.set_font(FONT, "", 10)
        pdf.set_text_color(*c["muted_text"])
        pdf.cell(0, 6, "Scan with any UPI app", align="C", new_x="LMARGIN", new_y="NEXT")
        pdf.ln(8)

        pdf.set_font(FONT, "B", 16)
        pdf.set_text_color(*c["text_color"])
        pdf.cell(0, 10, self._money(total_amount), align="C", new_x="LMARGIN", new_y="NEXT")

        pdf.set_font(FONT, "", 10)
        pdf.cell(0, 7, pdf_text(f"UPI ID: {s.upi_id}"), align="C", new_x="LMARGIN", new_y="NEXT")

        if upi_uri:
            pdf.ln(6)
            pdf.set_font(FONT, "", 7)
            pdf.set_text_color(*c["muted_text"])
            pdf.multi_cell(page_w, 4, pdf_text(upi_uri), align="C", new_x="LMARGIN", new_y="NEXT")

    def _draw_footer(self, pdf: FPDF, page_w: float) -> None:
        c = COLORS
        pdf.set_y(-30)
        pdf.set_draw_color(*c["border_color"])
        pdf.set_line_width(0.3)
        y = pdf.get_y()
        pdf.line(pdf.l_margin, y, pdf.l_margin + page_w, y)
        pdf.ln(5)
        pdf.set_font(FONT, "", 7)
        pdf.set_text_color(*c["muted_text"])
        pdf.cell(
            0,
            5,
            pdf_text(f"Generated automatically. Questions? {self._settings.support_email}"),
            align="C",
        )
