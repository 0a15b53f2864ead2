from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape
from pydantic import BaseModel

from rentflow import models
from rentflow.constants import DEFAULT_TENANT_NAME, IST_TZ, NOT_AVAILABLE, PLACEHOLDER, format_month
from rentflow.models.bill import Bill
from rentflow.models.notification import NotificationType, WhatsAppMessage
from rentflow.settings import Settings

TEMPLATES_DIR = Path(__file__).parent / "templates"

SUBJECTS = {
    NotificationType.CREATED: "📄 Your Monthly Rent Bill • {month} • Room {room}",
    NotificationType.UPDATED: "📝 Updated Rent Bill • {month} • Room {room}",
    NotificationType.PAID: "✅ Payment Confirmed • {month} • Room {room}",
}


class RenderOptions(BaseModel):
    download_link: str
    payment_link: str | None = None
    stamp: int | None = None
    type: NotificationType | None = None


def resolve_type(bill: Bill, type: NotificationType | None) -> NotificationType:
    """Explicit type wins; otherwise paid bills get PAID and the rest CREATED."""
    if type is not None:
        return type
    return NotificationType.PAID if bill.is_paid else NotificationType.CREATED


def format_currency(amount: int | None, settings: Settings) -> str:
    return models.format_currency(
        amount,
        currency=settings.currency_code,
        locale=settings.currency_locale,
        symbol=settings.currency_symbol,
    )


class TemplateRenderer:
    """Renders bill notifications for email and WhatsApp.

    All methods are pure: they read the joined bill and the options and never
    touch the network. Missing optional data degrades to 'Tenant', 'N/A' or '-'.
    """

    def __init__(self, settings: Settings, templates_dir: Path = TEMPLATES_DIR) -> None:
        self.settings = settings
        self.env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=False),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def format_currency(self, amount: int | None) -> str:
        return format_currency(amount, self.settings)

    def context(self, bill: Bill, options: RenderOptions) -> dict[str, Any]:
        s = self.settings
        tenant = bill.tenant
        payment = bill.payment
        paid = bill.is_paid

        paid_on = PLACEHOLDER
        if payment and payment.paid_at:
            paid_on = payment.paid_at.astimezone(IST_TZ).strftime("%d %b %Y")

        return {
            "type": resolve_type(bill, options.type).value,
            "company_name": s.company_name,
            "logo_url": s.company_logo_url,
            "support_email": s.support_email,
            "bank_details": s.company_bank_details,
            "gst": s.company_gst,
            "bill_id": bill.id,
            "tenant_name": (tenant.full_name if tenant else "") or DEFAULT_TENANT_NAME,
            "tenant_code": (tenant.tenant_code if tenant else "") or NOT_AVAILABLE,
            "month": format_month(bill.billing_month),
            "room": (bill.room.number if bill.room else "") or PLACEHOLDER,
            "building": bill.building.name if bill.building else "",
            "amount": self.format_currency(bill.total_amount),
            "charges": [
                {"title": charge.title or PLACEHOLDER, "amount": self.format_currency(charge.amount)}
                for charge in bill.charges or []
            ],
            "notes": bill.notes,
            "is_paid": paid,
            "payment_method": (payment.method if payment else "") or NOT_AVAILABLE,
            "payment_reference": (payment.reference if payment else "") or NOT_AVAILABLE,
            "paid_on": paid_on,
            "download_link": options.download_link,
            "payment_link": None if paid else options.payment_link,
        }

    def render_subject(self, bill: Bill, options: RenderOptions) -> str:
        template = SUBJECTS[resolve_type(bill, options.type)]
        return template.format(
            month=format_month(bill.billing_month),
            room=(bill.room.number if bill.room else "") or PLACEHOLDER,
        )

    def render_email_body(self, bill: Bill, options: RenderOptions) -> str:
        return self.env.get_template("bill_email.html").render(**self.context(bill, options))

    def render_email_text(self, bill: Bill, options: RenderOptions) -> str:
        return self.env.get_template("bill_email.txt").render(**self.context(bill, options))

    def render_whatsapp_message(
        self,
        bill: Bill,
        options: RenderOptions,
        structured: bool = False,
    ) -> WhatsAppMessage:
        """Plain-text WhatsApp body, plus content-template variables when structured.

        The variable slots are numbered for Twilio content templates and the
        WhatsApp Cloud API body parameters:
        1 tenant, 2 month, 3 room, 4 amount, 5 status, 6 payment link, 7 download link.
        """
        ctx = self.context(bill, options)
        text = self.env.get_template("bill_whatsapp.txt").render(**ctx).strip()
        variables = None
        if structured:
            variables = {
                "1": ctx["tenant_name"],
                "2": ctx["month"],
                "3": ctx["room"],
                "4": ctx["amount"],
                "5": "Paid" if ctx["is_paid"] else "Pending",
                "6": ctx["payment_link"] or PLACEHOLDER,
                "7": ctx["download_link"],
            }
        return WhatsAppMessage(text=text, variables=variables)
