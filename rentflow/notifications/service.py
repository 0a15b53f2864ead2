from __future__ import annotations

import asyncio
import logging
from functools import partial

import httpx

from rentflow.exceptions import WhatsAppDeliveryError
from rentflow.models.bill import Bill
from rentflow.models.notification import EmailMessage, EmailStatus, NotificationType, ProviderResult, WhatsAppMessage
from rentflow.notifications.email import SendGridEmailSender
from rentflow.notifications.email_queue import EmailJob, EmailQueue
from rentflow.notifications.links import BillLinks, compute_links
from rentflow.notifications.templates import RenderOptions, TemplateRenderer
from rentflow.notifications.whatsapp import WhatsAppDispatcher, build_channels
from rentflow.settings import Settings

logger = logging.getLogger(__name__)


def _log_email_outcome(bill_id: str, future: asyncio.Future) -> None:
    if future.cancelled():
        logger.info("Email for bill %s was dropped at shutdown", bill_id)
        return
    exc = future.exception()
    if exc is not None:
        logger.error("Email for bill %s was not delivered: %s", bill_id, exc)
    else:
        logger.debug("Email for bill %s finished: %s", bill_id, future.result().value)


class NotificationService:
    """Sends bill notifications over email and WhatsApp.

    Email goes through the throttled in-process queue; WhatsApp is sent
    immediately. The two channels are independent: a failure on one never
    stops the other. Templates and links are rendered when the message is
    actually sent, from a snapshot of the bill taken at enqueue time.
    """

    def __init__(
        self,
        settings: Settings,
        email_sender: SendGridEmailSender | None = None,
        dispatcher: WhatsAppDispatcher | None = None,
        renderer: TemplateRenderer | None = None,
        queue: EmailQueue | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings
        self.renderer = renderer or TemplateRenderer(settings)
        self.email_sender = email_sender or SendGridEmailSender(settings, client)
        self.dispatcher = dispatcher or WhatsAppDispatcher(
            build_channels(settings, client),
            default_prefix=settings.default_country_prefix,
        )
        self.queue = queue or EmailQueue(self.send_bill_email_now, settings.email_throttle_seconds)
        self._client = client

        if not self.email_sender.configured:
            logger.warning("Email notifications disabled: SendGrid API key or sender address not set")
        if not self.dispatcher.configured:
            logger.warning("WhatsApp notifications disabled: no Twilio or WhatsApp Cloud API credentials")

    def _options(self, bill: Bill, type: NotificationType | None, links: BillLinks | None) -> RenderOptions:
        links = links or compute_links(bill, self.settings)
        return RenderOptions(
            download_link=links.download_link,
            payment_link=links.payment_link,
            stamp=links.stamp,
            type=type,
        )

    def queue_bill_email(
        self,
        bill: Bill,
        *,
        type: NotificationType | None = None,
        subject: str | None = None,
        html: str | None = None,
        links: BillLinks | None = None,
        pdf_path: str | None = None,
    ) -> asyncio.Future:
        """Enqueue the bill email and return its future without waiting."""
        email = bill.tenant.email if bill.tenant else None
        if not email or not self.email_sender.configured:
            if not email:
                logger.warning("Bill %s: tenant has no email address, email skipped", bill.id)
            else:
                logger.debug("Bill %s: email not configured, email skipped", bill.id)
            future = asyncio.get_running_loop().create_future()
            future.set_result(EmailStatus.SKIPPED)
            return future

        job = EmailJob(
            bill=bill.model_copy(deep=True),
            type=type,
            subject=subject,
            html=html,
            links=links,
            pdf_path=pdf_path,
        )
        return self.queue.enqueue(job)

    async def send_bill_email(
        self,
        bill: Bill,
        *,
        type: NotificationType | None = None,
        subject: str | None = None,
        html: str | None = None,
        links: BillLinks | None = None,
        pdf_path: str | None = None,
    ) -> EmailStatus:
        """Queue the bill email and wait for it to be sent, skipped or cancelled.

        Raises EmailDeliveryError when the provider rejects it.
        """
        return await self.queue_bill_email(
            bill,
            type=type,
            subject=subject,
            html=html,
            links=links,
            pdf_path=pdf_path,
        )

    async def send_bill_email_now(self, job: EmailJob) -> EmailStatus:
        bill = job.bill
        email = bill.tenant.email if bill.tenant else None
        if not email:
            return EmailStatus.SKIPPED

        options = self._options(bill, job.type, job.links)
        if job.html:
            text = f"Your bill is available: {options.download_link}"
            if options.payment_link:
                text += f"\nPay: {options.payment_link}"
        else:
            text = self.renderer.render_email_text(bill, options)

        message = EmailMessage(
            to=email,
            subject=job.subject or self.renderer.render_subject(bill, options),
            html=job.html or self.renderer.render_email_body(bill, options),
            text=text,
        )
        await self.email_sender.send(message, attachment_path=job.pdf_path)
        return EmailStatus.SENT

    async def send_bill_whatsapp(
        self,
        bill: Bill,
        *,
        type: NotificationType | None = None,
        message: str | None = None,
        links: BillLinks | None = None,
    ) -> ProviderResult | None:
        """Render and send the WhatsApp message now.

        Returns None when skipped. Raises WhatsAppDeliveryError when every
        provider fails.
        """
        phone = bill.tenant.phone if bill.tenant else None
        if not phone:
            logger.warning("Bill %s: tenant has no phone number, WhatsApp skipped", bill.id)
            return None

        if message is not None:
            payload = WhatsAppMessage(text=message)
        else:
            options = self._options(bill, type, links)
            payload = self.renderer.render_whatsapp_message(bill, options, structured=True)
        return await self.dispatcher.send(phone, payload)

    async def send_bill(
        self,
        bill: Bill,
        *,
        type: NotificationType | None = None,
        links: BillLinks | None = None,
        pdf_path: str | None = None,
    ) -> None:
        """Notify the tenant on every channel. Never raises."""
        try:
            future = self.queue_bill_email(bill, type=type, links=links, pdf_path=pdf_path)
            future.add_done_callback(partial(_log_email_outcome, bill.id))
        except Exception:
            logger.exception("Could not queue email for bill %s", bill.id)

        try:
            await self.send_bill_whatsapp(bill, type=type, links=links)
        except WhatsAppDeliveryError as exc:
            logger.error("WhatsApp for bill %s was not delivered: %s", bill.id, exc)
        except Exception:
            logger.exception("Unexpected error sending WhatsApp for bill %s", bill.id)

    def cancel_pending_for_bill(self, bill_id: str) -> int:
        return self.queue.cancel_pending_for_bill(bill_id)

    def config_summary(self) -> dict[str, bool | str | int]:
        s = self.settings
        return {
            "email": self.email_sender.configured,
            "twilio": s.twilio_configured,
            "twilio_template": bool(s.twilio_template_sid),
            "whatsapp_cloud": s.whatsapp_cloud_configured,
            "whatsapp_cloud_template": bool(s.whatsapp_cloud_template_name),
            "storage_backend": s.storage_backend,
            "public_pdf_base_url": bool(s.public_pdf_base_url),
            "frontend_url": s.frontend_base,
            "backend_url": s.backend_base,
            "pending_emails": self.queue.pending_count,
        }

    async def aclose(self, timeout: float = 10.0) -> None:
        """Drain the email queue (bounded by timeout) and release the HTTP client."""
        try:
            await asyncio.wait_for(self.queue.join(), timeout)
        except asyncio.TimeoutError:
            logger.warning("Email queue not drained after %.0fs, %d email(s) dropped", timeout, self.queue.pending_count)
        await self.queue.close()
        if self._client is not None:
            await self._client.aclose()


def build_notification_service(settings: Settings) -> NotificationService:
    client = httpx.AsyncClient(timeout=settings.provider_timeout)
    return NotificationService(settings, client=client)
