from __future__ import annotations

import asyncio
import base64
import logging
from pathlib import Path

import httpx

from rentflow.exceptions import EmailDeliveryError
from rentflow.models.notification import EmailMessage, ProviderResult
from rentflow.settings import Settings

logger = logging.getLogger(__name__)


class SendGridEmailSender:
    """Sends email through the SendGrid v3 mail/send endpoint."""

    name = "sendgrid"

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        self.settings = settings
        self._client = client

    @property
    def configured(self) -> bool:
        return self.settings.email_configured

    def build_payload(self, message: EmailMessage, attachment_path: str | None = None) -> dict:
        content = []
        if message.text:
            content.append({"type": "text/plain", "value": message.text})
        content.append({"type": "text/html", "value": message.html})

        payload: dict = {
            "personalizations": [{"to": [{"email": message.to}], "subject": message.subject}],
            "from": {"email": self.settings.email_from, "name": self.settings.company_name},
            "content": content,
        }

        if attachment_path:
            path = Path(attachment_path)
            if path.is_file():
                payload["attachments"] = [
                    {
                        "content": base64.b64encode(path.read_bytes()).decode("ascii"),
                        "filename": path.name,
                        "type": "application/pdf",
                        "disposition": "attachment",
                    }
                ]
            else:
                logger.warning("Attachment %s not found, sending without it", attachment_path)
        return payload

    async def send(self, message: EmailMessage, attachment_path: str | None = None) -> ProviderResult:
        if not self.configured:
            raise EmailDeliveryError("SendGrid is not configured")

        # Reading the attachment is blocking file IO
        payload = await asyncio.to_thread(self.build_payload, message, attachment_path)
        headers = {"Authorization": f"Bearer {self.settings.sendgrid_api_key}"}

        try:
            if self._client is not None:
                response = await self._client.post(self.settings.sendgrid_api_url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.settings.provider_timeout) as client:
                    response = await client.post(self.settings.sendgrid_api_url, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise EmailDeliveryError(
                f"SendGrid rejected email to {message.to}: {exc.response.status_code} {exc.response.text[:200]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise EmailDeliveryError(f"SendGrid request failed: {exc}") from exc

        message_id = response.headers.get("X-Message-Id")
        logger.info("Email sent to %s (sendgrid id=%s)", message.to, message_id)
        return ProviderResult(provider=self.name, message_id=message_id, status_code=response.status_code)
